import dataclasses
import typing

if typing.TYPE_CHECKING:
    from morphdiff.change import Change


@dataclasses.dataclass(frozen=True)
class Replace:
    """The whole sub-value was replaced by ``value``."""

    kind: typing.ClassVar[typing.Literal["replace"]] = "replace"
    value: typing.Any


@dataclasses.dataclass(frozen=True)
class Append:
    """
    The sub-value is a string or sequence and the new value equals the old
    one followed by ``fragment``. Only the suffix is carried.
    """

    kind: typing.ClassVar[typing.Literal["append"]] = "append"
    fragment: typing.Any


@dataclasses.dataclass(frozen=True)
class Batch:
    """Independent changes below a composite, in enumeration order."""

    kind: typing.ClassVar[typing.Literal["batch"]] = "batch"
    changes: tuple["Change", ...]

    def __post_init__(self):
        changes = tuple(self.changes)
        if not changes:
            raise ValueError("Batch requires at least one change.")
        object.__setattr__(self, "changes", changes)


Operation = Replace | Append | Batch
