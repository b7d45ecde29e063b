import dataclasses
import typing
from typing import Any, Callable, Iterator

from morphdiff.operation import Append, Batch, Operation, Replace
from morphdiff.path import Path


@dataclasses.dataclass(frozen=True)
class Change:
    path: Path
    operation: Operation

    def __post_init__(self):
        if not isinstance(self.path, Path):
            object.__setattr__(self, "path", Path(self.path))

    def __repr__(self):
        return f"Change(path='{self.path}', operation={self.operation!r})"

    def leaves(self, base: Path = Path()) -> Iterator[tuple[Path, Replace | Append]]:
        """Yield ``(absolute path, operation)`` for every non-batch node."""
        path = base + self.path
        if isinstance(self.operation, Batch):
            for change in self.operation.changes:
                yield from change.leaves(path)
        else:
            yield path, self.operation

    def map_values(self, fn: Callable[[Any], Any]) -> "Change":
        op = self.operation
        if isinstance(op, Replace):
            return Change(self.path, Replace(fn(op.value)))
        if isinstance(op, Append):
            return Change(self.path, Append(fn(op.fragment)))
        return Change(self.path, Batch([c.map_values(fn) for c in op.changes]))

    def apply(self, doc: Any) -> Any:
        from morphdiff.patch import apply

        return apply(doc, self)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "path": list(self.path),
            "op": self.operation.kind,
        }
        if isinstance(self.operation, Replace):
            payload["value"] = self.operation.value
        elif isinstance(self.operation, Append):
            payload["value"] = self.operation.fragment
        else:
            payload["changes"] = [c.to_dict() for c in self.operation.changes]
        return payload

    @classmethod
    def from_dict(cls, data: typing.Mapping[str, Any]) -> "Change":
        kind = data.get("op")
        path = Path(data.get("path") or ())
        if kind == "replace":
            return cls(path, Replace(data["value"]))
        if kind == "append":
            return cls(path, Append(data["value"]))
        if kind == "batch":
            return cls(path, Batch([cls.from_dict(c) for c in data["changes"]]))
        raise ValueError(f"Unknown change operation {kind!r}")


def build(changes: list[Change]) -> Change | None:
    """Fold sibling changes into one: nothing, the single change, or a batch."""
    if not changes:
        return None
    if len(changes) == 1:
        return changes[0]
    return Change(Path(), Batch(changes))
