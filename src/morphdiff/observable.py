"""
Shapes: how a type takes part in observation.

A leaf shape snapshots a value by copying it and classifies an old/new pair as
``Replace``, ``Append`` or no change. A composite shape enumerates its
children as ``(segment, child)`` pairs; the engine recurses into them.
Shapes are looked up per value with :func:`resolve`.
"""

import copy
import dataclasses
import datetime
import decimal
import enum
import fractions
import logging
import pathlib
import uuid
from typing import Any, Iterable

from morphdiff.errors import UnsupportedShape
from morphdiff.operation import Append, Replace
from morphdiff.path import Segment

logger = logging.getLogger(__name__)


class Observable:
    mutable = False


class LeafShape(Observable):
    """
    A value compared as a whole.

    ``sequence`` leaves (strings, bytes, tuples) may report an ``Append`` when
    the new value extends the old one.
    """

    def __init__(self, *, sequence: bool = False, mutable: bool = False):
        self.sequence = sequence
        self.mutable = mutable

    def copy(self, value: Any) -> Any:
        return copy.deepcopy(value)

    def classify(self, old: Any, new: Any, *, append: bool = True):
        same_type = type(old) is type(new)
        if same_type and same_value(old, new):
            return None
        if append and same_type and self.sequence and self._extends(old, new):
            return Append(copy.deepcopy(new[len(old) :]))
        return Replace(copy.deepcopy(new))

    @staticmethod
    def _extends(old: Any, new: Any) -> bool:
        # slicing a str subclass yields a plain str; such values never append
        if type(new[:0]) is not type(new):
            return False
        return len(new) > len(old) and same_value(old, new[: len(old)])

    def __repr__(self):
        return f"LeafShape(sequence={self.sequence}, mutable={self.mutable})"


class CompositeShape(Observable):
    mutable = True
    appendable = False

    def children(self, value: Any) -> list[tuple[Segment, Any]]:
        raise NotImplementedError

    def fragment(self, value: Any, start: int) -> Any:
        raise NotImplementedError


class RecordShape(CompositeShape):
    """Fixed set of named fields read with ``getattr``."""

    def __init__(self, fields: Iterable[str] | None = None):
        self.fields = None if fields is None else tuple(fields)

    def field_names(self, value: Any) -> tuple[str, ...]:
        if self.fields is not None:
            return self.fields
        return tuple(f.name for f in dataclasses.fields(value))

    def children(self, value):
        return [(name, getattr(value, name)) for name in self.field_names(value)]

    def __repr__(self):
        return f"RecordShape(fields={self.fields!r})"


class ListShape(CompositeShape):
    appendable = True

    def children(self, value):
        return list(enumerate(value))

    def fragment(self, value, start):
        return value[start:]

    def __repr__(self):
        return "ListShape()"


class MappingShape(CompositeShape):
    def children(self, value):
        for key in value:
            if isinstance(key, bool) or not isinstance(key, (str, int)):
                valid = False
            else:
                valid = isinstance(key, str) or key >= 0
            if not valid:
                raise UnsupportedShape(
                    f"Cannot address mapping key {key!r}: "
                    "keys must be str or non-negative int"
                )
        return list(value.items())

    def __repr__(self):
        return "MappingShape()"


_SHAPES: dict[type, Observable] = {}
_DATACLASS = RecordShape()


def register(cls: type, shape: Observable) -> None:
    """Use ``shape`` for ``cls`` and its subclasses."""
    _SHAPES[cls] = shape
    logger.debug("Registered %r for %s", shape, cls.__qualname__)


def observable(*fields: str):
    """
    Class decorator declaring which attributes of a plain class are observed,
    in order.
    """

    def decorate(cls):
        cls.__observe_fields__ = tuple(fields)
        return cls

    return decorate


def resolve(value: Any) -> Observable:
    cls = type(value)
    for base in cls.__mro__[:-1]:
        shape = _SHAPES.get(base)
        if shape is not None:
            return shape
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _DATACLASS
    fields = getattr(cls, "__observe_fields__", None)
    if fields is not None:
        return RecordShape(fields)
    raise UnsupportedShape(
        f"Cannot observe {cls.__qualname__}: register a shape for it, "
        "make it a dataclass or declare __observe_fields__"
    )


def same_value(old: Any, new: Any) -> bool:
    """
    Value equality that looks inside tuples and compares records field by
    field, so a copied record equals its original even without ``__eq__``.
    """
    if type(old) is not type(new):
        return False
    if old is new or old == new:
        return True
    if isinstance(new, tuple):
        return len(old) == len(new) and all(map(same_value, old, new))
    try:
        shape = resolve(new)
    except UnsupportedShape:
        return False
    if not isinstance(shape, CompositeShape):
        return False
    old_children = dict(shape.children(old))
    new_children = shape.children(new)
    return len(old_children) == len(new_children) and all(
        segment in old_children and same_value(old_children[segment], child)
        for segment, child in new_children
    )


@dataclasses.dataclass
class Snapshot:
    """Pre-mutation state of one node of the observed tree."""

    shape: Observable
    type: type
    value: Any = None
    children: dict[Segment, "Snapshot"] | None = None


def capture(value: Any, nodes: list[Any] | None = None) -> Snapshot:
    """
    Snapshot ``value`` recursively. Mutable nodes are appended to ``nodes``
    in walk order.
    """
    return _capture(value, nodes, set())


def _capture(value: Any, nodes: list[Any] | None, ancestors: set[int]) -> Snapshot:
    shape = resolve(value)
    if nodes is not None and shape.mutable:
        nodes.append(value)
    if isinstance(shape, LeafShape):
        return Snapshot(shape, type(value), value=shape.copy(value))

    if id(value) in ancestors:
        raise UnsupportedShape(
            f"Cannot observe a cyclic reference to {type(value).__qualname__}"
        )
    ancestors.add(id(value))
    children = {
        segment: _capture(child, nodes, ancestors)
        for segment, child in shape.children(value)
    }
    ancestors.discard(id(value))
    return Snapshot(shape, type(value), children=children)


for _cls in (
    type(None),
    bool,
    int,
    float,
    complex,
    decimal.Decimal,
    fractions.Fraction,
    enum.Enum,
    datetime.date,
    datetime.time,
    datetime.timedelta,
    uuid.UUID,
    pathlib.PurePath,
    frozenset,
):
    register(_cls, LeafShape())
register(set, LeafShape(mutable=True))
register(str, LeafShape(sequence=True))
register(bytes, LeafShape(sequence=True))
register(tuple, LeafShape(sequence=True))
register(bytearray, LeafShape(sequence=True, mutable=True))
register(list, ListShape())
register(dict, MappingShape())
