import copy
from collections.abc import Mapping, MutableMapping
from typing import Any

from morphdiff.change import Change
from morphdiff.errors import OperationError, PathNotFound, UnsupportedShape
from morphdiff.observable import RecordShape, resolve
from morphdiff.operation import Append, Replace
from morphdiff.path import Path, Segment

_MISSING = object()


def _record_fields(doc: Any) -> tuple[str, ...]:
    try:
        shape = resolve(doc)
    except UnsupportedShape:
        return ()
    if isinstance(shape, RecordShape):
        return shape.field_names(doc)
    return ()


def _get_child(doc: Any, tok: Segment) -> Any:
    """
    Step from ``doc`` into the child addressed by ``tok``:
    - mappings by key
    - lists by non-negative index
    - records (dataclasses, declared fields) by attribute
    Returns _MISSING when the child does not exist.
    """
    if isinstance(doc, Mapping):
        return doc.get(tok, _MISSING)
    if isinstance(doc, list):
        if isinstance(tok, int) and 0 <= tok < len(doc):
            return doc[tok]
        return _MISSING
    if isinstance(tok, str) and tok in _record_fields(doc):
        return getattr(doc, tok)
    return _MISSING


def _set_child(doc: Any, tok: Segment, value: Any, trail: Path, *, create: bool):
    if isinstance(doc, MutableMapping):
        if tok not in doc and not create:
            raise PathNotFound(trail)
        doc[tok] = value
    elif isinstance(doc, list) and isinstance(tok, int) and 0 <= tok < len(doc):
        doc[tok] = value
    elif isinstance(tok, str) and tok in _record_fields(doc):
        setattr(doc, tok, value)
    else:
        raise PathNotFound(trail)


def _append(value: Any, fragment: Any, trail: Path) -> Any:
    if isinstance(value, (list, bytearray)) and isinstance(
        fragment, (list, tuple, bytes, bytearray)
    ):
        if isinstance(value, list) != isinstance(fragment, (list, tuple)):
            raise OperationError(trail)
        value.extend(copy.deepcopy(fragment))
        return value
    for kind in (str, bytes, tuple):
        if isinstance(value, kind) and isinstance(fragment, kind):
            return value + fragment
    raise OperationError(trail)


def _apply_here(value: Any, change: Change, trail: Path) -> Any:
    op = change.operation
    if isinstance(op, Replace):
        return copy.deepcopy(op.value)
    if isinstance(op, Append):
        return _append(value, op.fragment, trail)
    for child in op.changes:
        value = _apply(value, child, trail)
    return value


def _apply(doc: Any, change: Change, base: Path) -> Any:
    tokens = change.path
    if not tokens:
        return _apply_here(doc, change, base)

    current = doc
    for idx, tok in enumerate(tokens[:-1]):
        current = _get_child(current, tok)
        if current is _MISSING:
            raise PathNotFound(base + tokens[: idx + 1])

    leaf = tokens[-1]
    trail = base + tokens
    create = isinstance(change.operation, Replace)
    target = _get_child(current, leaf)
    if target is _MISSING and not create:
        raise PathNotFound(trail)
    result = _apply_here(target, change, trail)
    if result is not target:
        _set_child(current, leaf, result, trail, create=create)
    return doc


def apply(doc: Any, change: Change) -> Any:
    """
    Apply ``change`` to ``doc`` in place and return the resulting root,
    which is a new object when the change replaces the root itself.

    Raises:
    - PathNotFound when an intermediate segment is missing. A Replace may
      create its final mapping key.
    - OperationError when an Append targets a value it cannot extend.
    """
    return _apply(doc, change, Path())


def patch(base: Any, change: Change | None) -> Any:
    """Return a copy of ``base`` with ``change`` applied."""
    output = copy.deepcopy(base)
    if change is None:
        return output
    return apply(output, change)
