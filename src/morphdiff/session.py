"""
Observation sessions.

A session snapshots a root value when it opens, lets the caller mutate the
value directly, and on ``end`` walks the tree comparing every node to its
snapshot. The result is a single :class:`~morphdiff.change.Change` (or
``None`` when nothing changed).
"""

import copy
import dataclasses
import logging
import typing
import warnings
from typing import Any, Callable

from morphdiff.change import Change
from morphdiff.errors import ConcurrentObservation, SessionClosed
from morphdiff.observable import CompositeShape, LeafShape, Snapshot, capture
from morphdiff.operation import Append, Batch, Replace
from morphdiff.path import Path, Segment

if typing.TYPE_CHECKING:
    from morphdiff.adapters import Adapter

logger = logging.getLogger(__name__)

# id(node) -> id(session) for every mutable node under an open session
_claims: dict[int, int] = {}


@dataclasses.dataclass
class _Draft:
    """A change under construction; ``path_rev`` is ordered leaf-to-root."""

    path_rev: list[Segment]
    operation: Replace | Append | list["_Draft"]

    def finalize(self, encode: Callable[[Any], Any] | None = None) -> Change:
        path = Path.from_reversed(self.path_rev)
        op = self.operation
        if isinstance(op, list):
            return Change(path, Batch([d.finalize(encode) for d in op]))
        if encode is None:
            return Change(path, op)
        if isinstance(op, Replace):
            return Change(path, Replace(encode(op.value)))
        return Change(path, Append(encode(op.fragment)))


def _assemble(drafts: list[_Draft], collapse: bool) -> _Draft | None:
    if not drafts:
        return None
    if len(drafts) == 1 and collapse:
        return drafts[0]
    return _Draft([], drafts)


def collect(
    snapshot: Snapshot, value: Any, *, append: bool = True, collapse: bool = True
) -> _Draft | None:
    """Compare ``value`` with its snapshot and draft the change, if any."""
    shape = snapshot.shape
    if isinstance(shape, LeafShape):
        op = shape.classify(snapshot.value, value, append=append)
        return None if op is None else _Draft([], op)

    assert isinstance(shape, CompositeShape)
    if type(value) is not snapshot.type:
        return _Draft([], Replace(copy.deepcopy(value)))

    old_children = snapshot.children or {}
    current = shape.children(value)
    present = {segment for segment, _ in current}
    if any(segment not in present for segment in old_children):
        # truncated list or removed key
        return _Draft([], Replace(copy.deepcopy(value)))

    drafts: list[_Draft] = []
    added: list[tuple[Segment, Any]] = []
    for segment, child in current:
        old = old_children.get(segment)
        if old is None:
            added.append((segment, child))
            continue
        draft = collect(old, child, append=append, collapse=collapse)
        if draft is not None:
            draft.path_rev.append(segment)
            drafts.append(draft)

    if added:
        if shape.appendable:
            if not append:
                return _Draft([], Replace(copy.deepcopy(value)))
            tail = shape.fragment(value, len(old_children))
            drafts.insert(0, _Draft([], Append(copy.deepcopy(tail))))
        else:
            for segment, child in added:
                drafts.append(_Draft([segment], Replace(copy.deepcopy(child))))

    return _assemble(drafts, collapse)


class Session:
    """
    Exclusive mutation window over ``root``.

    Every mutable node of the tree is claimed while the session is open; a
    second session over any of them raises :class:`ConcurrentObservation`.
    """

    def __init__(
        self,
        root: Any,
        *,
        adapter: "Adapter | None" = None,
        append: bool = True,
        collapse: bool = True,
    ):
        self._root = root
        self.adapter = adapter
        self.append = append
        self.collapse = collapse
        self.change: Change | None = None
        self._snapshot: Snapshot | None = None
        self._nodes: list[Any] = []
        self._closed = True

    @property
    def value(self) -> Any:
        return self._root

    @value.setter
    def value(self, new: Any) -> None:
        if self._closed:
            raise SessionClosed("Cannot replace the value of a closed session")
        self._root = new

    @property
    def closed(self) -> bool:
        return self._closed

    def open(self) -> "Session":
        nodes: list[Any] = []
        snapshot = capture(self._root, nodes)
        taken = [node for node in nodes if id(node) in _claims]
        if taken:
            raise ConcurrentObservation(
                f"{type(taken[0]).__qualname__} at {id(taken[0]):#x} "
                "is already under observation"
            )
        for node in nodes:
            _claims[id(node)] = id(self)
        # hold the nodes so their ids cannot be reused while claimed
        self._nodes = nodes
        self._snapshot = snapshot
        self._closed = False
        logger.debug(
            "Opened session %#x over %s (%d nodes)",
            id(self),
            type(self._root).__qualname__,
            len(nodes),
        )
        return self

    def release(self) -> None:
        """Close the window without computing a change."""
        for node in self._nodes:
            if _claims.get(id(node)) == id(self):
                del _claims[id(node)]
        self._nodes = []
        self._snapshot = None
        self._closed = True

    def end(self) -> Change | None:
        if self._closed:
            raise SessionClosed("Session is not open")
        snapshot = self._snapshot
        try:
            draft = collect(
                snapshot, self._root, append=self.append, collapse=self.collapse
            )
            encode = None if self.adapter is None else self.adapter.encode
            change = None if draft is None else draft.finalize(encode)
        finally:
            self.release()
        self.change = change
        if change is None:
            logger.debug("Closed session %#x: no change", id(self))
        else:
            logger.debug(
                "Closed session %#x: %s at %s",
                id(self),
                change.operation.kind,
                change.path,
            )
        return change

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._closed:
            # ended or released inside the block
            return
        if exc_type is not None:
            self.release()
            return
        self.end()

    def __del__(self):
        if not getattr(self, "_closed", True):
            logger.warning("Session %#x was never closed", id(self))
            warnings.warn(f"unclosed session {self!r}", ResourceWarning, stacklevel=2)
            self.release()

    def __repr__(self):
        state = "closed" if self._closed else "open"
        return f"<Session {state} {type(self._root).__qualname__}>"


def begin(
    root: Any,
    *,
    adapter: "Adapter | None" = None,
    append: bool = True,
    collapse: bool = True,
) -> Session:
    """
    Open a session over ``root``.

    Use it as a context manager so the window is released on every exit
    path::

        with begin(foo) as session:
            foo.bar.baz += 1
        session.change
    """
    return Session(root, adapter=adapter, append=append, collapse=collapse).open()


def observe(
    root: Any,
    block: Callable[[Any], Any],
    *,
    adapter: "Adapter | None" = None,
    append: bool = True,
    collapse: bool = True,
) -> Change | None:
    """
    Run ``block(root)`` inside a session and return what it changed.

    An exception raised by ``block`` releases the session and propagates.
    """
    session = begin(root, adapter=adapter, append=append, collapse=collapse)
    try:
        block(session.value)
    except BaseException:
        session.release()
        raise
    return session.end()
