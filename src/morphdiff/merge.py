import copy

from morphdiff.change import Change, build
from morphdiff.errors import OperationError
from morphdiff.operation import Append, Operation, Replace
from morphdiff.patch import apply
from morphdiff.path import Path, Segment


def _concat(old, new, trail: Path):
    for kind in (str, bytes, tuple):
        if isinstance(old, kind) and isinstance(new, kind):
            return old + new
    if isinstance(old, (list, tuple)) and isinstance(new, (list, tuple)):
        return [*old, *new]
    if isinstance(old, bytearray) and isinstance(new, (bytes, bytearray)):
        return old + new
    raise OperationError(trail)


class ChangeTree:
    """
    Folds successive changes into the smallest equivalent change.

    - a change below a Replace is applied into the replacement value
    - a Replace drops everything recorded beneath it
    - consecutive Appends at one path concatenate their fragments
    """

    def __init__(self):
        self.operation: Replace | Append | None = None
        self.children: dict[Segment, ChangeTree] = {}

    def load(self, change: Change) -> None:
        self._load(change.path, change.operation, Path())

    def _load(self, path: Path, operation: Operation, trail: Path) -> None:
        node = self
        rest = list(path)
        while True:
            if isinstance(node.operation, Replace):
                value = copy.deepcopy(node.operation.value)
                value = apply(value, Change(rest, operation))
                node.operation = Replace(value)
                return
            if not rest:
                break
            segment = rest.pop(0)
            trail = trail.child(segment)
            node = node.children.setdefault(segment, ChangeTree())

        if isinstance(operation, Replace):
            node.operation = operation
            node.children.clear()
        elif isinstance(operation, Append):
            if isinstance(node.operation, Append):
                fragment = _concat(node.operation.fragment, operation.fragment, trail)
                node.operation = Append(fragment)
            else:
                node.operation = operation
        else:
            for child in operation.changes:
                node._load(child.path, child.operation, trail)

    def dump(self) -> Change | None:
        """Emit the folded change and reset the tree."""
        changes: list[Change] = []
        if self.operation is not None:
            changes.append(Change(Path(), self.operation))
        for segment, child in self.children.items():
            sub = child.dump()
            if sub is not None:
                changes.append(Change(Path([segment]) + sub.path, sub.operation))
        self.operation = None
        self.children = {}
        return build(changes)


def merge(*changes: Change | None) -> Change | None:
    """Fold ``changes`` in order; ``None`` entries are skipped."""
    tree = ChangeTree()
    for change in changes:
        if change is not None:
            tree.load(change)
    return tree.dump()
