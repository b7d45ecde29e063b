from morphdiff.adapters import Adapter, JsonAdapter, YamlAdapter, to_plain
from morphdiff.change import Change, build
from morphdiff.errors import (
    ChangeError,
    ConcurrentObservation,
    MorphError,
    ObserveError,
    OperationError,
    PathNotFound,
    PathSyntaxError,
    SessionClosed,
    UnsupportedShape,
)
from morphdiff.merge import ChangeTree, merge
from morphdiff.observable import (
    CompositeShape,
    LeafShape,
    ListShape,
    MappingShape,
    Observable,
    RecordShape,
    Snapshot,
    capture,
    observable,
    register,
    resolve,
)
from morphdiff.operation import Append, Batch, Operation, Replace
from morphdiff.patch import apply, patch
from morphdiff.path import Path, Segment
from morphdiff.session import Session, begin, observe

__all__ = [
    "Adapter",
    "Append",
    "Batch",
    "Change",
    "ChangeError",
    "ChangeTree",
    "CompositeShape",
    "ConcurrentObservation",
    "JsonAdapter",
    "LeafShape",
    "ListShape",
    "MappingShape",
    "MorphError",
    "Observable",
    "ObserveError",
    "Operation",
    "OperationError",
    "Path",
    "PathNotFound",
    "PathSyntaxError",
    "RecordShape",
    "Replace",
    "Segment",
    "Session",
    "SessionClosed",
    "Snapshot",
    "UnsupportedShape",
    "YamlAdapter",
    "apply",
    "begin",
    "build",
    "capture",
    "merge",
    "observable",
    "observe",
    "patch",
    "register",
    "resolve",
    "to_plain",
]
