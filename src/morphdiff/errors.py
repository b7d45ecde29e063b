import typing


class MorphError(Exception):
    pass


class PathSyntaxError(MorphError, ValueError):
    pass


class ObserveError(MorphError):
    """Raised when a value cannot be observed."""


class ConcurrentObservation(ObserveError):
    """A session is already open over the value (or a value inside it)."""


class SessionClosed(ObserveError):
    pass


class UnsupportedShape(ObserveError, TypeError):
    """The value's type has no way to enumerate its children."""


class ChangeError(MorphError, ValueError):
    """Raised when a change cannot be applied to a value."""

    def __init__(self, path: typing.Iterable[typing.Any] = ()):
        # avoid a circular import; render the same way Path does
        from morphdiff.path import Path

        self.path = Path(path)
        super().__init__(self._describe())

    def _describe(self) -> str:
        return f'change could not be applied at "{self.path}"'


class PathNotFound(ChangeError):
    def _describe(self) -> str:
        return f'path "{self.path}" does not exist'


class OperationError(ChangeError):
    def _describe(self) -> str:
        return f'operation could not be performed at "{self.path}"'
