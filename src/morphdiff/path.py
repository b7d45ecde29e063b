import re
from typing import Iterable

from morphdiff.errors import PathSyntaxError

Segment = str | int  # str for field names and dict keys, int for list indices


def _check_segment(segment: Segment) -> Segment:
    if isinstance(segment, bool) or not isinstance(segment, (str, int)):
        raise TypeError(
            f"Path segments must be str or int, found {type(segment).__name__}"
        )
    if isinstance(segment, int) and segment < 0:
        raise ValueError("Negative indices are not supported in paths.")
    return segment


def _escape_key_for_brackets(key: str) -> str:
    """Escape a key for bracket notation with double quotes."""
    return key.replace("\\", "\\\\").replace('"', '\\"')


def _join(base: str, segment: Segment) -> str:
    """
    Join a rendered path with one more segment:
    - keys with no '.', '[' or quote use dot notation
    - otherwise keys are quoted: ["..."]
    - list indices use [i]
    """
    if isinstance(segment, int):
        return f"{base}[{segment}]"
    use_dot = segment != "" and not any(ch in segment for ch in '.["\'')
    if use_dot:
        return f"{base}.{segment}"
    return f'{base}["{_escape_key_for_brackets(segment)}"]'


_SEGMENT = re.compile(
    r"""
    \.(?P<key>[^.\[]+)                       # .name
    | \[(?P<index>\d+)\]                     # [3]
    | \[(?P<quote>["'])                      # ["any.key"] or ['any.key']
      (?P<quoted>(?:\\.|(?!(?P=quote))[^\\])*)
      (?P=quote)\]
    """,
    re.VERBOSE | re.DOTALL,
)
_ESCAPE = re.compile(r"\\(.)", re.DOTALL)


def _tokenize(text: str) -> list[Segment]:
    """
    Split ``$.a.b[2]["key.with.dots"]`` into segments. The leading ``$`` is
    optional; a backslash escapes the next character inside quoted keys.
    """
    if not isinstance(text, str) or not text:
        raise PathSyntaxError("Path must be a non-empty string.")

    if text.startswith("$"):
        body = text[1:]
    elif text.startswith("["):
        body = text
    else:
        body = "." + text

    tokens: list[Segment] = []
    pos = 0
    while pos < len(body):
        match = _SEGMENT.match(body, pos)
        if match is None:
            raise PathSyntaxError(f"Cannot parse {body[pos:]!r} in '{text}'")
        if match["key"] is not None:
            tokens.append(match["key"])
        elif match["index"] is not None:
            tokens.append(int(match["index"]))
        else:
            tokens.append(_ESCAPE.sub(r"\1", match["quoted"]))
        pos = match.end()
    return tokens


class Path(tuple):
    """
    Location of a sub-value inside an observed root, ordered root-to-leaf.

    ``Path()`` is the root itself; ``Path(["bar", "baz"])`` is ``root.bar.baz``.
    """

    __slots__ = ()

    def __new__(cls, segments: Iterable[Segment] = ()):
        return super().__new__(cls, (_check_segment(s) for s in segments))

    @classmethod
    def from_reversed(cls, segments: Iterable[Segment]) -> "Path":
        """Build a path from segments collected leaf-first."""
        return cls(reversed(list(segments)))

    @classmethod
    def parse(cls, text: str) -> "Path":
        return cls(_tokenize(text))

    def child(self, segment: Segment) -> "Path":
        return Path((*self, segment))

    def __add__(self, other: Iterable[Segment]) -> "Path":
        return Path((*self, *other))

    def __str__(self) -> str:
        rendered = "$"
        for segment in self:
            rendered = _join(rendered, segment)
        return rendered

    def __repr__(self) -> str:
        return f"Path({str(self)!r})"
