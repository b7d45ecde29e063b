import pytest

from morphdiff import Path, PathSyntaxError


@pytest.mark.parametrize(
    ("path", "rendered"),
    [
        (Path(), "$"),
        (Path(["bar", "baz"]), "$.bar.baz"),
        (Path(["items", 2, "name"]), "$.items[2].name"),
        (Path([0, 1]), "$[0][1]"),
        (Path(["key.with.dots"]), '$["key.with.dots"]'),
        (Path(["a[0]"]), '$["a[0]"]'),
        (Path([""]), '$[""]'),
        (Path(['say "hi"']), '$["say \\"hi\\""]'),
    ],
)
def test_render_and_parse(path, rendered):
    assert str(path) == rendered
    assert Path.parse(rendered) == path


@pytest.mark.parametrize(
    ("text", "segments"),
    [
        ("$", []),
        ("a.b", ["a", "b"]),
        ("$.a.b[2]['key.with.dots'][0]", ["a", "b", 2, "key.with.dots", 0]),
        ("$['it\\'s']", ["it's"]),
        ("items[10]", ["items", 10]),
    ],
)
def test_parse(text, segments):
    assert list(Path.parse(text)) == segments


@pytest.mark.parametrize(
    "text",
    ["", "$.a..b", "$.", "$[", "$[x]", "$['a'", "$['a'x", "$[1", "$a"],
)
def test_parse_errors(text):
    with pytest.raises(PathSyntaxError):
        Path.parse(text)


def test_path_syntax_error_is_value_error():
    with pytest.raises(ValueError):
        Path.parse("$[")


def test_from_reversed():
    assert Path.from_reversed(["baz", "bar"]) == Path(["bar", "baz"])
    assert Path.from_reversed([]) == Path()


@pytest.mark.parametrize(
    ("segment", "error"),
    [(True, TypeError), (1.5, TypeError), (None, TypeError), (-1, ValueError)],
)
def test_invalid_segments(segment, error):
    with pytest.raises(error):
        Path([segment])


def test_join():
    path = Path(["a"]).child(0) + ["b"]
    assert isinstance(path, Path)
    assert path == Path(["a", 0, "b"])
    assert path == ("a", 0, "b")
    assert repr(path) == "Path('$.a[0].b')"
