import dataclasses
import gc

import pytest

from morphdiff import (
    Append,
    Batch,
    Change,
    ConcurrentObservation,
    LeafShape,
    RecordShape,
    Replace,
    SessionClosed,
    UnsupportedShape,
    begin,
    observable,
    observe,
    register,
)


@dataclasses.dataclass
class Bar:
    baz: int


@dataclasses.dataclass
class Foo:
    bar: Bar
    tags: list[str]


def _foo() -> Foo:
    return Foo(bar=Bar(baz=1), tags=["x"])


def test_context_manager_collects_on_exit():
    foo = _foo()
    with begin(foo) as session:
        assert not session.closed
        foo.bar.baz = 2
    assert session.closed
    assert session.change == Change(["bar", "baz"], Replace(2))


def test_end_returns_change():
    foo = _foo()
    session = begin(foo)
    foo.tags.append("y")
    assert session.end() == Change(["tags"], Append(["y"]))


def test_end_twice_raises():
    session = begin(_foo())
    assert session.end() is None
    with pytest.raises(SessionClosed):
        session.end()


def test_second_session_on_same_value_raises():
    foo = _foo()
    session = begin(foo)
    with pytest.raises(ConcurrentObservation):
        begin(foo)
    session.end()
    assert begin(foo).end() is None


def test_overlapping_value_raises():
    foo = _foo()
    with begin(foo):
        with pytest.raises(ConcurrentObservation):
            begin(foo.bar)
        with pytest.raises(ConcurrentObservation):
            begin(foo.tags)


def test_nested_observe_inside_block_raises():
    foo = _foo()
    with pytest.raises(ConcurrentObservation):
        observe(foo, lambda foo: observe(foo.bar, lambda bar: None))
    assert observe(foo, lambda foo: None) is None


def test_independent_values_can_be_observed_together():
    first, second = _foo(), _foo()
    with begin(first) as outer:
        with begin(second) as inner:
            second.bar.baz = 5
        first.tags.append("z")
    assert inner.change == Change(["bar", "baz"], Replace(5))
    assert outer.change == Change(["tags"], Append(["z"]))


def test_exception_in_block_releases_session():
    foo = _foo()

    def boom(foo):
        foo.bar.baz = 99
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        observe(foo, boom)
    assert foo.bar.baz == 99
    assert observe(foo, lambda foo: None) is None


def test_exception_in_with_block_leaves_no_change():
    foo = _foo()
    with pytest.raises(KeyError):
        with begin(foo) as session:
            foo.tags.append("y")
            raise KeyError("missing")
    assert session.closed
    assert session.change is None
    assert begin(foo).end() is None


def test_end_inside_with_block():
    foo = _foo()
    with begin(foo) as session:
        foo.bar.baz = 2
        change = session.end()
    assert change == Change(["bar", "baz"], Replace(2))
    assert session.closed
    assert session.change == change


def test_release_inside_with_block():
    foo = _foo()
    with begin(foo) as session:
        foo.bar.baz = 2
        session.release()
    assert session.closed
    assert session.change is None
    assert begin(foo).end() is None


def test_release_discards_window():
    foo = _foo()
    session = begin(foo)
    foo.bar.baz = 3
    session.release()
    with pytest.raises(SessionClosed):
        session.end()
    assert begin(foo).end() is None


def test_unclosed_session_warns_and_releases():
    doc = {"a": [1]}
    with pytest.warns(ResourceWarning):
        session = begin(doc)
        del session
        gc.collect()
    assert observe(doc, lambda doc: None) is None


@pytest.mark.parametrize(
    ("root", "new", "expected"),
    [
        (5, 6, Replace(6)),
        ("hello", "hello!", Append("!")),
        ([1], {"a": 1}, Replace({"a": 1})),
    ],
)
def test_root_replaced_through_session(root, new, expected):
    with begin(root) as session:
        session.value = new
    assert session.change == Change([], expected)


def test_value_cannot_be_set_on_closed_session():
    session = begin(1)
    session.end()
    with pytest.raises(SessionClosed):
        session.value = 2


# --- Shapes ------------------------------------------------------------------


class Opaque:
    pass


def test_unknown_object_is_unsupported():
    with pytest.raises(UnsupportedShape):
        observe({"x": Opaque()}, lambda doc: None)


def test_unsupported_shape_is_type_error():
    with pytest.raises(TypeError):
        begin(Opaque())


def test_cyclic_value_is_unsupported():
    doc: dict = {}
    doc["self"] = doc
    with pytest.raises(UnsupportedShape):
        begin(doc)


def test_unaddressable_mapping_key_is_unsupported():
    with pytest.raises(UnsupportedShape):
        begin({(1, 2): "pair"})


def test_failed_begin_claims_nothing():
    inner = [1]
    with pytest.raises(UnsupportedShape):
        begin({"ok": inner, "bad": Opaque()})
    assert begin(inner).end() is None


@observable("x", "y")
class Point:
    def __init__(self, x, y):
        self.x = x
        self.y = y
        self.cache = None


def test_declared_fields_are_observed_in_order():
    point = Point(1, 2)

    def move(point):
        point.y = 5
        point.x = 4
        point.cache = "ignored"

    assert observe(point, move) == Change(
        [], Batch([Change(["x"], Replace(4)), Change(["y"], Replace(5))])
    )


class Money:
    def __init__(self, cents):
        self.cents = cents

    def __eq__(self, other):
        return isinstance(other, Money) and other.cents == self.cents


class Wallet:
    def __init__(self):
        self.balance = Money(100)
        self.owner = "amin"


register(Money, LeafShape())
register(Wallet, RecordShape(["balance", "owner"]))


def test_registered_shapes():
    wallet = Wallet()

    def spend(wallet):
        wallet.balance = Money(40)

    change = observe(wallet, spend)
    assert change == Change(["balance"], Replace(Money(40)))
    assert observe(wallet, lambda wallet: setattr(wallet, "balance", Money(40))) is None
