import pytest

from tplparse.scanner import Backtrack, Failure, State
from tplparse.targets import (
    BoolLitTarget,
    CharLitTarget,
    NameTarget,
    NumLitTarget,
    OrChainTarget,
    PathTarget,
    StrLitTarget,
    StructTarget,
    TupleTarget,
    parse_target,
)


def parse(text, pos=0):
    return parse_target(text, pos, State())


def test_plain_name():
    assert parse("a") == (1, NameTarget("a"))


def test_name_stops_before_rest():
    pos, target = parse("a = b")
    assert target == NameTarget("a")
    assert pos == 1


@pytest.mark.parametrize(
    "text, expected",
    [
        ('"x"', StrLitTarget("x")),
        ("'c'", CharLitTarget("c")),
        ("-1", NumLitTarget("-1")),
        ("true", BoolLitTarget("true")),
        ("false", BoolLitTarget("false")),
    ],
)
def test_literals(text, expected):
    assert parse(text) == (len(text), expected)


def test_tuple_destructuring():
    text = "(a, b, c)"
    assert parse(text) == (
        len(text),
        TupleTarget((), (NameTarget("a"), NameTarget("b"), NameTarget("c"))),
    )


def test_tuple_trailing_comma():
    text = "(a, b,)"
    assert parse(text) == (len(text), TupleTarget((), (NameTarget("a"), NameTarget("b"))))


def test_empty_tuple():
    assert parse("()") == (2, TupleTarget((), ()))


def test_unused_parentheses():
    assert parse("(a)") == (3, NameTarget("a"))


def test_unnamed_struct():
    text = "UnnamedStruct(a, b, c)"
    assert parse(text) == (
        len(text),
        TupleTarget(
            ("UnnamedStruct",),
            (NameTarget("a"), NameTarget("b"), NameTarget("c")),
        ),
    )


def test_named_struct():
    text = "NamedStruct { a, b: d, c }"
    assert parse(text) == (
        len(text),
        StructTarget(
            ("NamedStruct",),
            (("a", NameTarget("a")), ("b", NameTarget("d")), ("c", NameTarget("c"))),
        ),
    )


def test_path_struct_with_keyword():
    text = "some::path::Struct with (v)"
    assert parse(text) == (
        len(text),
        TupleTarget(("some", "path", "Struct"), (NameTarget("v"),)),
    )


def test_bare_path_returns_position_before_with():
    pos, target = parse("None with")
    assert target == PathTarget(("None",))
    assert pos == 4


def test_or_chain():
    text = "Some(x) or None"
    assert parse(text) == (
        len(text),
        OrChainTarget(
            (TupleTarget(("Some",), (NameTarget("x"),)), PathTarget(("None",)))
        ),
    )


@pytest.mark.parametrize("name", ["self", "writer"])
def test_reserved_names_fail(name):
    with pytest.raises(Failure) as info:
        parse(name)
    assert info.value.message == f"Cannot use `{name}` as a name"


def test_reserved_name_in_struct_field_fails():
    with pytest.raises(Failure):
        parse("S { self }")


def test_unclosed_tuple_fails():
    with pytest.raises(Failure):
        parse("(a, b")


def test_unclosed_struct_fails():
    with pytest.raises(Failure):
        parse("S(a, b")


def test_nothing_to_parse_backtracks():
    with pytest.raises(Backtrack):
        parse("=")


def test_level_restored_after_parse():
    state = State()
    parse_target("(a, (b, c))", 0, state)
    assert state.level.depth == 0


def test_deep_nesting_fails():
    text = "(" * 200 + "a" + ")" * 200
    with pytest.raises(Failure):
        parse(text)