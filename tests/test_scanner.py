import pytest

from tplparse.scanner import (
    Backtrack,
    Failure,
    Level,
    ParseError,
    State,
    Syntax,
    bool_lit,
    char_lit,
    identifier,
    is_ws,
    keyword,
    num_lit,
    path_or_identifier,
    skip_ws,
    str_lit,
    strip_common,
    tag,
)


def test_strip_common_file_in_base(tmp_path):
    base = tmp_path.resolve()
    entry = base / "entry.txt"
    entry.write_text("x")
    assert strip_common(base, entry) == "entry.txt"


def test_strip_common_nested(tmp_path):
    base = tmp_path.resolve()
    (base / "d").mkdir()
    entry = base / "d" / "e.txt"
    entry.write_text("x")
    assert strip_common(base, entry) == "d/e.txt"


def test_strip_common_missing_path_returned_as_is(tmp_path):
    assert strip_common(tmp_path, "/a/b/c") == "/a/b/c"


def test_strip_common_same_path_returns_whole(tmp_path):
    base = tmp_path.resolve()
    assert strip_common(base, base) == str(base)


def test_strip_common_parent_returns_whole(tmp_path):
    base = tmp_path.resolve()
    assert strip_common(base, base.parent) == str(base.parent)


def test_default_syntax():
    s = Syntax()
    assert (s.block_start, s.block_end) == ("{%", "%}")
    assert (s.expr_start, s.expr_end) == ("{{", "}}")
    assert (s.comment_start, s.comment_end) == ("{#", "#}")


def test_parse_error_message():
    err = ParseError("boom")
    assert str(err) == "boom"
    with pytest.raises(ValueError, match="boom"):
        raise err


def test_is_ws_and_skip_ws():
    assert is_ws(" ") and is_ws("\t") and is_ws("\r") and is_ws("\n")
    assert not is_ws("a")
    assert skip_ws(" \t\nx", 0) == 3
    assert skip_ws("abc", 1) == 1
    assert skip_ws("  ", 0) == 2


def test_tag():
    assert tag("{{ x", 0, "{{") == (2, "{{")
    with pytest.raises(Backtrack) as info:
        tag("{% x", 0, "{{")
    assert info.value.pos == 0


@pytest.mark.parametrize(
    "text, expected",
    [
        ("foo_bar1 baz", (8, "foo_bar1")),
        ("_", (1, "_")),
        ("éa+", (2, "éa")),
        ("Abc", (3, "Abc")),
    ],
)
def test_identifier(text, expected):
    assert identifier(text, 0) == expected


@pytest.mark.parametrize("text", ["1abc", "", "+a", " a"])
def test_identifier_rejects(text):
    with pytest.raises(Backtrack):
        identifier(text, 0)


def test_keyword():
    assert keyword("let x", 0, "let") == (3, "let")
    with pytest.raises(Backtrack):
        keyword("letx", 0, "let")
    with pytest.raises(Backtrack):
        keyword("leta=b", 0, "let")


def test_bool_lit():
    assert bool_lit("true)", 0) == (4, "true")
    assert bool_lit("false", 0) == (5, "false")
    with pytest.raises(Backtrack):
        bool_lit("truest", 0)


@pytest.mark.parametrize(
    "text, value",
    [
        ("2", "2"),
        ("2.5", "2.5"),
        ("-12_000u32 rest", "-12_000u32"),
        ("0x_ff", "0x_ff"),
        ("0b1010i8", "0b1010i8"),
        ("0o17", "0o17"),
        ("1e10", "1e10"),
        ("1.5e-3f64", "1.5e-3f64"),
        ("3f32", "3f32"),
        ("1..2", "1"),
        ("0b2", "0"),
        ("1.x", "1"),
        ("7usize", "7usize"),
    ],
)
def test_num_lit(text, value):
    assert num_lit(text, 0) == (len(value), value)


@pytest.mark.parametrize("text", ["_1", "abc", "-", ".5"])
def test_num_lit_rejects(text):
    with pytest.raises(Backtrack):
        num_lit(text, 0)


def test_str_lit():
    assert str_lit('"a\\"b" rest', 0) == (6, 'a\\"b')
    assert str_lit('""', 0) == (2, "")
    assert str_lit('x"123"', 1) == (6, "123")
    with pytest.raises(Backtrack):
        str_lit('"abc', 0)
    with pytest.raises(Backtrack):
        str_lit("abc", 0)


def test_char_lit():
    assert char_lit("'a'", 0) == (3, "a")
    assert char_lit("'\\''", 0) == (4, "\\'")
    with pytest.raises(Backtrack):
        char_lit("'a", 0)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("foo", (3, "foo")),
        ("none", (4, "none")),
        ("Foo", (3, ("Foo",))),
        ("FOO_BAR", (7, ("FOO_BAR",))),
        ("_foo", (4, ("_foo",))),
        ("a::b", (4, ("a", "b"))),
        ("a :: b", (6, ("a", "b"))),
        ("::std::x", (8, ("", "std", "x"))),
        ("Option::None", (12, ("Option", "None"))),
        ("a::", (1, "a")),
        ("  foo", (5, "foo")),
    ],
)
def test_path_or_identifier(text, expected):
    assert path_or_identifier(text, 0) == expected


def test_path_or_identifier_rejects():
    with pytest.raises(Backtrack):
        path_or_identifier("123", 0)


def test_level_limit():
    level = Level()
    for _ in range(Level.MAX_DEPTH):
        level = level.nest(0)
    assert level.depth == 128
    with pytest.raises(Failure) as info:
        level.nest(7)
    assert info.value.pos == 7
    assert level.leave().depth == 127


def test_state_nesting_and_loops():
    state = State(Syntax())
    state.nest(0)
    state.nest(0)
    assert state.level.depth == 2
    state.leave()
    assert state.level.depth == 1
    assert not state.is_in_loop()
    state.enter_loop()
    assert state.is_in_loop()
    state.leave_loop()
    assert not state.is_in_loop()


def test_state_nest_failure():
    state = State(Syntax(), level=Level(Level.MAX_DEPTH))
    with pytest.raises(Failure):
        state.nest(3)