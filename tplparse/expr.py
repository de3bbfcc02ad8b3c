"""Expression syntax tree and the recursive-descent expression parser.

All parsing functions take the source ``text``, a start position and a
:class:`~tplparse.scanner.Level` depth guard, and return ``(new_pos, value)``.
They raise :class:`~tplparse.scanner.Backtrack` when the input does not match
and :class:`~tplparse.scanner.Failure` when it is definitely malformed.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from .scanner import (
    Backtrack,
    Failure,
    Level,
    char_lit,
    identifier,
    num_lit,
    path_or_identifier,
    skip_ws,
    str_lit,
    tag,
)

__all__ = [
    "Expr",
    "BoolLit",
    "NumLit",
    "StrLit",
    "CharLit",
    "Var",
    "Path",
    "Array",
    "Attr",
    "Index",
    "Filter",
    "NamedArgument",
    "Unary",
    "BinOp",
    "Range",
    "Group",
    "Tuple",
    "Call",
    "RustMacro",
    "Try",
    "parse_expr",
    "parse_arguments",
    "parse_filter",
]


class Expr:
    """Base class of all expression nodes."""

    _sequences: tuple = ()

    def __post_init__(self) -> None:
        for name in self._sequences:
            object.__setattr__(self, name, tuple(getattr(self, name)))


@dataclass(frozen=True)
class BoolLit(Expr):
    value: str


@dataclass(frozen=True)
class NumLit(Expr):
    value: str


@dataclass(frozen=True)
class StrLit(Expr):
    value: str


@dataclass(frozen=True)
class CharLit(Expr):
    value: str


@dataclass(frozen=True)
class Var(Expr):
    name: str


@dataclass(frozen=True)
class Path(Expr):
    segments: tuple
    _sequences = ("segments",)


@dataclass(frozen=True)
class Array(Expr):
    items: tuple
    _sequences = ("items",)


@dataclass(frozen=True)
class Attr(Expr):
    obj: Expr
    attr: str


@dataclass(frozen=True)
class Index(Expr):
    obj: Expr
    index: Expr


@dataclass(frozen=True)
class Filter(Expr):
    """A filter application; the filtered value is the first argument."""

    name: str
    arguments: tuple
    _sequences = ("arguments",)


@dataclass(frozen=True)
class NamedArgument(Expr):
    name: str
    value: Expr


@dataclass(frozen=True)
class Unary(Expr):
    op: str
    expr: Expr


@dataclass(frozen=True)
class BinOp(Expr):
    op: str
    left: Expr
    right: Expr


@dataclass(frozen=True)
class Range(Expr):
    op: str
    start: Optional[Expr]
    end: Optional[Expr]


@dataclass(frozen=True)
class Group(Expr):
    expr: Expr


@dataclass(frozen=True)
class Tuple(Expr):
    items: tuple
    _sequences = ("items",)


@dataclass(frozen=True)
class Call(Expr):
    callee: Expr
    args: tuple
    _sequences = ("args",)


@dataclass(frozen=True)
class RustMacro(Expr):
    """A host-language macro invocation; ``args`` is the raw argument text."""

    path: tuple
    args: str
    _sequences = ("path",)


@dataclass(frozen=True)
class Try(Expr):
    expr: Expr


ParseFn = Callable[[str, int, Level], "tuple[int, Expr]"]


@contextmanager
def _committed() -> Iterator[None]:
    """Turn any mismatch inside the block into a hard failure."""
    try:
        yield
    except Backtrack as err:
        raise Failure(err.pos, err.message) from None


def _ws_char(text: str, pos: int, char: str) -> int:
    cur, _ = tag(text, skip_ws(text, pos), char)
    return skip_ws(text, cur)


def _opt_ws_char(text: str, pos: int, char: str) -> int:
    try:
        return _ws_char(text, pos, char)
    except Backtrack:
        return pos


def _match_op(text: str, pos: int, ops: tuple[str, ...]) -> tuple[int, str]:
    for op in ops:
        if text.startswith(op, pos):
            return pos + len(op), op
    raise Backtrack(pos)


def _separated_list0(
    text: str,
    pos: int,
    sep: str,
    element: Callable[[int], "tuple[int, Expr]"],
) -> tuple[int, list]:
    items: list = []
    try:
        pos, item = element(pos)
    except Backtrack:
        return pos, items
    items.append(item)
    while True:
        try:
            after_sep, _ = tag(text, pos, sep)
            new_pos, item = element(after_sep)
        except Backtrack:
            return pos, items
        items.append(item)
        pos = new_pos


def _ws_expr(text: str, level: Level) -> Callable[[int], "tuple[int, Expr]"]:
    def element(pos: int) -> tuple[int, Expr]:
        end, expr = parse_expr(text, skip_ws(text, pos), level)
        return skip_ws(text, end), expr

    return element


def parse_arguments(
    text: str, pos: int, level: Level, is_template_macro: bool
) -> tuple[int, tuple]:
    """Parse a parenthesised argument list.

    Named arguments (``name = value``) are only accepted for template macro
    calls; they must come last and may not repeat.
    """
    level = level.nest(pos)
    start = pos
    named: set[str] = set()
    pos = _ws_char(text, pos, "(")

    def element(cur: int) -> tuple[int, Expr]:
        had_named = bool(named)
        cur = skip_ws(text, cur)
        try:
            cur, expr = _named_argument(
                text, cur, level, named, start, is_template_macro
            )
        except Backtrack:
            cur, expr = parse_expr(text, cur, level)
        if had_named and not isinstance(expr, NamedArgument):
            raise Failure(start, "named arguments must always be passed last")
        return skip_ws(text, cur), expr

    with _committed():
        pos, args = _separated_list0(text, pos, ",", element)
        pos = _opt_ws_char(text, pos, ",")
        pos, _ = tag(text, pos, ")")
    return pos, tuple(args)


def _named_argument(
    text: str,
    pos: int,
    level: Level,
    named: set[str],
    start: int,
    is_template_macro: bool,
) -> tuple[int, Expr]:
    if not is_template_macro:
        raise Backtrack(pos)
    level = level.nest(pos)
    cur, name = identifier(text, pos)
    cur = _ws_char(text, cur, "=")
    cur, value = parse_expr(text, cur, level)
    if name in named:
        raise Failure(start, f"named argument `{name}` was passed more than once")
    named.add(name)
    return cur, NamedArgument(name, value)


def parse_filter(
    text: str, pos: int, level: Level
) -> tuple[int, tuple[str, Optional[tuple]]]:
    """Parse ``|name`` with optional arguments; returns the name and the arguments."""
    cur, _ = tag(text, pos, "|")
    cur, name = identifier(text, skip_ws(text, cur))
    cur = skip_ws(text, cur)
    try:
        cur, args = parse_arguments(text, cur, level, False)
    except Backtrack:
        args = None
    return cur, (name, args)


def _range_op(text: str, pos: int) -> tuple[int, str]:
    cur, op = _match_op(text, skip_ws(text, pos), ("..=", ".."))
    return skip_ws(text, cur), op


def _optional(fn: ParseFn, text: str, pos: int, level: Level) -> tuple[int, Optional[Expr]]:
    try:
        return fn(text, pos, level)
    except Backtrack:
        return pos, None


def parse_expr(text: str, pos: int, level: Level) -> tuple[int, Expr]:
    """Parse a full expression, including ranges."""
    level = level.nest(pos)
    try:
        op_end, op = _range_op(text, pos)
    except Backtrack:
        pass
    else:
        end, right = _optional(_or, text, op_end, level)
        return end, Range(op, None, right)

    pos, left = _or(text, pos, level)
    try:
        op_end, op = _range_op(text, pos)
    except Backtrack:
        return pos, left
    end, right = _optional(_or, text, op_end, level)
    return end, Range(op, left, right)


def _binary_layer(ops: tuple[str, ...], inner: ParseFn) -> ParseFn:
    def layer(text: str, pos: int, level: Level) -> tuple[int, Expr]:
        level = level.nest(pos)
        pos, left = inner(text, pos, level)
        while True:
            try:
                op_end, op = _match_op(text, skip_ws(text, pos), ops)
                new_pos, right = inner(text, skip_ws(text, op_end), level)
            except Backtrack:
                return pos, left
            left = BinOp(op, left, right)
            pos = new_pos

    return layer


def _filtered(text: str, pos: int, level: Level) -> tuple[int, Expr]:
    level = level.nest(pos)
    pos, expr = _prefix(text, pos, level)
    while True:
        try:
            new_pos, (name, args) = parse_filter(text, pos, level)
        except Backtrack:
            return pos, expr
        expr = Filter(name, (expr, *(args or ())))
        pos = new_pos


_muldivmod = _binary_layer(("*", "/", "%"), _filtered)
_addsub = _binary_layer(("+", "-"), _muldivmod)
_shifts = _binary_layer((">>", "<<"), _addsub)
_band = _binary_layer(("&",), _shifts)
_bxor = _binary_layer(("^",), _band)
_bor = _binary_layer(("|",), _bxor)
_compare = _binary_layer(("==", "!=", ">=", ">", "<=", "<"), _bor)
_and = _binary_layer(("&&",), _compare)
_or = _binary_layer(("||",), _and)


def _prefix(text: str, pos: int, level: Level) -> tuple[int, Expr]:
    nested = level.nest(pos)
    ops: list[str] = []
    while True:
        cur = skip_ws(text, pos)
        if cur < len(text) and text[cur] in "!-":
            ops.append(text[cur])
            pos = skip_ws(text, cur + 1)
        else:
            break
    pos, expr = _suffixed(text, pos, nested)
    for op in reversed(ops):
        level = level.nest(pos)
        expr = Unary(op, expr)
    return pos, expr


Applier = Callable[[Expr], Expr]


def _attr(text: str, pos: int, level: Level) -> tuple[int, Applier]:
    cur, _ = tag(text, skip_ws(text, pos), ".")
    if text.startswith(".", cur):
        raise Backtrack(cur)
    cur = skip_ws(text, cur)
    with _committed():
        try:
            cur, name = num_lit(text, cur)
        except Backtrack:
            cur, name = identifier(text, cur)
    return cur, lambda expr: Attr(expr, name)


def _index(text: str, pos: int, level: Level) -> tuple[int, Applier]:
    level = level.nest(pos)
    cur = _ws_char(text, pos, "[")
    with _committed():
        cur, index = _ws_expr(text, level)(cur)
        cur, _ = tag(text, cur, "]")
    return cur, lambda expr: Index(expr, index)


def _call(text: str, pos: int, level: Level) -> tuple[int, Applier]:
    level = level.nest(pos)
    cur, args = parse_arguments(text, pos, level, False)
    return cur, lambda expr: Call(expr, args)


def _try(text: str, pos: int, level: Level) -> tuple[int, Applier]:
    cur, _ = tag(text, skip_ws(text, pos), "?")
    return cur, Try


def _nested_parenthesis(text: str, pos: int) -> int:
    """Find the ``)`` closing a macro call, honouring nesting and strings."""
    nested = 0
    last = 0
    in_str = False
    escaped = False
    for offset, c in enumerate(text[pos:]):
        if c not in "()" or not in_str:
            if c == "(":
                nested += 1
            elif c == ")":
                if nested == 0:
                    last = offset
                    break
                nested -= 1
            elif c == '"':
                if in_str:
                    if not escaped:
                        in_str = False
                else:
                    in_str = True
            elif c == "\\":
                escaped = not escaped
        if escaped and c != "\\":
            escaped = False
    if nested != 0:
        raise Backtrack(pos)
    return pos + last


def _macro(text: str, pos: int, level: Level) -> tuple[int, Applier]:
    cur = _ws_char(text, pos, "!")
    cur, _ = tag(text, cur, "(")
    with _committed():
        end = _nested_parenthesis(text, cur)
        args = text[cur:end]
        end, _ = tag(text, end, ")")

    def apply(expr: Expr) -> Expr:
        if isinstance(expr, Path):
            return RustMacro(expr.segments, args)
        if isinstance(expr, Var):
            return RustMacro((expr.name,), args)
        raise Failure(pos)

    return end, apply


_SUFFIXES = (_attr, _index, _call, _try, _macro)


def _next_suffix(text: str, pos: int, level: Level) -> Optional[tuple[int, Applier]]:
    for parser in _SUFFIXES:
        try:
            return parser(text, pos, level)
        except Backtrack:
            continue
    return None


def _suffixed(text: str, pos: int, level: Level) -> tuple[int, Expr]:
    level = level.nest(pos)
    pos, expr = _single(text, pos, level)
    while (found := _next_suffix(text, pos, level)) is not None:
        new_pos, apply = found
        expr = apply(expr)
        pos = new_pos
    return pos, expr


def _num(text: str, pos: int) -> tuple[int, Expr]:
    end, value = num_lit(text, pos)
    return end, NumLit(value)


def _str(text: str, pos: int) -> tuple[int, Expr]:
    end, value = str_lit(text, pos)
    return end, StrLit(value)


def _char(text: str, pos: int) -> tuple[int, Expr]:
    end, value = char_lit(text, pos)
    return end, CharLit(value)


def _path_var_bool(text: str, pos: int) -> tuple[int, Expr]:
    end, value = path_or_identifier(text, pos)
    if isinstance(value, tuple):
        return end, Path(value)
    if value in ("true", "false"):
        return end, BoolLit(value)
    return end, Var(value)


def _array(text: str, pos: int, level: Level) -> tuple[int, Expr]:
    level = level.nest(pos)
    cur = _ws_char(text, pos, "[")
    with _committed():
        cur, items = _separated_list0(text, cur, ",", _ws_expr(text, level))
        cur, _ = tag(text, cur, "]")
    return cur, Array(items)


def _group(text: str, pos: int, level: Level) -> tuple[int, Expr]:
    level = level.nest(pos)
    cur = _ws_char(text, pos, "(")
    try:
        cur, first = parse_expr(text, cur, level)
    except Backtrack:
        cur, _ = tag(text, cur, ")")
        return cur, Tuple(())

    cur = skip_ws(text, cur)
    if not text.startswith(",", cur):
        cur, _ = tag(text, cur, ")")
        return cur, Group(first)

    items = [first]
    element = _ws_expr(text, level)
    while True:
        try:
            after_comma, _ = tag(text, cur, ",")
            new_pos, item = element(after_comma)
        except Backtrack:
            break
        items.append(item)
        cur = new_pos
    cur = skip_ws(text, cur)
    if text.startswith(",", cur):
        cur = skip_ws(text, cur + 1)
    cur, _ = tag(text, cur, ")")
    return cur, Tuple(items)


def _single(text: str, pos: int, level: Level) -> tuple[int, Expr]:
    level = level.nest(pos)
    for parser in (_num, _str, _char, _path_var_bool):
        try:
            return parser(text, pos)
        except Backtrack:
            continue
    try:
        return _array(text, pos, level)
    except Backtrack:
        return _group(text, pos, level)