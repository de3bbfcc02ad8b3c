"""Low-level scanning primitives shared by the template parsers.

Every scanning function takes the source ``text`` and a start position and
returns ``(new_pos, value)``.  A recoverable mismatch raises :class:`Backtrack`
so that callers may try another alternative.  An unrecoverable error raises
:class:`Failure` and aborts the whole parse.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import ClassVar, Union

__all__ = [
    "Syntax",
    "ParseError",
    "Backtrack",
    "Failure",
    "Level",
    "State",
    "is_ws",
    "skip_ws",
    "tag",
    "identifier",
    "keyword",
    "bool_lit",
    "num_lit",
    "str_lit",
    "char_lit",
    "path_or_identifier",
    "strip_common",
]

PathOrIdentifier = Union[str, tuple]


class ParseError(ValueError):
    """A template could not be parsed; the message describes where and why."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class _Signal(Exception):
    """Internal parser signal carrying the position it was raised at."""

    def __init__(self, pos: int, message: str | None = None) -> None:
        super().__init__(pos, message)
        self.pos = pos
        self.message = message


class Backtrack(_Signal):
    """The current alternative does not match; another one may be tried."""


class Failure(_Signal):
    """A committed parse went wrong; no other alternative may be tried."""


@dataclass(frozen=True)
class Syntax:
    """Delimiters that mark blocks, expressions and comments."""

    block_start: str = "{%"
    block_end: str = "%}"
    expr_start: str = "{{"
    expr_end: str = "}}"
    comment_start: str = "{#"
    comment_end: str = "#}"


@dataclass(frozen=True)
class Level:
    """Nesting depth guard that stops runaway recursion."""

    depth: int = 0
    MAX_DEPTH: ClassVar[int] = 128

    def nest(self, pos: int) -> "Level":
        if self.depth >= self.MAX_DEPTH:
            raise Failure(pos)
        return Level(self.depth + 1)

    def leave(self) -> "Level":
        return Level(self.depth - 1)


@dataclass
class State:
    """Mutable parsing state shared across one template parse."""

    syntax: Syntax = field(default_factory=Syntax)
    loop_depth: int = 0
    level: Level = field(default_factory=Level)

    def nest(self, pos: int) -> None:
        self.level = self.level.nest(pos)

    def leave(self) -> None:
        self.level = self.level.leave()

    def enter_loop(self) -> None:
        self.loop_depth += 1

    def leave_loop(self) -> None:
        self.loop_depth -= 1

    def is_in_loop(self) -> bool:
        return self.loop_depth > 0


def is_ws(c: str) -> bool:
    return c in " \t\r\n"


def skip_ws(text: str, pos: int) -> int:
    """Return the first position at or after ``pos`` that is not whitespace."""
    end = len(text)
    while pos < end and is_ws(text[pos]):
        pos += 1
    return pos


def tag(text: str, pos: int, literal: str) -> tuple[int, str]:
    if text.startswith(literal, pos):
        return pos + len(literal), literal
    raise Backtrack(pos)


def _is_ident_start(c: str) -> bool:
    return (c.isascii() and c.isalpha()) or c == "_" or c >= "\x80"


def _is_ident_tail(c: str) -> bool:
    return (c.isascii() and c.isalnum()) or c == "_" or c >= "\x80"


def identifier(text: str, pos: int) -> tuple[int, str]:
    if pos >= len(text) or not _is_ident_start(text[pos]):
        raise Backtrack(pos)
    end = pos + 1
    while end < len(text) and _is_ident_tail(text[end]):
        end += 1
    return end, text[pos:end]


def keyword(text: str, pos: int, word: str) -> tuple[int, str]:
    end, name = identifier(text, pos)
    if name != word:
        raise Backtrack(pos)
    return end, name


def bool_lit(text: str, pos: int) -> tuple[int, str]:
    for word in ("false", "true"):
        try:
            return keyword(text, pos, word)
        except Backtrack:
            continue
    raise Backtrack(pos)


_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"
_INTEGER_SUFFIXES = (
    "i8", "i16", "i32", "i64", "i128", "isize",
    "u8", "u16", "u32", "u64", "u128", "usize",
)
_FLOAT_SUFFIXES = ("f32", "f64")


def _is_digit(c: str, radix: int) -> bool:
    return c.isascii() and c.lower() in _DIGITS[:radix]


def _separated_digits(text: str, pos: int, radix: int, start: bool) -> int:
    """Digits of ``radix`` separated by underscores; leading ones only if not ``start``."""
    if not start:
        while text.startswith("_", pos):
            pos += 1
    if pos >= len(text) or not _is_digit(text[pos], radix):
        raise Backtrack(pos)
    pos += 1
    while pos < len(text) and (text[pos] == "_" or _is_digit(text[pos], radix)):
        pos += 1
    return pos


def _suffix(text: str, pos: int, suffixes: tuple[str, ...]) -> int:
    for suffix in suffixes:
        if text.startswith(suffix, pos):
            return pos + len(suffix)
    raise Backtrack(pos)


def _optional_suffix(text: str, pos: int, suffixes: tuple[str, ...]) -> int:
    try:
        return _suffix(text, pos, suffixes)
    except Backtrack:
        return pos


def _radix_literal(text: str, pos: int) -> int:
    if not text.startswith("0", pos):
        raise Backtrack(pos)
    after_zero = pos + 1
    for prefix, radix in (("b", 2), ("o", 8), ("x", 16)):
        if text.startswith(prefix, after_zero):
            try:
                end = _separated_digits(text, after_zero + 1, radix, False)
            except Backtrack:
                continue
            return _optional_suffix(text, end, _INTEGER_SUFFIXES)
    raise Backtrack(pos)


def _exponent_part(text: str, pos: int) -> int:
    cur = pos
    if text.startswith(".", cur):
        try:
            cur = _separated_digits(text, cur + 1, 10, True)
        except Backtrack:
            cur = pos
    if cur >= len(text) or text[cur] not in "eE":
        raise Backtrack(pos)
    cur += 1
    if cur < len(text) and text[cur] in "+-":
        cur += 1
    cur = _separated_digits(text, cur, 10, False)
    return _optional_suffix(text, cur, _FLOAT_SUFFIXES)


def _fraction_part(text: str, pos: int) -> int:
    if not text.startswith(".", pos):
        raise Backtrack(pos)
    cur = _separated_digits(text, pos + 1, 10, True)
    return _optional_suffix(text, cur, _FLOAT_SUFFIXES)


def _decimal_literal(text: str, pos: int) -> int:
    end = _separated_digits(text, pos, 10, True)
    alternatives = (
        lambda p: _suffix(text, p, _INTEGER_SUFFIXES),
        lambda p: _suffix(text, p, _FLOAT_SUFFIXES),
        lambda p: _exponent_part(text, p),
        lambda p: _fraction_part(text, p),
    )
    for alternative in alternatives:
        try:
            return alternative(end)
        except Backtrack:
            continue
    return end


def num_lit(text: str, pos: int) -> tuple[int, str]:
    """Recognise an integer or float literal, with optional sign and suffix."""
    cur = pos + 1 if text.startswith("-", pos) else pos
    try:
        end = _radix_literal(text, cur)
    except Backtrack:
        try:
            end = _decimal_literal(text, cur)
        except Backtrack:
            raise Backtrack(pos) from None
    return end, text[pos:end]


def _quoted(text: str, pos: int, quote: str) -> tuple[int, str]:
    if not text.startswith(quote, pos):
        raise Backtrack(pos)
    start = pos + 1
    cur = start
    while cur < len(text):
        c = text[cur]
        if c == "\\":
            if cur + 1 >= len(text):
                break
            cur += 2
        elif c == quote:
            return cur + 1, text[start:cur]
        else:
            cur += 1
    raise Backtrack(pos)


def str_lit(text: str, pos: int) -> tuple[int, str]:
    """Recognise a double-quoted string; the value is the raw, unescaped content."""
    return _quoted(text, pos, '"')


def char_lit(text: str, pos: int) -> tuple[int, str]:
    """Recognise a single-quoted character; the value is the raw content."""
    return _quoted(text, pos, "'")


def _ws_tag(text: str, pos: int, literal: str) -> int:
    cur, _ = tag(text, skip_ws(text, pos), literal)
    return skip_ws(text, cur)


def path_or_identifier(text: str, pos: int) -> tuple[int, PathOrIdentifier]:
    """Parse a name or a ``::``-separated path.

    The value is a ``str`` for a plain identifier and a ``tuple`` of segments
    for a path.  A path is absolute (first segment ``""``) when it starts with
    ``::``.  A single name counts as a path unless it starts lowercase.
    """
    cur = skip_ws(text, pos)
    rooted = text.startswith("::", cur)
    if rooted:
        cur = skip_ws(text, cur + 2)
    cur, start = identifier(text, cur)

    rest: list[str] = []
    while True:
        try:
            after_sep = _ws_tag(text, cur, "::")
            cur, segment = identifier(text, after_sep)
        except Backtrack:
            break
        rest.append(segment)

    if rooted:
        return cur, ("", start, *rest)
    if not rest and (not start or start[0].islower()):
        return cur, start
    return cur, (start, *rest)


def strip_common(base: Path | str, path: Path | str) -> str:
    """Render ``path`` relative to ``base`` when it lies below it.

    Returns ``path`` unchanged when it cannot be resolved, and the whole
    resolved path when nothing is left after removing the common prefix.
    """
    try:
        resolved = Path(path).resolve(strict=True)
    except OSError:
        return str(path)
    parts = resolved.parts
    index = 0
    for component in Path(base).parts:
        if index >= len(parts):
            return str(resolved)
        if component != parts[index]:
            break
        index += 1
    remaining = parts[index:]
    if not remaining:
        return str(resolved)
    return "/".join(remaining)