"""Binding targets used by ``let``, ``for``, ``if let`` and ``match`` arms.

A target is the left-hand side of a binding: a plain name, a tuple, a
tuple-like or named struct pattern, a literal, a path, or several of these
joined with ``or``.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator

from .scanner import (
    Backtrack,
    Failure,
    State,
    bool_lit,
    char_lit,
    identifier,
    keyword,
    num_lit,
    path_or_identifier,
    skip_ws,
    str_lit,
    tag,
)

__all__ = [
    "Target",
    "NameTarget",
    "TupleTarget",
    "StructTarget",
    "NumLitTarget",
    "StrLitTarget",
    "CharLitTarget",
    "BoolLitTarget",
    "PathTarget",
    "OrChainTarget",
    "parse_target",
]


class Target:
    """Base class of all binding targets."""

    _sequences: tuple = ()

    def __post_init__(self) -> None:
        for name in self._sequences:
            object.__setattr__(self, name, tuple(getattr(self, name)))


@dataclass(frozen=True)
class NameTarget(Target):
    name: str


@dataclass(frozen=True)
class TupleTarget(Target):
    """A tuple, or a tuple-like struct when ``path`` is not empty."""

    path: tuple
    targets: tuple
    _sequences = ("path", "targets")


@dataclass(frozen=True)
class StructTarget(Target):
    """A named struct pattern; ``fields`` holds ``(field_name, target)`` pairs."""

    path: tuple
    fields: tuple
    _sequences = ("path", "fields")


@dataclass(frozen=True)
class NumLitTarget(Target):
    value: str


@dataclass(frozen=True)
class StrLitTarget(Target):
    value: str


@dataclass(frozen=True)
class CharLitTarget(Target):
    value: str


@dataclass(frozen=True)
class BoolLitTarget(Target):
    value: str


@dataclass(frozen=True)
class PathTarget(Target):
    segments: tuple
    _sequences = ("segments",)


@dataclass(frozen=True)
class OrChainTarget(Target):
    targets: tuple
    _sequences = ("targets",)


_LITERALS = (
    (str_lit, StrLitTarget),
    (char_lit, CharLitTarget),
    (num_lit, NumLitTarget),
    (bool_lit, BoolLitTarget),
)


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


def _opt_ws_char(text: str, pos: int, char: str) -> tuple[int, bool]:
    try:
        return _ws_char(text, pos, char), True
    except Backtrack:
        return pos, False


def parse_target(text: str, pos: int, state: State) -> tuple[int, Target]:
    """Parse one target or several joined with ``or``."""
    pos, first = _parse_nested(text, pos, state)
    targets = [first]
    while True:
        try:
            cur, _ = tag(text, skip_ws(text, pos), "or")
            cur, item = _parse_nested(text, skip_ws(text, cur), state)
        except Backtrack:
            break
        targets.append(item)
        pos = cur
    if len(targets) == 1:
        return pos, first
    return pos, OrChainTarget(targets)


def _parse_nested(text: str, pos: int, state: State) -> tuple[int, Target]:
    state.nest(pos)
    try:
        return _parse_one(text, pos, state)
    finally:
        state.leave()


Element = Callable[[str, int, State], "tuple[int, object]"]


def _more(text: str, pos: int, state: State, element: Element) -> tuple[int, list]:
    """Zero or more ``, element`` repetitions."""
    items: list = []
    while True:
        try:
            cur = _ws_char(text, pos, ",")
            cur, item = element(text, cur, state)
        except Backtrack:
            return pos, items
        items.append(item)
        pos = cur


def _list1(text: str, pos: int, state: State, element: Element) -> tuple[int, list]:
    """One or more elements separated by commas."""
    pos, first = element(text, pos, state)
    pos, rest = _more(text, pos, state, element)
    return pos, [first, *rest]


def _closing(text: str, pos: int, char: str) -> int:
    pos, _ = _opt_ws_char(text, pos, ",")
    return _ws_char(text, pos, char)


def _parse_one(text: str, pos: int, state: State) -> tuple[int, Target]:
    for scan, cls in _LITERALS:
        try:
            end, value = scan(text, pos)
        except Backtrack:
            continue
        return end, cls(value)

    cur, is_open = _opt_ws_char(text, pos, "(")
    if is_open:
        cur, closed = _opt_ws_char(text, cur, ")")
        if closed:
            return cur, TupleTarget((), ())
        cur, first = parse_target(text, cur, state)
        after, closed = _opt_ws_char(text, cur, ")")
        if closed:
            return after, first
        with _committed():
            cur, rest = _more(text, cur, state, parse_target)
            cur = _closing(text, cur, ")")
        return cur, TupleTarget((), [first, *rest])

    try:
        after_path, value = path_or_identifier(text, pos)
    except Backtrack:
        value = None
    if isinstance(value, tuple):
        return _parse_struct(text, after_path, value, state)

    end, name = identifier(text, pos)
    return end, _verify_name(pos, name)


def _parse_struct(
    text: str, after_path: int, path: tuple, state: State
) -> tuple[int, Target]:
    cur = after_path
    try:
        cur, _ = keyword(text, skip_ws(text, cur), "with")
        cur = skip_ws(text, cur)
    except Backtrack:
        pass

    cur, is_open = _opt_ws_char(text, cur, "(")
    if is_open:
        if text.startswith(")", cur):
            return cur + 1, TupleTarget(path, ())
        with _committed():
            cur, targets = _list1(text, cur, state, parse_target)
            cur = _closing(text, cur, ")")
        return cur, TupleTarget(path, targets)

    cur, is_brace = _opt_ws_char(text, cur, "{")
    if is_brace:
        if text.startswith("}", cur):
            return cur + 1, StructTarget(path, ())
        with _committed():
            cur, fields = _list1(text, cur, state, _named)
            cur = _closing(text, cur, "}")
        return cur, StructTarget(path, fields)

    return after_path, PathTarget(path)


def _named(text: str, pos: int, state: State) -> tuple[int, tuple[str, Target]]:
    cur, name = identifier(text, pos)
    try:
        after_colon = _ws_char(text, cur, ":")
        end, target = parse_target(text, after_colon, state)
    except Backtrack:
        return cur, (name, _verify_name(pos, name))
    return end, (name, target)


def _verify_name(pos: int, name: str) -> Target:
    if name in ("self", "writer"):
        raise Failure(pos, f"Cannot use `{name}` as a name")
    return NameTarget(name)