"""Template syntax tree: literal text, comments, expressions and blocks."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .expr import Expr, Filter
from .scanner import Backtrack, is_ws
from .targets import Target

__all__ = [
    "Whitespace",
    "Ws",
    "Node",
    "Lit",
    "Comment",
    "ExprNode",
    "Call",
    "Let",
    "CondTest",
    "Cond",
    "If",
    "When",
    "Match",
    "Loop",
    "Extends",
    "BlockDef",
    "Include",
    "Import",
    "Macro",
    "Raw",
    "Break",
    "Continue",
    "FilterBlock",
]


class Whitespace(Enum):
    """Whitespace handling requested by a ``+``, ``-`` or ``~`` marker."""

    PRESERVE = "+"
    SUPPRESS = "-"
    MINIMIZE = "~"

    @staticmethod
    def parse(text: str, pos: int) -> "tuple[int, Whitespace]":
        """Read one whitespace marker at ``pos``."""
        marker = text[pos:pos + 1]
        for member in Whitespace:
            if member.value == marker:
                return pos + 1, member
        raise Backtrack(pos)


@dataclass(frozen=True)
class Ws:
    """Whitespace markers on the left and on the right of a tag."""

    left: Optional[Whitespace] = None
    right: Optional[Whitespace] = None


class _Frozen:
    _sequences: tuple = ()

    def __post_init__(self) -> None:
        for name in self._sequences:
            object.__setattr__(self, name, tuple(getattr(self, name)))


class Node(_Frozen):
    """Base class of all top-level template nodes."""


@dataclass(frozen=True)
class Lit(Node):
    """Literal text split into leading whitespace, content and trailing whitespace."""

    lws: str
    val: str
    rws: str

    @staticmethod
    def split_ws_parts(s: str) -> "Lit":
        start = 0
        while start < len(s) and is_ws(s[start]):
            start += 1
        end = len(s)
        while end > start and is_ws(s[end - 1]):
            end -= 1
        return Lit(s[:start], s[start:end], s[end:])


@dataclass(frozen=True)
class Comment(Node):
    ws: Ws
    content: str


@dataclass(frozen=True)
class ExprNode(Node):
    ws: Ws
    expr: Expr


@dataclass(frozen=True)
class Call(Node):
    """A call of a template macro, optionally from an imported scope."""

    ws: Ws
    scope: Optional[str]
    name: str
    args: tuple
    _sequences = ("args",)


@dataclass(frozen=True)
class Let(Node):
    ws: Ws
    var: Target
    val: Optional[Expr]


@dataclass(frozen=True)
class CondTest(_Frozen):
    """The test of an ``if``; ``target`` is set for ``if let``."""

    target: Optional[Target]
    expr: Expr


@dataclass(frozen=True)
class Cond(_Frozen):
    """One branch of an ``if``; ``cond`` is ``None`` for ``else``."""

    ws: Ws
    cond: Optional[CondTest]
    nodes: tuple
    _sequences = ("nodes",)


@dataclass(frozen=True)
class If(Node):
    ws: Ws
    branches: tuple
    _sequences = ("branches",)


@dataclass(frozen=True)
class When(_Frozen):
    """One arm of a ``match``."""

    ws: Ws
    target: Target
    nodes: tuple
    _sequences = ("nodes",)


@dataclass(frozen=True)
class Match(Node):
    ws1: Ws
    expr: Expr
    arms: tuple
    ws2: Ws
    _sequences = ("arms",)


@dataclass(frozen=True)
class Loop(Node):
    ws1: Ws
    var: Target
    iter: Expr
    cond: Optional[Expr]
    body: tuple
    ws2: Ws
    else_nodes: tuple
    ws3: Ws
    _sequences = ("body", "else_nodes")


@dataclass(frozen=True)
class Extends(Node):
    path: str


@dataclass(frozen=True)
class BlockDef(Node):
    ws1: Ws
    name: str
    nodes: tuple
    ws2: Ws
    _sequences = ("nodes",)


@dataclass(frozen=True)
class Include(Node):
    ws: Ws
    path: str


@dataclass(frozen=True)
class Import(Node):
    ws: Ws
    path: str
    scope: str


@dataclass(frozen=True)
class Macro(Node):
    ws1: Ws
    name: str
    args: tuple
    nodes: tuple
    ws2: Ws
    _sequences = ("args", "nodes")


@dataclass(frozen=True)
class Raw(Node):
    ws1: Ws
    lit: Lit
    ws2: Ws


@dataclass(frozen=True)
class Break(Node):
    ws: Ws


@dataclass(frozen=True)
class Continue(Node):
    ws: Ws


@dataclass(frozen=True)
class FilterBlock(Node):
    """A block whose rendered content is passed through a filter chain."""

    ws1: Ws
    filters: Filter
    nodes: tuple
    ws2: Ws
    _sequences = ("nodes",)