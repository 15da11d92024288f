"""Node grammar for formula trees.

Nodes are immutable values. Every variant is a frozen dataclass tagged with a
``kind`` string, and every consumer dispatches over the closed union with an
explicit ``assert_unreachable`` fallthrough so that adding a variant without
updating its consumers fails loudly instead of silently doing nothing.

Parents are never stored on nodes; ancestry is derived by searching from the
root (see ``Formula.ancestors_of``).
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, ClassVar, NoReturn, Union

NodeId = str


@dataclass(frozen=True)
class Span:
    start: int  # character offsets into the serialized markup, half-open
    end: int

    def __len__(self) -> int:
        return self.end - self.start


@dataclass(frozen=True)
class Symbol:
    kind: ClassVar[str] = "symbol"
    id: NodeId
    value: str


@dataclass(frozen=True)
class Space:
    kind: ClassVar[str] = "space"
    id: NodeId
    text: str


@dataclass(frozen=True)
class Text:
    kind: ClassVar[str] = "text"
    id: NodeId
    body: tuple[Node, ...]


@dataclass(frozen=True)
class Op:
    kind: ClassVar[str] = "op"
    id: NodeId
    operator: str
    limits: bool = False


@dataclass(frozen=True)
class Fraction:
    kind: ClassVar[str] = "frac"
    id: NodeId
    numerator: Node
    denominator: Node


@dataclass(frozen=True)
class Script:
    kind: ClassVar[str] = "script"
    id: NodeId
    base: Node
    sub: Node | None = None
    sup: Node | None = None


@dataclass(frozen=True)
class Root:
    kind: ClassVar[str] = "root"
    id: NodeId
    body: Node
    index: Node | None = None


@dataclass(frozen=True)
class Group:
    kind: ClassVar[str] = "group"
    id: NodeId
    body: tuple[Node, ...]


@dataclass(frozen=True)
class Array:
    kind: ClassVar[str] = "array"
    id: NodeId
    rows: tuple[tuple[Node, ...], ...]
    align: str | None = None  # column spec, e.g. "rl"; derived when None


@dataclass(frozen=True)
class Brace:
    kind: ClassVar[str] = "brace"
    id: NodeId
    over: bool
    body: Node


@dataclass(frozen=True)
class Color:
    kind: ClassVar[str] = "color"
    id: NodeId
    color: str
    body: tuple[Node, ...]


@dataclass(frozen=True)
class Box:
    kind: ClassVar[str] = "box"
    id: NodeId
    border_color: str
    body: Node
    background_color: str = "white"


@dataclass(frozen=True)
class Strikethrough:
    kind: ClassVar[str] = "strikethrough"
    id: NodeId
    body: Node


@dataclass(frozen=True)
class Aligned:
    kind: ClassVar[str] = "aligned"
    id: NodeId
    cells: tuple[Node, ...]  # NewLine / AlignMarker appear inline


@dataclass(frozen=True)
class NewLine:
    kind: ClassVar[str] = "newline"


@dataclass(frozen=True)
class AlignMarker:
    kind: ClassVar[str] = "alignmark"


@dataclass(frozen=True)
class Variable:
    kind: ClassVar[str] = "variable"
    id: NodeId
    variable_latex: str


Node = Union[
    Symbol,
    Space,
    Text,
    Op,
    Fraction,
    Script,
    Root,
    Group,
    Array,
    Brace,
    Color,
    Box,
    Strikethrough,
    Aligned,
    NewLine,
    AlignMarker,
    Variable,
]

NODE_TYPES: tuple[type, ...] = (
    Symbol,
    Space,
    Text,
    Op,
    Fraction,
    Script,
    Root,
    Group,
    Array,
    Brace,
    Color,
    Box,
    Strikethrough,
    Aligned,
    NewLine,
    AlignMarker,
    Variable,
)

# Variants whose children form an ordered run of siblings that a selection can
# span. The top level of a Formula is the other such sequence.
SequenceNode = Union[Group, Color, Aligned]
SEQUENCE_TYPES: tuple[type, ...] = (Group, Color, Aligned)

STYLE_TYPES: tuple[type, ...] = (Color, Box, Brace, Strikethrough, Variable)


def assert_unreachable(x: NoReturn) -> NoReturn:
    raise AssertionError(f"Non-exhaustive match for {x!r}")


def is_node(value: object) -> bool:
    return isinstance(value, NODE_TYPES)


def node_id(node: Node) -> NodeId | None:
    """Return the id of a node, or None for the id-less markers."""
    if isinstance(node, (NewLine, AlignMarker)):
        return None
    return node.id


def is_style_carrier(node: Node) -> bool:
    return isinstance(node, STYLE_TYPES)


def children(node: Node) -> tuple[Node, ...]:
    """Immediate sub-nodes of ``node`` in document order."""
    if isinstance(node, (Symbol, Space, Op, Variable, NewLine, AlignMarker)):
        return ()
    if isinstance(node, (Text, Group, Color)):
        return node.body
    if isinstance(node, Aligned):
        return node.cells
    if isinstance(node, Fraction):
        return (node.numerator, node.denominator)
    if isinstance(node, Script):
        return tuple(c for c in (node.base, node.sub, node.sup) if c is not None)
    if isinstance(node, Root):
        return (node.body,) if node.index is None else (node.body, node.index)
    if isinstance(node, Array):
        return tuple(cell for row in node.rows for cell in row)
    if isinstance(node, (Brace, Box, Strikethrough)):
        return (node.body,)
    return assert_unreachable(node)


def _map_seq(items: tuple[Node, ...], fn: Callable[[Node], Node]) -> tuple[Node, ...]:
    mapped = tuple(fn(item) for item in items)
    if all(a is b for a, b in zip(mapped, items)):
        return items
    return mapped


def map_children(node: Node, fn: Callable[[Node], Node]) -> Node:
    """
    Rebuild ``node`` with every child slot passed through ``fn``.

    Returns ``node`` itself when ``fn`` hands back every child unchanged, so
    untouched subtrees are shared between formula versions.
    """
    if isinstance(node, (Symbol, Space, Op, Variable, NewLine, AlignMarker)):
        return node
    if isinstance(node, (Text, Group, Color)):
        body = _map_seq(node.body, fn)
        return node if body is node.body else replace(node, body=body)
    if isinstance(node, Aligned):
        cells = _map_seq(node.cells, fn)
        return node if cells is node.cells else replace(node, cells=cells)
    if isinstance(node, Fraction):
        numerator = fn(node.numerator)
        denominator = fn(node.denominator)
        if numerator is node.numerator and denominator is node.denominator:
            return node
        return replace(node, numerator=numerator, denominator=denominator)
    if isinstance(node, Script):
        base = fn(node.base)
        sub = fn(node.sub) if node.sub is not None else None
        sup = fn(node.sup) if node.sup is not None else None
        if base is node.base and sub is node.sub and sup is node.sup:
            return node
        return replace(node, base=base, sub=sub, sup=sup)
    if isinstance(node, Root):
        body = fn(node.body)
        index = fn(node.index) if node.index is not None else None
        if body is node.body and index is node.index:
            return node
        return replace(node, body=body, index=index)
    if isinstance(node, Array):
        rows = tuple(_map_seq(row, fn) for row in node.rows)
        if all(a is b for a, b in zip(rows, node.rows)):
            return node
        return replace(node, rows=rows)
    if isinstance(node, (Brace, Box, Strikethrough)):
        body = fn(node.body)
        return node if body is node.body else replace(node, body=body)
    return assert_unreachable(node)


def sequence_of(node: Node) -> tuple[Node, ...] | None:
    """The sibling sequence of a sequence node, None for any other variant."""
    if isinstance(node, (Group, Color)):
        return node.body
    if isinstance(node, Aligned):
        return node.cells
    return None


def with_sequence(node: SequenceNode, items: tuple[Node, ...]) -> Node:
    if isinstance(node, (Group, Color)):
        return replace(node, body=tuple(items))
    if isinstance(node, Aligned):
        return replace(node, cells=tuple(items))
    raise TypeError(f"{type(node).__name__} has no sibling sequence")
