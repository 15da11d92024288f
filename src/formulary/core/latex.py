"""Markup serialization of formula nodes.

Every node is described once as a list of parts: literal markup strings and
references to child nodes. Plain serialization, id span maps and styled ranges
are all computed from the same parts, which keeps the three views consistent.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Literal, Union

from .model import (
    AlignMarker,
    Aligned,
    Array,
    Box,
    Brace,
    Color,
    Fraction,
    Group,
    NewLine,
    Node,
    NodeId,
    Op,
    Root,
    Script,
    Space,
    Span,
    Strikethrough,
    Symbol,
    Text,
    Variable,
    assert_unreachable,
    node_id,
)

LatexMode = Literal["ast", "render", "content", "text"]
# "text" is internal: the body of \text{...}, written with escapes and no ids
LATEX_MODES: tuple[str, ...] = ("ast", "render", "content")

TEXT_ESCAPES = {"\\": "\\textbackslash{}", "{": "\\{", "}": "\\}"}


@dataclass(frozen=True)
class ChildPart:
    node: Node
    as_arg: bool = False
    mode: LatexMode | None = None  # overrides the enclosing mode when set


Part = Union[str, ChildPart]


def _arg(node: Node) -> ChildPart:
    return ChildPart(node, as_arg=True)


def _joined(items: Iterable[Node], sep: str, as_arg: bool = False) -> list[Part]:
    parts: list[Part] = []
    for i, item in enumerate(items):
        if i:
            parts.append(sep)
        parts.append(ChildPart(item, as_arg=as_arg))
    return parts


def _with_id(node_id_: NodeId, mode: LatexMode, parts: list[Part]) -> list[Part]:
    # \cssId surfaces the id as an attribute on the rendered glyph
    if mode == "render":
        return [f"\\cssId{{{node_id_}}}{{", *parts, "}"]
    return parts


def array_align(node: Array) -> str:
    if node.align is not None:
        return node.align
    columns = max((len(row) for row in node.rows), default=0)
    return "rl" if columns == 2 else "l" * columns


def escape_text(value: str) -> str:
    return "".join(TEXT_ESCAPES.get(ch, ch) for ch in value)


def brace_command(over: bool) -> str:
    return "\\overbrace" if over else "\\underbrace"


def latex_parts(node: Node, mode: LatexMode = "ast", as_arg: bool = False) -> list[Part]:
    """
    Describe ``node`` as markup parts.

    ``as_arg`` marks a node sitting inside braces that its parent already
    writes (``\\frac{..}{..}``, ``\\sqrt{..}``, array cells...). A Group in
    that position contributes only its children.
    """
    if isinstance(node, Symbol):
        if mode == "text":
            return [escape_text(node.value)]
        return _with_id(node.id, mode, [node.value])
    if isinstance(node, Space):
        return [node.text]
    if isinstance(node, Op):
        return _with_id(node.id, mode, [node.operator + ("\\limits" if node.limits else "")])
    if isinstance(node, Variable):
        return _with_id(node.id, mode, [node.variable_latex])
    if isinstance(node, Text):
        return ["\\text{", *(ChildPart(c, mode="text") for c in node.body), "}"]
    if isinstance(node, Fraction):
        return ["\\frac{", _arg(node.numerator), "}{", _arg(node.denominator), "}"]
    if isinstance(node, Script):
        if isinstance(node.base, Script):
            parts: list[Part] = ["{", ChildPart(node.base), "}"]
        else:
            parts = [ChildPart(node.base)]
        if node.sub is not None:
            parts += ["_{", _arg(node.sub), "}"]
        if node.sup is not None:
            parts += ["^{", _arg(node.sup), "}"]
        return parts
    if isinstance(node, Root):
        parts = ["\\sqrt"]
        if node.index is not None:
            parts += ["[", _arg(node.index), "]"]
        return parts + ["{", _arg(node.body), "}"]
    if isinstance(node, Group):
        inner = _joined(node.body, " ")
        return inner if as_arg else ["{", *inner, "}"]
    if isinstance(node, Array):
        parts = [f"\\begin{{array}}{{{array_align(node)}}}\n"]
        for r, row in enumerate(node.rows):
            if r:
                parts.append(" \\\\ ")
            for c, cell in enumerate(row):
                if c:
                    parts.append(" & ")
                # an empty cell keeps its braces so the row stays visible
                empty = isinstance(cell, Group) and not cell.body
                parts.append(ChildPart(cell, as_arg=not empty))
        parts.append("\n\\end{array}")
        return parts
    if isinstance(node, Brace):
        if mode == "content":
            return [ChildPart(node.body, as_arg=as_arg)]
        return [brace_command(node.over) + "{", _arg(node.body), "}"]
    if isinstance(node, Color):
        if mode == "content":
            return _joined(node.body, " ")
        return [f"\\textcolor{{{node.color}}}{{", *_joined(node.body, " "), "}"]
    if isinstance(node, Box):
        if mode == "content":
            return [ChildPart(node.body, as_arg=as_arg)]
        # fcolorbox switches to text mode, so the body is wrapped in $...$
        return [
            f"\\fcolorbox{{{node.border_color}}}{{{node.background_color}}}{{$",
            _arg(node.body),
            "$}",
        ]
    if isinstance(node, Strikethrough):
        if mode == "content":
            return [ChildPart(node.body, as_arg=as_arg)]
        return ["\\cancel{", _arg(node.body), "}"]
    if isinstance(node, Aligned):
        return ["\\begin{aligned}", *_joined(node.cells, " "), "\\end{aligned}"]
    if isinstance(node, NewLine):
        return ["\\\\"]
    if isinstance(node, AlignMarker):
        return ["&"]
    return assert_unreachable(node)


def node_to_latex(node: Node, mode: LatexMode = "ast", as_arg: bool = False) -> str:
    out: list[str] = []
    for part in latex_parts(node, mode, as_arg):
        if isinstance(part, str):
            out.append(part)
        else:
            out.append(node_to_latex(part.node, part.mode or mode, part.as_arg))
    return "".join(out)


def sequence_to_latex(nodes: Sequence[Node], mode: LatexMode = "ast") -> str:
    """Serialize a top-level sequence: children separated by a single space."""
    return " ".join(node_to_latex(node, mode) for node in nodes)


def latex_spans(nodes: Sequence[Node], mode: LatexMode = "ast") -> dict[NodeId, Span]:
    """Map every node id to its offsets in ``sequence_to_latex(nodes, mode)``."""
    spans: dict[NodeId, Span] = {}

    def walk(node: Node, mode: LatexMode, as_arg: bool, offset: int) -> int:
        pos = offset
        for part in latex_parts(node, mode, as_arg):
            if isinstance(part, str):
                pos += len(part)
            else:
                pos = walk(part.node, part.mode or mode, part.as_arg, pos)
        nid = node_id(node)
        if nid is not None:
            spans[nid] = Span(offset, pos)
        return pos

    pos = 0
    for i, node in enumerate(nodes):
        if i:
            pos += 1
        pos = walk(node, mode, False, pos)
    return spans
