"""Styled ranges over the serialized markup of a formula.

A range forest mirrors the ast-mode markup: concatenating every range's text
in order reproduces ``Formula.to_latex("ast")`` exactly. Style carriers become
``StyledRange`` nodes that an editor can decorate and track the caret in;
everything else is plain ``UnstyledRange`` text.
"""

from __future__ import annotations

from collections.abc import Collection, Sequence
from dataclasses import dataclass, replace
from typing import Union

from .latex import latex_parts, node_to_latex
from .model import (
    Box,
    Color,
    Node,
    NodeId,
    Variable,
    is_style_carrier,
    assert_unreachable,
)

VARIABLE_COLOR = "#2563eb"


@dataclass(frozen=True)
class RangeHints:
    color: str | None = None
    tooltip: str | None = None


@dataclass(frozen=True)
class UnstyledRange:
    text: str

    @property
    def length(self) -> int:
        return len(self.text)


@dataclass(frozen=True)
class StyledRange:
    id: NodeId
    left: str
    children: tuple[FormulaLatexRange, ...]
    right: str
    hints: RangeHints | None = None

    @property
    def length(self) -> int:
        return len(self.left) + sum(c.length for c in self.children) + len(self.right)


FormulaLatexRange = Union[StyledRange, UnstyledRange]


@dataclass(frozen=True)
class PositionedRange:
    """A range with its absolute offsets and nesting depth (0 = top level)."""
    start: int
    end: int
    depth: int
    range: FormulaLatexRange

    @property
    def id(self) -> NodeId | None:
        return self.range.id if isinstance(self.range, StyledRange) else None

    def contains(self, position: int, include_edges: bool = False) -> bool:
        if include_edges:
            return self.start <= position <= self.end
        return self.start < position < self.end


@dataclass(frozen=True)
class Decoration:
    start: int
    end: int
    id: NodeId
    depth: int
    hints: RangeHints | None
    active: bool


def range_text(r: FormulaLatexRange) -> str:
    if isinstance(r, UnstyledRange):
        return r.text
    if isinstance(r, StyledRange):
        return r.left + "".join(range_text(c) for c in r.children) + r.right
    return assert_unreachable(r)


def total_length(ranges: Sequence[FormulaLatexRange]) -> int:
    return sum(r.length for r in ranges)


def hints_for(node: Node) -> RangeHints | None:
    if isinstance(node, Color):
        return RangeHints(color=node.color, tooltip=f"Color: {node.color}")
    if isinstance(node, Box):
        return RangeHints(color=node.border_color, tooltip=f"Box: {node.border_color}")
    if isinstance(node, Variable):
        return RangeHints(color=VARIABLE_COLOR, tooltip=f"Variable: {node.variable_latex}")
    return None


def node_ranges(node: Node, as_arg: bool = False) -> list[FormulaLatexRange]:
    """
    Derive the (unmerged) ranges covering ``node``'s ast markup.

    Style carriers yield one StyledRange whose ``left``/``right`` are the
    literal parts around their children. A subtree without style carriers
    yields a single UnstyledRange of its own serialization.
    """
    parts = latex_parts(node, "ast", as_arg)
    per_part: list[list[FormulaLatexRange]] = [
        [UnstyledRange(part)] if isinstance(part, str) else node_ranges(part.node, part.as_arg)
        for part in parts
    ]

    if is_style_carrier(node):
        child_positions = [i for i, part in enumerate(parts) if not isinstance(part, str)]
        if not child_positions:
            text = "".join(part for part in parts if isinstance(part, str))
            inner: tuple[FormulaLatexRange, ...] = (UnstyledRange(text),)
            return [StyledRange(node.id, "", inner, "", hints_for(node))]
        first, last = child_positions[0], child_positions[-1]
        left = "".join(p for p in parts[:first] if isinstance(p, str))
        right = "".join(p for p in parts[last + 1:] if isinstance(p, str))
        inner = tuple(r for group in per_part[first:last + 1] for r in group)
        return [StyledRange(node.id, left, inner, right, hints_for(node))]

    flat = [r for group in per_part for r in group]
    if any(isinstance(r, StyledRange) for r in flat):
        return flat
    return [UnstyledRange(node_to_latex(node, "ast", as_arg))]


def sequence_ranges(nodes: Sequence[Node]) -> list[FormulaLatexRange]:
    """Normalized range forest for a top-level sequence of nodes."""
    ranges: list[FormulaLatexRange] = []
    for i, node in enumerate(nodes):
        if i:
            ranges.append(UnstyledRange(" "))
        ranges.extend(node_ranges(node))
    return combine_unstyled_ranges(ranges)


def combine_unstyled_ranges(ranges: Sequence[FormulaLatexRange]) -> list[FormulaLatexRange]:
    """Merge adjacent unstyled siblings at every nesting level."""
    out: list[FormulaLatexRange] = []
    for r in ranges:
        if isinstance(r, StyledRange):
            out.append(replace(r, children=tuple(combine_unstyled_ranges(r.children))))
        elif isinstance(r, UnstyledRange):
            if not r.text:
                continue
            if out and isinstance(out[-1], UnstyledRange):
                out[-1] = UnstyledRange(out[-1].text + r.text)
            else:
                out.append(r)
        else:
            assert_unreachable(r)
    return out


def _collect(
    ranges: Sequence[FormulaLatexRange], offset: int, depth: int, out: list[PositionedRange]
) -> None:
    pos = offset
    for r in ranges:
        end = pos + r.length
        out.append(PositionedRange(pos, end, depth, r))
        if isinstance(r, StyledRange):
            _collect(r.children, pos + len(r.left), depth + 1, out)
        pos = end


def flatten_ranges(
    ranges: Sequence[FormulaLatexRange], styled_only: bool = False
) -> list[PositionedRange]:
    """
    Absolute offsets for every range in the forest, sorted by start offset.

    Ranges are collected depth-first and then sorted, since decoration
    builders require non-decreasing start offsets. Ties keep the outer range
    first.
    """
    out: list[PositionedRange] = []
    _collect(ranges, 0, 0, out)
    if styled_only:
        out = [p for p in out if isinstance(p.range, StyledRange)]
    out.sort(key=lambda p: (p.start, p.depth))
    return out


def position_ranges(
    ranges: Sequence[FormulaLatexRange], position: int, include_edges: bool = False
) -> list[PositionedRange]:
    """Positioned ranges containing ``position``, innermost first."""
    if position < 0 or position > total_length(ranges):
        return []
    collected: list[PositionedRange] = []
    _collect(ranges, 0, 0, collected)
    hits = [p for p in collected if p.contains(position, include_edges)]
    hits.sort(key=lambda p: -p.depth)
    return hits


def get_position_ranges(
    ranges: Sequence[FormulaLatexRange], position: int, include_edges: bool = False
) -> list[FormulaLatexRange]:
    """
    Every range whose span contains ``position``, deepest first.

    Containment is open (``start < position < end``) unless ``include_edges``
    asks for closed containment. Out-of-bounds positions give an empty list.
    """
    return [p.range for p in position_ranges(ranges, position, include_edges)]


def decorations(
    ranges: Sequence[FormulaLatexRange], active_ids: Collection[NodeId] = frozenset()
) -> list[Decoration]:
    return [
        Decoration(
            start=p.start,
            end=p.end,
            id=p.range.id,
            depth=p.depth,
            hints=p.range.hints,
            active=p.range.id in active_ids,
        )
        for p in flatten_ranges(ranges, styled_only=True)
        if isinstance(p.range, StyledRange)
    ]
