"""Style commands built from consolidation plus bottom-up rewrite.

Each command first consolidates the selection runs into single addressable
nodes, then rewrites the tree with a visitor that either modifies an existing
wrapper of the same kind or wraps the target in a new one.

Id policy: a wrapped or unwrapped node keeps its id, every newly introduced
structural node (Group, Color, Box, Brace, Strikethrough, caption Script and
Text) gets a fresh one.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import replace

from .formula import Formula
from .model import (
    Box,
    Brace,
    Color,
    Group,
    Node,
    NodeId,
    Script,
    Strikethrough,
    Symbol,
    Text,
    node_id,
)
from .ports import IdGenerator
from .transform import IdMinter, consolidate_targets, replace_nodes

logger = logging.getLogger(__name__)

Selections = Sequence[Sequence[NodeId]]


def _prepare(
    formula: Formula, selections: Selections, idgen: IdGenerator
) -> tuple[Formula, set[NodeId], IdMinter]:
    consolidated, targets = consolidate_targets(
        formula, selections, idgen, group_singletons=False
    )
    selected = {t for t in targets if t is not None}
    return consolidated, selected, IdMinter(consolidated.ids(), idgen)


def apply_color(
    formula: Formula, selections: Selections, color: str, idgen: IdGenerator
) -> Formula:
    consolidated, selected, minter = _prepare(formula, selections, idgen)

    def visit(node: Node) -> Node:
        if isinstance(node, Color) and (
            node.id in selected or any(node_id(c) in selected for c in node.body)
        ):
            logger.debug("Modifying existing color node %s", node.id)
            return replace(node, color=color)
        nid = node_id(node)
        if nid in selected and not isinstance(consolidated.parent_of(nid), Color):
            logger.debug("Applying new color node to %s", nid)
            return Color(minter.mint(), color, (node,))
        return node

    return replace_nodes(consolidated, visit)


def apply_box(
    formula: Formula,
    selections: Selections,
    border_color: str,
    idgen: IdGenerator,
    background_color: str = "white",
) -> Formula:
    consolidated, selected, minter = _prepare(formula, selections, idgen)

    def visit(node: Node) -> Node:
        if isinstance(node, Box) and (node.id in selected or node_id(node.body) in selected):
            logger.debug("Modifying existing box node %s", node.id)
            return replace(node, border_color=border_color, background_color=background_color)
        nid = node_id(node)
        if nid in selected and not isinstance(consolidated.parent_of(nid), Box):
            logger.debug("Applying new box node to %s", nid)
            return Box(minter.mint(), border_color, node, background_color)
        return node

    return replace_nodes(consolidated, visit)


def apply_strikethrough(formula: Formula, selections: Selections, idgen: IdGenerator) -> Formula:
    consolidated, selected, minter = _prepare(formula, selections, idgen)

    def visit(node: Node) -> Node:
        nid = node_id(node)
        if (
            nid in selected
            and not isinstance(node, Strikethrough)
            and not isinstance(consolidated.parent_of(nid), Strikethrough)
        ):
            logger.debug("Applying strikethrough to %s", nid)
            return Strikethrough(minter.mint(), node)
        return node

    return replace_nodes(consolidated, visit)


def apply_brace(
    formula: Formula,
    selections: Selections,
    over: bool,
    idgen: IdGenerator,
    caption: str = "caption",
) -> Formula:
    """
    Annotate targets with an over/under brace carrying a text caption.

    The caption sits in the superscript of an over brace and in the
    subscript of an under brace. Re-applying to an existing brace flips its
    orientation and moves the caption with it.
    """
    consolidated, selected, minter = _prepare(formula, selections, idgen)

    def brace_selected(brace: Brace) -> bool:
        return brace.id in selected or node_id(brace.body) in selected

    def caption_text() -> Text:
        return Text(minter.mint(), tuple(Symbol(minter.mint(), ch) for ch in caption))

    def visit(node: Node) -> Node:
        if isinstance(node, Script) and isinstance(node.base, Brace) and brace_selected(node.base):
            label = node.sup if node.sup is not None else node.sub
            return replace(node, sub=None if over else label, sup=label if over else None)
        if isinstance(node, Brace) and brace_selected(node):
            logger.debug("Modifying existing brace node %s", node.id)
            return node if node.over == over else replace(node, over=over)
        nid = node_id(node)
        if nid in selected and not isinstance(consolidated.parent_of(nid), Brace):
            logger.debug("Applying new brace node to %s", nid)
            label = caption_text()
            return Script(
                minter.mint(),
                Brace(minter.mint(), over, node),
                sub=None if over else label,
                sup=label if over else None,
            )
        return node

    return replace_nodes(consolidated, visit)


def remove_style(formula: Formula, ids: Iterable[NodeId], idgen: IdGenerator) -> Formula:
    """
    Unwrap the Color/Box/Brace/Strikethrough nodes named by ``ids``.

    A brace annotation is removed together with its caption script. A Color
    holding several children leaves a fresh Group in its place.
    """
    targets = set(ids)
    minter = IdMinter(formula.ids(), idgen)

    captioned = set()
    for nid in targets:
        node = formula.find_node(nid)
        parent = formula.parent_of(nid)
        if isinstance(node, Brace) and isinstance(parent, Script) and parent.base is node:
            captioned.add(parent.id)

    def visit(node: Node) -> Node:
        nid = node_id(node)
        if nid in captioned and isinstance(node, Script):
            return node.base
        if nid not in targets:
            return node
        if isinstance(node, Color):
            logger.debug("Removing color node %s", nid)
            if len(node.body) == 1:
                return node.body[0]
            return Group(minter.mint(), node.body)
        if isinstance(node, (Box, Brace, Strikethrough)):
            logger.debug("Removing %s node %s", node.kind, nid)
            return node.body
        return node

    return replace_nodes(formula, visit)
