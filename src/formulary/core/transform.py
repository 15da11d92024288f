"""Tree rewrite primitives.

``replace_nodes`` is the generic bottom-up rewrite and ``consolidate_groups``
turns runs of selected siblings into single addressable Group nodes. Style
commands (see ``styles.py``) are compositions of the two.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import replace

from .errors import IdAllocationError
from .formula import Formula
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
    Strikethrough,
    Symbol,
    Text,
    Variable,
    assert_unreachable,
    map_children,
    node_id,
    sequence_of,
    with_sequence,
)
from .ports import IdGenerator

logger = logging.getLogger(__name__)

MAX_ID_ATTEMPTS = 16

Visitor = Callable[[Node], Node]


class IdMinter:
    """Hands out ids that collide neither with a formula nor with each other."""

    def __init__(self, taken: Iterable[NodeId], idgen: IdGenerator):
        self.taken = set(taken)
        self.idgen = idgen

    def mint(self) -> NodeId:
        for _ in range(MAX_ID_ATTEMPTS):
            candidate = self.idgen.new_id()
            if candidate and candidate not in self.taken:
                self.taken.add(candidate)
                return candidate
            logger.debug("Discarding colliding id %r", candidate)
        raise IdAllocationError(f"No fresh id after {MAX_ID_ATTEMPTS} attempts")


def replace_nodes(formula: Formula, visit: Visitor) -> Formula:
    """
    Rewrite every node bottom-up.

    Children are rewritten first; ``visit`` then receives the node rebuilt
    around its rewritten children and returns it unchanged or a replacement.
    When nothing changes the input formula itself is returned.
    """

    def rewrite(node: Node) -> Node:
        return visit(map_children(node, rewrite))

    rewritten = tuple(rewrite(node) for node in formula.children)
    if all(a is b for a, b in zip(rewritten, formula.children)):
        return formula
    return Formula(rewritten)


def replace_node_by_id(formula: Formula, target: NodeId, replacement: Node) -> Formula:
    def visit(node: Node) -> Node:
        return replacement if node_id(node) == target else node

    return replace_nodes(formula, visit)


def _locate_run(formula: Formula, run: Sequence[NodeId]) -> tuple[Node | None, int] | None:
    """Parent (None for top level) and start index of a contiguous sibling run."""
    first = run[0]
    if not formula.contains(first):
        return None
    parent = formula.parent_of(first)
    siblings = formula.children if parent is None else sequence_of(parent)
    if siblings is None:
        return None
    ids = [node_id(n) for n in siblings]
    start = ids.index(first)
    if ids[start:start + len(run)] != list(run):
        return None
    return parent, start


def consolidate_targets(
    formula: Formula,
    selections: Sequence[Sequence[NodeId]],
    idgen: IdGenerator,
    group_singletons: bool = True,
) -> tuple[Formula, list[NodeId | None]]:
    """
    Replace each run of selected siblings with one fresh Group.

    Returns the new formula and, per run, the id of the node that now stands
    for the selection: the new Group, or None when the run was skipped
    because it is stale (unknown ids, not contiguous, or spread across
    parents). With ``group_singletons`` off a run of one id is left in place
    and its target is that id.
    """
    minter = IdMinter(formula.ids(), idgen)
    current = formula
    targets: list[NodeId | None] = []

    for run in selections:
        run = list(run)
        if not run:
            targets.append(None)
            continue
        if len(run) == 1 and not group_singletons:
            if current.contains(run[0]):
                targets.append(run[0])
            else:
                logger.debug("Skipping selection of unknown node %s", run[0])
                targets.append(None)
            continue

        located = _locate_run(current, run)
        if located is None:
            logger.debug("Skipping stale selection %s", run)
            targets.append(None)
            continue

        parent, start = located
        siblings = current.children if parent is None else sequence_of(parent)
        assert siblings is not None
        group = Group(minter.mint(), tuple(siblings[start:start + len(run)]))
        items = siblings[:start] + (group,) + siblings[start + len(run):]
        logger.debug("Grouping %s into %s", run, group.id)

        if parent is None:
            current = Formula(items)
        else:
            current = replace_node_by_id(current, parent.id, with_sequence(parent, items))
        targets.append(group.id)

    return current, targets


def consolidate_groups(
    formula: Formula, selections: Sequence[Sequence[NodeId]], idgen: IdGenerator
) -> Formula:
    return consolidate_targets(formula, selections, idgen)[0]


def _is_empty_group(node: Node) -> bool:
    return isinstance(node, Group) and not node.body


def remove_empty_groups(formula: Formula) -> Formula:
    """
    Drop empty Groups from sibling sequences.

    Single-child slots keep theirs (there is nothing to collapse into), and
    so do Array cells, where an empty group marks an empty column.
    """

    def visit(node: Node) -> Node:
        siblings = sequence_of(node)
        if siblings is not None and any(_is_empty_group(c) for c in siblings):
            return with_sequence(node, tuple(c for c in siblings if not _is_empty_group(c)))
        return node

    cleaned = replace_nodes(formula, visit)
    top = tuple(c for c in cleaned.children if not _is_empty_group(c))
    if len(top) == len(cleaned.children):
        return cleaned
    return Formula(top)


def _label(node: Node, path: str, only_missing: bool) -> Node:
    nid = node_id(node)
    if nid is None:
        return node
    new_id = nid if (only_missing and nid) else path

    def sub(child: Node, suffix: object) -> Node:
        return _label(child, f"{new_id}.{suffix}", only_missing)

    if isinstance(node, (Symbol, Space, Op, Variable)):
        return replace(node, id=new_id)
    if isinstance(node, (Text, Group, Color)):
        return replace(node, id=new_id, body=tuple(sub(c, i) for i, c in enumerate(node.body)))
    if isinstance(node, Aligned):
        return replace(node, id=new_id, cells=tuple(sub(c, i) for i, c in enumerate(node.cells)))
    if isinstance(node, Fraction):
        return replace(
            node,
            id=new_id,
            numerator=sub(node.numerator, "numerator"),
            denominator=sub(node.denominator, "denominator"),
        )
    if isinstance(node, Script):
        return replace(
            node,
            id=new_id,
            base=sub(node.base, "base"),
            sub=sub(node.sub, "sub") if node.sub is not None else None,
            sup=sub(node.sup, "sup") if node.sup is not None else None,
        )
    if isinstance(node, Root):
        return replace(
            node,
            id=new_id,
            body=sub(node.body, "body"),
            index=sub(node.index, "index") if node.index is not None else None,
        )
    if isinstance(node, Array):
        rows = tuple(
            tuple(sub(cell, f"{r}.{c}") for c, cell in enumerate(row))
            for r, row in enumerate(node.rows)
        )
        return replace(node, id=new_id, rows=rows)
    if isinstance(node, (Brace, Box, Strikethrough)):
        return replace(node, id=new_id, body=sub(node.body, "body"))
    if isinstance(node, (NewLine, AlignMarker)):
        return node
    return assert_unreachable(node)


def label_nodes(nodes: Sequence[Node], only_missing: bool = True) -> tuple[Node, ...]:
    """
    Give nodes path ids (``0``, ``0.base``, ``1.2``...).

    With ``only_missing`` nodes that already carry a non-empty id keep it.
    """
    return tuple(_label(node, str(i), only_missing) for i, node in enumerate(nodes))


def assign_path_ids(formula: Formula) -> Formula:
    return Formula(label_nodes(formula.children, only_missing=False))
