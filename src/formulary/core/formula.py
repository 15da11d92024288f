"""Document container: the ordered top-level sequence of a formula."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from functools import cached_property

from .errors import DuplicateIdError
from .latex import LatexMode, latex_spans, sequence_to_latex
from .model import Node, NodeId, Span, children as child_nodes, node_id
from .ranges import FormulaLatexRange, sequence_ranges


@dataclass(frozen=True)
class _Entry:
    node: Node
    ancestors: tuple[Node, ...]  # root-first, excluding the node itself


@dataclass(frozen=True)
class Formula:
    """
    Immutable formula document.

    Every edit produces a new Formula. Unchanged subtrees may be shared
    between versions since nodes are never mutated.
    """
    children: tuple[Node, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "children", tuple(self.children))
        self._index  # validates id uniqueness eagerly

    @cached_property
    def _index(self) -> dict[NodeId, _Entry]:
        index: dict[NodeId, _Entry] = {}

        def visit(node: Node, ancestors: tuple[Node, ...]) -> None:
            nid = node_id(node)
            if nid is not None:
                if nid in index:
                    raise DuplicateIdError(nid)
                index[nid] = _Entry(node, ancestors)
            below = ancestors + (node,)
            for child in child_nodes(node):
                visit(child, below)

        for top in self.children:
            visit(top, ())
        return index

    def __iter__(self) -> Iterator[Node]:
        return iter(self.children)

    def __len__(self) -> int:
        return len(self.children)

    def to_latex(self, mode: LatexMode = "ast") -> str:
        return sequence_to_latex(self.children, mode)

    def latex_spans(self, mode: LatexMode = "ast") -> dict[NodeId, Span]:
        return latex_spans(self.children, mode)

    def find_node(self, id: NodeId) -> Node | None:
        entry = self._index.get(id)
        return entry.node if entry is not None else None

    def contains(self, id: NodeId) -> bool:
        return id in self._index

    def ancestors_of(self, id: NodeId) -> list[Node]:
        """Root-to-parent path of ``id``; empty for top-level or unknown ids."""
        entry = self._index.get(id)
        return list(entry.ancestors) if entry is not None else []

    def parent_of(self, id: NodeId) -> Node | None:
        entry = self._index.get(id)
        if entry is None or not entry.ancestors:
            return None
        return entry.ancestors[-1]

    def iter_nodes(self) -> Iterator[Node]:
        """All nodes, depth-first in document order."""
        stack: list[Node] = list(reversed(self.children))
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(child_nodes(node)))

    def ids(self) -> set[NodeId]:
        return set(self._index)

    def to_styled_ranges(self) -> list[FormulaLatexRange]:
        return sequence_ranges(self.children)

    def equivalent(self, other: Formula) -> bool:
        """Equal up to node ids: both serialize to the same ast markup."""
        return self.to_latex("ast") == other.to_latex("ast")

    @classmethod
    def of(cls, nodes: Sequence[Node]) -> Formula:
        return cls(tuple(nodes))
