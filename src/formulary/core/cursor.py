"""Caret enter/exit tracking over a styled range forest.

The active set holds the ids of styled ranges the caret is currently inside.
A caret move performs at most one transition:

- exit first: the deepest active range that the caret no longer touches,
  boundaries included, is deactivated;
- otherwise entry: the shallowest range the caret is now strictly inside,
  and was not strictly inside before, is activated.

Entering uses open containment so that touching a boundary does not enter;
leaving uses closed containment so that a range is only left once the caret
is past its boundary.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Sequence

from .model import NodeId
from .ranges import FormulaLatexRange, PositionedRange, flatten_ranges, position_ranges

logger = logging.getLogger(__name__)


def _styled_ids(hits: Sequence[PositionedRange]) -> list[NodeId]:
    return [p.id for p in hits if p.id is not None]


def next_active_ids(
    ranges: Sequence[FormulaLatexRange],
    prev_offset: int,
    new_offset: int,
    active: Collection[NodeId],
) -> frozenset[NodeId]:
    active = frozenset(active)

    touched = _styled_ids(position_ranges(ranges, new_offset))
    prev_touched = _styled_ids(position_ranges(ranges, prev_offset))
    inclusive_touched = _styled_ids(position_ranges(ranges, new_offset, include_edges=True))
    inclusive_prev_touched = _styled_ids(
        position_ranges(ranges, prev_offset, include_edges=True)
    )

    lost_active = [
        rid for rid in inclusive_prev_touched if rid not in inclusive_touched and rid in active
    ]
    if lost_active:
        # lists are innermost first, so the deepest is first
        exiting = lost_active[0]
        logger.debug("Caret %d -> %d exits %s", prev_offset, new_offset, exiting)
        return active - {exiting}

    gained_inactive = [rid for rid in touched if rid not in prev_touched and rid not in active]
    if gained_inactive:
        entering = gained_inactive[-1]
        logger.debug("Caret %d -> %d enters %s", prev_offset, new_offset, entering)
        return active | {entering}

    return active


class CursorTracker:
    """Keeps the active range set in step with caret moves and edits."""

    def __init__(self, ranges: Sequence[FormulaLatexRange], offset: int = 0):
        self.ranges = list(ranges)
        self.offset = offset
        self.active: frozenset[NodeId] = frozenset()

    def move(self, offset: int) -> frozenset[NodeId]:
        """Caret move without a document change."""
        self.active = next_active_ids(self.ranges, self.offset, offset, self.active)
        self.offset = offset
        return self.active

    def replace_ranges(self, ranges: Sequence[FormulaLatexRange], offset: int) -> frozenset[NodeId]:
        """
        Document edit: adopt the re-derived ranges and caret position.

        No enter/exit is computed for edits; ids whose ranges disappeared are
        dropped from the active set.
        """
        self.ranges = list(ranges)
        self.offset = offset
        present = {p.id for p in flatten_ranges(self.ranges, styled_only=True)}
        self.active = frozenset(rid for rid in self.active if rid in present)
        return self.active
