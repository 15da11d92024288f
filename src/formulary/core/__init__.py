"""
Core formula model.

Everything here is pure: nodes and formulas are immutable values, edits
return new formulas, and ids are supplied through the ``IdGenerator`` port.
"""

from .cursor import CursorTracker, next_active_ids
from .errors import DuplicateIdError, FormulaError, IdAllocationError, LatexParseError
from .formula import Formula
from .ranges import (
    FormulaLatexRange,
    RangeHints,
    StyledRange,
    UnstyledRange,
    combine_unstyled_ranges,
    decorations,
    flatten_ranges,
    get_position_ranges,
)
from .styles import apply_box, apply_brace, apply_color, apply_strikethrough, remove_style
from .transform import consolidate_groups, consolidate_targets, remove_empty_groups, replace_nodes

__all__ = [
    "CursorTracker",
    "DuplicateIdError",
    "Formula",
    "FormulaError",
    "FormulaLatexRange",
    "IdAllocationError",
    "LatexParseError",
    "RangeHints",
    "StyledRange",
    "UnstyledRange",
    "apply_box",
    "apply_brace",
    "apply_color",
    "apply_strikethrough",
    "combine_unstyled_ranges",
    "consolidate_groups",
    "consolidate_targets",
    "decorations",
    "flatten_ranges",
    "get_position_ranges",
    "next_active_ids",
    "remove_empty_groups",
    "remove_style",
    "replace_nodes",
]
