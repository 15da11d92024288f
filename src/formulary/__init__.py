"""Formula documents: stable node ids, markup serialization and styled ranges."""

from .core.formula import Formula
from .core.ranges import StyledRange, UnstyledRange

__version__ = "0.1.0"

__all__ = ["Formula", "StyledRange", "UnstyledRange", "__version__"]
