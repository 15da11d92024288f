"""Exceptions raised by the formula core."""


class FormulaError(Exception):
    """Base class for formulary errors."""


class LatexParseError(FormulaError, ValueError):
    def __init__(self, message: str, position: int | None = None):
        self.position = position
        if position is not None:
            message = f"{message} (at offset {position})"
        super().__init__(message)


class DuplicateIdError(FormulaError, ValueError):
    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Duplicate node id {node_id!r}")


class IdAllocationError(FormulaError, RuntimeError):
    """A fresh id could not be minted without colliding with an existing one."""
