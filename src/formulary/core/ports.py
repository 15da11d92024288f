from typing import Protocol

from .model import NodeId
from .formula import Formula


class FormulaParser(Protocol):
    """
    Turn markup text into a Formula whose nodes follow the node grammar.
    Parsers assign ids to every node that does not name its own.
    """

    def parse(self, text: str) -> Formula:
        pass


class IdGenerator(Protocol):
    """Source of fresh node ids for synthesized nodes."""

    def new_id(self) -> NodeId:
        pass
