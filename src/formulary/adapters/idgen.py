import itertools
import secrets

from ..core.ports import IdGenerator


class HexId(IdGenerator):
    def __init__(self, nbytes: int = 4):  # 4 bytes -> 8 hex chars
        self.nbytes = nbytes

    def new_id(self) -> str:
        return secrets.token_hex(self.nbytes)


class SequentialId(IdGenerator):
    """Deterministic ids ``<prefix>1``, ``<prefix>2``, ... (tests, CLI replays)."""

    def __init__(self, prefix: str = "n", start: int = 1):
        self.prefix = prefix
        self._counter = itertools.count(start)

    def new_id(self) -> str:
        return f"{self.prefix}{next(self._counter)}"
