"""Runtime wiring helper for CLI applications."""

from dataclasses import dataclass
from pathlib import Path

from .adapters.idgen import HexId
from .adapters.latex_parser import LatexParser
from .config import FormularyConfig, load_config


@dataclass
class Runtime:
    """Container for all wired components."""
    parser: LatexParser
    idgen: HexId
    config: FormularyConfig


def build_runtime(config_path: Path | None = None) -> Runtime:
    """Build and wire the parser and id generator from configuration."""
    config = load_config(config_path=config_path)

    parser = LatexParser(variables=config.parser.variables)
    idgen = HexId(nbytes=config.id.bytes)

    return Runtime(
        parser=parser,
        idgen=idgen,
        config=config,
    )
