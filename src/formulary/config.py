"""Configuration loader for formulary.toml."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore

CONFIG_NAME = "formulary.toml"


@dataclass
class IdConfig:
    """ID generation configuration."""
    bytes: int = 4


@dataclass
class StyleConfig:
    """Defaults for style commands."""
    box_background: str = "white"
    brace_caption: str = "caption"


@dataclass
class ParserConfig:
    """Markup strings to read as Variable nodes."""
    variables: tuple[str, ...] = ()


@dataclass
class LoggingConfig:
    level: str = "WARNING"


@dataclass
class FormularyConfig:
    """Complete formulary configuration."""
    id: IdConfig
    style: StyleConfig
    parser: ParserConfig
    logging: LoggingConfig


def load_config(config_path: Path | None = None) -> FormularyConfig:
    """
    Load configuration from formulary.toml.

    Search order:
    1. config_path (if provided)
    2. cwd/formulary.toml

    Missing files and missing keys fall back to defaults.
    """
    toml_data: dict[str, Any] = {}

    search_paths = []
    if config_path:
        search_paths.append(Path(config_path))
    search_paths.append(Path.cwd() / CONFIG_NAME)

    for path in search_paths:
        if path.exists():
            with open(path, "rb") as f:
                toml_data = tomllib.load(f)
            break

    id_data = toml_data.get("id", {})
    id_config = IdConfig(bytes=int(id_data.get("bytes", 4)))

    style_data = toml_data.get("style", {})
    style_config = StyleConfig(
        box_background=style_data.get("box_background", "white"),
        brace_caption=style_data.get("brace_caption", "caption"),
    )

    parser_data = toml_data.get("parser", {})
    parser_config = ParserConfig(variables=tuple(parser_data.get("variables", ())))

    logging_data = toml_data.get("logging", {})
    logging_config = LoggingConfig(level=str(logging_data.get("level", "WARNING")).upper())

    return FormularyConfig(
        id=id_config,
        style=style_config,
        parser=parser_config,
        logging=logging_config,
    )
