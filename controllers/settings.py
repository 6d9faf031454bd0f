"""Load the shared data directory and vectorizer defaults from config.toml."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

import tomllib

from models.vectorize import VectorizerConfig

CONFIG_FILENAME = "config.toml"
CONFIG_SECTION = "lineart"
CONFIG_KEY = "data_dir"
VECTORIZER_SECTION = "vectorizer"
DEFAULT_DATA_DIR = "data"


def load_data_dir() -> Path:
    """Return the canonical data directory resolved from config.toml."""

    section = _read_config_section()
    candidate = section.get(CONFIG_KEY)
    if isinstance(candidate, str) and candidate.strip():
        return _resolve_path(candidate)
    return _resolve_path(DEFAULT_DATA_DIR)


def load_vectorizer_config(**overrides: Any) -> VectorizerConfig:
    """Vectorizer defaults from ``[lineart.vectorizer]`` with keyword overrides applied.

    ``None`` overrides are ignored so CLI flags left unset keep the file value.
    """

    table = _read_config_section().get(VECTORIZER_SECTION)
    values = dict(table) if isinstance(table, dict) else {}
    values.update({key: value for key, value in overrides.items() if value is not None})
    return VectorizerConfig.from_mapping(values)


@lru_cache(maxsize=1)
def _read_config_section() -> dict[str, Any]:
    config_path = _project_root() / CONFIG_FILENAME
    if not config_path.is_file():
        return {}

    with config_path.open("rb") as handle:
        config = tomllib.load(handle)

    section = config.get(CONFIG_SECTION)
    return section if isinstance(section, dict) else {}


def _resolve_path(raw_path: str) -> Path:
    path = Path(raw_path).expanduser()
    if path.is_absolute():
        return path.resolve()
    return (_project_root() / path).resolve()


def _project_root() -> Path:
    return Path(__file__).resolve().parents[1]


__all__ = ["load_data_dir", "load_vectorizer_config"]
