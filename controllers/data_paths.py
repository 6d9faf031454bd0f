"""Shared filesystem layout helpers for the CLI and the Gradio UI."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .settings import load_data_dir

DATA_DIR_ENV = "LINEART_DATA_DIR"


def default_data_dir() -> Path:
    env_dir = os.environ.get(DATA_DIR_ENV)
    if env_dir:
        return Path(env_dir).expanduser()
    return load_data_dir()


@dataclass(slots=True)
class DataPaths:
    """Canonical directories for skeleton inputs and vectorizer outputs."""

    skeleton_dir: Path = Path("data/skeletonized")
    polyline_dir: Path = Path("data/polylines")
    graph_dir: Path = Path("data/graphs")
    preview_dir: Path = Path("data/previews")

    def ensure_directories(self) -> None:
        self.skeleton_dir.mkdir(parents=True, exist_ok=True)
        self.polyline_dir.mkdir(parents=True, exist_ok=True)
        self.graph_dir.mkdir(parents=True, exist_ok=True)
        self.preview_dir.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_data_dir(cls, data_dir: Path | None = None) -> DataPaths:
        base = data_dir or default_data_dir()
        base = base.expanduser().resolve()
        return cls(
            skeleton_dir=base / "skeletonized",
            polyline_dir=base / "polylines",
            graph_dir=base / "graphs",
            preview_dir=base / "previews",
        )


__all__ = ["DATA_DIR_ENV", "DataPaths", "default_data_dir"]
