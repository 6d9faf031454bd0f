from __future__ import annotations

from pathlib import Path

from controllers.data_paths import DataPaths


def resolve_data_paths(data_dir: Path | None = None) -> DataPaths:
    return DataPaths.from_data_dir(data_dir)


def list_skeletons(data_paths: DataPaths | None = None) -> list[str]:
    """Return sorted skeleton filenames under the configured data dir."""

    paths = data_paths or resolve_data_paths()
    if not paths.skeleton_dir.exists():
        return []
    return sorted(path.name for path in paths.skeleton_dir.glob("*.png"))


__all__ = ["list_skeletons", "resolve_data_paths"]
