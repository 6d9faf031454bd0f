from __future__ import annotations

from pathlib import Path

import pytest

from controllers import settings
from controllers.data_paths import DATA_DIR_ENV, DataPaths, default_data_dir


@pytest.fixture
def project_config(tmp_path, monkeypatch):
    """Point the settings loader at a throwaway project root."""

    monkeypatch.setattr(settings, "_project_root", lambda: tmp_path)
    settings._read_config_section.cache_clear()
    yield tmp_path / settings.CONFIG_FILENAME
    settings._read_config_section.cache_clear()


def test_defaults_without_config_file(project_config):
    assert settings.load_data_dir() == (project_config.parent / "data").resolve()
    assert settings.load_vectorizer_config().smoothness == 1.0


def test_values_are_read_from_config_file(project_config):
    project_config.write_text(
        "[lineart]\n"
        'data_dir = "artifacts"\n'
        "\n"
        "[lineart.vectorizer]\n"
        "smoothness = 2.0\n"
        "corner_min_distance = 7\n"
        "unknown_knob = true\n"
    )

    config = settings.load_vectorizer_config()

    assert settings.load_data_dir() == (project_config.parent / "artifacts").resolve()
    assert config.smoothness == 2.0
    assert config.corner_min_distance == 7


def test_overrides_win_and_none_is_ignored(project_config):
    project_config.write_text("[lineart.vectorizer]\nsmoothness = 2.0\nworkers = 2\n")

    config = settings.load_vectorizer_config(smoothness=0.5, workers=None)

    assert config.smoothness == 0.5
    assert config.workers == 2


def test_invalid_config_value_raises(project_config):
    project_config.write_text('[lineart.vectorizer]\nsmoothness = "soft"\n')

    with pytest.raises(ValueError):
        settings.load_vectorizer_config()


def test_environment_overrides_data_dir(tmp_path, monkeypatch):
    monkeypatch.setenv(DATA_DIR_ENV, str(tmp_path / "elsewhere"))

    paths = DataPaths.from_data_dir()

    assert default_data_dir() == tmp_path / "elsewhere"
    assert paths.skeleton_dir == (tmp_path / "elsewhere" / "skeletonized").resolve()
    assert paths.preview_dir.name == "previews"


def test_ensure_directories(tmp_path):
    paths = DataPaths.from_data_dir(tmp_path)

    paths.ensure_directories()

    assert all(
        Path(directory).is_dir()
        for directory in (paths.skeleton_dir, paths.polyline_dir, paths.graph_dir, paths.preview_dir)
    )
