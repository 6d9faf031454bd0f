from __future__ import annotations

import pytest

from controllers.data_paths import DataPaths
from models.utils import apply_stage_prefix, prefixed_name, stage_spec, strip_prefix
from models.utils.naming import canonical_stage_name
from views.config import list_skeletons


def test_prefixes_are_never_doubled():
    assert apply_stage_prefix("polyline", "tee") == "polyline_tee"
    assert apply_stage_prefix("polyline", "skeletonized_tee") == "polyline_tee"
    assert strip_prefix("preview_tee") == "tee"
    assert strip_prefix("polyline_") == "polyline_"


def test_prefixed_name_adds_suffix():
    assert prefixed_name("graph", "tee") == "graph_tee.json"
    assert prefixed_name("skeleton", "tee") == "skeletonized_tee.png"
    assert prefixed_name("overlay", "tee") == "preview_tee.png"


def test_unknown_stage():
    assert canonical_stage_name(" Skeleton ") == "skeletonized"
    with pytest.raises(KeyError):
        stage_spec("signature")


def test_list_skeletons(tmp_path):
    paths = DataPaths.from_data_dir(tmp_path)
    assert list_skeletons(paths) == []

    paths.ensure_directories()
    for name in ("skeletonized_b.png", "skeletonized_a.png", "notes.txt"):
        (paths.skeleton_dir / name).write_bytes(b"")

    assert list_skeletons(paths) == ["skeletonized_a.png", "skeletonized_b.png"]
