from __future__ import annotations

import json

import pytest

from controllers.data_paths import DataPaths
from controllers.pipeline import _cli, process_skeleton, run_pipeline_for_ui
from models.utils import mask_to_image, save_png
from models.vectorize import VectorizerConfig


@pytest.fixture
def data_paths(tmp_path):
    paths = DataPaths.from_data_dir(tmp_path / "data")
    paths.ensure_directories()
    return paths


@pytest.fixture
def tee_png(data_paths, tee_mask):
    return save_png(mask_to_image(tee_mask), data_paths.skeleton_dir / "skeletonized_tee.png")


def test_process_skeleton_writes_artifacts(data_paths, tee_png):
    run = process_skeleton(tee_png, config=VectorizerConfig(), data_paths=data_paths)

    assert run.skeleton_path == tee_png
    assert run.polyline_path == data_paths.polyline_dir / "polyline_tee.json"
    assert run.graph_path == data_paths.graph_dir / "graph_tee.json"
    assert run.preview_path == data_paths.preview_dir / "preview_tee.png"
    for path in (run.polyline_path, run.graph_path, run.preview_path):
        assert path.exists()

    payload = json.loads(run.polyline_path.read_text())
    assert payload["sample"] == "tee"
    assert payload["width"] == 11 and payload["height"] == 7
    assert [item["points"] for item in payload["polylines"]] == [
        [[1, 1], [5, 1]],
        [[5, 1], [9, 1]],
        [[5, 1], [5, 5]],
    ]
    assert payload["polylines"][0]["length"] == pytest.approx(4.0)
    assert payload["config"]["smoothness"] == 1.0
    assert len(payload["vertices"]) == 4


def test_external_skeleton_is_copied_into_data_dir(tmp_path, data_paths, tee_mask):
    outside = save_png(mask_to_image(tee_mask), tmp_path / "upload" / "drawing.png")

    run = process_skeleton(outside, data_paths=data_paths, base_name="sketch")

    assert run.skeleton_path == data_paths.skeleton_dir / "skeletonized_sketch.png"
    assert run.skeleton_path.exists()
    assert run.polyline_path.name == "polyline_sketch.json"


def test_in_memory_image_is_saved_first(data_paths, tee_mask):
    run = process_skeleton(mask_to_image(tee_mask), data_paths=data_paths, base_name="memo")

    assert run.skeleton_path.name == "skeletonized_memo.png"
    assert run.summary["polylines"] == 3


def test_missing_skeleton_raises(data_paths, tmp_path):
    with pytest.raises(FileNotFoundError):
        process_skeleton(tmp_path / "nope.png", data_paths=data_paths)


def test_run_pipeline_for_ui(data_paths, tee_png):
    result = run_pipeline_for_ui(tee_png, smoothness=1.0, data_paths=data_paths)

    assert result.summary["polylines"] == 3
    assert "polyline_tee.json" in result.status_message
    assert result.preview_image.size == (11, 7)
    assert result.graph_image.mode == "RGB"
    assert len(result.polyline_payload["polylines"]) == 3


@pytest.mark.parametrize(
    "kwargs",
    [
        {"skeleton_file": None, "smoothness": 1.0},
        {"skeleton_file": "x.png", "smoothness": None},
    ],
)
def test_run_pipeline_for_ui_validates_inputs(kwargs, data_paths):
    skeleton_file = kwargs.pop("skeleton_file")
    with pytest.raises(ValueError):
        run_pipeline_for_ui(skeleton_file, data_paths=data_paths, **kwargs)


def test_run_pipeline_for_ui_rejects_negative_smoothness(data_paths, tee_png):
    with pytest.raises(ValueError):
        run_pipeline_for_ui(tee_png, smoothness=-1.0, data_paths=data_paths)


def test_cli_processes_every_skeleton(data_paths, tee_png, capsys):
    exit_code = _cli(["--data-dir", str(data_paths.skeleton_dir.parent), "--smoothness", "0.5"])

    assert exit_code == 0
    assert (data_paths.polyline_dir / "polyline_tee.json").exists()
    assert "[1/1] skeletonized_tee.png -> polyline_tee.json" in capsys.readouterr().out


def test_cli_reports_empty_directory(tmp_path, capsys):
    (tmp_path / "skeletonized").mkdir()

    assert _cli(["--data-dir", str(tmp_path)]) == 0
    assert "No PNG skeletons" in capsys.readouterr().err
