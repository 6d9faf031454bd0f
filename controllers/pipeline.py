"""Skeleton -> polyline orchestration helpers.

This module runs the vectorizer over skeleton PNGs and persists every artifact
(polyline JSON, graph JSON, preview overlay) under the shared data layout.
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Sequence

from PIL import Image

from models.graph_render import render_graph_overlay, render_polyline_overlay
from models.polyline_utils import save_polyline_json
from models.utils import load_image, mask_to_image, prefixed_name, save_png, strip_prefix
from models.vectorize import VectorizationResult, VectorizerConfig, vectorize_skeleton

from .data_paths import DataPaths, default_data_dir
from .settings import load_vectorizer_config

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PipelineResult:
    """Artifacts and metadata emitted by a pipeline run."""

    skeleton_path: Path
    polyline_path: Path
    graph_path: Path
    preview_path: Path
    result: VectorizationResult
    payload: dict[str, object]

    @property
    def summary(self) -> dict[str, object]:
        return self.result.summary()


@dataclass(slots=True)
class PipelineUIResult:
    """UI-friendly result format for Gradio tabs."""

    preview_image: Image.Image
    graph_image: Image.Image
    polyline_payload: dict[str, object]
    summary: dict[str, object]
    status_message: str


def process_skeleton(
    skeleton: Image.Image | str | Path,
    *,
    base_name: str | None = None,
    config: VectorizerConfig | None = None,
    data_paths: DataPaths | None = None,
    color_by: str = "kind",
) -> PipelineResult:
    """Vectorize one skeleton and write its artifacts.

    Args:
        skeleton: Pillow image or path to a one-pixel-wide skeleton (white
            curves on black). In-memory images and files outside
            ``skeleton_dir`` are copied there first.
        base_name: Optional override for artifact filenames (without
            extension). Defaults to the source stem or a timestamp.
        config: Vectorizer tuning; defaults to ``config.toml`` values.
        data_paths: Output layout; defaults to the shared data directory.
        color_by: Preview coloring, ``"kind"`` or ``"index"``.

    Returns:
        PipelineResult with the written paths and the in-memory result.
    """

    paths = data_paths or DataPaths.from_data_dir()
    paths.ensure_directories()
    cfg = config or load_vectorizer_config()

    skeleton_path, sample = _resolve_skeleton_artifact(skeleton, paths, base_name)
    logger.info("Vectorizing %s", skeleton_path.name)
    result = vectorize_skeleton(skeleton_path, config=cfg)

    polyline_path = paths.polyline_dir / prefixed_name("polyline", sample)
    payload = save_polyline_json(
        result,
        polyline_path,
        metadata={
            "sample": sample,
            "skeleton": skeleton_path.name,
            "config": cfg.to_dict(),
        },
    )
    graph_path = result.graph.save(paths.graph_dir / prefixed_name("graph", sample))

    base = load_image(skeleton_path, mode="RGB")
    preview = render_polyline_overlay(base, result.polylines, color_by=color_by)
    preview_path = save_png(preview, paths.preview_dir / prefixed_name("preview", sample))

    return PipelineResult(
        skeleton_path=skeleton_path,
        polyline_path=polyline_path,
        graph_path=graph_path,
        preview_path=preview_path,
        result=result,
        payload=payload,
    )


def run_pipeline_for_ui(
    skeleton_file: str | Path | None,
    *,
    base_name: str | None = None,
    smoothness: float | None,
    corner_sensitivity: float | None = None,
    corner_min_distance: float | None = None,
    search_time_budget: float | None = None,
    color_by: str = "kind",
    data_paths: DataPaths | None = None,
) -> PipelineUIResult:
    """Run the pipeline with UI-friendly input validation and output formatting.

    Raises:
        ValueError: If inputs are missing or the numeric parameters are invalid.
    """

    if skeleton_file is None:
        raise ValueError("Pick or upload a skeleton image first.")
    if smoothness is None:
        raise ValueError("Enter a smoothness value.")

    base = base_name.strip() if base_name else None
    cfg = load_vectorizer_config(
        smoothness=smoothness,
        corner_sensitivity=corner_sensitivity,
        corner_min_distance=corner_min_distance,
        search_time_budget=search_time_budget,
    )
    run = process_skeleton(
        skeleton_file,
        base_name=base,
        config=cfg,
        data_paths=data_paths,
        color_by=color_by,
    )

    with Image.open(run.preview_path) as preview_image:
        preview = preview_image.copy()
    graph_image = render_graph_overlay(run.result.graph, mask_to_image(run.result.features.mask))

    summary = run.summary
    notes = summary["notes"]
    status = (
        f"Saved `{run.polyline_path.name}` with {summary['polylines']} polylines "
        f"from `{run.skeleton_path.name}`."
    )
    if notes:
        status += " Degradations: " + ", ".join(f"{name} x{count}" for name, count in notes.items())

    return PipelineUIResult(
        preview_image=preview,
        graph_image=graph_image,
        polyline_payload=run.payload,
        summary=summary,
        status_message=status,
    )


def _resolve_skeleton_artifact(
    skeleton: Image.Image | str | Path,
    paths: DataPaths,
    base_name: str | None,
) -> tuple[Path, str]:
    if isinstance(skeleton, Image.Image):
        sample = _derive_base_name(None, base_name)
        return _save_skeleton_image(skeleton, paths, sample), sample

    source_path = Path(skeleton)
    if not source_path.exists():
        raise FileNotFoundError(f"Skeleton source {source_path} does not exist")
    sample = _derive_base_name(source_path, base_name)
    try:
        source_path.resolve().relative_to(paths.skeleton_dir.resolve())
    except ValueError:
        image = load_image(source_path, mode="L")
        return _save_skeleton_image(image, paths, sample), sample
    return source_path, sample


def _derive_base_name(source: object | None, override: str | None) -> str:
    if override:
        cleaned = Path(str(override)).stem.strip()
        if cleaned:
            return strip_prefix(cleaned)
        raise ValueError("base_name must contain at least one visible character")

    if isinstance(source, (str, Path)):
        stem = Path(source).stem.strip()
        if stem:
            stripped = strip_prefix(stem)
            if stripped:
                return stripped

    return datetime.now().strftime("%Y%m%d-%H%M%S")


def _save_skeleton_image(image: Image.Image, paths: DataPaths, sample: str) -> Path:
    destination = paths.skeleton_dir / prefixed_name("skeletonized", sample)
    return save_png(image, destination, mode="L")


def _cli(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Vectorize every skeleton PNG sitting under data/skeletonized/."
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Root folder containing skeletonized/, polylines/, graphs/, previews/ "
        "(default: config.toml or $LINEART_DATA_DIR).",
    )
    parser.add_argument(
        "--smoothness",
        type=float,
        default=None,
        help="Douglas-Peucker tolerance in pixels (default: config.toml, else 1.0).",
    )
    parser.add_argument(
        "--corner-sensitivity",
        type=float,
        default=None,
        help="Relative Harris threshold for corners on vertex-free loops (default: 0.1).",
    )
    parser.add_argument(
        "--corner-min-distance",
        type=int,
        default=None,
        help="Minimum separation (px) between loop corners (default: 5).",
    )
    parser.add_argument(
        "--search-max-steps",
        type=int,
        default=None,
        help="Step budget of the exact path search per edge (default: 200000).",
    )
    parser.add_argument(
        "--search-time-budget",
        type=float,
        default=None,
        help="Time budget (s) of the exact path search per edge (default: 0.25).",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Threads used to order and simplify edges (default: 1).",
    )
    parser.add_argument(
        "--color-by",
        choices=("kind", "index"),
        default="kind",
        help="Preview coloring scheme (default: kind).",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Optionally cap how many skeletons to process.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging verbosity (default: WARNING).",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    data_dir = (args.data_dir or default_data_dir()).expanduser()
    paths = DataPaths.from_data_dir(data_dir)
    if not paths.skeleton_dir.exists():
        parser.error(f"{paths.skeleton_dir} does not exist.")

    try:
        config = load_vectorizer_config(
            smoothness=args.smoothness,
            corner_sensitivity=args.corner_sensitivity,
            corner_min_distance=args.corner_min_distance,
            search_max_steps=args.search_max_steps,
            search_time_budget=args.search_time_budget,
            workers=args.workers,
        )
    except ValueError as exc:
        parser.error(str(exc))

    skeleton_paths = sorted(paths.skeleton_dir.glob("*.png"))
    if args.limit is not None:
        skeleton_paths = skeleton_paths[: args.limit]

    if not skeleton_paths:
        print(f"No PNG skeletons found under {paths.skeleton_dir}", file=sys.stderr)
        return 0

    total = len(skeleton_paths)
    for idx, skeleton_path in enumerate(skeleton_paths, start=1):
        try:
            run = process_skeleton(
                skeleton_path,
                config=config,
                data_paths=paths,
                color_by=args.color_by,
            )
        except (OSError, ValueError) as exc:
            print(f"[{idx}/{total}] Failed {skeleton_path.name}: {exc}", file=sys.stderr)
            return 1

        summary = run.summary
        print(
            f"[{idx}/{total}] {skeleton_path.name} -> {run.polyline_path.name} "
            f"({summary['polylines']} polylines, {summary['simplified_points']} points)"
        )

    print(f"Processed {total} skeleton(s). Polylines written to {paths.polyline_dir}.")
    return 0


__all__ = [
    "PipelineResult",
    "PipelineUIResult",
    "process_skeleton",
    "run_pipeline_for_ui",
]


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(_cli())
