from __future__ import annotations

import json
from math import hypot
from pathlib import Path
from typing import Sequence

from .vectorize import VectorizationResult


def polyline_length(points: Sequence[tuple[float, float]]) -> float:
    total = 0.0
    for a, b in zip(points, points[1:]):
        total += hypot(b[0] - a[0], b[1] - a[1])
    return total


def polyline_payload(
    result: VectorizationResult,
    *,
    metadata: dict[str, object] | None = None,
) -> dict[str, object]:
    """JSON-ready view of a vectorization: polylines, vertices, graph, notes."""

    polylines = []
    for polyline in result.polylines:
        item = polyline.to_dict()
        item["length"] = polyline_length(polyline.points)
        item["ordered_points"] = len(polyline.path.points)
        polylines.append(item)
    vertices = [
        result.features.vertices[vertex_id].to_dict()
        for vertex_id in sorted(result.features.vertices)
    ]
    return {
        "width": result.shape[1],
        "height": result.shape[0],
        "vertices": vertices,
        "polylines": polylines,
        "graph": result.graph.to_payload(),
        "notes": {note.value: count for note, count in result.notes.items()},
        **(metadata or {}),
    }


def save_polyline_json(
    result: VectorizationResult,
    output_path: Path,
    *,
    metadata: dict[str, object] | None = None,
) -> dict[str, object]:
    payload = polyline_payload(result, metadata=metadata)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(payload, indent=2))
    return payload


__all__ = [
    "polyline_length",
    "polyline_payload",
    "save_polyline_json",
]
