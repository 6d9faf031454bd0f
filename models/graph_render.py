from __future__ import annotations

from typing import Sequence

from PIL import Image, ImageDraw
import colorsys

from .skeleton_graph import EdgeKind, SkeletonGraph
from .vectorize import Polyline

DEFAULT_HIGHLIGHT = (255, 255, 0)
CORNER_HIGHLIGHT = (255, 120, 0)
KIND_COLORS: dict[EdgeKind, tuple[int, int, int]] = {
    EdgeKind.DIRECT: (0, 200, 255),
    EdgeKind.LINKED: (255, 255, 0),
    EdgeKind.LOOP: (0, 255, 120),
    EdgeKind.EXTRA: (255, 80, 200),
}


def render_polyline_overlay(
    base_image: Image.Image,
    polylines: Sequence[Polyline],
    *,
    color_by: str = "kind",
    width: int = 2,
    vertex_radius: int = 1,
) -> Image.Image:
    """Draw simplified polylines over a copy of ``base_image``.

    ``color_by="kind"`` colors each polyline by its edge kind, ``"index"`` spreads
    a rainbow over the polyline order.
    """

    if color_by not in ("kind", "index"):
        raise ValueError(f"Unknown color scheme: {color_by}")
    overlay = base_image.convert("RGB")
    draw = ImageDraw.Draw(overlay)
    count = len(polylines)
    for idx, polyline in enumerate(polylines):
        if color_by == "kind":
            color = KIND_COLORS[polyline.kind]
        else:
            color = _rainbow_color(idx / max(1, count - 1))
        points = list(polyline.points)
        if len(set(points)) >= 2:
            draw.line(points, fill=color, width=width)
        if vertex_radius > 0:
            for x, y in points:
                draw.ellipse(
                    [(x - vertex_radius, y - vertex_radius), (x + vertex_radius, y + vertex_radius)],
                    fill=color,
                )
    return overlay


def render_graph_overlay(
    graph: SkeletonGraph,
    base_image: Image.Image,
    *,
    node_radius: int = 2,
    edge_width: int = 1,
    corner_color: tuple[int, int, int] = CORNER_HIGHLIGHT,
) -> Image.Image:
    """Draw each edge as a vertex-to-vertex chord colored by its kind.

    Detected vertices are outlined in the default highlight, synthetic corner
    vertices in ``corner_color``. Point edges have no chord.
    """

    overlay = base_image.convert("RGB")
    draw = ImageDraw.Draw(overlay)

    for edge_id in sorted(graph.edges):
        edge = graph.edges[edge_id]
        if edge.u == edge.v:
            continue
        start, end = graph.nodes[edge.u], graph.nodes[edge.v]
        draw.line([(start.x, start.y), (end.x, end.y)], fill=KIND_COLORS[edge.kind], width=edge_width)

    if node_radius > 0:
        for node in graph.nodes.values():
            outline = corner_color if node.kind == "corner" else DEFAULT_HIGHLIGHT
            draw.ellipse(
                [(node.x - node_radius, node.y - node_radius), (node.x + node_radius, node.y + node_radius)],
                outline=outline,
            )

    return overlay


def _rainbow_color(t: float) -> tuple[int, int, int]:
    hue = (1.0 - t) * 2 / 3  # map 0..1 to blue->red
    r, g, b = colorsys.hsv_to_rgb(hue, 1.0, 1.0)
    return int(r * 255), int(g * 255), int(b * 255)


__all__ = [
    "KIND_COLORS",
    "render_graph_overlay",
    "render_polyline_overlay",
]
