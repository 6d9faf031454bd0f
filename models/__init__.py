"""Model layer for the skeleton line-art vectorizer."""

from .connectivity import Connectivity, Incidence, ResidualLink, resolve_connectivity
from .features import FeatureSet, Vertex, VertexKind, detect_features
from .links import Link, LinkSet, segment_links
from .path_order import OrderedPath, OrderMethod, order_path
from .polyline_utils import polyline_length, polyline_payload, save_polyline_json
from .simplify import douglas_peucker, simplify_mask
from .skeleton_graph import EdgeKind, GraphEdge, GraphNode, SkeletonGraph, assemble_edges
from .vectorize import (
    Degradation,
    Polyline,
    VectorizationResult,
    VectorizerConfig,
    vectorize_skeleton,
)

__all__ = [
    "detect_features",
    "FeatureSet",
    "Vertex",
    "VertexKind",
    "segment_links",
    "Link",
    "LinkSet",
    "resolve_connectivity",
    "Connectivity",
    "Incidence",
    "ResidualLink",
    "assemble_edges",
    "EdgeKind",
    "GraphEdge",
    "GraphNode",
    "SkeletonGraph",
    "order_path",
    "OrderedPath",
    "OrderMethod",
    "douglas_peucker",
    "simplify_mask",
    "vectorize_skeleton",
    "VectorizerConfig",
    "VectorizationResult",
    "Polyline",
    "Degradation",
    "polyline_length",
    "polyline_payload",
    "save_polyline_json",
]
