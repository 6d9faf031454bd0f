from __future__ import annotations

import json

import numpy as np

from models.connectivity import resolve_connectivity
from models.features import FeatureSet, Vertex, VertexKind, detect_features
from models.links import segment_links
from models.skeleton_graph import EdgeKind, assemble_edges

from conftest import mask_from_rows, ring_mask


def _graph(mask, features=None):
    features = features or detect_features(mask)
    links = segment_links(mask, features)
    connectivity = resolve_connectivity(mask, features, links)
    return assemble_edges(mask, features, links, connectivity)


def _covered(graph):
    return {pixel for edge in graph.edges.values() for pixel in edge.points}


def test_tee_yields_three_linked_edges(tee_mask):
    graph = _graph(tee_mask)

    assert list(graph.edges) == [0, 1, 2]
    assert graph.kind_counts() == {"direct": 0, "linked": 3, "loop": 0, "extra": 0}
    assert [(edge.u, edge.v, edge.link_id) for edge in graph.edges.values()] == [
        (1, 2, 5),
        (2, 3, 6),
        (2, 4, 7),
    ]
    assert graph.edges[0].points == ((1, 1), (1, 2), (1, 3), (1, 4), (1, 5))
    assert graph.degree(2) == 3
    assert [graph.degree(node_id) for node_id in (1, 3, 4)] == [1, 1, 1]


def test_every_pixel_lands_in_some_edge(tee_mask, lollipop_mask):
    for mask in (tee_mask, lollipop_mask):
        graph = _graph(mask)
        expected = {(int(r), int(c)) for r, c in np.argwhere(mask)}
        assert _covered(graph) == expected


def test_link_pixels_belong_to_exactly_one_edge(lollipop_mask):
    graph = _graph(lollipop_mask)

    interiors = [pixel for edge in graph.edges.values() for pixel in edge.interior]
    assert len(interiors) == len(set(interiors))


def test_loop_edge_is_closed(lollipop_mask):
    graph = _graph(lollipop_mask)

    loop, tail = graph.edges[0], graph.edges[1]
    assert loop.kind is EdgeKind.LOOP
    assert loop.is_closed
    assert loop.points[0] == loop.points[-1] == (2, 4)
    assert tail.kind is EdgeKind.LINKED
    assert tail.other(1) == 2
    assert graph.degree(1) == 3


def test_touching_vertices_form_a_direct_edge():
    mask = np.ones((1, 2), dtype=bool)

    graph = _graph(mask)

    (edge,) = graph.edges.values()
    assert edge.kind is EdgeKind.DIRECT
    assert (edge.u, edge.v) == (1, 2)
    assert edge.points == ((0, 0), (0, 1))
    assert edge.link_id is None


def test_lone_pixel_becomes_point_edge():
    mask = np.zeros((3, 3), dtype=bool)
    mask[1, 1] = True

    graph = _graph(mask)

    (edge,) = graph.edges.values()
    assert (edge.u, edge.v) == (1, 1)
    assert edge.points == ((1, 1), (1, 1))
    assert graph.degree(1) == 0


def test_residual_link_settles_as_extra_edge():
    mask = mask_from_rows(
        "..#",
        "###",
        "..#",
    )
    labels = np.zeros(mask.shape, dtype=np.int32)
    vertices = {}
    for vertex_id, pixel in {1: (1, 0), 2: (0, 2), 3: (2, 2)}.items():
        labels[pixel] = vertex_id
        vertices[vertex_id] = Vertex(vertex_id, pixel[0], pixel[1], VertexKind.ENDPOINT)
    features = FeatureSet(vertices=vertices, labels=labels)

    graph = _graph(mask, features)

    assert list(graph.edges) == [0, 1]
    settled, leftover = graph.edges[0], graph.edges[1]
    assert settled.kind is EdgeKind.EXTRA
    assert (settled.u, settled.v, settled.link_id) == (1, 2, 4)
    assert settled.points == ((1, 0), (1, 1), (1, 2), (0, 2))
    # (2, 2) touches the same link end as (0, 2), so it stays connected through it.
    assert leftover.kind is EdgeKind.EXTRA
    assert (leftover.u, leftover.v, leftover.link_id) == (2, 3, 4)
    assert leftover.points == ((0, 2), (2, 2))
    assert [graph.degree(node_id) for node_id in (1, 2, 3)] == [1, 2, 1]
    assert _covered(graph) == {(int(r), int(c)) for r, c in np.argwhere(mask)}


def test_edges_of_kind_filters_in_id_order(lollipop_mask):
    graph = _graph(lollipop_mask)

    assert [edge.id for edge in graph.edges_of_kind(EdgeKind.LOOP)] == [0]
    assert [edge.id for edge in graph.edges_of_kind(EdgeKind.LINKED)] == [1]
    assert graph.edges_of_kind(EdgeKind.EXTRA) == []


def test_vertex_free_loop_closes_with_one_loop_edge():
    mask = ring_mask(11)

    features = detect_features(mask)
    graph = _graph(mask, features)

    (group,) = features.corner_groups
    assert set(group) == features.synthetic_ids
    (closing,) = graph.edges_of_kind(EdgeKind.LOOP)
    arcs = graph.edges_of_kind(EdgeKind.EXTRA)
    assert len(arcs) + 1 == len(group)
    assert closing.link_id == max(edge.link_id for edge in graph.edges.values())
    assert {closing.u, closing.v} <= set(group)


def test_graph_json_roundtrip_fields(tmp_path, tee_mask):
    graph = _graph(tee_mask)

    path = graph.save(tmp_path / "graphs" / "graph_tee.json")

    payload = json.loads(path.read_text())
    assert [node["id"] for node in payload["nodes"]] == [1, 2, 3, 4]
    assert payload["nodes"][1] == {"id": 2, "x": 5, "y": 1, "kind": "branch", "degree": 3}
    assert [edge["kind"] for edge in payload["edges"]] == ["linked"] * 3


def test_copy_is_independent(tee_mask):
    graph = _graph(tee_mask)

    clone = graph.copy()
    clone.nodes[2].degree = 0
    clone.adjacency[2].clear()

    assert graph.degree(2) == 3
    assert graph.adjacency[2]
