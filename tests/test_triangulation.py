import itertools
import math
import random

import networkx as nx
import pytest

from component_manager import DisjointSetUnion
from dungeon_config import SpanningTreeAlgorithm
from dungeon_geometry import Edge, Vec3
from triangulation import (
    add_loop_edges,
    bridge_components,
    graph_vertices,
    minimum_spanning_tree_kruskal,
    minimum_spanning_tree_prim,
    spanning_tree,
    triangulate,
    triangulate_2d,
    triangulate_3d,
    unique_edges,
)


def is_forest(edges):
    components = DisjointSetUnion()
    for edge in edges:
        if components.connected(edge.a, edge.b):
            return False
        components.union(edge.a, edge.b)
    return True


def total_length(edges):
    return sum(edge.length for edge in edges)


def networkx_mst_length(edges):
    graph = nx.Graph()
    for edge in edges:
        graph.add_edge(edge.a, edge.b, weight=edge.length)
    return sum(data["weight"] for _, _, data in nx.minimum_spanning_edges(graph, data=True))


def test_fewer_than_two_points_give_no_edges():
    assert triangulate([]) == []
    assert triangulate([Vec3(1, 2, 3)]) == []
    assert triangulate([Vec3(1, 2, 3), Vec3(1, 2, 3)]) == []


def test_two_points_give_single_edge():
    a, b = Vec3(0, 0, 0), Vec3(4, 1, 2)

    assert triangulate([a, b]) == [Edge(a, b)]


def test_collinear_points_are_chained_in_order():
    points = [Vec3(4, 0, 4), Vec3(0, 0, 0), Vec3(2, 0, 2), Vec3(6, 0, 6)]

    edges = triangulate(points)

    assert edges == [
        Edge(Vec3(0, 0, 0), Vec3(2, 0, 2)),
        Edge(Vec3(2, 0, 2), Vec3(4, 0, 4)),
        Edge(Vec3(4, 0, 4), Vec3(6, 0, 6)),
    ]


def test_three_points_form_one_triangle():
    points = [Vec3(0, 0, 0), Vec3(4, 0, 0), Vec3(0, 0, 4)]

    edges = triangulate(points)

    assert set(edges) == {Edge(a, b) for a, b in itertools.combinations(points, 2)}


@pytest.mark.parametrize("seed", range(4))
def test_planar_triangulation_has_empty_circumcircles(random_points, seed):
    points = random_points(30, seed=seed, flat=True)

    triangles = triangulate_2d(points)

    assert triangles
    for triangle in triangles:
        for point in points:
            if triangle.has_vertex(point):
                continue
            dx = triangle.circumcenter.x - point.x
            dz = triangle.circumcenter.z - point.z
            assert dx * dx + dz * dz >= triangle.radius_sq * (1 - 1e-9) - 1e-9


@pytest.mark.parametrize("seed", range(3))
def test_planar_triangulation_uses_every_point(random_points, seed):
    points = random_points(25, seed=seed, flat=True)

    edges = unique_edges(triangulate_2d(points))

    assert set(graph_vertices(edges)) == set(points)
    assert len(edges) >= len(points) - 1


def test_volumetric_triangulation_has_empty_circumspheres(random_points):
    points = random_points(20, seed=6)

    tetrahedra = triangulate_3d(points)

    assert tetrahedra
    for tetrahedron in tetrahedra:
        for point in points:
            if tetrahedron.has_vertex(point):
                continue
            assert (tetrahedron.circumcenter - point).sqr_magnitude >= tetrahedron.radius_sq * (1 - 1e-9) - 1e-9


def test_points_on_vertical_plane_are_triangulated(random_points):
    points = [Vec3(5.0, p.x, p.z) for p in random_points(12, seed=2, flat=True)]

    edges = triangulate(points)
    used = set(graph_vertices(edges))

    assert used == set(points)
    assert all(edge.a.x == 5.0 and edge.b.x == 5.0 for edge in edges)


def test_three_points_at_different_heights_form_one_triangle():
    points = [Vec3(1.5, 2.42, 4.5), Vec3(5.5, 2.25, 6.5), Vec3(5.5, 2.18, 2.0)]

    edges = triangulate(points)

    assert set(edges) == {Edge(a, b) for a, b in itertools.combinations(points, 2)}


def test_points_on_tilted_plane_are_triangulated():
    # y = 0.25x + 0.1z; a convex quad, so five edges.
    points = [Vec3(0, 0, 0), Vec3(6, 1.6, 1), Vec3(1, 0.75, 5), Vec3(7, 2.45, 7)]

    edges = triangulate(points)

    assert len(edges) == 5
    assert set(graph_vertices(edges)) == set(points)
    assert len(minimum_spanning_tree_kruskal(edges)) == 3


@pytest.mark.parametrize("seed", range(3))
def test_tilted_plane_keeps_flat_spanning_tree_length(random_points, seed):
    flat = random_points(20, seed=seed, flat=True)
    angle = math.radians(35)
    tilt = {p: Vec3(p.x, p.z * math.sin(angle), p.z * math.cos(angle)) for p in flat}

    flat_tree = minimum_spanning_tree_kruskal(triangulate(flat))
    tilted_edges = triangulate(list(tilt.values()))
    tilted_tree = minimum_spanning_tree_kruskal(tilted_edges)

    assert set(graph_vertices(tilted_edges)) == set(tilt.values())
    assert len(tilted_tree) == len(flat) - 1
    assert total_length(tilted_tree) == pytest.approx(total_length(flat_tree))


def test_bridge_components_joins_disconnected_points():
    a, b, c, d = Vec3(0, 0, 0), Vec3(1, 0, 0), Vec3(5, 0, 0), Vec3(5, 0, 2)
    edges = [Edge(a, b), Edge(c, d)]

    bridged = bridge_components([a, b, c, d], edges)

    assert bridged[:2] == edges
    assert bridged[2:] == [Edge(b, c)]
    assert bridge_components([a, b], [Edge(a, b)]) == [Edge(a, b)]


def test_unique_edges_are_symmetric_deduplicated(random_points):
    edges = triangulate(random_points(15, seed=4))

    assert len(edges) == len(set(edges))


@pytest.mark.parametrize("seed", range(5))
@pytest.mark.parametrize("algorithm", list(SpanningTreeAlgorithm))
def test_spanning_tree_is_minimal(random_points, seed, algorithm):
    points = random_points(18, seed=seed)
    edges = triangulate(points)

    tree = spanning_tree(edges, algorithm, points[0])

    assert len(tree) == len(points) - 1
    assert is_forest(tree)
    assert total_length(tree) == pytest.approx(networkx_mst_length(edges))


@pytest.mark.parametrize("count", [4, 5, 6])
def test_kruskal_matches_brute_force_on_complete_graph(random_points, count):
    points = random_points(count, seed=count)
    edges = [Edge(a, b) for a, b in itertools.combinations(points, 2)]

    best = min(
        total_length(subset)
        for subset in itertools.combinations(edges, count - 1)
        if is_forest(subset)
    )

    assert total_length(minimum_spanning_tree_kruskal(edges)) == pytest.approx(best)


def test_prim_stops_at_reachable_component():
    a, b, c, d = Vec3(0, 0, 0), Vec3(1, 0, 0), Vec3(10, 0, 0), Vec3(11, 0, 0)
    edges = [Edge(a, b), Edge(c, d)]

    assert minimum_spanning_tree_prim(edges, a) == [Edge(a, b)]
    assert minimum_spanning_tree_kruskal(edges) == [Edge(a, b), Edge(c, d)]


def test_prim_without_start_uses_first_edge():
    a, b, c = Vec3(0, 0, 0), Vec3(1, 0, 0), Vec3(3, 0, 0)
    edges = [Edge(b, c), Edge(a, b), Edge(a, c)]

    tree = spanning_tree(edges, SpanningTreeAlgorithm.PRIM)

    assert set(tree) == {Edge(a, b), Edge(b, c)}
    assert spanning_tree([], SpanningTreeAlgorithm.PRIM) == []


def test_loop_edges_probability_bounds(random_points):
    edges = triangulate(random_points(12, seed=1))
    tree = minimum_spanning_tree_kruskal(edges)

    none_added = add_loop_edges(tree, edges, 0, random.Random(1))
    all_added = add_loop_edges(tree, edges, 100, random.Random(1))

    assert none_added == tree
    assert all_added[: len(tree)] == tree
    assert set(all_added) == set(edges)
    assert len(all_added) == len(edges)


def test_loop_edges_consume_one_draw_per_edge(random_points):
    edges = triangulate(random_points(10, seed=3))
    tree = minimum_spanning_tree_kruskal(edges)
    rng = random.Random(77)
    reference = random.Random(77)

    add_loop_edges(tree, edges, 50, rng)
    for _ in edges:
        reference.random()

    assert rng.random() == reference.random()


def test_higher_loop_chance_yields_superset(random_points):
    edges = triangulate(random_points(14, seed=8))
    tree = minimum_spanning_tree_kruskal(edges)

    low = add_loop_edges(tree, edges, 20, random.Random(4))
    high = add_loop_edges(tree, edges, 60, random.Random(4))

    assert set(low) <= set(high)
