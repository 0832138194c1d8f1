"""Delaunay triangulation of room centers and its reduction to a spanning tree with loops."""

from __future__ import annotations

import itertools
import random
from collections import Counter
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Set, Tuple, Union

import structlog

from component_manager import DisjointSetUnion
from dungeon_config import SpanningTreeAlgorithm
from dungeon_constants import NEAR_EQUAL_TOLERANCE, SUPRA_MARGIN, SUPRA_SCALE
from dungeon_geometry import BoundingBox, Edge, Tetrahedron, Triangle, Vec3

logger = structlog.get_logger()

Simplex = Union[Triangle, Tetrahedron]


def supra_triangle(points: Sequence[Vec3]) -> Triangle:
    """Right triangle on the XZ plane comfortably enclosing every point."""
    bbox = BoundingBox.enclosing(list(points), SUPRA_MARGIN)
    extent = max(bbox.width, bbox.depth) * SUPRA_SCALE
    low = bbox.min - Vec3(extent, 0.0, extent)
    reach = 3.0 * extent + max(bbox.width, bbox.depth)
    return Triangle(low, low + Vec3(reach, 0.0, 0.0), low + Vec3(0.0, 0.0, reach))


def supra_tetrahedron(points: Sequence[Vec3]) -> Tetrahedron:
    """Corner tetrahedron comfortably enclosing every point."""
    bbox = BoundingBox.enclosing(list(points), SUPRA_MARGIN)
    span = max(bbox.width, bbox.height, bbox.depth)
    extent = span * SUPRA_SCALE
    low = bbox.min - Vec3.splat(extent)
    reach = 4.0 * extent + 3.0 * span
    return Tetrahedron(
        low,
        low + Vec3(reach, 0.0, 0.0),
        low + Vec3(0.0, 0.0, reach),
        low + Vec3(0.0, reach, 0.0),
    )


def triangulate_2d(points: Sequence[Vec3]) -> List[Triangle]:
    """Bowyer-Watson on the XZ plane; the y coordinate of each point is carried through."""
    supra = supra_triangle(points)
    triangles: List[Triangle] = [supra]

    for point in points:
        bad = [t for t in triangles if t.contains(point)]
        if not bad:
            continue
        owners: Counter[FrozenSet[Vec3]] = Counter(edge.key for t in bad for edge in t.edges)
        boundary = [edge for t in bad for edge in t.edges if owners[edge.key] == 1]

        bad_ids = {id(t) for t in bad}
        triangles = [t for t in triangles if id(t) not in bad_ids]
        triangles.extend(Triangle(edge.a, edge.b, point) for edge in boundary)

    supra_vertices = supra.vertices
    return [t for t in triangles if not any(t.has_vertex(v) for v in supra_vertices)]


def triangulate_3d(points: Sequence[Vec3]) -> List[Tetrahedron]:
    """Bowyer-Watson tetrahedralisation."""
    supra = supra_tetrahedron(points)
    tetrahedra: List[Tetrahedron] = [supra]

    for point in points:
        bad = [t for t in tetrahedra if t.contains(point)]
        if not bad:
            continue
        owners: Counter[FrozenSet[Vec3]] = Counter(frozenset(face) for t in bad for face in t.faces)
        boundary = [face for t in bad for face in t.faces if owners[frozenset(face)] == 1]

        bad_ids = {id(t) for t in bad}
        tetrahedra = [t for t in tetrahedra if id(t) not in bad_ids]
        tetrahedra.extend(Tetrahedron(a, b, c, point) for a, b, c in boundary)

    supra_vertices = supra.vertices
    return [t for t in tetrahedra if not any(t.has_vertex(v) for v in supra_vertices)]


def unique_edges(simplices: Iterable[Simplex]) -> List[Edge]:
    """Deduplicate the edges of ``simplices``, keeping first-seen order."""
    seen: Set[Edge] = set()
    edges: List[Edge] = []
    for simplex in simplices:
        for edge in simplex.edges:
            if edge not in seen:
                seen.add(edge)
                edges.append(edge)
    return edges


def _plane_basis(points: Sequence[Vec3]) -> Optional[Tuple[Vec3, Vec3, Vec3]]:
    """Origin and two orthonormal in-plane axes spanned by the first non-collinear triple.

    Returns None when every point lies on one line.
    """
    origin = points[0]
    first: Optional[Vec3] = None
    for point in points[1:]:
        offset = point - origin
        if offset.magnitude < NEAR_EQUAL_TOLERANCE:
            continue
        if first is None:
            first = offset
            continue
        normal = first.cross(offset)
        if normal.magnitude > NEAR_EQUAL_TOLERANCE * first.magnitude * offset.magnitude:
            u = first.normalized()
            return origin, u, normal.normalized().cross(u)
    return None


def _is_coplanar(points: Sequence[Vec3], origin: Vec3, u: Vec3, v: Vec3) -> bool:
    normal = u.cross(v)
    return all(abs((point - origin).dot(normal)) < NEAR_EQUAL_TOLERANCE for point in points)


def _triangulate_in_plane(points: Sequence[Vec3], origin: Vec3, u: Vec3, v: Vec3) -> List[Edge]:
    """Triangulate coplanar points in the plane's own (u, v) coordinates laid onto XZ."""
    flattened: Dict[Vec3, Vec3] = {}
    for point in points:
        offset = point - origin
        flattened.setdefault(Vec3(offset.dot(u), 0.0, offset.dot(v)), point)
    edges = unique_edges(triangulate_2d(list(flattened)))
    return [Edge(flattened[edge.a], flattened[edge.b]) for edge in edges]


def _chain_edges(points: Sequence[Vec3]) -> List[Edge]:
    """Edges joining collinear points in order along their line."""
    ordered = sorted(points)
    return [Edge(a, b) for a, b in zip(ordered, ordered[1:])]


def bridge_components(points: Sequence[Vec3], edges: List[Edge]) -> List[Edge]:
    """Add the shortest edges needed to join every point into one component.

    Returns ``edges`` unchanged when they already span ``points``.
    """
    components: DisjointSetUnion[Vec3] = DisjointSetUnion(points)
    for edge in edges:
        components.union(edge.a, edge.b)
    if len({components.find(point) for point in points}) <= 1:
        return edges

    candidates = sorted(
        (Edge(a, b) for a, b in itertools.combinations(points, 2) if not components.connected(a, b)),
        key=lambda edge: edge.length,
    )
    bridged = list(edges)
    for edge in candidates:
        if components.connected(edge.a, edge.b):
            continue
        components.union(edge.a, edge.b)
        bridged.append(edge)
    logger.warning("triangulation_bridged", points=len(points), bridges=len(bridged) - len(edges))
    return bridged


def triangulate(points: Sequence[Vec3]) -> List[Edge]:
    """Return the unique edges of the Delaunay triangulation of ``points``.

    Fewer than two distinct points give no edges and collinear points give a
    chain. Coplanar points, on any plane, are triangulated in 2D within that
    plane, anything else in 3D. The result always joins every distinct point.
    """
    distinct = list(dict.fromkeys(points))
    if len(distinct) < 2:
        return []
    basis = _plane_basis(distinct)
    if len(distinct) == 2 or basis is None:
        return _chain_edges(distinct)

    if BoundingBox.enclosing(distinct).plane_axis == 1:
        edges = unique_edges(triangulate_2d(distinct))
    elif _is_coplanar(distinct, *basis):
        edges = _triangulate_in_plane(distinct, *basis)
    else:
        edges = unique_edges(triangulate_3d(distinct))
    return bridge_components(distinct, edges)


# Spanning trees ----------------------------------------------------------------


def minimum_spanning_tree_kruskal(edges: Iterable[Edge]) -> List[Edge]:
    ordered = sorted(edges, key=lambda edge: edge.length)
    components: DisjointSetUnion[Vec3] = DisjointSetUnion()
    tree: List[Edge] = []
    for edge in ordered:
        if components.connected(edge.a, edge.b):
            continue
        components.union(edge.a, edge.b)
        tree.append(edge)
    return tree


def minimum_spanning_tree_prim(edges: Iterable[Edge], start: Vec3) -> List[Edge]:
    """Grow a tree from ``start``; stops at the reachable component."""
    remaining = list(edges)
    visited = {start}
    tree: List[Edge] = []

    while remaining:
        best_index = -1
        best_length = float("inf")
        for index, edge in enumerate(remaining):
            if (edge.a in visited) == (edge.b in visited):
                continue
            if edge.length < best_length:
                best_index = index
                best_length = edge.length
        if best_index < 0:
            break
        edge = remaining.pop(best_index)
        tree.append(edge)
        visited.add(edge.a)
        visited.add(edge.b)
    return tree


def spanning_tree(
    edges: Sequence[Edge],
    algorithm: SpanningTreeAlgorithm,
    start: Optional[Vec3] = None,
) -> List[Edge]:
    if algorithm is SpanningTreeAlgorithm.PRIM:
        if start is None:
            if not edges:
                return []
            start = edges[0].a
        return minimum_spanning_tree_prim(edges, start)
    return minimum_spanning_tree_kruskal(edges)


def add_loop_edges(
    tree: Sequence[Edge],
    edges: Sequence[Edge],
    loop_chance: float,
    rng: random.Random,
) -> List[Edge]:
    """Return ``tree`` plus each other edge kept with probability ``loop_chance`` percent.

    One random draw is made per edge, including tree edges, so the stream
    consumption does not depend on the tree.
    """
    graph = list(tree)
    members: Set[Edge] = set(tree)
    probability = loop_chance / 100.0
    for edge in edges:
        if rng.random() < probability and edge not in members:
            graph.append(edge)
            members.add(edge)
    logger.debug("loop_edges_added", tree=len(tree), loops=len(graph) - len(tree))
    return graph


def graph_vertices(edges: Iterable[Edge]) -> Dict[Vec3, int]:
    """Map each vertex to its degree in ``edges``."""
    degrees: Dict[Vec3, int] = {}
    for edge in edges:
        for vertex in edge.vertices:
            degrees[vertex] = degrees.get(vertex, 0) + 1
    return degrees
