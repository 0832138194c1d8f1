"""R-tree spatial index used for collision-free room placement and room lookup."""

from __future__ import annotations

import heapq
import math
from collections import deque
from typing import Generic, Iterable, List, Optional, Sequence, TypeVar

from dungeon_constants import (
    DEFAULT_FILL_FACTOR,
    DEFAULT_MAX_ENTRIES,
    MINIMUM_MAX_ENTRIES,
    MINIMUM_MIN_ENTRIES,
    NEAR_EQUAL_TOLERANCE,
)
from dungeon_geometry import EMPTY_BOUNDS, BoundingBox, HasBoundingBox, Vec3

T = TypeVar("T", bound=HasBoundingBox)


def enclosing_bbox(items: Iterable[HasBoundingBox]) -> BoundingBox:
    bbox = EMPTY_BOUNDS
    for item in items:
        bbox = bbox.extend(item.bbox)
    return bbox


class RTreeNode:
    """Internal or leaf node; leaves (height 1) hold stored items."""

    __slots__ = ("children", "height", "_bbox")

    def __init__(self, children: List[HasBoundingBox], height: int) -> None:
        self.children = children
        self.height = height
        self._bbox = enclosing_bbox(children)

    @property
    def bbox(self) -> BoundingBox:
        return self._bbox

    @property
    def is_leaf(self) -> bool:
        return self.height == 1

    def add(self, child: HasBoundingBox) -> None:
        self.children.append(child)
        self._bbox = self._bbox.extend(child.bbox)

    def truncate(self, length: int) -> None:
        del self.children[length:]
        self.reset_bbox()

    def reset_bbox(self) -> None:
        self._bbox = enclosing_bbox(self.children)


class RTree(Generic[T]):
    """Height-balanced R-tree over anything exposing a ``bbox``.

    Follows the RBush insertion and split heuristics: least-enlargement subtree
    choice, split axis by minimum total margin, split index by minimum overlap
    then minimum area.
    """

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        self.max_entries = max(MINIMUM_MAX_ENTRIES, max_entries)
        self.min_entries = max(MINIMUM_MIN_ENTRIES, int(math.ceil(self.max_entries * DEFAULT_FILL_FACTOR)))
        self._root = RTreeNode([], 1)
        self._count = 0

    def __len__(self) -> int:
        return self._count

    @property
    def bbox(self) -> BoundingBox:
        return self._root.bbox

    @property
    def height(self) -> int:
        return self._root.height

    def clear(self) -> None:
        self._root = RTreeNode([], 1)
        self._count = 0

    # Queries -----------------------------------------------------------------

    def all_items(self) -> List[T]:
        found: List[T] = []
        self._collect(self._root, found)
        return found

    def search(self, query: BoundingBox) -> List[T]:
        """Return every stored item whose box intersects ``query``."""
        if not self._root.bbox.intersects(query):
            return []
        found: List[T] = []
        queue = deque([self._root])
        while queue:
            node = queue.popleft()
            for child in node.children:
                if not child.bbox.intersects(query):
                    continue
                if node.is_leaf:
                    found.append(child)  # type: ignore[arg-type]
                else:
                    queue.append(child)  # type: ignore[arg-type]
        return found

    def search_point(self, point: Vec3) -> List[T]:
        """Return every stored item whose box contains ``point``."""
        return self.search(BoundingBox.from_point(point))

    def collides(self, query: BoundingBox) -> bool:
        """Return True if any stored item intersects ``query``."""
        if not self._root.bbox.intersects(query):
            return False
        queue = deque([self._root])
        while queue:
            node = queue.popleft()
            for child in node.children:
                if not child.bbox.intersects(query):
                    continue
                if node.is_leaf:
                    return True
                queue.append(child)  # type: ignore[arg-type]
        return False

    def nearest(self, point: Vec3, k: int = 1, max_distance: Optional[float] = None) -> List[T]:
        """Return up to ``k`` items ordered by box distance to ``point``.

        ``k <= 0`` returns every item within ``max_distance``.
        """
        found: List[T] = []
        counter = 0
        queue: List[tuple] = [(0.0, counter, False, self._root)]
        while queue:
            distance, _, is_item, entry = heapq.heappop(queue)
            if max_distance is not None and distance > max_distance:
                break
            if is_item:
                found.append(entry)
                if 0 < k <= len(found):
                    break
                continue
            for child in entry.children:
                counter += 1
                heapq.heappush(queue, (child.bbox.distance_to(point), counter, entry.is_leaf, child))
        return found

    # Mutation ----------------------------------------------------------------

    def insert(self, item: T) -> None:
        self._insert(item, self._root.height)
        self._count += 1

    def load(self, items: Iterable[T]) -> None:
        """Bulk-insert ``items``; large batches are packed into a fresh subtree."""
        data = list(items)
        if not data:
            return
        if len(data) < self.min_entries or (
            self._root.is_leaf and len(self._root.children) + len(data) < self.max_entries
        ):
            for item in data:
                self.insert(item)
            return

        subtree = self._build_tree(data)
        self._count += len(data)
        if not self._root.children:
            self._root = subtree
        elif self._root.height == subtree.height:
            if len(self._root.children) + len(subtree.children) <= self.max_entries:
                for child in subtree.children:
                    self._root.add(child)
            else:
                self._split_root(subtree)
        else:
            if self._root.height < subtree.height:
                self._root, subtree = subtree, self._root
            self._insert(subtree, self._root.height - subtree.height)

    def remove(self, item: T) -> bool:
        """Remove every stored entry equal to ``item``; return True if any was found."""
        return self._remove(self._root, item)

    # Internals ---------------------------------------------------------------

    def _collect(self, node: RTreeNode, found: List[T]) -> None:
        if node.is_leaf:
            found.extend(node.children)  # type: ignore[arg-type]
            return
        for child in node.children:
            self._collect(child, found)  # type: ignore[arg-type]

    def _remove(self, node: RTreeNode, item: T) -> bool:
        if not node.bbox.contains_box(item.bbox):
            return False
        if node.is_leaf:
            kept = [child for child in node.children if child != item]
            removed = len(node.children) - len(kept)
            if not removed:
                return False
            node.children[:] = kept
            self._count -= removed
            node.reset_bbox()
            return True

        changed = False
        for child in node.children:
            changed |= self._remove(child, item)  # type: ignore[arg-type]
        if changed:
            node.children[:] = [c for c in node.children if c.children]  # type: ignore[attr-defined]
            node.reset_bbox()
            if node is self._root and not node.children:
                self.clear()
        return changed

    def _choose_path(self, bbox: BoundingBox, depth: int) -> List[RTreeNode]:
        path: List[RTreeNode] = []
        node = self._root
        while True:
            path.append(node)
            if node.is_leaf or len(path) == depth:
                return path

            # Least enlargement, then the smaller child.
            best = node.children[0]
            best_enlargement = math.inf
            best_area = math.inf
            for child in node.children:
                area = child.bbox.area
                enlargement = child.bbox.extend(bbox).area - area
                if enlargement > best_enlargement + NEAR_EQUAL_TOLERANCE:
                    continue
                tie = abs(enlargement - best_enlargement) < NEAR_EQUAL_TOLERANCE
                if tie and area >= best_area:
                    continue
                best = child
                best_enlargement = enlargement
                best_area = area
            node = best  # type: ignore[assignment]

    def _insert(self, entry: HasBoundingBox, depth: int) -> None:
        path = self._choose_path(entry.bbox, depth)
        path[-1].add(entry)

        level = len(path) - 1
        while level >= 0:
            node = path[level]
            if len(node.children) > self.max_entries:
                sibling = self._split(node)
                if level == 0:
                    self._split_root(sibling)
                else:
                    path[level - 1].add(sibling)
            else:
                node.reset_bbox()
            level -= 1

    def _split_root(self, sibling: RTreeNode) -> None:
        self._root = RTreeNode([self._root, sibling], self._root.height + 1)

    def _split(self, node: RTreeNode) -> RTreeNode:
        self._sort_by_best_axis(node)
        index = self._best_split_index(node.children)
        sibling = RTreeNode(node.children[index:], node.height)
        node.truncate(index)
        return sibling

    def _sort_by_best_axis(self, node: RTreeNode) -> None:
        margins = []
        for axis in range(3):
            node.children.sort(key=lambda child, a=axis: child.bbox.min[a])
            margins.append(self._split_margins(node.children))
        best_axis = min(range(3), key=lambda a: margins[a])
        node.children.sort(key=lambda child: child.bbox.min[best_axis])

    def _split_margins(self, children: Sequence[HasBoundingBox]) -> float:
        return self._enclosing_margins(children) + self._enclosing_margins(list(reversed(children)))

    def _enclosing_margins(self, children: Sequence[HasBoundingBox]) -> float:
        bbox = enclosing_bbox(children[: self.min_entries])
        total = bbox.margin
        for child in children[self.min_entries : len(children) - self.min_entries]:
            bbox = bbox.extend(child.bbox)
            total += bbox.margin
        return total

    def _best_split_index(self, children: Sequence[HasBoundingBox]) -> int:
        best_index = self.min_entries
        best_score = None
        for index in range(self.min_entries, len(children) - self.min_entries + 1):
            left = enclosing_bbox(children[:index])
            right = enclosing_bbox(children[index:])
            score = (left.intersection(right).area, left.area + right.area)
            if best_score is None or score < best_score:
                best_score = score
                best_index = index
        return best_index

    def _build_tree(self, data: List[T]) -> RTreeNode:
        height = max(1, int(math.ceil(math.log(len(data)) / math.log(self.max_entries))))
        root_entries = int(math.ceil(len(data) / (self.max_entries ** (height - 1))))
        return self._build_nodes(data, height, root_entries)

    def _build_nodes(self, data: List[HasBoundingBox], height: int, max_entries: int) -> RTreeNode:
        if len(data) <= max_entries:
            if height == 1:
                return RTreeNode(list(data), height)
            return RTreeNode([self._build_nodes(data, height - 1, self.max_entries)], height)

        node_size = (len(data) + max_entries - 1) // max_entries
        slab_size = node_size * int(math.ceil(math.sqrt(max_entries)))

        children: List[HasBoundingBox] = []
        by_x = sorted(data, key=lambda item: item.bbox.min.x)
        for slab_start in range(0, len(by_x), slab_size):
            by_z = sorted(by_x[slab_start : slab_start + slab_size], key=lambda item: item.bbox.min.z)
            for chunk_start in range(0, len(by_z), node_size):
                chunk = by_z[chunk_start : chunk_start + node_size]
                children.append(self._build_nodes(chunk, height - 1, self.max_entries))
        return RTreeNode(children, height)
