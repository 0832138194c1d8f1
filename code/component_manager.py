"""Component management utilities backed by a disjoint-set union structure."""

from __future__ import annotations

from typing import Dict, Generic, Hashable, Iterable, List, TypeVar

K = TypeVar("K", bound=Hashable)


class DisjointSetUnion(Generic[K]):
    """Disjoint set union with path compression and canonical minimum roots.

    Keys must be hashable and mutually orderable.
    """

    def __init__(self, items: Iterable[K] = ()) -> None:
        self._parent: Dict[K, K] = {}
        for item in items:
            self._ensure(item)

    def __contains__(self, item: object) -> bool:
        return item in self._parent

    def __len__(self) -> int:
        return len(self._parent)

    def _ensure(self, item: K) -> None:
        if item not in self._parent:
            self._parent[item] = item

    def find(self, item: K) -> K:
        self._ensure(item)
        root = item
        while self._parent[root] != root:
            root = self._parent[root]
        while self._parent[item] != root:
            self._parent[item], item = root, self._parent[item]
        return root

    def union(self, a: K, b: K) -> K:
        root_a = self.find(a)
        root_b = self.find(b)
        if root_a == root_b:
            return root_a
        # Always keep the smaller key as the canonical representative to retain determinism.
        if root_a < root_b:  # type: ignore[operator]
            self._parent[root_b] = root_a
            return root_a
        self._parent[root_a] = root_b
        return root_b

    def connected(self, a: K, b: K) -> bool:
        return self.find(a) == self.find(b)


class ComponentManager:
    """Tracks which rooms are joined by carved corridors."""

    def __init__(self, room_count: int) -> None:
        self._dsu: DisjointSetUnion[int] = DisjointSetUnion(range(room_count))
        self._room_count = room_count

    def connect(self, room_a: int, room_b: int) -> int:
        return self._dsu.union(room_a, room_b)

    def room_component(self, room_index: int) -> int:
        return self._dsu.find(room_index)

    def components_equal(self, room_a: int, room_b: int) -> bool:
        return self._dsu.connected(room_a, room_b)

    def component_summary(self) -> Dict[int, List[int]]:
        summary: Dict[int, List[int]] = {}
        for room_index in range(self._room_count):
            summary.setdefault(self.room_component(room_index), []).append(room_index)
        return summary

    def component_sizes(self) -> Dict[int, int]:
        return {root: len(members) for root, members in self.component_summary().items()}

    def total_components(self) -> int:
        return len(self.component_summary())

    def has_single_component(self) -> bool:
        return self.total_components() <= 1

    @property
    def room_count(self) -> int:
        return self._room_count
