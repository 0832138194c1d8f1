"""Indexed binary min-heap used as the A* open set."""

from __future__ import annotations

from typing import Generic, List, Optional, Protocol, TypeVar


class HeapItem(Protocol):
    """Items track their own slot so the heap can find them in O(1)."""

    heap_index: int

    def __lt__(self, other) -> bool: ...


H = TypeVar("H", bound=HeapItem)


class BinaryHeap(Generic[H]):
    """Min-heap ordered by the items' ``<``; ``heap_index`` is kept current on every swap."""

    def __init__(self) -> None:
        self._items: List[H] = []

    def __len__(self) -> int:
        return len(self._items)

    @property
    def empty(self) -> bool:
        return not self._items

    def add(self, item: H) -> None:
        item.heap_index = len(self._items)
        self._items.append(item)
        self._sort_up(item)

    def peek(self) -> Optional[H]:
        return self._items[0] if self._items else None

    def remove_first(self) -> H:
        """Pop and return the smallest item."""
        if not self._items:
            raise IndexError("remove_first from an empty heap")
        first = self._items[0]
        last = self._items.pop()
        if last is not first:
            last.heap_index = 0
            self._items[0] = last
            self._sort_down(last)
        first.heap_index = -1
        return first

    def update(self, item: H) -> None:
        """Restore heap order after ``item``'s priority changed in either direction."""
        self._sort_up(item)
        self._sort_down(item)

    def contains(self, item: H) -> bool:
        index = item.heap_index
        return 0 <= index < len(self._items) and self._items[index] is item

    def _sort_up(self, item: H) -> None:
        while item.heap_index > 0:
            parent = self._items[(item.heap_index - 1) // 2]
            if not item < parent:
                return
            self._swap(item, parent)

    def _sort_down(self, item: H) -> None:
        while True:
            left = item.heap_index * 2 + 1
            right = left + 1
            if left >= len(self._items):
                return
            child = self._items[left]
            if right < len(self._items) and self._items[right] < child:
                child = self._items[right]
            if not child < item:
                return
            self._swap(item, child)

    def _swap(self, a: H, b: H) -> None:
        ia, ib = a.heap_index, b.heap_index
        self._items[ia], self._items[ib] = b, a
        a.heap_index, b.heap_index = ib, ia
