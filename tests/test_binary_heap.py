import random

import pytest

from binary_heap import BinaryHeap


class Item:
    def __init__(self, priority: float) -> None:
        self.priority = priority
        self.heap_index = -1

    def __lt__(self, other: "Item") -> bool:
        return self.priority < other.priority


def test_remove_first_returns_items_in_priority_order():
    generator = random.Random(3)
    heap = BinaryHeap()
    items = [Item(generator.random()) for _ in range(50)]
    for item in items:
        heap.add(item)

    popped = [heap.remove_first().priority for _ in range(len(items))]

    assert popped == sorted(item.priority for item in items)
    assert heap.empty


def test_heap_index_tracks_slot_and_contains():
    heap = BinaryHeap()
    a, b, c = Item(3), Item(1), Item(2)
    for item in (a, b, c):
        heap.add(item)

    assert heap.peek() is b
    assert all(heap.contains(item) for item in (a, b, c))

    first = heap.remove_first()

    assert first is b
    assert first.heap_index == -1
    assert not heap.contains(b)
    assert len(heap) == 2


def test_update_restores_order_after_priority_changes():
    generator = random.Random(9)
    heap = BinaryHeap()
    items = [Item(generator.uniform(0, 100)) for _ in range(40)]
    for item in items:
        heap.add(item)

    for item in generator.sample(items, 15):
        item.priority = generator.uniform(-50, 150)
        heap.update(item)

    popped = [heap.remove_first().priority for _ in range(len(items))]

    assert popped == sorted(item.priority for item in items)


def test_remove_first_on_empty_heap_raises():
    heap = BinaryHeap()

    assert heap.peek() is None
    with pytest.raises(IndexError):
        heap.remove_first()


@pytest.mark.parametrize("seed", range(5))
def test_mixed_operations_match_sorted_oracle(seed):
    generator = random.Random(seed)
    heap = BinaryHeap()
    present = []

    for _ in range(400):
        action = generator.random()
        if action < 0.45 or not present:
            item = Item(generator.uniform(0, 100))
            heap.add(item)
            present.append(item)
        elif action < 0.75:
            first = heap.remove_first()
            assert first.priority == min(item.priority for item in present)
            present.remove(first)
            assert not heap.contains(first)
        else:
            item = generator.choice(present)
            item.priority = generator.uniform(-50, 150)
            heap.update(item)

        assert len(heap) == len(present)
        assert all(heap.contains(item) for item in present)
        if present:
            assert heap.peek().priority == min(item.priority for item in present)

    assert [heap.remove_first().priority for _ in range(len(present))] == sorted(item.priority for item in present)
