import random

import pytest

from dungeon_geometry import BoundingBox, Vec3
from spatial_index import RTree, RTreeNode


def random_boxes(count: int, seed: int = 0):
    generator = random.Random(seed)
    boxes = []
    for _ in range(count):
        low = Vec3(generator.uniform(0, 100), generator.uniform(0, 20), generator.uniform(0, 100))
        size = Vec3(generator.uniform(0.5, 8), generator.uniform(0.5, 4), generator.uniform(0.5, 8))
        boxes.append(BoundingBox(low, low + size))
    return boxes


def leaf_depths(node: RTreeNode, depth: int = 1):
    if node.is_leaf:
        return {depth}
    depths = set()
    for child in node.children:
        depths |= leaf_depths(child, depth + 1)
    return depths


def test_entry_limits_are_clamped():
    small = RTree(2)
    default = RTree()

    assert (small.max_entries, small.min_entries) == (4, 2)
    assert (default.max_entries, default.min_entries) == (9, 4)


def test_empty_tree_queries_are_total():
    tree = RTree()
    query = BoundingBox(Vec3(0, 0, 0), Vec3(10, 10, 10))

    assert len(tree) == 0
    assert tree.search(query) == []
    assert not tree.collides(query)
    assert tree.nearest(Vec3(0, 0, 0)) == []
    assert not tree.remove(query)


def test_search_matches_brute_force_after_inserts():
    boxes = random_boxes(120)
    tree = RTree()
    for item in boxes:
        tree.insert(item)

    query = BoundingBox(Vec3(20, 0, 20), Vec3(60, 10, 60))
    expected = {item for item in boxes if item.intersects(query)}

    assert len(tree) == len(boxes)
    assert set(tree.search(query)) == expected
    assert tree.collides(query) is bool(expected)
    assert len(tree.all_items()) == len(boxes)


def test_root_split_increases_height_and_keeps_balance():
    tree = RTree()
    for item in random_boxes(10):
        tree.insert(item)

    assert tree.height == 2
    assert len(leaf_depths(tree._root)) == 1

    for item in random_boxes(200, seed=3):
        tree.insert(item)

    assert tree.height >= 3
    assert len(leaf_depths(tree._root)) == 1


def test_collides_detects_touching_boxes():
    tree = RTree()
    tree.insert(BoundingBox(Vec3(0, 0, 0), Vec3(2, 2, 2)))

    assert tree.collides(BoundingBox(Vec3(2, 0, 0), Vec3(4, 2, 2)))
    assert not tree.collides(BoundingBox(Vec3(3, 0, 0), Vec3(4, 2, 2)))


def test_search_point_finds_containing_boxes():
    inner = BoundingBox(Vec3(0, 0, 0), Vec3(4, 4, 4))
    outer = BoundingBox(Vec3(10, 0, 10), Vec3(12, 4, 12))
    tree = RTree()
    tree.insert(inner)
    tree.insert(outer)

    assert tree.search_point(Vec3(1, 1, 1)) == [inner]
    assert tree.search_point(Vec3(6, 1, 6)) == []


def test_remove_deletes_item_and_reports_missing():
    boxes = random_boxes(40, seed=7)
    tree = RTree()
    for item in boxes:
        tree.insert(item)

    target = boxes[13]

    assert tree.remove(target)
    assert len(tree) == len(boxes) - 1
    assert target not in tree.search(target)
    assert not tree.remove(target)
    assert set(tree.all_items()) == set(boxes) - {target}


def test_removing_everything_resets_tree():
    boxes = random_boxes(25, seed=11)
    tree = RTree()
    for item in boxes:
        tree.insert(item)
    for item in boxes:
        assert tree.remove(item)

    assert len(tree) == 0
    assert tree.height == 1
    assert tree.all_items() == []


@pytest.mark.parametrize("count", [3, 9, 100, 500])
def test_bulk_load_matches_inserts(count):
    boxes = random_boxes(count, seed=count)
    tree = RTree()
    tree.load(boxes)

    query = BoundingBox(Vec3(0, 0, 0), Vec3(50, 20, 50))

    assert len(tree) == count
    assert set(tree.search(query)) == {item for item in boxes if item.intersects(query)}
    assert len(leaf_depths(tree._root)) == 1


def test_bulk_load_into_populated_tree():
    existing = random_boxes(5, seed=1)
    loaded = random_boxes(60, seed=2)
    tree = RTree()
    for item in existing:
        tree.insert(item)
    tree.load(loaded)

    assert len(tree) == 65
    assert set(tree.all_items()) == set(existing) | set(loaded)
    assert len(leaf_depths(tree._root)) == 1


def test_nearest_returns_items_by_distance():
    boxes = random_boxes(80, seed=5)
    tree = RTree()
    tree.load(boxes)
    point = Vec3(50, 5, 50)

    found = tree.nearest(point, k=5)
    expected = sorted(item.distance_to(point) for item in boxes)[:5]

    assert [item.distance_to(point) for item in found] == pytest.approx(expected)


def test_nearest_respects_max_distance():
    tree = RTree()
    near = BoundingBox(Vec3(1, 0, 0), Vec3(2, 1, 1))
    far = BoundingBox(Vec3(50, 0, 0), Vec3(51, 1, 1))
    tree.insert(near)
    tree.insert(far)

    assert tree.nearest(Vec3(0, 0, 0), k=0, max_distance=10) == [near]


def test_insert_descends_into_child_needing_least_enlargement():
    large = BoundingBox(Vec3(0, 0, 0), Vec3(10, 10, 10))
    small = BoundingBox(Vec3(20, 20, 20), Vec3(21, 21, 21))
    large_leaf = RTreeNode([large], 1)
    small_leaf = RTreeNode([small], 1)
    tree = RTree()
    tree._root = RTreeNode([small_leaf, large_leaf], 2)
    tree._count = 2

    # Growing the large child costs less volume even though the result is bigger.
    item = BoundingBox(Vec3(11, 11, 11), Vec3(11.5, 11.5, 11.5))
    tree.insert(item)

    assert item in large_leaf.children
    assert item not in small_leaf.children


def test_insert_breaks_enlargement_ties_by_smaller_child():
    wide = BoundingBox(Vec3(0, 0, 0), Vec3(10, 10, 10))
    narrow = BoundingBox(Vec3(2, 2, 2), Vec3(4, 4, 4))
    wide_leaf = RTreeNode([wide], 1)
    narrow_leaf = RTreeNode([narrow], 1)
    tree = RTree()
    tree._root = RTreeNode([wide_leaf, narrow_leaf], 2)
    tree._count = 2

    # Inside both children, so neither grows.
    item = BoundingBox(Vec3(2.5, 2.5, 2.5), Vec3(3, 3, 3))
    tree.insert(item)

    assert item in narrow_leaf.children
    assert item not in wide_leaf.children
