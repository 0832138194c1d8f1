import math

import pytest

from dungeon_config import (
    CostModel,
    GridDimensionality,
    LayoutStrategy,
    LevelConfig,
    SocketStrategy,
    SpanningTreeAlgorithm,
)


def test_defaults_describe_a_small_volumetric_level():
    config = LevelConfig()

    assert config.boundaries == (10, 5, 10)
    assert config.layout is LayoutStrategy.SCATTER
    assert config.dimensionality is GridDimensionality.VOLUMETRIC
    assert config.spanning_tree is SpanningTreeAlgorithm.KRUSKAL
    assert config.cost_model == CostModel.weighted()
    assert config.socket_strategy is SocketStrategy.NEAREST
    assert config.loop_probability == pytest.approx(0.02)
    assert not config.is_flat


def test_enum_values_are_coerced():
    config = LevelConfig(layout="partition", dimensionality="flat", spanning_tree="prim", socket_strategy="facing")

    assert config.layout is LayoutStrategy.PARTITION
    assert config.is_flat
    assert config.spanning_tree is SpanningTreeAlgorithm.PRIM
    assert config.socket_strategy is SocketStrategy.FACING


@pytest.mark.parametrize(
    "overrides",
    [
        {"boundaries": (10, 0, 10)},
        {"boundaries": (10, 10)},
        {"room_size": 0},
        {"room_count": 0},
        {"room_count_variation": -1},
        {"level_height": 0},
        {"segments": 1.5},
        {"offset": 0},
        {"split_area_range": 0},
        {"loop_chance": 101},
        {"loop_chance": -1},
        {"grid_margin": 0},
        {"max_placement_attempts": 0},
    ],
)
def test_invalid_values_raise(overrides):
    with pytest.raises(ValueError):
        LevelConfig(**overrides)


def test_unknown_enum_value_raises():
    with pytest.raises(ValueError):
        LevelConfig(layout="spiral")


def test_cost_model_presets():
    simple = CostModel.simple()

    assert simple.diagonal_weight == pytest.approx(math.sqrt(2))
    assert (simple.room_penalty, simple.corridor_penalty, simple.empty_penalty) == (0, 0, 0)
    assert CostModel.weighted().empty_penalty < 0 < CostModel.weighted().room_penalty


@pytest.mark.parametrize("weight", [0, -1, 2.5])
def test_cost_model_rejects_bad_diagonal_weight(weight):
    with pytest.raises(ValueError):
        CostModel(diagonal_weight=weight)
