#!/usr/bin/env python3

from __future__ import annotations

import argparse
import json
import random
import sys

from dungeon_config import (
    CostModel,
    GridDimensionality,
    LayoutStrategy,
    LevelConfig,
    SocketStrategy,
    SpanningTreeAlgorithm,
)
from dungeon_constants import RANDOM_SEED
from dungeon_generator import generate
from dungeon_logging import configure_logging
from dungeon_models import GenerationResult


def build_config(args: argparse.Namespace) -> LevelConfig:
    # Multi-level scattered rooms.
    if args.layout == LayoutStrategy.SCATTER.value:
        return LevelConfig(
            boundaries=(args.width, args.height, args.depth),
            room_size=3,
            room_size_variation=3,
            room_count=args.rooms,
            room_count_variation=3,
            level_height=4,
            level_height_variation=1,
            loop_chance=args.loop_chance,
            spanning_tree=SpanningTreeAlgorithm(args.tree),
            layout=LayoutStrategy.SCATTER,
            dimensionality=GridDimensionality(args.grid),
            cost_model=CostModel.simple() if args.simple_costs else CostModel.weighted(),
            socket_strategy=SocketStrategy(args.sockets),
            collect_metrics=args.metrics,
        )

    # Single-floor partitioned layout.
    return LevelConfig(
        boundaries=(args.width, args.height, args.depth),
        room_count=args.rooms,
        room_count_variation=0,
        segments=6,
        offset=4,
        split_area_range=100,
        level_height=1.5,
        level_height_variation=0,
        loop_chance=args.loop_chance,
        spanning_tree=SpanningTreeAlgorithm(args.tree),
        layout=LayoutStrategy.PARTITION,
        dimensionality=GridDimensionality(args.grid),
        cost_model=CostModel.simple() if args.simple_costs else CostModel.weighted(),
        socket_strategy=SocketStrategy(args.sockets),
        collect_metrics=args.metrics,
    )


def summarize(result: GenerationResult) -> dict:
    return {
        "seed": result.seed,
        "rooms": [
            {"position": list(room.position), "size": list(room.size)} for room in result.rooms
        ],
        "edges": len(result.edges),
        "loops": len(result.loop_edges),
        "corridors": [[list(node.grid_pos) for node in corridor] for corridor in result.corridors],
        "unrouted": len(result.unrouted_edges),
        "metrics": result.metrics.snapshot() if result.metrics else None,
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate one dungeon level and print it as JSON.")
    parser.add_argument("--seed", type=int, default=RANDOM_SEED)
    parser.add_argument("--layout", choices=[s.value for s in LayoutStrategy], default=LayoutStrategy.SCATTER.value)
    parser.add_argument("--grid", choices=[d.value for d in GridDimensionality], default=GridDimensionality.VOLUMETRIC.value)
    parser.add_argument("--tree", choices=[a.value for a in SpanningTreeAlgorithm], default=SpanningTreeAlgorithm.KRUSKAL.value)
    parser.add_argument("--sockets", choices=[s.value for s in SocketStrategy], default=SocketStrategy.NEAREST.value)
    parser.add_argument("--width", type=int, default=10)
    parser.add_argument("--height", type=int, default=5)
    parser.add_argument("--depth", type=int, default=10)
    parser.add_argument("--rooms", type=int, default=7)
    parser.add_argument("--loop-chance", type=float, default=2.0)
    parser.add_argument("--simple-costs", action="store_true")
    parser.add_argument("--metrics", action="store_true")
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument("--json-logs", action="store_true")
    args = parser.parse_args()

    configure_logging(args.log_level, args.json_logs)

    seed = args.seed
    if seed is None:
        # Pick a seed and print it, so a run can be reproduced with --seed.
        seed = random.randint(0, 1000000)
    # stderr, so stdout stays valid JSON.
    print(f"Using random seed {seed}", file=sys.stderr)
    config = build_config(args)

    result = generate(seed, config)
    print(json.dumps(summarize(result), indent=2))


if __name__ == "__main__":
    main()
