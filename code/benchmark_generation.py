#!/usr/bin/env python3

# This file performs multiple runs of level generation, collecting and reporting metrics.
# Used for testing both performance of the pipeline and connectivity of resulting levels.

from __future__ import annotations

import argparse
from dataclasses import dataclass
import json
import math
import random
import statistics
import time
from typing import Any, Callable, Dict, List

import networkx as nx

from dungeon_config import GridDimensionality, LayoutStrategy, LevelConfig, SpanningTreeAlgorithm
from dungeon_generator import DungeonGenerator
from dungeon_logging import configure_logging
from dungeon_models import GenerationResult

PERCENTILES = [1.0, 5.0] + [float(value) for value in range(10, 100, 10)] + [99.0]


def build_config(layout: str, dimensionality: str, algorithm: str, loop_chance: float) -> LevelConfig:
    return LevelConfig(
        boundaries=(20, 6, 20),
        room_count=10,
        layout=LayoutStrategy(layout),
        dimensionality=GridDimensionality(dimensionality),
        spanning_tree=SpanningTreeAlgorithm(algorithm),
        loop_chance=loop_chance,
        collect_metrics=True,
    )


@dataclass
class GenerationRunResult:
    seed: int
    duration: float
    total_rooms: int
    total_edges: int
    total_corridors: int
    unrouted_edges: int
    corridor_cells: int
    cycle_count: int
    largest_component_fraction: float
    graph_diameter: int
    stage_metrics: Dict[str, Dict[str, float | int]]


def percentile(values: List[float], pct: float) -> float:
    if not values:
        return float("nan")
    if pct <= 0:
        return min(values)
    if pct >= 100:
        return max(values)
    ordered = sorted(values)
    rank = (len(ordered) - 1) * (pct / 100.0)
    lower = math.floor(rank)
    upper = math.ceil(rank)
    if lower == upper:
        return ordered[int(rank)]
    fraction = rank - lower
    return ordered[lower] + (ordered[upper] - ordered[lower]) * fraction


def compute_basic_stats(values: List[float]) -> Dict[str, float]:
    return {
        "mean": statistics.mean(values),
        "median": statistics.median(values),
        "min": min(values),
        "max": max(values),
        "stdev": statistics.stdev(values) if len(values) > 1 else float("nan"),
    }


def format_seconds(value: float) -> str:
    if value >= 1.0:
        return f"{value:.3f}s"
    return f"{value * 1000:.1f}ms"


def format_value(value: float, formatter: Callable[[float], str] | None = None) -> str:
    numeric = float(value)
    if math.isnan(numeric):
        return "nan"
    if formatter is None:
        return f"{numeric:.3f}"
    return formatter(numeric)


def json_safe_number(value: float | int | None) -> float | int | None:
    if value is None:
        return None
    numeric = float(value)
    if math.isnan(numeric) or math.isinf(numeric):
        return None
    if isinstance(value, int):
        return value
    return numeric


@dataclass
class MetricDefinition:
    key: str
    name: str
    values: List[float]
    value_formatter: Callable[[float], str] | None = None


def report_metric(definition: MetricDefinition) -> None:
    values = definition.values
    print(definition.name + ":")
    if not values:
        print("  (no data)")
        return

    stats = compute_basic_stats(values)
    print(
        "  Count {count}, mean {mean}, median {median}, min {min}, max {max}, stdev {stdev}".format(
            count=len(values),
            **{key: format_value(value, definition.value_formatter) for key, value in stats.items()},
        )
    )
    parts = [f"p{pct:g}={format_value(percentile(values, pct), definition.value_formatter)}" for pct in PERCENTILES]
    print("  Percentiles: " + ", ".join(parts))


def summarize_metric_for_json(definition: MetricDefinition) -> Dict[str, Any]:
    values = definition.values
    summary: Dict[str, Any] = {"count": len(values)}
    if values:
        summary.update({key: json_safe_number(value) for key, value in compute_basic_stats(values).items()})
    summary["percentiles"] = {
        f"p{pct:g}": json_safe_number(percentile(values, pct)) if values else None for pct in PERCENTILES
    }
    return summary


def build_room_graph(result: GenerationResult) -> nx.Graph:
    """Rooms as nodes, one graph edge per corridor that was actually carved."""
    graph = nx.Graph()
    index_by_center = {room.center: index for index, room in enumerate(result.rooms)}
    graph.add_nodes_from(range(len(result.rooms)))
    for edge, path in result.routes.items():
        if not path:
            continue
        room_a = index_by_center.get(edge.a)
        room_b = index_by_center.get(edge.b)
        if room_a is not None and room_b is not None:
            graph.add_edge(room_a, room_b)
    return graph


def run_single_generation(seed: int, config: LevelConfig) -> GenerationRunResult:
    """Run one level generation with the provided seed and collect metrics."""
    generator = DungeonGenerator(config, seed)

    start = time.perf_counter()
    result = generator.generate()
    end = time.perf_counter()

    total_rooms = len(result.rooms)
    graph = build_room_graph(result)
    cycle_count = len(nx.cycle_basis(graph))

    largest_component_fraction = 0.0
    graph_diameter = 0
    if total_rooms > 0:
        largest = max(nx.connected_components(graph), key=len)
        largest_component_fraction = len(largest) / total_rooms
        if len(largest) >= 2:
            graph_diameter = int(nx.diameter(graph.subgraph(largest)))

    return GenerationRunResult(
        seed=seed,
        duration=end - start,
        total_rooms=total_rooms,
        total_edges=len(result.edges),
        total_corridors=len(result.corridors),
        unrouted_edges=len(result.unrouted_edges),
        corridor_cells=sum(len(path) for path in result.corridors),
        cycle_count=cycle_count,
        largest_component_fraction=largest_component_fraction,
        graph_diameter=graph_diameter,
        stage_metrics=result.metrics.snapshot() if result.metrics else {},
    )


def run_benchmark(num_runs: int, seed: int | None, config: LevelConfig) -> List[GenerationRunResult]:
    """Run the generator multiple times and collect run-level metrics."""
    rng = random.Random(seed)
    return [run_single_generation(rng.randint(0, 1_000_000), config) for _ in range(num_runs)]


def aggregate_stage_times(results: List[GenerationRunResult]) -> Dict[str, float]:
    totals: Dict[str, float] = {}
    for result in results:
        for name, metrics in result.stage_metrics.items():
            if name == "counters":
                continue
            totals[name] = totals.get(name, 0.0) + float(metrics.get("total_time", 0.0))
    return totals


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Run the level generator multiple times and report timing and connectivity statistics."
    )
    parser.add_argument("-n", "--runs", type=int, default=20, help="Number of generations to execute (default: 20)")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the harness RNG; keeps run seeds reproducible")
    parser.add_argument("--layout", choices=[s.value for s in LayoutStrategy], default=LayoutStrategy.SCATTER.value)
    parser.add_argument("--grid", choices=[d.value for d in GridDimensionality], default=GridDimensionality.VOLUMETRIC.value)
    parser.add_argument("--tree", choices=[a.value for a in SpanningTreeAlgorithm], default=SpanningTreeAlgorithm.KRUSKAL.value)
    parser.add_argument("--loop-chance", type=float, default=10.0)
    parser.add_argument("--output", type=str, default=None, help="Optional path for a JSON report")
    args = parser.parse_args()

    if args.runs <= 0:
        raise SystemExit("Number of runs must be a positive integer")

    configure_logging("WARNING")
    config = build_config(args.layout, args.grid, args.tree, args.loop_chance)
    results = run_benchmark(args.runs, args.seed, config)

    for idx, result in enumerate(results, start=1):
        print(
            "Run {idx:02d}: {time} (seed {seed}) | rooms {rooms} | edges {edges}"
            " | corridors {corridors} (unrouted {unrouted}) | cycles {cycles}".format(
                idx=idx,
                time=format_seconds(result.duration),
                seed=result.seed,
                rooms=result.total_rooms,
                edges=result.total_edges,
                corridors=result.total_corridors,
                unrouted=result.unrouted_edges,
                cycles=result.cycle_count,
            )
        )

    durations = [result.duration for result in results]
    worst_index = durations.index(max(durations))
    print()
    print(f"Worst-case generation time: {format_seconds(durations[worst_index])} (seed {results[worst_index].seed})")

    metrics_to_report = [
        MetricDefinition("generation_time", "Generation time", durations, lambda value: f"{value:.4f}s"),
        MetricDefinition("rooms", "Rooms placed", [float(r.total_rooms) for r in results], lambda value: f"{value:.0f}"),
        MetricDefinition("corridors", "Corridors carved", [float(r.total_corridors) for r in results], lambda value: f"{value:.0f}"),
        MetricDefinition("unrouted", "Unrouted edges", [float(r.unrouted_edges) for r in results], lambda value: f"{value:.0f}"),
        MetricDefinition("corridor_cells", "Corridor cells", [float(r.corridor_cells) for r in results], lambda value: f"{value:.0f}"),
        MetricDefinition(
            "largest_component_fraction",
            "Largest component coverage",
            [r.largest_component_fraction for r in results],
            lambda value: f"{value:.1%}",
        ),
        MetricDefinition("graph_diameter", "Graph diameter", [float(r.graph_diameter) for r in results], lambda value: f"{value:.0f}"),
        MetricDefinition("cycle_count", "Cycle count", [float(r.cycle_count) for r in results], lambda value: f"{value:.1f}"),
    ]

    aggregated: Dict[str, Any] = {}
    for metric in metrics_to_report:
        print()
        report_metric(metric)
        aggregated[metric.key] = summarize_metric_for_json(metric)

    stage_totals = aggregate_stage_times(results)
    if stage_totals:
        print()
        print("Stage performance summary:")
        for name, total in sorted(stage_totals.items(), key=lambda item: item[1], reverse=True):
            print(f"  {name}: total_time={format_seconds(total)}, avg_time={format_seconds(total / len(results))}")

    if args.output:
        report = {
            "parameters": {
                "runs": args.runs,
                "seed": args.seed,
                "layout": args.layout,
                "grid": args.grid,
                "tree": args.tree,
                "loop_chance": args.loop_chance,
            },
            "aggregated_results": aggregated,
            "stage_times": {name: json_safe_number(total) for name, total in stage_totals.items()},
            "results": [
                {
                    "run_id": idx,
                    "seed": result.seed,
                    "total_time_seconds": result.duration,
                    "rooms": result.total_rooms,
                    "corridors": result.total_corridors,
                    "cycles": result.cycle_count,
                }
                for idx, result in enumerate(results, start=1)
            ],
        }
        with open(args.output, "w", encoding="utf-8") as handle:
            json.dump(report, handle, indent=2)
        print()
        print(f"Benchmark results saved to {args.output}")


if __name__ == "__main__":
    main()
