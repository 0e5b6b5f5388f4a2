#!/usr/bin/env python3

from __future__ import annotations

import argparse
import logging
from typing import Optional, Sequence

from grid_renderer import MazeGridRenderer
from maze_config import build_default_config
from maze_generator import MazeGenerator
from maze_validation import validate_maze


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate a maze level and print it as ASCII.")
    parser.add_argument("--level", type=int, default=0, help="Circle level used to derive complexity")
    parser.add_argument("--seed", type=int, default=None, help="Random seed (random if omitted)")
    parser.add_argument("--show-doors", action="store_true", help="Mark connections by kind and list door owners")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    config = build_default_config(circle_level=args.level, random_seed=args.seed)
    generator = MazeGenerator()
    result = generator.generate_maze(config)

    print(f"Using random seed {result.seed}")
    renderer = MazeGridRenderer(result.layout.grid_size)
    renderer.draw(result.graph, show_doors=args.show_doors)
    renderer.print_grid()

    graph = result.graph
    print(
        f"Rooms: {len(graph.nodes)}  Edges: {len(graph.edges)}  "
        f"Loops: {len(graph.loop_edges)}/{result.diagnostics.target_loop_count}  "
        f"Fallback: {result.used_fallback}"
    )
    print(f"Diagnostics: {result.diagnostics.to_dict()}")
    if args.show_doors:
        for binding in result.door_bindings:
            hole = binding.owner_hole
            other = binding.connection.other(binding.owner_room)
            print(
                f"  {binding.owner_room.identifier} owns {hole.direction.name} slot {hole.slot} "
                f"-> {other.identifier}"
            )

    violations = validate_maze(result)
    if violations:
        print(f"{len(violations)} violations:")
        for violation in violations:
            print(f"  {violation}")


if __name__ == "__main__":
    main()
