#!/usr/bin/env python3
"""Inspect the HUD widget catalog: dependency graph, resolved defaults and saved layouts."""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Dict, Tuple

from hud_layout.dependency_graph import DependencyCycleError, extract_dependencies
from hud_layout.descriptors import MINIMAP_SHAPES, SPEEDOMETER_TYPES, STATUS_DESIGNS, LayoutOptions
from hud_layout.geometry import Screen
from hud_layout.layout_state import LayoutStateError, parse_layout_blob
from hud_layout.measurement import StaticMeasurer
from hud_layout.position_resolver import LayoutEngine
from hud_layout.version import __version__
from hud_layout.widget_catalog import default_widget_descriptors, nominal_widget_size


def _load_sizes(path: Path) -> Dict[str, Tuple[float, float]]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("sizes file must map widget ids to [width, height]")
    sizes: Dict[str, Tuple[float, float]] = {}
    for widget_id, value in data.items():
        if not isinstance(value, (list, tuple)) or len(value) != 2:
            raise ValueError(f"size for '{widget_id}' must be [width, height]")
        sizes[str(widget_id)] = (float(value[0]), float(value[1]))
    return sizes


def _cmd_graph(args: argparse.Namespace) -> int:
    graph = extract_dependencies(default_widget_descriptors())
    try:
        order = graph.resolution_order()
    except DependencyCycleError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    for widget_id in order:
        reads = ", ".join(sorted(graph.dependencies_of(widget_id))) or "-"
        dependents = ", ".join(graph.dependents.get(widget_id, ())) or "-"
        print(f"{widget_id}: reads [{reads}] read-by [{dependents}]")
    return 0


def _cmd_defaults(args: argparse.Namespace) -> int:
    sizes: Dict[str, Tuple[float, float]] = {}
    if args.sizes is not None:
        try:
            sizes = _load_sizes(args.sizes)
        except (OSError, ValueError, RecursionError) as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 1
    options = LayoutOptions(
        status_design=args.status_design,
        minimap_shape=args.minimap_shape,
        speedometer_type=args.speedometer_type,
    )
    descriptors = default_widget_descriptors()
    for descriptor in descriptors:
        nominal = nominal_widget_size(descriptor.id, options)
        if descriptor.id not in sizes and nominal is not None:
            sizes[descriptor.id] = (nominal.width, nominal.height)
    screen = Screen(float(args.width), float(args.height))
    engine = LayoutEngine(descriptors, StaticMeasurer(sizes), lambda: screen)
    resolved = engine.resolve_defaults(options=options, has_signaled_ready=True)
    if args.json:
        payload = {
            widget_id: {"x": rect.x, "y": rect.y, "width": rect.width, "height": rect.height}
            for widget_id, rect in resolved.items()
        }
        print(json.dumps(payload, indent=2))
        return 0
    for widget_id in engine.widget_ids:
        rect = resolved[widget_id]
        print(f"{widget_id:<14} x={rect.x:g} y={rect.y:g} w={rect.width:g} h={rect.height:g}")
    return 0


def _cmd_check(args: argparse.Namespace) -> int:
    try:
        raw = json.loads(args.path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        print(f"{args.path}: missing; defaults would be used")
        return 1
    except (OSError, ValueError, RecursionError) as exc:
        print(f"{args.path}: unreadable ({exc}); defaults would be used")
        return 1
    try:
        merged = parse_layout_blob(raw, default_widget_descriptors())
    except LayoutStateError as exc:
        print(f"{args.path}: rejected ({exc}); defaults would be used")
        return 1
    print(f"{args.path}: accepted ({len(merged.state.widgets)} widgets)")
    if merged.dropped:
        print(f"  dropped unknown: {', '.join(merged.dropped)}")
    if merged.appended:
        print(f"  added at defaults: {', '.join(merged.appended)}")
    return 0


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="hud-layout", description="HUD widget layout tools")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    graph = sub.add_parser("graph", help="Print each widget's dependencies and dependents")
    graph.set_defaults(handler=_cmd_graph)

    defaults = sub.add_parser("defaults", help="Resolve default positions for a synthetic screen")
    defaults.add_argument("--width", type=float, default=1920.0, help="Viewport width in px")
    defaults.add_argument("--height", type=float, default=1080.0, help="Viewport height in px")
    defaults.add_argument("--sizes", type=Path, help="JSON file mapping widget id to [width, height]; nominal sizes fill the rest")
    defaults.add_argument("--status-design", choices=STATUS_DESIGNS, default="circular")
    defaults.add_argument("--minimap-shape", choices=MINIMAP_SHAPES, default="square")
    defaults.add_argument("--speedometer-type", choices=SPEEDOMETER_TYPES, default="car")
    defaults.add_argument("--json", action="store_true", help="Emit JSON instead of a table")
    defaults.set_defaults(handler=_cmd_defaults)

    check = sub.add_parser("check", help="Validate a saved layout file")
    check.add_argument("path", type=Path, help="Path to hud_layout.json")
    check.set_defaults(handler=_cmd_check)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    return args.handler(args)


if __name__ == "__main__":
    raise SystemExit(main())
