#!/usr/bin/env python3
"""Load a project headlessly and show what a viewer would render.

The script fetches a project from the backend, loads every layer into
an in-memory map and then steps through a list of zoom levels, printing
the zoom hints, the buffer statistics and the layer-control table at
each step.

Usage
-----
::

    export MAPVIEW_BASE_URL="https://maps.example.com/api/v1"
    export MAPVIEW_API_TOKEN="..."
    python scripts/view_project.py 42

Options::

    --zoom 7 11 14        Zoom levels to step through (default: 7 11)
    --enable-buffers      Switch every generated buffer on before stepping
    --json                Output machine-readable JSON
    --verbose / -v        Enable debug logging
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pymapview import InMemoryMap, LoadProgress, MapViewClient, ViewerConfig, ViewerOrchestrator  # noqa: E402


def _section(title: str) -> str:
    return f"\n{'=' * 60}\n  {title}\n{'=' * 60}"


def _snapshot(viewer: ViewerOrchestrator, zoom: float) -> dict[str, Any]:
    return {
        "zoom": zoom,
        "hints": [hint.message for hint in viewer.get_zoom_hints()],
        "buffer_stats": viewer.get_buffer_stats().model_dump(),
        "layers": [entry.model_dump(exclude={"buffers"}) for entry in viewer.get_layer_control()],
    }


def _print_snapshot(snapshot: dict[str, Any], layer_count: int) -> None:
    print(_section(f"ZOOM {snapshot['zoom']}"))
    for message in snapshot["hints"] or ["(no zoom hints)"]:
        print(f"  hint: {message}")
    stats = snapshot["buffer_stats"]
    print(
        f"  buffers: {stats['total_buffers']} overlays, {stats['total_parents']} parents, "
        f"{stats['total_buffer_circles']} circles, {layer_count} map layers attached"
    )
    print(f"  {'id':>6}  {'rendered':<8}  {'wanted':<6}  {'needs':<5}  name")
    for row in snapshot["layers"]:
        needs = "" if row["needs_zoom"] is None else str(row["needs_zoom"])
        print(f"  {row['layer_id']:>6}  {row['rendered']!s:<8}  {row['user_visible']!s:<6}  {needs:<5}  {row['name']}")


async def main() -> None:
    parser = argparse.ArgumentParser(
        description="Load a map project headlessly and report layer visibility per zoom level.",
    )
    parser.add_argument("project_id", type=int, help="Project id to load")
    parser.add_argument("--zoom", type=float, nargs="+", default=[7.0, 11.0], help="Zoom levels to step through")
    parser.add_argument("--enable-buffers", action="store_true", help="Enable every generated buffer overlay")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    config = ViewerConfig.from_env()
    map_handle = InMemoryMap(zoom=args.zoom[0])

    def _progress(progress: LoadProgress) -> None:
        if not args.json_mode and progress.status in {"loaded", "failed"}:
            print(f"  [{progress.percent:5.1f}%] {progress.status:<6} {progress.layer_name}", file=sys.stderr)

    async with MapViewClient(config) as client:
        viewer = ViewerOrchestrator(client, config)
        viewer.attach_map(map_handle)
        viewer.on_load_progress(_progress)
        try:
            progress = await viewer.load_project(args.project_id)

            if args.enable_buffers:
                for entry in viewer.get_layer_control():
                    for overlay in entry.buffers:
                        viewer.toggle_buffer(overlay.id, True)

            snapshots: list[dict[str, Any]] = []
            for zoom in args.zoom:
                map_handle.set_zoom(zoom)
                snapshot = _snapshot(viewer, zoom)
                snapshots.append(snapshot)
                if not args.json_mode:
                    _print_snapshot(snapshot, len(map_handle.layers))

            basemap = viewer.active_basemap
            result = {
                "project_id": args.project_id,
                "basemap": basemap.name if basemap is not None else None,
                "progress": progress.model_dump(),
                "cache": client.cache_info().model_dump(),
                "steps": snapshots,
            }
        finally:
            viewer.close()

    if args.json_mode:
        print(json.dumps(result, indent=2, default=str, ensure_ascii=False))
    else:
        print(_section("SUMMARY"))
        print(f"  basemap : {result['basemap']}")
        print(f"  loaded  : {progress.loaded}/{progress.total} ({progress.failed} failed)")


if __name__ == "__main__":
    asyncio.run(main())
