#!/usr/bin/env python3
"""Run one viewport evaluation against a live backend.

Prints what the map would be asked to show for a given zoom level and
visible region: the display mode, the resolution bucket and the
cluster or record markers, plus the requests it took to get there.

Usage
-----
Set environment variables and run::

    export LEADMAP_BASE_URL="https://your-project.example.com"
    export LEADMAP_API_KEY="anon-key"
    python scripts/probe_viewport.py --zoom 13 --bounds 40.70 -74.02 40.80 -73.92

Options::

    --zoom Z                     Map zoom level (default: 5)
    --bounds S W N E             Visible region (default: continental US)
    --filter COLUMN OP VALUE     Record filter, repeatable
    --zip CODE                   Also look up the boundary of a zip code
    --territories                Also list stored territories and their counts
    --json                       Output machine-readable JSON
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

from pyleadmap import (  # noqa: E402
    LeadMapClient,
    LeadMapConfig,
    LeadMapError,
    MarkerSnapshot,
    RecordFilter,
    Region,
    TerritoryOverlayManager,
    ViewportController,
)

_CONTINENTAL_US = (24.5, -125.0, 49.5, -66.9)
_MAX_PRINTED = 15


def _section(title: str) -> str:
    line = "=" * 60
    return f"\n{line}\n  {title}\n{line}"


def _snapshot_to_dict(snapshot: MarkerSnapshot) -> dict[str, Any]:
    return {
        "mode": str(snapshot.mode) if snapshot.mode is not None else None,
        "bucket": snapshot.bucket,
        "clusters": [c.model_dump() for c in snapshot.clusters],
        "records": [r.model_dump(mode="json") for r in snapshot.records],
    }


def _print_snapshot(snapshot: MarkerSnapshot, out: list[str]) -> None:
    out.append(_section("VIEWPORT"))
    out.append(f"  mode      : {snapshot.mode}")
    out.append(f"  bucket    : {snapshot.bucket}")
    out.append(f"  clusters  : {len(snapshot.clusters)}")
    out.append(f"  records   : {len(snapshot.records)}")
    for point in snapshot.clusters[:_MAX_PRINTED]:
        out.append(f"    ({point.latitude:.4f}, {point.longitude:.4f}) x{point.count} scale={point.marker_scale:.1f}")
    for record in snapshot.records[:_MAX_PRINTED]:
        owner = record.assigned_owner or "-"
        out.append(f"    #{record.id} ({record.latitude:.5f}, {record.longitude:.5f}) {record.status.name} owner={owner}")
    hidden = max(len(snapshot.clusters), len(snapshot.records)) - _MAX_PRINTED
    if hidden > 0:
        out.append(f"    ... {hidden} more")


async def run(args: argparse.Namespace) -> dict[str, Any]:
    config = LeadMapConfig.from_env(debounce_seconds=0.0)
    errors: list[str] = []
    result: dict[str, Any] = {"zoom": args.zoom, "bounds": list(args.bounds), "errors": errors}
    out: list[str] = []

    async with LeadMapClient(config) as client:
        controller = ViewportController(client, config, on_error=errors.append)
        if args.filter:
            await controller.set_filters(
                RecordFilter(column=column, operator=operator, value=value) for column, operator, value in args.filter
            )
        controller.notify_idle(args.zoom, Region.coerce(args.bounds))
        await controller.flush()
        snapshot = controller.snapshot()
        result["viewport"] = _snapshot_to_dict(snapshot)
        _print_snapshot(snapshot, out)

        manager = TerritoryOverlayManager(client, controller, on_error=errors.append)
        if args.zip:
            candidate = await manager.search_zip(args.zip)
            out.append(_section(f"ZIP {args.zip}"))
            if candidate is not None:
                out.append(f"  vertices  : {len(candidate.vertices)}")
                result["zip"] = [v.as_dict() for v in candidate.vertices]

        if args.territories:
            await manager.load()
            out.append(_section("TERRITORIES"))
            result["territories"] = []
            for territory in manager.territories:
                count = await manager.request_count(territory.id)
                total = count.total if count is not None else None
                out.append(f"  {territory.id:>6}  {territory.name:<30} {territory.color}  records={total}")
                result["territories"].append(
                    {"id": territory.id, "name": territory.name, "color": territory.color, "records": total}
                )

    if errors:
        out.append(_section("ERRORS"))
        out.extend(f"  {message}" for message in errors)
    if not args.json_mode:
        print("\n".join(out))
    return result


def main() -> None:
    parser = argparse.ArgumentParser(description="Probe the viewport orchestration against a live backend.")
    parser.add_argument("--zoom", type=float, default=5.0, help="Map zoom level (default: 5)")
    parser.add_argument(
        "--bounds",
        type=float,
        nargs=4,
        metavar=("SOUTH", "WEST", "NORTH", "EAST"),
        default=_CONTINENTAL_US,
        help="Visible region in degrees",
    )
    parser.add_argument(
        "--filter",
        nargs=3,
        action="append",
        metavar=("COLUMN", "OP", "VALUE"),
        help="Record filter, e.g. --filter status = 1 (repeatable)",
    )
    parser.add_argument("--zip", help="Also look up the boundary of this zip code")
    parser.add_argument("--territories", action="store_true", help="Also list territories and their record counts")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    try:
        result = asyncio.run(run(args))
    except LeadMapError as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)
    if args.json_mode:
        print(json.dumps(result, indent=2, default=str, ensure_ascii=False))


if __name__ == "__main__":
    main()
