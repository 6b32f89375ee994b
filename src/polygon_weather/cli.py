#!/usr/bin/env python3
from __future__ import annotations
import argparse
import asyncio
import datetime as dt
import logging
import sys
from typing import Any, Dict, List, Optional
from polygon_weather.clients.openmeteo.client import OpenMeteoClient
from polygon_weather.config.settings import Settings, get_settings
from polygon_weather.engine.color_rules import make_rule
from polygon_weather.engine.display import RenderedPolygon
from polygon_weather.engine.fetcher import WeatherFetcher
from polygon_weather.engine.store import PolygonStore
from polygon_weather.errors import PolygonWeatherError
from polygon_weather.models import DATA_SOURCES, ColorRule, TimeRange
from polygon_weather.storage import JsonFileStateStorage
from polygon_weather.utils.date_utils import parse_date_argparse, parse_datetime_argparse
from polygon_weather.utils.logging_config import configure_logging

LOGGER = logging.getLogger(__name__)


def _parse_vertex(value: str) -> Dict[str, float]:
    """Parse a ``LAT,LNG`` vertex."""
    try:
        lat, lng = (float(part) for part in value.split(","))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(
            f"Invalid vertex '{value}'. Expected LAT,LNG (e.g. 51.505,-0.09)"
        ) from exc
    return {"lat": lat, "lng": lng}


def _parse_rule(value: str) -> ColorRule:
    """Parse an ``OPERATOR,VALUE,COLOR`` color rule."""
    parts = value.split(",")
    if len(parts) != 3:
        raise argparse.ArgumentTypeError(
            f"Invalid rule '{value}'. Expected OPERATOR,VALUE,COLOR (e.g. '>=,25,#22c55e')"
        )
    operator, threshold, color = (part.strip() for part in parts)
    try:
        return make_rule(operator, float(threshold), color)
    except (ValueError, PolygonWeatherError) as exc:
        raise argparse.ArgumentTypeError(f"Invalid rule '{value}': {exc}") from exc


def build_parser() -> argparse.ArgumentParser:
    """Build argument parser for the polygon weather CLI."""
    parser = argparse.ArgumentParser(
        prog="polygon-weather",
        description="Manage weather-colored map polygons stored in a state file.",
    )
    parser.add_argument(
        "--state",
        help="State file path (default: STATE_FILE setting)",
    )
    parser.add_argument(
        "--log-level",
        help="Override LOG_LEVEL setting",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    add = commands.add_parser("add", help="Create a polygon")
    add.add_argument("--label", required=True, help="Polygon label")
    add.add_argument(
        "--source",
        required=True,
        choices=sorted(DATA_SOURCES),
        help="Weather variable the polygon is bound to",
    )
    add.add_argument(
        "--vertex",
        dest="vertices",
        action="append",
        type=_parse_vertex,
        required=True,
        help="Vertex as LAT,LNG (repeat 3 to 12 times)",
    )
    add.add_argument(
        "--rule",
        dest="rules",
        action="append",
        type=_parse_rule,
        help="Color rule as OPERATOR,VALUE,COLOR (repeatable; default rules when omitted)",
    )

    commands.add_parser("list", help="List polygons with their effective colors")

    find = commands.add_parser("find", help="Search labels and highlight the first match")
    find.add_argument("term", help="Case-insensitive label substring")

    color = commands.add_parser("color", help="Set or clear a polygon's custom color")
    color.add_argument("polygon_id")
    group = color.add_mutually_exclusive_group(required=True)
    group.add_argument("color", nargs="?", help="Custom color token (e.g. #123456)")
    group.add_argument("--clear", action="store_true", help="Revert to the rule-derived color")

    delete = commands.add_parser("delete", help="Delete a polygon")
    delete.add_argument("polygon_id")

    refresh = commands.add_parser("refresh", help="Fetch weather and recompute colors")
    refresh.add_argument(
        "--at",
        type=parse_datetime_argparse,
        help="Evaluate colors at this ISO 8601 instant (default: stored current time)",
    )
    refresh.add_argument(
        "--start",
        type=parse_date_argparse,
        help="Range start YYYY-MM-DD (requires --end)",
    )
    refresh.add_argument(
        "--end",
        type=parse_date_argparse,
        help="Range end YYYY-MM-DD (requires --start)",
    )
    return parser


def format_rows(rows: List[RenderedPolygon]) -> str:
    if not rows:
        return "No polygons."
    lines = []
    for row in rows:
        marker = " *" if row.is_highlighted else ""
        lines.append(
            f"{row.id}  {row.label:<24} {row.data_source:<22} "
            f"{row.effective_color} ({row.color_source.value}){marker}"
        )
    return "\n".join(lines)


def _load_store(
    storage: JsonFileStateStorage,
    settings: Settings,
    fetcher: Optional[WeatherFetcher] = None,
) -> PolygonStore:
    blob = storage.load()
    if blob is None:
        return PolygonStore.from_settings(settings, fetcher)
    return PolygonStore.from_snapshot(blob, fetcher)


async def _refresh(args: argparse.Namespace, settings: Settings, storage: JsonFileStateStorage) -> PolygonStore:
    async with OpenMeteoClient.from_settings(settings.provider) as client:
        store = _load_store(storage, settings, WeatherFetcher.from_settings(settings, provider=client))
        if args.start is not None:
            store.set_time_range(
                TimeRange.parse(
                    dt.datetime.combine(args.start, dt.time(), tzinfo=dt.timezone.utc),
                    dt.datetime.combine(args.end, dt.time(), tzinfo=dt.timezone.utc),
                )
            )
        if args.at is not None:
            store.set_current_time(args.at)
        await store.refresh()
    return store


def _dispatch(args: argparse.Namespace, settings: Settings, storage: JsonFileStateStorage) -> Any:
    if args.command == "refresh":
        store = asyncio.run(_refresh(args, settings, storage))
        print(format_rows(store.render()))
        storage.save(store.to_snapshot())
        return store

    store = _load_store(storage, settings)
    if args.command == "add":
        polygon = store.create(args.vertices, args.label, args.source, args.rules)
        print(polygon.id)
    elif args.command == "list":
        print(format_rows(store.render()))
        return store
    elif args.command == "find":
        matches = store.find_by_label(args.term)
        if matches:
            store.highlight(matches[0].id)
        else:
            store.clear_all_highlights()
        print(format_rows([row for row in store.render() if row.id in {m.id for m in matches}]))
    elif args.command == "color":
        if args.clear:
            store.clear_custom_color(args.polygon_id)
        else:
            store.set_custom_color(args.polygon_id, args.color)
    elif args.command == "delete":
        store.delete(args.polygon_id)
    storage.save(store.to_snapshot())
    return store


def run_cli(argv: Optional[List[str]] = None) -> int:
    """Execute CLI with given arguments.

    Args:
        argv: Command-line arguments (uses sys.argv if None).

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    if (args.command == "refresh") and ((args.start is None) != (args.end is None)):
        parser.error("--start and --end must be given together")

    settings = get_settings()
    configure_logging(args.log_level or settings.log_level)
    storage = JsonFileStateStorage(args.state or settings.dashboard.state_file)

    try:
        _dispatch(args, settings, storage)
    except PolygonWeatherError as exc:
        LOGGER.error("Command '%s' failed: %s", args.command, exc)
        return 1
    return 0


def main() -> None:
    sys.exit(run_cli())


__all__ = ["build_parser", "format_rows", "run_cli", "main"]


if __name__ == "__main__":
    main()
