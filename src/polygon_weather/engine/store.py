"""Polygon store: the explicit state container of the dashboard engine.

A ``PolygonStore`` owns the polygon list, the active time range, the current
instant and (through its fetcher) the weather cache. Nothing is module-global;
callers pass the store around.

Polygons are immutable records. Every mutation builds a new record and a new
list, so a reader holding ``store.polygons`` never sees a half-updated polygon.
"""
from __future__ import annotations
import datetime as dt
import logging
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple
from pydantic import ValidationError as PydanticValidationError
from polygon_weather.clients.openmeteo.models import WeatherData
from polygon_weather.config.settings import Settings
from polygon_weather.engine.cache import WeatherCache, cache_key
from polygon_weather.engine.color_rules import LIVE_RULE_TOLERANCE, default_color_rules, generate_id, resolve_color
from polygon_weather.engine.display import RenderedPolygon, render_polygons
from polygon_weather.engine.fetcher import WeatherFetcher
from polygon_weather.engine.time_lookup import TimeMatchStrategy, nearest_unconditional, nearest_within_window, value_at
from polygon_weather.errors import PolygonNotFoundError, ValidationError
from polygon_weather.models import (
    MAX_VERTICES,
    MIN_VERTICES,
    LatLng,
    Polygon,
    TimeRange,
    coerce_time_range,
    get_data_source,
)
from polygon_weather.utils.date_utils import default_time_range, parse_datetime, to_utc, utc_now

LOGGER = logging.getLogger(__name__)

# Fields whose change can alter the rule-derived color
_COLOR_INPUT_FIELDS = frozenset({"coordinates", "data_source", "color_rules"})
# Derived by recompute_display_color, never set directly
_DERIVED_FIELDS = frozenset({"current_color"})


def validate_vertices(coordinates: Any) -> Tuple[LatLng, ...]:
    """Check the vertex count (3..12) and coerce each vertex to LatLng.

    Raises:
        ValidationError: Wrong vertex count or a vertex that is not a coordinate.
    """
    if coordinates is None or isinstance(coordinates, (str, bytes, Mapping)):
        raise ValidationError("Polygon coordinates must be a sequence of vertices")
    vertices = list(coordinates)
    if len(vertices) < MIN_VERTICES:
        raise ValidationError(
            f"Polygon must have at least {MIN_VERTICES} vertices, got {len(vertices)}"
        )
    if len(vertices) > MAX_VERTICES:
        raise ValidationError(
            f"Polygon cannot have more than {MAX_VERTICES} vertices, got {len(vertices)}"
        )
    try:
        return tuple(
            vertex if isinstance(vertex, LatLng) else LatLng.model_validate(vertex)
            for vertex in vertices
        )
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid polygon vertex: {exc}") from exc


def _validate_label(label: Any) -> str:
    if not isinstance(label, str) or not label.strip():
        raise ValidationError("Polygon label is required")
    return label.strip()


def _build_polygon(fields: Mapping[str, Any]) -> Polygon:
    try:
        return Polygon.model_validate(dict(fields))
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid polygon: {exc}") from exc


class PolygonStore:
    """Polygons, time selection and derived display colors.

    Args:
        fetcher: Weather fetcher; its cache is the store's cache. Without one
            the store still works but cannot refresh.
        time_range: Active fetch window (default: now -15d .. now +15d).
        current_time: Instant colors are evaluated at (default: now).
        polygons: Initial polygons.
        cache: Cache to use when no fetcher is given.
    """

    def __init__(
        self,
        fetcher: Optional[WeatherFetcher] = None,
        *,
        time_range: Any = None,
        current_time: Optional[dt.datetime] = None,
        polygons: Iterable[Polygon] = (),
        cache: Optional[WeatherCache] = None,
    ) -> None:
        self._fetcher = fetcher
        if fetcher is not None:
            self._cache = fetcher.cache
        else:
            self._cache = cache if cache is not None else WeatherCache()
        if time_range is None:
            time_range = default_time_range()
        self._time_range = coerce_time_range(time_range)
        self._current_time = to_utc(current_time) if current_time is not None else utc_now()
        self._polygons: List[Polygon] = []
        for polygon in polygons:
            self._add(polygon)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        fetcher: Optional[WeatherFetcher] = None,
    ) -> "PolygonStore":
        start, end = default_time_range(
            settings.dashboard.default_range_days_before,
            settings.dashboard.default_range_days_after,
        )
        return cls(fetcher, time_range=TimeRange(start=start, end=end))

    # -- read access -----------------------------------------------------

    @property
    def polygons(self) -> Tuple[Polygon, ...]:
        return tuple(self._polygons)

    @property
    def cache(self) -> WeatherCache:
        return self._cache

    @property
    def fetcher(self) -> Optional[WeatherFetcher]:
        return self._fetcher

    @property
    def time_range(self) -> TimeRange:
        return self._time_range

    @property
    def current_time(self) -> dt.datetime:
        return self._current_time

    def __len__(self) -> int:
        return len(self._polygons)

    def __iter__(self) -> Iterator[Polygon]:
        return iter(tuple(self._polygons))

    def find(self, polygon_id: str) -> Optional[Polygon]:
        for polygon in self._polygons:
            if polygon.id == polygon_id:
                return polygon
        return None

    def get(self, polygon_id: str) -> Polygon:
        polygon = self.find(polygon_id)
        if polygon is None:
            raise PolygonNotFoundError(polygon_id)
        return polygon

    def find_by_label(self, term: str) -> List[Polygon]:
        """Case-insensitive substring match over labels, in store order."""
        needle = term.lower()
        return [polygon for polygon in self._polygons if needle in polygon.label.lower()]

    def render(self) -> List[RenderedPolygon]:
        return render_polygons(self._polygons)

    # -- mutation --------------------------------------------------------

    def on_polygon_create(self, coordinates: Sequence[Any]) -> Tuple[LatLng, ...]:
        """Accept a finished vertex sequence from the map surface."""
        return validate_vertices(coordinates)

    def create(
        self,
        coordinates: Sequence[Any],
        label: str,
        data_source: str,
        rules: Optional[Iterable[Any]] = None,
    ) -> Polygon:
        """Create a polygon; default color rules when ``rules`` is None.

        Raises:
            ValidationError: Bad vertex count, empty label, unknown data
                source or malformed rules.
        """
        vertices = validate_vertices(coordinates)
        label = _validate_label(label)
        get_data_source(data_source)
        polygon = _build_polygon(
            {
                "id": self._new_id(),
                "coordinates": vertices,
                "label": label,
                "data_source": data_source,
                "color_rules": default_color_rules() if rules is None else list(rules),
            }
        )
        self._polygons = [*self._polygons, polygon]
        LOGGER.info("Created polygon %s (%s, %s)", polygon.id, polygon.label, polygon.data_source)
        self.recompute_display_color(polygon.id)
        return self.get(polygon.id)

    def update(
        self,
        polygon_id: str,
        fields: Optional[Mapping[str, Any]] = None,
        **changes: Any,
    ) -> Polygon:
        """Apply a partial update and re-validate the whole record.

        ``is_highlighted=True`` goes through highlight(), so every other
        polygon is un-highlighted.

        Raises:
            PolygonNotFoundError: Unknown id.
            ValidationError: Id change, unknown or derived field, or invalid value.
        """
        changes = {**(fields or {}), **changes}
        current = self.get(polygon_id)
        unknown = set(changes) - set(Polygon.model_fields)
        if unknown:
            raise ValidationError(f"Unknown polygon fields: {', '.join(sorted(unknown))}")
        derived = _DERIVED_FIELDS & set(changes)
        if derived:
            raise ValidationError(f"Derived polygon fields cannot be set: {', '.join(sorted(derived))}")
        highlighted = changes.pop("is_highlighted", None)
        if changes.get("id", polygon_id) != polygon_id:
            raise ValidationError("Polygon id cannot be changed")
        if "coordinates" in changes:
            changes["coordinates"] = validate_vertices(changes["coordinates"])
        if "label" in changes:
            changes["label"] = _validate_label(changes["label"])
        if "data_source" in changes:
            get_data_source(changes["data_source"])

        data = current.model_dump()
        data.update(changes)
        if highlighted is not None and not highlighted:
            data["is_highlighted"] = False
        self._swap(_build_polygon(data))
        if highlighted:
            self.highlight(polygon_id)
        LOGGER.info("Updated polygon %s: %s", polygon_id, ", ".join(sorted(changes)) or "highlight")
        if _COLOR_INPUT_FIELDS & set(changes):
            self.recompute_display_color(polygon_id)
        return self.get(polygon_id)

    def delete(self, polygon_id: str) -> None:
        self.get(polygon_id)
        self._polygons = [polygon for polygon in self._polygons if polygon.id != polygon_id]
        LOGGER.info("Deleted polygon %s", polygon_id)

    def set_custom_color(self, polygon_id: str, color: str) -> Polygon:
        if not isinstance(color, str) or not color.strip():
            raise ValidationError("Custom color must be a non-empty color token")
        polygon = self.get(polygon_id).model_copy(update={"custom_color": color.strip()})
        self._swap(polygon)
        return polygon

    def clear_custom_color(self, polygon_id: str) -> Polygon:
        """Drop the override and immediately recompute the rule-derived color."""
        self._swap(self.get(polygon_id).model_copy(update={"custom_color": None}))
        self.recompute_display_color(polygon_id)
        return self.get(polygon_id)

    def highlight(self, polygon_id: str) -> None:
        """Highlight one polygon; every other polygon is un-highlighted."""
        self.get(polygon_id)
        self._polygons = [
            polygon.model_copy(update={"is_highlighted": polygon.id == polygon_id})
            for polygon in self._polygons
        ]

    def clear_all_highlights(self) -> None:
        self._polygons = [
            polygon.model_copy(update={"is_highlighted": False}) for polygon in self._polygons
        ]

    # -- time selection --------------------------------------------------

    def set_current_time(self, instant: dt.datetime) -> None:
        """Move the evaluation instant and recompute every polygon's color."""
        self._current_time = to_utc(instant)
        self.recompute_all_display_colors()

    def set_time_range(self, time_range: Any) -> TimeRange:
        """Replace the fetch window. Cached series for other windows are kept.

        Call ``refresh()`` afterwards to fetch series for the new window.
        """
        self._time_range = coerce_time_range(time_range)
        LOGGER.info(
            "Time range set to %s -> %s", self._time_range.start_date, self._time_range.end_date
        )
        return self._time_range

    async def change_time_range(self, time_range: Any) -> None:
        self.set_time_range(time_range)
        await self.refresh()

    # -- weather ---------------------------------------------------------

    def cached_weather(self, polygon_id: str) -> Optional[WeatherData]:
        polygon = self.get(polygon_id)
        key = cache_key(
            polygon.coordinates,
            polygon.data_source,
            self._time_range.start_date,
            self._time_range.end_date,
        )
        return self._cache.get(key)

    def value_at(
        self,
        polygon_id: str,
        instant: Optional[dt.datetime] = None,
        strategy: Optional[TimeMatchStrategy] = None,
    ) -> Optional[float]:
        """Weather value for a polygon, by default within 30 minutes of ``instant``."""
        polygon = self.get(polygon_id)
        weather = self.cached_weather(polygon_id)
        if weather is None:
            return None
        return value_at(
            weather,
            polygon.data_source,
            instant if instant is not None else self._current_time,
            strategy or nearest_within_window(),
        )

    def recompute_display_color(self, polygon_id: str) -> Optional[str]:
        """Re-derive ``current_color`` from cached weather at the current instant.

        No-op when the series is not cached or has no value. The rule color is
        still computed while a custom color is set, but ``current_color`` is
        left untouched in that case.

        Returns:
            The rule-derived color, or None when nothing could be derived.
        """
        polygon = self.get(polygon_id)
        weather = self.cached_weather(polygon_id)
        if weather is None:
            return None
        value = value_at(weather, polygon.data_source, self._current_time, nearest_unconditional())
        if value is None:
            LOGGER.debug("No %s value for polygon %s at %s", polygon.data_source, polygon_id, self._current_time)
            return None
        color = resolve_color(value, polygon.color_rules, tolerance=LIVE_RULE_TOLERANCE)
        if polygon.custom_color:
            return color
        if color != polygon.current_color:
            self._swap(polygon.model_copy(update={"current_color": color}))
        return color

    def recompute_all_display_colors(self) -> None:
        for polygon in tuple(self._polygons):
            self.recompute_display_color(polygon.id)

    async def fetch_polygon(self, polygon_id: str) -> WeatherData:
        """Fetch one polygon's series and recompute its color.

        Raises:
            ValidationError: Invalid polygon or time range.
            ProviderError: The provider request failed.
        """
        data = await self._require_fetcher().fetch_for_polygon(self.get(polygon_id), self._time_range)
        self._on_fetched(self.get(polygon_id), data)
        return data

    async def refresh(self) -> None:
        """Fetch all polygons for the active range (best effort) and recompute."""
        await self._require_fetcher().fetch_all_for_store(
            self.polygons, self._time_range, on_fetched=self._on_fetched
        )

    def _on_fetched(self, polygon: Polygon, data: WeatherData) -> None:
        if self.find(polygon.id) is None:
            LOGGER.info("Polygon %s was deleted before its weather data arrived", polygon.id)
            return
        self.recompute_display_color(polygon.id)

    # -- persistence -----------------------------------------------------

    def to_snapshot(self) -> Dict[str, Any]:
        """Serializable state: polygons, selected range and current instant.

        The weather cache is never part of the snapshot.
        """
        return {
            "polygons": [
                polygon.model_dump(mode="json", by_alias=True) for polygon in self._polygons
            ],
            "selectedTimeRange": {
                "start": self._time_range.start.isoformat(),
                "end": self._time_range.end.isoformat(),
            },
            "currentTime": self._current_time.isoformat(),
        }

    @classmethod
    def from_snapshot(
        cls,
        blob: Mapping[str, Any],
        fetcher: Optional[WeatherFetcher] = None,
    ) -> "PolygonStore":
        """Rebuild a store from ``to_snapshot`` output.

        When several polygons are flagged highlighted only the first keeps the flag.

        Raises:
            ValidationError: Malformed snapshot.
        """
        if not isinstance(blob, Mapping):
            raise ValidationError("Snapshot must be a mapping")
        time_range = blob.get("selectedTimeRange")
        current_time = blob.get("currentTime")
        if isinstance(current_time, str):
            try:
                current_time = parse_datetime(current_time)
            except ValueError as exc:
                raise ValidationError(str(exc)) from exc
        polygons = []
        highlighted_id = None
        for raw in blob.get("polygons") or []:
            polygon = _build_polygon(raw)
            validate_vertices(polygon.coordinates)
            get_data_source(polygon.data_source)
            if polygon.is_highlighted:
                if highlighted_id is None:
                    highlighted_id = polygon.id
                else:
                    LOGGER.warning(
                        "Snapshot highlights %s and %s, keeping only %s", highlighted_id, polygon.id, highlighted_id
                    )
                    polygon = polygon.model_copy(update={"is_highlighted": False})
            polygons.append(polygon)
        return cls(
            fetcher,
            time_range=time_range,
            current_time=current_time,
            polygons=polygons,
        )

    # -- internals -------------------------------------------------------

    def _add(self, polygon: Polygon) -> None:
        if self.find(polygon.id) is not None:
            raise ValidationError(f"Duplicate polygon id: {polygon.id}")
        self._polygons = [*self._polygons, polygon]

    def _swap(self, polygon: Polygon) -> None:
        self._polygons = [
            polygon if existing.id == polygon.id else existing for existing in self._polygons
        ]

    def _new_id(self) -> str:
        while True:
            candidate = generate_id()
            if self.find(candidate) is None:
                return candidate

    def _require_fetcher(self) -> WeatherFetcher:
        if self._fetcher is None:
            raise RuntimeError("PolygonStore has no weather fetcher configured")
        return self._fetcher


__all__ = ["PolygonStore", "validate_vertices"]
