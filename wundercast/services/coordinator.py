"""Merges the geolocation, city search and map pan triggers into one weather pipeline."""

import asyncio
from enum import Enum
from typing import Awaitable, Callable

from prometheus_client import Counter, Histogram

from wundercast.core.config import settings
from wundercast.core.logging import get_logger
from wundercast.core.streams import Stream
from wundercast.models.weather import DUMMY_RECORD, Coordinate, GeoPosition, WeatherRecord
from wundercast.services.location import LocationProvider
from wundercast.services.weather import WeatherClient

logger = get_logger(__name__)

TRIGGER_COUNT = Counter(
    "wundercast_triggers_total",
    "Number of accepted lookup triggers",
    ["source"],
)
LOOKUP_COUNT = Counter(
    "wundercast_lookups_total",
    "Number of completed lookups",
    ["source", "outcome"],
)
LOOKUP_DURATION = Histogram(
    "wundercast_lookup_duration_seconds",
    "Lookup duration in seconds",
    ["source"],
)


class LookupSource(str, Enum):
    GEO = "geo"
    CITY = "city"
    MAP = "map"


class WeatherQueryCoordinator:
    """Turns user triggers into weather lookups and publishes the outcome.

    Three triggers feed the pipeline: a geolocation request, a submitted city
    name and a map pan. Each trigger source keeps at most one lookup in
    flight; a new trigger from the same source cancels the previous lookup,
    while lookups from different sources run side by side and publish in
    completion order.

    Outputs:
        result: latest WeatherRecord, ``DUMMY_RECORD`` until the first lookup
            completes and whenever a lookup fails
        busy: True on every accepted trigger, False on every published result.
            Starts out True; bindings that should ignore that first value
            subscribe with ``skip_current=True``
        recenter: coordinate of each successful geolocation or city result
    """

    def __init__(
        self,
        weather_client: WeatherClient,
        location_provider: LocationProvider,
        accuracy_threshold: float | None = None,
    ):
        self.weather_client = weather_client
        self.location_provider = location_provider
        self.accuracy_threshold = (
            settings.location_accuracy_threshold if accuracy_threshold is None else accuracy_threshold
        )

        self.result: Stream[WeatherRecord] = Stream("result", DUMMY_RECORD)
        self.busy: Stream[bool] = Stream("busy", True)
        self.recenter: Stream[Coordinate] = Stream("recenter")

        self._inflight: dict[LookupSource, asyncio.Task] = {}
        self._closed = False
        self._awaiting_fix = False
        self._initial_region_seen = False
        self._unsubscribe_positions = location_provider.positions.subscribe(
            self._on_position, skip_current=True
        )

    @property
    def awaiting_fix(self) -> bool:
        return self._awaiting_fix

    def request_geolocation(self) -> bool:
        """Look up the weather at the next accurate device fix."""
        if self._closed:
            return False

        TRIGGER_COUNT.labels(source=LookupSource.GEO.value).inc()
        logger.info("geolocation_requested")
        self.busy.emit(True)

        self._awaiting_fix = True
        self.location_provider.request_authorization()
        self.location_provider.start_updates()
        return True

    def submit_city(self, text: str | None) -> bool:
        """Look up the weather for a typed city name.

        Returns:
            False if the text was empty or the pipeline is closed
        """
        if self._closed:
            return False
        if not text:
            logger.debug("city_search_ignored")
            return False

        TRIGGER_COUNT.labels(source=LookupSource.CITY.value).inc()
        logger.info("city_submitted", city=text)
        self.busy.emit(True)
        self._start_lookup(LookupSource.CITY, lambda: self.weather_client.lookup_by_city(text))
        return True

    def map_region_changed(self, center: Coordinate) -> bool:
        """Look up the weather at the new map center.

        The first region change only reflects the map settling on its
        initial position and is dropped.

        Returns:
            False if the event was dropped
        """
        if self._closed:
            return False
        if not self._initial_region_seen:
            self._initial_region_seen = True
            logger.debug("initial_map_region_ignored")
            return False

        TRIGGER_COUNT.labels(source=LookupSource.MAP.value).inc()
        logger.info("map_region_changed", latitude=center.latitude, longitude=center.longitude)
        self.busy.emit(True)
        self._start_lookup(
            LookupSource.MAP,
            lambda: self.weather_client.lookup_by_coordinates(center.latitude, center.longitude),
        )
        return True

    def _on_position(self, position: GeoPosition) -> None:
        if not self._awaiting_fix:
            return
        if position.accuracy >= self.accuracy_threshold:
            logger.debug("location_fix_too_coarse", accuracy=position.accuracy)
            return

        # One fix per request; keep the receiver off until the next request
        self._awaiting_fix = False
        self.location_provider.stop_updates()
        logger.info("location_fix_accepted", latitude=position.latitude, longitude=position.longitude)
        self._start_lookup(
            LookupSource.GEO,
            lambda: self.weather_client.lookup_by_coordinates(position.latitude, position.longitude),
        )

    def _start_lookup(self, source: LookupSource, lookup: Callable[[], Awaitable[WeatherRecord]]) -> None:
        previous = self._inflight.pop(source, None)
        if previous is not None and not previous.done():
            previous.cancel()
            logger.debug("lookup_superseded", source=source.value)

        self._inflight[source] = asyncio.get_running_loop().create_task(self._run_lookup(source, lookup))

    async def _run_lookup(self, source: LookupSource, lookup: Callable[[], Awaitable[WeatherRecord]]) -> None:
        try:
            with LOOKUP_DURATION.labels(source=source.value).time():
                try:
                    record = await lookup()
                    outcome = "success"
                except Exception:
                    record = DUMMY_RECORD
                    outcome = "fallback"
        finally:
            if self._inflight.get(source) is asyncio.current_task():
                del self._inflight[source]

        LOOKUP_COUNT.labels(source=source.value, outcome=outcome).inc()
        self.result.emit(record)
        if source is not LookupSource.MAP and outcome == "success":
            self.recenter.emit(record.coordinate)
        self.busy.emit(False)

    async def wait_idle(self) -> None:
        """Wait until no lookup is in flight.

        A geolocation request still waiting for its fix does not count.
        """
        while self._inflight:
            await asyncio.gather(*self._inflight.values(), return_exceptions=True)

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        """Cancel in-flight lookups and release the location provider."""
        self._closed = True
        tasks = list(self._inflight.values())
        self._inflight.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        self._unsubscribe_positions()
        if self._awaiting_fix:
            self._awaiting_fix = False
            self.location_provider.stop_updates()
        logger.info("coordinator_closed", cancelled=len(tasks))
