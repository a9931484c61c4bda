"""Test configuration and fixtures."""

import asyncio

import pytest
from fakeredis import FakeAsyncRedis

from wundercast.models.weather import Coordinate, WeatherRecord
from wundercast.services.cache import cache
from wundercast.services.coordinator import WeatherQueryCoordinator
from wundercast.services.location import ReportedLocationProvider
from wundercast.services.weather import WeatherClientError


class FakeWeatherClient:
    """Weather client whose lookups finish only when the test says so."""

    def __init__(self):
        self.calls: list[tuple] = []
        self._pending: dict[tuple, asyncio.Future] = {}

    def _future(self, key: tuple) -> asyncio.Future:
        if key not in self._pending:
            self._pending[key] = asyncio.get_running_loop().create_future()
        return self._pending[key]

    async def lookup_by_city(self, name: str) -> WeatherRecord:
        key = ("city", name)
        self.calls.append(key)
        return await self._future(key)

    async def lookup_by_coordinates(self, latitude: float, longitude: float) -> WeatherRecord:
        key = ("coord", latitude, longitude)
        self.calls.append(key)
        return await self._future(key)

    def resolve(self, key: tuple, record: WeatherRecord) -> None:
        future = self._future(key)
        if not future.done():
            future.set_result(record)

    def fail(self, key: tuple, error: Exception | None = None) -> None:
        future = self._future(key)
        if not future.done():
            future.set_exception(error or WeatherClientError("Weather API failed: boom"))


def _make_record(city: str, temperature: float = 18, latitude: float = 48.85, longitude: float = 2.35) -> WeatherRecord:
    return WeatherRecord(
        city_name=city,
        temperature=temperature,
        humidity=60,
        icon="cloudy",
        coordinate=Coordinate(latitude=latitude, longitude=longitude),
    )


@pytest.fixture
def make_record():
    return _make_record


@pytest.fixture
def weather_client():
    return FakeWeatherClient()


@pytest.fixture
def location_provider():
    return ReportedLocationProvider()


@pytest.fixture
async def coordinator(weather_client, location_provider):
    """Coordinator wired to the fake client and a reported location provider."""
    coordinator = WeatherQueryCoordinator(weather_client, location_provider, accuracy_threshold=100.0)
    yield coordinator
    await coordinator.close()


@pytest.fixture
async def mock_redis(monkeypatch):
    """Mock Redis with fakeredis."""
    fake_redis = FakeAsyncRedis(decode_responses=True)
    monkeypatch.setattr(cache, "redis", fake_redis)
    return fake_redis


@pytest.fixture
def mock_weather_response():
    """OpenWeatherMap current weather body for Paris."""
    return {
        "coord": {"lon": 2.35, "lat": 48.85},
        "weather": [{"id": 803, "main": "Clouds", "description": "broken clouds", "icon": "04d"}],
        "main": {"temp": 18.0, "feels_like": 17.4, "pressure": 1016, "humidity": 60},
        "name": "Paris",
        "cod": 200,
    }
