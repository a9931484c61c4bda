"""OpenWeatherMap client with circuit breaker and caching."""

import hashlib
from typing import Any

import httpx
from pybreaker import CircuitBreaker, CircuitBreakerError

from wundercast.core.config import settings
from wundercast.core.logging import get_logger
from wundercast.models.weather import Coordinate, WeatherRecord
from wundercast.services.cache import CacheService, cache

logger = get_logger(__name__)

# Circuit breaker for external API calls
weather_breaker = CircuitBreaker(
    fail_max=settings.circuit_breaker_fail_max,
    reset_timeout=settings.circuit_breaker_timeout,
    name="openweathermap",
)


class WeatherClientError(Exception):
    """A weather lookup could not produce a record."""

    pass


class WeatherClient:
    """Current-weather lookups by city name or coordinates."""

    def __init__(self, http_client: httpx.AsyncClient | None = None, record_cache: CacheService | None = None):
        self.client = http_client or httpx.AsyncClient(
            timeout=settings.request_timeout,
            limits=httpx.Limits(
                max_keepalive_connections=5,
                max_connections=10,
                keepalive_expiry=30.0,
            ),
        )
        self.cache = record_cache or cache

    async def close(self) -> None:
        """Close HTTP client."""
        await self.client.aclose()

    @staticmethod
    def _city_cache_key(city: str) -> str:
        city_normalized = city.lower().strip()
        return f"weather:city:{hashlib.md5(city_normalized.encode()).hexdigest()}"

    @staticmethod
    def _coordinate_cache_key(latitude: float, longitude: float) -> str:
        # ~1 km grid; map pans inside one cell reuse the same result
        return f"weather:coord:{latitude:.2f}:{longitude:.2f}"

    @weather_breaker
    async def _fetch(self, params: dict[str, Any]) -> dict[str, Any]:
        """Call the current-weather endpoint.

        Args:
            params: Query parameters selecting the place

        Returns:
            Decoded JSON body

        Raises:
            WeatherClientError: If the API call fails
        """
        try:
            response = await self.client.get(
                settings.weather_api_url,
                params={
                    **params,
                    "appid": settings.weather_api_key,
                    "units": settings.weather_units,
                },
            )
            response.raise_for_status()
            return response.json()

        except httpx.HTTPError as e:
            logger.error("weather_api_failed", params=params, error=str(e))
            raise WeatherClientError(f"Weather API failed: {str(e)}")

    @staticmethod
    def _parse(data: dict[str, Any]) -> WeatherRecord:
        """Map an OpenWeatherMap body onto a WeatherRecord.

        Raises:
            WeatherClientError: If required fields are missing or malformed
        """
        try:
            weather = data.get("weather") or [{}]
            return WeatherRecord(
                city_name=data.get("name", ""),
                temperature=data["main"]["temp"],
                humidity=data["main"]["humidity"],
                icon=weather[0].get("icon", ""),
                coordinate=Coordinate(
                    latitude=data["coord"]["lat"],
                    longitude=data["coord"]["lon"],
                ),
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.error("weather_response_invalid", error=str(e))
            raise WeatherClientError(f"Invalid weather response: {str(e)}")

    async def _lookup(self, cache_key: str, params: dict[str, Any]) -> WeatherRecord:
        cached = await self.cache.get_record(cache_key)
        if cached is not None:
            logger.info("weather_cache_hit", key=cache_key)
            return cached

        try:
            data = await self._fetch(params)
        except CircuitBreakerError:
            logger.error("circuit_breaker_open", params=params)
            raise WeatherClientError("Weather service temporarily unavailable (circuit breaker open)")

        record = self._parse(data)
        await self.cache.set_record(cache_key, record)
        logger.info("weather_fetched", city=record.city_name, temperature=record.temperature)
        return record

    async def lookup_by_city(self, name: str) -> WeatherRecord:
        """Current weather for a city.

        Args:
            name: City name as typed by the user

        Raises:
            WeatherClientError: If weather data cannot be retrieved
        """
        logger.info("weather_lookup", city=name)
        return await self._lookup(self._city_cache_key(name), {"q": name})

    async def lookup_by_coordinates(self, latitude: float, longitude: float) -> WeatherRecord:
        """Current weather at a coordinate.

        Raises:
            WeatherClientError: If weather data cannot be retrieved
        """
        logger.info("weather_lookup", latitude=latitude, longitude=longitude)
        return await self._lookup(
            self._coordinate_cache_key(latitude, longitude),
            {"lat": latitude, "lon": longitude},
        )
