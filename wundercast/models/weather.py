"""Pydantic models for weather records, location fixes and API payloads."""

from pydantic import BaseModel, ConfigDict, Field


class Coordinate(BaseModel):
    """Latitude/longitude pair in decimal degrees."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90, le=90, description="Latitude")
    longitude: float = Field(..., ge=-180, le=180, description="Longitude")


class WeatherRecord(BaseModel):
    """Current weather for one place, as returned by a lookup."""

    model_config = ConfigDict(frozen=True)

    city_name: str = Field(..., description="City name")
    temperature: float = Field(..., description="Current temperature in Celsius")
    humidity: int = Field(..., ge=0, le=100, description="Relative humidity in percent")
    icon: str = Field(..., description="Weather icon code")
    coordinate: Coordinate = Field(..., description="Location of the weather station")

    @property
    def temperature_text(self) -> str:
        return f"{self.temperature:g}° C"

    @property
    def humidity_text(self) -> str:
        return f"{self.humidity}%"


# Placeholder shown when a lookup fails
DUMMY_RECORD = WeatherRecord(
    city_name="",
    temperature=0,
    humidity=0,
    icon="",
    coordinate=Coordinate(latitude=0, longitude=0),
)


class GeoPosition(BaseModel):
    """A location fix reported by the device."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90, le=90, description="Latitude")
    longitude: float = Field(..., ge=-180, le=180, description="Longitude")
    accuracy: float = Field(..., ge=0, description="Horizontal accuracy in meters")

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(latitude=self.latitude, longitude=self.longitude)


class CitySearchRequest(BaseModel):
    """City search submitted from the search field."""

    city: str = Field(..., description="City name as typed by the user")


class TriggerResponse(BaseModel):
    """Response to a lookup trigger."""

    accepted: bool = Field(..., description="Whether the trigger started a lookup")
    busy: bool = Field(..., description="Busy state right after the trigger")


class WeatherState(BaseModel):
    """Snapshot of the weather pipeline for the presentation layer."""

    record: WeatherRecord = Field(..., description="Most recent weather record")
    temperature_text: str = Field(..., description="Temperature label text")
    humidity_text: str = Field(..., description="Humidity label text")
    busy: bool = Field(..., description="Whether a lookup is in flight")


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str = Field(..., description="Service status")
    version: str = Field(..., description="API version")
    redis_connected: bool = Field(..., description="Redis connection status")


class ErrorResponse(BaseModel):
    """Error response model."""

    error: str = Field(..., description="Error message")
    detail: str | None = Field(None, description="Additional error details")
