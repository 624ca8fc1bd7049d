"""
Request models for proximity queries.

Validated with pydantic so callers can pass either model instances or plain
mappings (e.g. straight from a request body).
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class GeoPoint(BaseModel):
    """GeoJSON point, coordinates in ``[longitude, latitude]`` order."""

    model_config = ConfigDict(frozen=True)

    type: Literal["Point"] = "Point"
    coordinates: tuple[float, float]

    @field_validator("coordinates")
    @classmethod
    def _check_range(cls, value: tuple[float, float]) -> tuple[float, float]:
        longitude, latitude = value
        if not -180.0 <= longitude <= 180.0:
            raise ValueError(f"longitude out of range: {longitude}")
        if not -90.0 <= latitude <= 90.0:
            raise ValueError(f"latitude out of range: {latitude}")
        return value

    def to_geojson(self) -> dict[str, Any]:
        return {"type": self.type, "coordinates": list(self.coordinates)}


class GeoQuery(BaseModel):
    """Centre point plus optional distance bounds in metres."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    geometry: GeoPoint
    min_distance: float | None = Field(default=None, ge=0, alias="minDistance")
    max_distance: float | None = Field(default=None, ge=0, alias="maxDistance")


class ActivityFilter(BaseModel):
    """Optional equality constraint on the activity field."""

    model_config = ConfigDict(frozen=True)

    activity: Any = None
