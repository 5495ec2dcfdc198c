"""
Shared pydantic building blocks for request/response validation.

DESIGN PRINCIPLE:
- Models reflect data structure, not business logic
- Lifecycle and matching rules live in the services layer
"""

from pydantic import BaseModel, Field
from typing import Optional


class Location(BaseModel):
    """A point on the ground, with an optional human-readable address."""
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    address: str = Field(default="", max_length=500)


class GeoPointRequest(BaseModel):
    """Flat latitude/longitude/address fields as sent by the mobile clients."""
    latitude: float = Field(..., ge=-90, le=90, description="Latitude coordinate")
    longitude: float = Field(..., ge=-180, le=180, description="Longitude coordinate")
    address: Optional[str] = Field(None, max_length=500, description="Optional address text")

    def to_location(self) -> dict:
        return Location(latitude=self.latitude, longitude=self.longitude, address=self.address or "").model_dump()
