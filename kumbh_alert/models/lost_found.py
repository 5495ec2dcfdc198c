"""
Lost & found report models.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from kumbh_alert.models.base import GeoPointRequest


class ReportType(str, Enum):
    LOST = "lost"
    FOUND = "found"


class LostFoundStatus(str, Enum):
    OPEN = "open"
    MATCHED = "matched"
    RESOLVED = "resolved"


class LostFoundCreate(GeoPointRequest):
    type: ReportType
    item_name: str = Field(..., min_length=1, max_length=200, description="Item name, or 'Lost Person'")
    description: Optional[str] = Field(None, max_length=1000)
    phone: str = Field(..., min_length=1, max_length=20, description="Contact phone")
    email: Optional[str] = Field(None, max_length=200, description="Contact email")
    images: List[str] = Field(default_factory=list, description="Opaque image references")
    is_person: bool = Field(default=False, description="Report concerns a missing/found person")
    facial_recognition_data: Optional[str] = Field(None, description="Opaque facial-recognition payload")

    class Config:
        json_schema_extra = {
            "example": {
                "type": "lost",
                "item_name": "Black backpack",
                "description": "Left near the ghat steps",
                "latitude": 19.9975,
                "longitude": 73.7898,
                "phone": "9876543210",
            }
        }


class MatchRequest(BaseModel):
    matched_with_id: str = Field(..., min_length=1, description="Report to pair with")


class RegistrationMatchRequest(BaseModel):
    registration_id: str = Field(..., min_length=1, description="Entry-point registration to correlate with")


class PersonPhotoUpload(GeoPointRequest):
    """A volunteer's photo of a found person."""
    image: str = Field(..., min_length=1, description="Opaque image reference or payload")
    description: Optional[str] = Field(None, max_length=1000)
