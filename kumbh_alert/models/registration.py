"""
Entry-point QR registration models.
"""

import re
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from kumbh_alert.models.base import GeoPointRequest


class EntryPoint(str, Enum):
    RAILWAY_STATION = "railway_station"
    BUS_STAND = "bus_stand"
    PARKING_AREA = "parking_area"
    OTHER = "other"


ENTRY_POINT_LABELS = {
    EntryPoint.RAILWAY_STATION: "Railway Station",
    EntryPoint.BUS_STAND: "Bus Stand",
    EntryPoint.PARKING_AREA: "Parking Area",
    EntryPoint.OTHER: "Other",
}


class Destination(str, Enum):
    TAPOVAN = "Tapovan"
    PANCHVATI = "Panchvati"
    TRAMBAK = "Trambak"
    RAMKUND = "Ramkund"
    KALARAM = "Kalaram"
    SITA_GUFA = "Sita Gufa"
    OTHER = "Other"


class RegistrationContact(BaseModel):
    phone: str = Field(..., description="10-digit contact phone")
    name: Optional[str] = Field(None, max_length=100)

    @field_validator("phone")
    @classmethod
    def phone_has_ten_digits(cls, value: str) -> str:
        digits = re.sub(r"\D", "", value or "")
        if len(digits) != 10:
            raise ValueError("Contact phone must be exactly 10 digits")
        return value.strip()

    @field_validator("name")
    @classmethod
    def name_is_letters_only(cls, value: Optional[str]) -> Optional[str]:
        if value and not re.fullmatch(r"[a-zA-Z\s]+", value.strip()):
            raise ValueError("Contact name can only contain letters")
        return value.strip() if value else value


class RegistrationCreate(GeoPointRequest):
    qr_code_id: str = Field(..., min_length=1, description="Scanned QR payload")
    entry_point: EntryPoint
    entry_point_name: Optional[str] = Field(None, max_length=200)
    group_size: int = Field(..., ge=1, le=50)
    luggage_count: int = Field(..., ge=1, le=20)
    intended_destination: Destination
    custom_destination: Optional[str] = Field(None, max_length=200)
    group_selfie: Optional[str] = Field(None, description="Opaque blob; defaults to 'captured'")
    contact_info: RegistrationContact

    class Config:
        json_schema_extra = {
            "example": {
                "qr_code_id": "Kumbhbharat Registration",
                "entry_point": "railway_station",
                "group_size": 4,
                "luggage_count": 2,
                "intended_destination": "Tapovan",
                "latitude": 19.9975,
                "longitude": 73.7898,
                "contact_info": {"phone": "9876543210", "name": "Asha"},
            }
        }
