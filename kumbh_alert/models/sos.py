"""
SOS alert models.
"""

from enum import Enum
from typing import Optional

from pydantic import Field

from kumbh_alert.models.base import GeoPointRequest


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class SOSStatus(str, Enum):
    PENDING = "pending"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"


class SOSCreate(GeoPointRequest):
    """Incoming SOS. The reporter is taken from the session, if any."""
    message: Optional[str] = Field(None, max_length=1000, description="Free-text message")
    priority: Priority = Field(default=Priority.HIGH, description="Alert priority")
