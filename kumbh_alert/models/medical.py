"""
Medical case models.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from kumbh_alert.models.base import GeoPointRequest


class CaseType(str, Enum):
    EMERGENCY = "emergency"
    CONSULTATION = "consultation"
    MEDICATION = "medication"
    CHECKUP = "checkup"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class CaseStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"


class MedicalCaseCreate(GeoPointRequest):
    case_type: CaseType
    description: str = Field(..., min_length=1, max_length=2000)
    patient_id: Optional[str] = Field(None, description="Defaults to the reporter")
    patient_name: Optional[str] = Field(None, max_length=100)
    patient_age: Optional[int] = Field(None, ge=0, le=130)
    patient_gender: Optional[str] = Field(None, max_length=30)
    medical_issue: Optional[str] = Field(None, max_length=2000, description="Defaults to the description")
    allergies: Optional[str] = Field(None, max_length=500)
    emergency_contact: Optional[str] = Field(None, max_length=100)
    symptoms: List[str] = Field(default_factory=list)
    severity: Severity = Field(default=Severity.MEDIUM)


class AssignRequest(BaseModel):
    assigned_to: str = Field(..., min_length=1, description="Staff user id")


class NoteRequest(BaseModel):
    note: str = Field(..., min_length=1, max_length=2000)
