"""Appointment domain models."""

import re
from datetime import datetime, timedelta

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Storage limits of the appointments table
NAME_MAX_LENGTH = 100
DURATION_MAX_MINUTES = 2_147_483_647


class CandidateAppointment(BaseModel):
    """An appointment extracted from audio, awaiting user confirmation.

    Wire names follow the mobile client (camelCase); Python field names are
    accepted too.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field("", max_length=NAME_MAX_LENGTH)
    phone: str = ""
    appointment_date: datetime | None = Field(None, alias="appointmentDate")
    duration_minutes: int = Field(
        0, alias="appointmentDurationMinutes", ge=0, le=DURATION_MAX_MINUTES
    )
    notes: str = Field("", alias="additionalText")

    @field_validator("phone", mode="before")
    @classmethod
    def digits_only(cls, value: object) -> str:
        """Strip everything but digits."""
        if value is None:
            return ""
        return re.sub(r"\D", "", str(value))

    @field_validator("name", "notes", mode="before")
    @classmethod
    def none_to_empty(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("appointment_date", mode="before")
    @classmethod
    def blank_date_is_missing(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def interval_in_range(self) -> "CandidateAppointment":
        """Start and end must stay representable after any UTC offset is applied."""
        if self.appointment_date is None:
            return self
        try:
            self.appointment_date - timedelta(days=1)
            self.appointment_date + timedelta(days=1, minutes=self.duration_minutes)
        except OverflowError:
            raise ValueError("Appointment date is out of range")
        return self


class AppointmentCreate(BaseModel):
    """Data required to persist an appointment."""

    user_id: int
    name: str = Field(..., max_length=NAME_MAX_LENGTH)
    appointment_date: datetime | None
    duration_minutes: int = Field(..., ge=0, le=DURATION_MAX_MINUTES)
    notes: str = ""


class Appointment(BaseModel):
    """Full appointment entity as stored."""

    id: int
    user_id: int
    name: str | None
    appointment_date: datetime | None
    duration_minutes: int | None
    notes: str | None = None

    model_config = {"from_attributes": True}


class AppointmentValidationResult(BaseModel):
    """Outcome of a scheduling check."""

    model_config = ConfigDict(populate_by_name=True)

    is_success: bool = Field(..., alias="isSuccess")
    error: str = ""

    @classmethod
    def success(cls) -> "AppointmentValidationResult":
        return cls(is_success=True, error="")

    @classmethod
    def failure(cls, error: str) -> "AppointmentValidationResult":
        return cls(is_success=False, error=error)


class TranscriptionErrorBody(BaseModel):
    """Error object inside a transcription error envelope."""

    message: str | None = None
    type: str | None = None
    param: str | None = None
    code: str | None = None


class TranscriptionErrorEnvelope(BaseModel):
    """Error envelope the transcription endpoint returns instead of a transcript."""

    error: TranscriptionErrorBody
