"""Core domain models."""

from core.models.appointment import (
    Appointment,
    AppointmentCreate,
    AppointmentValidationResult,
    CandidateAppointment,
    TranscriptionErrorBody,
    TranscriptionErrorEnvelope,
)

__all__ = [
    # Appointment
    "Appointment", "AppointmentCreate", "CandidateAppointment",
    # Validation
    "AppointmentValidationResult",
    # Transcription
    "TranscriptionErrorBody", "TranscriptionErrorEnvelope",
]
