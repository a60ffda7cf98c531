"""
Scheduling conflict validation.

Appointments occupy half-open intervals [start, start + duration).
Back-to-back appointments (one ends exactly when the next starts) do not
conflict.
"""

import logging
from datetime import datetime, timedelta
from typing import Iterable

from core.models import Appointment, AppointmentValidationResult, CandidateAppointment

logger = logging.getLogger(__name__)

DATE_REQUIRED = "Appointment date is required"


def intervals_overlap(a: datetime, b: datetime, c: datetime, d: datetime) -> bool:
    """Whether half-open intervals [a, b) and [c, d) share an instant."""
    return a < d and c < b


class SchedulingValidator:
    """
    Check a candidate appointment against a user's existing schedule.

    The same check runs twice: once right after extraction so the user sees
    conflicts before confirming, and again just before the appointment is
    persisted.
    """

    def validate(
        self,
        candidate: CandidateAppointment,
        existing: Iterable[Appointment],
    ) -> AppointmentValidationResult:
        """
        Validate candidate against existing appointments.

        Existing appointments without a start or a duration are ignored.
        The first conflict found is reported; it is not necessarily the
        earliest one.

        Args:
            candidate: Appointment awaiting confirmation
            existing: The owner's stored appointments

        Returns:
            Success, or failure naming the conflicting appointment
        """
        if candidate.appointment_date is None:
            return AppointmentValidationResult.failure(DATE_REQUIRED)

        start = candidate.appointment_date
        end = start + timedelta(minutes=candidate.duration_minutes)

        for appointment in existing:
            if appointment.appointment_date is None or appointment.duration_minutes is None:
                continue

            ex_start = appointment.appointment_date
            ex_end = ex_start + timedelta(minutes=appointment.duration_minutes)

            if intervals_overlap(start, end, ex_start, ex_end):
                logger.info(
                    f"Appointment conflict with id={appointment.id} at {ex_start.isoformat()}"
                )
                return AppointmentValidationResult.failure(
                    f"Appointment overlaps with existing appointment '{appointment.name}' "
                    f"on {ex_start:%Y-%m-%d %H:%M} UTC ({appointment.duration_minutes} min)."
                )

        return AppointmentValidationResult.success()
