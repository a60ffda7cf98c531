"""
Appointment intake service.

Two entry points:
- intake_from_audio: recording -> transcript -> candidate appointment ->
  preliminary conflict check. Nothing is stored.
- confirm: authoritative conflict check, then persist.
"""

import json
import logging

from pydantic import ValidationError

from clients.speech_client import SpeechToTextClient, SpeechToTextError, SpeechToTextTimeout
from core.config import DEFAULT_MAX_AUDIO_BYTES
from core.database import AppointmentDatabase
from core.exceptions import (
    AudioTooLargeError,
    NoFileProvidedError,
    TranscriptionTimeout,
    TranscriptionUnavailable,
)
from core.extraction import AppointmentExtractor
from core.models import (
    AppointmentCreate,
    AppointmentValidationResult,
    CandidateAppointment,
    TranscriptionErrorEnvelope,
)
from core.validation import SchedulingValidator
from utils.timezone import from_client_local

logger = logging.getLogger(__name__)

AUDIO_CORRUPTED = "Audio might be corrupted"


def detect_upload_error(raw: str) -> TranscriptionErrorEnvelope | None:
    """
    Return the error envelope if the transcription body is one.

    A body that does not parse as an error envelope is not an error, even
    if it is not valid JSON at all.
    """
    try:
        return TranscriptionErrorEnvelope.model_validate_json(raw)
    except ValidationError:
        logger.debug("Transcription body is not an error envelope")
        return None


def transcript_text(raw: str) -> str:
    """The transcript inside a transcription body, or the body itself."""
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError:
        return raw
    if isinstance(payload, dict) and isinstance(payload.get("text"), str):
        return payload["text"]
    return raw


class AppointmentService:
    """Service for turning recordings into stored appointments."""

    def __init__(
        self,
        speech: SpeechToTextClient,
        extractor: AppointmentExtractor,
        validator: SchedulingValidator,
        appointments: AppointmentDatabase,
        client_timezone: str = "UTC",
        max_audio_bytes: int = DEFAULT_MAX_AUDIO_BYTES,
    ):
        self.speech = speech
        self.extractor = extractor
        self.validator = validator
        self.appointments = appointments
        self.client_timezone = client_timezone
        self.max_audio_bytes = max_audio_bytes

    def intake_from_audio(
        self,
        user_id: int,
        audio: bytes,
        filename: str,
    ) -> tuple[CandidateAppointment, AppointmentValidationResult]:
        """
        Extract an appointment from a recording and pre-check it.

        Args:
            user_id: Owner whose schedule is checked
            audio: Recorded audio bytes
            filename: Original upload file name

        Returns:
            (candidate, preliminary validation result)

        Raises:
            NoFileProvidedError: If audio is empty
            AudioTooLargeError: If audio exceeds max_audio_bytes
            TranscriptionUnavailable: If the speech service cannot be reached
            ExtractionFailed: If no appointment can be extracted
        """
        if not audio:
            raise NoFileProvidedError("No file provided")
        if len(audio) > self.max_audio_bytes:
            raise AudioTooLargeError(self.max_audio_bytes)

        try:
            raw = self.speech.transcribe(audio, filename)
        except SpeechToTextTimeout as e:
            raise TranscriptionTimeout("Transcription timed out") from e
        except SpeechToTextError as e:
            raise TranscriptionUnavailable("Transcription service unavailable") from e

        envelope = detect_upload_error(raw)
        if envelope is not None:
            logger.warning(
                f"Transcription rejected audio: user_id={user_id} "
                f"type={envelope.error.type} code={envelope.error.code}"
            )
            return CandidateAppointment(), AppointmentValidationResult.failure(AUDIO_CORRUPTED)

        candidate = self._normalize(self.extractor.extract_appointment(transcript_text(raw)))

        existing = self.appointments.get_appointments_by_user_id(user_id)
        result = self.validator.validate(candidate, existing)

        logger.info(f"Audio intake finished: user_id={user_id} valid={result.is_success}")
        return candidate, result

    def confirm(
        self,
        user_id: int,
        candidate: CandidateAppointment,
    ) -> tuple[CandidateAppointment, AppointmentValidationResult]:
        """
        Validate and persist a confirmed appointment.

        The conflict check and the insert run under the user's schedule
        lock, so concurrent confirms cannot double-book.

        Returns:
            (candidate, validation result). Persisted only on success.
        """
        candidate = self._normalize(candidate)

        with self.appointments.schedule_lock(user_id) as schedule:
            result = self.validator.validate(candidate, schedule.get_appointments())
            if not result.is_success:
                logger.info(f"Appointment rejected: user_id={user_id}")
                return candidate, result

            stored = schedule.save_appointment(
                AppointmentCreate(
                    user_id=user_id,
                    name=candidate.name,
                    appointment_date=candidate.appointment_date,
                    duration_minutes=candidate.duration_minutes,
                    notes=candidate.notes,
                )
            )

        logger.info(f"Appointment saved: id={stored.id} user_id={user_id}")
        return candidate, result

    def _normalize(self, candidate: CandidateAppointment) -> CandidateAppointment:
        """Bring the candidate's date into UTC."""
        if candidate.appointment_date is None:
            return candidate
        return candidate.model_copy(
            update={
                "appointment_date": from_client_local(
                    candidate.appointment_date, self.client_timezone
                )
            }
        )
