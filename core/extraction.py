"""
LLM-powered appointment extraction from call transcripts.

Uses a schema-constrained chat completion to turn a free-form transcript
into the fields of an appointment booking.
"""

import json
import logging
from datetime import datetime
from typing import Any

from json_repair import repair_json
from pydantic import ValidationError

from clients.llm_client import LLMClient, LLMError, LLMTimeoutError
from core.exceptions import ExtractionFailed, ExtractionTimeout
from core.models import CandidateAppointment

logger = logging.getLogger(__name__)


APPOINTMENT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "phone": {"type": "string"},
        "appointmentDate": {"type": "string", "format": "date-time"},
        "appointmentDurationMinutes": {"type": "integer"},
        "additionalText": {"type": "string"},
    },
    "required": [
        "name",
        "phone",
        "appointmentDate",
        "appointmentDurationMinutes",
        "additionalText",
    ],
    "additionalProperties": False,
}


class AppointmentExtractor:
    """
    Extract an appointment booking from a transcript.

    Every schema field is always present in the model's answer; missing
    information is filled with a best-effort placeholder rather than left out.
    """

    SYSTEM_PROMPT = """You extract appointment booking details from a conversation.
Return ONLY valid JSON matching the schema.
If some data is missing, still fill the fields as best as possible.
Phone must be digits only.
All dates must be returned in ISO 8601 format (YYYY-MM-DDTHH:MM:SS),
for example: 2026-02-13T14:30:00.
"""

    RESPONSE_FORMAT = {
        "type": "json_schema",
        "json_schema": {
            "name": "appointment",
            "strict": True,
            "schema": APPOINTMENT_SCHEMA,
        },
    }

    def __init__(self, llm: LLMClient):
        self.llm = llm

    def extract_appointment(self, transcript: str) -> CandidateAppointment:
        """
        Extract a candidate appointment from a transcript.

        Called synchronously during upload so the user can review the
        result before confirming.

        Args:
            transcript: Text returned by the transcription service

        Returns:
            Parsed candidate. Its date is None if the model's date is unusable.

        Raises:
            ExtractionTimeout: If the model does not answer in time
            ExtractionFailed: If the model fails or its answer does not fit the schema
        """
        try:
            response = self.llm.generate(
                messages=[
                    {"role": "system", "content": self.SYSTEM_PROMPT},
                    {"role": "user", "content": f"Transcript:\n{transcript}"},
                ],
                response_format=self.RESPONSE_FORMAT,
            )
        except LLMTimeoutError as e:
            raise ExtractionTimeout("Appointment extraction timed out") from e
        except LLMError as e:
            raise ExtractionFailed("Appointment extraction failed") from e

        data = self._parse_json_with_repair(response.content)
        if data is None:
            raise ExtractionFailed("Model response is not a JSON object")

        missing = [field for field in APPOINTMENT_SCHEMA["required"] if field not in data]
        if missing:
            logger.warning(f"Extraction missing fields: {missing}")
            raise ExtractionFailed(f"Model response is missing fields: {', '.join(missing)}")

        data["appointmentDate"] = self._lenient_date(data.get("appointmentDate"))

        try:
            return CandidateAppointment.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Extraction does not match schema: {e.error_count()} errors")
            raise ExtractionFailed("Model response does not match the appointment schema") from e

    def _lenient_date(self, value: Any) -> str | None:
        """Keep parseable ISO dates; anything else counts as missing."""
        if not isinstance(value, str) or not value.strip():
            return None
        try:
            datetime.fromisoformat(value.strip())
        except ValueError:
            logger.info("Extracted date is not ISO 8601, treating as missing")
            return None
        return value.strip()

    def _parse_json_with_repair(self, content: str) -> dict[str, Any] | None:
        """
        Parse JSON with repair fallback for common LLM errors.

        LLMs sometimes produce malformed JSON (trailing commas, code fences, etc.).
        We use json_repair to fix these common issues before giving up.

        Args:
            content: Raw LLM response

        Returns:
            Parsed dict, or None if unparseable
        """
        try:
            result = json.loads(content)
        except json.JSONDecodeError:
            try:
                result = json.loads(repair_json(content))
            except Exception as e:
                logger.warning(f"Could not parse or repair JSON: {e}")
                return None

        if not isinstance(result, dict):
            logger.warning(f"Extraction returned non-dict: {type(result)}")
            return None
        return result
