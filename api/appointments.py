"""HTTP routes for audio intake and appointment confirmation."""

import logging

from fastapi import APIRouter, Request
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from auth.security_middleware import current_user_id
from core.config import DEFAULT_MAX_AUDIO_BYTES
from core.exceptions import AudioTooLargeError, NoFileProvidedError, UnsupportedContentTypeError
from core.models import AppointmentValidationResult, CandidateAppointment
from core.services.appointment_service import AppointmentService

logger = logging.getLogger(__name__)


def _intake_response(
    candidate: CandidateAppointment,
    result: AppointmentValidationResult,
) -> dict:
    return {
        "appointment": candidate.model_dump(mode="json", by_alias=True),
        "validation": result.model_dump(mode="json", by_alias=True),
    }


async def _first_upload(request: Request) -> UploadFile:
    """First file part of a multipart upload."""
    content_type = request.headers.get("content-type", "")
    if not content_type.lower().startswith("multipart/form-data"):
        raise UnsupportedContentTypeError("Expected multipart/form-data request")

    form = await request.form()
    for _, value in form.multi_items():
        if isinstance(value, UploadFile):
            return value
    raise NoFileProvidedError("No file provided")


def create_appointment_router(
    appointment_service: AppointmentService,
    max_audio_bytes: int = DEFAULT_MAX_AUDIO_BYTES,
) -> APIRouter:
    """Create appointment router with injected service.

    Uploads larger than max_audio_bytes are rejected before they are read
    into memory.
    """
    router = APIRouter(tags=["appointments"])

    @router.post("/UploadAudio")
    async def upload_audio(request: Request):
        """Transcribe a recording and return the extracted appointment.

        Nothing is saved; the client shows the result for confirmation.
        """
        upload = await _first_upload(request)
        try:
            if upload.size is not None and upload.size > max_audio_bytes:
                raise AudioTooLargeError(max_audio_bytes)
            # One byte past the limit is enough to tell it was exceeded
            audio = await upload.read(max_audio_bytes + 1)
        finally:
            await upload.close()
        if len(audio) > max_audio_bytes:
            raise AudioTooLargeError(max_audio_bytes)

        candidate, result = await run_in_threadpool(
            appointment_service.intake_from_audio,
            current_user_id(request),
            audio,
            upload.filename or "",
        )
        return _intake_response(candidate, result)

    @router.post("/ConfirmAppointment")
    def confirm_appointment(request: Request, body: CandidateAppointment):
        """Re-check the appointment against the schedule and save it if it fits."""
        candidate, result = appointment_service.confirm(current_user_id(request), body)
        return _intake_response(candidate, result)

    return router
