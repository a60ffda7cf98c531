"""Typed exceptions for the appointment intake pipeline."""


class IntakeError(Exception):
    """Base class for audio intake and appointment errors."""


class TranscriptionUnavailable(IntakeError):
    """Speech-to-text service could not be reached."""


class TranscriptionTimeout(TranscriptionUnavailable):
    """Speech-to-text service did not answer in time."""


class ExtractionFailed(IntakeError):
    """Transcript could not be turned into an appointment."""


class ExtractionTimeout(ExtractionFailed):
    """Extraction model did not answer in time."""


class NoFileProvidedError(IntakeError):
    """Upload request carried no audio file, or an empty one."""


class UnsupportedContentTypeError(IntakeError):
    """Upload request was not multipart/form-data."""


class AudioTooLargeError(IntakeError):
    """Uploaded audio exceeds the configured size limit."""

    def __init__(self, max_bytes: int):
        self.max_bytes = max_bytes
        super().__init__(f"Audio file exceeds {max_bytes} bytes")
