"""
Error taxonomy for the Tubely upload pipeline.

Every failure an orchestrator step can produce is one of the classes below.
Services raise them; the API layer turns them into ``HTTPException`` responses
using ``status_code`` and ``error_code``. Nothing in the pipeline retries.
"""

from fastapi import status


class TubelyError(Exception):
    """Base exception for all expected pipeline failures."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "internal_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_detail(self) -> dict[str, str]:
        """Render the error as the JSON detail body used by the API."""
        return {"error": self.error_code, "message": self.message}


class BadRequestError(TubelyError):
    """Malformed input, oversized or mistyped upload."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "bad_request"


class UnauthorizedError(TubelyError):
    """Missing or invalid bearer credential."""

    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "unauthorized"


class ForbiddenError(TubelyError):
    """Valid credential, but the caller does not own the record."""

    status_code = status.HTTP_403_FORBIDDEN
    error_code = "forbidden"


class NotFoundError(TubelyError):
    """Unknown video record or missing thumbnail."""

    status_code = status.HTTP_404_NOT_FOUND
    error_code = "not_found"


class ConflictError(TubelyError):
    """The record changed between read and write-back."""

    status_code = status.HTTP_409_CONFLICT
    error_code = "conflict"


class InternalError(TubelyError):
    """Probe failure, storage failure or unexpected parse failure."""


class ProbeFailedError(InternalError):
    """The media probe process exited nonzero, was missing or timed out."""

    error_code = "probe_failed"

    def __init__(self, message: str, diagnostics: str = "") -> None:
        super().__init__(message)
        self.diagnostics = diagnostics


class MetadataUnavailableError(InternalError):
    """The probe succeeded but its output had no usable stream geometry."""

    error_code = "metadata_unavailable"


class StorageFailureError(InternalError):
    """A persistence backend rejected or failed a transfer."""

    error_code = "storage_failure"
