"""
Error taxonomy for campaign orchestration.

Every error carries a human-readable ``message`` and a ``details`` dict that
the HTTP layer returns verbatim in the ``{success: false}`` envelope.
"""
from typing import Optional


class VoiceBatchError(Exception):
    """Base exception for every expected failure in the service."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class ValidationError(VoiceBatchError):
    """Bad dispatch options or recipient input. Raised before any remote call."""
    pass


class NoValidRecipients(ValidationError):

    def __init__(self, message: str = "No valid recipients after normalization"):
        super().__init__(message)


class NotFoundError(VoiceBatchError):
    """Campaign missing, or owned by another tenant."""

    def __init__(self, resource: str, identifier: Optional[str] = None):
        details = {}
        if identifier is not None:
            details["id"] = identifier
        super().__init__(f"{resource} not found", details)


class RemoteServiceError(VoiceBatchError):
    """Non-2xx, unreachable or malformed response from the dispatch service."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        payload: Optional[dict] = None,
    ):
        self.status_code = status_code
        self.payload = payload
        details = {}
        if status_code is not None:
            details["remote_status"] = status_code
        if payload is not None:
            details["remote_payload"] = payload
        super().__init__(message, details)


class NotRemoteManaged(VoiceBatchError):
    """Campaign has no remote correlation id (legacy or created elsewhere)."""

    def __init__(self, campaign_id: int):
        super().__init__(
            "Campaign is not managed by the dispatch service",
            {"campaign_id": campaign_id},
        )


class AlreadyTerminal(VoiceBatchError):

    def __init__(self, campaign_id: int, status: str):
        self.status = status
        super().__init__(
            f"Campaign is already {status}",
            {"campaign_id": campaign_id, "status": status},
        )


class NothingToRetry(VoiceBatchError):
    """Informational: every recipient of the campaign already completed."""

    def __init__(self, campaign_id: Optional[int] = None):
        details = {"campaign_id": campaign_id} if campaign_id is not None else {}
        super().__init__("Every recipient already completed; nothing to retry", details)


class PartialSubmissionError(VoiceBatchError):
    """A later chunk failed after earlier chunks were enqueued remotely."""

    def __init__(
        self,
        campaign_id: Optional[int],
        remote_campaign_id: str,
        enqueued: int,
        accepted_phone_numbers: list,
        failed_chunk: int,
        total_chunks: int,
        cause: RemoteServiceError,
    ):
        self.campaign_id = campaign_id
        self.remote_campaign_id = remote_campaign_id
        self.enqueued = enqueued
        self.accepted_phone_numbers = accepted_phone_numbers
        self.failed_chunk = failed_chunk
        self.total_chunks = total_chunks
        self.cause = cause
        super().__init__(
            f"Submission stopped at chunk {failed_chunk} of {total_chunks}: {cause.message}",
            {
                "campaign_id": campaign_id,
                "remote_campaign_id": remote_campaign_id,
                "enqueued": enqueued,
                "accepted_phone_numbers": accepted_phone_numbers,
                "failed_chunk": failed_chunk,
                "total_chunks": total_chunks,
                "remote_error": cause.details,
            },
        )


class ConfigurationError(VoiceBatchError):
    """Missing or unusable configuration (e.g. no dispatch credential)."""
    pass
