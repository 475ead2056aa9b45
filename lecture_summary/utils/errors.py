from typing import Optional


class SummaryServiceError(Exception):
    """Base class for all errors raised by the summary service."""

    pass


class ValidationError(SummaryServiceError):
    """Raised when a request is missing both transcript fields."""

    pass


class NotFoundError(SummaryServiceError):
    """Raised when no summary exists for a lecture."""

    pass


class TranscriptFetchError(SummaryServiceError):
    """
    Raised when the transcript URL could not be fetched.
    `status_code` is None when the request never got a response.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TranscriptFormatError(SummaryServiceError):
    """Raised when the transcript body is not a non-empty array of text segments."""

    pass


class SummarizerApiError(SummaryServiceError):
    """Raised when the chat-completions endpoint fails or answers non-2xx."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        reason: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason


class SummarizerFormatError(SummaryServiceError):
    """Raised when a chat-completions response carries no usable summary."""

    pass


class PersistenceError(SummaryServiceError):
    """Raised when the summary store is unreachable or a statement fails."""

    pass


class BusError(SummaryServiceError):
    """
    Raised when connecting or subscribing to NATS fails.
    Never fatal: the HTTP trigger keeps working without the bus.
    """

    pass


class JobQueueClosedError(SummaryServiceError):
    """Raised when a job is enqueued after shutdown has begun."""

    pass
