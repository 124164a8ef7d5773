"""Pydantic data models for netcapture.

This module defines the data models shared by both capture strategies,
including the stream configuration, captured events, and error types.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Default cadence of the polling strategy (seconds)
DEFAULT_POLL_INTERVAL = 0.3


class EventStreamConfig(BaseModel):
    """Configuration for a capture stream.

    Frozen so that both listeners can share one instance for the lifetime
    of the stream.

    Attributes:
        url_substring_filter: Capture only URLs containing this substring
        content_type_substring_filter: Capture only responses whose Content-Type
            contains this substring (responses without a Content-Type never match)
        poll_interval: Drain cadence of the polling strategy in seconds
        pending_ttl: Seconds after which an uncompleted correlation record is
            evicted. None keeps records until their completion arrives.
    """

    model_config = ConfigDict(frozen=True)

    url_substring_filter: str | None = None
    content_type_substring_filter: str | None = None
    poll_interval: float = DEFAULT_POLL_INTERVAL
    pending_ttl: float | None = None

    @field_validator("poll_interval")
    @classmethod
    def _positive_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("poll_interval must be positive")
        return v

    @field_validator("pending_ttl")
    @classmethod
    def _positive_ttl(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError("pending_ttl must be positive or None")
        return v


class CorrelationRecord(BaseModel):
    """Response metadata held between headers-received and loading-finished.

    Attributes:
        url: Response URL
        content_type: Content-Type header value, if any
        status: HTTP status code
    """

    model_config = ConfigDict(frozen=True)

    url: str
    content_type: str | None = None
    status: int | None = Field(default=None, ge=0, le=65535)


class Event(BaseModel):
    """A captured HTTP exchange delivered to the consumer.

    The page-side instrumentation reports ``contentType``; both spellings
    are accepted on input.

    Attributes:
        url: Response URL
        content_type: Content-Type header value, if any
        status: HTTP status code
        body: Response body as text
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    url: str
    content_type: str | None = Field(default=None, alias="contentType")
    status: int | None = Field(default=None, ge=0, le=65535)
    body: str


class WaitSignal(str, Enum):
    """Non-event outcomes of a timed wait on a receiver."""

    TIMEOUT = "timeout"
    STREAM_CLOSED = "stream_closed"


class ErrorCode(str, Enum):
    """Error codes for capture failures."""

    SETUP_FAILED = "setup_failed"
    BODY_FETCH_FAILED = "body_fetch_failed"
    BODY_DECODE_FAILED = "body_decode_failed"
    EVALUATION_FAILED = "evaluation_failed"


class CaptureError(Exception):
    """Base exception for capture failures.

    Only the four subclasses below are raised; each fixes its code.

    Attributes:
        code: Error code
        message: Human-readable error message
        details: Additional error context
    """

    code: ErrorCode

    def __init__(
        self,
        message: str,
        details: dict[str, object] | None = None,
    ) -> None:
        """Initialize the error.

        Args:
            message: Human-readable error message
            details: Additional context (e.g., request id, underlying cause)
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)


class SetupError(CaptureError):
    """Tracking could not be enabled; no stream was started."""

    code = ErrorCode.SETUP_FAILED

    def __init__(self, stage: str, cause: object) -> None:
        super().__init__(
            f"Failed to start capture ({stage}): {cause}",
            details={"stage": stage, "cause": str(cause)},
        )
        self.stage = stage


class BodyFetchError(CaptureError):
    """The response body for one request could not be retrieved."""

    code = ErrorCode.BODY_FETCH_FAILED

    def __init__(self, request_id: str, cause: object) -> None:
        super().__init__(
            f"Failed to fetch body for request {request_id}: {cause}",
            details={"request_id": request_id, "cause": str(cause)},
        )
        self.request_id = request_id


class BodyDecodeError(CaptureError):
    """A base64-flagged body was not valid base64."""

    code = ErrorCode.BODY_DECODE_FAILED

    def __init__(self, request_id: str, cause: object) -> None:
        super().__init__(
            f"Failed to decode base64 body for request {request_id}: {cause}",
            details={"request_id": request_id, "cause": str(cause)},
        )
        self.request_id = request_id


class EvaluationError(CaptureError):
    """Evaluating or parsing the page-side capture queue failed."""

    code = ErrorCode.EVALUATION_FAILED

    def __init__(self, stage: str, cause: object) -> None:
        super().__init__(
            f"Page evaluation failed ({stage}): {cause}",
            details={"stage": stage, "cause": str(cause)},
        )
        self.stage = stage


class CaptureStrategy(str, Enum):
    """How network traffic is observed in the page."""

    CDP = "cdp"  # DevTools Protocol network events (Chromium)
    POLL = "poll"  # Injected fetch/XHR hooks drained by polling
