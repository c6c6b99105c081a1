from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")

# Values of ApiResult.status produced by the client itself
STATUS_SUCCESS = "success"
STATUS_ERROR = "error"
STATUS_NETWORK_ERROR = "network_error"
STATUS_UNKNOWN_ERROR = "unknown_error"
STATUS_DECODE_ERROR = "decode_error"


@dataclass
class ApiResult(Generic[T]):
    """Uniform outcome of every client call.

    `success` reflects what the backend reported, not just the HTTP layer;
    `data` is only set on success. Callers branch on `status` and may show
    `message` to end users directly.
    """

    success: bool
    message: str
    data: T | None = None
    error: str | None = None
    status: str | None = None

    @classmethod
    def failure(cls, message: str, *, error: str | None = None, status: str = STATUS_ERROR) -> ApiResult[T]:
        return cls(success=False, message=message, error=error, status=status)

    def with_data(self, data: T, *, message: str | None = None) -> ApiResult[T]:
        """Return a copy carrying decoded `data` in place of the raw payload."""
        return ApiResult(
            success=self.success,
            message=message or self.message,
            data=data,
            error=self.error,
            status=self.status,
        )

    def without_data(self) -> ApiResult[T]:
        """Re-type a failed result for a caller expecting another payload type."""
        return ApiResult(
            success=self.success,
            message=self.message,
            error=self.error,
            status=self.status,
        )


class DecodeError(ValueError):
    """Raised when a backend payload does not match the expected shape.

    `code` is a stable machine code; `endpoint` names the decoder that failed.
    """

    code: str = STATUS_DECODE_ERROR

    def __init__(self, endpoint: str, detail: str) -> None:
        super().__init__(f"Unexpected response from {endpoint}: {detail}")
        self.endpoint = endpoint
        self.detail = detail


class BackendReportedError(ValueError):
    """Raised by decoders when the envelope is tagged `status: "error"`."""

    code: str = STATUS_ERROR


class SmokeError(RuntimeError):
    """Raised when the smoke flow cannot proceed (e.g., health never ready)."""
