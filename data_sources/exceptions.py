"""
Data Source Exceptions - Upstream failure hierarchy.

Raised by the transport layer and caught inside the provider client
that raised it; none of these ever reaches the Aggregator.

    DataSourceError
    ├── FetchError              non-2xx or connection failure
    │   └── RateLimitError      HTTP 429
    ├── ProviderTimeoutError    per-call timeout
    └── NormalizationError      undecodable or misshapen payload

``retriable`` tells the retry policy whether another attempt can help.
"""

from typing import Any, Dict, Optional


class DataSourceError(Exception):
    """Base exception for all provider errors."""

    retriable = False

    def __init__(
        self,
        message: str,
        source_name: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.source_name = source_name
        self.original_error = original_error
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        """Structured form for incident logs."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
            "source_name": self.source_name,
            "original_error": str(self.original_error) if self.original_error else None,
            "context": self.context,
        }

    def __str__(self) -> str:
        text = self.message
        if self.source_name:
            text = f"{self.source_name}: {text}"
        if self.original_error:
            text = f"{text} ({type(self.original_error).__name__})"
        return text


class FetchError(DataSourceError):
    """Non-2xx response, or no response at all when status_code is None."""

    def __init__(
        self,
        message: str,
        source_name: Optional[str] = None,
        status_code: Optional[int] = None,
        request_url: Optional[str] = None,
        response_body: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(message, source_name, original_error, {"url": request_url} if request_url else None)
        self.status_code = status_code
        self.request_url = request_url
        self.response_body = response_body

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "status_code": self.status_code,
            "request_url": self.request_url,
            "response_body": self.response_body,
        })
        return data

    def is_not_found(self) -> bool:
        return self.status_code == 404

    def is_server_error(self) -> bool:
        return self.status_code is not None and 500 <= self.status_code < 600

    def is_client_error(self) -> bool:
        return self.status_code is not None and 400 <= self.status_code < 500

    @property
    def retriable(self) -> bool:
        # connection failures and 5xx
        return self.status_code is None or self.is_server_error()


class RateLimitError(FetchError):
    """HTTP 429, optionally with the server's Retry-After hint."""

    def __init__(
        self,
        message: str,
        source_name: Optional[str] = None,
        retry_after_seconds: Optional[int] = None,
        request_url: Optional[str] = None,
    ) -> None:
        super().__init__(message, source_name, status_code=429, request_url=request_url)
        self.retry_after_seconds = retry_after_seconds

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["retry_after_seconds"] = self.retry_after_seconds
        return data

    @property
    def retriable(self) -> bool:
        return True


class ProviderTimeoutError(DataSourceError):
    """Request exceeded its per-call timeout."""

    retriable = True

    def __init__(
        self,
        message: str,
        source_name: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(message, source_name, original_error)
        self.timeout_seconds = timeout_seconds

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["timeout_seconds"] = self.timeout_seconds
        return data


class NormalizationError(DataSourceError):
    """Payload could not be decoded or lacks the expected shape."""

    def __init__(
        self,
        message: str,
        source_name: Optional[str] = None,
        raw_data: Optional[Any] = None,
        field_name: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, source_name, original_error, context)
        self.raw_data = raw_data
        self.field_name = field_name

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "raw_data": str(self.raw_data)[:500] if self.raw_data is not None else None,
            "field_name": self.field_name,
        })
        return data
