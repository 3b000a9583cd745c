"""
Custom Exceptions for Elasticsearch Cluster Library

Provides a clear exception hierarchy so callers can tell "the cluster is
unreachable" apart from "Elasticsearch rejected this particular request"
without parsing messages.
"""

import asyncio
import json
from http import HTTPStatus
from typing import Any, Optional

import httpx

from elasticsearch_cluster_lib.models import ErrorDetails


class ClusterLibraryError(Exception):
    """
    Base exception for all library errors.

    All custom exceptions in this library inherit from this base class,
    allowing callers to catch all library-specific errors with a single except clause.
    """
    pass


class ConfigurationError(ClusterLibraryError):
    """
    Raised when there's an error in configuration.

    Examples:
        - Malformed node URL
        - Negative timeouts or intervals
        - Unsupported scheme
        - Configuration file not found or unparsable
    """
    pass


class NoNodeAvailableError(ClusterLibraryError):
    """
    Raised when no Elasticsearch node can serve a request.

    Examples:
        - Every endpoint in the pool is marked dead
        - The pool is empty
        - No seed URL answered within the startup timeout
    """

    def __init__(self, message: str = "no available connection"):
        self.detail = message
        super().__init__(f"no Elasticsearch node available: {message}")


class TransportError(ClusterLibraryError):
    """
    Raised when a single HTTP attempt fails below the HTTP layer.

    Examples:
        - DNS resolution or connection refused
        - TLS handshake failure
        - Read/write timeouts on the socket
    """

    def __init__(self, url: str, cause: Optional[BaseException] = None):
        """
        Initialize TransportError.

        Args:
            url: URL of the failed attempt
            cause: Underlying httpx exception (optional)
        """
        self.url = url
        self.cause = cause

        if cause is not None:
            message = f"request to {url} failed: {cause!r}"
        else:
            message = f"request to {url} failed"

        super().__init__(message)


class RetryExhaustedError(ClusterLibraryError):
    """
    Raised when the retry policy declines further attempts.

    The last underlying failure is available as ``last_error`` (and as
    ``__cause__`` when raised by the executor).
    """

    def __init__(self, attempts: int, last_error: Optional[BaseException] = None):
        self.attempts = attempts
        self.last_error = last_error

        message = f"cannot connect after {attempts} attempt(s)"
        if last_error is not None:
            message = f"{message}: {last_error}"

        super().__init__(message)


class FatalRetryError(ClusterLibraryError):
    """
    Returned by a retrier to abort a request immediately.

    Any exception a retrier returns as the fatal part of its decision is
    raised verbatim; this type exists for policies that have no more
    specific exception at hand.
    """
    pass


class ResponseSizeError(ClusterLibraryError):
    """Raised when a response body exceeds the configured maximum size."""

    def __init__(self, max_size: int):
        self.max_size = max_size
        super().__init__(f"elastic: response size too large (limit {max_size} bytes)")


class MissingPluginError(ClusterLibraryError):
    """Raised when a required plugin is not installed on the cluster."""

    def __init__(self, plugin: str):
        self.plugin = plugin
        super().__init__(f"elastic: plugin {plugin} not found")


class ResponseError(ClusterLibraryError):
    """
    Raised when Elasticsearch answers with an unsuccessful status code.

    Attributes:
        status: HTTP status code
        details: ErrorDetails decoded from the response body (may be None)
        response: Partially built Response, when one could be obtained
    """

    def __init__(self, status: int, details: Any = None, response: Any = None):
        self.status = status
        self.details = details
        self.response = response
        super().__init__(self._format())

    def _format(self) -> str:
        try:
            phrase = HTTPStatus(self.status).phrase
        except ValueError:
            phrase = ""

        if self.details is not None and getattr(self.details, "reason", ""):
            return (
                f"elastic: Error {self.status} ({phrase}): "
                f"{self.details.reason} [type={self.details.type}]"
            )
        return f"elastic: Error {self.status} ({phrase})"

    @classmethod
    def from_body(cls, status: int, body: bytes, response: Any = None) -> "ResponseError":
        """
        Build a ResponseError from a raw Elasticsearch error body.

        Understands both ``{"error": {...}, "status": 404}`` and the legacy
        ``{"error": "message", "status": 404}`` shapes. Anything that cannot
        be decoded yields an error carrying only the status code.
        """
        if not body:
            return cls(status, response=response)

        try:
            payload = json.loads(body)
        except (ValueError, UnicodeDecodeError):
            return cls(status, response=response)

        if not isinstance(payload, dict):
            return cls(status, response=response)

        reported_status = payload.get("status")
        if type(reported_status) is not int or not 100 <= reported_status <= 599:
            reported_status = status
        error = payload.get("error")
        details = None
        if isinstance(error, dict):
            details = ErrorDetails.from_dict(error)
        elif isinstance(error, str) and error:
            details = ErrorDetails(type="", reason=error)

        return cls(reported_status, details=details, response=response)


def error_reason(err: Optional[BaseException]) -> str:
    """
    Return the reason Elasticsearch reported for an error.

    Any value that is not a ResponseError with details yields an empty string.
    """
    if not isinstance(err, ResponseError) or err.details is None:
        return ""
    return err.details.reason or ""


def is_status_code(err: Optional[BaseException], code: int) -> bool:
    """Check whether err is a ResponseError with the given status code."""
    return isinstance(err, ResponseError) and err.status == code


def is_not_found(err: Optional[BaseException]) -> bool:
    return is_status_code(err, 404)


def is_unauthorized(err: Optional[BaseException]) -> bool:
    return is_status_code(err, 401)


def is_forbidden(err: Optional[BaseException]) -> bool:
    return is_status_code(err, 403)


def is_conflict(err: Optional[BaseException]) -> bool:
    return is_status_code(err, 409)


def is_timeout(err: Optional[BaseException]) -> bool:
    """True for HTTP 408 responses, caller deadlines and HTTP client timeouts."""
    if isinstance(err, (asyncio.TimeoutError, TimeoutError)):
        return True
    if isinstance(err, TransportError) and isinstance(err.cause, httpx.TimeoutException):
        return True
    return is_status_code(err, 408)


def is_connection_error(err: Optional[BaseException]) -> bool:
    """True when err means the cluster (rather than the request) is the problem."""
    return isinstance(err, (NoNodeAvailableError, TransportError, RetryExhaustedError))
