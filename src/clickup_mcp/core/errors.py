"""Exception taxonomy for task operations.

Three families, checked by the tool layer in this order:

* ``ValidationError`` - caller input is insufficient; raised before any
  network access and never retried.
* ``NotFoundError`` - a name or custom-ID lookup found zero matches (or, as
  ``AmbiguousMatchError``, more than one). Carries the human-supplied names.
* ``UpstreamError`` - the ClickUp API or the transport reported a failure
  unrelated to identity resolution.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence


class ClickUpMCPError(Exception):
    """Base exception for clickup-mcp."""


# =============================================================================
# Validation
# =============================================================================


class ValidationError(ClickUpMCPError):
    """Raised when caller-supplied parameters cannot be used.

    Attributes:
        field: Name of the offending parameter, if a single one is at fault
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class InvalidIdentifierError(ValidationError):
    """Not enough identifying information to resolve a task or list.

    Attributes:
        kind: "task" or "list"
    """

    def __init__(self, message: str, *, kind: str):
        super().__init__(message, field=f"{kind}_identifier")
        self.kind = kind


# =============================================================================
# Resolution
# =============================================================================


class NotFoundError(ClickUpMCPError):
    """Identity resolution found no usable match.

    Attributes:
        names: Human-supplied identifying values, e.g. {"task_name": "X", "list_name": "Y"}
    """

    def __init__(self, message: str, *, names: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.names = dict(names or {})


class AmbiguousMatchError(NotFoundError):
    """Identity resolution found more than one match for a name.

    Subclasses NotFoundError so callers treating ambiguity as "not found"
    keep working, while diagnostics can still list the candidates.

    Attributes:
        candidates: IDs of every matching entity
    """

    def __init__(
        self,
        message: str,
        *,
        names: Optional[Dict[str, str]] = None,
        candidates: Sequence[str] = (),
    ):
        super().__init__(message, names=names)
        self.candidates: List[str] = list(candidates)


# =============================================================================
# Upstream (ClickUp API / transport)
# =============================================================================


class UpstreamError(ClickUpMCPError):
    """The ClickUp API or the HTTP transport reported a failure.

    Attributes:
        status_code: HTTP status code if a response was received
        error_code: ClickUp ``ECODE`` value if present in the body
        retryable: Whether repeating the request may succeed
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.retryable = retryable


class AuthenticationError(UpstreamError):
    """API token missing, invalid or lacking access."""

    def __init__(self, message: str = "Authentication failed", *, error_code: Optional[str] = None):
        super().__init__(message, status_code=401, error_code=error_code, retryable=False)


class RateLimitError(UpstreamError):
    """Rate limit exceeded.

    Attributes:
        retry_after: Seconds to wait before retrying
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        *,
        retry_after: Optional[float] = None,
    ):
        super().__init__(message, status_code=429, retryable=True)
        self.retry_after = retry_after


class ResourceNotFoundError(UpstreamError):
    """The API answered 404 for an ID-keyed request."""

    def __init__(self, message: str, *, error_code: Optional[str] = None):
        super().__init__(message, status_code=404, error_code=error_code, retryable=False)


# =============================================================================
# Batch execution
# =============================================================================


class BatchItemSkippedError(ClickUpMCPError):
    """A bulk item was never attempted because an earlier item failed.

    Only produced when ``continue_on_error`` is off.
    """


__all__ = [
    "ClickUpMCPError",
    "ValidationError",
    "InvalidIdentifierError",
    "NotFoundError",
    "AmbiguousMatchError",
    "UpstreamError",
    "AuthenticationError",
    "RateLimitError",
    "ResourceNotFoundError",
    "BatchItemSkippedError",
]
