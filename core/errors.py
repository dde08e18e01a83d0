"""
Errors — Exception types raised by the export pipeline.

The GraphQL client classifies every failed request into one of the
TransportError subclasses below. The member fetcher retries RateLimitedError
and TransientError in place; everything else propagates to the orchestrator,
which turns it into operator guidance via guidance_for().

Hierarchy:
    ExporterError
      ConfigurationError
      TransportError
        UnauthenticatedError     401 / bad credentials
        ForbiddenError           403 / missing scopes or permissions
        NotFoundError            404 / unknown enterprise or organization
        RateLimitedError         quota exhausted (carries reset_at)
        TransientError           timeouts, connection errors, 5xx
        MalformedResponseError   body is not a GraphQL response
"""

from typing import Optional


class ExporterError(Exception):
    """Base class for all exporter errors."""


class ConfigurationError(ExporterError):
    """Required configuration is missing or invalid."""


class TransportError(ExporterError):
    """A GraphQL request failed.

    Attributes:
        kind: Short classification label (e.g., "forbidden").
        status_code: HTTP status of the response, if one was received.
    """

    kind = "error"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class UnauthenticatedError(TransportError):
    kind = "unauthenticated"


class ForbiddenError(TransportError):
    kind = "forbidden"


class NotFoundError(TransportError):
    kind = "not_found"


class RateLimitedError(TransportError):
    """The API quota is exhausted.

    Attributes:
        reset_at: Epoch seconds when the quota resets, or None if the server
                  did not say.
    """

    kind = "rate_limited"

    def __init__(self, message: str, status_code: Optional[int] = None,
                 reset_at: Optional[float] = None):
        super().__init__(message, status_code)
        self.reset_at = reset_at


class TransientError(TransportError):
    kind = "transient"


class MalformedResponseError(TransportError):
    kind = "malformed"


_GUIDANCE = {
    "unauthenticated": "Authentication failed. Check that GITHUB_TOKEN is valid and not expired.",
    "forbidden": "Authorization error. Check that GITHUB_TOKEN has the required scopes "
                 "(read:enterprise, read:org, read:user).",
    "not_found": "Enterprise not found. Check your ENTERPRISE_SLUG.",
    "rate_limited": "Rate limit hit. Please wait for the quota to reset and try again.",
    "transient": "Network or server error persisted after retries. Try again later.",
    "malformed": "Unexpected response from the GitHub API. Re-run with --debug for details.",
    "error": "GitHub API request failed. Re-run with --debug for details.",
}


def guidance_for(error: BaseException, output_path: Optional[str] = None) -> str:
    """Map a pipeline failure to a one-line, human-readable next step.

    Args:
        error: The exception that aborted the export.
        output_path: Destination file, reported for write failures.

    Returns:
        The guidance message.
    """
    if isinstance(error, TransportError):
        return _GUIDANCE.get(error.kind, _GUIDANCE["error"])
    if isinstance(error, ConfigurationError):
        return "Please set GITHUB_TOKEN and ENTERPRISE_SLUG in your .env file."
    if isinstance(error, OSError):
        target = output_path or getattr(error, "filename", None) or "the output directory"
        return f"Could not write {target}. Check permissions and free disk space."
    return "Unexpected error. Re-run with --debug for details."


def error_kind(error: BaseException) -> str:
    """Short label for an error, recorded in the run results."""
    if isinstance(error, TransportError):
        return error.kind
    if isinstance(error, ConfigurationError):
        return "configuration"
    if isinstance(error, OSError):
        return "io"
    return "unexpected"
