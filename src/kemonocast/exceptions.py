"""
Exceptions raised by kemonocast.
"""

from typing import Optional


class KemonocastError(Exception):
    """Base exception for all kemonocast errors."""

    pass


class UpstreamError(KemonocastError):
    """
    Raised when a request to the upstream content platform fails.

    Covers both non-success HTTP statuses and transport failures
    (timeouts, refused connections). For transport failures ``status``
    is None.

    Attributes:
        status: HTTP status code, or None for transport failures
        body: Response body (truncated) or transport error message
        url: URL that was requested
    """

    def __init__(
        self,
        status: Optional[int],
        body: str = "",
        url: str = "",
    ):
        self.status = status
        self.body = body
        self.url = url
        if status is None:
            message = f"Upstream request failed: {body}"
        else:
            message = f"Upstream returned HTTP {status}"
        if url:
            message += f" ({url})"
        super().__init__(message)
