"""
Error types for the Plastix backend.

Every error carries the HTTP status it maps to and a message that is safe
to return to the caller as {"error": message}.
"""

from typing import Optional


class PlastixError(Exception):
    """Base class for all errors surfaced to API callers."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class UploadValidationError(PlastixError):
    """Missing or invalid input on the upload form."""

    status_code = 400


class ImageProcessingError(PlastixError):
    """Decode, resize or encode failure in the image normalizer."""

    status_code = 500


class UpstreamError(PlastixError):
    """Fallback for upstream failures that fit no narrower class."""

    status_code = 500


class UpstreamConfigurationError(UpstreamError):
    """The upstream credential is not configured."""


class UpstreamTimeout(UpstreamError):
    """The upstream call did not finish before the deadline."""

    status_code = 504


class UpstreamTransportError(UpstreamError):
    """Connection reset, refused or timed out at the transport level."""

    status_code = 504


class UpstreamHttpError(UpstreamError):
    """Upstream answered with a non-2xx status."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message, status_code=status_code)

    @property
    def retryable(self) -> bool:
        # only 5xx; a 4xx is a defect in the request itself
        return self.status_code >= 500


class UpstreamResponseError(UpstreamError):
    """Upstream answered 2xx but the payload had an unexpected shape."""

    status_code = 502


class ResponseParseError(Exception):
    """Structured analysis could not be extracted from free-form text.

    Always recovered locally by the response parser.
    """
