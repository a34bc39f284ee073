"""
Error taxonomy for the decoding service.

Configuration and input errors are terminal and reported to the caller.
Everything else is absorbed inside the pipeline and replaced by a
deterministic fallback, except on the extract/augment routes where the
provider status is surfaced.
"""

from typing import Any, Optional


class DecoderError(Exception):
    """Base class. `status_code` is what the HTTP layer responds with."""

    status_code = 500

    def __init__(self, message: str, details: Any = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.details = details
        if status_code is not None:
            self.status_code = status_code

    def to_body(self) -> dict:
        body = {"error": self.message}
        if self.details not in (None, ""):
            body["details"] = self.details
        return body


class ConfigurationError(DecoderError):
    """Missing or invalid endpoint, key or deployment."""

    status_code = 500


class InputError(DecoderError):
    """Malformed JSON or missing required field."""

    status_code = 400


class UpstreamError(DecoderError):
    """Non-2xx from the generation or recognition provider."""

    status_code = 502


class ParseError(DecoderError):
    """Oracle output was not the JSON shape we asked for."""

    status_code = 502


class ProtocolError(DecoderError):
    """Provider broke the async job protocol (e.g. no operation-location header)."""

    status_code = 502


class RecognitionTimeoutError(DecoderError):
    """Recognition job did not reach a terminal state before the deadline."""

    status_code = 504


class StageTimeoutError(DecoderError):
    """A time-boxed oracle call was cancelled. Never reaches the caller."""

    status_code = 504
