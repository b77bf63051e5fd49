"""Exceptions raised by the Loki client."""

from __future__ import annotations


class LokiClientError(Exception):
    """Base class for all Loki client errors."""


class ConfigurationError(LokiClientError):
    """Invalid client configuration, raised at construction time."""


class EncodingError(LokiClientError):
    """A batch could not be serialized into a push request."""


SerializationError = EncodingError


class ClientClosedError(LokiClientError):
    """An entry was handed to a client that has been stopped."""


class DeliveryError(LokiClientError):
    """A push request did not succeed."""

    def __init__(self, message: str, status: int = 0):
        super().__init__(message)
        self.status = status

    @staticmethod
    def is_retryable_status(status: int) -> bool:
        """Connection failures (0), 429 and 5xx are worth retrying."""
        return status == 0 or status == 429 or status // 100 == 5

    @classmethod
    def from_status(cls, status: int, message: str) -> "DeliveryError":
        if cls.is_retryable_status(status):
            return RetryableDeliveryError(message, status)
        return TerminalDeliveryError(message, status)


class RetryableDeliveryError(DeliveryError):
    """Network failure, 429 or 5xx response."""


class TerminalDeliveryError(DeliveryError):
    """Any other non-2xx response; retrying cannot help."""
