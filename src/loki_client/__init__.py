"""Loki client - batched, multi-tenant log shipping to the Loki push API."""

from ._version import __version__
from .backoff import BackoffConfig
from .config import ClientConfig, LoggingConfig, setup_logging
from .core import RESERVED_LABEL_TENANT_ID
from .exceptions import (
    ClientClosedError,
    ConfigurationError,
    DeliveryError,
    EncodingError,
    LokiClientError,
    RetryableDeliveryError,
    SerializationError,
    TerminalDeliveryError,
)
from .orchestrator import Client, create_default_client

__all__ = [
    "Client",
    "ClientConfig",
    "BackoffConfig",
    "LoggingConfig",
    "RESERVED_LABEL_TENANT_ID",
    "create_default_client",
    "setup_logging",
    # Errors
    "LokiClientError",
    "ConfigurationError",
    "EncodingError",
    "SerializationError",
    "DeliveryError",
    "RetryableDeliveryError",
    "TerminalDeliveryError",
    "ClientClosedError",
    "__version__",
]
