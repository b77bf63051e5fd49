"""Configuration management for the Loki client.

This module provides the client configuration, its validation and
environment variable overrides.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, Optional
from urllib.parse import urlparse

from loguru import logger

from ..backoff import BackoffConfig
from ..sender import SenderConfig

DEFAULT_BATCH_WAIT = 1.0  # seconds
DEFAULT_BATCH_SIZE = 1024 * 1024  # bytes
DEFAULT_TIMEOUT = 10.0  # seconds
DEFAULT_MIN_BACKOFF = 0.5  # seconds
DEFAULT_MAX_BACKOFF = 300.0  # seconds
DEFAULT_MAX_RETRIES = 10


def parse_labels(raw: str) -> Dict[str, str]:
    """Parse ``name=value,name=value`` into a label mapping.

    Raises:
        ValueError: If a pair has no ``=`` or an empty name
    """
    labels: Dict[str, str] = {}
    for pair in raw.split(","):
        pair = pair.strip()
        if not pair:
            continue
        name, sep, value = pair.partition("=")
        name = name.strip()
        if not sep or not name:
            raise ValueError(f"Invalid label pair: {pair!r}")
        labels[name] = value.strip()
    return labels


@dataclass
class ClientConfig:
    """Complete Loki client configuration."""

    # Push endpoint, e.g. http://localhost:3100/loki/api/v1/push
    url: str = ""

    # Batching
    batch_wait: float = DEFAULT_BATCH_WAIT  # Maximum age of a batch before it is sent
    batch_size: int = DEFAULT_BATCH_SIZE  # Maximum batch size in bytes

    # HTTP settings
    timeout: float = DEFAULT_TIMEOUT  # Per-request timeout
    proxy_url: Optional[str] = None

    # Multi-tenancy and labels
    tenant_id: str = ""  # Static tenant, empty disables the X-Scope-OrgID header
    external_labels: Dict[str, str] = field(default_factory=dict)

    backoff: BackoffConfig = field(
        default_factory=lambda: BackoffConfig(
            min_period=DEFAULT_MIN_BACKOFF,
            max_period=DEFAULT_MAX_BACKOFF,
            max_retries=DEFAULT_MAX_RETRIES,
        )
    )

    @classmethod
    def from_env(cls, url: Optional[str] = None) -> "ClientConfig":
        """Build a configuration from ``LOKI_*`` environment variables.

        Args:
            url: Push URL, overriding ``LOKI_URL`` when given
        """
        config = cls()
        config.apply_env_overrides()
        if url:
            config.url = url
        return config

    def apply_env_overrides(self) -> None:
        """Apply configuration overrides from environment variables."""
        if url := os.getenv("LOKI_URL"):
            self.url = url

        if tenant_id := os.getenv("LOKI_TENANT_ID"):
            self.tenant_id = tenant_id

        if proxy_url := os.getenv("LOKI_PROXY_URL"):
            self.proxy_url = proxy_url

        if batch_wait := os.getenv("LOKI_BATCH_WAIT"):
            try:
                self.batch_wait = float(batch_wait)
            except ValueError:
                logger.warning(f"Invalid batch wait: {batch_wait}")

        if batch_size := os.getenv("LOKI_BATCH_SIZE"):
            try:
                self.batch_size = int(batch_size)
            except ValueError:
                logger.warning(f"Invalid batch size: {batch_size}")

        if timeout := os.getenv("LOKI_TIMEOUT"):
            try:
                self.timeout = float(timeout)
            except ValueError:
                logger.warning(f"Invalid timeout: {timeout}")

        if external_labels := os.getenv("LOKI_EXTERNAL_LABELS"):
            try:
                self.external_labels = parse_labels(external_labels)
            except ValueError as e:
                logger.warning(f"Invalid external labels: {e}")

        # Backoff settings
        if min_backoff := os.getenv("LOKI_MIN_BACKOFF"):
            try:
                self.backoff.min_period = float(min_backoff)
            except ValueError:
                logger.warning(f"Invalid min backoff: {min_backoff}")

        if max_backoff := os.getenv("LOKI_MAX_BACKOFF"):
            try:
                self.backoff.max_period = float(max_backoff)
            except ValueError:
                logger.warning(f"Invalid max backoff: {max_backoff}")

        if max_retries := os.getenv("LOKI_MAX_RETRIES"):
            try:
                self.backoff.max_retries = int(max_retries)
            except ValueError:
                logger.warning(f"Invalid max retries: {max_retries}")

    def get_sender_config(self) -> SenderConfig:
        """Get configuration for the HTTP sender."""
        return SenderConfig(
            url=self.url,
            timeout_seconds=self.timeout,
            proxy_url=self.proxy_url,
            backoff=self.backoff,
        )

    @property
    def host(self) -> str:
        return urlparse(self.url).netloc

    def validate(self) -> tuple[bool, list[str]]:
        """Validate the configuration.

        Returns:
            Tuple of (is_valid, error_messages)
        """
        errors = []

        if not self.url:
            errors.append("Client needs target URL")
        else:
            parsed = urlparse(self.url)
            if parsed.scheme not in ("http", "https"):
                errors.append(f"Unsupported URL scheme: {parsed.scheme or '(none)'}")
            if not parsed.netloc:
                errors.append("URL must include a host")

        if self.proxy_url and not urlparse(self.proxy_url).netloc:
            errors.append(f"Invalid proxy URL: {self.proxy_url}")

        if self.batch_wait <= 0:
            errors.append("Batch wait must be positive")

        if self.batch_size <= 0:
            errors.append("Batch size must be positive")

        if self.timeout <= 0:
            errors.append("Timeout must be positive")

        if self.backoff.min_period < 0:
            errors.append("Min backoff must not be negative")

        if self.backoff.max_period < self.backoff.min_period:
            errors.append("Max backoff must not be lower than min backoff")

        if self.backoff.max_retries < 0:
            errors.append("Max retries must not be negative")

        for name, value in self.external_labels.items():
            if not isinstance(name, str) or not isinstance(value, str):
                errors.append(f"External label {name!r} must map a string to a string")

        return len(errors) == 0, errors


def create_default_config(url: str) -> ClientConfig:
    """Create a configuration with default batching, timeout and backoff."""
    return ClientConfig(url=url)
