"""Configuration module for the Loki client."""

from .logger_config import LoggingConfig, setup_logging
from .settings import ClientConfig, create_default_config, parse_labels

__all__ = ["ClientConfig", "LoggingConfig", "create_default_config", "parse_labels", "setup_logging"]
