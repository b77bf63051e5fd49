"""Retry backoff module."""

from .backoff import Backoff, BackoffConfig

__all__ = ["Backoff", "BackoffConfig"]
