"""Entry handoff module for the Loki client."""

from .entry_channel import EntryChannel

__all__ = ["EntryChannel"]
