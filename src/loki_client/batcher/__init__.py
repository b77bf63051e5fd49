"""Batching module for grouping entries into push requests."""

from .batch import Batch

__all__ = ["Batch"]
