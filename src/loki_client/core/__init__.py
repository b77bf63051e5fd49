"""Core Loki client models."""

from .entries import RESERVED_LABEL_TENANT_ID, Entry, Stream, labels_key, merge_labels, to_unix_nanos
from .push import PushRequest, PushStream

__all__ = [
    # Entry model
    "Entry",
    "Stream",
    "RESERVED_LABEL_TENANT_ID",
    "labels_key",
    "merge_labels",
    "to_unix_nanos",
    # Wire payload
    "PushRequest",
    "PushStream",
]
