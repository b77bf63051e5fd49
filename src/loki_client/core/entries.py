"""Entry and stream models for the Loki client.

Entries flow through the client pipeline:
handle() -> EntryChannel -> dispatcher -> Batch -> HTTPSender -> Loki
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import List, Mapping, Optional, Tuple, Union

# Label reserved to override the tenant ID on a per-entry basis. It is
# consumed by the client and never forwarded to Loki.
RESERVED_LABEL_TENANT_ID = "__tenant_id__"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

Value = Tuple[str, str]
LabelsKey = Tuple[Tuple[str, str], ...]
Timestamp = Union[datetime, int, None]


def labels_key(labels: Mapping[str, str]) -> LabelsKey:
    """Return a hashable identity for a label set, independent of key order."""
    return tuple(sorted(labels.items()))


def to_unix_nanos(timestamp: Timestamp = None) -> int:
    """Convert a timestamp to nanoseconds since the Unix epoch.

    Accepts a datetime (naive values are interpreted as local time), an int
    already expressed in nanoseconds, or None for the current time.
    """
    if timestamp is None:
        return time.time_ns()
    if isinstance(timestamp, datetime):
        delta = timestamp.astimezone(timezone.utc) - _EPOCH
        return (delta.days * 86_400 + delta.seconds) * 1_000_000_000 + delta.microseconds * 1_000
    if isinstance(timestamp, int) and not isinstance(timestamp, bool):
        return timestamp
    raise TypeError(f"Unsupported timestamp type: {type(timestamp).__name__}")


@dataclass(frozen=True)
class Entry:
    """A single log line waiting to be batched."""

    tenant_id: str
    labels: Mapping[str, str]
    value: Value
    size_bytes: int = 0  # UTF-8 length of the line

    @classmethod
    def create(cls, tenant_id: str, labels: Mapping[str, str], timestamp: Timestamp, line: str) -> "Entry":
        """Build an entry, freezing a private copy of the labels.

        Raises:
            TypeError: If the tenant ID, the line, a label name or a label value is not a str
            UnicodeEncodeError: If the line cannot be encoded as UTF-8
        """
        if not isinstance(tenant_id, str):
            raise TypeError(f"Tenant ID must be a str, got {type(tenant_id).__name__}")
        if not isinstance(line, str):
            raise TypeError(f"Log line must be a str, got {type(line).__name__}")
        for name, value in labels.items():
            if not isinstance(name, str) or not isinstance(value, str):
                raise TypeError(f"Label {name!r} must map a str to a str, got {type(name).__name__} -> {type(value).__name__}")

        return cls(
            tenant_id=tenant_id,
            labels=MappingProxyType(dict(labels)),
            value=(str(to_unix_nanos(timestamp)), line),
            size_bytes=len(line.encode("utf-8")),
        )

    @property
    def line(self) -> str:
        return self.value[1]


@dataclass
class Stream:
    """Values sharing one label set, in arrival order."""

    labels: Mapping[str, str]
    values: List[Value] = field(default_factory=list)

    def append(self, value: Value) -> None:
        self.values.append(value)

    def size(self) -> int:
        return len(self.values)


def merge_labels(base: Optional[Mapping[str, str]], labels: Mapping[str, str]) -> Mapping[str, str]:
    """Layer ``labels`` on top of ``base``; ``labels`` wins on conflicts."""
    if not base:
        return labels
    merged = dict(base)
    merged.update(labels)
    return merged
