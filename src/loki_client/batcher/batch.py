"""Per-tenant batch of log streams waiting to be pushed to Loki.

A batch aggregates multiple streams and entries into a single push request
to reduce the number of requests sent. When the client runs in multi-tenant
mode, each tenant gets a dedicated batch.
"""

from __future__ import annotations

import time
from typing import Dict, List, Tuple

from pydantic import ValidationError
from pydantic_core import PydanticSerializationError

from ..core.entries import Entry, LabelsKey, Stream, labels_key
from ..core.push import PushRequest, PushStream
from ..exceptions import EncodingError


class Batch:
    """Pending log streams for a single tenant."""

    def __init__(self, *entries: Entry):
        self.streams: Dict[LabelsKey, Stream] = {}
        self.bytes = 0
        self.created_at = time.monotonic()

        for entry in entries:
            self.add(entry)

    def add(self, entry: Entry) -> None:
        """Add an entry to the batch."""
        self.bytes += entry.size_bytes

        # Append to an already existing stream (if any)
        key = labels_key(entry.labels)
        stream = self.streams.get(key)
        if stream is not None:
            stream.append(entry.value)
            return

        self.streams[key] = Stream(labels=entry.labels, values=[entry.value])

    def size_bytes(self) -> int:
        """Return the current batch size in bytes."""
        return self.bytes

    def size_bytes_after(self, entry: Entry) -> int:
        """Return the batch size once ``entry`` has been added."""
        return self.bytes + entry.size_bytes

    def age(self) -> float:
        """Seconds elapsed since the batch was created."""
        return time.monotonic() - self.created_at

    def size(self) -> int:
        """Return the number of entries in the batch."""
        return sum(stream.size() for stream in self.streams.values())

    def create_push_request(self) -> Tuple[PushRequest, int]:
        """Build the push request together with its number of entries."""
        streams: List[PushStream] = []
        entries_count = 0
        for stream in self.streams.values():
            streams.append(PushStream(stream=dict(stream.labels), values=list(stream.values)))
            entries_count += stream.size()
        return PushRequest(streams=streams), entries_count

    def encode(self) -> Tuple[bytes, int]:
        """Encode the batch as a JSON push request.

        Returns:
            Tuple of (encoded_bytes, entries_count)

        Raises:
            EncodingError: If the streams cannot be serialized
        """
        try:
            request, entries_count = self.create_push_request()
            return request.to_json(), entries_count
        except (ValidationError, PydanticSerializationError, ValueError) as e:
            raise EncodingError(f"Failed to encode batch: {e}") from e
