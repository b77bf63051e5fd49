"""Unbuffered handoff channel between producers and the dispatcher.

Producers calling ``put`` block until the dispatcher has taken their entry,
so the dispatcher never holds more than the single entry it is processing.
This is the only synchronization point between producer threads and the
batching state owned by the dispatcher.
"""

from __future__ import annotations

import threading
from typing import List, Optional

from ..core.entries import Entry
from ..exceptions import ClientClosedError


class EntryChannel:
    """Rendezvous channel carrying entries to a single consumer."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._slot: Optional[Entry] = None
        self._closed = False

        # Sequence numbers let a producer know its own entry was taken
        self._put_seq = 0
        self._take_seq = 0

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    def put(self, entry: Entry) -> None:
        """Hand an entry over, blocking until the consumer has taken it.

        Raises:
            ClientClosedError: If the channel is closed before the entry was placed
        """
        with self._cond:
            while self._slot is not None and not self._closed:
                self._cond.wait()

            if self._closed:
                raise ClientClosedError("Client is stopped, entry rejected")

            self._slot = entry
            self._put_seq += 1
            seq = self._put_seq
            self._cond.notify_all()

            # Once placed, the entry is always taken: either by the loop or by
            # the final drain after close().
            while self._take_seq < seq:
                self._cond.wait()

    def get(self, timeout: Optional[float] = None) -> Optional[Entry]:
        """Take the next entry, waiting up to ``timeout`` seconds.

        Returns:
            The entry, or None on timeout or when the channel is closed
        """
        with self._cond:
            if self._slot is None and not self._closed:
                self._cond.wait_for(lambda: self._slot is not None or self._closed, timeout)

            if self._closed:
                return None
            return self._take()

    def drain(self) -> List[Entry]:
        """Take whatever entry is still waiting in the channel."""
        with self._cond:
            entry = self._take()
            return [entry] if entry is not None else []

    def close(self) -> None:
        """Stop accepting entries and wake every waiting thread."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def _take(self) -> Optional[Entry]:
        entry = self._slot
        if entry is not None:
            self._slot = None
            self._take_seq += 1
            self._cond.notify_all()
        return entry
