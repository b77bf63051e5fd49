"""Loki client: entry ingress and the batching dispatcher.

This module coordinates the client pipeline:
handle() -> EntryChannel -> dispatcher -> Batch -> HTTPSender -> Loki

A single dispatcher thread owns every pending batch. Producers only ever
talk to it through the entry channel, so batch state needs no locking.
"""

from __future__ import annotations

import threading
import time
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from loguru import logger as default_logger

from ..batcher import Batch
from ..config import ClientConfig, create_default_config
from ..core.entries import RESERVED_LABEL_TENANT_ID, Entry, Timestamp, merge_labels
from ..exceptions import ConfigurationError
from ..queuer import EntryChannel
from ..sender import HTTPSender

# Batches are checked for their max wait 10 times per batch_wait, so the
# maximum extra delay is 10% of it, with a floor to avoid busy checks.
MIN_WAIT_CHECK_FREQUENCY = 0.01  # seconds


def wait_check_frequency(batch_wait: float) -> float:
    """Return the period of the batch age check."""
    return max(MIN_WAIT_CHECK_FREQUENCY, batch_wait / 10)


class Client:
    """Pushes log lines to Loki in per-tenant batches."""

    def __init__(self, config: ClientConfig, logger: Any = None, sender: Optional[HTTPSender] = None):
        """Initialize the client and start its dispatcher thread.

        Args:
            config: Client configuration
            logger: loguru logger to log on, the global loguru logger by default
            sender: HTTP sender to deliver batches with, built from config by default

        Raises:
            ConfigurationError: If the configuration is invalid
        """
        is_valid, errors = config.validate()
        if not is_valid:
            raise ConfigurationError("; ".join(errors))

        self.config = config
        self._logger = (logger if logger is not None else default_logger).bind(component="client", host=config.host)
        self.sender = sender if sender is not None else HTTPSender(config.get_sender_config(), logger=self._logger)
        self._external_labels = dict(config.external_labels)

        self._channel = EntryChannel()
        self._stop_lock = threading.Lock()
        self._start_time = datetime.now()
        self._stopped_at: Optional[datetime] = None

        self._thread = threading.Thread(target=self._run, name="loki-client-dispatcher", daemon=True)
        self._thread.start()
        self._logger.debug(f"Started Loki client for {config.url}")

    def handle(self, labels: Mapping[str, str], timestamp: Timestamp, line: str) -> None:
        """Add a line to the next batch; delivery happens asynchronously.

        Blocks until the dispatcher has accepted the entry.

        Args:
            labels: Label set of the line
            timestamp: datetime, Unix nanoseconds, or None for now
            line: Log line

        Raises:
            TypeError: If the line or a label is not a str; nothing is queued
            ClientClosedError: If the client has been stopped
        """
        labels = merge_labels(self._external_labels, labels)

        # The tenant may be overridden per entry with the reserved label,
        # which must never reach Loki
        tenant_id = self._get_tenant_id(labels)
        if RESERVED_LABEL_TENANT_ID in labels:
            labels = {name: value for name, value in labels.items() if name != RESERVED_LABEL_TENANT_ID}

        self._channel.put(Entry.create(tenant_id, labels, timestamp, line))

    def stop(self) -> None:
        """Stop the client, sending every pending batch before returning."""
        with self._stop_lock:
            if self._stopped_at is None:
                self._stopped_at = datetime.now()
                self._channel.close()

        self._thread.join()

    @property
    def running(self) -> bool:
        return self._thread.is_alive() and not self._channel.closed

    def get_stats(self) -> Dict[str, Any]:
        """Get client statistics."""
        end = self._stopped_at or datetime.now()
        return {
            "running": self.running,
            "url": self.config.url,
            "uptime_seconds": (end - self._start_time).total_seconds(),
            "sender": self.sender.get_stats(),
        }

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.stop()

    def _get_tenant_id(self, labels: Mapping[str, str]) -> str:
        # Overridden while processing the entry
        if RESERVED_LABEL_TENANT_ID in labels:
            return labels[RESERVED_LABEL_TENANT_ID]

        # Static tenant from the config, empty means no X-Scope-OrgID header
        return self.config.tenant_id

    def _run(self) -> None:
        """Dispatcher loop, the only code touching pending batches."""
        batches: Dict[str, Batch] = {}
        check_frequency = wait_check_frequency(self.config.batch_wait)
        next_check = time.monotonic() + check_frequency

        try:
            while not self._channel.closed:
                try:
                    entry = self._channel.get(timeout=max(0.0, next_check - time.monotonic()))
                    if entry is not None:
                        self._add_entry(batches, entry)

                    now = time.monotonic()
                    if now >= next_check:
                        self._send_expired_batches(batches)
                        next_check = now + check_frequency

                except Exception as e:
                    self._logger.error(f"Error in dispatcher loop: {e}")
        finally:
            self._channel.close()

            # An entry may still wait in the channel when stop() is called
            for entry in self._channel.drain():
                self._add_entry(batches, entry)

            for tenant_id, batch in batches.items():
                self.sender.send_batch(tenant_id, batch)
            batches.clear()

            stats = self.sender.get_stats()
            self._logger.info(
                f"Stopped Loki client. Stats - Batches sent: {stats['total_batches_sent']}, Batches failed: {stats['total_batches_failed']}, Entries sent: {stats['total_entries_sent']}"
            )

    def _add_entry(self, batches: Dict[str, Batch], entry: Entry) -> None:
        batch = batches.get(entry.tenant_id)

        # First entry for this tenant
        if batch is None:
            batches[entry.tenant_id] = Batch(entry)
            return

        # Adding the entry would exceed the max size: send the current batch
        # and start a new one with the entry
        if batch.size_bytes_after(entry) > self.config.batch_size:
            del batches[entry.tenant_id]
            self.sender.send_batch(entry.tenant_id, batch)
            batches[entry.tenant_id] = Batch(entry)
            return

        batch.add(entry)

    def _send_expired_batches(self, batches: Dict[str, Batch]) -> None:
        expired = [tenant_id for tenant_id, batch in batches.items() if batch.age() >= self.config.batch_wait]

        for tenant_id in expired:
            batch = batches.pop(tenant_id)
            self._logger.debug(f"Sending batch for tenant '{tenant_id}' due to max wait ({batch.size()} entries)")
            self.sender.send_batch(tenant_id, batch)


def create_default_client(url: str, logger: Any = None) -> Client:
    """Create a client with the default configuration.

    Args:
        url: Loki push URL
        logger: Optional loguru logger

    Returns:
        Started client
    """
    return Client(create_default_config(url), logger=logger)
