"""HTTP sender for pushing batches to the Loki push API.

This module provides the HTTP transport for batches: a single POST per
attempt with a per-request timeout, response classification and a retry
loop driven by the backoff policy.
"""

from __future__ import annotations

import http.client
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Tuple
from urllib.error import HTTPError, URLError
from urllib.request import OpenerDirector, ProxyHandler, Request, build_opener

from loguru import logger as default_logger

from .._version import __version__
from ..backoff import Backoff, BackoffConfig
from ..batcher import Batch
from ..exceptions import DeliveryError, EncodingError, RetryableDeliveryError

JSON_CONTENT_TYPE = "application/json"
USER_AGENT = f"LokiPythonClient/{__version__}"
TENANT_HEADER = "X-Scope-OrgID"
MAX_ERROR_MESSAGE_LENGTH = 1024


@dataclass
class SenderConfig:
    """Configuration for the HTTP sender."""

    url: str = "http://localhost:3100/loki/api/v1/push"  # Loki push endpoint
    timeout_seconds: float = 10.0  # Applies to each socket operation, not the whole request
    proxy_url: Optional[str] = None  # Environment proxies are ignored when unset
    backoff: BackoffConfig = field(default_factory=BackoffConfig)


def _first_line(body: bytes) -> str:
    lines = body.decode("utf-8", errors="replace").splitlines()
    return lines[0] if lines else ""


class HTTPSender:
    """Sends encoded batches to Loki and retries recoverable failures."""

    def __init__(
        self,
        config: SenderConfig = SenderConfig(),
        logger: Any = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the HTTP sender.

        Args:
            config: Sender configuration
            logger: loguru logger to report delivery problems on
            sleep: Function used by the backoff between attempts
        """
        self.config = config
        self._logger = logger if logger is not None else default_logger
        self._sleep = sleep
        self._opener = self._build_opener()

        # Statistics
        self._total_batches_sent = 0
        self._total_batches_failed = 0
        self._total_entries_sent = 0
        self._total_send_time = 0.0
        self._last_successful_send: Optional[datetime] = None
        self._last_error: Optional[str] = None

    def _build_opener(self) -> OpenerDirector:
        proxies: Dict[str, str] = {}
        if self.config.proxy_url:
            proxies = {"http": self.config.proxy_url, "https": self.config.proxy_url}
        return build_opener(ProxyHandler(proxies))

    def send(self, tenant_id: str, buf: bytes) -> Tuple[int, Optional[DeliveryError]]:
        """Send a single push request.

        Args:
            tenant_id: Tenant to scope the request to, empty for single-tenant mode
            buf: Encoded push request

        Returns:
            Tuple of (status_code, error); status is 0 on connection failures
        """
        headers = {
            "Content-Type": JSON_CONTENT_TYPE,
            "User-Agent": USER_AGENT,
        }

        # A non-empty tenant ID means the client runs in multi-tenant mode
        if tenant_id:
            headers[TENANT_HEADER] = tenant_id

        req = Request(self.config.url, data=buf, headers=headers, method="POST")

        try:
            with self._opener.open(req, timeout=self.config.timeout_seconds) as response:
                status = response.status
                if status // 100 == 2:
                    return status, None
                return status, self._status_error(status, response.reason, response.read(MAX_ERROR_MESSAGE_LENGTH))

        except HTTPError as e:
            try:
                return e.code, self._status_error(e.code, e.reason, e.read(MAX_ERROR_MESSAGE_LENGTH))
            finally:
                e.close()

        except URLError as e:
            return 0, RetryableDeliveryError(f"Network error: {e.reason}", 0)

        except (OSError, http.client.HTTPException) as e:
            return 0, RetryableDeliveryError(f"Request error: {e}", 0)

    def send_batch(self, tenant_id: str, batch: Batch) -> bool:
        """Encode a batch and push it, retrying recoverable failures.

        Failures are logged, never raised.

        Args:
            tenant_id: Tenant owning the batch
            batch: Batch to deliver

        Returns:
            True if the batch was accepted by Loki
        """
        start_time = time.time()

        try:
            buf, entries_count = batch.encode()
        except EncodingError as e:
            self._total_batches_failed += 1
            self._last_error = str(e)
            self._logger.error(f"Error encoding batch for tenant '{tenant_id}': {e}")
            return False

        backoff = Backoff(self.config.backoff, sleep=self._sleep)
        status = 0
        attempts = 0
        error: Optional[DeliveryError] = None

        while backoff.ongoing():
            status, error = self.send(tenant_id, buf)
            attempts += 1

            # Only retry 429s, 500s and connection-level errors
            if not DeliveryError.is_retryable_status(status):
                break

            self._logger.warning(
                f"Error sending batch, will retry - status: {status}, tenant: '{tenant_id}', entries: {entries_count}, error: {error}"
            )
            backoff.wait()

        self._total_send_time += time.time() - start_time

        if error is not None:
            self._total_batches_failed += 1
            self._last_error = str(error)
            self._logger.error(
                f"Final error sending batch - status: {status}, tenant: '{tenant_id}', entries: {entries_count}, attempts: {attempts}, error: {error}"
            )
            return False

        self._total_batches_sent += 1
        self._total_entries_sent += entries_count
        self._last_successful_send = datetime.now()
        self._last_error = None
        self._logger.debug(f"Sent batch for tenant '{tenant_id}' with {entries_count} entries (status {status})")
        return True

    def get_stats(self) -> Dict[str, Any]:
        """Get sender statistics."""
        attempted = self._total_batches_sent + self._total_batches_failed

        return {
            "total_batches_sent": self._total_batches_sent,
            "total_batches_failed": self._total_batches_failed,
            "total_entries_sent": self._total_entries_sent,
            "success_rate": self._total_batches_sent / max(1, attempted),
            "average_send_time_seconds": self._total_send_time / max(1, attempted),
            "last_successful_send": self._last_successful_send.isoformat() if self._last_successful_send else None,
            "last_error": self._last_error,
        }

    @staticmethod
    def _status_error(status: int, reason: str, body: bytes) -> DeliveryError:
        message = f"server returned HTTP status {status} {reason} ({status}): {_first_line(body)}"
        return DeliveryError.from_status(status, message)
