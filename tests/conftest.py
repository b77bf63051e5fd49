"""Shared fixtures: a scripted loopback Loki endpoint and loguru capture."""

from __future__ import annotations

import json
import socket
import threading
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Dict, List

import pytest
from loguru import logger


@dataclass
class RecordedRequest:
    path: str
    headers: Dict[str, str]  # lower-cased names
    body: bytes

    def json(self) -> dict:
        return json.loads(self.body.decode("utf-8"))


@dataclass
class FakeLoki:
    """Records pushes and answers with scripted status codes."""

    url: str
    requests: List[RecordedRequest] = field(default_factory=list)
    statuses: List[int] = field(default_factory=list)
    default_status: int = 204
    error_body: bytes = b"error from fake loki\nsecond line"
    lock: threading.Lock = field(default_factory=threading.Lock)
    received: threading.Condition = field(init=False)

    def __post_init__(self):
        self.received = threading.Condition(self.lock)

    def respond_with(self, *statuses: int) -> None:
        with self.lock:
            self.statuses.extend(statuses)

    def next_status(self) -> int:
        return self.statuses.pop(0) if self.statuses else self.default_status

    def wait_for_requests(self, count: int, timeout: float = 5.0) -> List[RecordedRequest]:
        with self.received:
            self.received.wait_for(lambda: len(self.requests) >= count, timeout)
            return list(self.requests)


def _make_handler(fake: FakeLoki):
    class Handler(BaseHTTPRequestHandler):
        def do_POST(self):
            length = int(self.headers.get("Content-Length", 0))
            body = self.rfile.read(length)

            with fake.received:
                fake.requests.append(RecordedRequest(path=self.path, headers={name.lower(): value for name, value in self.headers.items()}, body=body))
                status = fake.next_status()
                fake.received.notify_all()

            payload = b"" if status // 100 == 2 else fake.error_body
            self.send_response(status)
            self.send_header("Content-Length", str(len(payload)))
            self.end_headers()
            if payload:
                self.wfile.write(payload)

        def log_message(self, format, *args):
            pass

    return Handler


@pytest.fixture
def fake_loki():
    """Run a fake Loki push endpoint on an ephemeral loopback port."""
    fake = FakeLoki(url="")
    server = ThreadingHTTPServer(("127.0.0.1", 0), _make_handler(fake))
    host, port = server.server_address[:2]
    fake.url = f"http://{host}:{port}/loki/api/v1/push"

    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield fake
    server.shutdown()
    server.server_close()


@pytest.fixture
def log_records():
    """Capture loguru records emitted during the test."""
    records: List[dict] = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    yield records
    logger.remove(handler_id)


@pytest.fixture
def unused_url():
    """A loopback URL nothing listens on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    return f"http://127.0.0.1:{port}/loki/api/v1/push"
