"""Tests for the HTTP sender against a loopback fake Loki."""

import pytest

from loki_client.backoff import BackoffConfig
from loki_client.batcher import Batch
from loki_client.core import Entry
from loki_client.exceptions import RetryableDeliveryError, TerminalDeliveryError
from loki_client.sender import USER_AGENT, HTTPSender, SenderConfig


def make_sender(url: str, max_retries: int = 5) -> HTTPSender:
    config = SenderConfig(
        url=url,
        timeout_seconds=2.0,
        backoff=BackoffConfig(min_period=0.001, max_period=0.005, max_retries=max_retries),
    )
    return HTTPSender(config)


def make_batch(*lines: str) -> Batch:
    return Batch(*(Entry.create("", {"app": "test"}, i, line) for i, line in enumerate(lines)))


def test_send_success_headers(fake_loki):
    sender = make_sender(fake_loki.url)

    status, error = sender.send("", b'{"streams": []}')

    assert status == 204
    assert error is None
    request = fake_loki.requests[0]
    assert request.path == "/loki/api/v1/push"
    assert request.headers["content-type"] == "application/json"
    assert request.headers["user-agent"] == USER_AGENT
    assert "x-scope-orgid" not in request.headers
    assert request.body == b'{"streams": []}'


def test_send_sets_tenant_header(fake_loki):
    sender = make_sender(fake_loki.url)

    sender.send("tenant-a", b'{"streams": []}')

    assert fake_loki.requests[0].headers["x-scope-orgid"] == "tenant-a"


def test_send_error_embeds_first_body_line(fake_loki):
    fake_loki.respond_with(400)
    sender = make_sender(fake_loki.url)

    status, error = sender.send("", b"{}")

    assert status == 400
    assert isinstance(error, TerminalDeliveryError)
    assert error.status == 400
    assert "error from fake loki" in str(error)
    assert "second line" not in str(error)


def test_send_truncates_error_body(fake_loki):
    fake_loki.error_body = b"x" * 5000
    fake_loki.respond_with(500)
    sender = make_sender(fake_loki.url)

    status, error = sender.send("", b"{}")

    assert status == 500
    assert isinstance(error, RetryableDeliveryError)
    assert str(error).count("x") <= 1024 + 1


def test_send_connection_failure_is_status_zero(unused_url):
    sender = make_sender(unused_url)

    status, error = sender.send("", b"{}")

    assert status == 0
    assert isinstance(error, RetryableDeliveryError)


def test_send_batch_retries_server_errors(fake_loki, log_records):
    fake_loki.respond_with(500, 500, 200)
    sender = make_sender(fake_loki.url)

    assert sender.send_batch("", make_batch("a", "b")) is True

    assert len(fake_loki.requests) == 3
    assert [r["level"].name for r in log_records].count("WARNING") == 2
    assert not [r for r in log_records if r["level"].name == "ERROR"]
    stats = sender.get_stats()
    assert stats["total_batches_sent"] == 1
    assert stats["total_entries_sent"] == 2


def test_send_batch_retries_too_many_requests(fake_loki):
    fake_loki.respond_with(429, 204)
    sender = make_sender(fake_loki.url)

    assert sender.send_batch("", make_batch("a")) is True
    assert len(fake_loki.requests) == 2


def test_send_batch_does_not_retry_client_errors(fake_loki, log_records):
    fake_loki.respond_with(400)
    sender = make_sender(fake_loki.url)

    assert sender.send_batch("t1", make_batch("a")) is False

    assert len(fake_loki.requests) == 1
    errors = [r for r in log_records if r["level"].name == "ERROR"]
    assert len(errors) == 1
    assert "Final error sending batch" in errors[0]["message"]
    assert "status: 400" in errors[0]["message"]
    assert "tenant: 't1'" in errors[0]["message"]
    assert sender.get_stats()["total_batches_failed"] == 1


def test_send_batch_gives_up_after_max_retries(fake_loki, log_records):
    fake_loki.default_status = 503
    sender = make_sender(fake_loki.url, max_retries=3)

    assert sender.send_batch("", make_batch("a")) is False

    assert len(fake_loki.requests) == 3
    errors = [r for r in log_records if r["level"].name == "ERROR"]
    assert len(errors) == 1
    assert "attempts: 3" in errors[0]["message"]


def test_send_batch_connection_failures_are_retried(unused_url, log_records):
    sender = make_sender(unused_url, max_retries=2)

    assert sender.send_batch("", make_batch("a")) is False

    assert [r["level"].name for r in log_records].count("WARNING") == 2
    assert sender.get_stats()["last_error"]


def test_send_batch_drops_unencodable_batch(fake_loki, log_records, monkeypatch):
    from loki_client.exceptions import EncodingError

    batch = make_batch("a")

    def broken_encode():
        raise EncodingError("boom")

    monkeypatch.setattr(batch, "encode", broken_encode)
    sender = make_sender(fake_loki.url)

    assert sender.send_batch("", batch) is False
    assert fake_loki.requests == []
    assert any("Error encoding batch" in r["message"] for r in log_records if r["level"].name == "ERROR")


@pytest.mark.parametrize("status", [200, 201, 204])
def test_any_2xx_is_success(fake_loki, status):
    fake_loki.respond_with(status)
    sender = make_sender(fake_loki.url)

    assert sender.send_batch("", make_batch("a")) is True
    assert len(fake_loki.requests) == 1


def test_silent_server_times_out_as_retryable():
    import socket
    import time

    # Accepts connections through the backlog but never answers
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as server:
        server.bind(("127.0.0.1", 0))
        server.listen(1)
        port = server.getsockname()[1]
        sender = HTTPSender(SenderConfig(url=f"http://127.0.0.1:{port}/loki/api/v1/push", timeout_seconds=0.2))

        start = time.monotonic()
        status, error = sender.send("", b"{}")
        elapsed = time.monotonic() - start

    assert status == 0
    assert isinstance(error, RetryableDeliveryError)
    assert elapsed < 5.0
