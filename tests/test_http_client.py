# tests/test_http_client.py
import socket
import threading
import time

import pytest
import requests

from modules.job_harvest.lib.http_client import (
    BROWSER_HEADERS,
    FetchError,
    FetchTimeout,
    HttpClient,
    HttpStatusError,
    backoff_delay,
)


class FakeResponse:
    def __init__(self, body=b"", status=200, encoding="utf-8"):
        self.body = body
        self.status_code = status
        self.ok = 200 <= status < 300
        self.encoding = encoding
        self.closed = False

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self.body), chunk_size):
            yield self.body[i : i + chunk_size]

    def close(self):
        self.closed = True


class FakeSession:
    """Replays a script of responses/exceptions, one per GET."""

    def __init__(self, script):
        self.script = list(script)
        self.requests = []

    def get(self, url, headers=None, timeout=None, stream=False):
        self.requests.append({"url": url, "headers": dict(headers or {}), "timeout": timeout})
        step = self.script.pop(0)
        if isinstance(step, Exception):
            raise step
        return step

    def close(self):
        pass


def _client(script, **kwargs):
    sleeps = []
    client = HttpClient(sleep=sleeps.append, **kwargs)
    client.session = FakeSession(script)
    return client, sleeps


def test_session_carries_browser_headers():
    client = HttpClient()
    try:
        assert client.session.headers["Accept-Language"] == BROWSER_HEADERS["Accept-Language"]
        assert "Mozilla/5.0" in client.session.headers["User-Agent"]
    finally:
        client.close()


def test_success_returns_decoded_body_and_sends_referer():
    client, sleeps = _client([FakeResponse("案件一覧".encode())])

    text = client.fetch_text("https://example.com/jobs", referer="https://example.com/")

    assert text == "案件一覧"
    assert sleeps == []
    assert client.session.requests[0]["headers"]["Referer"] == "https://example.com/"


def test_transport_errors_are_retried_with_backoff():
    script = [requests.ConnectionError("reset"), requests.ConnectionError("reset"), FakeResponse(b"ok")]
    client, sleeps = _client(script, retries=2, backoff_base=0.5)

    assert client.fetch_text("https://example.com/jobs") == "ok"
    assert len(client.session.requests) == 3
    assert len(sleeps) == 2
    assert 0.5 <= sleeps[0] <= 0.7
    assert 1.0 <= sleeps[1] <= 1.2


def test_gives_up_after_retries():
    script = [requests.ConnectionError("down")] * 3
    client, sleeps = _client(script, retries=2, backoff_base=0)

    with pytest.raises(FetchError) as ei:
        client.fetch_text("https://example.com/jobs")

    assert ei.value.attempts == 3
    assert len(client.session.requests) == 3
    assert len(sleeps) == 2


def test_per_call_overrides_win():
    script = [requests.ConnectionError("down")] * 2
    client, sleeps = _client(script, retries=5, timeout=10)

    with pytest.raises(FetchError):
        client.fetch_text("https://example.com/jobs", retries=1, timeout=2.5, backoff_base=0)

    assert len(client.session.requests) == 2
    assert client.session.requests[0]["timeout"].total == 2.5


def test_non_2xx_is_not_retried():
    resp = FakeResponse(b"busy", status=503)
    client, sleeps = _client([resp], retries=3)

    with pytest.raises(HttpStatusError) as ei:
        client.fetch_text("https://example.com/jobs")

    assert ei.value.status == 503
    assert len(client.session.requests) == 1
    assert sleeps == []
    assert resp.closed


def test_timeout_is_reported_as_fetch_timeout():
    client, _ = _client([requests.ReadTimeout("slow")], retries=0)
    with pytest.raises(FetchTimeout):
        client.fetch_text("https://example.com/jobs")


def test_latin1_default_charset_is_sniffed():
    body = "<html><body>エンジニア募集</body></html>".encode()
    client, _ = _client([FakeResponse(body, encoding="ISO-8859-1")])
    assert "エンジニア募集" in client.fetch_text("https://example.com/jobs")


def test_backoff_grows_exponentially():
    for attempt, floor in ((1, 0.5), (2, 1.0), (3, 2.0)):
        delay = backoff_delay(attempt, 0.5)
        assert floor <= delay <= floor + 0.2


# ---------------------------------------------------------------------
# Whole-attempt deadline against a real socket that stalls
# ---------------------------------------------------------------------
_HEADERS = b"HTTP/1.1 200 OK\r\nContent-Type: text/html; charset=utf-8\r\nContent-Length: 6\r\n\r\n"


@pytest.fixture
def stalling_server(monkeypatch):
    """
    Factory: a one-connection local HTTP server. `send_headers=False` never
    answers; otherwise it sends headers then one body byte every 0.7s.
    """
    for name in ("HTTP_PROXY", "http_proxy", "ALL_PROXY", "all_proxy"):
        monkeypatch.delenv(name, raising=False)
    stop = threading.Event()
    listeners = []

    def _start(send_headers=True):
        srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        srv.bind(("127.0.0.1", 0))
        srv.listen(1)
        listeners.append(srv)

        def serve():
            try:
                conn, _ = srv.accept()
            except OSError:
                return
            with conn:
                conn.recv(4096)
                if not send_headers:
                    stop.wait(10)
                    return
                try:
                    conn.sendall(_HEADERS)
                    for byte in b"abcdef":
                        if stop.wait(0.7):
                            return
                        conn.sendall(bytes([byte]))
                except OSError:
                    return

        threading.Thread(target=serve, daemon=True).start()
        return f"http://127.0.0.1:{srv.getsockname()[1]}/jobs"

    yield _start
    stop.set()
    for srv in listeners:
        srv.close()


@pytest.mark.parametrize("send_headers", [True, False], ids=["trickled-body", "no-response"])
def test_attempt_is_cut_off_at_timeout(stalling_server, send_headers):
    url = stalling_server(send_headers=send_headers)
    client = HttpClient(retries=0)
    try:
        started = time.monotonic()
        with pytest.raises(FetchTimeout):
            client.fetch_text(url, timeout=1.0)
        elapsed = time.monotonic() - started
    finally:
        client.close()

    assert elapsed < 1.6
