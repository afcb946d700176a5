# modules/job_harvest/lib/http_client.py
from __future__ import annotations

import contextlib
import logging
import random
import socket
import threading
import time
from collections.abc import Callable, Mapping

import requests
from bs4.dammit import UnicodeDammit
from requests.adapters import HTTPAdapter
from urllib3.util import Timeout

LOG = logging.getLogger(__name__)

# Job boards answer browsers, not bots.
BROWSER_HEADERS: dict[str, str] = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,"
        "image/apng,*/*;q=0.8,application/signed-exchange;v=b3;q=0.7"
    ),
    "Accept-Language": "ja-JP,ja;q=0.9,en-US;q=0.8,en;q=0.7",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "same-origin",
    "Upgrade-Insecure-Requests": "1",
}

JITTER_MAX_SECONDS = 0.2
_CHUNK_BYTES = 4 * 1024


class FetchError(Exception):
    """A GET that could not produce a usable body."""

    def __init__(self, url: str, message: str, *, attempts: int = 1):
        super().__init__(f"{message} ({url[:80]})")
        self.url = url
        self.attempts = attempts


class FetchTimeout(FetchError):
    """The attempt ran past its deadline."""


class HttpStatusError(FetchError):
    """Non-2xx answer; the server responded, so it is not retried."""

    def __init__(self, url: str, status: int):
        super().__init__(url, f"HTTP {status}")
        self.status = status


def backoff_delay(attempt: int, base: float) -> float:
    """Seconds to wait after failed attempt number `attempt` (1-based)."""
    return base * (2 ** (attempt - 1)) + random.uniform(0, JITTER_MAX_SECONDS)


class HttpClient:
    """Shared HTTP client: browser-like headers, per-attempt deadline, bounded retries."""

    def __init__(
        self,
        timeout: float = 10.0,
        retries: int = 2,
        backoff_base: float = 0.5,
        headers: Mapping[str, str] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.timeout = float(timeout)
        self.retries = int(retries)
        self.backoff_base = float(backoff_base)
        self._sleep = sleep

        self.session = requests.Session()
        self.session.headers.update(BROWSER_HEADERS)
        if headers:
            self.session.headers.update(headers)

        # Retries are handled by fetch_text's loop, not by urllib3.
        adapter = HTTPAdapter(max_retries=0, pool_connections=10, pool_maxsize=20)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    # ---- public ----
    def fetch_text(
        self,
        url: str,
        *,
        referer: str | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
        retries: int | None = None,
        backoff_base: float | None = None,
    ) -> str:
        """
        GET `url` and return its decoded body.

        Each attempt is capped at `timeout` seconds end to end. Transport
        errors and timeouts are retried up to `retries` more times with
        exponential backoff plus jitter; the last one is raised as FetchError
        (FetchTimeout for deadline expiry). Non-2xx raises HttpStatusError
        right away.
        """
        timeout = self.timeout if timeout is None else float(timeout)
        retries = self.retries if retries is None else int(retries)
        base = self.backoff_base if backoff_base is None else float(backoff_base)

        req_headers = dict(headers or {})
        if referer:
            req_headers["Referer"] = referer

        attempt = 0
        while True:
            attempt += 1
            try:
                return self._attempt(url, req_headers, timeout)
            except HttpStatusError:
                raise
            except FetchError as e:
                is_timeout = isinstance(e, FetchTimeout)
                LOG.warning(
                    "fetch attempt %d failed for %s: %s",
                    attempt,
                    url[:80],
                    "abort/timeout" if is_timeout else e,
                )
                if attempt > retries:
                    e.attempts = attempt
                    raise
                delay = backoff_delay(attempt, base)
                LOG.info("retrying after %.0fms (attempt %d)", delay * 1000, attempt + 1)
                self._sleep(delay)

    def close(self) -> None:
        try:
            self.session.close()
        except Exception:
            LOG.debug("HttpClient.close() swallow", exc_info=True)

    def __enter__(self) -> HttpClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # ---- internals ----
    def _attempt(self, url: str, headers: Mapping[str, str], timeout: float) -> str:
        deadline = time.monotonic() + timeout
        try:
            # total= bounds connect plus time-to-first-byte together
            resp = self.session.get(url, headers=headers, timeout=Timeout(total=timeout), stream=True)
        except requests.Timeout as e:
            raise FetchTimeout(url, f"timed out after {timeout:.1f}s") from e
        except requests.RequestException as e:
            raise FetchError(url, repr(e)) from e

        expired = threading.Event()
        watchdog = threading.Timer(max(0.0, deadline - time.monotonic()), _abort_response, args=(resp, expired))
        watchdog.daemon = True
        watchdog.start()
        try:
            if not resp.ok:
                raise HttpStatusError(url, resp.status_code)
            body = bytearray()
            try:
                for chunk in resp.iter_content(chunk_size=_CHUNK_BYTES):
                    body.extend(chunk)
            except Exception as e:
                if expired.is_set() or isinstance(e, requests.Timeout):
                    raise FetchTimeout(url, f"body not complete after {timeout:.1f}s") from e
                if isinstance(e, requests.RequestException):
                    raise FetchError(url, repr(e)) from e
                raise
            if expired.is_set():
                raise FetchTimeout(url, f"body not complete after {timeout:.1f}s")
            return self._decode(resp, bytes(body))
        finally:
            watchdog.cancel()
            resp.close()

    @staticmethod
    def _decode(resp: requests.Response, body: bytes) -> str:
        """Decode with the declared charset, else let bs4 sniff it (meta tags, BOM, utf-8)."""
        encoding = resp.encoding
        # requests reports latin-1 for text/* without a charset; treat it as unknown
        if encoding and encoding.lower() != "iso-8859-1":
            try:
                return body.decode(encoding, errors="replace")
            except LookupError:
                LOG.debug("unknown charset %r; sniffing instead", encoding)
        dammit = UnicodeDammit(body, ["utf-8"])
        if dammit.unicode_markup is not None:
            return dammit.unicode_markup
        return body.decode("utf-8", errors="replace")


def _abort_response(resp: requests.Response, expired: threading.Event) -> None:
    """Deadline hit mid-body: wake the reading thread by shutting the socket down."""
    expired.set()
    raw = getattr(resp, "raw", None)
    sock = getattr(getattr(raw, "_connection", None), "sock", None)
    if sock is not None:
        with contextlib.suppress(OSError):
            sock.shutdown(socket.SHUT_RDWR)
    elif raw is not None:
        with contextlib.suppress(Exception):
            raw.close()
