# tests/conftest.py
import os

import pytest

from modules.job_harvest.lib.config import Settings
from modules.job_harvest.lib.http_client import FetchError, HttpStatusError


# Site tests hit the real job boards; they only run with --live or RUN_LIVE_TESTS=1.
def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--live",
        action="store_true",
        default=False,
        help="Also run tests marked live (real requests to the job sites).",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "live: talks to the real job sites; skipped unless --live is given.",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if config.getoption("--live") or os.getenv("RUN_LIVE_TESTS") == "1":
        return
    marker = pytest.mark.skip(reason="needs --live")
    for item in (i for i in items if "live" in i.keywords):
        item.add_marker(marker)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path_factory):
    """JSONL logs go to a fresh directory and no JOB_HARVEST_* setting leaks in."""
    monkeypatch.setenv("LOG_DIR", str(tmp_path_factory.mktemp("logs")))
    monkeypatch.setenv("ACTIVITY_LOG_PREFIX", "harvest-activity")
    monkeypatch.setenv("ERROR_LOG_PREFIX", "harvest-error")

    for name in list(os.environ):
        if name.startswith("JOB_HARVEST_") or name == "JOB_RETENTION_DAYS":
            monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def db_path(tmp_path) -> str:
    return str(tmp_path / "state" / "jobs.db")


@pytest.fixture
def make_settings(db_path):
    """Factory: Settings on a per-test DB with no politeness delay."""

    def _make(**overrides) -> Settings:
        kwargs = {"sqlite_path": db_path, "page_delay": 0, "backoff_base": 0}
        kwargs.update(overrides)
        return Settings.from_env_and_kwargs(kwargs)

    return _make


class FakeClient:
    """
    Stands in for HttpClient: serves canned bodies by exact URL.
    Unknown URLs answer 404; Exception values are raised as-is.
    """

    def __init__(self, pages=None):
        self.pages = dict(pages or {})
        self.calls = []
        self.kwargs = []
        self.closed = False

    def fetch_text(self, url, **kwargs):
        self.calls.append(url)
        self.kwargs.append(kwargs)
        if url not in self.pages:
            raise HttpStatusError(url, 404)
        value = self.pages[url]
        if isinstance(value, Exception):
            raise value
        return value

    def close(self):
        self.closed = True


@pytest.fixture
def fake_client():
    return FakeClient


@pytest.fixture
def fetch_error():
    def _make(url="https://example.com/x", message="connection reset"):
        return FetchError(url, message)

    return _make
