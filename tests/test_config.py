# tests/test_config.py
import json

import pytest

from modules.job_harvest.lib import config as jh_config
from modules.job_harvest.lib.config import ConfigError, Settings


def test_defaults(db_path):
    s = Settings.from_env_and_kwargs({"sqlite_path": db_path})

    assert s.max_total_items == 15
    assert s.detail_concurrency == 1
    assert s.list_timeout == 10.0
    assert s.detail_timeout == 6.0
    assert s.chunk_size == 100
    assert [site.key for site in s.selected_sites()] == ["freelance-start", "lancers", "crowdworks"]


def test_env_then_kwargs_precedence(monkeypatch, db_path):
    monkeypatch.setenv("JOB_HARVEST_MAX_TOTAL_ITEMS", "7")
    monkeypatch.setenv("JOB_HARVEST_SQLITE_PATH", db_path)

    assert Settings.from_env_and_kwargs({}).max_total_items == 7
    assert Settings.from_env_and_kwargs({"max_total_items": 3}).max_total_items == 3
    assert Settings.from_env_and_kwargs({}).sqlite_path == db_path


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_total_items": "lots"},
        {"max_total_items": 0},
        {"detail_concurrency": 0},
        {"detail_timeout": -1},
        {"pages": "0"},
        {"chunk_size": 0},
        {"fetch_retries": -1},
    ],
)
def test_invalid_values_raise_config_error(kwargs, db_path):
    with pytest.raises(ConfigError):
        Settings.from_env_and_kwargs({"sqlite_path": db_path, **kwargs})


def test_overrides_apply_to_selected_sites(db_path):
    s = Settings.from_env_and_kwargs({"sqlite_path": db_path, "site": "lancers", "pages": "1,2", "max_items_per_page": 5})
    (site,) = s.selected_sites()

    assert site.key == "lancers"
    assert site.pages == (1, 2)
    assert site.max_items_per_page == 5
    assert s.site_is_known()


def test_unknown_site_selects_all(db_path):
    s = Settings.from_env_and_kwargs({"sqlite_path": db_path, "site": "indeed"})
    assert not s.site_is_known()
    assert len(s.selected_sites()) == 3


def test_sites_file_replaces_builtins(tmp_path, db_path):
    path = tmp_path / "sites.json"
    path.write_text(
        json.dumps([
            {
                "key": "lancers",
                "base_url": "https://www.lancers.jp/work/search/web",
                "list_selector": ".job",
                "title_selector": "a",
                "link_selector": "a",
                "pages": [1, 2],
            }
        ]),
        encoding="utf-8",
    )
    s = Settings.from_env_and_kwargs({"sqlite_path": db_path, "sites_path": str(path)})

    assert list(s.site_registry()) == ["lancers"]
    assert s.site_registry()["lancers"].pages == (1, 2)


@pytest.mark.parametrize(
    "payload",
    [
        {"key": "lancers"},
        [{"key": "lancers", "base_url": "u", "list_selector": "x", "title_selector": "y"}],
        [{"key": "nobody", "base_url": "u", "list_selector": "x", "title_selector": "y", "link_attr": "href"}],
        [{"key": "lancers", "base_url": "u", "list_selector": "x", "title_selector": "y", "link_attr": "h", "oops": 1}],
    ],
)
def test_bad_sites_file_raises(tmp_path, db_path, payload):
    path = tmp_path / "sites.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    with pytest.raises(ConfigError):
        Settings.from_env_and_kwargs({"sqlite_path": db_path, "sites_path": str(path)})


def test_missing_sites_file_raises(tmp_path, db_path):
    with pytest.raises(ConfigError):
        Settings.from_env_and_kwargs({"sqlite_path": db_path, "sites_path": str(tmp_path / "nope.json")})


def test_pages_parsing():
    assert jh_config._pages("1, 2,3") == (1, 2, 3)
    assert jh_config._pages([2]) == (2,)
    assert jh_config._pages(4) == (4,)
    assert jh_config._pages(None) is None
