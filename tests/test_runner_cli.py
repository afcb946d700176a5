# tests/test_runner_cli.py
import argparse
import json
import os
import re
from unittest import mock

import pytest

from service import cli, logging_utils, runner


def test_runner_runs_module_and_returns_body(db_path):
    result = runner.run_module_once("job_harvest", {"skip_network": "true", "sqlite_path": db_path})

    assert result.ok
    assert result.meta == {"ok": True, "message": "No items fetched"}
    assert re.match(r"^[a-f0-9]{32}$", result.run_id)
    assert os.path.exists(logging_utils.get_activity_log_path())


def test_runner_normalizes_kwargs(monkeypatch):
    monkeypatch.setenv("SITE_FROM_ENV", "lancers")
    out = runner._normalize_kwargs_types({
        "site_env": "SITE_FROM_ENV",
        "max_total_items": "5",
        "backoff_base": "0.25",
        "skip_network": "yes",
        "pages": "[1, 2]",
        "site": "crowdworks",
    })
    assert out == {
        "site_env": "lancers",
        "max_total_items": 5,
        "backoff_base": 0.25,
        "skip_network": True,
        "pages": [1, 2],
        "site": "crowdworks",
    }


def test_runner_resolves_aliases():
    assert runner.resolve_module_path("job_harvest") == "modules.job_harvest.main"
    assert runner.resolve_module_path("modules.job_retention") == "modules.job_retention.main"
    assert runner.resolve_module_path("pkg.other") == "pkg.other"


def test_runner_reraises_module_errors(db_path):
    with mock.patch("modules.job_harvest.main._run_engine", side_effect=RuntimeError("boom")):
        with pytest.raises(RuntimeError, match="boom"):
            runner.run_module_once("job_harvest", {"sqlite_path": db_path})

    with open(logging_utils.get_activity_log_path(), encoding="utf-8") as f:
        last = json.loads(f.read().splitlines()[-1])
    assert last["ok"] is False
    assert last["message"] == "boom"


def test_cli_run_prints_body(db_path, capsys):
    rc = cli.main(["run", "job_harvest", "--kwargs", "skip_network=true", f"sqlite_path={db_path}"])

    assert rc == 0
    assert json.loads(capsys.readouterr().out.strip()) == {"ok": True, "message": "No items fetched"}


def test_cli_run_failure_returns_1(capsys):
    rc = cli.main(["run", "modules.does_not_exist"])
    assert rc == 1
    assert json.loads(capsys.readouterr().out.strip())["ok"] is False


def test_cli_list_sites(capsys):
    assert cli.main(["list-sites"]) == 0
    out = capsys.readouterr().out
    for key in ("freelance-start", "lancers", "crowdworks"):
        assert key in out


def test_cli_rejects_bad_kwargs():
    with pytest.raises(argparse.ArgumentTypeError):
        cli.main(["run", "job_harvest", "--kwargs", "no-equals-sign"])
