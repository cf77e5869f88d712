import json
from pathlib import Path

import pytest
import requests

from city_distances.cli import run_command
from city_distances.common.config_loader import load_config
from city_distances.common.constants import EXIT_HARD_FAIL, EXIT_SUCCESS
from city_distances.common.http import HttpRequestError

CITIES = [
    {"id": "london", "city_name": "London", "lat": 51.5074, "lon": -0.1278},
    {"id": "paris", "city_name": "Paris", "lat": 48.8566, "lon": 2.3522},
    {"id": "tokyo", "city_name": "Tokyo", "lat": 35.6762, "lon": 139.6503},
]


def _config(tmp_path: Path | None = None):
    env = {"SUPABASE_URL": "https://xyz.supabase.co", "SUPABASE_SERVICE_KEY": "k"}
    if tmp_path is not None:
        env["SUMMARY_PATH"] = str(tmp_path / "reports" / "summary.json")
    return load_config(env)


@pytest.mark.integration
def test_cli_run_prints_summary_and_writes_report(memory_store, tmp_path: Path, capsys):
    store = memory_store(CITIES)
    sleeps = []

    exit_code = run_command(_config(tmp_path), run_id="run-test", store=store, sleep=sleeps.append)

    out = capsys.readouterr().out
    assert exit_code == EXIT_SUCCESS
    assert "Cities: 3" in out
    assert "Inserted rows: 1" in out
    assert sleeps == []

    report = json.loads((tmp_path / "reports" / "summary.json").read_text(encoding="utf-8"))
    assert report["run_id"] == "run-test"
    assert report["status"] == "success"
    assert report["counts"]["inserted"] == 1
    assert report["counts"]["filtered_out"] == 2


@pytest.mark.integration
def test_cli_load_failure_exits_non_zero(memory_store):
    store = memory_store(CITIES)
    store.fail_selects_with = HttpRequestError("HTTP status: 500", status_code=500, body="down")

    assert run_command(_config(), run_id="run-test", store=store) == EXIT_HARD_FAIL
    assert store.insert_calls == []


@pytest.mark.integration
def test_cli_nothing_to_do_exits_cleanly(memory_store, capsys):
    store = memory_store(CITIES[:1])

    assert run_command(_config(), run_id="run-test", store=store) == EXIT_SUCCESS
    assert "Not enough cities" in capsys.readouterr().out


@pytest.mark.integration
def test_cli_transport_failure_during_load_exits_non_zero(memory_store):
    store = memory_store(CITIES)
    store.fail_selects_with = requests.exceptions.TooManyRedirects("Exceeded 30 redirects.")

    assert run_command(_config(), run_id="run-test", store=store) == EXIT_HARD_FAIL
    assert store.insert_calls == []
