import argparse
import json

import pytest
from rich.console import Console

from netescola.scripts.check_ai_key import check_key
from netescola.scripts.reports import main as reports_main, run as run_reports
from netescola.services.video_reports import ReportLog

from conftest import FakeGenai


def quiet_console() -> Console:
    return Console(record=True, width=120)


def test_check_key_without_key_exits_1():
    assert check_key(None, ["m1"], quiet_console()) == 1


def test_check_key_first_success_exits_0():
    fake = FakeGenai(lambda credential, model, prompt: "OK" if model == "m2" and credential.api_version == "v1" else
                     Exception("404 not found"))
    console = quiet_console()

    assert check_key("key", ["m1", "m2", "m3"], console, client_factory=fake) == 0
    # m3 is never tried once m2 answers
    assert [call[2] for call in fake.calls] == ["m1", "m1", "m2", "m2"]
    assert "m2" in console.export_text()


def test_check_key_none_responding_exits_2():
    fake = FakeGenai(lambda *_: Exception("403 PERMISSION_DENIED"))
    assert check_key("key", ["m1"], quiet_console(), client_factory=fake) == 2


def test_reports_summary_and_clear(report_log):
    report_log.append("v1", "private")
    report_log.append("v2", "private")
    console = quiet_console()

    run_reports(argparse.Namespace(command="summary"), report_log, console)
    assert "private" in console.export_text()

    run_reports(argparse.Namespace(command="clear"), report_log, console)
    assert report_log.all() == []


def test_reports_cli_export(store, tmp_path):
    ReportLog(store).append("v9", "deleted", "2024004")
    output = tmp_path / "out.json"

    reports_main(["--db", store.db_path, "export", "--output", str(output)])

    assert json.loads(output.read_text(encoding="utf-8"))[0]["videoId"] == "v9"


def test_reports_cli_rejects_unknown_type(store):
    with pytest.raises(SystemExit):
        reports_main(["--db", store.db_path, "list", "--type", "spam"])
