"""
Tests for the command-line interface in local mode.
"""

import pytest
from typer.testing import CliRunner

from cafe_credits import cli
from cafe_credits.settings import settings
from cafe_credits.storage.flatfile import FlatFileLedger
from conftest import referral_url

runner = CliRunner()


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "data_dir", tmp_path)
    monkeypatch.setitem(cli._state, "mode", "local")
    return tmp_path


def test_import_then_send_pending(data_dir, tmp_path):
    roster = tmp_path / "attendees.csv"
    roster.write_text(
        "first_name,last_name,email\nAnn,Lee,ann@example.com\nBob,Roe,bob@example.com\n,,\n",
        encoding="utf-8",
    )
    ledger = FlatFileLedger(data_dir)
    ledger.add_if_not_exists(referral_url("AAA"), "AAA", 20)

    imported = runner.invoke(cli.app, ["import-attendees", str(roster)])
    sent = runner.invoke(cli.app, ["send-pending"])

    assert imported.exit_code == 0
    assert "Imported 2 attendees" in imported.output
    assert sent.exit_code == 0
    assert "1 people still waiting" in sent.output
    assert [p.sent_credits for p in ledger.list_people()] == [True, False]


def test_send_to_unknown_person_fails(data_dir):
    result = runner.invoke(cli.app, ["send", "nobody"])

    assert result.exit_code == 1
    assert "Person not found" in result.output


def test_tally(data_dir):
    ledger = FlatFileLedger(data_dir)
    ledger.add_if_not_exists(referral_url("AAA"), "AAA", 50)
    ledger.add_if_not_exists(referral_url("BBB"), "BBB", 25)

    result = runner.invoke(cli.app, ["tally"])

    assert result.exit_code == 0
    assert "$75" in result.output


def test_bad_roster_is_reported(data_dir, tmp_path):
    roster = tmp_path / "bad.csv"
    roster.write_text("name,email\nAnn,ann@example.com\n", encoding="utf-8")

    result = runner.invoke(cli.app, ["import-attendees", str(roster)])

    assert result.exit_code == 1
    assert "Missing required column" in result.output


def test_invalid_mode_is_rejected():
    result = runner.invoke(cli.app, ["--mode", "remote", "tally"])

    assert result.exit_code != 0
