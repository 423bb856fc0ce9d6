"""
Tests for the command line entry point (main.py)
"""
from unittest.mock import AsyncMock, patch

from click.testing import CliRunner

from main import cli
from nwbooker.common.models import BookingOutcome, BookingRun


def _write_config(tmp_path, schedule="0 0 18 * * mon"):
    path = tmp_path / "config.yaml"
    path.write_text(
        "activities:\n"
        "  - name: Yoga\n"
        "    user_id: 42\n"
        "    user_name: Alex\n"
        "    day: monday\n"
        f"    schedule: '{schedule}'\n"
    )
    return str(path)


def test_missing_config_file(tmp_path):
    result = CliRunner().invoke(cli, ["--config", str(tmp_path / "nope.yaml"), "info"])
    assert result.exit_code == 1
    assert "Config file not found" in result.output


def test_info_lists_activities(tmp_path):
    result = CliRunner().invoke(cli, ["--config", _write_config(tmp_path), "info"])
    assert result.exit_code == 0
    assert "Yoga" in result.output
    assert "Alex" in result.output


def test_info_shows_bad_schedule(tmp_path):
    result = CliRunner().invoke(cli, ["--config", _write_config(tmp_path, "whenever"), "info"])
    assert result.exit_code == 0
    assert "Invalid" in result.output


def test_slots_unknown_activity(tmp_path):
    result = CliRunner().invoke(cli, ["--config", _write_config(tmp_path), "slots", "Zumba"])
    assert result.exit_code == 1
    assert "No enabled activity" in result.output


def test_once_prints_results(tmp_path):
    async def fake_run_once(self):
        run = BookingRun(activity=self.runners[0].activity, attempts_made=1, max_attempts=3)
        run.mark_succeeded(BookingOutcome.booked("Yoga Flow"))
        return [run]

    with patch("main.Supervisor.run_once", new=fake_run_once):
        result = CliRunner().invoke(cli, ["--config", _write_config(tmp_path), "once"])

    assert result.exit_code == 0
    assert "booked Yoga Flow" in result.output


def test_unreadable_activities_file(tmp_path):
    activities = tmp_path / "acts.json"
    activities.write_text("[{")
    path = tmp_path / "config.yaml"
    path.write_text(f"activities_file: {activities}\n")

    result = CliRunner().invoke(cli, ["--config", str(path), "once"])

    assert result.exit_code == 1
    assert "Error loading activities" in result.output
