"""
Tests for the developer CLI.
"""

from typer.testing import CliRunner

from slotengine.cli.app import app

runner = CliRunner()

FIXTURE = """
providers:
  coach-1:
    session_duration_minutes: 60
    buffer_minutes: 15
    availability:
      monday:
        - {start: "09:00", end: "12:00"}
sessions:
  - provider_id: coach-1
    scheduled_at: "2024-11-25T10:15:00+00:00"
    duration_minutes: 60
"""

NOW = "2024-11-20T00:00:00+00:00"


def _fixture(tmp_path):
    path = tmp_path / "fixture.yaml"
    path.write_text(FIXTURE, encoding="utf-8")
    return str(path)


def test_slots_lists_free_slots(tmp_path):
    result = runner.invoke(
        app,
        ["slots", _fixture(tmp_path), "--provider", "coach-1", "--start", "2024-11-25", "--end", "2024-11-25", "--now", NOW],
    )

    assert result.exit_code == 0
    assert "09:00" in result.output
    assert "10:15" not in result.output
    assert "1 slot(s)" in result.output


def test_slots_for_unknown_provider(tmp_path):
    result = runner.invoke(
        app,
        ["slots", _fixture(tmp_path), "--provider", "nobody", "--start", "2024-11-25", "--end", "2024-11-25", "--now", NOW],
    )

    assert result.exit_code == 0
    assert "No bookable slots" in result.output


def test_check_reports_availability(tmp_path):
    fixture = _fixture(tmp_path)

    free = runner.invoke(
        app,
        ["check", fixture, "-p", "coach-1", "--at", "2024-11-25T09:00:00+00:00", "-d", "60", "--now", NOW],
    )
    taken = runner.invoke(
        app,
        ["check", fixture, "-p", "coach-1", "--at", "2024-11-25T10:30:00+00:00", "-d", "60", "--now", NOW],
    )

    assert free.exit_code == 0
    assert "is available" in free.output
    assert taken.exit_code == 0
    assert "is not available" in taken.output


def test_missing_fixture_exits_with_error(tmp_path):
    result = runner.invoke(app, ["slots", str(tmp_path / "missing.yaml"), "--provider", "coach-1"])

    assert result.exit_code == 1
    assert "Error" in result.output


def test_check_honours_configured_active_statuses(tmp_path):
    fixture = tmp_path / "capped.yaml"
    fixture.write_text(
        "providers:\n"
        "  coach-1:\n"
        "    session_duration_minutes: 60\n"
        "    buffer_minutes: 15\n"
        "    max_sessions_per_week: 1\n"
        "sessions:\n"
        "  - provider_id: coach-1\n"
        '    scheduled_at: "2024-11-25T09:00:00+00:00"\n'
        "    status: in_progress\n",
        encoding="utf-8",
    )
    config = tmp_path / "config.yaml"
    config.write_text("active_statuses: [scheduled]\n", encoding="utf-8")
    args = ["check", str(fixture), "-p", "coach-1", "--at", "2024-11-27T09:00:00+00:00", "-d", "60", "--now", NOW]

    default = runner.invoke(app, args)
    scheduled_only = runner.invoke(app, args + ["--config", str(config)])

    assert "is not available" in default.output
    assert scheduled_only.exit_code == 0
    assert "is available" in scheduled_only.output
