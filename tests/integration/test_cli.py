from tests.conftest import FnCLIRunner


def test_day_empty(tmp_daytoday_dir):
    runner = FnCLIRunner()
    result = runner.invoke(["day", "--date", "2024-01-01"])

    assert result.exit_code == 0
    assert "nothing scheduled" in result.stdout


def test_routine_ls_empty(tmp_daytoday_dir):
    runner = FnCLIRunner()
    result = runner.invoke(["routine", "ls"])

    assert result.exit_code == 0
    assert "no routines" in result.stdout


def test_routine_add_then_day_materializes(tmp_daytoday_dir, frozen_clock):
    runner = FnCLIRunner()
    added = runner.invoke(
        ["routine", "add", "water", "plants", "--every", "daily", "--at", "08:00"]
    )
    assert added.exit_code == 0

    result = runner.invoke(["day", "--date", "2024-01-03"])

    assert result.exit_code == 0
    assert "08:00 water plants" in result.stdout


def test_day_twice_does_not_duplicate(tmp_daytoday_dir, frozen_clock):
    runner = FnCLIRunner()
    runner.invoke(["routine", "add", "journal", "--every", "daily"])
    runner.invoke(["day", "--date", "2024-01-03"])
    result = runner.invoke(["day", "--date", "2024-01-03"])

    assert result.stdout.count("journal") == 1


def test_add_task_shows_on_its_day(tmp_daytoday_dir, frozen_clock):
    runner = FnCLIRunner()
    added = runner.invoke(["add", "buy", "milk", "--date", "2024-05-01"])
    assert added.exit_code == 0
    assert "added" in added.stdout

    result = runner.invoke(["day", "--date", "2024-05-01"])
    assert "buy milk" in result.stdout


def test_done_marks_task(tmp_daytoday_dir, frozen_clock):
    runner = FnCLIRunner()
    runner.invoke(["add", "buy", "milk", "--date", "2024-05-01"])

    result = runner.invoke(["done", "milk", "--date", "2024-05-01"])

    assert result.exit_code == 0
    assert "✓ buy milk" in result.stdout


def test_routine_preview(tmp_daytoday_dir, frozen_clock):
    runner = FnCLIRunner()
    runner.invoke(["routine", "add", "team", "sync", "--every", "weekly", "--on", "mon"])

    result = runner.invoke(
        ["routine", "preview", "team", "sync", "--start", "2024-01-01", "--days", "14"]
    )

    assert result.exit_code == 0
    assert "Mon 2024-01-01" in result.stdout
    assert "Mon 2024-01-08" in result.stdout
    assert "Tue" not in result.stdout


def test_routine_rm_removes_its_tasks(tmp_daytoday_dir, frozen_clock):
    runner = FnCLIRunner()
    runner.invoke(["routine", "add", "journal", "--every", "daily"])
    runner.invoke(["day", "--date", "2024-01-02"])

    removed = runner.invoke(["routine", "rm", "journal"])
    assert removed.exit_code == 0
    assert "1 tasks" in removed.stdout

    result = runner.invoke(["day", "--date", "2024-01-02"])
    assert "journal" not in result.stdout


def test_routine_add_unknown_frequency_fails(tmp_daytoday_dir):
    runner = FnCLIRunner()
    result = runner.invoke(["routine", "add", "x", "--every", "fortnightly"])

    assert result.exit_code != 0


def test_unknown_task_fails(tmp_daytoday_dir):
    runner = FnCLIRunner()
    result = runner.invoke(["rm", "nothing", "here"])

    assert result.exit_code != 0
    assert "No task found" in result.stderr


def test_routine_add_non_numeric_count_fails(tmp_daytoday_dir):
    runner = FnCLIRunner()
    result = runner.invoke(["routine", "add", "x", "--count", "abc"])

    assert result.exit_code == 1
    assert "--count must be a whole number" in result.stderr
    assert "no routines" in runner.invoke(["routine", "ls"]).stdout
