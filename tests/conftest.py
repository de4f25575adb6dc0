import dataclasses
import io
from contextlib import redirect_stderr, redirect_stdout
from datetime import datetime
from pathlib import Path

import fncli
import pytest

import daytoday
from daytoday import config, db
from daytoday.core.errors import DayToDayError
from daytoday.db import MemoryBackend
from daytoday.lib import clock
from daytoday.notifications import RecordingNotifier
from daytoday.store import Store

FROZEN_NOW = datetime(2024, 1, 1, 9, 30)


@pytest.fixture
def frozen_clock(monkeypatch):
    """Pin clock.now() to FROZEN_NOW; the fixture value lets tests move it."""
    current = {"now": FROZEN_NOW}
    monkeypatch.setattr(clock, "now", lambda: current["now"])
    return current


@pytest.fixture
def tmp_daytoday_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "DAYTODAY_DIR", tmp_path)
    monkeypatch.setattr(config, "DB_PATH", tmp_path / "daytoday.db")
    monkeypatch.setattr(config, "CONFIG_PATH", tmp_path / "config.yaml")
    monkeypatch.delenv("DAYTODAY_WEBHOOK_TOKEN", raising=False)
    config._config.reload()
    db.init()
    yield tmp_path
    config._config.reload()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def store(frozen_clock, backend, notifier):
    return Store(backend, notifier)


@dataclasses.dataclass
class Result:
    exit_code: int
    stdout: str
    stderr: str


fncli.autodiscover(Path(daytoday.__file__).parent, "daytoday")


class FnCLIRunner:
    def invoke(self, args: list[str]) -> Result:
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            try:
                code = fncli.dispatch(["daytoday", *args])
            except DayToDayError as e:
                err.write(f"{e}\n")
                code = 1
            except SystemExit as e:
                code = e.code if isinstance(e.code, int) else 1
        return Result(exit_code=code or 0, stdout=out.getvalue(), stderr=err.getvalue())
