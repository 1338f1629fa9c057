"""
Shared fixtures for the rollback tests: a fake clock and a scripted alarm source.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from rct_core.models import AlarmSnapshot, AlarmState


class FakeClock:
    """Clock whose sleep() advances time instantly."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps = []

    def monotonic(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += max(seconds, 0.0)


class ScriptedAlarmSource:
    """
    Alarm source replaying one state per fetch.

    `script` entries are either an AlarmState applied to every signal or a
    dict of signal name -> AlarmState (missing names are OK). The last entry
    repeats once the script is exhausted.
    """

    def __init__(self, script=None, error=None):
        self.script = list(script or [AlarmState.OK])
        self.error = error
        self.calls = []

    def fetch(self, names):
        self.calls.append(list(names))
        if self.error is not None:
            raise self.error

        entry = self.script[min(len(self.calls) - 1, len(self.script) - 1)]
        snapshots = []
        for name in names:
            state = entry.get(name, AlarmState.OK) if isinstance(entry, dict) else entry
            snapshots.append(AlarmSnapshot(name=name, state=state, reason=f"{state.value} reason"))
        return snapshots


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "rollback.duckdb")
