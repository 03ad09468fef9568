import sys
from pathlib import Path

import pytest

# Ensure the repo root is on sys.path so tests can import the local package.
ROOT = str(Path(__file__).resolve().parents[1])
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)


class _Handle:
    def __init__(self, clock: "FakeScheduler", due: float, seq: int, callback) -> None:
        self.clock = clock
        self.due = due
        self.seq = seq
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Manual clock with asyncio's call_later shape."""

    def __init__(self) -> None:
        self.now = 0.0
        self._seq = 0
        self._handles: list[_Handle] = []

    def call_later(self, delay, callback):
        self._seq += 1
        h = _Handle(self, self.now + float(delay), self._seq, callback)
        self._handles.append(h)
        return h

    def pending(self) -> int:
        return sum(1 for h in self._handles if not h.cancelled)

    def advance(self, seconds: float) -> None:
        target = self.now + float(seconds)
        while True:
            due = [h for h in self._handles if not h.cancelled and h.due <= target]
            if not due:
                break
            h = min(due, key=lambda x: (x.due, x.seq))
            self._handles.remove(h)
            self.now = h.due
            h.callback()
        self.now = target
        self._handles = [h for h in self._handles if not h.cancelled]


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture(autouse=True)
def _isolate_state_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    # Keep FileLocalStore.from_env() and the API repository away from $HOME.
    monkeypatch.setenv("CIPHERSTUDIO_STATE_DIR", str(tmp_path / "state"))
    monkeypatch.delenv("CIPHERSTUDIO_API_DATA_DIR", raising=False)
