from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, Generic, Protocol, TypeVar

from cipherstudio import config
from cipherstudio.projects.types import Project
from cipherstudio.storage.local import LocalStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Anything with asyncio's `call_later` shape."""

    def call_later(self, delay: float, callback: Callable[[], Any]) -> TimerHandle: ...


class LoopScheduler:
    """Schedules on an asyncio loop, by default the one running at construction."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError as exc:
                raise RuntimeError(
                    "LoopScheduler needs a running event loop; pass a loop or a scheduler"
                ) from exc
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], Any]) -> TimerHandle:
        return self._loop.call_later(delay, callback)


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class DebounceTimer(Generic[T]):
    """Runs `callback(payload)` once the timer has been quiet for `delay_s`.

    Every `schedule()` replaces the payload and restarts the window.
    """

    def __init__(
        self, scheduler: Scheduler, delay_s: float, callback: Callable[[T], None]
    ) -> None:
        self._scheduler = scheduler
        self._delay_s = delay_s
        self._callback = callback
        self._handle: TimerHandle | None = None
        self._payload: T | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, payload: T) -> None:
        handle = self._scheduler.call_later(self._delay_s, self._fire)
        self.cancel()
        self._payload = payload
        self._handle = handle

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._payload = None

    def fire_now(self) -> bool:
        if self._handle is None:
            return False
        self._handle.cancel()
        self._fire()
        return True

    def _fire(self) -> None:
        payload = self._payload
        self._handle = None
        self._payload = None
        if payload is not None:
            self._callback(payload)


class AutosaveCoordinator:
    """Debounced, de-duplicated persistence of the project to a LocalStore.

    `observe()` is called on every change. Unchanged state (compared with the
    last snapshot actually written, timestamp excluded) is skipped. Changes
    inside the quiescence window collapse into a single write of the latest
    snapshot. Write failures are logged and never raised.
    """

    def __init__(
        self,
        store: LocalStore,
        *,
        scheduler: Scheduler | None = None,
        debounce_s: float | None = None,
        indicator_s: float | None = None,
        now: Callable[[], str] = _now_iso,
        on_saving_changed: Callable[[bool], None] | None = None,
    ) -> None:
        self._store = store
        self._scheduler = scheduler or LoopScheduler()
        self._indicator_s = config.saving_indicator_s() if indicator_s is None else indicator_s
        self._now = now
        self._on_saving_changed = on_saving_changed
        self._timer: DebounceTimer[tuple[str, dict[str, Any]]] = DebounceTimer(
            self._scheduler,
            config.autosave_debounce_s() if debounce_s is None else debounce_s,
            self._write,
        )
        self._last_written: str | None = None
        self._latest: str | None = None
        self._saving = False
        self._indicator_handle: TimerHandle | None = None

    @property
    def is_saving(self) -> bool:
        return self._saving

    @property
    def has_pending(self) -> bool:
        return self._timer.pending

    @property
    def is_dirty(self) -> bool:
        """True while the latest observed state is not in the store."""
        return self._latest is not None and self._latest != self._last_written

    def prime(self, project: Project) -> None:
        """Record `project` as already stored, e.g. right after hydration."""
        self._last_written = project.fingerprint()

    def observe(self, project: Project) -> bool:
        """Schedule a write of `project` unless it matches what is stored.

        Returns True when a write was scheduled.
        """
        fp = project.fingerprint()
        if fp == self._last_written:
            # Back to the stored state: a pending write would be redundant.
            self._timer.cancel()
            self._latest = fp
            return False
        self._timer.schedule((fp, project.to_snapshot(timestamp=self._now())))
        self._latest = fp
        return True

    def flush(self) -> bool:
        return self._timer.fire_now()

    def close(self) -> None:
        self._timer.cancel()
        if self._indicator_handle is not None:
            self._indicator_handle.cancel()
            self._indicator_handle = None
        self._set_saving(False)

    def _write(self, pending: tuple[str, dict[str, Any]]) -> None:
        fp, snapshot = pending
        self._set_saving(True)
        try:
            self._store.write(snapshot)
        except Exception:
            logger.warning("Autosave to local store failed", exc_info=True)
        else:
            self._last_written = fp
            logger.info("Auto-saved project %s to local store", snapshot.get("projectId"))
        finally:
            self._clear_saving_later()

    def _clear_saving_later(self) -> None:
        if self._indicator_handle is not None:
            self._indicator_handle.cancel()
        self._indicator_handle = self._scheduler.call_later(
            self._indicator_s, self._clear_saving
        )

    def _clear_saving(self) -> None:
        self._indicator_handle = None
        self._set_saving(False)

    def _set_saving(self, value: bool) -> None:
        if self._saving == value:
            return
        self._saving = value
        if self._on_saving_changed is not None:
            self._on_saving_changed(value)
