"""Debounced full recompute on the host event loop.

At most one recompute is pending at any time.  Each ``schedule()``
replaces the pending timer, so a burst of edits inside the coalescing
delay produces exactly one pass.
"""

from __future__ import annotations

import asyncio
import time
from enum import Enum
from typing import Callable

from minisheet.logging.events import (
    RECALC_EXCEPTION,
    EventType,
    emit_error,
    emit_info,
)

DEFAULT_DELAY = 0.016  # ~60fps


class CalcState(str, Enum):
    calculating = "calculating"
    ready = "ready"
    error = "error"


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class RecalcController:
    """Coalesces recompute requests into a single deferred call.

    Parameters
    ----------
    recompute : Callable[[], None]
        The full recompute.  Exceptions it raises are logged and reflected
        in :attr:`state`, never propagated.
    delay : float
        Coalescing delay in seconds.
    loop : asyncio.AbstractEventLoop | None
        Loop to schedule on.  Defaults to the running loop at
        ``schedule()`` time; with no running loop the recompute runs
        immediately.
    """

    def __init__(
        self,
        recompute: Callable[[], None],
        delay: float = DEFAULT_DELAY,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._recompute = recompute
        self.delay = delay
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None
        self._state = CalcState.ready
        self._runs = 0
        self.last_error: str | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    @property
    def state(self) -> CalcState:
        return self._state

    @property
    def runs(self) -> int:
        """Number of completed recompute passes."""
        return self._runs

    def schedule(self) -> None:
        """Request a recompute after the coalescing delay."""
        self.cancel()
        self._state = CalcState.calculating
        loop = self._loop or _running_loop()
        if loop is None:
            self._run()
            return
        self._handle = loop.call_later(self.delay, self._run)

    def flush(self) -> None:
        """Run a pending recompute now."""
        if self._handle is not None:
            self.cancel()
            self._run()

    def cancel(self) -> None:
        """Drop the pending recompute, if any."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _run(self) -> None:
        self._handle = None
        started = time.perf_counter()
        try:
            self._recompute()
        except Exception as exc:
            self._state = CalcState.error
            self.last_error = str(exc)
            emit_error(
                EventType.recalc_failed,
                f"Recalc error: {exc}",
                {"exception": type(exc).__name__},
                error_code=RECALC_EXCEPTION,
            )
            return
        self._runs += 1
        self._state = CalcState.ready
        self.last_error = None
        emit_info(
            EventType.recalc_completed,
            "Recalc completed",
            {
                "duration_ms": round((time.perf_counter() - started) * 1000, 3),
                "runs": self._runs,
            },
        )
