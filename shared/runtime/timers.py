"""Cancellable single-slot timers on the asyncio loop."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional

from shared.logging.logger import get_logger

log = get_logger("runtime.timers")


class DebouncedCall:
    """
    Coalesce rapid calls into one invocation of ``callback``.

    Only one timer is ever pending. ``schedule`` cancels the pending timer
    and replaces its argument, so the last call inside the window wins and
    intermediate calls are dropped rather than queued.

    Must be scheduled from code running on an event loop.
    """

    def __init__(self, callback: Callable[[Any], None], delay_seconds: float) -> None:
        self._callback = callback
        self._delay = max(0.0, float(delay_seconds))
        self._handle: Optional[asyncio.TimerHandle] = None
        self._pending_arg: Any = None

    @property
    def delay_seconds(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, arg: Any) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._pending_arg = arg
        self._handle = loop.call_later(self._delay, self._fire)

    def cancel(self) -> bool:
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        self._pending_arg = None
        return True

    def flush(self) -> bool:
        """Run the pending call immediately. Returns False when idle."""
        if self._handle is None:
            return False
        self._handle.cancel()
        self._fire()
        return True

    def _fire(self) -> None:
        arg = self._pending_arg
        self._handle = None
        self._pending_arg = None
        try:
            self._callback(arg)
        except Exception as e:
            log.error(f"Debounced callback failed: {e}")
            raise


__all__ = ["DebouncedCall"]
