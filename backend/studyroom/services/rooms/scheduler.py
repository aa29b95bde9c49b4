import time
from typing import Callable, List, Optional


def now_ms() -> int:
    return int(time.time() * 1000)


class WakeToken:
    __slots__ = ('at_ms', 'callback', 'cancelled')

    def __init__(self, at_ms: int, callback: Callable[[], None]):
        self.at_ms = at_ms
        self.callback = callback
        self.cancelled = False


class BackgroundScheduler:
    """Deliver wakes from Socket.IO background tasks.

    Each wake sleeps in short steps so a cancelled token stops promptly;
    a step may overshoot or undershoot the deadline, callers re-check.
    """

    def __init__(self, sio, clock: Callable[[], int] = now_ms, logger=None, step_sec: float = 1.0):
        self._sio = sio
        self._clock = clock
        self._logger = logger
        self._step_sec = step_sec

    def schedule_wake(self, at_ms: int, callback: Callable[[], None]) -> WakeToken:
        token = WakeToken(at_ms, callback)
        self._sio.start_background_task(self._worker, token)
        return token

    def cancel(self, token: Optional[WakeToken]) -> None:
        if token is not None:
            token.cancelled = True

    def _worker(self, token: WakeToken) -> None:
        while not token.cancelled:
            remaining = (token.at_ms - self._clock()) / 1000.0
            if remaining <= 0:
                break
            self._sio.sleep(min(remaining, self._step_sec))
        if token.cancelled:
            return
        try:
            token.callback()
        except Exception:
            if self._logger is not None:
                self._logger.exception(f"[timer-error] wake at={token.at_ms} failed")


class ManualScheduler:
    """Wakes that only fire when asked to, for deterministic runs."""

    def __init__(self):
        self._tokens: List[WakeToken] = []

    def schedule_wake(self, at_ms: int, callback: Callable[[], None]) -> WakeToken:
        token = WakeToken(at_ms, callback)
        self._tokens.append(token)
        return token

    def cancel(self, token: Optional[WakeToken]) -> None:
        if token is not None:
            token.cancelled = True

    def pending(self) -> List[int]:
        return sorted(t.at_ms for t in self._tokens if not t.cancelled)

    def run_due(self, now: int) -> int:
        """Fire every live wake scheduled at or before ``now``."""
        due = [t for t in self._tokens if not t.cancelled and t.at_ms <= now]
        self._tokens = [t for t in self._tokens if t not in due and not t.cancelled]
        for token in due:
            token.callback()
        return len(due)

    def run_next(self) -> bool:
        """Fire the earliest live wake regardless of its deadline."""
        live = [t for t in self._tokens if not t.cancelled]
        if not live:
            return False
        token = min(live, key=lambda t: t.at_ms)
        self._tokens.remove(token)
        token.callback()
        return True
