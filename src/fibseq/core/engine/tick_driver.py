from __future__ import annotations

import itertools
import threading
import time
from dataclasses import dataclass
from functools import partial
from typing import Callable, Protocol

import structlog

from fibseq.core.logging.setup import bind_context

log = structlog.get_logger()

Clock = Callable[[], float]


class TimerHandle(Protocol):
    """
    A started-on-demand, cancelable recurring timer.
    """

    def start(self) -> None:
        ...

    def cancel(self) -> None:
        ...

    def join(self, timeout: float | None = None) -> None:
        ...

    def is_alive(self) -> bool:
        ...


TimerFactory = Callable[[float, float, Callable[[], None]], TimerHandle]


class RecurringTimer(threading.Thread):
    """
    Fires `callback` after `delay` seconds, then every `interval` seconds.

    Deadlines are computed on the monotonic clock from the first arm, so a slow
    callback does not accumulate drift. If a callback overruns one or more
    deadlines the next one fires immediately. A callback that raises ends
    the thread; the owner halts its run before letting the error through.
    """

    def __init__(self, delay: float, interval: float, callback: Callable[[], None]) -> None:
        super().__init__(name="fibseq-tick", daemon=True)
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self._delay = max(0.0, delay)
        self._interval = interval
        self._callback = callback
        self._cancelled = threading.Event()

    def run(self) -> None:
        bind_context(component="tick")
        deadline = time.monotonic() + self._delay
        while not self._cancelled.wait(min(max(0.0, deadline - time.monotonic()), threading.TIMEOUT_MAX)):
            try:
                self._callback()
            except Exception:
                log.exception("tick.callback_failed")
                raise
            deadline += self._interval
            now = time.monotonic()
            if deadline < now:
                deadline = now

    def cancel(self) -> None:
        self._cancelled.set()


@dataclass(slots=True)
class PendingTick:
    """
    The single armed timer of a run.

    - armed_at: monotonic time of the last (re)arm or fire
    - delay: seconds from armed_at until the next fire
    - interval: repeat period in seconds
    """

    token: int
    handle: TimerHandle
    armed_at: float
    delay: float
    interval: float

    def remaining(self, now: float) -> float:
        return max(0.0, self.armed_at + self.delay - now)


class TickScheduler:
    """
    Owns at most one PendingTick.

    Not thread-safe on its own: every method except join() must be called
    under the lock that guards RuntimeState. Timer callbacks invoke
    `on_fire(token)`; the owner passes the token back to claim() to find out
    whether the callback belongs to the live timer.
    """

    def __init__(
        self,
        *,
        on_fire: Callable[[int], None],
        clock: Clock = time.monotonic,
        timer_factory: TimerFactory = RecurringTimer,
    ) -> None:
        self._on_fire = on_fire
        self._clock = clock
        self._timer_factory = timer_factory
        self._tokens = itertools.count(1)
        self._pending: PendingTick | None = None
        # cancelled handles whose threads may still be finishing a callback
        self._retired: list[TimerHandle] = []

    @property
    def pending(self) -> PendingTick | None:
        return self._pending

    @property
    def is_armed(self) -> bool:
        return self._pending is not None

    def arm(self, *, delay: float, interval: float) -> PendingTick:
        """
        Cancel any pending tick, then arm a new one.
        """
        self.cancel()

        token = next(self._tokens)
        handle = self._timer_factory(delay, interval, partial(self._on_fire, token))
        pending = PendingTick(
            token=token,
            handle=handle,
            armed_at=self._clock(),
            delay=delay,
            interval=interval,
        )
        self._pending = pending
        handle.start()

        log.debug("tick.armed", token=token, delay_s=delay, interval_s=interval)
        return pending

    def cancel(self) -> bool:
        pending = self._pending
        if pending is None:
            return False

        self._pending = None
        pending.handle.cancel()
        self._retired = [h for h in self._retired if h.is_alive()]
        self._retired.append(pending.handle)

        log.debug("tick.cancelled", token=pending.token)
        return True

    def claim(self, token: int) -> bool:
        """
        Accept a fire from timer `token`.

        Returns False for a stale callback (its timer was cancelled or replaced).
        On success the pending tick is re-based to now with a full interval ahead.
        """
        pending = self._pending
        if pending is None or pending.token != token:
            return False
        pending.armed_at = self._clock()
        pending.delay = pending.interval
        return True

    def remaining(self) -> float | None:
        if self._pending is None:
            return None
        return self._pending.remaining(self._clock())

    def reschedule(self, *, interval: float) -> PendingTick:
        """
        Re-arm the live timer for a new interval without restarting the run.

        The time already waited counts toward the new interval:
            elapsed = old_interval - remaining
            delay   = max(0, new_interval - elapsed)
        This can be off by up to one tick after a speed-up; that slop is accepted.
        """
        pending = self._pending
        if pending is None:
            raise RuntimeError("no pending tick to reschedule")

        remaining = pending.remaining(self._clock())
        elapsed = pending.interval - remaining
        delay = max(0.0, interval - elapsed)

        log.debug(
            "tick.reconciled",
            old_interval_s=pending.interval,
            new_interval_s=interval,
            elapsed_s=elapsed,
            delay_s=delay,
        )
        return self.arm(delay=delay, interval=interval)

    def release(self) -> list[TimerHandle]:
        """
        Cancel everything and hand over all timer handles for joining.

        Call under the runtime lock, then pass the result to join() after
        releasing it.
        """
        self.cancel()
        handles, self._retired = self._retired, []
        return handles

    @staticmethod
    def join(handles: list[TimerHandle], *, timeout: float | None = None) -> None:
        """
        Wait for released timer threads to finish.

        Call WITHOUT holding the runtime lock: an in-flight callback needs it
        to observe the new phase and return.
        """
        current = threading.current_thread()
        for handle in handles:
            if handle is current:
                continue
            handle.join(timeout)
            if handle.is_alive():
                log.warning("tick.shutdown_timeout", timeout_s=timeout)
