from __future__ import annotations

from typing import Callable

import pytest

from fibseq.core.commands.handlers import CommandDispatcher
from fibseq.core.engine.engine import Engine
from fibseq.core.engine.state import RuntimeConfig
from fibseq.core.events.bus import EventBus
from fibseq.display.recorder import BlockRecorder


class FakeClock:
    """
    Monotonic clock the test advances by hand.
    """

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ManualTimer:
    """
    Timer that only fires when the test calls fire().
    """

    def __init__(self, delay: float, interval: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.interval = interval
        self._callback = callback
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def join(self, timeout: float | None = None) -> None:
        return None

    def is_alive(self) -> bool:
        return False

    def fire(self, *, force: bool = False) -> None:
        # force=True simulates a callback already in flight when cancel happened
        if self.cancelled and not force:
            return
        self._callback()


class ManualTimerFactory:
    def __init__(self) -> None:
        self.timers: list[ManualTimer] = []

    def __call__(self, delay: float, interval: float, callback: Callable[[], None]) -> ManualTimer:
        t = ManualTimer(delay, interval, callback)
        self.timers.append(t)
        return t

    @property
    def last(self) -> ManualTimer:
        return self.timers[-1]

    @property
    def live(self) -> list[ManualTimer]:
        return [t for t in self.timers if not t.cancelled]

    def tick(self, n: int = 1) -> None:
        """
        Fire the live timer n times.
        """
        for _ in range(n):
            live = self.live
            assert len(live) == 1, f"expected exactly one live timer, found {len(live)}"
            live[0].fire()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def timers() -> ManualTimerFactory:
    return ManualTimerFactory()


@pytest.fixture
def config() -> RuntimeConfig:
    return RuntimeConfig(period_ms=1000, min_period_ms=100, batch_size=4)


@pytest.fixture
def recorder() -> BlockRecorder:
    return BlockRecorder(maxlen=100)


@pytest.fixture
def engine(config: RuntimeConfig, recorder: BlockRecorder, clock: FakeClock, timers: ManualTimerFactory) -> Engine:
    return Engine(
        bus=EventBus(),
        config=config,
        components=[recorder],
        clock=clock,
        timer_factory=timers,
    )


@pytest.fixture
def dispatcher(engine: Engine) -> CommandDispatcher:
    return CommandDispatcher(lifecycle=engine.lifecycle)
