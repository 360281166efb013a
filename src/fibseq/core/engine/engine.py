from __future__ import annotations

import time
from typing import Iterable, Optional

import structlog

from fibseq.core.config.settings import AppSettings
from fibseq.core.engine.lifecycle import SequenceLifecycle
from fibseq.core.engine.state import RuntimeConfig, RuntimeSnapshot, RuntimeState
from fibseq.core.engine.tick_driver import Clock, RecurringTimer, TimerFactory
from fibseq.core.events.bus import EventBus, EventComponent

log = structlog.get_logger()


class Engine:
    """
    Owns one sequence runtime: its state, lifecycle and event wiring.

    Components attach via the EventBus; the lifecycle publishes
    BlockEmitted on every tick and PhaseChanged on every transition.
    """

    def __init__(
        self,
        *,
        bus: EventBus,
        config: Optional[RuntimeConfig] = None,
        components: Optional[Iterable[EventComponent]] = None,
        clock: Clock = time.monotonic,
        timer_factory: TimerFactory = RecurringTimer,
        shutdown_timeout: float = 2.0,
    ) -> None:
        self._bus = bus
        self._state = RuntimeState(config=config if config is not None else RuntimeConfig())
        self._lifecycle = SequenceLifecycle(
            bus=bus,
            state=self._state,
            clock=clock,
            timer_factory=timer_factory,
            shutdown_timeout=shutdown_timeout,
        )

        if components is not None:
            bus.attach(components)

    @classmethod
    def from_settings(
        cls,
        app_settings: AppSettings,
        *,
        bus: EventBus,
        components: Optional[Iterable[EventComponent]] = None,
    ) -> "Engine":
        engine = cls(
            bus=bus,
            config=app_settings.runtime_config(),
            components=components,
            shutdown_timeout=app_settings.shutdown_timeout_s,
        )
        log.info(
            "engine.created",
            period_ms=app_settings.default_period_ms,
            min_period_ms=app_settings.min_period_ms,
            batch_size=app_settings.batch_size,
        )
        return engine

    @property
    def bus(self) -> EventBus:
        return self._bus

    @property
    def state(self) -> RuntimeState:
        return self._state

    @property
    def lifecycle(self) -> SequenceLifecycle:
        return self._lifecycle

    def attach(self, components: Iterable[EventComponent]) -> None:
        self._bus.attach(components)

    def snapshot(self) -> RuntimeSnapshot:
        return self._lifecycle.snapshot()
