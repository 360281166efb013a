from __future__ import annotations

import time
from threading import Lock

import structlog

from fibseq.core.engine.state import Phase, RuntimeSnapshot, RuntimeState, SeedPair
from fibseq.core.engine.tick_driver import Clock, RecurringTimer, TickScheduler, TimerFactory
from fibseq.core.errors import IllegalTransition
from fibseq.core.events.bus import EventBus
from fibseq.core.events.system import BlockEmitted, PhaseChanged, TickRescheduled
from fibseq.core.logging.setup import bind_context
from fibseq.sequence.generator import continuation_block, next_pair, seed_block
from fibseq.sequence.terms import summarize_term

log = structlog.get_logger()


class SequenceLifecycle:
    """
    Run/pause/stop state machine for the sequence runtime.

    One lock guards RuntimeState and the TickScheduler; every transition,
    every tick and every reschedule runs under it. Each method validates and
    computes everything it needs before mutating, so a rejected command
    (IllegalTransition, InvalidSeed, InvalidLength) leaves state untouched.

    Transitions:
      stopped --start--> running <--pause/start--> paused
      running/paused --restart--> running
      any --stop/reset--> stopped
      any --exit--> exited (terminal)
    """

    def __init__(
        self,
        *,
        bus: EventBus,
        state: RuntimeState,
        clock: Clock = time.monotonic,
        timer_factory: TimerFactory = RecurringTimer,
        shutdown_timeout: float = 2.0,
    ) -> None:
        self._bus = bus
        self._state = state
        self._lock = Lock()
        self._scheduler = TickScheduler(on_fire=self._on_tick, clock=clock, timer_factory=timer_factory)
        self._shutdown_timeout = shutdown_timeout

        # block computed by start/restart, emitted by the first tick of the run;
        # survives a pause that lands before that tick
        self._prepared: list[int] | None = None

    @property
    def state(self) -> RuntimeState:
        return self._state

    @property
    def scheduler(self) -> TickScheduler:
        return self._scheduler

    def snapshot(self) -> RuntimeSnapshot:
        with self._lock:
            return self._state.snapshot()

    # ---------------- Transitions ----------------

    def start(self, seed: SeedPair | None = None) -> str:
        with self._lock:
            phase = self._state.phase
            batch = self._state.config.batch_size
            self._require_not_exited("start")

            if phase is Phase.RUNNING:
                if seed is None:
                    raise IllegalTransition("already running")
                block = seed_block(batch, *seed.as_tuple())
                self._begin_run(start=seed, block=block, reason="start_restart")
                log.info("runtime.restarted", a=summarize_term(seed.a), b=summarize_term(seed.b))
                return f"restarted from {_describe(seed)}"

            if phase is Phase.PAUSED:
                if seed is None and self._prepared is not None:
                    # paused before the first tick: the seed block is still owed
                    start, block = self._state.start, self._prepared
                else:
                    start = seed if seed is not None else self._state.current
                    block = continuation_block(batch, *start.as_tuple())
                self._begin_run(start=start, block=block, reason="resume")
                log.info("runtime.resumed", a=summarize_term(start.a), b=summarize_term(start.b))
                return f"resumed after {_describe(start)}"

            start = seed if seed is not None else SeedPair.default()
            block = seed_block(batch, *start.as_tuple())
            self._begin_run(start=start, block=block, reason="start")
            log.info("runtime.started", a=summarize_term(start.a), b=summarize_term(start.b))
            return f"started from {_describe(start)}"

    def pause(self) -> str:
        with self._lock:
            self._require_not_exited("pause")
            if self._state.phase is not Phase.RUNNING:
                raise IllegalTransition(f"cannot pause while {self._state.phase.value}")

            self._scheduler.cancel()
            self._transition(Phase.PAUSED, reason="pause")

            current = self._state.current
            log.info("runtime.paused", a=summarize_term(current.a), b=summarize_term(current.b), tick=self._state.tick)
            return "paused"

    def stop(self) -> str:
        with self._lock:
            self._require_not_exited("stop")
            if self._state.phase is Phase.STOPPED:
                return "already stopped"

            self._halt(reason="stop")
            log.info("runtime.stopped")
            return "stopped"

    def restart(self) -> str:
        with self._lock:
            self._require_not_exited("restart")
            if self._state.phase is Phase.STOPPED:
                raise IllegalTransition("no active sequence")

            start = self._state.start
            block = seed_block(self._state.config.batch_size, *start.as_tuple())
            self._begin_run(start=start, block=block, reason="restart")

            log.info("runtime.restarted", a=summarize_term(start.a), b=summarize_term(start.b))
            return f"restarted from {_describe(start)}"

    def reset(self) -> str:
        with self._lock:
            self._require_not_exited("reset")

            self._scheduler.cancel()
            self._prepared = None
            self._state.restore_defaults()
            self._transition(Phase.STOPPED, reason="reset")

            log.info("runtime.reset")
            return "reset to defaults"

    def set_period(self, period_ms: int) -> str:
        with self._lock:
            self._require_not_exited("speed")
            config = self._state.config
            config.period_ms = config.clamp_period(period_ms)

            if self._state.phase is Phase.RUNNING:
                pending = self._scheduler.reschedule(interval=config.period_s)
                self._bus.publish(
                    TickRescheduled.create(
                        delay_ms=int(pending.delay * 1000),
                        interval_ms=config.period_ms,
                        sequence=self._state.next_sequence(),
                    )
                )

            log.info("runtime.period_set", period_ms=config.period_ms)
            return f"period set to {config.period_ms / 1000:g}s"

    def set_ceiling(self, ceiling: int | None) -> str:
        with self._lock:
            self._state.config.ceiling = ceiling

            log.info("runtime.ceiling_set", ceiling=None if ceiling is None else summarize_term(ceiling))
            if ceiling is None:
                return "maximum cleared"
            return f"maximum set to {summarize_term(ceiling)}"

    def exit(self) -> str:
        with self._lock:
            if self._state.phase is Phase.EXITED:
                return "already exited"

            handles = self._scheduler.release()
            self._prepared = None
            # allocate the sequence while still alive
            self._transition(Phase.EXITED, reason="exit")

        # join outside the lock so an in-flight tick can observe EXITED and return
        TickScheduler.join(handles, timeout=self._shutdown_timeout)
        log.info("runtime.exited")
        return "bye"

    # ---------------- Tick ----------------

    def _on_tick(self, token: int) -> None:
        with self._lock:
            if self._state.phase is not Phase.RUNNING or not self._scheduler.claim(token):
                log.debug("tick.stale", token=token, phase=self._state.phase.value)
                return

            try:
                self._emit_next_block()
            except Exception:
                # a pending tick exists only while running
                log.exception("tick.failed", tick=self._state.tick)
                if self._state.phase is Phase.RUNNING:
                    self._halt(reason="error")
                raise

    def _emit_next_block(self) -> None:
        config = self._state.config
        if self._prepared is not None:
            block, self._prepared = self._prepared, None
        else:
            block = continuation_block(config.batch_size, *self._state.current.as_tuple())
        self._state.current = SeedPair(*next_pair(block))

        terms, truncated = _truncate(block, config.ceiling)
        tick = self._state.next_tick()

        if terms:
            self._bus.publish(
                BlockEmitted.create(
                    tick=tick,
                    terms=tuple(terms),
                    truncated=truncated,
                    sequence=self._state.next_sequence(),
                )
            )
        log.debug(
            "tick.emitted",
            tick=tick,
            count=len(terms),
            last=summarize_term(terms[-1]) if terms else None,
        )

        if truncated:
            self._halt(reason="ceiling")
            log.info("runtime.ceiling_reached", ceiling=summarize_term(config.ceiling))

    # ---------------- Internals (lock held) ----------------

    def _require_not_exited(self, verb: str) -> None:
        if self._state.phase is Phase.EXITED:
            raise IllegalTransition(f"cannot {verb} after exit")

    def _begin_run(self, *, start: SeedPair, block: list[int], reason: str) -> None:
        self._state.start = start
        self._state.current = start
        self._state.tick = 0
        self._prepared = block

        bind_context(component="lifecycle")
        self._transition(Phase.RUNNING, reason=reason)
        self._scheduler.arm(delay=0.0, interval=self._state.config.period_s)

    def _halt(self, *, reason: str) -> None:
        self._scheduler.cancel()
        self._prepared = None
        self._state.current = self._state.start
        self._transition(Phase.STOPPED, reason=reason)

    def _transition(self, phase: Phase, *, reason: str) -> None:
        previous = self._state.phase
        seq = self._state.next_sequence()
        self._state.phase = phase
        self._bus.publish(
            PhaseChanged.create(
                previous=previous.value,
                phase=phase.value,
                reason=reason,
                sequence=seq,
            )
        )


def _describe(pair: SeedPair) -> str:
    return f"{summarize_term(pair.a)}, {summarize_term(pair.b)}"


def _truncate(block: list[int], ceiling: int | None) -> tuple[list[int], bool]:
    """
    Cut the block before the first term above the ceiling.

    Returns (terms to emit, whether anything was dropped).
    """
    if ceiling is None:
        return block, False
    for i, term in enumerate(block):
        if term > ceiling:
            return block[:i], True
    return block, False
