from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum

from fibseq.core.errors import CommandSyntaxError, InvalidLength, InvalidSeed
from fibseq.sequence.generator import DEFAULT_SEED
from fibseq.sequence.terms import summarize_term


class Phase(str, Enum):
    """
    Runtime lifecycle phase. The only source of truth for which commands are legal.
    """

    STOPPED = "stopped"
    PAUSED = "paused"
    RUNNING = "running"
    EXITED = "exited"


_PROMPTS: dict[Phase, str] = {
    Phase.STOPPED: "[stopped]> ",
    Phase.PAUSED: "[paused]> ",
    Phase.RUNNING: "[running]> ",
    Phase.EXITED: "",
}

_ALWAYS = frozenset({"help", "max", "speed", "reset", "exit"})

_ALLOWED: dict[Phase, frozenset[str]] = {
    Phase.STOPPED: _ALWAYS | {"start", "stop"},
    Phase.PAUSED: _ALWAYS | {"start", "stop", "restart"},
    Phase.RUNNING: _ALWAYS | {"start", "pause", "stop", "restart"},
    Phase.EXITED: frozenset({"help", "max", "exit"}),
}


def phase_prompt(phase: Phase) -> str:
    return _PROMPTS[phase]


def allowed_verbs(phase: Phase) -> frozenset[str]:
    return _ALLOWED[phase]


@dataclass(frozen=True, slots=True)
class SeedPair:
    """
    The two terms immediately preceding the next generated value.

    Invariant: a >= 0 and b >= a (raises InvalidSeed otherwise).
    """

    a: int
    b: int

    def __post_init__(self) -> None:
        if self.a < 0 or self.b < self.a:
            raise InvalidSeed(
                f"terms must be non-negative and the second must not precede the first: "
                f"a={summarize_term(self.a)} b={summarize_term(self.b)}"
            )

    @classmethod
    def default(cls) -> "SeedPair":
        return cls(*DEFAULT_SEED)

    def as_tuple(self) -> tuple[int, int]:
        return self.a, self.b


@dataclass(slots=True)
class RuntimeConfig:
    """
    Mutable run configuration.

    - period_ms: tick interval, never below min_period_ms
    - ceiling: emitted terms never exceed this (None = unbounded)
    - batch_size: terms per tick; >= 2 so each block yields the next seed pair
    """

    period_ms: int = 1000
    min_period_ms: int = 200
    ceiling: int | None = None
    batch_size: int = 10

    def __post_init__(self) -> None:
        if self.min_period_ms <= 0:
            raise ValueError(f"min_period_ms must be > 0: {self.min_period_ms}")
        if self.batch_size < 2:
            raise InvalidLength(f"batch_size must be >= 2: {self.batch_size}")
        self.period_ms = self.clamp_period(self.period_ms)

    def clamp_period(self, period_ms: int) -> int:
        return max(int(period_ms), self.min_period_ms)

    @property
    def period_s(self) -> float:
        return self.period_ms / 1000.0

    def copy(self) -> "RuntimeConfig":
        return replace(self)


def period_from_seconds(seconds: float | None, *, floor_ms: int) -> int:
    """
    Convert a seconds value to an integer millisecond period.

    Anything below the floor is clamped up to it. No value means the floor,
    not the configured default.
    """
    if seconds is None:
        return floor_ms
    if not math.isfinite(seconds):
        raise CommandSyntaxError(f"speed must be a finite number of seconds: {seconds}")
    return max(int(seconds * 1000), floor_ms)


@dataclass(slots=True)
class RuntimeState:
    """
    Everything the lifecycle mutates, guarded by the lifecycle lock.

    - start: pair a fresh run or restart begins from
    - current: advances every tick
    - tick: blocks emitted in the current run
    - sequence: monotonic event ordering counter

    Guardrails:
      - next_tick only valid while running
      - next_sequence invalid once exited
    """

    config: RuntimeConfig = field(default_factory=RuntimeConfig)
    phase: Phase = Phase.STOPPED
    start: SeedPair = field(default_factory=SeedPair.default)
    current: SeedPair = field(default_factory=SeedPair.default)
    tick: int = 0
    sequence: int = 0
    defaults: RuntimeConfig | None = None

    def __post_init__(self) -> None:
        if self.defaults is None:
            self.defaults = self.config.copy()

    def next_tick(self) -> int:
        if self.phase is not Phase.RUNNING:
            raise RuntimeError("cannot advance tick when runtime is not running")
        self.tick += 1
        return self.tick

    def next_sequence(self) -> int:
        if self.phase is Phase.EXITED:
            raise RuntimeError("cannot advance sequence after exit")
        self.sequence += 1
        return self.sequence

    def restore_defaults(self) -> None:
        if self.defaults is None:
            raise RuntimeError("no default configuration recorded")
        self.config = self.defaults.copy()
        self.start = SeedPair.default()
        self.current = SeedPair.default()
        self.tick = 0

    def snapshot(self) -> "RuntimeSnapshot":
        return RuntimeSnapshot(
            phase=self.phase,
            start=self.start,
            current=self.current,
            period_ms=self.config.period_ms,
            min_period_ms=self.config.min_period_ms,
            ceiling=self.config.ceiling,
            batch_size=self.config.batch_size,
            tick=self.tick,
        )


@dataclass(frozen=True, slots=True)
class RuntimeSnapshot:
    """
    Immutable copy of RuntimeState for readers outside the lock.
    """

    phase: Phase
    start: SeedPair
    current: SeedPair
    period_ms: int
    min_period_ms: int
    ceiling: int | None
    batch_size: int
    tick: int

    @property
    def prompt(self) -> str:
        return phase_prompt(self.phase)
