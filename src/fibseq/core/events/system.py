from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from fibseq.core.events.base import Event


@dataclass(frozen=True, slots=True)
class PhaseChanged(Event):
    """
    Emitted on every lifecycle transition that changes the phase
    (or re-enters running on a restart).
    """

    event_type: ClassVar[str] = "runtime.phase_changed"

    previous: str
    phase: str
    reason: str


@dataclass(frozen=True, slots=True)
class BlockEmitted(Event):
    """
    One tick's output. The single emission hook of the runtime.

    `truncated` is set when the ceiling cut the block short; the run stops
    right after this event.
    """

    event_type: ClassVar[str] = "sequence.block_emitted"

    tick: int
    terms: tuple[int, ...]
    truncated: bool = False


@dataclass(frozen=True, slots=True)
class TickRescheduled(Event):
    """
    The pending tick was re-armed in place after a period change.
    """

    event_type: ClassVar[str] = "runtime.tick_rescheduled"

    delay_ms: int
    interval_ms: int
