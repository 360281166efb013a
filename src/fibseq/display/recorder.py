from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import datetime
from threading import Lock
from typing import Sequence

import structlog

from fibseq.core.events.base import Event
from fibseq.core.events.bus import EventHandler
from fibseq.core.events.system import BlockEmitted, PhaseChanged
from fibseq.sequence.terms import summarize_term

log = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class RecordedBlock:
    tick: int
    sequence: int
    terms: tuple[int, ...]
    truncated: bool
    emitted_at_utc: datetime


class BlockRecorder:
    """
    Display-side subscriber: logs and keeps the most recent emitted blocks.

    Thread-safe; handlers run on the tick thread, readers on request threads.
    """

    def __init__(self, *, maxlen: int = 50) -> None:
        self._lock = Lock()
        self._blocks: deque[RecordedBlock] = deque(maxlen=maxlen)

    def subscriptions(self) -> Sequence[tuple[str, EventHandler]]:
        return [
            (BlockEmitted.event_type, self._on_block),
            (PhaseChanged.event_type, self._on_phase),
        ]

    def recent(self, limit: int | None = None) -> list[RecordedBlock]:
        with self._lock:
            items = list(self._blocks)
        if limit is not None:
            items = items[-limit:] if limit > 0 else []
        return items

    def terms(self) -> list[int]:
        """
        All recorded terms in emission order.
        """
        return [t for block in self.recent() for t in block.terms]

    def _on_block(self, e: Event) -> None:
        if not isinstance(e, BlockEmitted):
            return
        rec = RecordedBlock(
            tick=e.tick,
            sequence=e.sequence,
            terms=e.terms,
            truncated=e.truncated,
            emitted_at_utc=e.timestamp_utc,
        )
        with self._lock:
            self._blocks.append(rec)

        log.info(
            "sequence.block",
            tick=e.tick,
            count=len(e.terms),
            first=summarize_term(e.terms[0]),
            last=summarize_term(e.terms[-1]),
            truncated=e.truncated,
        )

    def _on_phase(self, e: Event) -> None:
        if isinstance(e, PhaseChanged):
            log.info("runtime.phase", previous=e.previous, phase=e.phase, reason=e.reason)
