from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import structlog

from fibseq.core.engine.lifecycle import SequenceLifecycle
from fibseq.core.engine.state import Phase, SeedPair, allowed_verbs, period_from_seconds, phase_prompt
from fibseq.core.errors import CommandError, CommandSyntaxError
from fibseq.sequence.terms import parse_term, summarize_term, summarize_text

log = structlog.get_logger()

HELP: dict[str, str] = {
    "help": "help                 show this message",
    "max": "max [integer]        cap emitted terms; no value or 0 removes the cap",
    "pause": "pause                pause the running sequence",
    "reset": "reset                stop and restore default seed, speed and maximum",
    "restart": "restart              start over from the last starting terms",
    "speed": "speed [seconds]      seconds between blocks; no value means fastest",
    "start": "start [term1 term2]  start, resume, or restart from two terms",
    "stop": "stop                 stop the sequence",
    "exit": "exit                 stop and quit",
}


@dataclass(frozen=True, slots=True)
class StatusMessage:
    """
    Result of one submitted command.

    `error` is the rejection kind (InvalidSeed, CommandSyntaxError, ...) or None.
    `phase` is the phase after the command.
    """

    ok: bool
    verb: str
    message: str
    phase: Phase
    error: str | None = None


class CommandDispatcher:
    """
    Maps command verbs onto lifecycle transitions.

    Parses and validates arguments, invokes exactly one transition, and turns
    every CommandError into a rejected StatusMessage. Holds no state of its own.
    """

    def __init__(self, *, lifecycle: SequenceLifecycle) -> None:
        self._lifecycle = lifecycle
        self._handlers: dict[str, Callable[[list[str]], str]] = {
            "help": self._help,
            "max": self._max,
            "pause": self._no_args(lifecycle.pause),
            "reset": self._no_args(lifecycle.reset),
            "restart": self._no_args(lifecycle.restart),
            "speed": self._speed,
            "start": self._start,
            "stop": self._no_args(lifecycle.stop),
            "exit": self._no_args(lifecycle.exit),
        }

    @property
    def verbs(self) -> tuple[str, ...]:
        return tuple(self._handlers)

    def submit(self, verb: str, args: str = "") -> StatusMessage:
        verb = verb.strip().lower()
        argv = args.split()

        try:
            handler = self._handlers.get(verb)
            if handler is None:
                raise CommandSyntaxError(f"unknown command: {verb!r} (try 'help')")
            message = handler(argv)
        except CommandError as exc:
            phase = self._lifecycle.snapshot().phase
            log.info("command.rejected", verb=verb, error=type(exc).__name__, reason=str(exc), phase=phase.value)
            return StatusMessage(ok=False, verb=verb, message=str(exc), phase=phase, error=type(exc).__name__)

        phase = self._lifecycle.snapshot().phase
        log.info("command.accepted", verb=verb, phase=phase.value)
        return StatusMessage(ok=True, verb=verb, message=message, phase=phase)

    def submit_line(self, line: str) -> StatusMessage:
        verb, _, rest = line.strip().partition(" ")
        return self.submit(verb, rest)

    # ---------------- Handlers ----------------

    def _help(self, argv: list[str]) -> str:
        _expect_count("help", argv, 0)
        phase = self._lifecycle.snapshot().phase
        allowed = allowed_verbs(phase)
        lines = [HELP[v] for v in self._handlers]
        lines.append(f"{phase_prompt(phase)}available now: {', '.join(v for v in self._handlers if v in allowed)}")
        return "\n".join(lines)

    def _start(self, argv: list[str]) -> str:
        if not argv:
            return self._lifecycle.start()
        if len(argv) != 2:
            raise CommandSyntaxError(f"start takes zero or two terms, got {len(argv)}")
        a = _parse_int("term1", argv[0])
        b = _parse_int("term2", argv[1])
        return self._lifecycle.start(SeedPair(a, b))

    def _speed(self, argv: list[str]) -> str:
        _expect_count("speed", argv, 0, 1)
        seconds = _parse_float("speed", argv[0]) if argv else None
        floor_ms = self._lifecycle.snapshot().min_period_ms
        return self._lifecycle.set_period(period_from_seconds(seconds, floor_ms=floor_ms))

    def _max(self, argv: list[str]) -> str:
        _expect_count("max", argv, 0, 1)
        if not argv:
            return self._lifecycle.set_ceiling(None)
        ceiling = _parse_int("max", argv[0])
        if ceiling < 0:
            raise CommandSyntaxError(f"max must be non-negative: {summarize_term(ceiling)}")
        return self._lifecycle.set_ceiling(ceiling or None)

    @staticmethod
    def _no_args(transition: Callable[[], str]) -> Callable[[list[str]], str]:
        def handler(argv: list[str]) -> str:
            _expect_count(transition.__name__, argv, 0)
            return transition()

        return handler


def _expect_count(verb: str, argv: list[str], *counts: int) -> None:
    if len(argv) not in counts:
        expected = " or ".join(str(c) for c in counts)
        raise CommandSyntaxError(f"{verb} takes {expected} argument(s), got {len(argv)}")


def _parse_int(name: str, raw: str) -> int:
    try:
        return parse_term(raw)
    except ValueError:
        raise CommandSyntaxError(f"{name} must be an integer: {summarize_text(raw)!r}") from None


def _parse_float(name: str, raw: str) -> float:
    try:
        return float(raw)
    except ValueError:
        raise CommandSyntaxError(f"{name} must be a number of seconds: {summarize_text(raw)!r}") from None
