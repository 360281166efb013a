from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Query, Request
from pydantic import BaseModel, Field

from fibseq.core.commands.handlers import CommandDispatcher
from fibseq.core.engine.engine import Engine
from fibseq.display.recorder import BlockRecorder
from fibseq.sequence.terms import format_term

router = APIRouter(tags=["runtime"])


# =========================
# Schemas
# =========================
# Terms are decimal strings: they outgrow 64-bit (and JS double) precision quickly,
# and str() itself past a few thousand digits, hence format_term.

class CommandRequest(BaseModel):
    verb: str = Field(..., min_length=1, description="Command verb, e.g. 'start'")
    args: str = Field(default="", description="Whitespace-separated arguments")


class CommandResponse(BaseModel):
    ok: bool
    verb: str
    message: str
    phase: str
    error: str | None = None


class StateResponse(BaseModel):
    phase: str
    prompt: str
    start: tuple[str, str]
    current: tuple[str, str]
    period_ms: int
    min_period_ms: int
    ceiling: str | None
    batch_size: int
    tick: int


class BlockResponse(BaseModel):
    tick: int
    sequence: int
    terms: list[str]
    truncated: bool
    emitted_at_utc: datetime


class BlocksResponse(BaseModel):
    blocks: list[BlockResponse]


def _engine(request: Request) -> Engine:
    return request.app.state.engine


def _dispatcher(request: Request) -> CommandDispatcher:
    return request.app.state.dispatcher


def _recorder(request: Request) -> BlockRecorder:
    return request.app.state.recorder


# =========================
# Routes
# =========================

@router.post("/commands", response_model=CommandResponse)
def submit_command(payload: CommandRequest, request: Request) -> CommandResponse:
    status = _dispatcher(request).submit(payload.verb, payload.args)
    return CommandResponse(
        ok=status.ok,
        verb=status.verb,
        message=status.message,
        phase=status.phase.value,
        error=status.error,
    )


@router.get("/state", response_model=StateResponse)
def get_state(request: Request) -> StateResponse:
    snap = _engine(request).snapshot()
    return StateResponse(
        phase=snap.phase.value,
        prompt=snap.prompt,
        start=(format_term(snap.start.a), format_term(snap.start.b)),
        current=(format_term(snap.current.a), format_term(snap.current.b)),
        period_ms=snap.period_ms,
        min_period_ms=snap.min_period_ms,
        ceiling=None if snap.ceiling is None else format_term(snap.ceiling),
        batch_size=snap.batch_size,
        tick=snap.tick,
    )


@router.get("/blocks", response_model=BlocksResponse)
def list_blocks(request: Request, limit: int = Query(default=10, ge=1, le=1000)) -> BlocksResponse:
    return BlocksResponse(
        blocks=[
            BlockResponse(
                tick=b.tick,
                sequence=b.sequence,
                terms=[format_term(t) for t in b.terms],
                truncated=b.truncated,
                emitted_at_utc=b.emitted_at_utc,
            )
            for b in _recorder(request).recent(limit)
        ]
    )
