from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from fibseq.app.main import create_app
from fibseq.core.commands.handlers import CommandDispatcher
from fibseq.core.config.settings import AppSettings
from fibseq.core.engine.engine import Engine
from fibseq.core.engine.state import Phase, RuntimeConfig, SeedPair
from fibseq.core.events.bus import EventBus
from fibseq.display.recorder import BlockRecorder
from fibseq.sequence.generator import continuation_block
from fibseq.sequence.terms import format_term, parse_term

# default interpreter limit for int <-> str conversion
DIGIT_LIMIT = 4300

SEED = 10**4290


def test_run_keeps_ticking_past_digit_limit(engine: Engine, timers, recorder: BlockRecorder) -> None:
    engine.lifecycle.start(SeedPair(SEED, SEED))

    timers.tick(40)

    assert engine.state.phase is Phase.RUNNING
    assert engine.state.tick == 40
    assert len(timers.live) == 1
    assert len(recorder.recent()) == 40
    assert len(format_term(engine.state.current.b)) > DIGIT_LIMIT

    terms = recorder.terms()
    assert terms[:2] == [SEED, SEED]
    assert all(terms[i] + terms[i + 1] == terms[i + 2] for i in range(len(terms) - 2))


def test_pause_resume_and_ceiling_with_huge_terms(engine: Engine, timers, recorder: BlockRecorder) -> None:
    engine.lifecycle.start(SeedPair(SEED, SEED))
    timers.tick(30)

    status = engine.lifecycle.pause()
    assert status == "paused"
    message = engine.lifecycle.start()
    assert message.startswith("resumed after <")

    # next block would pass this bound partway through
    next_block = continuation_block(4, *engine.state.current.as_tuple())
    engine.lifecycle.set_ceiling(next_block[1])
    timers.tick()

    assert recorder.recent(1)[0].terms == tuple(next_block[:2])
    assert engine.state.phase is Phase.STOPPED


def test_dispatcher_accepts_seed_longer_than_digit_limit(dispatcher: CommandDispatcher, engine: Engine, timers) -> None:
    a = 3 * 10**4400
    b = 5 * 10**4400

    status = dispatcher.submit("start", f"{format_term(a)} {format_term(b)}")

    assert status.ok, status.message
    assert engine.state.start == SeedPair(a, b)

    timers.tick()
    # seed block is a, b, a+b, a+2b
    assert engine.state.current == SeedPair(a + b, a + 2 * b)


def test_dispatcher_rejects_huge_out_of_order_seed(dispatcher: CommandDispatcher, engine: Engine) -> None:
    big = format_term(10**4500)

    status = dispatcher.submit("start", f"{big} 1")

    assert not status.ok
    assert status.error == "InvalidSeed"
    assert len(status.message) < 200


def test_max_accepts_ceiling_longer_than_digit_limit(dispatcher: CommandDispatcher, engine: Engine) -> None:
    ceiling = 10**5000

    status = dispatcher.submit("max", format_term(ceiling))

    assert status.ok
    assert engine.state.config.ceiling == ceiling


@pytest.fixture
def big_client(clock, timers):
    engine = Engine(
        bus=EventBus(),
        config=RuntimeConfig(period_ms=1000, min_period_ms=100, batch_size=4),
        clock=clock,
        timer_factory=timers,
    )
    app = create_app(AppSettings(log_level="WARNING"), engine=engine)
    with TestClient(app) as c:
        yield c


def test_http_surface_serves_terms_past_digit_limit(big_client: TestClient, timers) -> None:
    seed = format_term(SEED)
    r = big_client.post("/api/commands", json={"verb": "start", "args": f"{seed} {seed}"})
    assert r.status_code == 200
    assert r.json()["ok"] is True

    timers.tick(40)

    state = big_client.get("/api/state")
    assert state.status_code == 200
    body = state.json()
    assert body["phase"] == "running"
    assert body["start"] == [seed, seed]
    assert len(body["current"][1]) > DIGIT_LIMIT

    blocks = big_client.get("/api/blocks", params={"limit": 1})
    assert blocks.status_code == 200
    last = blocks.json()["blocks"][0]["terms"][-1]
    assert last == body["current"][1]
    assert parse_term(last) > SEED
