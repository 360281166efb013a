from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from fastapi import FastAPI

from fibseq import __version__
from fibseq.api import router as api_router
from fibseq.core.commands.handlers import CommandDispatcher
from fibseq.core.config.settings import AppSettings, settings
from fibseq.core.engine.engine import Engine
from fibseq.core.events.bus import EventBus
from fibseq.core.logging.setup import configure_logging
from fibseq.display.recorder import BlockRecorder

log = structlog.get_logger()


def create_app(app_settings: AppSettings | None = None, *, engine: Engine | None = None) -> FastAPI:
    """
    Application factory.

    Builds one Engine per app (unless one is passed in), wires the display
    recorder onto its bus and exposes the command surface under /api.
    """
    app_settings = app_settings if app_settings is not None else settings

    # Initialize structured logging
    configure_logging(level=app_settings.log_level, json=app_settings.log_json)

    recorder = BlockRecorder(maxlen=app_settings.recent_blocks)
    if engine is None:
        engine = Engine.from_settings(app_settings, bus=EventBus(), components=[recorder])
    else:
        engine.attach([recorder])

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        log.info("app.startup", environment=app_settings.env)
        yield
        engine.lifecycle.exit()
        log.info("app.shutdown")

    app = FastAPI(
        title="fibseq",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.engine = engine
    app.state.recorder = recorder
    app.state.dispatcher = CommandDispatcher(lifecycle=engine.lifecycle)

    # Mount API
    app.include_router(api_router, prefix="/api")

    return app


# ASGI entrypoint
app = create_app()
