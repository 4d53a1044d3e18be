import logging
from contextlib import asynccontextmanager

import numpy as np
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from redis.asyncio import Redis

from skinarena.context import build_context
from skinarena.db import create_engine, create_session_factory, create_tables
from skinarena.domain.errors import CasinoError
from skinarena.load_secrets import redis_channel, redis_host, redis_port
from skinarena.manager import ConnectionManager
from skinarena.routers import battles, cases, events, roulette
from skinarena.scheduler import Scheduler
from skinarena.services.casino_db import CasinoStore

COOLDOWN_PURGE_INTERVAL = 60

logging.basicConfig(level=logging.INFO)


@asynccontextmanager
async def lifespan(app):
    """Build the services, create the tables and start the round clock.
    This function is called to start the server.
    """
    engine = create_engine()
    await create_tables(engine)

    redis = None
    if redis_host:
        redis = Redis(host=redis_host, port=redis_port, decode_responses=True, health_check_interval=30)
    context = build_context(
        store=CasinoStore(create_session_factory(engine)),
        gateway=ConnectionManager(redis, redis_channel),
        scheduler=Scheduler(),
        rng=np.random.default_rng(),
        redis=redis,
    )
    app.state.context = context

    context.round_clock.start()
    context.scheduler.every(COOLDOWN_PURGE_INTERVAL, context.battles.purge_cooldowns)
    context.scheduler.start()
    logging.info("Start Server")
    try:
        yield
    finally:
        context.scheduler.shutdown()
        if redis is not None:
            await redis.aclose()
        await engine.dispose()
        logging.info("Stop Server")


app = FastAPI(lifespan=lifespan)


@app.exception_handler(CasinoError)
async def casino_error_handler(request: Request, exc: CasinoError):
    logging.info(f"{request.method} {request.url.path} rejected: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": exc.message})


app.include_router(events.event_router)
app.include_router(roulette.roulette_router)
app.include_router(cases.case_router)
app.include_router(battles.battle_router)
