from dataclasses import dataclass
from typing import Optional

import numpy as np
from fastapi import Request
from redis.asyncio import Redis

from skinarena.manager import ConnectionManager
from skinarena.scheduler import Scheduler
from skinarena.services.battles import BattleRegistry, BattleService
from skinarena.services.bet_book import BetBook
from skinarena.services.cases import CaseService
from skinarena.services.casino_db import CasinoStore
from skinarena.services.roulette import RouletteService
from skinarena.services.round_clock import RoundClock
from skinarena.services.round_state import RoundState


@dataclass
class AppContext:
    """Every long-lived object of one server process, built once in the lifespan."""

    store: CasinoStore
    gateway: ConnectionManager
    scheduler: Scheduler
    rng: np.random.Generator
    state: RoundState
    bet_book: BetBook
    registry: BattleRegistry
    roulette: RouletteService
    round_clock: RoundClock
    cases: CaseService
    battles: BattleService
    redis: Optional[Redis] = None


def build_context(
    store: CasinoStore,
    gateway: ConnectionManager,
    scheduler: Scheduler,
    rng: np.random.Generator,
    redis: Optional[Redis] = None,
) -> AppContext:
    """Wire the services around one store, gateway, scheduler and rng

    Args:
        store (CasinoStore): Persistence
        gateway (ConnectionManager): Push channel
        scheduler (Scheduler): Timed callbacks
        rng (np.random.Generator): Source of every random draw

    Returns:
        AppContext: The wired services
    """
    state = RoundState()
    bet_book = BetBook()
    registry = BattleRegistry()
    roulette = RouletteService(store, gateway, bet_book, state)
    return AppContext(
        store=store,
        gateway=gateway,
        scheduler=scheduler,
        rng=rng,
        state=state,
        bet_book=bet_book,
        registry=registry,
        roulette=roulette,
        round_clock=RoundClock(state, roulette, gateway, scheduler, rng),
        cases=CaseService(store, gateway, rng),
        battles=BattleService(store, gateway, scheduler, rng, registry),
        redis=redis,
    )


def get_context(request: Request) -> AppContext:
    return request.app.state.context
