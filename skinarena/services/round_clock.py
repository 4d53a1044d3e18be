import logging

import numpy as np

from skinarena.domain.roulette_rules import (
    LAST_NUMBERS_LIMIT,
    PROCESSING_PAUSE,
    SPIN_INTERVAL,
    SPINNING_TIME,
    TICK,
    get_color,
    spin_number,
)
from skinarena.manager import ConnectionManager
from skinarena.scheduler import Scheduler
from skinarena.services.roulette import RouletteService
from skinarena.services.round_state import RoundState


class RoundClock:
    """Drives the roulette round: countdown, spin, settlement, reset.

    ``tick`` runs every second. When the countdown is over it spins, then the
    scheduler calls ``finish_spin`` after the spin time and ``finish_processing``
    after the post-settlement pause.
    """

    def __init__(
        self,
        state: RoundState,
        roulette: RouletteService,
        gateway: ConnectionManager,
        scheduler: Scheduler,
        rng: np.random.Generator,
    ):
        self.state = state
        self.roulette = roulette
        self.gateway = gateway
        self.scheduler = scheduler
        self.rng = rng

    def start(self) -> None:
        self.scheduler.every(TICK, self.tick)

    async def tick(self) -> None:
        if self.state.processing or self.state.spinning:
            return

        if self.state.remaining > 0:
            self.state.remaining -= TICK
            await self.gateway.broadcast_all(
                {
                    "timeRemaining": self.state.remaining,
                    "spinning": self.state.spinning,
                    "processing": self.state.processing,
                }
            )
            return

        await self.spin()

    async def spin(self) -> None:
        # wait for wagers in flight, none are accepted once spinning is set
        async with self.roulette.bet_book.lock:
            number = spin_number(self.rng)
            self.state.current_number = number
            self.state.last_numbers.insert(0, number)
            del self.state.last_numbers[LAST_NUMBERS_LIMIT:]
            self.state.spinning = True
        logging.info(f"Roulette number: {number} ({get_color(number).value})")

        self.scheduler.after(SPINNING_TIME, self.finish_spin)
        await self.gateway.broadcast_all({"number": number, "spinning": True})

    async def finish_spin(self) -> None:
        self.state.spinning = False
        self.state.processing = True
        try:
            await self.gateway.broadcast_all({"spinning": False, "processing": True})
            await self.roulette.settle(get_color(self.state.current_number))
        finally:
            self.scheduler.after(PROCESSING_PAUSE, self.finish_processing)

    async def finish_processing(self) -> None:
        self.state.processing = False
        self.state.remaining = SPIN_INTERVAL
        logging.debug("Round reset")
        await self.gateway.broadcast_all(
            {
                "timeRemaining": self.state.remaining,
                "lastNumbers": list(self.state.last_numbers),
                "processing": False,
                "bets": [],
            }
        )
