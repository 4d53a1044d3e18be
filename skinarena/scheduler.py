import logging
import time
from datetime import datetime, timedelta
from typing import Awaitable, Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler

Callback = Callable[..., Awaitable[None]]


class Scheduler:
    """Timed callbacks for the round clock and the battles.

    Wraps an APScheduler ``AsyncIOScheduler``. The services only use ``after``,
    ``every`` and ``now``, so tests can swap in a virtual clock.
    """

    def __init__(self, scheduler: AsyncIOScheduler | None = None):
        self.scheduler: AsyncIOScheduler = scheduler or AsyncIOScheduler()

    def now(self) -> float:
        return time.monotonic()

    def after(self, delay: float, callback: Callback, *args) -> None:
        """Run ``callback(*args)`` once, ``delay`` seconds from now

        Args:
            delay (float): seconds to wait
            callback (Callback): coroutine function
        """
        self.scheduler.add_job(
            callback,
            "date",
            run_date=datetime.now(self.scheduler.timezone) + timedelta(seconds=delay),
            args=args,
            misfire_grace_time=None,
        )

    def every(self, interval: float, callback: Callback, *args) -> None:
        """Run ``callback(*args)`` every ``interval`` seconds

        Args:
            interval (float): seconds between two runs
            callback (Callback): coroutine function
        """
        self.scheduler.add_job(
            callback,
            "interval",
            seconds=interval,
            args=args,
            coalesce=True,
            max_instances=1,
            misfire_grace_time=None,
        )

    def start(self) -> None:
        self.scheduler.start()
        logging.info("Scheduler started")

    def shutdown(self) -> None:
        self.scheduler.shutdown(wait=False)
        logging.info("Scheduler stopped")
