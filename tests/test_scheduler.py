from datetime import datetime, timedelta, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from skinarena.scheduler import Scheduler


async def noop():
    pass


def test_one_shot_job_runs_after_the_delay_in_the_scheduler_timezone():
    # far from UTC, so a naive local run date would land hours off
    scheduler = Scheduler(AsyncIOScheduler(timezone="Pacific/Kiritimati"))

    scheduler.after(5, noop)

    run_date = scheduler.scheduler.get_jobs()[0].trigger.run_date
    delay = run_date - datetime.now(timezone.utc)
    assert timedelta(seconds=3) < delay <= timedelta(seconds=5)


def test_interval_job_is_coalesced():
    scheduler = Scheduler(AsyncIOScheduler(timezone="UTC"))

    scheduler.every(1, noop)

    job = scheduler.scheduler.get_jobs()[0]
    assert job.coalesce
    assert job.max_instances == 1
    assert job.trigger.interval == timedelta(seconds=1)
