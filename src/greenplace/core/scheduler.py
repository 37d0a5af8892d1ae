import asyncio
import logging
import re
from typing import Callable, Coroutine, List

logger = logging.getLogger(__name__)

_DURATION_RE = re.compile(r"^(\d+)([smh])$")
_MULTIPLIERS = {"s": 1, "m": 60, "h": 3600}


def parse_duration(interval_str: str) -> int:
    """
    Converts a Prometheus-style duration string like '30s', '5m' or '1h'
    into seconds.
    """
    match = _DURATION_RE.match(interval_str.strip().lower())
    if not match:
        raise ValueError(f"Invalid interval format: '{interval_str}'. Use 's', 'm', or 'h'.")
    value, unit = int(match.group(1)), match.group(2)
    seconds = value * _MULTIPLIERS[unit]
    if seconds <= 0:
        raise ValueError(f"Interval must be positive: '{interval_str}'.")
    return seconds


class Scheduler:
    """
    Manages the scheduling and execution of periodic async jobs using asyncio.
    A failing run is logged and the job keeps its schedule.
    """

    def __init__(self):
        self.tasks: List[asyncio.Task] = []
        logger.info("AsyncScheduler initialized.")

    async def _run_periodically(self, interval_seconds: float, job_func: Callable[[], Coroutine]):
        """Internal loop to run a job periodically."""
        try:
            while True:
                try:
                    await job_func()
                except Exception as e:
                    logger.error(f"Error in scheduled job '{job_func.__name__}': {e}", exc_info=True)

                await asyncio.sleep(interval_seconds)
        except asyncio.CancelledError:
            logger.info(f"Job '{job_func.__name__}' cancelled.")
            raise

    def add_job(self, job_func: Callable[[], Coroutine], interval_seconds: float):
        """Adds a new async job that runs now and then every `interval_seconds`."""
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        task = asyncio.create_task(self._run_periodically(interval_seconds, job_func))
        self.tasks.append(task)
        logger.info(f"Scheduled job '{job_func.__name__}' to run every {interval_seconds}s.")

    def add_job_from_string(self, job_func: Callable[[], Coroutine], interval_str: str):
        """
        Adds a job based on a Prometheus-style duration string like '5m' or '1h'.
        """
        self.add_job(job_func, parse_duration(interval_str))

    async def stop(self):
        """Cancels all scheduled tasks."""
        logger.info("Stopping scheduler...")
        for task in self.tasks:
            task.cancel()
        if self.tasks:
            await asyncio.gather(*self.tasks, return_exceptions=True)
        self.tasks.clear()
