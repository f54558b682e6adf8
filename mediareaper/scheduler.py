from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from datetime import datetime, timezone
from typing import Optional
import logging

from mediareaper.services.prober import HealthProber

logger = logging.getLogger(__name__)

JOB_ID = "connection_health_check"


async def run_health_checks(prober: HealthProber) -> dict[str, int]:
    """Run one health-check pass over all enabled connections."""
    summary = await prober.check_enabled()
    logger.info(
        f"Health check finished: {summary['checked']} checked, "
        f"{summary['healthy']} healthy, {summary['unhealthy']} unhealthy"
    )
    return summary


class HealthCheckScheduler:
    """Periodically probes enabled connections. Must be started inside a running event loop."""

    def __init__(self, prober: HealthProber, interval_minutes: int):
        self.prober = prober
        self.interval_minutes = interval_minutes
        self.scheduler = AsyncIOScheduler(timezone=timezone.utc)

    def start(self):
        """Start the scheduler; the first pass runs immediately."""
        if self.interval_minutes <= 0:
            logger.info("Periodic health checks disabled")
            return

        self.scheduler.add_job(
            run_health_checks,
            IntervalTrigger(minutes=self.interval_minutes),
            args=[self.prober],
            id=JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            next_run_time=datetime.now(timezone.utc),
        )
        if not self.scheduler.running:
            self.scheduler.start()
        logger.info(f"Scheduled health checks every {self.interval_minutes} minute(s)")

    def stop(self):
        """Stop the scheduler."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")

    def get_next_run_time(self) -> Optional[datetime]:
        """Get the next scheduled run time."""
        job = self.scheduler.get_job(JOB_ID)
        if job:
            return job.next_run_time
        return None
