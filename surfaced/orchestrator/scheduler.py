"""Job scheduling for Surfaced."""

from typing import TYPE_CHECKING, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger

from ..utils.config import Config

if TYPE_CHECKING:
    from .coordinator import JobCoordinator


class JobScheduler:
    """Manages scheduled audit, visibility and alert jobs.

    Default schedule:
    - Product audits: Every 24 hours
    - Store visibility checks: Every 168 hours (weekly)
    - Brand AI checks: Every 24 hours
    - Alert check: Every 60 minutes
    - History cleanup: Daily at 3 AM
    """

    def __init__(self, coordinator: "JobCoordinator", config: Optional[Config] = None):
        """Initialize job scheduler.

        Args:
            coordinator: Job coordinator instance
            config: Application config (schedule section is used)
        """
        self.coordinator = coordinator
        self.config = config or Config()

        schedule = self.config.schedule
        self.scheduler = AsyncIOScheduler(
            job_defaults={
                "coalesce": True,
                "max_instances": schedule.max_instances_per_job,
                "misfire_grace_time": schedule.misfire_grace_time_seconds,
            }
        )

    def configure_jobs(self):
        """Set up all scheduled jobs based on configuration."""
        schedule = self.config.schedule

        self.scheduler.add_job(
            self.coordinator.run_audits,
            IntervalTrigger(hours=schedule.audit_hours),
            id="audits",
            name="Product Audits",
            replace_existing=True,
        )
        logger.info(f"Scheduled product audits every {schedule.audit_hours} hours")

        self.scheduler.add_job(
            self.coordinator.run_visibility_checks,
            IntervalTrigger(hours=schedule.visibility_hours),
            id="visibility",
            name="Store Visibility Checks",
            replace_existing=True,
        )
        logger.info(f"Scheduled visibility checks every {schedule.visibility_hours} hours")

        self.scheduler.add_job(
            self.coordinator.run_brand_checks,
            IntervalTrigger(hours=schedule.brand_check_hours),
            id="brand_checks",
            name="Brand AI Checks",
            replace_existing=True,
        )
        logger.info(f"Scheduled brand checks every {schedule.brand_check_hours} hours")

        self.scheduler.add_job(
            self.coordinator.check_alerts,
            IntervalTrigger(minutes=schedule.alert_check_minutes),
            id="alerts",
            name="Alert Check",
            replace_existing=True,
        )
        logger.info(f"Scheduled alert check every {schedule.alert_check_minutes} minutes")

        self.scheduler.add_job(
            self.coordinator.cleanup_old_data,
            CronTrigger(hour=3, minute=0),  # 3 AM daily
            id="cleanup",
            name="History Cleanup",
            replace_existing=True,
        )
        logger.info("Scheduled daily history cleanup at 3 AM")

    def start(self):
        """Start the scheduler."""
        logger.info("Starting job scheduler")
        self.scheduler.start()

    def stop(self):
        """Stop the scheduler."""
        logger.info("Stopping job scheduler")
        self.scheduler.shutdown()

    def get_jobs(self):
        """Get list of scheduled jobs."""
        return self.scheduler.get_jobs()
