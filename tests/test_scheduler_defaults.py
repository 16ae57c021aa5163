from surfaced.orchestrator.scheduler import JobScheduler
from surfaced.utils.config import Config, ScheduleConfig


class DummyCoordinator:
    async def run_audits(self, *args, **kwargs):
        return None

    async def run_visibility_checks(self, *args, **kwargs):
        return None

    async def run_brand_checks(self, *args, **kwargs):
        return None

    async def check_alerts(self, *args, **kwargs):
        return None

    async def cleanup_old_data(self, *args, **kwargs):
        return None


def make_config():
    return Config(
        schedule=ScheduleConfig(
            max_instances_per_job=1,
            misfire_grace_time_seconds=120,
            audit_hours=1,
            visibility_hours=2,
            brand_check_hours=1,
            alert_check_minutes=10,
        )
    )


def test_scheduler_sets_guardrail_defaults():
    scheduler = JobScheduler(DummyCoordinator(), make_config())
    scheduler.configure_jobs()

    assert scheduler.scheduler._job_defaults["coalesce"] is True
    assert scheduler.scheduler._job_defaults["max_instances"] == 1
    assert scheduler.scheduler._job_defaults["misfire_grace_time"] == 120


def test_scheduler_registers_every_job():
    scheduler = JobScheduler(DummyCoordinator(), make_config())
    scheduler.configure_jobs()

    job_ids = sorted(job.id for job in scheduler.get_jobs())
    assert job_ids == ["alerts", "audits", "brand_checks", "cleanup", "visibility"]
