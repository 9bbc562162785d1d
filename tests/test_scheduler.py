from __future__ import annotations

from errors import RunInProgressError
from models import RunResult
from services.scheduler import JOB_ID, ScrapeScheduler


class FakeOrchestrator:
    def __init__(self, running=False, error=None):
        self.is_running = running
        self.error = error
        self.calls = 0

    def run_batch(self, profile_urls=None, trigger="manual"):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return RunResult(success=True, run_id="r1")


class FakeBackgroundScheduler:
    def __init__(self):
        self.jobs = {}
        self.running = False
        self.timezone = None

    def add_job(self, func, trigger, **kwargs):
        self.jobs[kwargs["id"]] = (func, trigger, kwargs)

    def get_job(self, job_id):
        return self.jobs.get(job_id)

    def start(self):
        self.running = True

    def shutdown(self, wait=True):
        self.running = False


def test_disabled_without_interval(make_settings):
    fake = FakeBackgroundScheduler()
    scheduler = ScrapeScheduler(FakeOrchestrator(), make_settings(scrape_interval_minutes=0), scheduler=fake)
    assert scheduler.start() is False
    assert fake.running is False
    assert scheduler.status() == {"is_running": False, "is_scheduled": False, "interval_minutes": 0}


def test_start_registers_interval_job(make_settings):
    fake = FakeBackgroundScheduler()
    scheduler = ScrapeScheduler(FakeOrchestrator(), make_settings(scrape_interval_minutes=30), scheduler=fake)
    assert scheduler.start() is True
    func, trigger, kwargs = fake.jobs[JOB_ID]
    assert trigger == "interval"
    assert kwargs["minutes"] == 30
    assert kwargs["max_instances"] == 1
    assert "next_run_time" not in kwargs
    assert scheduler.status()["is_scheduled"] is True
    scheduler.stop()
    assert fake.running is False


def test_run_immediately_sets_first_fire_time(make_settings):
    fake = FakeBackgroundScheduler()
    scheduler = ScrapeScheduler(FakeOrchestrator(), make_settings(scrape_interval_minutes=5), scheduler=fake)
    scheduler.start(run_immediately=True)
    assert fake.jobs[JOB_ID][2]["next_run_time"] is not None


def test_overlapping_trigger_is_skipped(make_settings):
    orchestrator = FakeOrchestrator(running=True)
    scheduler = ScrapeScheduler(orchestrator, make_settings(), scheduler=FakeBackgroundScheduler())
    assert scheduler.run_scheduled() is None
    assert orchestrator.calls == 0


def test_lost_race_is_skipped(make_settings):
    orchestrator = FakeOrchestrator(error=RunInProgressError("busy"))
    scheduler = ScrapeScheduler(orchestrator, make_settings(), scheduler=FakeBackgroundScheduler())
    assert scheduler.run_scheduled() is None
    assert orchestrator.calls == 1


def test_failed_run_does_not_escape(make_settings):
    orchestrator = FakeOrchestrator(error=RuntimeError("hubspot down"))
    scheduler = ScrapeScheduler(orchestrator, make_settings(), scheduler=FakeBackgroundScheduler())
    assert scheduler.run_scheduled() is None


def test_successful_scheduled_run(make_settings):
    scheduler = ScrapeScheduler(FakeOrchestrator(), make_settings(), scheduler=FakeBackgroundScheduler())
    result = scheduler.run_scheduled()
    assert result.success is True
