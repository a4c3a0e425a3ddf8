import pytest

from utils.jobs import Job, JobBatch, run_job


class Flaky(Job):
    tries = 3
    backoff = (10, 30)

    def __init__(self, failures):
        self.failures = failures
        self.calls = 0
        self.gave_up = None

    def handle(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise RuntimeError(f"attempt {self.calls}")

    def failed(self, exc):
        self.gave_up = exc


def test_job_retries_until_success(app):
    job = Flaky(failures=2)

    run_job(job, app)

    assert job.calls == 3
    assert job.gave_up is None


def test_job_gives_up_after_last_try(app):
    job = Flaky(failures=5)

    with pytest.raises(RuntimeError):
        run_job(job, app)

    assert job.calls == 3
    assert str(job.gave_up) == "attempt 3"


def test_batch_callbacks(app):
    events = []

    ok = JobBatch([Flaky(0)]).then(lambda: events.append("done")).catch(events.append).dispatch()
    failed = JobBatch([Flaky(9), Flaky(0)]).then(lambda: events.append("never")).catch(
        lambda exc: events.append(f"caught {exc}")
    ).dispatch()

    assert ok is True
    assert failed is False
    assert events == ["done", "caught attempt 3"]
