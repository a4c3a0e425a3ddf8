"""
Small background job runner.

Jobs are plain objects with a ``handle()`` method.  A :class:`JobBatch` runs its
jobs in order on a thread pool and then fires its ``then`` callbacks, or its
``catch`` callbacks when a job fails for good.  With ``JOBS_RUN_INLINE`` set the
batch runs synchronously in the caller.
"""
import time
from concurrent.futures import ThreadPoolExecutor

from flask import current_app, has_app_context
from schooldesk.extensions import db

_executor = None


def _get_executor(app):
    global _executor
    if _executor is None:
        _executor = ThreadPoolExecutor(
            max_workers=app.config.get("JOBS_MAX_WORKERS", 2), thread_name_prefix="jobs"
        )
    return _executor


class Job:
    tries = 1
    backoff = ()

    def handle(self):
        raise NotImplementedError

    def failed(self, exc):
        """Called once every attempt has failed."""


def run_job(job, app):
    for attempt in range(1, job.tries + 1):
        try:
            job.handle()
            return
        except Exception as exc:
            db.session.rollback()
            if attempt == job.tries:
                app.logger.error("Job %s failed after %d attempt(s): %s", type(job).__name__, attempt, exc)
                job.failed(exc)
                raise
            delay = job.backoff[min(attempt, len(job.backoff)) - 1] if job.backoff else 0
            app.logger.warning(
                "Job %s attempt %d failed (%s), retrying in %ss", type(job).__name__, attempt, exc, delay
            )
            if delay and app.config.get("JOBS_RETRY_BACKOFF", True):
                time.sleep(delay)


class JobBatch:
    def __init__(self, jobs, name=None):
        self.jobs = list(jobs)
        self.name = name or "batch"
        self._then = []
        self._catch = []

    def then(self, callback):
        self._then.append(callback)
        return self

    def catch(self, callback):
        self._catch.append(callback)
        return self

    def _run(self, app):
        try:
            for job in self.jobs:
                run_job(job, app)
        except Exception as exc:
            for callback in self._catch:
                callback(exc)
            return False

        for callback in self._then:
            callback()
        app.logger.info("Job batch %s finished (%d job(s))", self.name, len(self.jobs))
        return True

    def _run_in_context(self, app):
        with app.app_context():
            try:
                return self._run(app)
            finally:
                db.session.remove()

    def dispatch(self):
        app = current_app._get_current_object()
        app.logger.info("Dispatching job batch %s", self.name)
        if app.config.get("JOBS_RUN_INLINE"):
            if has_app_context():
                return self._run(app)
            return self._run_in_context(app)
        return _get_executor(app).submit(self._run_in_context, app)
