"""Background scheduler — runs each configured digest job on its cron.

One APScheduler job per active ServiceJob with job_class
"open_connections_digest". max_instances=1 + coalesce=True mean a trigger
that fires while the previous run is still going is skipped, never run in
parallel. A per-job lock also rejects a manual run that overlaps a
scheduled one.
"""

import logging
import threading
from datetime import datetime, timezone

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_MAX_INSTANCES
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from .exceptions import DigestJobError
from .logging_config import job_log_context

log = logging.getLogger("digest.scheduler")

JOB_CLASS = "open_connections_digest"

scheduler = BackgroundScheduler()
_run_locks: dict[int, threading.Lock] = {}


def _utc(dt):
    """Make a naive datetime UTC-aware (no-op if already aware)."""
    if dt is None:
        return None
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt


# ── Job execution ────────────────────────────────────────────────────


def execute_service_job(job_id: int, notifier=None, now: datetime | None = None):
    """Run one ServiceJob and record its outcome.

    Returns the DigestRunResult, or None when the job is missing or already
    running. Any failure is recorded on the job row and re-raised. A
    notifier built here is closed when the run ends.
    """
    from .database import SessionLocal
    from .models import ServiceJob

    lock = _run_locks.setdefault(job_id, threading.Lock())
    if not lock.acquire(blocking=False):
        log.warning(f"Service job {job_id} is already running — skipping this trigger")
        return None

    try:
        db = SessionLocal()
        try:
            job = db.get(ServiceJob, job_id)
            if job is None:
                log.error(f"Service job {job_id} not found")
                return None

            now = _utc(now) or datetime.now(timezone.utc)
            with job_log_context(job):
                return _run_job(db, job, notifier, now)
        finally:
            db.close()
    finally:
        lock.release()


def _run_job(db, job, notifier, now: datetime):
    from .config import settings
    from .models import ServiceJob
    from .schemas.digest_job import DigestJobConfig
    from .services.digest_service import run_open_connections_digest
    from .services.notifier import build_notifier

    job_id = job.id
    job.last_run_at = now
    owned_notifier = None
    try:
        config = DigestJobConfig.from_service_job(job)
        if notifier is None:
            notifier = owned_notifier = build_notifier(settings)
        result = run_open_connections_digest(db, config, notifier, now=now)
    except Exception as e:
        db.rollback()
        job = db.get(ServiceJob, job_id)
        job.last_run_at = now
        job.last_status = "Exception"
        job.last_status_message = str(e)
        db.commit()
        log.error(f"Service job {job.name!r} failed: {e}")
        raise
    finally:
        if owned_notifier is not None:
            owned_notifier.close()

    job.last_status = "Success"
    job.last_status_message = result.summary()
    job.last_successful_run_at = now
    db.commit()
    log.info(f"Service job {job.name!r}: {result.summary().strip()}")
    return result


# ── Scheduler setup ──────────────────────────────────────────────────


def _on_job_event(event) -> None:
    if event.code == EVENT_JOB_MAX_INSTANCES:
        log.warning(f"Scheduler skipped {event.job_id}: previous run still in progress")
        return
    if isinstance(event.exception, DigestJobError):
        log.error(f"Scheduler job {event.job_id} finished with errors")
    else:
        log.error(f"Scheduler job {event.job_id} raised: {event.exception}")


scheduler.add_listener(_on_job_event, EVENT_JOB_ERROR | EVENT_JOB_MAX_INSTANCES)


def configure_scheduler() -> int:
    """Register every active digest ServiceJob. Returns the number registered."""
    from .config import settings
    from .database import SessionLocal
    from .models import ServiceJob

    db = SessionLocal()
    try:
        jobs = (
            db.query(ServiceJob)
            .filter(ServiceJob.job_class == JOB_CLASS, ServiceJob.is_active.is_(True))
            .order_by(ServiceJob.id)
            .all()
        )
        registered = 0
        for job in jobs:
            try:
                trigger = CronTrigger.from_crontab(
                    job.cron_expression, timezone=settings.digest_timezone
                )
            except ValueError as e:
                log.error(f"Service job {job.name!r} has an invalid cron expression: {e}")
                continue
            scheduler.add_job(
                execute_service_job,
                trigger,
                args=[job.id],
                id=f"service_job_{job.id}",
                name=job.name,
                max_instances=1,
                coalesce=True,
                replace_existing=True,
            )
            registered += 1
    finally:
        db.close()

    log.info(f"Scheduler configured with {registered} digest job(s)")
    return registered


def start_scheduler() -> None:
    """Configure and start the scheduler. Call once on process startup."""
    from .config import settings

    if not settings.scheduler_enabled:
        log.info("Scheduler disabled by settings")
        return
    configure_scheduler()
    scheduler.start()


def shutdown_scheduler() -> None:
    if scheduler.running:
        scheduler.shutdown(wait=True)
