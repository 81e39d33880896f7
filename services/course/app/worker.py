"""
ARQ worker — background jobs for the learning service.

Runs as a SEPARATE process from the FastAPI API server.

Start:  arq app.worker.WorkerSettings

Jobs:
  issue_certificate            retry for a completion whose inline issuance failed
  reconcile_enrollment_counts  nightly fix-up of the denormalized course counter
"""
from __future__ import annotations

import logging
from typing import Any

from arq import Retry, cron

from app.config import Settings
from app.task_queue import redis_settings_from_url

logging.basicConfig(level=Settings().log_level.upper(), format="%(levelname)s:%(name)s: %(message)s")
logger = logging.getLogger("course.worker")


async def startup(ctx: dict[str, Any]) -> None:
    """Called once when the worker process starts."""
    settings = Settings()
    ctx["settings"] = settings

    from app.database import init_db
    init_db(settings.course_database_url)

    logger.info("Worker started — DB pool initialized")


async def shutdown(ctx: dict[str, Any]) -> None:
    logger.info("Worker shutting down")


# ── Certificate retry ──────────────────────────────────────────────────────

async def issue_certificate(ctx: dict[str, Any], event_payload: dict[str, Any]) -> str:
    """Consume a CourseCompleted event and make sure the certificate exists.

    Idempotent: an already issued certificate is returned as is, and an
    enrollment that is no longer at 100% is skipped.
    """
    from app.database import get_session_factory
    from app.enrollment import service
    from app.exceptions import EnrollmentNotFoundError
    from shared.events.schemas import CourseCompleted

    settings: Settings = ctx["settings"]
    event = CourseCompleted.model_validate(event_payload)

    factory = get_session_factory()
    try:
        async with factory() as session:
            cert = await service.ensure_certificate(
                session, event.user_id, event.course_id, settings,
            )
            await session.commit()
    except EnrollmentNotFoundError:
        logger.info(
            "Enrollment user=%s course=%s is gone; nothing to issue",
            event.user_id, event.course_id,
        )
        return "skipped"
    except Exception as exc:
        attempt = ctx.get("job_try", 1)
        logger.exception(
            "Certificate retry %d failed for user=%s course=%s",
            attempt, event.user_id, event.course_id,
        )
        # Linear backoff; ARQ gives up after WorkerSettings.max_tries
        raise Retry(defer=attempt * settings.certificate_retry_delay_secs) from exc

    if cert is None:
        logger.info(
            "Enrollment user=%s course=%s no longer complete; nothing to issue",
            event.user_id, event.course_id,
        )
        return "skipped"
    logger.info("Certificate %s ensured for user=%s", cert.serial_hash, event.user_id)
    return cert.serial_hash


# ── Periodic reconciliation ────────────────────────────────────────────────

async def reconcile_enrollment_counts(ctx: dict[str, Any]) -> int:
    """Recount ``courses.enrollment_count`` from the enrollments table."""
    from sqlalchemy import select

    from app.database import get_session_factory
    from app.enrollment.service import recount_enrollments
    from app.models.course import Course

    factory = get_session_factory()
    fixed = 0
    async with factory() as session:
        result = await session.execute(select(Course))
        for course in result.scalars().all():
            before = course.enrollment_count
            if await recount_enrollments(session, course) != before:
                fixed += 1
        await session.commit()
    if fixed:
        logger.info("Reconciled enrollment_count on %d course(s)", fixed)
    return fixed


class WorkerSettings:
    """ARQ reads this class to configure the worker process."""
    functions = [issue_certificate]
    cron_jobs = [cron(reconcile_enrollment_counts, hour={3}, minute={0})]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = redis_settings_from_url(Settings().redis_url)
    max_jobs = 20
    # Issuance retries: the first deferred attempt plus backoff retries
    max_tries = 5
    job_timeout = 120
    keep_result = 3600
    queue_name = Settings().task_queue_name
