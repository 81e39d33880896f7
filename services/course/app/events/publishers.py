"""Domain event publishing for the learning lifecycle.

Course completion is handed to the ARQ worker, which retries certificate
issuance out of band when the synchronous attempt failed.
"""

import logging
from uuid import UUID

from shared.events.schemas import CertificateIssued, CourseCompleted

from app import task_queue
from app.config import Settings

logger = logging.getLogger(__name__)


def build_course_completed_event(
    user_id: UUID, course_id: UUID, enrollment_id: UUID,
) -> CourseCompleted:
    return CourseCompleted(user_id=user_id, course_id=course_id, enrollment_id=enrollment_id)


async def publish_course_completed(
    user_id: UUID,
    course_id: UUID,
    enrollment_id: UUID,
    settings: Settings,
) -> str | None:
    event = build_course_completed_event(user_id, course_id, enrollment_id)
    if not settings.task_queue_enabled:
        logger.info("Task queue disabled; dropping %s for user=%s", event.event_type, user_id)
        return None
    return await task_queue.enqueue(
        "issue_certificate",
        event.model_dump(mode="json"),
        _defer_by=settings.certificate_retry_delay_secs,
    )


def publish_certificate_issued(
    certificate_id: UUID, user_id: UUID, course_id: UUID, serial_hash: str,
) -> CertificateIssued:
    event = CertificateIssued(
        certificate_id=certificate_id,
        user_id=user_id,
        course_id=course_id,
        serial_hash=serial_hash,
    )
    # No downstream consumer yet; the structured log line is the audit trail
    logger.info("event=%s payload=%s", event.event_type, event.model_dump_json())
    return event
