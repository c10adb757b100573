"""
Job-event notifications

Sent after the job transaction has committed, from a background task. A
failed delivery is retried and then logged; it never rolls back the job.
"""
from typing import Any, Dict, Optional

import httpx

from app.core.config import settings
from app.logging_config import get_logger

logger = get_logger(__name__)


def notify_job_event(
    event: str,
    job_id: int,
    company_id: int,
    details: Optional[Dict[str, Any]] = None,
) -> bool:
    """
    Deliver a job event to the configured webhook.

    Returns True when the event was delivered, False when no webhook is
    configured or every attempt failed.
    """
    payload = {
        "event": event,
        "job_id": job_id,
        "company_id": company_id,
        "details": details or {},
    }

    if not settings.JOB_WEBHOOK_URL:
        logger.info("Job event (no webhook configured)", extra=payload)
        return False

    attempts = max(1, settings.NOTIFY_MAX_ATTEMPTS)
    for attempt in range(1, attempts + 1):
        try:
            response = httpx.post(
                settings.JOB_WEBHOOK_URL,
                json=payload,
                timeout=settings.NOTIFY_TIMEOUT_SECONDS,
            )
            response.raise_for_status()
            return True
        except httpx.HTTPError as exc:
            logger.warning(
                f"Job notification attempt {attempt}/{attempts} failed: {exc}",
                extra={"event": event, "job_id": job_id, "company_id": company_id},
            )

    logger.error(
        "Job notification dropped after retries",
        extra={"event": event, "job_id": job_id, "company_id": company_id},
    )
    return False
