"""Post-commit fan-out through the fanout_tasks outbox."""
from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import settings
from ..db import utcnow
from ..models import FanoutTask, Job, SocialQueueEntry
from ..providers.base import Notifier, ProviderError
from ..providers.indexing import build_job_url

logger = logging.getLogger(__name__)

FANOUT_KINDS = ("alert", "social", "index")


def enqueue_fanout(db: Session, job: Job, company_slug: str) -> int:
    """Queue every downstream notification for a committed job; returns rows added."""
    existing = {k for (k,) in db.query(FanoutTask.kind).filter(FanoutTask.job_id == job.id).all()}
    added = 0
    for kind in FANOUT_KINDS:
        if kind in existing:
            continue
        payload = build_job_url(company_slug, job.slug) if kind == "index" else None
        db.add(FanoutTask(job_id=job.id, kind=kind, payload=payload))
        added += 1
    try:
        db.commit()
    except IntegrityError:
        # a concurrent enqueue for the same job won
        db.rollback()
        return 0
    return added


class SocialQueueNotifier:
    """Puts the job on the social-post queue that the posting cron consumes."""

    kind = "social"

    def __init__(self, session_factory):
        self.session_factory = session_factory

    async def send(self, job_id: int, payload: str | None) -> None:
        with self.session_factory() as db:
            if db.query(SocialQueueEntry.id).filter(SocialQueueEntry.job_id == job_id).first():
                logger.info("[social] job %s already in queue", job_id)
                return
            db.add(SocialQueueEntry(job_id=job_id, status="PENDING"))
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                return
            logger.info("[social] queued job %s", job_id)


async def drain_fanout(db: Session, notifiers: list[Notifier], limit: int | None = None) -> dict:
    """Deliver pending fan-out tasks; one failing consumer never blocks the others."""
    by_kind = {n.kind: n for n in notifiers}
    limit = limit or settings.FANOUT_BATCH_SIZE
    tasks = (
        db.query(FanoutTask)
        .filter(FanoutTask.status == "PENDING")
        .order_by(FanoutTask.id)
        .limit(limit)
        .all()
    )
    stats = {"done": 0, "failed": 0, "skipped": 0}
    for task in tasks:
        notifier = by_kind.get(task.kind)
        if notifier is None:
            stats["skipped"] += 1
            continue
        task.attempts = (task.attempts or 0) + 1
        try:
            await notifier.send(task.job_id, task.payload)
        except ProviderError as e:
            task.status = "FAILED"
            task.last_error = str(e)[:1000]
            stats["failed"] += 1
            logger.warning("[fanout] %s for job %s failed: %s", task.kind, task.job_id, e)
        else:
            task.status = "DONE"
            stats["done"] += 1
        task.processed_at = utcnow()
        db.commit()
    if tasks:
        logger.info("[fanout] drained %s", stats)
    return stats
