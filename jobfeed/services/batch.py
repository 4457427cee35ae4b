from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from ..config import settings
from ..db import utcnow
from ..models import ImportLog
from ..schemas import RawPost
from .ingest import IngestionPipeline

logger = logging.getLogger(__name__)


@dataclass
class BatchStats:
    total: int = 0
    processed: int = 0
    created: int = 0
    skipped: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)
    import_log_id: int | None = None


def _unique_by_url(posts: list[RawPost]) -> list[RawPost]:
    seen: set[str] = set()
    out: list[RawPost] = []
    for p in posts:
        key = p.url or ""
        if key and key in seen:
            continue
        seen.add(key)
        out.append(p)
    return out


async def run_batch(
    db: Session,
    pipeline: IngestionPipeline,
    posts: list[RawPost],
    *,
    source: str = "linkedin",
    delay: float | None = None,
) -> BatchStats:
    """Sequential ingest with a pause between posts to stay inside third-party quotas."""
    delay = settings.BATCH_DELAY_SECONDS if delay is None else delay
    stats = BatchStats(total=len(posts))

    log = ImportLog(source=source.upper(), status="RUNNING")
    db.add(log)
    db.commit()
    stats.import_log_id = log.id

    try:
        for i, post in enumerate(_unique_by_url(posts)):
            if i and delay:
                await asyncio.sleep(delay)
            try:
                result = await pipeline.process(db, post)
            except Exception as e:
                # one bad post never aborts the rest of the batch
                db.rollback()
                stats.processed += 1
                stats.failed += 1
                stats.errors.append(f"{post.url}: {e}")
                logger.exception("[batch] post %s failed", post.url)
                continue

            stats.processed += 1
            if result.status == "created":
                stats.created += 1
            elif result.status == "skipped":
                stats.skipped += 1
            else:
                stats.failed += 1
                stats.errors.append(f"{post.url}: {result.reason}")
        stats.skipped += stats.total - stats.processed
    except BaseException as e:
        db.rollback()
        _finish(db, log, stats, "FAILED", extra_error=str(e) or e.__class__.__name__)
        raise

    _finish(db, log, stats, "COMPLETED")
    logger.info(
        "[batch] %s: %s processed, %s created, %s skipped, %s failed",
        source, stats.processed, stats.created, stats.skipped, stats.failed,
    )
    return stats


def _finish(db: Session, log: ImportLog, stats: BatchStats, status: str, extra_error: str | None = None) -> None:
    errors = stats.errors + ([extra_error] if extra_error else [])
    log.status = status
    log.total_fetched = stats.total
    log.total_new = stats.created
    log.total_skipped = stats.skipped
    log.total_failed = stats.failed
    log.errors = errors or None
    log.completed_at = utcnow()
    db.commit()
