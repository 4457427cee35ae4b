from __future__ import annotations

import hashlib
import logging
import re
from datetime import datetime, timedelta

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ..config import settings
from ..db import utcnow
from ..models import Job

logger = logging.getLogger(__name__)

_PUNCT = re.compile(r"[^\w\s]")


def title_tokens(title: str | None) -> set[str]:
    t = _PUNCT.sub(" ", (title or "").lower())
    return {w for w in t.split() if len(w) > 2}


def jaccard(a: str | None, b: str | None) -> float:
    sa, sb = title_tokens(a), title_tokens(b)
    if not sa or not sb:
        return 0.0
    return len(sa & sb) / len(sa | sb)


def normalize_title(title: str | None) -> str:
    return re.sub(r"\s+", " ", (title or "").strip().lower())


def make_dedup_key(company_id: int, title: str | None, when: datetime,
                   window_days: int | None = None) -> str:
    # fixed-width epoch buckets: two rows sharing a bucket are always < window apart
    window = window_days or settings.DUPLICATE_TITLE_WINDOW_DAYS
    bucket = (when - datetime(1970, 1, 1)).days // window
    s = f"{company_id}|{normalize_title(title)}|{bucket}"
    return hashlib.sha1(s.encode()).hexdigest()


def find_by_provenance(db: Session, source_id: str | None, source_url: str | None) -> Job | None:
    conds = []
    if source_id:
        conds.append(Job.source_id == source_id)
    if source_url:
        conds.append(Job.source_url == source_url)
    if not conds:
        return None
    return db.query(Job).filter(or_(*conds)).first()


def find_similar_by_email_domain(
    db: Session,
    domain: str | None,
    title: str | None,
    *,
    now: datetime | None = None,
    window_days: int | None = None,
    threshold: float | None = None,
) -> Job | None:
    """Same recruiter domain re-posting a near-identical role."""
    if not domain or not title:
        return None
    now = now or utcnow()
    since = now - timedelta(days=window_days or settings.EMAIL_DOMAIN_WINDOW_DAYS)
    threshold = settings.TITLE_SIMILARITY_THRESHOLD if threshold is None else threshold

    rows = (
        db.query(Job)
        .filter(Job.apply_email_domain == domain.lower(), Job.created_at >= since)
        .order_by(Job.created_at.desc())
        .all()
    )
    for job in rows:
        score = jaccard(title, job.title)
        if score >= threshold:
            logger.info("[dedup] '%s' ~ '%s' (%.2f) on %s", title, job.title, score, domain)
            return job
    return None


def find_recent_same_title(
    db: Session,
    company_id: int,
    title: str | None,
    *,
    now: datetime | None = None,
    window_days: int | None = None,
) -> Job | None:
    if not title:
        return None
    now = now or utcnow()
    since = now - timedelta(days=window_days or settings.DUPLICATE_TITLE_WINDOW_DAYS)
    return (
        db.query(Job)
        .filter(
            Job.company_id == company_id,
            func.lower(Job.title) == normalize_title(title),
            Job.created_at > since,
        )
        .first()
    )
