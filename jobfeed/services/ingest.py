"""Post -> job state machine; the unique constraints on jobs are the final duplicate check."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import settings
from ..db import utcnow
from ..models import Job
from ..providers.base import ExtractionError, ExtractionModel
from ..schemas import JobCandidate, RawPost
from .classifier import RoleClassifier
from .companies import (
    delete_company_if_unused, generate_unique_slug, is_blocked_company, pick_company_name,
    resolve_company, slugify,
)
from .dedup import find_by_provenance, find_recent_same_title, find_similar_by_email_domain, make_dedup_key
from .emails import email_domain, is_free_email
from .extraction import map_location_type, normalize_text
from .filters import should_import_title
from .fanout import enqueue_fanout
from .validation import IdentityValidator

logger = logging.getLogger(__name__)


class State(str, Enum):
    RECEIVED = "RECEIVED"
    EXTRACTED = "EXTRACTED"
    EMAIL_VALIDATED = "EMAIL_VALIDATED"
    DEDUP_CHECKED = "DEDUP_CHECKED"
    COMPANY_RESOLVED = "COMPANY_RESOLVED"
    COMPANY_VALIDATED = "COMPANY_VALIDATED"
    CLASSIFIED = "CLASSIFIED"
    COMMITTED = "COMMITTED"


EMPTY_DATA = "empty_data"
DUPLICATE = "duplicate"
NO_TITLE = "no_title"
NON_TARGET_PROFESSION = "non_target_profession"
NO_CORPORATE_EMAIL = "no_corporate_email"
SIMILAR_JOB_EXISTS = "similar_job_exists"
BLOCKED_COMPANY = "blocked_company"
COMPANY_VALIDATION_FAILED = "company_validation_failed"
DUPLICATE_TITLE = "duplicate_title"
ONSITE_JOB = "onsite_job"
DUPLICATE_CONSTRAINT = "duplicate_constraint"
EXTRACTION_FAILED = "extraction_failed"

DUPLICATE_REASONS = {DUPLICATE, SIMILAR_JOB_EXISTS, DUPLICATE_TITLE, DUPLICATE_CONSTRAINT}


@dataclass
class IngestResult:
    status: str
    state: State
    reason: str | None = None
    job_id: int | None = None
    job_slug: str | None = None
    company_slug: str | None = None

    @property
    def created(self) -> bool:
        return self.status == "created"

    @classmethod
    def skipped(cls, state: State, reason: str, **kw) -> "IngestResult":
        return cls(status="skipped", state=state, reason=reason, **kw)

    @classmethod
    def failed(cls, state: State, reason: str) -> "IngestResult":
        return cls(status="failed", state=state, reason=reason)


def calculate_quality_score(c: JobCandidate) -> int:
    score = 40
    if c.title:
        score += 15
    if c.company:
        score += 10
    if c.salary_min or c.salary_max:
        score += 15
    if c.skills:
        score += 5
    if len(c.skills) > 3:
        score += 5
    if c.benefits:
        score += 5
    if c.contact_email or c.apply_url:
        score += 5
    if not c.level:
        score -= 5
    if not c.is_remote and not c.location:
        score -= 10
    return max(0, min(100, score))


class IngestionPipeline:
    def __init__(
        self,
        extractor: ExtractionModel,
        classifier: RoleClassifier,
        validator: IdentityValidator,
        *,
        structured_sources: list[str] | None = None,
        fan_out: bool = True,
    ):
        self.extractor = extractor
        self.classifier = classifier
        self.validator = validator
        self.structured_sources = {
            s.lower() for s in (settings.STRUCTURED_SOURCES if structured_sources is None else structured_sources)
        }
        self.fan_out = fan_out

    def is_loosely_sourced(self, source: str) -> bool:
        return source.lower() not in self.structured_sources

    async def process(self, db: Session, post: RawPost, *, now: datetime | None = None) -> IngestResult:
        try:
            result = await self._run(db, post, now or utcnow())
        except SQLAlchemyError:
            db.rollback()
            raise
        if result.status == "skipped":
            logger.info("[ingest] %s skipped at %s: %s", post.url, result.state.value, result.reason)
        return result

    async def _run(self, db: Session, post: RawPost, now: datetime) -> IngestResult:
        state = State.RECEIVED
        if not post.text or not post.url:
            return IngestResult.skipped(state, EMPTY_DATA)

        # cheap provenance check before paying for a model call
        if find_by_provenance(db, post.post_id, post.url):
            return IngestResult.skipped(state, DUPLICATE)

        try:
            candidate = await self.extractor.extract(post.text)
        except ExtractionError as e:
            logger.warning("[ingest] extraction failed for %s: %s", post.url, e)
            return IngestResult.failed(state, EXTRACTION_FAILED)
        if candidate is None or not candidate.title:
            return IngestResult.skipped(state, NO_TITLE)
        state = State.EXTRACTED

        if not should_import_title(candidate.title):
            return IngestResult.skipped(state, NON_TARGET_PROFESSION)

        email = candidate.contact_email
        if not email or is_free_email(email):
            return IngestResult.skipped(state, NO_CORPORATE_EMAIL)
        state = State.EMAIL_VALIDATED

        domain = email_domain(email)
        if find_similar_by_email_domain(db, domain, candidate.title, now=now):
            return IngestResult.skipped(state, SIMILAR_JOB_EXISTS)
        state = State.DEDUP_CHECKED

        name = pick_company_name(email, candidate.company, post.author_headline, post.author_name) or "Unknown"
        if is_blocked_company(name) or is_blocked_company(candidate.company):
            return IngestResult.skipped(state, BLOCKED_COMPANY)
        company_linkedin = post.author_url if post.author_type == "company" else None
        company = resolve_company(db, name, email, company_linkedin)
        state = State.COMPANY_RESOLVED

        if self.is_loosely_sourced(post.source):
            if not await self.validator.validate(db, company.id, email):
                delete_company_if_unused(db, company.id)
                return IngestResult.skipped(state, COMPANY_VALIDATION_FAILED)
        state = State.COMPANY_VALIDATED

        if find_recent_same_title(db, company.id, candidate.title, now=now):
            return IngestResult.skipped(state, DUPLICATE_TITLE, company_slug=company.slug)

        category = await self.classifier.classify_category(db, candidate.title, candidate.skills)
        state = State.CLASSIFIED

        location_type = map_location_type(candidate.is_remote, candidate.location)
        if location_type == "ONSITE":
            return IngestResult.skipped(state, ONSITE_JOB)

        job = self._build_job(db, post, candidate, company, category.id, location_type, domain, now)
        db.add(job)
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            logger.info("[ingest] lost insert race for %s: %s", post.url, e.orig)
            return IngestResult.skipped(state, DUPLICATE_CONSTRAINT)
        state = State.COMMITTED
        logger.info("[ingest] created job %s (%s)", job.slug, company.slug)

        if self.fan_out:
            self._enqueue_fanout(db, job, company.slug)

        return IngestResult(
            status="created", state=state, job_id=job.id, job_slug=job.slug, company_slug=company.slug,
        )

    def _build_job(self, db, post, candidate, company, category_id, location_type, domain, now) -> Job:
        base = slugify(f"{candidate.title}-{company.name}")[:120].rstrip("-")
        location = (candidate.location or "Remote") if candidate.is_remote else candidate.location
        return Job(
            slug=generate_unique_slug(db, Job, base),
            title=" ".join(candidate.title.split()),
            description=normalize_text(post.text),
            original_content=post.text,
            company_id=company.id,
            category_id=category_id,
            location=location,
            location_type=location_type,
            country=candidate.country,
            level=candidate.level or "MID",
            employment_type=candidate.employment_type or "FULL_TIME",
            salary_min=candidate.salary_min,
            salary_max=candidate.salary_max,
            salary_currency=candidate.salary_currency,
            salary_period=candidate.salary_period,
            salary_is_estimate=not candidate.salary_min,
            skills=candidate.skills,
            benefits=candidate.benefits,
            source=post.source.upper(),
            source_type="UNSTRUCTURED" if self.is_loosely_sourced(post.source) else "STRUCTURED",
            source_id=post.post_id,
            source_url=post.url,
            author_name=post.author_name,
            author_linkedin=post.author_url,
            apply_email=candidate.contact_email,
            apply_email_domain=domain,
            apply_url=candidate.apply_url,
            quality_score=calculate_quality_score(candidate),
            is_active=True,
            dedup_key=make_dedup_key(company.id, candidate.title, now),
            posted_at=now,
            created_at=now,
        )

    def _enqueue_fanout(self, db: Session, job: Job, company_slug: str) -> None:
        try:
            enqueue_fanout(db, job, company_slug)
        except Exception:
            db.rollback()
            logger.exception("[ingest] fan-out enqueue failed for job %s", job.id)
