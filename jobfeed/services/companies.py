from __future__ import annotations

import logging
import re

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import settings
from ..models import Company
from .emails import company_name_from_domain, email_domain, is_corporate_email

logger = logging.getLogger(__name__)

GENERIC_RECRUITER = re.compile(
    r"staffing|recruit|agency|hiring|talent\s+acquisition|headhunt|freelance|"
    r"remote\s+jobs?|job\s+board|manpower|placement|hr\s+solutions",
    re.I,
)

_HEADLINE_PATTERNS = [
    re.compile(r"(?:\bat|@)\s+([^|,]+)", re.I),
    re.compile(r"\|\s*([^|]+)$"),
]

MAX_SLUG_ATTEMPTS = 5


def slugify(text: str) -> str:
    s = re.sub(r"[^\w\s-]", "", (text or "").lower())
    s = re.sub(r"[\s_-]+", "-", s)
    return s.strip("-")


def generate_unique_slug(db: Session, model, base: str) -> str:
    base = base or "item"
    slug, counter = base, 1
    while db.query(model.id).filter(model.slug == slug).first():
        slug = f"{base}-{counter}"
        counter += 1
    return slug


def normalize_company_name(name: str) -> str:
    n = re.sub(r"\s+", " ", (name or "").strip())
    n = re.sub(r"\s*[-–—]\s*Engineering.*$", "", n, flags=re.I)
    n = re.sub(r"\s*[-–—]\s*Technology.*$", "", n, flags=re.I)
    n = re.sub(r"[\s,.;:!|\-–—]+$", "", n)
    return n.strip()


def is_generic_recruiter(name: str | None) -> bool:
    return bool(name and GENERIC_RECRUITER.search(name))


def company_from_headline(headline: str | None) -> str | None:
    """'Talent Partner at Acme | ex-Google' -> 'Acme'."""
    if not headline:
        return None
    for pat in _HEADLINE_PATTERNS:
        m = pat.search(headline)
        if m and m.group(1).strip():
            return m.group(1).strip()
    return None


def pick_company_name(
    contact_email: str | None,
    extracted_company: str | None,
    author_headline: str | None = None,
    author_name: str | None = None,
) -> str | None:
    # the mailbox domain is who is actually hiring; everything else is a fallback
    if is_corporate_email(contact_email):
        from_domain = company_name_from_domain(email_domain(contact_email))
        if from_domain:
            return from_domain
    if extracted_company and not is_generic_recruiter(extracted_company):
        return extracted_company
    from_headline = company_from_headline(author_headline)
    if from_headline:
        return from_headline
    return author_name or None


def is_blocked_company(name: str | None, patterns: list[str] | None = None) -> bool:
    if not name:
        return False
    patterns = settings.BLOCKED_COMPANIES if patterns is None else patterns
    lowered, slug = name.lower(), slugify(name)
    for p in patterns:
        p = p.lower().strip()
        if p and (p in lowered or p in slug):
            return True
    return False


def find_company(db: Session, name: str, linkedin_url: str | None = None) -> Company | None:
    normalized = normalize_company_name(name)
    conds = [
        Company.slug == slugify(normalized),
        Company.slug == slugify(name),
        func.lower(Company.name) == name.strip().lower(),
        func.lower(Company.name) == normalized.lower(),
    ]
    if linkedin_url:
        conds.append(Company.linkedin_url == linkedin_url)
    candidates = db.query(Company).filter(or_(*conds)).all()
    if not candidates:
        return None
    # first match wins, in the order the conditions are listed
    for check in (
        lambda c: c.slug == slugify(normalized),
        lambda c: c.slug == slugify(name),
        lambda c: (c.name or "").lower() == name.strip().lower(),
        lambda c: (c.name or "").lower() == normalized.lower(),
        lambda c: bool(linkedin_url) and c.linkedin_url == linkedin_url,
    ):
        for c in candidates:
            if check(c):
                return c
    return candidates[0]


def resolve_company(
    db: Session,
    name: str,
    contact_email: str | None = None,
    linkedin_url: str | None = None,
) -> Company:
    """Find-or-create; commits so concurrent workers converge on the slug constraint."""
    normalized = normalize_company_name(name) or name.strip()
    domain = email_domain(contact_email) if is_corporate_email(contact_email) else None
    website = f"https://{domain}" if domain else None

    company = find_company(db, name, linkedin_url)
    if company:
        if not company.website and website:
            company.website = website
            db.commit()
            logger.info("[company] backfilled website %s for %s", website, company.slug)
        return company

    base = slugify(normalized) or "company"
    for _ in range(MAX_SLUG_ATTEMPTS):
        company = Company(
            name=normalized,
            slug=generate_unique_slug(db, Company, base),
            website=website,
            linkedin_url=linkedin_url,
        )
        db.add(company)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            existing = find_company(db, name, linkedin_url)
            if existing:
                return existing
            continue
        logger.info("[company] created %s (%s)", company.slug, company.name)
        return company
    raise RuntimeError(f"could not allocate a slug for company {normalized!r}")


def delete_company_if_unused(db: Session, company_id: int) -> bool:
    """Best-effort rollback of a company whose validation failed."""
    company = db.get(Company, company_id)
    if company is None:
        return False
    if company.jobs:
        logger.info("[company] keeping %s: it already owns jobs", company.slug)
        return False
    try:
        db.delete(company)
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info("[company] could not delete %s: still referenced", company_id)
        return False
    logger.info("[company] deleted unvalidated company %s", company_id)
    return True
