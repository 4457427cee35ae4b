from __future__ import annotations

import logging
import re

from rapidfuzz import fuzz, process
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models import Category
from ..providers.base import ClassificationModel, ProviderError
from ..providers.llm import ChatClient

logger = logging.getLogger(__name__)

CATEGORY_NAMES = {
    "engineering": "Engineering",
    "design": "Design",
    "data": "Data",
    "devops": "DevOps",
    "qa": "QA",
    "security": "Security",
    "product": "Product",
    "marketing": "Marketing",
    "sales": "Sales",
    "finance": "Finance",
    "hr": "HR",
    "operations": "Operations",
    "legal": "Legal",
    "project-management": "Project Management",
    "writing": "Writing",
    "translation": "Translation",
    "creative": "Creative",
    "support": "Support",
    "education": "Education",
    "research": "Research",
    "consulting": "Consulting",
}

CATEGORY_PROMPT = """Classify this job into ONE category. Return ONLY the category slug, nothing else.

Categories (use exact slug):
- engineering: Software engineers, developers, programmers
- design: UI/UX designers, graphic designers, product designers
- data: Data scientists, analysts, ML engineers, BI analysts
- devops: DevOps, SRE, infrastructure, cloud engineers
- qa: QA engineers, testers, quality assurance, SDET
- security: Security engineers, cybersecurity, infosec
- product: Product managers, product owners
- marketing: Marketing, growth, SEO, content marketing
- sales: Sales, business development, account managers
- finance: Finance, accounting, payroll specialists
- hr: HR, recruiters, people operations
- operations: Operations, administration, office management
- legal: Legal, compliance, contracts
- project-management: Project managers, scrum masters, agile coaches
- writing: Copywriters, content writers, technical writers
- translation: Translators, interpreters, localization
- creative: Video producers, animators, photographers
- support: Customer support, customer success, tech support
- education: Trainers, teachers, instructional designers
- research: Researchers, user researchers, market researchers
- consulting: Consultants, advisors, strategists

Match based on job title and skills. Choose the MOST specific category that fits."""

# ordered: first hit wins
_LOCAL_RULES = [
    ("research", ("research",)),
    ("data", ("analyst", "data", "bi ", "machine learning")),
    ("product", ("product manager", "product owner")),
    ("qa", ("qa", "quality", "test", "sdet")),
    ("security", ("security", "infosec")),
    ("devops", ("devops", "sre", "site reliability", "infrastructure", "cloud")),
    ("support", ("support", "customer success")),
    ("marketing", ("marketing", "growth", "seo")),
    ("sales", ("sales", "account executive", "business development")),
    ("design", ("design", "ux", "ui ")),
    ("writing", ("writer", "content", "copy")),
    ("translation", ("translat", "locali", "interpret")),
    ("project-management", ("project manager", "scrum")),
    ("hr", ("hr ", "recruit", "people")),
    ("finance", ("finance", "accountant", "payroll")),
    ("legal", ("legal", "compliance")),
    ("operations", ("operations", "admin")),
    ("engineering", ("engineer", "develop", "program")),
]


def local_classify(title: str) -> str:
    t = f"{(title or '').lower()} "
    for slug, words in _LOCAL_RULES:
        if any(w in t for w in words):
            return slug
    return "support"


def snap_to_taxonomy(raw: str | None, score_cutoff: float = 85) -> str | None:
    slug = re.sub(r"[^a-z-]", "", (raw or "").strip().lower())
    if not slug:
        return None
    if slug in CATEGORY_NAMES:
        return slug
    match = process.extractOne(slug, list(CATEGORY_NAMES), scorer=fuzz.ratio, score_cutoff=score_cutoff)
    return match[0] if match else None


class ChatClassificationModel(ClassificationModel):
    def __init__(self, chat: ChatClient):
        self.chat = chat

    async def classify(self, title: str, skills: list[str]) -> str:
        content = await self.chat.complete(
            CATEGORY_PROMPT,
            f"Title: {title}\nSkills: {', '.join(skills) or 'none specified'}",
            temperature=0, max_tokens=50,
        )
        return (content or "").strip()


def get_or_create_category(db: Session, slug: str) -> Category:
    category = db.query(Category).filter(Category.slug == slug).first()
    if category:
        return category
    category = Category(slug=slug, name=CATEGORY_NAMES.get(slug, slug))
    db.add(category)
    try:
        db.commit()
    except IntegrityError:
        # another worker created it first
        db.rollback()
        return db.query(Category).filter(Category.slug == slug).one()
    logger.info("[classifier] created category %s", slug)
    return category


def ensure_taxonomy(db: Session) -> int:
    """Seed every known category; returns how many rows were added."""
    existing = {s for (s,) in db.query(Category.slug).all()}
    added = 0
    for slug, name in CATEGORY_NAMES.items():
        if slug not in existing:
            db.add(Category(slug=slug, name=name))
            added += 1
    if added:
        db.commit()
    return added


class RoleClassifier:
    def __init__(self, model: ClassificationModel | None = None):
        self.model = model

    async def classify(self, title: str, skills: list[str]) -> str:
        if self.model is None:
            return local_classify(title)
        try:
            raw = await self.model.classify(title, skills)
        except ProviderError as e:
            logger.warning("[classifier] model failed for '%s', using keywords: %s", title, e)
            return local_classify(title)
        slug = snap_to_taxonomy(raw)
        if slug is None:
            logger.info("[classifier] '%s' -> unusable '%s', using keywords", title, raw)
            return local_classify(title)
        return slug

    async def classify_category(self, db: Session, title: str, skills: list[str]) -> Category:
        return get_or_create_category(db, await self.classify(title, skills))
