import re
from typing import Any, List

from pydantic import BaseModel, Field


class JobCandidate(BaseModel):
    title: str | None = None
    company: str | None = None
    location: str | None = None
    country: str | None = None
    is_remote: bool = False
    level: str | None = None
    employment_type: str | None = None
    salary_min: float | None = None
    salary_max: float | None = None
    salary_currency: str = "USD"
    salary_period: str = "YEAR"
    skills: List[str] = Field(default_factory=list)
    benefits: List[str] = Field(default_factory=list)
    contact_email: str | None = None
    apply_url: str | None = None
    raw_text: str = ""


class IdentityRecord(BaseModel):
    name: str | None = None
    domain: str | None = None
    logo_url: str | None = None
    description: str | None = None
    industry: str | None = None
    size: str | None = None
    headquarters: str | None = None
    linkedin_url: str | None = None


def _pick(body: dict, *keys: str) -> Any:
    """First non-empty value among flat keys, dotted keys and nested dicts."""
    for key in keys:
        val = body.get(key)
        if val in (None, "") and "." in key:
            head, _, tail = key.partition(".")
            nested = body.get(head)
            if isinstance(nested, dict):
                val = _pick(nested, tail)
        if val not in (None, ""):
            return val
    return None


def _pick_str(body: dict, *keys: str) -> str | None:
    val = _pick(body, *keys)
    if isinstance(val, (str, int, float)):
        return str(val).strip() or None
    return None


def extract_post_id(url: str) -> str:
    # https://www.linkedin.com/feed/update/urn:li:activity:1234567890/
    m = re.search(r"activity:(\d+)", url)
    if m:
        return m.group(1)
    # https://www.linkedin.com/posts/username_...
    m = re.search(r"posts/([^/?]+)", url)
    if m:
        return m.group(1)
    return re.sub(r"[^a-zA-Z0-9]", "", url)[-20:]


class RawPost(BaseModel):
    """One inbound post, whatever shape it arrived in."""

    source: str = "linkedin"
    url: str | None = None
    text: str | None = None
    post_id: str | None = None
    author_name: str | None = None
    author_headline: str | None = None
    author_url: str | None = None
    author_type: str | None = None

    @classmethod
    def from_payload(cls, source: str, body: Any) -> "RawPost":
        if not isinstance(body, dict):
            return cls(source=source)
        url = _pick_str(body, "postUrl", "post_url", "url")
        text = _pick_str(body, "content", "postContent", "text")
        post_id = _pick_str(body, "postId", "post_id", "id")
        return cls(
            source=source,
            url=url,
            text=text,
            post_id=post_id or (extract_post_id(url) if url else None),
            author_name=_pick_str(body, "authorName", "author.name"),
            author_headline=_pick_str(body, "authorHeadline", "author.info", "author.headline"),
            author_url=_pick_str(body, "authorUrl", "author.linkedinUrl", "author.url"),
            author_type=_pick_str(body, "authorType", "author.type"),
        )


class IngestResultOut(BaseModel):
    success: bool = True
    status: str
    state: str
    reason: str | None = None
    jobId: int | None = None
    jobSlug: str | None = None
    companySlug: str | None = None


class BatchIn(BaseModel):
    source: str = "linkedin"
    posts: List[dict] = []


class BatchStatsOut(BaseModel):
    total: int = 0
    processed: int = 0
    created: int = 0
    skipped: int = 0
    failed: int = 0
    errors: List[str] = []
    importLogId: int | None = None
