from __future__ import annotations

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from jobfeed.db import Base
from jobfeed import models  # noqa: F401  registers the tables on Base
from jobfeed.schemas import IdentityRecord, JobCandidate, RawPost
from jobfeed.services.classifier import RoleClassifier
from jobfeed.services.ingest import IngestionPipeline
from jobfeed.services.validation import IdentityValidator


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


class FakeExtractor:
    """Maps post text to a candidate, or to an exception to raise."""

    def __init__(self, by_text: dict | None = None, default=None):
        self.by_text = by_text or {}
        self.default = default
        self.calls = []

    async def extract(self, text):
        self.calls.append(text)
        out = self.by_text.get(text, self.default)
        if isinstance(out, BaseException):
            raise out
        return out


class FakeIdentity:
    def __init__(self, records: dict | None = None, error: Exception | None = None):
        self.records = records or {}
        self.error = error
        self.calls = []

    async def lookup(self, domain):
        self.calls.append(domain)
        if self.error:
            raise self.error
        return self.records.get(domain)


class FakeLogos:
    def __init__(self, domains=(), error: Exception | None = None):
        self.domains = set(domains)
        self.error = error
        self.calls = []

    def logo_url(self, domain):
        return f"https://logo.test/{domain}"

    async def has_logo(self, domain):
        self.calls.append(domain)
        if self.error:
            raise self.error
        return domain in self.domains


class FakeDescriber:
    def __init__(self, text="Acme builds rockets."):
        self.text = text

    async def describe(self, name, domain):
        return self.text


def make_candidate(**kw) -> JobCandidate:
    data = dict(
        title="Senior Backend Engineer",
        company="Acme Recruiting",
        location="Remote",
        is_remote=True,
        level="SENIOR",
        skills=["Python", "Django"],
        contact_email="jobs@acme.io",
    )
    data.update(kw)
    return JobCandidate(**data)


def make_post(url="https://www.linkedin.com/feed/update/urn:li:activity:1001/", text="We are hiring", **kw) -> RawPost:
    return RawPost.from_payload(kw.pop("source", "linkedin"), {"postUrl": url, "content": text, **kw})


def make_pipeline(extractor, identity=None, logos=None, **kw) -> IngestionPipeline:
    identity = identity or FakeIdentity({"acme.io": IdentityRecord(name="Acme", domain="acme.io")})
    logos = logos or FakeLogos({"acme.io"})
    return IngestionPipeline(
        extractor=extractor,
        classifier=RoleClassifier(),
        validator=IdentityValidator(identity, logos),
        **kw,
    )

