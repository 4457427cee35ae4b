from datetime import datetime, timedelta

from jobfeed.models import Company, Job
from jobfeed.services.dedup import (
    find_by_provenance, find_recent_same_title, find_similar_by_email_domain, jaccard, make_dedup_key,
    title_tokens,
)

T0 = datetime(2024, 3, 1, 12, 0, 0)


def _job(db, company, title, *, created_at=T0, domain="acme.io", n=1):
    job = Job(
        slug=f"job-{n}", title=title, company_id=company.id,
        source_id=f"post-{n}", source_url=f"https://example.com/p/{n}",
        apply_email_domain=domain, created_at=created_at,
    )
    db.add(job)
    db.commit()
    return job


def _company(db):
    c = Company(name="Acme", slug="acme")
    db.add(c)
    db.commit()
    return c


class TestSimilarity:
    def test_tokens_drop_short_words_and_punctuation(self):
        assert title_tokens("Sr. Backend Engineer (Go)") == {"backend", "engineer"}

    def test_jaccard(self):
        assert jaccard("Senior Backend Engineer", "senior backend engineer") == 1.0
        assert jaccard("Senior Backend Engineer", "Senior Backend Engineer Python Django") == 0.6
        assert jaccard("", "Engineer") == 0.0

    def test_jaccard_just_below_threshold(self):
        assert jaccard("Senior Backend Engineer", "Senior Backend Engineer Python Django Rust") == 0.5


class TestDedupKey:
    def test_same_bucket(self):
        day = datetime(1970, 1, 1) + timedelta(days=100)
        assert make_dedup_key(1, "Backend Engineer", day) == make_dedup_key(1, " backend  engineer ", day + timedelta(days=5))

    def test_bucket_boundary_and_company(self):
        day = datetime(1970, 1, 1) + timedelta(days=100)
        key = make_dedup_key(1, "Backend Engineer", day)
        assert key != make_dedup_key(1, "Backend Engineer", day + timedelta(days=10))
        assert key != make_dedup_key(2, "Backend Engineer", day)


class TestProvenance:
    def test_matches_id_or_url(self, db):
        job = _job(db, _company(db), "Backend Engineer")
        assert find_by_provenance(db, "post-1", None).id == job.id
        assert find_by_provenance(db, "other", "https://example.com/p/1").id == job.id
        assert find_by_provenance(db, "other", "https://example.com/p/2") is None
        assert find_by_provenance(db, None, None) is None


class TestEmailDomainWindow:
    def test_threshold_is_inclusive(self, db):
        _job(db, _company(db), "Senior Backend Engineer")
        hit = find_similar_by_email_domain(
            db, "acme.io", "Senior Backend Engineer Python Django", now=T0 + timedelta(days=1),
        )
        assert hit is not None

    def test_just_below_threshold(self, db):
        _job(db, _company(db), "Senior Backend Engineer")
        assert find_similar_by_email_domain(
            db, "acme.io", "Senior Backend Engineer Python Django Rust", now=T0 + timedelta(days=1),
        ) is None

    def test_dissimilar_title(self, db):
        _job(db, _company(db), "Senior Backend Engineer")
        assert find_similar_by_email_domain(db, "acme.io", "Product Designer", now=T0) is None

    def test_outside_window(self, db):
        _job(db, _company(db), "Senior Backend Engineer")
        assert find_similar_by_email_domain(
            db, "acme.io", "Senior Backend Engineer", now=T0 + timedelta(days=31),
        ) is None

    def test_other_domain(self, db):
        _job(db, _company(db), "Senior Backend Engineer")
        assert find_similar_by_email_domain(db, "globex.com", "Senior Backend Engineer", now=T0) is None


class TestSameTitleWindow:
    def test_inside_window(self, db):
        company = _company(db)
        _job(db, company, "Backend Engineer")
        assert find_recent_same_title(db, company.id, "backend engineer", now=T0 + timedelta(days=9))

    def test_internal_whitespace_is_ignored(self, db):
        company = _company(db)
        _job(db, company, "Backend Engineer")
        assert find_recent_same_title(db, company.id, "  Backend   ENGINEER ", now=T0 + timedelta(days=1))

    def test_outside_window(self, db):
        company = _company(db)
        _job(db, company, "Backend Engineer")
        assert find_recent_same_title(db, company.id, "Backend Engineer", now=T0 + timedelta(days=11)) is None

    def test_other_company(self, db):
        company = _company(db)
        _job(db, company, "Backend Engineer")
        assert find_recent_same_title(db, company.id + 1, "Backend Engineer", now=T0) is None
