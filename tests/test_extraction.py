import json

import pytest

from jobfeed.providers.base import ExtractionError, ProviderError
from jobfeed.services.extraction import (
    ExtractionAdapter, extract_country_code, map_location_type, normalize_candidate, normalize_text,
    normalize_translation_title,
)


class FakeChat:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.prompts = []

    async def complete(self, system, user, **kw):
        self.prompts.append(user)
        if self.error:
            raise self.error
        return self.content


class TestNormalizeText:
    def test_strips_markup(self):
        out = normalize_text("<p>We&apos;re hiring</p><script>x()</script><p>Remote</p>")
        assert "We're hiring" in out
        assert "x()" not in out
        assert "<p>" not in out

    def test_dashes_and_spaces(self):
        assert normalize_text("2018–2020 remote   role") == "2018-2020 remote role"

    def test_empty(self):
        assert normalize_text(None) == ""


class TestNormalizeCandidate:
    def test_full_payload(self):
        c = normalize_candidate({
            "title": "Backend  Engineer",
            "company": "Acme",
            "isRemote": "true",
            "location": "Remote, USA",
            "salaryMin": "150k",
            "salaryMax": 120000,
            "salaryCurrency": "€",
            "salaryPeriod": "annual",
            "skills": "Python, Go, python",
            "level": "senior",
            "type": "full-time",
            "contactEmail": "Jobs@Acme.io",
        }, raw_text="raw")
        assert c.title == "Backend Engineer"
        assert c.is_remote is True
        assert c.country == "US"
        assert (c.salary_min, c.salary_max) == (120000.0, 150000.0)
        assert c.salary_currency == "EUR"
        assert c.salary_period == "YEAR"
        assert c.skills == ["Python", "Go"]
        assert c.level == "SENIOR"
        assert c.employment_type == "FULL_TIME"
        assert c.contact_email == "jobs@acme.io"
        assert c.raw_text == "raw"

    def test_missing_title(self):
        assert normalize_candidate({"title": "null", "company": "Acme"}) is None
        assert normalize_candidate([]) is None

    def test_defaults_for_unknown_enums(self):
        c = normalize_candidate({"title": "Designer", "level": "wizard", "salaryCurrency": "XYZ"})
        assert c.level is None
        assert c.salary_currency == "USD"
        assert c.salary_period == "YEAR"
        assert c.skills == []


def test_translation_title():
    assert normalize_translation_title("Arabic Translator") == "English-Arabic Translator"
    assert normalize_translation_title("French-German Translator") == "French-German Translator"
    assert normalize_translation_title("Backend Engineer") == "Backend Engineer"


def test_country_code():
    assert extract_country_code("Berlin, Germany") == "DE"
    assert extract_country_code("Remote (UK)") == "GB"
    assert extract_country_code("Mars") is None


class TestLocationType:
    def test_remote_variants(self):
        assert map_location_type(True, None) == "REMOTE"
        assert map_location_type(True, "Worldwide") == "REMOTE"
        assert map_location_type(True, "US only") == "REMOTE_US"
        assert map_location_type(True, "Europe only") == "REMOTE_EU"
        assert map_location_type(True, "Germany") == "REMOTE_COUNTRY"

    def test_remote_words_without_flag(self):
        assert map_location_type(False, "Remote - anywhere") == "REMOTE"

    def test_hybrid_and_onsite(self):
        assert map_location_type(False, "Hybrid, London") == "HYBRID"
        assert map_location_type(False, "Berlin") == "ONSITE"
        assert map_location_type(False, None) == "ONSITE"


class TestExtractionAdapter:
    @pytest.mark.asyncio
    async def test_parses_fenced_json(self):
        body = json.dumps({"title": "Data Analyst", "isRemote": True, "contactEmail": "hr@acme.io"})
        chat = FakeChat(f"```json\n{body}\n```")
        c = await ExtractionAdapter(chat).extract("<b>Hiring</b> a data analyst")
        assert c.title == "Data Analyst"
        assert c.contact_email == "hr@acme.io"
        assert "<b>" not in chat.prompts[0]
        assert "data analyst" in chat.prompts[0]

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        with pytest.raises(ExtractionError):
            await ExtractionAdapter(FakeChat("sorry, no")).extract("Hiring")

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        with pytest.raises(ExtractionError):
            await ExtractionAdapter(FakeChat(error=ProviderError("down"))).extract("Hiring")

    @pytest.mark.asyncio
    async def test_blank_text_skips_model(self):
        chat = FakeChat("{}")
        assert await ExtractionAdapter(chat).extract("   ") is None
        assert chat.prompts == []
