from __future__ import annotations

import html
import json
import logging
import re
import unicodedata
from typing import Any, List, Optional

from bs4 import BeautifulSoup

from ..providers.base import ExtractionError, ProviderError
from ..providers.llm import ChatClient
from ..schemas import JobCandidate
from .emails import clean_email

logger = logging.getLogger(__name__)

SALARY_PERIODS = {"HOUR", "DAY", "WEEK", "MONTH", "YEAR", "ONE_TIME"}
CURRENCIES = {"USD", "EUR", "GBP", "CAD", "AUD", "CHF", "INR", "PLN", "SEK", "NZD", "SGD", "BRL", "MXN", "JPY"}
LEVELS = {"INTERN", "ENTRY", "JUNIOR", "MID", "SENIOR", "LEAD", "MANAGER", "DIRECTOR", "EXECUTIVE"}
EMPLOYMENT_TYPES = {"FULL_TIME", "PART_TIME", "CONTRACT", "FREELANCE", "INTERNSHIP"}

_PERIOD_ALIASES = {
    "HOURLY": "HOUR", "HR": "HOUR", "DAILY": "DAY", "WEEKLY": "WEEK", "MONTHLY": "MONTH",
    "ANNUAL": "YEAR", "ANNUALLY": "YEAR", "YEARLY": "YEAR", "ANNUM": "YEAR", "PROJECT": "ONE_TIME",
}
_CURRENCY_SYMBOLS = {"$": "USD", "US$": "USD", "€": "EUR", "£": "GBP", "C$": "CAD", "A$": "AUD", "₹": "INR"}

COUNTRY_CODES = {
    "usa": "US", "united states": "US", "us": "US",
    "uk": "GB", "united kingdom": "GB",
    "canada": "CA", "germany": "DE", "france": "FR",
    "netherlands": "NL", "spain": "ES", "italy": "IT",
    "australia": "AU", "india": "IN", "brazil": "BR",
    "mexico": "MX", "poland": "PL", "portugal": "PT",
    "ireland": "IE", "sweden": "SE", "switzerland": "CH",
}

_REMOTE_WORDS = re.compile(r"\bremote\b|\banywhere\b|\bworldwide\b|work\s+from\s+home|\bwfh\b", re.I)
_HYBRID_WORDS = re.compile(r"\bhybrid\b", re.I)

LANGUAGES = [
    "Arabic", "Bengali", "Bulgarian", "Chinese", "Croatian", "Czech", "Danish",
    "Dutch", "English", "Estonian", "Finnish", "French", "German", "Greek",
    "Hebrew", "Hindi", "Hungarian", "Indonesian", "Italian", "Japanese",
    "Korean", "Latvian", "Lithuanian", "Malay", "Norwegian", "Persian", "Polish",
    "Portuguese", "Romanian", "Russian", "Serbian", "Slovak", "Slovenian",
    "Spanish", "Swedish", "Thai", "Turkish", "Ukrainian", "Urdu", "Vietnamese",
]
TRANSLATION_ROLES = [
    "translator", "interpreter", "localization", "localizer", "transcriber",
    "subtitler", "captioner", "linguist", "language specialist",
]

EXTRACTION_PROMPT = """You are a job data extractor. Extract structured data from a social-media hiring post.

Return a valid JSON object with these fields:
- title: the job title in Title Case, max 60 characters, one main role only, without seniority words (string or null)
- company: the ACTUAL hiring company name (string or null). Never a generic term such as "Recruitment", "Staffing Agency", "Remote Hiring" or "Talent Acquisition".
- isRemote: whether remote work is mentioned (boolean)
- location: specific location if mentioned, e.g. "USA", "Europe", "Germany" (string or null)
- salaryMin, salaryMax: salary bounds as numbers (number or null)
- salaryCurrency: currency code like "USD", "EUR" (string or null)
- salaryPeriod: one of HOUR, DAY, WEEK, MONTH, YEAR, ONE_TIME (or null)
- skills: technical skills/technologies mentioned (string[])
- level: one of INTERN, ENTRY, JUNIOR, MID, SENIOR, LEAD, MANAGER, DIRECTOR, EXECUTIVE (or null)
- type: one of FULL_TIME, PART_TIME, CONTRACT, FREELANCE, INTERNSHIP (or null)
- benefits: benefits mentioned like "health insurance", "unlimited PTO" (string[])
- contactEmail: email address if mentioned (string or null)
- applyUrl: application URL if mentioned (string or null)

Be conservative - only extract what is explicitly stated.
Return ONLY valid JSON, no markdown or explanation."""


def _nfkc(s: str) -> str:
    return unicodedata.normalize("NFKC", s or "")

def normalize_text(t: str) -> str:
    """Plain text out of whatever the post scraper handed us."""
    t = t or ""
    if "<" in t and re.search(r"</?[a-zA-Z][^>]*>", t):
        soup = BeautifulSoup(t, "html.parser")
        for bad in soup(["script", "style", "noscript", "svg"]):
            bad.decompose()
        t = soup.get_text("\n")
    t = _nfkc(html.unescape(t))
    t = t.replace("\u2013", "-").replace("\u2014", "-").replace("\u2212", "-")
    t = t.replace("\u00A0", " ")
    t = re.sub(r"[ \t]+", " ", t)
    t = re.sub(r"\n\s*\n+", "\n\n", t)
    return t.strip()


def normalize_translation_title(title: str) -> str:
    """'Arabic Translator' -> 'English-Arabic Translator'."""
    if not title:
        return title
    lower = title.lower()
    if not any(role in lower for role in TRANSLATION_ROLES):
        return title
    for a in LANGUAGES:
        for b in LANGUAGES:
            if f"{a.lower()}-{b.lower()}" in lower or f"{a.lower()} to {b.lower()}" in lower:
                return title
    if "multilingual" in lower:
        return title
    for lang in LANGUAGES:
        if lang == "English":
            continue
        if lower.startswith(lang.lower() + " "):
            rest = lower[len(lang) + 1:]
            if any(role in rest for role in TRANSLATION_ROLES):
                return f"English-{title}"
    return title


def _str_or_none(val: Any) -> Optional[str]:
    if val is None:
        return None
    s = str(val).strip()
    if not s or s.lower() in {"null", "none", "n/a", "not specified"}:
        return None
    return s

def _str_list(val: Any) -> List[str]:
    if not val:
        return []
    if isinstance(val, str):
        val = re.split(r"[,;\n]", val)
    if not isinstance(val, (list, tuple)):
        return []
    out, seen = [], set()
    for item in val:
        s = _str_or_none(item)
        if s and s.lower() not in seen:
            seen.add(s.lower())
            out.append(s)
    return out

def _money(val: Any) -> Optional[float]:
    if val is None or isinstance(val, bool):
        return None
    if isinstance(val, (int, float)):
        return float(val) if val > 0 else None
    s = str(val).lower().replace(",", "").strip()
    s = re.sub(r"^[^\d]+", "", s)
    m = re.match(r"^(\d+(?:\.\d+)?)\s*(k)?", s)
    if not m:
        return None
    n = float(m.group(1)) * (1000 if m.group(2) else 1)
    return n if n > 0 else None

def _enum(val: Any, allowed: set, aliases: dict | None = None) -> Optional[str]:
    s = _str_or_none(val)
    if not s:
        return None
    s = re.sub(r"[\s-]+", "_", s.upper())
    if aliases and s in aliases:
        s = aliases[s]
    return s if s in allowed else None

def _currency(val: Any) -> str:
    s = _str_or_none(val)
    if not s:
        return "USD"
    if s in _CURRENCY_SYMBOLS:
        return _CURRENCY_SYMBOLS[s]
    s = s.upper()
    return s if s in CURRENCIES else "USD"

def _bool(val: Any) -> bool:
    if isinstance(val, str):
        return val.strip().lower() in {"true", "yes", "1"}
    return bool(val)


def normalize_candidate(data: dict, raw_text: str = "") -> JobCandidate | None:
    """Model JSON -> JobCandidate; None when there is no usable title."""
    if not isinstance(data, dict):
        return None
    title = _str_or_none(data.get("title"))
    if not title:
        return None
    title = normalize_translation_title(re.sub(r"\s+", " ", title))

    location = _str_or_none(data.get("location"))
    salary_min = _money(data.get("salaryMin"))
    salary_max = _money(data.get("salaryMax"))
    if salary_min and salary_max and salary_min > salary_max:
        salary_min, salary_max = salary_max, salary_min

    return JobCandidate(
        title=title,
        company=_str_or_none(data.get("company")),
        location=location,
        country=extract_country_code(location),
        is_remote=_bool(data.get("isRemote")),
        level=_enum(data.get("level"), LEVELS),
        employment_type=_enum(data.get("type"), EMPLOYMENT_TYPES),
        salary_min=salary_min,
        salary_max=salary_max,
        salary_currency=_currency(data.get("salaryCurrency")),
        salary_period=_enum(data.get("salaryPeriod"), SALARY_PERIODS, _PERIOD_ALIASES) or "YEAR",
        skills=_str_list(data.get("skills")),
        benefits=_str_list(data.get("benefits")),
        contact_email=clean_email(_str_or_none(data.get("contactEmail"))),
        apply_url=_str_or_none(data.get("applyUrl")),
        raw_text=raw_text,
    )


def extract_country_code(location: str | None) -> str | None:
    if not location:
        return None
    loc = location.lower()
    for key, code in COUNTRY_CODES.items():
        if re.search(rf"\b{re.escape(key)}\b", loc):
            return code
    return None


def map_location_type(is_remote: bool, location: str | None) -> str:
    loc = (location or "").lower().strip()
    if not is_remote:
        if loc and _REMOTE_WORDS.search(loc) and not _HYBRID_WORDS.search(loc):
            is_remote = True
        elif _HYBRID_WORDS.search(loc):
            return "HYBRID"
        else:
            return "ONSITE"
    if "us only" in loc or "usa only" in loc:
        return "REMOTE_US"
    if "eu only" in loc or "europe only" in loc:
        return "REMOTE_EU"
    if re.sub(r"[\W_]+", "", _REMOTE_WORDS.sub("", loc)):
        return "REMOTE_COUNTRY"
    return "REMOTE"


class ExtractionAdapter:
    """Raw post text -> JobCandidate through the extraction model."""

    def __init__(self, chat: ChatClient):
        self.chat = chat

    async def extract(self, text: str) -> JobCandidate | None:
        clean = normalize_text(text)
        if not clean:
            return None
        try:
            content = await self.chat.complete(
                EXTRACTION_PROMPT, clean[:12000], json_mode=True, temperature=0.1, max_tokens=2000,
            )
        except ProviderError as e:
            raise ExtractionError(str(e)) from e
        if not content:
            return None
        try:
            data = json.loads(_strip_fences(content))
        except ValueError as e:
            logger.warning("[extract] unparseable model output: %s", content[:200])
            raise ExtractionError(f"model returned invalid JSON: {e}") from e
        return normalize_candidate(data, raw_text=text)


def _strip_fences(content: str) -> str:
    content = content.strip()
    m = re.match(r"^```(?:json)?\s*(.*?)\s*```$", content, re.S)
    return m.group(1) if m else content
