# jobfeed/providers/identity.py
import logging

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .base import IdentityService, IdentityServiceError
from ..config import settings
from ..schemas import IdentityRecord

logger = logging.getLogger(__name__)


def map_company_size(size: str | None) -> str | None:
    """'11-50' / '51-200 employees' -> size class by the lower bound."""
    if not size:
        return None
    digits = ""
    for ch in str(size).replace(",", "").strip():
        if ch.isdigit():
            digits += ch
        elif digits:
            break
    if not digits:
        return None
    n = int(digits)
    if n <= 10:
        return "STARTUP"
    if n <= 50:
        return "SMALL"
    if n <= 200:
        return "MEDIUM"
    if n <= 1000:
        return "LARGE"
    return "ENTERPRISE"


def _headquarters(geo: dict) -> str | None:
    parts = [geo.get("city"), geo.get("state"), geo.get("country")]
    parts = [p for p in parts if p]
    return ", ".join(parts) if parts else None


def _linkedin(data: dict) -> str | None:
    li = data.get("linkedin")
    if isinstance(li, dict):
        li = li.get("handle")
    if not li:
        return None
    li = str(li)
    return li if li.startswith("http") else f"https://www.linkedin.com/{li.lstrip('/')}"


def parse_company(data: dict) -> IdentityRecord:
    metrics = data.get("metrics") or {}
    category = data.get("category") or {}
    return IdentityRecord(
        name=data.get("name") or data.get("organization"),
        domain=data.get("domain"),
        logo_url=data.get("logo") or None,
        description=data.get("description") or None,
        industry=category.get("industry") or data.get("industry"),
        size=map_company_size(metrics.get("employees") or data.get("headcount") or data.get("size")),
        headquarters=_headquarters(data.get("geo") or data),
        linkedin_url=_linkedin(data),
    )


class HunterIdentityService(IdentityService):
    """Company lookup by domain against Hunter's company-enrichment endpoint."""

    def __init__(self, api_key: str | None = None, url: str | None = None, timeout: float | None = None):
        self.api_key = api_key or settings.HUNTER_API_KEY
        self.url = url or settings.IDENTITY_API_URL
        self.timeout = timeout or settings.IDENTITY_TIMEOUT

    @retry(
        wait=wait_exponential(min=1, max=4),
        stop=stop_after_attempt(2),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _fetch(self, domain: str) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.get(self.url, params={"domain": domain, "api_key": self.api_key})

    async def lookup(self, domain: str) -> IdentityRecord | None:
        if not self.api_key:
            raise IdentityServiceError("HUNTER_API_KEY is not configured")
        try:
            r = await self._fetch(domain)
        except httpx.HTTPError as e:
            raise IdentityServiceError(f"identity lookup for {domain} failed: {e}") from e

        if r.status_code in (404, 422):
            logger.info("[identity] unknown domain: %s", domain)
            return None
        if r.status_code != 200:
            raise IdentityServiceError(f"identity lookup for {domain}: HTTP {r.status_code}")

        try:
            body = r.json()
        except ValueError as e:
            raise IdentityServiceError(f"identity lookup for {domain}: response is not JSON") from e
        data = body.get("data") if isinstance(body, dict) else body
        if data is not None and not isinstance(data, dict):
            raise IdentityServiceError(f"identity lookup for {domain}: unexpected response shape")
        if not data or not (data.get("name") or data.get("organization")):
            return None
        return parse_company(data)
