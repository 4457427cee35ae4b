# jobfeed/providers/logo.py
import httpx

from .base import LogoFinder, LogoLookupError
from ..config import settings


class HttpLogoFinder(LogoFinder):
    """Asks a logo CDN whether it has an image for the domain."""

    def __init__(self, url_template: str | None = None, timeout: float | None = None):
        self.url_template = url_template or settings.LOGO_URL_TEMPLATE
        self.timeout = timeout or settings.LOGO_TIMEOUT

    def logo_url(self, domain: str) -> str:
        return self.url_template.format(domain=domain)

    async def has_logo(self, domain: str) -> bool:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                r = await client.get(self.logo_url(domain), headers={"User-Agent": "Mozilla/5.0"})
        except httpx.HTTPError as e:
            raise LogoLookupError(f"logo lookup for {domain} failed: {e}") from e
        if r.status_code >= 500:
            raise LogoLookupError(f"logo lookup for {domain}: HTTP {r.status_code}")
        return r.status_code == 200 and r.headers.get("content-type", "").startswith("image/")
