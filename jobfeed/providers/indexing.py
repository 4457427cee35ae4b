# jobfeed/providers/indexing.py
import logging
from urllib.parse import urlparse

import httpx

from .base import NotificationError
from ..config import settings

logger = logging.getLogger(__name__)


def build_job_url(company_slug: str, job_slug: str) -> str:
    return f"{settings.SITE_URL.rstrip('/')}/company/{company_slug}/jobs/{job_slug}"


class IndexNowNotifier:
    """Pings IndexNow (Bing, Yandex, Seznam, Naver) with a freshly published job URL."""

    kind = "index"

    def __init__(self, key: str | None = None, endpoint: str | None = None):
        self.key = key or settings.INDEXNOW_KEY
        self.endpoint = endpoint or settings.INDEXNOW_ENDPOINT

    async def send(self, job_id: int, payload: str | None) -> None:
        if not self.key:
            logger.warning("[indexing] INDEXNOW_KEY not configured, skipping %s", payload)
            return
        if not payload:
            return
        site = settings.SITE_URL.rstrip("/")
        body = {
            "host": urlparse(site).netloc,
            "key": self.key,
            "keyLocation": f"{site}/{self.key}.txt",
            "urlList": [payload],
        }
        try:
            async with httpx.AsyncClient(timeout=15) as client:
                r = await client.post(self.endpoint, json=body)
        except httpx.HTTPError as e:
            raise NotificationError(f"IndexNow failed: {e}") from e
        if r.status_code not in (200, 202):
            raise NotificationError(f"IndexNow: HTTP {r.status_code} {r.text[:200]}")
        logger.info("[indexing] submitted %s", payload)


class AlertHookNotifier:
    """Hands a new job id to the alert matcher service."""

    kind = "alert"

    def __init__(self, url: str | None = None):
        self.url = url or settings.ALERTS_HOOK_URL

    async def send(self, job_id: int, payload: str | None) -> None:
        if not self.url:
            logger.debug("[alerts] ALERTS_HOOK_URL not configured, skipping job %s", job_id)
            return
        try:
            async with httpx.AsyncClient(timeout=15) as client:
                r = await client.post(self.url, json={"jobId": job_id})
                r.raise_for_status()
        except httpx.HTTPError as e:
            raise NotificationError(f"alert hook failed for job {job_id}: {e}") from e
