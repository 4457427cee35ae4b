# jobfeed/providers/llm.py
import logging

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .base import ProviderError
from ..config import settings

logger = logging.getLogger(__name__)


class _Retryable(Exception):
    pass


class ChatClient:
    """Thin OpenAI-compatible chat-completions client."""

    def __init__(self, api_key: str | None = None, base_url: str | None = None,
                 model: str | None = None, timeout: float | None = None):
        self.api_key = api_key or settings.LLM_API_KEY
        self.base_url = (base_url or settings.LLM_BASE_URL).rstrip("/")
        self.model = model or settings.LLM_MODEL
        self.timeout = timeout or settings.LLM_TIMEOUT
        self.usage = {"calls": 0, "input_tokens": 0, "output_tokens": 0}

    @retry(
        wait=wait_exponential(min=1, max=8),
        stop=stop_after_attempt(3),
        retry=retry_if_exception_type((httpx.TransportError, _Retryable)),
        reraise=True,
    )
    async def _post(self, body: dict) -> dict:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.post(
                f"{self.base_url}/chat/completions",
                json=body,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
            if r.status_code == 429 or r.status_code >= 500:
                raise _Retryable(f"{r.status_code} from {self.base_url}")
            r.raise_for_status()
            return r.json()

    def _track(self, usage: dict | None) -> None:
        if not usage:
            return
        self.usage["calls"] += 1
        self.usage["input_tokens"] += usage.get("prompt_tokens", 0)
        self.usage["output_tokens"] += usage.get("completion_tokens", 0)
        logger.debug(
            "[llm] tokens %s in / %s out (cumulative %s calls)",
            usage.get("prompt_tokens"), usage.get("completion_tokens"), self.usage["calls"],
        )

    async def complete(self, system: str, user: str, *, json_mode: bool = False,
                       temperature: float = 0.0, max_tokens: int = 1000) -> str | None:
        if not self.api_key:
            raise ProviderError("LLM_API_KEY is not configured")
        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            body["response_format"] = {"type": "json_object"}
        try:
            data = await self._post(body)
        except (httpx.HTTPError, _Retryable) as e:
            raise ProviderError(f"chat completion failed: {e}") from e
        except ValueError as e:
            # 200 with a non-JSON body, usually a proxy error page
            raise ProviderError(f"chat completion returned invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ProviderError("chat completion returned an unexpected body")

        self._track(data.get("usage"))
        choices = data.get("choices") or []
        if not choices or not isinstance(choices[0], dict):
            return None
        message = choices[0].get("message")
        return message.get("content") if isinstance(message, dict) else None


DESCRIBE_PROMPT = (
    "You write short, factual company descriptions for a job board. "
    "Given a company name and its website domain, write 2-3 neutral sentences about what "
    "the company does. If you do not know the company, reply with exactly: UNKNOWN"
)


class ChatDescriptionWriter:
    def __init__(self, chat: ChatClient):
        self.chat = chat

    async def describe(self, name: str, domain: str) -> str | None:
        text = await self.chat.complete(
            DESCRIBE_PROMPT, f"Company: {name}\nWebsite: {domain}",
            temperature=0.3, max_tokens=300,
        )
        text = (text or "").strip()
        if not text or text.upper().startswith("UNKNOWN"):
            return None
        return text
