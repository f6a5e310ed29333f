"""
External risk-provider clients.

A provider turns a prompt into free text. Nothing it returns is trusted: the
text goes through engine.ai_validator before it can replace a local result.
"""

from enum import Enum
from pathlib import Path
from typing import Optional

import requests
from jinja2 import Environment, FileSystemLoader, StrictUndefined
from loguru import logger
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from procurement_engine.config import Settings, settings as default_settings
from procurement_engine.errors import ProviderError


TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"

SYSTEM_PROMPT = (
    "You are an expert procurement risk analyst. Always respond with valid JSON only. "
    "Base your risk assessment strictly on the provided metrics."
)

_TRANSIENT = (requests.ConnectionError, requests.Timeout)


class Provider(str, Enum):
    LOCAL = "local"
    OPENAI = "openai"
    GEMINI = "gemini"


def _money(value) -> str:
    return f"${(value or 0):,.2f}"


_env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    undefined=StrictUndefined,
    trim_blocks=True,
    lstrip_blocks=True,
)
_env.filters["money"] = _money


def render_prompt(template_name: str, **context) -> str:
    return _env.get_template(template_name).render(**context)


class RiskProviderClient:
    """Narrow interface: prompt text in, completion text out."""

    provider: Provider = Provider.LOCAL
    retry_wait = wait_exponential(multiplier=1, min=1, max=8)

    def __init__(self, settings: Settings = default_settings):
        self.settings = settings
        self.session = requests.Session()

    def close(self) -> None:
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def _retrying(self) -> Retrying:
        """Transient transport errors are retried PROVIDER_MAX_RETRIES times."""
        return Retrying(
            retry=retry_if_exception_type(_TRANSIENT),
            stop=stop_after_attempt(self.settings.PROVIDER_MAX_RETRIES + 1),
            wait=self.retry_wait,
            reraise=True,
        )

    def complete(self, prompt: str) -> str:
        """Return the provider's text; raises ProviderError on transport, HTTP or empty responses."""
        try:
            text = self._retrying()(self._request, prompt)
        except requests.RequestException as e:
            raise ProviderError(f"{self.provider.value} request failed: {e}") from e
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise ProviderError(f"{self.provider.value} returned an unexpected payload: {e}") from e
        if not text or not text.strip():
            raise ProviderError(f"{self.provider.value} returned an empty response")
        return text

    def _request(self, prompt: str) -> str:
        raise NotImplementedError

    def _post(self, url: str, **kwargs) -> dict:
        response = self.session.post(url, timeout=self.settings.PROVIDER_TIMEOUT_SECONDS, **kwargs)
        response.raise_for_status()
        return response.json()


class OpenAIClient(RiskProviderClient):
    """Chat-completions endpoint."""

    provider = Provider.OPENAI

    def _request(self, prompt: str) -> str:
        payload = {
            "model": self.settings.OPENAI_MODEL,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "temperature": self.settings.OPENAI_TEMPERATURE,
            "max_tokens": self.settings.OPENAI_MAX_TOKENS,
        }
        data = self._post(
            self.settings.OPENAI_ENDPOINT,
            json=payload,
            headers={"Authorization": f"Bearer {self.settings.OPENAI_API_KEY}"},
        )
        return data["choices"][0]["message"]["content"]


class GeminiClient(RiskProviderClient):
    """generateContent endpoint."""

    provider = Provider.GEMINI

    def _request(self, prompt: str) -> str:
        url = f"{self.settings.GEMINI_BASE_URL}/{self.settings.GEMINI_MODEL}:generateContent"
        payload = {
            "contents": [{"parts": [{"text": f"{SYSTEM_PROMPT}\n\n{prompt}"}]}],
            "generationConfig": {
                "temperature": self.settings.OPENAI_TEMPERATURE,
                "maxOutputTokens": self.settings.OPENAI_MAX_TOKENS,
            },
        }
        data = self._post(url, json=payload, params={"key": self.settings.GEMINI_API_KEY})
        return data["candidates"][0]["content"]["parts"][0]["text"]


def build_client(provider: Provider, settings: Settings = default_settings) -> Optional[RiskProviderClient]:
    """Client for ``provider``, or None when it is local or has no API key configured."""
    provider = Provider(provider)
    if provider == Provider.OPENAI:
        if not settings.OPENAI_API_KEY:
            logger.warning("OpenAI provider selected but OPENAI_API_KEY is not set; using local scoring")
            return None
        return OpenAIClient(settings)
    if provider == Provider.GEMINI:
        if not settings.GEMINI_API_KEY:
            logger.warning("Gemini provider selected but GEMINI_API_KEY is not set; using local scoring")
            return None
        return GeminiClient(settings)
    return None
