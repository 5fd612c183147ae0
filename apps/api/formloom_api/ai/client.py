"""OpenAI-compatible chat-completions client.

Single outbound POST per call, no retry. The provider's error message is
surfaced to the caller on non-2xx responses.

Environment Variables:
- OPENAI_API_KEY: provider API key (required for AI features)
- OPENAI_BASE_URL: API base URL (default https://api.openai.com/v1)
- OPENAI_MODEL: chat model (default gpt-4o-mini)
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from formloom_api.config.env import get_openai_api_key, get_openai_base_url, get_openai_model
from formloom_api.pricing.metering import TokenUsage

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 60.0


class AIError(Exception):
    """Base class for AI layer failures (mapped to HTTP 500)."""


class AIConfigurationError(AIError):
    """The provider is not configured (missing API key)."""


class AIProviderError(AIError):
    """Non-2xx response, transport failure or empty completion."""


class AIResponseParseError(AIError):
    """Completion content is not a JSON object."""


@dataclass
class ChatCompletion:
    content: str
    usage: Optional[TokenUsage] = None


class ChatCompletionClient:
    """Minimal chat-completions client over httpx.AsyncClient."""

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str,
        model: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self._transport = transport

    @classmethod
    def from_env(cls) -> "ChatCompletionClient":
        return cls(
            api_key=get_openai_api_key(),
            base_url=get_openai_base_url(),
            model=get_openai_model(),
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def ensure_configured(self) -> None:
        if not self.configured:
            raise AIConfigurationError("OpenAI API key not configured")

    async def complete(
        self,
        messages: list[dict[str, str]],
        *,
        temperature: float,
        max_tokens: int,
    ) -> ChatCompletion:
        """Send one chat completion request.

        Raises:
            AIConfigurationError: API key missing
            AIProviderError: transport failure, non-2xx status or empty content
        """
        self.ensure_configured()

        url = f"{self.base_url}/chat/completions"
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        body = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.post(
                    url, headers=headers, json=body, timeout=REQUEST_TIMEOUT_SECONDS
                )
        except httpx.HTTPError as e:
            logger.error(
                "AI provider request failed",
                extra={"event": "ai.provider.transport_error", "error": str(e)},
            )
            raise AIProviderError(f"OpenAI API request failed: {e}") from e

        if response.status_code >= 400:
            message = _provider_error_message(response)
            logger.warning(
                "AI provider returned error",
                extra={
                    "event": "ai.provider.error",
                    "status_code": response.status_code,
                    "error": message,
                },
            )
            raise AIProviderError(message)

        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            logger.warning(
                "AI provider returned a non-object body",
                extra={"event": "ai.provider.invalid_response", "status_code": response.status_code},
            )
            raise AIProviderError("OpenAI API returned an invalid response")

        choices = data.get("choices") or []
        content = None
        if isinstance(choices, list) and choices and isinstance(choices[0], dict):
            message = choices[0].get("message")
            if isinstance(message, dict):
                content = message.get("content")
        if not content:
            raise AIProviderError("No content from AI")

        usage = None
        raw_usage = data.get("usage")
        if isinstance(raw_usage, dict):
            usage = TokenUsage(
                prompt_tokens=int(raw_usage.get("prompt_tokens") or 0),
                completion_tokens=int(raw_usage.get("completion_tokens") or 0),
            )

        return ChatCompletion(content=content, usage=usage)


def _provider_error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return "OpenAI API error"
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return "OpenAI API error"


def get_ai_client() -> ChatCompletionClient:
    """FastAPI dependency (overridden in tests)."""
    return ChatCompletionClient.from_env()
