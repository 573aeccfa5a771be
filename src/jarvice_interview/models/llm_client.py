"""
Chat client abstraction.

Provides a unified interface for the interview-preparation assistant.
Requests go to Gemini first, then to OpenAI when a key is configured, and
finally degrade to a fixed help message when both providers fail.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx
from pydantic import BaseModel, Field

from jarvice_interview.config import get_settings

logger = logging.getLogger(__name__)

ASSISTANT_PERSONA = """You are Jarvice AI, an intelligent assistant specialized in interview preparation and career guidance.
You help users with:
- Interview questions and answers
- Resume and CV advice
- Career development tips
- Mock interview practice
- Industry-specific guidance

Be helpful, professional, and encouraging. Keep responses concise but informative."""

FALLBACK_REPLY = """I'm currently experiencing technical difficulties with the AI service. However, I can help you with:
1. General interview preparation tips
2. Resume review guidance
3. Common interview questions for your role
4. Career development advice

Please try again in a moment, or feel free to ask me specific questions about your interview preparation."""

OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"


class GenerationConfig(BaseModel):
    """Sampling parameters shared by both providers."""

    temperature: float = Field(default=0.7, description="Sampling temperature")
    top_k: int = Field(default=40, description="Top-k sampling (Gemini only)")
    top_p: float = Field(default=0.95, description="Nucleus sampling")
    max_output_tokens: int = Field(default=1024, description="Maximum tokens to generate")


class ChatReply(BaseModel):
    """Reply from the chat assistant."""

    content: str = Field(..., description="Generated text content")
    provider: str = Field(default="gemini", description="gemini, openai or fallback")
    model: str = Field(default="", description="Model used for generation")
    raw_response: dict[str, Any] = Field(
        default_factory=dict,
        description="Raw response from the API",
    )


class ChatProviderError(Exception):
    """Exception raised when a chat provider call fails."""

    def __init__(self, message: str, provider: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class ChatClientBase(ABC):
    """Abstract base class for chat clients."""

    @abstractmethod
    async def send(self, message: str) -> ChatReply:
        """
        Generate an assistant reply to a user message.

        Args:
            message: User message.

        Returns:
            Generated reply.
        """
        ...


class ChatClient(ChatClientBase):
    """
    Gemini chat client with OpenAI fallback.

    Uses the Gemini ``generateContent`` REST endpoint with the assistant
    persona inlined in the prompt.
    """

    def __init__(
        self,
        gemini_api_key: str | None = None,
        gemini_api_url: str | None = None,
        openai_api_key: str | None = None,
        openai_model: str | None = None,
        timeout: float | None = None,
        generation: GenerationConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the chat client.

        Args:
            gemini_api_key: Gemini key (uses config if not provided).
            gemini_api_url: generateContent URL (uses config if not provided).
            openai_api_key: Optional fallback key (uses config if not provided).
            openai_model: Fallback model name.
            timeout: Request timeout in seconds.
            generation: Sampling parameters.
            http_client: Pre-built client, mainly for tests.
        """
        settings = get_settings()
        self._gemini_api_key = gemini_api_key or settings.gemini_api_key
        self._gemini_api_url = gemini_api_url or settings.gemini_api_url
        self._openai_api_key = openai_api_key or settings.openai_api_key
        self._openai_model = openai_model or settings.openai_model
        self._timeout = timeout or settings.chat_timeout
        self._generation = generation or GenerationConfig()
        self._client = http_client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def send(self, message: str) -> ChatReply:
        """
        Generate a reply, falling back provider by provider.

        Args:
            message: User message; must not be blank.

        Returns:
            The first successful provider reply, or the fallback help text.

        Raises:
            ValueError: If the message is blank.
        """
        message = (message or "").strip()
        if not message:
            raise ValueError("Message is required")

        try:
            return await self._call_gemini(message)
        except ChatProviderError as e:
            logger.error(f"Gemini API error: {e}")

        if self._openai_api_key:
            try:
                logger.info("Falling back to OpenAI API...")
                return await self._call_openai(message)
            except ChatProviderError as e:
                logger.error(f"OpenAI API also failed: {e}")

        logger.warning("Both APIs failed, returning fallback message")
        return ChatReply(content=FALLBACK_REPLY, provider="fallback")

    async def _call_gemini(self, message: str) -> ChatReply:
        if not self._gemini_api_key:
            raise ChatProviderError("Gemini API key not configured", provider="gemini")

        g = self._generation
        body = {
            "contents": [{"parts": [{"text": f"{ASSISTANT_PERSONA}\n\nUser message: {message}"}]}],
            "generationConfig": {
                "temperature": g.temperature,
                "topK": g.top_k,
                "topP": g.top_p,
                "maxOutputTokens": g.max_output_tokens,
            },
        }
        data = await self._post_json(
            "gemini",
            self._gemini_api_url,
            body,
            params={"key": self._gemini_api_key},
        )
        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise ChatProviderError("Invalid response from Gemini API", provider="gemini") from e

        logger.debug(f"Gemini response received: {text[:100]}...")
        return ChatReply(content=text, provider="gemini", model=_model_name(self._gemini_api_url), raw_response=data)

    async def _call_openai(self, message: str) -> ChatReply:
        g = self._generation
        body = {
            "model": self._openai_model,
            "messages": [
                {"role": "system", "content": ASSISTANT_PERSONA},
                {"role": "user", "content": message},
            ],
            "temperature": g.temperature,
            "max_tokens": g.max_output_tokens,
            "top_p": g.top_p,
        }
        data = await self._post_json(
            "openai",
            OPENAI_CHAT_URL,
            body,
            headers={"Authorization": f"Bearer {self._openai_api_key}"},
        )
        try:
            text = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ChatProviderError("Invalid response from OpenAI API", provider="openai") from e
        return ChatReply(content=text, provider="openai", model=self._openai_model, raw_response=data)

    async def _post_json(
        self,
        provider: str,
        url: str,
        body: dict[str, Any],
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        client = await self._get_client()
        try:
            response = await client.post(url, json=body, params=params, headers=headers, timeout=self._timeout)
        except httpx.HTTPError as e:
            raise ChatProviderError(f"{provider} request failed: {e}", provider=provider) from e

        if response.status_code >= 400:
            detail = _error_detail(response)
            if provider == "openai" and detail.get("code") == "insufficient_quota":
                raise ChatProviderError(
                    "OpenAI quota exceeded. Please check your billing details.",
                    provider=provider,
                    status_code=response.status_code,
                )
            raise ChatProviderError(
                f"{provider} returned HTTP {response.status_code}: {detail.get('message', '')}",
                provider=provider,
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ChatProviderError(f"{provider} returned non-JSON body", provider=provider) from e


def _error_detail(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    error = data.get("error") if isinstance(data, dict) else None
    return error if isinstance(error, dict) else {}


def _model_name(url: str) -> str:
    # .../models/gemini-2.0-flash:generateContent -> gemini-2.0-flash
    return url.rsplit("/", 1)[-1].split(":", 1)[0]
