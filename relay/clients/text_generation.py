from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol

import httpx
from langchain_core.messages import BaseMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from config.settings import Settings, get_settings
from relay.errors import UpstreamError


logger = logging.getLogger("prospect_demo.llm")

_WIRE_ROLES = {"system": "system", "human": "user", "ai": "assistant"}


class TextGenerator(Protocol):
    def generate(self, messages: List[BaseMessage]) -> str:
        ...


def to_wire_messages(messages: List[BaseMessage]) -> List[Dict[str, str]]:
    """Serialize LangChain messages into role-tagged chat-completion dicts."""
    return [
        {"role": _WIRE_ROLES.get(m.type, "user"), "content": str(m.content)}
        for m in messages
    ]


def _first_choice_text(data: Any) -> str:
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise UpstreamError(f"Malformed completion payload: {exc!r}") from exc
    if not isinstance(content, str):
        raise UpstreamError("Completion content is not text")
    return content


class OpenRouterChat:
    """Chat-completions client for OpenRouter (or any OpenAI-compatible endpoint)."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return self.settings.openrouter_base_url.rstrip("/") + "/chat/completions"

    def build_payload(self, messages: List[BaseMessage]) -> Dict[str, Any]:
        return {
            "model": self.settings.openrouter_model,
            "messages": to_wire_messages(messages),
        }

    def generate(self, messages: List[BaseMessage]) -> str:
        payload = self.build_payload(messages)
        headers = {"Authorization": f"Bearer {self.settings.openrouter_api_key or ''}"}
        try:
            with httpx.Client(
                timeout=self.settings.upstream_timeout, transport=self._transport
            ) as client:
                response = client.post(self.endpoint, json=payload, headers=headers)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Text generation call failed: {exc}") from exc
        except ValueError as exc:
            raise UpstreamError(f"Text generation returned invalid JSON: {exc}") from exc

        text = _first_choice_text(data)
        logger.info(
            "Completion received: model=%s messages=%s chars=%s",
            payload["model"],
            len(payload["messages"]),
            len(text),
        )
        return text


class GeminiChat:
    """Google Gemini through LangChain, for deployments without OpenRouter."""

    def __init__(self, settings: Optional[Settings] = None, llm: Any = None) -> None:
        self.settings = settings or get_settings()
        self._llm = llm

    def _build_llm(self) -> ChatGoogleGenerativeAI:
        if not self.settings.google_api_key:
            raise UpstreamError(
                "GOOGLE_API_KEY not set. Please configure it in environment or .env"
            )
        return ChatGoogleGenerativeAI(
            model=self.settings.gemini_model,
            google_api_key=self.settings.google_api_key,
            temperature=self.settings.temperature,
            top_p=self.settings.top_p,
        )

    def generate(self, messages: List[BaseMessage]) -> str:
        if self._llm is None:
            self._llm = self._build_llm()
        try:
            result = self._llm.invoke(messages)
        except Exception as exc:
            raise UpstreamError(f"Gemini call failed: {exc}") from exc
        content = getattr(result, "content", None)
        if not isinstance(content, str):
            raise UpstreamError("Gemini returned non-text content")
        return content


def build_text_generator(settings: Optional[Settings] = None) -> TextGenerator:
    settings = settings or get_settings()
    provider = (settings.llm_provider or "openrouter").lower()
    if provider == "gemini":
        return GeminiChat(settings)
    if provider != "openrouter":
        logger.warning("Unknown LLM_PROVIDER=%s, falling back to openrouter", provider)
    return OpenRouterChat(settings)
