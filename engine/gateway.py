from __future__ import annotations

import logging
from typing import Any, List, Optional

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from config.settings import get_settings
from engine.errors import ModelCallFailed


logger = logging.getLogger("perspectivology.gateway")


def build_llm() -> BaseChatModel:
    settings = get_settings()
    if not settings.google_api_key:
        message = "GOOGLE_API_KEY not set. Please configure it in environment or .env"
        logger.error("Model API error: %s", message)
        raise ModelCallFailed(message)

    return ChatGoogleGenerativeAI(
        model=settings.gemini_model,
        google_api_key=settings.google_api_key,
        temperature=settings.temperature,
        top_p=settings.top_p,
        max_output_tokens=settings.max_output_tokens,
        max_retries=0,
    )


def to_lc_messages(system_prompt: str, user_message: str) -> List[BaseMessage]:
    return [SystemMessage(content=system_prompt), HumanMessage(content=user_message)]


def _content_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    # Multi-part replies come back as a list of strings or {"type": "text"} blocks.
    parts = []
    for part in content or []:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)


def _error_detail(exc: Exception) -> str:
    for attr in ("message", "details"):
        detail = getattr(exc, attr, None)
        if detail:
            return str(detail)
    response = getattr(exc, "response", None)
    if response is not None:
        return str(getattr(response, "text", response))
    return str(exc)


class ModelGateway:
    """Single-turn access to the chat model: one system and one user message."""

    def __init__(self, llm: Optional[BaseChatModel] = None) -> None:
        self._llm = llm

    @property
    def llm(self) -> BaseChatModel:
        if self._llm is None:
            self._llm = build_llm()
        return self._llm

    def complete(self, system_prompt: str, user_message: str) -> str:
        llm = self.llm
        try:
            result = llm.invoke(to_lc_messages(system_prompt, user_message))
        except Exception as exc:
            detail = _error_detail(exc)
            logger.error("Model API error: %s", detail)
            raise ModelCallFailed(detail) from exc
        return _content_text(result.content)
