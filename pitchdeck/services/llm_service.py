"""
LLM completion service: the one door every stage uses to reach a chat model.

Stages hand over LangChain messages plus a concrete model name and get plain
text back. Provider errors and timeouts surface as ExternalCallFailure so
each stage can decide whether that is fatal.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from pitchdeck.core.config import get_settings
from pitchdeck.core.exceptions import ExternalCallFailure, GraphConfigurationError
from pitchdeck.core.logging import get_logger

logger = get_logger(__name__)

ChatModelFactory = Callable[..., BaseChatModel]


def gemini_chat_model(
    model_name: str, temperature: float | None = None, max_tokens: int | None = None
) -> BaseChatModel:
    settings = get_settings()
    kwargs: dict = {"model": model_name, "google_api_key": settings.google_api_key}
    if temperature is not None:
        kwargs["temperature"] = temperature
    if max_tokens is not None:
        kwargs["max_output_tokens"] = max_tokens
    return ChatGoogleGenerativeAI(**kwargs)


class LLMService:
    def __init__(
        self,
        chat_model_factory: ChatModelFactory = gemini_chat_model,
        timeout_seconds: float | None = None,
    ) -> None:
        self._factory = chat_model_factory
        self._timeout = timeout_seconds if timeout_seconds is not None else get_settings().llm_timeout_seconds

    async def complete(
        self,
        messages: Sequence[BaseMessage],
        *,
        model_name: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Run one chat completion and return its text content."""
        if not model_name or not model_name.strip():
            raise GraphConfigurationError("a concrete model name is required for every LLM call")

        llm = self._factory(model_name=model_name, temperature=temperature, max_tokens=max_tokens)
        try:
            response = await asyncio.wait_for(llm.ainvoke(list(messages)), timeout=self._timeout)
        except TimeoutError as e:
            logger.warning("llm_call_timed_out", model=model_name, timeout=self._timeout)
            raise ExternalCallFailure(f"{model_name} timed out after {self._timeout}s") from e
        except Exception as e:
            logger.error("llm_call_failed", model=model_name, error=str(e))
            raise ExternalCallFailure(f"{model_name} call failed: {e}") from e

        content = response.content
        if isinstance(content, list):
            # Multi-part responses: keep the text parts in order.
            content = "".join(
                part if isinstance(part, str) else part.get("text", "")
                for part in content
            )
        return str(content).strip()
