"""LangChain ChatAnthropic wrapper for image + text generation calls."""

from __future__ import annotations

import logging
import time
from typing import Any, Protocol

from storylens.config import Settings, settings as default_settings
from storylens.errors import UpstreamGenerationError
from storylens.llm.model_router import get_model_for_task

logger = logging.getLogger(__name__)


class VisionModel(Protocol):
    """Opaque generation capability: prompt (+ optional image) in, text out."""

    async def complete(
        self,
        task: str,
        system: str,
        user: str,
        image_b64: str | None = None,
    ) -> str: ...


def _content_text(content: Any) -> str:
    """Flatten an AIMessage content (str or list of blocks) into plain text."""
    if isinstance(content, str):
        return content
    parts: list[str] = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


class AnthropicVisionModel:
    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or default_settings

    def model_id(self, task: str) -> str:
        return get_model_for_task(task, self.settings)

    async def complete(
        self,
        task: str,
        system: str,
        user: str,
        image_b64: str | None = None,
    ) -> str:
        if not self.settings.anthropic_api_key:
            logger.error("Generation call '%s' attempted without ANTHROPIC_API_KEY", task)
            raise UpstreamGenerationError("LLM not configured. Set ANTHROPIC_API_KEY in .env")

        from langchain_anthropic import ChatAnthropic
        from langchain_core.messages import HumanMessage, SystemMessage

        model_id = self.model_id(task)
        llm = ChatAnthropic(
            model=model_id,
            api_key=self.settings.anthropic_api_key,
            max_tokens=self.settings.llm_max_tokens,
        )

        content: list[dict[str, Any]] = [{"type": "text", "text": user}]
        if image_b64:
            content.append(
                {"type": "image_url", "image_url": {"url": f"data:image/jpeg;base64,{image_b64}"}}
            )
        messages = [SystemMessage(content=system), HumanMessage(content=content)]

        t0 = time.perf_counter()
        try:
            response = await llm.ainvoke(messages)
        except Exception as e:
            logger.error("Generation call '%s' (%s) failed: %s", task, model_id, e)
            raise UpstreamGenerationError(f"Generation call '{task}' failed") from e

        elapsed = (time.perf_counter() - t0) * 1000
        logger.info("Generation call '%s' (%s) completed in %.0fms", task, model_id, elapsed)
        return _content_text(response.content)
