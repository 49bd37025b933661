"""
LLM Completion Client

OpenAI-compatible chat completion wrapped as the engine's ``(prompt) -> text``
callable.
"""
from __future__ import annotations

import logging
import os
import time
from typing import Optional

from openai import OpenAI

from deal_engine.config import AISettings


logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a senior financial analyst at a top-tier investment bank specializing "
    "in M&A financial modeling. Answer with Excel formulas in the requested JSON shape."
)


class OpenAICompletionClient:
    """Callable completion client backed by the OpenAI SDK."""

    def __init__(self, settings: AISettings, client: Optional[OpenAI] = None):
        self.settings = settings
        if client is None:
            api_key = os.getenv(settings.api_key_env)
            if not api_key:
                raise RuntimeError(
                    f"AI is enabled but no API key found in ${settings.api_key_env}"
                )
            client_config = {"api_key": api_key, "timeout": settings.timeout}
            if settings.base_url:
                client_config["base_url"] = settings.base_url
            client = OpenAI(**client_config)
        self.client = client

    def __call__(self, prompt: str) -> str:
        start_time = time.time()
        response = self.client.chat.completions.create(
            model=self.settings.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            temperature=self.settings.temperature,
            max_tokens=self.settings.max_tokens,
        )
        logger.info("LLM response received (%.2fs)", time.time() - start_time)
        return response.choices[0].message.content or ""


def build_completion(settings: AISettings) -> Optional[OpenAICompletionClient]:
    """Completion client when AI is enabled and configured, else None."""
    if not settings.enabled:
        return None
    try:
        return OpenAICompletionClient(settings)
    except RuntimeError as e:
        logger.warning("%s; continuing with template formulas", e)
        return None
