"""Posthog client utility for OpenAI LLM analytics."""

import logging
from typing import Optional

import httpx
from openai import AsyncOpenAI
from posthog import Posthog
from posthog.ai.openai import AsyncOpenAI as PosthogAsyncOpenAI

from lecture_summary.utils.config import Settings
from lecture_summary.utils.llm_utils import chat_completions_base_url


def get_posthog_client(settings: Settings) -> Optional[Posthog]:
    """Create the Posthog client, or return None when analytics are not configured."""
    if not settings.posthog_api_key:
        logging.info("Posthog API key not configured. LLM analytics are disabled.")
        return None

    try:
        return Posthog(
            project_api_key=settings.posthog_api_key,
            host=settings.posthog_host,
        )
    except Exception as e:
        logging.error(f"Failed to initialize Posthog client: {e}")
        return None


def get_openai_client(
    settings: Settings,
    posthog_client: Optional[Posthog] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> AsyncOpenAI:
    """
    Build the chat-completions client for the configured Hugging Face router.

    When a Posthog client is given the returned client is the Posthog wrapper,
    which accepts the extra `posthog_*` keyword arguments on `create()`.
    SDK retries are disabled: a job makes exactly one summarization attempt.
    """
    kwargs = dict(
        api_key=settings.huggingface_token,
        base_url=chat_completions_base_url(settings.huggingface_api_url),
        max_retries=0,
        http_client=http_client,
    )
    if posthog_client is not None:
        return PosthogAsyncOpenAI(posthog_client=posthog_client, **kwargs)
    return AsyncOpenAI(**kwargs)


def shutdown_posthog(posthog_client: Optional[Posthog]) -> None:
    """Flush and shut down the Posthog client."""
    if posthog_client is None:
        return
    try:
        posthog_client.shutdown()
    except Exception as e:
        logging.error(f"Error shutting down Posthog client: {e}")
