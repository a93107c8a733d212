from __future__ import annotations

from typing import TYPE_CHECKING

from openai import AsyncOpenAI

from app.utils.logging import get_logger, mask_secret

if TYPE_CHECKING:
    from app.config import Settings


def create_openai_client(settings: Settings) -> AsyncOpenAI:
    """Build the chat completion client for the configured OpenAI-compatible endpoint.

    Retries are disabled: a failed enrichment is dropped, not retried.
    """
    logger = get_logger(__name__)
    logger.debug(
        "Initializing OpenAI client (base_url=%s, key=%s)",
        settings.ai_base_url,
        mask_secret(settings.ai_api_key),
    )
    return AsyncOpenAI(
        api_key=settings.ai_api_key,
        base_url=settings.ai_base_url,
        timeout=settings.ai_timeout_seconds,
        max_retries=0,
    )
