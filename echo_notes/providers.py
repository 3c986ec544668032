"""Construction of the speech-to-text / language model provider client."""

import logging
from typing import Optional

from openai import OpenAI

from .config import ProviderConfig

logger = logging.getLogger(__name__)


def create_openai_client(provider_config: ProviderConfig) -> Optional[OpenAI]:
    """
    Build the OpenAI client shared by both pipeline stages.

    Returns None when no usable API key is configured so the server can
    still start and report the missing setup. Retries are disabled; a
    failed call surfaces to the caller unchanged.
    """
    if not provider_config.is_configured():
        logger.warning("OPENAI_API_KEY is not configured; transcription and extraction are unavailable")
        return None

    return OpenAI(
        api_key=provider_config.api_key,
        base_url=provider_config.base_url or None,
        timeout=provider_config.timeout_seconds,
        max_retries=0,
    )
