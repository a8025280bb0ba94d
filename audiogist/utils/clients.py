"""API client resolution"""

from typing import Optional, Union

from openai import AsyncAzureOpenAI, AsyncOpenAI

from .. import config
from ..models import ProviderSettings
from .logging import get_logger

logger = get_logger(__name__)

OpenAIClient = Union[AsyncOpenAI, AsyncAzureOpenAI]

_default_client: Optional[OpenAIClient] = None


def _build_client(endpoint: Optional[str], api_key: Optional[str]) -> OpenAIClient:
    if endpoint:
        return AsyncAzureOpenAI(
            azure_endpoint=endpoint,
            api_key=api_key,
            api_version=config.AZURE_OPENAI_API_VERSION,
            timeout=300.0,  # 5 minute timeout for long transcriptions
            max_retries=0,  # failures propagate to the pipeline
        )
    return AsyncOpenAI(api_key=api_key, timeout=300.0, max_retries=0)


def get_default_client() -> OpenAIClient:
    """Shared client built from configuration on first use"""
    global _default_client
    if _default_client is None:
        if config.AZURE_OPENAI_ENDPOINT:
            _default_client = _build_client(config.AZURE_OPENAI_ENDPOINT, config.AZURE_OPENAI_API_KEY)
            logger.info(f"Azure OpenAI client initialized for {config.AZURE_OPENAI_ENDPOINT}")
        else:
            _default_client = _build_client(None, config.OPENAI_API_KEY)
            logger.info("OpenAI client initialized")
    return _default_client


def resolve_openai_client(settings: Optional[ProviderSettings] = None) -> OpenAIClient:
    """
    Pick the client a capability call should use.

    Without an endpoint or key override the shared client is returned;
    otherwise a client is built for the override, with the configured
    value filling whichever of the two was left unset.
    """
    if settings is None or not settings.has_client_override():
        return get_default_client()

    endpoint = settings.endpoint or config.AZURE_OPENAI_ENDPOINT
    api_key = settings.api_key or config.AZURE_OPENAI_API_KEY or config.OPENAI_API_KEY
    logger.info(f"Using custom client settings - Endpoint: {endpoint or 'api.openai.com'}")
    return _build_client(endpoint, api_key)


def resolve_model(override: Optional[str], default: str) -> str:
    """Deployment/model name to use for a call"""
    if override and override.strip():
        return override.strip()
    return default
