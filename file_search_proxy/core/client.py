"""Shared clients used across the API."""
from functools import lru_cache

from google import genai
from google.genai import types

from file_search_proxy.core.config import get_settings
from file_search_proxy.core.exceptions import ConfigurationError


@lru_cache
def get_genai_client() -> genai.Client:
    """Instantiate and cache the Google GenAI client.

    The key is read once; a missing key is fatal for every caller that needs
    the remote API.
    """

    settings = get_settings()
    if not settings.gemini_api_key:
        raise ConfigurationError(
            "GEMINI_API_KEY is not configured. Please add it to your environment or .env file."
        )
    # HttpOptions.timeout is expressed in milliseconds
    http_options = types.HttpOptions(timeout=int(settings.request_timeout_seconds * 1000))
    return genai.Client(api_key=settings.gemini_api_key, http_options=http_options)
