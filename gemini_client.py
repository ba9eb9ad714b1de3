from functools import lru_cache

import httpx
import requests
from google import genai
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception

import config

TRANSIENT_STATUS_CODES = {429, 500, 502, 503, 504}


@lru_cache(maxsize=1)
def get_client() -> genai.Client:
    """Shared Gemini client with a per-call timeout."""
    http_options = {'timeout': int(config.GEMINI_TIMEOUT_SECONDS * 1000)}
    if config.GEMINI_BASE_URL:
        # Using Replit's AI Integrations service for Gemini
        http_options['api_version'] = ''
        http_options['base_url'] = config.GEMINI_BASE_URL
    return genai.Client(api_key=config.GEMINI_API_KEY, http_options=http_options)


def is_rate_limit_error(exception: BaseException) -> bool:
    """Check if the exception is a rate limit or quota violation error."""
    error_msg = str(exception)
    return (
        "429" in error_msg
        or "RATELIMIT_EXCEEDED" in error_msg
        or "quota" in error_msg.lower()
        or "rate limit" in error_msg.lower()
        or (hasattr(exception, 'status') and exception.status == 429)
    )


def is_transient_error(exception: BaseException) -> bool:
    """Network-class failures worth one more attempt. Never parse or validation errors."""
    if isinstance(exception, (httpx.TransportError, requests.ConnectionError, requests.Timeout, TimeoutError)):
        return True
    if getattr(exception, 'code', None) in TRANSIENT_STATUS_CODES:
        return True
    return is_rate_limit_error(exception)


# One bounded retry per external call
transient_retry = retry(
    stop=stop_after_attempt(2),
    wait=wait_exponential(multiplier=1, min=1, max=4),
    retry=retry_if_exception(is_transient_error),
    reraise=True
)
