"""Chat-completion gateway client and LLM output helpers."""

import json
import re
from functools import lru_cache
from typing import Any

from openai import APIConnectionError, APIStatusError, APITimeoutError, OpenAI

from app.core.config import Settings, get_settings
from app.core.logging import get_logger

logger = get_logger(__name__)


class GatewayError(Exception):
    """Raised when the chat-completion gateway does not return a usable response."""

    status_code = 500

    def __init__(self, message: str, upstream_status: int | None = None):
        super().__init__(message)
        self.message = message
        self.upstream_status = upstream_status


class GatewayRateLimitError(GatewayError):
    """Gateway answered 429."""

    status_code = 429


class GatewayCreditsError(GatewayError):
    """Gateway answered 402: the account has no credits left."""

    status_code = 402


RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again later."
CREDITS_MESSAGE = "AI credits depleted. Please add credits to continue."


def classify_gateway_status(status: int, failure_message: str) -> GatewayError:
    """Map a non-success gateway status to the matching error."""
    if status == 429:
        return GatewayRateLimitError(RATE_LIMIT_MESSAGE, upstream_status=status)
    if status == 402:
        return GatewayCreditsError(CREDITS_MESSAGE, upstream_status=status)
    return GatewayError(failure_message, upstream_status=status)


class ChatGateway:
    """Thin wrapper over an OpenAI-compatible chat-completion endpoint.

    One instance is built per application from settings and injected into
    handlers, so tests can substitute a fake with the same two methods.
    Retries are disabled: every failure is terminal for the invocation.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: float = 120.0,
        client: OpenAI | None = None,
    ):
        self._client = client or OpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )

    def complete(
        self,
        *,
        model: str,
        messages: list[dict[str, str]],
        json_response: bool = False,
        failure_message: str = "AI request failed",
    ) -> str:
        """
        Run one chat completion and return the assistant message content.

        Args:
            model: Gateway model identifier
            messages: Chat messages including the system turn
            json_response: Request a JSON-typed response
            failure_message: Message used for non-classified failures

        Returns:
            Assistant message content (may be empty)

        Raises:
            GatewayRateLimitError: Gateway answered 429
            GatewayCreditsError: Gateway answered 402
            GatewayError: Any other failure
        """
        kwargs: dict[str, Any] = {"model": model, "messages": messages}
        if json_response:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = self._client.chat.completions.create(**kwargs)
        except APIStatusError as e:
            logger.error(f"AI gateway error: {e.status_code} {e.message}")
            raise classify_gateway_status(e.status_code, failure_message) from e
        except (APIConnectionError, APITimeoutError) as e:
            logger.error(f"AI gateway unreachable: {e}")
            raise GatewayError(failure_message) from e

        if not response.choices:
            raise GatewayError(failure_message)
        return response.choices[0].message.content or ""


def build_gateway(settings: Settings) -> ChatGateway:
    """Build the gateway client from settings."""
    return ChatGateway(
        api_key=settings.AI_GATEWAY_API_KEY,
        base_url=settings.AI_GATEWAY_BASE_URL,
        timeout=settings.GATEWAY_TIMEOUT_SECONDS,
    )


@lru_cache(maxsize=1)
def get_gateway() -> ChatGateway:
    """
    Shared gateway client built from settings.

    Used as a FastAPI dependency; tests override it with a fake.
    """
    return build_gateway(get_settings())


def _strip_llm_fences(raw_output: str) -> str:
    """Strip markdown code fences from LLM output.

    Handles: ```json ... ```, ``` ... ```, leading/trailing whitespace.
    """
    cleaned = raw_output.strip()

    # Extract JSON from markdown code fences
    fence_match = re.search(r"```(?:json)?\s*\n?(.*?)```", cleaned, re.DOTALL)
    if fence_match:
        return fence_match.group(1).strip()

    # Fallback: strip leading/trailing fences without regex
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def parse_llm_json_dict(raw_output: str) -> dict:
    """
    Parse LLM output as a JSON object.

    The output is parsed as-is first; fences are stripped only when that
    fails, so fenced snippets inside string values survive.

    Args:
        raw_output: Raw string from LLM response

    Returns:
        Parsed dict from JSON

    Raises:
        json.JSONDecodeError: If JSON parsing fails after cleanup
        ValueError: If the JSON is not an object
    """
    try:
        parsed = json.loads(raw_output.strip())
    except json.JSONDecodeError:
        parsed = json.loads(_strip_llm_fences(raw_output))
    if not isinstance(parsed, dict):
        raise ValueError(f"Expected a JSON object, got {type(parsed).__name__}")
    return parsed
