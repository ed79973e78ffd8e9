"""LLM client — Gemini structured-output calls.

The creative model is always asked for JSON against an explicit response
schema. This module owns the client singleton, the transient-error retry
policy, JSON parsing of the reply, and token/cost bookkeeping.

Error handling:
  - 400-level errors (bad request, auth, unknown model) are NOT retried.
  - 429 (rate limit), 5xx and connection/timeout errors ARE retried with
    exponential backoff.
  - Everything that escapes is an LLMError with a readable message.
"""

from __future__ import annotations

import json
import logging
import re
import threading
import time as _time
from typing import Any, Iterable, TypeVar

from pydantic import BaseModel, ValidationError
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

import config
from schemas.request import ImageAsset

logger = logging.getLogger(__name__)

PROVIDER = "google"

EMPTY_RESPONSE_MESSAGE = "Received an empty response from the AI. Please try refining your inputs."

# ---------------------------------------------------------------------------
# Cost tracking
# ---------------------------------------------------------------------------

# Text models, $ per 1M tokens (input, output). Longest prefix wins.
TEXT_PRICING: dict[str, tuple[float, float]] = {
    "gemini-2.5-pro": (1.25, 10.00),
    "gemini-2.5-flash-lite": (0.10, 0.40),
    "gemini-2.5-flash": (0.30, 2.50),
    "gemini-2.0-flash": (0.10, 0.40),
}
_UNKNOWN_TEXT_PRICE = (1.25, 10.00)

# Media models, $ per generated image / video.
MEDIA_PRICING: dict[str, float] = {
    "imagen-4.0-fast": 0.02,
    "imagen-4.0": 0.04,
    "veo-2.0": 2.80,
    "veo-3.0": 6.00,
}

_usage_lock = threading.Lock()
_usage_log: list[dict[str, Any]] = []


def _lookup_price(table: dict[str, Any], model: str) -> Any:
    matches = [prefix for prefix in table if model.startswith(prefix)]
    if not matches:
        return None
    return table[max(matches, key=len)]


def _append_usage(entry: dict[str, Any]):
    entry.setdefault("provider", PROVIDER)
    entry.setdefault("timestamp", _time.time())
    with _usage_lock:
        _usage_log.append(entry)


def _record_usage(model: str, input_tokens: int, output_tokens: int):
    """Log token usage for one text call."""
    price = _lookup_price(TEXT_PRICING, model)
    if price is None:
        logger.warning("Unpriced text model '%s'; estimating at %s per 1M tokens", model, _UNKNOWN_TEXT_PRICE)
        price = _UNKNOWN_TEXT_PRICE
    cost = (input_tokens * price[0] + output_tokens * price[1]) / 1_000_000
    _append_usage({
        "kind": "text",
        "model": model,
        "input_tokens": input_tokens,
        "output_tokens": output_tokens,
        "items": 0,
        "cost": cost,
    })
    logger.info("Usage [%s]: in=%d out=%d ($%.4f)", model, input_tokens, output_tokens, cost)


def record_media_usage(model: str, items: int = 1):
    """Log one successful image or video generation."""
    unit = _lookup_price(MEDIA_PRICING, model) or 0.0
    _append_usage({
        "kind": "media",
        "model": model,
        "input_tokens": 0,
        "output_tokens": 0,
        "items": items,
        "cost": unit * items,
    })
    logger.info("Usage [%s]: %d item(s) ($%.2f)", model, items, unit * items)


def reset_usage():
    with _usage_lock:
        _usage_log.clear()


def get_usage_log() -> list[dict[str, Any]]:
    with _usage_lock:
        return list(_usage_log)


def get_usage_summary() -> dict[str, Any]:
    """Totals across the process lifetime, plus cost per model."""
    entries = get_usage_log()
    by_model: dict[str, float] = {}
    for e in entries:
        by_model[e["model"]] = round(by_model.get(e["model"], 0.0) + e["cost"], 4)
    tokens_in = sum(e["input_tokens"] for e in entries)
    tokens_out = sum(e["output_tokens"] for e in entries)
    return {
        "calls": len(entries),
        "text_calls": sum(1 for e in entries if e["kind"] == "text"),
        "media_items": sum(e["items"] for e in entries),
        "total_input_tokens": tokens_in,
        "total_output_tokens": tokens_out,
        "total_tokens": tokens_in + tokens_out,
        "total_cost": round(sum(e["cost"] for e in entries), 4),
        "by_model": by_model,
    }


T = TypeVar("T", bound=BaseModel)


# ---------------------------------------------------------------------------
# Error helpers
# ---------------------------------------------------------------------------

class LLMError(Exception):
    """Clean error from a provider call with a human-readable message."""

    def __init__(self, message: str, provider: str = "", model: str = "", cause: Exception | None = None):
        self.provider = provider
        self.model = model
        self.cause = cause
        super().__init__(message)


def _status_code(exc: BaseException) -> int:
    code = getattr(exc, "code", None)
    if code is None:
        code = getattr(exc, "status_code", None)
    try:
        return int(code or 0)
    except (TypeError, ValueError):
        return 0


def is_retryable(exc: BaseException) -> bool:
    """Return True if the error is transient and worth retrying.

    We retry on:
      - Rate limits (429)
      - Server errors (500, 502, 503, 504)
      - Connection / timeout errors
    We do NOT retry on:
      - 400 Bad Request, 401/403 auth, 404 unknown model
      - LLMError (already classified) and schema validation errors
    """
    if isinstance(exc, (LLMError, ValidationError)):
        return False

    from google.genai import errors as genai_errors

    if isinstance(exc, genai_errors.ServerError):
        return True
    if isinstance(exc, genai_errors.ClientError):
        return _status_code(exc) == 429

    import httpx

    if isinstance(exc, (httpx.TransportError, ConnectionError, TimeoutError)):
        return True

    return False


def extract_error_message(exc: Exception, model: str) -> str:
    """Pull out a clean, human-readable error message from an API exception."""
    from google.genai import errors as genai_errors

    msg = str(exc)

    if isinstance(exc, genai_errors.ClientError):
        code = _status_code(exc)
        if code in (401, 403):
            return f"[{PROVIDER}] Authentication failed — check your GOOGLE_API_KEY."
        if code == 404:
            return f"[{PROVIDER}] Model '{model}' not found. Check the model name in config.py or .env."
        if code == 429:
            return f"[{PROVIDER}/{model}] Rate limit exceeded: {getattr(exc, 'message', '') or msg}"
        return f"[{PROVIDER}/{model}] Bad request: {getattr(exc, 'message', '') or msg}"

    if isinstance(exc, ValidationError):
        n_errors = exc.error_count()
        return (
            f"[{PROVIDER}/{model}] Response JSON didn't match the expected schema "
            f"({n_errors} validation error{'s' if n_errors != 1 else ''})."
        )

    # Generic fallback: truncate very long messages
    if len(msg) > 300:
        msg = msg[:300] + "..."
    return f"[{PROVIDER}/{model}] {msg}"


# ---------------------------------------------------------------------------
# Provider client (lazy-init singleton)
# ---------------------------------------------------------------------------

_google_client = None
_client_lock = threading.Lock()


def get_google_client():
    global _google_client
    with _client_lock:
        if _google_client is None:
            if not config.GOOGLE_API_KEY:
                raise LLMError(
                    "GOOGLE_API_KEY is not set. Add it to your .env file.",
                    provider=PROVIDER,
                )
            from google import genai
            _google_client = genai.Client(api_key=config.GOOGLE_API_KEY)
        return _google_client


def reset_google_client():
    """Drop the cached client (after a key change, or between tests)."""
    global _google_client
    with _client_lock:
        _google_client = None


def image_part(asset: ImageAsset):
    """Convert an uploaded image into an inline-data content part."""
    from google.genai import types

    return types.Part.from_bytes(data=asset.data, mime_type=asset.mime_type)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

@retry(
    retry=retry_if_exception(is_retryable),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=30),
    reraise=True,
)
def call_gemini_json(
    prompt: str,
    response_schema: dict[str, Any],
    images: Iterable[ImageAsset] = (),
    model: str | None = None,
    temperature: float | None = None,
) -> str:
    """Call Gemini in JSON mode and return the raw response text.

    Retries on transient errors (rate limits, server errors).
    Raises LLMError immediately for bad requests or auth errors.
    """
    from google.genai import types

    model = model or config.CREATIVE_MODEL
    temperature = config.CREATIVE_TEMPERATURE if temperature is None else temperature
    client = get_google_client()

    parts = [types.Part.from_text(text=prompt)]
    parts.extend(image_part(asset) for asset in images)

    gen_config = types.GenerateContentConfig(
        response_mime_type="application/json",
        response_schema=response_schema,
        temperature=temperature,
    )

    logger.info(
        "Gemini JSON call: model=%s, temp=%.1f, prompt=%d chars, images=%d",
        model, temperature, len(prompt), len(parts) - 1,
    )
    start = _time.time()
    try:
        response = client.models.generate_content(
            model=model,
            contents=types.Content(role="user", parts=parts),
            config=gen_config,
        )
    except Exception as exc:
        clean_msg = extract_error_message(exc, model)
        logger.error("Gemini call failed: %s", clean_msg)
        if is_retryable(exc):
            raise  # let tenacity retry
        raise LLMError(clean_msg, provider=PROVIDER, model=model, cause=exc) from exc

    content = response.text or ""
    logger.info("Gemini [%s]: %d chars in %.1fs", model, len(content), _time.time() - start)

    meta = getattr(response, "usage_metadata", None)
    if meta:
        in_tok = getattr(meta, "prompt_token_count", 0) or 0
        out_tok = getattr(meta, "candidates_token_count", 0) or 0
        _record_usage(model, in_tok, out_tok)
    return content


def _strip_fences(raw: str) -> str:
    cleaned = raw.strip()
    if cleaned.startswith("```"):
        # Remove opening fence (with optional language tag)
        cleaned = re.sub(r"^```\w*\n?", "", cleaned)
        cleaned = re.sub(r"\n?```\s*$", "", cleaned)
    return cleaned.strip()


def parse_json_response(raw: str, response_model: type[T], model: str = "") -> T:
    """Parse the model's reply into `response_model`.

    Empty text and malformed JSON raise LLMError; the malformed-JSON message
    always mentions JSON so callers can show a friendlier hint.
    """
    model = model or config.CREATIVE_MODEL
    cleaned = _strip_fences(raw or "")
    if not cleaned:
        raise LLMError(EMPTY_RESPONSE_MESSAGE, provider=PROVIDER, model=model)

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        logger.debug("Raw response snippet: %s", cleaned[:500])
        raise LLMError(
            f"[{PROVIDER}/{model}] Malformed JSON in response: {exc}",
            provider=PROVIDER,
            model=model,
            cause=exc,
        ) from exc

    try:
        return response_model.model_validate(data)
    except ValidationError as exc:
        for err in exc.errors():
            logger.error(
                "Schema validation error: field=%s type=%s msg=%s",
                " → ".join(str(loc) for loc in err["loc"]),
                err["type"],
                err["msg"],
            )
        raise LLMError(extract_error_message(exc, model), provider=PROVIDER, model=model, cause=exc) from exc


def call_gemini_structured(
    prompt: str,
    response_schema: dict[str, Any],
    response_model: type[T],
    images: Iterable[ImageAsset] = (),
    model: str | None = None,
    temperature: float | None = None,
) -> T:
    """Call Gemini with a response schema and parse into a Pydantic model."""
    model = model or config.CREATIVE_MODEL
    logger.info("LLM structured call: model=%s, schema=%s", model, response_model.__name__)
    raw = call_gemini_json(
        prompt,
        response_schema,
        images=list(images),
        model=model,
        temperature=temperature,
    )
    return parse_json_response(raw, response_model, model=model)
