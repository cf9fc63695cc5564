"""Per-model request budgets and the cooldown derived from them."""

import logging
from typing import Dict

from common.schemas import ModelRateLimits

logger = logging.getLogger(__name__)

MODEL_SPECS: Dict[str, ModelRateLimits] = {
    # Flash series (high speed and rate limits)
    "gemini-1.5-flash": ModelRateLimits(
        requests_per_minute=15, requests_per_day=1500, tokens_per_minute=1_000_000
    ),
    "gemini-1.5-flash-8b": ModelRateLimits(
        requests_per_minute=15, requests_per_day=1500, tokens_per_minute=1_000_000
    ),
    # Pro series (lower limits)
    "gemini-1.5-pro": ModelRateLimits(
        requests_per_minute=2, requests_per_day=50, tokens_per_minute=32_000
    ),
    "gemini-1.0-pro": ModelRateLimits(
        requests_per_minute=15, requests_per_day=1500, tokens_per_minute=32_000
    ),
}

FAST_TIER_MARKER = "flash"
FAST_TIER_FALLBACK = "gemini-1.5-flash"
CONSERVATIVE_FALLBACK = "gemini-1.5-pro"

SAFETY_MARGIN = 1.1
LOW_TOKEN_BUDGET = 32_000
LOW_TOKEN_MIN_COOLDOWN_MS = 20_000
MIN_BATCH_COOLDOWN_MS = 5_000


def resolve_model_limits(model_id: str) -> ModelRateLimits:
    """
    Find the budget that applies to a model identifier.

    Lookup order: exact match, then the first table key contained in the id
    (dated or suffixed names such as ``gemini-1.5-flash-002``), then the
    flash profile for ids containing ``flash``, else the conservative pro
    profile. Never raises.

    Args:
        model_id: Model identifier as configured

    Returns:
        Matching ModelRateLimits
    """
    model_id = model_id or ""

    limits = MODEL_SPECS.get(model_id)
    if limits is not None:
        return limits

    for key, candidate in MODEL_SPECS.items():
        if key in model_id:
            return candidate

    if FAST_TIER_MARKER in model_id:
        return MODEL_SPECS[FAST_TIER_FALLBACK]

    logger.debug(f"No rate budget known for '{model_id}', using conservative profile")
    return MODEL_SPECS[CONSERVATIVE_FALLBACK]


def get_cooldown_ms(model_id: str) -> float:
    """
    Milliseconds to wait between requests to stay inside a model's budget.

    ``(60000 / rpm) * 1.1``; models with a token budget at or below 32k per
    minute never go below 20 seconds.

    Examples:
        >>> round(get_cooldown_ms("gemini-1.5-flash"))
        4400
        >>> round(get_cooldown_ms("gemini-1.5-pro"))
        33000
    """
    limits = resolve_model_limits(model_id)
    ms_per_request = (60000 / limits.requests_per_minute) * SAFETY_MARGIN

    if limits.tokens_per_minute <= LOW_TOKEN_BUDGET:
        return max(ms_per_request, LOW_TOKEN_MIN_COOLDOWN_MS)

    return ms_per_request


def get_batch_cooldown_ms(model_id: str, minimum_ms: float = 0) -> float:
    """
    Cooldown between batches.

    The model cooldown, never below MIN_BATCH_COOLDOWN_MS. ``minimum_ms`` can
    only raise that floor.
    """
    return max(get_cooldown_ms(model_id), MIN_BATCH_COOLDOWN_MS, minimum_ms)
