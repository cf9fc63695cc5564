"""Classification of provider failures into stop-the-run or skip-the-batch."""

import logging
from enum import Enum
from typing import Optional, Union

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    """How the orchestrator reacts to a failed batch."""

    DAILY_QUOTA = "daily_quota"
    RATE_LIMITED = "rate_limited"
    AUTH_FAILURE = "auth_failure"
    TRANSIENT = "transient"


FATAL_KINDS = frozenset(
    {ErrorKind.DAILY_QUOTA, ErrorKind.RATE_LIMITED, ErrorKind.AUTH_FAILURE}
)

RATE_LIMIT_MARKERS = ("429",)
AUTH_MARKERS = ("401", "api key", "unauthorized")


class ErrorClassification:
    """Result of classifying one provider failure."""

    def __init__(self, kind: ErrorKind, message: str):
        self.kind = kind
        self.message = message

    @property
    def is_fatal(self) -> bool:
        """Fatal failures stop the run; transient ones skip the batch."""
        return self.kind in FATAL_KINDS

    def __repr__(self) -> str:
        return f"ErrorClassification(kind={self.kind.value!r}, message={self.message!r})"


def is_daily_limit_error(error_message: Optional[str]) -> bool:
    """
    Check whether an error message reports an exhausted daily quota.

    Examples:
        >>> is_daily_limit_error("Quota exceeded for requests per day")
        True
        >>> is_daily_limit_error("429 Too Many Requests")
        False
    """
    if not error_message:
        return False
    msg = error_message.lower()
    return "quota" in msg and (
        "day" in msg or "daily" in msg or "resource exhausted" in msg
    )


def classify_error(error: Union[BaseException, str]) -> ErrorClassification:
    """
    Classify a provider failure by its message text.

    Precedence: daily quota, then HTTP 429, then authentication markers
    (401, "API Key", unauthorized). Anything else is transient.

    Args:
        error: The exception raised by the provider client, or its message

    Returns:
        ErrorClassification for the failure
    """
    message = str(error)
    lowered = message.lower()

    if is_daily_limit_error(message):
        kind = ErrorKind.DAILY_QUOTA
    elif any(marker in lowered for marker in RATE_LIMIT_MARKERS):
        kind = ErrorKind.RATE_LIMITED
    elif any(marker in lowered for marker in AUTH_MARKERS):
        kind = ErrorKind.AUTH_FAILURE
    else:
        kind = ErrorKind.TRANSIENT

    logger.debug(f"Classified provider error as {kind.value}: {message}")
    return ErrorClassification(kind, message)


def is_retryable_provider_error(error: Exception) -> bool:
    """Retry predicate: only transient classifications are worth another attempt."""
    return not classify_error(error).is_fatal


def build_user_message(
    classification: ErrorClassification, model: str, provider: str
) -> str:
    """
    Build the end-user facing text for a fatal classification.

    Args:
        classification: Result of classify_error
        model: Model the run was using
        provider: Provider the run was using

    Returns:
        Message naming the model or credentials the user has to act on
    """
    if classification.kind == ErrorKind.DAILY_QUOTA:
        return (
            f"DAILY QUOTA EXCEEDED for {model}. Please switch to a different model "
            f"in Settings and try again. Your progress was saved."
        )
    if classification.kind == ErrorKind.RATE_LIMITED:
        return (
            f"Rate Limit (RPM) exceeded for {model}. The run was stopped instead of "
            f"retrying against the limit. Try a slower model or a smaller batch size. "
            f"Your progress was saved."
        )
    if classification.kind == ErrorKind.AUTH_FAILURE:
        return (
            f"Authentication with {provider} failed: {classification.message}. "
            f"Please check the {provider} API key in Settings."
        )
    return f"Translation stopped due to API error: {classification.message}"
