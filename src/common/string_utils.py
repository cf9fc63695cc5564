"""String manipulation utilities."""

from typing import Optional


def truncate_for_logging(
    text: str, max_length: int = 1000, edge_length: int = 500
) -> str:
    """
    Truncate text for logging, showing beginning and end.

    Long text is truncated to show the first and last portions,
    with an ellipsis in the middle. Useful for logging large model
    responses where the beginning and end are most informative.

    Args:
        text: Text to truncate
        max_length: Maximum length before truncation is applied
        edge_length: Number of characters to show from start and end

    Returns:
        Truncated text with ellipsis if needed, or original text if short enough

    Examples:
        >>> truncate_for_logging("Hello", max_length=100)
        'Hello'
        >>> "..." in truncate_for_logging("x" * 2000, max_length=1000, edge_length=10)
        True
    """
    if len(text) <= max_length:
        return text
    return f"{text[:edge_length]}...\n...{text[-edge_length:]}"


def mask_api_key(api_key: Optional[str], visible: int = 4) -> str:
    """
    Mask an API key for log output, keeping only the last few characters.

    Examples:
        >>> mask_api_key("AIzaSyExample1234")
        '****1234'
        >>> mask_api_key(None)
        '<not set>'
    """
    if not api_key:
        return "<not set>"
    if len(api_key) <= visible:
        return "*" * len(api_key)
    return f"****{api_key[-visible:]}"
