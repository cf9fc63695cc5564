"""Utilities for handling generative model responses."""

import json
import logging
import re
from typing import Any, Dict

logger = logging.getLogger(__name__)


class ModelJSONParsingError(Exception):
    """
    Exception for model output that cannot be parsed as a JSON object.

    This is a transient error: the same batch may come back well formed on
    a later attempt, so it never stops a translation run on its own.
    """

    pass


def clean_markdown_code_fences(response: str) -> str:
    """
    Remove markdown code fences from a model response.

    Models often wrap JSON responses in markdown code blocks like:
    ```json
    {...}
    ```

    This function removes those fences and language tags.

    Args:
        response: Raw response text from the model

    Returns:
        Cleaned response without markdown fences

    Examples:
        >>> clean_markdown_code_fences('```json\\n{"key": "value"}\\n```')
        '{"key": "value"}'
        >>> clean_markdown_code_fences('{"key": "value"}')
        '{"key": "value"}'
    """
    cleaned_response = response.strip()

    if cleaned_response.startswith("```"):
        lines = cleaned_response.split("\n")
        first_line = lines[0][3:].strip()
        lines = lines[1:]  # Remove opening fence

        # Content on the fence line itself (```{"a": 1}```)
        if first_line and first_line.lower() != "json":
            lines.insert(0, first_line)

        if lines and lines[-1].strip().endswith("```"):
            last_line = lines[-1].strip()[:-3]
            lines = lines[:-1]
            if last_line.strip():
                lines.append(last_line)

        cleaned_response = "\n".join(lines).strip()

    # Remove language tag (e.g., "json") if present after opening fence
    if cleaned_response.startswith("json"):
        cleaned_response = cleaned_response[4:].strip()

    return cleaned_response


def parse_json_object(text: str) -> Dict[str, Any]:
    """
    Parse a JSON object with error recovery for common model formatting issues.

    Strategies, in order:
    - Standard JSON parsing
    - Extract the outermost ``{...}`` when the model added commentary
    - Drop trailing commas before a closing brace
    - Escape invalid backslash sequences

    Args:
        text: JSON text to parse

    Returns:
        Parsed JSON object

    Raises:
        ModelJSONParsingError: If all strategies fail or the result is not an object
    """
    candidates = [text]

    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start and (start, end) != (0, len(text) - 1):
        candidates.append(text[start : end + 1])

    last_error = None
    for candidate in candidates:
        for fixer in (_no_fix, _strip_trailing_commas, _fix_invalid_escapes):
            try:
                parsed = json.loads(fixer(candidate))
            except json.JSONDecodeError as e:
                last_error = e
                logger.debug(f"JSON strategy {fixer.__name__} failed: {e}")
                continue

            if not isinstance(parsed, dict):
                raise ModelJSONParsingError(
                    f"Expected JSON object, got {type(parsed).__name__}"
                )
            return parsed

    raise ModelJSONParsingError(
        f"Failed to parse JSON after trying all recovery strategies: {last_error}"
    )


def _no_fix(text: str) -> str:
    return text


def _strip_trailing_commas(text: str) -> str:
    return re.sub(r",\s*([}\]])", r"\1", text)


def _fix_invalid_escapes(text: str) -> str:
    valid_escapes = {'"', "\\", "/", "b", "f", "n", "r", "t", "u"}

    def fix_escape(match):
        char = match.group(1)
        if char in valid_escapes:
            return match.group(0)
        return "\\\\" + char

    return re.sub(r"\\(.)", fix_escape, text)
