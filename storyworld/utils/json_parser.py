"""JSON extraction utilities for parsing collaborator responses."""

import json
import logging
import re
from typing import Any

from storyworld.utils.exceptions import JSONParseError

logger = logging.getLogger(__name__)

_THINK_BLOCK = re.compile(r"<think>.*?</think>", re.DOTALL)
_THINK_TAG = re.compile(r"</?think>")


def _try_parse_json(json_str: str) -> dict[str, Any] | list[Any] | None:
    """Try to parse a string as JSON.

    Args:
        json_str: String to parse.

    Returns:
        Parsed JSON or None if parsing fails.
    """
    try:
        parsed: dict[str, Any] | list[Any] = json.loads(json_str.strip())
        return parsed
    except json.JSONDecodeError as e:
        logger.debug("try_parse failed: %s (input preview: %.100s...)", e, json_str)
        return None


def _close_truncated(text: str) -> dict[str, Any] | list[Any] | None:
    """Close unbalanced braces/brackets of a truncated JSON document and parse it."""
    open_braces = text.count("{") - text.count("}")
    open_brackets = text.count("[") - text.count("]")
    if open_braces <= 0 and open_brackets <= 0:
        return None

    repaired = text.rstrip(",: \n\t")
    if (repaired.count('"') - repaired.count('\\"')) % 2 == 1:
        repaired += '"'
    repaired += "]" * max(0, open_brackets) + "}" * max(0, open_braces)
    result = _try_parse_json(repaired)
    if result is not None:
        logger.info("Repaired truncated JSON with brace closing")
    return result


def clean_llm_text(text: str) -> str:
    """Clean collaborator output text by removing thinking tags and other artifacts.

    Args:
        text: Raw text from the model.

    Returns:
        Cleaned text suitable for display.
    """
    if not text:
        return text
    cleaned = _THINK_BLOCK.sub("", text)
    cleaned = _THINK_TAG.sub("", cleaned)
    cleaned = re.sub(r"<\|.*?\|>", "", cleaned)  # Special tokens like <|endoftext|>
    cleaned = re.sub(r"\n{3,}", "\n\n", cleaned)
    return cleaned.strip()


def extract_json(
    response: str,
    strict: bool = True,
) -> dict[str, Any] | list[Any] | None:
    """Extract a JSON object or array from a collaborator response.

    Tries multiple extraction strategies in order:
    1. ```json code block
    2. ``` code block (without language marker)
    3. Raw JSON object {...} or array [...]
    4. Repair of a truncated object/array

    Args:
        response: The response text
        strict: If True (default), raises JSONParseError on failure.
                If False, returns None on failure.

    Returns:
        Parsed JSON (dict or list), or None only if strict=False and parsing fails.

    Raises:
        JSONParseError: If strict=True and no valid JSON could be extracted.
    """
    response = _THINK_TAG.sub("", _THINK_BLOCK.sub("", response or ""))

    for pattern in (r"```json\s*(.*?)\s*```", r"```\s*(.*?)\s*```"):
        match = re.search(pattern, response, re.DOTALL)
        if match:
            result = _try_parse_json(match.group(1))
            if result is not None:
                return result
            logger.debug("Found code block but failed to parse")

    for pattern in (r"(\{[\s\S]*\})", r"(\[[\s\S]*\])"):
        match = re.search(pattern, response)
        if match:
            result = _try_parse_json(match.group(1))
            if result is not None:
                return result
            logger.debug("Found raw JSON but failed to parse")

    stripped = response.strip()
    if stripped.startswith(("{", "[")):
        result = _close_truncated(stripped)
        if result is not None:
            return result

    error_msg = f"No valid JSON found in response. Response preview: {response[:200]}..."
    if strict:
        logger.error(error_msg)
        raise JSONParseError(
            error_msg,
            response_preview=response[:500],
            expected_type="dict or list",
        )
    logger.debug(error_msg)
    return None
