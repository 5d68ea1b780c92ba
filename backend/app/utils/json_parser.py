"""Shared utility for parsing JSON from LLM responses."""

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*(\{.*\})\s*```", re.DOTALL)


def _first_embedded_object(content: str) -> str | None:
    """Return the first balanced ``{...}`` span in *content*, if any."""
    start = content.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(content)):
            char = content[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return content[start:index + 1]
        start = content.find("{", start + 1)
    return None


def extract_json_object(content: str) -> dict[str, Any]:
    """Parse a JSON object from an LLM response, handling multiple formats.

    Handles three formats:
    1. Direct JSON: {"key": "value"}
    2. Markdown fence: ```json\\n{...}\\n```
    3. Embedded JSON: text before {"key": "value"} text after

    Raises:
        ValueError: if no JSON object can be recovered.
    """
    content = (content or "").strip()

    # Try parsing directly as JSON
    try:
        data = json.loads(content)
        if isinstance(data, dict):
            return data
    except json.JSONDecodeError:
        pass

    # Try extracting from markdown code fence
    match = _FENCE_RE.search(content)
    if match:
        try:
            data = json.loads(match.group(1))
            if isinstance(data, dict):
                return data
        except json.JSONDecodeError:
            pass

    # Try finding a JSON object anywhere in content
    embedded = _first_embedded_object(content)
    if embedded:
        try:
            data = json.loads(embedded)
            if isinstance(data, dict):
                return data
        except json.JSONDecodeError:
            pass

    logger.warning(f"Could not parse JSON from LLM response: {content[:200]}")
    raise ValueError("No JSON object found in LLM response")
