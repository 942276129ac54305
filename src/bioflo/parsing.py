"""
Helpers for reading JSON objects out of model output.
"""

from __future__ import annotations

import json
from typing import Any


def parse_json_object(text: str) -> dict[str, Any]:
    """
    Parse the first JSON object found in model output.

    Handles markdown code fences and leading/trailing prose around the object.

    Raises:
        ValueError: if no JSON object can be decoded.
    """
    response_text = text.strip()
    if response_text.startswith("```json"):
        response_text = response_text[7:]
    elif response_text.startswith("```"):
        response_text = response_text[3:]
    if response_text.endswith("```"):
        response_text = response_text[:-3]
    response_text = response_text.strip()

    start = response_text.find("{")
    end = response_text.rfind("}")
    if start == -1 or end <= start:
        raise ValueError("no JSON object in model output")

    parsed = json.loads(response_text[start : end + 1])
    if not isinstance(parsed, dict):
        raise ValueError("model output is not a JSON object")
    return parsed
