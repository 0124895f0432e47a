"""
Pull a single JSON object out of a model reply.

Models wrap structured answers in prose or markdown fences. The extractor
prefers a ```json fenced block; otherwise it scans from the first "{" and
returns the first balanced span. String literals and backslash escapes are
tracked so braces inside strings do not count.

Usage:
    from company_ai.llm.json_extract import extract_json_object

    data = extract_json_object('Sure! {"healthScore": 72} Hope it helps.')
    # {"healthScore": 72}
"""

from __future__ import annotations

import json
import re
from typing import Any, Optional

from company_ai.exceptions import MalformedStructuredContent, NoStructuredContent

_FENCE_RE = re.compile(r"```(?:json|JSON)\s*\n?(.*?)```", re.DOTALL)


def find_balanced_object(text: str, start: int = 0) -> Optional[str]:
    """
    Return the first balanced {...} span at or after `start`.

    Returns None when there is no "{" at all.

    Raises:
        MalformedStructuredContent: If a "{" is found but never closed.
    """
    open_at = text.find("{", start)
    if open_at == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(open_at, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[open_at:i + 1]

    raise MalformedStructuredContent(
        "Unterminated JSON object in model response",
        raw_content=text,
    )


def extract_json_object(content: str) -> dict[str, Any]:
    """
    Extract and decode the JSON object embedded in `content`.

    Raises:
        NoStructuredContent: The reply contains no "{".
        MalformedStructuredContent: The object is unterminated, not valid
            JSON, or decodes to something other than an object.
    """
    fenced = _FENCE_RE.search(content)
    source = fenced.group(1) if fenced and "{" in fenced.group(1) else content

    span = find_balanced_object(source)
    if span is None:
        raise NoStructuredContent(
            "No JSON object found in model response", raw_content=content
        )

    try:
        data = json.loads(span)
    except json.JSONDecodeError as e:
        raise MalformedStructuredContent(
            f"Failed to parse JSON response: {e}", raw_content=content
        ) from e

    if not isinstance(data, dict):
        raise MalformedStructuredContent(
            "JSON response is not an object", raw_content=content
        )
    return data
