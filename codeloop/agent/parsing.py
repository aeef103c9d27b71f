"""Structured model output parsing.

Fallback chain, first success wins:

1. strict JSON
2. JSON with markdown code fences stripped
3. the first balanced ``{...}`` substring
4. ``StructuredOutputError``
"""

import json
import re
from typing import Any

from codeloop.errors import StructuredOutputError

_FENCE_OPEN = re.compile(r"^```[\w-]*[ \t]*\n?")
_FENCE_CLOSE = re.compile(r"\n?```\s*$")


def strip_code_fences(text: str) -> str:
    """마크다운 코드 블록 제거 (```json ... ```)."""
    text = text.strip()
    if text.startswith("```"):
        text = _FENCE_OPEN.sub("", text)
        text = _FENCE_CLOSE.sub("", text)
    return text.strip()


def extract_balanced_braces(text: str) -> str | None:
    """첫 번째 '{'부터 짝이 맞는 '}'까지의 부분 문자열.

    JSON 문자열 리터럴 안의 중괄호는 세지 않는다.
    """
    start = text.find("{")
    if start < 0:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
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
                return text[start:i + 1]
    return None


def _loads_object(candidate: str) -> dict[str, Any] | None:
    try:
        value = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, dict) else None


def parse_structured_output(text: str) -> dict[str, Any]:
    """LLM 응답에서 JSON 객체 추출.

    Raises:
        StructuredOutputError: 어떤 단계에서도 JSON 객체를 얻지 못한 경우
    """
    if not text or not text.strip():
        raise StructuredOutputError("Model returned an empty response")

    candidates = [text.strip(), strip_code_fences(text)]
    braces = extract_balanced_braces(text)
    if braces is not None:
        candidates.append(braces)

    for candidate in candidates:
        parsed = _loads_object(candidate)
        if parsed is not None:
            return parsed

    raise StructuredOutputError(f"Could not parse JSON object from model output: {text[:200]}")
