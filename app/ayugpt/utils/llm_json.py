"""Utilities for robustly extracting JSON from LLM responses."""

from __future__ import annotations
import json
import re
from typing import Any

_JSON_BLOCK = re.compile(r"(\{.*\}|\[.*\])", re.DOTALL)
_FENCE_OPEN = re.compile(r"^```[A-Za-z0-9_-]*\s*")
_FENCE_CLOSE = re.compile(r"\s*```$")


def _strip_code_fences(text: str) -> str:
    t = text.strip()
    if t.startswith("```") and t.endswith("```"):
        t = _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", t))
    return t.strip()


def extract_json(text: str) -> Any:
    """
    Parse the first JSON object/array in an LLM reply, tolerating code fences
    and surrounding prose. Returns None when nothing parses.
    """
    if not text:
        return None
    t = _strip_code_fences(text)
    try:
        return json.loads(t)
    except ValueError:
        pass

    m = _JSON_BLOCK.search(t)
    if not m:
        return None
    try:
        return json.loads(m.group(1))
    except ValueError:
        return None


def string_list(data: Any, *, key: str | None = None, limit: int | None = None) -> list[str]:
    """
    Normalize a parsed reply into unique, non-empty strings.
    Accepts a bare array or an object holding the array under `key`.
    """
    if isinstance(data, dict) and key is not None:
        data = data.get(key)
    if not isinstance(data, list):
        return []
    out: list[str] = []
    for item in data:
        if not isinstance(item, str):
            continue
        s = item.strip()
        if s and s not in out:
            out.append(s)
        if limit is not None and len(out) >= limit:
            break
    return out
