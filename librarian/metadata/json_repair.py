"""Repair helpers for JSON-ish model output.

The pipeline is applied in one order everywhere:
strip code fences -> extract the object -> balance brackets ->
strip trailing commas -> (on failure) quote bare keys -> parse.
"""
import json
import re
from typing import Any, Dict, Iterable, Optional

from pydantic.alias_generators import to_camel

_PAIRS = {"{": "}", "[": "]"}
_CODE_FENCE = re.compile(r"```(?:json|JSON)?")
_TRAILING_COMMA = re.compile(r",\s*([}\]])")
_BARE_KEY = re.compile(r"([{,]\s*)([A-Za-z_][A-Za-z0-9_]*)(\s*:)")
_STRING = r'"(?:[^"\\]|\\.)*"'
_DANGLING_KEY_WITH_COLON = re.compile(rf"(?:,\s*)?{_STRING}\s*:\s*$")
_DANGLING_KEY = re.compile(rf"([{{,])\s*{_STRING}\s*$")


def strip_code_fences(text: str) -> str:
    return _CODE_FENCE.sub("", text or "").strip()


def extract_json_block(text: str) -> Optional[str]:
    """From the first ``{`` to its matching ``}``, or to the end when truncated."""
    start = text.find("{")
    if start == -1:
        return None
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        ch = text[index]
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
                return text[start:index + 1]
    return text[start:]


def balance_brackets(text: str) -> str:
    """
    Close whatever a truncated object left open.

    An unterminated string is closed, a dangling key (with or without its
    colon) or trailing comma is dropped, then the missing ``]``/``}`` are
    appended in nesting order. Brackets inside strings are ignored.
    """
    stack = []
    in_string = False
    escaped = False
    for ch in text:
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
        elif ch in _PAIRS:
            stack.append(ch)
        elif ch in "}]" and stack and _PAIRS[stack[-1]] == ch:
            stack.pop()

    repaired = text
    if in_string:
        if escaped:
            repaired = repaired[:-1]
        repaired += '"'

    repaired = repaired.rstrip()
    if stack:
        repaired = _DANGLING_KEY_WITH_COLON.sub("", repaired)
        if stack[-1] == "{":
            repaired = _DANGLING_KEY.sub(lambda m: "{" if m.group(1) == "{" else "", repaired)
        repaired = repaired.rstrip().rstrip(",").rstrip()
    return repaired + "".join(_PAIRS[ch] for ch in reversed(stack))


def strip_trailing_commas(text: str) -> str:
    return _TRAILING_COMMA.sub(r"\1", text)


def quote_bare_keys(text: str) -> str:
    return _BARE_KEY.sub(r'\1"\2"\3', text)


def repair_json(text: str) -> Optional[str]:
    """Best-effort repaired JSON text for the first object in ``text``, or None."""
    block = extract_json_block(strip_code_fences(text))
    if block is None:
        return None
    return strip_trailing_commas(balance_brackets(block))


def parse_json_object(text: str) -> Dict[str, Any]:
    """
    Parse the first JSON object in model output.

    Raises:
        ValueError: no object could be recovered
    """
    candidate = repair_json(text)
    if candidate is None:
        raise ValueError("No JSON object found in response")
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError:
        data = json.loads(quote_bare_keys(candidate))
    if not isinstance(data, dict):
        raise ValueError("Response JSON is not an object")
    return data


def _key_pattern(field: str) -> str:
    variants = {field, to_camel(field)}
    return "(?:" + "|".join(re.escape(v) for v in sorted(variants)) + ")"


def _unescape(raw: str) -> str:
    try:
        return json.loads(f'"{raw}"')
    except json.JSONDecodeError:
        return raw.replace('\\"', '"')


def extract_fields(text: str, array_fields: Iterable[str],
                   string_fields: Iterable[str]) -> Dict[str, Any]:
    """
    Pull fields out of text that may not parse at all.

    Each field is located by its own regex, accepting snake_case or camelCase
    keys. Arrays keep their complete string items (an array cut off by
    truncation keeps the items before the cut); a field that is not found
    is ``[]`` or ``""``. Never returns None for a requested field.
    """
    text = text or ""
    fields: Dict[str, Any] = {}
    for field in array_fields:
        match = re.search(rf'"{_key_pattern(field)}"\s*:\s*\[(.*?)(?:\]|$)', text, re.DOTALL)
        items = re.findall(_STRING, match.group(1)) if match else []
        fields[field] = [_unescape(item[1:-1]) for item in items]
    for field in string_fields:
        match = re.search(rf'"{_key_pattern(field)}"\s*:\s*({_STRING})', text)
        fields[field] = _unescape(match.group(1)[1:-1]) if match else ""
    return fields
