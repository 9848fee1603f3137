"""Turn a model's free-text reply into at most one tool invocation.

The model is asked to answer with a single JSON object such as
``{"tool": "get_all_houses", "args": {}}`` but its output is not trusted.
Extraction runs an ordered chain of strategies and returns the first hit:

1. the whole reply (minus code fences) is one JSON object naming a tool;
2. a balanced ``{...}`` block somewhere in the reply names a tool;
3. a known tool name appears verbatim, optionally followed by an argument object.

``None`` means the reply is conversational, which is a normal outcome.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Collection, Dict, Iterator, List, Optional, Tuple

logger = logging.getLogger(__name__)

NAME_FIELDS = ("tool", "name", "function")
ARGUMENT_FIELDS = ("args", "arguments", "parameters")

_FENCE_PATTERN = re.compile(r"^```[a-zA-Z0-9_-]*\s*|\s*```$")


@dataclass(frozen=True)
class ToolInvocationRequest:
    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)


Strategy = Callable[[str, Collection[str]], Optional[ToolInvocationRequest]]


def strip_code_fences(text: str) -> str:
    return _FENCE_PATTERN.sub("", text.strip()).strip()


def iter_json_objects(text: str) -> Iterator[Tuple[int, Dict[str, Any]]]:
    """Yield ``(start_index, object)`` for every balanced top-level ``{...}`` that parses.

    Braces inside string literals do not count towards nesting depth.
    """
    depth = 0
    start = -1
    in_string = False
    escaped = False
    for index, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"' and depth > 0:
            in_string = True
        elif char == "{":
            if depth == 0:
                start = index
            depth += 1
        elif char == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                candidate = text[start : index + 1]
                try:
                    parsed = json.loads(candidate)
                except json.JSONDecodeError:
                    continue
                if isinstance(parsed, dict):
                    yield start, parsed


def coerce_arguments(value: Any) -> Dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, str):
        if not value.strip():
            return {}
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            logger.debug("Tool arguments are not valid JSON: %s", value)
            return {}
    return dict(value) if isinstance(value, dict) else {}


def _from_object(payload: Dict[str, Any], known_names: Collection[str]) -> Optional[ToolInvocationRequest]:
    for name_field in NAME_FIELDS:
        candidate = payload.get(name_field)
        # {"function": {"name": ..., "arguments": ...}}
        if isinstance(candidate, dict):
            nested = _from_object(candidate, known_names)
            if nested is not None:
                return nested
            continue
        if isinstance(candidate, str) and candidate in known_names:
            for argument_field in ARGUMENT_FIELDS:
                if argument_field in payload:
                    return ToolInvocationRequest(candidate, coerce_arguments(payload[argument_field]))
            return ToolInvocationRequest(candidate, {})
    return None


def parse_whole_text(text: str, known_names: Collection[str]) -> Optional[ToolInvocationRequest]:
    cleaned = strip_code_fences(text)
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError:
        return None
    if not isinstance(payload, dict):
        return None
    return _from_object(payload, known_names)


def parse_embedded_objects(text: str, known_names: Collection[str]) -> Optional[ToolInvocationRequest]:
    for _, payload in iter_json_objects(text):
        call = _from_object(payload, known_names)
        if call is not None:
            return call
    return None


def parse_tool_name_mention(text: str, known_names: Collection[str]) -> Optional[ToolInvocationRequest]:
    mentions = [(text.find(name), name) for name in known_names if name and name in text]
    if not mentions:
        return None
    # Earliest mention wins; on a tie prefer the longer name (get_rooms vs get_rooms_by_house).
    position, name = min(mentions, key=lambda item: (item[0], -len(item[1])))
    following = next(iter_json_objects(text[position + len(name):]), None)
    if following is None:
        return ToolInvocationRequest(name, {})
    payload = following[1]
    return _from_object(payload, {name}) or ToolInvocationRequest(name, payload)


STRATEGIES: List[Strategy] = [
    parse_whole_text,
    parse_embedded_objects,
    parse_tool_name_mention,
]


def extract_tool_call(text: Optional[str], known_names: Collection[str]) -> Optional[ToolInvocationRequest]:
    if not text or not known_names:
        return None
    names = frozenset(known_names)
    for strategy in STRATEGIES:
        call = strategy(text, names)
        if call is not None:
            logger.debug("Tool call extracted by %s: %s", strategy.__name__, call.name)
            return call
    return None
