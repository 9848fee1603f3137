from __future__ import annotations

import re
from typing import Iterable, List

from src.orchestrator.intents import Intent, Language

CONVERSATIONAL_PHRASES: List[str] = [
    "xin chào",
    "chào bạn",
    "hello",
    "hi",
    "hey",
    "bạn là ai",
    "who are you",
    "bạn tên gì",
    "cảm ơn",
    "thank",
    "thanks",
    "tạm biệt",
    "goodbye",
    "bye",
]

_VIETNAMESE_CHARS = re.compile(
    r"[àáạảãâầấậẩẫăằắặẳẵèéẹẻẽêềếệểễìíịỉĩòóọỏõôồốộổỗơờớợởỡùúụủũưừứựửữỳýỵỷỹđ]",
    re.IGNORECASE,
)


def detect_language(text: str) -> Language:
    return Language.VIETNAMESE if _VIETNAMESE_CHARS.search(text or "") else Language.ENGLISH


class RuleBasedIntentClassifier:
    """Flags short small-talk messages that need no tools."""

    def __init__(self, phrases: Iterable[str] | None = None, max_length: int = 40) -> None:
        # Whole words only, so "hey" does not fire inside "they".
        self._pattern = re.compile(
            "|".join(rf"\b{re.escape(phrase.strip().lower())}\b" for phrase in (phrases or CONVERSATIONAL_PHRASES))
        )
        self._max_length = max_length

    def classify(self, state) -> Intent:
        message = getattr(state, "message", "") or ""
        return Intent.CONVERSATIONAL if self.is_conversational(message) else Intent.TOOL_REQUEST

    def is_conversational(self, message: str) -> bool:
        lowered = message.lower().strip()
        if not lowered or len(lowered) >= self._max_length:
            return False
        return self._pattern.search(lowered) is not None
