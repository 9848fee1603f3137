from __future__ import annotations

from enum import Enum


class Intent(str, Enum):
    CONVERSATIONAL = "CONVERSATIONAL"
    TOOL_REQUEST = "TOOL_REQUEST"


class Language(str, Enum):
    ENGLISH = "en"
    VIETNAMESE = "vi"
