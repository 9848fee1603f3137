from __future__ import annotations

import logging
import unicodedata
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

from src.schemas.tools import ToolDescriptor

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOOLS = 15

# Message keywords per category. Matched after normalization, so the
# Vietnamese entries also match unaccented input ("phong trong").
TOOL_KEYWORDS: Mapping[str, List[str]] = {
    "auth": ["login", "đăng nhập", "đăng ký", "register", "logout", "thoát", "current user",
             "người dùng hiện tại", "token"],
    "house": ["nhà", "house", "building", "tòa nhà", "dãy nhà"],
    "room": ["phòng", "room", "trống", "available", "vacant", "empty"],
    "tenant": ["khách", "tenant", "người thuê", "cư dân"],
    "contract": ["hợp đồng", "contract", "thuê"],
    "service": ["dịch vụ", "service", "tiện ích", "utility"],
    "invoice": ["hóa đơn", "invoice", "bill", "thanh toán", "payment"],
    "user": ["user", "người dùng", "tài khoản", "account"],
}

DEFAULT_CATEGORIES: Tuple[str, ...] = ("house", "room", "tenant", "invoice")

KNOWN_CATEGORIES = frozenset(TOOL_KEYWORDS) | {"other"}

# Tool-name markers, most specific first.
_NAME_RULES: Sequence[Tuple[str, Tuple[str, ...]]] = (
    ("auth", ("login", "register", "auth", "refresh_token", "logout")),
    ("house", ("house",)),
    ("room", ("room",)),
    ("tenant", ("tenant",)),
    ("contract", ("contract",)),
    ("service", ("service",)),
    ("invoice", ("invoice", "payment")),
    ("user", ("user", "password")),
)


def normalize(text: str) -> str:
    """Case-fold and strip diacritics so keyword matching is accent-insensitive."""
    decomposed = unicodedata.normalize("NFD", text.casefold())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.replace("đ", "d")


_NORMALIZED_KEYWORDS: Dict[str, List[str]] = {
    category: [normalize(keyword) for keyword in keywords]
    for category, keywords in TOOL_KEYWORDS.items()
}


def detect_relevant_categories(message: str) -> List[str]:
    norm = normalize(message)
    relevant = [
        category
        for category, keywords in _NORMALIZED_KEYWORDS.items()
        if any(keyword in norm for keyword in keywords)
    ]
    if not relevant:
        logger.debug("No specific category detected, using default categories")
        return list(DEFAULT_CATEGORIES)
    return relevant


def classify_tool(tool: ToolDescriptor) -> str:
    if tool.category and tool.category.lower() in KNOWN_CATEGORIES:
        return tool.category.lower()
    return classify_tool_name(tool.name)


def classify_tool_name(name: str) -> str:
    lowered = name.lower()
    for category, markers in _NAME_RULES:
        if any(marker in lowered for marker in markers):
            if category == "room" and "service" in lowered:
                return "service"
            return category
    return "other"


def filter_relevant_tools(
    tools: Iterable[ToolDescriptor],
    message: str,
    max_tools: int = DEFAULT_MAX_TOOLS,
) -> List[ToolDescriptor]:
    """Reduce the catalog to at most ``max_tools`` tools relevant to ``message``.

    The output is a subset of the input in first-appearance order, with
    duplicate names removed.
    """
    catalog = list(tools)
    categories = set(detect_relevant_categories(message))

    selected: List[ToolDescriptor] = []
    seen: set[str] = set()
    for tool in catalog:
        if len(selected) >= max_tools:
            break
        if tool.name in seen:
            continue
        if classify_tool(tool) not in categories:
            continue
        seen.add(tool.name)
        selected.append(tool)

    logger.info(
        "Filtered tools: %d -> %d (categories: %s)",
        len(catalog),
        len(selected),
        ", ".join(sorted(categories)),
    )
    logger.debug("Selected tools: %s", ", ".join(tool.name for tool in selected))
    return selected
