from __future__ import annotations

from src.schemas.tools import ToolDescriptor
from src.services.tool_filter import (
    DEFAULT_CATEGORIES,
    classify_tool,
    classify_tool_name,
    detect_relevant_categories,
    filter_relevant_tools,
    normalize,
)


def _tools(*names: str) -> list[ToolDescriptor]:
    return [ToolDescriptor(name=name, description=f"{name} tool") for name in names]


CATALOG = _tools(
    "login",
    "get_all_houses",
    "count_rooms_by_house_and_status",
    "get_rooms_by_status",
    "get_room_services",
    "get_all_tenants",
    "get_active_contracts",
    "get_all_services",
    "get_unpaid_invoices",
    "change_password",
    "ping",
)


def test_normalize_strips_vietnamese_diacritics():
    assert normalize("Phòng TRỐNG ở Đà Nẵng") == "phong trong o da nang"


def test_unaccented_vietnamese_matches_keywords():
    assert detect_relevant_categories("con phong trong khong") == ["room"]


def test_message_without_keywords_uses_default_categories():
    assert detect_relevant_categories("what can you do?") == list(DEFAULT_CATEGORIES)


def test_name_classifier_prefers_specific_matches():
    assert classify_tool_name("get_room_services") == "service"
    assert classify_tool_name("get_rooms_by_status") == "room"
    assert classify_tool_name("refresh_token") == "auth"
    assert classify_tool_name("get_unpaid_invoices") == "invoice"
    assert classify_tool_name("change_password") == "user"
    assert classify_tool_name("ping") == "other"


def test_explicit_category_tag_wins_over_name():
    tool = ToolDescriptor(name="get_room_services", category="room")
    assert classify_tool(tool) == "room"
    untagged = ToolDescriptor(name="get_room_services", category="unknown-tag")
    assert classify_tool(untagged) == "service"


def test_room_question_keeps_room_and_house_tools():
    selected = filter_relevant_tools(CATALOG, "How many available rooms in house 1?")

    names = [tool.name for tool in selected]
    assert "count_rooms_by_house_and_status" in names
    assert "get_rooms_by_status" in names
    assert "get_all_tenants" not in names
    assert "get_unpaid_invoices" not in names


def test_default_categories_only_when_nothing_matches():
    selected = filter_relevant_tools(CATALOG, "what can you do?")

    assert {classify_tool(tool) for tool in selected} <= set(DEFAULT_CATEGORIES)
    assert "get_unpaid_invoices" in [tool.name for tool in selected]
    assert "login" not in [tool.name for tool in selected]


def test_output_respects_cap_and_order_and_is_subset():
    catalog = _tools(*[f"get_room_{index}" for index in range(30)])
    selected = filter_relevant_tools(catalog, "list rooms", max_tools=7)

    assert len(selected) == 7
    assert [tool.name for tool in selected] == [f"get_room_{index}" for index in range(7)]
    assert all(tool in catalog for tool in selected)


def test_duplicates_keep_first_occurrence():
    first = ToolDescriptor(name="get_all_houses", description="first")
    second = ToolDescriptor(name="get_all_houses", description="second")

    selected = filter_relevant_tools([first, second], "show houses")

    assert selected == [first]


def test_empty_catalog_yields_empty_selection():
    assert filter_relevant_tools([], "How many available rooms in house 1?") == []
