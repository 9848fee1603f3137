"""Prompt templates and localized canned replies for the agent."""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List

from src.orchestrator.intents import Language
from src.schemas.tools import ToolDescriptor, ToolInvocationResult

SYSTEM_PROMPT = """You are a hostel management assistant with access to tools. You MUST use tools to answer any data question.

RULES:
1. When user asks about data (houses, rooms, tenants, contracts, services, invoices) -> CALL the appropriate tool
2. NEVER answer from memory or make up data
3. NEVER describe what tool to call - just call it
4. Respond in the same language as the user

KEYWORD -> TOOL MAPPING:
- nhà/house/tòa nhà -> get_all_houses, create_house, update_house, delete_house
- phòng/room/phòng trống -> get_rooms_by_house, count_rooms_by_house_and_status, create_room, update_room
- khách/tenant/người thuê -> get_all_tenants, create_tenant, update_tenant, delete_tenant
- hợp đồng/contract -> get_active_contracts, create_rental_contract, update_rental_contract
- dịch vụ/service -> get_all_services, create_service, update_service, delete_service
- hóa đơn/invoice/thanh toán -> create_invoice, get_unpaid_invoices, get_invoice
- danh sách/liệt kê/list/show -> get_all_* or get_*_by_* tools
- tạo/thêm/create/add -> create_* tools
- sửa/cập nhật/update -> update_* tools
- xóa/delete/remove -> delete_* tools"""

SMALL_TALK_PROMPT = (
    "You are a friendly hostel management assistant. Respond in the same language as the user."
)

TOOL_CALL_FORMAT = (
    "To call a tool, reply with exactly one JSON object and nothing else, for example:\n"
    '{"tool": "get_all_houses", "args": {}}\n'
    "If no tool is needed, reply with plain text."
)

SUMMARY_PROMPTS: Dict[Language, str] = {
    Language.VIETNAMESE: "Tóm tắt kết quả dưới đây bằng tiếng Việt, ngắn gọn và rõ ràng. "
    "Nếu có công cụ bị lỗi, hãy nói rõ.",
    Language.ENGLISH: "Summarize the following results clearly and concisely. "
    "Mention any tool that failed.",
}

GREETING_FALLBACK = "Xin chào! Tôi là trợ lý quản lý nhà trọ."

DONE_FALLBACKS: Dict[Language, str] = {
    Language.VIETNAMESE: "Đã xử lý xong.",
    Language.ENGLISH: "Done.",
}

NO_ANSWER_FALLBACKS: Dict[Language, str] = {
    Language.VIETNAMESE: "Xin lỗi, tôi không thể xử lý yêu cầu này.",
    Language.ENGLISH: "Sorry, I could not process this request.",
}

APOLOGY_MESSAGES: Dict[Language, str] = {
    Language.VIETNAMESE: "Xin lỗi, đã xảy ra lỗi khi xử lý yêu cầu của bạn. Vui lòng thử lại sau.",
    Language.ENGLISH: "Sorry, something went wrong while processing your request. Please try again later.",
}


def build_tool_instructions(tools: Iterable[ToolDescriptor]) -> str:
    lines: List[str] = ["AVAILABLE TOOLS:"]
    for tool in tools:
        params = ", ".join(
            f"{name}: {param.type}{'' if param.required else '?'}"
            for name, param in tool.parameters.items()
        )
        entry = f"- {tool.name}({params})"
        if tool.description:
            entry += f": {tool.description}"
        lines.append(entry)
    lines.append("")
    lines.append(TOOL_CALL_FORMAT)
    return "\n".join(lines)


def build_retry_prompt(tool_names: Iterable[str]) -> str:
    return (
        f"You MUST call one of these tools: [{', '.join(tool_names)}]. "
        "Do NOT respond with text. Reply with the JSON tool call now."
    )


def build_summary_messages(
    user_message: str, results: Iterable[ToolInvocationResult], language: Language
) -> List[Dict[str, str]]:
    digest: List[Dict[str, Any]] = []
    for item in results:
        entry: Dict[str, Any] = {"tool": item.name}
        if item.error is not None:
            entry["error"] = item.error
        else:
            entry["result"] = item.result
        digest.append(entry)
    body = json.dumps(digest, ensure_ascii=False, indent=2, default=str)
    return [
        {"role": "system", "content": SUMMARY_PROMPTS[language]},
        {"role": "user", "content": f'User asked: "{user_message}"\n\nTool results:\n{body}'},
    ]
