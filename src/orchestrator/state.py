from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

from src.orchestrator.intents import Intent, Language
from src.schemas.tools import ToolDescriptor, ToolInvocationResult
from src.services.session_store import DEFAULT_SESSION_ID, SessionContext
from src.services.tool_call_parser import ToolInvocationRequest


@dataclass
class AgentState:
    message: str = ""
    user_id: Optional[str] = None
    session_id: str = DEFAULT_SESSION_ID
    session: Optional[SessionContext] = None
    intent: Intent = Intent.TOOL_REQUEST
    language: Language = Language.ENGLISH
    history: List[Dict[str, str]] = field(default_factory=list)
    tools: List[ToolDescriptor] = field(default_factory=list)
    reply: str = ""
    proposed_calls: List[ToolInvocationRequest] = field(default_factory=list)
    tool_results: List[ToolInvocationResult] = field(default_factory=list)
    dropped_calls: int = 0
    response: str = ""

    def to_input(self) -> Dict[str, Any]:
        """Shallow field mapping; ``asdict`` would flatten the nested dataclasses."""
        return {item.name: getattr(self, item.name) for item in fields(self)}

    @classmethod
    def from_output(cls, values: Dict[str, Any]) -> "AgentState":
        known = {item.name for item in fields(cls)}
        return cls(**{key: value for key, value in values.items() if key in known})

    @property
    def tools_called(self) -> List[str]:
        return [result.name for result in self.tool_results]
