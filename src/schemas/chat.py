from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatRequest(CamelModel):
    message: str = Field(default="", description="Natural-language message from the user")
    user_id: Optional[str] = Field(default=None)
    session_id: Optional[str] = Field(default=None)
    auth_token: Optional[str] = Field(default=None, description="Bearer token to store for the session")
    refresh_token: Optional[str] = Field(default=None)
    expires_in: Optional[int] = Field(default=None, ge=1, description="Token lifetime in seconds")


class ChatResponse(CamelModel):
    success: bool
    response: str
    tools_called: List[str] = Field(default_factory=list)
    tool_results: List[Dict[str, Any]] = Field(default_factory=list)
    user_id: Optional[str] = None
    session_id: str
    is_authenticated: bool = False
    timestamp: str
    error: Optional[str] = None


class SessionRequest(CamelModel):
    session_id: Optional[str] = Field(default=None)
