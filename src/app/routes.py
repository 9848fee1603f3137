from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from src.adapters.ollama_client import OllamaClient
from src.app.dependencies import (
    get_model_client,
    get_orchestrator,
    get_session_store,
    get_tool_gateway,
)
from src.orchestrator.graph import AgentOrchestrator
from src.schemas.chat import ChatRequest, ChatResponse, SessionRequest
from src.services.session_store import SessionStore
from src.services.tool_gateway import ToolGateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def _connection_label(available: bool) -> str:
    return "connected" if available else "disconnected"


@router.get("/health", status_code=status.HTTP_200_OK)
async def health(
    model: OllamaClient = Depends(get_model_client),
    gateway: ToolGateway = Depends(get_tool_gateway),
) -> dict:
    return {
        "agent": "running",
        "ollama": _connection_label(await model.is_available()),
        "mcpServer": _connection_label(await gateway.is_available()),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.post("/chat", response_model=ChatResponse)
async def chat(
    payload: ChatRequest,
    orchestrator: AgentOrchestrator = Depends(get_orchestrator),
    sessions: SessionStore = Depends(get_session_store),
):
    if not payload.message.strip():
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "error": "Message is required"},
        )

    if payload.auth_token:
        sessions.set_token(
            payload.auth_token,
            payload.user_id or "anonymous",
            payload.session_id,
            expires_in=payload.expires_in,
            refresh_token=payload.refresh_token,
        )

    logger.info(
        "Chat request from user: %s, sessionId: %s",
        payload.user_id or "anonymous",
        payload.session_id or "default",
    )
    result = await orchestrator.process_message(payload.message, payload.user_id, payload.session_id)
    return ChatResponse.model_validate(result)


@router.get("/session")
def get_session(
    session_id: Optional[str] = Query(default=None, alias="sessionId"),
    sessions: SessionStore = Depends(get_session_store),
) -> dict:
    context = sessions.get_session_context(session_id)
    return {"success": True, "session": context.to_dict()}


@router.get("/session/all")
def list_sessions(sessions: SessionStore = Depends(get_session_store)) -> dict:
    return {"success": True, "sessions": sessions.describe_sessions()}


@router.post("/session/logout")
def logout(
    payload: Optional[SessionRequest] = None,
    sessions: SessionStore = Depends(get_session_store),
) -> dict:
    sessions.clear_session(payload.session_id if payload else None)
    return {"success": True, "message": "Session cleared"}


@router.post("/chat/clear-history")
async def clear_history(
    payload: Optional[SessionRequest] = None,
    orchestrator: AgentOrchestrator = Depends(get_orchestrator),
) -> dict:
    await orchestrator.clear_history(payload.session_id if payload else None)
    return {"success": True, "message": "Conversation history cleared"}


@router.get("/chat/history")
def chat_history(
    session_id: Optional[str] = Query(default=None, alias="sessionId"),
    orchestrator: AgentOrchestrator = Depends(get_orchestrator),
) -> dict:
    history = orchestrator.get_history(session_id)
    return {"success": True, "history": history, "count": len(history)}
