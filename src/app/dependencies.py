from __future__ import annotations

from functools import lru_cache

from src.adapters.mcp_client import McpClient
from src.adapters.ollama_client import OllamaClient
from src.app.config import get_settings
from src.orchestrator.graph import AgentOrchestrator
from src.services.history import ConversationHistoryStore
from src.services.intent_rules import RuleBasedIntentClassifier
from src.services.session_store import SessionStore
from src.services.tool_gateway import ToolGateway


@lru_cache(maxsize=1)
def get_session_store() -> SessionStore:
    settings = get_settings()
    return SessionStore(default_expires_in=settings.session_ttl_seconds)


@lru_cache(maxsize=1)
def get_history_store() -> ConversationHistoryStore:
    settings = get_settings()
    return ConversationHistoryStore(window_size=settings.history_window)


@lru_cache(maxsize=1)
def get_model_client() -> OllamaClient:
    settings = get_settings()
    return OllamaClient(
        base_url=settings.ollama_api_url,
        model=settings.ollama_model,
        timeout=settings.llm_timeout,
        temperature=settings.temperature,
    )


@lru_cache(maxsize=1)
def get_tool_gateway() -> ToolGateway:
    settings = get_settings()
    return ToolGateway(McpClient(base_url=settings.mcp_server_url, timeout=settings.request_timeout))


@lru_cache(maxsize=1)
def get_orchestrator() -> AgentOrchestrator:
    settings = get_settings()
    classifier = RuleBasedIntentClassifier()
    return AgentOrchestrator(
        model=get_model_client(),
        gateway=get_tool_gateway(),
        session_store=get_session_store(),
        history=get_history_store(),
        intent_classifier=classifier.classify,
        max_tool_calls=settings.max_tool_calls,
        max_tools=settings.tool_filter_cap,
        prompt_history_turns=settings.prompt_history_turns,
    )
