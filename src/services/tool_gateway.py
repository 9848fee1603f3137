from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Protocol

from src.adapters.mcp_client import ToolBackendError
from src.schemas.tools import ToolDescriptor
from src.services.session_store import SessionContext

logger = logging.getLogger(__name__)


class ToolBackend(Protocol):
    async def list_tools(self) -> List[ToolDescriptor]:  # pragma: no cover - interface
        ...

    async def call_tool(
        self, name: str, arguments: Mapping[str, Any], headers: Optional[Dict[str, str]] = None
    ) -> Any:  # pragma: no cover - interface
        ...

    async def is_available(self) -> bool:  # pragma: no cover - interface
        ...


class ToolGateway:
    """Runs one named tool on the MCP server on behalf of a session."""

    def __init__(self, backend: ToolBackend) -> None:
        self._backend = backend

    async def list_tools(self) -> List[ToolDescriptor]:
        tools = await self._backend.list_tools()
        logger.info("Loaded %d tools from MCP server", len(tools))
        return tools

    async def is_available(self) -> bool:
        return await self._backend.is_available()

    async def aclose(self) -> None:
        close = getattr(self._backend, "aclose", None)
        if close is not None:
            await close()

    async def execute(
        self,
        name: str,
        arguments: Mapping[str, Any],
        session_context: Optional[SessionContext] = None,
    ) -> Any:
        """Return the backend payload unchanged, or ``{"success": False, "error": ...}``."""
        if not name:
            raise ValueError("Tool name is required")

        logger.info("Executing MCP tool: %s", name)
        logger.debug("Tool arguments: %s", json.dumps(dict(arguments), ensure_ascii=False, default=str))
        headers = self._auth_headers(session_context)
        try:
            result = await self._backend.call_tool(name, arguments, headers=headers)
        except ToolBackendError as exc:
            logger.error("MCP tool execution failed: %s (%s)", name, exc)
            return {"success": False, "error": str(exc)}

        if isinstance(result, dict) and result.get("success") is False:
            logger.warning("MCP tool %s reported failure: %s", name, result.get("error"))
        return result

    @staticmethod
    def _auth_headers(session_context: Optional[SessionContext]) -> Dict[str, str]:
        if session_context is None or not session_context.is_authenticated or not session_context.token:
            return {}
        logger.debug("Added Authorization header for user: %s", session_context.user_id)
        return {
            "Authorization": f"Bearer {session_context.token}",
            "X-User-Id": session_context.user_id or "anonymous",
        }
