from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from src.schemas.tools import ToolDescriptor

logger = logging.getLogger(__name__)


class ToolBackendError(RuntimeError):
    """Raised when the MCP server cannot run a tool."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass
class McpClient:
    base_url: str
    timeout: float = 30.0
    transport: Optional[httpx.AsyncBaseTransport] = None

    def __post_init__(self) -> None:
        self._client = httpx.AsyncClient(
            base_url=self.base_url.rstrip("/"),
            timeout=self.timeout,
            transport=self.transport,
        )

    async def list_tools(self) -> List[ToolDescriptor]:
        """Return the advertised catalog, or an empty list when the server is unreachable."""
        try:
            response = await self._client.get("/api/tools")
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Failed to fetch tools from MCP Server: %s", exc)
            return []

        raw_tools = payload.get("tools", []) if isinstance(payload, dict) else payload
        tools: List[ToolDescriptor] = []
        for raw in raw_tools or []:
            try:
                tools.append(ToolDescriptor.model_validate(raw))
            except ValidationError as exc:
                logger.warning("Skipping malformed tool descriptor: %s", exc.errors()[:1])
        return tools

    async def call_tool(
        self,
        name: str,
        arguments: Mapping[str, Any],
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        try:
            response = await self._client.post(
                f"/api/tools/{quote(name, safe='')}",
                json=dict(arguments),
                headers=headers or {},
            )
        except httpx.HTTPError as exc:
            raise ToolBackendError(str(exc) or exc.__class__.__name__) from exc

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.is_error:
            message = payload.get("error") if isinstance(payload, dict) else None
            raise ToolBackendError(
                str(message or f"Tool server responded with status {response.status_code}"),
                status_code=response.status_code,
            )
        return payload if payload is not None else response.text

    async def is_available(self) -> bool:
        try:
            response = await self._client.get("/api/health")
        except httpx.HTTPError as exc:
            logger.warning("MCP Server not available: %s", exc)
            return False
        return response.status_code == 200

    async def aclose(self) -> None:
        await self._client.aclose()
