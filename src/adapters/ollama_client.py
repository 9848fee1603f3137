from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)


class ModelBackendError(RuntimeError):
    """Raised when the model backend is unreachable or answers with an error."""


@dataclass
class ModelReply:
    content: str = ""
    tool_calls: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class OllamaClient:
    base_url: str
    model: str
    timeout: float = 60.0
    temperature: float = 0.7
    top_p: float = 0.9
    top_k: int = 40
    transport: Optional[httpx.AsyncBaseTransport] = None

    def __post_init__(self) -> None:
        self._client = httpx.AsyncClient(
            base_url=self.base_url.rstrip("/"),
            timeout=httpx.Timeout(self.timeout, connect=10.0),
            transport=self.transport,
        )

    async def chat(
        self,
        messages: List[Dict[str, str]],
        *,
        instructions: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> ModelReply:
        """Send one chat turn; ``instructions`` are folded into the system message."""
        payload = {
            "model": self.model,
            "messages": self._with_instructions(messages, instructions),
            "stream": False,
            "options": {
                "temperature": self.temperature if temperature is None else temperature,
                "top_p": self.top_p,
                "top_k": self.top_k,
            },
        }
        logger.debug("Calling Ollama model %s with %d messages", self.model, len(payload["messages"]))
        try:
            response = await self._client.post("/chat", json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as exc:
            logger.error("Ollama API call failed: %s", exc)
            raise ModelBackendError(f"LLM Error: {exc}") from exc
        except ValueError as exc:
            raise ModelBackendError("LLM Error: response is not valid JSON") from exc

        message = data.get("message") or {}
        return ModelReply(
            content=str(message.get("content") or ""),
            tool_calls=self._parse_tool_calls(message.get("tool_calls")),
        )

    async def is_available(self) -> bool:
        try:
            response = await self._client.get("/tags", timeout=5.0)
        except httpx.HTTPError as exc:
            logger.warning("Ollama not available: %s", exc)
            return False
        return response.status_code == 200

    async def aclose(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _with_instructions(
        messages: List[Dict[str, str]], instructions: Optional[str]
    ) -> List[Dict[str, str]]:
        if not instructions:
            return list(messages)
        if messages and messages[0].get("role") == "system":
            head = dict(messages[0])
            head["content"] = f"{head.get('content', '')}\n\n{instructions}".strip()
            return [head, *messages[1:]]
        return [{"role": "system", "content": instructions}, *messages]

    @staticmethod
    def _parse_tool_calls(raw: Any) -> List[Dict[str, Any]]:
        calls: List[Dict[str, Any]] = []
        for item in raw or []:
            function = item.get("function") if isinstance(item, dict) else None
            if not isinstance(function, dict) or not function.get("name"):
                continue
            calls.append({"name": function["name"], "arguments": function.get("arguments") or {}})
        return calls
