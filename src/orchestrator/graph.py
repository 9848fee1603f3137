from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Protocol

from langgraph.graph import END, StateGraph

from src.adapters.ollama_client import ModelReply
from src.orchestrator import prompts
from src.orchestrator.intents import Intent
from src.orchestrator.state import AgentState
from src.schemas.tools import ToolInvocationResult
from src.services.history import ConversationHistoryStore, ConversationTurn
from src.services.intent_rules import RuleBasedIntentClassifier, detect_language
from src.services.session_store import DEFAULT_SESSION_ID, SessionContext, SessionStore
from src.services.tool_call_parser import ToolInvocationRequest, coerce_arguments, extract_tool_call
from src.services.tool_filter import DEFAULT_MAX_TOOLS, filter_relevant_tools
from src.services.tool_gateway import ToolGateway

logger = logging.getLogger(__name__)


class ModelBackend(Protocol):
    async def chat(
        self,
        messages: List[Dict[str, str]],
        *,
        instructions: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> ModelReply:  # pragma: no cover - interface
        ...


class AgentOrchestrator:
    """LangGraph state machine that turns one user message into tool calls and an answer.

    classify -> (small_talk | catalog -> decide -> [retry] -> execute -> summarize)
    The conversation is recorded only after the graph completes successfully.
    """

    def __init__(
        self,
        model: ModelBackend,
        gateway: ToolGateway,
        session_store: SessionStore,
        history: ConversationHistoryStore,
        intent_classifier: Optional[Callable[[AgentState], Intent]] = None,
        max_tool_calls: int = 5,
        max_tools: int = DEFAULT_MAX_TOOLS,
        prompt_history_turns: int = 6,
    ) -> None:
        self._model = model
        self._gateway = gateway
        self._session_store = session_store
        self._history = history
        self._intent_classifier = intent_classifier or RuleBasedIntentClassifier().classify
        self._max_tool_calls = max_tool_calls
        self._max_tools = max_tools
        self._prompt_history_turns = prompt_history_turns
        self._graph = self._build_graph().compile()

    def _build_graph(self) -> StateGraph:
        graph = StateGraph(AgentState)

        graph.add_node("classify", self._classify_node)
        graph.add_node("small_talk", self._small_talk_node)
        graph.add_node("catalog", self._catalog_node)
        graph.add_node("decide", self._decide_node)
        graph.add_node("retry", self._retry_node)
        graph.add_node("execute", self._execute_node)
        graph.add_node("summarize", self._summarize_node)

        graph.set_entry_point("classify")
        graph.add_conditional_edges(
            "classify",
            self._intent_router,
            {
                Intent.CONVERSATIONAL: "small_talk",
                Intent.TOOL_REQUEST: "catalog",
            },
        )
        graph.add_edge("small_talk", END)
        graph.add_edge("catalog", "decide")
        graph.add_conditional_edges(
            "decide",
            self._needs_retry,
            {
                True: "retry",
                False: "execute",
            },
        )
        graph.add_edge("retry", "execute")
        graph.add_edge("execute", "summarize")
        graph.add_edge("summarize", END)

        return graph

    # Nodes

    def _classify_node(self, state: AgentState) -> Dict[str, Any]:
        intent = self._intent_classifier(state)
        if intent is Intent.CONVERSATIONAL:
            logger.info("Conversational message detected - skipping tool calling")
        return {"intent": intent}

    async def _small_talk_node(self, state: AgentState) -> Dict[str, Any]:
        reply = await self._model.chat(
            [
                {"role": "system", "content": prompts.SMALL_TALK_PROMPT},
                {"role": "user", "content": state.message},
            ],
            temperature=0.5,
        )
        return {"reply": reply.content, "response": reply.content or prompts.GREETING_FALLBACK}

    async def _catalog_node(self, state: AgentState) -> Dict[str, Any]:
        catalog = await self._gateway.list_tools()
        tools = filter_relevant_tools(catalog, state.message, self._max_tools)
        logger.info("Using %d relevant tools for this query", len(tools))
        return {"tools": tools}

    async def _decide_node(self, state: AgentState) -> Dict[str, Any]:
        messages = [
            {"role": "system", "content": prompts.SYSTEM_PROMPT},
            *state.history,
            {"role": "user", "content": state.message},
        ]
        reply = await self._model.chat(
            messages,
            instructions=prompts.build_tool_instructions(state.tools) if state.tools else None,
            temperature=0,
        )
        proposed = self._proposed_calls(reply, state)
        logger.info("LLM proposed %d tool call(s)", len(proposed))
        return {"reply": reply.content, "proposed_calls": proposed}

    async def _retry_node(self, state: AgentState) -> Dict[str, Any]:
        logger.info("No tool calls on first attempt, retrying with explicit instruction...")
        reply = await self._model.chat(
            [
                {"role": "system", "content": prompts.build_retry_prompt(tool.name for tool in state.tools)},
                {"role": "user", "content": state.message},
            ],
            instructions=prompts.build_tool_instructions(state.tools),
            temperature=0,
        )
        proposed = self._proposed_calls(reply, state)
        if not proposed:
            logger.warning("Retry also failed to produce tool calls")
            return {}
        logger.info("Retry succeeded: %d tool call(s)", len(proposed))
        return {"reply": reply.content, "proposed_calls": proposed}

    async def _execute_node(self, state: AgentState) -> Dict[str, Any]:
        results: List[ToolInvocationResult] = []
        for call in state.proposed_calls:
            if len(results) >= self._max_tool_calls:
                logger.warning("Reached maximum tool calls limit: %d", self._max_tool_calls)
                break
            results.append(await self._invoke(call, state.session))
        dropped = len(state.proposed_calls) - len(results)
        return {"tool_results": results, "dropped_calls": dropped}

    async def _summarize_node(self, state: AgentState) -> Dict[str, Any]:
        if not state.tool_results:
            return {"response": state.reply or prompts.NO_ANSWER_FALLBACKS[state.language]}
        logger.debug("Getting final formatted response...")
        reply = await self._model.chat(
            prompts.build_summary_messages(state.message, state.tool_results, state.language),
            temperature=0.3,
        )
        return {"response": reply.content or prompts.DONE_FALLBACKS[state.language]}

    # Routers

    def _intent_router(self, state: AgentState) -> Intent:
        return state.intent

    def _needs_retry(self, state: AgentState) -> bool:
        return not state.proposed_calls and bool(state.tools)

    # Helpers

    def _proposed_calls(self, reply: ModelReply, state: AgentState) -> List[ToolInvocationRequest]:
        if reply.tool_calls:
            return [
                ToolInvocationRequest(call["name"], coerce_arguments(call.get("arguments")))
                for call in reply.tool_calls
            ]
        call = extract_tool_call(reply.content, [tool.name for tool in state.tools])
        return [call] if call is not None else []

    async def _invoke(
        self, call: ToolInvocationRequest, session: Optional[SessionContext]
    ) -> ToolInvocationResult:
        logger.info("Executing tool: %s", call.name)
        try:
            outcome = await self._gateway.execute(call.name, call.arguments, session)
        except Exception as exc:
            logger.exception("Tool execution failed: %s", call.name)
            return ToolInvocationResult(name=call.name, arguments=call.arguments, error=str(exc))
        if isinstance(outcome, dict) and outcome.get("success") is False:
            error = outcome.get("error") or "Tool execution failed"
            return ToolInvocationResult(name=call.name, arguments=call.arguments, error=str(error))
        return ToolInvocationResult(name=call.name, arguments=call.arguments, result=outcome)

    # Public API

    async def run(self, state: AgentState) -> AgentState:
        result = await self._graph.ainvoke(state.to_input())
        if isinstance(result, AgentState):
            return result
        if isinstance(result, dict):
            return AgentState.from_output(result)
        raise TypeError(f"Unsupported state result from graph: {type(result)!r}")

    async def process_message(
        self,
        message: str,
        user_id: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        sid = session_id or DEFAULT_SESSION_ID
        logger.info("Processing message for session %s", sid)
        session = self._session_store.get_session_context(sid)
        language = detect_language(message)
        resolved_user = user_id or session.user_id

        try:
            window = self._history.recent(sid, self._prompt_history_turns)
            state = AgentState(
                message=message,
                user_id=resolved_user,
                session_id=sid,
                session=session,
                language=language,
                history=[turn.to_message() for turn in window],
            )
            final_state = await self.run(state)
            await self._history.append(
                sid,
                ConversationTurn(role="user", content=message, session_id=sid, user_id=resolved_user),
                ConversationTurn(
                    role="assistant",
                    content=final_state.response,
                    session_id=sid,
                    tools_called=final_state.tools_called,
                ),
            )
        except Exception as exc:
            logger.exception("Agent process_message error")
            return self._build_response(
                False,
                prompts.APOLOGY_MESSAGES[language],
                [],
                user_id,
                sid,
                session,
                error=str(exc),
            )

        if final_state.dropped_calls:
            logger.warning("Dropped %d proposed tool call(s) over the limit", final_state.dropped_calls)
        return self._build_response(
            True,
            final_state.response,
            final_state.tool_results,
            resolved_user,
            sid,
            session,
        )

    def get_history(self, session_id: Optional[str] = None) -> List[Dict[str, object]]:
        return [turn.to_dict() for turn in self._history.all(session_id)]

    async def clear_history(self, session_id: Optional[str] = None) -> None:
        await self._history.clear(session_id)

    @staticmethod
    def _build_response(
        success: bool,
        response: str,
        results: List[ToolInvocationResult],
        user_id: Optional[str],
        session_id: str,
        session: SessionContext,
        error: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "success": success,
            "response": response,
            "toolsCalled": [result.name for result in results],
            "toolResults": [result.to_payload() for result in results],
            "userId": user_id,
            "sessionId": session_id,
            "isAuthenticated": session.is_authenticated,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if error is not None:
            payload["error"] = error
        return payload
