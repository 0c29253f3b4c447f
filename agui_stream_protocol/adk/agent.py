"""
AIAgent implementation backed by a Google ADK Runner.

Run flow (AdkAgent.run_streaming):
1. Ensure the ADK session exists (AgentSession.id is the ADK session id;
   runs without an AgentSession use an ephemeral session that is deleted
   afterwards)
2. Append the not-yet-synced conversation history as ADK Events
3. Push session state, AG-UI state and client tool declarations through
   a state_delta event
4. Send the last message as new_message to runner.run_async() in SSE
   streaming mode and translate every ADK Event to a ChatResponseUpdate
5. After a complete run, copy the ADK session state back into the
   AgentSession and advance synced_message_count

Client tools:
    Tools declared by the AG-UI client are exposed to the model through
    inject_client_tools (a before_model_callback) as ClientToolProxy
    instances. A proxy is long-running and returns None, so a call to it
    ends the run and waits for the client to send the result back as a
    tool message in the next run.
"""

import uuid
from collections.abc import AsyncIterator, Sequence
from contextlib import aclosing
from typing import Any

from google.adk.agents.callback_context import CallbackContext
from google.adk.agents.run_config import RunConfig, StreamingMode
from google.adk.events import Event, EventActions
from google.adk.models import LlmRequest, LlmResponse
from google.adk.runners import Runner
from google.adk.tools import BaseTool, ToolContext
from google.genai import types
from loguru import logger

from ..agent import AgentSession, AIAgent
from ..cancellation import CancellationToken, raise_if_cancelled
from ..protocol.chat_types import ChatMessage, ChatResponseUpdate
from ..protocol.request import AG_UI_STATE, ClientTool, RunOptions
from .conversion import AdkEventTranslator, to_adk_content


DEFAULT_USER_ID = "ag_ui"

# Session state keys owned by the bridge, never copied back into AgentSession.state
AG_UI_STATE_KEY = "agui_state"
CLIENT_TOOLS_STATE_KEY = "agui_client_tools"
INTERNAL_STATE_KEYS = frozenset({AG_UI_STATE_KEY, CLIENT_TOOLS_STATE_KEY})


# ============================================================
# Client tools
# ============================================================


class ClientToolProxy(BaseTool):
    """Declaration-only stand-in for a tool the AG-UI client executes."""

    def __init__(self, tool: ClientTool) -> None:
        super().__init__(name=tool.name, description=tool.description or "", is_long_running=True)
        self.parameters = tool.parameters

    def _get_declaration(self) -> types.FunctionDeclaration:
        return types.FunctionDeclaration(
            name=self.name,
            description=self.description,
            parameters_json_schema=self.parameters or {"type": "object", "properties": {}},
        )

    async def run_async(self, *, args: dict[str, Any], tool_context: ToolContext) -> Any:
        logger.info(
            f"[ADK] Client tool {self.name} called (id={tool_context.function_call_id}), "
            "waiting for the client to execute it"
        )
        return None


def inject_client_tools(callback_context: CallbackContext, llm_request: LlmRequest) -> LlmResponse | None:
    """
    before_model_callback exposing the client's tools to the model.

    Tools already registered on the agent under the same name win.
    """
    declared = callback_context.state.get(CLIENT_TOOLS_STATE_KEY) or []
    proxies = [
        ClientToolProxy(ClientTool.model_validate(tool))
        for tool in declared
        if tool.get("name") and tool["name"] not in llm_request.tools_dict
    ]
    if proxies:
        llm_request.append_tools(proxies)
        logger.debug(f"[ADK] Injected client tools: {[proxy.name for proxy in proxies]}")
    return None


# ============================================================
# Agent
# ============================================================


class AdkAgent(AIAgent):
    """
    AIAgent over an ADK Runner (InMemoryRunner or any Runner with a session service).

    Args:
        runner: ADK runner whose agent answers the AG-UI runs
        user_id: ADK user id every AG-UI session is created under
    """

    def __init__(self, runner: Runner, user_id: str = DEFAULT_USER_ID, agent_id: str | None = None) -> None:
        super().__init__(name=runner.agent.name, agent_id=agent_id)
        self.runner = runner
        self.user_id = user_id

    @property
    def app_name(self) -> str:
        return self.runner.app_name

    async def _ensure_adk_session(self, session_id: str, state: dict[str, Any]) -> Any:
        """Create the ADK session, or fetch it when it already exists."""
        session_service = self.runner.session_service
        existing = await session_service.get_session(
            app_name=self.app_name, user_id=self.user_id, session_id=session_id
        )
        if existing is not None:
            return existing

        logger.info(f"[ADK] Creating session {session_id} (app={self.app_name}, user={self.user_id})")
        try:  # nosemgrep: forbid-try-except - ADK session service fallback
            return await session_service.create_session(
                app_name=self.app_name, user_id=self.user_id, session_id=session_id, state=state
            )
        except Exception as e:
            logger.warning(f"[ADK] Session {session_id} already exists, retrieving. Error: {e!s}")
            adk_session = await session_service.get_session(
                app_name=self.app_name, user_id=self.user_id, session_id=session_id
            )
            if adk_session is None:
                raise
            return adk_session

    async def _sync_history(
        self,
        adk_session: Any,
        history: Sequence[types.Content],
        skip_model_turns: bool,
    ) -> int:
        synced = 0
        for content in history:
            # A resumed ADK session already holds the agent's own output
            if skip_model_turns and content.role == "model":
                continue
            event = Event(
                invocation_id=f"agui_sync_{uuid.uuid4().hex[:8]}",
                author="user" if content.role == "user" else self.runner.agent.name,
                content=content,
            )
            await self.runner.session_service.append_event(session=adk_session, event=event)
            synced += 1
        return synced

    async def _push_state(
        self,
        adk_session: Any,
        session: AgentSession | None,
        options: RunOptions | None,
    ) -> None:
        state_delta: dict[str, Any] = dict(session.state) if session is not None else {}
        if options is not None:
            state_delta[AG_UI_STATE_KEY] = options.additional_properties.get(AG_UI_STATE)
            state_delta[CLIENT_TOOLS_STATE_KEY] = [
                tool.model_dump(mode="json") for tool in options.tools or []
            ]
        if not state_delta:
            return

        event = Event(
            invocation_id=f"agui_state_{uuid.uuid4().hex[:8]}",
            author="user",
            actions=EventActions(state_delta=state_delta),
        )
        await self.runner.session_service.append_event(session=adk_session, event=event)

    async def _copy_state_back(self, session: AgentSession, message_count: int) -> None:
        adk_session = await self.runner.session_service.get_session(
            app_name=self.app_name, user_id=self.user_id, session_id=session.id
        )
        if adk_session is not None:
            session.state = {
                key: value
                for key, value in adk_session.state.items()
                if key not in INTERNAL_STATE_KEYS and not key.startswith("temp:")
            }
        session.synced_message_count = message_count

    async def run_streaming(
        self,
        messages: Sequence[ChatMessage],
        session: AgentSession | None = None,
        options: RunOptions | None = None,
        cancellation: CancellationToken | None = None,
    ) -> AsyncIterator[ChatResponseUpdate]:
        raise_if_cancelled(cancellation)

        # Resolve tool names across the whole conversation, then split off the new input
        call_names: dict[str, str] = {}
        contents = [to_adk_content(message, call_names) for message in messages]
        new_message = contents[-1] if contents else None
        if new_message is None:
            logger.warning("[ADK] Last message has no content for the model, nothing to run")
            return

        ephemeral = session is None
        session_id = session.id if session is not None else f"agui_ephemeral_{uuid.uuid4()}"
        synced_count = session.synced_message_count if session is not None else 0

        adk_session = await self._ensure_adk_session(session_id, dict(session.state) if session else {})
        try:
            history = [content for content in contents[synced_count:-1] if content is not None]
            if history:
                synced = await self._sync_history(adk_session, history, skip_model_turns=synced_count > 0)
                logger.info(f"[ADK] Synced {synced} history messages (already synced: {synced_count})")
            await self._push_state(adk_session, session, options)

            translator = AdkEventTranslator(response_id=str(uuid.uuid4()))
            event_count = 0
            run_events = self.runner.run_async(
                user_id=self.user_id,
                session_id=session_id,
                new_message=new_message,
                run_config=RunConfig(streaming_mode=StreamingMode.SSE),
            )
            async with aclosing(run_events) as events:
                async for event in events:
                    raise_if_cancelled(cancellation)
                    event_count += 1
                    update = translator.translate(event)
                    if update is not None:
                        yield update

            logger.info(f"[ADK] Run on session {session_id} completed: {event_count} events")
            if session is not None:
                await self._copy_state_back(session, len(messages))
        finally:
            if ephemeral:
                await self.runner.session_service.delete_session(
                    app_name=self.app_name, user_id=self.user_id, session_id=session_id
                )
