"""Session: one conversation bound to a backend agent.

A Session owns the conversation state (id, working directory, history,
busy/loading flags) and runs at most one backend turn at a time. State
changes are reported as tagged events to a single listener.

Lifecycle:
    session = Session(bridges, backend="claude", history=HistoryLoader())
    session.set_listener(on_event)
    session.set_session_info(None, "/path/to/project")
    await session.send("hello")          # runs one turn
    await session.interrupt()             # stops the in-flight turn, if any
    session.close()                       # no more events after this
"""

from __future__ import annotations

import asyncio
import contextlib
import uuid
from collections import deque
from collections.abc import Awaitable, Callable, Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

from agentbridge.backend.protocol import BackendEvent, BackendEventKind, TurnRequest
from agentbridge.errors import (
    AgentBridgeError,
    HistoryLoadError,
    SessionBusyError,
    SessionStateError,
)
from agentbridge.logging import get_logger
from agentbridge.session.events import (
    MessagesUpdated,
    PermissionRequested,
    SessionEvent,
    SessionIdAssigned,
    SessionListener,
    StateChanged,
    ThinkingChanged,
)
from agentbridge.session.messages import Message, MessageType

if TYPE_CHECKING:
    from agentbridge.backend.protocol import BackendBridge
    from agentbridge.history import HistoryLoader

log = get_logger("session")

# async (tool_name, inputs, request_id) -> allowed
SessionPermissionRequester = Callable[[str, dict[str, Any], str], Awaitable[bool]]


class Session:
    """A conversation with one backend agent.

    ``token`` identifies this Session instance for its whole life, including
    before the backend assigns a ``session_id``.
    """

    def __init__(
        self,
        bridges: Mapping[str, BackendBridge],
        *,
        backend: str = "claude",
        history: HistoryLoader | None = None,
        model: str | None = None,
        interrupt_timeout: float = 5.0,
    ) -> None:
        if backend not in bridges:
            raise ValueError(f"Unknown backend: {backend}")

        self.token = uuid.uuid4().hex
        self.model = model
        self.permission_requester: SessionPermissionRequester | None = None

        self._bridges = bridges
        self._backend = backend
        self._history = history
        self._interrupt_timeout = interrupt_timeout

        self._session_id: str | None = None
        self._cwd: str | None = None
        self._info_set = False
        self._loaded = False

        self._messages: list[Message] = []
        self._busy = False
        self._loading = False
        self._thinking = False

        # Event delivery
        self._listener: SessionListener | None = None
        self._pending_events: deque[SessionEvent] = deque()
        self._delivering = False
        self._closed = False

        # In-flight turn
        self._turn: TurnRequest | None = None
        self._turn_task: asyncio.Task[None] | None = None
        self._turn_error: str | None = None
        self._cancel_token: asyncio.Event | None = None
        self._interrupt_future: asyncio.Future[None] | None = None

    # --- properties ---

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def cwd(self) -> str | None:
        return self._cwd

    @property
    def backend(self) -> str:
        return self._backend

    @property
    def messages(self) -> list[Message]:
        """Snapshot of the history."""
        return list(self._messages)

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def thinking(self) -> bool:
        return self._thinking

    @property
    def closed(self) -> bool:
        return self._closed

    # --- setup ---

    def set_listener(self, listener: SessionListener | None) -> None:
        """Install the single event listener, replacing any previous one."""
        self._listener = listener

    def set_session_info(self, session_id: str | None, cwd: str) -> None:
        """Bind the session id (None for a new conversation) and working dir.

        Must be called exactly once, before the first turn.
        """
        if self._info_set:
            raise SessionStateError("Session info is already set")
        self._info_set = True
        self._session_id = session_id
        self._cwd = str(Path(cwd).expanduser().resolve())

    def set_backend(self, backend: str) -> None:
        if backend not in self._bridges:
            raise ValueError(f"Unknown backend: {backend}")
        if self._busy:
            raise SessionBusyError(self._session_id)
        self._backend = backend

    def close(self) -> None:
        """Detach the listener. A closed Session never emits again."""
        self._closed = True
        self._listener = None
        self._pending_events.clear()

    # --- event delivery ---

    def _emit(self, event: SessionEvent) -> None:
        if self._closed or self._listener is None:
            return
        self._pending_events.append(event)
        if self._delivering:
            # Re-entrant emit from inside the listener; the outer loop delivers it
            return
        self._delivering = True
        try:
            while self._pending_events and not self._closed:
                pending = self._pending_events.popleft()
                listener = self._listener
                if listener is None:
                    break
                try:
                    listener(pending)
                except Exception:
                    log.exception("Session listener failed on %s", type(pending).__name__)
        finally:
            self._delivering = False

    def _emit_messages(self) -> None:
        self._emit(MessagesUpdated(self.token, tuple(self._messages)))

    def _emit_state(self, error: str | None = None) -> None:
        self._emit(StateChanged(self.token, self._busy, self._loading, error))

    def _set_thinking(self, thinking: bool) -> None:
        if thinking == self._thinking:
            return
        self._thinking = thinking
        self._emit(ThinkingChanged(self.token, thinking))

    # --- turns ---

    async def send(self, text: str) -> None:
        """Run one turn with ``text`` as the user's input.

        Completes when the turn ends (normally, with an error, or by
        interruption). Backend errors are reported through StateChanged and
        leave the Session idle; they are not raised.

        Raises:
            SessionBusyError: If a turn is in flight or history is loading.
            SessionStateError: If the Session is closed or not initialized.
        """
        if self._closed:
            raise SessionStateError("Session is closed")
        if not self._info_set or self._cwd is None:
            raise SessionStateError("set_session_info() must be called before send()")
        if self._busy or self._loading:
            raise SessionBusyError(self._session_id)

        turn = TurnRequest(
            prompt=text,
            cwd=self._cwd,
            session_id=self._session_id,
            model=self.model,
        )
        self._busy = True
        self._turn = turn
        self._turn_error = None
        self._cancel_token = asyncio.Event()

        self._messages.append(Message(MessageType.USER, text))
        self._emit_messages()
        self._emit_state()

        self._turn_task = asyncio.create_task(
            self._run_turn(turn, self._cancel_token), name=f"turn-{turn.turn_id}"
        )
        await self._turn_task

    async def _run_turn(self, turn: TurnRequest, cancel_token: asyncio.Event) -> None:
        bridge = self._bridges[self._backend]
        error: str | None = None
        try:
            if cancel_token.is_set():
                return
            stream = bridge.stream(turn, self._request_permission)
            async with contextlib.aclosing(stream):  # type: ignore[type-var]
                async for event in stream:
                    if cancel_token.is_set():
                        break
                    self._apply_backend_event(event)
        except asyncio.CancelledError:
            if not cancel_token.is_set():
                raise
            log.debug("Turn %s force-cancelled after interrupt", turn.turn_id)
        except AgentBridgeError as e:
            error = str(e)
            log.warning("Turn %s failed: %s", turn.turn_id, e)
        except Exception as e:
            error = str(e) or type(e).__name__
            log.exception("Turn %s failed", turn.turn_id)
        finally:
            if error is None and not cancel_token.is_set():
                error = self._turn_error
            self._turn = None
            self._busy = False
            self._set_thinking(False)
            self._emit_state(error)

    def _apply_backend_event(self, event: BackendEvent) -> None:
        if event.kind is BackendEventKind.MESSAGE and event.message is not None:
            if event.message.type is MessageType.ASSISTANT:
                self._set_thinking(False)
            self._messages.append(event.message)
            self._emit_messages()
        elif event.kind is BackendEventKind.SESSION_ID and event.session_id:
            if self._session_id is None:
                self._session_id = event.session_id
                self._emit(SessionIdAssigned(self.token, event.session_id))
            elif self._session_id != event.session_id:
                log.debug(
                    "Backend reported session %s for session %s",
                    event.session_id,
                    self._session_id,
                )
        elif event.kind is BackendEventKind.THINKING and event.thinking is not None:
            self._set_thinking(event.thinking)
        elif event.kind is BackendEventKind.USAGE and event.usage is not None:
            self._attach_usage(event.usage)
        elif event.kind is BackendEventKind.ERROR:
            text = event.error or "Backend error"
            self._turn_error = text
            self._messages.append(Message(MessageType.ERROR, text))
            self._emit_messages()

    def _attach_usage(self, usage: dict[str, Any]) -> None:
        for index in range(len(self._messages) - 1, -1, -1):
            message = self._messages[index]
            if message.type is not MessageType.ASSISTANT:
                continue
            raw = dict(message.raw or {})
            inner = dict(raw.get("message") or {})
            inner["usage"] = usage
            raw["message"] = inner
            self._messages[index] = Message(
                message.type, message.content, raw=raw, timestamp=message.timestamp
            )
            self._emit_messages()
            return
        log.debug("Usage reported without an assistant message; ignored")

    async def _request_permission(self, tool_name: str, inputs: dict[str, Any]) -> bool:
        request_id = uuid.uuid4().hex
        self._emit(PermissionRequested(self.token, request_id, tool_name, dict(inputs)))

        requester = self.permission_requester
        cancel_token = self._cancel_token
        if requester is None or cancel_token is None or self._closed:
            log.warning("No permission handler; denying %s", tool_name)
            return False

        decision = asyncio.ensure_future(requester(tool_name, inputs, request_id))
        cancelled = asyncio.ensure_future(cancel_token.wait())
        try:
            done, _ = await asyncio.wait(
                {decision, cancelled}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            cancelled.cancel()
            if not decision.done():
                decision.cancel()
        if decision not in done or decision.cancelled():
            return False
        return bool(decision.result())

    # --- interruption ---

    async def interrupt(self) -> None:
        """Stop the in-flight turn and wait until it has stopped.

        Safe from any state. On an idle Session this returns immediately and
        emits nothing. Concurrent calls share a single backend cancellation.
        The turn gets ``interrupt_timeout`` seconds to wind down before its
        task is cancelled.
        """
        if self._interrupt_future is not None:
            await asyncio.shield(self._interrupt_future)
            return

        task = self._turn_task
        if task is None or task.done():
            return

        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._interrupt_future = future
        try:
            await self._stop_turn(task)
        except BaseException as e:
            future.set_exception(e)
            # Mark retrieved; the caller below re-raises it
            future.exception()
            raise
        else:
            future.set_result(None)
        finally:
            self._interrupt_future = None

    async def _stop_turn(self, task: asyncio.Task[None]) -> None:
        turn = self._turn
        if self._cancel_token is not None:
            self._cancel_token.set()

        if turn is not None:
            bridge = self._bridges[self._backend]
            # The bridge escalates on its own: interrupt frame, then terminate,
            # each allowed interrupt_timeout
            budget = 2 * self._interrupt_timeout + 1.0
            try:
                await asyncio.wait_for(bridge.interrupt(turn), timeout=budget)
            except asyncio.TimeoutError:
                log.warning("Backend did not confirm interrupt of turn %s", turn.turn_id)
            except Exception:
                log.exception("Backend interrupt failed for turn %s", turn.turn_id)

        done, _ = await asyncio.wait({task}, timeout=self._interrupt_timeout)
        if not done:
            log.warning("Turn still running after interrupt; cancelling task")
            task.cancel()
            await asyncio.wait({task})

    # --- history ---

    async def load_from_server(self) -> None:
        """Replace the (empty) history with the stored conversation.

        Only valid on a fresh Session whose id was set via set_session_info.
        On failure the history stays empty and HistoryLoadError is raised.
        """
        if self._session_id is None:
            raise SessionStateError("Cannot load history for a new session")
        if self._loaded or self._busy or self._loading or self._messages:
            raise SessionStateError("History can only be loaded into a fresh session")
        if self._history is None:
            raise SessionStateError("No history loader configured")
        if self._cwd is None:
            raise SessionStateError("set_session_info() must be called before loading history")

        self._loaded = True
        self._loading = True
        self._emit_state()
        try:
            messages = await self._history.load(self._session_id, self._cwd)
        except Exception as e:
            self._messages = []
            self._loading = False
            self._emit_state()
            if isinstance(e, HistoryLoadError):
                raise
            raise HistoryLoadError(str(e)) from e

        self._messages = list(messages)
        self._loading = False
        self._emit_messages()
        self._emit_state()
        log.info("Loaded %d messages for session %s", len(messages), self._session_id)
