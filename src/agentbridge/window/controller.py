"""Chat window: one current Session per project, wired to a UI surface.

The window owns the HandlerContext, the dispatcher with its handlers and the
permission coordinator. It translates Session events into UI calls and
implements session replacement ("new session", "load history"):

    1. clear the UI message list
    2. interrupt the outgoing Session and close it
    3. build the new Session, rebind context and listener, set session info
    4. notify the UI

Replacements are serialized; step 3 never starts before step 2 completes.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from agentbridge.backend.claude import ClaudeBridge
from agentbridge.errors import HistoryLoadError, SessionStateError
from agentbridge.handlers import (
    HandlerContext,
    HistoryHandler,
    MessageDispatcher,
    PermissionHandler,
    ProviderHandler,
    SessionHandler,
    SettingsHandler,
)
from agentbridge.logging import get_logger
from agentbridge.permissions import PermissionCoordinator, PermissionRequest
from agentbridge.session import (
    MessagesUpdated,
    PermissionRequested,
    Session,
    SessionEvent,
    SessionIdAssigned,
    StateChanged,
    ThinkingChanged,
)
from agentbridge.settings import NODE_PATH_KEY
from agentbridge.ui.envelope import parse_envelope
from agentbridge.usage import compute_usage, empty_usage

if TYPE_CHECKING:
    from agentbridge.backend.protocol import BackendBridge
    from agentbridge.config.schema import Config
    from agentbridge.history import HistoryLoader
    from agentbridge.project import Project
    from agentbridge.settings import SettingsStore
    from agentbridge.ui.surface import UISurface

log = get_logger("window")

NEW_SESSION_TYPE = "create_new_session"

# Called with the session's working directory after each finished turn
RefreshHook = Callable[[str], None]


def _flag(value: bool) -> str:
    return "true" if value else "false"


class ChatWindow:
    """Controller for one project's chat window."""

    def __init__(
        self,
        project: Project,
        *,
        config: Config,
        bridges: Mapping[str, BackendBridge],
        settings: SettingsStore,
        history: HistoryLoader,
        surface: UISurface | None = None,
        refresh_hook: RefreshHook | None = None,
    ) -> None:
        self.project = project
        self._config = config
        self._refresh_hook = refresh_hook
        self._replace_lock = asyncio.Lock()
        self._initialized = False
        self._disposed = False
        self._dispose_lock = asyncio.Lock()

        backend = config.backend.default
        if backend not in bridges:
            backend = next(iter(bridges))
        self._context = HandlerContext(
            project=project,
            config=config,
            bridges=bridges,
            settings=settings,
            history=history,
            model=config.usage.model,
            backend=backend,
            ui=surface,
        )

        self._load_node_path()
        self._sync_provider()

        self._dispatcher = MessageDispatcher()
        self._settings_handler = SettingsHandler(
            self._context,
            on_model_changed=self._push_usage,
            on_node_path_changed=self._recheck_environment,
        )
        self._coordinator = PermissionCoordinator(
            prompt=self._show_permission_dialog,
            on_denied=self._on_permission_denied,
            timeout=config.permissions.timeout,
        )
        self._permission_handler = PermissionHandler(self._context, self._coordinator)

        self._dispatcher.register(self._settings_handler)
        self._dispatcher.register(ProviderHandler(self._context))
        self._dispatcher.register(SessionHandler(self._context))
        self._dispatcher.register(self._permission_handler)
        self._dispatcher.register(HistoryHandler(self._context, on_load=self.load_history_session))

        session = self._new_session()
        self._context.set_session(session)
        session.set_session_info(None, project.working_directory())

    # --- properties ---

    @property
    def context(self) -> HandlerContext:
        return self._context

    @property
    def session(self) -> Session:
        return self._context.session

    @property
    def coordinator(self) -> PermissionCoordinator:
        return self._coordinator

    @property
    def dispatcher(self) -> MessageDispatcher:
        return self._dispatcher

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def disposed(self) -> bool:
        return self._disposed

    # --- setup ---

    def _load_node_path(self) -> None:
        claude = self._context.bridges.get("claude")
        if not isinstance(claude, ClaudeBridge):
            return
        node_path = self._context.settings.get(NODE_PATH_KEY)
        if node_path:
            log.info("Using saved Node.js path %s", node_path)
            claude.set_node_executable(node_path)

    def _sync_provider(self) -> None:
        try:
            if self._context.settings.apply_active_provider_to_claude_settings():
                log.info("Applied active provider to Claude settings")
        except OSError as e:
            log.warning("Cannot sync provider settings: %s", e)

    async def start(self) -> None:
        """Check the backend environment and mark the window ready."""
        await self._check_environment()
        self._initialized = True
        log.info("Window ready for %s", self.project.root)

    async def _check_environment(self) -> bool:
        bridge = self._context.bridges[self._context.backend]
        try:
            ok = await bridge.check_environment()
        except Exception as e:
            log.warning("Environment check for %s failed: %s", bridge.name, e)
            ok = False
        if ok:
            self._context.call_ui("hideEnvironmentError")
            return True

        node = None
        if isinstance(bridge, ClaudeBridge):
            node = bridge.node_executable
        self._context.call_ui(
            "showEnvironmentError",
            json.dumps({"backend": bridge.name, "nodePath": node or ""}),
        )
        return False

    def _recheck_environment(self) -> None:
        self._context.spawn(self._check_environment(), error_prefix="Environment check failed")

    def attach_surface(self, surface: UISurface) -> None:
        """Route UI calls to ``surface`` and replay the current state into it."""
        self._context.ui = surface
        session = self._context.session
        self._push_messages(session.messages)
        self._push_usage()
        if session.session_id:
            self._context.call_ui("setSessionId", session.session_id)
        self._context.call_ui("showLoading", _flag(session.busy or session.loading))

    def detach_surface(self, surface: UISurface) -> None:
        if self._context.ui is surface:
            self._context.ui = None

    # --- inbound ---

    def handle_ui_message(self, raw: str) -> None:
        """Entry point for one text message from the UI."""
        if self._disposed:
            return
        envelope = parse_envelope(raw)
        if envelope is None:
            return
        if self._dispatcher.dispatch(envelope.type, envelope.content):
            return
        if envelope.type == NEW_SESSION_TYPE:
            self._context.spawn(self.create_new_session(), error_prefix="Failed to create session")
            return
        log.warning("Unknown message type: %s", envelope.type)

    def add_selection_info(self, text: str) -> None:
        """Insert editor selection text into the input box."""
        self._context.call_ui("addSelectionFromExternal", text)

    # --- session replacement ---

    def _new_session(self) -> Session:
        session = Session(
            self._context.bridges,
            backend=self._context.backend,
            history=self._context.history,
            model=self._context.model,
            interrupt_timeout=self._config.backend.interrupt_timeout,
        )
        session.permission_requester = self._request_permission
        token = session.token
        session.set_listener(lambda event: self._on_session_event(token, event))
        return session

    async def _replace_session(self, session_id: str | None, cwd: str) -> Session:
        async with self._replace_lock:
            if self._disposed:
                raise SessionStateError("Window is disposed")
            self._context.call_ui("clearMessages")

            old = self._context.session
            try:
                await old.interrupt()
            except Exception as e:
                log.warning("Interrupt of outgoing session failed: %s", e)
                self._context.call_ui("addErrorMessage", f"Interrupt failed: {e}")
            finally:
                old.close()

            session = self._new_session()
            self._context.set_session(session)
            session.set_session_info(session_id, cwd)
            log.info("Session replaced (id=%s, cwd=%s)", session_id, session.cwd)
            return session

    async def create_new_session(self) -> None:
        await self._replace_session(None, self.project.working_directory())
        self._context.call_ui("updateStatus", "New session created")
        self._context.call_ui("onUsageUpdate", json.dumps(self._empty_usage_payload()))

    async def load_history_session(self, session_id: str, project_path: str | None = None) -> None:
        cwd = self.project.working_directory(project_path)
        session = await self._replace_session(session_id, cwd)
        self._context.call_ui("setSessionId", session_id)
        self._context.call_ui("updateStatus", "Loading session...")
        try:
            await session.load_from_server()
        except HistoryLoadError as e:
            log.warning("Failed to load session %s: %s", session_id, e)
            self._context.call_ui("addErrorMessage", f"Failed to load session: {e}")
            return
        self._context.call_ui("updateStatus", "Session loaded")

    # --- permissions ---

    async def _request_permission(
        self, tool_name: str, inputs: dict[str, Any], request_id: str
    ) -> bool:
        decision = await self._coordinator.request_permission(
            tool_name, inputs, request_id=request_id
        )
        return decision.allowed

    def _show_permission_dialog(self, request: PermissionRequest) -> None:
        self._permission_handler.show_permission_dialog(request)

    def _on_permission_denied(self, request: PermissionRequest) -> None:
        # Interrupt whichever session is current when the denial lands
        if self._disposed:
            return
        log.info("Permission for %s denied; interrupting session", request.tool_name)
        self._context.spawn(self._context.session.interrupt(), error_prefix="Interrupt failed")

    # --- session events ---

    def _on_session_event(self, token: str, event: SessionEvent) -> None:
        if self._disposed or token != self._context.session.token:
            log.debug("Dropping %s from stale session", type(event).__name__)
            return

        if isinstance(event, MessagesUpdated):
            self._push_messages(event.messages)
            self._push_usage()
        elif isinstance(event, StateChanged):
            self._context.call_ui("showLoading", _flag(event.busy or event.loading))
            if event.error:
                self._context.call_ui("updateStatus", event.error)
            if not event.busy and not event.loading:
                self._run_refresh_hook()
        elif isinstance(event, SessionIdAssigned):
            self._context.call_ui("setSessionId", event.session_id)
        elif isinstance(event, ThinkingChanged):
            self._context.call_ui("showThinkingStatus", _flag(event.thinking))
        elif isinstance(event, PermissionRequested):
            log.debug("Backend asked permission for %s (%s)", event.tool_name, event.request_id)

    def _push_messages(self, messages: Any) -> None:
        self._context.call_ui("updateMessages", json.dumps([m.to_dict() for m in messages]))

    def _push_usage(self) -> None:
        snapshot = compute_usage(
            self._context.session.messages,
            self._context.model,
            self._config.usage.model_limits,
        )
        self._context.call_ui("onUsageUpdate", json.dumps(snapshot.to_payload()))

    def _empty_usage_payload(self) -> dict[str, Any]:
        return empty_usage(self._context.model, self._config.usage.model_limits).to_payload()

    def _run_refresh_hook(self) -> None:
        hook = self._refresh_hook
        cwd = self._context.session.cwd
        if hook is None or cwd is None:
            return
        try:
            hook(cwd)
        except Exception:
            log.exception("Refresh hook failed")

    # --- teardown ---

    async def dispose(self) -> None:
        """Tear the window down. Safe to call more than once."""
        async with self._dispose_lock:
            if self._disposed:
                return
            self._disposed = True
            self._context.disposed = True

            self._coordinator.dispose()
            self._dispatcher.clear()

            session = self._context.session
            try:
                await session.interrupt()
            except Exception as e:
                log.warning("Interrupt during dispose failed: %s", e)
            finally:
                session.close()

            await self._context.aclose()
            self._context.ui = None
            log.info("Window for %s disposed", self.project.root)
