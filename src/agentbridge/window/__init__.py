"""Chat windows and the per-project registry."""

from agentbridge.window.controller import NEW_SESSION_TYPE, ChatWindow, RefreshHook
from agentbridge.window.registry import WindowRegistry

__all__ = ["NEW_SESSION_TYPE", "ChatWindow", "RefreshHook", "WindowRegistry"]
