"""UI message handlers and their dispatcher."""

from agentbridge.handlers.base import MessageHandler
from agentbridge.handlers.context import HandlerContext
from agentbridge.handlers.dispatcher import MessageDispatcher
from agentbridge.handlers.history_handler import HistoryHandler
from agentbridge.handlers.permission_handler import PermissionHandler
from agentbridge.handlers.provider_handler import ProviderHandler
from agentbridge.handlers.session_handler import SessionHandler
from agentbridge.handlers.settings_handler import SettingsHandler

__all__ = [
    "HandlerContext",
    "HistoryHandler",
    "MessageDispatcher",
    "MessageHandler",
    "PermissionHandler",
    "ProviderHandler",
    "SessionHandler",
    "SettingsHandler",
]
