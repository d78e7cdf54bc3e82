"""API provider profiles."""

from __future__ import annotations

import json

from agentbridge.handlers.base import MessageHandler


class ProviderHandler(MessageHandler):
    supported_types = frozenset({"get_providers", "switch_provider"})

    def handle(self, msg_type: str, content: str) -> None:
        settings = self.context.settings
        if msg_type == "switch_provider":
            provider_id = content.strip()
            try:
                settings.set_active_provider(provider_id)
            except KeyError:
                self.context.call_ui("addErrorMessage", f"Unknown provider: {provider_id}")
                return
            settings.apply_active_provider_to_claude_settings()
        self.context.call_ui("updateProviders", json.dumps(settings.list_providers()))
