"""Permission prompts: showing them and applying the user's answer."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from pydantic import ValidationError

from agentbridge.handlers.base import MessageHandler
from agentbridge.handlers.payloads import PermissionDecisionPayload
from agentbridge.logging import get_logger

if TYPE_CHECKING:
    from agentbridge.handlers.context import HandlerContext
    from agentbridge.permissions.coordinator import PermissionCoordinator, PermissionRequest

log = get_logger("handlers.permission")


class PermissionHandler(MessageHandler):
    supported_types = frozenset({"permission_decision"})

    def __init__(self, context: HandlerContext, coordinator: PermissionCoordinator) -> None:
        super().__init__(context)
        self._coordinator = coordinator

    def show_permission_dialog(self, request: PermissionRequest) -> None:
        """Prompt callback for the coordinator."""
        self.context.call_ui("showPermissionDialog", json.dumps(request.to_dict()))

    def handle(self, msg_type: str, content: str) -> None:
        try:
            payload = PermissionDecisionPayload.model_validate_json(content)
        except ValidationError as e:
            log.warning("Malformed permission decision: %s", e)
            return
        self._coordinator.resolve(payload.request_id, payload.allow)
