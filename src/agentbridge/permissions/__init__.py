"""Tool permission prompts."""

from agentbridge.permissions.coordinator import (
    DecisionSource,
    PermissionCoordinator,
    PermissionDecision,
    PermissionRequest,
)

__all__ = [
    "DecisionSource",
    "PermissionCoordinator",
    "PermissionDecision",
    "PermissionRequest",
]
