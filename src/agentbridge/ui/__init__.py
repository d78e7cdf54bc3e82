"""UI-facing plumbing: event envelopes, UI calls and surfaces."""

from agentbridge.ui.envelope import DELIMITER, Envelope, parse_envelope
from agentbridge.ui.js import build_js_call, escape_js
from agentbridge.ui.surface import UISurface, WebSocketSurface

__all__ = [
    "DELIMITER",
    "Envelope",
    "UISurface",
    "WebSocketSurface",
    "build_js_call",
    "escape_js",
    "parse_envelope",
]
