"""Inbound UI event parsing.

The UI sends each event as ``type:content``. Only the first ``:`` splits, so
content may contain colons (JSON, paths, URLs).
"""

from __future__ import annotations

from dataclasses import dataclass

from agentbridge.logging import get_logger

log = get_logger("ui.envelope")

DELIMITER = ":"


@dataclass(frozen=True, slots=True)
class Envelope:
    type: str
    content: str = ""


def parse_envelope(raw: str | None) -> Envelope | None:
    """Split a raw UI event. Returns None (and logs) for malformed input."""
    if not raw:
        log.warning("Dropping empty UI message")
        return None
    msg_type, _, content = raw.partition(DELIMITER)
    if not msg_type:
        log.warning("Dropping UI message without a type: %.80r", raw)
        return None
    return Envelope(msg_type, content)
