"""Outbound UI call construction.

A UI call is a function name plus string arguments. Arguments are escaped
for a single-quoted JS string literal before they are embedded.
"""

from __future__ import annotations

import re

_IDENTIFIER = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")

_ESCAPES = {
    "\\": "\\\\",
    "'": "\\'",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\b": "\\b",
    "\f": "\\f",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
    "\0": "\\x00",
}
_ESCAPE_PATTERN = re.compile("|".join(re.escape(ch) for ch in _ESCAPES) + "|</")


def escape_js(value: str | None) -> str:
    """Escape ``value`` for embedding inside a JS string literal."""
    if not value:
        return ""
    return _ESCAPE_PATTERN.sub(lambda m: _ESCAPES.get(m.group(0), "<\\/"), value)


def build_js_call(function_name: str, *args: str) -> str:
    """Build a guarded call of ``window.<function_name>`` with escaped args."""
    if not _IDENTIFIER.match(function_name):
        raise ValueError(f"Invalid UI function name: {function_name!r}")
    arg_list = ", ".join(f"'{escape_js(arg)}'" for arg in args)
    return (
        f"if (typeof window.{function_name} === 'function') "
        f"{{ window.{function_name}({arg_list}); }}"
    )
