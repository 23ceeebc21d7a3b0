"""
Positional parameter placeholders ("$1", "$2", ...) used inside templates.
"""

import re
from collections.abc import Sequence
from typing import Any

PARAM_PATTERN = re.compile(r"^\$([1-9][0-9]*)$")


def param_index(value: str) -> int | None:
    """Return the zero-based parameter index referenced by ``value``, if any."""
    match = PARAM_PATTERN.match(value)
    if match is None:
        return None
    return int(match.group(1)) - 1


def resolve_value(value: Any, params: Sequence[str]) -> Any:
    """Substitute a "$N" placeholder with the N-th parameter.

    Placeholders pointing past the end of ``params`` and any non-placeholder
    value are returned unchanged.

    Args:
        value: Any JSON value taken from a template
        params: Caller supplied parameter strings

    Returns:
        The parameter string, or ``value`` itself
    """
    if isinstance(value, str):
        index = param_index(value)
        if index is not None and index < len(params):
            return str(params[index])
    return value


def placeholder(index: int) -> str:
    """Build the placeholder for a zero-based parameter index."""
    return f"${index + 1}"
