"""Parameter validation against an action's closed value sets."""

from __future__ import annotations

import logging
from typing import Any

from .catalog import ActionTypeDefinition

logger = logging.getLogger(__name__)

# Duplicates of the outer request; never part of structured parameters.
VOLATILE_PARAMETERS = ("content", "extraContent")


def strip_volatile(parameters: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in parameters.items() if k not in VOLATILE_PARAMETERS}


def validate_parameters(parameters: dict[str, Any] | None, definition: ActionTypeDefinition) -> dict[str, Any]:
    """Return a cleaned copy of *parameters* for *definition*.

    A string value outside its field's alternative set is replaced with
    ``None``; the action itself is never rejected. Comma-joined
    combinations such as ``"in,out"`` are not alternatives and are nulled
    too. Free-form fields and keys unknown to the template pass through.
    """
    if not parameters:
        return {}

    cleaned = strip_volatile(parameters)
    for name, alternatives in definition.enumerations.items():
        if name not in cleaned:
            continue
        value = cleaned[name]
        if isinstance(value, str) and value not in alternatives:
            logger.info(
                "Nulling %s.%s: %r not in %s",
                definition.code,
                name,
                value,
                "|".join(alternatives),
            )
            cleaned[name] = None
    return cleaned
