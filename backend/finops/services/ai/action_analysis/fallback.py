"""Last-resort action extraction when the reply's JSON cannot be parsed."""

from __future__ import annotations

import logging
import re

from .catalog import DEFAULT_ACTION_CODE, ActionCatalog

logger = logging.getLogger(__name__)

SELECTED_ACTIONS_RE = re.compile(
    r"""selectedActions["'`]?\s*[:=]?\s*\[([^\]]*)\]""",
    re.IGNORECASE,
)
QUOTE_CHARS = "\"'`“”‘’"


def _listed_actions(raw_text: str, catalog: ActionCatalog) -> list[str]:
    match = SELECTED_ACTIONS_RE.search(raw_text)
    if not match:
        return []

    codes: list[str] = []
    for element in match.group(1).split(","):
        token = element.strip().strip(QUOTE_CHARS).strip()
        if not token:
            continue
        definition = catalog.resolve(token)
        if definition is None:
            logger.warning("Fallback: unknown action token %r", token)
            continue
        if definition.code not in codes:
            codes.append(definition.code)
    return codes


def _mentioned_actions(raw_text: str, catalog: ActionCatalog) -> list[str]:
    upper = raw_text.upper()
    return [code for code in catalog.codes if re.search(rf"\b{re.escape(code)}\b", upper)]


def fallback_actions(raw_text: str | None, catalog: ActionCatalog) -> list[str]:
    """Best-effort action codes from *raw_text*; never empty, never raises.

    Prefers an explicit ``selectedActions: [...]`` list, then codes
    mentioned anywhere in the reply, then the default action.
    """
    if raw_text:
        codes = _listed_actions(raw_text, catalog)
        if codes:
            logger.info("Fallback: recovered %s from selectedActions list", codes)
            return codes

        codes = _mentioned_actions(raw_text, catalog)
        if codes:
            logger.info("Fallback: recovered %s from code mentions", codes)
            return codes

    logger.warning("Fallback: no actions recognized, using %s", DEFAULT_ACTION_CODE)
    return [DEFAULT_ACTION_CODE]
