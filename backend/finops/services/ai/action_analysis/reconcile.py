"""Cross-action reconciliation: flags one selected action sets on another."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from .catalog import GENERATE_STATEMENT, SEND_EMAIL

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CrossActionRule:
    trigger: str
    target: str
    parameter: str
    value: Any


CROSS_ACTION_RULES: tuple[CrossActionRule, ...] = (
    # A statement requested together with an email is delivered as an attachment.
    CrossActionRule(trigger=SEND_EMAIL, target=GENERATE_STATEMENT, parameter="emailFlag", value=True),
)


def reconcile(
    selected: list[str],
    parameters_by_code: dict[str, dict[str, Any]],
    rules: tuple[CrossActionRule, ...] = CROSS_ACTION_RULES,
) -> list[CrossActionRule]:
    """Apply every rule whose trigger and target are both selected.

    Mutates *parameters_by_code* in place and returns the rules applied.
    """
    chosen = set(selected)
    applied: list[CrossActionRule] = []
    for rule in rules:
        if rule.trigger in chosen and rule.target in chosen:
            parameters_by_code.setdefault(rule.target, {})[rule.parameter] = rule.value
            logger.info("Set %s.%s=%r because %s is selected", rule.target, rule.parameter, rule.value, rule.trigger)
            applied.append(rule)
    return applied
