"""Finance action analysis: routes a customer utterance to catalog actions.

Pipeline: compose prompt -> model call -> extract JSON -> validate
parameters (+ relative dates, cross-action flags) -> splice the corrected
JSON back into the model's reply. Parse and schema problems degrade to
the fallback extractor or the default action; only a failed customer
lookup or model call fails the request.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from finops.core.config import get_settings
from finops.services.customer_service import get_customer_summary

from ..common import router as ai_router
from ..common.json_tools import JsonBlock, dump_json, find_json_block, parse_json_block, splice_json_block
from .catalog import DEFAULT_ACTION_CODE, ActionCatalog, build_default_catalog
from .contracts import AnalysisRequest, AnalysisResult, DateRange, ParsedAction, ResolvedReply
from .dates import apply_date_range, business_now, resolve_date_range
from .fallback import fallback_actions
from .prompts import build_analysis_prompt, build_user_content
from .reconcile import reconcile
from .validation import validate_parameters

logger = logging.getLogger(__name__)

SCOPE = "action_analysis"

# Echo of the request some models add next to selectedActions.
ROOT_VOLATILE_KEYS = ("extraContent",)


class ActionAnalysisError(Exception):
    pass


class ModelCallError(ActionAnalysisError):
    pass


def _selected_codes(raw_selected: Any, catalog: ActionCatalog) -> list[str]:
    if isinstance(raw_selected, str):
        raw_selected = [raw_selected]
    if raw_selected is None:
        raw_selected = []
    if not isinstance(raw_selected, list):
        raise ValueError(f"selectedActions must be a list, got {type(raw_selected).__name__}")

    codes: list[str] = []
    for token in raw_selected:
        definition = catalog.resolve(token)
        if definition is None:
            logger.warning("Dropping unknown action code %r", token)
            continue
        if definition.code not in codes:
            codes.append(definition.code)
    return codes


def _parameters_by_code(raw_parameters: Any, catalog: ActionCatalog) -> dict[str, dict[str, Any]]:
    if raw_parameters is None:
        return {}
    if not isinstance(raw_parameters, dict):
        raise ValueError(f"parameters must be an object, got {type(raw_parameters).__name__}")

    by_code: dict[str, dict[str, Any]] = {}
    for key, params in raw_parameters.items():
        definition = catalog.resolve(key)
        if definition is None:
            logger.warning("Dropping parameters for unknown action code %r", key)
            continue
        if not isinstance(params, dict):
            logger.warning("Ignoring non-object parameters for %s", definition.code)
            continue
        by_code[definition.code] = params
    return by_code


def _resolve_actions(
    selected: list[str],
    raw_parameters: dict[str, dict[str, Any]],
    original_content: str,
    catalog: ActionCatalog,
    now: datetime,
) -> tuple[dict[str, dict[str, Any]], DateRange | None]:
    """Validate, date-resolve and reconcile the parameters of *selected*."""
    parameters: dict[str, dict[str, Any]] = {}
    date_range: DateRange | None = None

    for code in selected:
        definition = catalog[code]
        validated = validate_parameters(raw_parameters.get(code), definition)
        if definition.resolves_relative_dates:
            if date_range is None:
                date_range = resolve_date_range(original_content, now)
            apply_date_range(validated, date_range)
        parameters[code] = validated

    reconcile(selected, parameters)
    return parameters, date_range


def _fallback_reply(raw_text: str, original_content: str, catalog: ActionCatalog, now: datetime) -> ResolvedReply:
    selected = fallback_actions(raw_text, catalog)
    parameters, date_range = _resolve_actions(selected, {}, original_content, catalog, now)
    return ResolvedReply(
        text=raw_text,
        actions=[ParsedAction(code=code, parameters=parameters[code]) for code in selected],
        selected_actions=selected,
        date_range=date_range,
        used_fallback=True,
    )


def _resolve_payload(
    raw_text: str,
    block: JsonBlock,
    payload: dict[str, Any],
    original_content: str,
    catalog: ActionCatalog,
    now: datetime,
) -> ResolvedReply:
    selected = _selected_codes(payload.get("selectedActions"), catalog)
    raw_parameters = _parameters_by_code(payload.get("parameters"), catalog)

    if not selected:
        logger.info("No known actions selected, using %s", DEFAULT_ACTION_CODE)
        selected = [DEFAULT_ACTION_CODE]

    parameters, date_range = _resolve_actions(selected, raw_parameters, original_content, catalog, now)

    corrected = {k: v for k, v in payload.items() if k not in ROOT_VOLATILE_KEYS}
    corrected["selectedActions"] = selected
    corrected["parameters"] = parameters
    if date_range is not None:
        hint = corrected.get("dateRange")
        hint = dict(hint) if isinstance(hint, dict) else {}
        hint.update(date_range.as_hint())
        corrected["dateRange"] = hint

    return ResolvedReply(
        text=splice_json_block(raw_text, block, dump_json(corrected)),
        actions=[ParsedAction(code=code, parameters=parameters[code]) for code in selected],
        selected_actions=selected,
        date_range=date_range,
    )


def resolve_reply(
    raw_text: str | None,
    original_content: str,
    catalog: ActionCatalog,
    now: datetime,
) -> ResolvedReply:
    """Turn a raw model reply into validated actions and a corrected reply text.

    Never raises: unparsable replies go through ``fallback_actions``.
    """
    raw_text = raw_text or ""

    block = find_json_block(raw_text)
    if block is None:
        logger.warning("No JSON found in model reply, using fallback extraction")
        return _fallback_reply(raw_text, original_content, catalog, now)

    try:
        payload, block = parse_json_block(raw_text, block)
        logger.debug("Extracted JSON payload at %d:%d", block.start, block.end)
        return _resolve_payload(raw_text, block, payload, original_content, catalog, now)
    except (ValueError, TypeError) as exc:
        logger.warning("Could not resolve model reply (%s): %s", exc, raw_text[:200])
        return _fallback_reply(raw_text, original_content, catalog, now)


async def analyze_action(
    request: AnalysisRequest,
    db: Session,
    *,
    catalog: ActionCatalog | None = None,
    now: datetime | None = None,
) -> AnalysisResult:
    """Analyse *request* for its customer and resolve the selected finance actions.

    Raises ``CustomerLookupError`` subclasses for a bad or unknown customer
    and ``ModelCallError`` when the provider call fails. The model call is
    not retried here.
    """
    settings = get_settings()
    catalog = catalog if catalog is not None else build_default_catalog()
    now = now or business_now(settings.action_analysis_timezone)

    customer = get_customer_summary(db, request.customer_identifier)

    system_prompt = build_analysis_prompt(catalog, now, request.special_prompt)
    user_content = build_user_content(request.content, customer, catalog)

    config = ai_router.resolve(SCOPE, override_model=request.model)
    temperature = request.temperature if request.temperature is not None else config.temperature
    max_tokens = request.max_tokens or config.max_tokens
    logger.debug("Prompt composed (%d chars), calling %s/%s", len(system_prompt), config.provider.name, config.model)

    t0 = time.monotonic()
    try:
        result = await config.provider.generate(
            user_content,
            system_prompt=system_prompt,
            model=config.model,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout_seconds=config.timeout_seconds,
        )
    except Exception as exc:
        logger.warning("Model call via %s failed: %s", config.provider.name, exc)
        raise ModelCallError(f"Model call failed: {exc}") from exc

    logger.debug("Model replied with %d chars", len(result.raw_text or ""))
    resolved = resolve_reply(result.raw_text, request.content, catalog, now)
    total_ms = (time.monotonic() - t0) * 1000

    logger.info(
        "Action analysis for customer %s: %s (provider=%s, fallback=%s, %.0f ms)",
        customer.id,
        resolved.selected_actions,
        result.provider,
        resolved.used_fallback,
        total_ms,
    )

    return AnalysisResult(
        reconciled_text=resolved.text,
        original_content=request.content,
        selected_actions=resolved.selected_actions,
        customer_summary=customer,
        actions=resolved.actions,
        date_range=resolved.date_range,
        used_fallback=resolved.used_fallback,
        provider=result.provider,
        model=result.model,
        latency_ms=round(total_ms, 2),
    )
