"""AI Router: picks provider, model and call limits for a scope."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from finops.core.config import Settings, get_settings

from .providers import BaseProvider, get_provider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScopeSettings:
    """Names of the ``Settings`` attributes that configure one scope."""

    provider_attr: str
    model_attr: str
    timeout_attr: str


SCOPES: dict[str, ScopeSettings] = {
    "action_analysis": ScopeSettings(
        provider_attr="ai_action_analysis_provider",
        model_attr="ai_action_analysis_model",
        timeout_attr="ai_action_analysis_timeout_seconds",
    ),
}


@dataclass(frozen=True)
class ResolvedConfig:
    """Final resolved provider + model after the override chain."""

    provider: BaseProvider
    model: str
    temperature: float
    max_tokens: int
    timeout_seconds: float


def _first_set(*candidates: str | None) -> str:
    for value in candidates:
        if value and value.strip():
            return value.strip()
    return ""


def _allowed_model(settings: Settings, provider_name: str, model: str) -> str:
    allowed = settings.ai_allowed_models.get(provider_name, [])
    if not allowed:
        return model
    if not model:
        return allowed[0]
    if model not in allowed:
        logger.warning("Model %r not allowed for %r, using %r", model, provider_name, allowed[0])
        return allowed[0]
    return model


def resolve(
    scope: str,
    *,
    override_provider: str | None = None,
    override_model: str | None = None,
) -> ResolvedConfig:
    """Resolve provider + model for *scope*.

    Resolution chain (first non-empty wins): the request overrides (only
    when ``enable_ai_overrides`` is on), then the scope's env settings,
    then ``"mock"``. A model outside the provider's allowlist is replaced
    by the first allowed model. Raises ``ValueError`` for an unknown scope.
    """
    if scope not in SCOPES:
        raise ValueError(f"Unknown AI scope {scope!r}")

    settings = get_settings()
    scope_settings = SCOPES[scope]
    overrides_on = settings.enable_ai_overrides

    provider_name = _first_set(
        override_provider if overrides_on else None,
        getattr(settings, scope_settings.provider_attr),
        "mock",
    ).lower()
    model = _first_set(
        override_model if overrides_on else None,
        getattr(settings, scope_settings.model_attr),
    )
    model = _allowed_model(settings, provider_name, model)

    logger.debug("AI scope %s resolved to %s/%s", scope, provider_name, model or "<default>")

    return ResolvedConfig(
        provider=get_provider(provider_name),
        model=model,
        temperature=settings.ai_temperature,
        max_tokens=settings.ai_max_tokens,
        timeout_seconds=getattr(settings, scope_settings.timeout_attr) or settings.ai_timeout_seconds,
    )
