from functools import lru_cache
import json
import os
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

KNOWN_PROVIDERS = ("mock", "claude", "openai", "groq")


def _parse_list_value(value: str) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        raw = value.strip()
        if raw == "":
            return []
        try:
            parsed = json.loads(raw)
            if isinstance(parsed, list):
                return [str(item).strip() for item in parsed if str(item).strip()]
        except ValueError:
            pass
        return [item.strip() for item in raw.split(",") if item.strip()]
    if isinstance(value, list):
        return [str(item).strip() for item in value if str(item).strip()]
    return []


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        extra="ignore",
        validate_by_name=True,
        populate_by_name=True,
    )
    database_url: str = ""

    docs_enabled: bool = Field(default=True)
    openapi_enabled: bool = Field(default=True)
    expose_error_details: bool = False
    log_level: str = "INFO"

    cors_allow_origins: list[str] = Field(default_factory=list)
    cors_allow_methods: list[str] = Field(default_factory=lambda: ["GET", "POST", "OPTIONS"])
    cors_allow_headers: list[str] = Field(default_factory=lambda: [
        "Authorization",
        "Content-Type",
        "Accept",
    ])

    enable_action_analysis: bool = True
    enable_ai_overrides: bool = True

    ai_allowed_providers_raw: str = Field(
        default="mock",
        validation_alias=AliasChoices("AI_ALLOWED_PROVIDERS"),
    )
    ai_action_analysis_provider: str = "mock"
    ai_action_analysis_model: str = ""
    ai_action_analysis_timeout_seconds: float = 30.0
    ai_timeout_seconds: float = 8.0
    ai_temperature: float = 0.2
    ai_max_tokens: int = 2048

    anthropic_api_key: str = ""
    openai_api_key: str = ""
    groq_api_key: str = ""

    # Relative date ranges ("son 3 ay") are anchored to the business day here.
    action_analysis_timezone: str = "Europe/Istanbul"

    @field_validator(
        "cors_allow_origins",
        "cors_allow_methods",
        "cors_allow_headers",
        mode="before",
    )
    @classmethod
    def _split_csv(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            if value.strip() == "":
                return []
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("ai_action_analysis_provider", mode="before")
    @classmethod
    def _normalize_provider(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @property
    def ai_allowed_providers(self) -> list[str]:
        """Allowed provider names; ``mock`` is always allowed."""
        providers = [p.lower() for p in _parse_list_value(self.ai_allowed_providers_raw)]
        if "mock" not in providers:
            providers.insert(0, "mock")
        return providers

    @property
    def ai_allowed_models(self) -> dict[str, list[str]]:
        """Per-provider model allowlist from ``AI_ALLOWED_MODELS_<PROVIDER>``."""
        return {
            name: _parse_list_value(os.getenv(f"AI_ALLOWED_MODELS_{name.upper()}", ""))
            for name in KNOWN_PROVIDERS
        }

@lru_cache

def get_settings() -> Settings:
    return Settings()
