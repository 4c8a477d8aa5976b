"""Application configuration helpers."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

ENV_FILE_CANDIDATES = (Path(".env"), Path(".env.local"))


class Settings(BaseModel):
    """Global application settings loaded from environment variables or .env files."""

    history_path: Path = Field(
        default=Path("./data/purchase_history.json"),
        description="Purchase history JSON document.",
    )
    household_id: str = Field(default="default", description="Household identifier.")
    log_level: str = Field(default="INFO", description="Logging level (DEBUG/INFO/WARNING/ERROR)")
    log_format: str = Field(
        default="plain",
        description="Logging format (plain/json).",
    )
    min_prune_confidence: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Confidence required before an item is recommended for removal.",
    )
    conservative_mode: bool = Field(
        default=True,
        description="Raise the removal threshold to bias toward keeping items.",
    )
    use_learned_cadences: bool = Field(
        default=True,
        description="Learn restock cadences from repeat purchases when available.",
    )
    price_attention_threshold: float = Field(
        default=5.0,
        description="Cart price increase (in currency units) that triggers a warning.",
    )
    max_substitutes: int = Field(
        default=5,
        ge=1,
        description="Maximum ranked substitutes kept per unavailable item.",
    )
    llm_enabled: bool = Field(
        default=False,
        description="Ask the LLM for a second opinion on uncertain decisions when true.",
    )
    llm_base_url: Optional[str] = Field(
        default=None,
        description="LLM base URL (OpenAI-compatible runtime or Ollama).",
    )
    llm_model: str = Field(
        default="Qwen/Qwen1.5-0.5B-Chat",
        description="Model identifier passed to the LLM endpoint.",
    )
    llm_provider: str = Field(
        default="openai",
        description="LLM provider (openai or ollama).",
    )
    llm_api_key: Optional[str] = Field(
        default=None,
        description="Bearer token sent to the LLM endpoint.",
    )
    llm_temperature: float = Field(
        default=0.2,
        description="Sampling temperature for enhancement calls.",
    )
    llm_max_tokens: int = Field(
        default=800,
        description="Maximum tokens to request per enhancement call.",
    )
    llm_timeout_seconds: float = Field(
        default=30.0,
        description="HTTP timeout for a single LLM request.",
    )
    enhancement_uncertainty_threshold: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Decisions below this confidence are sent for enhancement.",
    )
    enhancement_max_retries: int = Field(
        default=2,
        ge=0,
        description="Extra attempts per item before falling back to the heuristic.",
    )
    enhancement_workers: int = Field(
        default=3,
        ge=1,
        description="Concurrent enhancement calls.",
    )
    enhancement_deadline_seconds: float = Field(
        default=90.0,
        gt=0,
        description="Wall-clock budget for a whole enhancement pass.",
    )
    high_consequence_categories: tuple[str, ...] = Field(
        default=("baby-care", "pet-supplies"),
        description="Categories always reviewed by the LLM when enhancement is enabled.",
    )
    sensitive_names: tuple[str, ...] = Field(
        default=(),
        description="Product name terms always reviewed by the LLM when enhancement is enabled.",
    )

    model_config = ConfigDict(frozen=True)


def _coerce_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _parse_env_file(path: Path) -> dict[str, str]:
    payload: dict[str, str] = {}
    try:
        with path.open("r", encoding="utf-8") as handle:
            for raw_line in handle:
                line = raw_line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                key, raw_value = line.split("=", 1)
                payload[key.strip()] = raw_value.strip()
    except FileNotFoundError:
        return {}
    return payload


def _load_env_file_values() -> dict[str, str]:
    values: dict[str, str] = {}
    for candidate in ENV_FILE_CANDIDATES:
        values.update(_parse_env_file(candidate))
    return values


_FLOAT_KEYS = {
    "RESTOCK_MIN_PRUNE_CONFIDENCE": "min_prune_confidence",
    "RESTOCK_PRICE_ATTENTION_THRESHOLD": "price_attention_threshold",
    "RESTOCK_LLM_TEMPERATURE": "llm_temperature",
    "RESTOCK_LLM_TIMEOUT_SECONDS": "llm_timeout_seconds",
    "RESTOCK_ENHANCEMENT_UNCERTAINTY_THRESHOLD": "enhancement_uncertainty_threshold",
    "RESTOCK_ENHANCEMENT_DEADLINE_SECONDS": "enhancement_deadline_seconds",
}
_INT_KEYS = {
    "RESTOCK_MAX_SUBSTITUTES": "max_substitutes",
    "RESTOCK_LLM_MAX_TOKENS": "llm_max_tokens",
    "RESTOCK_ENHANCEMENT_MAX_RETRIES": "enhancement_max_retries",
    "RESTOCK_ENHANCEMENT_WORKERS": "enhancement_workers",
}
_BOOL_KEYS = {
    "RESTOCK_CONSERVATIVE_MODE": "conservative_mode",
    "RESTOCK_USE_LEARNED_CADENCES": "use_learned_cadences",
    "RESTOCK_LLM_ENABLED": "llm_enabled",
}
_STR_KEYS = {
    "RESTOCK_HOUSEHOLD_ID": "household_id",
    "RESTOCK_LOG_LEVEL": "log_level",
    "RESTOCK_LOG_FORMAT": "log_format",
    "RESTOCK_LLM_BASE_URL": "llm_base_url",
    "RESTOCK_LLM_MODEL": "llm_model",
    "RESTOCK_LLM_PROVIDER": "llm_provider",
    "RESTOCK_LLM_API_KEY": "llm_api_key",
}


def _load_from_env() -> dict[str, object]:
    """Load optional overrides from env vars (with .env fallbacks)."""

    file_values = _load_env_file_values()

    def _env(key: str) -> Optional[str]:
        return os.environ.get(key) or file_values.get(key)

    payload: dict[str, object] = {}
    if (history_path := _env("RESTOCK_HISTORY_PATH")):
        payload["history_path"] = Path(history_path)
    for env_key, field in _STR_KEYS.items():
        if (value := _env(env_key)):
            payload[field] = value
    for env_key, field in _BOOL_KEYS.items():
        if (value := _env(env_key)):
            payload[field] = _coerce_bool(value)
    for env_key, field in _FLOAT_KEYS.items():
        if (value := _env(env_key)):
            try:
                payload[field] = float(value)
            except ValueError:
                pass
    for env_key, field in _INT_KEYS.items():
        if (value := _env(env_key)):
            try:
                payload[field] = int(value)
            except ValueError:
                pass
    if (categories := _env("RESTOCK_HIGH_CONSEQUENCE_CATEGORIES")):
        payload["high_consequence_categories"] = tuple(
            part.strip() for part in categories.split(",") if part.strip()
        )
    if (names := _env("RESTOCK_SENSITIVE_NAMES")):
        payload["sensitive_names"] = tuple(part.strip() for part in names.split(",") if part.strip())
    return payload


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings(**_load_from_env())
