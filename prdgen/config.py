"""Configuration loading for prdgen (.prdgen.yml) and resolved run settings."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import yaml

from .retry import DEFAULT_RETRYABLE_SIGNATURES, RetryPolicy

CONFIG_FILENAME = ".prdgen.yml"

DEFAULT_MODEL = "gpt-4-turbo"
DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_TIER2_TOKENS = 80_000
DEFAULT_TIER3_TOKENS = 110_000
DEFAULT_TIER2_DEADLINE = 270.0

ENV_MODEL_KEYS = ("PRDGEN_LLM_MODEL", "OPENAI_MODEL")
ENV_BASE_URL_KEYS = ("PRDGEN_LLM_BASE_URL", "OPENAI_BASE_URL")
ENV_API_KEY_KEYS = ("PRDGEN_LLM_API_KEY", "OPENAI_API_KEY")


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class LLMConfig:
    """Completion service settings from .prdgen.yml."""

    model: Optional[str] = None
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    request_timeout: Optional[float] = None


@dataclass
class BudgetConfig:
    """Token ceilings per tier."""

    tier2_tokens: Optional[int] = None
    tier3_tokens: Optional[int] = None


@dataclass
class RetryConfig:
    """Overrides for the retry policy."""

    max_retries: Optional[int] = None
    initial_delay: Optional[float] = None
    max_delay: Optional[float] = None
    backoff_multiplier: Optional[float] = None
    retryable_errors: List[str] = field(default_factory=list)


@dataclass
class Tier2Config:
    deadline_seconds: Optional[float] = None
    temperature: Optional[float] = None
    max_questions: Optional[int] = None


@dataclass
class Tier3Config:
    skip_sections: List[str] = field(default_factory=list)
    temperature: Optional[float] = None


@dataclass
class PrdGenConfig:
    """Represents the settings declared in .prdgen.yml."""

    root: Path
    llm: Optional[LLMConfig] = None
    budget: BudgetConfig = field(default_factory=BudgetConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    tier2: Tier2Config = field(default_factory=Tier2Config)
    tier3: Tier3Config = field(default_factory=Tier3Config)
    detectors: List[str] = field(default_factory=list)
    exclude_paths: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Settings:
    """Immutable run configuration handed to every orchestrator."""

    model: str = DEFAULT_MODEL
    base_url: str = DEFAULT_BASE_URL
    api_key: Optional[str] = field(default=None, repr=False)
    max_tokens: Optional[int] = None
    request_timeout: float = 300.0
    tier2_max_tokens: int = DEFAULT_TIER2_TOKENS
    tier3_max_tokens: int = DEFAULT_TIER3_TOKENS
    tier2_deadline: float = DEFAULT_TIER2_DEADLINE
    tier2_temperature: float = 0.7
    tier2_max_questions: int = 7
    tier3_temperature: float = 0.7
    skip_sections: Tuple[str, ...] = ()
    detectors: Tuple[str, ...] = ()
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)


def load_config(config_path: Path) -> PrdGenConfig:
    """Load configuration from disk; a missing file yields defaults."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return PrdGenConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    llm_data = _as_dict(data.get("llm"))
    llm = None
    if llm_data:
        llm = LLMConfig(
            model=_as_str(llm_data.get("model")),
            base_url=_as_str(llm_data.get("base_url")),
            api_key=_as_str(llm_data.get("api_key")),
            temperature=_as_float(llm_data.get("temperature")),
            max_tokens=_as_int(llm_data.get("max_tokens")),
            request_timeout=_as_float(llm_data.get("request_timeout")),
        )

    budget_data = _as_dict(data.get("budget"))
    budget = BudgetConfig(
        tier2_tokens=_as_int(budget_data.get("tier2_tokens")),
        tier3_tokens=_as_int(budget_data.get("tier3_tokens")),
    )

    retry_data = _as_dict(data.get("retry"))
    retry = RetryConfig(
        max_retries=_as_int(retry_data.get("max_retries")),
        initial_delay=_as_float(retry_data.get("initial_delay")),
        max_delay=_as_float(retry_data.get("max_delay")),
        backoff_multiplier=_as_float(retry_data.get("backoff_multiplier")),
        retryable_errors=_as_str_list(retry_data.get("retryable_errors")),
    )

    tier2_data = _as_dict(data.get("tier2"))
    tier2 = Tier2Config(
        deadline_seconds=_as_float(tier2_data.get("deadline_seconds")),
        temperature=_as_float(tier2_data.get("temperature")),
        max_questions=_as_int(tier2_data.get("max_questions")),
    )

    tier3_data = _as_dict(data.get("tier3"))
    tier3 = Tier3Config(
        skip_sections=_as_str_list(tier3_data.get("skip_sections")),
        temperature=_as_float(tier3_data.get("temperature")),
    )

    detector_data = _as_dict(data.get("detectors"))

    return PrdGenConfig(
        root=root,
        llm=llm,
        budget=budget,
        retry=retry,
        tier2=tier2,
        tier3=tier3,
        detectors=_as_str_list(detector_data.get("enabled")),
        exclude_paths=_as_str_list(data.get("exclude_paths")),
    )


def resolve_settings(
    config: PrdGenConfig | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Fold file configuration and environment credentials into ``Settings``."""
    env = os.environ if environ is None else environ
    llm = (config.llm if config else None) or LLMConfig()
    budget = config.budget if config else BudgetConfig()
    retry = config.retry if config else RetryConfig()
    tier2 = config.tier2 if config else Tier2Config()
    tier3 = config.tier3 if config else Tier3Config()

    defaults = RetryPolicy()
    policy = RetryPolicy(
        max_retries=_first(retry.max_retries, defaults.max_retries),
        initial_delay=_first(retry.initial_delay, defaults.initial_delay),
        max_delay=_first(retry.max_delay, defaults.max_delay),
        backoff_multiplier=_first(retry.backoff_multiplier, defaults.backoff_multiplier),
        retryable_error_signatures=tuple(retry.retryable_errors) or DEFAULT_RETRYABLE_SIGNATURES,
    )

    base_url = llm.base_url or _first_env_value(env, ENV_BASE_URL_KEYS) or DEFAULT_BASE_URL

    return Settings(
        model=llm.model or _first_env_value(env, ENV_MODEL_KEYS) or DEFAULT_MODEL,
        base_url=base_url.rstrip("/"),
        api_key=llm.api_key or _first_env_value(env, ENV_API_KEY_KEYS),
        max_tokens=llm.max_tokens,
        request_timeout=_first(llm.request_timeout, 300.0),
        tier2_max_tokens=_first(budget.tier2_tokens, DEFAULT_TIER2_TOKENS),
        tier3_max_tokens=_first(budget.tier3_tokens, DEFAULT_TIER3_TOKENS),
        tier2_deadline=_first(tier2.deadline_seconds, DEFAULT_TIER2_DEADLINE),
        tier2_temperature=_first(tier2.temperature, _first(llm.temperature, 0.7)),
        tier2_max_questions=_first(tier2.max_questions, 7),
        tier3_temperature=_first(tier3.temperature, _first(llm.temperature, 0.7)),
        skip_sections=tuple(tier3.skip_sections),
        detectors=tuple(config.detectors) if config else (),
        retry_policy=policy,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _first(value: Any, fallback: Any) -> Any:
    return fallback if value is None else value


def _first_env_value(env: Mapping[str, str], keys: Sequence[str]) -> Optional[str]:
    for key in keys:
        value = env.get(key)
        if value:
            return value
    return None


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "BudgetConfig",
    "CONFIG_FILENAME",
    "ConfigError",
    "LLMConfig",
    "PrdGenConfig",
    "RetryConfig",
    "Settings",
    "Tier2Config",
    "Tier3Config",
    "load_config",
    "resolve_settings",
]
