"""
Configuration management and loading.

Handles generation pipeline settings loaded from YAML.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from menugen.core.language import PROFILES


@dataclass(frozen=True)
class BudgetConfig:
    """Daily cost ceilings per tenant."""
    daily_ceiling: float = 5.0
    tenants: Dict[str, float] = field(default_factory=dict)

    def __post_init__(self):
        """Validate ceilings are positive."""
        if self.daily_ceiling <= 0:
            raise ValueError("daily_ceiling must be > 0")
        for tenant_id, ceiling in self.tenants.items():
            if ceiling <= 0:
                raise ValueError(f"ceiling for tenant '{tenant_id}' must be > 0")

    def ceiling_for(self, tenant_id: str) -> float:
        """Get the daily ceiling for a tenant, using the default if not overridden."""
        return self.tenants.get(tenant_id, self.daily_ceiling)


@dataclass(frozen=True)
class ProviderConfig:
    """Text-generation provider settings."""
    model: str = "gpt-4o-mini"
    temperature: float = 0.7
    max_output_tokens: int = 1000
    timeout_seconds: float = 60.0
    match_temperature: float = 0.1
    match_max_output_tokens: int = 2000
    nutrition_temperature: float = 0.3
    nutrition_max_output_tokens: int = 200

    def __post_init__(self):
        if not self.model or not self.model.strip():
            raise ValueError("model is required and cannot be empty")
        for name in ("temperature", "match_temperature", "nutrition_temperature"):
            value = getattr(self, name)
            if value < 0 or value > 2:
                raise ValueError(f"{name} must be between 0 and 2")
        for name in ("max_output_tokens", "match_max_output_tokens", "nutrition_max_output_tokens"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")


@dataclass(frozen=True)
class BatchConfig:
    """Batch size and concurrency window settings."""
    max_batch_size: int = 10
    concurrency: int = 3
    window_delay_seconds: float = 1.0

    def __post_init__(self):
        if self.max_batch_size <= 0:
            raise ValueError("max_batch_size must be > 0")
        if self.concurrency <= 0:
            raise ValueError("concurrency must be > 0")
        if self.window_delay_seconds < 0:
            raise ValueError("window_delay_seconds cannot be negative")


@dataclass(frozen=True)
class RetryConfig:
    """Retry-with-backoff settings shared by item and ingredient calls."""
    max_retries: int = 3
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 10.0

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        if self.base_delay_seconds < 0:
            raise ValueError("base_delay_seconds cannot be negative")
        if self.max_delay_seconds < self.base_delay_seconds:
            raise ValueError("max_delay_seconds must be >= base_delay_seconds")

    @property
    def max_attempts(self) -> int:
        """Total provider calls allowed (first attempt plus retries)."""
        return self.max_retries + 1


@dataclass(frozen=True)
class NutritionConfig:
    """Ingredient-level nutrition enhancement settings."""
    enabled: bool = True
    batch_size: int = 3
    batch_delay_seconds: float = 0.5

    def __post_init__(self):
        if self.batch_size <= 0:
            raise ValueError("nutrition batch_size must be > 0")
        if self.batch_delay_seconds < 0:
            raise ValueError("nutrition batch_delay_seconds cannot be negative")


@dataclass(frozen=True)
class NormalizerConfig:
    """Ingredient normalizer settings."""
    enabled: bool = True
    fuzzy_threshold: float = 0.7

    def __post_init__(self):
        if not 0 < self.fuzzy_threshold <= 1:
            raise ValueError("fuzzy_threshold must be in (0, 1]")


@dataclass(frozen=True)
class LanguageConfig:
    """Supported languages and the detection fallback."""
    default: str = "ro"
    supported: Tuple[str, ...] = ("ro", "en")

    def __post_init__(self):
        if not self.supported:
            raise ValueError("at least one supported language is required")
        unknown = [code for code in self.supported if code not in PROFILES]
        if unknown:
            raise ValueError(f"no language profile for {unknown}; available: {sorted(PROFILES)}")
        if self.default not in self.supported:
            raise ValueError(f"default language '{self.default}' must be one of {list(self.supported)}")


@dataclass(frozen=True)
class MenugenConfig:
    """Complete generation pipeline configuration."""
    budget: BudgetConfig = field(default_factory=BudgetConfig)
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    nutrition: NutritionConfig = field(default_factory=NutritionConfig)
    normalizer: NormalizerConfig = field(default_factory=NormalizerConfig)
    language: LanguageConfig = field(default_factory=LanguageConfig)


_SECTION_KEYS = {
    "budget": {"daily_ceiling", "tenants"},
    "provider": {
        "model", "temperature", "max_output_tokens", "timeout_seconds",
        "match_temperature", "match_max_output_tokens",
        "nutrition_temperature", "nutrition_max_output_tokens",
    },
    "batch": {"max_batch_size", "concurrency", "window_delay_seconds"},
    "retry": {"max_retries", "base_delay_seconds", "max_delay_seconds"},
    "nutrition": {"enabled", "batch_size", "batch_delay_seconds"},
    "normalizer": {"enabled", "fuzzy_threshold"},
    "language": {"default", "supported"},
}


def load_config(path: str) -> MenugenConfig:
    """Load and validate pipeline configuration from a YAML file.

    Every section is optional; omitted sections and keys keep their
    defaults. Unknown keys are rejected so a typo in a ceiling or a
    concurrency bound never passes silently.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated MenugenConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a dictionary")

    unknown_keys = set(raw_config.keys()) - set(_SECTION_KEYS)
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    sections = {name: _section(raw_config, name) for name in _SECTION_KEYS}

    budget_data = dict(sections["budget"])
    tenants = budget_data.pop("tenants", None) or {}
    if not isinstance(tenants, dict):
        raise ValueError("'budget.tenants' must be a dictionary")
    budget = BudgetConfig(
        tenants={str(k): _number(v, f"budget.tenants.{k}") for k, v in tenants.items()},
        **{k: _number(v, f"budget.{k}") for k, v in budget_data.items()}
    )

    language_data = dict(sections["language"])
    if "supported" in language_data:
        supported = language_data["supported"]
        if not isinstance(supported, list) or not all(isinstance(c, str) for c in supported):
            raise ValueError("'language.supported' must be a list of language codes")
        language_data["supported"] = tuple(supported)

    return MenugenConfig(
        budget=budget,
        provider=ProviderConfig(**sections["provider"]),
        batch=BatchConfig(**sections["batch"]),
        retry=RetryConfig(**sections["retry"]),
        nutrition=NutritionConfig(**sections["nutrition"]),
        normalizer=NormalizerConfig(**sections["normalizer"]),
        language=LanguageConfig(**language_data),
    )


def _section(raw_config: Dict[str, Any], name: str) -> Dict[str, Any]:
    """Extract one section, rejecting non-dict values and unknown keys.

    Args:
        raw_config: Parsed YAML document
        name: Section name

    Returns:
        The section's key/value pairs (empty if the section is absent)

    Raises:
        ValueError: If the section is malformed
    """
    data: Optional[Dict[str, Any]] = raw_config.get(name)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"'{name}' must be a dictionary")

    unknown_keys = set(data.keys()) - _SECTION_KEYS[name]
    if unknown_keys:
        raise ValueError(f"Unknown keys in {name}: {unknown_keys}")
    return data


def _number(value: Any, path: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"'{path}' must be a number")
    return float(value)
