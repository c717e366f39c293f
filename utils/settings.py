"""
Provider and application configuration for Content Refinery.
Built once by the process entry point and passed into clients and services.
"""

import os
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


class ProviderName(str, Enum):
    CLAUDE = "claude"
    GROK = "grok"
    PERPLEXITY = "perplexity"


# Provider defaults; env vars override the key, model and timeout
PROVIDER_DEFAULTS: Dict[ProviderName, Dict[str, Any]] = {
    ProviderName.CLAUDE: {
        "api_key_env": "CLAUDE_API_KEY",
        "model_env": "CLAUDE_MODEL",
        "base_url": "https://api.anthropic.com",
        "model": "claude-sonnet-4-5-20250929",
        "max_tokens": 16000,
        "temperature": 0.7,
    },
    ProviderName.GROK: {
        "api_key_env": "GROK_API_KEY",
        "model_env": "GROK_MODEL",
        "base_url": "https://api.x.ai/v1",
        "model": "grok-3",
        "max_tokens": 4000,
        "temperature": 0.9,
    },
    ProviderName.PERPLEXITY: {
        "api_key_env": "PERPLEXITY_API_KEY",
        "model_env": "PERPLEXITY_MODEL",
        "base_url": "https://api.perplexity.ai",
        "model": "sonar",
        "max_tokens": 2000,
        "temperature": 0.2,
    },
}

DEFAULT_TIMEOUT_SECONDS = 60.0
DEFAULT_MAX_ITERATIONS = 5


@dataclass(frozen=True)
class ProviderSettings:
    """Everything a gateway client needs to reach one hosted model."""
    name: ProviderName
    api_key: str
    base_url: str
    model: str
    max_tokens: int
    temperature: float
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    retries_on_5xx: int = 1

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    @property
    def api_key_env(self) -> str:
        return PROVIDER_DEFAULTS[self.name]["api_key_env"]


@dataclass(frozen=True)
class AppSettings:
    """Application configuration with validated values."""
    claude: ProviderSettings
    grok: ProviderSettings
    perplexity: ProviderSettings
    supabase_url: str = ""
    supabase_key: str = ""
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    def providers(self) -> List[ProviderSettings]:
        return [self.claude, self.grok, self.perplexity]

    def missing_keys(self) -> List[str]:
        """Env var names of providers that have no API key."""
        return [p.api_key_env for p in self.providers() if not p.configured]


def _safe_float(value: Optional[str], default: float) -> float:
    try:
        return float(value) if value else default
    except (TypeError, ValueError):
        logger.warning(f"Invalid float setting {value!r}, using {default}")
        return default


def _safe_int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value else default
    except (TypeError, ValueError):
        logger.warning(f"Invalid int setting {value!r}, using {default}")
        return default


def build_provider_settings(
    name: ProviderName,
    env: Optional[Dict[str, str]] = None,
    timeout: Optional[float] = None,
) -> ProviderSettings:
    """Merge PROVIDER_DEFAULTS with environment overrides for one provider."""
    env = os.environ if env is None else env
    defaults = PROVIDER_DEFAULTS[name]
    return ProviderSettings(
        name=name,
        api_key=(env.get(defaults["api_key_env"]) or "").strip(),
        base_url=defaults["base_url"],
        model=env.get(defaults["model_env"]) or defaults["model"],
        max_tokens=defaults["max_tokens"],
        temperature=defaults["temperature"],
        timeout=timeout if timeout is not None else _safe_float(env.get("LLM_TIMEOUT_SECONDS"), DEFAULT_TIMEOUT_SECONDS),
        retries_on_5xx=_safe_int(env.get("LLM_RETRIES_ON_5XX"), 1),
    )


def load_settings(env: Optional[Dict[str, str]] = None) -> AppSettings:
    """
    Build AppSettings from the environment (.env loaded first when reading os.environ).

    Missing provider keys are logged, not fatal: the audit endpoint reports them
    and the affected client returns a failure result when called.
    """
    if env is None:
        load_dotenv()
        env = dict(os.environ)

    cors = [o.strip() for o in (env.get("CORS_ORIGINS") or "*").split(",") if o.strip()]

    settings = AppSettings(
        claude=build_provider_settings(ProviderName.CLAUDE, env),
        grok=build_provider_settings(ProviderName.GROK, env),
        perplexity=build_provider_settings(ProviderName.PERPLEXITY, env),
        supabase_url=env.get("SUPABASE_URL", ""),
        supabase_key=env.get("SUPABASE_KEY", ""),
        max_iterations=max(1, _safe_int(env.get("MAX_REFINEMENT_ITERATIONS"), DEFAULT_MAX_ITERATIONS)),
        cors_origins=cors or ["*"],
        log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
    )

    for key in settings.missing_keys():
        logger.warning(f"{key} not set. The matching provider will be unavailable.")

    return settings
