"""
Typed configuration model with precedence-based loader.

Precedence (lowest to highest):
    defaults < config file (YAML) < profile < env vars < CLI flags
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from chefmate.llm.providers.base import Provider


# ---------------------------------------------------------------------------
# Section dataclasses
# ---------------------------------------------------------------------------

@dataclass
class LLMProviderConfig:
    name: str = "openai"
    model: str = "gpt-4o-mini"
    api_base: str = ""
    api_key_env: str = "OPENAI_API_KEY"
    temperature: float = 0.7
    max_output_tokens: int = 1_024
    timeout_seconds: int = 60
    max_retries: int = 2

    def api_key(self) -> str:
        return os.environ.get(self.api_key_env, "") if self.api_key_env else ""

    def is_configured(self) -> bool:
        """A backend is usable with an API key or an explicit endpoint."""
        return bool(self.api_key() or self.api_base)


@dataclass
class OrchestratorConfig:
    max_rounds: int = 5
    history_limit: int = 20
    tool_timeout_seconds: float = 30.0


@dataclass
class StoreConfig:
    threads_db: str = "~/.chefmate/threads.db"


@dataclass
class PluginsConfig:
    enabled: bool = False
    allow_distributions: list[str] = field(default_factory=list)
    allow_tools: list[str] = field(default_factory=list)


@dataclass
class LoggingConfig:
    level: str = "WARNING"


# ---------------------------------------------------------------------------
# Root config
# ---------------------------------------------------------------------------

@dataclass
class ChefmateConfig:
    llm: LLMProviderConfig = field(default_factory=LLMProviderConfig)
    orchestrator: OrchestratorConfig = field(default_factory=OrchestratorConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    plugins: PluginsConfig = field(default_factory=PluginsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    profiles: dict[str, dict[str, Any]] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)

    def problems(self) -> list[str]:
        """Return human-readable problems; empty when the config is usable."""
        found: list[str] = []
        if self.orchestrator.max_rounds < 1:
            found.append("orchestrator.max_rounds must be at least 1")
        if self.orchestrator.history_limit < 0:
            found.append("orchestrator.history_limit must not be negative")
        if self.orchestrator.tool_timeout_seconds <= 0:
            found.append("orchestrator.tool_timeout_seconds must be positive")
        if not 0.0 <= self.llm.temperature <= 2.0:
            found.append("llm.temperature must be between 0 and 2")
        if self.llm.max_retries < 0:
            found.append("llm.max_retries must not be negative")
        if self.logging.level.upper() not in _LOG_LEVELS:
            found.append(f"logging.level must be one of {', '.join(_LOG_LEVELS)}")
        return found


_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _apply_dotpath(obj: Any, dotpath: str, value: Any) -> None:
    """Walk obj via dotpath and set the final attribute."""
    parts = dotpath.split(".")
    for part in parts[:-1]:
        obj = getattr(obj, part)
    setattr(obj, parts[-1], value)


def _deep_merge(base: dict, overlay: dict) -> dict:
    """Recursively merge overlay into base, returning a new dict."""
    merged = dict(base)
    for k, v in overlay.items():
        if k in merged and isinstance(merged[k], dict) and isinstance(v, dict):
            merged[k] = _deep_merge(merged[k], v)
        else:
            merged[k] = v
    return merged


def _coerce(value: str, target_type: type) -> Any:
    """Coerce a string env value to the target type."""
    if target_type is bool:
        return value.lower() in ("1", "true", "yes", "on")
    if target_type is int:
        return int(value)
    if target_type is float:
        return float(value)
    if target_type is list:
        return [s.strip() for s in value.split(",") if s.strip()]
    return value


def _build_section(cls: type, raw: dict) -> Any:
    """Build a dataclass section from a raw dict, ignoring unknown keys."""
    valid_fields = {f.name for f in fields(cls)}
    filtered = {k: v for k, v in (raw or {}).items() if k in valid_fields}
    return cls(**filtered)


# ---------------------------------------------------------------------------
# ENV var mapping
# ---------------------------------------------------------------------------

_ENV_MAP: dict[str, tuple[str, type]] = {
    "CHEFMATE_LLM_NAME":              ("llm.name", str),
    "CHEFMATE_LLM_MODEL":             ("llm.model", str),
    "CHEFMATE_LLM_API_BASE":          ("llm.api_base", str),
    "CHEFMATE_LLM_API_KEY_ENV":       ("llm.api_key_env", str),
    "CHEFMATE_LLM_TEMPERATURE":       ("llm.temperature", float),
    "CHEFMATE_LLM_MAX_OUTPUT":        ("llm.max_output_tokens", int),
    "CHEFMATE_LLM_TIMEOUT":           ("llm.timeout_seconds", int),
    "CHEFMATE_LLM_MAX_RETRIES":       ("llm.max_retries", int),
    "CHEFMATE_MAX_ROUNDS":            ("orchestrator.max_rounds", int),
    "CHEFMATE_HISTORY_LIMIT":         ("orchestrator.history_limit", int),
    "CHEFMATE_TOOL_TIMEOUT":          ("orchestrator.tool_timeout_seconds", float),
    "CHEFMATE_THREADS_DB":            ("store.threads_db", str),
    "CHEFMATE_PLUGINS_ENABLED":       ("plugins.enabled", bool),
    "CHEFMATE_PLUGINS_ALLOW_DISTS":   ("plugins.allow_distributions", list),
    "CHEFMATE_PLUGINS_ALLOW_TOOLS":   ("plugins.allow_tools", list),
    "CHEFMATE_LOG_LEVEL":             ("logging.level", str),
}


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

def load_config(
    config_path: str | Path | None = None,
    *,
    profile: str | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> ChefmateConfig:
    """
    Build a ChefmateConfig by layering sources in precedence order:

        defaults  <  config file  <  profile  <  env vars  <  CLI flags

    Parameters
    ----------
    config_path : path to YAML config file (optional)
    profile : name of a profile to apply from the config file
    cli_overrides : dict of dotpath -> value CLI flag overrides
    """
    raw: dict[str, Any] = {}

    # --- 1. Config file ---
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.is_file():
            with p.open("r", encoding="utf-8") as f:
                file_data = yaml.safe_load(f) or {}
            raw = _deep_merge(raw, file_data)

    # --- 2. Profile overlay ---
    if profile:
        profile_data = raw.get("profiles", {}).get(profile)
        if profile_data is None:
            raise KeyError(f"Unknown config profile: {profile}")
        raw = _deep_merge(raw, profile_data)

    cfg = ChefmateConfig(
        llm=_build_section(LLMProviderConfig, raw.get("llm", {})),
        orchestrator=_build_section(OrchestratorConfig, raw.get("orchestrator", {})),
        store=_build_section(StoreConfig, raw.get("store", {})),
        plugins=_build_section(PluginsConfig, raw.get("plugins", {})),
        logging=_build_section(LoggingConfig, raw.get("logging", {})),
        profiles=raw.get("profiles", {}),
    )

    # --- 3. Env var overrides ---
    for env_var, (dotpath, target_type) in _ENV_MAP.items():
        val = os.environ.get(env_var)
        if val is not None:
            _apply_dotpath(cfg, dotpath, _coerce(val, target_type))

    # --- 4. CLI flag overrides ---
    if cli_overrides:
        for dotpath, value in cli_overrides.items():
            if value is not None:
                _apply_dotpath(cfg, dotpath, value)

    return cfg


def build_provider(cfg: ChefmateConfig) -> Provider | None:
    """Return the configured model backend, or ``None`` when there is none."""
    if not cfg.llm.is_configured():
        return None

    from chefmate.llm.providers.openai_compat import OpenAICompatProvider

    return OpenAICompatProvider(
        url=cfg.llm.api_base or "https://api.openai.com/v1",
        model=cfg.llm.model,
        api_key=cfg.llm.api_key(),
        timeout=float(cfg.llm.timeout_seconds),
        max_retries=cfg.llm.max_retries,
        temperature=cfg.llm.temperature,
        max_output=cfg.llm.max_output_tokens,
    )
