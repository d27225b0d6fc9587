"""nova-journal configuration loader.

Priority (high → low):
  1. CLI flags           (applied by the caller, not in this module)
  2. Environment variables  (NOVA_EMBEDDING_MODEL, NOVA_COMPLETION_MODEL, NOVA_JOURNAL_FOLDER)
  3. Per-vault nova.yaml  (in the vault root)
  4. Global ~/.nova-journal/config.yaml
  5. Hardcoded defaults

Config files must never contain API keys; the key is read from the
environment variable named by ``ai.api_key_env``.
All YAML reads use yaml.safe_load(), never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".nova-journal"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_VAULT_CONFIG_NAME: str = "nova.yaml"

# Key names that suggest a credential. "api_key_env" (the *name* of the env
# var) and "api_key_prefixes" are legitimate and exempted below.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"
    r"|_token$"
    r"|^token$"
    r"|_secret$"
    r"|^secret$"
    r"|passw(?:ord|d)"
    r"|credential",
    re.IGNORECASE,
)
_ALLOWED_KEY_NAMES: frozenset[str] = frozenset(["api_key_env", "api_key_prefixes"])

_KNOWN_SECTIONS: frozenset[str] = frozenset(["ai", "index", "search", "rag", "logging"])


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class AiCfg:
    """Provider settings (nova.yaml: ai:).

    Attributes:
        enabled: Master switch; when False no network call is ever made.
        api_key_env: Name of the environment variable holding the API key.
        api_key_prefixes: Recognised key prefixes; other keys are rejected
            before any request.
        embedding_model: LiteLLM embedding model string (provider/model).
        completion_model: LiteLLM chat model used by ``nova ask``.
        timeout: Per-request timeout in seconds.
        num_retries: Retries on transient provider errors.
        max_request_bytes: Cap on the serialised embedding request payload.
    """

    enabled: bool = True
    api_key_env: str = "OPENAI_API_KEY"
    api_key_prefixes: list[str] = field(default_factory=lambda: ["sk-"])
    embedding_model: str = "openai/text-embedding-3-small"
    completion_model: str = "openai/gpt-4o-mini"
    timeout: float = 30.0
    num_retries: int = 2
    max_request_bytes: int = 2_000_000

    @property
    def api_key(self) -> str:
        return os.environ.get(self.api_key_env, "")


@dataclass
class IndexCfg:
    """Indexing settings (nova.yaml: index:)."""

    folder: str = "Journal"
    retention_days: int = 90
    chunk_size: int = 250
    overlap: int = 75
    min_chunk_chars: int = 50
    max_batch: int = 50
    storage: str = str(_GLOBAL_CONFIG_DIR / "index.db")


@dataclass
class SearchCfg:
    """Ranking constants (nova.yaml: search:)."""

    recency_divisor_days: float = 7.0
    recency_weight: float = 0.2
    exact_match_boost: float = 1.3
    context_type_boost: float = 1.1
    diversity_threshold: float = 0.3
    emotional_diversity_threshold: float = 0.4
    thematic_diversity_threshold: float = 0.5
    time_frames: dict[str, int] = field(
        default_factory=lambda: {"recent": 3, "week": 7, "month": 30}
    )


@dataclass
class RagCfg:
    """Context assembly limits (nova.yaml: rag:)."""

    assistant_name: str = "Nova"
    primary_results: int = 15
    recent_days: int = 2
    max_context_chunks: int = 8
    preview_chars: int = 500
    historical_limit: int = 5
    recent_limit: int = 3
    combined_max: int = 20


@dataclass
class LoggingCfg:
    debug: bool = False


@dataclass
class NovaConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    ai: AiCfg = field(default_factory=AiCfg)
    index: IndexCfg = field(default_factory=IndexCfg)
    search: SearchCfg = field(default_factory=SearchCfg)
    rag: RagCfg = field(default_factory=RagCfg)
    logging: LoggingCfg = field(default_factory=LoggingCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else str(k)
                if str(k) not in _ALLOWED_KEY_NAMES and _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Config '{source}' contains a forbidden key '{full}'.\n"
                        f"  API keys must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export OPENAI_API_KEY=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' (ignored).",
                UserWarning,
                stacklevel=4,
            )


def _validate(cfg: NovaConfig) -> None:
    idx = cfg.index
    if idx.chunk_size < 1:
        raise ConfigError(f"index.chunk_size must be >= 1, got {idx.chunk_size}")
    if not 0 <= idx.overlap < idx.chunk_size:
        raise ConfigError(
            f"index.overlap must be >= 0 and < index.chunk_size ({idx.chunk_size}), "
            f"got {idx.overlap}"
        )
    if idx.retention_days < 1:
        raise ConfigError(f"index.retention_days must be >= 1, got {idx.retention_days}")
    if idx.max_batch < 1:
        raise ConfigError(f"index.max_batch must be >= 1, got {idx.max_batch}")
    if not cfg.ai.api_key_prefixes:
        raise ConfigError("ai.api_key_prefixes must list at least one prefix")

    s = cfg.search
    if s.recency_divisor_days <= 0:
        raise ConfigError(
            f"search.recency_divisor_days must be > 0, got {s.recency_divisor_days}"
        )
    for name in ("exact_match_boost", "context_type_boost"):
        if getattr(s, name) < 1:
            raise ConfigError(f"search.{name} must be >= 1, got {getattr(s, name)}")
    for name in (
        "recency_weight",
        "diversity_threshold",
        "emotional_diversity_threshold",
        "thematic_diversity_threshold",
    ):
        if getattr(s, name) < 0:
            raise ConfigError(f"search.{name} must be >= 0, got {getattr(s, name)}")
    for frame, days in s.time_frames.items():
        if days < 1:
            raise ConfigError(f"search.time_frames.{frame} must be >= 1 day, got {days}")

    r = cfg.rag
    if r.recent_days < 0:
        raise ConfigError(f"rag.recent_days must be >= 0, got {r.recent_days}")
    for name in (
        "primary_results",
        "max_context_chunks",
        "preview_chars",
        "historical_limit",
        "recent_limit",
        "combined_max",
    ):
        if getattr(r, name) < 1:
            raise ConfigError(f"rag.{name} must be >= 1, got {getattr(r, name)}")


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> NovaConfig:
    """Build a *NovaConfig* from a merged raw YAML dict."""
    cfg = NovaConfig()

    try:
        if "ai" in data:
            a = data["ai"] or {}
            d = cfg.ai
            cfg.ai = AiCfg(
                enabled=bool(a.get("enabled", d.enabled)),
                api_key_env=str(a.get("api_key_env", d.api_key_env)),
                api_key_prefixes=[str(p) for p in a.get("api_key_prefixes", d.api_key_prefixes)],
                embedding_model=str(a.get("embedding_model", d.embedding_model)),
                completion_model=str(a.get("completion_model", d.completion_model)),
                timeout=float(a.get("timeout", d.timeout)),
                num_retries=int(a.get("num_retries", d.num_retries)),
                max_request_bytes=int(a.get("max_request_bytes", d.max_request_bytes)),
            )

        if "index" in data:
            i = data["index"] or {}
            d = cfg.index
            cfg.index = IndexCfg(
                folder=str(i.get("folder", d.folder)),
                retention_days=int(i.get("retention_days", d.retention_days)),
                chunk_size=int(i.get("chunk_size", d.chunk_size)),
                overlap=int(i.get("overlap", d.overlap)),
                min_chunk_chars=int(i.get("min_chunk_chars", d.min_chunk_chars)),
                max_batch=int(i.get("max_batch", d.max_batch)),
                storage=str(i.get("storage", d.storage)),
            )

        if "search" in data:
            s = data["search"] or {}
            d = cfg.search
            frames = dict(d.time_frames)
            frames.update({str(k): int(v) for k, v in (s.get("time_frames") or {}).items()})
            cfg.search = SearchCfg(
                recency_divisor_days=float(s.get("recency_divisor_days", d.recency_divisor_days)),
                recency_weight=float(s.get("recency_weight", d.recency_weight)),
                exact_match_boost=float(s.get("exact_match_boost", d.exact_match_boost)),
                context_type_boost=float(s.get("context_type_boost", d.context_type_boost)),
                diversity_threshold=float(s.get("diversity_threshold", d.diversity_threshold)),
                emotional_diversity_threshold=float(
                    s.get("emotional_diversity_threshold", d.emotional_diversity_threshold)
                ),
                thematic_diversity_threshold=float(
                    s.get("thematic_diversity_threshold", d.thematic_diversity_threshold)
                ),
                time_frames=frames,
            )

        if "rag" in data:
            r = data["rag"] or {}
            d = cfg.rag
            cfg.rag = RagCfg(
                assistant_name=str(r.get("assistant_name", d.assistant_name)),
                primary_results=int(r.get("primary_results", d.primary_results)),
                recent_days=int(r.get("recent_days", d.recent_days)),
                max_context_chunks=int(r.get("max_context_chunks", d.max_context_chunks)),
                preview_chars=int(r.get("preview_chars", d.preview_chars)),
                historical_limit=int(r.get("historical_limit", d.historical_limit)),
                recent_limit=int(r.get("recent_limit", d.recent_limit)),
                combined_max=int(r.get("combined_max", d.combined_max)),
            )

        if "logging" in data:
            lg = data["logging"] or {}
            cfg.logging = LoggingCfg(debug=bool(lg.get("debug", cfg.logging.debug)))
    except (TypeError, ValueError, AttributeError) as exc:
        raise ConfigError(f"Invalid config value: {exc}") from exc

    return cfg


def _apply_env_overrides(cfg: NovaConfig) -> NovaConfig:
    """Apply NOVA_* environment variable overrides (layer 2)."""
    if model := os.environ.get("NOVA_EMBEDDING_MODEL"):
        cfg.ai.embedding_model = model
    if model := os.environ.get("NOVA_COMPLETION_MODEL"):
        cfg.ai.completion_model = model
    if folder := os.environ.get("NOVA_JOURNAL_FOLDER"):
        cfg.index.folder = folder
    return cfg


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config '{path}' is not valid YAML: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"Config '{path}' must be a mapping at the top level.")
    return raw


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    vault_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> NovaConfig:
    """Load and return a merged *NovaConfig*.

    Applies layers in order: global → per-vault → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        vault_dir: Vault root to search for *nova.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Returns:
        Fully merged and validated *NovaConfig*.

    Raises:
        ConfigError: If a config file holds API-key-like fields, malformed YAML,
            or values that fail validation.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = vault_dir if vault_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    if global_path.exists():
        raw_global = _read_yaml(global_path)
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    vault_cfg_path = search_dir / _VAULT_CONFIG_NAME
    if vault_cfg_path.exists():
        raw_vault = _read_yaml(vault_cfg_path)
        _check_no_api_keys(raw_vault, vault_cfg_path)
        _warn_unknown_keys(raw_vault, vault_cfg_path)
        merged = _deep_merge(merged, raw_vault)

    cfg = _apply_env_overrides(_cfg_from_dict(merged))
    _validate(cfg)
    return cfg
