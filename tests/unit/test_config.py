"""Tests for the nova-journal config loader."""

from __future__ import annotations

import warnings
from pathlib import Path

import pytest
import yaml

from nova_journal.config import (
    AiCfg,
    ConfigError,
    IndexCfg,
    NovaConfig,
    SearchCfg,
    load_config,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_yaml(path: Path, data: dict) -> None:
    path.write_text(yaml.dump(data), encoding="utf-8")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for var in ("NOVA_EMBEDDING_MODEL", "NOVA_COMPLETION_MODEL", "NOVA_JOURNAL_FOLDER"):
        monkeypatch.delenv(var, raising=False)


def _load(tmp_path: Path) -> NovaConfig:
    return load_config(tmp_path, global_config_path=tmp_path / "missing.yaml")


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


def test_defaults_without_files(tmp_path: Path) -> None:
    cfg = _load(tmp_path)
    assert cfg.ai == AiCfg()
    assert cfg.index == IndexCfg()
    assert cfg.search == SearchCfg()
    assert cfg.index.chunk_size == 250
    assert cfg.index.overlap == 75
    assert cfg.index.retention_days == 90
    assert cfg.search.time_frames == {"recent": 3, "week": 7, "month": 30}
    assert cfg.rag.assistant_name == "Nova"
    assert cfg.logging.debug is False


# ---------------------------------------------------------------------------
# Layering
# ---------------------------------------------------------------------------


def test_vault_overrides_global(tmp_path: Path) -> None:
    global_path = tmp_path / "global.yaml"
    _write_yaml(global_path, {"index": {"folder": "Daily", "retention_days": 30}})
    _write_yaml(tmp_path / "nova.yaml", {"index": {"retention_days": 14}})

    cfg = load_config(tmp_path, global_config_path=global_path)
    assert cfg.index.folder == "Daily"
    assert cfg.index.retention_days == 14


def test_partial_time_frames_merge_with_defaults(tmp_path: Path) -> None:
    _write_yaml(tmp_path / "nova.yaml", {"search": {"time_frames": {"week": 10, "quarter": 90}}})
    frames = _load(tmp_path).search.time_frames
    assert frames == {"recent": 3, "week": 10, "month": 30, "quarter": 90}


def test_env_overrides(tmp_path: Path, monkeypatch) -> None:
    _write_yaml(tmp_path / "nova.yaml", {"ai": {"embedding_model": "openai/a"}})
    monkeypatch.setenv("NOVA_EMBEDDING_MODEL", "openai/b")
    monkeypatch.setenv("NOVA_JOURNAL_FOLDER", "Diary")
    cfg = _load(tmp_path)
    assert cfg.ai.embedding_model == "openai/b"
    assert cfg.index.folder == "Diary"


def test_empty_section_keeps_defaults(tmp_path: Path) -> None:
    (tmp_path / "nova.yaml").write_text("rag:\n", encoding="utf-8")
    assert _load(tmp_path).rag.primary_results == 15


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def test_api_key_in_config_rejected(tmp_path: Path) -> None:
    _write_yaml(tmp_path / "nova.yaml", {"ai": {"api_key": "sk-secret"}})
    with pytest.raises(ConfigError, match="forbidden key 'ai.api_key'"):
        _load(tmp_path)


def test_api_key_env_name_allowed(tmp_path: Path) -> None:
    _write_yaml(tmp_path / "nova.yaml", {"ai": {"api_key_env": "MY_KEY", "api_key_prefixes": ["sk-", "pk-"]}})
    cfg = _load(tmp_path)
    assert cfg.ai.api_key_env == "MY_KEY"
    assert cfg.ai.api_key_prefixes == ["sk-", "pk-"]


def test_api_key_read_from_env(monkeypatch) -> None:
    monkeypatch.setenv("MY_KEY", "sk-abc")
    assert AiCfg(api_key_env="MY_KEY").api_key == "sk-abc"


@pytest.mark.parametrize(
    "index",
    [
        {"overlap": 250},
        {"overlap": -1},
        {"chunk_size": 0},
        {"retention_days": 0},
        {"max_batch": 0},
    ],
)
def test_invalid_index_values(tmp_path: Path, index: dict) -> None:
    _write_yaml(tmp_path / "nova.yaml", {"index": index})
    with pytest.raises(ConfigError, match="index\\."):
        _load(tmp_path)


@pytest.mark.parametrize(
    "section,values,match",
    [
        ("search", {"recency_divisor_days": 0}, "search.recency_divisor_days"),
        ("search", {"recency_divisor_days": -7}, "search.recency_divisor_days"),
        ("search", {"exact_match_boost": 0.5}, "search.exact_match_boost"),
        ("search", {"context_type_boost": 0}, "search.context_type_boost"),
        ("search", {"recency_weight": -0.1}, "search.recency_weight"),
        ("search", {"diversity_threshold": -1}, "search.diversity_threshold"),
        ("search", {"time_frames": {"week": 0}}, "search.time_frames.week"),
        ("rag", {"primary_results": 0}, "rag.primary_results"),
        ("rag", {"max_context_chunks": -1}, "rag.max_context_chunks"),
        ("rag", {"recent_days": -1}, "rag.recent_days"),
    ],
)
def test_invalid_search_and_rag_values(
    tmp_path: Path, section: str, values: dict, match: str
) -> None:
    _write_yaml(tmp_path / "nova.yaml", {section: values})
    with pytest.raises(ConfigError, match=match):
        _load(tmp_path)


def test_zero_diversity_and_weight_are_valid(tmp_path: Path) -> None:
    _write_yaml(
        tmp_path / "nova.yaml",
        {"search": {"diversity_threshold": 0, "recency_weight": 0}, "rag": {"recent_days": 0}},
    )
    cfg = _load(tmp_path)
    assert cfg.search.diversity_threshold == 0
    assert cfg.rag.recent_days == 0


def test_non_numeric_value(tmp_path: Path) -> None:
    _write_yaml(tmp_path / "nova.yaml", {"index": {"chunk_size": "big"}})
    with pytest.raises(ConfigError, match="Invalid config value"):
        _load(tmp_path)


def test_malformed_yaml(tmp_path: Path) -> None:
    (tmp_path / "nova.yaml").write_text("index: [unclosed", encoding="utf-8")
    with pytest.raises(ConfigError, match="not valid YAML"):
        _load(tmp_path)


def test_top_level_must_be_mapping(tmp_path: Path) -> None:
    (tmp_path / "nova.yaml").write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="mapping"):
        _load(tmp_path)


def test_unknown_section_warns(tmp_path: Path) -> None:
    _write_yaml(tmp_path / "nova.yaml", {"extras": {"x": 1}})
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        _load(tmp_path)
    assert any("extras" in str(w.message) for w in caught)
