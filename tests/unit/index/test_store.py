"""Tests for IndexStore persistence and validation."""

from __future__ import annotations

import json

import pytest

from nova_journal.errors import IndexDataError
from nova_journal.index.models import Chunk, ContextType, IndexData
from nova_journal.index.store import INDEX_KEY_PREFIX, IndexStore, vault_slug

_MODEL = "fake/keyword-embedder"


def _index() -> IndexData:
    chunk = Chunk(
        path="Journal/2024-01-01.md",
        date=1,
        last_modified=1,
        text="Had a great day",
        vector=[1.0, 0.0],
        context_type=ContextType.GENERAL,
        hash="42",
    )
    return IndexData(model=_MODEL, updated_at=7, items=[chunk], file_hashes={chunk.path: "99"})


@pytest.mark.parametrize(
    "name,slug",
    [("My Journal", "my-journal"), ("vault_2024", "vault-2024"), ("  ", "default"), ("Été", "t")],
)
def test_vault_slug(name, slug):
    assert vault_slug(name) == slug


def test_key_is_namespaced(store):
    assert store.key == f"{INDEX_KEY_PREFIX}my-vault"


def test_read_missing_returns_none(store):
    assert store.read() is None
    assert store.load() is None


def test_save_then_read(store):
    store.save(_index())
    loaded = store.read()
    assert loaded == _index()


def test_clear(store):
    store.save(_index())
    assert store.clear() is True
    assert store.read() is None


def test_vaults_do_not_share_entries(kv_repo):
    a = IndexStore(kv_repo, "vault-a", model=_MODEL)
    b = IndexStore(kv_repo, "vault-b", model=_MODEL)
    a.save(_index())
    assert b.read() is None


def test_version_mismatch_is_data_error(kv_repo, store):
    data = _index().to_dict()
    data["version"] = "1.0.0"
    kv_repo.put(store.key, json.dumps(data))
    with pytest.raises(IndexDataError, match="version"):
        store.read()
    assert store.load() is None


def test_model_mismatch_is_data_error(kv_repo):
    other = IndexStore(kv_repo, "v", model="other/model")
    index = _index()
    index.model = "other/model"
    other.save(index)

    store = IndexStore(kv_repo, "v", model=_MODEL)
    with pytest.raises(IndexDataError, match="built with"):
        store.read()
    assert store.load() is None


@pytest.mark.parametrize("field,value", [("model", "other/model"), ("version", "1.0.0")])
def test_save_rejects_foreign_index(store, field, value):
    index = _index()
    setattr(index, field, value)
    with pytest.raises(IndexDataError, match="Refusing to save"):
        store.save(index)
    assert store.read() is None


@pytest.mark.parametrize(
    "raw",
    [
        "{not json",
        "[1, 2, 3]",
        json.dumps({"model": _MODEL, "version": "2.0.0", "items": [{"path": "x"}]}),
        json.dumps(
            {
                "model": _MODEL,
                "version": "2.0.0",
                "items": [{"path": "x", "date": 1, "text": "t", "vector": [], "hash": "1"}],
            }
        ),
    ],
)
def test_corrupt_entries_are_data_errors(kv_repo, store, raw):
    kv_repo.put(store.key, raw)
    with pytest.raises(IndexDataError):
        store.read()
    assert store.load() is None
