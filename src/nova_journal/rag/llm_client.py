"""LiteLLM client wrapper: embeddings and completions with key checks and timeouts.

All provider calls in the index/RAG pipeline route through this module.
Configuration problems (AI disabled, missing or malformed key) are detected
before any request and raised as NotConfiguredError; every provider failure
surfaces as ProviderError.
"""

from __future__ import annotations

import json
from typing import Any, Protocol

import litellm

from nova_journal.config import AiCfg
from nova_journal.errors import NotConfiguredError, ProviderError

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True
litellm.set_verbose = False  # type: ignore[assignment]


class Embedder(Protocol):
    """Anything that turns texts into vectors, one per input, positionally aligned."""

    def check(self) -> None:
        """Raise NotConfiguredError if no request can be made."""

    def embed(self, inputs: list[str]) -> list[list[float]]: ...


# ------------------------------------------------------------------
# Configuration checks
# ------------------------------------------------------------------


def check_configured(cfg: AiCfg) -> str:
    """Return the API key, or raise if AI use is not possible.

    Raises:
        NotConfiguredError: If AI is disabled, the key env var is unset, or the
            key does not start with a recognised prefix.
    """
    if not cfg.enabled:
        raise NotConfiguredError("AI is disabled (ai.enabled: false).")
    key = cfg.api_key
    if not key:
        raise NotConfiguredError(
            f"API key not found. Set the {cfg.api_key_env} environment variable."
        )
    if not key.startswith(tuple(cfg.api_key_prefixes)):
        raise NotConfiguredError(
            f"API key in {cfg.api_key_env} is malformed "
            f"(expected prefix: {', '.join(cfg.api_key_prefixes)})."
        )
    return key


# ------------------------------------------------------------------
# Embeddings
# ------------------------------------------------------------------


class EmbeddingClient:
    """Batch embedding via ``litellm.embedding()``.

    Blank inputs are never sent; their positions come back as empty vectors
    so the output stays aligned with the input.
    """

    def __init__(self, cfg: AiCfg) -> None:
        self._cfg = cfg

    @property
    def model(self) -> str:
        return self._cfg.embedding_model

    def check(self) -> None:
        check_configured(self._cfg)

    def embed(self, inputs: list[str]) -> list[list[float]]:
        """Embed *inputs*. Returns [] for an empty (or all-blank) input list.

        Raises:
            NotConfiguredError: See check_configured().
            ProviderError: Oversized payload, request failure, or malformed response.
        """
        api_key = check_configured(self._cfg)
        positions = [i for i, text in enumerate(inputs) if text and text.strip()]
        if not positions:
            return []

        batch = [inputs[i] for i in positions]
        _check_request_size(self._cfg.embedding_model, batch, self._cfg.max_request_bytes)

        try:
            response = litellm.embedding(
                model=self._cfg.embedding_model,
                input=batch,
                api_key=api_key,
                timeout=self._cfg.timeout,
                num_retries=self._cfg.num_retries,
            )
        except Exception as exc:
            raise ProviderError(f"Embedding request failed: {exc}", original_error=exc) from exc

        vectors = _parse_embeddings(response)
        result: list[list[float]] = [[] for _ in inputs]
        for pos, vector in zip(positions, vectors):
            result[pos] = vector
        return result


def _check_request_size(model: str, batch: list[str], limit: int) -> None:
    payload = {"model": model, "input": batch, "encoding_format": "float"}
    size = len(json.dumps(payload, ensure_ascii=False).encode("utf-8"))
    if size > limit:
        raise ProviderError(
            f"Request too large: {size} bytes (max {limit}). Reduce chunk count or size."
        )


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _parse_embeddings(response: Any) -> list[list[float]]:
    """Extract vectors from a LiteLLM embedding response.

    Items are put back in input order by their ``index`` field when every
    item has one. Items that carry no usable vector become [] (callers treat
    as failed).
    """
    data = _field(response, "data")
    if not isinstance(data, list):
        raise ProviderError("Embedding response has no data list")
    if data and all(isinstance(_field(item, "index"), int) for item in data):
        data = sorted(data, key=lambda item: _field(item, "index"))

    vectors: list[list[float]] = []
    for item in data:
        embedding = _field(item, "embedding")
        try:
            vectors.append([float(v) for v in embedding] if embedding else [])
        except (TypeError, ValueError):
            vectors.append([])
    return vectors


# ------------------------------------------------------------------
# Completions
# ------------------------------------------------------------------


def complete(
    cfg: AiCfg,
    messages: list[dict],
    max_tokens: int = 512,
    temperature: float = 0.7,
) -> str:
    """Call litellm.completion() with timeout/retry. Returns content string.

    Raises:
        NotConfiguredError: See check_configured().
        ProviderError: On persistent API failure after retries.
    """
    api_key = check_configured(cfg)
    try:
        response = litellm.completion(
            model=cfg.completion_model,
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature,
            api_key=api_key,
            timeout=cfg.timeout,
            num_retries=cfg.num_retries,
        )
        return response.choices[0].message.content or ""
    except (AttributeError, IndexError) as exc:
        raise ProviderError("Completion response was malformed", original_error=exc) from exc
    except Exception as exc:
        raise ProviderError(f"Completion request failed: {exc}", original_error=exc) from exc
