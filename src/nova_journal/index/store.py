"""Persisted index: JSON (de)serialisation over a namespaced key-value entry.

The stored document is versioned. Anything that is not a well-formed index
of the current version and embedding model is reported as IndexDataError
and treated by callers as "no index" (full rebuild).
"""

from __future__ import annotations

import json
import logging
import re

from nova_journal.db.repository import KeyValueRepository
from nova_journal.errors import IndexDataError
from nova_journal.index.models import INDEX_VERSION, IndexData

logger = logging.getLogger(__name__)

INDEX_KEY_PREFIX = "nova-journal-enhanced-index-"


def vault_slug(name: str) -> str:
    """Convert a vault name into a stable key suffix.

    Examples:
        "My Journal" -> "my-journal"
        "  "         -> "default"
    """
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "default"


class IndexStore:
    """Load and save one vault's IndexData.

    Args:
        repo:     Key-value repository on an initialised database.
        vault_id: Stable vault identifier (slugified into the storage key).
        model:    Embedding model the caller expects; a stored index built
                  with another model is rejected.
        version:  Schema version the caller expects.
    """

    def __init__(
        self,
        repo: KeyValueRepository,
        vault_id: str,
        model: str,
        version: str = INDEX_VERSION,
    ) -> None:
        self._repo = repo
        self.key = f"{INDEX_KEY_PREFIX}{vault_slug(vault_id)}"
        self.model = model
        self.version = version

    def read(self) -> IndexData | None:
        """Return the stored index, or None if nothing is stored.

        Raises:
            IndexDataError: If the stored entry is corrupt, malformed, or of
                another version or embedding model.
        """
        raw = self._repo.get(self.key)
        if raw is None:
            return None

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise IndexDataError(f"Stored index '{self.key}' is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise IndexDataError(f"Stored index '{self.key}' is not a JSON object")

        version = data.get("version")
        if version != self.version:
            raise IndexDataError(
                f"Stored index version {version!r} does not match {self.version!r}"
            )
        if data.get("model") != self.model:
            raise IndexDataError(
                f"Stored index was built with {data.get('model')!r}, expected {self.model!r}"
            )

        try:
            index = IndexData.from_dict(data)
        except (KeyError, TypeError, ValueError) as exc:
            raise IndexDataError(f"Stored index '{self.key}' is malformed: {exc}") from exc

        if any(not chunk.vector for chunk in index.items):
            raise IndexDataError(f"Stored index '{self.key}' holds chunks without vectors")
        return index

    def load(self) -> IndexData | None:
        """Like read(), but invalid data is logged and reported as None."""
        try:
            return self.read()
        except IndexDataError as exc:
            logger.warning("Ignoring stored index: %s", exc)
            return None

    def save(self, index: IndexData) -> None:
        """Persist *index*.

        Raises:
            IndexDataError: If *index* was built for another version or model.
        """
        if index.version != self.version or index.model != self.model:
            raise IndexDataError(
                f"Refusing to save index ({index.version!r}, {index.model!r}) "
                f"under '{self.key}', which expects ({self.version!r}, {self.model!r})"
            )
        self._repo.put(self.key, json.dumps(index.to_dict(), separators=(",", ":")))

    def clear(self) -> bool:
        return self._repo.delete(self.key)
