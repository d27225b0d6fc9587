"""Exception taxonomy for the indexing and retrieval core.

Internal functions raise these so callers (and tests) can tell *why* an
operation degraded. Public entry points of the indexer, retriever and
assembler catch them and return their empty value instead.
"""

from __future__ import annotations


class NovaJournalError(Exception):
    """Base class for all nova-journal runtime errors."""

    code: str = "NOVA_JOURNAL_ERROR"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code


class NotConfiguredError(NovaJournalError):
    """AI is disabled, or the API key is missing or malformed."""

    code = "AI_NOT_CONFIGURED"


class ProviderError(NovaJournalError):
    """The embedding or completion provider failed or returned garbage."""

    code = "AI_SERVICE_ERROR"

    def __init__(self, message: str, original_error: BaseException | None = None) -> None:
        super().__init__(message)
        self.original_error = original_error


class IndexDataError(NovaJournalError):
    """Persisted index is corrupt, malformed, or from another schema version."""

    code = "INDEX_DATA_ERROR"


class UpdateInProgressError(NovaJournalError):
    """Another update cycle holds the index."""

    code = "UPDATE_IN_PROGRESS"
