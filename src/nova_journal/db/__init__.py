"""nova-journal key-value storage layer."""

from nova_journal.db.connection import Database
from nova_journal.db.migrations import MIGRATIONS, run_migrations
from nova_journal.db.repository import KeyValueRepository

__all__ = [
    "Database",
    "KeyValueRepository",
    "MIGRATIONS",
    "run_migrations",
]
