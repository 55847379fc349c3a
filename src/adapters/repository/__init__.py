"""Repository adapters - Database and in-memory implementations."""

from .memory import InMemoryAccountRepository, InMemorySessionRepository
from .postgres import PostgresAccountRepository, PostgresSessionRepository, run_migrations

__all__ = [
    "InMemoryAccountRepository",
    "InMemorySessionRepository",
    "PostgresAccountRepository",
    "PostgresSessionRepository",
    "run_migrations",
]
