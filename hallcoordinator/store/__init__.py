"""Session and issue storage adapters."""

from .base import IssueStore, SessionStore
from .memory_store import InMemoryIssueStore, InMemorySessionStore
from .supabase_store import SupabaseSessionStore

__all__ = [
    "InMemoryIssueStore",
    "InMemorySessionStore",
    "IssueStore",
    "SessionStore",
    "SupabaseSessionStore",
]
