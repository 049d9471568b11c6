"""
Reconciliation Engine - Common Utilities
========================================

Shared utilities for all Lambda functions.
"""

from .document_store import DocumentStore, MemoryDocumentStore, WriteBatch
from .supabase_client import SupabaseDocumentStore
from .config import EngineSettings, load_settings
from .identifiers import generate_id, content_hash
from .secrets import get_secret, get_all_secrets, get_supabase_credentials

__all__ = [
    "DocumentStore",
    "MemoryDocumentStore",
    "WriteBatch",
    "SupabaseDocumentStore",
    "EngineSettings",
    "load_settings",
    "generate_id",
    "content_hash",
    "get_secret",
    "get_all_secrets",
    "get_supabase_credentials",
]
