"""
Storage Module - Black Box Interface

Purpose: Persist session credentials across restarts
Interface: load(), save(), clear(), build_credential_store()
Hidden: File layout, Redis keys, serialization

Can be replaced with any storage backend without affecting other modules.
"""

from .credentials import (
    CredentialStore,
    FileCredentialStore,
    RedisCredentialStore,
    build_credential_store,
)

__all__ = [
    "CredentialStore",
    "FileCredentialStore",
    "RedisCredentialStore",
    "build_credential_store",
]
