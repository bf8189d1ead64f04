import asyncio
import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

import redis.asyncio as redis
from redis.exceptions import RedisError

from ...errors import CredentialStoreError

logger = logging.getLogger(__name__)

CREDENTIALS_FILE = "creds.json"


class CredentialStore(Protocol):
    """Protocol for credential persistence backends."""

    async def load(self) -> Optional[Dict[str, Any]]:
        """Return the persisted blob, or None if nothing is stored."""
        ...

    async def save(self, credentials: Dict[str, Any]) -> None:
        """Persist the blob durably before returning."""
        ...

    async def clear(self) -> None:
        """Delete the persisted blob. Must not fail if nothing is stored."""
        ...

    async def close(self) -> None:
        """Release backend resources."""
        ...


class FileCredentialStore:
    def __init__(self, directory: str):
        """
        Initialize file-backed credential store.

        Args:
            directory: Directory holding the credential blob
        """
        self.directory = Path(directory)
        self.path = self.directory / CREDENTIALS_FILE

    async def load(self) -> Optional[Dict[str, Any]]:
        return await asyncio.to_thread(self._load)

    async def save(self, credentials: Dict[str, Any]) -> None:
        await asyncio.to_thread(self._save, credentials)

    async def clear(self) -> None:
        await asyncio.to_thread(self._clear)

    async def close(self) -> None:
        pass

    def _load(self) -> Optional[Dict[str, Any]]:
        if not self.path.exists():
            return None
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise CredentialStoreError(f"Failed to read credentials from {self.path}: {e}") from e

    def _save(self, credentials: Dict[str, Any]) -> None:
        """
        Write atomically: temp file in the same directory, fsync, rename.

        A crash at any point leaves either the old or the new blob on disk.
        """
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=".creds-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(credentials, f)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise CredentialStoreError(f"Failed to write credentials to {self.path}: {e}") from e

    def _clear(self) -> None:
        if self.directory.exists():
            shutil.rmtree(self.directory, ignore_errors=True)


class RedisCredentialStore:
    def __init__(self, redis_client, key: str = "courier:credentials:default"):
        """
        Initialize Redis-backed credential store.

        Args:
            redis_client: Async Redis client
            key: Key holding the JSON blob
        """
        self.redis = redis_client
        self.key = key

    async def load(self) -> Optional[Dict[str, Any]]:
        try:
            data = await self.redis.get(self.key)
        except RedisError as e:
            raise CredentialStoreError(f"Failed to read credentials: {e}") from e

        if not data:
            return None
        try:
            return json.loads(data)
        except json.JSONDecodeError as e:
            raise CredentialStoreError(f"Corrupt credentials at {self.key}: {e}") from e

    async def save(self, credentials: Dict[str, Any]) -> None:
        try:
            await self.redis.set(self.key, json.dumps(credentials))
        except RedisError as e:
            raise CredentialStoreError(f"Failed to write credentials: {e}") from e

    async def clear(self) -> None:
        try:
            await self.redis.delete(self.key)
        except RedisError as e:
            raise CredentialStoreError(f"Failed to clear credentials: {e}") from e

    async def close(self) -> None:
        await self.redis.close()


async def get_redis_client(config) -> redis.Redis:
    """Create Redis client from configuration."""
    redis_url = f"redis://{config.get('redis_host')}:{config.get('redis_port')}/{config.get('redis_db')}"

    return redis.from_url(
        redis_url,
        password=config.get("redis_password"),
        encoding="utf-8",
        decode_responses=True,
    )


async def build_credential_store(config) -> CredentialStore:
    """Build the configured credential store."""
    if config.get("credential_backend") == "redis":
        client = await get_redis_client(config)
        logger.info(f"Using Redis credential store at key {config.get('credential_key')}")
        return RedisCredentialStore(client, key=config.get("credential_key"))

    logger.info(f"Using file credential store in {config.get('credentials_dir')}")
    return FileCredentialStore(config.get("credentials_dir"))
