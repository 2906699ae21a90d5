"""Device-local key-value storage drivers.

Every driver stores plain strings under string keys, mirroring a browser's
localStorage. Values are overwritten whole; there is no partial update and
no cross-process coordination (last writer wins).
"""

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Protocol, runtime_checkable

from redis.asyncio import Redis
from redis.exceptions import RedisError

from design2code.core.exceptions import LocalStoreError


@runtime_checkable
class KeyValueStorage(Protocol):
    """Async string key-value store used by the Local Backend."""

    async def get_item(self, key: str) -> str | None:
        ...

    async def set_item(self, key: str, value: str) -> None:
        ...

    async def remove_item(self, key: str) -> None:
        ...


class FileStorage:
    """JSON-file storage on the local disk.

    The whole file is rewritten on every change through a private temp file
    and an atomic rename, so a crash never leaves a half-written document.
    Read-modify-write cycles on one instance run one at a time.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()
        self._write_lock = asyncio.Lock()

    async def get_item(self, key: str) -> str | None:
        data = await asyncio.to_thread(self._read)
        return data.get(key)

    async def set_item(self, key: str, value: str) -> None:
        async with self._write_lock:
            await asyncio.to_thread(self._update, key, value)

    async def remove_item(self, key: str) -> None:
        async with self._write_lock:
            await asyncio.to_thread(self._update, key, None)

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise LocalStoreError(f"Cannot read storage file {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise LocalStoreError(f"Storage file {self.path} is not a JSON object")
        return data

    def _update(self, key: str, value: str | None) -> None:
        data = self._read()
        if value is None:
            data.pop(key, None)
        else:
            data[key] = value

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_name = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                json.dump(data, tmp)
            os.replace(tmp_name, self.path)
        except OSError as exc:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise LocalStoreError(f"Cannot write storage file {self.path}: {exc}") from exc


class RedisStorage:
    """Redis-backed storage, for devices that run a local Redis daemon.

    Expects a client created with ``decode_responses=True``.
    """

    def __init__(self, redis: Redis, namespace: str = "localstorage"):
        self.redis = redis
        self.namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    async def get_item(self, key: str) -> str | None:
        try:
            return await self.redis.get(self._key(key))
        except RedisError as exc:
            raise LocalStoreError(f"Redis read of {key} failed: {exc}") from exc

    async def set_item(self, key: str, value: str) -> None:
        try:
            await self.redis.set(self._key(key), value)
        except RedisError as exc:
            raise LocalStoreError(f"Redis write of {key} failed: {exc}") from exc

    async def remove_item(self, key: str) -> None:
        try:
            await self.redis.delete(self._key(key))
        except RedisError as exc:
            raise LocalStoreError(f"Redis delete of {key} failed: {exc}") from exc
