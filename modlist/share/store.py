"""
分享代码存储

定义统一的存储接口（get / set / 按内容哈希查找 / 删除过期），
并提供内存、JSON 文件与 SQLite 三种可替换的后端，启动时由配置选择。
"""

import asyncio
import json
import os
import sqlite3
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import aiofiles
from loguru import logger

from modlist.exceptions import StoreError
from modlist.models import ShareConfig, StoreBackend


@dataclass
class StoredPayload:
    """存储的清单快照"""

    target_version: str
    loader: str
    items: List[Dict[str, Any]]
    content_hash: str
    saved_at: str
    created_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "targetVersion": self.target_version,
            "loader": self.loader,
            "items": self.items,
            "contentHash": self.content_hash,
            "savedAt": self.saved_at,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoredPayload":
        return cls(
            target_version=data["targetVersion"],
            loader=data["loader"],
            items=list(data.get("items") or []),
            content_hash=data.get("contentHash", ""),
            saved_at=data.get("savedAt", ""),
            created_at=data.get("createdAt", ""),
        )


class ShareStore(ABC):
    """分享代码存储接口，所有代码以大写形式作为键"""

    @abstractmethod
    async def get(self, code: str) -> Optional[StoredPayload]:
        pass

    @abstractmethod
    async def set(self, code: str, payload: StoredPayload) -> None:
        """整条记录原子写入（存在则覆盖）"""
        pass

    @abstractmethod
    async def find_by_content_hash(self, content_hash: str) -> Optional[str]:
        pass

    @abstractmethod
    async def delete_older_than(self, cutoff: str) -> int:
        """
        删除 created_at 早于 cutoff (ISO 8601 UTC) 的记录

        Returns:
            删除的记录数
        """
        pass

    async def close(self) -> None:
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


class MemoryShareStore(ShareStore):
    """内存存储，进程退出即丢失"""

    def __init__(self):
        self._records: Dict[str, StoredPayload] = {}

    async def get(self, code: str) -> Optional[StoredPayload]:
        return self._records.get(code.upper())

    async def set(self, code: str, payload: StoredPayload) -> None:
        self._records[code.upper()] = payload

    async def find_by_content_hash(self, content_hash: str) -> Optional[str]:
        for code, payload in self._records.items():
            if payload.content_hash == content_hash:
                return code
        return None

    async def delete_older_than(self, cutoff: str) -> int:
        expired = [code for code, p in self._records.items() if p.created_at < cutoff]
        for code in expired:
            del self._records[code]
        return len(expired)

    def __len__(self) -> int:
        return len(self._records)


class JsonFileShareStore(ShareStore):
    """
    JSON 文件存储

    整个文件作为 {code: payload} 映射读写，写入时先写临时文件再替换，
    避免留下半写入的记录。
    """

    def __init__(self, path: str):
        self.path = path
        self._records: Optional[Dict[str, Dict[str, Any]]] = None
        self._lock = asyncio.Lock()

    async def _load(self) -> Dict[str, Dict[str, Any]]:
        if self._records is not None:
            return self._records

        if not os.path.exists(self.path):
            self._records = {}
            return self._records

        try:
            async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
                content = await f.read()
            self._records = json.loads(content) if content.strip() else {}
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(
                f"读取分享代码文件失败: {e}", context={"path": self.path}
            ) from e
        return self._records

    async def _flush(self):
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        try:
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(json.dumps(self._records, ensure_ascii=False, indent=2))
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StoreError(
                f"写入分享代码文件失败: {e}", context={"path": self.path}
            ) from e

    async def get(self, code: str) -> Optional[StoredPayload]:
        async with self._lock:
            records = await self._load()
            data = records.get(code.upper())
        return StoredPayload.from_dict(data) if data else None

    async def set(self, code: str, payload: StoredPayload) -> None:
        async with self._lock:
            records = await self._load()
            records[code.upper()] = payload.to_dict()
            await self._flush()

    async def find_by_content_hash(self, content_hash: str) -> Optional[str]:
        async with self._lock:
            records = await self._load()
            for code, data in records.items():
                if data.get("contentHash") == content_hash:
                    return code
        return None

    async def delete_older_than(self, cutoff: str) -> int:
        async with self._lock:
            records = await self._load()
            expired = [
                code for code, data in records.items() if data.get("createdAt", "") < cutoff
            ]
            for code in expired:
                del records[code]
            if expired:
                await self._flush()
        return len(expired)


class SqliteShareStore(ShareStore):
    """SQLite 存储，阻塞调用放到线程中执行"""

    SCHEMA = """
        CREATE TABLE IF NOT EXISTS share_codes (
            id TEXT PRIMARY KEY,
            targetVersion TEXT NOT NULL,
            loader TEXT NOT NULL,
            items TEXT NOT NULL,
            contentHash TEXT NOT NULL,
            savedAt TEXT NOT NULL,
            createdAt TEXT NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_contentHash ON share_codes(contentHash);
        CREATE INDEX IF NOT EXISTS idx_createdAt ON share_codes(createdAt);
    """

    def __init__(self, path: str):
        self.path = path
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = asyncio.Lock()

    def _connect(self) -> sqlite3.Connection:
        if self._conn is None:
            directory = os.path.dirname(self.path)
            if directory and self.path != ":memory:":
                os.makedirs(directory, exist_ok=True)
            conn = sqlite3.connect(self.path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode = WAL")
            conn.executescript(self.SCHEMA)
            self._conn = conn
            logger.debug(f"已打开分享代码数据库: {self.path}")
        return self._conn

    async def _run(self, func, *args):
        async with self._lock:
            try:
                return await asyncio.to_thread(func, *args)
            except sqlite3.Error as e:
                raise StoreError(
                    f"分享代码数据库操作失败: {e}", context={"path": self.path}
                ) from e

    def _get(self, code: str) -> Optional[StoredPayload]:
        row = self._connect().execute(
            "SELECT * FROM share_codes WHERE id = ?", (code.upper(),)
        ).fetchone()
        if row is None:
            return None
        return StoredPayload(
            target_version=row["targetVersion"],
            loader=row["loader"],
            items=json.loads(row["items"]),
            content_hash=row["contentHash"],
            saved_at=row["savedAt"],
            created_at=row["createdAt"],
        )

    def _set(self, code: str, payload: StoredPayload):
        conn = self._connect()
        with conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO share_codes
                (id, targetVersion, loader, items, contentHash, savedAt, createdAt)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    code.upper(),
                    payload.target_version,
                    payload.loader,
                    json.dumps(payload.items, ensure_ascii=False),
                    payload.content_hash,
                    payload.saved_at,
                    payload.created_at,
                ),
            )

    def _find_by_content_hash(self, content_hash: str) -> Optional[str]:
        row = self._connect().execute(
            "SELECT id FROM share_codes WHERE contentHash = ? LIMIT 1", (content_hash,)
        ).fetchone()
        return row["id"] if row else None

    def _delete_older_than(self, cutoff: str) -> int:
        conn = self._connect()
        with conn:
            cursor = conn.execute("DELETE FROM share_codes WHERE createdAt < ?", (cutoff,))
        return cursor.rowcount

    async def get(self, code: str) -> Optional[StoredPayload]:
        return await self._run(self._get, code)

    async def set(self, code: str, payload: StoredPayload) -> None:
        await self._run(self._set, code, payload)

    async def find_by_content_hash(self, content_hash: str) -> Optional[str]:
        return await self._run(self._find_by_content_hash, content_hash)

    async def delete_older_than(self, cutoff: str) -> int:
        return await self._run(self._delete_older_than, cutoff)

    async def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None


def create_store(config: ShareConfig) -> ShareStore:
    """按配置创建存储后端"""
    if config.backend == StoreBackend.MEMORY:
        return MemoryShareStore()
    path = config.resolve_path()
    if config.backend == StoreBackend.JSON:
        return JsonFileShareStore(path)
    return SqliteShareStore(path)
