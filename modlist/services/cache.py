"""
响应缓存

为注册表查询提供带 TTL 的内存缓存，随客户端实例创建和销毁。
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional


@dataclass
class CacheEntry:
    """单条缓存"""

    value: Any
    timestamp: float
    ttl: Optional[float] = None


class ResponseCache:
    """TTL 响应缓存"""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._entries: Dict[str, CacheEntry] = {}
        self._clock = clock
        self.hits = 0
        self.misses = 0

    @staticmethod
    def make_key(
        kind: str,
        query: Optional[str] = None,
        project_id: Optional[str] = None,
        game_version: Optional[str] = None,
        loader: Optional[str] = None,
    ) -> str:
        """生成缓存键"""
        if kind in ("game_versions", "loaders"):
            return kind
        if kind == "search":
            return f"search:{query}"
        if kind == "project":
            return f"project:{project_id}"
        if kind == "versions":
            return f"versions:{project_id}:{game_version or 'all'}:{loader or 'all'}"
        raise ValueError(f"未知的缓存类型: {kind}")

    def get(self, key: str, ttl: float) -> Optional[Any]:
        """
        读取缓存

        过期条目会被顺手删除。
        """
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None
        if self._clock() - entry.timestamp >= ttl:
            del self._entries[key]
            self.misses += 1
            return None
        self.hits += 1
        return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None):
        """
        写入缓存

        带 ttl 写入的条目在之后任意一次写入时若已过期会被清除。
        """
        now = self._clock()
        self._sweep(now)
        self._entries[key] = CacheEntry(value=value, timestamp=now, ttl=ttl)

    def _sweep(self, now: float):
        expired = [
            key
            for key, entry in self._entries.items()
            if entry.ttl is not None and now - entry.timestamp >= entry.ttl
        ]
        for key in expired:
            del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)
