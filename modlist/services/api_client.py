"""
API 客户端

Modrinth 注册表的薄封装：请求构造、响应缓存与数据模型转换，不含业务逻辑。
"""

import asyncio
import json
from typing import Any, List, Optional

import aiohttp
from loguru import logger

from modlist.models import (
    RegistryConfig,
    ProjectInfo,
    VersionInfo,
    SearchHit,
    GameVersionTag,
    LoaderTag,
)
from modlist.exceptions import APIError, APIRateLimitError, APIServerError
from modlist.services.cache import ResponseCache


class ModrinthClient:
    """Modrinth API 客户端"""

    def __init__(
        self,
        config: Optional[RegistryConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
        cache: Optional[ResponseCache] = None,
    ):
        self.config = config or RegistryConfig()
        self.cache = cache if cache is not None else ResponseCache()
        self._session = session
        self._owned_session = session is None

    @property
    def session(self) -> aiohttp.ClientSession:
        """获取或创建 aiohttp session"""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={"User-Agent": self.config.user_agent},
                timeout=aiohttp.ClientTimeout(total=self.config.timeout),
            )
        return self._session

    async def _request(self, endpoint: str, params: Optional[dict] = None) -> Any:
        """
        发送 API 请求

        Returns:
            解析后的 JSON；资源不存在 (404) 时返回 None

        Raises:
            APIError: 网络错误或非预期的状态码
        """
        url = f"{self.config.base_url}{endpoint}"
        try:
            async with self.session.get(url, params=params) as response:
                if response.status == 200:
                    return await response.json()
                elif response.status == 404:
                    return None
                elif response.status == 429:
                    raise APIRateLimitError(
                        "API 请求过于频繁 (状态码: 429)", response=response
                    )
                elif response.status >= 500:
                    raise APIServerError(
                        f"API 服务器错误 (状态码: {response.status})",
                        response=response,
                    )
                else:
                    raise APIError(
                        f"API 请求失败 (状态码: {response.status})",
                        response=response,
                    )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise APIError(
                f"无法连接注册表: {e}", context={"url": url}
            ) from e

    async def _cached_request(
        self,
        key: str,
        ttl: float,
        endpoint: str,
        params: Optional[dict] = None,
    ) -> Any:
        """带缓存的请求，只缓存成功的响应"""
        cached = self.cache.get(key, ttl)
        if cached is not None:
            logger.debug(f"[缓存命中] {key}")
            return cached

        data = await self._request(endpoint, params)
        if data is not None:
            self.cache.set(key, data, ttl)
        return data

    async def get_game_versions(self) -> List[GameVersionTag]:
        """获取游戏版本标签"""
        data = await self._cached_request(
            ResponseCache.make_key("game_versions"),
            self.config.tag_cache_ttl,
            "/tag/game_version",
        )
        return [
            GameVersionTag(
                version=item.get("version", ""),
                date=item.get("date") or "",
                version_type=item.get("version_type") or "release",
            )
            for item in data or []
            if item.get("version")
        ]

    async def get_loaders(self) -> List[LoaderTag]:
        """获取加载器标签"""
        data = await self._cached_request(
            ResponseCache.make_key("loaders"),
            self.config.tag_cache_ttl,
            "/tag/loader",
        )
        return [
            LoaderTag(
                loader=item["loader"],
                supported_project_types=list(item.get("supported_project_types") or []),
            )
            for item in data or []
            if item.get("loader")
        ]

    async def get_project(self, idx: str) -> Optional[ProjectInfo]:
        """获取项目信息"""
        data = await self._cached_request(
            ResponseCache.make_key("project", project_id=idx),
            self.config.cache_ttl,
            f"/project/{idx}",
        )
        if data is None:
            return None
        return ProjectInfo.from_modrinth(data)

    async def get_versions(
        self,
        idx: str,
        game_version: Optional[str] = None,
        loader: Optional[str] = None,
    ) -> List[VersionInfo]:
        """
        获取项目版本列表

        Args:
            idx: 项目 ID 或 slug
            game_version: 只返回支持该游戏版本的构建，None 表示不过滤
            loader: 只返回支持该加载器的构建，None 表示不过滤

        Returns:
            版本列表（注册表顺序，通常最新在前）；项目不存在时为空列表
        """
        params = {}
        if game_version:
            params["game_versions"] = json.dumps([game_version])
        if loader:
            params["loaders"] = json.dumps([loader])

        data = await self._cached_request(
            ResponseCache.make_key(
                "versions", project_id=idx, game_version=game_version, loader=loader
            ),
            self.config.cache_ttl,
            f"/project/{idx}/version",
            params or None,
        )
        return [VersionInfo.from_modrinth(item) for item in data or []]

    async def search(self, query: str, limit: Optional[int] = None) -> List[SearchHit]:
        """按关键字搜索项目"""
        params = {
            "query": query,
            "limit": str(limit or self.config.search_limit),
            "index": "relevance",
        }
        data = await self._cached_request(
            ResponseCache.make_key("search", query=query),
            self.config.cache_ttl,
            "/search",
            params,
        )
        if not data:
            return []
        return [SearchHit.from_modrinth(hit) for hit in data.get("hits", [])]

    async def close(self):
        """关闭客户端"""
        if self._owned_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        """异步上下文管理器入口"""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """异步上下文管理器出口"""
        await self.close()
