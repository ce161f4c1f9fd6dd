"""
模组解析服务

针对单个清单条目判断解析结果（可更新 / 缺失 / 自订），并提取其必需依赖。
"""

import asyncio
from typing import List, Optional, Sequence

from loguru import logger

from modlist.models import (
    NO_VERSION,
    UNKNOWN_VERSION,
    DependencyRef,
    EntryStatus,
    ListEntry,
    VersionInfo,
)
from modlist.models.entry import SOURCE_CUSTOM
from modlist.services.api_client import ModrinthClient
from modlist.services.pool import run_pool
from modlist.services.version_matcher import latest_supported_version
from modlist.exceptions import APIError


class ModResolver:
    """模组解析器"""

    def __init__(self, client: ModrinthClient, max_concurrent: int = 10):
        self.client = client
        self.max_concurrent = max_concurrent

    async def resolve(
        self,
        entry: ListEntry,
        target_version: str,
        loader_id: str,
    ) -> ListEntry:
        """
        解析单个条目

        Args:
            entry: 清单条目
            target_version: 目标 Minecraft 版本
            loader_id: 加载器 id（如 fabric）

        Returns:
            新的条目对象；暂停条目原样返回
        """
        if entry.paused:
            return entry

        if entry.is_custom or entry.source == SOURCE_CUSTOM:
            return entry.evolve(
                status=EntryStatus.CUSTOM,
                target_version=NO_VERSION,
                current_version=NO_VERSION,
                filename=None,
            )

        base = await self._refresh_metadata(entry)

        # 传输失败与零匹配一样处理，都走未过滤的回退查询
        try:
            versions = await self.client.get_versions(entry.id, target_version, loader_id)
        except APIError as e:
            logger.warning(f"查询 '{entry.id}' 的兼容版本失败: {e}")
            versions = []

        if versions:
            version = versions[0]
            primary = version.primary_file()
            dependencies = await self.resolve_dependencies(version)
            logger.debug(
                f"'{entry.id}' 可更新到 {target_version} ({loader_id}): "
                f"{primary.filename if primary else '无文件'}"
            )
            return base.evolve(
                target_version=target_version,
                status=EntryStatus.RESOLVABLE,
                last_supported_version=None,
                filename=primary.filename if primary and primary.filename else None,
                dependencies=dependencies,
            )

        last_supported: Optional[str] = None
        try:
            last_supported = latest_supported_version(
                await self.client.get_versions(entry.id)
            )
        except APIError as e:
            logger.warning(f"查询 '{entry.id}' 的全部版本失败: {e}")

        logger.debug(
            f"'{entry.id}' 缺少 {target_version} ({loader_id}) 版本，"
            f"最后支持: {last_supported or '未知'}"
        )
        return base.evolve(
            target_version=NO_VERSION,
            status=EntryStatus.MISSING,
            last_supported_version=last_supported,
            filename=None,
            dependencies=[],
        )

    async def _refresh_metadata(self, entry: ListEntry) -> ListEntry:
        """刷新标题、图标与当前版本；失败时保留原值"""
        try:
            project = await self.client.get_project(entry.id)
        except APIError as e:
            logger.debug(f"获取 '{entry.id}' 项目信息失败: {e}")
            return entry

        if project is None:
            return entry

        current_version = entry.current_version
        if current_version == UNKNOWN_VERSION and project.current_version:
            current_version = project.current_version

        return entry.evolve(
            title=project.title or entry.title,
            icon_url=project.icon_url or entry.icon_url,
            current_version=current_version,
        )

    async def resolve_dependencies(self, version: VersionInfo) -> List[DependencyRef]:
        """
        读取构建的必需依赖并查询标题

        查询失败的依赖以项目 ID 作为标题。
        """
        required_ids = version.required_dependency_ids()
        if not required_ids:
            return []
        return list(await asyncio.gather(*(self._dependency_ref(idx) for idx in required_ids)))

    async def _dependency_ref(self, idx: str) -> DependencyRef:
        try:
            project = await self.client.get_project(idx)
        except APIError:
            project = None
        if project is None:
            return DependencyRef(id=idx, title=idx)
        return DependencyRef(id=idx, title=project.title or idx, icon_url=project.icon_url)

    async def resolve_many(
        self,
        entries: Sequence[ListEntry],
        target_version: str,
        loader_id: str,
    ) -> List[ListEntry]:
        """
        批量解析条目

        Returns:
            与输入顺序一致的解析结果
        """
        return await run_pool(
            entries,
            self.max_concurrent,
            lambda entry: self.resolve(entry, target_version, loader_id),
            name="resolver",
        )
