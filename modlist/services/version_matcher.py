"""
版本匹配服务

实现游戏版本比较与过滤、最后支持版本推断、加载器标签映射。
"""

import re
from functools import cmp_to_key
from typing import List, Optional, Sequence

from loguru import logger

from modlist.models import VersionInfo
from modlist.exceptions import APIError
from modlist.services.api_client import ModrinthClient


FALLBACK_VERSIONS = [
    "26.1",
    "1.21.1",
    "1.21",
    "1.20.6",
    "1.20.4",
    "1.20.2",
    "1.20.1",
    "1.19.4",
    "1.19.2",
    "1.18.2",
    "1.17.1",
    "1.16.5",
    "1.12.2",
]

FALLBACK_LOADERS = ["Fabric", "NeoForge", "Forge", "Quilt"]

# 标签列表可能尚未收录的最新版本
LATEST_OVERRIDE_VERSION = "26.1"

MINIMUM_VERSION = "1.2.5"

LOADER_LABELS = {
    "fabric": "Fabric",
    "forge": "Forge",
    "neoforge": "NeoForge",
    "quilt": "Quilt",
    "rift": "Rift",
    "asm": "Asm",
}

_RELEASE_PATTERN = re.compile(r"^\d+\.\d+(\.\d+)?$")


def compare_versions(a: str, b: str) -> int:
    """按点分数字比较版本号，缺失的段视为 0"""
    a_parts = [int(part) for part in a.split(".")]
    b_parts = [int(part) for part in b.split(".")]
    for i in range(max(len(a_parts), len(b_parts))):
        diff = (a_parts[i] if i < len(a_parts) else 0) - (
            b_parts[i] if i < len(b_parts) else 0
        )
        if diff != 0:
            return diff
    return 0


def is_version_at_least(version: str, minimum: str) -> bool:
    return compare_versions(version, minimum) >= 0


def to_loader_id(label: str) -> str:
    """显示名称转换为注册表使用的加载器 id"""
    return label.strip().lower()


def to_loader_label(loader_id: str) -> str:
    return LOADER_LABELS.get(loader_id, loader_id)


def latest_supported_version(versions: Sequence[VersionInfo]) -> Optional[str]:
    """
    找出最近发布的构建所支持的第一个游戏版本

    按发布时间降序稳定排序，时间缺失或相同时保留原有顺序。
    """
    if not versions:
        return None
    latest = sorted(versions, key=lambda v: v.date_published or "", reverse=True)[0]
    return latest.game_versions[0] if latest.game_versions else None


class VersionMatcher:
    """版本匹配器"""

    def __init__(self, client: Optional[ModrinthClient] = None):
        self.client = client

    def filter_versions(self, versions: Sequence[str]) -> List[str]:
        """
        只保留正式版本号

        排除快照、预发布、候选等版本，要求 X.Y 或 X.Y.Z 格式且不低于 1.2.5，
        去重后按版本号从大到小排序。
        """
        result = []
        for version in versions:
            trimmed = version.strip()
            if not _RELEASE_PATTERN.match(trimmed):
                continue
            if not is_version_at_least(trimmed, MINIMUM_VERSION):
                continue
            if trimmed not in result:
                result.append(trimmed)

        return sorted(result, key=cmp_to_key(compare_versions), reverse=True)

    def matches(self, version: VersionInfo, game_version: str, loader: str) -> bool:
        """检查构建是否同时支持目标版本与加载器"""
        return game_version in version.game_versions and loader in version.loaders

    async def get_available_versions(self) -> List[str]:
        """
        获取可选的游戏版本

        注册表不可用时回退到内置版本列表。
        """
        if not self.client:
            return list(FALLBACK_VERSIONS)
        try:
            tags = await self.client.get_game_versions()
        except APIError as e:
            logger.warning(f"无法载入版本清单，已改用内建版本列表: {e}")
            return list(FALLBACK_VERSIONS)

        ordered = sorted(tags, key=lambda tag: tag.date, reverse=True)
        versions = self.filter_versions([tag.version for tag in ordered])
        if LATEST_OVERRIDE_VERSION not in versions:
            versions = self.filter_versions(versions + [LATEST_OVERRIDE_VERSION])
        return versions or list(FALLBACK_VERSIONS)

    async def get_available_loaders(self) -> List[str]:
        """获取可选的加载器显示名称"""
        if not self.client:
            return list(FALLBACK_LOADERS)
        try:
            tags = await self.client.get_loaders()
        except APIError as e:
            logger.warning(f"无法载入加载器清单: {e}")
            return list(FALLBACK_LOADERS)

        labels = []
        for tag in tags:
            label = LOADER_LABELS.get(tag.loader)
            if label and label not in labels:
                labels.append(label)
        return labels or list(FALLBACK_LOADERS)
