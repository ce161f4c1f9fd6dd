"""
ModList 数据模型包

包含配置模型、API 模型与清单状态模型定义。
"""

from modlist.models.config import (
    ModLoader,
    StoreBackend,
    RegistryConfig,
    ShareConfig,
    AppConfig,
    ModEntryConfig,
    ListConfig,
)
from modlist.models.api import (
    ProjectInfo,
    FileInfo,
    DependencyInfo,
    VersionInfo,
    SearchHit,
    GameVersionTag,
    LoaderTag,
)
from modlist.models.entry import (
    NO_VERSION,
    UNKNOWN_VERSION,
    EntryStatus,
    StatusTone,
    DependencyRef,
    ListEntry,
    normalize_dependencies,
)
from modlist.models.state import ListState, ListStats

__all__ = [
    # 配置模型
    "ModLoader",
    "StoreBackend",
    "RegistryConfig",
    "ShareConfig",
    "AppConfig",
    "ModEntryConfig",
    "ListConfig",
    # API 模型
    "ProjectInfo",
    "FileInfo",
    "DependencyInfo",
    "VersionInfo",
    "SearchHit",
    "GameVersionTag",
    "LoaderTag",
    # 清单模型
    "NO_VERSION",
    "UNKNOWN_VERSION",
    "EntryStatus",
    "StatusTone",
    "DependencyRef",
    "ListEntry",
    "normalize_dependencies",
    "ListState",
    "ListStats",
]
