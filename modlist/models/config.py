"""
配置数据模型

定义应用设置（注册表、分享存储）与模组清单文件的结构。
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from modlist.exceptions import ConfigValidationError


DEFAULT_REGISTRY_URL = "https://api.modrinth.com/v2"
DEFAULT_USER_AGENT = "modlist-converter/1.0"
DEFAULT_DATA_DIR = os.path.join(os.path.expanduser("~"), ".modlist-converter")


class ModLoader(Enum):
    """模组加载器"""

    FABRIC = "fabric"
    FORGE = "forge"
    NEOFORGE = "neoforge"
    QUILT = "quilt"

    @classmethod
    def parse(cls, value: str) -> "ModLoader":
        """从 id 或显示名称（如 NeoForge）解析加载器"""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ConfigValidationError(
                f"不支持的模组加载器: {value}",
                context={"mod_loader": value},
            )


class StoreBackend(Enum):
    """分享代码存储后端"""

    MEMORY = "memory"
    JSON = "json"
    SQLITE = "sqlite"


@dataclass
class RegistryConfig:
    """注册表客户端配置"""

    base_url: str = DEFAULT_REGISTRY_URL
    user_agent: str = DEFAULT_USER_AGENT
    cache_ttl: float = 300.0
    tag_cache_ttl: float = 3600.0
    search_limit: int = 20
    timeout: float = 30.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RegistryConfig":
        config = cls(
            base_url=str(data.get("base_url", DEFAULT_REGISTRY_URL)).rstrip("/"),
            user_agent=data.get("user_agent", DEFAULT_USER_AGENT),
            cache_ttl=float(data.get("cache_ttl", 300.0)),
            tag_cache_ttl=float(data.get("tag_cache_ttl", 3600.0)),
            search_limit=int(data.get("search_limit", 20)),
            timeout=float(data.get("timeout", 30.0)),
        )
        if config.cache_ttl < 0 or config.tag_cache_ttl < 0:
            raise ConfigValidationError("缓存 TTL 不能为负数")
        if config.search_limit <= 0:
            raise ConfigValidationError("search_limit 必须为正整数")
        return config


@dataclass
class ShareConfig:
    """分享代码存储配置"""

    backend: StoreBackend = StoreBackend.SQLITE
    path: Optional[str] = None
    retention_days: int = 90
    base_url: str = "http://localhost:3000"

    def resolve_path(self) -> str:
        """
        获取存储文件路径

        优先使用配置，其次环境变量 MODLIST_DB_PATH，最后落到用户目录。
        """
        if self.path:
            return self.path
        if env_path := os.environ.get("MODLIST_DB_PATH"):
            return env_path
        suffix = ".json" if self.backend == StoreBackend.JSON else ".db"
        return os.path.join(DEFAULT_DATA_DIR, f"modlist-share-codes{suffix}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ShareConfig":
        try:
            backend = StoreBackend(str(data.get("backend", "sqlite")).lower())
        except ValueError:
            raise ConfigValidationError(
                f"不支持的存储后端: {data.get('backend')}",
                context={"backend": data.get("backend")},
            )
        retention_days = int(data.get("retention_days", 90))
        if retention_days <= 0:
            raise ConfigValidationError("retention_days 必须为正整数")
        return cls(
            backend=backend,
            path=data.get("path"),
            retention_days=retention_days,
            base_url=str(data.get("base_url", "http://localhost:3000")).rstrip("/"),
        )


@dataclass
class AppConfig:
    """应用设置"""

    registry: RegistryConfig = field(default_factory=RegistryConfig)
    share: ShareConfig = field(default_factory=ShareConfig)
    max_concurrent: int = 10

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppConfig":
        max_concurrent = data.get("max_concurrent", 10)
        if not isinstance(max_concurrent, int) or max_concurrent <= 0:
            raise ConfigValidationError(
                "max_concurrent 必须为正整数",
                context={"max_concurrent": max_concurrent},
            )
        return cls(
            registry=RegistryConfig.from_dict(data.get("registry", {})),
            share=ShareConfig.from_dict(data.get("share", {})),
            max_concurrent=max_concurrent,
        )


@dataclass
class ModEntryConfig:
    """清单文件中的单个模组配置"""

    id: str
    title: Optional[str] = None
    paused: bool = False
    selected: bool = True
    note: str = ""
    custom: bool = False
    url: str = ""

    @classmethod
    def from_value(cls, value: Union[str, Dict[str, Any]]) -> "ModEntryConfig":
        if isinstance(value, str):
            return cls(id=value)
        if not isinstance(value, dict):
            raise ConfigValidationError(f"无效的模组条目: {value!r}")
        custom = bool(value.get("custom", False))
        mod_id = value.get("id") or value.get("slug") or ""
        if not mod_id and not custom:
            raise ConfigValidationError(
                "模组条目缺少 id", context={"entry": value}
            )
        return cls(
            id=mod_id,
            title=value.get("title"),
            paused=bool(value.get("paused", False)),
            selected=bool(value.get("selected", True)),
            note=value.get("note", "") or "",
            custom=custom,
            url=value.get("url", "") or "",
        )


@dataclass
class ListConfig:
    """模组清单文件"""

    version: str
    mod_loader: ModLoader
    mods: List[ModEntryConfig] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ListConfig":
        minecraft = data.get("minecraft")
        if not isinstance(minecraft, dict):
            raise ConfigValidationError("清单文件缺少 [minecraft] 配置")

        version = minecraft.get("version")
        # 兼容 version 写成列表的旧配置，只取第一个
        if isinstance(version, list):
            version = version[0] if version else None
        if not version:
            raise ConfigValidationError("请配置 Minecraft 版本")

        return cls(
            version=str(version),
            mod_loader=ModLoader.parse(minecraft.get("mod_loader", "fabric")),
            mods=[ModEntryConfig.from_value(mod) for mod in minecraft.get("mods", [])],
        )
