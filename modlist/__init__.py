"""
ModList - Minecraft 模组跨版本清单转换工具

解析目标版本与加载器下的可用构建，补全前置模组，导出或分享清单。
"""

from modlist.models import ListEntry, ListState
from modlist.orchestrator import ModListSession
from modlist.exceptions import ModListError

__version__ = "0.1.0"

__all__ = [
    "ListEntry",
    "ListState",
    "ModListSession",
    "ModListError",
    "__version__",
]
