"""
ModList 服务层

包含业务逻辑服务：API 客户端、并发执行、模组解析、依赖补全、版本匹配、搜索。
"""

from modlist.services.api_client import ModrinthClient
from modlist.services.cache import ResponseCache
from modlist.services.pool import run_pool
from modlist.services.mod_resolver import ModResolver
from modlist.services.dependency_resolver import DependencyResolver, ExpansionResult
from modlist.services.version_matcher import VersionMatcher
from modlist.services.search import SearchDebouncer

__all__ = [
    "ModrinthClient",
    "ResponseCache",
    "run_pool",
    "ModResolver",
    "DependencyResolver",
    "ExpansionResult",
    "VersionMatcher",
    "SearchDebouncer",
]
