"""
依赖补全服务

在一次解析完成后，收集清单中尚未存在的必需依赖，去重、解析后追加回清单，
并把父条目的勾选状态传递给新依赖。只展开一层。
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence, Set, Tuple

from loguru import logger

from modlist.models import ListEntry
from modlist.services.mod_resolver import ModResolver


@dataclass
class ExpansionResult:
    """依赖补全结果"""

    entries: List[ListEntry] = field(default_factory=list)
    selected: Set[str] = field(default_factory=set)

    def __len__(self) -> int:
        return len(self.entries)


class DependencyResolver:
    """依赖解析器"""

    def __init__(self, resolver: ModResolver):
        self.resolver = resolver

    def collect(
        self,
        resolved: Sequence[ListEntry],
        existing_ids: Iterable[str],
        selected: Set[str],
        target_version: str,
    ) -> Tuple[List[ListEntry], Set[str]]:
        """
        收集需要新增的依赖条目（未解析）

        Args:
            resolved: 本轮解析后的条目
            existing_ids: 清单中已存在的 ID
            selected: 当前勾选集合
            target_version: 目标版本

        Returns:
            (待解析的依赖条目, 需要勾选的依赖 ID)
        """
        known = set(existing_ids)
        known.update(entry.id for entry in resolved)

        pending: Dict[str, ListEntry] = {}
        should_select: Dict[str, bool] = {}

        for entry in resolved:
            parent_selected = entry.id in selected
            for dep in entry.dependencies:
                if dep.id in known:
                    continue
                if dep.id in pending:
                    should_select[dep.id] = should_select[dep.id] or parent_selected
                    continue
                pending[dep.id] = ListEntry.pending(
                    dep.id,
                    target_version,
                    title=dep.title,
                    icon_url=dep.icon_url,
                    is_dependency=True,
                )
                should_select[dep.id] = parent_selected

        return (
            list(pending.values()),
            {dep_id for dep_id, flag in should_select.items() if flag},
        )

    async def expand(
        self,
        resolved: Sequence[ListEntry],
        existing_ids: Iterable[str],
        selected: Set[str],
        target_version: str,
        loader_id: str,
    ) -> ExpansionResult:
        """
        收集并解析新依赖

        Returns:
            ExpansionResult，entries 已完成解析，按发现顺序排列
        """
        pending, to_select = self.collect(resolved, existing_ids, selected, target_version)
        if not pending:
            return ExpansionResult()

        logger.info(f"发现 {len(pending)} 个前置模组需要加入")
        entries = await self.resolver.resolve_many(pending, target_version, loader_id)
        for entry in entries:
            logger.debug(f"加入前置模组: {entry.title} (ID: {entry.id}, {entry.status.value})")

        return ExpansionResult(entries=entries, selected=to_select)
