"""
清单状态模型

保存目标版本、加载器、条目序列与勾选集合，并提供派生视图。
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from modlist.exceptions import DuplicateEntryError, EntryNotFoundError
from modlist.models.entry import ListEntry, StatusTone


@dataclass
class ListStats:
    """按色调统计的条目数量（不含暂停条目）"""

    success: int = 0
    warning: int = 0
    danger: int = 0


@dataclass
class ListState:
    """模组清单状态"""

    target_version: str
    loader: str
    entries: List[ListEntry] = field(default_factory=list)
    selected: Set[str] = field(default_factory=set)

    def __post_init__(self):
        self._prune_selection()

    def _prune_selection(self):
        self.selected = set(self.selected) & self.ids()

    def ids(self) -> Set[str]:
        return {entry.id for entry in self.entries}

    def __contains__(self, entry_id: str) -> bool:
        return any(entry.id == entry_id for entry in self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def get(self, entry_id: str) -> Optional[ListEntry]:
        for entry in self.entries:
            if entry.id == entry_id:
                return entry
        return None

    def require(self, entry_id: str) -> ListEntry:
        entry = self.get(entry_id)
        if entry is None:
            raise EntryNotFoundError(
                f"清单中不存在: {entry_id}", context={"id": entry_id}
            )
        return entry

    def is_selected(self, entry_id: str) -> bool:
        return entry_id in self.selected

    def add(self, entry: ListEntry, selected: bool = False, prepend: bool = True):
        """
        加入新条目

        Args:
            entry: 新条目
            selected: 是否同时勾选
            prepend: 新条目默认放在清单最前面

        Raises:
            DuplicateEntryError: ID 已存在
        """
        if entry.id in self:
            raise DuplicateEntryError(
                f"此模组已在清单中: {entry.id}", context={"id": entry.id}
            )
        if prepend:
            self.entries.insert(0, entry)
        else:
            self.entries.append(entry)
        if selected:
            self.selected.add(entry.id)

    def remove(self, entry_id: str) -> ListEntry:
        entry = self.require(entry_id)
        self.entries = [item for item in self.entries if item.id != entry_id]
        self.selected.discard(entry_id)
        return entry

    def update(self, entry_id: str, change: Callable[[ListEntry], ListEntry]) -> ListEntry:
        """用 change 的返回值替换指定条目"""
        entry = self.require(entry_id)
        updated = change(entry)
        self.entries = [updated if item.id == entry_id else item for item in self.entries]
        return updated

    def replace_entries(self, entries: Iterable[ListEntry], select: Iterable[str] = ()):
        """替换全部条目，勾选集合同步裁剪到现存 ID"""
        self.entries = list(entries)
        self.selected |= set(select)
        self._prune_selection()

    def set_selected(self, entry_id: str, selected: bool):
        self.require(entry_id)
        if selected:
            self.selected.add(entry_id)
        else:
            self.selected.discard(entry_id)

    def toggle_selected(self, entry_id: str) -> bool:
        selected = not self.is_selected(entry_id)
        self.set_selected(entry_id, selected)
        return selected

    # 派生视图

    def stats(self) -> ListStats:
        result = ListStats()
        for entry in self.entries:
            if entry.paused:
                continue
            if entry.status_tone == StatusTone.SUCCESS:
                result.success += 1
            elif entry.status_tone == StatusTone.WARNING:
                result.warning += 1
            elif entry.status_tone == StatusTone.DANGER:
                result.danger += 1
        return result

    @property
    def resolved_count(self) -> int:
        return sum(1 for entry in self.entries if entry.is_resolved)

    @property
    def active_count(self) -> int:
        return sum(1 for entry in self.entries if not entry.paused)

    def visible_entries(self, active_only: bool = False) -> List[ListEntry]:
        if active_only:
            return [entry for entry in self.entries if not entry.paused]
        return list(self.entries)

    def selected_entries(self) -> List[ListEntry]:
        return [entry for entry in self.entries if entry.id in self.selected]

    def export_filenames(self) -> List[str]:
        """导出已勾选条目的文件名列表，缺失版本用占位文字"""
        return [entry.export_name() for entry in self.selected_entries()]

    # 序列化

    def to_dict(self) -> Dict[str, Any]:
        return {
            "targetVersion": self.target_version,
            "loader": self.loader,
            "items": [entry.to_dict(entry.id in self.selected) for entry in self.entries],
        }

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        target_version: Optional[str] = None,
        loader: Optional[str] = None,
    ) -> "ListState":
        """
        从分享快照或 JSON 导入数据恢复清单

        data 可以是 {targetVersion, loader, items} 对象，也可以直接是条目数组。
        """
        if isinstance(data, list):
            data = {"items": data}

        version = data.get("targetVersion") or target_version
        loader_id = data.get("loader") or loader
        if not version or not loader_id:
            raise ValueError("清单数据缺少目标版本或加载器")

        entries = []
        selected = set()
        seen = set()
        for item in data.get("items") or []:
            entry = ListEntry.from_dict(item, version)
            if entry.id in seen:
                continue
            seen.add(entry.id)
            entries.append(entry)
            if item.get("isSelected"):
                selected.add(entry.id)

        return cls(
            target_version=version,
            loader=loader_id,
            entries=entries,
            selected=selected,
        )
