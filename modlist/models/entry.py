"""
清单条目模型

ListEntry 是不可变使用的数据类：解析流程总是返回新的实例，
调用方负责把结果合并回清单。
"""

import random
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional


NO_VERSION = "-"
UNKNOWN_VERSION = "unknown"
SOURCE_MODRINTH = "Modrinth"
SOURCE_CUSTOM = "custom"


class EntryStatus(Enum):
    """条目解析状态"""

    PENDING = "pending"
    RESOLVABLE = "resolvable"
    MISSING = "missing"
    PAUSED = "paused"
    CUSTOM = "custom"


class StatusTone(Enum):
    """状态的展示色调"""

    SUCCESS = "success"
    ACCENT = "accent"
    WARNING = "warning"
    DANGER = "danger"


_STATUS_TONES = {
    EntryStatus.PENDING: StatusTone.ACCENT,
    EntryStatus.RESOLVABLE: StatusTone.SUCCESS,
    EntryStatus.MISSING: StatusTone.WARNING,
    EntryStatus.PAUSED: StatusTone.ACCENT,
    EntryStatus.CUSTOM: StatusTone.ACCENT,
}


@dataclass(frozen=True)
class DependencyRef:
    """条目声明的必需依赖"""

    id: str
    title: str
    icon_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "title": self.title, "iconUrl": self.icon_url}


def normalize_dependencies(value: Any) -> List[DependencyRef]:
    """
    规范化导入数据中的依赖列表

    旧格式是字符串数组，新格式是 {id, title} 对象数组；无法识别的条目被丢弃。
    """
    if not isinstance(value, list):
        return []

    result = []
    for item in value:
        if isinstance(item, str):
            result.append(DependencyRef(id=item, title=item))
        elif isinstance(item, dict) and isinstance(item.get("id"), str):
            result.append(
                DependencyRef(
                    id=item["id"],
                    title=item.get("title") or item["id"],
                    icon_url=item.get("iconUrl"),
                )
            )
    return result


def generate_local_id() -> str:
    """生成自定义条目的本地 ID"""
    return f"custom-{int(time.time() * 1000)}-{random.randint(0, 9999)}"


@dataclass(frozen=True)
class ListEntry:
    """
    清单中的一个模组或自定义条目
    """

    id: str
    title: str
    source: str = SOURCE_MODRINTH
    current_version: str = UNKNOWN_VERSION
    target_version: str = NO_VERSION
    status: EntryStatus = EntryStatus.PENDING
    paused: bool = False
    last_supported_version: Optional[str] = None
    filename: Optional[str] = None
    icon_url: Optional[str] = None
    dependencies: List[DependencyRef] = field(default_factory=list)
    is_dependency: bool = False
    note: str = ""
    is_custom: bool = False
    custom_url: str = ""
    downloaded: bool = False

    @property
    def status_tone(self) -> StatusTone:
        return _STATUS_TONES[self.status]

    @property
    def is_resolved(self) -> bool:
        """已完成解析（不含待解析和暂停）"""
        return not self.paused and self.status not in (
            EntryStatus.PENDING,
            EntryStatus.PAUSED,
        )

    def export_name(self) -> str:
        """导出清单中代表该条目的字符串"""
        return self.filename or f"{self.title}(version missing)"

    def evolve(self, **changes) -> "ListEntry":
        return replace(self, **changes)

    def with_paused(self, paused: bool) -> "ListEntry":
        """暂停时状态强制为 paused，恢复后回到待解析"""
        return replace(
            self,
            paused=paused,
            status=EntryStatus.PAUSED if paused else EntryStatus.PENDING,
        )

    @classmethod
    def pending(
        cls,
        mod_id: str,
        target_version: str,
        title: Optional[str] = None,
        icon_url: Optional[str] = None,
        current_version: str = UNKNOWN_VERSION,
        is_dependency: bool = False,
    ) -> "ListEntry":
        return cls(
            id=mod_id,
            title=title or mod_id,
            current_version=current_version,
            target_version=target_version,
            icon_url=icon_url,
            is_dependency=is_dependency,
        )

    @classmethod
    def custom(
        cls,
        title: str = "Custom mod",
        custom_url: str = "",
        note: str = "",
        entry_id: Optional[str] = None,
    ) -> "ListEntry":
        return cls(
            id=entry_id or generate_local_id(),
            title=title,
            source=SOURCE_CUSTOM,
            current_version=NO_VERSION,
            target_version=NO_VERSION,
            status=EntryStatus.CUSTOM,
            note=note,
            is_custom=True,
            custom_url=custom_url,
        )

    def to_dict(self, selected: bool = False) -> Dict[str, Any]:
        """转换为与分享代码、JSON 导出兼容的字典"""
        return {
            "id": self.id,
            "title": self.title,
            "source": self.source,
            "currentVersion": self.current_version,
            "targetVersion": self.target_version,
            "status": self.status.value,
            "statusTone": self.status_tone.value,
            "paused": self.paused,
            "lastSupportedVersion": self.last_supported_version,
            "filename": self.filename,
            "iconUrl": self.icon_url,
            "dependencies": [dep.to_dict() for dep in self.dependencies],
            "isDependency": self.is_dependency,
            "isSelected": selected,
            "note": self.note,
            "isCustom": self.is_custom,
            "customUrl": self.custom_url,
            "downloaded": self.downloaded,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], target_version: str = NO_VERSION) -> "ListEntry":
        """
        从导入数据创建条目

        缺失字段回退为待解析状态的默认值；未知状态按待解析处理。
        """
        entry_id = data.get("id")
        if not isinstance(entry_id, str) or not entry_id:
            raise ValueError(f"清单条目缺少 id: {data!r}")

        try:
            status = EntryStatus(data.get("status", EntryStatus.PENDING.value))
        except ValueError:
            status = EntryStatus.PENDING

        is_custom = bool(data.get("isCustom"))
        paused = bool(data.get("paused", False))
        if paused:
            status = EntryStatus.PAUSED
        elif is_custom:
            status = EntryStatus.CUSTOM

        note = data.get("note")
        custom_url = data.get("customUrl")
        return cls(
            id=entry_id,
            title=data.get("title") or entry_id,
            source=data.get("source") or (SOURCE_CUSTOM if is_custom else SOURCE_MODRINTH),
            current_version=data.get("currentVersion") or UNKNOWN_VERSION,
            target_version=data.get("targetVersion") or target_version,
            status=status,
            paused=paused,
            last_supported_version=data.get("lastSupportedVersion"),
            filename=data.get("filename"),
            icon_url=data.get("iconUrl"),
            dependencies=normalize_dependencies(data.get("dependencies")),
            is_dependency=bool(data.get("isDependency", False)),
            note=note if isinstance(note, str) else "",
            is_custom=is_custom,
            custom_url=custom_url if isinstance(custom_url, str) else "",
            downloaded=bool(data.get("downloaded", False)),
        )
