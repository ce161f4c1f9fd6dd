"""
API 数据模型

定义 Modrinth API 相关的数据类，包括项目信息、版本信息、搜索结果等。
所有 from_modrinth 方法对缺失字段回退到文档约定的默认值。
"""

from dataclasses import dataclass, field
from typing import Optional, List, Dict


@dataclass
class ProjectInfo:
    """
    模组项目信息。
    """

    id: str
    slug: str
    title: str
    description: str = ""
    project_type: str = "mod"
    icon_url: Optional[str] = None
    game_versions: List[str] = field(default_factory=list)
    versions: List[str] = field(default_factory=list)

    @property
    def current_version(self) -> Optional[str]:
        """项目声明支持的第一个游戏版本"""
        return self.game_versions[0] if self.game_versions else None

    @classmethod
    def from_modrinth(cls, data: dict) -> "ProjectInfo":
        """
        将 Modrinth API 返回的项目信息转换为 ProjectInfo 对象。
        """
        project_id = data.get("id") or data.get("slug") or ""
        return cls(
            id=project_id,
            slug=data.get("slug") or project_id,
            title=data.get("title") or project_id,
            description=data.get("description") or "",
            project_type=data.get("project_type") or "mod",
            icon_url=data.get("icon_url"),
            game_versions=list(data.get("game_versions") or []),
            versions=list(data.get("versions") or []),
        )


@dataclass
class FileInfo:
    """文件信息"""

    url: str
    filename: str
    primary: bool = False
    size: int = 0
    hashes: Optional[Dict[str, str]] = None


@dataclass
class DependencyInfo:
    """依赖信息"""

    project_id: str
    dependency_type: str  # required, optional, incompatible, embedded

    @property
    def is_required(self) -> bool:
        return self.dependency_type == "required" and bool(self.project_id)


@dataclass
class VersionInfo:
    """
    模组版本信息。
    """

    id: str
    name: str
    version: str
    loaders: List[str]
    game_versions: List[str]
    files: List[FileInfo]
    dependencies: List[DependencyInfo]
    date_published: str = ""

    def primary_file(self) -> Optional[FileInfo]:
        """获取主文件，没有标记 primary 时返回第一个文件"""
        if not self.files:
            return None

        for file in self.files:
            if file.primary:
                return file

        return self.files[0]

    def required_dependency_ids(self) -> List[str]:
        """获取去重后的必需依赖项目 ID，保持声明顺序"""
        seen = []
        for dep in self.dependencies:
            if dep.is_required and dep.project_id not in seen:
                seen.append(dep.project_id)
        return seen

    @classmethod
    def from_modrinth(cls, data: dict) -> "VersionInfo":
        """
        将 Modrinth API 返回的版本信息转换为 VersionInfo 对象。
        """
        files = [
            FileInfo(
                url=file.get("url", ""),
                filename=file.get("filename", ""),
                primary=bool(file.get("primary", False)),
                size=file.get("size", 0) or 0,
                hashes=file.get("hashes"),
            )
            for file in data.get("files") or []
        ]

        # project_id 为空的依赖（只指定了 version_id）无法加入清单
        dependencies = [
            DependencyInfo(
                project_id=dep.get("project_id") or "",
                dependency_type=dep.get("dependency_type") or "required",
            )
            for dep in data.get("dependencies") or []
        ]

        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            version=data.get("version_number", ""),
            files=files,
            loaders=list(data.get("loaders") or []),
            game_versions=list(data.get("game_versions") or []),
            dependencies=dependencies,
            date_published=data.get("date_published") or "",
        )


@dataclass
class SearchHit:
    """搜索结果条目"""

    project_id: str
    title: str
    slug: str
    icon_url: Optional[str] = None

    @classmethod
    def from_modrinth(cls, data: dict) -> "SearchHit":
        slug = data.get("slug") or data.get("project_id", "")
        return cls(
            project_id=data.get("project_id", ""),
            title=data.get("title") or slug,
            slug=slug,
            icon_url=data.get("icon_url"),
        )


@dataclass
class GameVersionTag:
    """游戏版本标签"""

    version: str
    date: str = ""
    version_type: str = "release"


@dataclass
class LoaderTag:
    """加载器标签"""

    loader: str
    supported_project_types: List[str] = field(default_factory=list)
