import asyncio
from typing import Dict, List, Optional, Tuple

import pytest

from modlist.exceptions import APIError
from modlist.models import ProjectInfo, SearchHit, VersionInfo


def make_version(
    version_id: str,
    game_versions: List[str],
    loaders: Optional[List[str]] = None,
    filename: Optional[str] = None,
    dependencies: Optional[List[Tuple[str, str]]] = None,
    date_published: str = "",
    primary: bool = True,
) -> VersionInfo:
    """构造 Modrinth 版本记录"""
    files = []
    if filename:
        files.append(
            {
                "url": f"https://cdn.modrinth.com/data/{version_id}/{filename}",
                "filename": filename,
                "primary": primary,
                "size": 1024,
            }
        )
    return VersionInfo.from_modrinth(
        {
            "id": version_id,
            "name": version_id,
            "version_number": version_id,
            "game_versions": game_versions,
            "loaders": loaders or ["fabric"],
            "date_published": date_published,
            "files": files,
            "dependencies": [
                {"project_id": dep_id, "dependency_type": dep_type}
                for dep_id, dep_type in dependencies or []
            ],
        }
    )


def make_project(project_id: str, title: str, game_versions: Optional[List[str]] = None) -> ProjectInfo:
    return ProjectInfo.from_modrinth(
        {
            "id": project_id,
            "slug": project_id,
            "title": title,
            "icon_url": f"https://cdn.modrinth.com/{project_id}.png",
            "game_versions": game_versions or [],
        }
    )


class FakeClient:
    """
    注册表客户端替身

    versions 的键为 (project_id, game_version, loader)，未过滤查询使用 (project_id, None, None)。
    """

    def __init__(
        self,
        projects: Optional[Dict[str, ProjectInfo]] = None,
        versions: Optional[Dict[tuple, List[VersionInfo]]] = None,
        failing: Optional[set] = None,
    ):
        self.projects = projects or {}
        self.versions = versions or {}
        self.failing = failing or set()
        self.calls: List[tuple] = []
        self.gate: Optional[asyncio.Event] = None
        self.hits: List[SearchHit] = []

    async def get_project(self, idx: str) -> Optional[ProjectInfo]:
        self.calls.append(("project", idx))
        if ("project", idx) in self.failing:
            raise APIError("connection reset")
        return self.projects.get(idx)

    async def get_versions(
        self,
        idx: str,
        game_version: Optional[str] = None,
        loader: Optional[str] = None,
    ) -> List[VersionInfo]:
        self.calls.append(("versions", idx, game_version, loader))
        gate = self.gate
        if gate is not None:
            await gate.wait()
        if ("versions", idx, game_version, loader) in self.failing:
            raise APIError("connection reset")
        return list(self.versions.get((idx, game_version, loader), []))

    async def search(self, query: str, limit: Optional[int] = None) -> List[SearchHit]:
        self.calls.append(("search", query))
        return list(self.hits)

    async def close(self):
        pass

    def count(self, kind: str) -> int:
        return sum(1 for call in self.calls if call[0] == kind)


@pytest.fixture
def registry() -> FakeClient:
    """sodium 需要 fabric-api；oldmod 只支持 1.16.5"""
    return FakeClient(
        projects={
            "sodium": make_project("sodium", "Sodium", ["1.21.1"]),
            "fabric-api": make_project("fabric-api", "Fabric API", ["1.21.1"]),
            "lithium": make_project("lithium", "Lithium", ["1.21.1"]),
            "oldmod": make_project("oldmod", "OldMod", ["1.16.5"]),
        },
        versions={
            ("sodium", "1.20.1", "fabric"): [
                make_version(
                    "sodium-0.5",
                    ["1.20.1"],
                    filename="sodium-0.5.jar",
                    dependencies=[("fabric-api", "required"), ("iris", "optional")],
                )
            ],
            ("lithium", "1.20.1", "fabric"): [
                make_version(
                    "lithium-0.11",
                    ["1.20.1"],
                    filename="lithium-0.11.jar",
                    dependencies=[("fabric-api", "required")],
                )
            ],
            ("fabric-api", "1.20.1", "fabric"): [
                make_version("fabric-api-0.92", ["1.20.1"], filename="fabric-api-0.92.jar")
            ],
            ("oldmod", "1.21.1", "fabric"): [],
            ("oldmod", None, None): [
                make_version("old-1", ["1.12.2"], date_published="2019-01-01T00:00:00Z"),
                make_version("old-3", ["1.16.5"], date_published="2021-03-01T00:00:00Z"),
                make_version("old-2", ["1.14.4"], date_published="2020-01-01T00:00:00Z"),
            ],
        },
    )
