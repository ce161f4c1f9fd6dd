"""
主协调器

ModListSession 持有唯一的清单状态，整合解析、依赖补全与分享流程；
只有最近一次发起的解析可以把结果写回清单。
"""

from dataclasses import dataclass
from typing import Any, List, Optional

from loguru import logger

from modlist.models import (
    AppConfig,
    EntryStatus,
    ListEntry,
    ListState,
    SearchHit,
)
from modlist.services import (
    ModrinthClient,
    ModResolver,
    DependencyResolver,
    VersionMatcher,
)
from modlist.share import ShareCodec, ShareResult, ShareStore, create_store, fingerprint
from modlist.exceptions import APIError, DuplicateEntryError, ListError
from modlist.utils import (
    extract_share_code,
    is_modrinth_url,
    is_share_code,
    parse_modrinth_slug,
)


@dataclass
class ResolveReport:
    """一次解析的统计"""

    generation: int
    committed: bool
    resolvable: int = 0
    missing: int = 0
    dependencies_added: int = 0


class ModListSession:
    """清单会话"""

    def __init__(
        self,
        state: ListState,
        client: ModrinthClient,
        store: Optional[ShareStore] = None,
        max_concurrent: int = 10,
    ):
        self.state = state
        self.client = client
        self.store = store
        self.resolver = ModResolver(client, max_concurrent)
        self.dep_resolver = DependencyResolver(self.resolver)
        self.version_matcher = VersionMatcher(client)
        self.codec = ShareCodec(store) if store is not None else None

        self.share_code: Optional[str] = None
        self.share_hash: Optional[str] = None
        self._generation = 0

    @classmethod
    def from_config(cls, config: AppConfig, state: ListState) -> "ModListSession":
        """按应用设置构造客户端与存储"""
        return cls(
            state,
            ModrinthClient(config.registry),
            create_store(config.share),
            config.max_concurrent,
        )

    async def close(self):
        await self.client.close()
        if self.store is not None:
            await self.store.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # 解析

    def set_target(self, target_version: Optional[str] = None, loader: Optional[str] = None):
        if target_version:
            self.state.target_version = target_version
        if loader:
            self.state.loader = loader

    async def resolve(self) -> ResolveReport:
        """
        解析整个清单并补全必需依赖

        解析过程中若又发起了新的解析，本次结果将被丢弃。

        Raises:
            ListError: 清单为空
        """
        if not self.state.entries:
            raise ListError("目前没有要解析的清单项目")

        self._generation += 1
        generation = self._generation
        target_version = self.state.target_version
        loader = self.state.loader
        snapshot = list(self.state.entries)
        selected = set(self.state.selected)

        logger.info(
            f"开始解析 {len(snapshot)} 个项目: {target_version} ({loader})"
        )
        resolved = await self.resolver.resolve_many(snapshot, target_version, loader)
        expansion = await self.dep_resolver.expand(
            resolved, self.state.ids(), selected, target_version, loader
        )

        if generation != self._generation:
            logger.warning(f"解析 #{generation} 已被新的解析取代，结果不写回")
            return ResolveReport(generation=generation, committed=False)

        self._commit(resolved, expansion.entries, expansion.selected)

        report = ResolveReport(
            generation=generation,
            committed=True,
            resolvable=sum(1 for e in self.state.entries if e.status == EntryStatus.RESOLVABLE),
            missing=sum(1 for e in self.state.entries if e.status == EntryStatus.MISSING),
            dependencies_added=len(expansion),
        )
        if report.dependencies_added:
            logger.success(
                f"完成解析，{target_version}（{loader}），"
                f"已加入 {report.dependencies_added} 个前置模组"
            )
        else:
            logger.success(f"完成解析，{target_version}（{loader}）")
        return report

    def _commit(self, resolved: List[ListEntry], dependencies: List[ListEntry], select: set):
        """
        把解析结果合并回清单

        解析期间被移除的条目不再加回，新加入的条目保持原样；
        只写回解析得到的字段，期间的暂停、备注等编辑不会被覆盖。
        """
        by_id = {entry.id: entry for entry in resolved}
        merged = [
            self._merge_result(entry, by_id.get(entry.id)).evolve(downloaded=False)
            for entry in self.state.entries
        ]
        present = {entry.id for entry in merged}
        merged.extend(
            entry.evolve(downloaded=False) for entry in dependencies if entry.id not in present
        )
        self.state.replace_entries(merged, select=select)

    @staticmethod
    def _merge_result(current: ListEntry, result: Optional[ListEntry]) -> ListEntry:
        # 暂停或自订条目没有解析结果可写回
        if result is None or result.paused or result.is_custom:
            return current
        if current.paused or current.is_custom:
            return current
        return current.evolve(
            status=result.status,
            target_version=result.target_version,
            current_version=result.current_version,
            title=result.title,
            icon_url=result.icon_url,
            filename=result.filename,
            last_supported_version=result.last_supported_version,
            dependencies=result.dependencies,
        )

    # 清单编辑

    async def add_mod(self, value: str) -> ListEntry:
        """
        以项目网址或 ID 加入模组，并预取标题与当前版本

        Raises:
            ListError: 输入为空
            DuplicateEntryError: 已在清单中
        """
        slug = parse_modrinth_slug(value)
        if not slug:
            raise ListError("请先输入 Modrinth 专案网址或 ID")
        if slug in self.state:
            raise DuplicateEntryError(f"此模组已在清单中: {slug}", context={"id": slug})

        entry = ListEntry.pending(
            slug, self.state.target_version, title=slug[:1].upper() + slug[1:]
        )
        try:
            project = await self.client.get_project(slug)
        except APIError as e:
            logger.debug(f"获取 '{slug}' 项目信息失败: {e}")
            project = None
        if project is not None:
            entry = entry.evolve(
                title=project.title or entry.title,
                icon_url=project.icon_url,
                current_version=project.current_version or entry.current_version,
            )

        self.state.add(entry)
        logger.info(f"已加入 {entry.title}，等待解析")
        return entry

    def add_search_hit(self, hit: SearchHit) -> ListEntry:
        if hit.slug in self.state:
            raise DuplicateEntryError(f"此模组已在清单中: {hit.slug}", context={"id": hit.slug})
        entry = ListEntry.pending(
            hit.slug, self.state.target_version, title=hit.title, icon_url=hit.icon_url
        )
        self.state.add(entry)
        logger.info(f"已加入 {hit.title}，等待解析")
        return entry

    def add_custom(self, title: str = "Custom mod", url: str = "", note: str = "") -> ListEntry:
        entry = ListEntry.custom(title=title, custom_url=url, note=note)
        self.state.add(entry)
        return entry

    def remove(self, entry_id: str) -> ListEntry:
        return self.state.remove(entry_id)

    def toggle_pause(self, entry_id: str) -> ListEntry:
        return self.state.update(entry_id, lambda entry: entry.with_paused(not entry.paused))

    def toggle_selection(self, entry_id: str) -> bool:
        return self.state.toggle_selected(entry_id)

    def set_note(self, entry_id: str, note: str) -> ListEntry:
        return self.state.update(entry_id, lambda entry: entry.evolve(note=note))

    def set_custom_title(self, entry_id: str, title: str) -> ListEntry:
        return self.state.update(entry_id, lambda entry: entry.evolve(title=title))

    def set_custom_url(self, entry_id: str, url: str) -> ListEntry:
        return self.state.update(entry_id, lambda entry: entry.evolve(custom_url=url))

    def import_items(self, data: Any) -> int:
        """
        导入 JSON 清单（条目数组或 {items: [...]}）

        目标版本与加载器沿用当前设置。
        """
        imported = ListState.from_dict(
            data, self.state.target_version, self.state.loader
        )
        self.state.selected = set()
        self.state.replace_entries(imported.entries, select=imported.selected)
        logger.info(f"已汇入 {len(imported)} 笔清单")
        return len(imported)

    # 导出

    def export(self) -> List[str]:
        """已勾选条目的文件名列表"""
        names = self.state.export_filenames()
        if not names:
            logger.warning("目前没有已勾选的模组")
        return names

    async def download_url(self, entry_id: str) -> str:
        """
        获取条目主构建文件的下载地址，并标记为已下载

        Raises:
            ListError: 条目暂停、缺失版本或注册表没有返回文件
        """
        entry = self.state.require(entry_id)
        if entry.paused:
            raise ListError(f"无法下载 {entry.title}：此模组已暂停，请先恢复")
        if entry.status != EntryStatus.RESOLVABLE:
            raise ListError(f"无法下载 {entry.title}：{entry.status.value} 状态的模组无法下载")

        versions = await self.client.get_versions(
            entry.id, self.state.target_version, self.state.loader
        )
        file = versions[0].primary_file() if versions else None
        if file is None or not file.url:
            raise ListError(f"下载 {entry.title} 失败：找不到档案连结")

        self.state.update(entry_id, lambda item: item.evolve(downloaded=True))
        return file.url

    # 分享

    def _require_codec(self) -> ShareCodec:
        if self.codec is None:
            raise ListError("未配置分享代码存储")
        return self.codec

    async def share(self) -> ShareResult:
        """
        为当前清单发放分享代码

        内容未变化时直接返回现有代码；失败时保留之前的代码。
        """
        codec = self._require_codec()
        if not self.state.entries:
            raise ListError("目前没有可生成代码的清单")

        current_hash = fingerprint(self.state)
        if self.share_code and self.share_hash == current_hash:
            logger.info(f"无异动，保持现有分享代码 {self.share_code}")
            return ShareResult(code=self.share_code, updated=False)

        result = await codec.issue(self.state, self.share_code)
        self.share_code = result.code
        self.share_hash = current_hash
        return result

    async def load_code(self, code: str) -> ListState:
        """按分享代码载入清单，替换当前状态"""
        codec = self._require_codec()
        state = await codec.lookup(code)
        # 进行中的解析属于旧清单
        self._generation += 1
        self.state = state
        self.share_code = code.strip().upper()
        self.share_hash = fingerprint(state)
        logger.info(f"已载入代码清单，共 {len(state)} 笔")
        return state

    async def handle_input(self, value: str) -> Any:
        """
        处理统一输入框：分享链接、Modrinth 网址或分享代码

        Raises:
            ListError: 无法识别的输入
        """
        trimmed = value.strip()
        if not trimmed:
            raise ListError("输入为空")

        code = extract_share_code(trimmed)
        if code and is_share_code(code):
            return await self.load_code(code)
        if is_modrinth_url(trimmed):
            return await self.add_mod(trimmed)
        if is_share_code(trimmed):
            return await self.load_code(trimmed)
        raise ListError("请从搜索结果点选模组，或输入分享代码/连结")

    async def search(self, query: str) -> List[SearchHit]:
        return await self.client.search(query)
