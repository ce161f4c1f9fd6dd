"""
CLI 模块

命令行接口实现。
"""

import asyncio
from typing import Optional

import click
from loguru import logger

from modlist.models import AppConfig, ListState, ModLoader
from modlist.orchestrator import ModListSession
from modlist.services import ModrinthClient, VersionMatcher
from modlist.share import ShareCodec, create_store
from modlist.exceptions import ModListError
from modlist.logger import setup_logger
from modlist.utils import (
    export_filename,
    extract_share_code,
    list_state_from_config,
    load_config,
    share_link,
    write_json,
)


async def load_settings(settings_path: Optional[str]) -> AppConfig:
    """加载应用设置，未指定时使用默认值"""
    if not settings_path:
        return AppConfig()
    return AppConfig.from_dict(await load_config(settings_path) or {})


async def load_list(list_path: str) -> ListState:
    return list_state_from_config(await load_config(list_path))


def print_state(state: ListState):
    """打印清单"""
    click.echo(f"目标版本: {state.target_version}  加载器: {state.loader}")
    for entry in state.entries:
        mark = "x" if state.is_selected(entry.id) else " "
        detail = entry.filename or ""
        if entry.last_supported_version:
            detail = f"最后支持 {entry.last_supported_version}"
        dep = " (前置)" if entry.is_dependency else ""
        click.echo(
            f"  [{mark}] {entry.title}{dep} <{entry.id}> {entry.status.value} {detail}".rstrip()
        )
    stats = state.stats()
    click.echo(
        f"可更新 {stats.success} / 缺失 {stats.warning} / 启用 {state.active_count} / 共 {len(state)}"
    )


def run(coro):
    """运行协程，把 ModListError 转为 click 异常"""
    try:
        return asyncio.run(coro)
    except ModListError as e:
        logger.error(f"执行失败: {e}")
        raise click.ClickException(str(e))


@click.group()
@click.option("--settings", type=click.Path(exists=True), help="设置文件 (toml/json/yaml)")
@click.option("--debug", is_flag=True, help="启用调试模式")
@click.version_option(version="0.1.0")
@click.pass_context
def main(ctx: click.Context, settings: Optional[str], debug: bool):
    """ModList - Minecraft 模组跨版本清单转换工具"""
    setup_logger(level="DEBUG" if debug else None)
    ctx.obj = {"settings": settings}


async def resolve_async(
    settings_path: Optional[str],
    list_path: str,
    output: Optional[str],
    state_output: Optional[str],
    version: Optional[str],
    loader: Optional[str],
    share: bool,
):
    config = await load_settings(settings_path)
    state = await load_list(list_path)

    async with ModListSession.from_config(config, state) as session:
        session.set_target(version, ModLoader.parse(loader).value if loader else None)
        await session.resolve()
        print_state(session.state)

        filenames = session.export()
        target = output or export_filename(session.state)
        await write_json(target, filenames)
        logger.success(f"已导出 {len(filenames)} 个已勾选模组: {target}")

        if state_output:
            await write_json(state_output, session.state.to_dict())
            logger.info(f"清单状态已保存: {state_output}")

        if share:
            result = await session.share()
            click.echo(share_link(config.share.base_url, result.code))


@main.command()
@click.argument("list_file", type=click.Path(exists=True), default="mods.toml")
@click.option("-o", "--output", help="导出文件路径")
@click.option("--state", "state_output", help="保存解析后的完整清单 (JSON)")
@click.option("--version", "target_version", help="覆盖目标 Minecraft 版本")
@click.option("--loader", help="覆盖模组加载器")
@click.option("--share", is_flag=True, help="解析后建立分享代码")
@click.pass_context
def resolve(ctx, list_file, output, state_output, target_version, loader, share):
    """解析清单、补全前置模组并导出文件名列表"""
    run(
        resolve_async(
            ctx.obj["settings"], list_file, output, state_output, target_version, loader, share
        )
    )


async def search_async(settings_path: Optional[str], query: str, limit: Optional[int]):
    config = await load_settings(settings_path)
    async with ModrinthClient(config.registry) as client:
        hits = await client.search(query, limit)
    if not hits:
        click.echo("没有搜索结果")
    for hit in hits:
        click.echo(f"{hit.slug}\t{hit.title}")


@main.command()
@click.argument("query")
@click.option("--limit", type=int, help="结果数量")
@click.pass_context
def search(ctx, query, limit):
    """搜索 Modrinth 项目"""
    run(search_async(ctx.obj["settings"], query, limit))


async def versions_async(settings_path: Optional[str]):
    config = await load_settings(settings_path)
    async with ModrinthClient(config.registry) as client:
        matcher = VersionMatcher(client)
        versions = await matcher.get_available_versions()
        loaders = await matcher.get_available_loaders()
    click.echo("游戏版本: " + ", ".join(versions))
    click.echo("加载器: " + ", ".join(loaders))


@main.command()
@click.pass_context
def versions(ctx):
    """列出可选的游戏版本与加载器"""
    run(versions_async(ctx.obj["settings"]))


async def share_async(settings_path: Optional[str], list_path: str, code: Optional[str]):
    config = await load_settings(settings_path)
    state = await load_list(list_path)
    async with create_store(config.share) as store:
        result = await ShareCodec(store).issue(state, code)
    action = "已更新" if result.updated else "已建立"
    logger.success(f"{action}分享代码 {result.code}")
    click.echo(share_link(config.share.base_url, result.code))


@main.command()
@click.argument("list_file", type=click.Path(exists=True))
@click.option("--code", help="覆盖已有的分享代码")
@click.pass_context
def share(ctx, list_file, code):
    """为清单建立或更新分享代码"""
    run(share_async(ctx.obj["settings"], list_file, code))


async def load_async(settings_path: Optional[str], code: str, output: Optional[str]):
    config = await load_settings(settings_path)
    code = extract_share_code(code) or code
    async with create_store(config.share) as store:
        state = await ShareCodec(store).lookup(code)
    print_state(state)
    if output:
        await write_json(output, state.to_dict())
        logger.success(f"清单已保存: {output}")


@main.command()
@click.argument("code")
@click.option("-o", "--output", help="保存清单 (JSON)，可再交给 resolve 使用")
@click.pass_context
def load(ctx, code, output):
    """按分享代码或分享链接载入清单"""
    run(load_async(ctx.obj["settings"], code, output))


async def prune_async(settings_path: Optional[str], days: Optional[int]):
    config = await load_settings(settings_path)
    async with create_store(config.share) as store:
        count = await ShareCodec(store).prune(days or config.share.retention_days)
    click.echo(f"已删除 {count} 个过期分享代码")


@main.command()
@click.option("--days", type=int, help="保留天数，默认取设置中的 retention_days")
@click.pass_context
def prune(ctx, days):
    """删除过期的分享代码"""
    run(prune_async(ctx.obj["settings"], days))


if __name__ == "__main__":
    main()
