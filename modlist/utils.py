import hashlib
import json
import re
from pathlib import Path
from typing import Any, Optional
from urllib.parse import parse_qs, quote, urlparse

import aiofiles
import toml
import yaml

from modlist.exceptions import ConfigParseError
from modlist.models import ListConfig, ListEntry, ListState


_MODRINTH_URL = re.compile(r"modrinth\.com/mod/([\w-]+)", re.IGNORECASE)
_SHARE_CODE = re.compile(r"^[A-Z0-9]{6,10}$")


def parse_modrinth_slug(value: str) -> str:
    """从 Modrinth 项目网址中提取 slug，不是网址时原样返回"""
    trimmed = value.strip()
    if not trimmed:
        return ""
    match = _MODRINTH_URL.search(trimmed)
    return match.group(1) if match else trimmed


def is_modrinth_url(value: str) -> bool:
    return bool(re.search(r"modrinth\.com/mod", value, re.IGNORECASE))


def is_share_code(value: str) -> bool:
    return bool(_SHARE_CODE.match(value.strip().upper()))


def extract_share_code(value: str) -> Optional[str]:
    """从分享链接的 s 或 code 参数中取出代码"""
    trimmed = value.strip()
    if not trimmed:
        return None
    parsed = urlparse(trimmed)
    if not parsed.scheme or not parsed.netloc:
        return None
    params = parse_qs(parsed.query)
    code = (params.get("s") or params.get("code") or [None])[0]
    return code.strip().upper() if code else None


def share_link(base_url: str, code: str) -> str:
    return f"{base_url.rstrip('/')}/?s={quote(code)}"


def parse_config_text(content: str, suffix: str) -> Any:
    """按文件后缀解析 TOML / JSON / YAML 文本"""
    try:
        if suffix == ".toml":
            return toml.loads(content)
        elif suffix == ".json":
            return json.loads(content)
        elif suffix in (".yaml", ".yml"):
            return yaml.safe_load(content)
    except (toml.TomlDecodeError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigParseError(f"配置文件解析失败: {e}", context={"format": suffix}) from e
    raise ConfigParseError(f"不支持的配置文件格式: {suffix}", context={"format": suffix})


async def load_config(config_path: str) -> Any:
    """读取并解析配置文件"""
    path = Path(config_path)
    if not path.exists():
        raise ConfigParseError(f"配置文件不存在: {config_path}")
    async with aiofiles.open(path, "r", encoding="utf-8") as f:
        content = await f.read()
    return parse_config_text(content, path.suffix.lower())


def custom_entry_id(title: str, url: str, position: int) -> str:
    """清单文件中未写 id 的自订条目：按标题、网址与位置生成稳定 ID"""
    digest = hashlib.sha1(f"{position}\n{title}\n{url}".encode("utf-8")).hexdigest()
    return f"custom-{digest[:12]}"


def list_state_from_config(data: Any) -> ListState:
    """
    将清单文件内容转换为清单状态

    支持 [minecraft] 格式的清单文件，以及导出的 JSON 清单
    （{targetVersion, loader, items} 或条目数组）。
    """
    if isinstance(data, dict) and "minecraft" in data:
        config = ListConfig.from_dict(data)
        state = ListState(target_version=config.version, loader=config.mod_loader.value)
        for position, mod in enumerate(config.mods):
            if mod.custom:
                title = mod.title or mod.id or "Custom mod"
                entry = ListEntry.custom(
                    title=title,
                    custom_url=mod.url,
                    note=mod.note,
                    entry_id=mod.id or custom_entry_id(title, mod.url, position),
                )
            else:
                entry = ListEntry.pending(mod.id, config.version, title=mod.title).evolve(
                    note=mod.note
                )
            if mod.paused:
                entry = entry.with_paused(True)
            if entry.id in state:
                continue
            state.add(entry, selected=mod.selected, prepend=False)
        return state

    try:
        return ListState.from_dict(data)
    except (ValueError, AttributeError, TypeError) as e:
        raise ConfigParseError(f"无法识别的清单格式: {e}") from e


async def write_json(path: str, data: Any):
    async with aiofiles.open(path, "w", encoding="utf-8") as f:
        await f.write(json.dumps(data, ensure_ascii=False, indent=2))


def export_filename(state: ListState) -> str:
    return f"modlist-{state.target_version}-{state.loader}.json"
