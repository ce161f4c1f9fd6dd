"""
分享代码编解码

计算清单快照的内容指纹，发放 / 复用 / 覆盖分享代码，并按代码读回清单。
"""

import hashlib
import json
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, Optional

from loguru import logger

from modlist.exceptions import (
    ShareCodeGenerationError,
    ShareCodeNotFoundError,
    ShareValidationError,
)
from modlist.models import ListState
from modlist.share.store import ShareStore, StoredPayload


CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
CODE_LENGTH = 8
MAX_ATTEMPTS = 100


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


def project_item(item: Dict[str, Any]) -> Dict[str, Any]:
    """指纹投影：只包含稳定字段，字段顺序固定"""
    note = item.get("note")
    custom_url = item.get("customUrl")
    return {
        "id": item.get("id"),
        "title": item.get("title"),
        "isDependency": bool(item.get("isDependency", False)),
        "isSelected": bool(item.get("isSelected", False)),
        "note": note if isinstance(note, str) else "",
        "isCustom": bool(item.get("isCustom", False)),
        "customUrl": custom_url if isinstance(custom_url, str) else "",
    }


def compute_hash(target_version: str, loader: str, items: Iterable[Dict[str, Any]]) -> str:
    """计算内容指纹 (SHA-256 十六进制)"""
    normalized = json.dumps(
        {
            "targetVersion": target_version,
            "loader": loader,
            "items": [project_item(item) for item in items],
        },
        ensure_ascii=False,
        separators=(",", ":"),
    )
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def fingerprint(state: ListState) -> str:
    """计算清单状态的内容指纹"""
    payload = state.to_dict()
    return compute_hash(payload["targetVersion"], payload["loader"], payload["items"])


def generate_code() -> str:
    """生成 8 位大写字母数字代码"""
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def validate_payload(payload: Dict[str, Any]):
    """写入前校验分享内容"""
    missing = [key for key in ("targetVersion", "loader") if not payload.get(key)]
    # 空数组合法，是否允许分享空清单由调用方决定
    if not isinstance(payload.get("items"), list):
        missing.append("items")
    if missing:
        raise ShareValidationError(
            "分享内容缺少必要字段", context={"missing": missing}
        )


@dataclass
class ShareResult:
    """发放结果"""

    code: str
    updated: bool = False


class ShareCodec:
    """分享代码服务"""

    def __init__(self, store: ShareStore, max_attempts: int = MAX_ATTEMPTS):
        self.store = store
        self.max_attempts = max_attempts

    async def issue(self, state: ListState, existing_code: Optional[str] = None) -> ShareResult:
        """
        为清单发放分享代码

        Args:
            state: 清单状态
            existing_code: 当前持有的分享代码（可选）

        Returns:
            ShareResult；内容被写入已存在的代码时 updated 为 True
        """
        return await self.issue_payload(state.to_dict(), existing_code)

    async def issue_payload(
        self, payload: Dict[str, Any], existing_code: Optional[str] = None
    ) -> ShareResult:
        """
        按原始负载发放分享代码

        Raises:
            ShareValidationError: 负载缺少 targetVersion / loader / items
            ShareCodeGenerationError: 新代码重试次数耗尽
        """
        validate_payload(payload)
        content_hash = compute_hash(payload["targetVersion"], payload["loader"], payload["items"])

        if existing_code:
            code = existing_code.strip().upper()
            existing = await self.store.get(code)
            if existing is not None:
                if existing.content_hash == content_hash:
                    logger.debug(f"分享代码 {code} 内容未改变")
                    return ShareResult(code=code, updated=False)
                await self.store.set(code, self._build_payload(payload, content_hash))
                logger.info(f"已覆盖分享代码 {code}")
                return ShareResult(code=code, updated=True)

        found = await self.store.find_by_content_hash(content_hash)
        if found:
            logger.debug(f"复用相同内容的分享代码 {found}")
            return ShareResult(code=found.upper(), updated=False)

        code = await self._unique_code()
        await self.store.set(code, self._build_payload(payload, content_hash))
        logger.info(f"已建立分享代码 {code}")
        return ShareResult(code=code, updated=False)

    async def _unique_code(self) -> str:
        for _ in range(self.max_attempts):
            code = generate_code()
            if await self.store.get(code) is None:
                return code
        raise ShareCodeGenerationError(
            "无法生成唯一的分享代码", context={"attempts": self.max_attempts}
        )

    @staticmethod
    def _build_payload(payload: Dict[str, Any], content_hash: str) -> StoredPayload:
        now = utc_now_iso()
        return StoredPayload(
            target_version=payload["targetVersion"],
            loader=payload["loader"],
            items=list(payload["items"]),
            content_hash=content_hash,
            saved_at=now,
            created_at=now,
        )

    async def lookup(self, code: str) -> ListState:
        """
        按代码读取清单

        Raises:
            ShareCodeNotFoundError: 代码不存在或快照为空
        """
        normalized = code.strip().upper()
        payload = await self.store.get(normalized)
        if payload is None:
            raise ShareCodeNotFoundError(
                f"找不到对应的清单代码: {normalized}", context={"code": normalized}
            )
        if not payload.items:
            raise ShareCodeNotFoundError(
                f"此代码没有可用的清单: {normalized}", context={"code": normalized}
            )
        return ListState.from_dict(payload.to_dict())

    async def prune(self, days: int = 90) -> int:
        """删除 days 天前建立的快照"""
        cutoff = (datetime.now(timezone.utc) - timedelta(days=days)).isoformat(
            timespec="milliseconds"
        )
        count = await self.store.delete_older_than(cutoff)
        logger.info(f"已清理 {count} 个过期分享代码")
        return count
