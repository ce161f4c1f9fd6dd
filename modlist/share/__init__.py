"""
ModList 分享层

包含内容指纹、分享代码发放与存储后端。
"""

from modlist.share.codec import ShareCodec, ShareResult, fingerprint, compute_hash, generate_code
from modlist.share.store import (
    ShareStore,
    StoredPayload,
    MemoryShareStore,
    JsonFileShareStore,
    SqliteShareStore,
    create_store,
)

__all__ = [
    "ShareCodec",
    "ShareResult",
    "fingerprint",
    "compute_hash",
    "generate_code",
    "ShareStore",
    "StoredPayload",
    "MemoryShareStore",
    "JsonFileShareStore",
    "SqliteShareStore",
    "create_store",
]
