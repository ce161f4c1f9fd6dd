"""
ModList 统一异常体系

提供分层的异常结构，支持错误代码、上下文信息和 JSON 序列化。
"""

from typing import Any, Dict, Optional
import aiohttp


class ModListError(Exception):
    """ModList 基础异常类"""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self._get_default_code()
        self.context = context or {}

    def _get_default_code(self) -> str:
        """获取默认错误代码"""
        return "E000"

    def to_dict(self) -> Dict[str, Any]:
        """将异常转换为字典格式"""
        return {
            "error": True,
            "code": self.code,
            "message": self.message,
            "context": self.context,
            "type": self.__class__.__name__,
        }

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message


class ConfigError(ModListError):
    """配置相关错误"""

    def _get_default_code(self) -> str:
        return "E100"


class ConfigParseError(ConfigError):
    """配置解析错误"""

    def _get_default_code(self) -> str:
        return "E101"


class ConfigValidationError(ConfigError):
    """配置验证错误"""

    def _get_default_code(self) -> str:
        return "E102"


class APIError(ModListError):
    """API 相关错误"""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        response: Optional[aiohttp.ClientResponse] = None,
    ):
        super().__init__(message, code, context)
        self.response = response
        if response:
            self.context["status_code"] = response.status
            self.context["url"] = str(response.url)

    def _get_default_code(self) -> str:
        return "E200"


class APIRateLimitError(APIError):
    """API 速率限制"""

    def _get_default_code(self) -> str:
        return "E429"


class APIServerError(APIError):
    """API 服务器错误"""

    def _get_default_code(self) -> str:
        return "E500"


class ShareError(ModListError):
    """分享代码相关错误"""

    def _get_default_code(self) -> str:
        return "E600"


class ShareValidationError(ShareError):
    """分享内容缺少必要字段"""

    def _get_default_code(self) -> str:
        return "E601"


class ShareCodeNotFoundError(ShareError):
    """找不到对应的分享代码"""

    def _get_default_code(self) -> str:
        return "E604"


class ShareCodeGenerationError(ShareError):
    """分享代码生成失败（碰撞重试耗尽）"""

    def _get_default_code(self) -> str:
        return "E605"


class StoreError(ShareError):
    """持久化存储读写错误"""

    def _get_default_code(self) -> str:
        return "E610"


class ListError(ModListError):
    """清单操作错误"""

    def _get_default_code(self) -> str:
        return "E700"


class DuplicateEntryError(ListError):
    """模组已在清单中"""

    def _get_default_code(self) -> str:
        return "E701"


class EntryNotFoundError(ListError):
    """清单中不存在该项目"""

    def _get_default_code(self) -> str:
        return "E704"


__all__ = [
    # 基础异常
    "ModListError",
    # 配置异常
    "ConfigError",
    "ConfigParseError",
    "ConfigValidationError",
    # API 异常
    "APIError",
    "APIRateLimitError",
    "APIServerError",
    # 分享异常
    "ShareError",
    "ShareValidationError",
    "ShareCodeNotFoundError",
    "ShareCodeGenerationError",
    "StoreError",
    # 清单异常
    "ListError",
    "DuplicateEntryError",
    "EntryNotFoundError",
]
