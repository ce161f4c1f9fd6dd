"""
防抖搜索

每次输入取消上一个计时任务，并用递增序号丢弃已过期查询的迟到结果。
"""

import asyncio
from typing import List, Optional

from loguru import logger

from modlist.exceptions import APIError
from modlist.models import SearchHit
from modlist.services.api_client import ModrinthClient


class SearchDebouncer:
    """防抖搜索器"""

    def __init__(self, client: ModrinthClient, delay: float = 0.3):
        self.client = client
        self.delay = delay
        self.results: List[SearchHit] = []
        self.query = ""
        self._sequence = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def sequence(self) -> int:
        return self._sequence

    def submit(self, query: str) -> Optional[asyncio.Task]:
        """
        提交新的查询

        空白查询直接清空结果，不发起请求。
        """
        self._sequence += 1
        if self._task and not self._task.done():
            self._task.cancel()
        self._task = None

        self.query = query.strip()
        if not self.query:
            self.results = []
            return None

        self._task = asyncio.create_task(
            self._run(self.query, self._sequence), name=f"search-{self._sequence}"
        )
        return self._task

    async def _run(self, query: str, sequence: int) -> Optional[List[SearchHit]]:
        await asyncio.sleep(self.delay)
        try:
            hits = await self.client.search(query)
        except APIError as e:
            logger.warning(f"搜索失败: {e}")
            return None

        if sequence != self._sequence:
            logger.debug(f"丢弃过期的搜索结果: {query}")
            return None

        self.results = hits
        return hits

    async def wait(self) -> List[SearchHit]:
        """等待当前查询完成并返回结果"""
        if self._task:
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        return self.results

    def cancel(self):
        self._sequence += 1
        if self._task and not self._task.done():
            self._task.cancel()
        self._task = None
