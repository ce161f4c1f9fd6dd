"""
有界并发执行器

多个 worker 共享一个任务队列，逐个领取条目处理，输出顺序与输入一致。
"""

import asyncio
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple, TypeVar

from loguru import logger

T = TypeVar("T")
R = TypeVar("R")


async def run_pool(
    items: Sequence[T],
    limit: int,
    worker: Callable[[T], Awaitable[R]],
    name: str = "pool",
) -> List[R]:
    """
    以最多 limit 个并发执行 worker

    Args:
        items: 输入条目
        limit: 并发上限
        worker: 处理单个条目的协程函数
        name: 任务名前缀，便于调试

    Returns:
        与 items 顺序一致的结果列表

    Raises:
        任一 worker 抛出的异常；此时其余 worker 会被取消
    """
    if limit <= 0:
        raise ValueError("并发上限必须为正整数")
    if not items:
        return []

    queue: "asyncio.Queue[Tuple[int, T]]" = asyncio.Queue()
    for index, item in enumerate(items):
        queue.put_nowait((index, item))

    results: List[Optional[R]] = [None] * len(items)

    async def _runner():
        while True:
            try:
                index, item = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            results[index] = await worker(item)

    runners = [
        asyncio.create_task(_runner(), name=f"{name}-{i}")
        for i in range(min(limit, len(items)))
    ]
    logger.debug(f"[{name}] {len(items)} 个任务，{len(runners)} 个并发")

    try:
        await asyncio.gather(*runners)
    except BaseException:
        for runner in runners:
            runner.cancel()
        await asyncio.gather(*runners, return_exceptions=True)
        raise

    return results  # type: ignore[return-value]
