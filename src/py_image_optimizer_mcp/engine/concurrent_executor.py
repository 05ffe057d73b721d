"""并发执行器模块。

固定宽度的线程池，每个工作线程循环执行同一个任务函数，
产出的事件通过队列按发生顺序交给调用方。
"""

import queue
from collections.abc import Callable, Iterator
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Generic, TypeVar

from ..utils.logging_helpers import get_logger


logger = get_logger()
T = TypeVar("T")

_WORKER_DONE = object()


class ConcurrentExecutor(Generic[T]):
    """有界工作线程池

    width 为 1 时退化为严格串行。
    """

    def __init__(self, width: int = 1, thread_name_prefix: str = "optimizer"):
        """初始化并发执行器

        Args:
            width: 工作线程数量
            thread_name_prefix: 线程名前缀
        """
        if width < 1:
            raise ValueError(f"工作线程数量必须大于 0，当前值: {width}")
        self.width = width
        self.thread_name_prefix = thread_name_prefix

    def stream(self, worker: Callable[[Callable[[T], None]], None]) -> Iterator[T]:
        """启动工作线程并逐个产出它们发送的事件

        每个工作线程收到一个 emit 函数；所有线程结束后迭代结束。
        迭代被提前关闭时会等待已启动的线程结束。工作线程中的未预期异常
        在全部线程结束后重新抛出。

        Args:
            worker: 工作函数，参数为 emit

        Yields:
            T: 工作线程发送的事件
        """
        events: queue.SimpleQueue[object] = queue.SimpleQueue()
        futures: list[Future[None]] = []

        with ThreadPoolExecutor(
            max_workers=self.width, thread_name_prefix=self.thread_name_prefix
        ) as executor:
            # 提交任务阶段
            for _ in range(self.width):
                future = executor.submit(worker, events.put)
                future.add_done_callback(lambda _f: events.put(_WORKER_DONE))
                futures.append(future)

            # 收集事件阶段
            remaining = len(futures)
            while remaining:
                item = events.get()
                if item is _WORKER_DONE:
                    remaining -= 1
                    continue
                yield item  # type: ignore[misc]

        for future in futures:
            error = future.exception()
            if error is not None:
                logger.error(f"工作线程异常退出: {error}")
                raise error
