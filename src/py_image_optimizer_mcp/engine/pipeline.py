"""优化流水线模块。

对队列快照执行 解码 → 规划 → 编码 → 记录，支持有界并发和取消。
"""

import threading
from collections.abc import Callable, Iterator

from ..core.codecs import CodecRegistry
from ..core.compression_engine import process_job
from ..core.decoder import ImageDecoder
from ..core.planner import validate_bounds
from ..exceptions import PipelineBusyError
from ..models.job import Job, JobEvent
from ..models.report import RunSummary
from ..models.settings import OptimizationSettings
from ..utils.logging_helpers import get_logger
from .concurrent_executor import ConcurrentExecutor
from .config import SettingsBuilder
from .queue_manager import QueueManager
from .report import summarize


logger = get_logger()


class _JobClaimer:
    """按快照顺序认领任务，停止信号置位后不再认领"""

    def __init__(
        self,
        snapshot: tuple[Job, ...],
        queue: QueueManager,
        should_stop: Callable[[], bool],
    ):
        self._snapshot = snapshot
        self._queue = queue
        self._should_stop = should_stop
        self._next_index = 0
        self._lock = threading.Lock()

    def claim_next(self) -> tuple[Job, JobEvent] | None:
        with self._lock:
            while self._next_index < len(self._snapshot):
                if self._should_stop():
                    return None
                job = self._snapshot[self._next_index]
                self._next_index += 1
                # 运行期间被移除的任务直接跳过
                event = self._queue.claim(job)
                if event is not None:
                    return job, event
            return None


class OptimizationPipeline:
    """优化流水线

    每次运行处理开始时刚好处于 queued 状态的任务，运行期间新入队的任务
    留给下一次运行。
    """

    def __init__(
        self,
        queue: QueueManager,
        registry: CodecRegistry,
        decoder: ImageDecoder,
        settings_builder: SettingsBuilder | None = None,
    ):
        self.queue = queue
        self.registry = registry
        self.decoder = decoder
        self.settings_builder = settings_builder or SettingsBuilder()

        self._run_lock = threading.Lock()
        self._stop = threading.Event()
        self._last_run: tuple[Job, ...] = ()
        self._last_settings: OptimizationSettings | None = None

    @property
    def is_running(self) -> bool:
        return self._run_lock.locked()

    @property
    def last_run(self) -> tuple[Job, ...]:
        """最近一次运行的任务快照"""
        return self._last_run

    @property
    def last_settings(self) -> OptimizationSettings | None:
        """最近一次运行使用的设置"""
        return self._last_settings

    def run(
        self,
        settings: OptimizationSettings,
        concurrency: int = 1,
        cancel_event: threading.Event | None = None,
    ) -> Iterator[JobEvent]:
        """开始一次运行

        设置在调用时立即校验，任何任务开始前就拒绝不合法的配置。
        返回的迭代器是进度报告的唯一通道。

        Args:
            settings: 设置快照
            concurrency: 并发上限，1 为串行
            cancel_event: 外部取消信号（可选）

        Returns:
            Iterator[JobEvent]: 状态变化事件流

        Raises:
            ConfigError: 设置或并发数不合法
            UnsupportedFormatError: 目标格式没有可用的编码器
        """
        settings = self.settings_builder.validate(settings)
        validate_bounds(settings.max_width, settings.max_height)
        concurrency = self.settings_builder.validate_concurrency(concurrency)
        # 提前取得编码器，未注册的格式在此失败
        self.registry.get(settings.target_format)

        # 取消信号在返回事件流之前复位，首次迭代前的 cancel() 同样生效
        if not self.is_running:
            self._stop.clear()
        return self._execute(settings, concurrency, cancel_event)

    def cancel(self) -> None:
        """停止认领新任务，处理中的任务继续完成"""
        if self.is_running:
            logger.info("收到取消请求，停止认领新任务")
        self._stop.set()

    def get_summary(self) -> RunSummary:
        """最近一次运行中仍在队列里的任务的汇总"""
        return summarize(job for job in self._last_run if self.queue.contains(job))

    def forget(self) -> None:
        """丢弃最近一次运行的记录

        Raises:
            PipelineBusyError: 运行进行中
        """
        if self.is_running:
            raise PipelineBusyError("运行进行中，不能重置")
        self._last_run = ()
        self._last_settings = None

    def _execute(
        self,
        settings: OptimizationSettings,
        concurrency: int,
        cancel_event: threading.Event | None,
    ) -> Iterator[JobEvent]:
        if not self._run_lock.acquire(blocking=False):
            raise PipelineBusyError("已有运行在进行中")

        aborted = threading.Event()
        stream = None
        try:
            snapshot = self.queue.pending()
            self._last_run = snapshot
            self._last_settings = settings

            if not snapshot:
                logger.warning("队列中没有待处理的图片")
                return

            logger.info(
                f"开始优化 {len(snapshot)} 张图片: 质量={settings.quality}%, "
                f"格式={settings.target_format.value.upper()}, 并发={concurrency}"
            )

            def should_stop() -> bool:
                return self._stop.is_set() or aborted.is_set() or (
                    cancel_event is not None and cancel_event.is_set()
                )

            claimer = _JobClaimer(snapshot, self.queue, should_stop)

            def worker(emit: Callable[[JobEvent], None]) -> None:
                while (claimed := claimer.claim_next()) is not None:
                    job, event = claimed
                    emit(event)
                    process_job(job, settings, self.decoder, self.registry, emit)

            executor: ConcurrentExecutor[JobEvent] = ConcurrentExecutor(concurrency)
            stream = executor.stream(worker)
            for event in stream:
                yield event

            summary = summarize(snapshot)
            logger.info(f"优化完成: {summary.get_summary()}")
        finally:
            # 迭代被提前关闭时也要停止认领并等待处理中的任务
            aborted.set()
            if stream is not None:
                stream.close()
            self._run_lock.release()
