"""图片优化器接口。

基于优化流水线的简洁用户接口，提供提交、配置、运行和查询功能。
"""

import threading
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any

from .config import get_config
from .core.codecs import CodecRegistry, create_default_registry
from .core.decoder import ImageDecoder, PillowDecoder
from .engine.config import SettingsBuilder
from .engine.export import ResultExporter
from .engine.pipeline import OptimizationPipeline
from .engine.queue_manager import FileItem, QueueManager
from .exceptions import ConfigError, PipelineBusyError
from .models import Job, JobEvent, OptimizationSettings, QueueState, RunSummary
from .utils.logging_helpers import get_logger


logger = get_logger()


class ImageOptimizer:
    """图片优化器。

    持有队列、当前设置和流水线，对外提供与界面无关的操作接口。
    解码器和编码器可以替换，便于接入其他编解码实现。
    """

    def __init__(
        self,
        settings: OptimizationSettings | None = None,
        registry: CodecRegistry | None = None,
        decoder: ImageDecoder | None = None,
        max_file_size: int | None = None,
    ):
        """初始化优化器。

        Args:
            settings: 初始设置，None 时使用全局默认值
            registry: 编码器注册表，None 时使用 Pillow 默认编码器
            decoder: 解码器，None 时使用 PillowDecoder
            max_file_size: 单个文件最大字节数
        """
        self.settings_builder = SettingsBuilder()
        self.queue = QueueManager(max_file_size=max_file_size)
        self.registry = registry or create_default_registry()
        self.pipeline = OptimizationPipeline(
            queue=self.queue,
            registry=self.registry,
            decoder=decoder or PillowDecoder(),
            settings_builder=self.settings_builder,
        )
        self._settings = self.settings_builder.validate(
            settings or OptimizationSettings()
        )

        logger.debug("初始化图片优化器")

    @property
    def settings(self) -> OptimizationSettings:
        """当前设置"""
        return self._settings

    # ------------------------------------------------------------------
    # 提交
    # ------------------------------------------------------------------

    def submit(self, files: Iterable[FileItem]) -> QueueState:
        """提交文件到队列

        Args:
            files: ImageFile 或 (name, mime_type, byte_length, data) 元组

        Returns:
            QueueState: 队列快照，含本次被拒绝的文件
        """
        return self.queue.enqueue(files)

    # ------------------------------------------------------------------
    # 配置
    # ------------------------------------------------------------------

    def configure(
        self, settings: OptimizationSettings | None = None, **fields: Any
    ) -> OptimizationSettings:
        """更新设置

        只影响之后开始的运行，进行中的运行继续使用启动时的设置。

        Args:
            settings: 完整的设置对象（可选）
            **fields: 要覆盖的字段，如 quality=60, target_format="jpeg"

        Returns:
            OptimizationSettings: 生效后的设置

        Raises:
            ConfigError: 参数验证失败
        """
        unknown = sorted(set(fields) - set(OptimizationSettings.model_fields))
        if unknown:
            raise ConfigError(f"未知的设置项: {', '.join(unknown)}")

        base = settings or self._settings
        self._settings = self.settings_builder.build(base, **fields)
        logger.info(
            f"设置已更新: 质量={self._settings.quality}%, "
            f"格式={self._settings.target_format.value.upper()}, "
            f"尺寸上限={self._settings.max_width}x{self._settings.max_height}"
        )
        return self._settings

    # ------------------------------------------------------------------
    # 运行
    # ------------------------------------------------------------------

    def run(
        self,
        concurrency: int | None = None,
        cancel_event: threading.Event | None = None,
    ) -> Iterator[JobEvent]:
        """开始一次运行，返回状态变化事件流

        Raises:
            ConfigError: 设置或并发数不合法
            UnsupportedFormatError: 目标格式没有可用的编码器
        """
        if concurrency is None:
            concurrency = get_config().processing.CONCURRENCY
        return self.pipeline.run(self._settings, concurrency, cancel_event)

    def optimize(
        self,
        concurrency: int | None = None,
        cancel_event: threading.Event | None = None,
    ) -> RunSummary:
        """运行并等待完成，返回本次运行的汇总"""
        for _event in self.run(concurrency, cancel_event):
            pass
        return self.get_summary()

    def cancel(self) -> None:
        """取消当前运行，未认领的任务保持 queued"""
        self.pipeline.cancel()

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    def get_summary(self) -> RunSummary:
        """最近一次运行的汇总"""
        return self.pipeline.get_summary()

    def get_queue(self) -> tuple[Job, ...]:
        """当前队列，按入队顺序排列"""
        return self.queue.snapshot()

    @property
    def is_running(self) -> bool:
        return self.pipeline.is_running

    # ------------------------------------------------------------------
    # 队列维护
    # ------------------------------------------------------------------

    def remove(self, index: int) -> Job:
        """移除指定位置的任务

        Raises:
            InvalidInputError: 位置越界
            JobInFlightError: 任务正在处理中
        """
        return self.queue.remove(index)

    def clear(self) -> int:
        """清除所有未在处理中的任务，返回清除数量"""
        return self.queue.clear()

    def reset(self) -> None:
        """清空队列并恢复默认设置

        Raises:
            PipelineBusyError: 运行进行中
        """
        if self.pipeline.is_running:
            raise PipelineBusyError("运行进行中，不能重置")

        self.queue.reset()
        self.pipeline.forget()
        self._settings = self.settings_builder.validate(OptimizationSettings())
        logger.info("优化器已重置，设置已恢复默认值")

    # ------------------------------------------------------------------
    # 导出
    # ------------------------------------------------------------------

    def export(self, output_dir: str | Path) -> list[Path]:
        """把最近一次运行中成功的结果写入输出目录

        是否保留原文件由该次运行使用的设置决定。
        """
        run_settings = self.pipeline.last_settings or self._settings
        jobs = [job for job in self.pipeline.last_run if self.queue.contains(job)]
        return ResultExporter().export(jobs, output_dir, run_settings.keep_original)
