"""消息格式化工具模块。

提供统一的错误消息、任务事件和运行摘要的格式化功能。
"""

from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from humanize import naturalsize


if TYPE_CHECKING:
    from ..models.job import Job, JobEvent
    from ..models.report import RunSummary
    from ..models.settings import OptimizationSettings


RULE = "═" * 39


class MessageFormatter:
    """统一的消息格式化器"""

    @staticmethod
    def file_not_found(file_path: str | Path) -> str:
        """文件不存在错误消息"""
        return f"文件不存在: {file_path}"

    @staticmethod
    def not_an_image(name: str, mime_type: str) -> str:
        """非图片文件错误消息"""
        return f"{name} 不是图片文件 (MIME: {mime_type or '未知'})"

    @staticmethod
    def operation_failed(
        operation: str, target: str | Path, error: Exception | None = None
    ) -> str:
        """操作失败消息"""
        msg = f"{operation}失败: {target}"
        if error:
            msg += f" - {error}"
        return msg

    @staticmethod
    def format_error(operation: str, target: str | Path, error: Exception) -> str:
        """格式化通用错误消息"""
        return f"{operation}失败 [{target}]: {error}"

    @staticmethod
    def file_size(size_bytes: int) -> str:
        """人类可读的文件大小"""
        return naturalsize(size_bytes, binary=True)


class EventFormatter:
    """把任务事件流渲染成终端风格的文本行

    只负责展示，不参与流水线的任何决策。
    """

    def __init__(self, jobs: Sequence["Job"]):
        self._positions = {job.job_id: i for i, job in enumerate(jobs, start=1)}
        self._total = len(jobs)

    def run_header(self, settings: "OptimizationSettings") -> list[str]:
        """运行开始时的标题行"""
        return [
            f"> {RULE}",
            "> 开始优化...",
            f"> 设置: 质量={settings.quality}%, "
            f"格式={settings.target_format.value.upper()}",
            f"> {RULE}",
        ]

    def format_event(self, event: "JobEvent") -> list[str]:
        """渲染单个事件，非关键状态变化返回空列表"""
        position = self._positions.get(event.job_id, 0)
        prefix = f"[{position}/{self._total}]"

        match event.to_state.value:
            case "decoding":
                return [f"> {prefix} 处理中: {event.file_name}"]
            case "succeeded" if event.result is not None:
                result = event.result
                width, height = result.output_dimensions or (0, 0)
                return [
                    f"  ├─ {prefix} 尺寸: {width}x{height}",
                    f"  ├─ 格式: {(result.source_format or '?').upper()} → "
                    f"{result.target_format.value.upper()}",
                    f"  ├─ 原始: {result.get_original_size_human()}",
                    f"  ├─ 优化后: {result.get_encoded_size_human()}",
                    f"  └─ ✓ 节省: {result.savings_percent:.1f}%",
                ]
            case "failed" if event.result is not None:
                return [f"  └─ ✗ {prefix} 失败: {event.result.error}"]
            case _:
                return []

    def run_footer(self, summary: "RunSummary") -> list[str]:
        """运行结束时的摘要行"""
        return [
            f"> {RULE}",
            "> ✓ 优化完成!",
            f"> 成功: {summary.succeeded}/{summary.total} 张图片",
            f"> 总共节省: {summary.savings_percent:.1f}% "
            f"({MessageFormatter.file_size(summary.get_total_size_saved())})",
            f"> {RULE}",
        ]
