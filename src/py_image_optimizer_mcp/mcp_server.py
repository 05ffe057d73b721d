"""图片批量优化 MCP 服务器。

在优化器接口之上提供队列、设置、运行和查询工具，并把事件流渲染成终端风格的输出。
"""

from pathlib import Path
from typing import Any

from fastmcp import FastMCP

from .exceptions import ConfigError, InvalidInputError, OptimizerError
from .models import Job, OptimizationSettings, RunSummary
from .optimizer import ImageOptimizer
from .utils.file_helpers import collect_image_files
from .utils.logging_helpers import get_logger, setup_logging
from .utils.message_formatter import EventFormatter, MessageFormatter


# MCP 服务器响应类型定义
MCPResponse = dict[str, Any]


class MCPResponseBuilder:
    """MCP 服务器响应构建器，专门用于构建符合 MCP 协议的响应格式。"""

    @staticmethod
    def error(
        message: str,
        error_type: str = "general",
        details: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """构建错误结果。

        Args:
            message: 错误消息
            error_type: 错误类型
            details: 额外的错误详情

        Returns:
            dict: 标准化的错误响应
        """
        result = {
            "success": False,
            "error": message,
            "error_type": error_type,
        }

        if details:
            result["details"] = details

        return result

    @staticmethod
    def validation_error(message: str, field: str | None = None) -> dict[str, Any]:
        """构建验证错误结果。"""
        details = {"field": field} if field else None
        return MCPResponseBuilder.error(
            message=message,
            error_type="validation",
            details=details,
        )

    @staticmethod
    def file_error(message: str, file_path: str | None = None) -> dict[str, Any]:
        """构建文件相关错误结果。"""
        details = {"file_path": file_path} if file_path else None
        return MCPResponseBuilder.error(
            message=message,
            error_type="file",
            details=details,
        )

    @staticmethod
    def processing_error(message: str, operation: str | None = None) -> dict[str, Any]:
        """构建处理错误结果。"""
        details = {"operation": operation} if operation else None
        return MCPResponseBuilder.error(
            message=message,
            error_type="processing",
            details=details,
        )

    @staticmethod
    def from_exception(error: OptimizerError, operation: str) -> dict[str, Any]:
        """按异常类型构建错误结果"""
        match error:
            case ConfigError():
                return MCPResponseBuilder.validation_error(error.message)
            case InvalidInputError():
                return MCPResponseBuilder.file_error(error.message, error.name)
            case _:
                return MCPResponseBuilder.processing_error(error.message, operation)


# ============================================================================
# 终端风格输出
# ============================================================================


HELP_LINES = [
    "> 可用命令:",
    "  - show_help: 显示帮助信息",
    "  - submit_images: 添加图片到队列",
    "  - show_queue: 查看队列中的文件",
    "  - remove_image: 从队列移除一张图片",
    "  - clear_queue: 清空队列",
    "  - configure_settings: 修改优化设置",
    "  - show_settings: 查看当前设置",
    "  - optimize_images: 开始优化",
    "  - get_run_summary: 查看最近一次运行的汇总",
    "  - reset_optimizer: 重置队列和设置",
]


def queue_lines(jobs: tuple[Job, ...]) -> list[str]:
    """队列列表的终端输出"""
    if not jobs:
        return ["> 队列为空"]

    lines = [f"> 队列中共 {len(jobs)} 个文件:"]
    for index, job in enumerate(jobs, start=1):
        lines.append(
            f"  {index}. {job.name} "
            f"({MessageFormatter.file_size(job.file.byte_length)}) [{job.state.value}]"
        )
    return lines


def settings_lines(settings: OptimizationSettings) -> list[str]:
    """当前设置的终端输出"""
    return [
        "> 当前设置:",
        f"  - 质量: {settings.quality}%",
        f"  - 格式: {settings.target_format.value.upper()}",
        f"  - 最大尺寸: {settings.max_width}x{settings.max_height}",
        f"  - 保留原文件: {'是' if settings.keep_original else '否'}",
    ]


def summary_payload(summary: RunSummary) -> dict[str, Any]:
    """运行汇总的响应数据"""
    return {
        "succeeded": summary.succeeded,
        "failed": summary.failed,
        "pending": summary.pending,
        "total": summary.total,
        "total_original_size": summary.total_original_size,
        "total_encoded_size": summary.total_encoded_size,
        "total_size_saved": summary.get_total_size_saved(),
        "savings_percent": round(summary.savings_percent, 2),
        "success_rate": round(summary.get_success_rate(), 2),
        "summary": summary.get_summary(),
    }


def job_payload(job: Job) -> dict[str, Any]:
    """单个任务的响应数据"""
    payload: dict[str, Any] = {
        "job_id": job.job_id,
        "name": job.name,
        "state": job.state.value,
        "size": job.file.byte_length,
    }
    if job.result is not None:
        payload.update(job.result.model_dump(mode="json", exclude={"file_name"}))
        payload["summary"] = job.result.get_summary()
    return payload


def run_with_transcript(
    optimizer: ImageOptimizer, concurrency: int | None = None
) -> tuple[list[str], RunSummary]:
    """执行一次运行并收集终端风格的输出

    Raises:
        OptimizerError: 设置不合法或已有运行在进行中
    """
    jobs = optimizer.queue.pending()
    events = optimizer.run(concurrency)
    formatter = EventFormatter(jobs)

    lines = formatter.run_header(optimizer.settings)
    for event in events:
        lines.extend(formatter.format_event(event))

    summary = optimizer.get_summary()
    lines.extend(formatter.run_footer(summary))
    return lines, summary


# 配置日志
setup_logging()
logger = get_logger(__name__)

# 创建MCP应用
mcp: FastMCP[Any] = FastMCP("图片批量优化服务")

# 全局优化器实例
optimizer = ImageOptimizer()


# ============================================================================
# 队列工具
# ============================================================================


@mcp.tool()
def submit_images(paths: list[str] | str, recursive: bool = True) -> MCPResponse:
    """添加图片到优化队列

    目录会按图片扩展名展开；非图片文件会被拒绝并在结果中列出。

    Args:
        paths: 文件或目录路径，可以是单个路径或路径列表
        recursive: 目录是否递归子目录

    Returns:
        dict: 被接受和被拒绝的文件以及当前队列长度
    """
    path_list = [paths] if isinstance(paths, str) else paths
    files, unreadable = collect_image_files(path_list, recursive=recursive)
    state = optimizer.submit(files)
    rejected = [*unreadable, *state.rejected]

    return {
        "success": bool(state.accepted),
        "accepted": [job.name for job in state.accepted],
        "rejected": [rejection.model_dump(mode="json") for rejection in rejected],
        "queue_length": len(state),
        "lines": queue_lines(state.jobs),
    }


@mcp.tool()
def show_queue() -> MCPResponse:
    """查看队列中的文件及其状态"""
    jobs = optimizer.get_queue()
    return {
        "success": True,
        "jobs": [job_payload(job) for job in jobs],
        "lines": queue_lines(jobs),
    }


@mcp.tool()
def remove_image(index: int) -> MCPResponse:
    """从队列移除一张图片

    Args:
        index: 队列位置，从 1 开始，与 show_queue 的编号一致
    """
    try:
        job = optimizer.remove(index - 1)
    except OptimizerError as e:
        return MCPResponseBuilder.from_exception(e, "移除图片")

    return {"success": True, "removed": job.name, "queue_length": len(optimizer.queue)}


@mcp.tool()
def clear_queue() -> MCPResponse:
    """清空队列，处理中的任务不受影响"""
    removed = optimizer.clear()
    return {"success": True, "removed": removed, "queue_length": len(optimizer.queue)}


# ============================================================================
# 设置工具
# ============================================================================


@mcp.tool()
def configure_settings(
    quality: int | None = None,
    target_format: str | None = None,
    max_width: int | None = None,
    max_height: int | None = None,
    keep_original: bool | None = None,
) -> MCPResponse:
    """修改优化设置，只影响之后开始的运行

    Args:
        quality: 压缩质量 1-100
        target_format: 输出格式 webp/avif/jpeg/png（jpg 等同 jpeg）
        max_width: 最大宽度（像素）
        max_height: 最大高度（像素）
        keep_original: 导出时是否保留原文件
    """
    try:
        settings = optimizer.configure(
            quality=quality,
            target_format=target_format,
            max_width=max_width,
            max_height=max_height,
            keep_original=keep_original,
        )
    except OptimizerError as e:
        return MCPResponseBuilder.from_exception(e, "修改设置")

    return {
        "success": True,
        "settings": settings.describe(),
        "lines": settings_lines(settings),
    }


@mcp.tool()
def show_settings() -> MCPResponse:
    """查看当前设置和可用的输出格式"""
    settings = optimizer.settings
    return {
        "success": True,
        "settings": settings.describe(),
        "available_formats": [fmt.value for fmt in optimizer.registry.formats],
        "lines": settings_lines(settings),
    }


# ============================================================================
# 运行工具
# ============================================================================


@mcp.tool()
def optimize_images(
    concurrency: int | None = None, output_dir: str | None = None
) -> MCPResponse:
    """优化队列中所有待处理的图片

    Args:
        concurrency: 并发数，默认使用配置值
        output_dir: 输出目录（可选），指定时把成功的结果写入该目录

    Returns:
        dict: 终端风格的处理输出、每个任务的结果和整体汇总
    """
    try:
        lines, summary = run_with_transcript(optimizer, concurrency)
    except OptimizerError as e:
        logger.error(f"优化失败: {e.message}")
        return MCPResponseBuilder.from_exception(e, "图片优化")

    response: MCPResponse = {
        "success": summary.failed == 0,
        "summary": summary_payload(summary),
        "results": [job_payload(job) for job in optimizer.pipeline.last_run],
        "lines": lines,
    }

    if output_dir:
        try:
            exported = optimizer.export(Path(output_dir))
        except OSError as e:
            logger.error(MessageFormatter.operation_failed("导出结果", output_dir, e))
            return MCPResponseBuilder.file_error(str(e), output_dir)
        response["exported"] = [str(path) for path in exported]

    return response


@mcp.tool()
def get_run_summary() -> MCPResponse:
    """查看最近一次运行的汇总"""
    return {"success": True, "summary": summary_payload(optimizer.get_summary())}


@mcp.tool()
def reset_optimizer() -> MCPResponse:
    """清空队列并恢复默认设置"""
    try:
        optimizer.reset()
    except OptimizerError as e:
        return MCPResponseBuilder.from_exception(e, "重置")

    return {"success": True, "lines": ["> 已重置队列和设置"]}


@mcp.tool()
def show_help() -> MCPResponse:
    """显示可用工具列表"""
    return {"success": True, "lines": HELP_LINES}


# ============================================================================
# 应用入口
# ============================================================================


def main() -> None:
    """启动 MCP 服务器"""
    logger.info("启动图片批量优化 MCP 服务器")
    mcp.run()


if __name__ == "__main__":
    main()
