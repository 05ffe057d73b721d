"""图片优化处理引擎模块。

包含任务队列、流水线调度、设置构建、结果汇总和导出等处理逻辑。
"""

from .concurrent_executor import ConcurrentExecutor
from .config import SettingsBuilder
from .export import ResultExporter, export_results
from .pipeline import OptimizationPipeline
from .queue_manager import QueueManager
from .report import summarize


__all__ = [
    "ConcurrentExecutor",
    "OptimizationPipeline",
    "QueueManager",
    "ResultExporter",
    "SettingsBuilder",
    "export_results",
    "summarize",
]
