"""图片批量优化库。

基于 Pillow 的批量图片重编码流水线，支持尺寸限制、质量和格式转换，
并提供确定的、可验证的压缩结果统计。
"""

__version__ = "0.1.0"
__author__ = "crper"
__description__ = "批量图片优化流水线，基于 Pillow"

# 核心功能导出
from .exceptions import (
    ConfigError,
    DecodeError,
    EncodeError,
    InvalidInputError,
    JobInFlightError,
    OptimizerError,
    PipelineBusyError,
    UnsupportedFormatError,
)
from .models import (
    ImageFile,
    Job,
    JobEvent,
    JobResult,
    JobState,
    OptimizationSettings,
    QueueState,
    RunSummary,
    TargetFormat,
)
from .optimizer import ImageOptimizer


__all__ = [
    "ConfigError",
    "DecodeError",
    "EncodeError",
    "ImageFile",
    "ImageOptimizer",
    "InvalidInputError",
    "Job",
    "JobEvent",
    "JobInFlightError",
    "JobResult",
    "JobState",
    "OptimizationSettings",
    "OptimizerError",
    "PipelineBusyError",
    "QueueState",
    "RunSummary",
    "TargetFormat",
    "UnsupportedFormatError",
    "get_version",
]


def get_version() -> str:
    """获取版本号。"""
    return __version__
