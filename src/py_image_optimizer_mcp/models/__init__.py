"""数据模型包。

定义图片优化相关的数据结构和模型。
"""

from .constants import (
    ImageFormats,
    QualityDefaults,
    TargetFormat,
    ValidationLimits,
    get_extension,
    get_format_alias,
    get_mime_type,
    is_image_mime,
    parse_target_format,
)
from .image_file import ImageFile
from .job import (
    InvalidTransitionError,
    Job,
    JobEvent,
    JobState,
    QueueState,
    Rejection,
)
from .report import RunSummary
from .result import BaseResult, ErrorKind, JobResult, savings_percent
from .settings import OptimizationSettings


__all__ = [
    "BaseResult",
    "ErrorKind",
    "ImageFile",
    "ImageFormats",
    "InvalidTransitionError",
    "Job",
    "JobEvent",
    "JobResult",
    "JobState",
    "OptimizationSettings",
    "QualityDefaults",
    "QueueState",
    "Rejection",
    "RunSummary",
    "TargetFormat",
    "ValidationLimits",
    "get_extension",
    "get_format_alias",
    "get_mime_type",
    "is_image_mime",
    "parse_target_format",
    "savings_percent",
]
