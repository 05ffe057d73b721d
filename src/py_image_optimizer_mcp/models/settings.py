"""优化设置模型。

定义一次运行中统一应用于所有任务的参数。
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..config import get_config
from .constants import (
    QualityDefaults,
    TargetFormat,
    ValidationLimits,
    parse_target_format,
)


def _default(name: str) -> Any:
    return getattr(get_config().optimization, name)


class OptimizationSettings(BaseModel):
    """优化设置

    对象本身不可变，运行开始时持有的实例即为快照。
    """

    # 默认值来自环境变量，同样需要校验
    model_config = ConfigDict(frozen=True, validate_default=True)

    quality: int = Field(
        default_factory=lambda: _default("QUALITY"),
        ge=QualityDefaults.MIN_QUALITY,
        le=QualityDefaults.MAX_QUALITY,
        description="压缩质量 1-100",
    )
    target_format: TargetFormat = Field(
        default_factory=lambda: _default("TARGET_FORMAT"), description="输出格式"
    )
    max_width: int = Field(
        default_factory=lambda: _default("MAX_WIDTH"),
        gt=0,
        le=ValidationLimits.MAX_DIMENSION,
        description="最大宽度",
    )
    max_height: int = Field(
        default_factory=lambda: _default("MAX_HEIGHT"),
        gt=0,
        le=ValidationLimits.MAX_DIMENSION,
        description="最大高度",
    )
    keep_original: bool = Field(
        default_factory=lambda: _default("KEEP_ORIGINAL"), description="保留原文件"
    )

    @field_validator("target_format", mode="before")
    @classmethod
    def normalize_target_format(cls, v: Any) -> Any:
        if isinstance(v, str):
            try:
                return parse_target_format(v)
            except ValueError:
                supported = ", ".join(f.value for f in TargetFormat)
                raise ValueError(f"不支持的格式: {v}，支持的格式: {supported}") from None
        return v

    def describe(self) -> dict[str, Any]:
        """以展示友好的形式导出设置"""
        return {
            "quality": self.quality,
            "format": self.target_format.value,
            "max_dimensions": f"{self.max_width}x{self.max_height}",
            "keep_original": self.keep_original,
        }
