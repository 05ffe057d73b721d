"""任务结果模型。

定义单个任务到达终态时产生的不可变结果。
"""

from enum import Enum

from humanize import naturalsize
from pydantic import BaseModel, ConfigDict, Field

from .constants import TargetFormat


class ErrorKind(str, Enum):
    """错误类别"""

    INVALID_INPUT = "InvalidInput"
    CONFIG_ERROR = "ConfigError"
    DECODE_ERROR = "DecodeError"
    ENCODE_ERROR = "EncodeError"
    UNSUPPORTED_FORMAT = "UnsupportedFormat"


def savings_percent(original_size: int, encoded_size: int) -> float:
    """节省比例 (1 - encoded/original) * 100，原始大小为 0 时为 0"""
    if original_size <= 0:
        return 0.0
    return (1 - encoded_size / original_size) * 100


class BaseResult(BaseModel):
    """结果基类，包含通用字段和方法"""

    success: bool = Field(description="是否成功")
    error: str | None = Field(None, description="错误信息")

    @staticmethod
    def format_size(size_bytes: int) -> str:
        """格式化文件大小为人类可读格式"""
        return naturalsize(size_bytes, binary=True)


class JobResult(BaseResult):
    """单个任务的结果，创建后不可变"""

    model_config = ConfigDict(frozen=True)

    file_name: str = Field(description="文件名")
    original_size: int = Field(ge=0, description="原始大小（字节）")
    encoded_size: int = Field(0, ge=0, description="编码后大小（字节）")
    savings_percent: float = Field(0.0, description="节省比例（百分比）")

    # 格式信息
    source_format: str | None = Field(None, description="源格式")
    target_format: TargetFormat = Field(description="目标格式")
    quality_used: int | None = Field(None, description="使用的质量值")

    # 尺寸信息
    was_resized: bool = Field(False, description="是否调整了尺寸")
    source_dimensions: tuple[int, int] | None = Field(None, description="原始尺寸")
    output_dimensions: tuple[int, int] | None = Field(None, description="输出尺寸")

    # 失败信息
    error_kind: ErrorKind | None = Field(None, description="错误类别")

    # 编码结果，不参与序列化
    data: bytes | None = Field(None, repr=False, exclude=True)

    @classmethod
    def succeeded(
        cls,
        file_name: str,
        original_size: int,
        data: bytes,
        target_format: TargetFormat,
        quality: int,
        source_format: str | None,
        source_dimensions: tuple[int, int],
        output_dimensions: tuple[int, int],
    ) -> "JobResult":
        """构建成功结果，节省比例在此处一次性计算"""
        encoded_size = len(data)
        return cls(
            success=True,
            file_name=file_name,
            original_size=original_size,
            encoded_size=encoded_size,
            savings_percent=savings_percent(original_size, encoded_size),
            source_format=source_format,
            target_format=target_format,
            quality_used=quality,
            was_resized=source_dimensions != output_dimensions,
            source_dimensions=source_dimensions,
            output_dimensions=output_dimensions,
            data=data,
        )

    @classmethod
    def failed(
        cls,
        file_name: str,
        original_size: int,
        target_format: TargetFormat,
        error_kind: ErrorKind,
        error: str,
        source_format: str | None = None,
        source_dimensions: tuple[int, int] | None = None,
    ) -> "JobResult":
        """构建失败结果"""
        return cls(
            success=False,
            error=error,
            error_kind=error_kind,
            file_name=file_name,
            original_size=original_size,
            target_format=target_format,
            source_format=source_format,
            source_dimensions=source_dimensions,
        )

    def get_size_saved(self) -> int:
        """节省的字节数，编码后变大时为负数"""
        if not self.success:
            return 0
        return self.original_size - self.encoded_size

    def get_original_size_human(self) -> str:
        """人类可读的原始文件大小"""
        return self.format_size(self.original_size)

    def get_encoded_size_human(self) -> str:
        """人类可读的编码后文件大小"""
        return self.format_size(self.encoded_size)

    def get_summary(self) -> str:
        """结果摘要"""
        if not self.success:
            kind = self.error_kind.value if self.error_kind else "Error"
            return f"失败 [{kind}]: {self.error}"

        return (
            f"{self.get_original_size_human()} → {self.get_encoded_size_human()} "
            f"({self.savings_percent:.1f}% 节省)"
        )
