"""图像处理相关常量定义。

目标格式枚举、MIME 映射和校验限制。
"""

from enum import Enum
from typing import Final


class TargetFormat(str, Enum):
    """支持的输出格式"""

    WEBP = "webp"
    AVIF = "avif"
    JPEG = "jpeg"
    PNG = "png"

    @property
    def pil_format(self) -> str:
        """Pillow 保存时使用的格式名"""
        return self.value.upper()


class ImageFormats:
    """格式名称、MIME 类型与扩展名映射"""

    # 用户友好的别名
    ALIASES: Final[dict[str, str]] = {
        "jpg": "jpeg",
    }

    # 可被接收的 MIME 前缀
    IMAGE_MIME_PREFIX: Final[str] = "image/"

    # 首选扩展名
    PREFERRED_EXTENSIONS: Final[dict[str, str]] = {
        "jpeg": ".jpg",
        "png": ".png",
        "webp": ".webp",
        "avif": ".avif",
        "tiff": ".tiff",
    }

    # Pillow 未提供的特殊 MIME 类型
    SPECIAL_MIME_TYPES: Final[dict[str, str]] = {
        "ico": "image/x-icon",
        "ppm": "image/x-portable-pixmap",
    }

    @classmethod
    def get_mime_type(cls, format_name: str) -> str:
        """获取格式对应的 MIME 类型"""
        fmt = get_format_alias(format_name)
        return cls.SPECIAL_MIME_TYPES.get(fmt, f"image/{fmt}")

    @classmethod
    def get_extension(cls, format_name: str) -> str:
        """获取格式的首选扩展名"""
        fmt = get_format_alias(format_name)
        return cls.PREFERRED_EXTENSIONS.get(fmt, f".{fmt}")


class QualityDefaults:
    """质量相关默认值"""

    MIN_QUALITY: Final[int] = 1
    MAX_QUALITY: Final[int] = 100


class ValidationLimits:
    """验证相关限制"""

    # 图像尺寸限制
    MAX_DIMENSION: Final[int] = 50000

    # 最大并发数
    MAX_CONCURRENCY: Final[int] = 64


def get_format_alias(format_str: str) -> str:
    """获取格式的标准名称（小写）"""
    fmt = format_str.strip().lower()
    return ImageFormats.ALIASES.get(fmt, fmt)


def parse_target_format(format_str: "str | TargetFormat") -> TargetFormat:
    """解析目标格式，未知格式抛出 ValueError"""
    if isinstance(format_str, TargetFormat):
        return format_str
    return TargetFormat(get_format_alias(format_str))


def get_mime_type(format_str: str) -> str:
    """获取格式的MIME类型"""
    return ImageFormats.get_mime_type(format_str)


def get_extension(format_str: str) -> str:
    """获取格式的首选扩展名"""
    return ImageFormats.get_extension(format_str)


def is_image_mime(mime_type: str | None) -> bool:
    """MIME 类型是否以图片前缀开头"""
    return bool(mime_type) and mime_type.lower().startswith(
        ImageFormats.IMAGE_MIME_PREFIX
    )
