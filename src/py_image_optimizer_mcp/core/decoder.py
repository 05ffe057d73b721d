"""图像解码适配器模块。

把原始字节解码为像素数据，失败统一以 DecodeError 报告。
"""

from dataclasses import dataclass
from io import BytesIO
from typing import Protocol

from PIL import Image, ImageOps

from ..exceptions import DecodeError, handle_codec_errors
from ..utils.logging_helpers import get_logger


logger = get_logger()


@dataclass(frozen=True)
class DecodedImage:
    """解码结果"""

    width: int
    height: int
    format: str
    pixels: Image.Image

    @property
    def dimensions(self) -> tuple[int, int]:
        return (self.width, self.height)


class ImageDecoder(Protocol):
    """解码器接口，可替换为其他实现"""

    def decode(self, data: bytes) -> DecodedImage:
        """解码原始字节

        Raises:
            DecodeError: 数据损坏或无法识别
        """
        ...


class PillowDecoder:
    """基于 Pillow 的默认解码器"""

    def __init__(self, apply_exif_orientation: bool = True):
        self.apply_exif_orientation = apply_exif_orientation

    @handle_codec_errors("图像解码", DecodeError)
    def decode(self, data: bytes) -> DecodedImage:
        if not data:
            raise DecodeError("图像数据为空")

        with Image.open(BytesIO(data)) as img:
            # 强制完整解码，截断的文件在这里暴露
            img.load()
            source_format = (img.format or "unknown").lower()
            if self.apply_exif_orientation:
                pixels = ImageOps.exif_transpose(img)
            else:
                pixels = img.copy()

        width, height = pixels.size
        logger.debug(f"解码完成: {source_format} {width}x{height}")
        return DecodedImage(
            width=width, height=height, format=source_format, pixels=pixels
        )
