"""编码器注册表模块。

把目标格式映射到编码能力，是唯一真正进行压缩编码的地方。
"""

import threading
from io import BytesIO
from typing import Any, Protocol

from PIL import Image

from ..exceptions import EncodeError, UnsupportedFormatError, handle_codec_errors
from ..models.constants import TargetFormat, parse_target_format
from ..utils.logging_helpers import get_logger


logger = get_logger()


class Encoder(Protocol):
    """编码器接口

    对同一输入，质量越高输出不应越小。
    """

    format: TargetFormat

    def encode(self, img: Image.Image, quality: int) -> bytes:
        """把像素编码为目标格式的字节"""
        ...


class PillowEncoder:
    """基于 Pillow 的编码器基类"""

    format: TargetFormat

    def encode(self, img: Image.Image, quality: int) -> bytes:
        prepared = self.prepare(img)
        buffer = BytesIO()
        prepared.save(buffer, format=self.format.pil_format, **self.save_params(quality))
        return buffer.getvalue()

    def prepare(self, img: Image.Image) -> Image.Image:
        """为目标格式调整色彩模式"""
        return img

    def save_params(self, quality: int) -> dict[str, Any]:
        """质量到保存参数的映射"""
        return {}

    @staticmethod
    def _expand_palette(img: Image.Image) -> Image.Image:
        """调色板、灰度模式展开为 RGB/RGBA"""
        if img.mode == "P":
            # 调色板模式，检查是否有透明度
            if "transparency" in img.info:
                return img.convert("RGBA")
            return img.convert("RGB")
        if img.mode in ("LA", "PA"):
            return img.convert("RGBA")
        if img.mode not in ("RGB", "RGBA"):
            return img.convert("RGB")
        return img


class JpegEncoder(PillowEncoder):
    """JPEG 编码器"""

    format = TargetFormat.JPEG

    def __init__(self, background: tuple[int, int, int] = (255, 255, 255)):
        self.background = background

    def prepare(self, img: Image.Image) -> Image.Image:
        # JPEG不支持透明度，需要合成到背景色上
        if img.mode == "P":
            mode = "RGBA" if "transparency" in img.info else "RGB"
            img = img.convert(mode)
        if img.mode == "LA":
            img = img.convert("RGBA")

        if img.mode == "RGBA":
            rgb_img = Image.new("RGB", img.size, self.background)
            rgb_img.paste(img, mask=img.split()[-1])
            return rgb_img

        if img.mode != "RGB":
            # CMYK、灰度、二值等模式统一转换为RGB
            return img.convert("RGB")
        return img

    def save_params(self, quality: int) -> dict[str, Any]:
        # 色度子采样与质量挂钩，高质量保留更多色彩信息
        subsampling = 0 if quality >= 90 else 1 if quality >= 75 else 2
        return {
            "quality": quality,
            "optimize": True,
            "progressive": True,
            "subsampling": subsampling,
        }


class PngEncoder(PillowEncoder):
    """PNG 编码器，无损，忽略质量参数"""

    format = TargetFormat.PNG

    def prepare(self, img: Image.Image) -> Image.Image:
        if img.mode == "CMYK":
            return img.convert("RGB")
        if img.mode == "P" and "transparency" in img.info:
            return img.convert("RGBA")
        # 其他模式PNG都支持
        return img

    def save_params(self, quality: int) -> dict[str, Any]:
        return {"optimize": True, "compress_level": 9}


class WebpEncoder(PillowEncoder):
    """WebP 有损编码器"""

    format = TargetFormat.WEBP

    def prepare(self, img: Image.Image) -> Image.Image:
        return self._expand_palette(img)

    def save_params(self, quality: int) -> dict[str, Any]:
        # alpha_quality 随质量单调变化
        return {
            "quality": quality,
            "method": 6,
            "alpha_quality": quality,
        }


class AvifEncoder(PillowEncoder):
    """AVIF 编码器"""

    format = TargetFormat.AVIF

    def prepare(self, img: Image.Image) -> Image.Image:
        return self._expand_palette(img)

    def save_params(self, quality: int) -> dict[str, Any]:
        return {"quality": quality, "speed": 6, "subsampling": "4:2:0"}


class CodecRegistry:
    """目标格式到编码器的注册表"""

    def __init__(self) -> None:
        self._encoders: dict[TargetFormat, Encoder] = {}
        self._lock = threading.Lock()

    def register(self, encoder: Encoder) -> None:
        """注册编码器，同格式的旧编码器被替换"""
        with self._lock:
            self._encoders[encoder.format] = encoder
        logger.debug(f"注册编码器: {encoder.format.value}")

    def unregister(self, target_format: TargetFormat | str) -> None:
        fmt = self._resolve(target_format)
        with self._lock:
            self._encoders.pop(fmt, None)

    @property
    def formats(self) -> tuple[TargetFormat, ...]:
        """已注册的格式"""
        with self._lock:
            return tuple(self._encoders)

    def supports(self, target_format: TargetFormat | str) -> bool:
        try:
            self.get(target_format)
        except UnsupportedFormatError:
            return False
        return True

    def get(self, target_format: TargetFormat | str) -> Encoder:
        """获取编码器

        Raises:
            UnsupportedFormatError: 未知或未注册的格式
        """
        fmt = self._resolve(target_format)
        with self._lock:
            encoder = self._encoders.get(fmt)
        if encoder is None:
            raise UnsupportedFormatError(f"没有可用的 {fmt.value} 编码器")
        return encoder

    def encode(
        self, pixels: Image.Image, target_format: TargetFormat | str, quality: int
    ) -> bytes:
        """编码像素数据

        Raises:
            UnsupportedFormatError: 未知或未注册的格式
            EncodeError: 编码器拒绝参数或输入
        """
        encoder = self.get(target_format)
        return _run_encoder(encoder, pixels, quality)

    @staticmethod
    def _resolve(target_format: TargetFormat | str) -> TargetFormat:
        try:
            return parse_target_format(target_format)
        except ValueError:
            raise UnsupportedFormatError(f"不支持的格式: {target_format}") from None


@handle_codec_errors("图像编码", EncodeError)
def _run_encoder(encoder: Encoder, pixels: Image.Image, quality: int) -> bytes:
    data = encoder.encode(pixels, quality)
    if not data:
        raise EncodeError(f"{encoder.format.value} 编码器输出为空")
    return data


def _check_format_support(target_format: TargetFormat) -> bool:
    """检查当前 Pillow 是否能写出该格式"""
    Image.init()
    if target_format.pil_format not in Image.SAVE:
        return False
    try:
        # 尝试编码一个小图像以确认插件可用
        buffer = BytesIO()
        Image.new("RGB", (1, 1)).save(buffer, format=target_format.pil_format)
    except (OSError, ValueError, KeyError) as e:
        logger.debug(f"格式 {target_format.value} 不支持: {e}")
        return False
    return True


def create_default_registry() -> CodecRegistry:
    """创建包含 Pillow 编码器的默认注册表"""
    registry = CodecRegistry()
    for encoder in (JpegEncoder(), PngEncoder(), WebpEncoder(), AvifEncoder()):
        if _check_format_support(encoder.format):
            registry.register(encoder)
        else:
            logger.info(f"当前 Pillow 不支持写出 {encoder.format.value}，跳过注册")
    return registry
