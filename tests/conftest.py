"""测试配置文件。

提供测试所需的fixtures和辅助函数，所有图片都在内存中生成。
"""

import os
import struct
import tempfile
import threading
import time
import zlib
from collections.abc import Callable
from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image, ImageDraw

from py_image_optimizer_mcp.config import reset_config
from py_image_optimizer_mcp.core.codecs import CodecRegistry, create_default_registry
from py_image_optimizer_mcp.core.decoder import DecodedImage, PillowDecoder
from py_image_optimizer_mcp.models import (
    ImageFile,
    Job,
    JobResult,
    JobState,
    OptimizationSettings,
    TargetFormat,
)
from py_image_optimizer_mcp.optimizer import ImageOptimizer


def make_image(size: tuple[int, int] = (64, 48), mode: str = "RGB") -> Image.Image:
    """创建带色块的测试图片"""
    img = Image.new(mode, size, color="white" if mode == "RGB" else (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)
    width, height = size
    for i in range(10):
        x, y = (i * width // 10), (i * height // 10)
        color = (i * 25 % 256, i * 70 % 256, i * 110 % 256)
        fill = color if mode == "RGB" else (*color, 100 + i * 15)
        draw.rectangle([x, y, x + width // 5, y + height // 5], fill=fill)
    return img


def make_noisy_image(size: tuple[int, int] = (96, 96)) -> Image.Image:
    """创建高熵的噪声图片，压缩大小对质量敏感"""
    return Image.merge("RGB", [Image.effect_noise(size, 60) for _ in range(3)])


def encode_image(img: Image.Image, format: str = "PNG") -> bytes:
    """把图片编码为字节"""
    buffer = BytesIO()
    img.save(buffer, format=format)
    return buffer.getvalue()


def make_png_bytes(size: tuple[int, int] = (64, 48)) -> bytes:
    return encode_image(make_image(size), "PNG")


def make_broken_png_bytes(size: tuple[int, int] = (40, 30)) -> bytes:
    """图像数据拆成两个 IDAT 块，第二块的类型字节被破坏

    Pillow 在 load() 读到第二块时抛出 SyntaxError。
    """
    data = encode_image(make_noisy_image(size), "PNG")
    start = data.index(b"IDAT") - 4
    length = struct.unpack(">I", data[start : start + 4])[0]
    payload = data[start + 8 : start + 8 + length]
    rest = data[start + 12 + length :]

    half = payload[: length // 2]
    first = (
        struct.pack(">I", len(half))
        + b"IDAT"
        + half
        + struct.pack(">I", zlib.crc32(b"IDAT" + half))
    )
    tail = payload[length // 2 :]
    second = struct.pack(">I", len(tail)) + b"\x04(7\x8e" + tail + b"\x00" * 4
    return data[:start] + first + second + rest


def make_image_file(
    name: str = "photo.png",
    data: bytes | None = None,
    mime_type: str = "image/png",
    size: tuple[int, int] = (64, 48),
) -> ImageFile:
    """创建内存中的 ImageFile"""
    if data is None:
        data = make_png_bytes(size)
    return ImageFile(name=name, mime_type=mime_type, byte_length=len(data), data=data)


def finish_job(job: Job, result: JobResult) -> Job:
    """把任务推进到 result 对应的终态"""
    job.advance(JobState.DECODING)
    if result.success:
        job.advance(JobState.PLANNED)
        job.advance(JobState.ENCODING)
        job.advance(JobState.SUCCEEDED, result)
    else:
        job.advance(JobState.FAILED, result)
    return job


def succeeded_result(
    name: str = "photo.png", original_size: int = 1000, encoded_size: int = 500
) -> JobResult:
    return JobResult.succeeded(
        file_name=name,
        original_size=original_size,
        data=b"x" * encoded_size,
        target_format=TargetFormat.WEBP,
        quality=80,
        source_format="png",
        source_dimensions=(10, 10),
        output_dimensions=(10, 10),
    )


class HookedDecoder(PillowDecoder):
    """解码前调用钩子函数的解码器，用于在运行中途触发操作"""

    def __init__(self, hook: Callable[[int], None]):
        super().__init__()
        self.hook = hook
        self.calls = 0
        self._lock = threading.Lock()

    def decode(self, data: bytes) -> DecodedImage:
        with self._lock:
            self.calls += 1
            call = self.calls
        self.hook(call)
        return super().decode(data)


class TrackingDecoder(PillowDecoder):
    """记录同时处于解码中的任务数量"""

    def __init__(self, delay: float = 0.02):
        super().__init__()
        self.delay = delay
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def decode(self, data: bytes) -> DecodedImage:
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            time.sleep(self.delay)
            return super().decode(data)
        finally:
            with self._lock:
                self.active -= 1


class StubEncoder:
    """可配置输出或异常的编码器"""

    def __init__(
        self,
        format: TargetFormat = TargetFormat.WEBP,
        output: bytes = b"encoded",
        error: Exception | None = None,
    ):
        self.format = format
        self.output = output
        self.error = error
        self.qualities: list[int] = []

    def encode(self, img: Image.Image, quality: int) -> bytes:
        self.qualities.append(quality)
        if self.error is not None:
            raise self.error
        return self.output


@pytest.fixture(autouse=True)
def clean_config(monkeypatch: pytest.MonkeyPatch):
    """每个测试使用不受环境变量影响的默认配置"""
    for key in list(os.environ):
        if key.startswith("PIO_"):
            monkeypatch.delenv(key)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def temp_dir():
    """临时目录fixture"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture(scope="session")
def registry() -> CodecRegistry:
    """默认编码器注册表"""
    return create_default_registry()


@pytest.fixture
def png_settings() -> OptimizationSettings:
    """输出 PNG 的设置，结果确定且不依赖有损编码器"""
    return OptimizationSettings(
        quality=80, target_format="png", max_width=1920, max_height=1080
    )


@pytest.fixture
def optimizer(png_settings: OptimizationSettings) -> ImageOptimizer:
    """使用 PNG 输出的优化器"""
    return ImageOptimizer(settings=png_settings)


@pytest.fixture
def three_files() -> list[ImageFile]:
    """三张图片，第二张数据损坏"""
    return [
        make_image_file("first.png"),
        make_image_file(
            "broken.jpg", data=b"definitely not a jpeg", mime_type="image/jpeg"
        ),
        make_image_file("third.png", size=(120, 80)),
    ]
