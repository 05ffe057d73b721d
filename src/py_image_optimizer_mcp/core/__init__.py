"""核心模块包。

解码、尺寸规划、编码注册表和单任务处理。
"""

from .codecs import (
    AvifEncoder,
    CodecRegistry,
    Encoder,
    JpegEncoder,
    PngEncoder,
    WebpEncoder,
    create_default_registry,
)
from .compression_engine import process_job
from .decoder import DecodedImage, ImageDecoder, PillowDecoder
from .planner import TransformPlan, apply_plan, plan_transform, validate_bounds


__all__ = [
    "AvifEncoder",
    "CodecRegistry",
    "DecodedImage",
    "Encoder",
    "ImageDecoder",
    "JpegEncoder",
    "PillowDecoder",
    "PngEncoder",
    "TransformPlan",
    "WebpEncoder",
    "apply_plan",
    "create_default_registry",
    "plan_transform",
    "process_job",
    "validate_bounds",
]
