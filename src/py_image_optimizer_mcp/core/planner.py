"""尺寸规划模块。

根据源尺寸和最大宽高计算输出尺寸，保持宽高比且不放大。
"""

from PIL import Image
from pydantic import BaseModel, ConfigDict, Field

from ..exceptions import ConfigError, DecodeError


class TransformPlan(BaseModel):
    """一次尺寸变换的规划结果"""

    model_config = ConfigDict(frozen=True)

    source_width: int = Field(gt=0)
    source_height: int = Field(gt=0)
    target_width: int = Field(gt=0)
    target_height: int = Field(gt=0)

    @property
    def source_dimensions(self) -> tuple[int, int]:
        return (self.source_width, self.source_height)

    @property
    def target_dimensions(self) -> tuple[int, int]:
        return (self.target_width, self.target_height)

    @property
    def needs_resize(self) -> bool:
        return self.source_dimensions != self.target_dimensions


def validate_bounds(max_width: int, max_height: int) -> None:
    """校验最大宽高，非正数视为配置错误"""
    if max_width <= 0:
        raise ConfigError(f"最大宽度必须大于 0，当前值: {max_width}")
    if max_height <= 0:
        raise ConfigError(f"最大高度必须大于 0，当前值: {max_height}")


def plan_transform(
    source_width: int, source_height: int, max_width: int, max_height: int
) -> TransformPlan:
    """计算输出尺寸

    两个方向都超出时取更小的缩放比，由限制更严格的一边决定。

    Args:
        source_width: 源宽度
        source_height: 源高度
        max_width: 最大宽度
        max_height: 最大高度

    Returns:
        TransformPlan: 规划结果

    Raises:
        ConfigError: 最大宽高不是正数
        DecodeError: 源尺寸不是正数
    """
    validate_bounds(max_width, max_height)
    if source_width <= 0 or source_height <= 0:
        raise DecodeError(f"源尺寸无效: {source_width}x{source_height}")

    # 已在范围内，不放大
    if source_width <= max_width and source_height <= max_height:
        return TransformPlan(
            source_width=source_width,
            source_height=source_height,
            target_width=source_width,
            target_height=source_height,
        )

    ratio = min(max_width / source_width, max_height / source_height)
    target_width = min(max_width, max(1, round(source_width * ratio)))
    target_height = min(max_height, max(1, round(source_height * ratio)))

    return TransformPlan(
        source_width=source_width,
        source_height=source_height,
        target_width=target_width,
        target_height=target_height,
    )


def apply_plan(img: Image.Image, plan: TransformPlan) -> Image.Image:
    """按规划调整图片尺寸"""
    if not plan.needs_resize:
        return img
    return img.resize(plan.target_dimensions, Image.Resampling.LANCZOS)
