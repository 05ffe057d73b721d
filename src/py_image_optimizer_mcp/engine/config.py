"""设置构建器模块。

统一的优化设置构建逻辑，把参数验证失败转换为 ConfigError。
"""

from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ConfigError
from ..models.constants import ValidationLimits
from ..models.settings import OptimizationSettings
from ..utils.logging_helpers import get_logger


logger = get_logger()


class SettingsBuilder:
    """优化设置构建器

    未指定的字段沿用基础设置，基础设置缺省时使用全局默认值。
    """

    def build(
        self,
        base: OptimizationSettings | None = None,
        quality: int | None = None,
        target_format: str | None = None,
        max_width: int | None = None,
        max_height: int | None = None,
        keep_original: bool | None = None,
    ) -> OptimizationSettings:
        """构建优化设置

        Args:
            base: 基础设置
            quality: 压缩质量 1-100
            target_format: 输出格式 webp/avif/jpeg/png
            max_width: 最大宽度
            max_height: 最大高度
            keep_original: 是否保留原文件

        Returns:
            OptimizationSettings: 新的设置对象

        Raises:
            ConfigError: 参数验证失败
        """
        overrides = {
            key: value
            for key, value in {
                "quality": quality,
                "target_format": target_format,
                "max_width": max_width,
                "max_height": max_height,
                "keep_original": keep_original,
            }.items()
            if value is not None
        }
        fields: dict[str, Any] = base.model_dump() if base else {}
        fields.update(overrides)
        return self.validate(fields)

    def validate(
        self, settings: OptimizationSettings | dict[str, Any]
    ) -> OptimizationSettings:
        """验证设置，已是模型实例时重新校验所有字段

        Raises:
            ConfigError: 参数验证失败
        """
        data = (
            settings.model_dump()
            if isinstance(settings, OptimizationSettings)
            else settings
        )
        try:
            return OptimizationSettings(**data)
        except PydanticValidationError as e:
            error_msg = self._format_validation_error(e)
            logger.warning(f"设置验证失败: {error_msg}")
            raise ConfigError(error_msg) from e
        except TypeError as e:
            raise ConfigError(f"设置构建失败: {e!s}") from e

    @staticmethod
    def validate_concurrency(concurrency: int) -> int:
        """验证并发数

        Raises:
            ConfigError: 并发数不是正整数或超过上限
        """
        if isinstance(concurrency, bool) or not isinstance(concurrency, int):
            raise ConfigError(f"并发数必须是正整数，当前值: {concurrency!r}")
        if not 1 <= concurrency <= ValidationLimits.MAX_CONCURRENCY:
            raise ConfigError(
                f"并发数必须在 1-{ValidationLimits.MAX_CONCURRENCY} 之间，"
                f"当前值: {concurrency}"
            )
        return concurrency

    def _format_validation_error(self, error: PydanticValidationError) -> str:
        """格式化验证错误"""
        messages = []
        for err in error.errors():
            field = ".".join(str(loc) for loc in err["loc"])
            msg = err["msg"]
            if field:
                messages.append(f"{field}: {msg}")
            else:
                messages.append(msg)
        return "; ".join(messages)
