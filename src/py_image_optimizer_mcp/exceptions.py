"""图像优化异常处理模块。

定义统一的异常类和错误处理机制，包含编解码异常转换装饰器。
"""

from collections.abc import Callable
from functools import wraps
from typing import TypeVar

from PIL.Image import DecompressionBombError, UnidentifiedImageError

from .models.constants import TargetFormat
from .models.image_file import ImageFile
from .models.result import ErrorKind, JobResult
from .utils.logging_helpers import get_logger
from .utils.message_formatter import MessageFormatter


logger = get_logger()
T = TypeVar("T")


# 统一的异常类型
class OptimizerError(Exception):
    """优化相关错误基类"""

    kind: ErrorKind | None = None

    def __init__(self, message: str, name: str | None = None):
        super().__init__(message)
        self.message = message
        self.name = name


class InvalidInputError(OptimizerError):
    """提交了非图片或不合法的输入"""

    kind = ErrorKind.INVALID_INPUT


class ConfigError(OptimizerError):
    """设置超出允许范围"""

    kind = ErrorKind.CONFIG_ERROR


class DecodeError(OptimizerError):
    """源图片无法读取或已损坏"""

    kind = ErrorKind.DECODE_ERROR


class EncodeError(OptimizerError):
    """编码器拒绝参数或输入"""

    kind = ErrorKind.ENCODE_ERROR


class UnsupportedFormatError(OptimizerError):
    """请求了未注册的目标格式"""

    kind = ErrorKind.UNSUPPORTED_FORMAT


class JobInFlightError(OptimizerError):
    """任务正在处理中，不能移除"""

    pass


class PipelineBusyError(OptimizerError):
    """已有运行在进行中"""

    pass


# 编解码异常转换装饰器
def handle_codec_errors(
    operation_name: str, error_cls: type[OptimizerError]
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """把 Pillow 和系统异常统一转换为 error_cls

    Args:
        operation_name: 操作名称，用于日志记录
        error_cls: 转换后的异常类型
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            try:
                return func(*args, **kwargs)
            except OptimizerError:
                raise
            except UnidentifiedImageError as e:
                logger.debug(f"{operation_name} - 无法识别图像格式: {e}")
                raise error_cls(f"无法识别的图像数据: {e}") from e
            except DecompressionBombError as e:
                logger.debug(f"{operation_name} - 图像过大: {e}")
                raise error_cls(f"图像像素数过大，可能存在安全风险: {e}") from e
            except OSError as e:
                logger.debug(f"{operation_name} - 数据读写失败: {e}")
                raise error_cls(f"{operation_name}失败: {e}") from e
            except (ValueError, TypeError, KeyError) as e:
                logger.debug(f"{operation_name} - 参数错误: {e}")
                raise error_cls(f"{operation_name}参数错误: {e}") from e
            except Exception as e:
                logger.debug(f"{operation_name} - 未知错误: {e!r}")
                raise error_cls(f"{operation_name}失败: {e}") from e

        return wrapper

    return decorator


class ErrorHandler:
    """统一错误处理器

    提供标准化的错误日志记录和失败结果构建。
    """

    @staticmethod
    def _log_error(
        operation: str, target: str, error: Exception, level: str = "error"
    ) -> None:
        """标准化的错误日志记录

        Args:
            operation: 操作名称（如"图像解码"、"图像编码"等）
            target: 相关文件名
            error: 异常对象
            level: 日志级别 ("error", "warning", "debug")
        """
        log_msg = MessageFormatter.format_error(operation, target, error)
        getattr(logger, level, logger.error)(log_msg)

    @staticmethod
    def failure_result(
        error: OptimizerError,
        image: ImageFile,
        target_format: TargetFormat,
        operation: str,
        source_format: str | None = None,
        source_dimensions: tuple[int, int] | None = None,
    ) -> JobResult:
        """记录任务失败并构建失败结果

        Args:
            error: 任务中捕获的异常
            image: 源图片
            target_format: 目标格式
            operation: 失败时所处的操作
            source_format: 已解码出的源格式（可选）
            source_dimensions: 已解码出的源尺寸（可选）
        """
        ErrorHandler._log_error(operation, image.name, error, "warning")
        return JobResult.failed(
            file_name=image.name,
            original_size=len(image.data),
            target_format=target_format,
            error_kind=error.kind or ErrorKind.ENCODE_ERROR,
            error=error.message,
            source_format=source_format,
            source_dimensions=source_dimensions,
        )
