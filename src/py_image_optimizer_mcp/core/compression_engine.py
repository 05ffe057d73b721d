"""单任务处理引擎模块。

驱动一个已被认领的任务完成 解码 → 规划 → 编码 → 记录，每次状态变化都产生事件。
"""

from collections.abc import Callable

from ..exceptions import (
    DecodeError,
    EncodeError,
    ErrorHandler,
    OptimizerError,
    handle_codec_errors,
)
from ..models.job import Job, JobEvent, JobState
from ..models.result import JobResult
from ..models.settings import OptimizationSettings
from ..utils.logging_helpers import get_logger
from .codecs import CodecRegistry
from .decoder import DecodedImage, ImageDecoder
from .planner import TransformPlan, apply_plan, plan_transform


logger = get_logger()

EventSink = Callable[[JobEvent], None]


def process_job(
    job: Job,
    settings: OptimizationSettings,
    decoder: ImageDecoder,
    registry: CodecRegistry,
    emit: EventSink,
) -> JobResult:
    """处理单个任务。

    任务必须已处于 decoding 状态（由队列认领）。任务级错误被记录到结果中，
    不会向外抛出。

    Args:
        job: 已认领的任务
        settings: 本次运行的设置快照
        decoder: 解码器
        registry: 编码器注册表
        emit: 事件接收函数

    Returns:
        JobResult: 任务结果
    """
    image = job.file

    # 解码并规划尺寸
    try:
        decoded = decoder.decode(image.data)
        plan = plan_transform(
            decoded.width, decoded.height, settings.max_width, settings.max_height
        )
    except Exception as e:
        result = ErrorHandler.failure_result(
            _as_job_error(e, DecodeError), image, settings.target_format, "图像解码"
        )
        emit(job.advance(JobState.FAILED, result))
        return result

    emit(job.advance(JobState.PLANNED))
    emit(job.advance(JobState.ENCODING))

    # 调整尺寸并编码
    try:
        data = _encode(decoded, plan, settings, registry)
    except Exception as e:
        result = ErrorHandler.failure_result(
            _as_job_error(e, EncodeError),
            image,
            settings.target_format,
            "图像编码",
            source_format=decoded.format,
            source_dimensions=decoded.dimensions,
        )
        emit(job.advance(JobState.FAILED, result))
        return result

    result = JobResult.succeeded(
        file_name=image.name,
        original_size=len(image.data),
        data=data,
        target_format=settings.target_format,
        quality=settings.quality,
        source_format=decoded.format,
        source_dimensions=plan.source_dimensions,
        output_dimensions=plan.target_dimensions,
    )
    logger.debug(f"{image.name}: {result.get_summary()}")
    emit(job.advance(JobState.SUCCEEDED, result))
    return result


@handle_codec_errors("图像缩放", EncodeError)
def _encode(
    decoded: DecodedImage,
    plan: TransformPlan,
    settings: OptimizationSettings,
    registry: CodecRegistry,
) -> bytes:
    """按规划缩放后编码"""
    pixels = apply_plan(decoded.pixels, plan)
    return registry.encode(pixels, settings.target_format, settings.quality)


def _as_job_error(
    error: Exception, error_cls: type[OptimizerError]
) -> OptimizerError:
    """把适配器抛出的任意异常归入当前阶段的错误类别"""
    if isinstance(error, OptimizerError) and error.kind is not None:
        return error
    logger.debug(f"适配器抛出未预期的异常: {error!r}")
    return error_cls(str(error) or type(error).__name__)
