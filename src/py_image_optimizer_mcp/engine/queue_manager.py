"""队列管理模块。

持有按入队顺序排列的任务，所有修改都在同一把锁内完成。
"""

import threading
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ..config import get_config
from ..exceptions import InvalidInputError, JobInFlightError
from ..models.constants import is_image_mime
from ..models.image_file import ImageFile
from ..models.job import Job, JobEvent, JobState, QueueState, Rejection
from ..utils.logging_helpers import get_logger
from ..utils.message_formatter import MessageFormatter


logger = get_logger()

# (name, mime_type, byte_length, data)
FileItem = ImageFile | tuple[str, str, int, bytes]


class QueueManager:
    """任务队列

    入队只追加，移除不改变其余任务的相对顺序。
    """

    def __init__(self, max_file_size: int | None = None):
        """初始化队列

        Args:
            max_file_size: 单个文件最大字节数，None 时使用全局配置
        """
        self.max_file_size = (
            max_file_size
            if max_file_size is not None
            else get_config().max_file_size_bytes
        )
        self._jobs: list[Job] = []
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def enqueue(self, files: Iterable[FileItem]) -> QueueState:
        """把文件加入队列

        非图片或不合法的文件被拒绝并记录在返回值中，其余按顺序追加。

        Args:
            files: ImageFile 或 (name, mime_type, byte_length, data) 元组

        Returns:
            QueueState: 入队后的队列快照及本次的接受/拒绝信息
        """
        # 先取完全部输入，迭代中途出错时队列保持不变
        items = list(files)
        accepted: list[Job] = []
        rejected: list[Rejection] = []

        with self._lock:
            for item in items:
                try:
                    image = self._coerce(item)
                    self._validate(image)
                except InvalidInputError as e:
                    name = e.name or _item_name(item)
                    logger.warning(f"拒绝文件 {name}: {e.message}")
                    rejected.append(
                        Rejection(name=name, error_kind=e.kind, message=e.message)
                    )
                    continue

                job = Job(file=image)
                self._jobs.append(job)
                accepted.append(job)

            snapshot = tuple(self._jobs)

        if accepted:
            logger.info(f"已添加 {len(accepted)} 张图片到队列")
            for job in accepted:
                logger.debug(
                    f"  └─ {job.name} "
                    f"({MessageFormatter.file_size(job.file.byte_length)})"
                )
        elif rejected:
            logger.warning("没有选择有效的图片文件")

        return QueueState(
            jobs=snapshot, accepted=tuple(accepted), rejected=tuple(rejected)
        )

    def remove(self, index: int) -> Job:
        """移除指定位置的任务

        Raises:
            InvalidInputError: 位置越界
            JobInFlightError: 任务正在处理中
        """
        with self._lock:
            if not 0 <= index < len(self._jobs):
                raise InvalidInputError(
                    f"队列位置越界: {index}，当前共 {len(self._jobs)} 个任务"
                )
            job = self._jobs[index]
            if job.is_in_flight:
                raise JobInFlightError(
                    f"任务正在处理中，不能移除: {job.name}", job.name
                )
            del self._jobs[index]

        logger.info(f"已移除: {job.name}")
        return job

    def clear(self) -> int:
        """移除所有未在处理中的任务，返回移除数量"""
        with self._lock:
            kept = [job for job in self._jobs if job.is_in_flight]
            removed = len(self._jobs) - len(kept)
            self._jobs = kept

        if removed:
            logger.info(f"已从队列清除 {removed} 个文件")
        else:
            logger.info("队列中没有可清除的文件")
        return removed

    def claim(self, job: Job) -> JobEvent | None:
        """认领任务，执行 queued → decoding 转换

        任务已被移除或不处于 queued 状态时返回 None。
        """
        with self._lock:
            if job.state is not JobState.QUEUED or not self._contains(job):
                return None
            return job.advance(JobState.DECODING)

    def snapshot(self) -> tuple[Job, ...]:
        """当前所有任务"""
        with self._lock:
            return tuple(self._jobs)

    def pending(self) -> tuple[Job, ...]:
        """所有 queued 状态的任务，保持入队顺序"""
        with self._lock:
            return tuple(job for job in self._jobs if job.state is JobState.QUEUED)

    def contains(self, job: Job) -> bool:
        with self._lock:
            return self._contains(job)

    def has_in_flight(self) -> bool:
        with self._lock:
            return any(job.is_in_flight for job in self._jobs)

    def reset(self) -> int:
        """清空全部任务，调用方需保证没有运行在进行中"""
        with self._lock:
            if any(job.is_in_flight for job in self._jobs):
                raise JobInFlightError("队列中有正在处理的任务，不能重置")
            count = len(self._jobs)
            self._jobs = []
        return count

    def _contains(self, job: Job) -> bool:
        return any(queued is job for queued in self._jobs)

    def _coerce(self, item: Any) -> ImageFile:
        """把输入项转换为 ImageFile"""
        if isinstance(item, ImageFile):
            return item

        try:
            name, mime_type, byte_length, data = item
        except (TypeError, ValueError):
            raise InvalidInputError(
                "输入项必须是 ImageFile 或 (name, mime_type, byte_length, data)"
            ) from None

        try:
            return ImageFile(
                name=name, mime_type=mime_type, byte_length=byte_length, data=data
            )
        except PydanticValidationError as e:
            reason = e.errors()[0]["msg"]
            raise InvalidInputError(f"文件信息不合法: {reason}", str(name)) from e

    def _validate(self, image: ImageFile) -> None:
        """校验单个文件能否入队"""
        if not is_image_mime(image.mime_type):
            raise InvalidInputError(
                MessageFormatter.not_an_image(image.name, image.mime_type), image.name
            )
        if not image.length_matches:
            raise InvalidInputError(
                f"声明的大小 {image.byte_length} 与实际大小 {len(image.data)} 不一致",
                image.name,
            )
        if image.byte_length > self.max_file_size:
            raise InvalidInputError(
                f"文件过大: {MessageFormatter.file_size(image.byte_length)}，"
                f"上限 {MessageFormatter.file_size(self.max_file_size)}",
                image.name,
            )
        # 同一文件在排队或处理中时不能重复入队
        if any(
            job.file.file_id == image.file_id and not job.state.is_terminal
            for job in self._jobs
        ):
            raise InvalidInputError(f"文件已在队列中: {image.name}", image.name)


def _item_name(item: Any) -> str:
    """尽量从输入项中取出文件名用于诊断"""
    if isinstance(item, ImageFile):
        return item.name
    if isinstance(item, tuple | list) and item:
        return str(item[0])
    return "<unknown>"
