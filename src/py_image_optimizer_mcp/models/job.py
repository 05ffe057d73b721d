"""任务模型。

定义任务生命周期状态、状态转换事件以及队列状态。
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Final
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from .image_file import ImageFile
from .result import ErrorKind, JobResult


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobState(str, Enum):
    """任务状态，只能向前转换"""

    QUEUED = "queued"
    DECODING = "decoding"
    PLANNED = "planned"
    ENCODING = "encoding"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.SUCCEEDED, JobState.FAILED)

    @property
    def is_in_flight(self) -> bool:
        return self in (JobState.DECODING, JobState.PLANNED, JobState.ENCODING)


# 合法的状态转换
TRANSITIONS: Final[dict[JobState, frozenset[JobState]]] = {
    JobState.QUEUED: frozenset({JobState.DECODING}),
    JobState.DECODING: frozenset({JobState.PLANNED, JobState.FAILED}),
    JobState.PLANNED: frozenset({JobState.ENCODING}),
    JobState.ENCODING: frozenset({JobState.SUCCEEDED, JobState.FAILED}),
    JobState.SUCCEEDED: frozenset(),
    JobState.FAILED: frozenset(),
}


class InvalidTransitionError(RuntimeError):
    """非法的状态转换"""


class JobEvent(BaseModel):
    """任务状态变化事件，是进度报告的唯一通道"""

    model_config = ConfigDict(frozen=True)

    job_id: str = Field(description="任务标识")
    file_name: str = Field(description="文件名")
    from_state: JobState = Field(description="原状态")
    to_state: JobState = Field(description="新状态")
    timestamp: datetime = Field(default_factory=_utcnow, description="时间戳(UTC)")
    result: JobResult | None = Field(None, description="终态时的结果")


class Job(BaseModel):
    """一次针对单张图片的优化请求"""

    job_id: str = Field(default_factory=lambda: uuid4().hex, description="任务标识")
    file: ImageFile = Field(description="源图片")
    state: JobState = Field(JobState.QUEUED, description="当前状态")
    result: JobResult | None = Field(None, description="终态结果")
    created_at: datetime = Field(default_factory=_utcnow, description="创建时间")

    @property
    def name(self) -> str:
        return self.file.name

    @property
    def is_in_flight(self) -> bool:
        return self.state.is_in_flight

    @property
    def error_kind(self) -> ErrorKind | None:
        return self.result.error_kind if self.result else None

    def advance(self, to_state: JobState, result: JobResult | None = None) -> JobEvent:
        """执行一次状态转换并返回对应事件

        Raises:
            InvalidTransitionError: 转换不合法，或结果与终态不匹配
        """
        from_state = self.state
        if to_state not in TRANSITIONS[from_state]:
            raise InvalidTransitionError(
                f"任务 {self.job_id} 不能从 {from_state.value} 转换到 {to_state.value}"
            )
        if to_state.is_terminal:
            if result is None or self.result is not None:
                raise InvalidTransitionError(f"任务 {self.job_id} 的结果只能设置一次")
            self.result = result
        elif result is not None:
            raise InvalidTransitionError("只有终态可以携带结果")

        self.state = to_state
        return JobEvent(
            job_id=self.job_id,
            file_name=self.file.name,
            from_state=from_state,
            to_state=to_state,
            result=result,
        )


class Rejection(BaseModel):
    """提交时被拒绝的文件"""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="文件名")
    error_kind: ErrorKind = Field(description="错误类别")
    message: str = Field(description="诊断信息")


class QueueState(BaseModel):
    """队列快照及本次提交的拒绝信息"""

    model_config = ConfigDict(frozen=True)

    jobs: tuple[Job, ...] = Field(description="按入队顺序排列的任务")
    accepted: tuple[Job, ...] = Field((), description="本次被接受的任务")
    rejected: tuple[Rejection, ...] = Field((), description="本次被拒绝的文件")

    def __len__(self) -> int:
        return len(self.jobs)
