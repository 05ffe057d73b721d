"""运行结果汇总模块。"""

from collections.abc import Iterable

from ..models.job import Job, JobState
from ..models.report import RunSummary
from ..models.result import savings_percent


def summarize(jobs: Iterable[Job]) -> RunSummary:
    """汇总任务结果

    只统计成功任务的大小，整体节省比例先求和再求比值。纯函数，
    对同一组任务重复调用结果相同，与完成顺序无关。

    Args:
        jobs: 一次运行涉及的任务

    Returns:
        RunSummary: 汇总统计
    """
    succeeded = failed = pending = 0
    total_original = total_encoded = 0

    for job in jobs:
        result = job.result
        if job.state is JobState.SUCCEEDED and result is not None:
            succeeded += 1
            total_original += result.original_size
            total_encoded += result.encoded_size
        elif job.state is JobState.FAILED:
            failed += 1
        else:
            pending += 1

    return RunSummary(
        succeeded=succeeded,
        failed=failed,
        pending=pending,
        total_original_size=total_original,
        total_encoded_size=total_encoded,
        savings_percent=savings_percent(total_original, total_encoded),
    )
