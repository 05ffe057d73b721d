"""结果导出模块。

把成功任务的编码结果写入输出目录。
"""

from collections.abc import Iterable
from pathlib import Path

from ..config import get_config
from ..models.job import Job, JobState
from ..utils.logging_helpers import get_logger
from ..utils.message_formatter import MessageFormatter
from ..utils.naming_helpers import FileNamingStrategy, PathResolver


logger = get_logger()


class ResultExporter:
    """编码结果导出器

    保留原文件时输出 `<主体>_optimized<扩展名>`，否则输出 `<主体><扩展名>`。
    不保留原文件且输出到源文件所在目录时，替换掉扩展名不同的源文件；
    输出到其他目录时源文件不动。
    """

    def __init__(self, suffix: str | None = None):
        self.suffix = (
            suffix if suffix is not None else get_config().processing.OUTPUT_SUFFIX
        )

    def export(
        self,
        jobs: Iterable[Job],
        output_dir: str | Path,
        keep_original: bool = True,
    ) -> list[Path]:
        """导出成功任务的编码数据

        Args:
            jobs: 任务列表，未成功的任务会被跳过
            output_dir: 输出目录，不存在时自动创建
            keep_original: 是否保留源文件

        Returns:
            list[Path]: 写入的文件路径，按任务顺序排列
        """
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        written: list[Path] = []
        for job in jobs:
            result = job.result
            if job.state is not JobState.SUCCEEDED or result is None:
                continue
            if result.data is None:
                logger.warning(f"任务 {job.name} 没有可导出的编码数据")
                continue

            name = FileNamingStrategy.generate_output_name(
                job.name,
                result.target_format,
                suffix=self.suffix if keep_original else "",
            )
            output_path = output_dir / name
            # 不保留原文件时允许直接覆盖源文件
            if keep_original or not self._is_source(job, output_path):
                output_path = PathResolver.ensure_unique_path(output_path)
            output_path.write_bytes(result.data)
            written.append(output_path)
            logger.debug(
                f"已导出 {job.name} → {output_path} "
                f"({MessageFormatter.file_size(result.encoded_size)})"
            )

            if not keep_original:
                self._remove_source(job, output_path)

        logger.info(f"导出 {len(written)} 个文件到 {output_dir}")
        return written

    @staticmethod
    def _is_source(job: Job, path: Path) -> bool:
        source = job.file.source_path
        return source is not None and source.resolve() == path.resolve()

    def _remove_source(self, job: Job, output_path: Path) -> None:
        source = job.file.source_path
        if source is None or not source.exists() or self._is_source(job, output_path):
            return
        if source.parent.resolve() != output_path.parent.resolve():
            logger.info(f"输出目录与原文件所在目录不同，保留原文件: {source}")
            return
        logger.warning(f"删除原文件: {source}")
        source.unlink()


def export_results(
    jobs: Iterable[Job], output_dir: str | Path, keep_original: bool = True
) -> list[Path]:
    """导出编码结果的便捷函数"""
    return ResultExporter().export(jobs, output_dir, keep_original)
