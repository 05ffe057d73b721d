"""文件命名工具模块。

提供统一的输出文件命名策略和路径生成功能。
"""

import itertools
from pathlib import Path

from ..models.constants import TargetFormat, get_extension


class FileNamingStrategy:
    """文件命名策略类"""

    @staticmethod
    def generate_output_name(
        file_name: str,
        target_format: TargetFormat,
        suffix: str = "",
    ) -> str:
        """生成输出文件名

        Args:
            file_name: 源文件名
            target_format: 目标格式
            suffix: 追加在文件名主体后的后缀

        Returns:
            str: 生成的文件名（不含路径）
        """
        stem = Path(file_name).stem or "image"
        return f"{stem}{suffix}{get_extension(target_format.value)}"


class PathResolver:
    """路径解析器"""

    @staticmethod
    def ensure_unique_path(path: Path) -> Path:
        """确保路径唯一，如果文件已存在则添加数字后缀

        Args:
            path: 原始路径

        Returns:
            Path: 唯一的路径
        """
        if not path.exists():
            return path

        base = path.stem
        suffix = path.suffix
        parent = path.parent

        for counter in itertools.count(1):
            new_path = parent / f"{base}_{counter}{suffix}"
            if not new_path.exists():
                return new_path

        return path  # pragma: no cover
