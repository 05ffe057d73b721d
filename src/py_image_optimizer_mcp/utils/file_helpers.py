"""工具函数模块。

提供从磁盘读取待优化图片的实用工具函数。
"""

import mimetypes
from collections.abc import Iterable, Iterator
from pathlib import Path

from PIL import Image

from ..models.constants import get_mime_type
from ..models.image_file import ImageFile
from ..models.job import Rejection
from ..models.result import ErrorKind
from .logging_helpers import get_logger
from .message_formatter import MessageFormatter


logger = get_logger()


def find_image_files(
    directory: str | Path,
    recursive: bool = True,
    exclude_dirs: list[str] | None = None,
) -> Iterator[Path]:
    """查找目录中的图像文件。

    Args:
        directory: 搜索目录
        recursive: 是否递归搜索子目录
        exclude_dirs: 要排除的目录名列表

    Yields:
        Path: 图像文件路径
    """
    directory = Path(directory)
    exclude_dirs = exclude_dirs or []

    if not directory.is_dir():
        logger.warning(MessageFormatter.operation_failed("查找图片", directory))
        return

    # 选择搜索模式
    pattern = "**/*" if recursive else "*"

    # 获取支持的扩展名（直接使用 Pillow API）
    supported_extensions = set(Image.registered_extensions().keys())

    for file_path in sorted(directory.glob(pattern)):
        if (
            file_path.is_file()
            and file_path.suffix.lower() in supported_extensions
            and not any(exclude_dir in file_path.parts for exclude_dir in exclude_dirs)
        ):
            yield file_path


def guess_mime_type(file_path: str | Path) -> str:
    """获取文件的 MIME 类型

    优先通过 Pillow 识别图片内容，识别失败时按扩展名猜测。

    Args:
        file_path: 文件路径

    Returns:
        str: MIME 类型，无法判断时为 application/octet-stream
    """
    try:
        with Image.open(file_path) as img:
            if img.format:
                return get_mime_type(img.format)
    except (OSError, ValueError) as e:
        logger.debug(MessageFormatter.operation_failed("识别图片格式", file_path, e))

    mime_type, _ = mimetypes.guess_type(str(file_path))
    return mime_type or "application/octet-stream"


def load_image_file(file_path: str | Path) -> ImageFile:
    """读取单个文件为 ImageFile

    Raises:
        FileNotFoundError: 文件不存在
    """
    file_path = Path(file_path)
    data = file_path.read_bytes()
    return ImageFile(
        name=file_path.name,
        mime_type=guess_mime_type(file_path),
        byte_length=len(data),
        data=data,
        source_path=file_path,
    )


def collect_image_files(
    paths: Iterable[str | Path], recursive: bool = True
) -> tuple[list[ImageFile], list[Rejection]]:
    """把文件和目录路径展开为 ImageFile

    目录中只挑选图片扩展名的文件；直接给出的文件不做过滤，交由队列判断。
    不存在或读取失败的路径作为 InvalidInput 拒绝返回，不影响其余文件。

    Returns:
        tuple: (读取成功的文件, 被拒绝的路径)
    """
    files: list[ImageFile] = []
    rejected: list[Rejection] = []

    def _load(file_path: Path) -> None:
        try:
            files.append(load_image_file(file_path))
        except OSError as e:
            message = MessageFormatter.operation_failed("读取文件", file_path, e)
            logger.warning(message)
            rejected.append(_rejection(file_path, message))

    for raw_path in paths:
        path = Path(raw_path)
        if path.is_dir():
            for image_path in find_image_files(path, recursive=recursive):
                _load(image_path)
        elif path.is_file():
            _load(path)
        else:
            message = MessageFormatter.file_not_found(path)
            logger.warning(message)
            rejected.append(_rejection(path, message))

    return files, rejected


def _rejection(path: Path, message: str) -> Rejection:
    return Rejection(
        name=path.name or str(path),
        error_kind=ErrorKind.INVALID_INPUT,
        message=message,
    )
