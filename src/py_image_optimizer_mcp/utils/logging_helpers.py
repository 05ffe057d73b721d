"""日志工具模块。

提供统一的日志记录功能，标准化日志格式和配置。
"""

import inspect
import logging
from logging.handlers import RotatingFileHandler

from ..config import get_config


def get_logger(name: str | None = None) -> logging.Logger:
    """获取标准化配置的日志记录器。

    Args:
        name: 日志记录器名称，默认使用调用模块的 __name__

    Returns:
        logging.Logger: 配置好的日志记录器
    """
    if name is None:
        # 获取调用者的模块名
        frame = inspect.currentframe()
        if frame and frame.f_back:
            name = frame.f_back.f_globals.get("__name__", "unknown")
        else:
            name = "unknown"

    return logging.getLogger(name)


def setup_logging(level: str | None = None) -> None:
    """按全局配置初始化根日志记录器。

    Args:
        level: 日志级别，None 时使用配置中的 LOG_LEVEL
    """
    log_config = get_config().logging
    logging.basicConfig(
        level=(level or log_config.LOG_LEVEL).upper(),
        format=log_config.LOG_FORMAT,
    )

    if not log_config.ENABLE_FILE_LOGGING:
        return

    root = logging.getLogger()
    # 避免重复添加文件处理器
    if any(isinstance(h, RotatingFileHandler) for h in root.handlers):
        return

    file_handler = RotatingFileHandler(
        log_config.LOG_FILE_PATH,
        maxBytes=log_config.LOG_FILE_MAX_SIZE,
        backupCount=log_config.LOG_FILE_BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setFormatter(logging.Formatter(log_config.LOG_FORMAT))
    root.addHandler(file_handler)
