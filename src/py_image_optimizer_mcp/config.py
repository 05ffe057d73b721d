"""统一配置管理模块。

提供应用程序的全局配置管理，包括默认值、环境变量支持等。
"""

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class OptimizationDefaults:
    """优化参数的默认配置"""

    QUALITY: int = 80
    TARGET_FORMAT: str = "webp"
    MAX_WIDTH: int = 1920
    MAX_HEIGHT: int = 1080
    KEEP_ORIGINAL: bool = True


@dataclass(frozen=True)
class ProcessingDefaults:
    """处理相关的默认配置"""

    # 并发设置，默认串行以保证顺序确定
    CONCURRENCY: int = 1

    # 文件大小限制
    MAX_FILE_SIZE_MB: float = 100.0

    # 导出文件名后缀
    OUTPUT_SUFFIX: str = "_optimized"


@dataclass(frozen=True)
class LoggingDefaults:
    """日志相关的默认配置"""

    # 日志级别
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # 文件日志
    ENABLE_FILE_LOGGING: bool = False
    LOG_FILE_PATH: str = "py_image_optimizer.log"
    LOG_FILE_MAX_SIZE: int = 10 * 1024 * 1024  # 10MB
    LOG_FILE_BACKUP_COUNT: int = 5


def _as_bool(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


class AppConfig:
    """应用程序配置管理器

    支持环境变量覆盖默认配置
    """

    def __init__(self):
        self.optimization = OptimizationDefaults()
        self.processing = ProcessingDefaults()
        self.logging = LoggingDefaults()

        # 从环境变量加载配置
        self._load_from_env()

    def _load_from_env(self):
        """从环境变量加载配置"""
        # 优化参数
        if quality := os.getenv("PIO_QUALITY"):
            object.__setattr__(self.optimization, "QUALITY", int(quality))

        if target_format := os.getenv("PIO_FORMAT"):
            object.__setattr__(
                self.optimization, "TARGET_FORMAT", target_format.lower()
            )

        if max_width := os.getenv("PIO_MAX_WIDTH"):
            object.__setattr__(self.optimization, "MAX_WIDTH", int(max_width))

        if max_height := os.getenv("PIO_MAX_HEIGHT"):
            object.__setattr__(self.optimization, "MAX_HEIGHT", int(max_height))

        if keep_original := os.getenv("PIO_KEEP_ORIGINAL"):
            object.__setattr__(
                self.optimization, "KEEP_ORIGINAL", _as_bool(keep_original)
            )

        # 处理配置
        if concurrency := os.getenv("PIO_CONCURRENCY"):
            object.__setattr__(self.processing, "CONCURRENCY", int(concurrency))

        if max_file_size := os.getenv("PIO_MAX_FILE_SIZE_MB"):
            object.__setattr__(
                self.processing, "MAX_FILE_SIZE_MB", float(max_file_size)
            )

        # 日志配置
        if log_level := os.getenv("PIO_LOG_LEVEL"):
            object.__setattr__(self.logging, "LOG_LEVEL", log_level.upper())

        if enable_file_log := os.getenv("PIO_ENABLE_FILE_LOGGING"):
            object.__setattr__(
                self.logging, "ENABLE_FILE_LOGGING", _as_bool(enable_file_log)
            )

    @property
    def max_file_size_bytes(self) -> int:
        """单个文件允许的最大字节数"""
        return int(self.processing.MAX_FILE_SIZE_MB * 1024 * 1024)


# 全局配置实例
config = AppConfig()


def get_config() -> AppConfig:
    """获取全局配置实例"""
    return config


def reset_config():
    """重置配置（主要用于测试）"""
    global config
    config = AppConfig()
