"""
工具模块

提供日志配置和跨平台路径处理等通用功能。

使用示例：
    >>> from jdbc_client.utils import get_logger, setup_logging
    >>> setup_logging(level="DEBUG", log_to_console=True)
    >>> logger = get_logger(__name__)
"""

from .logging_utils import (
    SecretMaskingFilter,
    get_logger,
    mask_connection_string,
    set_log_level,
    setup_logging,
)
from .path_utils import PathHelper

__all__ = [
    # ==================== 日志管理模块 ====================
    "setup_logging",
    "get_logger",
    "set_log_level",
    "mask_connection_string",
    "SecretMaskingFilter",
    # ==================== 路径处理模块 ====================
    "PathHelper",
]
