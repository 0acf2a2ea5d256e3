"""
核心模块包

包含驱动注册表、查询执行器、查询结果、配置管理、加密和异常定义。
"""

from .client import JdbcClient, execute, get_default_client
from .config import ClientSettings, ProfileStore
from .crypto import CryptoManager
from .exceptions import (
    ConfigError,
    CryptoError,
    DriverActivationError,
    InvalidArgumentError,
    JdbcClientError,
    QueryExecutionError,
    UnsupportedTargetError,
)
from .executor import ConnectionTarget, QueryExecutor
from .registry import DriverRegistry, resolve_driver_identifier
from .result import QueryResult

__all__ = [
    "JdbcClient",
    "execute",
    "get_default_client",
    "ClientSettings",
    "ProfileStore",
    "CryptoManager",
    "DriverRegistry",
    "resolve_driver_identifier",
    "QueryExecutor",
    "ConnectionTarget",
    "QueryResult",
    "JdbcClientError",
    "InvalidArgumentError",
    "UnsupportedTargetError",
    "DriverActivationError",
    "QueryExecutionError",
    "ConfigError",
    "CryptoError",
]
