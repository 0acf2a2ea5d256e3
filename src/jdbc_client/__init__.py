# SPDX-FileCopyrightText: 2025-present wangquanqing <wangquanqing1636@sina.com>
#
# SPDX-License-Identifier: MIT
"""
JDBC Client - 基于 JDBC 的单语句查询工具
======================================

通过 JDBC 连接字符串执行一条 SQL 语句，读取其产生的全部结果集，
以文本形式返回行数据和可选的警告信息。

主要特性:
- 支持 jTDS, SQL Server, MySQL, Oracle, PostgreSQL, Informix, Derby, H2
- 每个驱动在进程内最多加载一次（线程安全）
- 多结果集读取，可选收集警告链
- 加密存储的连接档案
- 命令行界面和API接口

使用示例:
    >>> import jdbc_client
    >>> result = jdbc_client.execute("jdbc:h2:mem:testdb", sql_query="SELECT 1 AS X")
    >>> result.rows
    (('1',),)
"""

from .core.client import JdbcClient, execute, get_default_client
from .core.config import ClientSettings, ProfileStore
from .core.exceptions import (
    ConfigError,
    CryptoError,
    DriverActivationError,
    InvalidArgumentError,
    JdbcClientError,
    QueryExecutionError,
    UnsupportedTargetError,
)
from .core.executor import ConnectionTarget, QueryExecutor
from .core.registry import DriverRegistry
from .core.result import QueryResult
from .drivers.catalog import DriverIdentifier
from .drivers.jvm import JvmSettings

__version__ = "0.1.0"

# 公共API导出列表
__all__ = [
    # 入口
    "execute",
    "JdbcClient",
    "get_default_client",
    # 核心组件
    "DriverRegistry",
    "DriverIdentifier",
    "QueryExecutor",
    "ConnectionTarget",
    "QueryResult",
    "JvmSettings",
    # 配置
    "ClientSettings",
    "ProfileStore",
    # 异常类
    "JdbcClientError",
    "InvalidArgumentError",
    "UnsupportedTargetError",
    "DriverActivationError",
    "QueryExecutionError",
    "ConfigError",
    "CryptoError",
]
