"""
JDBC 驱动模块包

封装与 JVM 和 JDBC 驱动相关的底层实现：驱动目录（标识、前缀、驱动类名）、
JVM 启动以及驱动激活与日志抑制。

支持的数据库类型：
- jTDS, SQL Server, MySQL, Oracle thin, PostgreSQL, Informix, Derby, H2

使用示例：
    >>> from jdbc_client.drivers import JvmSettings, build_activators
    >>> activators = build_activators(JvmSettings(classpath=["/opt/jdbc/h2.jar"]))
"""

from .activation import Activator, build_activators, build_log_silencers
from .catalog import DRIVER_CLASSES, PREFIX_TABLE, DriverIdentifier, prefixes_for
from .jvm import JvmSettings, apply_english_locale, is_jvm_started, start_jvm

__all__ = [
    # ==================== 驱动目录 ====================
    "DriverIdentifier",
    "DRIVER_CLASSES",
    "PREFIX_TABLE",
    "prefixes_for",
    # ==================== JVM ====================
    "JvmSettings",
    "start_jvm",
    "apply_english_locale",
    "is_jvm_started",
    # ==================== 驱动激活 ====================
    "Activator",
    "build_activators",
    "build_log_silencers",
]
