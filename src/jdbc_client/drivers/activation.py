"""
驱动激活模块

为每个驱动标识预先注册激活函数和日志抑制函数，供驱动注册表按标识静态分派。

- 激活：启动 JVM（如未启动）并设置英文 Locale，然后通过 ``jpype.JClass`` 加载驱动类，
  驱动类在静态初始化时向 ``java.sql.DriverManager`` 注册自身。
- 日志抑制：只针对已知输出冗长的驱动。这是对 JVM 全局日志配置的一次性修改，
  必须在驱动类加载之前执行：
  - SQL Server：把 java.util.logging 的 ``com.microsoft.sqlserver.jdbc`` logger 级别设为 OFF
  - Derby：把 ``derby.stream.error.file`` 指向空设备，不再生成 derby.log
"""

import os
from typing import Any, Callable, Dict, List

import jpype

from ..utils.logging_utils import get_logger
from .catalog import DRIVER_CLASSES, DriverIdentifier
from .jvm import JvmSettings, apply_english_locale, start_jvm

logger = get_logger(__name__)

# 激活函数与日志抑制函数的统一签名
Activator = Callable[[], None]

SQLSERVER_LOGGER_NAME = "com.microsoft.sqlserver.jdbc"
DERBY_ERROR_FILE_PROPERTY = "derby.stream.error.file"

# java.util.logging 只弱引用 logger，保留强引用，避免级别设置在 GC 后失效
_silenced_java_loggers: List[Any] = []


def load_driver_class(driver_class: str, jvm_settings: JvmSettings) -> None:
    """
    加载 JDBC 驱动类

    Args:
        driver_class: JDBC 驱动类全名
        jvm_settings: JVM 启动配置

    Raises:
        TypeError: 驱动类不在 classpath 上时（由 JPype 抛出）
        Exception: JVM 启动失败或驱动静态初始化失败时
    """
    start_jvm(jvm_settings)
    apply_english_locale()
    jpype.JClass(driver_class)
    logger.debug(f"JDBC驱动类已加载: {driver_class}")


def silence_sqlserver_logging(jvm_settings: JvmSettings) -> None:
    """关闭 SQL Server 驱动的 java.util.logging 输出"""
    start_jvm(jvm_settings)
    java_logger_class = jpype.JClass("java.util.logging.Logger")
    level_class = jpype.JClass("java.util.logging.Level")

    java_logger = java_logger_class.getLogger(SQLSERVER_LOGGER_NAME)
    java_logger.setLevel(level_class.OFF)
    _silenced_java_loggers.append(java_logger)
    logger.debug(f"已关闭Java日志: {SQLSERVER_LOGGER_NAME}")


def silence_derby_logging(jvm_settings: JvmSettings) -> None:
    """把 Derby 的错误日志重定向到空设备"""
    start_jvm(jvm_settings)
    system_class = jpype.JClass("java.lang.System")
    system_class.setProperty(DERBY_ERROR_FILE_PROPERTY, os.devnull)
    logger.debug(f"Derby错误日志已重定向: {DERBY_ERROR_FILE_PROPERTY}={os.devnull}")


def build_activators(jvm_settings: JvmSettings) -> Dict[DriverIdentifier, Activator]:
    """
    构建驱动标识到激活函数的映射表

    Args:
        jvm_settings: JVM 启动配置

    Returns:
        Dict[DriverIdentifier, Activator]: 每个驱动标识对应一个无参激活函数
    """

    def make_activator(driver_class: str) -> Activator:
        return lambda: load_driver_class(driver_class, jvm_settings)

    return {
        identifier: make_activator(driver_class)
        for identifier, driver_class in DRIVER_CLASSES.items()
    }


def build_log_silencers(jvm_settings: JvmSettings) -> Dict[DriverIdentifier, Activator]:
    """
    构建需要抑制日志的驱动标识到抑制函数的映射表

    只包含已知输出冗长的驱动，其他驱动不做任何全局日志修改。
    """
    return {
        DriverIdentifier.SQLSERVER: lambda: silence_sqlserver_logging(jvm_settings),
        DriverIdentifier.DERBY: lambda: silence_derby_logging(jvm_settings),
    }
