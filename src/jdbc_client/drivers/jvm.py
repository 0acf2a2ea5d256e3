"""
JVM 启动模块

JDBC 驱动运行在进程内唯一的 JVM 中（通过 JPype）。本模块负责以线程安全的方式
启动 JVM，并把配置的驱动 jar 包和 ``CLASSPATH`` 环境变量合并为 classpath。

JVM 启动参数固定包含 ``-Duser.language=en -Duser.country=US``，
保证驱动返回的错误和警告信息使用英文。JVM 由其他组件启动时，
启动参数不生效，改由 apply_english_locale() 设置 JVM 的默认 Locale。
"""

import os
import threading
from typing import List, Sequence

import jpype

from ..utils.logging_utils import get_logger
from ..utils.path_utils import PathHelper

logger = get_logger(__name__)

# 保证驱动消息使用英文
LOCALE_OPTIONS = ("-Duser.language=en", "-Duser.country=US")

_jvm_lock = threading.Lock()
_locale_applied = False


class JvmSettings:
    """
    JVM 启动配置

    Attributes:
        classpath (List[str]): 驱动 jar 包路径列表
        jvm_path (str | None): libjvm 路径，为 None 时使用 jpype.getDefaultJVMPath()
        jvm_options (List[str]): 额外的 JVM 参数
    """

    def __init__(
        self,
        classpath: Sequence[str] = (),
        jvm_path: str | None = None,
        jvm_options: Sequence[str] = (),
    ) -> None:
        self.classpath = list(classpath)
        self.jvm_path = jvm_path or None
        self.jvm_options = list(jvm_options)

    def effective_classpath(self) -> List[str]:
        """返回配置的 jar 包加上 CLASSPATH 环境变量中的条目（去重，保持顺序）"""
        env_entries = PathHelper.split_classpath(os.environ.get("CLASSPATH"))
        return PathHelper.unique_entries([*self.classpath, *env_entries])

    def __repr__(self) -> str:
        return (
            f"JvmSettings(classpath={self.classpath!r}, "
            f"jvm_path={self.jvm_path!r}, jvm_options={self.jvm_options!r})"
        )


def is_jvm_started() -> bool:
    """检查 JVM 是否已经启动"""
    return jpype.isJVMStarted()


def start_jvm(settings: JvmSettings) -> None:
    """
    启动 JVM（幂等、线程安全）

    JVM 在进程生命周期内只能启动一次，已启动时直接返回。
    如果 JVM 已被其他组件启动，本次的 classpath 配置不会生效。

    Args:
        settings: JVM 启动配置

    Raises:
        OSError: 找不到 JVM 动态库时（由 JPype 抛出）
        RuntimeError: JVM 启动失败时
    """
    if jpype.isJVMStarted():
        return

    with _jvm_lock:
        if jpype.isJVMStarted():
            return

        classpath = settings.effective_classpath()
        jvm_path = settings.jvm_path or jpype.getDefaultJVMPath()
        options = [*LOCALE_OPTIONS, *settings.jvm_options]

        logger.info(f"启动 JVM: {jvm_path}, classpath 条目数: {len(classpath)}")
        logger.debug(f"JVM classpath: {classpath}, 参数: {options}")

        jpype.startJVM(
            *options,
            jvmpath=jvm_path,
            classpath=classpath,
            convertStrings=True,
        )
        logger.info("JVM 启动成功")


def apply_english_locale() -> None:
    """
    把 JVM 的默认 Locale 设为 en_US（每个进程只设置一次）

    需要在 JVM 启动之后调用。

    Raises:
        Exception: JPype 调用失败时抛出原始异常
    """
    global _locale_applied
    if _locale_applied:
        return

    with _jvm_lock:
        if _locale_applied:
            return
        locale_class = jpype.JClass("java.util.Locale")
        locale_class.setDefault(locale_class("en", "US"))
        _locale_applied = True
    logger.debug("JVM 默认 Locale 已设为 en_US")
