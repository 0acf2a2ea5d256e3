"""
驱动注册表模块

根据连接字符串前缀解析驱动标识，并保证每个驱动在进程内最多激活一次。

并发约定：
- 已激活驱动的检查是无锁的快速路径
- 同一驱动标识的"检查-激活-记录"序列由该标识专属的锁串行化，
  并发的首次调用中只有一个会真正执行激活，其余调用等待其完成后直接返回
- 不同驱动标识使用不同的锁，激活过程互不阻塞
- 激活失败时不记录该标识，后续调用可以重试
- 已记录的标识永不移除
"""

import threading
from typing import Dict, FrozenSet, List, Mapping, Set, Tuple

from ..drivers.activation import Activator, build_activators, build_log_silencers
from ..drivers.catalog import DRIVER_CLASSES, PREFIX_TABLE, DriverIdentifier
from ..drivers.jvm import JvmSettings
from ..utils.logging_utils import get_logger
from .exceptions import DriverActivationError, UnsupportedTargetError

logger = get_logger(__name__)


def _extract_scheme(connection_string: str) -> str:
    """
    提取连接字符串的协议部分，用于错误信息

    只保留前两段（例如 ``jdbc:foo``），避免把主机、用户或密码参数写进异常。
    """
    return ":".join(connection_string.split(":", 2)[:2])


def resolve_driver_identifier(connection_string: str) -> DriverIdentifier:
    """
    根据连接字符串前缀解析驱动标识

    前缀表按长度降序排列，使用精确的、区分大小写的前缀匹配。

    Args:
        connection_string: JDBC 连接字符串

    Returns:
        DriverIdentifier: 匹配的驱动标识

    Raises:
        UnsupportedTargetError: 当没有任何前缀匹配时

    Example:
        >>> resolve_driver_identifier("jdbc:h2:mem:testdb")
        <DriverIdentifier.H2: 'h2'>
    """
    for prefix, identifier in PREFIX_TABLE:
        if connection_string.startswith(prefix):
            return identifier

    scheme = _extract_scheme(connection_string)
    raise UnsupportedTargetError(
        f"没有适用于该连接字符串的JDBC驱动: {scheme}", scheme=scheme
    )


class DriverRegistry:
    """
    驱动注册表

    记录已激活的驱动标识，保证每个驱动最多激活一次。注册表是显式构造的对象，
    由调用方注入到查询执行器中。

    Attributes:
        _activators (Dict[DriverIdentifier, Activator]): 驱动标识到激活函数的静态分派表
        _log_silencers (Dict[DriverIdentifier, Activator]): 需要抑制日志的驱动及其抑制函数
        _activated (Set[DriverIdentifier]): 已激活的驱动标识
        _locks (Dict[DriverIdentifier, threading.Lock]): 每个驱动标识专属的锁

    Example:
        >>> registry = DriverRegistry(JvmSettings(classpath=["/opt/jdbc/h2.jar"]))
        >>> identifier = registry.resolve_driver_identifier("jdbc:h2:mem:testdb")
        >>> registry.ensure_activated(identifier)
        >>> identifier in registry.list_activated()
        True
    """

    def __init__(
        self,
        jvm_settings: JvmSettings | None = None,
        activators: Mapping[DriverIdentifier, Activator] | None = None,
        log_silencers: Mapping[DriverIdentifier, Activator] | None = None,
    ) -> None:
        """
        初始化驱动注册表

        Args:
            jvm_settings: JVM 启动配置，用于构建默认的激活函数和日志抑制函数
            activators: 自定义激活函数表，为 None 时按 jvm_settings 构建
            log_silencers: 自定义日志抑制函数表，为 None 时按 jvm_settings 构建
        """
        settings = jvm_settings or JvmSettings()
        if activators is None:
            activators = build_activators(settings)
        if log_silencers is None:
            log_silencers = build_log_silencers(settings)

        self._activators: Dict[DriverIdentifier, Activator] = dict(activators)
        self._log_silencers: Dict[DriverIdentifier, Activator] = dict(log_silencers)
        self._activated: Set[DriverIdentifier] = set()
        self._locks: Dict[DriverIdentifier, threading.Lock] = {}
        # 只保护 _locks 和 _activated 的结构修改，不在激活期间持有
        self._state_lock = threading.Lock()

    @staticmethod
    def resolve_driver_identifier(connection_string: str) -> DriverIdentifier:
        """根据连接字符串前缀解析驱动标识，参见模块级函数"""
        return resolve_driver_identifier(connection_string)

    @staticmethod
    def driver_class_for(identifier: DriverIdentifier) -> str:
        """返回驱动标识对应的 JDBC 驱动类全名"""
        return DRIVER_CLASSES[identifier]

    @staticmethod
    def supported_prefixes() -> List[Tuple[str, DriverIdentifier, str]]:
        """
        列出支持的连接字符串前缀

        Returns:
            List[Tuple[str, DriverIdentifier, str]]: (前缀, 驱动标识, 驱动类名)，按匹配顺序排列
        """
        return [
            (prefix, identifier, DRIVER_CLASSES[identifier])
            for prefix, identifier in PREFIX_TABLE
        ]

    def _lock_for(self, identifier: DriverIdentifier) -> threading.Lock:
        with self._state_lock:
            lock = self._locks.get(identifier)
            if lock is None:
                lock = threading.Lock()
                self._locks[identifier] = lock
            return lock

    def is_activated(self, identifier: DriverIdentifier) -> bool:
        """检查驱动是否已激活"""
        return identifier in self._activated

    def ensure_activated(
        self, identifier: DriverIdentifier, disable_noisy_logging: bool = True
    ) -> None:
        """
        确保驱动已激活（幂等）

        Args:
            identifier: 驱动标识
            disable_noisy_logging: 是否在激活前抑制已知冗长驱动的日志输出

        Raises:
            DriverActivationError: 当激活函数或日志抑制函数失败时，原始异常通过异常链保留
        """
        # 快速路径：已激活时无需加锁
        if identifier in self._activated:
            return

        with self._lock_for(identifier):
            if identifier in self._activated:
                return

            driver_class = DRIVER_CLASSES.get(identifier)
            activator = self._activators.get(identifier)
            if activator is None:
                raise DriverActivationError(
                    f"未注册驱动激活函数: {identifier}",
                    driver_identifier=str(identifier),
                    driver_class=driver_class,
                )

            try:
                if disable_noisy_logging:
                    silencer = self._log_silencers.get(identifier)
                    if silencer is not None:
                        silencer()
                activator()
            except Exception as e:
                logger.error(f"JDBC驱动激活失败 {identifier} ({driver_class}): {e}")
                raise DriverActivationError(
                    f"无法加载JDBC驱动 {driver_class}: {e}",
                    driver_identifier=str(identifier),
                    driver_class=driver_class,
                ) from e

            with self._state_lock:
                self._activated.add(identifier)
            logger.info(f"JDBC驱动已激活: {identifier} ({driver_class})")

    def list_activated(self) -> FrozenSet[DriverIdentifier]:
        """
        返回已激活驱动标识的快照

        Returns:
            FrozenSet[DriverIdentifier]: 已激活的驱动标识
        """
        with self._state_lock:
            return frozenset(self._activated)

    def __repr__(self) -> str:
        activated = sorted(str(identifier) for identifier in self.list_activated())
        return f"DriverRegistry(activated={activated!r})"
