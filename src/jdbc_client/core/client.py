"""
客户端门面模块

把 ClientSettings 组装为 JVM 配置、驱动注册表和查询执行器，
并提供模块级的 execute() 入口。
"""

import threading
from typing import Any, Dict, List

from ..utils.logging_utils import get_logger
from .config import ClientSettings, ProfileStore
from .executor import ConnectionTarget, Connector, QueryExecutor, validate_arguments
from .registry import DriverRegistry
from .result import QueryResult

logger = get_logger(__name__)

_default_client: "JdbcClient | None" = None
_default_client_lock = threading.Lock()


class JdbcClient:
    """
    JDBC 客户端

    持有一个驱动注册表和一个查询执行器，可以被多个线程共享。

    Attributes:
        settings (ClientSettings): 客户端设置
        registry (DriverRegistry): 驱动注册表
        executor (QueryExecutor): 查询执行器

    Example:
        >>> client = JdbcClient(ClientSettings(classpath=["/opt/jdbc/h2.jar"]))
        >>> client.execute("jdbc:h2:mem:testdb", sql_query="SELECT 1 AS X").rows
        (('1',),)
    """

    def __init__(
        self,
        settings: ClientSettings | None = None,
        registry: DriverRegistry | None = None,
        connector: Connector | None = None,
        profile_store: ProfileStore | None = None,
    ) -> None:
        """
        初始化 JDBC 客户端

        Args:
            settings: 客户端设置，为 None 时从用户配置目录加载
            registry: 驱动注册表，为 None 时按设置创建
            connector: 连接函数，默认 jaydebeapi.connect
            profile_store: 连接档案存储，首次使用档案时才创建
        """
        self.settings = settings if settings is not None else ClientSettings.load()
        self.registry = registry or DriverRegistry(self.settings.to_jvm_settings())
        self.executor = QueryExecutor(
            self.registry,
            connector=connector,
            disable_noisy_logging=self.settings.disable_noisy_logging,
        )
        self._profile_store = profile_store

    @property
    def profile_store(self) -> ProfileStore:
        if self._profile_store is None:
            config_dir = (
                self.settings.config_path.parent
                if self.settings.config_path is not None
                else None
            )
            self._profile_store = ProfileStore(config_dir=config_dir)
        return self._profile_store

    def execute(
        self,
        connection_string: str,
        username: str | None = None,
        password: str | None = None,
        sql_query: str = "",
        collect_warnings: bool | None = None,
        timeout_seconds: int | None = None,
    ) -> QueryResult:
        """
        执行一条 SQL 语句

        collect_warnings 和 timeout_seconds 为 None 时使用设置中的默认值。

        Raises:
            InvalidArgumentError, UnsupportedTargetError,
            DriverActivationError, QueryExecutionError
        """
        target = ConnectionTarget(connection_string, username, password)
        return self._execute_target(target, sql_query, collect_warnings, timeout_seconds)

    def execute_profile(
        self,
        name: str,
        sql_query: str,
        collect_warnings: bool | None = None,
        timeout_seconds: int | None = None,
    ) -> QueryResult:
        """
        在已保存的连接档案上执行一条 SQL 语句

        Raises:
            ConfigError: 当档案不存在时
        """
        target = self.profile_store.to_target(name)
        logger.debug(f"使用连接档案执行查询: {name}")
        return self._execute_target(target, sql_query, collect_warnings, timeout_seconds)

    def _execute_target(
        self,
        target: ConnectionTarget,
        sql_query: str,
        collect_warnings: bool | None,
        timeout_seconds: int | None,
    ) -> QueryResult:
        if collect_warnings is None:
            collect_warnings = self.settings.collect_warnings
        if timeout_seconds is None:
            timeout_seconds = self.settings.timeout_seconds
        try:
            return self.executor.execute(
                target,
                sql_query,
                collect_warnings=collect_warnings,
                timeout_seconds=timeout_seconds,
            )
        finally:
            target.clear_secret()

    def driver_status(self) -> List[Dict[str, Any]]:
        """
        列出支持的驱动前缀及其激活状态

        Returns:
            List[Dict[str, Any]]: 每项包含 prefix、identifier、driver_class、activated
        """
        activated = self.registry.list_activated()
        return [
            {
                "prefix": prefix,
                "identifier": str(identifier),
                "driver_class": driver_class,
                "activated": identifier in activated,
            }
            for prefix, identifier, driver_class in self.registry.supported_prefixes()
        ]

    def __repr__(self) -> str:
        return f"JdbcClient(settings={self.settings!r}, registry={self.registry!r})"


def get_default_client() -> JdbcClient:
    """返回进程内共享的默认客户端，首次调用时按用户配置创建"""
    global _default_client
    if _default_client is None:
        with _default_client_lock:
            if _default_client is None:
                _default_client = JdbcClient()
                logger.debug("默认JDBC客户端已创建")
    return _default_client


def execute(
    connection_string: str,
    username: str | None = None,
    password: str | None = None,
    sql_query: str = "",
    collect_warnings: bool = False,
    timeout_seconds: int = 0,
) -> QueryResult:
    """
    使用默认客户端执行一条 SQL 语句

    Args:
        connection_string: JDBC 连接字符串
        username: 用户名，与 password 同时提供时才使用凭据连接
        password: 密码
        sql_query: SQL 语句
        collect_warnings: 是否收集警告
        timeout_seconds: 语句超时时间（秒），0 表示不超时

    Returns:
        QueryResult: 查询结果

    Raises:
        InvalidArgumentError: 参数非法时，在加载默认客户端的设置之前抛出

    Example:
        >>> import jdbc_client
        >>> jdbc_client.execute("jdbc:h2:mem:testdb", sql_query="SELECT 1 AS X").rows
        (('1',),)
    """
    validate_arguments(connection_string, sql_query, timeout_seconds)
    return get_default_client().execute(
        connection_string,
        username,
        password,
        sql_query,
        collect_warnings=collect_warnings,
        timeout_seconds=timeout_seconds,
    )
