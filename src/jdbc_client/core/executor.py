"""
查询执行器模块

执行一条 SQL 语句，并把产生的所有结果集和更新计数读取完毕，生成一个 QueryResult。

执行流程：
1. 参数校验（任何 I/O 之前）
2. 通过驱动注册表解析并激活驱动
3. 打开连接（提供用户名和密码时使用凭据，否则使用匿名形式）
4. 创建 Statement，设置超时，执行一次语句
5. 按两状态的状态机读取全部结果（结果集 / 更新计数）
6. 按需收集警告链
7. 按获取的逆序释放结果集、Statement 和连接（任何退出路径都会释放）

任何数据库层错误都包装为 QueryExecutionError，原始异常通过异常链保留。
不做任何重试，出错时不会返回部分结果。
"""

from contextlib import closing
from enum import Enum
from typing import Any, Callable, List

import jaydebeapi
import jpype

from ..utils.logging_utils import get_logger, mask_connection_string
from .exceptions import InvalidArgumentError, QueryExecutionError
from .registry import DriverRegistry
from .result import QueryResult, QueryResultBuilder

logger = get_logger(__name__)

# JDBC 约定：getUpdateCount() 返回 -1 表示没有更多结果
NO_MORE_RESULTS = -1

# setQueryTimeout 接受 Java int
MAX_TIMEOUT_SECONDS = 2**31 - 1

# 数据库层错误：jaydebeapi 的 DB-API 异常以及 JPype 包装的 Java 异常
DATABASE_ERRORS = (jaydebeapi.Error, jpype.JException)

# 连接函数签名：(驱动类名, 连接字符串, 驱动参数) -> 带 jconn 属性的连接对象
Connector = Callable[[str, str, List[str]], Any]


class OutcomeState(Enum):
    """语句执行后当前结果的类型"""

    RESULT_SET = "result_set"
    UPDATE_COUNT = "update_count"


def _outcome_state(is_result_set: bool) -> OutcomeState:
    return OutcomeState.RESULT_SET if is_result_set else OutcomeState.UPDATE_COUNT


class ConnectionTarget:
    """
    连接目标

    每次调用构造一次，不做持久化。密码属于敏感信息：不会出现在日志和 repr() 中，
    使用完毕后建议调用 clear_secret()。

    Attributes:
        connection_string (str): JDBC 连接字符串
        username (str | None): 用户名
        password (str | None): 密码
    """

    def __init__(
        self,
        connection_string: str,
        username: str | None = None,
        password: str | None = None,
    ) -> None:
        self.connection_string = connection_string
        self.username = username
        self.password = password

    def has_credentials(self) -> bool:
        """用户名和密码都提供时才使用凭据连接"""
        return self.username is not None and self.password is not None

    def driver_args(self) -> List[str]:
        """返回传给 DriverManager.getConnection 的附加参数"""
        if self.has_credentials():
            return [self.username, self.password]
        return []

    def clear_secret(self) -> None:
        """丢弃对密码的引用"""
        self.password = None

    def __repr__(self) -> str:
        return (
            f"ConnectionTarget(connection_string={mask_connection_string(self.connection_string)!r}, "
            f"username={self.username!r}, password={'***' if self.password else None!r})"
        )


def validate_arguments(
    connection_string: str, sql_query: str, timeout_seconds: int | None
) -> int:
    """
    校验执行参数，在任何 I/O 之前调用

    Args:
        connection_string: JDBC 连接字符串
        sql_query: SQL 语句
        timeout_seconds: 语句超时时间（秒），None 视为 0

    Returns:
        int: 规范化后的超时时间

    Raises:
        InvalidArgumentError: 连接字符串或 SQL 为空（含只有空白），
            或超时时间不是 0 到 MAX_TIMEOUT_SECONDS 之间的整数
    """
    if not isinstance(connection_string, str) or not connection_string.strip():
        raise InvalidArgumentError(
            "JDBC连接字符串不能为空", field_name="connection_string"
        )

    if not isinstance(sql_query, str) or not sql_query.strip():
        raise InvalidArgumentError("SQL语句不能为空", field_name="sql_query")

    if timeout_seconds is None:
        return 0
    if (
        isinstance(timeout_seconds, bool)
        or not isinstance(timeout_seconds, int)
        or not 0 <= timeout_seconds <= MAX_TIMEOUT_SECONDS
    ):
        raise InvalidArgumentError(
            f"超时时间必须是 0 到 {MAX_TIMEOUT_SECONDS} 之间的整数: {timeout_seconds!r}",
            field_name="timeout_seconds",
        )
    return timeout_seconds


class QueryExecutor:
    """
    查询执行器

    同步阻塞执行，每次调用在调用方线程上完成连接、执行和结果读取。
    多个调用可以在不同线程上并发执行，彼此之间只共享驱动注册表。

    Attributes:
        registry (DriverRegistry): 驱动注册表
        disable_noisy_logging (bool): 激活驱动时是否抑制已知冗长驱动的日志

    Example:
        >>> executor = QueryExecutor(DriverRegistry())
        >>> result = executor.execute(
        ...     ConnectionTarget("jdbc:h2:mem:testdb"), "SELECT 1 AS X"
        ... )
        >>> result.rows
        (('1',),)
    """

    def __init__(
        self,
        registry: DriverRegistry,
        connector: Connector | None = None,
        disable_noisy_logging: bool = True,
    ) -> None:
        """
        初始化查询执行器

        Args:
            registry: 驱动注册表
            connector: 连接函数，默认 jaydebeapi.connect
            disable_noisy_logging: 激活驱动时是否抑制已知冗长驱动的日志
        """
        self.registry = registry
        self.disable_noisy_logging = disable_noisy_logging
        self._connector: Connector = connector or jaydebeapi.connect

    def execute(
        self,
        target: ConnectionTarget,
        sql_query: str,
        collect_warnings: bool = False,
        timeout_seconds: int | None = 0,
    ) -> QueryResult:
        """
        执行一条 SQL 语句并读取全部结果

        Args:
            target: 连接目标
            sql_query: SQL 语句
            collect_warnings: 是否收集 Statement 上的警告链
            timeout_seconds: 语句超时时间（秒），0 或 None 表示不超时

        Returns:
            QueryResult: 所有结果集的行（按产生顺序拼接）和警告文本

        Raises:
            InvalidArgumentError: 连接字符串或 SQL 为空、超时时间非法
            UnsupportedTargetError: 连接字符串不匹配任何已知驱动
            DriverActivationError: 驱动激活失败
            QueryExecutionError: 连接、执行、结果读取或警告收集失败
        """
        timeout = validate_arguments(
            getattr(target, "connection_string", None), sql_query, timeout_seconds
        )

        connection_string = target.connection_string
        identifier = self.registry.resolve_driver_identifier(connection_string)
        self.registry.ensure_activated(identifier, self.disable_noisy_logging)
        driver_class = self.registry.driver_class_for(identifier)

        masked_url = mask_connection_string(connection_string)
        logger.debug(
            f"执行查询: {masked_url}, 驱动: {identifier}, "
            f"凭据: {'是' if target.has_credentials() else '否'}, 超时: {timeout}秒"
        )

        builder = QueryResultBuilder()
        operation = "connect"
        try:
            connection = self._connector(
                driver_class, connection_string, target.driver_args()
            )
            with closing(connection):
                operation = "execute"
                with closing(connection.jconn.createStatement()) as statement:
                    statement.setQueryTimeout(timeout)
                    is_result_set = statement.execute(sql_query)

                    operation = "drain"
                    self._drain(statement, is_result_set, builder)

                    if collect_warnings:
                        operation = "warnings"
                        self._collect_warnings(statement, builder)

        except DATABASE_ERRORS as e:
            logger.error(f"查询执行失败 ({operation}) {masked_url}: {e}")
            raise QueryExecutionError(
                f"执行查询失败: {e}", query=sql_query, operation=operation
            ) from e

        result = builder.build()
        logger.info(
            f"查询执行完成: {masked_url}, 行数: {result.row_count}, "
            f"警告数: {builder.warning_count}"
        )
        return result

    def _drain(
        self, statement: Any, is_result_set: bool, builder: QueryResultBuilder
    ) -> None:
        """
        读取语句产生的全部结果

        状态从 execute() 的返回值开始：
        - RESULT_SET：读取全部行，然后前进到下一个结果
        - UPDATE_COUNT：更新计数为 NO_MORE_RESULTS 时结束，否则前进到下一个结果
        前进由 getMoreResults() 完成，其返回值决定下一个状态。更新计数本身不写入结果。
        """
        state = _outcome_state(is_result_set)
        result_set_count = 0

        while True:
            if state is OutcomeState.RESULT_SET:
                with closing(statement.getResultSet()) as result_set:
                    self._read_rows(result_set, builder)
                result_set_count += 1
            elif statement.getUpdateCount() == NO_MORE_RESULTS:
                break

            state = _outcome_state(statement.getMoreResults())

        logger.debug(f"结果读取完成: 结果集数: {result_set_count}, 行数: {builder.row_count}")

    @staticmethod
    def _read_rows(result_set: Any, builder: QueryResultBuilder) -> None:
        """按元数据中的列顺序读取结果集的全部行，列值转换为文本"""
        column_count = result_set.getMetaData().getColumnCount()
        while result_set.next():
            builder.add_row(
                _to_text(result_set.getString(index))
                for index in range(1, column_count + 1)
            )

    @staticmethod
    def _collect_warnings(statement: Any, builder: QueryResultBuilder) -> None:
        """按链表顺序收集 Statement 上的警告"""
        warning = statement.getWarnings()
        while warning is not None:
            builder.append_warning(_to_text(warning.getMessage()))
            warning = warning.getNextWarning()


def _to_text(value: Any) -> str | None:
    """把列值转换为 Python 字符串，SQL NULL 保持为 None"""
    if value is None:
        return None
    return str(value)
