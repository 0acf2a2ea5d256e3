"""
查询执行器测试
"""

import jaydebeapi
import jpype
import pytest

from jdbc_client.core import executor as executor_module
from jdbc_client.core.exceptions import (
    DriverActivationError,
    InvalidArgumentError,
    QueryExecutionError,
    UnsupportedTargetError,
)
from jdbc_client.core.executor import ConnectionTarget, QueryExecutor
from jdbc_client.utils.logging_utils import mask_connection_string

from jdbc_fakes import (
    FakeConnector,
    FakeResultSet,
    FakeSQLException,
    FakeStatement,
    make_registry,
)

H2_URL = "jdbc:h2:mem:testdb"


@pytest.fixture
def java_errors(monkeypatch):
    """把 FakeSQLException 当作 JPype 抛出的 Java 异常处理"""
    monkeypatch.setattr(
        executor_module, "DATABASE_ERRORS", (jaydebeapi.Error, FakeSQLException)
    )


class TestQueryExecutor:
    """QueryExecutor测试类"""

    def setup_method(self):
        """测试方法 setup"""
        self.registry = make_registry()

    def _execute(self, statement, sql="SELECT 1", target=None, **kwargs):
        connector = FakeConnector(statement)
        executor = QueryExecutor(self.registry, connector=connector)
        result = executor.execute(target or ConnectionTarget(H2_URL), sql, **kwargs)
        return result, connector

    def test_single_result_set(self):
        """测试单个结果集：R 行，每行 C 列"""
        result_set = FakeResultSet([["1", "a", "x"], ["2", "b", "y"]])
        statement = FakeStatement([result_set])

        result, connector = self._execute(statement, "SELECT * FROM t")

        assert result.rows == (("1", "a", "x"), ("2", "b", "y"))
        assert result.warnings == ""
        assert statement.executed == ["SELECT * FROM t"]
        assert connector.calls == [("org.h2.Driver", H2_URL, [])]

    def test_multiple_result_sets_concatenated(self):
        """测试多个结果集按顺序拼接"""
        first = FakeResultSet([["1"], ["2"]])
        second = FakeResultSet([["a", "b"], ["c", "d"], ["e", "f"]])
        statement = FakeStatement([first, second])

        result, _ = self._execute(statement, "EXEC two_result_sets")

        assert result.rows == (("1",), ("2",), ("a", "b"), ("c", "d"), ("e", "f"))
        assert first.closed and second.closed

    def test_pure_update_returns_no_rows(self):
        """测试纯更新语句返回空结果"""
        statement = FakeStatement([3])

        result, connector = self._execute(statement, "UPDATE t SET a = 1")

        assert result.rows == ()
        assert result.row_count == 0
        assert statement.closed
        assert connector.connections[0].closed

    def test_update_count_then_result_set(self):
        """测试更新计数之后的结果集仍被读取，更新计数本身不写入结果"""
        result_set = FakeResultSet([["done"]])
        statement = FakeStatement([5, 0, result_set, 2])

        result, _ = self._execute(statement, "INSERT ...; SELECT 'done'")

        assert result.rows == (("done",),)

    def test_empty_result_set(self):
        """测试没有行的结果集"""
        statement = FakeStatement([FakeResultSet([], column_count=2)])

        result, _ = self._execute(statement)

        assert result.rows == ()

    def test_null_column_value(self):
        """测试 NULL 列值转换为 None，读取继续"""
        statement = FakeStatement([FakeResultSet([["1", None], [None, "b"]])])

        result, _ = self._execute(statement)

        assert result.rows == (("1", None), (None, "b"))

    def test_non_string_values_become_text(self):
        """测试列值统一转换为 Python 字符串"""
        statement = FakeStatement([FakeResultSet([[1, 2.5]])])

        result, _ = self._execute(statement)

        assert result.rows == (("1", "2.5"),)

    def test_collect_warnings(self):
        """测试按链表顺序收集警告"""
        statement = FakeStatement(
            [FakeResultSet([["1"]])],
            warnings=["Changed database context to 'master'.", "second"],
        )

        result, _ = self._execute(statement, collect_warnings=True)

        assert result.warnings == (
            "Warning: Changed database context to 'master'.\nWarning: second\n"
        )
        assert result.warning_messages() == [
            "Changed database context to 'master'.",
            "second",
        ]

    def test_warnings_not_collected_by_default(self):
        """测试未要求时不读取警告"""
        statement = FakeStatement([FakeResultSet([["1"]])], warnings=["ignored"])

        result, _ = self._execute(statement)

        assert result.warnings == ""
        assert not statement.warnings_requested

    def test_empty_warning_messages_skipped(self):
        """测试空的警告消息被跳过"""
        statement = FakeStatement([1], warnings=[None, "", "real"])

        result, _ = self._execute(statement, "UPDATE t SET a = 1", collect_warnings=True)

        assert result.warnings == "Warning: real\n"

    def test_query_timeout(self):
        """测试语句超时时间传递给 Statement"""
        statement = FakeStatement([1])

        self._execute(statement, timeout_seconds=30)
        assert statement.query_timeout == 30

    def test_max_query_timeout(self):
        """测试 Java int 上限的超时时间"""
        statement = FakeStatement([1])

        self._execute(statement, timeout_seconds=2**31 - 1)
        assert statement.query_timeout == 2**31 - 1

    def test_none_timeout_means_no_timeout(self):
        """测试 None 超时等同于不超时"""
        statement = FakeStatement([1])

        self._execute(statement, timeout_seconds=None)
        assert statement.query_timeout == 0

    def test_credentials_passed_when_both_present(self):
        """测试用户名和密码都提供时使用凭据连接"""
        target = ConnectionTarget("jdbc:sqlserver://db:1433", "sa", "secret")

        _, connector = self._execute(FakeStatement([1]), target=target)

        assert connector.calls == [
            (
                "com.microsoft.sqlserver.jdbc.SQLServerDriver",
                "jdbc:sqlserver://db:1433",
                ["sa", "secret"],
            )
        ]

    def test_anonymous_when_password_missing(self):
        """测试只提供用户名时使用匿名形式"""
        target = ConnectionTarget("jdbc:mysql://localhost/test", "root", None)

        _, connector = self._execute(FakeStatement([1]), target=target)

        assert connector.calls[0][2] == []

    def test_driver_activated_before_connect(self):
        """测试连接前先激活驱动"""
        self._execute(FakeStatement([1]))
        assert "h2" in {str(identifier) for identifier in self.registry.list_activated()}


class TestQueryExecutorValidation:
    """参数校验测试类"""

    def setup_method(self):
        """测试方法 setup"""
        self.connector = FakeConnector(FakeStatement([1]))
        self.executor = QueryExecutor(make_registry(), connector=self.connector)

    @pytest.mark.parametrize("connection_string", ["", "   "])
    def test_empty_connection_string(self, connection_string):
        """测试空连接字符串"""
        with pytest.raises(InvalidArgumentError) as exc_info:
            self.executor.execute(ConnectionTarget(connection_string), "SELECT 1")

        assert exc_info.value.field_name == "connection_string"
        assert self.connector.calls == []

    @pytest.mark.parametrize("sql_query", ["", " \n\t", None])
    def test_empty_sql(self, sql_query):
        """测试空SQL语句"""
        with pytest.raises(InvalidArgumentError) as exc_info:
            self.executor.execute(ConnectionTarget(H2_URL), sql_query)

        assert exc_info.value.field_name == "sql_query"
        assert self.connector.calls == []

    @pytest.mark.parametrize("timeout", [-1, 1.5, True, "10", 2**31])
    def test_invalid_timeout(self, timeout):
        """测试非法超时时间"""
        with pytest.raises(InvalidArgumentError) as exc_info:
            self.executor.execute(ConnectionTarget(H2_URL), "SELECT 1", timeout_seconds=timeout)

        assert exc_info.value.field_name == "timeout_seconds"
        assert self.connector.calls == []

    def test_unsupported_target(self):
        """测试不支持的连接字符串不会尝试连接"""
        with pytest.raises(UnsupportedTargetError):
            self.executor.execute(ConnectionTarget("jdbc:sqlite:test.db"), "SELECT 1")

        assert self.connector.calls == []

    def test_activation_failure(self):
        """测试驱动激活失败不会尝试连接"""

        def missing_jar():
            raise TypeError("Class org.h2.Driver is not found")

        executor = QueryExecutor(make_registry(h2=missing_jar), connector=self.connector)

        with pytest.raises(DriverActivationError):
            executor.execute(ConnectionTarget(H2_URL), "SELECT 1")

        assert self.connector.calls == []


class TestQueryExecutorErrors:
    """数据库错误测试类"""

    def setup_method(self):
        """测试方法 setup"""
        self.registry = make_registry()

    def test_connect_failure(self):
        """测试连接失败包装为 QueryExecutionError"""
        original = jaydebeapi.DatabaseError("Login failed for user 'sa'")
        executor = QueryExecutor(self.registry, connector=FakeConnector(error=original))

        with pytest.raises(QueryExecutionError) as exc_info:
            executor.execute(ConnectionTarget(H2_URL), "SELECT 1")

        error = exc_info.value
        assert error.cause is original
        assert error.__cause__ is original
        assert error.operation == "connect"
        assert error.error_code == "QUERY_001"

    def test_execute_failure_releases_resources(self):
        """测试执行失败时释放 Statement 和连接"""
        statement = FakeStatement(
            execute_error=jaydebeapi.DatabaseError("Syntax error in SQL statement")
        )
        connector = FakeConnector(statement)
        executor = QueryExecutor(self.registry, connector=connector)

        with pytest.raises(QueryExecutionError) as exc_info:
            executor.execute(ConnectionTarget(H2_URL), "SELEC 1")

        assert exc_info.value.operation == "execute"
        assert exc_info.value.details["query_preview"] == "SELEC 1"
        assert statement.closed
        assert connector.connections[0].closed

    def test_drain_failure_no_partial_result(self):
        """测试读取中途失败时不返回部分结果，并释放全部资源"""
        first = FakeResultSet([["1"], ["2"]])
        broken = FakeResultSet([["3"], ["4"]], fail_at_row=1)
        statement = FakeStatement([first, broken])
        connector = FakeConnector(statement)
        executor = QueryExecutor(self.registry, connector=connector)

        with pytest.raises(QueryExecutionError) as exc_info:
            executor.execute(ConnectionTarget(H2_URL), "SELECT 1; SELECT 2")

        assert exc_info.value.operation == "drain"
        assert isinstance(exc_info.value.cause, jaydebeapi.DatabaseError)
        assert first.closed and broken.closed
        assert statement.closed
        assert connector.connections[0].closed

    def test_java_exceptions_are_database_errors(self):
        """测试 JPype 的 Java 异常属于数据库层错误"""
        assert jpype.JException in executor_module.DATABASE_ERRORS
        assert jaydebeapi.Error in executor_module.DATABASE_ERRORS

    def test_java_timeout_on_execute(self, java_errors):
        """测试 Statement 上抛出的 Java 超时异常包装为 QueryExecutionError"""
        original = FakeSQLException(
            "java.sql.SQLTimeoutException: Statement was canceled or the session timed out"
        )
        statement = FakeStatement(execute_error=original)
        connector = FakeConnector(statement)
        executor = QueryExecutor(self.registry, connector=connector)

        with pytest.raises(QueryExecutionError) as exc_info:
            executor.execute(ConnectionTarget(H2_URL), "SELECT SLEEP(60)", timeout_seconds=1)

        assert exc_info.value.cause is original
        assert exc_info.value.operation == "execute"
        assert statement.query_timeout == 1
        assert statement.closed
        assert connector.connections[0].closed

    def test_java_exception_while_reading_rows(self, java_errors):
        """测试读取行时抛出的 Java 异常包装为 QueryExecutionError"""
        original = FakeSQLException("java.sql.SQLException: Connection reset")
        result_set = FakeResultSet([["1"], ["2"]], fail_at_row=1, fail_error=original)
        statement = FakeStatement([result_set])
        executor = QueryExecutor(self.registry, connector=FakeConnector(statement))

        with pytest.raises(QueryExecutionError) as exc_info:
            executor.execute(ConnectionTarget(H2_URL), "SELECT 1")

        assert exc_info.value.cause is original
        assert exc_info.value.operation == "drain"
        assert result_set.closed

    def test_unregistered_exception_not_wrapped(self):
        """测试非数据库层错误原样抛出"""
        statement = FakeStatement(execute_error=FakeSQLException("not a database error"))
        executor = QueryExecutor(self.registry, connector=FakeConnector(statement))

        with pytest.raises(FakeSQLException):
            executor.execute(ConnectionTarget(H2_URL), "SELECT 1")

        assert statement.closed


class TestConnectionTarget:
    """ConnectionTarget测试类"""

    def test_driver_args(self):
        """测试驱动参数"""
        assert ConnectionTarget(H2_URL, "sa", "").driver_args() == ["sa", ""]
        assert ConnectionTarget(H2_URL, None, "secret").driver_args() == []
        assert ConnectionTarget(H2_URL).driver_args() == []

    def test_repr_hides_password(self):
        """测试字符串表示不包含密码"""
        target = ConnectionTarget("jdbc:mysql://db/test?password=hunter2", "root", "hunter2")

        text = repr(target)

        assert "hunter2" not in text
        assert "root" in text

    def test_clear_secret(self):
        """测试清除密码"""
        target = ConnectionTarget(H2_URL, "sa", "secret")
        target.clear_secret()

        assert target.password is None
        assert not target.has_credentials()


class TestMaskConnectionString:
    """连接字符串掩码测试类"""

    @pytest.mark.parametrize(
        "connection_string, expected",
        [
            (
                "jdbc:sqlserver://db:1433;user=sa;password=secret;encrypt=false",
                "jdbc:sqlserver://db:1433;user=sa;password=***;encrypt=false",
            ),
            (
                "jdbc:mysql://db/test?user=root&password=secret&useSSL=false",
                "jdbc:mysql://db/test?user=root&password=***&useSSL=false",
            ),
            ("jdbc:jtds:sqlserver://db;PWD=secret", "jdbc:jtds:sqlserver://db;PWD=***"),
            ("jdbc:oracle:thin:scott/tiger@localhost:1521:orcl", "jdbc:oracle:thin:scott/***@localhost:1521:orcl"),
            (
                "jdbc:mysql://root:s3cret@db:3306/test",
                "jdbc:mysql://root:***@db:3306/test",
            ),
            ("jdbc:mysql://root@db:3306/test", "jdbc:mysql://root@db:3306/test"),
            ("jdbc:mysql://db:3306/test?user=a@b", "jdbc:mysql://db:3306/test?user=a@b"),
            ("jdbc:h2:mem:testdb", "jdbc:h2:mem:testdb"),
        ],
    )
    def test_mask(self, connection_string, expected):
        """测试密码参数被替换"""
        assert mask_connection_string(connection_string) == expected

    def test_userinfo_password_not_logged(self, caplog):
        """测试执行日志中不出现 URL 用户信息里的密码"""
        statement = FakeStatement([FakeResultSet([["1"]])])
        executor = QueryExecutor(make_registry(), connector=FakeConnector(statement))

        with caplog.at_level("DEBUG", logger="jdbc_client"):
            executor.execute(ConnectionTarget("jdbc:mysql://root:s3cret@db/test"), "SELECT 1")

        assert "root:***@db" in caplog.text
        assert "s3cret" not in caplog.text


if __name__ == "__main__":
    pytest.main()
