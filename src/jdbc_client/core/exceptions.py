"""
JDBC 客户端自定义异常模块

提供项目专用的异常类层次结构。每一次调用失败都只以其中一种异常的形式返回给调用方，
底层原始异常通过异常链（``raise ... from e``）保留，便于诊断。

主要特性：
- 统一的异常基类，提供错误代码、详细信息和字典格式转换
- 驱动相关异常与查询执行异常分开，便于调用方决定是否修正环境后重试
- 安全的敏感信息处理：详细信息中不包含密码，SQL 只保留预览

异常类层次结构：
JdbcClientError
├── InvalidArgumentError (参数校验失败，发生在任何 I/O 之前)
├── UnsupportedTargetError (连接字符串不匹配任何已知驱动)
├── DriverActivationError (驱动激活失败)
├── QueryExecutionError (连接、执行或结果读取失败)
├── ConfigError (配置相关异常)
└── CryptoError (加密解密相关异常)
"""

from typing import Any, Dict


class JdbcClientError(Exception):
    """
    JDBC 客户端基础异常类

    所有自定义异常的基类，提供统一的异常处理接口。

    Attributes:
        message (str): 异常描述信息
        error_code (str | None): 错误代码，用于错误分类和识别
        details (Dict[str, Any]): 详细的错误信息字典

    Example:
        >>> try:
        ...     raise JdbcClientError("测试异常", "TEST_001", {"key": "value"})
        ... except JdbcClientError as e:
        ...     print(e.to_dict())
        {'error_type': 'JdbcClientError', 'message': '测试异常',
         'error_code': 'TEST_001', 'details': {'key': 'value'}}
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: Dict[str, Any] | None = None,
    ) -> None:
        """
        初始化基础异常

        Args:
            message: 异常描述信息，应清晰描述错误原因
            error_code: 错误代码，格式为"模块_编号"
            details: 详细的错误信息字典，包含相关上下文信息
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    @property
    def cause(self) -> BaseException | None:
        """返回被包装的原始异常（如果有）"""
        return self.__cause__

    def __str__(self) -> str:
        """
        返回异常的字符串表示

        Example:
            >>> str(JdbcClientError("连接失败", "QUERY_001"))
            'JdbcClientError: 连接失败 (错误代码: QUERY_001)'
        """
        base_str = f"{self.__class__.__name__}: {self.message}"
        if self.error_code:
            base_str += f" (错误代码: {self.error_code})"
        return base_str

    def to_dict(self) -> Dict[str, Any]:
        """
        将异常信息转换为字典格式，便于序列化和日志记录

        Returns:
            Dict[str, Any]: 包含异常信息的字典
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


class InvalidArgumentError(JdbcClientError):
    """
    参数校验异常

    连接字符串或 SQL 为空、超时时间非法等。在任何 I/O 之前抛出，
    调用方修正输入后即可重试。

    Attributes:
        field_name (str | None): 校验失败的参数名
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = "ARG_001",
        field_name: str | None = None,
        details: Dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, error_code, details)
        self.field_name = field_name

        if field_name:
            self.details["field_name"] = field_name


class UnsupportedTargetError(JdbcClientError):
    """
    不支持的目标数据库异常

    连接字符串的前缀不匹配任何已知的驱动。对该连接字符串而言是终态错误。

    Attributes:
        scheme (str | None): 连接字符串的协议部分（例如 ``jdbc:foo``），不包含主机和参数
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = "DRIVER_001",
        scheme: str | None = None,
        details: Dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, error_code, details)
        self.scheme = scheme

        if scheme:
            self.details["scheme"] = scheme


class DriverActivationError(JdbcClientError):
    """
    驱动激活异常

    已解析出驱动标识，但驱动无法激活（例如 jar 包不在 classpath 上、JVM 无法启动）。
    原始异常通过异常链保留。修复运行环境后可以重试，失败的激活不会被记录。

    Attributes:
        driver_identifier (str | None): 驱动标识
        driver_class (str | None): JDBC 驱动类全名
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = "DRIVER_002",
        driver_identifier: str | None = None,
        driver_class: str | None = None,
        details: Dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, error_code, details)
        self.driver_identifier = driver_identifier
        self.driver_class = driver_class

        if driver_identifier:
            self.details["driver_identifier"] = driver_identifier
        if driver_class:
            self.details["driver_class"] = driver_class


class QueryExecutionError(JdbcClientError):
    """
    查询执行异常

    连接、执行、结果读取过程中的任何数据库层错误（包括语句超时、网络故障、
    数据库报告的语法或语义错误）。原始异常通过异常链保留。

    Attributes:
        query (str | None): 执行的SQL语句
        operation (str | None): 失败的阶段（connect/execute/drain/warnings）
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = "QUERY_001",
        query: str | None = None,
        operation: str | None = None,
        details: Dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, error_code, details)
        self.query = query
        self.operation = operation

        # 查询语句只记录预览，避免在日志中泄露完整SQL
        if query:
            self.details["query_preview"] = self._get_query_preview(query)
        if operation:
            self.details["operation"] = operation

    def _get_query_preview(self, query: str, max_length: int = 100) -> str:
        """获取查询语句的预览"""
        if len(query) <= max_length:
            return query
        return query[:max_length] + "..."


class ConfigError(JdbcClientError):
    """
    配置相关异常

    处理设置文件和连接档案文件读取、解析、验证过程中出现的错误。

    Attributes:
        config_file (str | None): 相关的配置文件路径
        config_key (str | None): 相关的配置键名称
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        config_file: str | None = None,
        config_key: str | None = None,
        details: Dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, error_code, details)
        self.config_file = config_file
        self.config_key = config_key

        if config_file:
            self.details["config_file"] = config_file
        if config_key:
            self.details["config_key"] = config_key


class CryptoError(JdbcClientError):
    """
    加密解密相关异常

    Attributes:
        operation (str | None): 加密操作类型（encrypt/decrypt/derive_key等）
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        operation: str | None = None,
        details: Dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, error_code, details)
        self.operation = operation

        if operation:
            self.details["operation"] = operation
