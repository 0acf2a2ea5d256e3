"""
JDBC 驱动目录模块

定义支持的数据库驱动标识、连接字符串前缀表和 JDBC 驱动类名。
支持的数据库类型是封闭且已知的集合，因此使用静态映射表，而不是按字符串动态查找。

支持的数据库类型：
- jTDS（兼容 SQL Server 的旧协议）
- SQL Server（微软原生驱动）
- MySQL
- Oracle thin
- PostgreSQL
- Informix（sqli 与 direct 两种前缀）
- Derby（嵌入式）
- H2（嵌入式）
"""

from enum import Enum
from typing import Dict, Tuple


class DriverIdentifier(str, Enum):
    """数据库驱动标识"""

    JTDS = "jtds"
    SQLSERVER = "sqlserver"
    MYSQL = "mysql"
    ORACLE = "oracle"
    POSTGRESQL = "postgresql"
    INFORMIX = "informix"
    DERBY = "derby"
    H2 = "h2"

    def __str__(self) -> str:
        return self.value


# 驱动标识到 JDBC 驱动类名的映射
DRIVER_CLASSES: Dict[DriverIdentifier, str] = {
    DriverIdentifier.JTDS: "net.sourceforge.jtds.jdbc.Driver",
    DriverIdentifier.SQLSERVER: "com.microsoft.sqlserver.jdbc.SQLServerDriver",
    DriverIdentifier.MYSQL: "com.mysql.cj.jdbc.Driver",
    DriverIdentifier.ORACLE: "oracle.jdbc.driver.OracleDriver",
    DriverIdentifier.POSTGRESQL: "org.postgresql.Driver",
    DriverIdentifier.INFORMIX: "com.informix.jdbc.IfxDriver",
    DriverIdentifier.DERBY: "org.apache.derby.jdbc.EmbeddedDriver",
    DriverIdentifier.H2: "org.h2.Driver",
}

# 每种数据库对应的连接字符串前缀（精确匹配，区分大小写）
_PREFIXES: Dict[DriverIdentifier, Tuple[str, ...]] = {
    DriverIdentifier.JTDS: ("jdbc:jtds:",),
    DriverIdentifier.SQLSERVER: ("jdbc:sqlserver:",),
    DriverIdentifier.MYSQL: ("jdbc:mysql:",),
    DriverIdentifier.ORACLE: ("jdbc:oracle:thin:",),
    DriverIdentifier.POSTGRESQL: ("jdbc:postgresql:",),
    DriverIdentifier.INFORMIX: ("jdbc:informix-sqli:", "jdbc:informix-direct:"),
    DriverIdentifier.DERBY: ("jdbc:derby:",),
    DriverIdentifier.H2: ("jdbc:h2:",),
}


def _build_prefix_table() -> Tuple[Tuple[str, DriverIdentifier], ...]:
    """
    构建按长度降序排列的前缀表，并检查不同驱动之间的前缀不存在包含关系

    Returns:
        Tuple[Tuple[str, DriverIdentifier], ...]: (前缀, 驱动标识) 元组

    Raises:
        ValueError: 当两个不同驱动的前缀互相覆盖时
    """
    entries = [
        (prefix, identifier)
        for identifier, prefixes in _PREFIXES.items()
        for prefix in prefixes
    ]
    entries.sort(key=lambda entry: len(entry[0]), reverse=True)

    for index, (prefix, identifier) in enumerate(entries):
        for other_prefix, other_identifier in entries[index + 1 :]:
            if other_identifier is not identifier and prefix.startswith(other_prefix):
                raise ValueError(
                    f"驱动前缀存在覆盖: '{prefix}' ({identifier}) 与 "
                    f"'{other_prefix}' ({other_identifier})"
                )

    return tuple(entries)


PREFIX_TABLE: Tuple[Tuple[str, DriverIdentifier], ...] = _build_prefix_table()


def prefixes_for(identifier: DriverIdentifier) -> Tuple[str, ...]:
    """返回指定驱动标识识别的全部前缀"""
    return _PREFIXES[identifier]
