"""
查询结果模块

一次执行调用产生一个 QueryResult：所有结果集的行按产生顺序拼接为一个序列，
不保留行来自哪个结果集的边界信息；警告信息累积为文本，每条一行，
格式为 ``Warning: <message>``。

执行过程中使用可变的 QueryResultBuilder 收集数据，完成后冻结为不可变的 QueryResult。
"""

from typing import Any, Dict, Iterable, List, Tuple

WARNING_PREFIX = "Warning: "

# 一行数据：按列顺序的文本值，SQL NULL 表示为 None
Row = Tuple[str | None, ...]


class QueryResult:
    """
    不可变的查询结果

    Attributes:
        rows (Tuple[Row, ...]): 所有结果集的行，按产生顺序拼接
        warnings (str): 累积的警告文本

    Example:
        >>> result = QueryResult(rows=[["1"]])
        >>> result.rows
        (('1',),)
        >>> result.has_warnings()
        False
    """

    __slots__ = ("_rows", "_warnings")

    def __init__(self, rows: Iterable[Iterable[str | None]] = (), warnings: str = "") -> None:
        self._rows: Tuple[Row, ...] = tuple(tuple(row) for row in rows)
        self._warnings = warnings

    @property
    def rows(self) -> Tuple[Row, ...]:
        return self._rows

    @property
    def warnings(self) -> str:
        return self._warnings

    @property
    def row_count(self) -> int:
        return len(self._rows)

    def has_warnings(self) -> bool:
        """检查是否有警告"""
        return len(self._warnings) > 0

    def warning_messages(self) -> List[str]:
        """返回去掉 ``Warning: `` 前缀的警告消息列表"""
        return [
            line[len(WARNING_PREFIX) :] if line.startswith(WARNING_PREFIX) else line
            for line in self._warnings.splitlines()
        ]

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式，便于 JSON 序列化"""
        return {
            "rows": [list(row) for row in self._rows],
            "warnings": self.warning_messages(),
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, QueryResult):
            return NotImplemented
        return self._rows == other._rows and self._warnings == other._warnings

    def __hash__(self) -> int:
        return hash((self._rows, self._warnings))

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self):
        return iter(self._rows)

    def __repr__(self) -> str:
        return (
            f"QueryResult(row_count={self.row_count}, "
            f"has_warnings={self.has_warnings()})"
        )


class QueryResultBuilder:
    """
    查询结果收集器

    在结果读取过程中追加行和警告，最后通过 build() 生成不可变的 QueryResult。
    """

    def __init__(self) -> None:
        self._rows: List[Row] = []
        self._warning_lines: List[str] = []

    def add_row(self, values: Iterable[str | None]) -> None:
        """追加一行数据"""
        self._rows.append(tuple(values))

    def append_warning(self, message: str | None) -> None:
        """
        追加一条警告，空消息被忽略

        Args:
            message: 警告消息文本
        """
        if message:
            self._warning_lines.append(f"{WARNING_PREFIX}{message}\n")

    @property
    def row_count(self) -> int:
        return len(self._rows)

    @property
    def warning_count(self) -> int:
        return len(self._warning_lines)

    def build(self) -> QueryResult:
        """生成不可变的查询结果"""
        return QueryResult(self._rows, "".join(self._warning_lines))
