"""
JDBC Client CLI 工具
====================

提供命令行界面来执行单条 SQL 语句和管理连接档案。

功能特性:
- 通过 JDBC 连接字符串或已保存的连接档案执行 SQL
- 可选收集警告、设置语句超时
- 多种输出格式支持 (表格、JSON、CSV)
- 连接档案管理 (添加、删除、查看、列出)
- 查看支持的驱动及其激活状态

使用示例:
    jdbc-client query --url jdbc:h2:mem:testdb "SELECT 1 AS X"
    jdbc-client profile add h2-mem --url jdbc:h2:mem:testdb
    jdbc-client query --profile h2-mem "SELECT 1 AS X" --format json
    jdbc-client drivers
"""

import argparse
import csv
import json
import sys
from typing import IO, Any, Dict, Sequence

from .core.client import JdbcClient
from .core.config import ClientSettings, ProfileStore
from .core.exceptions import JdbcClientError
from .core.result import QueryResult
from .utils.logging_utils import get_logger, mask_connection_string, setup_logging

logger = get_logger(__name__)

OUTPUT_FORMATS = ["table", "json", "csv"]
MAX_COLUMN_WIDTH = 50
NULL_DISPLAY = "NULL"


class JdbcClientCLI:
    """
    JDBC Client 命令行接口主类

    Attributes:
        settings (ClientSettings): 客户端设置
        client (JdbcClient | None): 客户端实例，首次使用时创建
    """

    CLIENT_INIT_FAILED_MSG = "❌ 初始化JDBC客户端失败"

    def __init__(self, settings: ClientSettings, client: JdbcClient | None = None):
        self.settings = settings
        self.client = client

    def _ensure_client_initialized(self) -> JdbcClient:
        """
        确保客户端已初始化

        Raises:
            SystemExit: 如果初始化失败则退出程序
        """
        if self.client is None:
            try:
                self.client = JdbcClient(self.settings)
            except (JdbcClientError, ValueError) as e:
                logger.error(f"初始化JDBC客户端失败: {e}")
                print(f"{self.CLIENT_INIT_FAILED_MSG}: {e}", file=sys.stderr)
                sys.exit(1)
        return self.client

    def _ensure_profile_store(self) -> ProfileStore:
        """
        获取连接档案存储

        Raises:
            SystemExit: 如果档案文件或密钥初始化失败则退出程序
        """
        client = self._ensure_client_initialized()
        try:
            return client.profile_store
        except JdbcClientError as e:
            self._fail("初始化连接档案", e)
            raise

    def _fail(self, action: str, error: Exception) -> None:
        logger.error(f"{action}失败: {error}")
        print(f"❌ {action}失败: {error}", file=sys.stderr)
        sys.exit(1)

    # ==================== 查询 ====================

    def execute_query(self, args: argparse.Namespace) -> None:
        """
        执行SQL语句并输出结果

        Args:
            args: 命令行参数，包含连接目标、SQL 语句和输出选项

        Raises:
            SystemExit: 如果执行失败则退出程序
        """
        client = self._ensure_client_initialized()

        try:
            if args.profile:
                result = client.execute_profile(
                    args.profile,
                    args.sql,
                    collect_warnings=args.warnings or None,
                    timeout_seconds=args.timeout,
                )
            else:
                result = client.execute(
                    args.url,
                    args.username,
                    args.password,
                    args.sql,
                    collect_warnings=args.warnings or None,
                    timeout_seconds=args.timeout,
                )
        except (JdbcClientError, ValueError) as e:
            self._fail("执行查询", e)
            return

        if args.output:
            self._save_output(result, args.output, args.format)
        else:
            self._display_result(result, args.format, sys.stdout)

    def _save_output(self, result: QueryResult, output_path: str, format: str) -> None:
        """
        将查询结果保存到文件

        Raises:
            SystemExit: 如果保存失败
        """
        try:
            newline = "" if format == "csv" else None
            with open(output_path, "w", newline=newline, encoding="utf-8") as f:
                self._display_result(result, format, f)
            print(f"✅ 结果已保存到: {output_path}")
        except OSError as e:
            self._fail("保存结果", e)

    def _display_result(self, result: QueryResult, format: str, out: IO[str]) -> None:
        """以指定格式输出查询结果，表格和CSV格式的警告写到标准错误"""
        if format == "json":
            out.write(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
            out.write("\n")
            return

        if format == "csv":
            writer = csv.writer(out)
            writer.writerows(
                ["" if value is None else value for value in row] for row in result.rows
            )
        elif result.row_count == 0:
            print("没有结果", file=out)
        else:
            self._display_table(result, out)

        if result.has_warnings():
            sys.stderr.write(result.warnings)

    def _display_table(self, result: QueryResult, out: IO[str]) -> None:
        """以表格形式显示查询结果，结果不含列名，表头使用列序号"""
        column_count = max(len(row) for row in result.rows)
        headers = [f"#{index}" for index in range(1, column_count + 1)]

        col_widths = [len(header) for header in headers]
        for row in result.rows:
            for index, value in enumerate(row):
                col_widths[index] = max(col_widths[index], len(_display_value(value)))
        col_widths = [min(width, MAX_COLUMN_WIDTH) for width in col_widths]

        header_line = " | ".join(
            f"{header:<{col_widths[index]}}" for index, header in enumerate(headers)
        )
        separator = "-+-".join("-" * width for width in col_widths)

        print(separator, file=out)
        print(header_line, file=out)
        print(separator, file=out)

        for row in result.rows:
            cells = [
                _truncate_value(_display_value(value), col_widths[index])
                for index, value in enumerate(row)
            ]
            print(
                " | ".join(
                    f"{cell:<{col_widths[index]}}" for index, cell in enumerate(cells)
                ),
                file=out,
            )

        print(separator, file=out)
        print(f"总计: {result.row_count} 行", file=out)

    # ==================== 连接档案 ====================

    def add_profile(self, args: argparse.Namespace) -> None:
        """添加连接档案"""
        store = self._ensure_profile_store()
        try:
            store.add_profile(args.name, args.url, args.username, args.password)
        except (JdbcClientError, ValueError) as e:
            self._fail("添加连接档案", e)
            return
        print(f"✅ 连接档案 '{args.name}' 添加成功")

    def remove_profile(self, args: argparse.Namespace) -> None:
        """删除连接档案"""
        store = self._ensure_profile_store()
        try:
            store.remove_profile(args.name)
        except (JdbcClientError, ValueError) as e:
            self._fail("删除连接档案", e)
            return
        print(f"✅ 连接档案 '{args.name}' 已删除")

    def list_profiles(self, _args: argparse.Namespace) -> None:
        """列出所有连接档案"""
        store = self._ensure_profile_store()
        try:
            names = store.list_profiles()
        except JdbcClientError as e:
            self._fail("列出连接档案", e)
            return

        if names:
            print("📋 已保存的连接档案:")
            for i, name in enumerate(names, 1):
                print(f"  {i}. {name}")
        else:
            print("ℹ️  没有保存任何连接档案")

    def show_profile(self, args: argparse.Namespace) -> None:
        """显示连接档案详情，敏感信息会被隐藏"""
        store = self._ensure_profile_store()
        try:
            profile = store.get_profile(args.name)
        except (JdbcClientError, ValueError) as e:
            self._fail("获取连接档案", e)
            return

        print(f"🔍 连接档案 '{args.name}':")
        for key, value in _sanitize_profile(profile).items():
            print(f"  {key}: {value}")

    # ==================== 驱动 ====================

    def list_drivers(self, _args: argparse.Namespace) -> None:
        """列出支持的连接字符串前缀和驱动激活状态"""
        client = self._ensure_client_initialized()
        print("📋 支持的JDBC驱动:")
        for entry in client.driver_status():
            status = "已激活" if entry["activated"] else "未激活"
            print(
                f"  {entry['prefix']:<22} {entry['identifier']:<11} "
                f"{entry['driver_class']} ({status})"
            )


def _display_value(value: str | None) -> str:
    return NULL_DISPLAY if value is None else value


def _truncate_value(value: str, max_length: int) -> str:
    """截断过长的值用于表格显示"""
    if len(value) <= max_length:
        return value
    return value[: max_length - 3] + "..."


def _sanitize_profile(profile: Dict[str, Any]) -> Dict[str, Any]:
    """隐藏连接档案中的密码"""
    safe_profile = dict(profile)
    if safe_profile.get("password"):
        safe_profile["password"] = "***"
    if safe_profile.get("connection_string"):
        safe_profile["connection_string"] = mask_connection_string(
            safe_profile["connection_string"]
        )
    return safe_profile


class ChineseHelpFormatter(argparse.RawDescriptionHelpFormatter):
    """中文帮助格式化器，优化帮助信息显示"""

    def _format_usage(self, usage, actions, groups, prefix):
        if prefix is None:
            prefix = "\n使用情况: "
        return super()._format_usage(usage, actions, groups, prefix)

    def start_section(self, heading):
        if heading == "options":
            heading = "下列选项可用"
        super().start_section(heading)


def _non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"无效的整数: {value}")
    if number < 0:
        raise argparse.ArgumentTypeError(f"超时时间不能为负数: {value}")
    return number


def create_argument_parser(cli_instance: JdbcClientCLI) -> argparse.ArgumentParser:
    """
    创建命令行参数解析器

    Args:
        cli_instance (JdbcClientCLI): 已初始化的CLI实例

    Returns:
        argparse.ArgumentParser: 配置好的参数解析器
    """
    parser = argparse.ArgumentParser(
        prog="jdbc-client",
        usage="jdbc-client [<命令>] [<选项>]",
        description="JDBC Client - 基于JDBC的SQL执行工具",
        formatter_class=ChineseHelpFormatter,
        epilog="""
使用示例:
  jdbc-client query --url jdbc:h2:mem:testdb "SELECT 1 AS X"
  jdbc-client query --profile mssql-dev "EXEC sp_who" --warnings --format json
  jdbc-client profile add mssql-dev --url "jdbc:sqlserver://localhost:1433" -u sa -p secret
  jdbc-client drivers
        """,
        add_help=False,
    )
    parser.add_argument(
        "-h",
        "--help",
        action="help",
        default=argparse.SUPPRESS,
        help="显示选定命令的帮助信息",
    )

    subparsers = parser.add_subparsers(title="下列命令有效", dest="command")

    # query 命令
    query_parser = subparsers.add_parser(
        "query", help="执行SQL语句", formatter_class=ChineseHelpFormatter
    )
    target_group = query_parser.add_mutually_exclusive_group(required=True)
    target_group.add_argument("--url", help="JDBC连接字符串")
    target_group.add_argument("--profile", help="连接档案名称")
    query_parser.add_argument("sql", help="SQL语句")
    query_parser.add_argument("-u", "--username", help="用户名")
    query_parser.add_argument("-p", "--password", help="密码")
    query_parser.add_argument("--warnings", action="store_true", help="收集并输出警告")
    query_parser.add_argument(
        "--timeout", type=_non_negative_int, help="语句超时时间（秒），0 表示不超时"
    )
    query_parser.add_argument(
        "--format",
        choices=OUTPUT_FORMATS,
        default="table",
        help="输出格式 (默认: table)",
    )
    query_parser.add_argument("--output", help="输出文件路径")
    query_parser.set_defaults(func=cli_instance.execute_query)

    # profile 命令
    profile_parser = subparsers.add_parser(
        "profile", help="管理连接档案", formatter_class=ChineseHelpFormatter
    )
    profile_subparsers = profile_parser.add_subparsers(
        title="下列子命令有效", dest="profile_command"
    )

    profile_add = profile_subparsers.add_parser("add", help="添加连接档案")
    profile_add.add_argument("name", help="连接档案名称")
    profile_add.add_argument("--url", required=True, help="JDBC连接字符串")
    profile_add.add_argument("-u", "--username", help="用户名")
    profile_add.add_argument("-p", "--password", help="密码")
    profile_add.set_defaults(func=cli_instance.add_profile)

    profile_remove = profile_subparsers.add_parser("remove", help="删除连接档案")
    profile_remove.add_argument("name", help="连接档案名称")
    profile_remove.set_defaults(func=cli_instance.remove_profile)

    profile_list = profile_subparsers.add_parser("list", help="列出所有连接档案")
    profile_list.set_defaults(func=cli_instance.list_profiles)

    profile_show = profile_subparsers.add_parser("show", help="显示连接档案详情")
    profile_show.add_argument("name", help="连接档案名称")
    profile_show.set_defaults(func=cli_instance.show_profile)

    # drivers 命令
    drivers_parser = subparsers.add_parser("drivers", help="列出支持的JDBC驱动")
    drivers_parser.set_defaults(func=cli_instance.list_drivers)

    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """JDBC Client CLI 主入口函数"""
    argv = list(sys.argv[1:] if argv is None else argv)

    try:
        settings = ClientSettings.load()
    except JdbcClientError as e:
        print(f"❌ 加载设置失败: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        setup_logging(
            level=settings.log_level,
            log_to_console=settings.log_to_console,
            log_to_file=settings.log_to_file,
        )
    except (ValueError, OSError) as e:
        print(f"❌ 初始化日志失败: {e}", file=sys.stderr)
        sys.exit(1)

    cli = JdbcClientCLI(settings)
    parser = create_argument_parser(cli)

    if not argv:
        parser.print_help()
        sys.exit(0)

    args = parser.parse_args(argv)

    if hasattr(args, "func"):
        args.func(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
