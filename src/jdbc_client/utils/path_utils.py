"""
路径处理工具模块

配置目录定位、目录创建，以及 JDBC 驱动 jar 包路径和 classpath 字符串的处理。
"""

import os
import platform
from pathlib import Path
from typing import Iterable, List


class PathHelper:
    """
    路径辅助类，全部为静态方法

    Example:
        >>> config_dir = PathHelper.get_user_config_dir("jdbc_client")
        >>> PathHelper.split_classpath("/opt/jdbc/h2.jar:/opt/jdbc/derby.jar")
        ['/opt/jdbc/h2.jar', '/opt/jdbc/derby.jar']
    """

    @staticmethod
    def get_user_config_dir(app_name: str = "jdbc_client") -> Path:
        """
        获取（并创建）应用的用户配置目录

        - Windows: %APPDATA%\\{app_name}
        - macOS: ~/Library/Application Support/{app_name}
        - Linux 及其他: ~/.config/{app_name}

        标准位置无法创建时退回当前目录下的 .{app_name}。

        Raises:
            ValueError: 当应用名称为空时
            OSError: 当退回目录也无法创建时
        """
        if not app_name or not isinstance(app_name, str):
            raise ValueError("应用名称不能为空且必须是字符串")

        system = platform.system().lower()
        if system == "windows":
            base_dir = Path(os.environ.get("APPDATA", Path.home()))
        elif system == "darwin":
            base_dir = Path.home() / "Library" / "Application Support"
        else:
            base_dir = Path.home() / ".config"

        config_dir = base_dir / app_name
        try:
            config_dir.mkdir(parents=True, exist_ok=True)
            return config_dir
        except OSError as e:
            fallback_dir = Path.cwd() / f".{app_name}"
            try:
                fallback_dir.mkdir(exist_ok=True)
            except OSError:
                raise OSError(f"无法创建配置目录 {config_dir}: {str(e)}") from e
            return fallback_dir

    @staticmethod
    def ensure_dir_exists(dir_path: str | Path) -> bool:
        """
        确保目录存在

        Returns:
            bool: 目录已存在或创建成功时为 True；路径为空或指向文件时为 False

        Raises:
            OSError: 当目录创建失败时
        """
        if not dir_path:
            return False

        path = Path(dir_path)
        if path.exists():
            return path.is_dir()
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise OSError(f"无法创建目录 '{dir_path}': {str(e)}") from e
        return True

    @staticmethod
    def normalize_path(path: str | Path) -> Path:
        """
        展开 ~ 并解析为绝对路径，用于驱动 jar 包路径

        Raises:
            ValueError: 当路径为空时
        """
        if not path:
            raise ValueError("路径不能为空")
        return Path(path).expanduser().resolve()

    @staticmethod
    def split_classpath(value: str | None) -> List[str]:
        """按 os.pathsep 拆分 classpath 字符串，忽略空条目"""
        if not value:
            return []
        return [entry for entry in value.split(os.pathsep) if entry]

    @staticmethod
    def unique_entries(entries: Iterable[str]) -> List[str]:
        """去掉重复的 classpath 条目，保持首次出现的顺序"""
        return list(dict.fromkeys(entries))
