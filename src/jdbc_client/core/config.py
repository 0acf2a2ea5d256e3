"""
配置管理模块

使用 TOML 格式管理两类配置：

- 客户端设置（settings.toml）：JVM classpath、默认超时、是否收集警告、日志级别等。
  文件不存在时使用默认值，环境变量 JDBC_CLIENT_CLASSPATH / JDBC_CLIENT_JVM_PATH 可覆盖。
- 连接档案（profiles.toml）：命名的连接字符串、用户名和密码，全部字段加密存储，
  密钥信息独立存放在 encryption.key 中。

配置只保存连接信息，从不保存查询数据。
"""

import json
import os
import tomllib
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping

import tomli_w

from ..drivers.jvm import JvmSettings
from ..utils.logging_utils import get_logger
from ..utils.path_utils import PathHelper
from .crypto import DEFAULT_ITERATIONS, CryptoManager
from .exceptions import ConfigError
from .executor import ConnectionTarget
from .registry import resolve_driver_identifier

logger = get_logger(__name__)

DEFAULT_APP_NAME = "jdbc_client"
SETTINGS_FILE = "settings.toml"
PROFILES_FILE = "profiles.toml"
KEY_FILE = "encryption.key"

ENV_CLASSPATH = "JDBC_CLIENT_CLASSPATH"
ENV_JVM_PATH = "JDBC_CLIENT_JVM_PATH"

PROFILE_FIELDS = ("connection_string", "username", "password")

# 错误消息常量
ERROR_EMPTY_PROFILE_NAME = "连接档案名称不能为空且必须是字符串"
ERROR_EMPTY_CONNECTION_STRING = "连接字符串不能为空且必须是字符串"


def _resolve_config_dir(app_name: str, config_dir: str | Path | None) -> Path:
    if config_dir is None:
        return PathHelper.get_user_config_dir(app_name)
    path = Path(config_dir)
    PathHelper.ensure_dir_exists(path)
    return path


class ClientSettings:
    """
    客户端设置

    Attributes:
        classpath (List[str]): JDBC 驱动 jar 包路径
        jvm_path (str | None): libjvm 路径
        jvm_options (List[str]): 额外的 JVM 参数
        timeout_seconds (int): 默认语句超时（秒），0 表示不超时
        collect_warnings (bool): 默认是否收集警告
        disable_noisy_logging (bool): 是否抑制已知冗长驱动的日志
        log_level (str): 日志级别
        log_to_console (bool): 日志是否输出到控制台
        log_to_file (bool): 日志是否输出到文件
        config_path (Path | None): 设置文件路径
    """

    def __init__(
        self,
        classpath: List[str] | None = None,
        jvm_path: str | None = None,
        jvm_options: List[str] | None = None,
        timeout_seconds: int = 0,
        collect_warnings: bool = False,
        disable_noisy_logging: bool = True,
        log_level: str = "INFO",
        log_to_console: bool = False,
        log_to_file: bool = True,
        config_path: Path | None = None,
    ) -> None:
        self.classpath = list(classpath or [])
        self.jvm_path = jvm_path or None
        self.jvm_options = list(jvm_options or [])
        self.timeout_seconds = timeout_seconds
        self.collect_warnings = collect_warnings
        self.disable_noisy_logging = disable_noisy_logging
        self.log_level = log_level
        self.log_to_console = log_to_console
        self.log_to_file = log_to_file
        self.config_path = config_path

    @classmethod
    def load(
        cls,
        config_dir: str | Path | None = None,
        app_name: str = DEFAULT_APP_NAME,
        environ: Mapping[str, str] | None = None,
    ) -> "ClientSettings":
        """
        从 settings.toml 加载设置，并应用环境变量覆盖

        Args:
            config_dir: 配置目录，为 None 时使用用户配置目录
            app_name: 应用名称
            environ: 环境变量映射，默认 os.environ

        Returns:
            ClientSettings: 设置实例

        Raises:
            ConfigError: 当文件格式无效或字段类型错误时

        Example:
            >>> settings = ClientSettings.load()
            >>> settings.timeout_seconds
            0
        """
        environ = os.environ if environ is None else environ
        config_path = _resolve_config_dir(app_name, config_dir) / SETTINGS_FILE

        data: Dict[str, Any] = {}
        if config_path.exists():
            try:
                with open(config_path, "rb") as f:
                    data = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                logger.error(f"设置文件TOML格式错误: {str(e)}")
                raise ConfigError(
                    f"设置文件格式无效: {str(e)}",
                    "CONFIG_001",
                    config_file=str(config_path),
                ) from e
            logger.debug(f"设置文件已加载: {config_path}")

        reader = _SectionReader(data, config_path)
        settings = cls(
            classpath=reader.get_list("jvm", "classpath"),
            jvm_path=reader.get("jvm", "jvm_path", str, ""),
            jvm_options=reader.get_list("jvm", "options"),
            timeout_seconds=reader.get("query", "timeout_seconds", int, 0),
            collect_warnings=reader.get("query", "collect_warnings", bool, False),
            disable_noisy_logging=reader.get(
                "query", "disable_noisy_logging", bool, True
            ),
            log_level=reader.get("logging", "level", str, "INFO"),
            log_to_console=reader.get("logging", "log_to_console", bool, False),
            log_to_file=reader.get("logging", "log_to_file", bool, True),
            config_path=config_path,
        )

        if settings.timeout_seconds < 0:
            raise ConfigError(
                "默认超时时间不能为负数",
                "CONFIG_002",
                config_file=str(config_path),
                config_key="query.timeout_seconds",
            )

        settings._apply_environment(environ)
        return settings

    def _apply_environment(self, environ: Mapping[str, str]) -> None:
        """应用环境变量覆盖"""
        self.classpath.extend(PathHelper.split_classpath(environ.get(ENV_CLASSPATH)))
        jvm_path = environ.get(ENV_JVM_PATH, "")
        if jvm_path:
            self.jvm_path = jvm_path

    def to_jvm_settings(self) -> JvmSettings:
        """转换为 JVM 启动配置，jar 路径被规范化为绝对路径"""
        return JvmSettings(
            classpath=[str(PathHelper.normalize_path(entry)) for entry in self.classpath],
            jvm_path=self.jvm_path,
            jvm_options=self.jvm_options,
        )

    def to_dict(self) -> Dict[str, Any]:
        """转换为与 settings.toml 结构一致的字典"""
        return {
            "jvm": {
                "classpath": list(self.classpath),
                "jvm_path": self.jvm_path or "",
                "options": list(self.jvm_options),
            },
            "query": {
                "timeout_seconds": self.timeout_seconds,
                "collect_warnings": self.collect_warnings,
                "disable_noisy_logging": self.disable_noisy_logging,
            },
            "logging": {
                "level": self.log_level,
                "log_to_console": self.log_to_console,
                "log_to_file": self.log_to_file,
            },
        }

    def save(self, config_path: str | Path | None = None) -> Path:
        """
        保存设置到 TOML 文件

        Args:
            config_path: 目标文件路径，默认为加载时的路径

        Returns:
            Path: 实际写入的文件路径

        Raises:
            ConfigError: 当没有可用路径或写入失败时
        """
        target = Path(config_path) if config_path is not None else self.config_path
        if target is None:
            raise ConfigError("未指定设置文件路径", "CONFIG_003")

        try:
            with open(target, "wb") as f:
                f.write(tomli_w.dumps(self.to_dict()).encode("utf-8"))
        except OSError as e:
            logger.error(f"保存设置文件失败: {str(e)}")
            raise ConfigError(
                f"设置文件保存失败: {str(e)}", "CONFIG_004", config_file=str(target)
            ) from e

        self.config_path = target
        logger.info(f"设置文件已保存: {target}")
        return target

    def __repr__(self) -> str:
        return (
            f"ClientSettings(classpath={self.classpath!r}, "
            f"timeout_seconds={self.timeout_seconds!r}, "
            f"collect_warnings={self.collect_warnings!r}, "
            f"log_level={self.log_level!r})"
        )


class _SectionReader:
    """按 节.键 读取设置并检查类型"""

    def __init__(self, data: Dict[str, Any], config_path: Path) -> None:
        self._data = data
        self._config_path = config_path

    def _raw(self, section: str, key: str) -> Any:
        section_data = self._data.get(section, {})
        if not isinstance(section_data, dict):
            raise ConfigError(
                f"设置节必须是表: [{section}]",
                "CONFIG_002",
                config_file=str(self._config_path),
                config_key=section,
            )
        return section_data.get(key)

    def get(self, section: str, key: str, expected_type: type, default: Any) -> Any:
        value = self._raw(section, key)
        if value is None:
            return default
        # bool 是 int 的子类，需要单独排除
        if not isinstance(value, expected_type) or (
            expected_type is int and isinstance(value, bool)
        ):
            raise ConfigError(
                f"设置项类型错误: {section}.{key} 应为 {expected_type.__name__}",
                "CONFIG_002",
                config_file=str(self._config_path),
                config_key=f"{section}.{key}",
            )
        return value

    def get_list(self, section: str, key: str) -> List[str]:
        value = self.get(section, key, list, [])
        if not all(isinstance(item, str) for item in value):
            raise ConfigError(
                f"设置项类型错误: {section}.{key} 应为字符串列表",
                "CONFIG_002",
                config_file=str(self._config_path),
                config_key=f"{section}.{key}",
            )
        return value


class ProfileStore:
    """
    连接档案存储

    管理命名的连接档案（连接字符串、用户名、密码），所有字段加密后保存在 TOML 文件中。

    Attributes:
        app_name (str): 应用名称
        config_dir (Path): 配置目录
        profiles_path (Path): 档案文件路径
        crypto (CryptoManager | None): 加密管理器实例

    Example:
        >>> store = ProfileStore()
        >>> store.add_profile("h2-mem", "jdbc:h2:mem:testdb")
        >>> target = store.to_target("h2-mem")
    """

    def __init__(
        self,
        app_name: str = DEFAULT_APP_NAME,
        config_dir: str | Path | None = None,
    ) -> None:
        """
        初始化连接档案存储

        Raises:
            ConfigError: 当档案文件或密钥初始化失败时
        """
        self.app_name = app_name
        self.config_dir = _resolve_config_dir(app_name, config_dir)
        self.profiles_path = self.config_dir / PROFILES_FILE
        self.crypto: CryptoManager | None = None
        self._ensure_store_exists()

    def _ensure_store_exists(self) -> None:
        try:
            if not self.profiles_path.exists():
                self._create_default_store()
            self._load_or_create_crypto_key()
            logger.debug(f"连接档案文件就绪: {self.profiles_path}")
        except ConfigError:
            raise
        except Exception as e:
            logger.error(f"初始化连接档案文件失败: {str(e)}")
            raise ConfigError(
                f"连接档案文件初始化失败: {str(e)}",
                config_file=str(self.profiles_path),
            ) from e

    def _create_default_store(self) -> None:
        timestamp = datetime.now().astimezone().isoformat()
        default_store = {
            "version": "1.0.0",
            "app_name": self.app_name,
            "profiles": {},
            "metadata": {"created": timestamp, "last_modified": timestamp},
        }
        self._save_store(default_store)
        logger.info(f"创建连接档案文件: {self.profiles_path}")

    def _load_or_create_crypto_key(self) -> None:
        key_file = self.config_dir / KEY_FILE

        if key_file.exists():
            try:
                with open(key_file, "r", encoding="utf-8") as f:
                    key_data = tomllib.loads(f.read())
            except (OSError, tomllib.TOMLDecodeError) as e:
                logger.error(f"加载加密密钥失败: {str(e)}")
                raise ConfigError(
                    f"加密密钥加载失败: {str(e)}", config_file=str(key_file)
                ) from e

            if "password" not in key_data or "salt" not in key_data:
                raise ConfigError("密钥文件格式无效", config_file=str(key_file))

            self.crypto = CryptoManager.from_saved_key(
                key_data["password"],
                key_data["salt"],
                key_data.get("iterations", DEFAULT_ITERATIONS),
            )
            logger.debug("加密密钥加载成功")
        else:
            self.crypto = CryptoManager()
            with open(key_file, "w", encoding="utf-8") as f:
                f.write(tomli_w.dumps(self.crypto.get_key_info()))
            logger.info("新加密密钥创建成功")

    def _load_store(self) -> Dict[str, Any]:
        try:
            with open(self.profiles_path, "rb") as f:
                store = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            logger.error(f"连接档案文件TOML格式错误: {str(e)}")
            raise ConfigError(
                f"连接档案文件格式无效: {str(e)}",
                config_file=str(self.profiles_path),
            ) from e
        except OSError as e:
            logger.error(f"加载连接档案文件失败: {str(e)}")
            raise ConfigError(
                f"连接档案文件加载失败: {str(e)}",
                config_file=str(self.profiles_path),
            ) from e

        for field in ("version", "app_name", "profiles", "metadata"):
            if field not in store:
                raise ConfigError(
                    f"连接档案文件缺少必需字段: {field}",
                    config_file=str(self.profiles_path),
                    config_key=field,
                )
        return store

    def _save_store(self, store: Dict[str, Any]) -> None:
        store["metadata"]["last_modified"] = datetime.now().astimezone().isoformat()
        try:
            with open(self.profiles_path, "wb") as f:
                f.write(tomli_w.dumps(store).encode("utf-8"))
        except OSError as e:
            logger.error(f"保存连接档案文件失败: {str(e)}")
            raise ConfigError(
                f"连接档案文件保存失败: {str(e)}",
                config_file=str(self.profiles_path),
            ) from e
        logger.debug(f"连接档案文件已保存: {self.profiles_path}")

    def _require_crypto(self) -> CryptoManager:
        if self.crypto is None:
            raise ConfigError("加密管理器未初始化，无法处理敏感信息")
        return self.crypto

    def _encrypt_profile(
        self,
        name: str,
        connection_string: str,
        username: str | None,
        password: str | None,
    ) -> Dict[str, str]:
        """校验档案参数并加密全部非空字段"""
        if not name or not isinstance(name, str):
            raise ValueError(ERROR_EMPTY_PROFILE_NAME)
        if not connection_string or not isinstance(connection_string, str):
            raise ValueError(ERROR_EMPTY_CONNECTION_STRING)

        # 尽早发现不支持的连接字符串
        resolve_driver_identifier(connection_string)

        crypto = self._require_crypto()
        values = {
            "connection_string": connection_string,
            "username": username,
            "password": password,
        }
        # 序列化为 JSON 后加密，解密时保留数据类型
        return {
            key: crypto.encrypt(json.dumps({"value": value}, ensure_ascii=False))
            for key, value in values.items()
            if value is not None
        }

    def add_profile(
        self,
        name: str,
        connection_string: str,
        username: str | None = None,
        password: str | None = None,
    ) -> None:
        """
        添加连接档案

        Args:
            name: 档案名称（唯一标识符）
            connection_string: JDBC 连接字符串
            username: 用户名
            password: 密码

        Raises:
            ValueError: 当名称或连接字符串为空时
            UnsupportedTargetError: 当连接字符串不匹配任何已知驱动时
            ConfigError: 当档案已存在或保存失败时
        """
        encrypted = self._encrypt_profile(name, connection_string, username, password)

        store = self._load_store()
        if name in store["profiles"]:
            raise ConfigError(f"连接档案已存在: {name}", config_key=name)

        store["profiles"][name] = encrypted
        self._save_store(store)
        logger.info(f"连接档案已添加: {name}")

    def update_profile(
        self,
        name: str,
        connection_string: str,
        username: str | None = None,
        password: str | None = None,
    ) -> None:
        """
        替换已有的连接档案，新参数校验失败时原档案保持不变

        Raises:
            ValueError: 当名称或连接字符串为空时
            UnsupportedTargetError: 当连接字符串不匹配任何已知驱动时
            ConfigError: 当档案不存在或保存失败时
        """
        encrypted = self._encrypt_profile(name, connection_string, username, password)

        store = self._load_store()
        if name not in store["profiles"]:
            raise ConfigError(f"连接档案不存在: {name}", config_key=name)

        store["profiles"][name] = encrypted
        self._save_store(store)
        logger.info(f"连接档案已更新: {name}")

    def remove_profile(self, name: str) -> None:
        """
        删除连接档案

        Raises:
            ValueError: 当名称为空时
            ConfigError: 当档案不存在时
        """
        if not name or not isinstance(name, str):
            raise ValueError(ERROR_EMPTY_PROFILE_NAME)

        store = self._load_store()
        if name not in store["profiles"]:
            raise ConfigError(f"连接档案不存在: {name}", config_key=name)

        del store["profiles"][name]
        self._save_store(store)
        logger.info(f"连接档案已删除: {name}")

    def get_profile(self, name: str) -> Dict[str, Any]:
        """
        获取连接档案（自动解密）

        Returns:
            Dict[str, Any]: 包含 connection_string、username、password 的字典，
            未设置的字段为 None

        Raises:
            ValueError: 当名称为空时
            ConfigError: 当档案不存在或内容损坏时
            CryptoError: 当解密失败时
        """
        if not name or not isinstance(name, str):
            raise ValueError(ERROR_EMPTY_PROFILE_NAME)

        store = self._load_store()
        if name not in store["profiles"]:
            raise ConfigError(f"连接档案不存在: {name}", config_key=name)

        crypto = self._require_crypto()
        profile: Dict[str, Any] = dict.fromkeys(PROFILE_FIELDS)
        for key, encrypted_value in store["profiles"][name].items():
            try:
                profile[key] = json.loads(crypto.decrypt(encrypted_value))["value"]
            except (json.JSONDecodeError, KeyError, TypeError) as e:
                raise ConfigError(
                    f"连接档案字段损坏: {name}.{key}",
                    config_file=str(self.profiles_path),
                    config_key=f"{name}.{key}",
                ) from e

        if not profile["connection_string"]:
            raise ConfigError(f"连接档案缺少连接字符串: {name}", config_key=name)

        logger.debug(f"连接档案已获取: {name}")
        return profile

    def list_profiles(self) -> List[str]:
        """列出所有连接档案名称"""
        return list(self._load_store()["profiles"].keys())

    def to_target(self, name: str) -> ConnectionTarget:
        """把连接档案转换为连接目标"""
        profile = self.get_profile(name)
        return ConnectionTarget(
            profile["connection_string"], profile["username"], profile["password"]
        )

    def __repr__(self) -> str:
        return f"ProfileStore(app_name={self.app_name!r}, profiles_path='{self.profiles_path}')"
