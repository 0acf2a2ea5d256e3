"""
配置管理测试
"""

import os
from pathlib import Path

import pytest

from jdbc_client.core.config import ClientSettings, ProfileStore
from jdbc_client.core.exceptions import ConfigError, UnsupportedTargetError

SETTINGS_TOML = """
[jvm]
classpath = ["/opt/jdbc/h2.jar", "/opt/jdbc/mssql-jdbc.jar"]
jvm_path = "/usr/lib/jvm/lib/server/libjvm.so"
options = ["-Xmx256m"]

[query]
timeout_seconds = 30
collect_warnings = true
disable_noisy_logging = false

[logging]
level = "DEBUG"
log_to_console = true
log_to_file = false
"""


class TestClientSettings:
    """ClientSettings测试类"""

    def test_defaults_when_file_missing(self, tmp_path):
        """测试设置文件不存在时使用默认值"""
        settings = ClientSettings.load(config_dir=tmp_path, environ={})

        assert settings.classpath == []
        assert settings.jvm_path is None
        assert settings.timeout_seconds == 0
        assert settings.collect_warnings is False
        assert settings.disable_noisy_logging is True
        assert settings.log_level == "INFO"
        assert settings.config_path == tmp_path / "settings.toml"
        assert not settings.config_path.exists()

    def test_load_from_file(self, tmp_path):
        """测试从 TOML 文件加载"""
        (tmp_path / "settings.toml").write_text(SETTINGS_TOML, encoding="utf-8")

        settings = ClientSettings.load(config_dir=tmp_path, environ={})

        assert settings.classpath == ["/opt/jdbc/h2.jar", "/opt/jdbc/mssql-jdbc.jar"]
        assert settings.jvm_path == "/usr/lib/jvm/lib/server/libjvm.so"
        assert settings.jvm_options == ["-Xmx256m"]
        assert settings.timeout_seconds == 30
        assert settings.collect_warnings is True
        assert settings.disable_noisy_logging is False
        assert settings.log_level == "DEBUG"
        assert settings.log_to_console is True
        assert settings.log_to_file is False

    def test_environment_overrides(self, tmp_path):
        """测试环境变量覆盖"""
        (tmp_path / "settings.toml").write_text(SETTINGS_TOML, encoding="utf-8")
        environ = {
            "JDBC_CLIENT_CLASSPATH": os.pathsep.join(["/extra/a.jar", "", "/extra/b.jar"]),
            "JDBC_CLIENT_JVM_PATH": "/custom/libjvm.so",
        }

        settings = ClientSettings.load(config_dir=tmp_path, environ=environ)

        assert settings.classpath[-2:] == ["/extra/a.jar", "/extra/b.jar"]
        assert len(settings.classpath) == 4
        assert settings.jvm_path == "/custom/libjvm.so"

    @pytest.mark.parametrize(
        "content, key",
        [
            ('[query]\ntimeout_seconds = "30"\n', "query.timeout_seconds"),
            ("[query]\ncollect_warnings = 1\n", "query.collect_warnings"),
            ("[query]\ntimeout_seconds = true\n", "query.timeout_seconds"),
            ('[jvm]\nclasspath = "/opt/jdbc/h2.jar"\n', "jvm.classpath"),
            ("[jvm]\nclasspath = [1, 2]\n", "jvm.classpath"),
            ("[query]\ntimeout_seconds = -5\n", "query.timeout_seconds"),
            ('jvm = "not a table"\n', "jvm"),
        ],
    )
    def test_invalid_values(self, tmp_path, content, key):
        """测试字段类型错误"""
        (tmp_path / "settings.toml").write_text(content, encoding="utf-8")

        with pytest.raises(ConfigError) as exc_info:
            ClientSettings.load(config_dir=tmp_path, environ={})

        assert exc_info.value.config_key == key

    def test_invalid_toml(self, tmp_path):
        """测试无效的 TOML 格式"""
        (tmp_path / "settings.toml").write_text("[jvm\nclasspath = ", encoding="utf-8")

        with pytest.raises(ConfigError) as exc_info:
            ClientSettings.load(config_dir=tmp_path, environ={})

        assert exc_info.value.error_code == "CONFIG_001"

    def test_save_and_reload(self, tmp_path):
        """测试保存后重新加载"""
        settings = ClientSettings.load(config_dir=tmp_path, environ={})
        settings.classpath.append("/opt/jdbc/h2.jar")
        settings.timeout_seconds = 15
        settings.save()

        reloaded = ClientSettings.load(config_dir=tmp_path, environ={})

        assert reloaded.classpath == ["/opt/jdbc/h2.jar"]
        assert reloaded.timeout_seconds == 15
        assert reloaded.jvm_path is None

    def test_save_without_path(self):
        """测试未指定路径时保存失败"""
        with pytest.raises(ConfigError):
            ClientSettings().save()

    def test_to_jvm_settings(self, tmp_path):
        """测试转换为 JVM 启动配置"""
        jar = tmp_path / "drivers" / ".." / "h2.jar"
        settings = ClientSettings(classpath=[str(jar)], jvm_options=["-Xss4m"])

        jvm_settings = settings.to_jvm_settings()

        assert jvm_settings.classpath == [str((tmp_path / "h2.jar").resolve())]
        assert jvm_settings.jvm_path is None
        assert jvm_settings.jvm_options == ["-Xss4m"]


class TestProfileStore:
    """ProfileStore测试类"""

    def setup_method(self):
        """测试方法 setup"""
        self.url = "jdbc:sqlserver://db:1433;databaseName=master"

    def test_add_get_profile(self, tmp_path):
        """测试添加和获取连接档案"""
        store = ProfileStore(config_dir=tmp_path)
        store.add_profile("mssql", self.url, "sa", "s3cret!")

        profile = store.get_profile("mssql")

        assert profile == {
            "connection_string": self.url,
            "username": "sa",
            "password": "s3cret!",
        }

    def test_optional_fields(self, tmp_path):
        """测试未设置的字段返回 None"""
        store = ProfileStore(config_dir=tmp_path)
        store.add_profile("h2", "jdbc:h2:mem:testdb")

        profile = store.get_profile("h2")

        assert profile["username"] is None
        assert profile["password"] is None

    def test_fields_encrypted_on_disk(self, tmp_path):
        """测试档案文件中不包含明文"""
        store = ProfileStore(config_dir=tmp_path)
        store.add_profile("mssql", self.url, "sa", "s3cret!")

        content = (tmp_path / "profiles.toml").read_text(encoding="utf-8")

        assert "s3cret!" not in content
        assert "databaseName" not in content
        assert (tmp_path / "encryption.key").exists()

    def test_reload_with_saved_key(self, tmp_path):
        """测试新实例使用保存的密钥解密"""
        ProfileStore(config_dir=tmp_path).add_profile("mssql", self.url, "sa", "pw")

        profile = ProfileStore(config_dir=tmp_path).get_profile("mssql")

        assert profile["password"] == "pw"

    def test_list_and_remove(self, tmp_path):
        """测试列出和删除连接档案"""
        store = ProfileStore(config_dir=tmp_path)
        store.add_profile("one", "jdbc:h2:mem:one")
        store.add_profile("two", "jdbc:h2:mem:two")

        assert store.list_profiles() == ["one", "two"]

        store.remove_profile("one")
        assert store.list_profiles() == ["two"]

        with pytest.raises(ConfigError):
            store.get_profile("one")

    def test_duplicate_profile(self, tmp_path):
        """测试重复添加"""
        store = ProfileStore(config_dir=tmp_path)
        store.add_profile("h2", "jdbc:h2:mem:testdb")

        with pytest.raises(ConfigError):
            store.add_profile("h2", "jdbc:h2:mem:other")

    def test_update_profile(self, tmp_path):
        """测试更新连接档案"""
        store = ProfileStore(config_dir=tmp_path)
        store.add_profile("db", "jdbc:h2:mem:testdb", "sa", "old")

        store.update_profile("db", "jdbc:postgresql://localhost/test", "postgres", "new")

        profile = store.get_profile("db")
        assert profile["connection_string"] == "jdbc:postgresql://localhost/test"
        assert profile["password"] == "new"

    def test_update_missing_profile(self, tmp_path):
        """测试更新不存在的档案"""
        store = ProfileStore(config_dir=tmp_path)

        with pytest.raises(ConfigError):
            store.update_profile("missing", "jdbc:h2:mem:testdb")

    def test_failed_update_keeps_profile(self, tmp_path):
        """测试更新参数无效时原档案保持不变"""
        store = ProfileStore(config_dir=tmp_path)
        store.add_profile("db", "jdbc:h2:mem:testdb", "sa", "old")

        with pytest.raises(UnsupportedTargetError):
            store.update_profile("db", "jdbc:unknown://host/db")

        assert store.get_profile("db")["password"] == "old"

    def test_unsupported_connection_string(self, tmp_path):
        """测试不支持的连接字符串在添加时被拒绝"""
        store = ProfileStore(config_dir=tmp_path)

        with pytest.raises(UnsupportedTargetError):
            store.add_profile("sqlite", "jdbc:sqlite:test.db")
        assert store.list_profiles() == []

    @pytest.mark.parametrize("name", ["", None])
    def test_invalid_name(self, tmp_path, name):
        """测试无效的档案名称"""
        store = ProfileStore(config_dir=tmp_path)

        with pytest.raises(ValueError):
            store.add_profile(name, "jdbc:h2:mem:testdb")

    def test_empty_connection_string(self, tmp_path):
        """测试空连接字符串"""
        store = ProfileStore(config_dir=tmp_path)

        with pytest.raises(ValueError):
            store.add_profile("h2", "")

    def test_to_target(self, tmp_path):
        """测试转换为连接目标"""
        store = ProfileStore(config_dir=tmp_path)
        store.add_profile("mssql", self.url, "sa", "pw")

        target = store.to_target("mssql")

        assert target.connection_string == self.url
        assert target.driver_args() == ["sa", "pw"]

    def test_corrupted_store(self, tmp_path):
        """测试档案文件缺少必需字段"""
        store = ProfileStore(config_dir=tmp_path)
        Path(store.profiles_path).write_text('version = "1.0.0"\n', encoding="utf-8")

        with pytest.raises(ConfigError):
            store.list_profiles()

    def test_invalid_key_file(self, tmp_path):
        """测试密钥文件格式无效"""
        (tmp_path / "encryption.key").write_text('salt = "abc"\n', encoding="utf-8")

        with pytest.raises(ConfigError):
            ProfileStore(config_dir=tmp_path)


if __name__ == "__main__":
    pytest.main()
