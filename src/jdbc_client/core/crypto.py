"""
加密模块

连接档案中的连接字符串、用户名和密码使用 Fernet 对称加密保存。
Fernet 密钥由随机口令和盐值经 PBKDF2-HMAC-SHA256 派生，
口令、盐值和迭代次数保存在 encryption.key 中，重新加载时派生出同一把密钥。
"""

import base64
import secrets
from typing import Any, Dict

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..utils.logging_utils import get_logger
from .exceptions import CryptoError

logger = get_logger(__name__)

SALT_BYTES = 16
PASSWORD_BYTES = 32
# OWASP 对 PBKDF2-HMAC-SHA256 的推荐值
DEFAULT_ITERATIONS = 480000


def derive_fernet_key(password: str, salt: bytes, iterations: int) -> bytes:
    """
    从口令和盐值派生 Fernet 密钥

    Returns:
        bytes: urlsafe base64 编码的 32 字节密钥
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=iterations,
    )
    return base64.urlsafe_b64encode(kdf.derive(password.encode("utf-8")))


class CryptoManager:
    """
    字符串加解密

    Attributes:
        password (str): 派生密钥的口令
        salt (bytes): 盐值
        iterations (int): PBKDF2 迭代次数

    Example:
        >>> crypto = CryptoManager()
        >>> crypto.decrypt(crypto.encrypt("jdbc:h2:mem:testdb"))
        'jdbc:h2:mem:testdb'
    """

    def __init__(
        self,
        password: str | None = None,
        salt: bytes | None = None,
        iterations: int = DEFAULT_ITERATIONS,
    ):
        """
        Args:
            password: 口令，为 None 时生成随机口令
            salt: 盐值，为 None 时生成随机盐值
            iterations: PBKDF2 迭代次数

        Raises:
            CryptoError: 当密钥派生失败时
        """
        self.password = password or base64.urlsafe_b64encode(
            secrets.token_bytes(PASSWORD_BYTES)
        ).decode("utf-8")
        self.salt = salt or secrets.token_bytes(SALT_BYTES)
        self.iterations = iterations

        try:
            self._fernet = Fernet(derive_fernet_key(self.password, self.salt, iterations))
        except Exception as e:
            logger.error(f"加密密钥派生失败: {str(e)}")
            raise CryptoError(
                f"加密密钥派生失败: {str(e)}", operation="derive_key"
            ) from e

    def encrypt(self, data: str) -> str:
        """
        加密字符串

        Returns:
            str: base64 文本形式的密文，可以直接写入 TOML

        Raises:
            ValueError: 当数据为空或不是字符串时
            CryptoError: 当加密失败时
        """
        if not data or not isinstance(data, str):
            raise ValueError("加密数据不能为空且必须是字符串")

        try:
            token = self._fernet.encrypt(data.encode("utf-8"))
        except Exception as e:
            logger.error(f"加密失败: {str(e)}")
            raise CryptoError(f"加密失败: {str(e)}", operation="encrypt") from e
        return base64.urlsafe_b64encode(token).decode("utf-8")

    def decrypt(self, encrypted_data: str) -> str:
        """
        解密 encrypt() 生成的密文

        Raises:
            ValueError: 当数据为空或不是字符串时
            CryptoError: 当密文被篡改、密钥不匹配或格式无效时
        """
        if not encrypted_data or not isinstance(encrypted_data, str):
            raise ValueError("加密数据不能为空且必须是字符串")

        try:
            token = base64.urlsafe_b64decode(encrypted_data.encode("utf-8"))
            return self._fernet.decrypt(token).decode("utf-8")
        except InvalidToken as e:
            logger.error("解密失败: 密文无效或密钥不匹配")
            raise CryptoError(
                "解密失败: 加密数据可能被篡改或密钥不匹配", operation="decrypt"
            ) from e
        except (ValueError, UnicodeDecodeError) as e:
            logger.error(f"解密失败: {str(e)}")
            raise CryptoError(f"解密失败: {str(e)}", operation="decrypt") from e

    def get_key_info(self) -> Dict[str, Any]:
        """返回需要写入 encryption.key 的密钥信息"""
        return {
            "password": self.password,
            "salt": base64.urlsafe_b64encode(self.salt).decode("utf-8"),
            "iterations": self.iterations,
        }

    @classmethod
    def from_saved_key(
        cls, password: str, salt: str, iterations: int = DEFAULT_ITERATIONS
    ) -> "CryptoManager":
        """
        从 get_key_info() 保存的信息恢复

        Raises:
            ValueError: 当口令或盐值为空时
            CryptoError: 当盐值无法解码时
        """
        if not password or not salt:
            raise ValueError("密码和盐值不能为空")

        try:
            salt_bytes = base64.urlsafe_b64decode(salt.encode("utf-8"))
        except ValueError as e:
            logger.error(f"盐值解码失败: {str(e)}")
            raise CryptoError(f"密钥恢复失败: {str(e)}", operation="load_key") from e
        return cls(password, salt_bytes, iterations)

    def __repr__(self) -> str:
        return (
            f"<CryptoManager salt_length={len(self.salt)}, "
            f"iterations={self.iterations}>"
        )
