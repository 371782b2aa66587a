"""
加密服务
用于加密和解密数据库连接密码
"""
import os
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from .errors import DatabaseConnectionError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class EncryptionService:
    """加密服务类"""

    def __init__(self, key: Optional[bytes] = None):
        """
        初始化加密服务

        Args:
            key: 加密密钥（32字节URL安全的base64编码字符串）
                 如果为None，则从环境变量ENCRYPTION_KEY读取
                 如果环境变量也不存在，则生成临时密钥（进程重启后无法解密旧密码）
        """
        if key is None:
            key_str = os.getenv("ENCRYPTION_KEY")
            if key_str:
                key = key_str.encode()
            else:
                key = Fernet.generate_key()
                logger.warning(
                    "未找到ENCRYPTION_KEY环境变量，已生成临时密钥，"
                    "请在.env中配置固定密钥，否则重启后已保存的连接密码将无法解密"
                )

        self.cipher = Fernet(key)

    def encrypt_password(self, password: Optional[str]) -> Optional[str]:
        """
        加密连接密码

        Args:
            password: 明文密码，空值表示无密码

        Returns:
            密文（base64编码），无密码时返回None
        """
        if not password:
            return None
        return self.cipher.encrypt(password.encode()).decode()

    def decrypt_password(self, encrypted_password: Optional[str]) -> Optional[str]:
        """
        解密连接密码

        Args:
            encrypted_password: 密文

        Returns:
            明文密码，无密码时返回None

        Raises:
            DatabaseConnectionError: 密文无效或密钥已变更
        """
        if not encrypted_password:
            return None
        try:
            return self.cipher.decrypt(encrypted_password.encode()).decode()
        except InvalidToken as e:
            logger.error("解密数据库密码失败，请检查ENCRYPTION_KEY是否变更")
            raise DatabaseConnectionError("无法解密数据库密码") from e

    @staticmethod
    def generate_key() -> str:
        """
        生成新的加密密钥

        Returns:
            新生成的密钥（base64编码字符串）
        """
        return Fernet.generate_key().decode()


# 全局加密服务实例
_encryption_service = None


def get_encryption_service() -> EncryptionService:
    """获取全局加密服务实例"""
    global _encryption_service
    if _encryption_service is None:
        _encryption_service = EncryptionService()
    return _encryption_service
