"""
基础设施测试
验证加密服务、缓存服务和日志功能
"""
import logging

import pytest
from cryptography.fernet import Fernet

from schemagen.services.cache_service import CacheService
from schemagen.services.encryption_service import EncryptionService
from schemagen.services.errors import DatabaseConnectionError
from schemagen.utils.logger import log_database_connection_error


class TestEncryptionService:
    """测试加密服务"""

    def test_round_trip(self, encryption):
        encrypted = encryption.encrypt_password("my_secret_password_123")
        assert encrypted != "my_secret_password_123"
        assert encryption.decrypt_password(encrypted) == "my_secret_password_123"

    def test_empty_password(self, encryption):
        assert encryption.encrypt_password("") is None
        assert encryption.decrypt_password(None) is None

    def test_wrong_key(self, encryption):
        encrypted = encryption.encrypt_password("secret")
        other = EncryptionService(Fernet.generate_key())
        with pytest.raises(DatabaseConnectionError):
            other.decrypt_password(encrypted)

    def test_key_from_environment(self, monkeypatch):
        key = EncryptionService.generate_key()
        monkeypatch.setenv("ENCRYPTION_KEY", key)
        first = EncryptionService()
        second = EncryptionService()
        assert second.decrypt_password(first.encrypt_password("secret")) == "secret"


class TestCacheService:
    """测试缓存服务"""

    def test_lru_eviction(self):
        cache = CacheService(max_size=2)
        cache.set("a", 1)
        cache.set("b", 2)
        assert cache.get("a") == 1
        cache.set("c", 3)
        assert cache.get("b") is None
        assert cache.get("a") == 1
        assert cache.get("c") == 3

    def test_make_key_is_canonical(self):
        assert CacheService.make_key("render", {"a": 1, "b": [1, 2]}) == \
            CacheService.make_key("render", {"b": [1, 2], "a": 1})
        assert CacheService.make_key("render", {"a": 1}) != CacheService.make_key("render", {"a": 2})

    def test_disabled_cache(self):
        cache = CacheService(max_size=0)
        cache.set("a", 1)
        assert cache.get("a") is None

    def test_stats(self):
        cache = CacheService(max_size=4)
        cache.set("a", 1)
        cache.get("a")
        cache.get("missing")
        stats = cache.get_stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["size"] == 1


class TestLogger:
    """测试日志工具"""

    def test_connection_error_redacts_password(self, caplog):
        logger = logging.getLogger("redact_check")
        with caplog.at_level(logging.ERROR, logger="redact_check"):
            log_database_connection_error(
                logger, {"type": "mysql", "host": "h", "password": "topsecret"}, RuntimeError("refused")
            )
        assert "topsecret" not in caplog.text
        assert "refused" in caplog.text
