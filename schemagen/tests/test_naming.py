"""
命名转换测试
"""
import pytest

from schemagen.utils.naming import split_words, to_camel_case, to_kebab_case, to_pascal_case, to_snake_case


class TestNaming:
    """测试命名转换"""

    @pytest.mark.parametrize("name, words", [
        ("user_role", ["user", "role"]),
        ("user-role", ["user", "role"]),
        ("userRole", ["user", "role"]),
        ("UserRole", ["user", "role"]),
        ("user role", ["user", "role"]),
        ("HTTPServer", ["http", "server"]),
        ("", []),
    ])
    def test_split_words(self, name, words):
        assert split_words(name) == words

    def test_conversions(self):
        assert to_pascal_case("sys_user") == "SysUser"
        assert to_camel_case("sys_user") == "sysUser"
        assert to_kebab_case("SysUser") == "sys-user"
        assert to_snake_case("sysUser") == "sys_user"

    def test_single_word(self):
        assert to_pascal_case("user") == "User"
        assert to_camel_case("User") == "user"
        assert to_kebab_case("user") == "user"
