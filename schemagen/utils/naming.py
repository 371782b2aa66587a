"""
命名转换工具
模块名、业务名在生成代码时需要多种命名形式
"""
import re
from typing import List

_WORD_PATTERN = re.compile(r"[A-Z]+(?=[A-Z][a-z0-9]|\b|_|-|\s|$)|[A-Z]?[a-z0-9]+|[A-Z]+|\d+")


def split_words(name: str) -> List[str]:
    """
    将任意形式的名称拆分为单词列表

    支持 snake_case、kebab-case、camelCase、PascalCase 以及空格分隔，
    连续大写的缩写（如 HTTPServer）按缩写整体处理。

    Args:
        name: 原始名称

    Returns:
        小写单词列表
    """
    if not name:
        return []
    words = []
    for chunk in re.split(r"[\s_\-.]+", name.strip()):
        if chunk:
            words.extend(match.group(0) for match in _WORD_PATTERN.finditer(chunk))
    return [word.lower() for word in words if word]


def to_pascal_case(name: str) -> str:
    """user_role -> UserRole"""
    return "".join(word[:1].upper() + word[1:] for word in split_words(name))


def to_camel_case(name: str) -> str:
    """user_role -> userRole"""
    pascal = to_pascal_case(name)
    return pascal[:1].lower() + pascal[1:]


def to_kebab_case(name: str) -> str:
    """UserRole -> user-role"""
    return "-".join(split_words(name))


def to_snake_case(name: str) -> str:
    """UserRole -> user_role"""
    return "_".join(split_words(name))
