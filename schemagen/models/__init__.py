"""
数据库模型包
"""
from .base import Base
from .database_connection import DatabaseConnection
from .code_generator import CodeGenerator, CodeGeneratorColumn

__all__ = [
    "Base",
    "DatabaseConnection",
    "CodeGenerator",
    "CodeGeneratorColumn",
]
