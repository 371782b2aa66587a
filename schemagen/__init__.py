"""
schemagen - 数据库表结构驱动的 CRUD 代码生成工作台
"""
__version__ = "0.1.0"
