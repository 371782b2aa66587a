"""
数据库连接模型
"""
from sqlalchemy import Column, String, Text, Boolean, Integer
from .base import Base, IdMixin, TimestampMixin


class DatabaseConnection(Base, IdMixin, TimestampMixin):
    """数据库连接表"""
    __tablename__ = "database_connections"

    name = Column(String(100), nullable=False)
    type = Column(String(20), nullable=False)  # mysql, postgres, mssql, mariadb, sqlite
    host = Column(String(255), nullable=True)
    port = Column(Integer, nullable=True)
    username = Column(String(100), nullable=True)
    encrypted_password = Column(Text, nullable=True)
    database = Column(String(100), nullable=True)
    filename = Column(String(500), nullable=True)  # 仅 sqlite
    ssl = Column(Boolean, default=False, nullable=False)
    status = Column(String(20), default="enabled", nullable=False)  # enabled, disabled
    is_system = Column(Boolean, default=False, nullable=False)  # 系统内置连接不可删除

    def __repr__(self):
        return f"<DatabaseConnection(id={self.id}, name={self.name}, type={self.type})>"
