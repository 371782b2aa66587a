"""
代码生成器模型
"""
from sqlalchemy import Column, String, Text, Boolean, Integer, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from .base import Base, IdMixin, TimestampMixin


class CodeGenerator(Base, IdMixin, TimestampMixin):
    """代码生成器配置表"""
    __tablename__ = "code_generators"

    name = Column(String(100), nullable=False, unique=True)
    connection_id = Column(Integer, ForeignKey("database_connections.id"), nullable=False)
    table_name = Column(String(100), nullable=False)
    module_name = Column(String(100), nullable=False)
    business_name = Column(String(100), nullable=False)
    options = Column(Text, nullable=True)  # JSON: generate_api / generate_crud / generate_routes / generate_test
    remark = Column(Text, nullable=True)

    columns = relationship(
        "CodeGeneratorColumn",
        back_populates="generator",
        cascade="all, delete-orphan",
        order_by="CodeGeneratorColumn.sort",
    )

    def __repr__(self):
        return f"<CodeGenerator(id={self.id}, name={self.name}, table={self.table_name})>"


class CodeGeneratorColumn(Base, IdMixin, TimestampMixin):
    """代码生成器列配置表"""
    __tablename__ = "code_generator_columns"
    __table_args__ = (
        UniqueConstraint("generator_id", "column_name", name="uq_generator_column"),
    )

    generator_id = Column(Integer, ForeignKey("code_generators.id"), nullable=False, index=True)
    column_name = Column(String(100), nullable=False)
    column_comment = Column(String(500), nullable=False, default="")
    column_type = Column(String(100), nullable=False)
    mapped_type = Column(String(20), nullable=True)  # string, number, boolean, Date
    is_pk = Column(Boolean, default=False, nullable=False)
    is_increment = Column(Boolean, default=False, nullable=False)
    is_required = Column(Boolean, default=False, nullable=False)
    is_insert = Column(Boolean, default=True, nullable=False)
    is_edit = Column(Boolean, default=True, nullable=False)
    is_list = Column(Boolean, default=True, nullable=False)
    is_query = Column(Boolean, default=False, nullable=False)
    query_type = Column(String(20), nullable=True)  # 为空表示不支持查询
    html_type = Column(String(20), nullable=False, default="input")
    dict_type = Column(String(100), nullable=True)
    sort = Column(Integer, nullable=False, default=0)

    generator = relationship("CodeGenerator", back_populates="columns")

    def __repr__(self):
        return f"<CodeGeneratorColumn(id={self.id}, generator_id={self.generator_id}, column={self.column_name})>"
