"""
模板渲染上下文
命名形式只计算一次，所有模板共享同一个上下文
"""
from typing import List, Optional

from pydantic import BaseModel

from ..dto import CodeGeneratorColumn, CodeGeneratorConfig
from ...utils.naming import to_camel_case, to_kebab_case, to_pascal_case, to_snake_case

# mapped_type -> TypeScript 类型
TS_TYPES = {
    "string": "string",
    "number": "number",
    "boolean": "boolean",
    "Date": "Date",
}


class Naming(BaseModel):
    """模块名、业务名的各种命名形式"""
    module_pascal: str
    module_camel: str
    module_kebab: str
    module_snake: str
    business_pascal: str
    business_camel: str
    business_kebab: str
    business_snake: str

    @classmethod
    def from_config(cls, config: CodeGeneratorConfig) -> "Naming":
        return cls(
            module_pascal=to_pascal_case(config.module_name),
            module_camel=to_camel_case(config.module_name),
            module_kebab=to_kebab_case(config.module_name),
            module_snake=to_snake_case(config.module_name),
            business_pascal=to_pascal_case(config.business_name),
            business_camel=to_camel_case(config.business_name),
            business_kebab=to_kebab_case(config.business_name),
            business_snake=to_snake_case(config.business_name),
        )

    @property
    def backend_dir(self) -> str:
        return f"backend/src/modules/{self.module_kebab}/{self.business_kebab}"

    @property
    def frontend_page_dir(self) -> str:
        return f"frontend/src/pages/{self.module_kebab}/{self.business_pascal}"

    @property
    def api_path(self) -> str:
        """接口路由前缀"""
        return f"{self.module_kebab}/{self.business_kebab}"


class RenderContext(BaseModel):
    """单个代码生成器的渲染上下文"""
    config: CodeGeneratorConfig
    columns: List[CodeGeneratorColumn]
    naming: Naming

    @property
    def title(self) -> str:
        """页面标题，优先使用备注"""
        return self.config.remark or self.naming.business_pascal

    @property
    def primary_key(self) -> Optional[CodeGeneratorColumn]:
        for column in self.columns:
            if column.is_pk:
                return column
        return None

    @property
    def pk_field(self) -> str:
        pk = self.primary_key
        return field_name(pk) if pk else "id"

    @property
    def pk_ts_type(self) -> str:
        pk = self.primary_key
        return ts_type(pk) if pk else "number"

    @property
    def list_columns(self) -> List[CodeGeneratorColumn]:
        return [column for column in self.columns if column.is_list]

    @property
    def insert_columns(self) -> List[CodeGeneratorColumn]:
        return [column for column in self.columns if column.is_insert]

    @property
    def edit_columns(self) -> List[CodeGeneratorColumn]:
        return [column for column in self.columns if column.is_edit]

    @property
    def form_columns(self) -> List[CodeGeneratorColumn]:
        """新增或编辑表单中出现的列"""
        return [column for column in self.columns if column.is_insert or column.is_edit]

    @property
    def query_columns(self) -> List[CodeGeneratorColumn]:
        return [column for column in self.columns if column.is_query and column.query_type is not None]


def field_name(column: CodeGeneratorColumn) -> str:
    """列名 -> 生成代码中的属性名"""
    return to_camel_case(column.column_name)


def ts_type(column: CodeGeneratorColumn) -> str:
    return TS_TYPES.get(column.mapped_type, "string")


def label(column: CodeGeneratorColumn) -> str:
    """表单、表格中显示的字段名称"""
    return column.column_comment or column.column_name


def doc_comment(value: str) -> str:
    """放入 /** ... */ 注释块的文本，转义其中的 */"""
    return value.replace("*/", "*\\/")


def quote(value: str) -> str:
    """生成单引号 TypeScript 字符串字面量"""
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


def build_context(config: CodeGeneratorConfig, columns: List[CodeGeneratorColumn]) -> RenderContext:
    """构建渲染上下文，列按 (sort, column_name) 排序"""
    ordered = sorted(columns, key=lambda column: (column.sort, column.column_name))
    return RenderContext(config=config, columns=ordered, naming=Naming.from_config(config))
