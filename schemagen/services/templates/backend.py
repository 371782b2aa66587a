"""
后端模板（NestJS + TypeORM）
"""
from typing import List

from ..dto import CodeGeneratorColumn, QueryType
from .context import RenderContext, doc_comment, field_name, label, quote, ts_type

# 查询条件 -> TypeORM 查询运算符
QUERY_OPERATORS = {
    QueryType.NE: "Not",
    QueryType.GT: "MoreThan",
    QueryType.GTE: "MoreThanOrEqual",
    QueryType.LT: "LessThan",
    QueryType.LTE: "LessThanOrEqual",
    QueryType.LIKE: "Like",
    QueryType.BETWEEN: "Between",
}

# mapped_type -> class-validator 校验装饰器
VALIDATORS = {
    "string": "IsString",
    "number": "IsNumber",
    "boolean": "IsBoolean",
    "Date": "IsDateString",
}


def _dto_field_type(column: CodeGeneratorColumn) -> str:
    # DTO 中的日期以 ISO 字符串传输
    return "string" if column.mapped_type == "Date" else ts_type(column)


def render_entity(ctx: RenderContext) -> str:
    """实体类"""
    naming = ctx.naming
    lines = [
        "import { Column, Entity, PrimaryColumn, PrimaryGeneratedColumn } from 'typeorm';",
        "",
        f"@Entity({quote(ctx.config.table_name)})",
        f"export class {naming.business_pascal} {{",
    ]
    for column in ctx.columns:
        options = [f"name: {quote(column.column_name)}"]
        if column.column_comment:
            options.append(f"comment: {quote(column.column_comment)}")
        if column.is_increment:
            decorator = f"@PrimaryGeneratedColumn({{ {', '.join(options)} }})"
        elif column.is_pk:
            decorator = f"@PrimaryColumn({{ {', '.join(options)} }})"
        else:
            options.append(f"nullable: {'false' if column.is_required else 'true'}")
            decorator = f"@Column({{ {', '.join(options)} }})"
        optional = "" if column.is_pk or column.is_required else "?"
        lines.append(f"  {decorator}")
        lines.append(f"  {field_name(column)}{optional}: {ts_type(column)};")
        lines.append("")
    if lines[-1] == "":
        lines.pop()
    lines.append("}")
    return "\n".join(lines) + "\n"


def _dto_class(name: str, columns: List[CodeGeneratorColumn], all_optional: bool) -> List[str]:
    lines = [f"export class {name} {{"]
    for column in columns:
        required = column.is_required and not all_optional
        lines.append(f"  /** {doc_comment(label(column))} */")
        lines.append("  @IsNotEmpty()" if required else "  @IsOptional()")
        lines.append(f"  @{VALIDATORS[column.mapped_type]}()")
        lines.append(f"  {field_name(column)}{'' if required else '?'}: {_dto_field_type(column)};")
        lines.append("")
    if lines[-1] == "":
        lines.pop()
    lines.append("}")
    return lines


def render_dto(ctx: RenderContext) -> str:
    """新增、修改、查询 DTO"""
    naming = ctx.naming
    used = {VALIDATORS[column.mapped_type] for column in ctx.insert_columns + ctx.edit_columns}
    used.update(("IsInt", "IsNotEmpty", "IsOptional", "Min"))
    lines = [
        f"import {{ {', '.join(sorted(used))} }} from 'class-validator';",
        "import { Type } from 'class-transformer';",
        "",
    ]
    lines.extend(_dto_class(f"Create{naming.business_pascal}Dto", ctx.insert_columns, all_optional=False))
    lines.append("")
    lines.extend(_dto_class(f"Update{naming.business_pascal}Dto", ctx.edit_columns, all_optional=True))
    lines.append("")

    lines.append(f"export class Query{naming.business_pascal}Dto {{")
    for column in ctx.query_columns:
        name = field_name(column)
        if column.query_type == QueryType.BETWEEN:
            lines.append(f"  /** {doc_comment(label(column))}范围 */")
            lines.append("  @IsOptional()")
            lines.append(f"  {name}Range?: [{_dto_field_type(column)}, {_dto_field_type(column)}];")
        else:
            lines.append(f"  /** {doc_comment(label(column))} */")
            lines.append("  @IsOptional()")
            lines.append(f"  {name}?: {_dto_field_type(column)};")
        lines.append("")
    lines.extend([
        "  @IsOptional()",
        "  @Type(() => Number)",
        "  @IsInt()",
        "  @Min(1)",
        "  page?: number = 1;",
        "",
        "  @IsOptional()",
        "  @Type(() => Number)",
        "  @IsInt()",
        "  @Min(1)",
        "  pageSize?: number = 10;",
        "}",
    ])
    return "\n".join(lines) + "\n"


def _where_lines(ctx: RenderContext) -> List[str]:
    lines = []
    for column in ctx.query_columns:
        name = field_name(column)
        if column.query_type == QueryType.BETWEEN:
            lines.append(f"    if (query.{name}Range && query.{name}Range.length === 2) {{")
            lines.append(f"      where.{name} = Between(query.{name}Range[0], query.{name}Range[1]);")
            lines.append("    }")
            continue
        lines.append(f"    if (query.{name} !== undefined && query.{name} !== null && query.{name} !== '') {{")
        if column.query_type == QueryType.EQ:
            lines.append(f"      where.{name} = query.{name};")
        elif column.query_type == QueryType.LIKE:
            lines.append(f"      where.{name} = Like(`%${{query.{name}}}%`);")
        else:
            lines.append(f"      where.{name} = {QUERY_OPERATORS[column.query_type]}(query.{name});")
        lines.append("    }")
    return lines


def render_service(ctx: RenderContext) -> str:
    """Service：增删改查"""
    naming = ctx.naming
    entity = naming.business_pascal
    operators = sorted({
        QUERY_OPERATORS[column.query_type]
        for column in ctx.query_columns
        if column.query_type in QUERY_OPERATORS
    })
    typeorm_imports = ", ".join(["FindOptionsWhere", "Repository"] + operators)
    lines = [
        "import { Injectable, NotFoundException } from '@nestjs/common';",
        "import { InjectRepository } from '@nestjs/typeorm';",
        f"import {{ {typeorm_imports} }} from 'typeorm';",
        f"import {{ {entity} }} from './entities/{naming.business_kebab}.entity';",
        f"import {{ Create{entity}Dto, Query{entity}Dto, Update{entity}Dto }} from './dto/{naming.business_kebab}.dto';",
        "",
        "@Injectable()",
        f"export class {entity}Service {{",
        "  constructor(",
        f"    @InjectRepository({entity})",
        f"    private readonly repository: Repository<{entity}>,",
        "  ) {}",
        "",
        f"  async findAll(query: Query{entity}Dto) {{",
        "    const page = query.page ?? 1;",
        "    const pageSize = query.pageSize ?? 10;",
        f"    const where: FindOptionsWhere<{entity}> = {{}};",
    ]
    lines.extend(_where_lines(ctx))
    lines.extend([
        "    const [list, total] = await this.repository.findAndCount({",
        "      where,",
        "      skip: (page - 1) * pageSize,",
        "      take: pageSize,",
        "    });",
        "    return { list, total, page, pageSize };",
        "  }",
        "",
        f"  async findOne({ctx.pk_field}: {ctx.pk_ts_type}) {{",
        f"    const record = await this.repository.findOneBy({{ {ctx.pk_field} }});",
        "    if (!record) {",
        f"      throw new NotFoundException(`{ctx.title}不存在: ${{{ctx.pk_field}}}`);",
        "    }",
        "    return record;",
        "  }",
        "",
        f"  create(dto: Create{entity}Dto) {{",
        "    return this.repository.save(this.repository.create(dto as any));",
        "  }",
        "",
        f"  async update({ctx.pk_field}: {ctx.pk_ts_type}, dto: Update{entity}Dto) {{",
        f"    await this.findOne({ctx.pk_field});",
        f"    await this.repository.update({{ {ctx.pk_field} }}, dto as any);",
        f"    return this.findOne({ctx.pk_field});",
        "  }",
        "",
        f"  async remove({ctx.pk_field}: {ctx.pk_ts_type}) {{",
        f"    await this.findOne({ctx.pk_field});",
        f"    await this.repository.delete({{ {ctx.pk_field} }});",
        "  }",
        "}",
    ])
    return "\n".join(lines) + "\n"


def render_controller(ctx: RenderContext) -> str:
    """Controller：REST 接口"""
    naming = ctx.naming
    entity = naming.business_pascal
    numeric_pk = ctx.pk_ts_type == "number"
    pipe = ", ParseIntPipe" if numeric_pk else ""
    param = f"@Param('{ctx.pk_field}'{pipe}) {ctx.pk_field}: {ctx.pk_ts_type}"
    common_imports = "Body, Controller, Delete, Get, Param, " + ("ParseIntPipe, " if numeric_pk else "") + "Post, Put, Query"
    lines = [
        f"import {{ {common_imports} }} from '@nestjs/common';",
        f"import {{ {entity}Service }} from './{naming.business_kebab}.service';",
        f"import {{ Create{entity}Dto, Query{entity}Dto, Update{entity}Dto }} from './dto/{naming.business_kebab}.dto';",
        "",
        f"@Controller({quote(naming.api_path)})",
        f"export class {entity}Controller {{",
        f"  constructor(private readonly {naming.business_camel}Service: {entity}Service) {{}}",
        "",
        "  @Get()",
        f"  findAll(@Query() query: Query{entity}Dto) {{",
        f"    return this.{naming.business_camel}Service.findAll(query);",
        "  }",
        "",
        f"  @Get(':{ctx.pk_field}')",
        f"  findOne({param}) {{",
        f"    return this.{naming.business_camel}Service.findOne({ctx.pk_field});",
        "  }",
        "",
        "  @Post()",
        f"  create(@Body() dto: Create{entity}Dto) {{",
        f"    return this.{naming.business_camel}Service.create(dto);",
        "  }",
        "",
        f"  @Put(':{ctx.pk_field}')",
        f"  update({param}, @Body() dto: Update{entity}Dto) {{",
        f"    return this.{naming.business_camel}Service.update({ctx.pk_field}, dto);",
        "  }",
        "",
        f"  @Delete(':{ctx.pk_field}')",
        f"  remove({param}) {{",
        f"    return this.{naming.business_camel}Service.remove({ctx.pk_field});",
        "  }",
        "}",
    ]
    return "\n".join(lines) + "\n"


def render_module(ctx: RenderContext) -> str:
    """Module：注册实体、Service、Controller"""
    naming = ctx.naming
    entity = naming.business_pascal
    lines = [
        "import { Module } from '@nestjs/common';",
        "import { TypeOrmModule } from '@nestjs/typeorm';",
        f"import {{ {entity} }} from './entities/{naming.business_kebab}.entity';",
        f"import {{ {entity}Controller }} from './{naming.business_kebab}.controller';",
        f"import {{ {entity}Service }} from './{naming.business_kebab}.service';",
        "",
        "@Module({",
        f"  imports: [TypeOrmModule.forFeature([{entity}])],",
        f"  controllers: [{entity}Controller],",
        f"  providers: [{entity}Service],",
        f"  exports: [{entity}Service],",
        "})",
        f"export class {entity}Module {{}}",
    ]
    return "\n".join(lines) + "\n"
