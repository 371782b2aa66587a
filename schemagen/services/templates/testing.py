"""
后端单元测试骨架（Jest）
"""
from typing import List

from ..dto import CodeGeneratorColumn
from .context import RenderContext, field_name, quote


def _sample_value(column: CodeGeneratorColumn) -> str:
    if column.mapped_type == "number":
        return "1"
    if column.mapped_type == "boolean":
        return "true"
    if column.mapped_type == "Date":
        return "'2024-01-01T00:00:00.000Z'"
    return quote(column.column_name)


def _sample_object(columns: List[CodeGeneratorColumn]) -> str:
    pairs = [f"{field_name(column)}: {_sample_value(column)}" for column in columns]
    return "{ " + ", ".join(pairs) + " }" if pairs else "{}"


def render_service_spec(ctx: RenderContext) -> str:
    naming = ctx.naming
    entity = naming.business_pascal
    sample_id = "1" if ctx.pk_ts_type == "number" else "'1'"
    lines = [
        "import { NotFoundException } from '@nestjs/common';",
        "import { Test, TestingModule } from '@nestjs/testing';",
        "import { getRepositoryToken } from '@nestjs/typeorm';",
        f"import {{ {entity} }} from './entities/{naming.business_kebab}.entity';",
        f"import {{ {entity}Service }} from './{naming.business_kebab}.service';",
        "",
        f"describe('{entity}Service', () => {{",
        f"  let service: {entity}Service;",
        "  const repository = {",
        "    findAndCount: jest.fn(),",
        "    findOneBy: jest.fn(),",
        "    create: jest.fn((dto) => dto),",
        "    save: jest.fn((entity) => Promise.resolve(entity)),",
        "    update: jest.fn(),",
        "    delete: jest.fn(),",
        "  };",
        "",
        "  beforeEach(async () => {",
        "    jest.clearAllMocks();",
        "    const module: TestingModule = await Test.createTestingModule({",
        "      providers: [",
        f"        {entity}Service,",
        f"        {{ provide: getRepositoryToken({entity}), useValue: repository }},",
        "      ],",
        "    }).compile();",
        "",
        f"    service = module.get<{entity}Service>({entity}Service);",
        "  });",
        "",
        "  it('returns a page of records', async () => {",
        "    repository.findAndCount.mockResolvedValue([[], 0]);",
        "    const result = await service.findAll({ page: 1, pageSize: 10 });",
        "    expect(result).toEqual({ list: [], total: 0, page: 1, pageSize: 10 });",
        "  });",
        "",
        "  it('creates a record', async () => {",
        f"    const dto = {_sample_object(ctx.insert_columns)};",
        "    await expect(service.create(dto as any)).resolves.toEqual(dto);",
        "  });",
        "",
        "  it('throws when the record does not exist', async () => {",
        "    repository.findOneBy.mockResolvedValue(null);",
        f"    await expect(service.findOne({sample_id})).rejects.toBeInstanceOf(NotFoundException);",
        "  });",
        "});",
    ]
    return "\n".join(lines) + "\n"


def render_controller_spec(ctx: RenderContext) -> str:
    naming = ctx.naming
    entity = naming.business_pascal
    sample_id = "1" if ctx.pk_ts_type == "number" else "'1'"
    lines = [
        "import { Test, TestingModule } from '@nestjs/testing';",
        f"import {{ {entity}Controller }} from './{naming.business_kebab}.controller';",
        f"import {{ {entity}Service }} from './{naming.business_kebab}.service';",
        "",
        f"describe('{entity}Controller', () => {{",
        f"  let controller: {entity}Controller;",
        "  const service = {",
        "    findAll: jest.fn(),",
        "    findOne: jest.fn(),",
        "    create: jest.fn(),",
        "    update: jest.fn(),",
        "    remove: jest.fn(),",
        "  };",
        "",
        "  beforeEach(async () => {",
        "    jest.clearAllMocks();",
        "    const module: TestingModule = await Test.createTestingModule({",
        f"      controllers: [{entity}Controller],",
        f"      providers: [{{ provide: {entity}Service, useValue: service }}],",
        "    }).compile();",
        "",
        f"    controller = module.get<{entity}Controller>({entity}Controller);",
        "  });",
        "",
        "  it('delegates list queries to the service', async () => {",
        "    service.findAll.mockResolvedValue({ list: [], total: 0, page: 1, pageSize: 10 });",
        "    await controller.findAll({ page: 1, pageSize: 10 });",
        "    expect(service.findAll).toHaveBeenCalledWith({ page: 1, pageSize: 10 });",
        "  });",
        "",
        "  it('delegates lookups by key to the service', async () => {",
        f"    await controller.findOne({sample_id});",
        f"    expect(service.findOne).toHaveBeenCalledWith({sample_id});",
        "  });",
        "});",
    ]
    return "\n".join(lines) + "\n"
