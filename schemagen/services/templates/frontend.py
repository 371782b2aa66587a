"""
前端模板（React + Ant Design）
"""
from typing import List

from ..dto import CodeGeneratorColumn, HtmlType, QueryType
from .context import RenderContext, doc_comment, field_name, label, quote, ts_type

# 表单控件 -> JSX 片段，PLACEHOLDER、OPTIONS 在渲染时替换
FORM_COMPONENTS = {
    HtmlType.INPUT: "<Input placeholder={PLACEHOLDER} />",
    HtmlType.TEXTAREA: "<Input.TextArea rows={4} placeholder={PLACEHOLDER} />",
    HtmlType.SELECT: "<Select placeholder={PLACEHOLDER} options={OPTIONS} allowClear />",
    HtmlType.CHECKBOX: "<Checkbox.Group options={OPTIONS} />",
    HtmlType.RADIO: "<Radio.Group options={OPTIONS} />",
    HtmlType.DATETIME: "<DatePicker showTime style={{ width: '100%' }} />",
    HtmlType.UPLOAD: "<Upload maxCount={1}><Button>上传文件</Button></Upload>",
    HtmlType.IMAGE: "<Upload listType=\"picture-card\" maxCount={1}>上传</Upload>",
}

# 表单控件需要从 antd 引入的组件
ANTD_COMPONENTS = {
    HtmlType.INPUT: ("Input",),
    HtmlType.TEXTAREA: ("Input",),
    HtmlType.SELECT: ("Select",),
    HtmlType.CHECKBOX: ("Checkbox",),
    HtmlType.RADIO: ("Radio",),
    HtmlType.DATETIME: ("DatePicker",),
    HtmlType.UPLOAD: ("Upload", "Button"),
    HtmlType.IMAGE: ("Upload",),
}


def _api_type(column: CodeGeneratorColumn) -> str:
    # 接口返回的日期是 ISO 字符串
    return "string" if column.mapped_type == "Date" else ts_type(column)


def _options_expr(column: CodeGeneratorColumn) -> str:
    if column.dict_type:
        return f"useDictOptions({quote(column.dict_type)})"
    if column.mapped_type == "boolean":
        return "[{ label: '是', value: true }, { label: '否', value: false }]"
    return "[]"


def _component(column: CodeGeneratorColumn) -> str:
    template = FORM_COMPONENTS[column.html_type]
    return (
        template
        .replace("PLACEHOLDER", quote(f"请输入{label(column)}"))
        .replace("OPTIONS", _options_expr(column))
    )


def _uses_dict(columns: List[CodeGeneratorColumn]) -> bool:
    return any(column.dict_type for column in columns)


def render_api_types(ctx: RenderContext) -> str:
    """接口类型定义"""
    entity = ctx.naming.business_pascal
    lines = [f"export interface {entity} {{"]
    for column in ctx.columns:
        optional = "" if column.is_pk or column.is_required else "?"
        lines.append(f"  /** {doc_comment(label(column))} */")
        lines.append(f"  {field_name(column)}{optional}: {_api_type(column)};")
    lines.append("}")
    lines.append("")

    lines.append(f"export interface {entity}Query {{")
    for column in ctx.query_columns:
        name = field_name(column)
        if column.query_type == QueryType.BETWEEN:
            lines.append(f"  {name}Range?: [{_api_type(column)}, {_api_type(column)}];")
        else:
            lines.append(f"  {name}?: {_api_type(column)};")
    lines.append("  page?: number;")
    lines.append("  pageSize?: number;")
    lines.append("}")
    lines.append("")

    lines.append(f"export interface {entity}Form {{")
    for column in ctx.form_columns:
        lines.append(f"  {field_name(column)}?: {_api_type(column)};")
    lines.append("}")
    lines.append("")

    lines.extend([
        f"export interface {entity}PageResult {{",
        f"  list: {entity}[];",
        "  total: number;",
        "  page: number;",
        "  pageSize: number;",
        "}",
    ])
    return "\n".join(lines) + "\n"


def render_api_client(ctx: RenderContext) -> str:
    """接口请求函数"""
    naming = ctx.naming
    entity = naming.business_pascal
    base = f"/{naming.api_path}"
    pk_type = "number" if ctx.pk_ts_type == "number" else "string"
    lines = [
        "import request from '@/utils/request';",
        f"import type {{ {entity}, {entity}Form, {entity}PageResult, {entity}Query }} from './{naming.business_kebab}.types';",
        "",
        f"export function get{entity}List(params: {entity}Query) {{",
        f"  return request.get<{entity}PageResult>({quote(base)}, {{ params }});",
        "}",
        "",
        f"export function get{entity}(id: {pk_type}) {{",
        f"  return request.get<{entity}>(`{base}/${{id}}`);",
        "}",
        "",
        f"export function create{entity}(data: {entity}Form) {{",
        f"  return request.post<{entity}>({quote(base)}, data);",
        "}",
        "",
        f"export function update{entity}(id: {pk_type}, data: {entity}Form) {{",
        f"  return request.put<{entity}>(`{base}/${{id}}`, data);",
        "}",
        "",
        f"export function delete{entity}(id: {pk_type}) {{",
        f"  return request.delete<void>(`{base}/${{id}}`);",
        "}",
    ]
    return "\n".join(lines) + "\n"


def render_columns(ctx: RenderContext) -> str:
    """列表页表格列定义"""
    naming = ctx.naming
    entity = naming.business_pascal
    lines = [
        "import type { ColumnsType } from 'antd/es/table';",
    ]
    if _uses_dict(ctx.list_columns):
        lines.append("import DictTag from '@/components/DictTag';")
    lines.extend([
        f"import type {{ {entity} }} from '@/api/{naming.module_kebab}/{naming.business_kebab}.types';",
        "",
        f"export const {naming.business_camel}Columns: ColumnsType<{entity}> = [",
    ])
    for column in ctx.list_columns:
        lines.append("  {")
        lines.append(f"    title: {quote(label(column))},")
        lines.append(f"    dataIndex: {quote(field_name(column))},")
        if column.dict_type:
            lines.append(f"    render: (value) => <DictTag dictType={quote(column.dict_type)} value={{value}} />,")
        elif column.mapped_type == "boolean":
            lines.append("    render: (value) => (value ? '是' : '否'),")
        lines.append("  },")
    lines.append("];")
    return "\n".join(lines) + "\n"


def render_form(ctx: RenderContext) -> str:
    """新增、编辑表单组件"""
    naming = ctx.naming
    entity = naming.business_pascal
    columns = ctx.form_columns
    components = {"Form", "Modal"}
    for column in columns:
        components.update(ANTD_COMPONENTS[column.html_type])

    lines = [
        "import { useEffect } from 'react';",
        f"import {{ {', '.join(sorted(components))} }} from 'antd';",
    ]
    if _uses_dict(columns):
        lines.append("import { useDictOptions } from '@/hooks/useDictOptions';")
    lines.extend([
        f"import type {{ {entity}, {entity}Form as FormValues }} from '@/api/{naming.module_kebab}/{naming.business_kebab}.types';",
        "",
        "interface Props {",
        "  open: boolean;",
        f"  record?: {entity};",
        "  onCancel: () => void;",
        "  onSubmit: (values: FormValues) => Promise<void>;",
        "}",
        "",
        f"export default function {entity}Form({{ open, record, onCancel, onSubmit }}: Props) {{",
        "  const [form] = Form.useForm<FormValues>();",
        "  const isEdit = !!record;",
        "",
        "  useEffect(() => {",
        "    if (open) {",
        "      form.resetFields();",
        "      if (record) {",
        "        form.setFieldsValue(record as FormValues);",
        "      }",
        "    }",
        "  }, [open, record, form]);",
        "",
        "  const handleOk = async () => {",
        "    const values = await form.validateFields();",
        "    await onSubmit(values);",
        "  };",
        "",
        "  return (",
        "    <Modal",
        f"      title={{isEdit ? {quote('编辑' + ctx.title)} : {quote('新增' + ctx.title)}}}",
        "      open={open}",
        "      onOk={handleOk}",
        "      onCancel={onCancel}",
        "      destroyOnClose",
        "    >",
        "      <Form form={form} layout=\"vertical\">",
    ])
    for column in columns:
        rules = ""
        if column.is_required:
            rules = f" rules={{[{{ required: true, message: {quote(label(column) + '不能为空')} }}]}}"
        hidden = ""
        if column.is_insert and not column.is_edit:
            hidden = " hidden={isEdit}"
        elif column.is_edit and not column.is_insert:
            hidden = " hidden={!isEdit}"
        lines.append(
            f"        <Form.Item name={quote(field_name(column))} label={quote(label(column))}{rules}{hidden}>"
        )
        lines.append(f"          {_component(column)}")
        lines.append("        </Form.Item>")
    lines.extend([
        "      </Form>",
        "    </Modal>",
        "  );",
        "}",
    ])
    return "\n".join(lines) + "\n"


def _search_item(column: CodeGeneratorColumn) -> List[str]:
    name = field_name(column)
    if column.query_type == QueryType.BETWEEN:
        if column.mapped_type == "Date":
            control = "<DatePicker.RangePicker showTime />"
        else:
            control = "<Input.Group compact>{/* 范围查询 */}</Input.Group>"
        return [
            f"          <Form.Item name={quote(name + 'Range')} label={quote(label(column))}>",
            f"            {control}",
            "          </Form.Item>",
        ]
    if column.dict_type or column.html_type in (HtmlType.SELECT, HtmlType.RADIO, HtmlType.CHECKBOX):
        control = f"<Select allowClear options={{{_options_expr(column)}}} style={{{{ width: 160 }}}} />"
    else:
        control = f"<Input allowClear placeholder={{{quote('请输入' + label(column))}}} />"
    return [
        f"          <Form.Item name={quote(name)} label={quote(label(column))}>",
        f"            {control}",
        "          </Form.Item>",
    ]


def render_list_page(ctx: RenderContext) -> str:
    """列表页"""
    naming = ctx.naming
    entity = naming.business_pascal
    camel = naming.business_camel
    pk = ctx.pk_field
    has_search = bool(ctx.query_columns)
    components = {"Button", "Card", "Popconfirm", "Space", "Table", "message"}
    if has_search:
        components.update(("Form", "Input"))
        if any(c.query_type == QueryType.BETWEEN and c.mapped_type == "Date" for c in ctx.query_columns):
            components.add("DatePicker")
        if any(
            c.dict_type or c.html_type in (HtmlType.SELECT, HtmlType.RADIO, HtmlType.CHECKBOX)
            for c in ctx.query_columns
            if c.query_type != QueryType.BETWEEN
        ):
            components.add("Select")

    lines = [
        "import { useCallback, useEffect, useState } from 'react';",
        f"import {{ {', '.join(sorted(components))} }} from 'antd';",
    ]
    if _uses_dict([c for c in ctx.query_columns if c.query_type != QueryType.BETWEEN]):
        lines.append("import { useDictOptions } from '@/hooks/useDictOptions';")
    lines.extend([
        "import {",
        f"  create{entity},",
        f"  delete{entity},",
        f"  get{entity}List,",
        f"  update{entity},",
        f"}} from '@/api/{naming.module_kebab}/{naming.business_kebab}';",
        f"import type {{ {entity}, {entity}Form as FormValues, {entity}Query }} from '@/api/{naming.module_kebab}/{naming.business_kebab}.types';",
        f"import {entity}Form from './components/{entity}Form';",
        f"import {{ {camel}Columns }} from './columns';",
        "",
        f"export default function {entity}Page() {{",
    ])
    if has_search:
        lines.append(f"  const [searchForm] = Form.useForm<{entity}Query>();")
    lines.extend([
        f"  const [data, setData] = useState<{entity}[]>([]);",
        "  const [total, setTotal] = useState(0);",
        f"  const [query, setQuery] = useState<{entity}Query>({{ page: 1, pageSize: 10 }});",
        "  const [loading, setLoading] = useState(false);",
        "  const [formOpen, setFormOpen] = useState(false);",
        f"  const [current, setCurrent] = useState<{entity}>();",
        "",
        "  const load = useCallback(async () => {",
        "    setLoading(true);",
        "    try {",
        f"      const result = await get{entity}List(query);",
        "      setData(result.list);",
        "      setTotal(result.total);",
        "    } finally {",
        "      setLoading(false);",
        "    }",
        "  }, [query]);",
        "",
        "  useEffect(() => {",
        "    load();",
        "  }, [load]);",
        "",
        "  const handleSubmit = async (values: FormValues) => {",
        "    if (current) {",
        f"      await update{entity}(current.{pk}, values);",
        "    } else {",
        f"      await create{entity}(values);",
        "    }",
        "    message.success('保存成功');",
        "    setFormOpen(false);",
        "    load();",
        "  };",
        "",
        f"  const handleDelete = async (record: {entity}) => {{",
        f"    await delete{entity}(record.{pk});",
        "    message.success('删除成功');",
        "    load();",
        "  };",
        "",
        "  const columns = [",
        f"    ...{camel}Columns,",
        "    {",
        "      title: '操作',",
        "      key: 'action',",
        f"      render: (_: unknown, record: {entity}) => (",
        "        <Space>",
        "          <Button type=\"link\" onClick={() => { setCurrent(record); setFormOpen(true); }}>编辑</Button>",
        "          <Popconfirm title=\"确定删除吗？\" onConfirm={() => handleDelete(record)}>",
        "            <Button type=\"link\" danger>删除</Button>",
        "          </Popconfirm>",
        "        </Space>",
        "      ),",
        "    },",
        "  ];",
        "",
        "  return (",
        f"    <Card title={{{quote(ctx.title)}}}>",
    ])
    if has_search:
        lines.append(
            "      <Form form={searchForm} layout=\"inline\" "
            "onFinish={(values) => setQuery({ ...values, page: 1, pageSize: query.pageSize })}>"
        )
        for column in ctx.query_columns:
            lines.extend(item[2:] for item in _search_item(column))
        lines.extend([
            "        <Form.Item>",
            "          <Space>",
            "            <Button type=\"primary\" htmlType=\"submit\">查询</Button>",
            "            <Button onClick={() => { searchForm.resetFields(); setQuery({ page: 1, pageSize: query.pageSize }); }}>重置</Button>",
            "          </Space>",
            "        </Form.Item>",
            "      </Form>",
        ])
    lines.extend([
        "      <Button type=\"primary\" style={{ margin: '16px 0' }} onClick={() => { setCurrent(undefined); setFormOpen(true); }}>",
        "        新增",
        "      </Button>",
        "      <Table",
        f"        rowKey={quote(pk)}",
        "        loading={loading}",
        "        columns={columns}",
        "        dataSource={data}",
        "        pagination={{",
        "          current: query.page,",
        "          pageSize: query.pageSize,",
        "          total,",
        "          onChange: (page, pageSize) => setQuery({ ...query, page, pageSize }),",
        "        }}",
        "      />",
        f"      <{entity}Form open={{formOpen}} record={{current}} onCancel={{() => setFormOpen(false)}} onSubmit={{handleSubmit}} />",
        "    </Card>",
        "  );",
        "}",
    ])
    return "\n".join(lines) + "\n"


def render_routes(ctx: RenderContext) -> str:
    """前端路由注册"""
    naming = ctx.naming
    entity = naming.business_pascal
    lines = [
        "import { lazy } from 'react';",
        "import type { RouteObject } from 'react-router-dom';",
        "",
        f"const {entity}Page = lazy(() => import('@/pages/{naming.module_kebab}/{entity}'));",
        "",
        f"export const {naming.business_camel}Routes: RouteObject[] = [",
        "  {",
        f"    path: {quote('/' + naming.api_path)},",
        f"    element: <{entity}Page />,",
        f"    handle: {{ title: {quote(ctx.title)} }},",
        "  },",
        "];",
        "",
        f"export default {naming.business_camel}Routes;",
    ]
    return "\n".join(lines) + "\n"
