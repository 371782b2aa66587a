"""
代码生成服务
根据代码生成器配置和列配置渲染源码文件，并打包为 zip
"""
import io
import zipfile
from typing import List, Optional, Sequence

from ..utils.logger import get_logger, log_render_error
from .cache_service import CacheService, get_render_cache
from .dto import (
    MAPPED_TYPES,
    CodeGeneratorColumn,
    CodeGeneratorConfig,
    GenerateOptions,
    GeneratedArchive,
    GeneratedFile,
)
from .errors import TemplateRenderError
from .metadata_store import MetadataStore
from .templates import BuiltinTemplateProvider, TemplateProvider, build_context

logger = get_logger(__name__)

# 生成选项 -> 模板名称（顺序即输出顺序）
TEMPLATE_GROUPS = (
    ("generate_api", ("api/client", "api/types")),
    ("generate_crud", (
        "crud/entity",
        "crud/dto",
        "crud/service",
        "crud/controller",
        "crud/module",
        "crud/list-page",
        "crud/form",
        "crud/columns",
    )),
    ("generate_routes", ("routes/route",)),
    ("generate_test", ("test/service-spec", "test/controller-spec")),
)

# zip 条目的固定时间戳，保证相同输入得到相同字节
ZIP_TIMESTAMP = (1980, 1, 1, 0, 0, 0)


def select_templates(options: GenerateOptions) -> List[str]:
    """按生成选项挑选模板"""
    names = []
    for flag, templates in TEMPLATE_GROUPS:
        if getattr(options, flag):
            names.extend(templates)
    return names


def _is_used(column: CodeGeneratorColumn) -> bool:
    return column.is_list or column.is_insert or column.is_edit or column.is_query or column.is_pk


def validate_columns(config: CodeGeneratorConfig, columns: Sequence[CodeGeneratorColumn]) -> None:
    """
    检查模板会用到的列是否都有可识别的 mapped_type

    Raises:
        TemplateRenderError: 存在无法映射类型的列
    """
    for column in columns:
        if not _is_used(column):
            continue
        mapped_type = (column.mapped_type or "").strip()
        if mapped_type not in MAPPED_TYPES:
            raise TemplateRenderError(
                config.id,
                f"字段类型无法映射: {column.mapped_type!r}，可选值: {', '.join(MAPPED_TYPES)}",
                column_name=column.column_name,
            )


def render(
    config: CodeGeneratorConfig,
    columns: Sequence[CodeGeneratorColumn],
    provider: Optional[TemplateProvider] = None
) -> List[GeneratedFile]:
    """
    渲染代码文件

    纯函数：相同输入总是得到相同输出。任何一个模板失败都会中止整个渲染，
    不返回部分结果。

    Args:
        config: 代码生成器配置
        columns: 列配置
        provider: 模板提供者，默认使用内置模板

    Returns:
        生成的文件列表，所有生成选项关闭时为空列表

    Raises:
        TemplateRenderError: 列配置不合法或模板渲染失败
    """
    names = select_templates(config.options)
    if not names:
        return []

    validate_columns(config, columns)
    provider = provider or BuiltinTemplateProvider()
    context = build_context(config, list(columns))

    files = []
    for name in names:
        try:
            template = provider.get_template(name)
        except KeyError as e:
            raise TemplateRenderError(config.id, "模板不存在", template_name=name) from e

        try:
            path = template.path(context.naming)
            content = template.render(context)
        except TemplateRenderError:
            raise
        except Exception as e:
            raise TemplateRenderError(config.id, f"模板渲染失败: {e}", template_name=name) from e

        files.append(GeneratedFile(path=path, content=content))
    return files


def build_archive(files: Sequence[GeneratedFile], filename: str = "generated-code.zip") -> GeneratedArchive:
    """
    将生成的文件打包为 zip

    条目顺序、时间戳和权限固定，相同的文件列表得到相同的字节。
    """
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for generated in files:
            info = zipfile.ZipInfo(generated.path.lstrip("/"), date_time=ZIP_TIMESTAMP)
            info.compress_type = zipfile.ZIP_DEFLATED
            info.external_attr = 0o644 << 16
            archive.writestr(info, generated.content.encode("utf-8"))
    return GeneratedArchive(content=buffer.getvalue(), filename=filename)


class CodeGenerationService:
    """代码生成服务类"""

    def __init__(
        self,
        store: MetadataStore,
        provider: Optional[TemplateProvider] = None,
        cache: Optional[CacheService] = None
    ):
        """
        初始化代码生成服务

        Args:
            store: 元数据存储
            provider: 模板提供者，默认使用内置模板
            cache: 渲染结果缓存，默认使用全局缓存
        """
        self.store = store
        self.provider = provider or BuiltinTemplateProvider()
        self.cache = cache if cache is not None else get_render_cache()

    def render(self, config: CodeGeneratorConfig, columns: Sequence[CodeGeneratorColumn]) -> List[GeneratedFile]:
        """渲染代码，相同输入直接返回缓存结果"""
        key = self.cache.make_key("render", {
            "provider": self.provider.cache_token(),
            "config": config.model_dump(mode="json"),
            "columns": [column.model_dump(mode="json") for column in columns],
        })
        cached = self.cache.get(key)
        if cached is not None:
            return [GeneratedFile(path=path, content=content) for path, content in cached]

        try:
            files = render(config, columns, self.provider)
        except TemplateRenderError as e:
            log_render_error(logger, config.id, e, template_name=e.template_name, column_name=e.column_name)
            raise

        self.cache.set(key, tuple((generated.path, generated.content) for generated in files))
        return files

    def preview_code(self, generator_id: int) -> List[GeneratedFile]:
        """
        预览生成的代码

        Raises:
            GeneratorNotFoundError: 代码生成器不存在
            TemplateRenderError: 渲染失败
        """
        config = self.store.get_generator(generator_id)
        columns = self.store.list_columns(generator_id)
        files = self.render(config, columns)
        logger.info(f"预览代码: generator_id={generator_id}, files={len(files)}")
        return files

    def generate_code(self, generator_id: int) -> GeneratedArchive:
        """生成代码并打包为 zip"""
        files = self.preview_code(generator_id)
        archive = build_archive(files)
        logger.info(f"生成代码压缩包: generator_id={generator_id}, size={len(archive.content)} bytes")
        return archive
