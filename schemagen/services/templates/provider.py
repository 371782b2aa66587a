"""
模板提供者
按模板名称查找渲染函数及输出路径
"""
import uuid
from abc import ABC, abstractmethod
from typing import Callable, Dict, List

from .backend import render_controller, render_dto, render_entity, render_module, render_service
from .context import Naming, RenderContext
from .frontend import (
    render_api_client,
    render_api_types,
    render_columns,
    render_form,
    render_list_page,
    render_routes,
)
from .testing import render_controller_spec, render_service_spec


class TemplateDefinition:
    """一个模板：输出路径规则 + 渲染函数"""

    def __init__(
        self,
        name: str,
        path: Callable[[Naming], str],
        render: Callable[[RenderContext], str]
    ):
        self.name = name
        self.path = path
        self.render = render

    def __repr__(self):
        return f"<TemplateDefinition(name={self.name})>"


class TemplateProvider(ABC):
    """模板提供者基类"""

    # 模板内容每变化一次加一
    revision: int = 0

    @abstractmethod
    def get_template(self, name: str) -> TemplateDefinition:
        """
        获取模板

        Raises:
            KeyError: 模板不存在
        """
        pass

    @abstractmethod
    def template_names(self) -> List[str]:
        """所有可用的模板名称"""
        pass

    def cache_token(self) -> str:
        """
        渲染缓存中标识模板来源的字符串

        每个提供者实例有自己的随机标识，模板变化后 revision 随之变化
        """
        token = self.__dict__.get("_cache_token")
        if token is None:
            token = self._cache_token = uuid.uuid4().hex
        return f"{type(self).__qualname__}:{token}:{self.revision}"


def _backend(suffix: str) -> Callable[[Naming], str]:
    return lambda naming: f"{naming.backend_dir}/{suffix.format(name=naming.business_kebab)}"


BUILTIN_TEMPLATES = [
    # api
    TemplateDefinition(
        "api/client",
        lambda n: f"frontend/src/api/{n.module_kebab}/{n.business_kebab}.ts",
        render_api_client,
    ),
    TemplateDefinition(
        "api/types",
        lambda n: f"frontend/src/api/{n.module_kebab}/{n.business_kebab}.types.ts",
        render_api_types,
    ),
    # crud 后端
    TemplateDefinition("crud/entity", _backend("entities/{name}.entity.ts"), render_entity),
    TemplateDefinition("crud/dto", _backend("dto/{name}.dto.ts"), render_dto),
    TemplateDefinition("crud/service", _backend("{name}.service.ts"), render_service),
    TemplateDefinition("crud/controller", _backend("{name}.controller.ts"), render_controller),
    TemplateDefinition("crud/module", _backend("{name}.module.ts"), render_module),
    # crud 前端
    TemplateDefinition(
        "crud/list-page",
        lambda n: f"{n.frontend_page_dir}/index.tsx",
        render_list_page,
    ),
    TemplateDefinition(
        "crud/form",
        lambda n: f"{n.frontend_page_dir}/components/{n.business_pascal}Form.tsx",
        render_form,
    ),
    TemplateDefinition(
        "crud/columns",
        lambda n: f"{n.frontend_page_dir}/columns.tsx",
        render_columns,
    ),
    # routes
    TemplateDefinition(
        "routes/route",
        lambda n: f"frontend/src/routes/{n.module_kebab}/{n.business_kebab}.tsx",
        render_routes,
    ),
    # test
    TemplateDefinition("test/service-spec", _backend("{name}.service.spec.ts"), render_service_spec),
    TemplateDefinition("test/controller-spec", _backend("{name}.controller.spec.ts"), render_controller_spec),
]


class BuiltinTemplateProvider(TemplateProvider):
    """内置模板（NestJS 后端 + React 前端）"""

    def __init__(self):
        self._templates: Dict[str, TemplateDefinition] = {
            template.name: template for template in BUILTIN_TEMPLATES
        }

    def get_template(self, name: str) -> TemplateDefinition:
        return self._templates[name]

    def template_names(self) -> List[str]:
        return list(self._templates)

    def register(self, template: TemplateDefinition) -> None:
        """注册或替换模板"""
        self._templates[template.name] = template
        self.revision += 1
