"""
代码模板模块
"""
from .context import Naming, RenderContext, build_context
from .provider import BuiltinTemplateProvider, TemplateDefinition, TemplateProvider

__all__ = [
    'Naming',
    'RenderContext',
    'build_context',
    'BuiltinTemplateProvider',
    'TemplateDefinition',
    'TemplateProvider',
]
