from typing import Callable, Dict

from .auth import AuthGenerator
from .base import GeneratedFile, Generator, GeneratorContext, define_plugin
from .client import ClientGenerator
from .formatter import CodeFormatter
from .graphql_clients import ApolloGenerator, UrqlGenerator
from .hooks import ReactQueryGenerator, SwrGenerator
from .index import IndexGenerator
from .msw import MswGenerator
from .pipeline import PluginPipeline, run_pipeline
from .registry import GeneratorRegistry, get_registry
from .router import TanStackRouterGenerator
from .typescript import TypeScriptGenerator
from .zod import ZodGenerator

DEFAULT_GENERATORS = ("typescript", "zod", "client", "react-query", "index")

BUILTIN_ALIASES = {
    "typescript": ["types"],
    "react-query": ["reactQuery", "react_query"],
    "tanstack-router": ["tanstackRouter", "tanstack_router", "router"],
}


def builtin_factories() -> Dict[str, Callable[..., Generator]]:
    """Встроенные генераторы в каноническом порядке запуска"""
    return {
        "typescript": TypeScriptGenerator,
        "zod": ZodGenerator,
        "client": ClientGenerator,
        "react-query": ReactQueryGenerator,
        "swr": SwrGenerator,
        "msw": MswGenerator,
        "apollo": ApolloGenerator,
        "urql": UrqlGenerator,
        "tanstack-router": TanStackRouterGenerator,
        "auth": AuthGenerator,
        "index": IndexGenerator,
    }


__all__ = [
    "DEFAULT_GENERATORS",
    "CodeFormatter",
    "GeneratedFile",
    "Generator",
    "GeneratorContext",
    "GeneratorRegistry",
    "PluginPipeline",
    "builtin_factories",
    "define_plugin",
    "get_registry",
    "run_pipeline",
]
