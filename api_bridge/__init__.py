"""
api-bridge: OpenAPI / GraphQL -> IR -> TypeScript
"""

from .config import BridgeConfig
from .errors import (
    BridgeError,
    CircularRefError,
    ConfigError,
    GeneratorError,
    ParseError,
    RefResolutionError,
    SourceNotFoundError,
    ValidationError,
    format_error,
)
from .generator import ApiBridgeGenerator, generate, parse_source, write_files
from .internal.generator import (
    GeneratedFile,
    Generator,
    GeneratorContext,
    PluginPipeline,
    define_plugin,
    get_registry,
    run_pipeline,
)
from .internal.parser import load_source, load_source_async, parse_graphql, parse_openapi
from .internal.types import IRSchema

__version__ = "0.1.0"

__all__ = [
    "ApiBridgeGenerator",
    "BridgeConfig",
    "BridgeError",
    "CircularRefError",
    "ConfigError",
    "GeneratedFile",
    "Generator",
    "GeneratorContext",
    "GeneratorError",
    "IRSchema",
    "ParseError",
    "PluginPipeline",
    "RefResolutionError",
    "SourceNotFoundError",
    "ValidationError",
    "define_plugin",
    "format_error",
    "generate",
    "get_registry",
    "load_source",
    "load_source_async",
    "parse_graphql",
    "parse_openapi",
    "parse_source",
    "run_pipeline",
    "write_files",
]
