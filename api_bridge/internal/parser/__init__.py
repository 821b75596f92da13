from .graphql import GraphQLParser, parse_graphql
from .loader import (
    GRAPHQL,
    OPENAPI,
    SourceDocument,
    detect_source_type,
    load_source,
    load_source_async,
)
from .openapi import OpenApiParser, parse_openapi
from .ref_resolver import RefResolver
from .schema_converter import SchemaConverter

__all__ = [
    "GRAPHQL",
    "OPENAPI",
    "GraphQLParser",
    "OpenApiParser",
    "RefResolver",
    "SchemaConverter",
    "SourceDocument",
    "detect_source_type",
    "load_source",
    "load_source_async",
    "parse_graphql",
    "parse_openapi",
]
