"""
Парсер GraphQL схемы (SDL или результат introspection) в IR.

Категории типов берутся из introspection-представления схемы и
разбираются по закрытому перечислению graphql.TypeKind.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from graphql import (
    GraphQLError,
    GraphQLNamedType,
    GraphQLSchema,
    TypeKind,
    build_client_schema,
    build_schema,
    introspection_from_schema,
    parse_value,
    value_from_ast_untyped,
)

from ...errors import ConfigError, ParseError
from ..types.models import (
    IRDiscriminator,
    IREnumValue,
    IRMetadata,
    IRProperty,
    IRSchema,
    IRType,
    IRTypeKind,
    IRTypeRef,
)
from ..types.registry import TypeRegistry
from ..types.validator import ensure_valid
from .graphql_operations import build_operations, graphql_parse_error

logger = logging.getLogger(__name__)

BUILTIN_SCALARS = {
    "String": IRTypeKind.STRING,
    "ID": IRTypeKind.STRING,
    "Int": IRTypeKind.NUMBER,
    "Float": IRTypeKind.NUMBER,
    "Boolean": IRTypeKind.BOOLEAN,
}

DEFAULT_SCALAR_MAPPINGS = {
    "DateTime": "string",
    "Date": "string",
    "Time": "string",
    "Decimal": "string",
    "BigInt": "string",
}

TYPENAME_FIELD = "__typename"


class GraphQLParser:
    """Парсер GraphQL источника в IRSchema"""

    def __init__(
        self,
        source: Union[str, Mapping[str, Any]],
        documents: Iterable[str] = (),
        scalar_mappings: Optional[Dict[str, str]] = None,
        source_name: str = "",
        registry: Optional[TypeRegistry] = None,
    ):
        self.source = source
        self.documents = list(documents)
        self.source_name = source_name
        self.registry = registry if registry is not None else TypeRegistry()
        self.scalar_mappings = self._check_mappings(
            {**DEFAULT_SCALAR_MAPPINGS, **(scalar_mappings or {})}
        )

    @staticmethod
    def _check_mappings(mappings: Dict[str, str]) -> Dict[str, IRTypeKind]:
        allowed = {"string", "number", "integer", "boolean", "unknown"}
        result = {}
        for scalar, target in mappings.items():
            if target not in allowed:
                raise ConfigError(
                    f"Скаляр {scalar} сопоставлен с '{target}', допустимо: {sorted(allowed)}"
                )
            result[scalar] = IRTypeKind(target)
        return result

    def parse(self) -> IRSchema:
        schema = self._build_schema()
        introspection = introspection_from_schema(schema)["__schema"]

        entries = [
            entry
            for entry in introspection["types"]
            if not entry["name"].startswith("__") and entry["name"] not in BUILTIN_SCALARS
        ]
        for entry in entries:
            self.registry.reserve(entry["name"], f"graphql:{entry['name']}")
        for entry in entries:
            self.registry.define(entry["name"], self._convert_type(entry), f"graphql:{entry['name']}")
            logger.debug("Тип GraphQL %s (%s)", entry["name"], entry["kind"])

        operations = build_operations(schema, self._named_ref, self.documents, self.source_name)

        ir_schema = IRSchema(
            metadata=IRMetadata(
                title="GraphQL API",
                version="1.0.0",
                description=introspection.get("description"),
                source="graphql",
            ),
            types=self.registry.snapshot(),
            operations=operations,
        )
        logger.info(
            "GraphQL разобран: %d типов, %d операций", len(ir_schema.types), len(operations)
        )
        return ensure_valid(ir_schema)

    def _build_schema(self) -> GraphQLSchema:
        if isinstance(self.source, Mapping):
            payload = self.source.get("data", self.source)
            try:
                return build_client_schema(payload)
            except GraphQLError as e:
                raise graphql_parse_error(e, self.source_name) from e
            except (TypeError, ValueError) as e:
                raise ParseError(f"Некорректный результат introspection: {e}", self.source_name) from e

        try:
            return build_schema(self.source)
        except GraphQLError as e:
            raise graphql_parse_error(e, self.source_name) from e
        except TypeError as e:
            # Семантические ошибки SDL (неизвестный тип и т.п.)
            raise ParseError(f"Некорректная GraphQL схема: {e}", self.source_name) from e

    # --- ссылки ---

    def _named_ref(self, named: GraphQLNamedType, nullable: bool = True) -> IRTypeRef:
        if named.name in BUILTIN_SCALARS:
            return IRTypeRef.primitive(BUILTIN_SCALARS[named.name], nullable=nullable)
        return IRTypeRef.reference(named.name, nullable=nullable)

    def _type_ref(self, ref: Mapping[str, Any], nullable: bool = True) -> IRTypeRef:
        """Ссылка по introspection-описанию типа {kind, name, ofType}"""
        kind = TypeKind(ref["kind"])
        if kind == TypeKind.NON_NULL:
            return self._type_ref(ref["ofType"], nullable=False)
        if kind == TypeKind.LIST:
            items = self._type_ref(ref["ofType"])
            return IRTypeRef.inline(
                IRType(name="List", kind=IRTypeKind.ARRAY, items=items), nullable=nullable
            )
        if kind == TypeKind.SCALAR and ref["name"] in BUILTIN_SCALARS:
            return IRTypeRef.primitive(BUILTIN_SCALARS[ref["name"]], nullable=nullable)
        return IRTypeRef.reference(ref["name"], nullable=nullable)

    # --- типы ---

    def _convert_type(self, entry: Mapping[str, Any]) -> IRType:
        kind = TypeKind(entry["kind"])
        if kind in (TypeKind.OBJECT, TypeKind.INPUT_OBJECT):
            return self._convert_object(entry)
        if kind == TypeKind.ENUM:
            return self._convert_enum(entry)
        if kind == TypeKind.UNION:
            return self._convert_abstract(entry)
        if kind == TypeKind.INTERFACE:
            if not entry.get("possibleTypes"):
                return self._convert_object(entry)
            return self._convert_abstract(entry)
        if kind == TypeKind.SCALAR:
            return self._convert_scalar(entry)
        raise ParseError(f"Неожиданная категория типа {kind.value} для {entry['name']}", self.source_name)

    def _convert_object(self, entry: Mapping[str, Any]) -> IRType:
        properties = []
        for field in entry.get("fields") or entry.get("inputFields") or []:
            properties.append(
                IRProperty(
                    name=field["name"],
                    type=self._type_ref(field["type"]),
                    required=field["type"]["kind"] == TypeKind.NON_NULL.value,
                    description=field.get("description"),
                    deprecated=bool(field.get("isDeprecated", False)),
                    default=self._default_value(field.get("defaultValue")),
                )
            )
        return IRType(
            name=entry["name"],
            kind=IRTypeKind.OBJECT,
            description=entry.get("description"),
            properties=tuple(properties),
        )

    def _default_value(self, literal: Optional[str]) -> Any:
        """defaultValue в introspection - литерал GraphQL в виде строки"""
        if literal is None:
            return None
        try:
            return value_from_ast_untyped(parse_value(literal))
        except GraphQLError as e:
            raise graphql_parse_error(e, self.source_name) from e

    def _convert_enum(self, entry: Mapping[str, Any]) -> IRType:
        values = tuple(
            IREnumValue(
                name=value["name"],
                value=value["name"],
                description=value.get("description"),
                deprecated=bool(value.get("isDeprecated", False)),
            )
            for value in entry.get("enumValues") or []
        )
        return IRType(
            name=entry["name"],
            kind=IRTypeKind.ENUM,
            description=entry.get("description"),
            enum_values=values,
        )

    def _convert_abstract(self, entry: Mapping[str, Any]) -> IRType:
        """Union и interface: объединение реализаций, различаемых по __typename"""
        names = [possible["name"] for possible in entry.get("possibleTypes") or []]
        return IRType(
            name=entry["name"],
            kind=IRTypeKind.UNION,
            description=entry.get("description"),
            variants=tuple(IRTypeRef.reference(name) for name in names),
            discriminator=IRDiscriminator(
                property_name=TYPENAME_FIELD, mapping={name: name for name in names}
            ),
        )

    def _convert_scalar(self, entry: Mapping[str, Any]) -> IRType:
        target = self.scalar_mappings.get(entry["name"], IRTypeKind.UNKNOWN)
        return IRType(
            name=entry["name"],
            kind=IRTypeKind.ALIAS,
            description=entry.get("description"),
            target=IRTypeRef.primitive(target),
        )


def parse_graphql(
    source: Union[str, Mapping[str, Any]],
    documents: Iterable[str] = (),
    scalar_mappings: Optional[Dict[str, str]] = None,
    source_name: str = "",
) -> IRSchema:
    return GraphQLParser(source, documents, scalar_mappings, source_name).parse()
