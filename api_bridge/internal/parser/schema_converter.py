"""
Преобразование Schema Object (OpenAPI 3.0/3.1) в типы IR
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ...errors import ParseError
from ..types.models import (
    IRDiscriminator,
    IREnumValue,
    IRProperty,
    IRType,
    IRTypeKind,
    IRTypeRef,
)
from ..utils.naming import pascal_case, to_enum_member_name, unique_name
from .ref_resolver import RefResolver

logger = logging.getLogger(__name__)

PRIMITIVE_TYPES = {
    "string": IRTypeKind.STRING,
    "number": IRTypeKind.NUMBER,
    "integer": IRTypeKind.INTEGER,
    "boolean": IRTypeKind.BOOLEAN,
    "null": IRTypeKind.NULL,
}

CONSTRAINT_KEYS = (
    "minLength",
    "maxLength",
    "pattern",
    "minimum",
    "maximum",
    "exclusiveMinimum",
    "exclusiveMaximum",
    "multipleOf",
    "minItems",
    "maxItems",
    "uniqueItems",
    "minProperties",
    "maxProperties",
)


class SchemaConverter:
    """Конвертер схем; все $ref проходят через RefResolver"""

    def __init__(self, resolver: RefResolver, source: str = ""):
        self.resolver = resolver
        self.source = source

    # --- ссылки на типы ---

    def convert_to_type_ref(self, node: Any, context_name: str) -> IRTypeRef:
        """Ссылка на тип для места использования схемы"""
        if node is None or node is True or node == {}:
            return IRTypeRef.primitive(IRTypeKind.UNKNOWN)
        if node is False:
            raise ParseError(f"Схема false не поддерживается ({context_name})", self.source)
        if not isinstance(node, Mapping):
            raise ParseError(
                f"Ожидался объект схемы для {context_name}, получено: {type(node).__name__}",
                self.source,
            )

        if "$ref" in node:
            ref = self.resolver.resolve(node["$ref"], self.convert_schema)
            return ref.with_nullable(bool(node.get("nullable")))

        if self._is_plain_primitive(node):
            kinds, nullable = self._schema_types(node)
            return IRTypeRef.primitive(
                PRIMITIVE_TYPES[kinds[0]],
                format=node.get("format"),
                nullable=nullable or bool(node.get("nullable")),
            )

        ir_type = self.convert_schema(node, context_name)
        return IRTypeRef.inline(ir_type)

    def _is_plain_primitive(self, node: Mapping[str, Any]) -> bool:
        """Примитив без enum, const и ограничений можно не заворачивать в тип"""
        kinds, _ = self._schema_types(node)
        if len(kinds) != 1 or kinds[0] not in PRIMITIVE_TYPES:
            return False
        if any(key in node for key in ("enum", "const", "oneOf", "anyOf", "allOf")):
            return False
        if any(key in node for key in CONSTRAINT_KEYS):
            return False
        return not any(key in node for key in ("description", "default", "deprecated"))

    # --- типы ---

    def convert_schema(self, node: Any, name: str) -> IRType:
        """Полный IRType для схемы; используется и как builder резолвера"""
        if node is None or node is True or node == {}:
            return IRType(name=name, kind=IRTypeKind.UNKNOWN)
        if not isinstance(node, Mapping):
            raise ParseError(f"Ожидался объект схемы для {name}", self.source)

        if "$ref" in node:
            return self._convert_alias(node, name)

        common = self._common(node)

        if "const" in node:
            return self._convert_enum(name, [node["const"]], common, node)
        if "enum" in node:
            return self._convert_enum(name, list(node["enum"]), common, node)
        if "allOf" in node:
            return self._convert_all_of(node, name, common)
        if "oneOf" in node or "anyOf" in node:
            return self._convert_union(node, name, common)

        kinds, nullable = self._schema_types(node)
        common["nullable"] = common["nullable"] or nullable

        if len(kinds) > 1:
            variants = tuple(
                IRTypeRef.primitive(PRIMITIVE_TYPES.get(kind, IRTypeKind.UNKNOWN))
                for kind in kinds
            )
            return IRType(name=name, kind=IRTypeKind.UNION, variants=variants, **common)

        kind = kinds[0] if kinds else None
        if kind == "object" or (kind is None and self._looks_like_object(node)):
            return self._convert_object(node, name, common)
        if kind == "array" or (kind is None and "items" in node):
            return self._convert_array(node, name, common)
        if kind in PRIMITIVE_TYPES:
            return IRType(
                name=name,
                kind=PRIMITIVE_TYPES[kind],
                format=node.get("format"),
                constraints=self._constraints(node),
                **common,
            )
        if kind == "file":
            return IRType(name=name, kind=IRTypeKind.STRING, format="binary", **common)

        if kind is not None:
            logger.debug("Неизвестный тип '%s' в схеме %s, используется unknown", kind, name)
        return IRType(name=name, kind=IRTypeKind.UNKNOWN, **common)

    def _common(self, node: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            "description": node.get("description"),
            "deprecated": bool(node.get("deprecated", False)),
            "nullable": bool(node.get("nullable", False)),
            "default": node.get("default"),
        }

    @staticmethod
    def _schema_types(node: Mapping[str, Any]) -> Tuple[List[str], bool]:
        """Типы без null и признак nullable; type в 3.1 может быть списком"""
        raw = node.get("type")
        if raw is None:
            return [], False
        if isinstance(raw, str):
            return [raw], False
        kinds = [kind for kind in raw if kind != "null"]
        return kinds, len(kinds) != len(raw)

    @staticmethod
    def _looks_like_object(node: Mapping[str, Any]) -> bool:
        return "properties" in node or "additionalProperties" in node or "required" in node

    @staticmethod
    def _constraints(node: Mapping[str, Any]) -> Dict[str, Any]:
        constraints = {key: node[key] for key in CONSTRAINT_KEYS if key in node}
        # В 3.0 exclusiveMinimum/exclusiveMaximum - флаги при minimum/maximum
        for key, bound in (("exclusiveMinimum", "minimum"), ("exclusiveMaximum", "maximum")):
            if isinstance(constraints.get(key), bool):
                flag = constraints.pop(key)
                if flag and bound in constraints:
                    constraints[key] = constraints.pop(bound)
        return constraints

    def _convert_alias(self, node: Mapping[str, Any], name: str) -> IRType:
        target = self.resolver.resolve_eager(node["$ref"], self.convert_schema)
        return IRType(
            name=name,
            kind=IRTypeKind.ALIAS,
            target=IRTypeRef.reference(target.name),
            description=node.get("description"),
            nullable=bool(node.get("nullable", False)),
        )

    def _convert_enum(
        self, name: str, raw_values: List[Any], common: Dict[str, Any], node: Mapping[str, Any]
    ) -> IRType:
        values = []
        for value in raw_values:
            if value is None:
                common["nullable"] = True
            elif isinstance(value, bool):
                raise ParseError(
                    f"Логические значения enum не поддерживаются ({name})", self.source
                )
            elif isinstance(value, (str, int, float)):
                values.append(value)
            else:
                raise ParseError(f"Неподдерживаемое значение enum в {name}: {value!r}", self.source)

        if not values:
            return IRType(name=name, kind=IRTypeKind.NULL, **common)

        if len({isinstance(value, str) for value in values}) > 1:
            raise ParseError(
                f"Enum {name} смешивает строковые и числовые значения", self.source
            )

        explicit_names = node.get("x-enum-varnames") or node.get("x-enumNames") or []
        descriptions = node.get("x-enum-descriptions") or []
        used: set = set()
        enum_values = []
        for i, value in enumerate(values):
            base = explicit_names[i] if i < len(explicit_names) else to_enum_member_name(value)
            enum_values.append(
                IREnumValue(
                    name=unique_name(base, used),
                    value=value,
                    description=descriptions[i] if i < len(descriptions) else None,
                )
            )

        return IRType(name=name, kind=IRTypeKind.ENUM, enum_values=tuple(enum_values), **common)

    def _convert_object(
        self, node: Mapping[str, Any], name: str, common: Dict[str, Any]
    ) -> IRType:
        required = set(node.get("required") or [])
        properties = []
        for prop_name, prop_schema in (node.get("properties") or {}).items():
            properties.append(self._convert_property(prop_name, prop_schema, name, required))

        additional = node.get("additionalProperties")
        if isinstance(additional, Mapping):
            additional = self.convert_to_type_ref(additional, f"{name}Value")
        elif additional is not None:
            additional = bool(additional)

        return IRType(
            name=name,
            kind=IRTypeKind.OBJECT,
            properties=tuple(properties),
            additional_properties=additional,
            constraints=self._constraints(node),
            **common,
        )

    def _convert_property(
        self, prop_name: str, prop_schema: Any, owner: str, required: set
    ) -> IRProperty:
        schema = prop_schema if isinstance(prop_schema, Mapping) else {}
        return IRProperty(
            name=str(prop_name),
            type=self.convert_to_type_ref(prop_schema, f"{owner}{pascal_case(str(prop_name))}"),
            required=prop_name in required,
            description=schema.get("description"),
            deprecated=bool(schema.get("deprecated", False)),
            default=schema.get("default"),
            read_only=bool(schema.get("readOnly", False)),
            write_only=bool(schema.get("writeOnly", False)),
        )

    def _convert_array(self, node: Mapping[str, Any], name: str, common: Dict[str, Any]) -> IRType:
        items = node.get("items")
        if isinstance(items, list):
            # Кортежи Swagger/JSON Schema draft 4: объединение элементов
            items = {"oneOf": items} if items else None
        return IRType(
            name=name,
            kind=IRTypeKind.ARRAY,
            items=self.convert_to_type_ref(items, f"{name}Item"),
            constraints=self._constraints(node),
            **common,
        )

    def _convert_union(self, node: Mapping[str, Any], name: str, common: Dict[str, Any]) -> IRType:
        raw_variants = node.get("oneOf") or node.get("anyOf") or []
        variants = []
        for i, variant in enumerate(raw_variants):
            if isinstance(variant, Mapping) and variant.get("type") == "null" and len(variant) == 1:
                common["nullable"] = True
                continue
            variants.append(self.convert_to_type_ref(variant, f"{name}Variant{i + 1}"))

        if not variants:
            raise ParseError(f"Объединение {name} не содержит вариантов", self.source)

        if len(variants) == 1 and "discriminator" not in node:
            return IRType(name=name, kind=IRTypeKind.ALIAS, target=variants[0], **common)

        return IRType(
            name=name,
            kind=IRTypeKind.UNION,
            variants=tuple(variants),
            discriminator=self._discriminator(node, variants),
            **common,
        )

    def _discriminator(
        self, node: Mapping[str, Any], variants: List[IRTypeRef]
    ) -> Optional[IRDiscriminator]:
        raw = node.get("discriminator")
        if not raw:
            return None
        if isinstance(raw, str):
            raw = {"propertyName": raw}

        mapping = {}
        for value, ref in (raw.get("mapping") or {}).items():
            if isinstance(ref, str) and "#" in ref:
                mapping[str(value)] = self.resolver.type_name(self.resolver.normalize(ref))
            else:
                mapping[str(value)] = str(ref)

        if not mapping:
            # Без явного mapping значение дискриминатора - имя схемы
            for variant in variants:
                if variant.kind == "reference":
                    mapping[variant.name] = variant.name

        return IRDiscriminator(property_name=raw["propertyName"], mapping=mapping)

    def _convert_all_of(self, node: Mapping[str, Any], name: str, common: Dict[str, Any]) -> IRType:
        members: List[IRTypeRef] = []
        resolved: List[IRType] = []
        for i, member in enumerate(node["allOf"]):
            if isinstance(member, Mapping) and "$ref" in member:
                ir_type = self._follow_aliases(
                    self.resolver.resolve_eager(member["$ref"], self.convert_schema)
                )
                members.append(IRTypeRef.reference(ir_type.name))
            else:
                ir_type = self.convert_schema(member, f"{name}Part{i + 1}")
                members.append(IRTypeRef.inline(ir_type))
            resolved.append(ir_type)

        # Свойства рядом с allOf тоже участвуют в слиянии
        if self._looks_like_object(node):
            own = self._convert_object(node, f"{name}Own", self._common({}))
            resolved.append(own)
            members.append(IRTypeRef.inline(own))

        if resolved and all(t.kind == IRTypeKind.OBJECT for t in resolved):
            return self._merge_objects(name, resolved, common)

        return IRType(name=name, kind=IRTypeKind.INTERSECTION, members=tuple(members), **common)

    def _follow_aliases(self, ir_type: IRType) -> IRType:
        seen = {ir_type.name}
        while ir_type.kind == IRTypeKind.ALIAS and ir_type.target.kind == "reference":
            target = self.resolver.registry.get(ir_type.target.name)
            if target is None or target.name in seen:
                break
            seen.add(target.name)
            ir_type = target
        return ir_type

    @staticmethod
    def _merge_objects(name: str, parts: List[IRType], common: Dict[str, Any]) -> IRType:
        """Слияние объектов allOf: поздние свойства заменяют ранние на их месте"""
        properties: Dict[str, IRProperty] = {}
        additional = None
        description = common.get("description")
        for part in parts:
            for prop in part.properties:
                previous = properties.get(prop.name)
                if previous is not None and previous.required and not prop.required:
                    prop = prop.model_copy(update={"required": True})
                properties[prop.name] = prop
            if part.additional_properties is not None:
                additional = part.additional_properties
            description = description or part.description

        return IRType(
            name=name,
            kind=IRTypeKind.OBJECT,
            properties=tuple(properties.values()),
            additional_properties=additional,
            **{**common, "description": description},
        )
