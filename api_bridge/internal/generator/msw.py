"""
Обработчики MSW и детерминированные моковые значения для типов схемы
"""

import json
import logging
import re
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

from ..types.models import (
    IREndpoint,
    IROperation,
    IRSchema,
    IRType,
    IRTypeKind,
    IRTypeRef,
    preferred_content,
)
from .base import GeneratedFile, Generator, GeneratorContext
from .client import function_names
from .printer import GENERATED_HEADER, CodePrinter, ts_literal
from .typescript import TYPES_FILE, exported_names

logger = logging.getLogger(__name__)

MOCKS_FILE = "mocks.ts"

PATH_PARAM_RE = re.compile(r"\{([^}/]+)\}")

STRING_MOCKS = {
    "date-time": "2024-01-01T00:00:00.000Z",
    "date": "2024-01-01",
    "time": "12:00:00",
    "email": "user@example.com",
    "uuid": "00000000-0000-4000-8000-000000000000",
    "uri": "https://example.com",
    "url": "https://example.com",
    "hostname": "example.com",
    "ipv4": "127.0.0.1",
    "ipv6": "::1",
}

# Значение, которое нельзя построить без бесконечной рекурсии
_CYCLE = object()


def mock_name(type_name: str) -> str:
    return f"mock{type_name}"


def msw_path(path: str) -> str:
    """/pets/{petId} -> /pets/:petId"""
    return PATH_PARAM_RE.sub(lambda m: f":{m.group(1)}", path)


class MockBuilder:
    """
    Строит JSON-значения по типам IR.

    Построенные значения именованных типов кешируются на время одного
    запуска. Ссылка на тип, который сейчас строится, дает _CYCLE:
    необязательное свойство тогда опускается, массив остается пустым,
    обязательное свойство получает null.
    """

    def __init__(self, schema: IRSchema, cache: Dict[str, Any]):
        self.schema = schema
        self.cache = cache
        self._building: List[str] = []

    def named(self, name: str) -> Any:
        if name in self.cache:
            return self.cache[name]
        if name in self._building:
            return _CYCLE
        ir_type = self.schema.types.get(name)
        if ir_type is None:
            return None

        self._building.append(name)
        try:
            value = self.type_value(ir_type)
        finally:
            self._building.pop()
        self.cache[name] = None if value is _CYCLE else value
        return self.cache[name]

    def ref_value(self, ref: IRTypeRef) -> Any:
        if ref.kind == "reference":
            return self.named(ref.name)
        if ref.kind == "primitive":
            return self.primitive(ref.primitive_kind, ref.format, {})
        return self.type_value(ref.inline_type)

    def type_value(self, ir_type: IRType) -> Any:
        if ir_type.default is not None:
            return ir_type.default

        kind = ir_type.kind
        if kind == IRTypeKind.OBJECT:
            return self._object(ir_type)
        if kind == IRTypeKind.ARRAY:
            item = self.ref_value(ir_type.items)
            return [] if item is _CYCLE else [item]
        if kind == IRTypeKind.ENUM:
            return ir_type.enum_values[0].value if ir_type.enum_values else None
        if kind == IRTypeKind.UNION:
            return self._union(ir_type)
        if kind == IRTypeKind.INTERSECTION:
            merged: Dict[str, Any] = {}
            for member in ir_type.members:
                value = self.ref_value(member)
                if isinstance(value, dict):
                    merged.update(value)
            return merged
        if kind == IRTypeKind.ALIAS:
            return self.ref_value(ir_type.target)
        return self.primitive(kind, ir_type.format, ir_type.constraints)

    def _object(self, ir_type: IRType) -> Dict[str, Any]:
        value = {}
        for prop in ir_type.properties:
            if prop.default is not None:
                value[prop.name] = prop.default
                continue
            item = self.ref_value(prop.type)
            if item is _CYCLE:
                if not prop.required:
                    continue
                item = None
            value[prop.name] = item
        return value

    def _union(self, ir_type: IRType) -> Any:
        if not ir_type.variants:
            return None
        variant = ir_type.variants[0]
        value = self.ref_value(variant)
        discriminator = ir_type.discriminator
        if discriminator is not None and isinstance(value, dict) and variant.kind == "reference":
            for key, type_name in discriminator.mapping.items():
                if type_name == variant.name:
                    value = {**value, discriminator.property_name: key}
                    break
        return None if value is _CYCLE else value

    @staticmethod
    def primitive(kind: IRTypeKind, format: Optional[str], constraints: Mapping[str, Any]) -> Any:
        if kind == IRTypeKind.STRING:
            if format == "binary":
                return None
            if format in STRING_MOCKS:
                return STRING_MOCKS[format]
            value = "string"
            min_length = constraints.get("minLength")
            if isinstance(min_length, int) and min_length > len(value):
                value = value.ljust(min_length, "x")
            max_length = constraints.get("maxLength")
            if isinstance(max_length, int):
                value = value[:max_length]
            return value
        if kind in (IRTypeKind.NUMBER, IRTypeKind.INTEGER):
            minimum = constraints.get("minimum")
            if isinstance(minimum, (int, float)) and not isinstance(minimum, bool):
                return int(minimum) if kind == IRTypeKind.INTEGER else minimum
            return 1
        if kind == IRTypeKind.BOOLEAN:
            return True
        return None


def json_literal(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


class MswGenerator(Generator):
    """Обработчики http/graphql для MSW и моки именованных типов"""

    name = "msw"
    description = "MSW request handlers"
    requires = ("typescript",)
    default_options = MappingProxyType({"baseUrl": None})

    def before_generate(self, context: GeneratorContext) -> None:
        cache = context.state.setdefault("mocks", {})
        builder = MockBuilder(context.schema, cache)
        for name in context.schema.types:
            builder.named(name)
        context.state["builder"] = builder
        logger.debug("msw: подготовлено %d моков", len(cache))

    def generate(self, context: GeneratorContext) -> List[GeneratedFile]:
        schema = context.schema
        if "builder" not in context.state:
            self.before_generate(context)
        builder: MockBuilder = context.state["builder"]
        mocks: Dict[str, Any] = context.state["mocks"]

        available = exported_names(context.emitted.get(TYPES_FILE, ""))
        typed = [name for name in schema.types if name in available]

        printer = CodePrinter()
        printer.raw(GENERATED_HEADER)
        msw_imports = []
        if schema.endpoints:
            msw_imports.append("http")
        if schema.operations:
            msw_imports.append("graphql")
        printer.import_from(msw_imports + ["HttpResponse"], "msw")
        printer.import_from(typed, "./types", type_only=True)
        printer.blank()

        printer.line("// Mock data").blank()
        for name in schema.types:
            self._emit_mock(printer, schema.types[name], mocks.get(name), name in available)

        handlers: List[str] = []
        names = function_names(schema)
        base_url = context.option("baseUrl") or schema.metadata.base_url or ""
        if schema.endpoints:
            printer.line("// Request handlers").blank()
            for endpoint in schema.endpoints:
                handlers.append(self._emit_endpoint_handler(printer, endpoint, names, builder, base_url))
        if schema.operations:
            printer.line("// GraphQL handlers").blank()
            # у MSW нет обработчиков подписок
            for operation in schema.operations:
                if operation.kind == "subscription":
                    continue
                handlers.append(self._emit_operation_handler(printer, operation, names, builder))

        printer.line("export const handlers = [").indent()
        for handler in handlers:
            printer.line(f"{handler},")
        printer.dedent().line("];")
        return [GeneratedFile(MOCKS_FILE, printer.to_string())]

    # --- моки ---

    @staticmethod
    def _emit_mock(printer: CodePrinter, ir_type: IRType, value: Any, typed: bool) -> None:
        name = mock_name(ir_type.name)
        if typed and ir_type.kind == IRTypeKind.OBJECT and not ir_type.nullable and isinstance(value, dict):
            with printer.block(
                f"export function {name}(overrides: Partial<{ir_type.name}> = {{}}): {ir_type.name}"
            ):
                printer.line(f"return {{ ...({json_literal(value)} as {ir_type.name}), ...overrides }};")
        else:
            annotation = f" as unknown as {ir_type.name}" if typed else ""
            with printer.block(f"export function {name}()" + (f": {ir_type.name}" if typed else "")):
                printer.line(f"return {json_literal(value)}{annotation};")
        printer.blank()

    def _response_value(self, ref: IRTypeRef, builder: MockBuilder) -> str:
        if ref.kind == "reference" and ref.name in builder.schema.types:
            return f"{mock_name(ref.name)}()"
        value = builder.ref_value(ref)
        return json_literal(None if value is _CYCLE else value)

    # --- обработчики ---

    def _emit_endpoint_handler(
        self,
        printer: CodePrinter,
        endpoint: IREndpoint,
        names: Dict[str, str],
        builder: MockBuilder,
        base_url: str,
    ) -> str:
        handler = f"{names[endpoint.operation_id]}Handler"
        url = ts_literal(f"{base_url.rstrip('/')}{msw_path(endpoint.path)}")
        response = endpoint.success_response
        status = 200
        if response is not None and response.status_code.isdigit():
            status = int(response.status_code)
        entry = preferred_content(response.content) if response is not None else None

        printer.jsdoc(f"{endpoint.method.upper()} {endpoint.path}", endpoint.deprecated)
        with printer.block(f"export const {handler} = http.{endpoint.method}({url}, () =>", closing="});"):
            if entry is None or status == 204:
                printer.line(f"return new HttpResponse(null, {{ status: {status if response else 204} }});")
            else:
                init = "" if status == 200 else f", {{ status: {status} }}"
                printer.line(f"return HttpResponse.json({self._response_value(entry.type, builder)}{init});")
        printer.blank()
        return handler

    def _emit_operation_handler(
        self,
        printer: CodePrinter,
        operation: IROperation,
        names: Dict[str, str],
        builder: MockBuilder,
    ) -> str:
        handler = f"{names[operation.name]}Handler"
        method = operation.kind
        data = self._response_value(operation.return_type, builder)
        with printer.block(
            f"export const {handler} = graphql.{method}({ts_literal(operation.name)}, () =>",
            closing="});",
        ):
            printer.line(f"return HttpResponse.json({{ data: {data} }});")
        printer.blank()
        return handler


__all__ = ["MOCKS_FILE", "MockBuilder", "MswGenerator", "mock_name", "msw_path"]
