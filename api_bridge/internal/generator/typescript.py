import logging
import re
from types import MappingProxyType
from typing import List, Optional, Set

from ..types.models import IREndpoint, IROperation, IRSchema, IRType, IRTypeKind
from ..utils.naming import pascal_case, quote_property
from .base import GeneratedFile, Generator, GeneratorContext
from .printer import (
    GENERATED_HEADER,
    CodePrinter,
    ts_literal,
    ts_object_members,
    ts_type,
    ts_type_ref,
)

logger = logging.getLogger(__name__)

TYPES_FILE = "types.ts"

EXPORT_RE = re.compile(r"^export (?:declare )?(?:interface|type|enum|const|function|class) (\w+)", re.M)

PARAM_GROUPS = (("path", "path"), ("query", "query"), ("header", "headers"), ("cookie", "cookies"))


def params_type_name(endpoint: IREndpoint) -> str:
    return f"{pascal_case(endpoint.operation_id)}Params"


def body_type_name(endpoint: IREndpoint) -> str:
    return f"{pascal_case(endpoint.operation_id)}Body"


def response_type_name(endpoint: IREndpoint) -> str:
    return f"{pascal_case(endpoint.operation_id)}Response"


def variables_type_name(operation: IROperation) -> str:
    return f"{pascal_case(operation.name)}Variables"


def result_type_name(operation: IROperation) -> str:
    return f"{pascal_case(operation.name)}Result"


def has_params(endpoint: IREndpoint) -> bool:
    return bool(endpoint.parameters_in("path", "query", "header", "cookie"))


def exported_names(content: str) -> Set[str]:
    """Имена, экспортируемые TS-модулем"""
    return set(EXPORT_RE.findall(content))


def response_ts(endpoint: IREndpoint, prefix: str = "") -> str:
    """Тип успешного ответа: объединение всех 2xx, иначе default, иначе void"""
    responses = [r for r in endpoint.responses if r.status_code.startswith("2")]
    if not responses:
        responses = [r for r in endpoint.responses if r.status_code == "default"]

    types: List[str] = []
    for response in responses:
        content = [c for c in response.content if "json" in c.media_type] or list(response.content)
        expression = ts_type_ref(content[0].type, prefix) if content else "void"
        if expression not in types:
            types.append(expression)
    return " | ".join(types) if types else "void"


class TypeScriptGenerator(Generator):
    """Интерфейсы и псевдонимы TypeScript для всех типов и операций схемы"""

    name = "typescript"
    description = "TypeScript types"
    default_options = MappingProxyType({"enumsAsConst": False, "generateTypeGuards": False})

    def generate(self, context: GeneratorContext) -> List[GeneratedFile]:
        schema = context.schema
        self._exports: Set[str] = set()
        printer = CodePrinter()
        printer.raw(GENERATED_HEADER).blank()

        for ir_type in schema.types.values():
            self._emit_type(printer, ir_type, bool(context.option("enumsAsConst")))
            printer.blank()

        if schema.endpoints:
            self._emit_endpoint_types(printer, schema)
        if schema.operations:
            self._emit_operation_types(printer, schema)
        if context.option("generateTypeGuards"):
            self._emit_guards(printer, schema)

        logger.debug("types.ts: %d экспортов", len(self._exports))
        return [GeneratedFile(TYPES_FILE, printer.to_string())]

    def _export(self, name: str) -> str:
        if name in self._exports:
            raise ValueError(f"Имя '{name}' экспортируется из {TYPES_FILE} дважды")
        self._exports.add(name)
        return name

    # --- именованные типы ---

    def _emit_type(self, printer: CodePrinter, ir_type: IRType, enums_as_const: bool) -> None:
        name = self._export(ir_type.name)
        printer.jsdoc(ir_type.description, ir_type.deprecated)

        if ir_type.kind == IRTypeKind.ENUM and not ir_type.nullable:
            if enums_as_const:
                with printer.block(f"export const {name} =", closing="} as const;"):
                    for value in ir_type.enum_values:
                        printer.jsdoc(value.description, value.deprecated)
                        printer.line(f"{quote_property(value.name)}: {ts_literal(value.value)},")
                printer.line(f"export type {name} = (typeof {name})[keyof typeof {name}];")
            else:
                with printer.block(f"export enum {name}"):
                    for value in ir_type.enum_values:
                        printer.jsdoc(value.description, value.deprecated)
                        printer.line(f"{quote_property(value.name)} = {ts_literal(value.value)},")
            return

        if ir_type.kind == IRTypeKind.OBJECT and ir_type.properties and not ir_type.nullable:
            with printer.block(f"export interface {name}"):
                self._emit_members(printer, ir_type)
            return

        expression = ts_type(ir_type)
        if ir_type.nullable and expression not in ("null", "unknown"):
            expression = f"{expression} | null"
        printer.line(f"export type {name} = {expression};")

    def _emit_members(self, printer: CodePrinter, ir_type: IRType) -> None:
        members = ts_object_members(ir_type)
        for prop, member in zip(ir_type.properties, members):
            printer.jsdoc(prop.description, prop.deprecated)
            printer.line(f"{member};")
        for member in members[len(ir_type.properties):]:
            printer.line(f"{member};")

    # --- эндпоинты ---

    def _emit_endpoint_types(self, printer: CodePrinter, schema: IRSchema) -> None:
        printer.line("// Endpoint types").blank()
        for endpoint in schema.endpoints:
            params_name = self._export(params_type_name(endpoint))
            if not has_params(endpoint):
                printer.line(f"export type {params_name} = void;")
            else:
                with printer.block(f"export interface {params_name}"):
                    for location, group in PARAM_GROUPS:
                        params = endpoint.parameters_in(location)
                        if not params:
                            continue
                        optional = "" if any(p.required for p in params) else "?"
                        with printer.block(f"{group}{optional}:", closing="};"):
                            for param in params:
                                printer.jsdoc(param.description, param.deprecated)
                                mark = "" if param.required else "?"
                                printer.line(
                                    f"{quote_property(param.name)}{mark}: {ts_type_ref(param.type)};"
                                )

            body = next(iter(endpoint.parameters_in("body")), None)
            if body is not None:
                body_name = self._export(body_type_name(endpoint))
                printer.line(f"export type {body_name} = {ts_type_ref(body.type)};")

            printer.line(
                f"export type {self._export(response_type_name(endpoint))} = {response_ts(endpoint)};"
            )
            printer.blank()

        operation_ids = " | ".join(ts_literal(e.operation_id) for e in schema.endpoints)
        printer.line(f"export type {self._export('OperationId')} = {operation_ids};").blank()

    # --- операции GraphQL ---

    def _emit_operation_types(self, printer: CodePrinter, schema: IRSchema) -> None:
        printer.line("// Operation types").blank()
        for operation in schema.operations:
            variables_name = self._export(variables_type_name(operation))
            if not operation.variables:
                printer.line(f"export type {variables_name} = Record<string, never>;")
            else:
                with printer.block(f"export interface {variables_name}"):
                    for variable in operation.variables:
                        mark = "" if variable.required else "?"
                        printer.line(f"{quote_property(variable.name)}{mark}: {ts_type_ref(variable.type)};")

            printer.jsdoc(operation.description, operation.deprecated)
            result_name = self._export(result_type_name(operation))
            printer.line(f"export type {result_name} = {ts_type_ref(operation.return_type)};")
            printer.blank()

    # --- type guards ---

    def _emit_guards(self, printer: CodePrinter, schema: IRSchema) -> None:
        printer.line("// Type guards").blank()
        for ir_type in schema.types.values():
            check = self._guard_expression(ir_type)
            if check is None:
                continue
            guard = self._export(f"is{pascal_case(ir_type.name)}")
            with printer.block(f"export function {guard}(value: unknown): value is {ir_type.name}"):
                printer.line(f"return {check};")
            printer.blank()

    @staticmethod
    def _guard_expression(ir_type: IRType) -> Optional[str]:
        null_check = "value === null || " if ir_type.nullable else ""
        if ir_type.kind == IRTypeKind.OBJECT:
            checks = ["typeof value === 'object'", "value !== null", "!Array.isArray(value)"]
            checks.extend(f"{ts_literal(p.name)} in value" for p in ir_type.properties if p.required)
            return null_check + " && ".join(checks)
        if ir_type.kind == IRTypeKind.ENUM:
            values = ", ".join(ts_literal(v.value) for v in ir_type.enum_values)
            return f"{null_check}([{values}] as unknown[]).includes(value)"
        if ir_type.kind in (IRTypeKind.STRING, IRTypeKind.NUMBER, IRTypeKind.INTEGER, IRTypeKind.BOOLEAN):
            js_type = "number" if ir_type.kind == IRTypeKind.INTEGER else ir_type.kind.value
            return f"{null_check}typeof value === '{js_type}'"
        if ir_type.kind == IRTypeKind.ARRAY:
            return f"{null_check}Array.isArray(value)"
        if ir_type.kind == IRTypeKind.UNION and ir_type.discriminator is not None:
            prop = ts_literal(ir_type.discriminator.property_name)
            values = ", ".join(ts_literal(v) for v in ir_type.discriminator.mapping)
            return (
                f"{null_check}typeof value === 'object' && value !== null && {prop} in value"
                f" && ([{values}] as unknown[]).includes((value as Record<string, unknown>)[{prop}])"
            )
        return None


def create_typescript_generator(options=None) -> TypeScriptGenerator:
    return TypeScriptGenerator(options)


__all__ = [
    "TYPES_FILE",
    "TypeScriptGenerator",
    "body_type_name",
    "exported_names",
    "has_params",
    "params_type_name",
    "response_ts",
    "response_type_name",
    "result_type_name",
    "variables_type_name",
]
