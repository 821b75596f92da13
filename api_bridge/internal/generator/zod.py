import logging
from types import MappingProxyType
from typing import Any, List, Mapping, Optional

from ..types.models import IRType, IRTypeKind, IRTypeRef
from ..utils.naming import escape_string, quote_property
from .base import GeneratedFile, Generator, GeneratorContext
from .printer import GENERATED_HEADER, CodePrinter, ts_literal

logger = logging.getLogger(__name__)

SCHEMAS_FILE = "schemas.ts"

STRING_FORMATS = {
    "email": ".email()",
    "uuid": ".uuid()",
    "uri": ".url()",
    "url": ".url()",
    "date-time": ".datetime()",
}


def schema_name(type_name: str) -> str:
    return f"{type_name}Schema"


class ZodGenerator(Generator):
    """
    Схемы Zod для именованных типов.

    Схемы объявляются в порядке реестра. Ссылка на тип, объявленный
    позже (или на самого себя), оборачивается в z.lazy, такая схема
    получает аннотацию z.ZodTypeAny.
    """

    name = "zod"
    description = "Zod schemas"
    default_options = MappingProxyType({"inferTypes": False})

    def generate(self, context: GeneratorContext) -> List[GeneratedFile]:
        declared = context.state.setdefault("declared", set())
        printer = CodePrinter()
        printer.raw(GENERATED_HEADER).line("import { z } from 'zod';").blank()

        for ir_type in context.schema.types.values():
            context.state["lazy"] = False
            context.state["current"] = ir_type.name
            expression = self._type_schema(ir_type, context)
            annotation = ": z.ZodTypeAny" if context.state["lazy"] else ""

            printer.jsdoc(ir_type.description, ir_type.deprecated)
            printer.line(f"export const {schema_name(ir_type.name)}{annotation} = {expression};")
            if context.option("inferTypes"):
                printer.line(
                    f"export type Inferred{ir_type.name} = z.infer<typeof {schema_name(ir_type.name)}>;"
                )
            printer.blank()
            declared.add(ir_type.name)

        logger.debug("schemas.ts: %d схем", len(declared))
        return [GeneratedFile(SCHEMAS_FILE, printer.to_string())]

    # --- выражения ---

    def _ref_schema(self, ref: IRTypeRef, context: GeneratorContext) -> str:
        if ref.kind == "reference":
            name = schema_name(ref.name)
            if ref.name in context.state["declared"] and ref.name != context.state["current"]:
                expression = name
            else:
                context.state["lazy"] = True
                expression = f"z.lazy(() => {name})"
        elif ref.kind == "primitive":
            expression = self._primitive(ref.primitive_kind, ref.format, {})
        else:
            expression = self._type_schema(ref.inline_type, context)
        return f"{expression}.nullable()" if ref.nullable else expression

    def _type_schema(self, ir_type: IRType, context: GeneratorContext) -> str:
        kind = ir_type.kind

        if kind == IRTypeKind.OBJECT:
            expression = self._object(ir_type, context)
        elif kind == IRTypeKind.ARRAY:
            expression = f"z.array({self._ref_schema(ir_type.items, context)})"
            expression += self._size(ir_type.constraints, "minItems", "maxItems")
        elif kind == IRTypeKind.ENUM:
            expression = self._enum(ir_type)
        elif kind == IRTypeKind.UNION:
            variants = [self._ref_schema(v, context) for v in ir_type.variants]
            expression = variants[0] if len(variants) == 1 else f"z.union([{', '.join(variants)}])"
        elif kind == IRTypeKind.INTERSECTION:
            members = [self._ref_schema(m, context) for m in ir_type.members]
            expression = members[0]
            for member in members[1:]:
                expression = f"z.intersection({expression}, {member})"
        elif kind == IRTypeKind.ALIAS:
            expression = self._ref_schema(ir_type.target, context)
        else:
            expression = self._primitive(kind, ir_type.format, ir_type.constraints)

        if ir_type.nullable and kind != IRTypeKind.NULL:
            expression += ".nullable()"
        return expression

    def _object(self, ir_type: IRType, context: GeneratorContext) -> str:
        additional = ir_type.additional_properties
        if not ir_type.properties:
            if isinstance(additional, IRTypeRef):
                return f"z.record(z.string(), {self._ref_schema(additional, context)})"
            if additional is False:
                return "z.object({}).strict()"
            return "z.record(z.string(), z.unknown())"

        fields = []
        for prop in ir_type.properties:
            expression = self._ref_schema(prop.type, context)
            if not prop.required:
                expression += ".optional()"
            fields.append(f"{quote_property(prop.name)}: {expression}")

        expression = "z.object({ " + ", ".join(fields) + " })"
        if isinstance(additional, IRTypeRef):
            expression += f".catchall({self._ref_schema(additional, context)})"
        elif additional is True:
            expression += ".passthrough()"
        elif additional is False:
            expression += ".strict()"
        return expression

    @staticmethod
    def _enum(ir_type: IRType) -> str:
        values = [v.value for v in ir_type.enum_values]
        if all(isinstance(v, str) for v in values):
            return f"z.enum([{', '.join(ts_literal(v) for v in values)}])"
        literals = [f"z.literal({ts_literal(v)})" for v in values]
        return literals[0] if len(literals) == 1 else f"z.union([{', '.join(literals)}])"

    def _primitive(self, kind: IRTypeKind, format: Optional[str], constraints: Mapping[str, Any]) -> str:
        if kind == IRTypeKind.STRING:
            if format == "binary":
                return "z.instanceof(Blob)"
            expression = "z.string()" + STRING_FORMATS.get(format or "", "")
            expression += self._size(constraints, "minLength", "maxLength")
            if "pattern" in constraints:
                pattern = escape_string(str(constraints["pattern"]))
                expression += f".regex(new RegExp('{pattern}'))"
            return expression

        if kind in (IRTypeKind.NUMBER, IRTypeKind.INTEGER):
            expression = "z.number().int()" if kind == IRTypeKind.INTEGER else "z.number()"
            for key, method in (
                ("minimum", "gte"),
                ("maximum", "lte"),
                ("exclusiveMinimum", "gt"),
                ("exclusiveMaximum", "lt"),
                ("multipleOf", "multipleOf"),
            ):
                if isinstance(constraints.get(key), (int, float)) and not isinstance(
                    constraints.get(key), bool
                ):
                    expression += f".{method}({constraints[key]!r})"
            return expression

        return {
            IRTypeKind.BOOLEAN: "z.boolean()",
            IRTypeKind.NULL: "z.null()",
        }.get(kind, "z.unknown()")

    @staticmethod
    def _size(constraints: Mapping[str, Any], minimum: str, maximum: str) -> str:
        expression = ""
        if isinstance(constraints.get(minimum), int):
            expression += f".min({constraints[minimum]})"
        if isinstance(constraints.get(maximum), int):
            expression += f".max({constraints[maximum]})"
        return expression


__all__ = ["SCHEMAS_FILE", "ZodGenerator", "schema_name"]
