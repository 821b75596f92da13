"""
Построчная печать TypeScript и отображение типов IR в выражения TS
"""

import json
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, List, Optional, Sequence

from ..types.models import IRType, IRTypeKind, IRTypeRef
from ..utils.naming import escape_string, quote_property

GENERATED_HEADER = (
    "/* eslint-disable */\n"
    "// This file is generated by api-bridge. Do not edit it by hand.\n"
)

PRIMITIVE_TS = {
    IRTypeKind.STRING: "string",
    IRTypeKind.NUMBER: "number",
    IRTypeKind.INTEGER: "number",
    IRTypeKind.BOOLEAN: "boolean",
    IRTypeKind.NULL: "null",
    IRTypeKind.UNKNOWN: "unknown",
}


class CodePrinter:
    """Буфер строк с отступами"""

    def __init__(self, indent: str = "  "):
        self._lines: List[str] = []
        self._level = 0
        self._indent = indent

    def line(self, code: str = "") -> "CodePrinter":
        self._lines.append(f"{self._indent * self._level}{code}" if code else "")
        return self

    def lines(self, codes: Iterable[str]) -> "CodePrinter":
        for code in codes:
            self.line(code)
        return self

    def raw(self, text: str) -> "CodePrinter":
        """Многострочный фрагмент с сохранением текущего отступа"""
        for code in text.rstrip("\n").split("\n"):
            self.line(code)
        return self

    def blank(self) -> "CodePrinter":
        if self._lines and self._lines[-1] != "":
            self._lines.append("")
        return self

    def indent(self) -> "CodePrinter":
        self._level += 1
        return self

    def dedent(self) -> "CodePrinter":
        self._level = max(0, self._level - 1)
        return self

    @contextmanager
    def block(self, header: str, closing: str = "}") -> Iterator["CodePrinter"]:
        self.line(f"{header} {{")
        self.indent()
        try:
            yield self
        finally:
            self.dedent()
            self.line(closing)

    def jsdoc(
        self,
        description: Optional[str] = None,
        deprecated: bool = False,
        tags: Sequence[str] = (),
    ) -> "CodePrinter":
        body = []
        if description:
            body.extend(description.replace("*/", "*\\/").strip().split("\n"))
        if deprecated:
            body.append("@deprecated")
        body.extend(tags)
        if not body:
            return self
        if len(body) == 1:
            return self.line(f"/** {body[0]} */")
        self.line("/**")
        for text in body:
            self.line(f" * {text}".rstrip())
        return self.line(" */")

    def import_from(self, names: Iterable[str], source: str, type_only: bool = False) -> "CodePrinter":
        names = list(names)
        if not names:
            return self
        keyword = "import type" if type_only else "import"
        return self.line(f"{keyword} {{ {', '.join(names)} }} from '{source}';")

    def to_string(self) -> str:
        lines = list(self._lines)
        while lines and lines[-1] == "":
            lines.pop()
        return "\n".join(lines) + "\n"

    def __str__(self) -> str:
        return self.to_string()


def ts_literal(value: Any) -> str:
    """Значение Python в виде литерала TypeScript"""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return f"'{escape_string(value)}'"
    if isinstance(value, (int, float)):
        return repr(value)
    return json.dumps(value, ensure_ascii=False)


def _nullable(expression: str, nullable: bool) -> str:
    return f"{expression} | null" if nullable and expression not in ("null", "unknown") else expression


def _wrap(expression: str) -> str:
    """Скобки для операндов внутри Array<>/&/|"""
    return f"({expression})" if (" | " in expression or " & " in expression) else expression


def ts_type_ref(ref: IRTypeRef, prefix: str = "") -> str:
    """
    Выражение TS для ссылки на тип.

    Args:
        ref: Ссылка IR
        prefix: Префикс имен именованных типов (например 'Types.')
    """
    if ref.kind == "reference":
        expression = f"{prefix}{ref.name}"
    elif ref.kind == "primitive":
        expression = ts_primitive(ref.primitive_kind, ref.format)
    else:
        expression = ts_type(ref.inline_type, prefix)
        if ref.inline_type.nullable:
            expression = _nullable(expression, True)
    return _nullable(expression, ref.nullable)


def ts_primitive(kind: IRTypeKind, format: Optional[str] = None) -> str:
    if kind == IRTypeKind.STRING and format == "binary":
        return "Blob"
    return PRIMITIVE_TS[kind]


def ts_type(ir_type: IRType, prefix: str = "") -> str:
    """Структурное выражение TS для типа (без учета nullable самого типа)"""
    kind = ir_type.kind

    if kind in PRIMITIVE_TS:
        return ts_primitive(kind, ir_type.format)

    if kind == IRTypeKind.ARRAY:
        return f"Array<{ts_type_ref(ir_type.items, prefix)}>"

    if kind == IRTypeKind.ENUM:
        return " | ".join(ts_literal(v.value) for v in ir_type.enum_values)

    if kind == IRTypeKind.UNION:
        return " | ".join(_wrap(ts_type_ref(v, prefix)) for v in ir_type.variants)

    if kind == IRTypeKind.INTERSECTION:
        return " & ".join(_wrap(ts_type_ref(m, prefix)) for m in ir_type.members)

    if kind == IRTypeKind.ALIAS:
        return ts_type_ref(ir_type.target, prefix)

    return ts_object(ir_type, prefix)


def ts_object(ir_type: IRType, prefix: str = "") -> str:
    members = [f"{member};" for member in ts_object_members(ir_type, prefix)]
    if not members:
        return "Record<string, unknown>" if ir_type.additional_properties is not False else "{}"
    if not ir_type.properties and ir_type.additional_properties not in (None, False):
        return f"Record<string, {ts_additional(ir_type, prefix)}>"
    return "{ " + " ".join(members) + " }"


def ts_additional(ir_type: IRType, prefix: str = "") -> str:
    if isinstance(ir_type.additional_properties, IRTypeRef):
        return ts_type_ref(ir_type.additional_properties, prefix)
    return "unknown"


def ts_object_members(ir_type: IRType, prefix: str = "") -> List[str]:
    """Члены объектного типа без завершающей ';'"""
    members = []
    for prop in ir_type.properties:
        optional = "" if prop.required else "?"
        readonly = "readonly " if prop.read_only else ""
        members.append(
            f"{readonly}{quote_property(prop.name)}{optional}: {ts_type_ref(prop.type, prefix)}"
        )
    if ir_type.additional_properties not in (None, False):
        members.append(f"[key: string]: {ts_additional(ir_type, prefix)}")
    return members
