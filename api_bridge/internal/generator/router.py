import logging
import re
from typing import List

from ..types.models import IREndpoint, IRParameter, IRTypeKind
from ..utils.naming import pascal_case, quote_property
from .base import GeneratedFile, Generator, GeneratorContext
from .client import function_names
from .printer import GENERATED_HEADER, CodePrinter, ts_literal

logger = logging.getLogger(__name__)

ROUTES_FILE = "routes.ts"

PATH_PARAM_RE = re.compile(r"\{([^}/]+)\}")

NUMERIC_KINDS = (IRTypeKind.NUMBER, IRTypeKind.INTEGER)


def route_path(path: str) -> str:
    """/pets/{petId} -> /pets/$petId"""
    return PATH_PARAM_RE.sub(lambda m: f"${m.group(1)}", path)


def route_params_name(endpoint: IREndpoint) -> str:
    return f"{pascal_case(endpoint.operation_id)}RouteParams"


def can_load(endpoint: IREndpoint) -> bool:
    """Загрузчик строится для GET без тела, где все обязательное берется из пути"""
    if endpoint.method != "get" or endpoint.parameters_in("body"):
        return False
    return all(p.required is False for p in endpoint.parameters_in("query", "header", "cookie"))


def _param_value(param: IRParameter) -> str:
    # параметры маршрута всегда строки
    source = f"params[{ts_literal(param.name)}]"
    if param.type.kind == "primitive" and param.type.primitive_kind in NUMERIC_KINDS:
        return f"Number({source})"
    if param.type.kind == "primitive" and param.type.primitive_kind == IRTypeKind.BOOLEAN:
        return f"{source} === 'true'"
    return source


class TanStackRouterGenerator(Generator):
    """Загрузчики маршрутов TanStack Router поверх функций client.ts"""

    name = "tanstack-router"
    description = "TanStack Router loaders"
    requires = ("client",)

    def generate(self, context: GeneratorContext) -> List[GeneratedFile]:
        schema = context.schema
        printer = CodePrinter()
        printer.raw(GENERATED_HEADER)

        endpoints = [e for e in schema.endpoints if can_load(e)]
        skipped = len([e for e in schema.endpoints if e.method == "get"]) - len(endpoints)
        if skipped:
            logger.debug("tanstack-router: %d GET-эндпоинтов без загрузчика", skipped)
        if not endpoints:
            printer.line("export {};")
            return [GeneratedFile(ROUTES_FILE, printer.to_string())]

        names = function_names(schema)
        printer.import_from(sorted({names[e.operation_id] for e in endpoints}), "./client").blank()

        printer.jsdoc("Пути маршрутов в синтаксисе TanStack Router")
        with printer.block("export const routePaths =", closing="} as const;"):
            for endpoint in endpoints:
                printer.line(f"{names[endpoint.operation_id]}: {ts_literal(route_path(endpoint.path))},")
        printer.blank()

        for endpoint in endpoints:
            self._emit_loader(printer, endpoint, names[endpoint.operation_id])

        return [GeneratedFile(ROUTES_FILE, printer.to_string())]

    def _emit_loader(self, printer: CodePrinter, endpoint: IREndpoint, function: str) -> None:
        path_params = endpoint.parameters_in("path")
        printer.jsdoc(f"{endpoint.method.upper()} {endpoint.path}", endpoint.deprecated)

        if path_params:
            params_type = route_params_name(endpoint)
            with printer.block(f"export interface {params_type}"):
                for param in path_params:
                    printer.line(f"{quote_property(param.name)}: string;")
            printer.blank()
            header = (
                f"export function {function}Loader("
                f"{{ params, abortController }}: {{ params: {params_type}; abortController?: AbortController }})"
            )
            with printer.block(header):
                printer.line("return " + function + "(").indent()
                printer.line("{ path: { " + ", ".join(
                    f"{quote_property(p.name)}: {_param_value(p)}" for p in path_params
                ) + " } },")
                printer.line("{ signal: abortController?.signal }")
                printer.dedent().line(");")
        else:
            header = (
                f"export function {function}Loader("
                f"{{ abortController }}: {{ abortController?: AbortController }} = {{}})"
            )
            with printer.block(header):
                args = "undefined, " if endpoint.parameters_in("query", "header", "cookie") else ""
                printer.line(f"return {function}({args}{{ signal: abortController?.signal }});")
        printer.blank()


__all__ = ["ROUTES_FILE", "TanStackRouterGenerator", "can_load", "route_path"]
