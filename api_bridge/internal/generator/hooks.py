"""
Хуки React Query и SWR поверх функций client.ts
"""

import logging
from types import MappingProxyType
from typing import Dict, List, Tuple

from ..types.models import IREndpoint
from ..utils.naming import pascal_case
from .base import GeneratedFile, Generator, GeneratorContext
from .client import function_names, params_required
from .printer import GENERATED_HEADER, CodePrinter, ts_literal
from .typescript import body_type_name, has_params, params_type_name, response_type_name

logger = logging.getLogger(__name__)

HOOKS_FILE = "hooks.ts"
SWR_FILE = "swr.ts"

QUERY_METHODS = ("get", "head", "options")


def is_query(endpoint: IREndpoint) -> bool:
    """Безопасные методы без тела становятся запросами, остальное - мутациями"""
    return endpoint.method in QUERY_METHODS and not endpoint.parameters_in("body")


def mutation_variables(endpoint: IREndpoint) -> Tuple[str, str]:
    """
    Тип переменных мутации и аргументы вызова функции клиента.

    Returns:
        (тип TS, выражение аргументов через variables)
    """
    params = has_params(endpoint)
    body = bool(endpoint.parameters_in("body"))
    if params and body:
        return (
            f"{{ params: {params_type_name(endpoint)}; body: {body_type_name(endpoint)} }}",
            "variables.params, variables.body",
        )
    if params:
        return params_type_name(endpoint), "variables"
    if body:
        return body_type_name(endpoint), "variables"
    return "void", ""


class _HooksGenerator(Generator):
    """Общая часть генераторов хуков: ключи кеша и разбиение на запросы/мутации"""

    requires = ("client",)
    file_name = ""
    keys_name = ""

    def generate(self, context: GeneratorContext) -> List[GeneratedFile]:
        schema = context.schema
        printer = CodePrinter()
        printer.raw(GENERATED_HEADER)

        if not schema.endpoints:
            printer.line("export {};")
            return [GeneratedFile(self.file_name, printer.to_string())]

        names = function_names(schema)
        queries = [e for e in schema.endpoints if is_query(e)]
        mutations = [e for e in schema.endpoints if not is_query(e)]

        self._emit_imports(printer, context, queries, mutations)
        printer.import_from(sorted({names[e.operation_id] for e in schema.endpoints}), "./client")
        printer.import_from(self._type_imports(schema.endpoints), "./types", type_only=True)
        printer.blank()

        self._emit_keys(printer, queries, names)
        for endpoint in queries:
            self._emit_query(printer, context, endpoint, names[endpoint.operation_id])
        for endpoint in mutations:
            self._emit_mutation(printer, endpoint, names[endpoint.operation_id])

        logger.debug(
            "%s: %d запросов, %d мутаций", self.file_name, len(queries), len(mutations)
        )
        return [GeneratedFile(self.file_name, printer.to_string())]

    @staticmethod
    def _type_imports(endpoints) -> List[str]:
        names = []
        for endpoint in endpoints:
            if has_params(endpoint):
                names.append(params_type_name(endpoint))
            if endpoint.parameters_in("body"):
                names.append(body_type_name(endpoint))
            names.append(response_type_name(endpoint))
        return names

    def _emit_keys(self, printer: CodePrinter, queries: List[IREndpoint], names: Dict[str, str]) -> None:
        printer.jsdoc("Ключи кеша для инвалидации")
        with printer.block(f"export const {self.keys_name} =", closing="} as const;"):
            for endpoint in queries:
                key = ts_literal(endpoint.operation_id)
                name = names[endpoint.operation_id]
                if has_params(endpoint):
                    mark = "" if params_required(endpoint) else "?"
                    printer.line(
                        f"{name}: (params{mark}: {params_type_name(endpoint)}) => [{key}, params] as const,"
                    )
                else:
                    printer.line(f"{name}: () => [{key}] as const,")
        printer.blank()

    @staticmethod
    def hook_name(endpoint: IREndpoint, suffix: str = "") -> str:
        return f"use{pascal_case(endpoint.operation_id)}{suffix}"

    def _emit_imports(self, printer, context, queries, mutations) -> None:
        raise NotImplementedError

    def _emit_query(self, printer, context, endpoint, function) -> None:
        raise NotImplementedError

    def _emit_mutation(self, printer, endpoint, function) -> None:
        raise NotImplementedError


class ReactQueryGenerator(_HooksGenerator):
    """useQuery / useMutation (и useSuspenseQuery с опцией suspense)"""

    name = "react-query"
    description = "React Query hooks"
    default_options = MappingProxyType({"suspense": False})
    file_name = HOOKS_FILE
    keys_name = "queryKeys"

    def _emit_imports(self, printer, context, queries, mutations) -> None:
        names = []
        if queries:
            names.extend(["useQuery", "UseQueryOptions"])
            if context.option("suspense"):
                names.extend(["useSuspenseQuery", "UseSuspenseQueryOptions"])
        if mutations:
            names.extend(["useMutation", "UseMutationOptions"])
        printer.import_from(names, "@tanstack/react-query")

    def _emit_query(self, printer, context, endpoint, function) -> None:
        variants = [("", "useQuery", "UseQueryOptions")]
        if context.option("suspense"):
            variants.append(("Suspense", "useSuspenseQuery", "UseSuspenseQueryOptions"))

        response = response_type_name(endpoint)
        for suffix, hook, options_type in variants:
            args = []
            if has_params(endpoint):
                mark = "" if params_required(endpoint) else "?"
                args.append(f"params{mark}: {params_type_name(endpoint)}")
            args.append(f"options?: Omit<{options_type}<{response}, Error>, 'queryKey' | 'queryFn'>")
            call = "params, { signal }" if has_params(endpoint) else "{ signal }"
            key = "params" if has_params(endpoint) else ""

            printer.jsdoc(endpoint.summary, endpoint.deprecated)
            with printer.block(f"export function {self.hook_name(endpoint, suffix)}({', '.join(args)})"):
                printer.line(f"return {hook}({{").indent()
                printer.line(f"queryKey: {self.keys_name}.{function}({key}),")
                printer.line(f"queryFn: ({{ signal }}) => {function}({call}),")
                printer.line("...options,")
                printer.dedent().line("});")
            printer.blank()

    def _emit_mutation(self, printer, endpoint, function) -> None:
        variables, call = mutation_variables(endpoint)
        response = response_type_name(endpoint)
        printer.jsdoc(endpoint.summary, endpoint.deprecated)
        header = (
            f"export function {self.hook_name(endpoint)}("
            f"options?: Omit<UseMutationOptions<{response}, Error, {variables}>, 'mutationFn'>)"
        )
        with printer.block(header):
            printer.line("return useMutation({").indent()
            printer.line(f"mutationFn: (variables: {variables}) => {function}({call}),")
            printer.line("...options,")
            printer.dedent().line("});")
        printer.blank()


class SwrGenerator(_HooksGenerator):
    """useSWR / useSWRMutation (и useSWRImmutable с опцией immutable)"""

    name = "swr"
    description = "SWR hooks"
    default_options = MappingProxyType({"immutable": False})
    file_name = SWR_FILE
    keys_name = "swrKeys"

    def _emit_imports(self, printer, context, queries, mutations) -> None:
        if queries:
            printer.line("import useSWR, { type SWRConfiguration } from 'swr';")
            if context.option("immutable"):
                printer.line("import useSWRImmutable from 'swr/immutable';")
        if mutations:
            printer.line(
                "import useSWRMutation, { type SWRMutationConfiguration } from 'swr/mutation';"
            )

    def _emit_query(self, printer, context, endpoint, function) -> None:
        variants = [("", "useSWR")]
        if context.option("immutable"):
            variants.append(("Immutable", "useSWRImmutable"))

        response = response_type_name(endpoint)
        for suffix, hook in variants:
            printer.jsdoc(endpoint.summary, endpoint.deprecated)
            if has_params(endpoint):
                # null отключает запрос (условная загрузка)
                header = (
                    f"export function {self.hook_name(endpoint, suffix)}("
                    f"params: {params_type_name(endpoint)} | null, "
                    f"options?: SWRConfiguration<{response}, Error>)"
                )
                with printer.block(header):
                    printer.line(f"return {hook}<{response}, Error>(").indent()
                    printer.line(f"params ? {self.keys_name}.{function}(params) : null,")
                    printer.line(f"params ? () => {function}(params) : null,")
                    printer.line("options")
                    printer.dedent().line(");")
            else:
                header = (
                    f"export function {self.hook_name(endpoint, suffix)}("
                    f"options?: SWRConfiguration<{response}, Error>)"
                )
                with printer.block(header):
                    printer.line(
                        f"return {hook}<{response}, Error>({self.keys_name}.{function}(), () => {function}(), options);"
                    )
            printer.blank()

    def _emit_mutation(self, printer, endpoint, function) -> None:
        variables, call = mutation_variables(endpoint)
        response = response_type_name(endpoint)
        key = ts_literal(endpoint.operation_id)
        printer.jsdoc(endpoint.summary, endpoint.deprecated)
        header = (
            f"export function {self.hook_name(endpoint)}("
            f"options?: SWRMutationConfiguration<{response}, Error, string, {variables}>)"
        )
        with printer.block(header):
            printer.line(
                f"return useSWRMutation({key}, (_key: string, {{ arg: variables }}: {{ arg: {variables} }}) =>"
                f" {function}({call}), options);"
            )
        printer.blank()


__all__ = [
    "HOOKS_FILE",
    "SWR_FILE",
    "ReactQueryGenerator",
    "SwrGenerator",
    "is_query",
    "mutation_variables",
]
