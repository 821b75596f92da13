import logging
from types import MappingProxyType
from typing import Dict, List

from ...errors import GeneratorError
from ..types.models import IREndpoint, IROperation, IRSchema, preferred_content
from ..utils.naming import camel_case, escape_string, pascal_case, sanitize_identifier, unique_name
from .base import GeneratedFile, Generator, GeneratorContext
from .printer import GENERATED_HEADER, CodePrinter, ts_literal
from .templates import templates
from .typescript import (
    TYPES_FILE,
    body_type_name,
    exported_names,
    has_params,
    params_type_name,
    response_type_name,
    result_type_name,
    variables_type_name,
)

logger = logging.getLogger(__name__)

CLIENT_FILE = "client.ts"
CLIENT_STYLES = ("functions", "class")


def function_names(schema: IRSchema) -> Dict[str, str]:
    """Имя функции клиента для каждого operationId / операции GraphQL"""
    used: set = set()
    names = {}
    for endpoint in schema.endpoints:
        base = sanitize_identifier(camel_case(endpoint.operation_id) or "operation")
        names[endpoint.operation_id] = unique_name(base, used)
    for operation in schema.operations:
        base = sanitize_identifier(camel_case(operation.name) or "operation")
        names[operation.name] = unique_name(base, used)
    return names


def document_name(operation: IROperation) -> str:
    return f"{pascal_case(operation.name)}Document"


def params_required(endpoint: IREndpoint) -> bool:
    return any(p.required for p in endpoint.parameters_in("path", "query", "header", "cookie"))


def endpoint_signature(endpoint: IREndpoint, prefix: str = "") -> List[str]:
    """Аргументы функции эндпоинта (без options)"""
    args = []
    if has_params(endpoint):
        mark = "" if params_required(endpoint) else "?"
        args.append(f"params{mark}: {prefix}{params_type_name(endpoint)}")
    body = next(iter(endpoint.parameters_in("body")), None)
    if body is not None:
        if args and args[-1].startswith("params?") and body.required:
            args[-1] = args[-1].replace("params?:", "params:", 1)
        mark = "" if body.required else "?"
        args.append(f"body{mark}: {prefix}{body_type_name(endpoint)}")
    return args


def endpoint_call_args(endpoint: IREndpoint) -> List[str]:
    """Аргументы вызова функции клиента в том же порядке, что и сигнатура"""
    args = []
    if has_params(endpoint):
        args.append("params")
    if endpoint.parameters_in("body"):
        args.append("body")
    return args


class ClientGenerator(Generator):
    """HTTP-клиент на fetch (OpenAPI) или GraphQL-клиент для операций"""

    name = "client"
    description = "HTTP client"
    requires = ("typescript",)
    default_options = MappingProxyType({"baseUrl": None, "style": "functions"})

    def generate(self, context: GeneratorContext) -> List[GeneratedFile]:
        schema = context.schema
        style = context.option("style", "functions")
        if style not in CLIENT_STYLES:
            raise GeneratorError(
                f"Неизвестный стиль клиента '{style}', допустимо: {', '.join(CLIENT_STYLES)}",
                self.name,
            )

        imports = self._required_types(schema)
        self._check_types(context, imports)

        printer = CodePrinter()
        printer.raw(GENERATED_HEADER)
        printer.import_from(imports, "./types", type_only=True).blank()

        names = function_names(schema)
        base_url = context.option("baseUrl") or schema.metadata.base_url or ""

        if schema.endpoints:
            printer.raw(templates.http_client).blank()
            if style == "class":
                self._emit_class(printer, schema, names, base_url)
            else:
                self._emit_functions(printer, schema, names, base_url)

        if schema.operations:
            self._emit_graphql(printer, schema, names, base_url)

        logger.debug("client.ts: %d функций, стиль %s", len(names), style)
        return [GeneratedFile(CLIENT_FILE, printer.to_string())]

    @staticmethod
    def _required_types(schema: IRSchema) -> List[str]:
        names = []
        for endpoint in schema.endpoints:
            if has_params(endpoint):
                names.append(params_type_name(endpoint))
            if endpoint.parameters_in("body"):
                names.append(body_type_name(endpoint))
            names.append(response_type_name(endpoint))
        for operation in schema.operations:
            names.extend((variables_type_name(operation), result_type_name(operation)))
        return names

    def _check_types(self, context: GeneratorContext, required: List[str]) -> None:
        content = context.emitted.get(TYPES_FILE)
        if content is None:
            raise GeneratorError(f"Клиенту нужен {TYPES_FILE} от генератора typescript", self.name)
        missing = [name for name in required if name not in exported_names(content)]
        if missing:
            raise GeneratorError(
                f"{TYPES_FILE} не экспортирует: {', '.join(missing)}",
                self.name,
                details={"missing": missing},
            )

    # --- REST ---

    def _request_call(self, endpoint: IREndpoint, receiver: str) -> str:
        options = []
        if has_params(endpoint):
            for location, group in (("path", "path"), ("query", "query"), ("cookie", "cookies")):
                if endpoint.parameters_in(location):
                    options.append(f"{group}: params?.{group}")
            if endpoint.parameters_in("header"):
                options.append("headers: { ...params?.headers, ...options?.headers }")
            else:
                options.append("headers: options?.headers")
        else:
            options.append("headers: options?.headers")

        if endpoint.request_body is not None:
            options.append("body")
            entry = preferred_content(endpoint.request_body.content)
            if entry is not None and entry.media_type != "application/json":
                options.append(f"contentType: {ts_literal(entry.media_type)}")
        options.append("signal: options?.signal")

        return (
            f"{receiver}.request<{response_type_name(endpoint)}>("
            f"{ts_literal(endpoint.method.upper())}, {ts_literal(endpoint.path)}, "
            f"{{ {', '.join(options)} }})"
        )

    def _emit_functions(
        self, printer: CodePrinter, schema: IRSchema, names: Dict[str, str], base_url: str
    ) -> None:
        printer.line(f"export const client = new HttpClient({{ baseUrl: '{escape_string(base_url)}' }});")
        printer.blank()
        with printer.block("export function configureClient(config: Partial<ClientConfig>): void"):
            printer.line("client.configure(config);")
        printer.blank()

        for endpoint in schema.endpoints:
            args = endpoint_signature(endpoint) + ["options?: CallOptions"]
            printer.jsdoc(endpoint.summary or endpoint.description, endpoint.deprecated)
            header = (
                f"export function {names[endpoint.operation_id]}({', '.join(args)}): "
                f"Promise<{response_type_name(endpoint)}>"
            )
            with printer.block(header):
                printer.line(f"return {self._request_call(endpoint, 'client')};")
            printer.blank()

    def _emit_class(
        self, printer: CodePrinter, schema: IRSchema, names: Dict[str, str], base_url: str
    ) -> None:
        with printer.block("export class ApiClient extends HttpClient"):
            for endpoint in schema.endpoints:
                args = endpoint_signature(endpoint) + ["options?: CallOptions"]
                printer.jsdoc(endpoint.summary or endpoint.description, endpoint.deprecated)
                header = (
                    f"{names[endpoint.operation_id]}({', '.join(args)}): "
                    f"Promise<{response_type_name(endpoint)}>"
                )
                with printer.block(header):
                    printer.line(f"return {self._request_call(endpoint, 'this')};")
                printer.blank()
        printer.blank()
        printer.line(f"export const client = new ApiClient({{ baseUrl: '{escape_string(base_url)}' }});")
        printer.blank()
        with printer.block("export function configureClient(config: Partial<ClientConfig>): void"):
            printer.line("client.configure(config);")
        printer.blank()

        # Свободные функции поверх экземпляра, их используют хуки
        for endpoint in schema.endpoints:
            name = names[endpoint.operation_id]
            args = endpoint_signature(endpoint) + ["options?: CallOptions"]
            call_args = endpoint_call_args(endpoint) + ["options"]
            printer.line(
                f"export const {name} = ({', '.join(args)}): Promise<{response_type_name(endpoint)}> =>"
                f" client.{name}({', '.join(call_args)});"
            )
        printer.blank()

    # --- GraphQL ---

    def _emit_graphql(
        self, printer: CodePrinter, schema: IRSchema, names: Dict[str, str], endpoint: str
    ) -> None:
        # без REST-части CallOptions не объявлен http-шаблоном
        if not schema.endpoints:
            printer.raw(templates.call_options).blank()
        printer.raw(templates.graphql_client).blank()
        printer.line(
            f"export const graphqlClient = new GraphQLClient({{ endpoint: '{escape_string(endpoint or '/graphql')}' }});"
        )
        printer.blank()

        for operation in schema.operations:
            printer.line(f"export const {document_name(operation)} = `{self._template_text(operation.document or '')}`;")
            printer.blank()

            variables = variables_type_name(operation)
            mark = "" if any(v.required for v in operation.variables) else "?"
            printer.jsdoc(operation.description, operation.deprecated)
            header = (
                f"export function {names[operation.name]}(variables{mark}: {variables}, "
                f"options?: CallOptions): Promise<{result_type_name(operation)}>"
            )
            with printer.block(header):
                printer.line(
                    f"return graphqlClient.execute<{result_type_name(operation)}, {variables}>("
                    f"{document_name(operation)}, variables, options);"
                )
            printer.blank()

    @staticmethod
    def _template_text(document: str) -> str:
        return document.replace("\\", "\\\\").replace("`", "\\`").replace("${", "\\${")
