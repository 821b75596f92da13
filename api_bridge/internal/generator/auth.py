"""
Помощники авторизации по securitySchemes
"""

import logging
from typing import List

from ..types.models import IRSecurityScheme
from ..utils.naming import camel_case, quote_property, sanitize_identifier, unique_name
from .base import GeneratedFile, Generator, GeneratorContext
from .printer import GENERATED_HEADER, CodePrinter, ts_literal
from .templates import templates

logger = logging.getLogger(__name__)

AUTH_FILE = "auth.ts"

API_KEY_GROUPS = {"header": "headers", "query": "query", "cookie": "cookies"}

SCHEME_EMITTERS = {
    "apiKey": "_emit_api_key",
    "http": "_emit_http",
    "oauth2": "_emit_oauth2",
    "openIdConnect": "_emit_open_id_connect",
}


class AuthGenerator(Generator):
    """
    Функции, превращающие учетные данные в AuthConfig
    (заголовки, query-параметры, cookies) для каждой схемы безопасности.
    """

    name = "auth"
    description = "Auth helpers"

    def generate(self, context: GeneratorContext) -> List[GeneratedFile]:
        schemes = context.schema.security_schemes
        printer = CodePrinter()
        printer.raw(GENERATED_HEADER)

        with printer.block("export interface AuthConfig"):
            printer.line("headers?: Record<string, string>;")
            printer.line("query?: Record<string, string>;")
            printer.line("cookies?: Record<string, string>;")
        printer.blank()
        printer.raw(templates.auth_storage).blank()

        used: set = set()
        for scheme in schemes.values():
            base = sanitize_identifier(camel_case(scheme.name) or "scheme")
            prefix = unique_name(base, used)
            emit = getattr(self, SCHEME_EMITTERS[scheme.type])
            printer.jsdoc(scheme.description)
            emit(printer, scheme, prefix)
            printer.blank()

        printer.jsdoc("Объединение нескольких AuthConfig (для требований из нескольких схем)")
        with printer.block("export function mergeAuth(...configs: AuthConfig[]): AuthConfig"):
            printer.line("return configs.reduce<AuthConfig>(").indent()
            printer.line("(merged, config) => ({").indent()
            printer.line("headers: { ...merged.headers, ...config.headers },")
            printer.line("query: { ...merged.query, ...config.query },")
            printer.line("cookies: { ...merged.cookies, ...config.cookies },")
            printer.dedent().line("}),")
            printer.line("{ headers: {}, query: {}, cookies: {} }")
            printer.dedent().line(");")

        logger.debug("auth.ts: %d схем безопасности", len(schemes))
        return [GeneratedFile(AUTH_FILE, printer.to_string())]

    @staticmethod
    def _emit_api_key(printer: CodePrinter, scheme: IRSecurityScheme, prefix: str) -> None:
        group = API_KEY_GROUPS.get(scheme.api_key_in or "header", "headers")
        key = quote_property(scheme.api_key_name or scheme.name)
        with printer.block(f"export function {prefix}Auth(apiKey: string): AuthConfig"):
            printer.line(f"return {{ {group}: {{ {key}: apiKey }} }};")

    @staticmethod
    def _emit_http(printer: CodePrinter, scheme: IRSecurityScheme, prefix: str) -> None:
        http_scheme = (scheme.http_scheme or "bearer").lower()
        if http_scheme == "basic":
            with printer.block(f"export function {prefix}Auth(username: string, password: string): AuthConfig"):
                printer.line("return { headers: { Authorization: `Basic ${btoa(`${username}:${password}`)}` } };")
        elif http_scheme == "bearer":
            if scheme.bearer_format:
                printer.line(f"// bearer format: {scheme.bearer_format}")
            with printer.block(f"export function {prefix}Auth(token: string): AuthConfig"):
                printer.line("return { headers: { Authorization: `Bearer ${token}` } };")
        else:
            scheme_name = http_scheme.capitalize()
            with printer.block(f"export function {prefix}Auth(credentials: string): AuthConfig"):
                printer.line(f"return {{ headers: {{ Authorization: `{scheme_name} ${{credentials}}` }} }};")

    @staticmethod
    def _emit_oauth2(printer: CodePrinter, scheme: IRSecurityScheme, prefix: str) -> None:
        with printer.block(f"export const {prefix}Flows =", closing="} as const;"):
            for flow in scheme.flows:
                with printer.block(f"{flow.type}:", closing="},"):
                    for key, value in (
                        ("authorizationUrl", flow.authorization_url),
                        ("tokenUrl", flow.token_url),
                        ("refreshUrl", flow.refresh_url),
                    ):
                        if value:
                            printer.line(f"{key}: {ts_literal(value)},")
                    with printer.block("scopes:", closing="},"):
                        for scope, description in flow.scopes.items():
                            printer.line(f"{quote_property(scope)}: {ts_literal(description)},")
        printer.blank()
        with printer.block(f"export function {prefix}Auth(accessToken: string): AuthConfig"):
            printer.line("return { headers: { Authorization: `Bearer ${accessToken}` } };")
        printer.blank()
        with printer.block(f"export function {prefix}AuthFromStorage(storage: TokenStorage): AuthConfig"):
            printer.line("const token = storage.get();")
            printer.line(f"return token ? {prefix}Auth(token) : {{}};")

    @staticmethod
    def _emit_open_id_connect(printer: CodePrinter, scheme: IRSecurityScheme, prefix: str) -> None:
        printer.line(
            f"export const {prefix}DiscoveryUrl = {ts_literal(scheme.open_id_connect_url or '')};"
        )
        printer.blank()
        with printer.block(f"export function {prefix}Auth(idToken: string): AuthConfig"):
            printer.line("return { headers: { Authorization: `Bearer ${idToken}` } };")


__all__ = ["AUTH_FILE", "AuthGenerator"]
