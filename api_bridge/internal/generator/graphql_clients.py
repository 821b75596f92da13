"""
Хуки Apollo Client и urql для операций GraphQL
"""

import logging
from typing import List

from ..types.models import IROperation
from ..utils.naming import pascal_case
from .base import GeneratedFile, Generator, GeneratorContext
from .client import document_name
from .printer import GENERATED_HEADER, CodePrinter
from .typescript import result_type_name, variables_type_name

logger = logging.getLogger(__name__)

APOLLO_FILE = "apollo.ts"
URQL_FILE = "urql.ts"

HOOK_SUFFIX = {"query": "Query", "mutation": "Mutation", "subscription": "Subscription"}


def hook_name(operation: IROperation, suffix: str = "") -> str:
    name = pascal_case(operation.name)
    kind_suffix = HOOK_SUFFIX[operation.kind]
    # GetUserQuery -> useGetUserQuery, а не useGetUserQueryQuery
    if name.endswith(kind_suffix):
        kind_suffix = ""
    return f"use{name}{suffix}{kind_suffix}"


def variables_required(operation: IROperation) -> bool:
    return any(v.required for v in operation.variables)


class _GraphQLHooksGenerator(Generator):
    requires = ("typescript",)
    file_name = ""
    gql_source = ""

    def generate(self, context: GeneratorContext) -> List[GeneratedFile]:
        operations = context.schema.operations
        printer = CodePrinter()
        printer.raw(GENERATED_HEADER)
        if not operations:
            printer.line("export {};")
            return [GeneratedFile(self.file_name, printer.to_string())]

        self._emit_imports(printer, operations)
        types = []
        for operation in operations:
            types.extend((variables_type_name(operation), result_type_name(operation)))
        printer.import_from(types, "./types", type_only=True).blank()

        for operation in operations:
            self._emit_document(printer, operation)
        for operation in operations:
            getattr(self, f"_emit_{operation.kind}")(printer, operation)

        logger.debug("%s: %d операций", self.file_name, len(operations))
        return [GeneratedFile(self.file_name, printer.to_string())]

    @staticmethod
    def _emit_document(printer: CodePrinter, operation: IROperation) -> None:
        printer.line(f"export const {document_name(operation)} = gql`").indent()
        for line in (operation.document or "").strip().split("\n"):
            printer.line(line.replace("\\", "\\\\").replace("`", "\\`").replace("${", "\\${"))
        printer.dedent().line("`;").blank()

    @staticmethod
    def _variables_arg(operation: IROperation) -> str:
        mark = "" if variables_required(operation) else "?"
        return f"variables{mark}: {variables_type_name(operation)}"

    def _emit_imports(self, printer: CodePrinter, operations) -> None:
        raise NotImplementedError


class ApolloGenerator(_GraphQLHooksGenerator):
    """useQuery / useLazyQuery / useMutation / useSubscription из @apollo/client"""

    name = "apollo"
    description = "Apollo Client hooks"
    file_name = APOLLO_FILE

    def _emit_imports(self, printer: CodePrinter, operations) -> None:
        kinds = {o.kind for o in operations}
        names = ["gql"]
        types = []
        if "query" in kinds:
            names.extend(["useQuery", "useLazyQuery"])
            types.extend(["QueryHookOptions", "LazyQueryHookOptions"])
        if "mutation" in kinds:
            names.append("useMutation")
            types.append("MutationHookOptions")
        if "subscription" in kinds:
            names.append("useSubscription")
            types.append("SubscriptionHookOptions")
        printer.import_from(names, "@apollo/client")
        printer.import_from(types, "@apollo/client", type_only=True)

    def _emit_query(self, printer: CodePrinter, operation: IROperation) -> None:
        result, variables = result_type_name(operation), variables_type_name(operation)
        document = document_name(operation)

        printer.jsdoc(operation.description, operation.deprecated)
        header = (
            f"export function {hook_name(operation)}({self._variables_arg(operation)}, "
            f"options?: Omit<QueryHookOptions<{result}, {variables}>, 'variables'>)"
        )
        with printer.block(header):
            printer.line(f"return useQuery<{result}, {variables}>({document}, {{ ...options, variables }});")
        printer.blank()

        header = (
            f"export function {hook_name(operation, 'Lazy')}("
            f"options?: LazyQueryHookOptions<{result}, {variables}>)"
        )
        with printer.block(header):
            printer.line(f"return useLazyQuery<{result}, {variables}>({document}, options);")
        printer.blank()

    def _emit_mutation(self, printer: CodePrinter, operation: IROperation) -> None:
        result, variables = result_type_name(operation), variables_type_name(operation)
        printer.jsdoc(operation.description, operation.deprecated)
        header = (
            f"export function {hook_name(operation)}("
            f"options?: MutationHookOptions<{result}, {variables}>)"
        )
        with printer.block(header):
            printer.line(f"return useMutation<{result}, {variables}>({document_name(operation)}, options);")
        printer.blank()

    def _emit_subscription(self, printer: CodePrinter, operation: IROperation) -> None:
        result, variables = result_type_name(operation), variables_type_name(operation)
        printer.jsdoc(operation.description, operation.deprecated)
        header = (
            f"export function {hook_name(operation)}({self._variables_arg(operation)}, "
            f"options?: Omit<SubscriptionHookOptions<{result}, {variables}>, 'variables'>)"
        )
        with printer.block(header):
            printer.line(
                f"return useSubscription<{result}, {variables}>({document_name(operation)}, "
                f"{{ ...options, variables }});"
            )
        printer.blank()


class UrqlGenerator(_GraphQLHooksGenerator):
    """useQuery / useMutation / useSubscription из urql"""

    name = "urql"
    description = "urql hooks"
    file_name = URQL_FILE

    def _emit_imports(self, printer: CodePrinter, operations) -> None:
        kinds = {o.kind for o in operations}
        names = ["gql"]
        types = []
        if "query" in kinds:
            names.append("useQuery")
            types.append("UseQueryArgs")
        if "mutation" in kinds:
            names.append("useMutation")
        if "subscription" in kinds:
            names.append("useSubscription")
            types.append("UseSubscriptionArgs")
        printer.import_from(names, "urql")
        printer.import_from(types, "urql", type_only=True)

    def _emit_query(self, printer: CodePrinter, operation: IROperation) -> None:
        result, variables = result_type_name(operation), variables_type_name(operation)
        printer.jsdoc(operation.description, operation.deprecated)
        header = (
            f"export function {hook_name(operation)}({self._variables_arg(operation)}, "
            f"options?: Omit<UseQueryArgs<{variables}, {result}>, 'query' | 'variables'>)"
        )
        with printer.block(header):
            printer.line(f"return useQuery<{result}, {variables}>({{").indent()
            printer.line(f"query: {document_name(operation)},")
            printer.line(f"variables: variables as {variables},")
            printer.line("...options,")
            printer.dedent().line("});")
        printer.blank()

    def _emit_mutation(self, printer: CodePrinter, operation: IROperation) -> None:
        result, variables = result_type_name(operation), variables_type_name(operation)
        printer.jsdoc(operation.description, operation.deprecated)
        with printer.block(f"export function {hook_name(operation)}()"):
            printer.line(f"return useMutation<{result}, {variables}>({document_name(operation)});")
        printer.blank()

    def _emit_subscription(self, printer: CodePrinter, operation: IROperation) -> None:
        result, variables = result_type_name(operation), variables_type_name(operation)
        printer.jsdoc(operation.description, operation.deprecated)
        header = (
            f"export function {hook_name(operation)}({self._variables_arg(operation)}, "
            f"options?: Omit<UseSubscriptionArgs<{variables}, {result}>, 'query' | 'variables'>)"
        )
        with printer.block(header):
            printer.line(f"return useSubscription<{result}, {result}, {variables}>({{").indent()
            printer.line(f"query: {document_name(operation)},")
            printer.line(f"variables: variables as {variables},")
            printer.line("...options,")
            printer.dedent().line("});")
        printer.blank()


__all__ = ["APOLLO_FILE", "URQL_FILE", "ApolloGenerator", "UrqlGenerator", "hook_name"]
