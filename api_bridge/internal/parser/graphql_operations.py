"""
Операции GraphQL: переменные и тип результата по selection set
"""

import logging
from typing import Callable, Dict, Iterable, List, Optional, Set

from graphql import (
    DocumentNode,
    FieldNode,
    FragmentDefinitionNode,
    FragmentSpreadNode,
    GraphQLError,
    GraphQLNamedType,
    GraphQLSchema,
    GraphQLType,
    InlineFragmentNode,
    OperationDefinitionNode,
    SelectionSetNode,
    Undefined,
    get_named_type,
    is_abstract_type,
    is_leaf_type,
    is_list_type,
    is_non_null_type,
    is_object_type,
    is_interface_type,
    parse,
    print_ast,
    type_from_ast,
    validate,
    value_from_ast_untyped,
)

from ...errors import ParseError
from ..types.models import IROperation, IRProperty, IRType, IRTypeKind, IRTypeRef, IRVariable
from ..utils.naming import pascal_case, unique_name

logger = logging.getLogger(__name__)

NamedRef = Callable[[GraphQLNamedType, bool], IRTypeRef]


def graphql_parse_error(error: GraphQLError, source_name: str = "") -> ParseError:
    """GraphQLError -> ParseError с позицией первой ошибки"""
    location = error.locations[0] if error.locations else None
    return ParseError(
        f"Ошибка GraphQL: {error.message}",
        source_name,
        line=location.line if location else None,
        column=location.column if location else None,
    )


class OperationBuilder:
    """Строит IROperation из документов операций или из корневых полей схемы"""

    def __init__(self, schema: GraphQLSchema, named_ref: NamedRef, source_name: str = ""):
        self.schema = schema
        self.named_ref = named_ref
        self.source_name = source_name
        self._fragments: Dict[str, FragmentDefinitionNode] = {}

    # --- документы ---

    def from_documents(self, documents: Iterable[str]) -> List[IROperation]:
        """
        Операции из всех документов сразу.

        Документы проверяются как один: фрагмент из одного файла доступен
        операциям из другого.
        """
        definitions = []
        for source in documents:
            try:
                document = parse(source)
            except GraphQLError as e:
                raise graphql_parse_error(e, self.source_name) from e
            for definition in document.definitions:
                if isinstance(definition, OperationDefinitionNode) and definition.name is None:
                    logger.warning("Анонимная операция в %s пропущена", self.source_name or "документе")
                    continue
                definitions.append(definition)

        document = DocumentNode(definitions=tuple(definitions))
        errors = validate(self.schema, document)
        if errors:
            raise graphql_parse_error(errors[0], self.source_name)

        self._fragments = {
            definition.name.value: definition
            for definition in definitions
            if isinstance(definition, FragmentDefinitionNode)
        }

        operations = []
        for definition in definitions:
            if isinstance(definition, OperationDefinitionNode):
                operations.append(self._build_operation(definition))
        return operations

    def _build_operation(
        self,
        definition: OperationDefinitionNode,
        description: Optional[str] = None,
        deprecated: bool = False,
    ) -> IROperation:
        name = definition.name.value
        kind = definition.operation.value
        root = self.schema.get_root_type(definition.operation)
        if root is None:
            raise ParseError(f"Схема не поддерживает операции {kind} ({name})", self.source_name)

        variables = []
        for variable in definition.variable_definitions or ():
            gql_type = type_from_ast(self.schema, variable.type)
            default = (
                value_from_ast_untyped(variable.default_value)
                if variable.default_value is not None
                else None
            )
            variables.append(
                IRVariable(
                    name=variable.variable.name.value,
                    type=self.type_ref(gql_type),
                    required=is_non_null_type(gql_type) and variable.default_value is None,
                    default=default,
                )
            )

        result = self.selection_type(root, definition.selection_set, f"{pascal_case(name)}Result")
        logger.debug("Операция %s %s", kind, name)

        return IROperation(
            name=name,
            kind=kind,
            variables=tuple(variables),
            return_type=IRTypeRef.inline(result),
            description=description,
            deprecated=deprecated,
            document=self._print(definition),
        )

    def _print(self, definition: OperationDefinitionNode) -> str:
        """Текст операции вместе с используемыми фрагментами"""
        used: List[str] = []
        self._collect_spreads(definition.selection_set, used)
        parts = [print_ast(definition)]
        parts.extend(print_ast(self._fragments[name]) for name in used)
        return "\n\n".join(parts)

    def _collect_spreads(self, selection_set: Optional[SelectionSetNode], used: List[str]) -> None:
        if selection_set is None:
            return
        for selection in selection_set.selections:
            if isinstance(selection, FragmentSpreadNode):
                name = selection.name.value
                if name not in used:
                    used.append(name)
                    self._collect_spreads(self._fragments[name].selection_set, used)
            else:
                self._collect_spreads(selection.selection_set, used)

    # --- типы ---

    def type_ref(self, gql_type: GraphQLType, nullable: bool = True) -> IRTypeRef:
        """Ссылка для входного типа (переменной)"""
        if is_non_null_type(gql_type):
            return self.type_ref(gql_type.of_type, nullable=False)
        if is_list_type(gql_type):
            items = self.type_ref(gql_type.of_type)
            return IRTypeRef.inline(
                IRType(name="List", kind=IRTypeKind.ARRAY, items=items), nullable=nullable
            )
        return self.named_ref(gql_type, nullable)

    def selection_type(
        self, parent: GraphQLNamedType, selection_set: SelectionSetNode, name: str
    ) -> IRType:
        properties: Dict[str, IRProperty] = {}
        self._collect_fields(parent, selection_set, name, properties, optional=False)
        return IRType(name=name, kind=IRTypeKind.OBJECT, properties=tuple(properties.values()))

    def _collect_fields(
        self,
        parent: GraphQLNamedType,
        selection_set: SelectionSetNode,
        name: str,
        properties: Dict[str, IRProperty],
        optional: bool,
    ) -> None:
        for selection in selection_set.selections:
            if isinstance(selection, FieldNode):
                prop = self._field_property(parent, selection, name)
                if optional:
                    prop = prop.model_copy(update={"required": False})
                previous = properties.get(prop.name)
                if previous is None or (prop.required and not previous.required):
                    properties[prop.name] = prop

            elif isinstance(selection, InlineFragmentNode):
                condition = parent
                if selection.type_condition is not None:
                    condition = self.schema.get_type(selection.type_condition.name.value)
                # Поля фрагмента на другом типе приходят не всегда
                self._collect_fields(
                    condition,
                    selection.selection_set,
                    name,
                    properties,
                    optional or condition is not parent,
                )

            elif isinstance(selection, FragmentSpreadNode):
                fragment = self._fragments[selection.name.value]
                condition = self.schema.get_type(fragment.type_condition.name.value)
                self._collect_fields(
                    condition,
                    fragment.selection_set,
                    name,
                    properties,
                    optional or condition is not parent,
                )

    def _field_property(self, parent: GraphQLNamedType, node: FieldNode, owner: str) -> IRProperty:
        key = node.alias.value if node.alias else node.name.value
        field_name = node.name.value

        if field_name == "__typename":
            return IRProperty(
                name=key, type=IRTypeRef.primitive(IRTypeKind.STRING), required=True
            )

        field = parent.fields[field_name]
        type_ref = self._output_ref(field.type, node.selection_set, f"{owner}{pascal_case(key)}")
        return IRProperty(
            name=key,
            type=type_ref,
            required=is_non_null_type(field.type),
            description=field.description,
            deprecated=field.deprecation_reason is not None,
        )

    def _output_ref(
        self,
        gql_type: GraphQLType,
        selection_set: Optional[SelectionSetNode],
        context: str,
        nullable: bool = True,
    ) -> IRTypeRef:
        if is_non_null_type(gql_type):
            return self._output_ref(gql_type.of_type, selection_set, context, nullable=False)
        if is_list_type(gql_type):
            items = self._output_ref(gql_type.of_type, selection_set, context)
            return IRTypeRef.inline(
                IRType(name=f"{context}List", kind=IRTypeKind.ARRAY, items=items),
                nullable=nullable,
            )
        if selection_set is None:
            return self.named_ref(gql_type, nullable)
        return IRTypeRef.inline(self.selection_type(gql_type, selection_set, context), nullable=nullable)

    # --- операции без документов ---

    def synthesize(self) -> List[IROperation]:
        """По одной операции на каждое корневое поле с выборкой листовых полей"""
        operations = []
        used: Set[str] = set()
        for kind, root in (
            ("query", self.schema.query_type),
            ("mutation", self.schema.mutation_type),
            ("subscription", self.schema.subscription_type),
        ):
            if root is None:
                continue
            for field_name, field in root.fields.items():
                name = unique_name(pascal_case(field_name), used)
                source = self._synthesize_document(kind, name, field_name, field)
                try:
                    document = parse(source)
                except GraphQLError as e:
                    raise graphql_parse_error(e, self.source_name) from e
                self._fragments = {}
                definition = document.definitions[0]
                operations.append(
                    self._build_operation(
                        definition,
                        description=field.description,
                        deprecated=field.deprecation_reason is not None,
                    )
                )
        return operations

    def _synthesize_document(self, kind: str, name: str, field_name: str, field) -> str:
        variables = ", ".join(f"${arg}: {spec.type}" for arg, spec in field.args.items())
        arguments = ", ".join(f"{arg}: ${arg}" for arg in field.args)
        header = f"{kind} {name}({variables})" if variables else f"{kind} {name}"
        call = f"{field_name}({arguments})" if arguments else field_name
        selection = self._leaf_selection(get_named_type(field.type))
        return f"{header} {{ {call}{selection} }}"

    @staticmethod
    def _leaf_selection(named: GraphQLNamedType) -> str:
        if is_leaf_type(named):
            return ""
        if is_abstract_type(named) and not is_interface_type(named):
            return " { __typename }"

        leaves = []
        if is_object_type(named) or is_interface_type(named):
            for field_name, field in named.fields.items():
                required_args = [
                    arg
                    for arg in field.args.values()
                    if is_non_null_type(arg.type) and arg.default_value is Undefined
                ]
                if is_leaf_type(get_named_type(field.type)) and not required_args:
                    leaves.append(field_name)

        if is_abstract_type(named):
            leaves.insert(0, "__typename")
        return " { " + " ".join(leaves or ["__typename"]) + " }"


def build_operations(
    schema: GraphQLSchema,
    named_ref: NamedRef,
    documents: Iterable[str] = (),
    source_name: str = "",
) -> List[IROperation]:
    builder = OperationBuilder(schema, named_ref, source_name)
    documents = [d for d in documents if d and d.strip()]
    if documents:
        return builder.from_documents(documents)
    return builder.synthesize()
