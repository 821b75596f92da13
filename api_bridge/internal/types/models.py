from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Annotated, Any, Iterator, Literal, Mapping, Optional, Tuple, Union

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, model_validator


class IRTypeKind(str, Enum):
    OBJECT = "object"
    ARRAY = "array"
    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    NULL = "null"
    UNKNOWN = "unknown"
    ENUM = "enum"
    UNION = "union"
    INTERSECTION = "intersection"
    ALIAS = "alias"


PRIMITIVE_KINDS = frozenset(
    {
        IRTypeKind.STRING,
        IRTypeKind.NUMBER,
        IRTypeKind.INTEGER,
        IRTypeKind.BOOLEAN,
        IRTypeKind.NULL,
        IRTypeKind.UNKNOWN,
    }
)

HttpMethod = Literal["get", "put", "post", "delete", "options", "head", "patch", "trace"]
ParameterLocation = Literal["path", "query", "header", "cookie", "body"]

# словарь внутри узла IR доступен только для чтения
FrozenMapping = Annotated[Mapping[str, Any], AfterValidator(lambda value: MappingProxyType(dict(value)))]


class IRNode(BaseModel):
    """Узлы IR неизменяемы после построения"""

    model_config = ConfigDict(frozen=True, extra="forbid")


class IRTypeRef(IRNode):
    """Ссылка на тип: по имени, встроенный тип или примитив"""

    kind: Literal["reference", "inline", "primitive"]
    name: Optional[str] = None
    inline_type: Optional["IRType"] = None
    primitive_kind: Optional[IRTypeKind] = None
    format: Optional[str] = None
    nullable: bool = False

    @model_validator(mode="after")
    def _check_single_target(self):
        populated = [
            kind
            for kind, value in (
                ("reference", self.name),
                ("inline", self.inline_type),
                ("primitive", self.primitive_kind),
            )
            if value is not None
        ]
        if populated != [self.kind]:
            raise ValueError(
                f"IRTypeRef вида '{self.kind}' должен заполнять ровно одно поле, "
                f"заполнены: {populated}"
            )
        if self.kind == "primitive" and self.primitive_kind not in PRIMITIVE_KINDS:
            raise ValueError(f"'{self.primitive_kind}' не является примитивом")
        return self

    @classmethod
    def reference(cls, name: str, nullable: bool = False) -> "IRTypeRef":
        return cls(kind="reference", name=name, nullable=nullable)

    @classmethod
    def inline(cls, ir_type: "IRType", nullable: bool = False) -> "IRTypeRef":
        return cls(kind="inline", inline_type=ir_type, nullable=nullable)

    @classmethod
    def primitive(
        cls,
        kind: Union[IRTypeKind, str],
        format: Optional[str] = None,
        nullable: bool = False,
    ) -> "IRTypeRef":
        return cls(
            kind="primitive",
            primitive_kind=IRTypeKind(kind),
            format=format,
            nullable=nullable,
        )

    def with_nullable(self, nullable: bool) -> "IRTypeRef":
        if nullable == self.nullable:
            return self
        return self.model_copy(update={"nullable": nullable})


class IRProperty(IRNode):
    name: str
    type: IRTypeRef
    required: bool = False
    description: Optional[str] = None
    deprecated: bool = False
    default: Any = None
    read_only: bool = False
    write_only: bool = False


class IREnumValue(IRNode):
    name: str
    value: Union[int, float, str]
    description: Optional[str] = None
    deprecated: bool = False


class IRDiscriminator(IRNode):
    property_name: str
    # значение дискриминатора -> имя типа
    mapping: FrozenMapping = Field(default_factory=dict, validate_default=True)


class IRType(IRNode):
    """Тип IR: вариант, размеченный полем kind"""

    name: str
    kind: IRTypeKind
    description: Optional[str] = None
    deprecated: bool = False
    nullable: bool = False
    default: Any = None

    # примитивы
    format: Optional[str] = None
    constraints: FrozenMapping = Field(default_factory=dict, validate_default=True)

    # object
    properties: Tuple[IRProperty, ...] = ()
    additional_properties: Union[bool, IRTypeRef, None] = None

    # array
    items: Optional[IRTypeRef] = None

    # enum
    enum_values: Tuple[IREnumValue, ...] = ()

    # union
    variants: Tuple[IRTypeRef, ...] = ()
    discriminator: Optional[IRDiscriminator] = None

    # intersection
    members: Tuple[IRTypeRef, ...] = ()

    # alias
    target: Optional[IRTypeRef] = None

    @property
    def is_primitive(self) -> bool:
        return self.kind in PRIMITIVE_KINDS

    def get_property(self, name: str) -> Optional[IRProperty]:
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None


IRTypeRef.model_rebuild()
IRProperty.model_rebuild()
IRType.model_rebuild()


class IRParameter(IRNode):
    name: str
    location: ParameterLocation
    type: IRTypeRef
    required: bool = False
    description: Optional[str] = None
    deprecated: bool = False
    default: Any = None
    style: Optional[str] = None
    explode: Optional[bool] = None


class IRMediaTypeContent(IRNode):
    media_type: str
    type: IRTypeRef


class IRRequestBody(IRNode):
    required: bool = False
    description: Optional[str] = None
    content: Tuple[IRMediaTypeContent, ...] = ()


class IRResponseHeader(IRNode):
    name: str
    type: IRTypeRef
    required: bool = False
    description: Optional[str] = None


class IRResponse(IRNode):
    status_code: str
    description: str = ""
    content: Tuple[IRMediaTypeContent, ...] = ()
    headers: Tuple[IRResponseHeader, ...] = ()


class IRSecurityRequirement(IRNode):
    name: str
    scopes: Tuple[str, ...] = ()


def preferred_content(
    content: Tuple[IRMediaTypeContent, ...]
) -> Optional[IRMediaTypeContent]:
    """JSON в приоритете, иначе первый media type"""
    for entry in content:
        if entry.media_type == "application/json" or entry.media_type.endswith("+json"):
            return entry
    return content[0] if content else None


class IREndpoint(IRNode):
    operation_id: str
    method: HttpMethod
    path: str
    summary: Optional[str] = None
    description: Optional[str] = None
    deprecated: bool = False
    tags: Tuple[str, ...] = ()
    parameters: Tuple[IRParameter, ...] = ()
    request_body: Optional[IRRequestBody] = None
    responses: Tuple[IRResponse, ...] = ()
    security: Tuple[IRSecurityRequirement, ...] = ()

    def parameters_in(self, *locations: str) -> Tuple[IRParameter, ...]:
        return tuple(p for p in self.parameters if p.location in locations)

    @property
    def success_response(self) -> Optional[IRResponse]:
        """Первый 2xx ответ в порядке документа, иначе default"""
        for response in self.responses:
            if response.status_code.startswith("2"):
                return response
        for response in self.responses:
            if response.status_code == "default":
                return response
        return None

    @property
    def success_type(self) -> Optional[IRTypeRef]:
        response = self.success_response
        if response is None:
            return None
        entry = preferred_content(response.content)
        return entry.type if entry else None


class IRVariable(IRNode):
    name: str
    type: IRTypeRef
    required: bool = False
    default: Any = None
    description: Optional[str] = None


class IROperation(IRNode):
    name: str
    kind: Literal["query", "mutation", "subscription"]
    variables: Tuple[IRVariable, ...] = ()
    return_type: IRTypeRef
    description: Optional[str] = None
    deprecated: bool = False
    document: Optional[str] = None


class IROAuth2Flow(IRNode):
    type: Literal["implicit", "password", "clientCredentials", "authorizationCode"]
    authorization_url: Optional[str] = None
    token_url: Optional[str] = None
    refresh_url: Optional[str] = None
    scopes: FrozenMapping = Field(default_factory=dict, validate_default=True)


class IRSecurityScheme(IRNode):
    name: str
    type: Literal["apiKey", "http", "oauth2", "openIdConnect"]
    description: Optional[str] = None
    api_key_name: Optional[str] = None
    api_key_in: Optional[Literal["query", "header", "cookie"]] = None
    http_scheme: Optional[str] = None
    bearer_format: Optional[str] = None
    flows: Tuple[IROAuth2Flow, ...] = ()
    open_id_connect_url: Optional[str] = None


class IRMetadata(IRNode):
    title: str = "API"
    version: str = "1.0.0"
    description: Optional[str] = None
    base_url: Optional[str] = None
    source: Literal["openapi", "graphql"]


@dataclass(frozen=True)
class IRSchema:
    """
    Итог разбора: реестр типов и операции.

    Реестр и списки только для чтения, генераторы их не меняют.
    """

    metadata: IRMetadata
    types: Mapping[str, IRType] = field(default_factory=dict)
    endpoints: Tuple[IREndpoint, ...] = ()
    operations: Tuple[IROperation, ...] = ()
    security_schemes: Mapping[str, IRSecurityScheme] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "types", MappingProxyType(dict(self.types)))
        object.__setattr__(
            self, "security_schemes", MappingProxyType(dict(self.security_schemes))
        )
        object.__setattr__(self, "endpoints", tuple(self.endpoints))
        object.__setattr__(self, "operations", tuple(self.operations))

    @property
    def operation_ids(self) -> Tuple[str, ...]:
        return tuple(e.operation_id for e in self.endpoints) + tuple(
            o.name for o in self.operations
        )

    def get_type(self, name: str) -> IRType:
        return self.types[name]

    def resolve(self, ref: IRTypeRef) -> Optional[IRType]:
        """Тип, на который указывает ссылка (для примитивов None)"""
        if ref.kind == "reference":
            return self.types.get(ref.name)
        if ref.kind == "inline":
            return ref.inline_type
        return None

    def get_endpoint(self, operation_id: str) -> Optional[IREndpoint]:
        for endpoint in self.endpoints:
            if endpoint.operation_id == operation_id:
                return endpoint
        return None

    def get_operation(self, name: str) -> Optional[IROperation]:
        for operation in self.operations:
            if operation.name == name:
                return operation
        return None


def iter_type_refs(schema: IRSchema) -> Iterator[Tuple[str, IRTypeRef]]:
    """Обход всех IRTypeRef схемы вместе с их путем"""
    for name, ir_type in schema.types.items():
        yield from iter_type_children(ir_type, f"types.{name}")

    for i, endpoint in enumerate(schema.endpoints):
        path = f"endpoints[{i}]"
        for j, param in enumerate(endpoint.parameters):
            yield from iter_ref(param.type, f"{path}.parameters[{j}].type")
        if endpoint.request_body:
            for j, entry in enumerate(endpoint.request_body.content):
                yield from iter_ref(entry.type, f"{path}.request_body.content[{j}].type")
        for j, response in enumerate(endpoint.responses):
            for k, entry in enumerate(response.content):
                yield from iter_ref(entry.type, f"{path}.responses[{j}].content[{k}].type")
            for k, header in enumerate(response.headers):
                yield from iter_ref(header.type, f"{path}.responses[{j}].headers[{k}].type")

    for i, operation in enumerate(schema.operations):
        path = f"operations[{i}]"
        for j, variable in enumerate(operation.variables):
            yield from iter_ref(variable.type, f"{path}.variables[{j}].type")
        yield from iter_ref(operation.return_type, f"{path}.return_type")


def iter_ref(ref: IRTypeRef, path: str) -> Iterator[Tuple[str, IRTypeRef]]:
    yield path, ref
    if ref.kind == "inline":
        yield from iter_type_children(ref.inline_type, f"{path}.inline_type")


def iter_type_children(ir_type: IRType, path: str) -> Iterator[Tuple[str, IRTypeRef]]:
    for i, prop in enumerate(ir_type.properties):
        yield from iter_ref(prop.type, f"{path}.properties[{i}].type")
    if isinstance(ir_type.additional_properties, IRTypeRef):
        yield from iter_ref(ir_type.additional_properties, f"{path}.additional_properties")
    if ir_type.items is not None:
        yield from iter_ref(ir_type.items, f"{path}.items")
    for i, variant in enumerate(ir_type.variants):
        yield from iter_ref(variant, f"{path}.variants[{i}]")
    for i, member in enumerate(ir_type.members):
        yield from iter_ref(member, f"{path}.members[{i}]")
    if ir_type.target is not None:
        yield from iter_ref(ir_type.target, f"{path}.target")
