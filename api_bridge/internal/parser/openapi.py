import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ...errors import ParseError
from ..types.models import (
    IREndpoint,
    IRMediaTypeContent,
    IRMetadata,
    IROAuth2Flow,
    IRParameter,
    IRRequestBody,
    IRResponse,
    IRResponseHeader,
    IRSchema,
    IRSecurityRequirement,
    IRSecurityScheme,
    IRTypeKind,
    IRTypeRef,
    preferred_content,
)
from ..types.registry import TypeRegistry
from ..types.validator import ensure_valid
from ..utils.naming import pascal_case, sanitize_identifier, to_operation_name, unique_name
from .loader import load_document_file
from .ref_resolver import RefResolver, encode_segment
from .schema_converter import SchemaConverter

logger = logging.getLogger(__name__)

HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")
PARAMETER_LOCATIONS = ("path", "query", "header", "cookie")
OAUTH2_FLOWS = ("implicit", "password", "clientCredentials", "authorizationCode")

_PATH_PARAM_RE = re.compile(r"\{([^}]+)\}")


class OpenApiParser:
    """Парсер OpenAPI 3.0/3.1 документа в IR"""

    def __init__(
        self,
        openapi_dict: Dict[str, Any],
        source_url: Optional[str] = None,
        registry: Optional[TypeRegistry] = None,
        loader=load_document_file,
    ):
        self.openapi_dict = openapi_dict
        self.source_url = source_url or ""
        self.registry = registry if registry is not None else TypeRegistry()
        self.resolver = RefResolver(openapi_dict, self.source_url, self.registry, loader)
        self.converter = SchemaConverter(self.resolver, self.source_url)
        self._used_ids: set = set()

    def parse(self) -> IRSchema:
        """Парсинг OpenAPI в IRSchema"""
        self._check_document()

        metadata = self._parse_metadata()
        self._parse_named_schemas()
        security_schemes = self._parse_security_schemes()
        endpoints = self._parse_paths()

        schema = IRSchema(
            metadata=metadata,
            types=self.registry.snapshot(),
            endpoints=endpoints,
            security_schemes=security_schemes,
        )
        logger.info(
            "OpenAPI разобран: %d типов, %d эндпоинтов", len(schema.types), len(endpoints)
        )
        return ensure_valid(schema)

    def _check_document(self) -> None:
        if not isinstance(self.openapi_dict, Mapping):
            raise ParseError("Корень OpenAPI документа должен быть объектом", self.source_url)
        if "swagger" in self.openapi_dict:
            raise ParseError(
                f"Swagger {self.openapi_dict['swagger']} не поддерживается, нужен OpenAPI 3.x",
                self.source_url,
            )
        version = str(self.openapi_dict.get("openapi", ""))
        if not version.startswith("3."):
            raise ParseError(
                f"Не указана или не поддерживается версия OpenAPI: '{version}'", self.source_url
            )

    def _parse_metadata(self) -> IRMetadata:
        info = self.openapi_dict.get("info") or {}
        servers = self.openapi_dict.get("servers") or []
        base_url = None
        if servers and isinstance(servers[0], Mapping):
            base_url = servers[0].get("url")

        return IRMetadata(
            title=str(info.get("title") or "API"),
            version=str(info.get("version") or "1.0.0"),
            description=info.get("description"),
            base_url=base_url,
            source="openapi",
        )

    def _parse_named_schemas(self) -> None:
        """Именованные схемы в порядке документа"""
        containers = (
            ("#/components/schemas", (self.openapi_dict.get("components") or {}).get("schemas")),
            ("#/definitions", self.openapi_dict.get("definitions")),
        )
        for prefix, schemas in containers:
            for name in schemas or {}:
                self.resolver.resolve(
                    f"{prefix}/{encode_segment(str(name))}", self.converter.convert_schema
                )

    def _parse_security_schemes(self) -> Dict[str, IRSecurityScheme]:
        components = self.openapi_dict.get("components") or {}
        result = {}
        for name, raw in (components.get("securitySchemes") or {}).items():
            scheme = self.resolver.resolve_if_ref(raw)
            scheme_type = scheme.get("type")

            if scheme_type == "apiKey":
                result[name] = IRSecurityScheme(
                    name=name,
                    type="apiKey",
                    description=scheme.get("description"),
                    api_key_name=scheme.get("name"),
                    api_key_in=scheme.get("in"),
                )
            elif scheme_type == "http":
                result[name] = IRSecurityScheme(
                    name=name,
                    type="http",
                    description=scheme.get("description"),
                    http_scheme=str(scheme.get("scheme", "bearer")).lower(),
                    bearer_format=scheme.get("bearerFormat"),
                )
            elif scheme_type == "oauth2":
                flows = tuple(
                    IROAuth2Flow(
                        type=flow_type,
                        authorization_url=flow.get("authorizationUrl"),
                        token_url=flow.get("tokenUrl"),
                        refresh_url=flow.get("refreshUrl"),
                        scopes=dict(flow.get("scopes") or {}),
                    )
                    for flow_type, flow in (scheme.get("flows") or {}).items()
                    if flow_type in OAUTH2_FLOWS
                )
                result[name] = IRSecurityScheme(
                    name=name, type="oauth2", description=scheme.get("description"), flows=flows
                )
            elif scheme_type == "openIdConnect":
                result[name] = IRSecurityScheme(
                    name=name,
                    type="openIdConnect",
                    description=scheme.get("description"),
                    open_id_connect_url=scheme.get("openIdConnectUrl"),
                )
            else:
                logger.warning("Схема безопасности %s типа '%s' пропущена", name, scheme_type)
        return result

    def _parse_paths(self) -> List[IREndpoint]:
        endpoints = []
        global_security = self.openapi_dict.get("security")

        for path, raw_item in (self.openapi_dict.get("paths") or {}).items():
            item, base = self.resolver.resolve_node(raw_item)
            if not isinstance(item, Mapping):
                raise ParseError(f"Path item {path} должен быть объектом", self.source_url)

            with self.resolver.document_scope(base):
                path_params = self._parse_parameters(item.get("parameters") or [], pascal_case(path))

                for method in HTTP_METHODS:
                    operation = item.get(method)
                    if not isinstance(operation, Mapping):
                        continue
                    endpoint = self._parse_operation(
                        str(path), method, operation, path_params, global_security
                    )
                    endpoints.append(endpoint)
                    logger.debug("Эндпоинт %s %s -> %s", method.upper(), path, endpoint.operation_id)

        return endpoints

    def _operation_id(self, method: str, path: str, operation: Mapping[str, Any]) -> str:
        explicit = operation.get("operationId")
        base = sanitize_identifier(explicit) if explicit else to_operation_name(method, path)
        operation_id = unique_name(base, self._used_ids)
        if operation_id != base:
            logger.debug("operationId %s уже занят, используется %s", base, operation_id)
        return operation_id

    def _parse_operation(
        self,
        path: str,
        method: str,
        operation: Mapping[str, Any],
        path_params: List[IRParameter],
        global_security: Optional[List[Dict[str, List[str]]]],
    ) -> IREndpoint:
        operation_id = self._operation_id(method, path, operation)
        context = pascal_case(operation_id)

        own_params = self._parse_parameters(operation.get("parameters") or [], context)
        parameters = self._merge_parameters(path_params, own_params)
        parameters.extend(self._implicit_path_params(path, parameters))

        request_body = None
        if operation.get("requestBody") is not None:
            request_body = self._parse_request_body(operation["requestBody"], context)
            entry = preferred_content(request_body.content)
            parameters.append(
                IRParameter(
                    name="body",
                    location="body",
                    type=entry.type if entry else IRTypeRef.primitive(IRTypeKind.UNKNOWN),
                    required=request_body.required,
                    description=request_body.description,
                )
            )

        security = operation.get("security", global_security) or []

        return IREndpoint(
            operation_id=operation_id,
            method=method,
            path=path,
            summary=operation.get("summary"),
            description=operation.get("description"),
            deprecated=bool(operation.get("deprecated", False)),
            tags=tuple(operation.get("tags") or ()),
            parameters=tuple(parameters),
            request_body=request_body,
            responses=self._parse_responses(operation.get("responses") or {}, context),
            security=tuple(
                IRSecurityRequirement(name=name, scopes=tuple(scopes or ()))
                for requirement in security
                for name, scopes in requirement.items()
            ),
        )

    def _parse_parameters(self, raw_params: List[Any], context: str) -> List[IRParameter]:
        result = []
        for raw in raw_params:
            param, base = self.resolver.resolve_node(raw)
            location = param.get("in")
            if not param.get("name"):
                raise ParseError(f"У параметра в {context} нет имени", self.source_url)
            if location not in PARAMETER_LOCATIONS:
                raise ParseError(
                    f"Параметр '{param.get('name')}' имеет неизвестное расположение '{location}'",
                    self.source_url,
                )

            with self.resolver.document_scope(base):
                schema = param.get("schema")
                if schema is None and param.get("content"):
                    schema = next(iter(param["content"].values())).get("schema")
                type_ref = (
                    self.converter.convert_to_type_ref(
                        schema, f"{context}{pascal_case(param['name'])}Param"
                    )
                    if schema is not None
                    else IRTypeRef.primitive(IRTypeKind.STRING)
                )

            result.append(
                IRParameter(
                    name=param["name"],
                    location=location,
                    type=type_ref,
                    required=bool(param.get("required", location == "path")),
                    description=param.get("description"),
                    deprecated=bool(param.get("deprecated", False)),
                    default=schema.get("default") if isinstance(schema, Mapping) else None,
                    style=param.get("style"),
                    explode=param.get("explode"),
                )
            )
        return result

    @staticmethod
    def _merge_parameters(
        path_params: List[IRParameter], own_params: List[IRParameter]
    ) -> List[IRParameter]:
        """Параметры операции перекрывают параметры пути с тем же in:name"""
        merged: Dict[Tuple[str, str], IRParameter] = {
            (p.location, p.name): p for p in path_params
        }
        for param in own_params:
            merged[(param.location, param.name)] = param
        return list(merged.values())

    def _implicit_path_params(self, path: str, parameters: List[IRParameter]) -> List[IRParameter]:
        declared = {p.name for p in parameters if p.location == "path"}
        implicit = []
        for name in _PATH_PARAM_RE.findall(path):
            if name not in declared:
                logger.warning("Параметр пути {%s} в %s не описан, считаем его строкой", name, path)
                declared.add(name)
                implicit.append(
                    IRParameter(
                        name=name,
                        location="path",
                        type=IRTypeRef.primitive(IRTypeKind.STRING),
                        required=True,
                    )
                )
        return implicit

    def _parse_content(self, content: Mapping[str, Any], context: str) -> Tuple[IRMediaTypeContent, ...]:
        result = []
        for media_type, media in (content or {}).items():
            schema = media.get("schema") if isinstance(media, Mapping) else None
            result.append(
                IRMediaTypeContent(
                    media_type=media_type,
                    type=self.converter.convert_to_type_ref(schema, context),
                )
            )
        return tuple(result)

    def _parse_request_body(self, raw: Any, context: str) -> IRRequestBody:
        body, base = self.resolver.resolve_node(raw)
        with self.resolver.document_scope(base):
            return IRRequestBody(
                required=bool(body.get("required", False)),
                description=body.get("description"),
                content=self._parse_content(body.get("content") or {}, f"{context}Body"),
            )

    def _parse_responses(self, responses: Mapping[str, Any], context: str) -> Tuple[IRResponse, ...]:
        result = []
        for status_code, raw in responses.items():
            status_code = str(status_code)
            response, base = self.resolver.resolve_node(raw)
            with self.resolver.document_scope(base):
                headers = []
                for header_name, raw_header in (response.get("headers") or {}).items():
                    header, header_base = self.resolver.resolve_node(raw_header)
                    with self.resolver.document_scope(header_base):
                        headers.append(
                            IRResponseHeader(
                                name=header_name,
                                type=self.converter.convert_to_type_ref(
                                    header.get("schema"),
                                    f"{context}{pascal_case(header_name)}Header",
                                ),
                                required=bool(header.get("required", False)),
                                description=header.get("description"),
                            )
                        )

                result.append(
                    IRResponse(
                        status_code=status_code,
                        description=response.get("description") or "",
                        content=self._parse_content(
                            response.get("content") or {}, f"{context}{status_code}Response"
                        ),
                        headers=tuple(headers),
                    )
                )
        return tuple(result)


def parse_openapi(
    openapi_dict: Dict[str, Any], source_url: Optional[str] = None
) -> IRSchema:
    """Разбор уже загруженного OpenAPI документа"""
    return OpenApiParser(openapi_dict, source_url).parse()
