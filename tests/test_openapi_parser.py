"""
Тесты парсера OpenAPI и разрешения $ref
"""

import pytest

from api_bridge.errors import CircularRefError, ParseError, RefResolutionError, ValidationError
from api_bridge.internal.parser.openapi import parse_openapi
from api_bridge.internal.types.models import IRTypeKind


def make_spec(paths=None, schemas=None, **extra):
    spec = {
        "openapi": "3.0.3",
        "info": {"title": "Petstore", "version": "1.0.0"},
        "paths": paths or {},
        "components": {"schemas": schemas or {}},
    }
    spec.update(extra)
    return spec


PET_SCHEMAS = {
    "Pet": {
        "type": "object",
        "required": ["id", "name"],
        "properties": {
            "id": {"type": "integer", "format": "int64"},
            "name": {"type": "string"},
            "tag": {"type": "string", "nullable": True},
            "status": {"$ref": "#/components/schemas/PetStatus"},
        },
    },
    "PetStatus": {"type": "string", "enum": ["available", "pending", "sold"]},
}


class TestEndpoints:
    """Тесты разбора эндпоинтов"""

    def test_get_pet_by_id(self):
        """Тест GET /pets/{petId} без operationId"""
        spec = make_spec(
            paths={
                "/pets/{petId}": {
                    "get": {
                        "parameters": [
                            {"name": "petId", "in": "path", "schema": {"type": "string"}}
                        ],
                        "responses": {
                            "200": {
                                "description": "OK",
                                "content": {
                                    "application/json": {
                                        "schema": {"$ref": "#/components/schemas/Pet"}
                                    }
                                },
                            },
                            "404": {"description": "Not found"},
                        },
                    }
                }
            },
            schemas=PET_SCHEMAS,
        )

        schema = parse_openapi(spec)

        endpoint = schema.get_endpoint("getPetsByPetId")
        assert endpoint is not None
        assert endpoint.method == "get"
        assert endpoint.path == "/pets/{petId}"
        (param,) = endpoint.parameters
        assert param.location == "path"
        assert param.required is True
        assert endpoint.success_type.kind == "reference"
        assert endpoint.success_type.name == "Pet"

    def test_schema_types(self):
        """Тест именованных типов и nullable"""
        schema = parse_openapi(make_spec(schemas=PET_SCHEMAS))

        assert list(schema.types) == ["Pet", "PetStatus"]
        pet = schema.get_type("Pet")
        assert pet.kind == IRTypeKind.OBJECT
        assert pet.get_property("id").required is True
        assert pet.get_property("tag").type.nullable is True
        assert pet.get_property("status").type.name == "PetStatus"

        status = schema.get_type("PetStatus")
        assert status.kind == IRTypeKind.ENUM
        assert [v.name for v in status.enum_values] == ["Available", "Pending", "Sold"]

    def test_duplicate_operation_ids(self):
        """Тест уникальности operationId: суффиксы начинаются с 2"""
        operation = {"operationId": "listPets", "responses": {"200": {"description": "OK"}}}
        spec = make_spec(paths={"/pets": {"get": operation}, "/animals": {"get": operation}})

        schema = parse_openapi(spec)

        assert [e.operation_id for e in schema.endpoints] == ["listPets", "listPets2"]

    def test_request_body_is_parameter(self):
        """Тест тела запроса как параметра body"""
        spec = make_spec(
            paths={
                "/pets": {
                    "post": {
                        "operationId": "createPet",
                        "requestBody": {
                            "required": True,
                            "content": {
                                "application/json": {
                                    "schema": {"$ref": "#/components/schemas/Pet"}
                                }
                            },
                        },
                        "responses": {"201": {"description": "Created"}},
                    }
                }
            },
            schemas=PET_SCHEMAS,
        )

        endpoint = parse_openapi(spec).get_endpoint("createPet")

        (body,) = endpoint.parameters_in("body")
        assert body.required is True
        assert body.type.name == "Pet"
        assert endpoint.success_type is None

    def test_path_item_parameters_are_merged(self):
        spec = make_spec(
            paths={
                "/pets/{petId}": {
                    "parameters": [
                        {"name": "petId", "in": "path", "required": True, "schema": {"type": "string"}},
                        {"name": "verbose", "in": "query", "schema": {"type": "boolean"}},
                    ],
                    "get": {
                        "operationId": "showPet",
                        "parameters": [
                            {"name": "verbose", "in": "query", "required": True, "schema": {"type": "boolean"}}
                        ],
                        "responses": {"200": {"description": "OK"}},
                    },
                }
            }
        )

        endpoint = parse_openapi(spec).get_endpoint("showPet")

        assert [p.name for p in endpoint.parameters] == ["petId", "verbose"]
        assert endpoint.parameters_in("query")[0].required is True

    def test_undeclared_path_parameter(self):
        spec = make_spec(
            paths={"/users/{userId}": {"get": {"responses": {"200": {"description": "OK"}}}}}
        )
        endpoint = parse_openapi(spec).endpoints[0]
        assert endpoint.parameters_in("path")[0].name == "userId"

    def test_security_schemes(self):
        spec = make_spec(
            security=[{"bearerAuth": []}],
            paths={"/me": {"get": {"responses": {"200": {"description": "OK"}}}}},
        )
        spec["components"]["securitySchemes"] = {
            "bearerAuth": {"type": "http", "scheme": "Bearer"},
            "apiKey": {"type": "apiKey", "name": "X-API-Key", "in": "header"},
        }

        schema = parse_openapi(spec)

        assert schema.security_schemes["bearerAuth"].http_scheme == "bearer"
        assert schema.security_schemes["apiKey"].api_key_in == "header"
        assert schema.endpoints[0].security[0].name == "bearerAuth"


class TestDocumentErrors:
    """Тесты ошибок документа"""

    def test_swagger_is_rejected(self):
        with pytest.raises(ParseError):
            parse_openapi({"swagger": "2.0", "info": {}, "paths": {}})

    def test_missing_version(self):
        with pytest.raises(ParseError):
            parse_openapi({"info": {}, "paths": {}})

    def test_mixed_enum(self):
        """Тест enum со строками и числами"""
        with pytest.raises(ParseError):
            parse_openapi(make_spec(schemas={"Mixed": {"enum": ["a", 1]}}))

    def test_unknown_parameter_location(self):
        spec = make_spec(
            paths={
                "/pets": {
                    "get": {
                        "parameters": [{"name": "x", "in": "body"}],
                        "responses": {"200": {"description": "OK"}},
                    }
                }
            }
        )
        with pytest.raises(ParseError):
            parse_openapi(spec)


class TestRefResolution:
    """Тесты разрешения ссылок"""

    def test_missing_pointer(self):
        """Тест несуществующего указателя"""
        spec = make_spec(schemas={"Pet": {"$ref": "#/components/schemas/Missing"}})

        with pytest.raises(RefResolutionError) as exc_info:
            parse_openapi(spec)

        assert exc_info.value.ref == "#/components/schemas/Missing"

    def test_recursive_type(self):
        """Тест рекурсивного типа Node -> children -> Node"""
        spec = make_spec(
            schemas={
                "Node": {
                    "type": "object",
                    "properties": {
                        "value": {"type": "string"},
                        "children": {"type": "array", "items": {"$ref": "#/components/schemas/Node"}},
                    },
                }
            }
        )

        schema = parse_openapi(spec)

        assert list(schema.types) == ["Node"]
        children = schema.get_type("Node").get_property("children").type
        assert children.kind == "inline"
        assert children.inline_type.items.name == "Node"

    def test_mutual_recursion(self):
        spec = make_spec(
            schemas={
                "Author": {
                    "type": "object",
                    "properties": {"books": {"type": "array", "items": {"$ref": "#/components/schemas/Book"}}},
                },
                "Book": {
                    "type": "object",
                    "properties": {"author": {"$ref": "#/components/schemas/Author"}},
                },
            }
        )

        schema = parse_openapi(spec)

        assert set(schema.types) == {"Author", "Book"}

    def test_alias_cycle(self):
        """Тест цикла псевдонимов, который нельзя связать лениво"""
        spec = make_spec(
            schemas={
                "A": {"$ref": "#/components/schemas/B"},
                "B": {"$ref": "#/components/schemas/A"},
            }
        )

        with pytest.raises(CircularRefError) as exc_info:
            parse_openapi(spec)

        assert "#/components/schemas/A" in exc_info.value.path

    def test_all_of_self_reference(self):
        spec = make_spec(
            schemas={"Loop": {"allOf": [{"$ref": "#/components/schemas/Loop"}]}}
        )
        with pytest.raises(CircularRefError):
            parse_openapi(spec)

    def test_parameter_ref_cycle(self):
        spec = make_spec(
            paths={
                "/pets": {
                    "get": {
                        "parameters": [{"$ref": "#/components/parameters/A"}],
                        "responses": {"200": {"description": "OK"}},
                    }
                }
            }
        )
        spec["components"]["parameters"] = {
            "A": {"$ref": "#/components/parameters/B"},
            "B": {"$ref": "#/components/parameters/A"},
        }

        with pytest.raises(CircularRefError):
            parse_openapi(spec)

    def test_all_of_merges_objects(self):
        """Тест слияния allOf из объектов"""
        spec = make_spec(
            schemas={
                "Base": {
                    "type": "object",
                    "required": ["id"],
                    "properties": {"id": {"type": "integer"}},
                },
                "Dog": {
                    "allOf": [
                        {"$ref": "#/components/schemas/Base"},
                        {"type": "object", "properties": {"bark": {"type": "boolean"}}},
                    ]
                },
            }
        )

        dog = parse_openapi(spec).get_type("Dog")

        assert dog.kind == IRTypeKind.OBJECT
        assert [p.name for p in dog.properties] == ["id", "bark"]
        assert dog.get_property("id").required is True

    def test_discriminated_union(self):
        spec = make_spec(
            schemas={
                "Cat": {"type": "object", "properties": {"petType": {"type": "string"}}},
                "Dog": {"type": "object", "properties": {"petType": {"type": "string"}}},
                "Pet": {
                    "oneOf": [
                        {"$ref": "#/components/schemas/Cat"},
                        {"$ref": "#/components/schemas/Dog"},
                    ],
                    "discriminator": {
                        "propertyName": "petType",
                        "mapping": {"cat": "#/components/schemas/Cat", "dog": "#/components/schemas/Dog"},
                    },
                },
            }
        )

        pet = parse_openapi(spec).get_type("Pet")

        assert pet.kind == IRTypeKind.UNION
        assert pet.discriminator.property_name == "petType"
        assert pet.discriminator.mapping == {"cat": "Cat", "dog": "Dog"}

    def test_external_file_ref(self, tmp_path):
        """Тест ссылки на внешний файл"""
        (tmp_path / "common.yaml").write_text(
            "Error:\n  type: object\n  properties:\n    message:\n      type: string\n",
            encoding="utf-8",
        )
        spec = make_spec(schemas={"ApiError": {"$ref": "./common.yaml#/Error"}})

        schema = parse_openapi(spec, str(tmp_path / "openapi.yaml"))

        assert schema.get_type("ApiError").kind == IRTypeKind.ALIAS
        assert schema.get_type("Error").get_property("message") is not None

    def test_missing_external_file(self, tmp_path):
        spec = make_spec(schemas={"ApiError": {"$ref": "./missing.yaml#/Error"}})
        with pytest.raises(RefResolutionError):
            parse_openapi(spec, str(tmp_path / "openapi.yaml"))

    def test_same_name_from_different_documents(self, tmp_path):
        """Тест одного имени типа из двух источников"""
        (tmp_path / "common.yaml").write_text("Pet:\n  type: string\n", encoding="utf-8")
        spec = make_spec(
            schemas={
                "Pet": {"type": "object", "properties": {"name": {"type": "string"}}},
                "Other": {"$ref": "./common.yaml#/Pet"},
            }
        )

        with pytest.raises(ValidationError) as exc_info:
            parse_openapi(spec, str(tmp_path / "openapi.yaml"))

        assert "Тип 'Pet' определен повторно" in exc_info.value.message


class TestIdempotence:
    """Тесты повторного разбора"""

    def test_same_document_same_schema(self):
        """Тест: два разбора одного документа дают одинаковые схемы"""
        operation = {"responses": {"200": {"description": "OK"}}}
        spec = make_spec(
            paths={"/pets": {"get": operation}, "/pets/": {"get": operation}},
            schemas={
                "Node": {
                    "type": "object",
                    "properties": {
                        "children": {"type": "array", "items": {"$ref": "#/components/schemas/Node"}},
                        "parent": {"$ref": "#/components/schemas/Node"},
                    },
                },
                **PET_SCHEMAS,
            },
        )

        first = parse_openapi(spec)
        second = parse_openapi(spec)

        assert list(first.types) == list(second.types) == ["Node", "Pet", "PetStatus"]
        assert dict(first.types) == dict(second.types)
        assert [e.operation_id for e in first.endpoints] == ["getPets", "getPets2"]
        assert [(e.operation_id, e.method, e.path) for e in first.endpoints] == [
            (e.operation_id, e.method, e.path) for e in second.endpoints
        ]
        assert first.endpoints == second.endpoints
