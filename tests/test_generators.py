"""
Тесты встроенных генераторов TypeScript
"""

import pytest

from api_bridge.errors import GeneratorError
from api_bridge.internal.generator import GeneratorContext, get_registry, run_pipeline
from api_bridge.internal.generator.client import ClientGenerator
from api_bridge.internal.generator.graphql_clients import hook_name
from api_bridge.internal.generator.hooks import is_query, mutation_variables
from api_bridge.internal.generator.msw import MockBuilder, msw_path
from api_bridge.internal.generator.router import can_load, route_path
from api_bridge.internal.generator.typescript import exported_names
from api_bridge.internal.parser.graphql import parse_graphql
from api_bridge.internal.parser.openapi import parse_openapi

PETSTORE = {
    "openapi": "3.0.3",
    "info": {"title": "Petstore", "version": "1.0.0"},
    "servers": [{"url": "https://api.example.com/v1"}],
    "paths": {
        "/pets": {
            "get": {
                "operationId": "listPets",
                "summary": "List all pets",
                "parameters": [
                    {"name": "limit", "in": "query", "schema": {"type": "integer", "maximum": 100}}
                ],
                "responses": {
                    "200": {
                        "description": "A paged array of pets",
                        "content": {
                            "application/json": {
                                "schema": {"type": "array", "items": {"$ref": "#/components/schemas/Pet"}}
                            }
                        },
                    }
                },
            },
            "post": {
                "operationId": "createPet",
                "requestBody": {
                    "required": True,
                    "content": {"application/json": {"schema": {"$ref": "#/components/schemas/NewPet"}}},
                },
                "responses": {
                    "201": {
                        "description": "Created",
                        "content": {"application/json": {"schema": {"$ref": "#/components/schemas/Pet"}}},
                    }
                },
            },
        },
        "/pets/{petId}": {
            "parameters": [
                {"name": "petId", "in": "path", "required": True, "schema": {"type": "integer"}}
            ],
            "get": {
                "operationId": "showPetById",
                "responses": {
                    "200": {
                        "description": "Expected response to a valid request",
                        "content": {"application/json": {"schema": {"$ref": "#/components/schemas/Pet"}}},
                    }
                },
            },
            "delete": {
                "operationId": "deletePet",
                "responses": {"204": {"description": "Deleted"}},
            },
        },
    },
    "components": {
        "schemas": {
            "Pet": {
                "type": "object",
                "required": ["id", "name"],
                "properties": {
                    "id": {"type": "integer", "format": "int64"},
                    "name": {"type": "string", "minLength": 10},
                    "email": {"type": "string", "format": "email"},
                    "status": {"$ref": "#/components/schemas/PetStatus"},
                    "children": {"type": "array", "items": {"$ref": "#/components/schemas/Pet"}},
                    "parent": {"$ref": "#/components/schemas/Pet"},
                },
            },
            "NewPet": {
                "type": "object",
                "required": ["name"],
                "properties": {"name": {"type": "string"}},
            },
            "PetStatus": {"type": "string", "enum": ["available", "sold"]},
        },
        "securitySchemes": {
            "api_key": {"type": "apiKey", "name": "X-API-Key", "in": "header"},
            "basic": {"type": "http", "scheme": "basic"},
            "petstore_auth": {
                "type": "oauth2",
                "flows": {
                    "implicit": {
                        "authorizationUrl": "https://example.com/oauth",
                        "scopes": {"read:pets": "Read pets"},
                    }
                },
            },
            "oidc": {"type": "openIdConnect", "openIdConnectUrl": "https://example.com/.well-known"},
        },
    },
}

SDL = """
type Pet {
  id: ID!
  name: String
}

type Query {
  pet(id: ID!): Pet
  pets: [Pet!]!
}

type Mutation {
  addPet(name: String!): Pet!
}

type Subscription {
  petAdded: Pet!
}
"""


def generate(schema, selection, options=None):
    """Результат конвейера как словарь path -> content"""
    generators = get_registry().create_enabled(selection)
    return {f.path: f.content for f in run_pipeline(schema, generators, options=options)}


@pytest.fixture
def petstore():
    return parse_openapi(PETSTORE)


@pytest.fixture
def graphql_schema():
    return parse_graphql(SDL)


class TestTypeScriptGenerator:
    """Тесты types.ts"""

    def test_named_types(self, petstore):
        """Тест интерфейсов, enum и типов эндпоинтов"""
        content = generate(petstore, {"typescript": True})["types.ts"]

        assert "export interface Pet {" in content
        assert "  id: number;" in content
        assert "  children?: Array<Pet>;" in content
        assert "export enum PetStatus {" in content
        assert "Available = 'available'," in content
        assert "export type ListPetsResponse = Array<Pet>;" in content
        assert "export type CreatePetBody = NewPet;" in content
        assert "export type DeletePetResponse = void;" in content
        assert "export type OperationId = 'listPets' | 'createPet' | 'showPetById' | 'deletePet';" in content

    def test_params_interface(self, petstore):
        content = generate(petstore, {"typescript": True})["types.ts"]
        assert "export interface ShowPetByIdParams {" in content
        assert "  path: {" in content
        assert "    petId: number;" in content
        assert "  query?: {" in content

    def test_enums_as_const(self, petstore):
        content = generate(petstore, {"typescript": {"enumsAsConst": True}})["types.ts"]
        assert "export const PetStatus = {" in content
        assert "export type PetStatus = (typeof PetStatus)[keyof typeof PetStatus];" in content

    def test_exported_names(self):
        content = "export interface A {}\nexport type B = string;\nexport const c = 1;\nconst d = 2;\n"
        assert exported_names(content) == {"A", "B", "c"}


class TestZodGenerator:
    """Тесты schemas.ts"""

    def test_recursive_schema_is_lazy(self, petstore):
        """Тест z.lazy для ссылки на самого себя"""
        content = generate(petstore, {"zod": True})["schemas.ts"]

        assert "import { z } from 'zod';" in content
        assert "export const PetSchema: z.ZodTypeAny = " in content
        assert "z.lazy(() => PetSchema)" in content
        assert "z.string().email()" in content
        assert "export const NewPetSchema = " in content


class TestClientGenerator:
    """Тесты client.ts"""

    def test_functions_style(self, petstore):
        """Тест функций клиента"""
        content = generate(petstore, {"typescript": True, "client": True})["client.ts"]

        assert "export const client = new HttpClient({ baseUrl: 'https://api.example.com/v1' });" in content
        assert "export function listPets(params?: ListPetsParams, options?: CallOptions): Promise<ListPetsResponse>" in content
        assert "export function createPet(body: CreatePetBody, options?: CallOptions): Promise<CreatePetResponse>" in content
        assert "client.request<ShowPetByIdResponse>('GET', '/pets/{petId}', { path: params?.path" in content

    def test_base_url_option(self, petstore):
        files = generate(
            petstore, {"typescript": True, "client": {"baseUrl": "http://localhost:3000"}}
        )
        assert "baseUrl: 'http://localhost:3000'" in files["client.ts"]

    def test_class_style(self, petstore):
        content = generate(petstore, {"typescript": True, "client": {"style": "class"}})["client.ts"]
        assert "export class ApiClient extends HttpClient {" in content
        assert "export const listPets = (params?: ListPetsParams, options?: CallOptions)" in content

    def test_unknown_style(self, petstore):
        with pytest.raises(GeneratorError):
            generate(petstore, {"typescript": True, "client": {"style": "axios"}})

    def test_missing_types_file(self, petstore):
        """Тест клиента без types.ts"""
        context = GeneratorContext(schema=petstore, options={"style": "functions"})

        with pytest.raises(GeneratorError) as exc_info:
            ClientGenerator().generate(context)

        assert exc_info.value.generator == "client"

    def test_missing_exported_types(self, petstore):
        context = GeneratorContext(
            schema=petstore,
            options={"style": "functions"},
            emitted={"types.ts": "export interface Pet {}\n"},
        )

        with pytest.raises(GeneratorError) as exc_info:
            ClientGenerator().generate(context)

        assert "ListPetsResponse" in exc_info.value.details["missing"]

    def test_requires_typescript_in_pipeline(self, petstore):
        with pytest.raises(GeneratorError) as exc_info:
            generate(petstore, {"client": True})
        assert exc_info.value.details["missing"] == ["typescript"]

    def test_graphql_client(self, graphql_schema):
        content = generate(graphql_schema, {"typescript": True, "client": True})["client.ts"]

        assert "export interface CallOptions" in content
        assert "export const graphqlClient = new GraphQLClient({ endpoint: '/graphql' });" in content
        assert "export const PetDocument = `query Pet($id: ID!)" in content
        assert "export function pet(variables: PetVariables, options?: CallOptions): Promise<PetResult>" in content
        assert "export function pets(variables?: PetsVariables" in content


class TestHooksGenerators:
    """Тесты хуков React Query и SWR"""

    def test_query_and_mutation_split(self, petstore):
        endpoints = {e.operation_id: e for e in petstore.endpoints}
        assert is_query(endpoints["listPets"])
        assert not is_query(endpoints["createPet"])
        assert mutation_variables(endpoints["createPet"]) == ("CreatePetBody", "variables")
        assert mutation_variables(endpoints["deletePet"]) == ("DeletePetParams", "variables")

    def test_react_query_hooks(self, petstore):
        """Тест хуков React Query"""
        files = generate(
            petstore,
            {"typescript": True, "client": True, "react-query": {"suspense": True}},
        )
        content = files["hooks.ts"]

        assert "from '@tanstack/react-query';" in content
        assert "import { createPet, deletePet, listPets, showPetById } from './client';" in content
        assert "export const queryKeys = {" in content
        assert "showPetById: (params: ShowPetByIdParams) => ['showPetById', params] as const," in content
        assert "export function useListPets(params?: ListPetsParams" in content
        assert "export function useListPetsSuspense(" in content
        assert "  return useQuery({" in content
        assert "queryFn: ({ signal }) => listPets(params, { signal })," in content
        assert "mutationFn: (variables: CreatePetBody) => createPet(variables)," in content
        assert "( {" not in content

    def test_react_query_requires_client(self, petstore):
        with pytest.raises(GeneratorError):
            generate(petstore, {"typescript": True, "react-query": True})

    def test_swr_hooks(self, petstore):
        files = generate(petstore, {"typescript": True, "client": True, "swr": {"immutable": True}})
        content = files["swr.ts"]

        assert "import useSWR, { type SWRConfiguration } from 'swr';" in content
        assert "import useSWRImmutable from 'swr/immutable';" in content
        assert "params ? swrKeys.showPetById(params) : null," in content
        assert "export function useShowPetByIdImmutable(" in content
        assert "return useSWRMutation('createPet'" in content

    def test_no_endpoints(self, graphql_schema):
        files = generate(graphql_schema, {"typescript": True, "client": True, "react-query": True})
        assert "export {};" in files["hooks.ts"]


class TestMswGenerator:
    """Тесты mocks.ts"""

    def test_msw_path(self):
        assert msw_path("/pets/{petId}/toys/{toyId}") == "/pets/:petId/toys/:toyId"

    def test_mock_values_are_deterministic(self, petstore):
        """Тест детерминированных моков и обрыва циклов"""
        builder = MockBuilder(petstore, {})

        pet = builder.named("Pet")

        assert pet == {
            "id": 1,
            "name": "stringxxxx",
            "email": "user@example.com",
            "status": "available",
            "children": [],
        }
        assert MockBuilder(petstore, {}).named("Pet") == pet

    def test_handlers(self, petstore):
        content = generate(petstore, {"typescript": True, "msw": True})["mocks.ts"]

        assert "import { http, HttpResponse } from 'msw';" in content
        assert "export function mockPet(overrides: Partial<Pet> = {}): Pet {" in content
        assert "http.get('https://api.example.com/v1/pets/:petId', () => {" in content
        assert "return HttpResponse.json(mockPet(), { status: 201 });" in content
        assert "return new HttpResponse(null, { status: 204 });" in content
        assert "export const handlers = [" in content
        assert "  deletePetHandler," in content

    def test_graphql_handlers_skip_subscriptions(self, graphql_schema):
        content = generate(graphql_schema, {"typescript": True, "msw": True})["mocks.ts"]

        assert "graphql.query('Pet', () => {" in content
        assert "graphql.mutation('AddPet', () => {" in content
        assert "PetAddedHandler" not in content
        assert "petAddedHandler" not in content


class TestGraphQLHooks:
    """Тесты хуков Apollo и urql"""

    def test_hook_names(self, graphql_schema):
        operations = {o.name: o for o in graphql_schema.operations}
        assert hook_name(operations["Pet"]) == "usePetQuery"
        assert hook_name(operations["Pet"], "Lazy") == "usePetLazyQuery"
        assert hook_name(operations["AddPet"]) == "useAddPetMutation"
        assert hook_name(operations["PetAdded"]) == "usePetAddedSubscription"

    def test_apollo(self, graphql_schema):
        content = generate(graphql_schema, {"typescript": True, "apollo": True})["apollo.ts"]

        assert "from '@apollo/client';" in content
        assert "export const PetDocument = gql`" in content
        assert "export function usePetQuery(variables: PetVariables" in content
        assert "export function usePetLazyQuery(" in content
        assert "export function useAddPetMutation(" in content
        assert "export function usePetAddedSubscription(" in content

    def test_urql(self, graphql_schema):
        content = generate(graphql_schema, {"typescript": True, "urql": True})["urql.ts"]

        assert "from 'urql';" in content
        assert "query: PetDocument," in content
        assert "export function useAddPetMutation() {" in content

    def test_without_operations(self, petstore):
        content = generate(petstore, {"typescript": True, "apollo": True})["apollo.ts"]
        assert "export {};" in content


class TestRouterGenerator:
    """Тесты routes.ts"""

    def test_route_path(self):
        assert route_path("/pets/{petId}") == "/pets/$petId"

    def test_can_load(self, petstore):
        endpoints = {e.operation_id: e for e in petstore.endpoints}
        assert can_load(endpoints["listPets"])
        assert can_load(endpoints["showPetById"])
        assert not can_load(endpoints["createPet"])
        assert not can_load(endpoints["deletePet"])

    def test_loaders(self, petstore):
        content = generate(
            petstore, {"typescript": True, "client": True, "tanstack-router": True}
        )["routes.ts"]

        assert "showPetById: '/pets/$petId'," in content
        assert "export interface ShowPetByIdRouteParams {" in content
        assert "{ path: { petId: Number(params['petId']) } }," in content
        assert "return listPets(undefined, { signal: abortController?.signal });" in content


class TestAuthGenerator:
    """Тесты auth.ts"""

    def test_security_helpers(self, petstore):
        """Тест помощников для каждой схемы безопасности"""
        content = generate(petstore, {"auth": True})["auth.ts"]

        assert "export function apiKeyAuth(apiKey: string): AuthConfig {" in content
        assert "return { headers: { 'X-API-Key': apiKey } };" in content
        assert "export function basicAuth(username: string, password: string): AuthConfig {" in content
        assert "export const petstoreAuthFlows = {" in content
        assert "'read:pets': 'Read pets'," in content
        assert "export function petstoreAuthAuthFromStorage(storage: TokenStorage): AuthConfig {" in content
        assert "export const oidcDiscoveryUrl = 'https://example.com/.well-known';" in content
        assert "export function mergeAuth(...configs: AuthConfig[]): AuthConfig {" in content


class TestIndexGenerator:
    """Тесты index.ts"""

    def test_reexports(self, petstore):
        content = generate(petstore, {"typescript": True, "zod": True, "client": True, "index": True})["index.ts"]

        assert "export * from './types';" in content
        assert "export * from './schemas';" in content
        assert "export * from './client';" in content

    def test_conflicting_exports_use_namespaces(self, graphql_schema):
        """Тест реэкспорта пространствами имен при конфликте имен"""
        content = generate(
            graphql_schema,
            {"typescript": True, "client": True, "apollo": True, "urql": True, "index": True},
        )["index.ts"]

        assert "export * from './types';" in content
        assert "export * as client from './client';" in content
        assert "export * as apollo from './apollo';" in content
        assert "export * as urql from './urql';" in content

    def test_empty(self, petstore):
        content = generate(petstore, {"index": True})["index.ts"]
        assert "export {};" in content
