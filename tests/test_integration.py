"""
Интеграционные тесты для генератора
"""

import asyncio
import json
import os

import pytest

from api_bridge import ApiBridgeGenerator, BridgeConfig, generate
from api_bridge.cli import main, watched_paths
from api_bridge.errors import RefResolutionError
from api_bridge.internal.utils.single_flight import SingleFlight

USERS_SPEC = {
    "openapi": "3.0.0",
    "info": {"title": "Users API", "version": "2.0.0"},
    "servers": [{"url": "https://api.example.com"}],
    "components": {
        "schemas": {
            "User": {
                "type": "object",
                "properties": {
                    "id": {"type": "integer"},
                    "username": {"type": "string"},
                    "email": {"type": "string", "format": "email"},
                    "role": {"$ref": "#/components/schemas/UserRole"},
                },
                "required": ["id", "username", "email"],
            },
            "CreateUserRequest": {
                "type": "object",
                "properties": {
                    "username": {"type": "string"},
                    "password": {"type": "string"},
                },
                "required": ["username", "password"],
            },
            "UserRole": {"type": "string", "enum": ["admin", "user", "moderator"]},
        }
    },
    "paths": {
        "/users": {
            "get": {
                "operationId": "listUsers",
                "responses": {
                    "200": {
                        "description": "OK",
                        "content": {
                            "application/json": {
                                "schema": {"type": "array", "items": {"$ref": "#/components/schemas/User"}}
                            }
                        },
                    }
                },
            },
            "post": {
                "operationId": "createUser",
                "requestBody": {
                    "required": True,
                    "content": {
                        "application/json": {"schema": {"$ref": "#/components/schemas/CreateUserRequest"}}
                    },
                },
                "responses": {
                    "201": {
                        "description": "Created",
                        "content": {"application/json": {"schema": {"$ref": "#/components/schemas/User"}}},
                    }
                },
            },
        }
    },
}

SDL = """
type User {
  id: ID!
  username: String!
}

type Query {
  user(id: ID!): User
}
"""


def write_spec(directory, spec=None):
    path = os.path.join(str(directory), "openapi.json")
    with open(path, "w", encoding="utf-8") as f:
        json.dump(spec or USERS_SPEC, f)
    return path


def read(path):
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


class TestIntegration:
    """Интеграционные тесты"""

    def test_complete_generation_workflow(self, tmp_path):
        """Тест полного процесса генерации"""
        output_dir = tmp_path / "api"
        config = BridgeConfig(
            input_path=write_spec(tmp_path), output_dir=str(output_dir), format=False
        )

        written = ApiBridgeGenerator(config).run()

        names = sorted(os.path.basename(path) for path in written)
        assert names == ["client.ts", "hooks.ts", "index.ts", "schemas.ts", "types.ts"]

        types = read(output_dir / "types.ts")
        assert "export interface User {" in types
        assert "export enum UserRole {" in types

        client = read(output_dir / "client.ts")
        assert "export function listUsers(" in client
        assert "export function createUser(" in client

        hooks = read(output_dir / "hooks.ts")
        assert "useListUsers" in hooks
        assert "useCreateUser" in hooks

        index = read(output_dir / "index.ts")
        assert "export * from './types';" in index

    def test_failed_run_writes_nothing(self, tmp_path):
        """Тест: при ошибке разбора файлы не пишутся"""
        broken = dict(USERS_SPEC, components={"schemas": {"User": {"$ref": "#/components/schemas/Missing"}}})
        output_dir = tmp_path / "api"
        config = BridgeConfig(
            input_path=write_spec(tmp_path, broken), output_dir=str(output_dir), format=False
        )

        with pytest.raises(RefResolutionError):
            ApiBridgeGenerator(config).run()

        assert not output_dir.exists()

    def test_graphql_with_documents(self, tmp_path):
        """Тест GraphQL схемы с файлами операций"""
        (tmp_path / "schema.graphql").write_text(SDL, encoding="utf-8")
        (tmp_path / "ops").mkdir()
        (tmp_path / "ops" / "user.graphql").write_text(
            "query GetUser($id: ID!) { user(id: $id) { id username } }", encoding="utf-8"
        )
        output_dir = tmp_path / "api"
        config = BridgeConfig(
            input_path=str(tmp_path / "schema.graphql"),
            output_dir=str(output_dir),
            generators={"typescript": True, "apollo": True},
            documents=[str(tmp_path / "ops" / "*.graphql")],
            format=False,
        )

        ApiBridgeGenerator(config).run()

        assert "export type GetUserResult = " in read(output_dir / "types.ts")
        apollo = read(output_dir / "apollo.ts")
        assert "export const GetUserDocument = gql`" in apollo
        assert "export function useGetUserQuery(" in apollo

    def test_generate_function(self):
        """Тест генерации без конфигурационного файла"""
        files = generate(USERS_SPEC, {"client": False, "react-query": False, "index": False})

        assert [f.path for f in files] == ["types.ts", "schemas.ts"]
        assert "export const UserSchema = " in files[1].content

    @pytest.mark.parametrize(
        "generators, present, absent",
        [
            ({"nonexistent": True}, ["types.ts", "schemas.ts", "client.ts", "hooks.ts", "index.ts"], []),
            ({"zod": False}, ["types.ts", "client.ts", "hooks.ts", "index.ts"], ["schemas.ts"]),
            ({"swr": True}, ["client.ts", "hooks.ts", "swr.ts"], []),
        ],
    )
    def test_partial_generators_section(self, generators, present, absent):
        """Тест: секция generators дополняет набор по умолчанию"""
        paths = [f.path for f in generate(USERS_SPEC, generators)]

        for path in present:
            assert path in paths
        for path in absent:
            assert path not in paths

    def test_relative_paths_from_config_file(self, tmp_path):
        write_spec(tmp_path)
        (tmp_path / "bridge.toml").write_text(
            '[input]\npath = "openapi.json"\n\n[output]\ndir = "out"\nformat = false\n\n'
            "[generators]\ntypescript = true\n",
            encoding="utf-8",
        )

        config = BridgeConfig.from_file(str(tmp_path / "bridge.toml"))
        ApiBridgeGenerator(config).run()

        assert (tmp_path / "out" / "types.ts").exists()


class TestSingleFlight:
    """Тесты сериализации запусков"""

    @pytest.mark.asyncio
    async def test_runs_are_serialized(self):
        """Тест: второй запуск ждет завершения первого"""
        flight = SingleFlight()
        started = asyncio.Event()
        release = asyncio.Event()
        order = []

        async def first():
            started.set()
            await release.wait()
            order.append("first")
            return 1

        async def second():
            order.append("second")
            return 2

        task1 = asyncio.create_task(flight.run("openapi.json", first))
        await started.wait()
        task2 = asyncio.create_task(flight.run("openapi.json", second))
        await asyncio.sleep(0)

        assert flight.is_running("openapi.json")
        assert flight.pending("openapi.json") == 2

        release.set()
        assert await asyncio.gather(task1, task2) == [1, 2]
        assert order == ["first", "second"]
        assert flight.pending("openapi.json") == 0
        assert not flight.is_running("openapi.json")

    @pytest.mark.asyncio
    async def test_error_releases_key(self):
        flight = SingleFlight()

        async def broken():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await flight.run("key", broken)

        assert flight.pending("key") == 0

    @pytest.mark.asyncio
    async def test_concurrent_async_runs(self, tmp_path):
        """Тест параллельных запусков генератора для одного источника"""
        output_dir = tmp_path / "api"
        config = BridgeConfig(
            input_path=write_spec(tmp_path), output_dir=str(output_dir), format=False
        )
        generator = ApiBridgeGenerator(config)

        first, second = await asyncio.gather(generator.run_async(), generator.run_async())

        assert first == second
        assert (output_dir / "types.ts").exists()


class TestCli:
    """Тесты командной строки"""

    def test_generate(self, tmp_path, monkeypatch, capsys):
        monkeypatch.chdir(tmp_path)
        spec = write_spec(tmp_path)

        main(["--input", spec, "--output", "generated", "--no-format", "--no-hooks"])

        assert (tmp_path / "generated" / "types.ts").exists()
        assert not (tmp_path / "generated" / "hooks.ts").exists()
        assert "✅ Создано файлов: 4" in capsys.readouterr().out

    def test_missing_input_exits(self, tmp_path, monkeypatch, capsys):
        """Тест выхода с кодом 1 при ошибке конфигурации"""
        monkeypatch.chdir(tmp_path)

        with pytest.raises(SystemExit) as exc_info:
            main(["--output", "generated"])

        assert exc_info.value.code == 1
        assert "❌" in capsys.readouterr().out

    def test_init_config(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        main(["--init-config", "--input", "schema.graphql", "--no-zod"])

        config = BridgeConfig.from_file(str(tmp_path / "bridge.toml"))
        assert config.input_path == "schema.graphql"
        assert config.generators["zod"] is False

        with pytest.raises(SystemExit):
            main(["--init-config"])

    def test_watched_paths(self, tmp_path):
        config = BridgeConfig(input_path="openapi.json", base_dir=str(tmp_path))
        assert watched_paths(config) == {str(tmp_path / "openapi.json")}

        remote = BridgeConfig(input_path="https://api.example.com/openapi.json")
        assert watched_paths(remote) == set()
