"""
Тесты реестра генераторов и конвейера
"""

import pytest

from api_bridge.errors import ConfigError, GeneratorError, ParseError
from api_bridge.internal.generator import (
    DEFAULT_GENERATORS,
    GeneratedFile,
    Generator,
    GeneratorRegistry,
    PluginPipeline,
    define_plugin,
    get_registry,
    run_pipeline,
)
from api_bridge.internal.types.models import IRMetadata, IRSchema

SCHEMA = IRSchema(metadata=IRMetadata(title="Test", source="openapi"))


def static_plugin(name, path, requires=()):
    return define_plugin(name, lambda ctx: [GeneratedFile(path, f"// {name}")], requires=requires)


class TestRunPipeline:
    """Тесты последовательного запуска генераторов"""

    def test_order_and_emitted(self):
        """Тест порядка запуска и видимости результатов предыдущих генераторов"""
        seen = []

        def second(ctx):
            seen.append(dict(ctx.emitted))
            return [GeneratedFile("b.ts", "// b")]

        files = run_pipeline(
            SCHEMA,
            [static_plugin("a", "a.ts"), define_plugin("b", second, requires=["a"])],
        )

        assert [f.path for f in files] == ["a.ts", "b.ts"]
        assert seen == [{"a.ts": "// a"}]

    def test_missing_requirement(self):
        """Тест зависимости, не запущенной раньше"""
        with pytest.raises(GeneratorError) as exc_info:
            run_pipeline(SCHEMA, [static_plugin("b", "b.ts", requires=["a"]), static_plugin("a", "a.ts")])

        assert exc_info.value.generator == "b"
        assert exc_info.value.details["missing"] == ["a"]

    def test_duplicate_path(self):
        with pytest.raises(GeneratorError) as exc_info:
            run_pipeline(SCHEMA, [static_plugin("a", "same.ts"), static_plugin("b", "same.ts")])
        assert exc_info.value.generator == "b"

    def test_duplicate_plugin_name(self):
        with pytest.raises(GeneratorError):
            run_pipeline(SCHEMA, [static_plugin("a", "a.ts"), static_plugin("a", "b.ts")])

    @pytest.mark.parametrize("path", ["/etc/passwd", "../outside.ts", "a/../../b.ts", "C:/x.ts", ""])
    def test_unsafe_paths(self, path):
        """Тест путей вне выходной директории"""
        with pytest.raises(GeneratorError):
            run_pipeline(SCHEMA, [static_plugin("bad", path)])

    def test_nested_path_is_normalized(self):
        files = run_pipeline(SCHEMA, [static_plugin("a", "models/./pet.ts")])
        assert files[0].path == "models/pet.ts"

    def test_exception_is_wrapped(self):
        """Тест оборачивания исключения генератора"""

        def broken(ctx):
            raise KeyError("boom")

        with pytest.raises(GeneratorError) as exc_info:
            run_pipeline(SCHEMA, [define_plugin("broken", broken)])

        assert exc_info.value.generator == "broken"
        assert isinstance(exc_info.value.__cause__, KeyError)

    def test_bridge_error_is_wrapped_with_cause(self):
        def broken(ctx):
            raise ParseError("bad input")

        with pytest.raises(GeneratorError) as exc_info:
            run_pipeline(SCHEMA, [define_plugin("broken", broken)])

        assert exc_info.value.details["cause"]["code"] == "PARSE_ERROR"

    def test_not_a_generator(self):
        with pytest.raises(GeneratorError):
            run_pipeline(SCHEMA, [object()])

    def test_options_precedence(self):
        """Тест приоритета опций: значения по умолчанию < опции плагина < переопределения"""
        captured = {}

        def generate(ctx):
            captured.update(ctx.options)
            return []

        plugin = define_plugin("opts", generate, default_options={"a": 1, "b": 1, "c": 1})
        plugin.options = {"b": 2, "c": 2}

        run_pipeline(SCHEMA, [plugin], options={"opts": {"c": 3}})

        assert captured == {"a": 1, "b": 2, "c": 3}

    def test_hooks_are_called(self):
        calls = []
        plugin = define_plugin(
            "hooks",
            lambda ctx: calls.append("generate") or [GeneratedFile("x.ts", "")],
            before_generate=lambda ctx: calls.append("before"),
            after_generate=lambda ctx, files: calls.append("after") or files,
        )

        run_pipeline(SCHEMA, [plugin])

        assert calls == ["before", "generate", "after"]

    def test_state_is_per_generator(self):
        states = []

        def generate(ctx):
            states.append(dict(ctx.state))
            ctx.state["touched"] = True
            return []

        run_pipeline(SCHEMA, [define_plugin("a", generate), define_plugin("b", generate)])

        assert states == [{}, {}]


class TestDefinePlugin:
    """Тесты define_plugin"""

    def test_requires_name(self):
        with pytest.raises(ValueError):
            define_plugin("", lambda ctx: [])

    def test_is_generator(self):
        plugin = define_plugin("readme", lambda ctx: [], requires=["typescript"])
        assert isinstance(plugin, Generator)
        assert plugin.requires == ("typescript",)


class TestGeneratorRegistry:
    """Тесты реестра генераторов"""

    def test_builtin_generators(self):
        """Тест встроенных генераторов в каноническом порядке"""
        names = get_registry().names()
        assert names == [
            "typescript",
            "zod",
            "client",
            "react-query",
            "swr",
            "msw",
            "apollo",
            "urql",
            "tanstack-router",
            "auth",
            "index",
        ]
        assert get_registry() is get_registry()

    def test_aliases(self):
        registry = get_registry()
        assert registry.canonical_name("types") == "typescript"
        assert registry.canonical_name("reactQuery") == "react-query"
        assert registry.canonical_name("tanstack_router") == "tanstack-router"

    def test_create_enabled_keeps_canonical_order(self):
        """Тест порядка: канонический, а не порядок секции конфигурации"""
        generators = get_registry().create_enabled(
            {"index": True, "reactQuery": {"suspense": True}, "client": True, "types": True, "zod": False}
        )

        assert [g.name for g in generators] == ["typescript", "client", "react-query", "index"]
        assert generators[2].options == {"suspense": True}

    def test_unknown_generator_is_skipped(self):
        assert get_registry().create_enabled({"nonexistent": True}) == []

    def test_create_unknown(self):
        with pytest.raises(ConfigError):
            get_registry().create("nonexistent")

    def test_duplicate_registration(self):
        registry = GeneratorRegistry()
        registry.register("custom", lambda options: static_plugin("custom", "c.ts"))
        with pytest.raises(ConfigError):
            registry.register("custom", lambda options: static_plugin("custom", "c.ts"))

    def test_alias_conflict(self):
        registry = GeneratorRegistry()
        registry.register("one", lambda options: static_plugin("one", "1.ts"), aliases=["x"])
        with pytest.raises(ConfigError):
            registry.register("two", lambda options: static_plugin("two", "2.ts"), aliases=["x"])

    def test_defaults(self):
        assert DEFAULT_GENERATORS == ("typescript", "zod", "client", "react-query", "index")


class TestPluginPipeline:
    """Тесты PluginPipeline"""

    def test_load_from_config_and_run(self):
        registry = GeneratorRegistry()
        registry.register("a", lambda options: static_plugin("a", "a.ts"))
        registry.register("b", lambda options: static_plugin("b", "b.ts", requires=["a"]))

        pipeline = PluginPipeline(registry).load_from_config({"b": True, "a": True})
        files = pipeline.run(SCHEMA)

        assert [p.name for p in pipeline.plugins] == ["a", "b"]
        assert [f.path for f in files] == ["a.ts", "b.ts"]

    def test_register_twice(self):
        pipeline = PluginPipeline(GeneratorRegistry())
        pipeline.register(static_plugin("a", "a.ts"))
        with pytest.raises(GeneratorError):
            pipeline.register(static_plugin("a", "b.ts"))
