"""
Последовательный запуск генераторов над одной IRSchema
"""

import logging
import posixpath
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ...errors import BridgeError, GeneratorError
from ..types.models import IRSchema
from .base import GeneratedFile, Generator, GeneratorContext
from .registry import GeneratorRegistry, get_registry

logger = logging.getLogger(__name__)


def _check_path(path: str, plugin_name: str) -> str:
    normalized = posixpath.normpath(path.replace("\\", "/"))
    if (
        not path
        or posixpath.isabs(normalized)
        or normalized == ".."
        or normalized.startswith("../")
        or ":" in normalized.split("/")[0]
    ):
        raise GeneratorError(
            f"Генератор '{plugin_name}' вернул недопустимый путь: {path!r}",
            plugin_name,
            details={"path": path},
        )
    return normalized


def _plugin_options(plugin: Any, overrides: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(
        {
            **dict(getattr(plugin, "default_options", None) or {}),
            **dict(getattr(plugin, "options", None) or {}),
            **dict(overrides or {}),
        }
    )


def run_pipeline(
    schema: IRSchema,
    plugins: Iterable[Any],
    output_dir: str = "",
    options: Optional[Mapping[str, Mapping[str, Any]]] = None,
) -> List[GeneratedFile]:
    """
    Запуск генераторов строго в порядке списка.

    Генератор, чьи requires не отработали раньше, - ошибка: порядок не
    меняется. Любое исключение генератора прерывает запуск целиком и
    превращается в GeneratorError с именем генератора.

    Args:
        schema: Готовая IR-схема
        plugins: Объекты с name и generate (обычно Generator)
        output_dir: Выходная директория (передается в контекст)
        options: Опции по имени генератора поверх опций самого генератора
    """
    options = options or {}
    plugins = list(plugins)

    seen_names = set()
    for plugin in plugins:
        name = getattr(plugin, "name", None)
        if not name or not callable(getattr(plugin, "generate", None)):
            raise GeneratorError(f"Объект {plugin!r} не является генератором", str(name or "?"))
        if name in seen_names:
            raise GeneratorError(f"Генератор '{name}' указан дважды", name)
        seen_names.add(name)

    completed: List[str] = []
    emitted: Dict[str, str] = {}
    owners: Dict[str, str] = {}
    result: List[GeneratedFile] = []

    for plugin in plugins:
        name = plugin.name
        missing = [dep for dep in getattr(plugin, "requires", ()) if dep not in completed]
        if missing:
            raise GeneratorError(
                f"Генератор '{name}' требует запуска раньше него: {', '.join(missing)}",
                name,
                details={"missing": missing},
            )

        context = GeneratorContext(
            schema=schema,
            output_dir=output_dir,
            options=_plugin_options(plugin, options.get(name, {})),
            state={},
            emitted=MappingProxyType(dict(emitted)),
        )

        logger.debug("Запуск генератора %s", name)
        try:
            before = getattr(plugin, "before_generate", None)
            if before is not None:
                before(context)
            files = list(plugin.generate(context))
            after = getattr(plugin, "after_generate", None)
            if after is not None:
                files = list(after(context, files))
        except GeneratorError:
            raise
        except BridgeError as e:
            raise GeneratorError(
                f"Генератор '{name}' завершился ошибкой: {e.message}",
                name,
                details={"cause": e.to_dict()},
            ) from e
        except Exception as e:
            raise GeneratorError(f"Генератор '{name}' завершился ошибкой: {e}", name) from e

        for generated in files:
            path = _check_path(generated.path, name)
            if path in owners:
                raise GeneratorError(
                    f"Файл {path} уже создан генератором '{owners[path]}'",
                    name,
                    details={"path": path},
                )
            owners[path] = name
            emitted[path] = generated.content
            result.append(GeneratedFile(path, generated.content))

        completed.append(name)
        logger.info("Генератор %s: %d файлов", name, len(files))

    return result


class PluginPipeline:
    """Набор генераторов для запуска; порядок регистрации - порядок запуска"""

    def __init__(self, registry: Optional[GeneratorRegistry] = None):
        self.registry = registry if registry is not None else get_registry()
        self._plugins: List[Any] = []

    @property
    def plugins(self) -> List[Any]:
        return list(self._plugins)

    def register(self, plugin: Any) -> "PluginPipeline":
        name = getattr(plugin, "name", None)
        if any(p.name == name for p in self._plugins):
            raise GeneratorError(f"Генератор '{name}' уже добавлен", str(name))
        self._plugins.append(plugin)
        return self

    def load_from_config(self, generators: Mapping[str, Any]) -> "PluginPipeline":
        """Генераторы из секции generators конфигурации"""
        for plugin in self.registry.create_enabled(generators):
            self.register(plugin)
        return self

    def run(
        self,
        schema: IRSchema,
        output_dir: str = "",
        options: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> List[GeneratedFile]:
        return run_pipeline(schema, self._plugins, output_dir, options)
