"""
Реестр генераторов: имя -> фабрика генератора
"""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from simple_singleton import Singleton

from ...errors import ConfigError
from .base import Generator

logger = logging.getLogger(__name__)

GeneratorFactory = Callable[..., Generator]


class GeneratorRegistry:
    """Реестр доступных генераторов в порядке регистрации"""

    def __init__(self):
        self._factories: Dict[str, GeneratorFactory] = {}
        self._aliases: Dict[str, str] = {}

    def register(
        self,
        name: str,
        factory: GeneratorFactory,
        aliases: Optional[List[str]] = None,
        replace: bool = False,
    ) -> None:
        """
        Регистрация фабрики генератора.

        Args:
            name: Каноническое имя (например 'react-query')
            factory: Класс генератора или функция, возвращающая Generator
            aliases: Дополнительные имена
            replace: Заменить существующую регистрацию
        """
        key = name.lower()
        if key in self._factories and not replace:
            raise ConfigError(f"Генератор '{name}' уже зарегистрирован")

        self._factories[key] = factory
        for alias in aliases or []:
            alias_key = alias.lower()
            if alias_key == key:
                continue
            if alias_key in self._factories:
                raise ConfigError(f"Псевдоним '{alias}' совпадает с именем генератора")
            if not replace and self._aliases.get(alias_key, key) != key:
                raise ConfigError(
                    f"Псевдоним '{alias}' уже указывает на '{self._aliases[alias_key]}'"
                )
            self._aliases[alias_key] = key

    def unregister(self, name: str) -> None:
        key = self.canonical_name(name)
        self._factories.pop(key, None)
        for alias in [a for a, target in self._aliases.items() if target == key]:
            del self._aliases[alias]

    def canonical_name(self, name: str) -> str:
        key = name.lower()
        return self._aliases.get(key, key)

    def is_registered(self, name: str) -> bool:
        return self.canonical_name(name) in self._factories

    def names(self) -> List[str]:
        """Имена в каноническом порядке (порядке регистрации)"""
        return list(self._factories)

    def create(self, name: str, options: Optional[Mapping[str, Any]] = None) -> Generator:
        key = self.canonical_name(name)
        factory = self._factories.get(key)
        if factory is None:
            raise ConfigError(
                f"Генератор '{name}' не найден. Доступны: {', '.join(self.names())}"
            )
        generator = factory(options or {})
        if not getattr(generator, "name", None) or not callable(
            getattr(generator, "generate", None)
        ):
            raise ConfigError(f"Фабрика '{name}' вернула объект без name/generate")
        return generator

    def create_enabled(self, selection: Mapping[str, Any]) -> List[Generator]:
        """
        Генераторы из секции generators конфигурации.

        Значение - bool или словарь опций. Неизвестные имена пропускаются,
        результат идет в каноническом порядке реестра.
        """
        enabled: Dict[str, Mapping[str, Any]] = {}
        for name, value in selection.items():
            if not self.is_registered(name):
                logger.debug("Неизвестный генератор '%s' пропущен", name)
                continue
            canonical = self.canonical_name(name)
            if value is False or value is None:
                enabled.pop(canonical, None)
                continue
            enabled[canonical] = value if isinstance(value, Mapping) else {}

        return [self.create(name, enabled[name]) for name in self.names() if name in enabled]


class DefaultGeneratorRegistry(GeneratorRegistry, metaclass=Singleton):
    """Общий реестр встроенных генераторов"""

    def __init__(self):
        super().__init__()
        from . import BUILTIN_ALIASES, builtin_factories

        for name, factory in builtin_factories().items():
            self.register(name, factory, aliases=BUILTIN_ALIASES.get(name))


def get_registry() -> GeneratorRegistry:
    return DefaultGeneratorRegistry()
