"""
Конфигурация генерации (bridge.toml)
"""

import glob
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import toml

from .errors import ConfigError
from .internal.generator import DEFAULT_GENERATORS, get_registry
from .internal.parser.loader import GRAPHQL, OPENAPI

CONFIG_FILE = "bridge.toml"

SCALAR_KINDS = ("string", "number", "integer", "boolean", "unknown")

# флаг CLI -> генератор
DISABLE_FLAGS = {
    "no_typescript": "typescript",
    "no_zod": "zod",
    "no_client": "client",
    "no_hooks": "react-query",
}


@dataclass
class BridgeConfig:
    """Конфигурация генератора api-bridge"""

    input_path: Optional[str] = None
    input_type: Optional[str] = None
    output_dir: str = "src/api"
    # имя генератора -> true/false или таблица опций
    generators: Dict[str, Any] = field(default_factory=dict)
    # GraphQL скаляр -> string/number/integer/boolean/unknown
    scalars: Dict[str, str] = field(default_factory=dict)
    # glob-шаблоны файлов с операциями GraphQL
    documents: List[str] = field(default_factory=list)
    format: bool = True
    # директория файла конфигурации, относительно нее разрешаются пути
    base_dir: str = ""

    @classmethod
    def from_file(
        cls, config_path: str = CONFIG_FILE, search_dir: Optional[str] = None
    ) -> Optional["BridgeConfig"]:
        """
        Загрузка конфигурации из файла.

        Returns:
            None, если файла нет

        Raises:
            ConfigError: файл есть, но не разбирается или содержит ошибки
        """
        if search_dir and os.path.isdir(search_dir):
            config_in_dir = os.path.join(search_dir, CONFIG_FILE)
            if os.path.exists(config_in_dir):
                config_path = config_in_dir

        if not os.path.exists(config_path):
            return None

        try:
            config_data = toml.load(config_path)
        except (toml.TomlDecodeError, OSError) as e:
            raise ConfigError(
                f"Не удалось прочитать {config_path}: {e}", details={"path": config_path}
            ) from e

        config = cls.from_dict(config_data)
        config.base_dir = os.path.dirname(os.path.abspath(config_path))
        return config

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BridgeConfig":
        input_section = cls._section(data, "input")
        output_section = cls._section(data, "output")
        documents = data.get("documents", input_section.get("documents", []))
        if isinstance(documents, str):
            documents = [documents]

        config = cls(
            input_path=input_section.get("path"),
            input_type=input_section.get("type"),
            output_dir=output_section.get("dir", "src/api"),
            generators=dict(cls._section(data, "generators")),
            scalars=dict(cls._section(data, "scalars")),
            documents=list(documents),
            format=data.get("format", output_section.get("format", True)),
        )
        config.validate(require_input=False)
        return config

    @staticmethod
    def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
        section = data.get(name, {})
        if not isinstance(section, dict):
            raise ConfigError(f"Секция [{name}] должна быть таблицей")
        return section

    def to_dict(self) -> Dict[str, Any]:
        config_data: Dict[str, Any] = {"format": self.format}
        if self.documents:
            config_data["documents"] = list(self.documents)
        input_section = {"path": self.input_path}
        if self.input_type:
            input_section["type"] = self.input_type
        config_data["input"] = {k: v for k, v in input_section.items() if v is not None}
        config_data["output"] = {"dir": self.output_dir}
        config_data["generators"] = dict(self.generators) or self.generator_options()
        if self.scalars:
            config_data["scalars"] = dict(self.scalars)
        return config_data

    def save_to_file(self, config_path: str = CONFIG_FILE) -> None:
        """Сохранение конфигурации в файл"""
        with open(config_path, "w", encoding="utf-8") as f:
            toml.dump(self.to_dict(), f)

    def merge_with_args(self, args) -> "BridgeConfig":
        """Объединение с аргументами командной строки (аргументы приоритетнее)"""
        generators = self.generator_options()
        for flag, name in DISABLE_FLAGS.items():
            if getattr(args, flag, False):
                generators[name] = False
        if getattr(args, "swr", False):
            # SWR заменяет хуки React Query
            generators["swr"] = generators.get("swr") or True
            generators["react-query"] = False

        return BridgeConfig(
            input_path=getattr(args, "input", None) or self.input_path,
            input_type=getattr(args, "type", None) or self.input_type,
            output_dir=getattr(args, "output", None) or self.output_dir,
            generators=generators,
            scalars=dict(self.scalars),
            documents=list(self.documents),
            format=self.format and not getattr(args, "no_format", False),
            base_dir=self.base_dir,
        )

    def validate(self, require_input: bool = True) -> "BridgeConfig":
        """
        Проверка значений конфигурации.

        Неизвестные имена генераторов не ошибка: они пропускаются при запуске.
        """
        if require_input and not self.input_path:
            raise ConfigError("Не указан источник: [input] path или --input")
        if self.input_type not in (None, OPENAPI, GRAPHQL):
            raise ConfigError(
                f"Неизвестный тип источника '{self.input_type}', допустимо: {OPENAPI}, {GRAPHQL}"
            )
        if not isinstance(self.output_dir, str) or not self.output_dir:
            raise ConfigError("[output] dir должен быть непустой строкой")
        if not isinstance(self.format, bool):
            raise ConfigError("format должен быть true или false")

        for name, value in self.generators.items():
            if not isinstance(value, (bool, dict)):
                raise ConfigError(
                    f"generators.{name}: ожидается true/false или таблица опций",
                    details={"generator": name, "value": repr(value)},
                )
        for scalar, kind in self.scalars.items():
            if kind not in SCALAR_KINDS:
                raise ConfigError(
                    f"scalars.{scalar}: '{kind}' не из {', '.join(SCALAR_KINDS)}"
                )
        if not all(isinstance(pattern, str) for pattern in self.documents):
            raise ConfigError("documents должен быть списком строк")
        return self

    def generator_options(self) -> Dict[str, Any]:
        """Набор по умолчанию с секцией generators поверх"""
        options: Dict[str, Any] = {name: True for name in DEFAULT_GENERATORS}
        registry = get_registry()
        for name, value in self.generators.items():
            options[registry.canonical_name(name)] = value
        return options

    def resolve_path(self, path: str) -> str:
        if os.path.isabs(path) or "://" in path or not self.base_dir:
            return path
        return os.path.join(self.base_dir, path)

    def document_files(self) -> List[str]:
        """Файлы операций GraphQL по шаблонам documents"""
        files: List[str] = []
        for pattern in self.documents:
            matches = sorted(glob.glob(self.resolve_path(pattern), recursive=True))
            files.extend(match for match in matches if match not in files)
        return files
