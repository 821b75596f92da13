"""
Контракт генератора: IRSchema + опции -> список файлов
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional, Sequence, Tuple

from ..types.models import IRSchema


class GeneratedFile(NamedTuple):
    """Файл результата; path относителен выходной директории"""

    path: str
    content: str


@dataclass
class GeneratorContext:
    schema: IRSchema
    output_dir: str = ""
    options: Mapping[str, Any] = field(default_factory=dict)
    # Состояние одного генератора в рамках одного запуска
    state: Dict[str, Any] = field(default_factory=dict)
    # Файлы генераторов, отработавших раньше: path -> content
    emitted: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def option(self, key: str, default: Any = None) -> Any:
        return self.options.get(key, default)


class Generator(ABC):
    """
    Базовый класс генератора.

    Генератор не трогает файловую систему: он только возвращает
    GeneratedFile, запись делает фасад.
    """

    name: str = ""
    description: str = ""
    requires: Tuple[str, ...] = ()
    default_options: Mapping[str, Any] = MappingProxyType({})

    def __init__(self, options: Optional[Mapping[str, Any]] = None):
        self.options: Dict[str, Any] = dict(options or {})

    def before_generate(self, context: GeneratorContext) -> None:
        """Подготовка перед generate (прогрев кешей и т.п.)"""

    @abstractmethod
    def generate(self, context: GeneratorContext) -> List[GeneratedFile]:
        ...

    def after_generate(
        self, context: GeneratorContext, files: List[GeneratedFile]
    ) -> List[GeneratedFile]:
        return files

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class _FunctionGenerator(Generator):
    def __init__(
        self,
        name: str,
        generate: Callable[[GeneratorContext], List[GeneratedFile]],
        requires: Sequence[str] = (),
        before_generate: Optional[Callable[[GeneratorContext], None]] = None,
        after_generate: Optional[
            Callable[[GeneratorContext, List[GeneratedFile]], List[GeneratedFile]]
        ] = None,
        default_options: Optional[Mapping[str, Any]] = None,
        options: Optional[Mapping[str, Any]] = None,
    ):
        super().__init__(options)
        self.name = name
        self.requires = tuple(requires)
        self.default_options = MappingProxyType(dict(default_options or {}))
        self._generate = generate
        self._before = before_generate
        self._after = after_generate

    def before_generate(self, context: GeneratorContext) -> None:
        if self._before is not None:
            self._before(context)

    def generate(self, context: GeneratorContext) -> List[GeneratedFile]:
        return list(self._generate(context))

    def after_generate(
        self, context: GeneratorContext, files: List[GeneratedFile]
    ) -> List[GeneratedFile]:
        if self._after is not None:
            return list(self._after(context, files))
        return files


def define_plugin(
    name: str,
    generate: Callable[[GeneratorContext], List[GeneratedFile]],
    requires: Sequence[str] = (),
    before_generate: Optional[Callable[[GeneratorContext], None]] = None,
    after_generate: Optional[
        Callable[[GeneratorContext, List[GeneratedFile]], List[GeneratedFile]]
    ] = None,
    default_options: Optional[Mapping[str, Any]] = None,
) -> Generator:
    """
    Генератор из обычных функций.

    Examples:
        >>> plugin = define_plugin(
        ...     "readme",
        ...     lambda ctx: [GeneratedFile("README.md", f"# {ctx.schema.metadata.title}")],
        ... )
    """
    if not name:
        raise ValueError("У плагина должно быть имя")
    return _FunctionGenerator(
        name,
        generate,
        requires=requires,
        before_generate=before_generate,
        after_generate=after_generate,
        default_options=default_options,
    )
