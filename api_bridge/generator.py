"""
Главный модуль генератора - чистый интерфейс
"""

import asyncio
import logging
import os
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from .config import BridgeConfig
from .errors import ConfigError
from .internal.generator import CodeFormatter, GeneratedFile, PluginPipeline
from .internal.generator.registry import GeneratorRegistry
from .internal.parser import GRAPHQL, SourceDocument, load_source, load_source_async
from .internal.parser.graphql import parse_graphql
from .internal.parser.openapi import parse_openapi
from .internal.types.models import IRSchema
from .internal.utils.single_flight import SingleFlight

logger = logging.getLogger(__name__)

Source = Union[str, Mapping[str, Any]]


def parse_source(
    document: SourceDocument,
    documents: Iterable[str] = (),
    scalars: Optional[Dict[str, str]] = None,
) -> IRSchema:
    """Загруженный источник -> IRSchema"""
    if document.kind == GRAPHQL:
        return parse_graphql(document.content, documents, scalars, document.location)
    return parse_openapi(document.content, document.location or None)


def read_documents(paths: Iterable[str]) -> List[str]:
    texts = []
    for path in paths:
        with open(path, "r", encoding="utf-8") as f:
            texts.append(f.read())
    return texts


def write_files(
    files: Iterable[GeneratedFile], output_dir: str, formatter: Optional[CodeFormatter] = None
) -> List[str]:
    """
    Запись результата в output_dir.

    Форматтер вызывается для каждого файла прямо перед записью.

    Returns:
        Абсолютные пути записанных файлов
    """
    written = []
    for generated in files:
        path = os.path.join(output_dir, generated.path)
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        content = formatter.format(generated.content, path) if formatter else generated.content
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
        written.append(os.path.abspath(path))
        logger.debug("Записан %s", path)
    return written


class ApiBridgeGenerator:
    """Чистый интерфейс: загрузка -> разбор -> генераторы -> запись"""

    def __init__(
        self,
        config: BridgeConfig,
        registry: Optional[GeneratorRegistry] = None,
        formatter_executable: Optional[str] = None,
    ):
        self.config = config
        self.registry = registry
        self.formatter_executable = formatter_executable
        self._single_flight = SingleFlight()

    @property
    def source_key(self) -> str:
        return self.config.input_path or "<memory>"

    def _source(self, source: Optional[Source]) -> Source:
        if source is not None:
            return source
        if not self.config.input_path:
            raise ConfigError("Не указан источник: [input] path или --input")
        return self.config.resolve_path(self.config.input_path)

    def parse(self, document: SourceDocument) -> IRSchema:
        documents = read_documents(self.config.document_files())
        return parse_source(document, documents, self.config.scalars)

    def build_pipeline(self) -> PluginPipeline:
        return PluginPipeline(self.registry).load_from_config(self.config.generator_options())

    def generate(self, source: Optional[Source] = None) -> List[GeneratedFile]:
        """Генерация без записи на диск"""
        document = load_source(self._source(source), self.config.input_type)
        return self._generate(document)

    def _generate(self, document: SourceDocument) -> List[GeneratedFile]:
        schema = self.parse(document)
        logger.info(
            "Схема разобрана: %d типов, %d эндпоинтов, %d операций",
            len(schema.types),
            len(schema.endpoints),
            len(schema.operations),
        )
        pipeline = self.build_pipeline()
        return pipeline.run(schema, self.config.output_dir)

    def _write(self, files: List[GeneratedFile]) -> List[str]:
        # один форматтер на запуск: кеш поиска prettier не переживает запуск
        formatter = CodeFormatter(
            enabled=self.config.format,
            executable=self.formatter_executable,
            search_dir=self.config.base_dir or None,
        )
        return write_files(files, self.config.resolve_path(self.config.output_dir), formatter)

    def run(self, source: Optional[Source] = None) -> List[str]:
        """Полный запуск; при любой ошибке ничего не пишется"""
        files = self.generate(source)
        return self._write(files)

    async def run_async(self, source: Optional[Source] = None) -> List[str]:
        """Полный запуск; параллельные запуски для одного источника выполняются по очереди"""
        resolved = self._source(source)
        key = resolved if isinstance(resolved, str) else self.source_key

        async def _run() -> List[str]:
            document = await load_source_async(resolved, self.config.input_type)
            files = self._generate(document)
            return await asyncio.to_thread(self._write, files)

        return await self._single_flight.run(key, _run)


def generate(
    source: Source, generators: Optional[Mapping[str, Any]] = None, **options
) -> List[GeneratedFile]:
    """Генерация файлов из источника без конфигурационного файла"""
    config = BridgeConfig(generators=dict(generators or {}), **options)
    return ApiBridgeGenerator(config).generate(source)
