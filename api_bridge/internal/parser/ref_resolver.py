"""
Разрешение $ref с поддержкой циклов.

Каждый указатель строится один раз. Пока тип строится, указатель лежит
в стеке, и повторное обращение к нему возвращает ссылку по имени, а не
запускает построение заново. Поэтому Node -> children -> Node
завершается, а в реестре ровно одна запись на тип.
"""

import logging
import os
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple
from urllib.parse import unquote, urljoin, urlsplit

from ...errors import CircularRefError, RefResolutionError, SourceNotFoundError
from ..types.models import IRType, IRTypeRef
from ..types.registry import TypeRegistry
from ..utils.naming import pascal_case, sanitize_identifier
from .loader import load_document_file

logger = logging.getLogger(__name__)

Builder = Callable[[Any, str], IRType]

NAMED_CONTAINERS = (("components", "schemas"), ("definitions",))


def _is_url(location: str) -> bool:
    return urlsplit(location).scheme in ("http", "https")


def split_pointer(pointer: str) -> Tuple[str, str]:
    """'file.yaml#/a/b' -> ('file.yaml', '/a/b')"""
    location, _, fragment = pointer.partition("#")
    return location, fragment


def decode_fragment(fragment: str) -> List[str]:
    """JSON pointer -> список сегментов (~1 -> /, ~0 -> ~, %XX)"""
    if not fragment or fragment == "/":
        return []
    return [
        unquote(segment).replace("~1", "/").replace("~0", "~")
        for segment in fragment.lstrip("/").split("/")
    ]


def encode_segment(segment: str) -> str:
    return segment.replace("~", "~0").replace("/", "~1")


class RefResolver:
    """Резолвер указателей одного документа и связанных с ним внешних файлов"""

    def __init__(
        self,
        document: Any,
        base_location: str = "",
        registry: Optional[TypeRegistry] = None,
        loader: Callable[[str], Any] = load_document_file,
    ):
        self.document = document
        self.base_location = self._normalize_location(base_location) if base_location else ""
        self.registry = registry if registry is not None else TypeRegistry()
        self._loader = loader
        self._documents: Dict[str, Any] = {}
        self._cache: Dict[str, IRType] = {}
        self._names: Dict[str, str] = {}
        self._in_progress: List[str] = []
        self._scopes: List[str] = []

    # --- указатели ---

    @staticmethod
    def _normalize_location(location: str) -> str:
        if _is_url(location):
            return location
        return os.path.normpath(os.path.abspath(location))

    def current_scope(self) -> str:
        """Документ, относительно которого разрешаются локальные #/..."""
        return self._scopes[-1] if self._scopes else ""

    @contextmanager
    def document_scope(self, location: str) -> Iterator[None]:
        self._scopes.append(location)
        try:
            yield
        finally:
            self._scopes.pop()

    def normalize(self, ref: str, base: Optional[str] = None) -> str:
        """
        Канонический вид указателя: '#/...' для корневого документа,
        '<абсолютный путь или URL>#/...' для внешних.
        """
        if base is None:
            base = self.current_scope()
        location, fragment = split_pointer(ref)

        if not location:
            return f"{base}#{fragment}"

        if _is_url(location):
            absolute = location
        else:
            anchor = base or self.base_location
            if anchor and _is_url(anchor):
                absolute = urljoin(anchor, location)
            elif os.path.isabs(location):
                absolute = os.path.normpath(location)
            else:
                directory = os.path.dirname(anchor) if anchor else os.getcwd()
                absolute = os.path.normpath(os.path.join(directory, location))

        if absolute == self.base_location:
            absolute = ""
        return f"{absolute}#{fragment}"

    def _load(self, location: str, raw: str) -> Any:
        if location not in self._documents:
            logger.debug("Загрузка внешнего документа %s", location)
            try:
                self._documents[location] = self._loader(location)
            except (SourceNotFoundError, OSError, ValueError) as e:
                raise RefResolutionError(
                    raw, f"Не удалось загрузить документ {location} для {raw}: {e}"
                ) from e
        return self._documents[location]

    def locate(self, pointer: str, raw: Optional[str] = None) -> Any:
        """Узел документа по нормализованному указателю"""
        raw = raw or pointer
        location, fragment = split_pointer(pointer)
        node = self._load(location, raw) if location else self.document

        for segment in decode_fragment(fragment):
            if isinstance(node, Mapping) and segment in node:
                node = node[segment]
            elif isinstance(node, list) and segment.isdigit() and int(segment) < len(node):
                node = node[int(segment)]
            else:
                raise RefResolutionError(raw, f"Указатель не найден: {raw}")
        return node

    def type_name(self, pointer: str) -> str:
        """Имя именованного типа для указателя"""
        location, fragment = split_pointer(pointer)
        segments = decode_fragment(fragment)

        if len(segments) == 3 and tuple(segments[:2]) == NAMED_CONTAINERS[0]:
            return sanitize_identifier(segments[2])
        if len(segments) == 2 and tuple(segments[:1]) == NAMED_CONTAINERS[1]:
            return sanitize_identifier(segments[1])

        if location:
            if segments:
                return sanitize_identifier(segments[-1])
            stem = os.path.splitext(os.path.basename(urlsplit(location).path))[0]
            return pascal_case(stem) or "Schema"

        return pascal_case(" ".join(segments)) or "Root"

    # --- узлы, не являющиеся схемами ---

    def resolve_node(self, node: Any) -> Tuple[Any, str]:
        """
        Разыменование параметров, тел запросов, ответов и path item.

        Возвращает узел и документ, в котором он лежит. Цепочка $ref,
        вернувшаяся к уже пройденному указателю, - CircularRefError.
        """
        base = self.current_scope()
        seen: List[str] = []
        while isinstance(node, Mapping) and "$ref" in node:
            raw = node["$ref"]
            pointer = self.normalize(raw, base)
            if pointer in seen:
                raise CircularRefError(raw, seen + [pointer])
            seen.append(pointer)
            node = self.locate(pointer, raw)
            base = split_pointer(pointer)[0]
        return node, base

    def resolve_if_ref(self, node: Any) -> Any:
        return self.resolve_node(node)[0]

    # --- схемы ---

    def resolve(self, ref: str, build: Builder) -> IRTypeRef:
        """
        Ссылка на именованный тип для указателя.

        Готовый или строящийся тип возвращается как ссылка по имени,
        иначе тип строится функцией build(node, name) и попадает в реестр.
        """
        pointer = self.normalize(ref)

        if pointer in self._cache:
            return IRTypeRef.reference(self._cache[pointer].name)
        if pointer in self._in_progress:
            return IRTypeRef.reference(self._names[pointer])

        node = self.locate(pointer, ref)
        name = self.type_name(pointer)
        self.registry.reserve(name, pointer)
        self._names[pointer] = name

        logger.debug("Построение типа %s из %s", name, pointer)
        self._in_progress.append(pointer)
        try:
            with self.document_scope(split_pointer(pointer)[0]):
                ir_type = build(node, name)
        finally:
            self._in_progress.pop()

        if ir_type.name != name:
            ir_type = ir_type.model_copy(update={"name": name})
        self._cache[pointer] = ir_type
        self.registry.define(name, ir_type, pointer)
        return IRTypeRef.reference(name)

    def resolve_eager(self, ref: str, build: Builder) -> IRType:
        """
        Готовый тип для мест, где ленивая ссылка недопустима
        (слияние allOf, псевдоним из одного $ref).
        """
        pointer = self.normalize(ref)
        if pointer in self._in_progress:
            raise CircularRefError(ref, self.resolution_path(pointer))
        self.resolve(ref, build)
        return self._cache[pointer]

    def resolution_path(self, pointer: Optional[str] = None) -> List[str]:
        """Текущий стек построения; с pointer - замкнутый цикл от него"""
        if pointer is None or pointer not in self._in_progress:
            return list(self._in_progress)
        start = self._in_progress.index(pointer)
        return self._in_progress[start:] + [pointer]

    def is_in_progress(self, ref: str) -> bool:
        return self.normalize(ref) in self._in_progress
