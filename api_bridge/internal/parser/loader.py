"""
Загрузка исходных документов: файл, URL, строка или уже разобранный словарь
"""

import asyncio
import json
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

import httpx
import jsonref
import yaml
from graphql import get_introspection_query

from ...errors import ParseError, SourceNotFoundError, ValidationError

logger = logging.getLogger(__name__)

OPENAPI = "openapi"
GRAPHQL = "graphql"
SOURCE_TYPES = (OPENAPI, GRAPHQL)

GRAPHQL_EXTENSIONS = (".graphql", ".gql", ".graphqls")
JSON_EXTENSIONS = (".json",)
YAML_EXTENSIONS = (".yaml", ".yml")

_SDL_RE = re.compile(
    r"^\s*(type|schema|interface|union|enum|input|scalar|extend|directive)\b", re.M
)
_OPENAPI_YAML_RE = re.compile(r"^\s*[\"']?(openapi|swagger)[\"']?\s*:", re.M)
_SCHEMA_CONTAINERS = (("components", "schemas"), ("definitions",))


@dataclass
class SourceDocument:
    """Загруженный источник"""

    kind: str
    # dict для OpenAPI и introspection, str для GraphQL SDL
    content: Any
    location: str = ""


class _DuplicateKeyDict(dict):
    """Метка для объекта JSON с повторяющимися ключами"""

    duplicate_keys: Tuple[str, ...] = ()


def _json_pairs_hook(pairs: List[Tuple[str, Any]]) -> dict:
    result = {}
    duplicates = []
    for key, value in pairs:
        if key in result:
            duplicates.append(key)
        result[key] = value

    if duplicates:
        marked = _DuplicateKeyDict(result)
        marked.duplicate_keys = tuple(duplicates)
        return marked
    return result


def _json_duplicates(node: Any, path: List[str]) -> Iterator[Tuple[str, Optional[int]]]:
    if isinstance(node, dict):
        for key in getattr(node, "duplicate_keys", ()):
            yield ".".join(path + [key]), None
        for key, value in node.items():
            yield from _json_duplicates(value, path + [str(key)])
    elif isinstance(node, list):
        for i, item in enumerate(node):
            yield from _json_duplicates(item, path + [str(i)])


def _yaml_duplicates(
    node: yaml.Node, path: List[str], visited: set
) -> Iterator[Tuple[str, Optional[int]]]:
    # Якоря YAML могут образовывать циклы в графе узлов
    if id(node) in visited:
        return
    visited.add(id(node))

    if isinstance(node, yaml.MappingNode):
        seen = set()
        for key_node, value_node in node.value:
            key = str(key_node.value) if isinstance(key_node, yaml.ScalarNode) else "?"
            if key in seen:
                yield ".".join(path + [key]), key_node.start_mark.line + 1
            seen.add(key)
            yield from _yaml_duplicates(value_node, path + [key], visited)
    elif isinstance(node, yaml.SequenceNode):
        for i, item in enumerate(node.value):
            yield from _yaml_duplicates(item, path + [str(i)], visited)


def _raise_duplicates(duplicates: List[Tuple[str, Optional[int]]], location: str) -> None:
    errors = []
    for path, line in duplicates:
        parts = path.split(".")
        key = parts[-1]
        message = f"Ключ '{key}' повторяется"
        if tuple(parts[:-1]) in _SCHEMA_CONTAINERS:
            message = f"Тип '{key}' определен повторно"
        if line is not None:
            message += f" (строка {line})"
        errors.append({"path": path, "message": message})

    raise ValidationError(
        f"Повторяющиеся определения в {location or 'документе'}: "
        + ", ".join(path for path, _ in duplicates),
        errors,
    )


def parse_text(text: str, location: str = "", fmt: Optional[str] = None) -> Any:
    """Разбор JSON/YAML; повторяющиеся ключи - ValidationError"""
    if fmt is None:
        fmt = "json" if text.lstrip().startswith(("{", "[")) else "yaml"

    if fmt == "json":
        try:
            document = json.loads(text, object_pairs_hook=_json_pairs_hook)
        except json.JSONDecodeError as e:
            raise ParseError(
                f"Некорректный JSON: {e.msg}", location, line=e.lineno, column=e.colno
            ) from e
        duplicates = list(_json_duplicates(document, []))
    else:
        try:
            root = yaml.compose(text, Loader=yaml.SafeLoader)
            duplicates = list(_yaml_duplicates(root, [], set())) if root else []
            document = yaml.safe_load(text)
        except yaml.MarkedYAMLError as e:
            mark = e.problem_mark
            raise ParseError(
                f"Некорректный YAML: {e.problem}",
                location,
                line=mark.line + 1 if mark else None,
                column=mark.column + 1 if mark else None,
            ) from e
        except yaml.YAMLError as e:
            raise ParseError(f"Некорректный YAML: {e}", location) from e

    if duplicates:
        _raise_duplicates(duplicates, location)
    return document


def _introspection_payload(document: Any) -> Optional[dict]:
    """Результат introspection-запроса, если документ им является"""
    if not isinstance(document, Mapping):
        return None
    if "__schema" in document:
        return dict(document)
    data = document.get("data")
    if isinstance(data, Mapping) and "__schema" in data:
        return dict(data)
    return None


def detect_source_type(location: str = "", content: Any = None) -> str:
    """Тип источника по расширению или по форме содержимого"""
    extension = os.path.splitext(location.split("?")[0])[1].lower()
    if extension in GRAPHQL_EXTENSIONS:
        return GRAPHQL

    if isinstance(content, Mapping):
        return GRAPHQL if _introspection_payload(content) else OPENAPI

    if isinstance(content, str):
        stripped = content.lstrip()
        if stripped.startswith("{"):
            return GRAPHQL if '"__schema"' in content else OPENAPI
        if _OPENAPI_YAML_RE.search(content):
            return OPENAPI
        if _SDL_RE.search(content):
            return GRAPHQL

    return OPENAPI


def _format_for(location: str) -> Optional[str]:
    extension = os.path.splitext(location.split("?")[0])[1].lower()
    if extension in JSON_EXTENSIONS:
        return "json"
    if extension in YAML_EXTENSIONS:
        return "yaml"
    return None


def _is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def _looks_like_text(source: str) -> bool:
    return "\n" in source or source.lstrip().startswith(("{", "["))


def build_source(
    text: str, location: str = "", source_type: Optional[str] = None
) -> SourceDocument:
    """Превращает текст источника в SourceDocument"""
    kind = source_type or detect_source_type(location, text)
    if kind not in SOURCE_TYPES:
        raise ParseError(f"Неизвестный тип источника: {kind}", location)

    if kind == GRAPHQL:
        fmt = _format_for(location)
        if fmt == "json" or (fmt is None and text.lstrip().startswith("{")):
            payload = _introspection_payload(parse_text(text, location, "json"))
            if payload is None:
                raise ParseError("JSON не содержит результата introspection", location)
            return SourceDocument(GRAPHQL, payload, location)
        return SourceDocument(GRAPHQL, text, location)

    return SourceDocument(OPENAPI, parse_text(text, location, _format_for(location)), location)


def load_source(
    source: Union[str, Mapping[str, Any]], source_type: Optional[str] = None
) -> SourceDocument:
    """Загрузка из пути, URL, строки или словаря"""
    if isinstance(source, Mapping):
        kind = source_type or detect_source_type("", source)
        if kind == GRAPHQL:
            payload = _introspection_payload(source)
            if payload is None:
                raise ParseError("Словарь не содержит результата introspection")
            return SourceDocument(GRAPHQL, payload)
        return SourceDocument(OPENAPI, dict(source))

    if _is_url(source):
        return fetch_source(source, source_type)

    if os.path.exists(source):
        logger.debug("Чтение %s", source)
        with open(source, "r", encoding="utf-8") as f:
            text = f.read()
        return build_source(text, os.path.abspath(source), source_type)

    if _looks_like_text(source):
        return build_source(source, "", source_type)

    raise SourceNotFoundError(source)


def fetch_source(
    url: str, source_type: Optional[str] = None, headers: Optional[Dict[str, str]] = None
) -> SourceDocument:
    """Загрузка по HTTP; GraphQL-эндпоинт опрашивается introspection-запросом"""
    try:
        if _wants_introspection(url, source_type):
            response = httpx.post(
                url,
                json={"query": get_introspection_query(descriptions=True)},
                headers=headers,
                timeout=30.0,
            )
            response.raise_for_status()
            return _introspection_source(_response_json(response, url), url)

        response = httpx.get(url, headers=headers, timeout=30.0, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise SourceNotFoundError(url) from e

    return build_source(response.text, url, source_type)


async def load_source_async(
    source: Union[str, Mapping[str, Any]],
    source_type: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None,
) -> SourceDocument:
    """Асинхронная граница ввода-вывода: сеть через httpx, файлы в отдельном потоке"""
    if isinstance(source, str) and _is_url(source):
        try:
            async with httpx.AsyncClient(timeout=30.0, follow_redirects=True) as client:
                if _wants_introspection(source, source_type):
                    response = await client.post(
                        source,
                        json={"query": get_introspection_query(descriptions=True)},
                        headers=headers,
                    )
                    response.raise_for_status()
                    return _introspection_source(_response_json(response, source), source)

                response = await client.get(source, headers=headers)
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise SourceNotFoundError(source) from e
        return build_source(response.text, source, source_type)

    return await asyncio.to_thread(load_source, source, source_type)


def _wants_introspection(url: str, source_type: Optional[str]) -> bool:
    extension = os.path.splitext(url.split("?")[0])[1].lower()
    return source_type == GRAPHQL and extension not in GRAPHQL_EXTENSIONS + JSON_EXTENSIONS


def _response_json(response: httpx.Response, url: str) -> Any:
    try:
        return response.json()
    except ValueError as e:
        raise ParseError(f"Ответ introspection-запроса не является JSON: {e}", url) from e


def _introspection_source(body: Any, url: str) -> SourceDocument:
    if isinstance(body, Mapping) and body.get("errors"):
        messages = "; ".join(str(e.get("message", e)) for e in body["errors"])
        raise ParseError(f"Introspection-запрос вернул ошибки: {messages}", url)
    payload = _introspection_payload(body)
    if payload is None:
        raise ParseError("Ответ не содержит результата introspection", url)
    return SourceDocument(GRAPHQL, payload, url)


def load_document_file(location: str) -> Any:
    """
    Внешний документ для $ref вида ./common.yaml#/Pet.

    JSON загружается загрузчиком jsonref, YAML - через PyYAML.
    """
    if _is_url(location):
        try:
            response = httpx.get(location, timeout=30.0, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise SourceNotFoundError(location) from e
        return parse_text(response.text, location, _format_for(location))

    if not os.path.exists(location):
        raise SourceNotFoundError(location)

    if _format_for(location) == "json":
        try:
            document = jsonref.jsonloader(
                Path(location).resolve().as_uri(), object_pairs_hook=_json_pairs_hook
            )
        except json.JSONDecodeError as e:
            raise ParseError(
                f"Некорректный JSON: {e.msg}", location, line=e.lineno, column=e.colno
            ) from e
        duplicates = list(_json_duplicates(document, []))
        if duplicates:
            _raise_duplicates(duplicates, location)
        return document

    with open(location, "r", encoding="utf-8") as f:
        return parse_text(f.read(), location, "yaml")
