"""
Типизированные ошибки ядра: у каждой есть машиночитаемый code и details
"""

from typing import Any, Dict, List, Optional


class BridgeError(Exception):
    """Базовая ошибка генератора"""

    code = "BRIDGE_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Структурированное представление для CLI и watch-режима"""
        return {"code": self.code, "message": self.message, "details": self.details}


class ParseError(BridgeError):
    """Некорректный исходный документ"""

    code = "PARSE_ERROR"

    def __init__(
        self,
        message: str,
        source: str = "",
        line: Optional[int] = None,
        column: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.source = source
        self.line = line
        self.column = column
        location = {"line": line, "column": column} if line is not None else None
        super().__init__(
            message,
            details={"source": source, "location": location, **(details or {})},
        )


class RefResolutionError(BridgeError):
    """Указатель $ref не найден в документе"""

    code = "REF_RESOLUTION_ERROR"

    def __init__(self, ref: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.ref = ref
        super().__init__(message, details={"ref": ref, **(details or {})})


class CircularRefError(RefResolutionError):
    """Цикл, который нельзя связать лениво"""

    code = "CIRCULAR_REF_ERROR"

    def __init__(self, ref: str, path: List[str]):
        self.path = list(path)
        super().__init__(
            ref,
            f"Обнаружена циклическая ссылка: {' -> '.join(self.path)}",
            details={"path": self.path},
        )


class GeneratorError(BridgeError):
    """Генератор упал во время генерации"""

    code = "GENERATOR_ERROR"

    def __init__(
        self, message: str, generator: str, details: Optional[Dict[str, Any]] = None
    ):
        self.generator = generator
        super().__init__(message, details={"generator": generator, **(details or {})})


class ValidationError(BridgeError):
    """IR-схема нарушает структурный инвариант"""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, errors: List[Dict[str, str]]):
        self.errors = list(errors)
        super().__init__(message, details={"errors": self.errors})


class ConfigError(BridgeError):
    """Ошибка конфигурации"""

    code = "CONFIG_ERROR"


class SourceNotFoundError(BridgeError):
    """Исходный файл не найден"""

    code = "FILE_NOT_FOUND"

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Файл не найден: {path}", details={"path": path})


def format_error(error: BaseException) -> str:
    """Человекочитаемое представление ошибки"""
    if not isinstance(error, BridgeError):
        return str(error)

    message = f"[{error.code}] {error.message}"

    if isinstance(error, ParseError) and error.line is not None:
        message += f"\n  at {error.source or '<input>'}:{error.line}"
        if error.column is not None:
            message += f":{error.column}"

    if isinstance(error, CircularRefError):
        message += f"\n  Путь ссылок: {' -> '.join(error.path)}"
    elif isinstance(error, RefResolutionError):
        message += f"\n  Ссылка: {error.ref}"

    if isinstance(error, GeneratorError):
        message += f"\n  Генератор: {error.generator}"

    if isinstance(error, ValidationError):
        message += "\n  Ошибки валидации:"
        for item in error.errors:
            message += f"\n    - {item['path']}: {item['message']}"

    return message
