"""Утилиты для преобразования имен и идентификаторов"""

import re
from typing import List, MutableSet, Union

# Зарезервированные слова TypeScript: генерируемые идентификаторы не должны с ними совпадать
RESERVED_WORDS = frozenset(
    {
        "abstract", "any", "as", "asserts", "async", "await", "boolean", "break",
        "case", "catch", "class", "const", "constructor", "continue", "debugger",
        "declare", "default", "delete", "do", "else", "enum", "export", "extends",
        "false", "finally", "for", "from", "function", "get", "if", "implements",
        "import", "in", "infer", "instanceof", "interface", "is", "keyof", "let",
        "module", "namespace", "never", "new", "null", "number", "object", "of",
        "package", "private", "protected", "public", "readonly", "require",
        "return", "set", "static", "string", "super", "switch", "symbol", "this",
        "throw", "true", "try", "type", "typeof", "undefined", "unique", "unknown",
        "var", "void", "while", "with", "yield",
    }
)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")


def split_words(value: str) -> List[str]:
    """
    Разбивает строку на слова по разделителям и границам регистра.

    Examples:
        >>> split_words("petId")
        ['pet', 'Id']
        >>> split_words("HTTPValidation-error")
        ['HTTP', 'Validation', 'error']
    """
    # Все спецсимволы - разделители
    clean = re.sub(r"[^A-Za-z0-9]+", " ", str(value))
    # HTTPError -> HTTP Error
    clean = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1 \2", clean)
    # petId -> pet Id, v2Api -> v2 Api
    clean = re.sub(r"([a-z0-9])([A-Z])", r"\1 \2", clean)
    return [word for word in clean.split() if word]


def _capitalize(word: str) -> str:
    return word[:1].upper() + word[1:]


def pascal_case(value: str) -> str:
    return "".join(_capitalize(word) for word in split_words(value))


def camel_case(value: str) -> str:
    words = split_words(value)
    if not words:
        return ""
    return words[0].lower() + "".join(_capitalize(word) for word in words[1:])


def snake_case(value: str) -> str:
    return "_".join(word.lower() for word in split_words(value))


def kebab_case(value: str) -> str:
    return "-".join(word.lower() for word in split_words(value))


def constant_case(value: str) -> str:
    return "_".join(word.upper() for word in split_words(value))


def is_valid_identifier(value: str) -> bool:
    return bool(_IDENTIFIER_RE.match(value))


def is_reserved_word(value: str) -> bool:
    return value in RESERVED_WORDS


def sanitize_identifier(value: str) -> str:
    """Приводит строку к допустимому идентификатору TypeScript"""
    name = re.sub(r"[^A-Za-z0-9_$]", "_", str(value))

    if not name:
        return "_"

    # Идентификатор не может начинаться с цифры
    if name[0].isdigit():
        name = f"_{name}"

    if is_reserved_word(name):
        name = f"{name}_"

    return name


def to_type_name(value: str) -> str:
    """Имя типа в PascalCase: /pets/{petId} -> PetsByPetId"""
    name = pascal_case(re.sub(r"\{([^}]+)\}", r" By \1 ", value))
    return sanitize_identifier(name) if name else "Type"


def to_operation_name(method: str, path: str) -> str:
    """
    Детерминированное имя операции из метода и пути.

    Examples:
        >>> to_operation_name("get", "/pets/{petId}")
        'getPetsByPetId'
        >>> to_operation_name("POST", "/pets")
        'postPets'
    """
    parts = [method.lower()]
    for segment in path.split("/"):
        if segment:
            parts.append(re.sub(r"\{([^}]+)\}", r" By \1 ", segment))
    return sanitize_identifier(camel_case(" ".join(parts)))


def to_enum_member_name(value: Union[str, int, float]) -> str:
    """Имя члена enum по его значению"""
    if isinstance(value, (int, float)):
        text = str(abs(value)).replace(".", "_")
        return f"Value{'Neg' if value < 0 else ''}{text}"

    name = pascal_case(value)
    if not name:
        return "Empty"
    if name[0].isdigit():
        name = f"Value{name}"
    return name


def unique_name(base: str, used: MutableSet[str]) -> str:
    """
    Первое вхождение без суффикса, далее base2, base3, ...

    Найденное имя сразу добавляется в used.
    """
    name = base
    counter = 2
    while name in used:
        name = f"{base}{counter}"
        counter += 1
    used.add(name)
    return name


def escape_string(value: str, quote: str = "'") -> str:
    return (
        str(value)
        .replace("\\", "\\\\")
        .replace(quote, f"\\{quote}")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
    )


def quote_property(name: str) -> str:
    """Ключ объекта TypeScript: в кавычках, если это не идентификатор"""
    if is_valid_identifier(name):
        return name
    return f"'{escape_string(name)}'"
