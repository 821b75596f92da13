"""Утилиты генератора"""

from .naming import (
    camel_case,
    constant_case,
    kebab_case,
    pascal_case,
    sanitize_identifier,
    snake_case,
    to_enum_member_name,
    to_operation_name,
    to_type_name,
    unique_name,
)

__all__ = [
    "camel_case",
    "constant_case",
    "kebab_case",
    "pascal_case",
    "sanitize_identifier",
    "snake_case",
    "to_enum_member_name",
    "to_operation_name",
    "to_type_name",
    "unique_name",
]
