"""Структурная проверка IR-схемы перед отдачей генераторам"""

from typing import Dict, List

from ...errors import CircularRefError, ValidationError
from .models import IRSchema, IRType, IRTypeKind, iter_type_refs


def validate_ir_schema(schema: IRSchema) -> List[Dict[str, str]]:
    """Список нарушений вида {path, message}; пустой список - схема корректна"""
    errors: List[Dict[str, str]] = []

    for name, ir_type in schema.types.items():
        if ir_type.name != name:
            errors.append(
                {
                    "path": f"types.{name}.name",
                    "message": f"Имя типа '{ir_type.name}' не совпадает с ключом реестра",
                }
            )

    for path, ref in iter_type_refs(schema):
        if ref.kind == "reference" and ref.name not in schema.types:
            errors.append(
                {"path": f"{path}.name", "message": f"Тип '{ref.name}' не найден в реестре"}
            )
        elif ref.kind == "inline":
            _validate_type(ref.inline_type, f"{path}.inline_type", errors)

    for name, ir_type in schema.types.items():
        _validate_type(ir_type, f"types.{name}", errors)

    seen: Dict[str, str] = {}
    for i, endpoint in enumerate(schema.endpoints):
        path = f"endpoints[{i}]"
        if not endpoint.path:
            errors.append({"path": f"{path}.path", "message": "Пустой путь эндпоинта"})
        _check_unique(endpoint.operation_id, f"{path}.operation_id", seen, errors)

    for i, operation in enumerate(schema.operations):
        _check_unique(operation.name, f"operations[{i}].name", seen, errors)

    return errors


def _check_unique(name: str, path: str, seen: Dict[str, str], errors: List[Dict[str, str]]):
    if not name:
        errors.append({"path": path, "message": "Пустой идентификатор операции"})
    elif name in seen:
        errors.append(
            {"path": path, "message": f"Идентификатор '{name}' уже используется в {seen[name]}"}
        )
    else:
        seen[name] = path


def _validate_type(ir_type: IRType, path: str, errors: List[Dict[str, str]]) -> None:
    if ir_type.kind == IRTypeKind.ARRAY and ir_type.items is None:
        errors.append({"path": f"{path}.items", "message": "У массива нет типа элементов"})

    elif ir_type.kind == IRTypeKind.UNION and not ir_type.variants:
        errors.append({"path": f"{path}.variants", "message": "У объединения нет вариантов"})

    elif ir_type.kind == IRTypeKind.INTERSECTION and not ir_type.members:
        errors.append({"path": f"{path}.members", "message": "У пересечения нет членов"})

    elif ir_type.kind == IRTypeKind.ALIAS and ir_type.target is None:
        errors.append({"path": f"{path}.target", "message": "У псевдонима нет цели"})

    elif ir_type.kind == IRTypeKind.ENUM:
        if not ir_type.enum_values:
            errors.append({"path": f"{path}.enum_values", "message": "Пустой enum"})
        kinds = {isinstance(v.value, str) for v in ir_type.enum_values}
        if len(kinds) > 1:
            errors.append(
                {"path": f"{path}.enum_values", "message": "Смешаны строковые и числовые значения"}
            )


def check_alias_cycles(schema: IRSchema) -> None:
    """
    Псевдоним, который через цепочку псевдонимов указывает сам на себя,
    не имеет конечного типа и не может быть связан лениво.
    """
    for name, ir_type in schema.types.items():
        chain = [name]
        current = ir_type
        while current.kind == IRTypeKind.ALIAS and current.target.kind == "reference":
            next_name = current.target.name
            if next_name in chain:
                raise CircularRefError(next_name, chain[chain.index(next_name):] + [next_name])
            chain.append(next_name)
            current = schema.types.get(next_name)
            if current is None:
                break


def ensure_valid(schema: IRSchema) -> IRSchema:
    errors = validate_ir_schema(schema)
    if errors:
        raise ValidationError(
            f"IR-схема не прошла проверку: {len(errors)} ошибок", errors
        )
    check_alias_cycles(schema)
    return schema
