from typing import Dict, Iterator, List, Optional

from ...errors import ValidationError
from .models import IRType


class TypeRegistry:
    """
    Арена именованных типов.

    Имя резервируется при первом обнаружении, тип записывается после
    построения. Порядок ключей - порядок обнаружения, все связи между
    типами идут по имени, поэтому циклы не требуют особой обработки.
    """

    def __init__(self):
        self._types: Dict[str, Optional[IRType]] = {}
        self._origins: Dict[str, str] = {}

    def reserve(self, name: str, origin: str) -> None:
        """Регистрация имени за источником (указателем или именем в SDL)"""
        known_origin = self._origins.get(name)
        if known_origin is not None and known_origin != origin:
            raise ValidationError(
                f"Тип '{name}' определен повторно",
                [
                    {
                        "path": f"types.{name}",
                        "message": f"Имя '{name}' уже занято определением {known_origin}, "
                        f"повторное определение: {origin}",
                    }
                ],
            )
        if known_origin is None:
            self._origins[name] = origin
            self._types[name] = None

    def define(self, name: str, ir_type: IRType, origin: str) -> None:
        self.reserve(name, origin)
        if self._types[name] is not None:
            raise ValidationError(
                f"Тип '{name}' определен повторно",
                [{"path": f"types.{name}", "message": f"Повторное определение {origin}"}],
            )
        self._types[name] = ir_type

    def origin_of(self, name: str) -> Optional[str]:
        return self._origins.get(name)

    def is_defined(self, name: str) -> bool:
        return self._types.get(name) is not None

    def get(self, name: str) -> Optional[IRType]:
        return self._types.get(name)

    def names(self) -> List[str]:
        return list(self._types)

    def __contains__(self, name: str) -> bool:
        return name in self._types

    def __iter__(self) -> Iterator[str]:
        return iter(self._types)

    def __len__(self) -> int:
        return len(self._types)

    def snapshot(self) -> Dict[str, IRType]:
        """Готовый реестр; зарезервированное, но не построенное имя - ошибка"""
        missing = [name for name, ir_type in self._types.items() if ir_type is None]
        if missing:
            raise ValidationError(
                "Остались недостроенные типы",
                [
                    {"path": f"types.{name}", "message": "Тип зарезервирован, но не построен"}
                    for name in missing
                ],
            )
        return dict(self._types)
