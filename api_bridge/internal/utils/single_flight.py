"""Не более одного запуска генерации на источник одновременно"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SingleFlight:
    """
    Сериализует запуски по ключу источника.

    Новый запуск ждет завершения предыдущего, а не прерывает его:
    запись в одну выходную директорию никогда не перемешивается.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._pending: Dict[str, int] = {}

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def is_running(self, key: str) -> bool:
        lock = self._locks.get(key)
        return bool(lock and lock.locked())

    def pending(self, key: str) -> int:
        """Количество запусков, ожидающих или выполняющихся для ключа"""
        return self._pending.get(key, 0)

    async def run(self, key: str, func: Callable[[], Awaitable[T]]) -> T:
        lock = self._lock_for(key)
        self._pending[key] = self._pending.get(key, 0) + 1

        if lock.locked():
            logger.debug("Генерация для %s уже выполняется, ожидаем", key)

        try:
            async with lock:
                return await func()
        finally:
            self._pending[key] -= 1
            if not self._pending[key]:
                del self._pending[key]
