import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional, Set

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from api_bridge.config import CONFIG_FILE, BridgeConfig
from api_bridge.errors import BridgeError, ConfigError, format_error
from api_bridge.generator import ApiBridgeGenerator
from api_bridge.internal.parser.loader import GRAPHQL, OPENAPI

logger = logging.getLogger("api_bridge")

DEBOUNCE_SECONDS = 0.3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="api-bridge",
        description="Генерация TypeScript клиента из OpenAPI или GraphQL",
    )
    parser.add_argument("--input", "-i", type=str, help="Путь, URL или текст схемы")
    parser.add_argument("--output", "-o", type=str, help="Директория для сгенерированных файлов")
    parser.add_argument("--config", "-c", type=str, help=f"Путь к {CONFIG_FILE}")
    parser.add_argument("--type", choices=[OPENAPI, GRAPHQL], help="Тип источника (иначе определяется)")
    parser.add_argument(
        "--init-config", action="store_true", help=f"Создать конфиг файл {CONFIG_FILE}"
    )
    parser.add_argument("--no-typescript", action="store_true", help="Не генерировать types.ts")
    parser.add_argument("--no-zod", action="store_true", help="Не генерировать схемы Zod")
    parser.add_argument("--no-client", action="store_true", help="Не генерировать HTTP клиент")
    parser.add_argument("--no-hooks", action="store_true", help="Не генерировать хуки React Query")
    parser.add_argument("--swr", action="store_true", help="Генерировать хуки SWR")
    parser.add_argument("--no-format", action="store_true", help="Не форматировать результат prettier")
    parser.add_argument("--watch", "-w", action="store_true", help="Перегенерировать при изменениях")
    parser.add_argument("--verbose", "-v", action="store_true", help="Подробный лог")
    return parser


def load_config(args) -> BridgeConfig:
    """Конфиг из файла (если есть) с аргументами поверх"""
    if args.config:
        file_config = BridgeConfig.from_file(args.config)
        if file_config is None:
            raise ConfigError(f"Конфиг {args.config} не найден")
        print(f"📋 Используется конфиг {args.config}")
    else:
        file_config = BridgeConfig.from_file()
        if file_config:
            print(f"📋 Используется конфиг {CONFIG_FILE}")

    config = (file_config or BridgeConfig()).merge_with_args(args)
    return config.validate()


def init_config(args) -> None:
    if os.path.exists(CONFIG_FILE):
        print(f"❌ {CONFIG_FILE} уже существует")
        sys.exit(1)

    config = BridgeConfig(input_path=args.input or "openapi.yaml", input_type=args.type)
    config = config.merge_with_args(args)
    config.save_to_file(CONFIG_FILE)
    print(f"✅ Создан конфиг файл {CONFIG_FILE}")


def generate_once(generator: ApiBridgeGenerator) -> List[str]:
    config = generator.config
    print(f"🚀 Генерация из {config.input_path}")
    written = generator.run()
    print(f"✅ Создано файлов: {len(written)}")
    print(f"📦 Результат в: {os.path.abspath(config.resolve_path(config.output_dir))}")
    return written


class SourceChangeHandler(FileSystemEventHandler):
    """
    Пересборка при изменении источника или файлов операций.

    watchdog вызывает обработчик из своего потока, поэтому запуск
    передается в цикл событий через call_soon_threadsafe.
    """

    def __init__(
        self, generator: ApiBridgeGenerator, paths: Set[str], loop: asyncio.AbstractEventLoop
    ):
        self.generator = generator
        self.paths = paths
        self.loop = loop
        self._pending: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in ("modified", "created", "moved"):
            return
        changed = os.path.abspath(getattr(event, "dest_path", "") or event.src_path)
        if changed in self.paths:
            logger.debug("Изменен %s", changed)
            self.loop.call_soon_threadsafe(self._schedule)

    def _schedule(self) -> None:
        # серия событий от одного сохранения дает один запуск
        if self._pending is not None:
            self._pending.cancel()
        self._pending = self.loop.call_later(DEBOUNCE_SECONDS, self._start)

    def _start(self) -> None:
        self._pending = None
        task = self.loop.create_task(self.regenerate())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def regenerate(self) -> None:
        print("🔄 Изменения обнаружены, перегенерация...")
        try:
            written = await self.generator.run_async()
        except BridgeError as e:
            # в режиме наблюдения ошибка не завершает процесс
            print(f"❌ {format_error(e)}")
            return
        print(f"✅ Обновлено файлов: {len(written)}")


def watched_paths(config: BridgeConfig) -> Set[str]:
    paths = {os.path.abspath(path) for path in config.document_files()}
    if config.input_path and "://" not in config.input_path:
        paths.add(os.path.abspath(config.resolve_path(config.input_path)))
    return paths


async def watch(generator: ApiBridgeGenerator) -> None:
    paths = watched_paths(generator.config)
    if not paths:
        raise ConfigError("Режим наблюдения доступен только для локальных файлов")

    handler = SourceChangeHandler(generator, paths, asyncio.get_running_loop())
    observer = Observer()
    for directory in sorted({os.path.dirname(path) for path in paths}):
        observer.schedule(handler, directory, recursive=False)
    observer.start()
    print(f"👀 Наблюдение за {len(paths)} файлами, Ctrl+C для выхода")
    try:
        while True:
            await asyncio.sleep(1)
    finally:
        observer.stop()
        observer.join()


def main(argv: Optional[List[str]] = None) -> None:
    """Точка входа api-bridge"""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.init_config:
            init_config(args)
            return

        config = load_config(args)
        generator = ApiBridgeGenerator(config)
        generate_once(generator)

        if args.watch:
            asyncio.run(watch(generator))
    except BridgeError as e:
        print(f"❌ {format_error(e)}")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\n👋 Остановлено")


if __name__ == "__main__":
    main()
