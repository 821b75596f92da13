"""
Форматирование результата внешним prettier
"""

import logging
import os
import shutil
import subprocess
from typing import List, Optional

logger = logging.getLogger(__name__)

PRETTIER_CONFIG_FILES = (
    ".prettierrc",
    ".prettierrc.json",
    ".prettierrc.yaml",
    ".prettierrc.yml",
    ".prettierrc.js",
    ".prettierrc.cjs",
    "prettier.config.js",
    "prettier.config.cjs",
)

DEFAULT_ARGS = (
    "--single-quote",
    "--trailing-comma",
    "es5",
    "--print-width",
    "100",
)

_NOT_FOUND = object()


class CodeFormatter:
    """
    Обертка над prettier для одного запуска генерации.

    Поиск исполняемого файла и конфигурации кешируется на экземпляре:
    новый запуск создает новый форматтер и видит изменения окружения.
    Ошибка форматирования не прерывает генерацию: файл пишется как есть.
    """

    def __init__(
        self,
        enabled: bool = True,
        executable: Optional[str] = None,
        search_dir: Optional[str] = None,
        timeout: float = 30.0,
    ):
        self.enabled = enabled
        self.search_dir = search_dir or os.getcwd()
        self.timeout = timeout
        self._executable = executable if executable else _NOT_FOUND
        self._config = _NOT_FOUND

    def find_executable(self) -> Optional[str]:
        if self._executable is _NOT_FOUND:
            local = os.path.join(self.search_dir, "node_modules", ".bin", "prettier")
            self._executable = local if os.path.exists(local) else shutil.which("prettier")
            logger.debug("prettier: %s", self._executable or "не найден")
        return self._executable

    def find_config(self) -> Optional[str]:
        """Ближайший файл конфигурации prettier вверх от search_dir"""
        if self._config is _NOT_FOUND:
            self._config = None
            directory = os.path.abspath(self.search_dir)
            while True:
                for name in PRETTIER_CONFIG_FILES:
                    candidate = os.path.join(directory, name)
                    if os.path.isfile(candidate):
                        self._config = candidate
                        break
                parent = os.path.dirname(directory)
                if self._config or parent == directory:
                    break
                directory = parent
        return self._config

    def _command(self, executable: str, path: str) -> List[str]:
        command = [executable, "--stdin-filepath", path]
        config = self.find_config()
        if config:
            command.extend(["--config", config])
        else:
            command.extend(DEFAULT_ARGS)
        return command

    def format(self, content: str, path: str) -> str:
        """Отформатированное содержимое; при любой ошибке - исходное"""
        if not self.enabled:
            return content

        executable = self.find_executable()
        if executable is None:
            return content

        try:
            completed = subprocess.run(
                self._command(executable, path),
                input=content,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning("Не удалось отформатировать %s: %s", path, e)
            return content

        if completed.returncode != 0:
            logger.warning(
                "prettier завершился с кодом %d для %s: %s",
                completed.returncode,
                path,
                completed.stderr.strip(),
            )
            return content
        return completed.stdout
