"""
Тесты внешнего форматтера
"""

import os
import sys

import pytest

from api_bridge.generator import write_files
from api_bridge.internal.generator import CodeFormatter, GeneratedFile

CONTENT = "export const a = 1;\n"

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="shell-скрипты")


def fake_prettier(directory, body):
    path = os.path.join(str(directory), "prettier")
    with open(path, "w", encoding="utf-8") as f:
        f.write("#!/bin/sh\n" + body + "\n")
    os.chmod(path, 0o755)
    return path


class TestCodeFormatter:
    """Тесты CodeFormatter"""

    def test_disabled(self):
        formatter = CodeFormatter(enabled=False, executable="/nonexistent/prettier")
        assert formatter.format(CONTENT, "a.ts") == CONTENT

    def test_missing_executable_degrades(self, tmp_path):
        """Тест: ошибка запуска не прерывает генерацию"""
        formatter = CodeFormatter(executable=str(tmp_path / "missing"), search_dir=str(tmp_path))
        assert formatter.format(CONTENT, "a.ts") == CONTENT

    @posix_only
    def test_nonzero_exit_degrades(self, tmp_path):
        formatter = CodeFormatter(
            executable=fake_prettier(tmp_path, "exit 2"), search_dir=str(tmp_path)
        )
        assert formatter.format(CONTENT, "a.ts") == CONTENT

    @posix_only
    def test_formatted_output(self, tmp_path):
        formatter = CodeFormatter(
            executable=fake_prettier(tmp_path, "tr a-z A-Z"), search_dir=str(tmp_path)
        )
        assert formatter.format(CONTENT, "a.ts") == CONTENT.upper()

    def test_config_lookup_is_per_instance(self, tmp_path):
        """Тест: поиск конфигурации кешируется только на экземпляре"""
        nested = tmp_path / "src" / "api"
        nested.mkdir(parents=True)

        first = CodeFormatter(search_dir=str(nested))
        assert first.find_config() is None
        assert "--single-quote" in first._command("prettier", "a.ts")

        (tmp_path / ".prettierrc").write_text("{}", encoding="utf-8")

        assert first.find_config() is None
        second = CodeFormatter(search_dir=str(nested))
        assert second.find_config() == str(tmp_path / ".prettierrc")
        assert second._command("prettier", "a.ts")[-2:] == ["--config", str(tmp_path / ".prettierrc")]

    @posix_only
    def test_write_files_formats_each_file(self, tmp_path):
        formatter = CodeFormatter(
            executable=fake_prettier(tmp_path, "tr a-z A-Z"), search_dir=str(tmp_path)
        )
        files = [GeneratedFile("types.ts", "a"), GeneratedFile("models/pet.ts", "b")]

        written = write_files(files, str(tmp_path / "out"), formatter)

        assert written == [
            os.path.abspath(str(tmp_path / "out" / "types.ts")),
            os.path.abspath(str(tmp_path / "out" / "models" / "pet.ts")),
        ]
        with open(written[1], "r", encoding="utf-8") as f:
            assert f.read() == "B"
