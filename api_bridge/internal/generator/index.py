import logging
import posixpath
from collections import Counter
from typing import List

from ..utils.naming import camel_case, sanitize_identifier
from .base import GeneratedFile, Generator, GeneratorContext
from .printer import GENERATED_HEADER, CodePrinter
from .typescript import exported_names

logger = logging.getLogger(__name__)

INDEX_FILE = "index.ts"


def module_specifier(path: str) -> str:
    """types.ts -> ./types"""
    stem, _ = posixpath.splitext(path)
    return f"./{stem}"


class IndexGenerator(Generator):
    """
    Barrel-файл с реэкспортом всего, что сгенерировано раньше.

    Модуль, чьи экспорты пересекаются с экспортами другого модуля,
    реэкспортируется пространством имен: `export *` с конфликтом имен
    в TypeScript недопустим.
    """

    name = "index"
    description = "Barrel file"

    def generate(self, context: GeneratorContext) -> List[GeneratedFile]:
        modules = [
            path
            for path in context.emitted
            if path.endswith(".ts") and not path.endswith(".d.ts") and path != INDEX_FILE
        ]
        exports = {path: exported_names(context.emitted[path]) for path in modules}
        counts = Counter(name for names in exports.values() for name in names)

        printer = CodePrinter()
        printer.raw(GENERATED_HEADER)
        if not modules:
            printer.line("export {};")
        for path in modules:
            specifier = module_specifier(path)
            if any(counts[name] > 1 for name in exports[path]):
                namespace = sanitize_identifier(camel_case(posixpath.basename(specifier)))
                logger.debug("index.ts: %s реэкспортируется как %s", path, namespace)
                printer.line(f"export * as {namespace} from '{specifier}';")
            else:
                printer.line(f"export * from '{specifier}';")
        return [GeneratedFile(INDEX_FILE, printer.to_string())]


__all__ = ["INDEX_FILE", "IndexGenerator", "module_specifier"]
