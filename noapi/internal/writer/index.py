"""
Индекс реэкспорта: __init__.py директории моделей.

Формат файла::

    # Auto-generated by noapi: re-exports of generated models
    from .user_dto import UserDTO
    from .page_user import PageUser

    __all__ = [
        "UserDTO",
        "PageUser",
    ]

Файл целиком принадлежит генератору и при каждом обновлении
перезаписывается атомарно.
"""

import os
import re
from collections import OrderedDict
from typing import Dict

from ..generator.templates import templates
from ..utils import files

INDEX_FILE = "__init__.py"

_ENTRY_RE = re.compile(r"^from \.(?P<module>[\w.]+) import (?P<name>\w+)\s*$")


class ReExportIndex:
    def __init__(self, directory: str, entries: Dict[str, str] = None):
        self.directory = directory
        self.entries: "OrderedDict[str, str]" = OrderedDict(entries or {})

    @property
    def path(self) -> str:
        return os.path.join(self.directory, INDEX_FILE)

    @classmethod
    async def load(cls, directory: str) -> "ReExportIndex":
        index = cls(directory)
        if await files.exists(index.path):
            index.entries = cls.parse(await files.read_text(index.path))
        return index

    @staticmethod
    def parse(content: str) -> "OrderedDict[str, str]":
        """Имя типа -> модуль, в порядке строк файла"""
        entries = OrderedDict()
        for line in content.splitlines():
            match = _ENTRY_RE.match(line.strip())
            if match:
                entries[match.group("name")] = match.group("module")
        return entries

    def register(self, type_name: str, module: str) -> bool:
        """
        Добавляет запись type_name -> module.

        Возвращает False, если запись уже указывает на тот же модуль.
        Запись на другой модуль перенаправляется на новый, сохраняя позицию.
        """
        if self.entries.get(type_name) == module:
            return False
        self.entries[type_name] = module
        return True

    def render(self) -> str:
        lines = [templates.index_header]
        lines.extend(f"from .{module} import {name}" for name, module in self.entries.items())
        lines.append("")
        lines.append("__all__ = [")
        lines.extend(f'    "{name}",' for name in self.entries)
        lines.append("]")
        return "\n".join(lines) + "\n"

    async def save(self) -> None:
        await files.replace_text(self.path, self.render())

    def __contains__(self, type_name: str) -> bool:
        return type_name in self.entries

    def __len__(self) -> int:
        return len(self.entries)
