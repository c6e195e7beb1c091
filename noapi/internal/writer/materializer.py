import asyncio
import logging
import os
from typing import Dict

from ...config import EffectiveConfig, definition_dir, definition_path, implementation_path
from ...exceptions import WriteFailure
from ..types.models import EmittedUnit
from ..utils import files
from .index import ReExportIndex

logger = logging.getLogger(__name__)


class OutputMaterializer:
    """
    Запись юнитов на диск.

    implementation: дозапись в файл зоны, заголовок только при создании файла.
    definition: полная перезапись файла модели и регистрация в индексе.

    Записи в один файл (и обновления одного индекса) выполняются под
    общей блокировкой в порядке вызовов materialize.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock(self, key: str) -> asyncio.Lock:
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    async def materialize(self, unit: EmittedUnit, config: EffectiveConfig) -> str:
        """Записывает юнит и возвращает абсолютный путь файла"""
        if unit.is_definition:
            return await self._write_definition(unit, config)
        return await self._append_implementation(unit, config)

    async def _append_implementation(self, unit: EmittedUnit, config: EffectiveConfig) -> str:
        path = implementation_path(config, unit)
        async with self._lock(path):
            try:
                source = unit.source
                if config.file_header is not None and not await files.exists(path):
                    source = await self._render_header(path, unit, config) + source
                await files.append_text(path, source)
            except OSError as exc:
                raise WriteFailure(path, str(exc), unit=unit) from exc

        logger.debug("Дописан %s", path)
        return path

    @staticmethod
    async def _render_header(path: str, unit: EmittedUnit, config: EffectiveConfig) -> str:
        # Заголовок может вычислять пользовательская функция
        try:
            return await config.file_header.render()
        except Exception as exc:
            raise WriteFailure(path, f"file header: {exc}", unit=unit) from exc

    async def _write_definition(self, unit: EmittedUnit, config: EffectiveConfig) -> str:
        directory = definition_dir(config, unit)
        path = definition_path(config, unit)

        async with self._lock(path):
            try:
                await files.replace_text(path, unit.source)
            except OSError as exc:
                raise WriteFailure(path, str(exc), unit=unit) from exc
        logger.debug("Записан %s", path)

        if config.export_from_index:
            await self._register(directory, unit)

        return path

    async def _register(self, directory: str, unit: EmittedUnit) -> None:
        module = os.path.splitext(unit.file_name)[0]
        index = ReExportIndex(directory)
        async with self._lock(os.path.join(directory, "")):
            try:
                index = await ReExportIndex.load(directory)
                if index.register(unit.type_name, module):
                    await index.save()
                    logger.debug("%s добавлен в %s", unit.type_name, index.path)
            except OSError as exc:
                raise WriteFailure(index.path, str(exc), unit=unit) from exc
