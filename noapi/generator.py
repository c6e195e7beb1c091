"""
Главный модуль генератора - чистый интерфейс
"""

import logging
from typing import List, Optional, Sequence

from .config import EffectiveConfig
from .exceptions import WriteFailure
from .internal.generator.codegen import CodegenBackend, PythonCodegenBackend
from .internal.generator.fan_out import GenerationFanOut
from .internal.loader.document import DocumentCacheLoader
from .internal.parser import catalog
from .internal.parser.openapi import ApiDocument
from .internal.types.models import GenerationResult, OperationSummary, TargetSelector
from .internal.writer.materializer import OutputMaterializer

logger = logging.getLogger(__name__)


class NoApiGenerator:
    """Один запуск генератора: конфигурация, документ и запись результата"""

    def __init__(
        self,
        config: EffectiveConfig,
        document: ApiDocument = None,
        loader: DocumentCacheLoader = None,
        backend: CodegenBackend = None,
        materializer: OutputMaterializer = None,
    ):
        self.config = config
        self.document = document
        self.loader = loader or DocumentCacheLoader()
        self.backend = backend or PythonCodegenBackend(models_module=config.models_module)
        self.materializer = materializer or OutputMaterializer()

    async def load_document(self) -> ApiDocument:
        if self.document is None:
            self.document = await self.loader.load(self.config)
        return self.document

    async def refresh(self) -> ApiDocument:
        self.document = await self.loader.refresh(self.config)
        return self.document

    async def search(self, keyword: Optional[str] = None) -> List[OperationSummary]:
        return catalog.search(await self.load_document(), keyword)

    async def generate(self, selectors: Sequence[TargetSelector]) -> GenerationResult:
        """
        Генерация по списку селекторов.

        DocumentUnavailable прерывает запуск. Ошибки отдельных селекторов и
        записи отдельных юнитов собираются в результат, уже записанные файлы
        остаются на диске.
        """
        document = await self.load_document()
        result = GenerationResult(warnings=list(self.loader.warnings))
        fan_out = GenerationFanOut(self.backend)

        async for item in fan_out.iter_units(document, selectors):
            if isinstance(item, Exception):
                result.failures.append(item)
                continue

            try:
                path = await self.materializer.materialize(item, self.config)
            except WriteFailure as exc:
                logger.warning("%s", exc)
                result.failures.append(exc)
                continue

            result.completed_units.append(item)
            result.written_files[path] = result.written_files.get(path, 0) + 1

        return result


async def generate_targets(
    config: EffectiveConfig,
    selectors: Sequence[TargetSelector],
    document: ApiDocument = None,
    loader: DocumentCacheLoader = None,
    backend: CodegenBackend = None,
) -> GenerationResult:
    generator = NoApiGenerator(config, document=document, loader=loader, backend=backend)
    return await generator.generate(selectors)


async def search_operations(
    config: EffectiveConfig,
    keyword: Optional[str] = None,
    document: ApiDocument = None,
    loader: DocumentCacheLoader = None,
) -> List[OperationSummary]:
    generator = NoApiGenerator(config, document=document, loader=loader)
    return await generator.search(keyword)


async def refresh_document_cache(
    config: EffectiveConfig, loader: DocumentCacheLoader = None
) -> ApiDocument:
    """Загрузка документа заново с перезаписью локального кэша"""
    return await NoApiGenerator(config, loader=loader).refresh()
