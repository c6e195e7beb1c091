import inspect
import logging
from typing import AsyncIterator, Awaitable, Callable, List, Sequence, Union

from ...exceptions import CodegenError, SelectorNotFound
from ..parser.openapi import ApiDocument
from ..types.models import EmittedUnit, Operation, TargetSelector
from .codegen import CodegenBackend

logger = logging.getLogger(__name__)

UnitSink = Callable[[EmittedUnit], Union[None, Awaitable[None]]]


class GenerationFanOut:
    """
    Разворачивает список селекторов в вызовы codegen-бэкенда.

    Юниты отдаются потоком в порядке селекторов и найденных операций.
    Ошибка одного селектора не прерывает обработку остальных: она отдается
    в том же потоке вместо юнитов этого селектора.
    """

    def __init__(self, backend: CodegenBackend):
        self.backend = backend

    def resolve(
        self, document: ApiDocument, selector: TargetSelector
    ) -> List[Union[Operation, str]]:
        if selector.is_definition:
            if document.schema(selector.definition_key) is None:
                raise SelectorNotFound(
                    selector, f"Схема {selector.definition_key} не найдена в документе"
                )
            return [selector.definition_key]

        operations = document.find_operations(selector.path, selector.method)
        if not operations:
            raise SelectorNotFound(selector, f"Операция {selector} не найдена в документе")
        return operations

    async def iter_units(
        self, document: ApiDocument, selectors: Sequence[TargetSelector]
    ) -> AsyncIterator[Union[EmittedUnit, Exception]]:
        for selector in selectors:
            try:
                targets = self.resolve(document, selector)
            except SelectorNotFound as exc:
                logger.debug("%s", exc)
                yield exc
                continue

            for target in targets:
                try:
                    units = self.backend.emit(document, target, selector.only_definition)
                except Exception as exc:
                    error = CodegenError(selector, str(exc) or type(exc).__name__)
                    error.__cause__ = exc
                    logger.warning("%s", error)
                    yield error
                    continue

                logger.debug("%s: %d юнитов", selector, len(units))
                for unit in units:
                    yield unit

    async def generate(
        self,
        document: ApiDocument,
        selectors: Sequence[TargetSelector],
        sink: UnitSink,
    ) -> List[Exception]:
        """Передает каждый юнит в sink по мере генерации, возвращает ошибки селекторов"""
        failures = []
        async for item in self.iter_units(document, selectors):
            if isinstance(item, Exception):
                failures.append(item)
                continue
            result = sink(item)
            if inspect.isawaitable(result):
                await result
        return failures
