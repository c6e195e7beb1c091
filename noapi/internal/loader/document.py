import logging
from typing import Any, Dict, List, Optional, Protocol, Union

import httpx

from ...exceptions import DocumentUnavailable, FetchError, WriteFailure
from ..parser.openapi import ApiDocument
from ..utils import files

logger = logging.getLogger(__name__)

RawDocument = Union[bytes, str, Dict[str, Any]]


class DocumentFetcher(Protocol):
    async def fetch(self, locator: str, credential: Optional[str] = None) -> RawDocument:
        ...


class HttpDocumentFetcher:
    """Загрузка документа по HTTP (или из локального файла, если locator - путь)"""

    def __init__(self, timeout: float = 30.0, transport: httpx.AsyncBaseTransport = None):
        self.timeout = timeout
        self._transport = transport

    async def fetch(self, locator: str, credential: Optional[str] = None) -> RawDocument:
        if not locator.startswith(("http://", "https://")):
            if await files.exists(locator):
                try:
                    return await files.read_text(locator)
                except OSError as exc:
                    raise FetchError(str(exc), locator=locator) from exc
            # Попробуем как URL без протокола
            locator = "https://" + locator

        headers = {"Accept": "application/json"}
        if credential:
            headers["Cookie"] = credential

        logger.debug("Загрузка документа %s", locator)
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                response = await client.get(locator, headers=headers)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise FetchError(
                exc.response.reason_phrase or "HTTP error",
                locator=locator,
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise FetchError(str(exc) or type(exc).__name__, locator=locator) from exc

        try:
            return response.json()
        except ValueError as exc:
            raise FetchError("Ответ не является JSON", locator=locator) from exc


class DocumentCacheLoader:
    """Документ из локального кэша, иначе загрузка и сохранение в кэш"""

    def __init__(self, fetcher: DocumentFetcher = None):
        self.fetcher = fetcher or HttpDocumentFetcher()
        self.warnings: List[Exception] = []

    async def load(self, config) -> ApiDocument:
        if await files.exists(config.doc_path):
            try:
                content = await files.read_text(config.doc_path)
                document = ApiDocument.from_json(content, source=config.doc_path)
                logger.debug("Документ взят из кэша %s", config.doc_path)
                return document
            except (OSError, ValueError) as exc:
                if not config.swag_url:
                    raise DocumentUnavailable(
                        f"Локальный документ {config.doc_path} не читается: {exc}"
                    ) from exc
                logger.warning(
                    "Локальный документ %s не читается (%s), загружаем заново",
                    config.doc_path,
                    exc,
                )

        return await self._fetch_and_store(config)

    async def refresh(self, config) -> ApiDocument:
        """Принудительная загрузка и перезапись кэша"""
        return await self._fetch_and_store(config)

    async def _fetch_and_store(self, config) -> ApiDocument:
        if not config.swag_url:
            raise DocumentUnavailable(
                "Не удалось получить документ: нет ни локального файла, ни swag_url"
            )

        try:
            payload = await self.fetcher.fetch(config.swag_url, config.cookie)
            document = self._parse(payload, source=config.swag_url)
        except FetchError as exc:
            raise DocumentUnavailable(f"Не удалось загрузить документ: {exc}") from exc
        except ValueError as exc:
            raise DocumentUnavailable(
                f"Документ {config.swag_url} не разобран: {exc}"
            ) from exc

        try:
            await files.replace_text(config.doc_path, document.to_json())
            logger.debug("Документ сохранен в %s", config.doc_path)
        except OSError as exc:
            warning = WriteFailure(config.doc_path, f"кэш документа не сохранен: {exc}")
            logger.warning("%s", warning)
            self.warnings.append(warning)

        return document

    @staticmethod
    def _parse(payload: RawDocument, source: str = None) -> ApiDocument:
        if isinstance(payload, dict):
            return ApiDocument(payload, source=source)
        return ApiDocument.from_json(payload, source=source)
