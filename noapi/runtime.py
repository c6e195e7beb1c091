"""
Рантайм сгенерированного кода: HTTP-запросы на aiohttp.

Сгенерированные функции вызывают request(); перед первым запросом
приложение вызывает configure() с адресом API.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import aiohttp
from aiohttp import ClientError, ClientSession, ClientTimeout, TCPConnector
from pydantic import TypeAdapter

from .exceptions import SendRequestError

logger = logging.getLogger(__name__)


class _NotSet:
    """Значение параметра, который не нужно отправлять"""

    def __repr__(self):
        return "NOTSET"

    def __bool__(self):
        return False


NOTSET: Any = _NotSet()

_ANY = TypeAdapter(Any)


def drop_not_set(values: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    return {k: v for k, v in (values or {}).items() if v is not NOTSET}


def to_jsonable(value: Any) -> Any:
    """pydantic-модели, enum и даты в JSON-совместимые значения (поля по alias)"""
    return _ANY.dump_python(value, mode="json", by_alias=True)


def build_url(api_url: str, path: str, path_params: Dict[str, Any] = None) -> str:
    for name, value in drop_not_set(path_params).items():
        path = path.replace(f"{{{name}}}", quote(str(_scalar(value)), safe=""))
    return f"{api_url.rstrip('/')}{path}"


def _scalar(value: Any) -> Any:
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


def query_items(params: Dict[str, Any] = None) -> List[Tuple[str, str]]:
    """Параметры строки запроса; списки раскладываются в повторяющиеся ключи"""
    items = []
    for name, value in drop_not_set(params).items():
        if value is None:
            continue
        for item in value if isinstance(value, (list, tuple)) else [value]:
            item = to_jsonable(_scalar(item))
            items.append((name, item if isinstance(item, str) else str(item)))
    return items


def _string_map(values: Dict[str, Any] = None) -> Dict[str, str]:
    return {
        name: str(_scalar(value))
        for name, value in drop_not_set(values).items()
        if value is not None
    }


class ApiRequester:
    """HTTP клиент сгенерированных функций на базе aiohttp с пулом соединений"""

    def __init__(self):
        self._session: Optional[ClientSession] = None
        self._api_url: Optional[str] = None
        self._headers: Dict[str, str] = {}
        self._cookies: Dict[str, str] = {}
        self._timeout: int = 30
        self._retries: int = 3
        self._max_connections = 100
        self._max_connections_per_host = 10
        self._stale = False

    def configure(
        self,
        api_url: str,
        headers: Dict[str, str] = None,
        cookies: Dict[str, str] = None,
        timeout: int = 30,
        retries: int = 3,
        max_connections: int = 100,
        max_connections_per_host: int = 10,
    ) -> "ApiRequester":
        """Настройка клиента; открытая сессия будет пересоздана"""
        self._api_url = str(api_url).rstrip("/")
        self._headers = dict(headers) if headers else {}
        self._cookies = dict(cookies) if cookies else {}
        self._timeout = int(timeout) if timeout else 30
        self._retries = max(int(retries), 1) if retries else 1
        self._max_connections = max_connections
        self._max_connections_per_host = max_connections_per_host
        self._stale = True
        return self

    async def _ensure_session(self) -> ClientSession:
        if self._stale and self._session and not self._session.closed:
            await self._session.close()
        self._stale = False

        if self._session is None or self._session.closed:
            self._session = ClientSession(
                connector=TCPConnector(
                    limit=self._max_connections,
                    limit_per_host=self._max_connections_per_host,
                    ttl_dns_cache=30,
                    enable_cleanup_closed=True,
                ),
                timeout=ClientTimeout(total=self._timeout, connect=10),
                headers=self._headers.copy(),
                cookies=self._cookies.copy(),
                trust_env=True,  # системные прокси
            )
        return self._session

    def _request_kwargs(self, method, url, params, headers, cookies, json, data, files):
        kwargs = {"method": method, "url": url, "params": query_items(params)}

        if headers:
            kwargs["headers"] = _string_map(headers)
        if cookies:
            kwargs["cookies"] = _string_map(cookies)

        if data is not None and data is not NOTSET and not isinstance(data, (dict, str, bytes)):
            data = to_jsonable(data)
        data = drop_not_set(data) if isinstance(data, dict) else data
        files = drop_not_set(files)
        if files:
            form_data = aiohttp.FormData()
            for field_name, file_data in files.items():
                for content in file_data if isinstance(file_data, list) else [file_data]:
                    form_data.add_field(field_name, content, filename=f"{field_name}.bin")
            for key, value in (data or {}).items():
                if value is not None:
                    form_data.add_field(key, str(_scalar(to_jsonable(value))))
            kwargs["data"] = form_data
        elif isinstance(data, dict):
            kwargs["data"] = {
                key: str(_scalar(to_jsonable(value)))
                for key, value in data.items()
                if value is not None
            }
        elif data is not None and data is not NOTSET:
            kwargs["data"] = data
        elif json is not NOTSET:
            kwargs["json"] = to_jsonable(drop_not_set(json) if isinstance(json, dict) else json)

        return kwargs

    async def request(
        self,
        method: str,
        path: str,
        path_params: Dict[str, Any] = None,
        params: Dict[str, Any] = None,
        headers: Dict[str, Any] = None,
        cookies: Dict[str, Any] = None,
        json: Any = NOTSET,
        data: Any = None,
        files: Dict[str, Any] = None,
        response_model: Any = None,
    ) -> Any:
        if not self._api_url:
            raise SendRequestError(
                "API URL is empty, call noapi.runtime.configure()",
                path=path,
                status_code=400,
            )

        url = build_url(self._api_url, path, path_params)
        retries = self._retries

        while True:
            session = await self._ensure_session()
            kwargs = self._request_kwargs(method, url, params, headers, cookies, json, data, files)
            try:
                logger.debug("Making %s request to %s", method, url)
                async with session.request(**kwargs) as response:
                    logger.debug("Response status: %s", response.status)
                    body = await response.read()
                    status = response.status
                    content_type = response.content_type or ""
                    charset = response.charset or "utf-8"
                break
            except (ClientError, asyncio.TimeoutError) as exc:
                retries -= 1
                logger.warning("Request failed (retries left: %s): %s", retries, exc)
                if not retries:
                    raise SendRequestError(str(exc), path=path, status_code=503) from exc
                await asyncio.sleep(0.5)

        text = body.decode(charset, errors="replace")
        if status >= 400:
            raise SendRequestError(
                f"HTTP {status}", path=path, status_code=status, body=text
            )

        if not body:
            return None
        if "json" not in content_type and response_model is None:
            return text

        try:
            payload = _ANY.validate_json(body) if "json" in content_type else text
            if response_model is None:
                return payload
            return TypeAdapter(response_model).validate_python(payload)
        except ValueError as exc:
            raise SendRequestError(
                f"Invalid response: {exc}", path=path, status_code=status, body=text
            ) from exc

    async def close(self):
        """Закрытие сессии и освобождение ресурсов"""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


requester = ApiRequester()


def configure(
    api_url: str,
    headers: Dict[str, str] = None,
    cookies: Dict[str, str] = None,
    timeout: int = 30,
    retries: int = 3,
) -> ApiRequester:
    return requester.configure(
        api_url, headers=headers, cookies=cookies, timeout=timeout, retries=retries
    )


async def request(method: str, path: str, **kwargs) -> Any:
    return await requester.request(method, path, **kwargs)


async def close():
    await requester.close()
