"""
Конфигурация генератора: файл noapi.toml и итоговая конфигурация запуска
"""

import importlib
import inspect
import logging
import os
from dataclasses import dataclass, fields
from typing import Any, Awaitable, Callable, Optional, Union

import toml

from .exceptions import ConfigError
from .internal.generator.templates import templates
from .internal.types.models import EmittedUnit

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "noapi.toml"
DEFAULT_API_BASE = "./src/api"
DEFAULT_DOC_FILE = "noapi-swagger-doc.json"
DEFAULT_MODELS_MODULE = ".models"


@dataclass
class NoApiConfig:
    """Один слой настроек: значения по умолчанию, файл или аргументы"""

    swag_url: Optional[str] = None
    cookie: Optional[str] = None
    swag_file: Optional[str] = None
    api_base: Optional[str] = None
    def_base: Optional[str] = None
    file_header: Optional[str] = None
    file_header_factory: Optional[str] = None
    export_from_index: Optional[bool] = None
    models_module: Optional[str] = None

    @classmethod
    def from_file(
        cls, config_path: str = DEFAULT_CONFIG_FILE, search_dir: str = None
    ) -> Optional["NoApiConfig"]:
        """Загрузка конфигурации из файла, None если файла нет"""
        if search_dir and os.path.isdir(search_dir):
            config_path = os.path.join(search_dir, os.path.basename(config_path))

        if not os.path.exists(config_path):
            return None

        try:
            config_data = toml.load(config_path)
        except (toml.TomlDecodeError, OSError) as exc:
            raise ConfigError(f"Не удалось прочитать {config_path}: {exc}") from exc

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(config_data) - known)
        if unknown:
            logger.debug("Неизвестные ключи в %s: %s", config_path, ", ".join(unknown))

        return cls(**{k: v for k, v in config_data.items() if k in known})

    def save_to_file(self, config_path: str = DEFAULT_CONFIG_FILE) -> None:
        """Сохранение конфигурации в файл"""
        config_data = {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

        with open(config_path, "w", encoding="utf-8") as f:
            f.write(templates.config_file)
            f.write("\n")
            toml.dump(config_data, f)

    def merge_with_args(self, args) -> "NoApiConfig":
        """Объединение с аргументами командной строки (аргументы важнее)"""
        return NoApiConfig(
            **{
                f.name: (
                    getattr(args, f.name, None)
                    if getattr(args, f.name, None) is not None
                    else getattr(self, f.name)
                )
                for f in fields(self)
            }
        )


@dataclass(frozen=True)
class StaticHeader:
    text: str

    async def render(self) -> str:
        return self.text


@dataclass(frozen=True)
class ComputedHeader:
    producer: Callable[[], Union[str, Awaitable[str]]]

    async def render(self) -> str:
        result = self.producer()
        if inspect.isawaitable(result):
            result = await result
        return str(result)


FileHeader = Union[StaticHeader, ComputedHeader]


@dataclass(frozen=True)
class EffectiveConfig:
    """Итоговая конфигурация одного запуска, не меняется после сборки"""

    doc_path: str
    api_base: str
    swag_url: Optional[str] = None
    cookie: Optional[str] = None
    def_base: Optional[str] = None
    file_header: Optional[FileHeader] = None
    export_from_index: bool = True
    models_module: str = DEFAULT_MODELS_MODULE


def load_header_factory(import_path: str) -> Callable[[], Any]:
    """Загрузка функции заголовка по пути вида "package.module:callable" """
    module_name, _, attr = import_path.partition(":")
    if not module_name or not attr:
        raise ConfigError(
            f"file_header_factory должен быть вида 'module:callable', получено {import_path!r}"
        )

    try:
        producer = getattr(importlib.import_module(module_name), attr)
    except (ImportError, AttributeError) as exc:
        raise ConfigError(f"Не удалось загрузить {import_path}: {exc}") from exc

    if not callable(producer):
        raise ConfigError(f"{import_path} не является вызываемым объектом")

    return producer


def _pick(name: str, *layers: Optional[NoApiConfig], default: Any = None) -> Any:
    for layer in layers:
        value = getattr(layer, name, None) if layer else None
        if value is not None:
            return value
    return default


def _resolve_header(*layers: Optional[NoApiConfig]) -> Optional[FileHeader]:
    for layer in layers:
        if layer is None:
            continue
        if layer.file_header_factory:
            return ComputedHeader(load_header_factory(layer.file_header_factory))
        if layer.file_header is not None:
            return StaticHeader(layer.file_header) if layer.file_header else None
    return StaticHeader(templates.file_header)


def resolve_config(
    overrides: Optional[NoApiConfig] = None,
    persisted: Optional[NoApiConfig] = None,
    document_loaded: bool = False,
    base_dir: str = None,
) -> EffectiveConfig:
    """
    Сборка EffectiveConfig.

    Приоритет: явные аргументы > файл конфигурации > встроенные значения.
    ConfigError, если нет ни локального документа, ни swag_url, и документ
    еще не загружен в память.
    """
    base_dir = base_dir or os.getcwd()
    layers = (overrides, persisted)

    def absolute(path: str) -> str:
        return os.path.abspath(os.path.join(base_dir, os.path.expanduser(path)))

    api_base = absolute(_pick("api_base", *layers, default=DEFAULT_API_BASE))
    swag_file = _pick("swag_file", *layers)
    doc_path = absolute(swag_file) if swag_file else os.path.join(api_base, DEFAULT_DOC_FILE)
    def_base = _pick("def_base", *layers)
    swag_url = _pick("swag_url", *layers) or None

    if not document_loaded and not swag_url and not os.path.exists(doc_path):
        raise ConfigError(
            f"Не указан swag_url и нет локального документа {doc_path}. "
            "Укажите --swag-url или выполните noapi init"
        )

    return EffectiveConfig(
        doc_path=doc_path,
        api_base=api_base,
        swag_url=swag_url,
        cookie=_pick("cookie", *layers),
        def_base=absolute(def_base) if def_base else None,
        file_header=_resolve_header(*layers),
        export_from_index=bool(_pick("export_from_index", *layers, default=True)),
        models_module=_pick("models_module", *layers, default=DEFAULT_MODELS_MODULE),
    )


def implementation_path(config: EffectiveConfig, unit: EmittedUnit) -> str:
    """Абсолютный путь файла с функциями запросов"""
    return os.path.normpath(os.path.join(config.api_base, unit.relative_path))


def definition_dir(config: EffectiveConfig, unit: EmittedUnit) -> str:
    """Директория определений: def_base либо api_base/<директория юнита>"""
    if config.def_base:
        return config.def_base
    return os.path.normpath(os.path.join(config.api_base, unit.file_dir))


def definition_path(config: EffectiveConfig, unit: EmittedUnit) -> str:
    return os.path.join(definition_dir(config, unit), unit.file_name)


def get_config_path(base_dir: str = None) -> str:
    return os.path.abspath(os.path.join(base_dir or os.getcwd(), DEFAULT_CONFIG_FILE))


def create_config_file(swag_url: str, config_path: str = None) -> str:
    """Создание стартового noapi.toml, возвращает путь к файлу"""
    config_path = config_path or get_config_path()
    NoApiConfig(
        swag_url=swag_url or None,
        api_base=DEFAULT_API_BASE,
        export_from_index=True,
    ).save_to_file(config_path)
    return config_path
