import argparse
import asyncio
import logging
import os
import sys
import time
from typing import List, Optional

from noapi.config import (
    NoApiConfig,
    create_config_file,
    get_config_path,
    resolve_config,
)
from noapi.exceptions import NoApiError
from noapi.generator import NoApiGenerator
from noapi.internal.types.models import GenerationResult, TargetSelector

COMMANDS = ("api", "def", "init", "update")


def confirm_choice(message: str, default: bool = False) -> bool:
    """Запрос подтверждения у пользователя"""
    while True:
        choice = input(f"{message} (y/n): ").lower().strip()
        if not choice:
            return default
        if choice in ["y", "yes", "да"]:
            return True
        elif choice in ["n", "no", "нет"]:
            return False
        print("Введите y/n")


def exit_with_error(message: str):
    print(f"❌ Ошибка: {message}")
    sys.exit(1)


def split_targets(value: Optional[str], leading_slash: bool = True) -> List[str]:
    """Список через запятую; к путям без ведущего / он добавляется"""
    targets = []
    for item in (value or "").split(","):
        item = item.strip()
        if not item:
            continue
        if leading_slash and not item.startswith("/"):
            item = "/" + item
        targets.append(item)
    return targets


def _elapsed(started: float) -> str:
    return f"{(time.perf_counter() - started) * 1000:.2f}ms"


def _load_config(args):
    overrides = NoApiConfig().merge_with_args(args)
    return resolve_config(overrides, NoApiConfig.from_file())


def _print_result(result: GenerationResult):
    for path, count in result.written_files.items():
        print(f"💾 {os.path.relpath(path)} ({count})")
    for warning in result.warnings:
        print(f"⚠️ {warning}")
    for failure in result.failures:
        print(f"❌ {failure}")

    if result.ok:
        print(f"✅ Сгенерировано юнитов: {len(result.completed_units)}")
    else:
        print(
            f"⚠️ Сгенерировано юнитов: {len(result.completed_units)}, "
            f"ошибок: {len(result.failures)}"
        )


async def _run_api(args) -> int:
    config = _load_config(args)
    generator = NoApiGenerator(config)

    # Явно переданный адрес документа обновляет кэш
    if args.swag_url:
        print(f"📥 Загрузка документа {args.swag_url}...")
        await generator.refresh()

    if args.list:
        keyword = args.list if isinstance(args.list, str) else None
        summaries = await generator.search(keyword)
        if not summaries:
            print("🔍 Ничего не найдено")
        else:
            for summary in summaries:
                print(f"   {summary}")
            print(f"🔍 Найдено операций: {len(summaries)}")
        return 0

    paths = split_targets(args.paths)
    if not paths:
        raise NoApiError("Укажите пути операций через запятую")

    selectors = [
        TargetSelector.for_path(path, method=args.method, only_definition=args.only_def)
        for path in paths
    ]
    print(f"⚙️ Генерация: {', '.join(str(s) for s in selectors)}")
    result = await generator.generate(selectors)
    _print_result(result)
    return 0 if result.ok else 1


async def _run_def(args) -> int:
    keys = split_targets(args.keys, leading_slash=False)
    if not keys:
        raise NoApiError("Укажите ключи схем через запятую")

    generator = NoApiGenerator(_load_config(args))
    if args.swag_url:
        await generator.refresh()

    print(f"⚙️ Генерация моделей: {', '.join(keys)}")
    result = await generator.generate([TargetSelector.for_definition(key) for key in keys])
    _print_result(result)
    return 0 if result.ok else 1


async def _run_update(args) -> int:
    generator = NoApiGenerator(_load_config(args))
    print(f"📥 Загрузка документа {generator.config.swag_url or ''}...")
    await generator.refresh()

    for warning in generator.loader.warnings:
        print(f"⚠️ {warning}")
    print(f"✅ Документ обновлен: {generator.config.doc_path}")
    return 0


def _run_init(args) -> int:
    swag_url = input("🔗 Введите адрес swagger-документа: ").strip()

    config_path = get_config_path()
    if os.path.exists(config_path) and not confirm_choice(
        f"Файл {config_path} уже существует. Перезаписать?"
    ):
        exit_with_error("Отменено")

    create_config_file(swag_url, config_path)
    print(f"💾 Создан конфиг {config_path}, его можно дополнить своими настройками")
    return 0


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-v", "--verbose", action="store_true", help="Подробный лог")

    source = argparse.ArgumentParser(add_help=False)
    source.add_argument("-u", "--swag-url", type=str, help="Адрес swagger-документа")
    source.add_argument("-c", "--cookie", type=str, help="Cookie для загрузки документа")

    parser = argparse.ArgumentParser(
        prog="noapi",
        description=(
            "Генерация python-функций запросов и pydantic-моделей из swagger-документа. "
            "Пример: noapi api users,orders -m get"
        ),
    )
    subparsers = parser.add_subparsers(dest="command")

    api_parser = subparsers.add_parser(
        "api", parents=[common, source], help="Сгенерировать функции запросов (по умолчанию)"
    )
    api_parser.add_argument("paths", nargs="?", help="Пути операций через запятую")
    api_parser.add_argument("-m", "--method", type=str, help="HTTP метод операции")
    api_parser.add_argument(
        "-d", "--only-def", action="store_true", help="Только модели, без функций"
    )
    api_parser.add_argument(
        "-l",
        "--list",
        nargs="?",
        const=True,
        default=None,
        metavar="KEYWORD",
        help="Показать операции, можно с фильтром",
    )

    def_parser = subparsers.add_parser(
        "def", parents=[common, source], help="Сгенерировать модели по ключам схем"
    )
    def_parser.add_argument("keys", help="Ключи схем через запятую")

    subparsers.add_parser("init", parents=[common], help="Создать noapi.toml")
    subparsers.add_parser(
        "update", parents=[common, source], help="Обновить локальную копию документа"
    )

    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    argv = list(sys.argv[1:] if argv is None else argv)
    # api - команда по умолчанию
    if not argv or (argv[0] not in COMMANDS and argv[0] not in ("-h", "--help")):
        argv.insert(0, "api")
    return build_parser().parse_args(argv)


def main(argv: Optional[List[str]] = None):
    """Точка входа noapi"""
    args = parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    started = time.perf_counter()
    print("🚀 noapi")

    try:
        if args.command == "init":
            code = _run_init(args)
        else:
            runner = {"api": _run_api, "def": _run_def, "update": _run_update}[args.command]
            code = asyncio.run(runner(args))
    except NoApiError as e:
        print(f"❌ Ошибка: {e}")
        print(f"⏱️ Время выполнения {_elapsed(started)}")
        sys.exit(1)

    print(f"⏱️ Время выполнения {_elapsed(started)}")
    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()
