"""Файловые примитивы: проверка существования, чтение, запись, дозапись"""

import asyncio
import os
import tempfile


def _ensure_parent(path: str) -> None:
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)


def _read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def _append_text(path: str, content: str) -> None:
    _ensure_parent(path)
    with open(path, "a", encoding="utf-8") as f:
        f.write(content)
        f.flush()
        os.fsync(f.fileno())


def _replace_text(path: str, content: str) -> None:
    """Атомарная перезапись через временный файл в той же директории"""
    _ensure_parent(path)
    fd, tmp_path = tempfile.mkstemp(
        dir=os.path.dirname(path) or ".", prefix=".noapi-", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


async def exists(path: str) -> bool:
    return await asyncio.to_thread(os.path.exists, path)


async def read_text(path: str) -> str:
    return await asyncio.to_thread(_read_text, path)


async def append_text(path: str, content: str) -> None:
    await asyncio.to_thread(_append_text, path, content)


async def replace_text(path: str, content: str) -> None:
    await asyncio.to_thread(_replace_text, path, content)
