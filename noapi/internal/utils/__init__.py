"""Утилиты для генератора"""

from .naming import snake_case, pascal_case, clean_identifier, clean_enum_member

__all__ = [
    "snake_case",
    "pascal_case",
    "clean_identifier",
    "clean_enum_member",
]
