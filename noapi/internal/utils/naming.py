"""Утилиты для работы с именами"""

import keyword
import re


def snake_case(name: str) -> str:
    """
    Перевод имени в snake_case с учетом аббревиатур.

    Examples:
        >>> snake_case("HTTPValidationError")
        'http_validation_error'
        >>> snake_case("UserDTO")
        'user_dto'
        >>> snake_case("listUsers")
        'list_users'
    """
    name = re.sub(r"[^0-9a-zA-Z_]", "_", name)

    # HTTPError -> HTTP_Error, userName -> user_Name
    s1 = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", name)
    s2 = re.sub("([a-z0-9])([A-Z])", r"\1_\2", s1)
    s3 = re.sub("([A-Z]+)([A-Z][a-z])", r"\1_\2", s2)
    s4 = re.sub("_+", "_", s3)
    return s4.strip("_").lower()


def pascal_case(name: str) -> str:
    """PascalCase без спецсимволов, аббревиатуры сохраняются"""
    if not name:
        return ""

    clean = re.sub(r"[^a-zA-Z0-9]", "_", name)
    parts = []

    for part in clean.split("_"):
        if not part:
            continue

        if part.isupper() and len(part) <= 4:
            parts.append(part)
        elif part.lower() == "id":
            parts.append("ID")
        else:
            parts.append(part[0].upper() + part[1:])

    return "".join(parts)


def clean_identifier(name: str) -> str:
    """Очистка имени параметра/поля для использования в Python"""
    name = re.sub(r"[^0-9a-zA-Z_]", "_", name.strip())
    name = re.sub("_+", "_", name).strip("_") or "field"

    if name[0].isdigit():
        name = f"field_{name}"

    if keyword.iskeyword(name) or name in ("self", "print", "exec"):
        name = f"{name}_field"

    return name


def clean_enum_member(value) -> str:
    """Очистка значения enum для использования как имени атрибута"""
    value = str(value)
    if not value:
        return "EMPTY"

    if value.isspace():
        return "SPACE"

    name = "".join(c.upper() if c.isalnum() else "_" for c in value)
    name = re.sub("_+", "_", name).strip("_")

    if name and name[0].isdigit():
        name = f"VALUE_{name}"

    if not name or not name.isascii():
        return "VALUE"

    if len(name) > 50:
        name = name[:47] + "_LONG"

    return name
