import re
from typing import Dict, Iterable

from ..utils.naming import pascal_case, snake_case

SCHEMA_REF_PREFIXES = ("#/components/schemas/", "#/definitions/")


class SchemaNameResolver:
    """Резолвер имен схем: ключ документа -> имя класса и имя модуля"""

    def __init__(self, schema_keys: Iterable[str] = ()):
        self._schema_registry: Dict[str, str] = {}
        self._taken: Dict[str, str] = {}
        for key in schema_keys:
            self.register_schema(key)

    def register_schema(self, original_name: str) -> str:
        """Регистрация схемы, конфликтующие имена получают числовой суффикс"""
        if original_name in self._schema_registry:
            return self._schema_registry[original_name]

        clean_name = self._clean_schema_name(original_name)
        candidate = clean_name
        counter = 2
        while candidate.lower() in self._taken:
            candidate = f"{clean_name}{counter}"
            counter += 1

        self._taken[candidate.lower()] = original_name
        self._schema_registry[original_name] = candidate
        return candidate

    def resolve_schema_name(self, original_name: str) -> str:
        """Чистое имя класса для ключа схемы"""
        if original_name in self._schema_registry:
            return self._schema_registry[original_name]
        return self.register_schema(original_name)

    def module_name(self, original_name: str) -> str:
        """Имя python-модуля, в котором живет схема"""
        return snake_case(self.resolve_schema_name(original_name)) or "model"

    @staticmethod
    def key_from_ref(ref: str):
        """Ключ схемы из $ref или None, если ссылка не на схему"""
        for prefix in SCHEMA_REF_PREFIXES:
            if ref.startswith(prefix):
                return ref[len(prefix) :].replace("~1", "/").replace("~0", "~")
        return None

    @staticmethod
    def _clean_schema_name(name: str) -> str:
        """Универсальная очистка имени схемы в PascalCase"""
        # Generic-обертки swagger: Page«List«User»» -> PageListUser
        name = re.sub(r"[«»<>\[\]{}(),]", " ", name)

        # Простые имена типа UserDTO, LoginResponse оставляем как есть
        if re.fullmatch(r"[A-Z][A-Za-z0-9]*", name):
            return name

        words = [w for w in re.split(r"[\s_\-.]+", name) if w]
        clean = "".join(pascal_case(w) for w in words)
        clean = re.sub(r"[^A-Za-z0-9]", "", clean)

        if not clean:
            return "Model"
        if clean[0].isdigit():
            clean = f"Model{clean}"
        return clean
