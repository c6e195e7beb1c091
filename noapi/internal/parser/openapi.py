import json
from typing import Any, Dict, List, Optional, Union

import jsonref

from ..types.models import HTTP_METHODS, Operation
from ..types.schema_resolver import SchemaNameResolver
from ..utils.naming import snake_case


def reference_of(node) -> Optional[str]:
    """
    Исходный $ref узла.

    Работает и для "сырых" узлов ({"$ref": ...}), и для прокси jsonref,
    у которых оригинальная ссылка хранится в __reference__.
    """
    reference = getattr(node, "__reference__", None)
    if reference is None:
        reference = node
    if hasattr(reference, "get"):
        ref = reference.get("$ref")
        if isinstance(ref, str):
            return ref
    return None


class ApiDocument:
    """Разобранный Swagger 2 / OpenAPI 3 документ"""

    def __init__(self, openapi_dict: Dict[str, Any], source: str = None):
        if not isinstance(openapi_dict, dict) or not isinstance(
            openapi_dict.get("paths"), dict
        ):
            raise ValueError("Документ не похож на OpenAPI/Swagger: нет раздела paths")

        self.raw = openapi_dict
        self.source = source
        # Ленивые прокси: циклические ссылки разворачиваются только по обращению
        self.resolved = jsonref.replace_refs(openapi_dict, lazy_load=True)
        self.operations = self._collect_operations()
        self.schema_resolver = SchemaNameResolver(self.schemas.keys())

    @classmethod
    def from_json(cls, content: Union[str, bytes], source: str = None) -> "ApiDocument":
        return cls(json.loads(content), source=source)

    def to_json(self) -> str:
        return json.dumps(self.raw, indent=2, ensure_ascii=False)

    @property
    def is_swagger2(self) -> bool:
        return str(self.raw.get("swagger", "")).startswith("2")

    @property
    def schemas(self) -> Dict[str, Any]:
        if self.is_swagger2:
            return self.raw.get("definitions") or {}
        return (self.raw.get("components") or {}).get("schemas") or {}

    def schema(self, key: str) -> Optional[Dict[str, Any]]:
        return self.schemas.get(key)

    def schema_key(self, node) -> Optional[str]:
        """Ключ схемы, на которую ссылается узел, если он есть в документе"""
        ref = reference_of(node)
        if ref is None:
            return None
        key = SchemaNameResolver.key_from_ref(ref)
        return key if key in self.schemas else None

    def _collect_operations(self) -> List[Operation]:
        operations = []
        for path, path_item in self.resolved["paths"].items():
            for method in path_item.keys():
                if method.lower() not in HTTP_METHODS:
                    continue
                operations.append(
                    Operation(
                        path=path,
                        method=method.lower(),
                        raw=path_item[method],
                        path_item=path_item,
                    )
                )
        return operations

    def find_operations(self, path: str, method: str = None) -> List[Operation]:
        """Все операции по точному пути; без метода - все методы пути"""
        method = method.lower() if method else None
        return [
            operation
            for operation in self.operations
            if operation.path == path and (method is None or operation.method == method)
        ]

    def parameters(self, operation: Operation) -> List[Any]:
        """Параметры пути и операции; параметры операции перекрывают общие"""
        merged = {}
        for source in (operation.path_item, operation.raw):
            for param in (source or {}).get("parameters") or []:
                merged[(param.get("name"), param.get("in"))] = param
        return list(merged.values())

    def namespace(self, operation: Operation) -> str:
        """Зона операции: первый тег, иначе первый сегмент пути"""
        for tag in operation.tags:
            zone = snake_case(tag)
            if zone:
                return zone

        for segment in operation.path.strip("/").split("/"):
            if segment and "{" not in segment:
                zone = snake_case(segment)
                if zone:
                    return zone

        return "default"
