import posixpath
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, field_validator, model_validator

HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")


class UnitKind(str, Enum):
    IMPLEMENTATION = "implementation"
    DEFINITION = "definition"


class TargetSelector(BaseModel):
    """Запрос на генерацию: путь (+метод) либо ключ схемы"""

    path: Optional[str] = None
    method: Optional[str] = None
    only_definition: bool = False
    definition_key: Optional[str] = None

    @field_validator("method", mode="before")
    def method_check(cls, value):
        if isinstance(value, str):
            value = value.strip().lower()
        return value or None

    @model_validator(mode="after")
    def target_check(self):
        if bool(self.path) == bool(self.definition_key):
            raise ValueError("Нужен либо path, либо definition_key")
        if self.definition_key and self.method:
            raise ValueError("method допустим только вместе с path")
        return self

    @classmethod
    def for_path(
        cls, path: str, method: str = None, only_definition: bool = False
    ) -> "TargetSelector":
        return cls(path=path, method=method, only_definition=only_definition)

    @classmethod
    def for_definition(cls, key: str) -> "TargetSelector":
        return cls(definition_key=key)

    @property
    def is_definition(self) -> bool:
        return self.definition_key is not None

    def __str__(self):
        if self.is_definition:
            return f"#{self.definition_key}"
        if self.method:
            return f"{self.method.upper()} {self.path}"
        return self.path


class EmittedUnit(BaseModel):
    """Один кусок сгенерированного кода и его назначение"""

    kind: UnitKind
    source: str
    relative_path: str
    type_name: Optional[str] = None

    @model_validator(mode="after")
    def type_name_check(self):
        if self.kind == UnitKind.DEFINITION and not self.type_name:
            raise ValueError("Для definition нужен type_name")
        return self

    @property
    def is_definition(self) -> bool:
        return self.kind == UnitKind.DEFINITION

    @property
    def file_dir(self) -> str:
        return posixpath.dirname(self.relative_path)

    @property
    def file_name(self) -> str:
        return posixpath.basename(self.relative_path)


class OperationSummary(BaseModel):
    path: str
    method: str
    summary: str = ""
    tags: List[str] = []
    operation_id: Optional[str] = None

    def __str__(self):
        tags = f" [{', '.join(self.tags)}]" if self.tags else ""
        return f"{self.method.upper():<7} {self.path}  {self.summary}{tags}"


@dataclass
class Operation:
    """Операция документа: путь + метод и её описание"""

    path: str
    method: str
    raw: Any
    path_item: Any = None

    @property
    def summary(self) -> str:
        return self.raw.get("summary") or ""

    @property
    def tags(self) -> List[str]:
        return list(self.raw.get("tags") or [])

    @property
    def operation_id(self) -> Optional[str]:
        return self.raw.get("operationId")

    def to_summary(self) -> OperationSummary:
        return OperationSummary(
            path=self.path,
            method=self.method,
            summary=self.summary,
            tags=self.tags,
            operation_id=self.operation_id,
        )


@dataclass
class GenerationResult:
    """Итог пакетной генерации: готовые юниты, ошибки и предупреждения"""

    completed_units: List[EmittedUnit] = field(default_factory=list)
    failures: List[Exception] = field(default_factory=list)
    warnings: List[Exception] = field(default_factory=list)
    written_files: Dict[str, int] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures
