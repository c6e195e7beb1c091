from typing import List, Optional, Union

from pydantic import BaseModel, field_validator

INDENT = "    "


class Variable(BaseModel):
    """Аннотация типа: значение (или список значений) с необязательной оберткой"""

    value: List[Union["Variable", str]] = []
    wrap_name: Optional[str] = None

    @field_validator("value", mode="before")
    def value_check(cls, value):
        if not isinstance(value, list):
            value = [value]
        return value

    def __str__(self):
        inner = ", ".join(str(v) for v in self.value)

        if self.wrap_name is None:
            return inner or "Any"

        return f"{self.wrap_name}[{inner}]" if inner else "Any"

    def __iter__(self):
        for item in self.value:
            if isinstance(item, Variable):
                yield from item
            else:
                yield item

    def optional(self) -> "Variable":
        if self.wrap_name == "Optional" or str(self) in ("Any", "None"):
            return self
        return Variable(value=self, wrap_name="Optional")


Variable.model_rebuild()


class Parameter(BaseModel):
    name: str
    var_type: Optional[Variable] = None
    default: Optional[str] = None

    def __str__(self):
        return (
            self.name
            + (f": {self.var_type}" if self.var_type else "")
            + (f" = {self.default}" if self.default is not None else "")
        )


class CodeBlock(BaseModel):
    code: str = "pass"

    def __str__(self):
        return self.code.replace("\t", INDENT)


def _indent(text: str, level: int = 1) -> str:
    prefix = INDENT * level
    return "\n".join(prefix + line if line else line for line in text.split("\n"))


def _docstring(lines: List[str]) -> str:
    if not lines:
        return ""
    if len(lines) == 1:
        return f'"""{lines[0]}"""'
    return '"""' + "\n".join(lines) + '\n"""'


class Function(BaseModel):
    name: str
    parameters: List[Parameter] = []
    response: str = "None"
    async_def: bool = False
    docstring: List[str] = []
    code: CodeBlock = CodeBlock()

    def __str__(self) -> str:
        # Параметры без значения по умолчанию должны идти первыми
        ordered = sorted(self.parameters, key=lambda p: p.default is not None)

        if len(ordered) > 1:
            signature = (
                "(\n" + "".join(f"{INDENT}{p},\n" for p in ordered) + f") -> {self.response}:"
            )
        else:
            signature = f"({', '.join(map(str, ordered))}) -> {self.response}:"

        body = "\n".join(filter(bool, [_docstring(self.docstring), str(self.code)]))

        return (
            f"{'async ' if self.async_def else ''}def {self.name}{signature}\n"
            + _indent(body)
        )


class Class(BaseModel):
    name: str
    inherits: List[str] = []
    docstring: List[str] = []
    parameters: List[Parameter] = []
    code_blocks: List[CodeBlock] = []

    def __str__(self) -> str:
        parts = []
        if self.docstring:
            parts.append(_docstring(self.docstring))
        if self.code_blocks:
            parts.append("\n".join(map(str, self.code_blocks)))
        if self.parameters:
            parts.append("\n".join(map(str, self.parameters)))

        return (
            f"class {self.name}"
            + (f"({', '.join(self.inherits)})" if self.inherits else "")
            + ":\n"
            + _indent("\n\n".join(parts) if parts else "pass")
        )


class CodeFile(BaseModel):
    imports: List[str] = []
    body: List[Union[Function, Class, CodeBlock]] = []

    def add_import(self, line: str) -> "CodeFile":
        if line not in self.imports:
            self.imports.append(line)
        return self

    def __str__(self):
        return (
            "\n\n\n".join(
                filter(
                    bool,
                    ["\n".join(self.imports), *[str(item) for item in self.body]],
                )
            )
            + "\n"
        )
