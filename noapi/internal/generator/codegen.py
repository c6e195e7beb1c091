import builtins
import keyword
import re
from typing import Any, Dict, List, Optional, Protocol, Tuple, Union

from ..parser.openapi import ApiDocument, reference_of
from ..types.code import Class, CodeBlock, CodeFile, Function, Parameter, Variable
from ..types.models import EmittedUnit, Operation, UnitKind
from ..utils.naming import clean_enum_member, clean_identifier, snake_case
from .templates import templates

JSON_CONTENT_TYPES = ("application/json", "text/json", "application/*+json")
FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")

# Имена, которые нельзя занимать полями pydantic-моделей
BASEMODEL_RESERVED = {"json", "dict", "copy", "schema", "validate", "construct", "fields"}
# Имена из заголовка файла, которые нельзя перекрывать функциями
HEADER_NAMES = {"request", "NOTSET"}

PARAM_GROUPS = {
    "path": "path_params",
    "query": "params",
    "header": "headers",
    "cookie": "cookies",
}
REQUEST_ARGUMENTS = ("path_params", "params", "headers", "cookies", "json", "data", "files")


class CodegenBackend(Protocol):
    def emit(
        self,
        document: ApiDocument,
        target: Union[Operation, str],
        only_definition: bool = False,
    ) -> List[EmittedUnit]:
        ...


class _Dependencies:
    """Упорядоченное множество ключей схем"""

    def __init__(self):
        self.keys: List[str] = []

    def add(self, key: str):
        if key not in self.keys:
            self.keys.append(key)

    def __iter__(self):
        return iter(self.keys)


class _Signature:
    """Параметры функции запроса и их раскладка по аргументам request()"""

    def __init__(self):
        self.parameters: List[Parameter] = []
        self.docs: List[str] = []
        self._used = set()
        self._groups: Dict[str, List[Tuple[str, str]]] = {}
        self._payload: Optional[Tuple[str, str]] = None

    def add(
        self,
        original: str,
        suffix: str,
        var_type: Variable,
        required: bool,
        group: str,
        description=None,
    ) -> str:
        name = _dedupe(f"{clean_identifier(original)}_{suffix}", self._used)
        if not required:
            var_type = var_type.optional()
        self.parameters.append(
            Parameter(name=name, var_type=var_type, default=None if required else "NOTSET")
        )
        self._groups.setdefault(group, []).append((original, name))
        if description:
            self.docs.append(f"    {name}: {_single_line(description)}")
        return name

    def set_payload(self, var_type: Variable, required: bool, argument: str) -> str:
        """Тело передается одним параметром request_body"""
        name = _dedupe("request_body", self._used)
        if not required:
            var_type = var_type.optional()
        self.parameters.append(
            Parameter(name=name, var_type=var_type, default=None if required else "NOTSET")
        )
        self._payload = (argument, name)
        return name

    def arguments(self) -> List[str]:
        arguments = []
        for group in REQUEST_ARGUMENTS:
            if self._payload and self._payload[0] == group:
                arguments.append(f"{group}={self._payload[1]}")
            elif self._groups.get(group):
                arguments.append(f"{group}={_dict_literal(self._groups[group])}")
        return arguments


class PythonCodegenBackend:
    """
    Генератор python-кода для одной операции или одной схемы.

    Для операции отдает по одному definition-юниту на каждую схему, от которой
    она зависит (включая транзитивные), затем implementation-юнит с функцией
    запроса. Для ключа схемы отдает ровно один definition-юнит.
    """

    def __init__(self, models_module: str = ".models", models_dir: str = "models"):
        self.models_module = models_module.rstrip(".") or "."
        self.models_dir = models_dir

    def emit(
        self,
        document: ApiDocument,
        target: Union[Operation, str],
        only_definition: bool = False,
    ) -> List[EmittedUnit]:
        if isinstance(target, str):
            return [self.definition_unit(document, target)]

        deps = _Dependencies()
        function = self._build_function(document, target, deps)

        units = [
            self.definition_unit(document, key)
            for key in self._collect_definitions(document, list(deps))
        ]
        if not only_definition:
            units.append(self._implementation_unit(document, target, function, deps))
        return units

    # --- определения ---------------------------------------------------------

    def definition_unit(self, document: ApiDocument, key: str) -> EmittedUnit:
        schema = document.schema(key)
        if schema is None:
            raise KeyError(key)

        type_name = document.schema_resolver.resolve_schema_name(key)
        deps = _Dependencies()
        model_file = CodeFile(imports=list(templates.model_imports))
        model_file.body.append(self._build_model(document, key, type_name, schema, deps))

        dep_imports = [
            f"from .{document.schema_resolver.module_name(dep)} import "
            f"{document.schema_resolver.resolve_schema_name(dep)}"
            for dep in deps
            if dep != key
        ]
        if dep_imports:
            model_file.imports.append("")
            model_file.imports.extend(dep_imports)

        return EmittedUnit(
            kind=UnitKind.DEFINITION,
            source=str(model_file),
            relative_path=f"{self.models_dir}/{document.schema_resolver.module_name(key)}.py",
            type_name=type_name,
        )

    def _collect_definitions(self, document: ApiDocument, roots: List[str]) -> List[str]:
        """Транзитивное замыкание зависимостей в порядке обнаружения"""
        ordered = []
        queue = list(roots)
        while queue:
            key = queue.pop(0)
            if key in ordered or document.schema(key) is None:
                continue
            ordered.append(key)
            queue.extend(self._direct_refs(document, document.schema(key)))
        return ordered

    def _direct_refs(self, document: ApiDocument, node, in_properties=False) -> List[str]:
        refs = []
        if isinstance(node, dict):
            key = document.schema_key(node)
            if key is not None:
                return [key]
            for name, value in node.items():
                # В словаре properties ключи - имена полей, а не служебные слова
                if not in_properties and name in ("example", "examples", "default", "enum"):
                    continue
                refs.extend(
                    self._direct_refs(
                        document,
                        value,
                        in_properties=not in_properties and name == "properties",
                    )
                )
        elif isinstance(node, list):
            for item in node:
                refs.extend(self._direct_refs(document, item))
        return refs

    def _build_model(
        self, document: ApiDocument, key: str, type_name: str, schema, deps: _Dependencies
    ) -> Union[Class, CodeBlock]:
        docstring = _doc_lines(schema.get("description") or schema.get("title"))

        if schema.get("enum"):
            return self._build_enum(type_name, schema, docstring)

        inherits = []
        properties: Dict[str, Any] = {}
        required = set(schema.get("required") or [])
        allow_extra = schema.get("additionalProperties") is True

        for part in schema.get("allOf") or []:
            part_key = document.schema_key(part)
            if part_key is not None:
                deps.add(part_key)
                inherits.append(document.schema_resolver.resolve_schema_name(part_key))
            else:
                properties.update(part.get("properties") or {})
                required.update(part.get("required") or [])

        properties.update(schema.get("properties") or {})
        is_object = bool(properties or inherits) or (
            schema.get("type") == "object" and not schema.get("additionalProperties")
        )

        if not is_object:
            # Массивы, словари и примитивы становятся псевдонимами типов
            alias = self.type_of(document, schema, deps)
            return CodeBlock(code=f"{type_name} = {alias}")

        model_class = Class(
            name=type_name, inherits=inherits or ["BaseModel"], docstring=docstring
        )
        config = []
        used_names = set()

        for field_name, field_spec in properties.items():
            clean_name = clean_identifier(field_name)
            if clean_name in BASEMODEL_RESERVED or clean_name.startswith("model_"):
                clean_name = f"{clean_name}_field"
            clean_name = _dedupe(clean_name, used_names)

            field_type = self.type_of(document, field_spec, deps)
            is_required = field_name in required
            if not is_required:
                field_type = field_type.optional()

            if clean_name != field_name:
                default = "None, " if not is_required else ""
                model_class.parameters.append(
                    Parameter(
                        name=clean_name,
                        var_type=field_type,
                        default=f"Field({default}alias={field_name!r})",
                    )
                )
            else:
                model_class.parameters.append(
                    Parameter(
                        name=clean_name,
                        var_type=field_type,
                        default=None if is_required else "None",
                    )
                )

        if any(p.default and "alias=" in p.default for p in model_class.parameters):
            config.append("populate_by_name=True")
        if allow_extra:
            config.append("extra='allow'")
        if config:
            model_class.code_blocks.append(
                CodeBlock(code=f"model_config = ConfigDict({', '.join(config)})")
            )

        return model_class

    @staticmethod
    def _build_enum(type_name: str, schema, docstring: List[str]) -> Class:
        schema_type = schema.get("type")
        base = {"string": "str", "integer": "int"}.get(schema_type)
        enum_class = Class(
            name=type_name,
            inherits=[base, "Enum"] if base else ["Enum"],
            docstring=docstring,
        )
        used_names = set()
        for value in schema["enum"]:
            if value is None:
                continue
            member = _dedupe(clean_enum_member(value), used_names)
            enum_class.parameters.append(Parameter(name=member, default=repr(value)))
        return enum_class

    # --- типы ------------------------------------------------------------------

    def type_of(self, document: ApiDocument, schema, deps: _Dependencies) -> Variable:
        """Аннотация python для схемы; ссылки на схемы попадают в deps"""
        if schema is None:
            return Variable(value="Any")

        # Ссылку проверяем до любого обращения к прокси, чтобы не грузить внешние $ref
        if reference_of(schema) is not None:
            key = document.schema_key(schema)
            if key is None:
                return Variable(value="Any")
            deps.add(key)
            return Variable(value=document.schema_resolver.resolve_schema_name(key))

        if not hasattr(schema, "get") or not schema:
            return Variable(value="Any")

        nullable = bool(schema.get("nullable"))
        schema_type = schema.get("type")
        if isinstance(schema_type, list):
            nullable = nullable or "null" in schema_type
            non_null = [t for t in schema_type if t != "null"]
            schema_type = non_null[0] if len(non_null) == 1 else None

        result = self._plain_type(document, schema, schema_type, deps)
        return result.optional() if nullable else result

    def _plain_type(
        self, document: ApiDocument, schema, schema_type, deps: _Dependencies
    ) -> Variable:
        all_of = schema.get("allOf") or []
        if len(all_of) == 1:
            return self.type_of(document, all_of[0], deps)

        variants = list(schema.get("anyOf") or []) + list(schema.get("oneOf") or [])
        if variants:
            has_null = False
            types = []
            for variant in variants:
                if hasattr(variant, "get") and variant.get("type") == "null":
                    has_null = True
                    continue
                variant_type = str(self.type_of(document, variant, deps))
                if variant_type not in types:
                    types.append(variant_type)
            if not types:
                result = Variable(value="Any")
            elif len(types) == 1:
                result = Variable(value=types[0])
            else:
                result = Variable(value=types, wrap_name="Union")
            return result.optional() if has_null else result

        if schema.get("enum"):
            values = [repr(v) for v in schema["enum"] if v is not None]
            return Variable(value=values, wrap_name="Literal")

        format_type = schema.get("format")
        if schema_type == "string" or (schema_type is None and format_type):
            if format_type == "date-time":
                return Variable(value="datetime")
            if format_type == "date":
                return Variable(value="date")
            if format_type in ("binary", "byte"):
                return Variable(value="bytes")
            return Variable(value="str")

        if schema_type == "file":
            return Variable(value="bytes")

        if schema_type == "array" or "items" in schema:
            return Variable(
                value=self.type_of(document, schema.get("items"), deps), wrap_name="List"
            )

        simple = {"integer": "int", "number": "float", "boolean": "bool"}
        if schema_type in simple:
            return Variable(value=simple[schema_type])

        if schema_type == "object" or "properties" in schema or "additionalProperties" in schema:
            additional = schema.get("additionalProperties")
            if hasattr(additional, "get") and additional:
                value_type = self.type_of(document, additional, deps)
                return Variable(value=["str", value_type], wrap_name="Dict")
            return Variable(value="Dict[str, Any]")

        return Variable(value="Any")

    # --- функции запросов -------------------------------------------------------

    def function_name(self, document: ApiDocument, operation: Operation) -> str:
        """
        Имя функции, уникальное в пределах файла зоны.

        Операции зоны перебираются в порядке документа: при совпадении имени
        более поздняя получает имя из метода и пути, затем числовой суффикс.
        """
        zone = document.namespace(operation)
        used = set()
        for other in document.operations:
            if document.namespace(other) != zone:
                continue
            name = self._base_name(other)
            if name in used:
                name = self._path_name(other)
            unique, index = name, 2
            while unique in used:
                unique, index = f"{name}_{index}", index + 1
            if other.path == operation.path and other.method == operation.method:
                return unique
            used.add(unique)

        return self._base_name(operation)

    def _base_name(self, operation: Operation) -> str:
        """operationId, иначе метод + сегменты пути"""
        name = snake_case(operation.operation_id or "")
        # springfox добавляет к operationId суффикс вида UsingGET, а к дублям ещё _1, _2
        name = re.sub(
            r"_using_(?:get|put|post|delete|options|head|patch|trace)(_\d+)?$",
            lambda m: m.group(1) or "",
            name,
        )
        return self._safe_name(name or self._path_name(operation), operation)

    def _path_name(self, operation: Operation) -> str:
        parts = [operation.method]
        for segment in operation.path.strip("/").split("/"):
            if not segment:
                continue
            match = re.fullmatch(r"\{(.+)\}", segment)
            if match:
                parts.extend(["by", snake_case(match.group(1))])
            else:
                parts.append(snake_case(segment))
        return self._safe_name("_".join(p for p in parts if p), operation)

    @staticmethod
    def _safe_name(name: str, operation: Operation) -> str:
        if name[0].isdigit():
            name = f"{operation.method}_{name}"
        if keyword.iskeyword(name) or name in HEADER_NAMES or hasattr(builtins, name):
            name = f"{name}_api"
        return name

    def _build_function(
        self, document: ApiDocument, operation: Operation, deps: _Dependencies
    ) -> Function:
        signature = _Signature()

        form_params = []
        for param in document.parameters(operation):
            location = param.get("in")
            if location == "body":
                self._add_body(
                    document, signature, param.get("schema"), bool(param.get("required")), deps
                )
                continue
            if location == "formData":
                form_params.append(param)
                continue
            if location not in PARAM_GROUPS:
                continue

            schema = param.get("schema") if param.get("schema") is not None else param
            signature.add(
                param.get("name") or "param",
                location,
                self.type_of(document, schema, deps),
                required=location == "path" or bool(param.get("required")),
                group=PARAM_GROUPS[location],
                description=param.get("description"),
            )

        # Swagger 2: formData параметры
        for param in form_params:
            is_file = param.get("type") == "file"
            signature.add(
                param.get("name") or "field",
                "file" if is_file else "body",
                self.type_of(document, param, deps),
                required=bool(param.get("required")),
                group="files" if is_file else "data",
                description=param.get("description"),
            )

        # OpenAPI 3: requestBody
        request_body = operation.raw.get("requestBody")
        if request_body:
            media_type, media = _pick_media(request_body.get("content") or {})
            schema = media.get("schema") if media else None
            self._add_body(
                document,
                signature,
                schema,
                bool(request_body.get("required")),
                deps,
                media_type=media_type,
            )

        response_type, response_model = self._response_type(document, operation, deps)

        arguments = signature.arguments()
        if response_model:
            arguments.append(f"response_model={response_model}")

        code = templates.request_call.format(
            method=operation.method.upper(),
            path=operation.path,
            arguments="".join(f"    {argument},\n" for argument in arguments),
        )

        docstring = _doc_lines(operation.summary) or [operation.path]
        description = _doc_lines(operation.raw.get("description"))
        if description and description != docstring:
            docstring += [""] + description
        docstring += ["", f"{operation.method.upper()} {operation.path}"]
        if operation.raw.get("deprecated"):
            docstring.append("Deprecated.")
        if signature.docs:
            docstring += ["", "Args:"] + signature.docs

        return Function(
            name=self.function_name(document, operation),
            parameters=signature.parameters,
            response=response_type,
            async_def=True,
            docstring=docstring,
            code=CodeBlock(code=code),
        )

    def _add_body(
        self,
        document: ApiDocument,
        signature: "_Signature",
        schema,
        required: bool,
        deps: _Dependencies,
        media_type: str = None,
    ):
        """Тело запроса: модель целиком, поля inline-объекта или значение"""
        if schema is None:
            return

        is_form = media_type in FORM_CONTENT_TYPES
        if (
            reference_of(schema) is None
            and schema.get("properties")
            and not schema.get("additionalProperties")
        ):
            required_fields = set(schema.get("required") or [])
            for prop_name, prop_spec in schema["properties"].items():
                prop_type = self.type_of(document, prop_spec, deps)
                is_file = media_type == "multipart/form-data" and str(prop_type) in (
                    "bytes",
                    "List[bytes]",
                )
                signature.add(
                    prop_name,
                    "file" if is_file else "body",
                    prop_type,
                    required=required and prop_name in required_fields,
                    group="files" if is_file else ("data" if is_form else "json"),
                    description=(
                        prop_spec.get("description") if hasattr(prop_spec, "get") else None
                    ),
                )
            return

        signature.set_payload(
            self.type_of(document, schema, deps), required, "data" if is_form else "json"
        )

    def _response_type(
        self, document: ApiDocument, operation: Operation, deps: _Dependencies
    ) -> Tuple[str, Optional[str]]:
        """Тип возврата и response_model по первому успешному ответу со схемой"""
        responses = operation.raw.get("responses") or {}
        for status_code in sorted(str(code) for code in responses.keys()):
            if not status_code.startswith("2"):
                continue
            response = responses.get(status_code)
            if not response:
                continue
            if document.is_swagger2:
                schema = response.get("schema")
            else:
                _, media = _pick_media(response.get("content") or {})
                schema = media.get("schema") if media else None
            if schema is None:
                continue

            response_type = str(self.type_of(document, schema, deps))
            return response_type, (None if response_type == "Any" else response_type)

        return "Any", None

    def _implementation_unit(
        self, document: ApiDocument, operation: Operation, function: Function, deps: _Dependencies
    ) -> EmittedUnit:
        imports = [
            f"from {self._models_import(document.schema_resolver.module_name(key))} "
            f"import {document.schema_resolver.resolve_schema_name(key)}"
            for key in deps
        ]
        source = "\n\n" + ("\n".join(imports) + "\n\n\n" if imports else "") + str(function) + "\n"

        return EmittedUnit(
            kind=UnitKind.IMPLEMENTATION,
            source=source,
            relative_path=f"{document.namespace(operation)}.py",
        )

    def _models_import(self, module: str) -> str:
        if self.models_module == ".":
            return f".{module}"
        return f"{self.models_module}.{module}"


def _pick_media(content) -> Tuple[Optional[str], Any]:
    for media_type in JSON_CONTENT_TYPES + FORM_CONTENT_TYPES:
        if media_type in content:
            return media_type, content[media_type]
    for media_type in content.keys():
        if "json" in media_type:
            return media_type, content[media_type]
    for media_type in content.keys():
        return media_type, content[media_type]
    return None, None


def _dedupe(name: str, used: set) -> str:
    candidate = name
    counter = 1
    while candidate in used:
        candidate = f"{name}_{counter}"
        counter += 1
    used.add(candidate)
    return candidate


def _dict_literal(pairs: List[Tuple[str, str]]) -> str:
    return "{" + ", ".join(f"{original!r}: {name}" for original, name in pairs) + "}"


def _single_line(text: str) -> str:
    return " ".join(str(text).split()).replace("\\", "\\\\").replace('"""', "'''")


def _doc_lines(text) -> List[str]:
    if not text:
        return []
    text = str(text).replace("\\", "\\\\").replace('"""', "'''")
    return [line.rstrip() for line in text.strip().splitlines()]
