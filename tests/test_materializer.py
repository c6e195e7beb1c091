"""
Тесты записи юнитов и индекса реэкспорта
"""

import asyncio
import dataclasses
import os

import pytest

from noapi.config import ComputedHeader
from noapi.exceptions import WriteFailure
from noapi.internal.types.models import EmittedUnit, UnitKind
from noapi.internal.writer.index import ReExportIndex
from noapi.internal.writer.materializer import OutputMaterializer


def implementation(source, relative_path="user.py"):
    return EmittedUnit(kind=UnitKind.IMPLEMENTATION, source=source, relative_path=relative_path)


def definition(type_name="UserDTO", module="user_dto", source="class UserDTO: ...\n"):
    return EmittedUnit(
        kind=UnitKind.DEFINITION,
        source=source,
        relative_path=f"models/{module}.py",
        type_name=type_name,
    )


def read(path):
    with open(path, encoding="utf-8") as f:
        return f.read()


class TestImplementationUnits:
    """Тесты дозаписи функций"""

    @pytest.mark.asyncio
    async def test_header_on_new_file(self, effective_config):
        """Тест заголовка при создании файла"""
        unit = implementation("\n\ndef a(): ...\n")

        path = await OutputMaterializer().materialize(unit, effective_config)

        assert path == os.path.join(effective_config.api_base, "user.py")
        assert read(path) == "# header\n\n\ndef a(): ...\n"

    @pytest.mark.asyncio
    async def test_accumulation(self, effective_config):
        """Тест что функции копятся в порядке записи, заголовок один"""
        materializer = OutputMaterializer()

        await materializer.materialize(implementation("A\n"), effective_config)
        path = await materializer.materialize(implementation("B\n"), effective_config)

        assert read(path) == "# header\nA\nB\n"

    @pytest.mark.asyncio
    async def test_existing_file_no_header(self, effective_config):
        """Тест что в существующий файл заголовок не добавляется"""
        path = os.path.join(effective_config.api_base, "user.py")
        os.makedirs(effective_config.api_base)
        with open(path, "w", encoding="utf-8") as f:
            f.write("existing\n")

        await OutputMaterializer().materialize(implementation("A\n"), effective_config)

        assert read(path) == "existing\nA\n"

    @pytest.mark.asyncio
    async def test_without_header(self, effective_config):
        config = dataclasses.replace(effective_config, file_header=None)

        path = await OutputMaterializer().materialize(implementation("A\n"), config)

        assert read(path) == "A\n"

    @pytest.mark.asyncio
    async def test_computed_header_once(self, effective_config):
        """Тест что вычисляемый заголовок вызывается только для нового файла"""
        calls = []

        async def producer():
            calls.append(1)
            return "# computed\n"

        config = dataclasses.replace(effective_config, file_header=ComputedHeader(producer))
        materializer = OutputMaterializer()

        await materializer.materialize(implementation("A\n"), config)
        path = await materializer.materialize(implementation("B\n"), config)

        assert read(path) == "# computed\nA\nB\n"
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_concurrent_appends_keep_order(self, effective_config):
        """Тест что параллельные записи в один файл идут в порядке вызовов"""
        materializer = OutputMaterializer()
        units = [implementation(f"{i}\n") for i in range(10)]

        await asyncio.gather(*(materializer.materialize(u, effective_config) for u in units))

        content = read(os.path.join(effective_config.api_base, "user.py"))
        assert content == "# header\n" + "".join(f"{i}\n" for i in range(10))

    @pytest.mark.asyncio
    async def test_write_failure(self, effective_config):
        """Тест ошибки записи"""
        os.makedirs(os.path.join(effective_config.api_base, "user.py"))

        with pytest.raises(WriteFailure) as exc_info:
            await OutputMaterializer().materialize(implementation("A\n"), effective_config)

        assert exc_info.value.unit.relative_path == "user.py"

    @pytest.mark.asyncio
    async def test_header_producer_error(self, effective_config):
        """Тест что ошибка функции заголовка становится ошибкой записи"""

        def producer():
            raise RuntimeError("header failed")

        config = dataclasses.replace(effective_config, file_header=ComputedHeader(producer))

        with pytest.raises(WriteFailure) as exc_info:
            await OutputMaterializer().materialize(implementation("A\n"), config)

        assert "header failed" in exc_info.value.reason
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert not os.path.exists(os.path.join(effective_config.api_base, "user.py"))


class TestDefinitionUnits:
    """Тесты записи моделей"""

    @pytest.mark.asyncio
    async def test_idempotent(self, effective_config):
        """Тест что повторная запись не дублирует модель и запись индекса"""
        materializer = OutputMaterializer()
        unit = definition()

        await materializer.materialize(unit, effective_config)
        path = await materializer.materialize(unit, effective_config)

        assert path == os.path.join(effective_config.api_base, "models", "user_dto.py")
        assert read(path) == unit.source
        index = await ReExportIndex.load(os.path.dirname(path))
        assert list(index.entries.items()) == [("UserDTO", "user_dto")]
        assert read(index.path).count("from .user_dto import UserDTO") == 1

    @pytest.mark.asyncio
    async def test_overwrite(self, effective_config):
        """Тест перезаписи файла модели"""
        materializer = OutputMaterializer()

        await materializer.materialize(definition(source="old\n"), effective_config)
        path = await materializer.materialize(definition(source="new\n"), effective_config)

        assert read(path) == "new\n"

    @pytest.mark.asyncio
    async def test_index_order(self, effective_config):
        materializer = OutputMaterializer()

        await materializer.materialize(definition("UserDTO", "user_dto"), effective_config)
        await materializer.materialize(definition("UserRole", "user_role"), effective_config)

        index = await ReExportIndex.load(os.path.join(effective_config.api_base, "models"))
        assert list(index.entries) == ["UserDTO", "UserRole"]

    @pytest.mark.asyncio
    async def test_no_index(self, effective_config):
        """Тест отключенной регистрации в индексе"""
        config = dataclasses.replace(effective_config, export_from_index=False)

        path = await OutputMaterializer().materialize(definition(), config)

        assert not os.path.exists(os.path.join(os.path.dirname(path), "__init__.py"))

    @pytest.mark.asyncio
    async def test_def_base(self, effective_config, tmp_path):
        """Тест явной директории моделей"""
        config = dataclasses.replace(effective_config, def_base=str(tmp_path / "types"))

        path = await OutputMaterializer().materialize(definition(), config)

        assert path == str(tmp_path / "types" / "user_dto.py")
        assert os.path.exists(tmp_path / "types" / "__init__.py")

    @pytest.mark.asyncio
    async def test_no_header_for_definitions(self, effective_config):
        path = await OutputMaterializer().materialize(definition(), effective_config)

        assert not read(path).startswith("# header")


class TestReExportIndex:
    """Тесты формата индекса"""

    def test_register(self):
        index = ReExportIndex("/tmp/models")

        assert index.register("UserDTO", "user_dto") is True
        assert index.register("UserDTO", "user_dto") is False
        assert len(index) == 1
        assert "UserDTO" in index

    def test_repoint(self):
        """Тест перенаправления имени на другой модуль"""
        index = ReExportIndex("/tmp/models", {"A": "a", "B": "b"})

        assert index.register("A", "a_v2") is True
        assert list(index.entries.items()) == [("A", "a_v2"), ("B", "b")]

    def test_render_and_parse(self):
        index = ReExportIndex("/tmp/models", {"UserDTO": "user_dto", "PageUser": "page_user"})

        content = index.render()

        assert "from .user_dto import UserDTO\nfrom .page_user import PageUser\n" in content
        assert '__all__ = [\n    "UserDTO",\n    "PageUser",\n]\n' in content
        assert ReExportIndex.parse(content) == index.entries

    def test_parse_ignores_other_lines(self):
        content = "# comment\nimport os\nfrom .a import A\n\n__all__ = ['A']\n"

        assert list(ReExportIndex.parse(content).items()) == [("A", "a")]

    @pytest.mark.asyncio
    async def test_save_and_load(self, tmp_path):
        index = ReExportIndex(str(tmp_path / "models"), {"UserDTO": "user_dto"})

        await index.save()
        loaded = await ReExportIndex.load(str(tmp_path / "models"))

        assert loaded.entries == index.entries
        assert [p.name for p in (tmp_path / "models").iterdir()] == ["__init__.py"]

    @pytest.mark.asyncio
    async def test_load_missing(self, tmp_path):
        index = await ReExportIndex.load(str(tmp_path))

        assert len(index) == 0
