from __future__ import annotations

import json

from dataclasses import dataclass

import pytest

from netweave.capabilities import LocalFile, StdlibMimeLookup
from netweave.errors import FileTooLargeError, UnsupportedExtensionError


@dataclass
class FakeFile:
    name: str
    size: int
    type: str | None
    text: str = ""


class FakeReader:
    def __init__(self):
        self.encodings = []

    async def read_text(self, file_obj, encoding):
        self.encodings.append(encoding)
        return file_obj.text


class FakeRegistry:
    """Just the capabilities a model reads from its registry."""

    def __init__(self, settings):
        self.settings = settings
        self.file_reader = FakeReader()
        self.mime_lookup = StdlibMimeLookup()
        self.models = {}


@pytest.fixture
def fake_registry(model):
    from netweave.settings import get_settings
    registry = FakeRegistry(get_settings())
    model.registry = registry
    return registry


async def rows(class_obj):
    return [item.row async for item in class_obj.table.iterate()]


class TestStringIngestion:
    @pytest.mark.asyncio
    async def test_csv_records_expected_attributes(self, model):
        class_obj = model.add_string_as_static_table("people.csv", "name,team\nalice,x\nbob,y\n")
        assert class_obj.table.expected_attributes == ["name", "team"]
        assert class_obj.class_name == "people.csv"
        assert await rows(class_obj) == [{"name": "alice", "team": "x"}, {"name": "bob", "team": "y"}]

    @pytest.mark.asyncio
    async def test_tsv(self, model):
        class_obj = model.add_string_as_static_table("people.tsv", "name\tteam\nalice\tx\n")
        assert await rows(class_obj) == [{"name": "alice", "team": "x"}]

    @pytest.mark.asyncio
    async def test_json_object_becomes_dict_table(self, model):
        class_obj = model.add_string_as_static_table("lookup.json", json.dumps({"a": {"v": 1}, "b": {"v": 2}}))
        assert class_obj.table.type == "StaticDictTable"
        assert [item.index async for item in class_obj.table.iterate()] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_treejson_falls_back_to_the_suffix(self, model):
        tree = {"name": "root", "children": [{"name": "c1"}, {"name": "c2", "children": [{"name": "g"}]}]}
        class_obj = model.add_string_as_static_table("tree.treejson", json.dumps(tree))
        data = await rows(class_obj)
        assert [row["name"] for row in data] == ["root", "c1", "c2", "g"]
        assert data[3]["parent"] == "2"
        assert data[3]["depth"] == 2

    def test_explicit_extension_wins(self, model):
        class_obj = model.add_string_as_static_table("data.txt", "a\n1\n", extension="csv")
        assert class_obj.table.expected_attributes == ["a"]

    def test_unsupported_extension(self, model):
        with pytest.raises(UnsupportedExtensionError) as error:
            model.add_string_as_static_table("notes.unknownext", "hello")
        assert error.value.extension == "unknownext"
        assert model.tables == {}


class TestFileIngestion:
    @pytest.mark.asyncio
    async def test_reads_through_the_injected_reader(self, model, fake_registry):
        file_obj = FakeFile(name="people.csv", size=20, type="text/csv; charset=latin-1", text="name\nalice\n")
        class_obj = await model.add_file_as_static_table(file_obj)
        assert fake_registry.file_reader.encodings == ["latin-1"]
        assert await rows(class_obj) == [{"name": "alice"}]

    @pytest.mark.asyncio
    async def test_extension_override(self, model, fake_registry):
        file_obj = FakeFile(name="people", size=20, type=None, text="name\nalice\n")
        class_obj = await model.add_file_as_static_table(file_obj, encoding="ascii", extension_override="csv")
        assert fake_registry.file_reader.encodings == ["ascii"]
        assert class_obj.table.expected_attributes == ["name"]

    @pytest.mark.asyncio
    async def test_oversized_files_are_refused(self, model, fake_registry):
        too_big = fake_registry.settings.max_static_file_bytes
        file_obj = FakeFile(name="big.json", size=too_big, type="application/json", text="[]")
        with pytest.raises(FileTooLargeError):
            await model.add_file_as_static_table(file_obj)
        assert fake_registry.file_reader.encodings == []

        class_obj = await model.add_file_as_static_table(file_obj, skip_size_check=True)
        assert await class_obj.table.count_rows() == 0

    @pytest.mark.asyncio
    async def test_local_file(self, model, tmp_path):
        path = tmp_path / "teams.csv"
        path.write_text("code,name\nx,Xenon\n", encoding="utf-8")
        class_obj = await model.add_file_as_static_table(LocalFile(path))
        assert await rows(class_obj) == [{"code": "x", "name": "Xenon"}]
