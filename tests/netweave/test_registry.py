from __future__ import annotations

import json

import pytest

from netweave.capabilities import JsonFileKeyValueStore
from netweave.classes import EdgeClass, NodeClass
from netweave.errors import UnknownModelError
from netweave.function_registry import functions
from netweave.registry import ModelRegistry


class TestModelRegistry:
    def test_create_model_selects_and_saves(self, registry, store):
        model = registry.create_model(name="First")
        assert model.model_id == "model1"
        assert registry.current_model is model
        assert model.registry is registry
        saved = json.loads(store.get_item(registry.settings.persistence.storage_key))
        assert list(saved) == ["model1"]
        assert saved["model1"]["name"] == "First"

    def test_model_ids_skip_taken_ones(self, registry):
        registry.create_model(model_id="model1")
        assert registry.create_model().model_id == "model2"

    def test_delete_model(self, registry):
        first = registry.create_model()
        second = registry.create_model()
        assert registry.current_model is second

        second.delete()
        assert second.deleted
        assert registry.current_model is None
        assert list(registry.models) == [first.model_id]

    def test_delete_missing_model(self, registry):
        with pytest.raises(UnknownModelError):
            registry.delete_model("nope")
        with pytest.raises(KeyError):
            registry.delete_model()

    def test_delete_all_models(self, registry, store):
        registry.create_model()
        registry.create_model()
        registry.delete_all_models()
        assert registry.models == {}
        assert registry.current_model is None
        assert json.loads(store.get_item(registry.settings.persistence.storage_key)) == {}

    def test_close_current_model(self, registry):
        registry.create_model()
        registry.close_current_model()
        assert registry.current_model is None

    def test_flushed_updates_are_persisted(self, registry, store):
        model = registry.create_model()
        model.add_static_table("numbers", [{"a": 1}])
        model.flush_updates()
        saved = json.loads(store.get_item(registry.settings.persistence.storage_key))
        assert saved[model.model_id]["tables"]["table1"]["data"] == [{"a": 1}]

    def test_updates_of_foreign_models_are_ignored(self, registry, store):
        other = ModelRegistry()
        foreign = other.create_model()
        registry.save()
        before = store.get_item(registry.settings.persistence.storage_key)
        foreign.annotate("k", "v")
        foreign.flush_updates()
        assert store.get_item(registry.settings.persistence.storage_key) == before


class TestPersistenceRoundTrip:
    @pytest.mark.asyncio
    async def test_models_survive_a_reload(self, registry, store):
        model = registry.create_model(name="People")
        people = model.add_static_table("people", [{"name": "alice", "team": "x"}]).interpret_as_nodes()
        teams = people.aggregate("team")
        model.flush_updates()

        reloaded = ModelRegistry(storage=store).models[model.model_id]
        assert reloaded.name == "People"
        assert isinstance(reloaded.classes[people.class_id], NodeClass)
        edge_class_id = reloaded.classes[teams.class_id].edge_class_ids[0]
        assert isinstance(reloaded.classes[edge_class_id], EdgeClass)
        assert reloaded.get_model_dump() == model.get_model_dump()

        items = [item async for item in reloaded.classes[teams.class_id].table.iterate()]
        assert [item.index for item in items] == ["x"]

    @pytest.mark.asyncio
    async def test_registered_functions_are_restored(self, registry, store):
        @functions.register("test_double_v")
        def double_v(item):
            return item.row["v"] * 2

        try:
            model = registry.create_model()
            table = model.add_static_table("numbers", [{"v": 2}]).table
            table.derive_attribute("double", double_v)
            table.derive_attribute("unregistered", lambda item: 0)
            model.flush_updates()

            reloaded = ModelRegistry(storage=store).models[model.model_id]
            reloaded_table = reloaded.tables[table.table_id]
            assert list(reloaded_table.derived_attribute_functions) == ["double"]
            item, = [item async for item in reloaded_table.iterate()]
            assert item.row["double"] == 4
        finally:
            functions.unregister("test_double_v")

    def test_json_file_store(self, tmp_path):
        store = JsonFileKeyValueStore(tmp_path / "models.json")
        registry = ModelRegistry(storage=store)
        registry.create_model(name="On disk")

        reloaded = ModelRegistry(storage=JsonFileKeyValueStore(tmp_path / "models.json"))
        assert [model.name for model in reloaded.models.values()] == ["On disk"]
