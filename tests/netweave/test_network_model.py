from __future__ import annotations

import asyncio

import networkx as nx
import pytest

from netweave.errors import ConfigurationError
from netweave.network_model import NetworkModel
from netweave.signals import model_updated_signal


class TestCreation:
    def test_ids_are_sequential_and_unique(self, model):
        first = model.create_table("StaticTable", name="a")
        second = model.create_table("StaticTable", name="b")
        assert (first.table_id, second.table_id) == ("table1", "table2")

        taken = model.create_table("StaticTable", table_id="table3", name="c")
        assert model.create_table("StaticTable", name="d").table_id == "table4"
        assert taken.model is model

    def test_unknown_types_are_rejected(self, model):
        with pytest.raises(ConfigurationError):
            model.create_table("SpreadsheetTable")
        with pytest.raises(ConfigurationError):
            model.create_class("GenericClass", table_id="missing")

    def test_annotations_and_rename(self, model):
        model.annotate("author", "me")
        model.rename("Renamed")
        assert model.annotations == {"author": "me"}
        assert model.name == "Renamed"
        model.delete_annotation("author")
        assert model.annotations == {}

    def test_name_defaults_to_id(self):
        assert NetworkModel(model_id="abc").name == "abc"

    def test_delete_all_classes(self, people_model):
        model, *_ = people_model
        model.delete_all_classes()
        assert model.classes == {}


class TestUpdates:
    def test_updates_are_batched_until_flushed(self, model):
        received = []

        def on_update(sender):
            received.append(sender)

        model_updated_signal.connect(on_update)
        try:
            model.add_static_table("numbers", [{"a": 1}])
            model.annotate("k", "v")
            assert model.unsaved
            assert received == []
            model.flush_updates()
        finally:
            model_updated_signal.disconnect(on_update)
        assert received == [model]
        assert not model.unsaved

    @pytest.mark.asyncio
    async def test_updates_flush_on_the_event_loop(self, model):
        received = []

        def on_update(sender):
            received.append(sender)

        model_updated_signal.connect(on_update)
        try:
            model.annotate("a", 1)
            model.annotate("b", 2)
            await asyncio.sleep(0.01)
        finally:
            model_updated_signal.disconnect(on_update)
        assert received == [model]


class TestSampleGraph:
    @pytest.mark.asyncio
    async def test_full_sample(self, people_model):
        model, people, teams, membership = people_model
        graph = await model.get_sample_graph()
        assert len(graph.nodes) == 5
        assert len(graph.edges) == 2
        assert len(graph.links) == 3

        G = graph.to_networkx()
        assert isinstance(G, nx.MultiDiGraph)
        assert G.number_of_nodes() == 5
        assert G.number_of_edges() == 3

    @pytest.mark.asyncio
    async def test_limits_are_never_exceeded(self, people_model):
        model, *_ = people_model
        graph = await model.get_sample_graph(node_limit=2)
        assert len(graph.nodes) == 2
        assert len(graph.links) == 1

        graph = await model.get_sample_graph(triple_limit=1)
        assert len(graph.links) == 1

        graph = await model.get_sample_graph(edge_limit=1)
        assert len(graph.edges) == 1

    @pytest.mark.asyncio
    async def test_root_class(self, people_model):
        model, people, teams, membership = people_model
        graph = await membership.get_sample_graph()
        assert len(graph.edges) == 2
        assert len(graph.links) == 3
        assert {model.classes[node.class_obj.class_id].class_name for node in graph.nodes} == {"People", "Teams"}


class TestInstanceGraph:
    @pytest.mark.asyncio
    async def test_default_instances(self, people_model):
        model, *_ = people_model
        graph = await model.get_instance_graph()
        assert len(graph.nodes) == 5
        assert len(graph.edges) == 3
        assert not any(node.dummy for node in graph.nodes)

    @pytest.mark.asyncio
    async def test_hanging_edges_get_dummy_nodes(self, people_model):
        model, people, teams, membership = people_model
        edges = [item async for item in membership.table.iterate()]
        graph = await model.get_instance_graph(edges)
        assert len(graph.edges) == 2
        assert all(node.dummy for node in graph.nodes)
        assert graph.to_networkx().number_of_edges() == 2


class TestSchemaGraphs:
    def test_network_model_graph(self, people_model):
        model, people, teams, membership = people_model
        graph = model.get_network_model_graph()
        assert len(graph.classes) == 3
        assert [c.location for c in graph.class_connections] == ["source", "target"]
        assert graph.class_connections[0].source == graph.class_lookup[people.class_id]

        with_dummies = model.get_network_model_graph(include_dummies=True)
        assert len(with_dummies.classes) == 5
        assert sum(c.dummy for c in with_dummies.class_connections) == 2

    def test_table_dependency_graph(self, people_model):
        model, *_ = people_model
        graph = model.get_table_dependency_graph()
        assert len(graph.tables) == 3
        assert len(graph.table_links) == 2
        assert nx.is_directed_acyclic_graph(graph.to_networkx())

    def test_full_schema_graph(self, people_model):
        model, *_ = people_model
        graph = model.get_full_schema_graph()
        kinds = [link.kind for link in graph.links]
        assert kinds.count("core_table") == 3
        assert kinds.count("derived") == 2
        assert kinds.count("source") == 1 and kinds.count("target") == 1
        assert graph.to_networkx().number_of_nodes() == 6

    def test_model_dump_uses_positions(self, people_model):
        model, *_ = people_model
        dump = model.get_model_dump()
        assert [spec["table_id"] for spec in dump["tables"]] == [0, 1, 2]
        assert [spec["class_id"] for spec in dump["classes"]] == [0, 1, 2]
        assert all("data" not in spec for spec in dump["tables"])
        edge_spec, = [spec for spec in dump["classes"] if spec["type"] == "EdgeClass"]
        assert isinstance(edge_spec["source_class_id"], int)
        assert all(isinstance(table_id, int) for table_id in edge_spec["source_table_ids"])

    def test_model_dump_is_deterministic(self):
        def build(prefix: str) -> NetworkModel:
            model = NetworkModel(model_id=prefix)
            if prefix == "shifted":
                model.create_table("StaticTable", name="unused").delete()
            people = model.add_static_table("people", [{"team": "x"}]).interpret_as_nodes()
            people.aggregate("team")
            return model

        assert build("plain").get_model_dump() == build("shifted").get_model_dump()

    @pytest.mark.asyncio
    async def test_create_schema_model(self, model):
        source = model.add_static_table("numbers", [{"k": "a"}])
        source.table.aggregate("k")
        schema = model.create_schema_model()

        assert schema.name == "test_model_schema"
        for name in ("Classes", "Tables", "Source Class", "Target Class", "Is Parent Of", "Core Table"):
            assert schema.find_class(name) is not None, name
        assert await schema.find_class("Classes").table.count_rows() == 1
        assert await schema.find_class("Tables").table.count_rows() == 2

        links = schema.find_class("Is Parent Of")
        assert links.directed
        graph = await links.get_sample_graph()
        assert len(graph.links) == 1
        link = graph.links[0]
        assert graph.nodes[link.source].row["type"] == "StaticTable"
        assert graph.nodes[link.target].row["type"] == "AggregatedTable"

        core = schema.find_class("Core Table")
        core_graph = await core.get_sample_graph()
        assert [(core_graph.nodes[l.source].row["type"], core_graph.nodes[l.target].row["type"]) for l in core_graph.links] == [("GenericClass", "StaticTable")]
