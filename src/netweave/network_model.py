from __future__ import annotations

import copy
import logging

from pathlib import PurePath
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Self

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from netweave.capabilities import FileLike, FileReader, LocalFileReader, MimeLookup, StdlibMimeLookup
from netweave.classes import CLASS_TYPES, AnyClass, EdgeClass, GenericClass, NodeClass
from netweave.edge_wrapper import EdgeWrapper
from netweave.errors import ConfigurationError, FileTooLargeError, InUseError
from netweave.formats import parse_text
from netweave.graph_exports import (ClassConnection, FullSchemaGraph, InstanceEdge, InstanceGraph, InstanceNode,
                                    NetworkModelGraph, SampleGraph, SampleLink, SchemaLink, TableDependencyGraph,
                                    TableLink)
from netweave.node_wrapper import NodeWrapper
from netweave.settings import Settings, get_settings
from netweave.signals import model_updated_signal
from netweave.tables import TABLE_TYPES, AnyTable, Table
from netweave.update_batcher import UpdateBatcher
from netweave.wrapped_item import WrappedItem


if TYPE_CHECKING:
    from netweave.registry import ModelRegistry


logger = logging.getLogger(__name__)


class NetworkModel(BaseModel):
    """Owns the tables and classes of one network model.

    Every structural change calls `trigger_update()`; updates are batched and announced
    through the `model_updated` signal, which the owning registry uses to persist.
    """
    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        protected_namespaces=(),
    )

    model_id: str
    name: str | None = None
    annotations: Dict[str, Any] = Field(default_factory=dict)
    tables: Dict[str, AnyTable] = Field(default_factory=dict)
    classes: Dict[str, AnyClass] = Field(default_factory=dict)

    # ===================================================================
    # Private Attributes
    # ===================================================================

    _registry: ModelRegistry | None = PrivateAttr(default=None)
    _batcher: UpdateBatcher | None = PrivateAttr(default=None)
    _next_table_id: int = PrivateAttr(default=1)
    _next_class_id: int = PrivateAttr(default=1)

    def model_post_init(self, __context: Any) -> None:
        if self.name is None:
            self.name = self.model_id
        for table in self.tables.values():
            table.model = self
        for class_obj in self.classes.values():
            class_obj.model = self
        self._batcher = UpdateBatcher(
            on_flush=self._announce_update,
            delay_seconds=get_settings().persistence.update_debounce_seconds,
        )

    # ===================================================================
    # Properties
    # ===================================================================

    @property
    def registry(self) -> ModelRegistry:
        if self._registry is None:
            raise ValueError("Registry is not set for this model.")
        return self._registry

    @registry.setter
    def registry(self, value: ModelRegistry | None) -> None:
        self._registry = value
        if value is not None and self._batcher is not None:
            self._batcher.delay_seconds = value.settings.persistence.update_debounce_seconds

    @property
    def settings(self) -> Settings:
        return self._registry.settings if self._registry is not None else get_settings()

    @property
    def file_reader(self) -> FileReader:
        return self._registry.file_reader if self._registry is not None else LocalFileReader()

    @property
    def mime_lookup(self) -> MimeLookup:
        return self._registry.mime_lookup if self._registry is not None else StdlibMimeLookup()

    @property
    def unsaved(self) -> bool:
        return self._batcher is not None and self._batcher.pending

    @property
    def deleted(self) -> bool:
        if self._registry is None:
            return False
        return self._registry.models.get(self.model_id) is not self

    # ===================================================================
    # Updates
    # ===================================================================

    def trigger_update(self) -> None:
        if self._batcher is not None:
            self._batcher.notify()

    def flush_updates(self) -> None:
        if self._batcher is not None:
            self._batcher.flush()

    def _announce_update(self) -> None:
        model_updated_signal.send(self)

    # ===================================================================
    # Persistence
    # ===================================================================

    def to_raw_object(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_raw_object(cls, raw: Dict[str, Any], registry: ModelRegistry | None = None) -> Self:
        model = cls.model_validate(raw)
        model.registry = registry
        return model

    # ===================================================================
    # Creation / Lookup
    # ===================================================================

    def create_table(self, type: str, *, table_id: str | None = None, overwrite: bool = False, **options: Any) -> Table:
        if (table_cls := TABLE_TYPES.get(type)) is None:
            raise ConfigurationError(f"Unknown table type: {type}")
        while table_id is None or (not overwrite and table_id in self.tables):
            table_id = f"table{self._next_table_id}"
            self._next_table_id += 1
        if (existing := self.tables.get(table_id)) is not None:
            existing.reset()
        table = table_cls(table_id=table_id, **options)
        table.model = self
        self.tables[table_id] = table
        self.trigger_update()
        return table

    def create_class(self, type: str, *, class_id: str | None = None, overwrite: bool = False, **options: Any) -> AnyClass:
        if (class_cls := CLASS_TYPES.get(type)) is None:
            raise ConfigurationError(f"Unknown class type: {type}")
        if options.get("table_id") not in self.tables:
            raise ConfigurationError(f"A class needs an existing table (got {options.get('table_id')!r})")
        while class_id is None or (not overwrite and class_id in self.classes):
            class_id = f"class{self._next_class_id}"
            self._next_class_id += 1
        class_obj = class_cls(class_id=class_id, **options)
        class_obj.model = self
        self.classes[class_id] = class_obj  # type: ignore[assignment]
        # cached items were wrapped without (or with another) class
        self.tables[class_obj.table_id].reset()
        self.trigger_update()
        return class_obj  # type: ignore[return-value]

    def find_class(self, class_name: str) -> AnyClass | None:
        for class_obj in self.classes.values():
            if class_obj.class_name == class_name:
                return class_obj
        return None

    def rename(self, new_name: str) -> None:
        self.name = new_name
        self.trigger_update()

    def annotate(self, key: str, value: Any) -> None:
        self.annotations[key] = value
        self.trigger_update()

    def delete_annotation(self, key: str) -> None:
        self.annotations.pop(key, None)
        self.trigger_update()

    def delete(self) -> None:
        self.registry.delete_model(self.model_id)

    def delete_all_unused_tables(self) -> None:
        """Delete every table nothing depends on, repeating until no more can go."""
        deleted = True
        while deleted:
            deleted = False
            for table in list(self.tables.values()):
                if table.table_id not in self.tables:
                    continue
                try:
                    table.delete()
                except InUseError:
                    continue
                deleted = True
        self.trigger_update()

    def delete_all_classes(self) -> None:
        for class_obj in list(self.classes.values()):
            if not class_obj.deleted:
                class_obj.delete()
        self.trigger_update()

    # ===================================================================
    # Ingestion
    # ===================================================================

    def add_static_table(self, name: str, data: List[Any] | Dict[str, Any], attributes: Iterable[str] | None = None) -> AnyClass:
        """Wrap already-parsed data in a static table and give it a generic class."""
        table_type = "StaticTable" if isinstance(data, list) else "StaticDictTable"
        table = self.create_table(table_type, name=name, data=data, expected_attributes=list(attributes or []))
        logger.info("Added %s %s (%s)", table_type, table.table_id, name)
        return self.create_class("GenericClass", table_id=table.table_id)

    def add_string_as_static_table(self, name: str, text: str, extension: str | None = None) -> AnyClass:
        if not extension:
            mime_lookup = self.mime_lookup
            extension = mime_lookup.extension(mime_lookup.lookup(name)) or PurePath(name).suffix.lstrip(".") or None
        parsed = parse_text(text, extension)
        return self.add_static_table(name=name, data=parsed.data, attributes=parsed.attributes)

    async def add_file_as_static_table(
        self,
        file_obj: FileLike,
        encoding: str | None = None,
        extension_override: str | None = None,
        skip_size_check: bool = False,
    ) -> AnyClass:
        """Read `file_obj` through the file reader and ingest it as a static table."""
        settings = self.settings
        limit = settings.max_static_file_bytes
        if file_obj.size >= limit:
            if not skip_size_check:
                raise FileTooLargeError(file_obj.size, limit)
            logger.warning("Attempting to load %.1fMB file into memory", file_obj.size / 1048576)
        mime_lookup = self.mime_lookup
        encoding = encoding or mime_lookup.charset(file_obj.type) or settings.ingest.default_encoding
        text = await self.file_reader.read_text(file_obj, encoding)
        extension = extension_override or mime_lookup.extension(file_obj.type)
        return self.add_string_as_static_table(name=file_obj.name, text=text, extension=extension)

    # ===================================================================
    # Instance graphs
    # ===================================================================

    async def get_sample_graph(
        self,
        root_class: AnyClass | None = None,
        branch_limit: int | None = None,
        node_limit: int | None = None,
        edge_limit: int | None = None,
        triple_limit: int | None = None,
    ) -> SampleGraph:
        """Walk node and edge classes collecting items until any limit would be exceeded."""
        graph = SampleGraph()
        seen_links: set[tuple[int, int, int]] = set()

        def add_node(node: WrappedItem) -> bool:
            if node.instance_id in graph.node_lookup:
                return True
            if node_limit is not None and len(graph.nodes) >= node_limit:
                return False
            graph.node_lookup[node.instance_id] = len(graph.nodes)
            graph.nodes.append(node)
            return True

        def add_edge(edge: WrappedItem) -> bool:
            if edge.instance_id in graph.edge_lookup:
                return True
            if edge_limit is not None and len(graph.edges) >= edge_limit:
                return False
            graph.edge_lookup[edge.instance_id] = len(graph.edges)
            graph.edges.append(edge)
            return True

        def add_triple(source: WrappedItem, edge: WrappedItem, target: WrappedItem) -> bool:
            if not (add_node(source) and add_node(target) and add_edge(edge)):
                return False
            key = (graph.node_lookup[source.instance_id], graph.edge_lookup[edge.instance_id], graph.node_lookup[target.instance_id])
            if key in seen_links:
                return True
            if triple_limit is not None and len(graph.links) >= triple_limit:
                return False
            seen_links.add(key)
            graph.links.append(SampleLink(source=key[0], edge=key[1], target=key[2]))
            return True

        class_list = [root_class] if root_class is not None else list(self.classes.values())
        for class_obj in class_list:
            if isinstance(class_obj, NodeClass):
                async for node in class_obj.table.iterate():
                    if not add_node(node):
                        return graph
                    async for triple in node.pairwise_neighborhood(limit=branch_limit):  # type: ignore[attr-defined]
                        if not add_triple(triple.source, triple.edge, triple.target):
                            return graph
            elif isinstance(class_obj, EdgeClass):
                async for edge in class_obj.table.iterate():
                    if not add_edge(edge):
                        return graph
                    async for triple in edge.pairwise_edges(limit=branch_limit):  # type: ignore[attr-defined]
                        if not add_triple(triple.source, edge, triple.target):
                            return graph
        return graph

    async def get_instance_graph(self, instances: Iterable[WrappedItem] | None = None) -> InstanceGraph:
        """Render specific instances (default: the first five of every node and edge class)."""
        if instances is None:
            chosen: List[WrappedItem] = []
            for class_obj in list(self.classes.values()):
                if isinstance(class_obj, (NodeClass, EdgeClass)):
                    async for item in class_obj.table.iterate(limit=5):
                        chosen.append(item)
            instances = chosen

        graph = InstanceGraph()
        edge_instances: List[EdgeWrapper] = []
        for instance in instances:
            if isinstance(instance, NodeWrapper):
                graph.node_lookup[instance.instance_id] = len(graph.nodes)
                graph.nodes.append(InstanceNode(node_instance=instance))
            elif isinstance(instance, EdgeWrapper):
                edge_instances.append(instance)

        def dummy() -> int:
            graph.nodes.append(InstanceNode(dummy=True))
            return len(graph.nodes) - 1

        for edge_instance in edge_instances:
            sources = [graph.node_lookup[node.instance_id] async for node in edge_instance.source_nodes() if node.instance_id in graph.node_lookup]
            targets = [graph.node_lookup[node.instance_id] async for node in edge_instance.target_nodes() if node.instance_id in graph.node_lookup]
            if not sources and not targets:
                source = dummy()
                graph.edges.append(InstanceEdge(edge_instance=edge_instance, source=source, target=dummy()))
            elif not sources:
                for target in targets:
                    graph.edges.append(InstanceEdge(edge_instance=edge_instance, source=dummy(), target=target))
            elif not targets:
                for source in sources:
                    graph.edges.append(InstanceEdge(edge_instance=edge_instance, source=source, target=dummy()))
            else:
                for source in sources:
                    for target in targets:
                        graph.edges.append(InstanceEdge(edge_instance=edge_instance, source=source, target=target))
        return graph

    # ===================================================================
    # Schema graphs
    # ===================================================================

    def get_network_model_graph(self, raw: bool = True, include_dummies: bool = False, class_list: Iterable[AnyClass] | None = None) -> NetworkModelGraph:
        graph = NetworkModelGraph()
        edge_classes: List[EdgeClass] = []

        for class_obj in (list(class_list) if class_list is not None else list(self.classes.values())):
            spec: Dict[str, Any] = class_obj.to_raw_object() if raw else {"class_obj": class_obj, "type": class_obj.type}
            graph.class_lookup[class_obj.class_id] = len(graph.classes)
            graph.classes.append(spec)
            if isinstance(class_obj, EdgeClass):
                edge_classes.append(class_obj)
            elif isinstance(class_obj, NodeClass) and include_dummies:
                # a potential connection to a dummy class
                graph.class_connections.append(ClassConnection(
                    id=f"{class_obj.class_id}>dummy",
                    source=len(graph.classes) - 1,
                    target=len(graph.classes),
                    directed=False,
                    location="node",
                    dummy=True,
                ))
                graph.classes.append({"dummy": True})

        for edge_class in edge_classes:
            edge_position = graph.class_lookup[edge_class.class_id]
            if edge_class.source_class_id is not None and edge_class.source_class_id in graph.class_lookup:
                graph.class_connections.append(ClassConnection(
                    id=f"{edge_class.source_class_id}>{edge_class.class_id}",
                    source=graph.class_lookup[edge_class.source_class_id],
                    target=edge_position,
                    directed=edge_class.directed,
                    location="source",
                ))
            elif include_dummies:
                graph.class_connections.append(ClassConnection(
                    id=f"dummy>{edge_class.class_id}",
                    source=len(graph.classes),
                    target=edge_position,
                    directed=edge_class.directed,
                    location="source",
                    dummy=True,
                ))
                graph.classes.append({"dummy": True})

            if edge_class.target_class_id is not None and edge_class.target_class_id in graph.class_lookup:
                graph.class_connections.append(ClassConnection(
                    id=f"{edge_class.class_id}>{edge_class.target_class_id}",
                    source=edge_position,
                    target=graph.class_lookup[edge_class.target_class_id],
                    directed=edge_class.directed,
                    location="target",
                ))
            elif include_dummies:
                graph.class_connections.append(ClassConnection(
                    id=f"{edge_class.class_id}>dummy",
                    source=edge_position,
                    target=len(graph.classes),
                    directed=edge_class.directed,
                    location="target",
                    dummy=True,
                ))
                graph.classes.append({"dummy": True})
        return graph

    def get_table_dependency_graph(self) -> TableDependencyGraph:
        graph = TableDependencyGraph()
        tables = list(self.tables.values())
        for table in tables:
            graph.table_lookup[table.table_id] = len(graph.tables)
            graph.tables.append(table.to_raw_object())
        for table in tables:
            for parent_id in dict.fromkeys(parent.table_id for parent in table.parent_tables):
                graph.table_links.append(TableLink(source=graph.table_lookup[parent_id], target=graph.table_lookup[table.table_id]))
        return graph

    def get_full_schema_graph(self) -> FullSchemaGraph:
        """Classes and tables together, linked by class connections, derivations and core tables."""
        graph = FullSchemaGraph()
        for class_obj in self.classes.values():
            graph.class_lookup[class_obj.class_id] = len(graph.nodes)
            graph.nodes.append({"kind": "class", "name": class_obj.class_name, **class_obj.to_raw_object()})
        for table in self.tables.values():
            graph.table_lookup[table.table_id] = len(graph.nodes)
            graph.nodes.append({"kind": "table", **table.to_raw_object(), "name": table.name})

        for class_obj in self.classes.values():
            position = graph.class_lookup[class_obj.class_id]
            if isinstance(class_obj, EdgeClass):
                if class_obj.source_class_id in graph.class_lookup:
                    graph.links.append(SchemaLink(source=graph.class_lookup[class_obj.source_class_id], target=position, kind="source", directed=class_obj.directed))
                if class_obj.target_class_id in graph.class_lookup:
                    graph.links.append(SchemaLink(source=position, target=graph.class_lookup[class_obj.target_class_id], kind="target", directed=class_obj.directed))
            graph.links.append(SchemaLink(source=position, target=graph.table_lookup[class_obj.table_id], kind="core_table"))

        for table in self.tables.values():
            for parent_id in dict.fromkeys(parent.table_id for parent in table.parent_tables):
                graph.links.append(SchemaLink(source=graph.table_lookup[parent_id], target=graph.table_lookup[table.table_id], kind="derived"))
        return graph

    def get_model_dump(self) -> Dict[str, List[Dict[str, Any]]]:
        """The model structure with ids replaced by positions in a deterministic order; table data is omitted."""
        raw = copy.deepcopy(self.to_raw_object())
        classes = sorted(raw["classes"].values(), key=lambda spec: (self.classes[spec["class_id"]].get_sort_hash(), spec["class_id"]))
        tables = sorted(raw["tables"].values(), key=lambda spec: (self.tables[spec["table_id"]].get_sort_hash(), spec["table_id"]))
        class_lookup = {spec["class_id"]: position for position, spec in enumerate(classes)}
        table_lookup = {spec["table_id"]: position for position, spec in enumerate(tables)}

        for spec in tables:
            spec["table_id"] = table_lookup[spec["table_id"]]
            spec["derived_table_ids"] = [table_lookup[table_id] for table_id in spec["derived_table_ids"] if table_id in table_lookup]
            if "parent_table_ids" in spec:
                spec["parent_table_ids"] = [table_lookup[table_id] for table_id in spec["parent_table_ids"] if table_id in table_lookup]
            spec.pop("data", None)

        for spec in classes:
            spec["class_id"] = class_lookup[spec["class_id"]]
            spec["table_id"] = table_lookup.get(spec["table_id"])
            for key in ("source_class_id", "target_class_id"):
                if spec.get(key) is not None:
                    spec[key] = class_lookup.get(spec[key])
            for key in ("source_table_ids", "target_table_ids"):
                if key in spec:
                    spec[key] = [table_lookup.get(table_id) for table_id in spec[key]]
            if "edge_class_ids" in spec:
                spec["edge_class_ids"] = [class_lookup[class_id] for class_id in spec["edge_class_ids"] if class_id in class_lookup]
        return {"classes": classes, "tables": tables}

    def create_schema_model(self) -> NetworkModel:
        """A new model whose data is this model's own structure, with classes and tables as nodes."""
        dump = self.get_model_dump()
        table_links = [
            {"source": spec["table_id"], "target": derived_id}
            for spec in dump["tables"]
            for derived_id in spec["derived_table_ids"]
        ]
        schema_name = f"{self.name}_schema"
        if self._registry is not None:
            new_model = self._registry.create_model(name=schema_name)
        else:
            new_model = NetworkModel(model_id=schema_name, name=schema_name)

        raw = new_model.add_static_table(name="Raw Dump", data={**dump, "table_links": table_links})
        classes, tables, links = raw.closed_transpose(["classes", "tables", "table_links"])
        raw.delete()

        classes = classes.interpret_as_nodes()
        classes.set_class_name("Classes")
        source_classes = classes.connect_to_node_class(classes, attribute="source_class_id", other_attribute=None)
        source_classes.set_class_name("Source Class")
        source_classes.toggle_direction()
        target_classes = classes.connect_to_node_class(classes, attribute="target_class_id", other_attribute=None)
        target_classes.set_class_name("Target Class")
        target_classes.toggle_direction()

        tables = tables.interpret_as_nodes()
        tables.set_class_name("Tables")
        links = links.interpret_as_edges()
        links.set_class_name("Is Parent Of")
        links.connect_source(tables, edge_attribute="source")
        links.connect_target(tables, edge_attribute="target")
        links.toggle_direction()

        core_tables = classes.connect_to_node_class(tables, attribute="table_id", other_attribute=None)
        core_tables.set_class_name("Core Table")
        return new_model
