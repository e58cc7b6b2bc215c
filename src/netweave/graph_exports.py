"""Plain-data views of a network model: instance samples and schema graphs."""
from __future__ import annotations

from typing import Any, Dict, List

import networkx as nx

from pydantic import BaseModel, ConfigDict, Field

from netweave.wrapped_item import WrappedItem


def _item_attributes(item: WrappedItem) -> Dict[str, Any]:
    return {
        "index": item.index,
        "table_id": item.table.table_id,
        "class_id": item.class_obj.class_id if item.class_obj is not None else None,
        "row": dict(item.row),
    }


# ===================================================================
# Sample graph
# ===================================================================

class SampleLink(BaseModel):
    source: int
    target: int
    edge: int


class SampleGraph(BaseModel):
    """A bounded set of node/edge items and the (source, edge, target) links between them."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    nodes: List[WrappedItem] = Field(default_factory=list)
    node_lookup: Dict[str, int] = Field(default_factory=dict)
    edges: List[WrappedItem] = Field(default_factory=list)
    edge_lookup: Dict[str, int] = Field(default_factory=dict)
    links: List[SampleLink] = Field(default_factory=list)

    def to_networkx(self) -> nx.MultiDiGraph:
        G = nx.MultiDiGraph()
        for node in self.nodes:
            G.add_node(node.instance_id, **_item_attributes(node))
        for link in self.links:
            edge = self.edges[link.edge]
            G.add_edge(
                self.nodes[link.source].instance_id,
                self.nodes[link.target].instance_id,
                key=edge.instance_id,
                **_item_attributes(edge),
            )
        return G


# ===================================================================
# Instance graph
# ===================================================================

class InstanceNode(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    node_instance: WrappedItem | None = None
    dummy: bool = False


class InstanceEdge(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    edge_instance: WrappedItem
    source: int
    target: int


class InstanceGraph(BaseModel):
    """Chosen instances, with dummy nodes standing in for edge ends outside the selection."""

    nodes: List[InstanceNode] = Field(default_factory=list)
    node_lookup: Dict[str, int] = Field(default_factory=dict)
    edges: List[InstanceEdge] = Field(default_factory=list)

    def to_networkx(self) -> nx.MultiDiGraph:
        G = nx.MultiDiGraph()
        for position, node in enumerate(self.nodes):
            attributes = _item_attributes(node.node_instance) if node.node_instance is not None else {}
            G.add_node(position, dummy=node.dummy, **attributes)
        for edge in self.edges:
            G.add_edge(edge.source, edge.target, key=edge.edge_instance.instance_id, **_item_attributes(edge.edge_instance))
        return G


# ===================================================================
# Schema graphs
# ===================================================================

class ClassConnection(BaseModel):
    id: str
    source: int
    target: int
    directed: bool
    location: str
    dummy: bool = False


class NetworkModelGraph(BaseModel):
    """Classes as nodes; each edge class linked to its source and target node classes."""

    classes: List[Dict[str, Any]] = Field(default_factory=list)
    class_lookup: Dict[str, int] = Field(default_factory=dict)
    class_connections: List[ClassConnection] = Field(default_factory=list)

    def to_networkx(self) -> nx.MultiDiGraph:
        G = nx.MultiDiGraph()
        for position, spec in enumerate(self.classes):
            G.add_node(position, **{key: value for key, value in spec.items() if key != "class_obj"})
        for connection in self.class_connections:
            G.add_edge(connection.source, connection.target, key=connection.id, **connection.model_dump())
        return G


class TableLink(BaseModel):
    source: int
    target: int


class TableDependencyGraph(BaseModel):
    """Tables as nodes; a link from every parent table to each table derived from it."""

    tables: List[Dict[str, Any]] = Field(default_factory=list)
    table_lookup: Dict[str, int] = Field(default_factory=dict)
    table_links: List[TableLink] = Field(default_factory=list)

    def to_networkx(self) -> nx.DiGraph:
        G = nx.DiGraph()
        for position, spec in enumerate(self.tables):
            G.add_node(position, **spec)
        for link in self.table_links:
            G.add_edge(link.source, link.target)
        return G


class SchemaLink(BaseModel):
    source: int
    target: int
    kind: str  # "source", "target", "derived" or "core_table"
    directed: bool = True


class FullSchemaGraph(BaseModel):
    """Classes and tables in one graph: class connections, table derivations and each class's core table."""

    nodes: List[Dict[str, Any]] = Field(default_factory=list)
    class_lookup: Dict[str, int] = Field(default_factory=dict)
    table_lookup: Dict[str, int] = Field(default_factory=dict)
    links: List[SchemaLink] = Field(default_factory=list)

    def to_networkx(self) -> nx.MultiDiGraph:
        G = nx.MultiDiGraph()
        for position, spec in enumerate(self.nodes):
            G.add_node(position, **spec)
        for link in self.links:
            G.add_edge(link.source, link.target, **link.model_dump())
        return G
