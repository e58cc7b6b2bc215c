from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterator, List, Literal, Type

from pydantic import BaseModel, Field, PrivateAttr

from netweave.classes.generic_class import GenericClass
from netweave.edge_wrapper import EdgeWrapper
from netweave.errors import ConfigurationError


if TYPE_CHECKING:
    from netweave.classes import AnyClass
    from netweave.classes.node_class import NodeClass
    from netweave.wrapped_item import WrappedItem


class TableIdSplit(BaseModel):
    """A path cut around a new edge table."""

    edge_table_id: str
    edge_table_ids: List[str] = Field(default_factory=list)
    node_table_ids: List[str] = Field(default_factory=list)


class EdgeClass(GenericClass):
    """Edge semantics for a table.

    `source_table_ids` / `target_table_ids` list the intermediate tables leading from this
    edge's table (excluded) to the source / target node table (excluded).
    """

    type: Literal["EdgeClass"] = "EdgeClass"
    source_class_id: str | None = None
    source_table_ids: List[str] = Field(default_factory=list)
    target_class_id: str | None = None
    target_table_ids: List[str] = Field(default_factory=list)
    directed: bool = False

    _swapped_direction: bool | None = PrivateAttr(default=None)

    @property
    def wrapper_class(self) -> Type[WrappedItem]:
        return EdgeWrapper

    @property
    def source_class(self) -> NodeClass | None:
        if self.source_class_id is None:
            return None
        return self.model.classes.get(self.source_class_id)  # type: ignore[return-value]

    @property
    def target_class(self) -> NodeClass | None:
        if self.target_class_id is None:
            return None
        return self.model.classes.get(self.target_class_id)  # type: ignore[return-value]

    @property
    def class_name(self) -> str:
        if self.custom_class_name:
            return self.custom_class_name
        source_name = self.source_class.class_name if self.source_class is not None else "?"
        target_name = self.target_class.class_name if self.target_class is not None else "?"
        return f"{source_name}-{target_name}"

    def connected_classes(self) -> Iterator[NodeClass]:
        for class_obj in (self.source_class, self.target_class):
            if class_obj is not None:
                yield class_obj

    # ===================================================================
    # Reinterpretation
    # ===================================================================

    def interpret_as_edges(self, autoconnect: bool = True) -> AnyClass:
        return self

    def _split_table_id_list(self, table_ids: List[str], other_class: GenericClass) -> TableIdSplit:
        if not table_ids:
            # adjacent (or identical) tables: join them directly
            return TableIdSplit(edge_table_id=self.table.connect([other_class.table]).table_id)

        tables = self.model.tables
        candidates = list(enumerate(table_ids))
        static = [(index, table_id) for index, table_id in candidates if tables[table_id].type.startswith("Static")]
        if static:
            candidates = static
        middle = len(table_ids) / 2
        index, table_id = min(candidates, key=lambda candidate: abs(middle - candidate[0]))
        return TableIdSplit(
            edge_table_id=table_id,
            edge_table_ids=list(reversed(table_ids[:index])),
            node_table_ids=list(table_ids[index + 1:]),
        )

    def interpret_as_nodes(self) -> AnyClass:
        """Turn this edge class into a node class with one fresh edge class per former connection."""
        source_class_id, source_table_ids = self.source_class_id, list(self.source_table_ids)
        target_class_id, target_table_ids = self.target_class_id, list(self.target_table_ids)
        directed = self.directed

        self.disconnect_source()
        self.disconnect_target()
        new_node_class: NodeClass = self.model.create_class("NodeClass", overwrite=True, **self._base_options())  # type: ignore[assignment]

        if source_class_id is not None:
            source_class: NodeClass = self.model.classes[source_class_id]  # type: ignore[assignment]
            split = self._split_table_id_list(source_table_ids, source_class)
            source_edge_class = self.model.create_class(
                "EdgeClass",
                table_id=split.edge_table_id,
                directed=directed,
                source_class_id=source_class_id,
                source_table_ids=split.node_table_ids,
                target_class_id=new_node_class.class_id,
                target_table_ids=split.edge_table_ids,
            )
            source_class.add_edge_class_id(source_edge_class.class_id)
            new_node_class.add_edge_class_id(source_edge_class.class_id)

        if target_class_id is not None and target_class_id != source_class_id:
            target_class: NodeClass = self.model.classes[target_class_id]  # type: ignore[assignment]
            split = self._split_table_id_list(target_table_ids, target_class)
            target_edge_class = self.model.create_class(
                "EdgeClass",
                table_id=split.edge_table_id,
                directed=directed,
                source_class_id=new_node_class.class_id,
                source_table_ids=split.edge_table_ids,
                target_class_id=target_class_id,
                target_table_ids=split.node_table_ids,
            )
            target_class.add_edge_class_id(target_edge_class.class_id)
            new_node_class.add_edge_class_id(target_edge_class.class_id)

        self.model.trigger_update()
        return new_node_class

    # ===================================================================
    # Connections
    # ===================================================================

    def connect_to_node_class(
        self,
        node_class: NodeClass,
        side: str,
        node_attribute: str | None = None,
        edge_attribute: str | None = None,
    ) -> None:
        if side == "source":
            self.connect_source(node_class, node_attribute=node_attribute, edge_attribute=edge_attribute)
        elif side == "target":
            self.connect_target(node_class, node_attribute=node_attribute, edge_attribute=edge_attribute)
        else:
            raise ConfigurationError(f'"{side}" is an invalid side')

    def _connect_path(self, node_class: NodeClass, node_attribute: str | None, edge_attribute: str | None) -> List[str]:
        edge_hash = self.table if edge_attribute is None else self.table.aggregate(edge_attribute)
        node_hash = node_class.table if node_attribute is None else node_class.table.aggregate(node_attribute)
        path = [edge_hash.connect([node_hash]).table_id]
        if edge_attribute is not None:
            path.insert(0, edge_hash.table_id)
        if node_attribute is not None:
            path.append(node_hash.table_id)
        return path

    def connect_source(self, node_class: NodeClass, node_attribute: str | None = None, edge_attribute: str | None = None) -> None:
        if self.source_class_id is not None:
            self.disconnect_source()
        self.source_class_id = node_class.class_id
        node_class.add_edge_class_id(self.class_id)
        self.source_table_ids = self._connect_path(node_class, node_attribute, edge_attribute)
        self.model.trigger_update()

    def connect_target(self, node_class: NodeClass, node_attribute: str | None = None, edge_attribute: str | None = None) -> None:
        if self.target_class_id is not None:
            self.disconnect_target()
        self.target_class_id = node_class.class_id
        node_class.add_edge_class_id(self.class_id)
        self.target_table_ids = self._connect_path(node_class, node_attribute, edge_attribute)
        self.model.trigger_update()

    def disconnect_source(self) -> None:
        source_class = self.source_class
        # a self loop stays registered on the node while the target end remains
        if source_class is not None and self.target_class_id != self.source_class_id:
            source_class.remove_edge_class_id(self.class_id)
        self.source_table_ids = []
        self.source_class_id = None
        self.model.trigger_update()

    def disconnect_target(self) -> None:
        target_class = self.target_class
        if target_class is not None and self.target_class_id != self.source_class_id:
            target_class.remove_edge_class_id(self.class_id)
        self.target_table_ids = []
        self.target_class_id = None
        self.model.trigger_update()

    def toggle_direction(self, directed: bool | None = None) -> None:
        """Cycle undirected, directed, then directed with source and target swapped.

        `directed=False` always makes the edge undirected.
        """
        if directed is False or self._swapped_direction is True:
            self.directed = False
            self._swapped_direction = None
        elif not self.directed:
            self.directed = True
            self._swapped_direction = False
        else:
            self.source_class_id, self.target_class_id = self.target_class_id, self.source_class_id
            self.source_table_ids, self.target_table_ids = self.target_table_ids, self.source_table_ids
            self._swapped_direction = True
        self.model.trigger_update()

    def aggregate(self, attribute: str) -> AnyClass:
        """Promote `attribute` to a node class attached to a free end (or a generic class when both ends are taken)."""
        if self.source_class_id is not None and self.target_class_id is not None:
            return super().aggregate(attribute)
        new_node_class: NodeClass = self.model.create_class("NodeClass", table_id=self.table.aggregate(attribute).table_id)  # type: ignore[assignment]
        side = "source" if self.source_class_id is None else "target"
        self.connect_to_node_class(new_node_class, side=side, node_attribute=None, edge_attribute=attribute)
        return new_node_class

    def delete(self) -> None:
        self.disconnect_source()
        self.disconnect_target()
        super().delete()
