from __future__ import annotations

import logging

from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Literal, Type

from pydantic import Field

from netweave.classes.generic_class import GenericClass
from netweave.errors import NetweaveError
from netweave.node_wrapper import NodeWrapper


if TYPE_CHECKING:
    from netweave.classes import AnyClass
    from netweave.classes.edge_class import EdgeClass
    from netweave.tables import Table
    from netweave.wrapped_item import WrappedItem


logger = logging.getLogger(__name__)


class NodeClass(GenericClass):
    type: Literal["NodeClass"] = "NodeClass"
    edge_class_ids: List[str] = Field(default_factory=list)

    @property
    def wrapper_class(self) -> Type[WrappedItem]:
        return NodeWrapper

    # ===================================================================
    # Edge bookkeeping
    # ===================================================================

    def add_edge_class_id(self, edge_class_id: str) -> None:
        if edge_class_id not in self.edge_class_ids:
            self.edge_class_ids.append(edge_class_id)

    def remove_edge_class_id(self, edge_class_id: str) -> None:
        if edge_class_id in self.edge_class_ids:
            self.edge_class_ids.remove(edge_class_id)

    def connected_classes(self) -> Iterator[EdgeClass]:
        classes = self.model.classes
        for edge_class_id in list(self.edge_class_ids):
            if (edge_class := classes.get(edge_class_id)) is not None:
                yield edge_class  # type: ignore[misc]

    def get_edge_role(self, edge_class: EdgeClass) -> str | None:
        """`source`, `target` or `both`; None when the edge class is not attached to this node class."""
        if edge_class.class_id not in self.edge_class_ids:
            return None
        is_source = edge_class.source_class_id == self.class_id
        is_target = edge_class.target_class_id == self.class_id
        if is_source and is_target:
            return "both"
        if is_source:
            return "source"
        if is_target:
            return "target"
        raise NetweaveError(f"Internal mismatch between node class {self.class_id} and edge class {edge_class.class_id}")

    # ===================================================================
    # Reinterpretation
    # ===================================================================

    def interpret_as_nodes(self) -> AnyClass:
        return self

    def _path_through(self, edge_class: EdgeClass) -> tuple[str | None, List[str]]:
        """The class at the far end of `edge_class` and the table path leading there from this node's table."""
        if edge_class.source_class_id == self.class_id:
            near, far, far_class_id = edge_class.source_table_ids, edge_class.target_table_ids, edge_class.target_class_id
        else:
            near, far, far_class_id = edge_class.target_table_ids, edge_class.source_table_ids, edge_class.source_class_id
        if far_class_id is None or far_class_id == self.class_id:
            return None, []
        return far_class_id, list(reversed(near)) + [edge_class.table_id] + list(far)

    def interpret_as_edges(self, autoconnect: bool = True) -> AnyClass:
        """Turn this node class into an edge class.

        With one attached edge class the result is a self loop on whatever sat at the far
        end; with two it is a binary edge between both far ends, directed only when both
        originals were directed and pass through this node in the same direction. Any
        other count (or `autoconnect=False`) leaves a floating edge.
        """
        edge_classes = list(self.connected_classes())
        options: Dict[str, Any] = self._base_options()

        if not autoconnect or len(edge_classes) not in (1, 2):
            self.disconnect_all_edges()
        elif len(edge_classes) == 1:
            edge_class = edge_classes[0]
            far_class_id, path = self._path_through(edge_class)
            options.update(
                source_class_id=far_class_id,
                target_class_id=far_class_id,
                source_table_ids=path,
                target_table_ids=list(path),
                directed=edge_class.directed,
            )
            edge_class.delete()
        else:
            source_edge, target_edge = edge_classes
            directed = False
            if source_edge.directed and target_edge.directed:
                if source_edge.target_class_id == self.class_id and target_edge.source_class_id == self.class_id:
                    directed = True
                elif source_edge.source_class_id == self.class_id and target_edge.target_class_id == self.class_id:
                    source_edge, target_edge = target_edge, source_edge
                    directed = True
            source_class_id, source_path = self._path_through(source_edge)
            target_class_id, target_path = self._path_through(target_edge)
            options.update(
                source_class_id=source_class_id,
                target_class_id=target_class_id,
                source_table_ids=source_path,
                target_table_ids=target_path,
                directed=directed,
            )
            source_edge.delete()
            target_edge.delete()

        new_edge_class = self.model.create_class("EdgeClass", overwrite=True, **options)
        for end_class_id in {options.get("source_class_id"), options.get("target_class_id")}:
            if end_class_id is not None:
                self.model.classes[end_class_id].add_edge_class_id(new_edge_class.class_id)  # type: ignore[union-attr]
        logger.debug("Interpreted %s as edges (%d prior edge classes)", self.class_id, len(edge_classes))
        return new_edge_class

    # ===================================================================
    # Connections
    # ===================================================================

    def connect_to_node_class(
        self,
        other_node_class: NodeClass,
        attribute: str | None = None,
        other_attribute: str | None = None,
        directed: bool = False,
    ) -> EdgeClass:
        """Create an edge class joining this node class to `other_node_class`.

        Without attributes the two tables are joined on their indexes; with an attribute
        that side is first aggregated on it.
        """
        this_hash: Table = self.table if attribute is None else self.table.aggregate(attribute)
        other_hash: Table = other_node_class.table if other_attribute is None else other_node_class.table.aggregate(other_attribute)
        source_table_ids = [] if attribute is None else [this_hash.table_id]
        target_table_ids = [] if other_attribute is None else [other_hash.table_id]

        connected_table = this_hash.connect([other_hash])
        new_edge_class = self.model.create_class(
            "EdgeClass",
            table_id=connected_table.table_id,
            source_class_id=self.class_id,
            source_table_ids=source_table_ids,
            target_class_id=other_node_class.class_id,
            target_table_ids=target_table_ids,
            directed=directed,
        )
        self.add_edge_class_id(new_edge_class.class_id)
        other_node_class.add_edge_class_id(new_edge_class.class_id)
        self.model.trigger_update()
        return new_edge_class  # type: ignore[return-value]

    def connect_to_edge_class(
        self,
        edge_class: EdgeClass,
        side: str,
        node_attribute: str | None = None,
        edge_attribute: str | None = None,
    ) -> None:
        edge_class.connect_to_node_class(self, side=side, node_attribute=node_attribute, edge_attribute=edge_attribute)

    def aggregate(self, attribute: str) -> AnyClass:
        """A node class for the distinct values of `attribute`, connected to this one."""
        new_node_class = self.model.create_class("NodeClass", table_id=self.table.aggregate(attribute).table_id)
        self.connect_to_node_class(new_node_class, attribute=attribute, other_attribute=None)  # type: ignore[arg-type]
        return new_node_class

    def disconnect_all_edges(self) -> None:
        for edge_class in list(self.connected_classes()):
            if edge_class.source_class_id == self.class_id:
                edge_class.disconnect_source()
            if edge_class.target_class_id == self.class_id:
                edge_class.disconnect_target()

    def delete(self) -> None:
        self.disconnect_all_edges()
        super().delete()
