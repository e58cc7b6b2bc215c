from __future__ import annotations

from typing import TYPE_CHECKING, AsyncIterator, Iterable, List, NamedTuple

from pydantic import BaseModel, ConfigDict, Field

from netweave.wrapped_item import WrappedItem, handle_limit


if TYPE_CHECKING:
    from netweave.classes import EdgeClass


class Triple(NamedTuple):
    source: WrappedItem
    edge: EdgeWrapper
    target: WrappedItem


class Hyperedge(BaseModel):
    """All endpoints of one edge item; `undirected` is used when the edge class is undirected."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    edge: WrappedItem
    sources: List[WrappedItem] = Field(default_factory=list)
    targets: List[WrappedItem] = Field(default_factory=list)
    undirected: List[WrappedItem] = Field(default_factory=list)


class EdgeWrapper(WrappedItem):
    """An item of a table interpreted as edges."""

    @property
    def edge_class(self) -> EdgeClass:
        from netweave.classes import EdgeClass
        if not isinstance(self.class_obj, EdgeClass):
            raise ValueError("EdgeWrapper can only be used with an EdgeClass.")
        return self.class_obj

    def _end_nodes(self, class_id: str | None, table_ids: List[str], limit: int | None, class_ids: Iterable[str] | None) -> AsyncIterator[WrappedItem]:
        if class_id is None or (class_ids is not None and class_id not in set(class_ids)):
            return handle_limit([], limit)
        node_table_id = self.edge_class.model.classes[class_id].table_id
        path = list(table_ids) + [node_table_id]
        return handle_limit([self.iterate_across_connections(path)], limit)

    def source_nodes(self, limit: int | None = None, class_ids: Iterable[str] | None = None) -> AsyncIterator[WrappedItem]:
        edge_class = self.edge_class
        return self._end_nodes(edge_class.source_class_id, edge_class.source_table_ids, limit, class_ids)

    def target_nodes(self, limit: int | None = None, class_ids: Iterable[str] | None = None) -> AsyncIterator[WrappedItem]:
        edge_class = self.edge_class
        return self._end_nodes(edge_class.target_class_id, edge_class.target_table_ids, limit, class_ids)

    def nodes(self, limit: int | None = None, class_ids: Iterable[str] | None = None) -> AsyncIterator[WrappedItem]:
        class_ids = list(class_ids) if class_ids is not None else None
        return handle_limit([self.source_nodes(class_ids=class_ids), self.target_nodes(class_ids=class_ids)], limit)

    async def pairwise_edges(self, limit: int | None = None) -> AsyncIterator[Triple]:
        """Every (source, edge, target) combination of this edge's endpoints."""
        count = 0
        async for source in self.source_nodes():
            async for target in self.target_nodes():
                yield Triple(source=source, edge=self, target=target)
                count += 1
                if limit is not None and count >= limit:
                    return

    async def hyperedge(self) -> Hyperedge:
        result = Hyperedge(edge=self)
        directed = self.edge_class.directed
        async for source in self.source_nodes():
            (result.sources if directed else result.undirected).append(source)
        async for target in self.target_nodes():
            (result.targets if directed else result.undirected).append(target)
        return result
