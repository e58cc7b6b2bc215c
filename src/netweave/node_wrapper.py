from __future__ import annotations

from typing import TYPE_CHECKING, AsyncIterator, Iterable, List

from netweave.wrapped_item import WrappedItem, handle_limit


if TYPE_CHECKING:
    from netweave.classes import NodeClass
    from netweave.edge_wrapper import EdgeWrapper, Triple


async def unique(iterators: Iterable[AsyncIterator[WrappedItem]]) -> AsyncIterator[WrappedItem]:
    """Chain `iterators`, skipping items already yielded."""
    seen = set()
    for iterator in iterators:
        async for item in iterator:
            if item not in seen:
                seen.add(item)
                yield item


class NodeWrapper(WrappedItem):
    """An item of a table interpreted as nodes."""

    @property
    def node_class(self) -> NodeClass:
        from netweave.classes import NodeClass
        if not isinstance(self.class_obj, NodeClass):
            raise ValueError("NodeWrapper can only be used with a NodeClass.")
        return self.class_obj

    def edges(self, limit: int | None = None, class_ids: Iterable[str] | None = None) -> AsyncIterator[EdgeWrapper]:
        """Edge items touching this node, optionally restricted to some edge classes."""
        node_class = self.node_class
        model = node_class.model
        edge_class_ids = list(class_ids) if class_ids is not None else list(node_class.edge_class_ids)
        iterators: List[AsyncIterator[WrappedItem]] = []
        for edge_class_id in edge_class_ids:
            if edge_class_id not in node_class.edge_class_ids:
                continue
            edge_class = model.classes[edge_class_id]
            role = node_class.get_edge_role(edge_class)
            source_path = list(reversed(edge_class.source_table_ids)) + [edge_class.table_id]
            target_path = list(reversed(edge_class.target_table_ids)) + [edge_class.table_id]
            if role == "both":
                # self loop: an edge reached from both ends is still one edge
                paths = [source_path] if source_path == target_path else [source_path, target_path]
                iterators.append(unique(self.iterate_across_connections(path) for path in paths))
            elif role == "source":
                iterators.append(self.iterate_across_connections(source_path))
            elif role == "target":
                iterators.append(self.iterate_across_connections(target_path))
        return handle_limit(iterators, limit)  # type: ignore[return-value]

    async def pairwise_neighborhood(self, limit: int | None = None) -> AsyncIterator[Triple]:
        async for edge in self.edges(limit=limit):
            async for triple in edge.pairwise_edges(limit=limit):
                yield triple
