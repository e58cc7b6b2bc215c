from __future__ import annotations

import asyncio

from typing import TYPE_CHECKING, Any, AsyncIterator, Dict, Iterable, Iterator, List, Mapping, Sequence

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr


if TYPE_CHECKING:
    from netweave.classes import AnyClass
    from netweave.tables.base import Table


def as_row(value: Any) -> Dict[str, Any]:
    """Coerce a raw datum into a row: mappings are copied, sequences keyed by position, scalars wrapped."""
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, (list, tuple)):
        return {str(i): v for i, v in enumerate(value)}
    return {"value": value}


async def handle_limit(iterators: Iterable[AsyncIterator[WrappedItem]], limit: int | None = None) -> AsyncIterator[WrappedItem]:
    """Chain `iterators`, stopping after `limit` items in total."""
    if limit is not None and limit <= 0:
        return
    count = 0
    for iterator in iterators:
        async for item in iterator:
            yield item
            count += 1
            if limit is not None and count >= limit:
                return


class WrappedItem(BaseModel):
    """One row of a table plus its connections to rows in other tables.

    Connections are symmetric: `a.connect_item(b)` records `b` under `b.table_id` in `a`
    and `a` under `a.table_id` in `b`. Items compare and hash by identity.
    """
    model_config = ConfigDict(
        arbitrary_types_allowed=True,
    )

    index: str
    row: Dict[str, Any] = Field(default_factory=dict)

    # ===================================================================
    # Private Attributes
    # ===================================================================

    _table: Table | None = PrivateAttr(default=None)
    _class_obj: AnyClass | None = PrivateAttr(default=None)
    _connected_items: Dict[str, List[WrappedItem]] = PrivateAttr(default_factory=dict)

    # ===================================================================
    # Construction
    # ===================================================================

    @classmethod
    def wrap(cls, table: Table, index: Any, row: Any, class_obj: AnyClass | None = None) -> WrappedItem:
        item = cls(index=str(index), row=as_row(row))
        item._table = table
        item._class_obj = class_obj
        return item

    def __eq__(self, other: object) -> bool:
        return self is other

    def __hash__(self) -> int:
        return id(self)

    def __repr__(self) -> str:
        table_id = self._table.table_id if self._table is not None else None
        return f"{self.__class__.__name__}(table_id={table_id!r}, index={self.index!r})"

    # ===================================================================
    # Properties
    # ===================================================================

    @property
    def table(self) -> Table:
        if self._table is None:
            raise ValueError("Table is not set for this item.")
        return self._table

    @property
    def class_obj(self) -> AnyClass | None:
        return self._class_obj

    @property
    def connected_items(self) -> Dict[str, List[WrappedItem]]:
        return self._connected_items

    @property
    def instance_id(self) -> str:
        owner = self._class_obj.class_id if self._class_obj is not None else self.table.table_id
        return f"{owner}_{self.index}"

    def equals(self, other: WrappedItem) -> bool:
        return self.instance_id == other.instance_id

    # ===================================================================
    # Connections
    # ===================================================================

    def connect_item(self, other: WrappedItem) -> None:
        self._add_connection(other)
        other._add_connection(self)

    def _add_connection(self, other: WrappedItem) -> None:
        bucket = self._connected_items.setdefault(other.table.table_id, [])
        if not any(existing is other for existing in bucket):
            bucket.append(other)

    def disconnect(self) -> None:
        """Remove this item from every partner's connection lists and forget its own."""
        own_table_id = self.table.table_id
        for items in self._connected_items.values():
            for other in items:
                bucket = other._connected_items.get(own_table_id)
                if bucket is None:
                    continue
                bucket[:] = [existing for existing in bucket if existing is not self]
                if not bucket:
                    del other._connected_items[own_table_id]
        self._connected_items = {}

    # ===================================================================
    # Traversal
    # ===================================================================

    async def iterate_across_connections(self, table_ids: Sequence[str], limit: int | None = None) -> AsyncIterator[WrappedItem]:
        """Walk `connected_items` hop by hop along `table_ids`, yielding the items reached at the end."""
        if not table_ids:
            return
        tables = self.table.model.tables
        await asyncio.gather(*(tables[table_id].build_cache() for table_id in table_ids))
        count = 0
        for item in self._iterate_across_connections(list(table_ids)):
            yield item
            count += 1
            if limit is not None and count >= limit:
                return

    def _iterate_across_connections(self, table_ids: List[str]) -> Iterator[WrappedItem]:
        head, rest = table_ids[0], table_ids[1:]
        for item in list(self._connected_items.get(head, [])):
            if rest:
                yield from item._iterate_across_connections(rest)
            else:
                yield item
