from __future__ import annotations

from typing import AsyncIterator, Literal

from netweave.iteration import CancellationToken
from netweave.tables.single_parent import SingleParentTable
from netweave.wrapped_item import WrappedItem


class ExpandedTable(SingleParentTable):
    """One row per `delimiter`-separated piece of `attribute`, connected to its parent row."""

    type: Literal["ExpandedTable"] = "ExpandedTable"
    attribute: str
    delimiter: str = ","

    @property
    def name(self) -> str:
        return self.attribute

    def get_sort_hash(self) -> str:
        return super().get_sort_hash() + self.attribute + self.delimiter

    async def _iterate(self, token: CancellationToken) -> AsyncIterator[WrappedItem]:
        index = 0
        async for parent_item in self.parent_table.iterate():
            if token.cancelled:
                return
            value = parent_item.row.get(self.attribute)
            if value is None or value == "":
                continue
            for piece in str(value).split(self.delimiter):
                yield self._wrap(token, index, {self.attribute: piece}, [parent_item])
                index += 1
