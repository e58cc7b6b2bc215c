from __future__ import annotations

from typing import AsyncIterator, Literal

from netweave.iteration import CancellationToken
from netweave.tables.single_parent import SingleParentTable
from netweave.wrapped_item import WrappedItem


class TransposedTable(SingleParentTable):
    """The attributes of the parent row at `index`, one row per attribute."""

    type: Literal["TransposedTable"] = "TransposedTable"
    index: str

    @property
    def name(self) -> str:
        return f"ᵀ{self.index}"

    def get_sort_hash(self) -> str:
        return super().get_sort_hash() + self.index

    async def _iterate(self, token: CancellationToken) -> AsyncIterator[WrappedItem]:
        parent_cache = await self.parent_table.build_cache()
        if token.cancelled or parent_cache is None:
            return
        parent_item = parent_cache.get(self.index)
        if parent_item is None:
            return
        for attr, value in list(parent_item.row.items()):
            if token.cancelled:
                return
            yield self._wrap(token, attr, value, [parent_item])
