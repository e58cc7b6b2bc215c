from __future__ import annotations

from typing import Any, AsyncIterator, Literal

from netweave.iteration import CancellationToken
from netweave.tables.base import strict_equals
from netweave.tables.single_parent import SingleParentTable
from netweave.wrapped_item import WrappedItem


class FacetedTable(SingleParentTable):
    """Parent rows whose `attribute` (or index, when `attribute` is None) strictly equals `value`."""

    type: Literal["FacetedTable"] = "FacetedTable"
    attribute: str | None
    value: Any

    @property
    def name(self) -> str:
        return f"[{self.value}]"

    def get_sort_hash(self) -> str:
        return super().get_sort_hash() + str(self.attribute) + str(self.value)

    def _matches(self, item: WrappedItem) -> bool:
        if self.attribute is None:
            return strict_equals(item.index, self.value)
        return self.attribute in item.row and strict_equals(item.row[self.attribute], self.value)

    async def _iterate(self, token: CancellationToken) -> AsyncIterator[WrappedItem]:
        index = 0
        async for parent_item in self.parent_table.iterate():
            if token.cancelled:
                return
            if self._matches(parent_item):
                yield self._wrap(token, index, dict(parent_item.row), [parent_item])
                index += 1
