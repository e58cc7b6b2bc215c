from __future__ import annotations

from typing import Any, AsyncIterator, Dict, List, Literal

from pydantic import Field

from netweave.iteration import CancellationToken
from netweave.tables.base import Table
from netweave.wrapped_item import WrappedItem


class StaticTable(Table):
    """Rows taken from an in-memory list; the index is the list position."""

    type: Literal["StaticTable"] = "StaticTable"
    name: str
    data: List[Any] = Field(default_factory=list)

    def get_sort_hash(self) -> str:
        return super().get_sort_hash() + self.name

    async def _iterate(self, token: CancellationToken) -> AsyncIterator[WrappedItem]:
        for index, row in enumerate(list(self.data)):
            if token.cancelled:
                return
            yield self._wrap(token, index, row)


class StaticDictTable(Table):
    """Rows taken from an in-memory mapping; the index is the key."""

    type: Literal["StaticDictTable"] = "StaticDictTable"
    name: str
    data: Dict[str, Any] = Field(default_factory=dict)

    def get_sort_hash(self) -> str:
        return super().get_sort_hash() + self.name

    async def _iterate(self, token: CancellationToken) -> AsyncIterator[WrappedItem]:
        for index, row in list(self.data.items()):
            if token.cancelled:
                return
            yield self._wrap(token, index, row)
