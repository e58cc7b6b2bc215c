from __future__ import annotations

import asyncio

from typing import AsyncIterator, List, Literal

from pydantic import Field

from netweave.errors import ParentTableError
from netweave.iteration import CancellationToken
from netweave.tables.base import Table
from netweave.wrapped_item import WrappedItem


class ConnectedTable(Table):
    """Index-equality join of its parents.

    One row per index of the first parent that is present in every other parent,
    connected to the matching item of each parent.
    """

    type: Literal["ConnectedTable"] = "ConnectedTable"
    parent_table_ids: List[str] = Field(default_factory=list)

    @property
    def parent_tables(self) -> List[Table]:
        tables = self.model.tables
        return [tables[table_id] for table_id in self.parent_table_ids if table_id in tables]

    @property
    def name(self) -> str:
        return "⨯".join(parent.name for parent in self.parent_tables)

    def get_sort_hash(self) -> str:
        return super().get_sort_hash() + ",".join(parent.get_sort_hash() for parent in self.parent_tables)

    def check_parents(self) -> None:
        if not self.parent_tables:
            raise ParentTableError("A connected table needs at least one parent table")

    async def _iterate(self, token: CancellationToken) -> AsyncIterator[WrappedItem]:
        parents = self.parent_tables
        caches = await asyncio.gather(*(parent.build_cache() for parent in parents))
        if token.cancelled:
            return
        base_cache, *other_caches = caches
        if base_cache is None:
            return
        for index in list(base_cache.keys()):
            if token.cancelled or any(parent._cache is not cache for parent, cache in zip(parents, caches)):
                # a parent was reset while joining
                return
            if not all(cache is not None and index in cache for cache in other_caches):
                continue
            yield self._wrap(token, index, {}, [cache[index] for cache in caches if cache is not None])
