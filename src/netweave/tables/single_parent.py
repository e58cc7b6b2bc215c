from __future__ import annotations

from netweave.errors import ParentTableError
from netweave.tables.base import Table


class SingleParentTable(Table):
    """A table derived from exactly one parent."""

    @property
    def parent_table(self) -> Table:
        parents = self.parent_tables
        if not parents:
            raise ParentTableError(f"Parent table is required for table of type {self.type}")
        if len(parents) > 1:
            raise ParentTableError(f"Only one parent table allowed for table of type {self.type}")
        return parents[0]

    def check_parents(self) -> None:
        self.parent_table

    def get_sort_hash(self) -> str:
        return super().get_sort_hash() + self.parent_table.get_sort_hash()
