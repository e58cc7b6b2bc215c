from typing import Annotated, Dict, Type, Union

from pydantic import Field, TypeAdapter

from netweave.tables.aggregated import AggregatedTable
from netweave.tables.base import AttributeDetails, CurrentData, Table
from netweave.tables.connected import ConnectedTable
from netweave.tables.expanded import ExpandedTable
from netweave.tables.faceted import FacetedTable
from netweave.tables.single_parent import SingleParentTable
from netweave.tables.static import StaticDictTable, StaticTable
from netweave.tables.transposed import TransposedTable


AnyTable = Annotated[
    Union[StaticTable, StaticDictTable, AggregatedTable, ExpandedTable, FacetedTable, TransposedTable, ConnectedTable],
    Field(discriminator="type"),
]

TABLE_TYPES: Dict[str, Type[Table]] = {
    "StaticTable": StaticTable,
    "StaticDictTable": StaticDictTable,
    "AggregatedTable": AggregatedTable,
    "ExpandedTable": ExpandedTable,
    "FacetedTable": FacetedTable,
    "TransposedTable": TransposedTable,
    "ConnectedTable": ConnectedTable,
}

table_adapter: TypeAdapter[AnyTable] = TypeAdapter(AnyTable)


__all__ = [
    "AggregatedTable",
    "AnyTable",
    "AttributeDetails",
    "ConnectedTable",
    "CurrentData",
    "ExpandedTable",
    "FacetedTable",
    "SingleParentTable",
    "StaticDictTable",
    "StaticTable",
    "TABLE_TYPES",
    "Table",
    "TransposedTable",
    "table_adapter",
]
