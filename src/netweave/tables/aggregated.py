from __future__ import annotations

from typing import Any, AsyncIterator, Callable, Dict, Iterable, Literal

from pydantic import Field, FieldSerializationInfo, ValidationInfo, field_serializer, field_validator

from netweave.function_registry import functions
from netweave.iteration import CancellationToken
from netweave.signals import item_updated_signal
from netweave.tables.base import resolve
from netweave.tables.single_parent import SingleParentTable
from netweave.wrapped_item import WrappedItem


ReduceFunction = Callable[[WrappedItem, WrappedItem], Any]


class AggregatedTable(SingleParentTable):
    """One row per distinct (stringified) value of `attribute` in the parent.

    Every aggregate row starts empty and folds in each matching parent row through the
    reduce functions, `fn(aggregate_item, parent_item)`. Rows are only finished after the
    parent has been read completely, since reductions are incremental.
    """

    type: Literal["AggregatedTable"] = "AggregatedTable"
    attribute: str
    reduce_attribute_functions: Dict[str, ReduceFunction] = Field(default_factory=dict)

    @field_validator("reduce_attribute_functions", mode="before")
    @classmethod
    def _hydrate_reduce_functions(cls, value: Any, info: ValidationInfo) -> Any:
        return functions.hydrate_map(value, context=f"{info.data.get('table_id')}.{info.field_name}")

    @field_serializer("reduce_attribute_functions")
    def _dehydrate_reduce_functions(self, value: Dict[str, ReduceFunction], info: FieldSerializationInfo) -> Dict[str, str]:
        return functions.dehydrate_map(value, context=f"{self.table_id}.{info.field_name}")

    @property
    def name(self) -> str:
        return "↦" + self.attribute

    def get_sort_hash(self) -> str:
        return super().get_sort_hash() + self.attribute

    def _derived_attribute_names(self) -> Iterable[str]:
        return [*self.derived_attribute_functions, *self.reduce_attribute_functions]

    def derive_reduced_attribute(self, attribute: str, func: ReduceFunction) -> None:
        self.reduce_attribute_functions[attribute] = func
        self._configuration_changed()

    async def _update_item(self, aggregate_item: WrappedItem, parent_item: WrappedItem) -> None:
        for attr, func in self.reduce_attribute_functions.items():
            aggregate_item.row[attr] = await resolve(func(aggregate_item, parent_item))
        item_updated_signal.send(self, item=aggregate_item)

    async def _iterate(self, token: CancellationToken) -> AsyncIterator[WrappedItem]:
        """First pass: read the whole parent, creating or updating one unfinished item per group."""
        unfinished: Dict[str, WrappedItem] = {}
        async for parent_item in self.parent_table.iterate():
            if token.cancelled:
                return
            index = str(parent_item.row.get(self.attribute))
            if (aggregate_item := unfinished.get(index)) is None:
                aggregate_item = unfinished[index] = self._wrap(token, index, {}, [parent_item])
                await self._update_item(aggregate_item, parent_item)
                yield aggregate_item
            else:
                aggregate_item.connect_item(parent_item)
                await self._update_item(aggregate_item, parent_item)

    async def _produce(self, token: CancellationToken) -> AsyncIterator[WrappedItem]:
        # Second pass: finish only after every group has seen all of its parent rows
        unfinished = [item async for item in self._iterate(token)]
        if token.cancelled:
            return
        for item in unfinished:
            if token.cancelled:
                return
            if await self._finish_item(item):
                yield item
