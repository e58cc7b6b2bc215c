from __future__ import annotations

import inspect
import logging

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, AsyncIterator, Callable, Dict, Iterable, List, Sequence

from pydantic import (BaseModel, ConfigDict, Field, FieldSerializationInfo, PrivateAttr, ValidationInfo, field_serializer,
                      field_validator)

from netweave.errors import ConfigurationError, InUseError, ParentTableError
from netweave.function_registry import functions
from netweave.iteration import CacheBuild, CancellationToken
from netweave.signals import (cache_built_signal, item_filtered_signal, item_finished_signal, table_reset_signal)
from netweave.wrapped_item import WrappedItem


if TYPE_CHECKING:
    from netweave.classes import AnyClass
    from netweave.network_model import NetworkModel


logger = logging.getLogger(__name__)


def strict_equals(a: Any, b: Any) -> bool:
    """Equality without bool/number coercion (`True` never equals `1`)."""
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    return a == b


async def resolve(value: Any) -> Any:
    """Await `value` when a callback returned an awaitable."""
    if inspect.isawaitable(value):
        return await value
    return value


class AttributeDetails(BaseModel):
    name: str | None
    expected: bool = False
    observed: bool = False
    derived: bool = False
    suppressed: bool = False
    filtered: bool = False


class CurrentData(BaseModel):
    """Whatever a table holds right now; `complete` is only true for a fully built cache."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    lookup: Dict[str, WrappedItem]
    complete: bool

    @property
    def data(self) -> List[WrappedItem]:
        return list(self.lookup.values())


class Table(BaseModel):
    """A lazily computed, cacheable collection of `WrappedItem`s keyed by string index.

    Subclasses implement `_iterate(token)`, yielding raw (unfinished) items. Reading goes
    through `iterate()`, which replays the complete cache when there is one and otherwise
    joins the build in flight, so concurrent readers never trigger the parent chain twice.
    """
    model_config = ConfigDict(
        arbitrary_types_allowed=True,
    )

    type: str
    table_id: str
    expected_attributes: List[str] = Field(default_factory=list)
    derived_table_ids: List[str] = Field(default_factory=list)
    derived_attribute_functions: Dict[str, Callable[..., Any]] = Field(default_factory=dict)
    suppressed_attributes: List[str] = Field(default_factory=list)
    suppress_index: bool = False
    index_filter: Callable[[str], Any] | None = None
    attribute_filters: Dict[str, Callable[[Any], Any]] = Field(default_factory=dict)

    # ===================================================================
    # Private Attributes
    # ===================================================================

    _model: NetworkModel | None = PrivateAttr(default=None)
    _observed_attributes: Dict[str, bool] = PrivateAttr(default_factory=dict)
    _cache: Dict[str, WrappedItem] | None = PrivateAttr(default=None)
    _build: CacheBuild | None = PrivateAttr(default=None)

    # ===================================================================
    # Callable (de)hydration
    # ===================================================================

    @field_validator("derived_attribute_functions", "attribute_filters", mode="before")
    @classmethod
    def _hydrate_function_map(cls, value: Any, info: ValidationInfo) -> Any:
        return functions.hydrate_map(value, context=f"{info.data.get('table_id')}.{info.field_name}")

    @field_validator("index_filter", mode="before")
    @classmethod
    def _hydrate_index_filter(cls, value: Any, info: ValidationInfo) -> Any:
        return functions.hydrate(value, context=f"{info.data.get('table_id')}.index_filter")

    @field_serializer("derived_attribute_functions", "attribute_filters")
    def _dehydrate_function_map(self, value: Dict[str, Callable[..., Any]], info: FieldSerializationInfo) -> Dict[str, str]:
        return functions.dehydrate_map(value, context=f"{self.table_id}.{info.field_name}")

    @field_serializer("index_filter")
    def _dehydrate_index_filter(self, value: Callable[..., Any] | None) -> str | None:
        return functions.dehydrate(value, context=f"{self.table_id}.index_filter")

    def to_raw_object(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")

    # ===================================================================
    # Properties
    # ===================================================================

    @property
    def model(self) -> NetworkModel:
        if self._model is None:
            raise ValueError("Model is not set for this table.")
        return self._model

    @model.setter
    def model(self, value: NetworkModel | None) -> None: self._model = value

    # `name` is a field on static tables and a property on derived ones

    @property
    def class_obj(self) -> AnyClass | None:
        for class_obj in self.model.classes.values():
            if class_obj.table_id == self.table_id:
                return class_obj
        return None

    @property
    def parent_tables(self) -> List[Table]:
        return [table for table in self.model.tables.values() if self.table_id in table.derived_table_ids]

    @property
    def derived_tables(self) -> List[Table]:
        tables = self.model.tables
        return [tables[table_id] for table_id in self.derived_table_ids if table_id in tables]

    @property
    def in_use(self) -> bool:
        if self.derived_table_ids:
            return True
        for class_obj in self.model.classes.values():
            if class_obj.table_id == self.table_id:
                return True
            if self.table_id in getattr(class_obj, "source_table_ids", ()) or self.table_id in getattr(class_obj, "target_table_ids", ()):
                return True
        return False

    @property
    def current_data(self) -> CurrentData:
        if self._cache is not None:
            return CurrentData(lookup=dict(self._cache), complete=True)
        if self._build is not None:
            return CurrentData(lookup=dict(self._build.items), complete=False)
        return CurrentData(lookup={}, complete=False)

    @property
    def attributes(self) -> List[str]:
        return list(self.get_attribute_details().keys())

    def get_sort_hash(self) -> str:
        return self.type

    def check_parents(self) -> None:
        """Validate the parent tables this table was derived from."""

    # ===================================================================
    # Introspection
    # ===================================================================

    def _derived_attribute_names(self) -> Iterable[str]:
        return self.derived_attribute_functions.keys()

    def get_attribute_details(self) -> Dict[str, AttributeDetails]:
        details: Dict[str, AttributeDetails] = {}

        def _detail(attr: str) -> AttributeDetails:
            return details.setdefault(attr, AttributeDetails(name=attr))

        for attr in self.expected_attributes:
            _detail(attr).expected = True
        for attr in self._observed_attributes:
            _detail(attr).observed = True
        for attr in self._derived_attribute_names():
            _detail(attr).derived = True
        for attr in self.suppressed_attributes:
            _detail(attr).suppressed = True
        for attr in self.attribute_filters:
            _detail(attr).filtered = True
        return details

    def get_index_details(self) -> AttributeDetails:
        return AttributeDetails(name=None, suppressed=self.suppress_index, filtered=self.index_filter is not None)

    # ===================================================================
    # Iteration
    # ===================================================================

    async def iterate(self, *, reset: bool = False, limit: int | None = None) -> AsyncIterator[WrappedItem]:
        """Yield finished items, building (or joining the build of) the cache as needed.

        A `limit`-bounded read stops early and leaves the cache incomplete. Readers stop
        quietly when the table is reset underneath them.
        """
        if reset:
            self.reset()
        if limit is not None and limit <= 0:
            return

        if (cache := self._cache) is not None:
            for count, item in enumerate(list(cache.values()), start=1):
                yield item
                if self._cache is not cache or (limit is not None and count >= limit):
                    return
            return

        build = self._build
        if build is None:
            build = self._build = CacheBuild.start(self._produce)

        position = 0
        while limit is None or position < limit:
            if build.cancelled:
                return
            if position < len(build.order):
                item = build.order[position]
                position += 1
                yield item
                continue
            if build.done:
                return
            await self._advance(build, position)

    async def _advance(self, build: CacheBuild, seen: int) -> None:
        async with build.lock:
            # another reader may have advanced the build while we waited for the lock
            if build.done or build.cancelled or len(build.order) > seen:
                return
            try:
                item = await anext(build.producer)
            except StopAsyncIteration:
                build.done = True
                if build.cancelled:
                    build.discard()
                else:
                    self._complete_build(build)
                return
            except BaseException:
                build.discard()
                if self._build is build:
                    self._build = None
                raise
            if build.cancelled:
                # reset while producing: items wrapped after reset() ran are unlinked here
                build.discard()
            else:
                build.add(item)

    def _complete_build(self, build: CacheBuild) -> None:
        if build.cancelled or self._build is not build:
            return
        self._cache = {item.index: item for item in build.order}
        self._build = None
        logger.debug("Built cache for %s (%d items)", self.table_id, len(self._cache))
        cache_built_signal.send(self)

    async def build_cache(self) -> Dict[str, WrappedItem] | None:
        """Drive iteration to completion; `None` means a reset interrupted the build."""
        if self._cache is not None:
            return self._cache
        async for _ in self.iterate():
            pass
        return self._cache

    async def count_rows(self) -> int:
        cache = await self.build_cache()
        return len(cache) if cache is not None else -1

    async def _produce(self, token: CancellationToken) -> AsyncIterator[WrappedItem]:
        async for item in self._iterate(token):
            if token.cancelled:
                return
            if await self._finish_item(item):
                yield item

    @abstractmethod
    def _iterate(self, token: CancellationToken) -> AsyncIterator[WrappedItem]:
        raise NotImplementedError("Subclasses must implement _iterate.")

    def _wrap(self, token: CancellationToken, index: Any, row: Any = None, items_to_connect: Sequence[WrappedItem] = ()) -> WrappedItem:
        class_obj = self.class_obj
        wrapper = class_obj.wrapper_class if class_obj is not None else WrappedItem
        item = token.track(wrapper.wrap(self, index, row if row is not None else {}, class_obj))
        for other in items_to_connect:
            item.connect_item(other)
        return item

    async def _finish_item(self, item: WrappedItem) -> bool:
        for attr, func in self.derived_attribute_functions.items():
            item.row[attr] = await resolve(func(item))
        for attr in item.row:
            self._observed_attributes[attr] = True
        for attr in self.suppressed_attributes:
            item.row.pop(attr, None)

        keep = True
        if self.index_filter is not None:
            keep = bool(await resolve(self.index_filter(item.index)))
        if keep:
            for attr, func in self.attribute_filters.items():
                if not await resolve(func(item.row.get(attr))):
                    keep = False
                    break

        if keep:
            item_finished_signal.send(self, item=item)
        else:
            item.disconnect()
            item_filtered_signal.send(self, item=item)
        return keep

    # ===================================================================
    # Invalidation
    # ===================================================================

    def reset(self) -> None:
        """Drop the complete and partial caches here and in every derived table."""
        if (build := self._build) is not None:
            self._build = None
            build.discard()
        if (cache := self._cache) is not None:
            self._cache = None
            for item in cache.values():
                item.disconnect()
        if self._model is not None:
            for derived in self.derived_tables:
                derived.reset()
        table_reset_signal.send(self)

    # ===================================================================
    # Configuration
    # ===================================================================

    def derive_attribute(self, attribute: str, func: Callable[[WrappedItem], Any]) -> None:
        self.derived_attribute_functions[attribute] = func
        self._configuration_changed()

    def suppress_attribute(self, attribute: str | None) -> None:
        """Suppress `attribute`, or the index when `attribute` is None."""
        if attribute is None:
            self.suppress_index = True
        elif attribute not in self.suppressed_attributes:
            self.suppressed_attributes.append(attribute)
        self._configuration_changed()

    def unsuppress_attribute(self, attribute: str | None) -> None:
        if attribute is None:
            self.suppress_index = False
        elif attribute in self.suppressed_attributes:
            self.suppressed_attributes.remove(attribute)
        self._configuration_changed()

    def add_filter(self, attribute: str | None, func: Callable[[Any], Any]) -> None:
        """Filter on the value of `attribute`, or on the index when `attribute` is None."""
        if attribute is None:
            self.index_filter = func
        else:
            self.attribute_filters[attribute] = func
        self._configuration_changed()

    def _configuration_changed(self) -> None:
        self.reset()
        self.model.trigger_update()

    # ===================================================================
    # Derivation
    # ===================================================================

    def _get_existing_table(self, type: str, **options: Any) -> Table | None:
        for table in self.derived_tables:
            if table.type != type:
                continue
            if all(strict_equals(getattr(table, name, None), value) for name, value in options.items()):
                return table
        return None

    def _derive_table(self, type: str, **options: Any) -> Table:
        if (existing := self._get_existing_table(type, **options)) is not None:
            return existing
        new_table = self.model.create_table(type, **options)
        self.derived_table_ids.append(new_table.table_id)
        try:
            new_table.check_parents()
        except ParentTableError:
            self.derived_table_ids.remove(new_table.table_id)
            new_table.delete(force=True)
            raise
        self.model.trigger_update()
        return new_table

    def aggregate(self, attribute: str) -> Table:
        if not attribute:
            raise ConfigurationError("attribute is required")
        return self._derive_table("AggregatedTable", attribute=attribute)

    def expand(self, attribute: str, delimiter: str = ",") -> Table:
        if not attribute or not delimiter:
            raise ConfigurationError("attribute and delimiter are required")
        return self._derive_table("ExpandedTable", attribute=attribute, delimiter=delimiter)

    def closed_facet(self, attribute: str | None, values: Iterable[Any]) -> List[Table]:
        return [self._derive_table("FacetedTable", attribute=attribute, value=value) for value in values]

    async def open_facet(self, attribute: str | None, limit: int | None = None) -> AsyncIterator[Table]:
        """Yield one faceted table per distinct value seen while reading (up to `limit` rows)."""
        seen: List[Any] = []
        async for item in self.iterate(limit=limit):
            value = item.index if attribute is None else item.row.get(attribute)
            if any(strict_equals(value, other) for other in seen):
                continue
            seen.append(value)
            yield self._derive_table("FacetedTable", attribute=attribute, value=value)

    def closed_transpose(self, indexes: Iterable[Any]) -> List[Table]:
        return [self._derive_table("TransposedTable", index=str(index)) for index in indexes]

    async def open_transpose(self, limit: int | None = None) -> AsyncIterator[Table]:
        async for item in self.iterate(limit=limit):
            yield self._derive_table("TransposedTable", index=item.index)

    def connect(self, other_tables: Sequence[Table]) -> Table:
        """Join this table with `other_tables` on equal indexes."""
        if not other_tables:
            raise ConfigurationError("connect() needs at least one other table")
        parent_table_ids = [self.table_id] + [table.table_id for table in other_tables]
        if (existing := self._get_existing_table("ConnectedTable", parent_table_ids=parent_table_ids)) is not None:
            return existing
        new_table = self.model.create_table("ConnectedTable", parent_table_ids=parent_table_ids)
        for table in [self, *other_tables]:
            if new_table.table_id not in table.derived_table_ids:
                table.derived_table_ids.append(new_table.table_id)
        self.model.trigger_update()
        return new_table

    # ===================================================================
    # Deletion
    # ===================================================================

    def delete(self, force: bool = False) -> None:
        if not force and self.in_use:
            raise InUseError(f"Can't delete in-use table {self.table_id}")
        self.reset()
        for parent in self.parent_tables:
            if self.table_id in parent.derived_table_ids:
                parent.derived_table_ids.remove(self.table_id)
        self.model.tables.pop(self.table_id, None)
        self.model.trigger_update()
