from __future__ import annotations

import re

from typing import TYPE_CHECKING, Any, AsyncIterator, Dict, Iterable, List, Literal, Type

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from netweave.wrapped_item import WrappedItem


if TYPE_CHECKING:
    from netweave.classes import AnyClass
    from netweave.graph_exports import SampleGraph
    from netweave.network_model import NetworkModel
    from netweave.tables import Table


class GenericClass(BaseModel):
    """Gives a table a semantic role in the network model.

    A plain `GenericClass` only names its table; `NodeClass` and `EdgeClass` add graph
    semantics. Converting between the three keeps the `class_id` and replaces the object
    registered under it in the model.
    """
    model_config = ConfigDict(
        arbitrary_types_allowed=True,
    )

    type: Literal["GenericClass"] = "GenericClass"
    class_id: str
    table_id: str
    custom_class_name: str | None = None
    annotations: Dict[str, Any] = Field(default_factory=dict)

    # ===================================================================
    # Private Attributes
    # ===================================================================

    _model: NetworkModel | None = PrivateAttr(default=None)

    # ===================================================================
    # Properties
    # ===================================================================

    @property
    def model(self) -> NetworkModel:
        if self._model is None:
            raise ValueError("Model is not set for this class.")
        return self._model

    @model.setter
    def model(self, value: NetworkModel | None) -> None: self._model = value

    @property
    def kind(self) -> str:
        """`Generic`, `Node` or `Edge`."""
        return self.type.removesuffix("Class")

    @property
    def wrapper_class(self) -> Type[WrappedItem]:
        return WrappedItem

    @property
    def table(self) -> Table:
        return self.model.tables[self.table_id]

    @property
    def deleted(self) -> bool:
        return self.model.classes.get(self.class_id) is not self

    @property
    def has_custom_name(self) -> bool:
        return self.custom_class_name is not None

    @property
    def class_name(self) -> str:
        return self.custom_class_name or self.table.name

    @property
    def variable_name(self) -> str:
        words = [word for word in re.split(r"\W+", self.class_name) if word]
        return self.kind.lower() + "_" + "".join(word[0].upper() + word[1:] for word in words)

    def set_class_name(self, value: str | None) -> None:
        self.custom_class_name = value
        self.model.trigger_update()

    def get_sort_hash(self) -> str:
        return self.type + self.class_name + self.table.get_sort_hash()

    def to_raw_object(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")

    def _base_options(self) -> Dict[str, Any]:
        return {
            "class_id": self.class_id,
            "table_id": self.table_id,
            "custom_class_name": self.custom_class_name,
            "annotations": dict(self.annotations),
        }

    # ===================================================================
    # Reinterpretation
    # ===================================================================

    def interpret_as_nodes(self) -> AnyClass:
        return self.model.create_class("NodeClass", overwrite=True, **self._base_options())

    def interpret_as_edges(self, autoconnect: bool = True) -> AnyClass:
        return self.model.create_class("EdgeClass", overwrite=True, **self._base_options())

    # ===================================================================
    # Derivation
    # ===================================================================

    def _derive_new_class(self, new_table: Table, type: str | None = None) -> AnyClass:
        return self.model.create_class(type or self.type, table_id=new_table.table_id)

    def aggregate(self, attribute: str) -> AnyClass:
        return self.model.create_class("GenericClass", table_id=self.table.aggregate(attribute).table_id)

    def expand(self, attribute: str, delimiter: str = ",") -> AnyClass:
        return self._derive_new_class(self.table.expand(attribute, delimiter))

    def closed_facet(self, attribute: str | None, values: Iterable[Any]) -> List[AnyClass]:
        return [self._derive_new_class(table) for table in self.table.closed_facet(attribute, values)]

    async def open_facet(self, attribute: str | None, limit: int | None = None) -> AsyncIterator[AnyClass]:
        async for table in self.table.open_facet(attribute, limit=limit):
            yield self._derive_new_class(table)

    def closed_transpose(self, indexes: Iterable[Any]) -> List[AnyClass]:
        return [self._derive_new_class(table) for table in self.table.closed_transpose(indexes)]

    async def open_transpose(self, limit: int | None = None) -> AsyncIterator[AnyClass]:
        async for table in self.table.open_transpose(limit=limit):
            yield self._derive_new_class(table)

    # ===================================================================
    # Lifecycle
    # ===================================================================

    def delete(self) -> None:
        if self.model.classes.get(self.class_id) is self:
            del self.model.classes[self.class_id]
        if self.table_id in self.model.tables:
            self.table.reset()
        self.model.trigger_update()

    async def get_sample_graph(self, **limits: Any) -> SampleGraph:
        return await self.model.get_sample_graph(root_class=self, **limits)
