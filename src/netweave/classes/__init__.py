from typing import Annotated, Dict, Type, Union

from pydantic import Field

from netweave.classes.edge_class import EdgeClass, TableIdSplit
from netweave.classes.generic_class import GenericClass
from netweave.classes.node_class import NodeClass


AnyClass = Annotated[Union[GenericClass, NodeClass, EdgeClass], Field(discriminator="type")]

CLASS_TYPES: Dict[str, Type[GenericClass]] = {
    "GenericClass": GenericClass,
    "NodeClass": NodeClass,
    "EdgeClass": EdgeClass,
}


__all__ = [
    "AnyClass",
    "CLASS_TYPES",
    "EdgeClass",
    "GenericClass",
    "NodeClass",
    "TableIdSplit",
]
