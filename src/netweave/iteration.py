from __future__ import annotations

import asyncio

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, AsyncIterator, Callable, Dict, List


if TYPE_CHECKING:
    from netweave.wrapped_item import WrappedItem


@dataclass
class CancellationToken:
    """Flag shared between a table and the generators building its cache.

    `Table.reset()` cancels the token of the build in flight; producers check
    `cancelled` after every await and every yield and stop quietly. Every item a
    producer wraps is tracked in `wrapped` so a discarded build can unlink them all.
    """

    cancelled: bool = field(default=False)
    wrapped: List[WrappedItem] = field(default_factory=list, repr=False)

    def cancel(self) -> None:
        self.cancelled = True

    def track(self, item: WrappedItem) -> WrappedItem:
        self.wrapped.append(item)
        return item


@dataclass
class CacheBuild:
    """One in-flight cache build, shared by every reader of a table.

    `items` is the partial cache. Readers replay `order` by position and, when they
    catch up, advance the shared `producer` while holding `lock` so that no item is
    produced twice.
    """

    token: CancellationToken
    producer: AsyncIterator[WrappedItem]
    items: Dict[str, WrappedItem] = field(default_factory=dict)
    order: List[WrappedItem] = field(default_factory=list)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    done: bool = field(default=False)

    @classmethod
    def start(cls, producer_factory: Callable[[CancellationToken], AsyncIterator[WrappedItem]]) -> CacheBuild:
        token = CancellationToken()
        return cls(token=token, producer=producer_factory(token))

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled

    def add(self, item: WrappedItem) -> None:
        self.items[item.index] = item
        self.order.append(item)

    def discard(self) -> None:
        """Cancel and unlink every item the producer has wrapped so far, cached or not."""
        self.token.cancel()
        for item in self.token.wrapped:
            item.disconnect()
        self.token.wrapped.clear()
