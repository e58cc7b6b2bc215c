"""Process-wide registry of named callables.

Derived attributes, filters and reduce functions are plain Python callables at
runtime. A persisted model can only refer to them by name, so hosts register
the functions they intend to persist:

    >>> from netweave.function_registry import functions
    >>> @functions.register("double_v")
    ... def double_v(item):
    ...     return item.row["v"] * 2

Unregistered callables still work in memory; they are dropped (with a warning)
when the model is serialized and must be re-attached after load.
"""
from __future__ import annotations

import logging

from typing import Any, Callable, Dict, overload


logger = logging.getLogger(__name__)


class FunctionRegistry:

    def __init__(self) -> None:
        self._by_name: Dict[str, Callable[..., Any]] = {}

    @overload
    def register(self, name: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]: ...
    @overload
    def register(self, name: str, func: Callable[..., Any]) -> Callable[..., Any]: ...

    def register(self, name: str, func: Callable[..., Any] | None = None):
        """Register `func` under `name`; usable directly or as a decorator."""
        def _register(f: Callable[..., Any]) -> Callable[..., Any]:
            existing = self._by_name.get(name)
            if existing is not None and existing is not f:
                logger.debug("Replacing registered function %s", name)
            self._by_name[name] = f
            return f

        if func is None:
            return _register
        return _register(func)

    def unregister(self, name: str) -> None:
        self._by_name.pop(name, None)

    def name_of(self, func: Callable[..., Any]) -> str | None:
        for name, registered in self._by_name.items():
            if registered is func:
                return name
        return None

    def resolve(self, name: str) -> Callable[..., Any] | None:
        return self._by_name.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    # ===================================================================
    # (De)hydration helpers
    # ===================================================================

    def dehydrate(self, func: Callable[..., Any] | None, *, context: str) -> str | None:
        if func is None:
            return None
        name = self.name_of(func)
        if name is None:
            logger.warning("Function for %s is not registered and will not be persisted", context)
        return name

    def dehydrate_map(self, funcs: Dict[str, Callable[..., Any]], *, context: str) -> Dict[str, str]:
        dumped: Dict[str, str] = {}
        for attr, func in funcs.items():
            if (name := self.dehydrate(func, context=f"{context}.{attr}")) is not None:
                dumped[attr] = name
        return dumped

    def hydrate(self, value: Any, *, context: str) -> Callable[..., Any] | None:
        if value is None or callable(value):
            return value
        func = self.resolve(value)
        if func is None:
            logger.warning("No registered function named %r for %s; it must be re-attached", value, context)
        return func

    def hydrate_map(self, values: Dict[str, Any] | None, *, context: str) -> Dict[str, Callable[..., Any]]:
        hydrated: Dict[str, Callable[..., Any]] = {}
        for attr, value in (values or {}).items():
            if (func := self.hydrate(value, context=f"{context}.{attr}")) is not None:
                hydrated[attr] = func
        return hydrated


functions = FunctionRegistry()
