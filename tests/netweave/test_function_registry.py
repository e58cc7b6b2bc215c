from __future__ import annotations

import logging

import pytest

from netweave.function_registry import FunctionRegistry


class TestFunctionRegistry:
    @pytest.fixture
    def registry(self) -> FunctionRegistry:
        return FunctionRegistry()

    def test_register_as_decorator(self, registry):
        @registry.register("double")
        def double(item):
            return item * 2

        assert "double" in registry
        assert registry.resolve("double") is double
        assert registry.name_of(double) == "double"

    def test_register_directly_and_unregister(self, registry):
        func = registry.register("noop", lambda item: None)
        assert registry.resolve("noop") is func
        registry.unregister("noop")
        assert "noop" not in registry
        assert registry.name_of(func) is None

    def test_dehydrate_map_skips_unregistered(self, registry, caplog):
        registry.register("known", len)
        with caplog.at_level(logging.WARNING, logger="netweave.function_registry"):
            dumped = registry.dehydrate_map({"a": len, "b": lambda v: v}, context="table1.attribute_filters")
        assert dumped == {"a": "known"}
        assert "table1.attribute_filters.b" in caplog.text

    def test_hydrate_map(self, registry, caplog):
        registry.register("known", len)
        with caplog.at_level(logging.WARNING, logger="netweave.function_registry"):
            hydrated = registry.hydrate_map({"a": "known", "b": "missing", "c": abs}, context="t")
        assert hydrated == {"a": len, "c": abs}
        assert "missing" in caplog.text
        assert registry.hydrate(None, context="t") is None
