from __future__ import annotations

import json

import pytest

from netweave.errors import ConfigurationError, UnsupportedExtensionError
from netweave.formats import parse_csv, parse_text, parse_topojson, parse_treejson


class TestFormats:
    def test_csv_keeps_column_order(self):
        parsed = parse_csv("b,a\n1,2\n")
        assert parsed.attributes == ["b", "a"]
        assert parsed.data == [{"b": "1", "a": "2"}]

    def test_parse_text_normalizes_extension(self):
        assert parse_text("[1, 2]", ".JSON").data == [1, 2]

    def test_parse_text_rejects_unknown_extensions(self):
        with pytest.raises(UnsupportedExtensionError):
            parse_text("", None)

    def test_treejson_list_of_roots(self):
        parsed = parse_treejson(json.dumps([{"id": 1}, {"id": 2, "children": [3]}]))
        assert parsed.data == [
            {"id": 1, "parent": None, "depth": 0},
            {"id": 2, "parent": None, "depth": 0},
            {"value": 3, "parent": "1", "depth": 1},
        ]

    def test_topojson_decodes_quantized_arcs(self):
        topology = {
            "type": "Topology",
            "transform": {"scale": [2, 3], "translate": [10, 20]},
            "arcs": [[[0, 0], [1, 1], [1, 0]]],
            "objects": {
                "roads": {"type": "GeometryCollection", "geometries": [
                    {"type": "LineString", "arcs": [0], "id": "r1", "properties": {"lanes": 2}},
                    {"type": "LineString", "arcs": [-1], "id": "r1-back"},
                ]},
                "city": {"type": "Point", "coordinates": [1, 1]},
            },
        }
        features = parse_topojson(json.dumps(topology)).data
        assert [feature["id"] for feature in features] == ["r1", "r1-back", None]
        assert features[0]["object"] == "roads"
        assert features[0]["properties"] == {"lanes": 2}
        assert features[0]["geometry"]["coordinates"] == [[10, 20], [12, 23], [14, 23]]
        assert features[1]["geometry"]["coordinates"] == [[14, 23], [12, 23], [10, 20]]
        assert features[2]["geometry"] == {"type": "Point", "coordinates": [12, 23]}

    def test_topojson_requires_a_topology(self):
        with pytest.raises(ConfigurationError):
            parse_topojson(json.dumps({"type": "FeatureCollection"}))
