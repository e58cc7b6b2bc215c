"""Text parsers for static table ingestion, keyed by file extension."""
from __future__ import annotations

import csv
import io
import json

from typing import Any, Callable, Dict, List

from pydantic import BaseModel, Field

from netweave.errors import ConfigurationError, UnsupportedExtensionError


class ParsedData(BaseModel):
    data: List[Any] | Dict[str, Any]
    attributes: List[str] = Field(default_factory=list)


# ===================================================================
# Parsers
# ===================================================================

def parse_json(text: str) -> ParsedData:
    return ParsedData(data=json.loads(text))


def _parse_delimited(text: str, delimiter: str) -> ParsedData:
    reader = csv.DictReader(io.StringIO(text), delimiter=delimiter)
    rows = [dict(row) for row in reader]
    return ParsedData(data=rows, attributes=list(reader.fieldnames or []))


def parse_csv(text: str) -> ParsedData:
    return _parse_delimited(text, ",")


def parse_tsv(text: str) -> ParsedData:
    return _parse_delimited(text, "\t")


def _decode_arcs(topology: Dict[str, Any]) -> List[List[List[float]]]:
    arcs = topology.get("arcs", [])
    transform = topology.get("transform")
    if not transform:
        return arcs
    (sx, sy), (tx, ty) = transform["scale"], transform["translate"]
    decoded = []
    for arc in arcs:
        x = y = 0
        points = []
        for position in arc:
            x += position[0]
            y += position[1]
            points.append([x * sx + tx, y * sy + ty, *position[2:]])
        decoded.append(points)
    return decoded


def _arc_points(arcs: List[List[List[float]]], indexes: List[int]) -> List[List[float]]:
    points: List[List[float]] = []
    for arc_index in indexes:
        # negative indexes refer to reversed arcs (~index)
        arc = arcs[arc_index] if arc_index >= 0 else list(reversed(arcs[~arc_index]))
        points.extend(arc[1:] if points else arc)
    return points


def _geometry(arcs: List[List[List[float]]], topology: Dict[str, Any], geometry: Dict[str, Any]) -> Dict[str, Any] | None:
    kind = geometry.get("type")
    shapes = geometry.get("arcs")
    if kind == "Point" or kind == "MultiPoint":
        coordinates = geometry.get("coordinates")
        transform = topology.get("transform")
        if transform and coordinates is not None:
            (sx, sy), (tx, ty) = transform["scale"], transform["translate"]
            scale = lambda p: [p[0] * sx + tx, p[1] * sy + ty, *p[2:]]
            coordinates = scale(coordinates) if kind == "Point" else [scale(p) for p in coordinates]
        return {"type": kind, "coordinates": coordinates}
    if kind == "LineString":
        return {"type": kind, "coordinates": _arc_points(arcs, shapes)}
    if kind in ("MultiLineString", "Polygon"):
        return {"type": kind, "coordinates": [_arc_points(arcs, ring) for ring in shapes]}
    if kind == "MultiPolygon":
        return {"type": kind, "coordinates": [[_arc_points(arcs, ring) for ring in polygon] for polygon in shapes]}
    return None


def parse_topojson(text: str) -> ParsedData:
    """Decode every object of a TopoJSON topology into a list of GeoJSON-like features."""
    topology = json.loads(text)
    if topology.get("type") != "Topology":
        raise ConfigurationError("TopoJSON input must be a Topology object")
    arcs = _decode_arcs(topology)
    features: List[Dict[str, Any]] = []
    for object_name, obj in topology.get("objects", {}).items():
        geometries = obj.get("geometries", [obj]) if obj.get("type") == "GeometryCollection" else [obj]
        for geometry in geometries:
            features.append({
                "type": "Feature",
                "object": object_name,
                "id": geometry.get("id"),
                "properties": geometry.get("properties", {}),
                "geometry": _geometry(arcs, topology, geometry),
            })
    return ParsedData(data=features)


def parse_treejson(text: str, children_key: str = "children") -> ParsedData:
    """Flatten a nested tree depth first; each row records its `parent` row position and `depth`."""
    root = json.loads(text)
    rows: List[Dict[str, Any]] = []

    def _visit(node: Any, parent: int | None, depth: int) -> None:
        row = {key: value for key, value in node.items() if key != children_key} if isinstance(node, dict) else {"value": node}
        row["parent"] = None if parent is None else str(parent)
        row["depth"] = depth
        position = len(rows)
        rows.append(row)
        children = node.get(children_key, []) if isinstance(node, dict) else []
        for child in children:
            _visit(child, position, depth + 1)

    for node in root if isinstance(root, list) else [root]:
        _visit(node, None, 0)
    return ParsedData(data=rows)


PARSERS: Dict[str, Callable[[str], ParsedData]] = {
    "json": parse_json,
    "csv": parse_csv,
    "tsv": parse_tsv,
    "topojson": parse_topojson,
    "treejson": parse_treejson,
}


def parse_text(text: str, extension: str | None) -> ParsedData:
    parser = PARSERS.get((extension or "").lower().lstrip("."))
    if parser is None:
        raise UnsupportedExtensionError(extension)
    return parser(text)
