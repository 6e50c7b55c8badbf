"""Appearance asset model.

An :class:`Asset` is a named bag of typed :class:`AssetProperty` values.
The kinds of values a property may hold are fixed by :class:`PropertyKind`;
properties may additionally carry a single connected asset (texture maps
such as a bump map hang off their owning property this way).

Traversal goes through :class:`AssetVisitor`, which dispatches on the
property kind. :class:`AssetDumper` uses it to render property trees as
text for diagnostics.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

from ..errors import TemplateValidationError

__all__ = [
    "PropertyKind",
    "AssetProperty",
    "Asset",
    "APPEARANCE",
    "BUMP_MAP_PROPERTIES",
    "GRADIENT_SCHEMA",
    "find_bump_gradient_map",
    "asset_to_dict",
    "asset_from_dict",
    "AssetVisitor",
    "AssetDumper",
]

APPEARANCE = "appearance"

# bump map slot of the generic schema, pattern slot of the metal schema
BUMP_MAP_PROPERTIES = ("generic_bump_map", "metal_pattern_shader")
GRADIENT_SCHEMA = "GradientSchema"


class PropertyKind(Enum):
    STRING = "string"
    DOUBLE = "double"
    DISTANCE = "distance"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    REFERENCE = "reference"
    ASSET = "asset"
    LIST = "list"


def _check_value(kind: PropertyKind, value: Any) -> None:
    if value is None:
        return
    if kind is PropertyKind.STRING:
        ok = isinstance(value, str)
    elif kind in (PropertyKind.DOUBLE, PropertyKind.DISTANCE):
        ok = isinstance(value, (int, float)) and not isinstance(value, bool)
    elif kind is PropertyKind.BOOLEAN:
        ok = isinstance(value, bool)
    elif kind is PropertyKind.INTEGER:
        ok = isinstance(value, int) and not isinstance(value, bool)
    elif kind is PropertyKind.ASSET:
        ok = isinstance(value, Asset)
    elif kind is PropertyKind.LIST:
        ok = isinstance(value, list) and all(isinstance(v, AssetProperty) for v in value)
    else:
        # references hold no value of their own, only the connected asset
        ok = False
    if not ok:
        raise TypeError(f"{type(value).__name__} value is not valid for a {kind.value} property")


@dataclass
class AssetProperty:
    name: str
    kind: PropertyKind
    value: Any = None
    connected: Optional["Asset"] = None

    def __post_init__(self) -> None:
        self.kind = PropertyKind(self.kind)
        _check_value(self.kind, self.value)

    def accept(self, visitor: "AssetVisitor") -> Any:
        return visitor.visit(self)


@dataclass
class Asset:
    """A named collection of properties, e.g. an appearance or a texture map."""

    name: str
    asset_type: str = APPEARANCE
    properties: Dict[str, AssetProperty] = field(default_factory=dict)

    def __iter__(self) -> Iterator[AssetProperty]:
        return iter(self.properties.values())

    def __len__(self) -> int:
        return len(self.properties)

    def add(self, prop: AssetProperty) -> AssetProperty:
        self.properties[prop.name] = prop
        return prop

    def find(self, name: str) -> Optional[AssetProperty]:
        """Return the property called ``name`` or ``None``."""
        return self.properties.get(name)

    def get(self, name: str, kind: Optional[PropertyKind] = None) -> AssetProperty:
        """Return the property called ``name``.

        Raises:
            KeyError: If the asset has no such property
            TypeError: If ``kind`` is given and the property is of another kind
        """
        prop = self.properties.get(name)
        if prop is None:
            raise KeyError(f"Asset '{self.name}' has no property '{name}'")
        if kind is not None and prop.kind is not kind:
            raise TypeError(
                f"Property '{name}' of asset '{self.name}' is {prop.kind.value}, not {kind.value}"
            )
        return prop

    def set(self, name: str, value: Any, kind: Optional[PropertyKind] = None) -> None:
        """Assign ``value`` to an existing property, checking it fits the property kind."""
        prop = self.get(name, kind)
        _check_value(prop.kind, value)
        prop.value = value

    def accept(self, visitor: "AssetVisitor") -> Any:
        return visitor.visit_asset(self)


def find_bump_gradient_map(appearance: Optional[Asset]) -> Asset:
    """Return the gradient texture connected to the bump map slot of ``appearance``.

    Raises:
        ValueError: If ``appearance`` is missing or not an appearance asset
        TemplateValidationError: If no slot holds a gradient texture
    """
    if appearance is None:
        raise ValueError("appearance asset must not be None")
    if appearance.asset_type != APPEARANCE:
        raise ValueError(f"asset '{appearance.name}' is a {appearance.asset_type} asset, not an appearance")

    for slot in BUMP_MAP_PROPERTIES:
        prop = appearance.find(slot)
        if prop is None or prop.connected is None:
            continue
        schema = prop.connected.find("BaseSchema")
        if schema is not None and schema.value == GRADIENT_SCHEMA:
            return prop.connected
    raise TemplateValidationError(f"No bump gradient map found in asset '{appearance.name}'")


# ---------------------------------------------------------------------------
# plain data form, used by the YAML document store

def _property_to_dict(prop: AssetProperty) -> Dict[str, Any]:
    data: Dict[str, Any] = {"name": prop.name, "kind": prop.kind.value}
    if prop.kind is PropertyKind.ASSET and prop.value is not None:
        data["value"] = asset_to_dict(prop.value)
    elif prop.kind is PropertyKind.LIST and prop.value is not None:
        data["value"] = [_property_to_dict(item) for item in prop.value]
    elif prop.value is not None:
        data["value"] = prop.value
    if prop.connected is not None:
        data["connected"] = asset_to_dict(prop.connected)
    return data


def asset_to_dict(asset: Asset) -> Dict[str, Any]:
    return {
        "name": asset.name,
        "type": asset.asset_type,
        "properties": [_property_to_dict(prop) for prop in asset],
    }


def _property_from_dict(data: Dict[str, Any]) -> AssetProperty:
    try:
        name = data["name"]
        kind = PropertyKind(data["kind"])
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Invalid asset property entry: {data!r}") from exc
    value = data.get("value")
    if kind is PropertyKind.ASSET and value is not None:
        value = asset_from_dict(value)
    elif kind is PropertyKind.LIST and value is not None:
        value = [_property_from_dict(item) for item in value]
    elif kind in (PropertyKind.DOUBLE, PropertyKind.DISTANCE) and isinstance(value, int) \
            and not isinstance(value, bool):
        value = float(value)
    connected = data.get("connected")
    return AssetProperty(
        name=name,
        kind=kind,
        value=value,
        connected=asset_from_dict(connected) if connected is not None else None,
    )


def asset_from_dict(data: Dict[str, Any]) -> Asset:
    """Build an :class:`Asset` from the form produced by :func:`asset_to_dict`."""
    if not isinstance(data, dict) or "name" not in data:
        raise ValueError(f"Invalid asset entry: {data!r}")
    asset = Asset(name=str(data["name"]), asset_type=data.get("type", APPEARANCE))
    for entry in data.get("properties") or []:
        asset.add(_property_from_dict(entry))
    return asset


# ---------------------------------------------------------------------------
# traversal

class AssetVisitor:
    """Walks an asset tree, dispatching on property kind.

    Subclasses override ``visit_<kind>`` methods (``visit_string``,
    ``visit_reference``, ...); kinds without a handler go to
    :meth:`generic_visit`.
    """

    def visit_asset(self, asset: Asset) -> Any:
        for prop in asset:
            self.visit(prop)

    def visit(self, prop: AssetProperty) -> Any:
        handler = getattr(self, "visit_" + prop.kind.value, self.generic_visit)
        return handler(prop)

    def generic_visit(self, prop: AssetProperty) -> Any:
        if prop.kind is PropertyKind.ASSET and prop.value is not None:
            self.visit_asset(prop.value)
        elif prop.kind is PropertyKind.LIST and prop.value is not None:
            for item in prop.value:
                self.visit(item)
        if prop.connected is not None:
            self.visit_asset(prop.connected)


class AssetDumper(AssetVisitor):
    """Renders assets and materials as indented text."""

    indent = "  "

    def __init__(self, prefix: str = "") -> None:
        self.prefix = prefix
        self.lines: List[str] = []
        self._depth = 0

    def _emit(self, text: str) -> None:
        self.lines.append(self.prefix + self.indent * self._depth + text)

    def visit_asset(self, asset: Asset) -> None:
        self._emit(f'Asset "{asset.name}" ({asset.asset_type}, {len(asset)} properties)')
        self._depth += 1
        try:
            super().visit_asset(asset)
        finally:
            self._depth -= 1

    def generic_visit(self, prop: AssetProperty) -> None:
        if prop.kind is PropertyKind.STRING and prop.value is not None:
            shown = f' = "{prop.value}"'
        elif prop.kind in (PropertyKind.ASSET, PropertyKind.LIST, PropertyKind.REFERENCE) \
                or prop.value is None:
            shown = ""
        else:
            shown = f" = {prop.value!r}"
        self._emit(f"- {prop.name} [{prop.kind.value}]{shown}")
        self._depth += 1
        try:
            super().generic_visit(prop)
        finally:
            self._depth -= 1

    def dump(self, asset: Asset) -> str:
        self.lines = []
        self.visit_asset(asset)
        return "\n".join(self.lines)

    def dump_material(self, material: Any) -> str:
        """Dump a material record: identity, parameters and appearance tree."""
        self.lines = []
        self._emit(f'Material "{material.name}" (id {material.element_id})')
        self._depth += 1
        try:
            for key, value in sorted(material.parameters.items()):
                self._emit(f"{key} = {value!r}")
            if material.appearance is None:
                self._emit("no appearance asset")
            else:
                self.visit_asset(material.appearance)
        finally:
            self._depth -= 1
        return "\n".join(self.lines)
