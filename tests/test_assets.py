import pathlib
import sys

import pytest

sys.path.insert(0, str(pathlib.Path(__file__).resolve().parents[1] / "src"))

from gimba.errors import TemplateValidationError
from gimba.materials.assets import (
    Asset,
    AssetDumper,
    AssetProperty,
    AssetVisitor,
    PropertyKind,
    asset_from_dict,
    asset_to_dict,
    find_bump_gradient_map,
)
from gimba.materials.store import Material


def _gradient(schema="GradientSchema"):
    texture = Asset("Gradient", asset_type="texture")
    texture.add(AssetProperty("BaseSchema", PropertyKind.STRING, schema))
    texture.add(AssetProperty("texture_WAngle", PropertyKind.DOUBLE, 0.0))
    texture.add(AssetProperty("texture_URepeat", PropertyKind.BOOLEAN, False))
    return texture


def _appearance(slot="generic_bump_map", texture=None):
    appearance = Asset("Steel thread")
    appearance.add(AssetProperty("keyword", PropertyKind.STRING, "GIMBA:Steel"))
    appearance.add(AssetProperty("generic_glossiness", PropertyKind.INTEGER, 40))
    appearance.add(AssetProperty(slot, PropertyKind.REFERENCE, connected=texture if texture is not None else _gradient()))
    return appearance


class KindCounter(AssetVisitor):
    def __init__(self):
        self.kinds = []

    def generic_visit(self, prop):
        self.kinds.append(prop.kind)
        super().generic_visit(prop)


def test_property_values_are_type_checked():
    with pytest.raises(TypeError):
        AssetProperty("keyword", PropertyKind.STRING, 3)
    with pytest.raises(TypeError):
        AssetProperty("texture_ScaleLock", PropertyKind.BOOLEAN, 1)
    with pytest.raises(TypeError):
        AssetProperty("texture_WAngle", PropertyKind.DOUBLE, True)
    with pytest.raises(TypeError):
        AssetProperty("generic_bump_map", PropertyKind.REFERENCE, "Gradient")
    assert AssetProperty("texture_WAngle", PropertyKind.DOUBLE, 45).value == 45


def test_get_and_set():
    appearance = _appearance()
    assert appearance.find("missing") is None
    with pytest.raises(KeyError):
        appearance.get("missing")
    with pytest.raises(TypeError):
        appearance.get("keyword", PropertyKind.DOUBLE)
    appearance.set("keyword", "GIMBA:Steel:M8")
    assert appearance.get("keyword").value == "GIMBA:Steel:M8"
    with pytest.raises(TypeError):
        appearance.set("keyword", 8)


def test_bump_gradient_map_in_generic_and_metal_schema():
    texture = _gradient()
    assert find_bump_gradient_map(_appearance("generic_bump_map", texture)) is texture
    texture = _gradient()
    assert find_bump_gradient_map(_appearance("metal_pattern_shader", texture)) is texture


def test_bump_map_must_be_a_gradient():
    with pytest.raises(TemplateValidationError):
        find_bump_gradient_map(_appearance(texture=_gradient("NoiseSchema")))
    with pytest.raises(TemplateValidationError):
        find_bump_gradient_map(_appearance(slot="generic_diffuse"))
    with pytest.raises(ValueError):
        find_bump_gradient_map(None)
    with pytest.raises(ValueError):
        find_bump_gradient_map(_gradient())


def test_dict_round_trip_keeps_structure():
    appearance = _appearance()
    appearance.add(AssetProperty("layers", PropertyKind.LIST, [
        AssetProperty("layer", PropertyKind.ASSET, Asset("Coat", asset_type="layer")),
    ]))
    rebuilt = asset_from_dict(asset_to_dict(appearance))
    assert asset_to_dict(rebuilt) == asset_to_dict(appearance)
    assert rebuilt.get("layers").value[0].value.name == "Coat"
    assert find_bump_gradient_map(rebuilt).name == "Gradient"


def test_invalid_dict_entries():
    with pytest.raises(ValueError):
        asset_from_dict({"properties": []})
    with pytest.raises(ValueError):
        asset_from_dict({"name": "x", "properties": [{"name": "p", "kind": "colour"}]})


def test_visitor_dispatches_on_kind():
    counter = KindCounter()
    _appearance().accept(counter)
    assert counter.kinds == [
        PropertyKind.STRING,
        PropertyKind.INTEGER,
        PropertyKind.REFERENCE,
        PropertyKind.STRING,
        PropertyKind.DOUBLE,
        PropertyKind.BOOLEAN,
    ]


def test_dumper_renders_tree():
    text = AssetDumper().dump(_appearance())
    assert text.splitlines() == [
        'Asset "Steel thread" (appearance, 3 properties)',
        '  - keyword [string] = "GIMBA:Steel"',
        "  - generic_glossiness [integer] = 40",
        "  - generic_bump_map [reference]",
        '    Asset "Gradient" (texture, 3 properties)',
        '      - BaseSchema [string] = "GradientSchema"',
        "      - texture_WAngle [double] = 0.0",
        "      - texture_URepeat [boolean] = False",
    ]


def test_dump_material():
    material = Material("GIMBA - Steel - Thread template", _appearance(), {"url": "x"}, element_id=4)
    lines = AssetDumper(prefix="> ").dump_material(material).splitlines()
    assert lines[0] == '> Material "GIMBA - Steel - Thread template" (id 4)'
    assert lines[1] == ">   url = 'x'"
    assert lines[2] == '>   Asset "Steel thread" (appearance, 3 properties)'

    bare = Material("Concrete")
    assert AssetDumper().dump_material(bare).splitlines()[-1] == "  no appearance asset"
