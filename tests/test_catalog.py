import pathlib
import sys

import pytest

sys.path.insert(0, str(pathlib.Path(__file__).resolve().parents[1] / "src"))

from gimba.catalog import (
    TYPE_LENGTH_MM,
    assembly_type_rows,
    bolt_type_rows,
    format_number,
    render_assembly_type_catalog,
    render_bolt_type_catalog,
    write_bolt_type_catalog,
)
from gimba.errors import CatalogError
from gimba.files import WriteOutcome
from gimba.geometry import get_bolt_geometry


class MemorySink:
    def __init__(self):
        self.files = {}

    def write(self, path, content, overwrite):
        existed = path in self.files
        if existed and not overwrite:
            return WriteOutcome.SKIPPED
        self.files[path] = content
        return WriteOutcome.OVERWRITTEN if existed else WriteOutcome.CREATED


def test_format_number():
    assert format_number(100) == "100"
    assert format_number(100.0) == "100"
    assert format_number(1.75) == "1.75"
    assert format_number(0.5) == "0.5"


def test_bolt_rows_shank_only_above_50():
    rows = bolt_type_rows()
    assert rows
    for row in rows:
        if row.shank:
            assert row.length > 50
    m12 = [row for row in rows if row.D == 12]
    plain = [row for row in m12 if not row.shank]
    shank = [row for row in m12 if row.shank]
    bg = get_bolt_geometry(12)
    assert len(plain) == len(bg.cls)
    assert len(shank) == len([l for l in bg.cls if l > 50])


def test_bolt_rows_cover_every_material():
    materials = ["Steel galvanized", "Stainless steel"]
    rows = bolt_type_rows(materials=materials)
    single = bolt_type_rows(materials=materials[:1])
    assert len(rows) == 2 * len(single)
    row = next(r for r in rows if r.D == 8 and r.length == 60 and r.shank and r.material.endswith("steel"))
    assert row.name == "M8 x 60 w/shank Stainless steel"
    assert row.material == "GIMBA - Stainless steel"
    assert row.thread_material == "GIMBA - Stainless steel - M8 thread"


def test_assembly_row_for_m12():
    rows = [row for row in assembly_type_rows() if row.D == 12]
    assert [row.shank for row in rows] == [False, True]
    assert all(row.length == 100 for row in rows)
    assert rows[0].name == "M12 Steel galvanized"
    assert rows[1].name == "M12 w/shank Steel galvanized"


def test_assembly_without_shank_when_grip_is_short():
    rows = [row for row in assembly_type_rows() if row.D == 3]
    assert [row.shank for row in rows] == [False]


def test_rendered_bolt_catalog():
    text = render_bolt_type_catalog()
    lines = text.splitlines()
    assert lines[0] == (
        ",Nominal Diameter" + TYPE_LENGTH_MM
        + ",Length" + TYPE_LENGTH_MM
        + ",Shank##OTHER##,Material##OTHER##,Thread Material##OTHER##"
    )
    assert "M3 x 3 Steel galvanized,3,3,0,GIMBA - Steel galvanized,GIMBA - Steel galvanized - M3 thread" in lines
    assert "M3 x 60 w/shank Steel galvanized,3,60,1,GIMBA - Steel galvanized,GIMBA - Steel galvanized - M3 thread" in lines
    assert text.endswith("\n")


def test_rendered_assembly_catalog_with_semicolons():
    lines = render_assembly_type_catalog(delimiter=";").splitlines()
    assert lines[0].startswith(";Nominal Diameter" + TYPE_LENGTH_MM + ";Grip Length")
    assert "M12 w/shank Steel galvanized;12;100;1;GIMBA - Steel galvanized;GIMBA - Steel galvanized - M12 thread" in lines


def test_delimiter_inside_field_is_rejected():
    with pytest.raises(CatalogError):
        render_bolt_type_catalog(materials=["Steel, galvanized"])


def test_writer_returns_text_and_outcome():
    sink = MemorySink()
    text, outcome = write_bolt_type_catalog("bolts.txt", False, sink=sink)
    assert outcome is WriteOutcome.CREATED
    assert sink.files["bolts.txt"] == text

    _, outcome = write_bolt_type_catalog("bolts.txt", False, sink=sink)
    assert outcome is WriteOutcome.SKIPPED

    _, outcome = write_bolt_type_catalog("bolts.txt", True, sink=sink)
    assert outcome is WriteOutcome.OVERWRITTEN
