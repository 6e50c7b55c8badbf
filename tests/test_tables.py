import pathlib
import sys

import pytest

sys.path.insert(0, str(pathlib.Path(__file__).resolve().parents[1] / "src"))

from gimba.config import Settings
from gimba.files import WriteOutcome
from gimba.geometry import BoltGeometry, GeometryTable, get_bolt_geometry
from gimba.tables import (
    MGEO_COLUMNS,
    d2d_rows,
    g2l_rows,
    grip_lengths,
    grip_step,
    min_bolt_length,
    nearest_diameter,
    precheck_outputs,
    render_d2d_table,
    render_g2l_table,
    render_mgeo_html,
    render_mgeo_table,
    select_bolt_length,
    table_run_summary,
    write_outputs,
)


class FailingSink:
    """Raises for one file name, writes nothing otherwise."""

    def __init__(self, failing_name):
        self.failing_name = failing_name
        self.written = []

    def write(self, path, content, overwrite):
        if pathlib.Path(path).name == self.failing_name:
            raise PermissionError(f"cannot write {path}")
        self.written.append(pathlib.Path(path).name)
        return WriteOutcome.CREATED


def test_grip_sampling_resolution():
    assert grip_step(0) == 2 and grip_step(22) == 2
    assert grip_step(23) == 5 and grip_step(99) == 5
    assert grip_step(100) == 10 and grip_step(600) == 10
    grips = grip_lengths()
    assert grips[0] == 0 and grips[-1] == 600
    assert 22 in grips and 23 not in grips and 25 in grips
    assert 95 in grips and 105 not in grips and 110 in grips
    assert all(LG % grip_step(LG) == 0 for LG in grips)


def test_m6_at_zero_grip_selects_12():
    bg = get_bolt_geometry(6)
    assert min_bolt_length(bg, 0) == pytest.approx(11.2)
    assert select_bolt_length(bg, 0) == 12


def test_selection_is_strictly_greater():
    bg = BoltGeometry(D=6, P=1, s=10, k=4, a=3, du1=6.4, du2=12, u=1, dgl=50, cls=(10, 12, 14))
    # lmin = 0 + 8 + 2 = 10, so 10 itself does not qualify
    assert select_bolt_length(bg, 0) == 12
    assert select_bolt_length(bg, 2) == 14
    assert select_bolt_length(bg, 4) is None


def test_g2l_rows_skip_unreachable_grips():
    rows = g2l_rows()
    m64 = [row for row in rows if row[0] == 64]
    # M64 has a single customary length of 300 mm: lmin = LG + 80 + 18
    assert m64
    assert all(l == 300 for _, _, l in m64)
    assert max(LG for _, LG, _ in m64) == 200


def test_g2l_table_lines():
    lines = render_g2l_table().splitlines()
    assert lines[0] == ",D##LENGTH##MILLIMETERS,LG##LENGTH##MILLIMETERS,l##LENGTH##MILLIMETERS"
    assert lines[1] == "M3 x ]0[,3,0,6"
    assert "M6 x ]0[,6,0,12" in lines


def test_nearest_diameter_ties_go_low():
    assert nearest_diameter(7, [6, 8]) == 6
    assert nearest_diameter(6, [6, 8]) == 6
    assert nearest_diameter(26, [24, 27]) == 27
    assert nearest_diameter(25, [24, 27]) == 24
    assert nearest_diameter(60, [56, 64]) == 56
    assert nearest_diameter(61, [56, 64]) == 64
    assert nearest_diameter(1, [3, 4]) == 3
    assert nearest_diameter(70, [56, 64]) == 64
    with pytest.raises(ValueError):
        nearest_diameter(7, [])


def test_d2d_rows_cover_3_to_64():
    rows = d2d_rows()
    assert [D for D, _ in rows] == list(range(3, 65))
    banding = dict(rows)
    assert banding[7] == 6
    assert banding[12] == 12
    assert banding[13] == 12
    assert banding[28] == 27
    assert banding[29] == 30


def test_d2d_table_lines():
    lines = render_d2d_table().splitlines()
    assert lines[0] == ",ND##LENGTH##MILLIMETERS,D##LENGTH##MILLIMETERS"
    assert "D=7,7,6" in lines
    assert lines[-1] == "D=64,64,64"


def test_mgeo_table():
    lines = render_mgeo_table().splitlines()
    header = lines[0].split(",")
    assert header[0] == ""
    assert [h.replace("##LENGTH##MILLIMETERS", "") for h in header[1:]] == [c[1] for c in MGEO_COLUMNS]
    m12 = next(line for line in lines if line.startswith("M12,"))
    fields = m12.split(",")
    assert fields[:5] == ["M12", "12", "1.75", "1.52", "10.86"]
    assert fields[-3:] == ["13", "13.5", "14.5"]
    assert len(lines) == 25


def test_mgeo_table_blank_for_missing_clearance_holes():
    table = GeometryTable([
        BoltGeometry(D=6, P=1, s=10, k=4, a=3, du1=6.4, du2=12, u=1.6, dgl=50, cls=(12,)),
    ])
    line = render_mgeo_table(table).splitlines()[1]
    assert line.endswith(",1.6,,,")


def test_mgeo_html():
    html = render_mgeo_html()
    assert html.startswith("<table>\n  <tr>\n    <th>Name</th>\n    <th>D</th>\n")
    assert "<th>d<sub>2</sub></th>" in html
    assert "</td>\n    <th>" not in html
    assert "    <td>M12</td>\n    <td>12</td>\n    <td>1.75</td>\n    <td>1.52</td>\n" in html
    assert html.count("<tr>") == 25
    assert html.endswith("</table>\n")


def test_precheck_outputs(tmp_path):
    (tmp_path / "GIMBA G2L.csv").write_text("old", encoding="utf-8")
    statuses = precheck_outputs("lookup", tmp_path)
    assert [s.path.name for s in statuses] == ["GIMBA G2L.csv", "GIMBA MGeo.csv", "GIMBA D2D.csv"]
    assert [s.exists for s in statuses] == [True, False, False]
    with pytest.raises(KeyError):
        precheck_outputs("everything", tmp_path)


def test_write_outputs_creates_then_skips(tmp_path):
    run = write_outputs("catalogs", tmp_path, False)
    assert (run.created, run.skipped, run.failed) == (2, 0, 0)
    assert (tmp_path / "Generic ISO Metric Bolt.txt").exists()
    assert (tmp_path / "Generic ISO Metric Bolt Assembly.txt").exists()

    run = write_outputs("catalogs", tmp_path, False)
    assert (run.created, run.skipped) == (0, 2)
    summary = table_run_summary(run)
    assert summary.instruction == "All output files were present. Nothing to be done."
    assert not summary.warning

    run = write_outputs("catalogs", tmp_path, True)
    assert run.overwritten == 2


def test_write_outputs_isolates_failing_file(tmp_path):
    sink = FailingSink("GIMBA MGeo.csv")
    run = write_outputs("lookup", tmp_path, False, sink=sink)
    assert sink.written == ["GIMBA G2L.csv", "GIMBA D2D.csv"]
    assert (run.created, run.failed) == (2, 1)
    summary = table_run_summary(run)
    assert summary.warning
    assert summary.title == "Operation Completed with Errors"
    assert "2 files created." in summary.instruction
    assert "1 error occurred." in summary.instruction
    assert "* GIMBA MGeo.csv (failed)" in summary.details


def test_write_outputs_honours_settings(tmp_path):
    settings = Settings(delimiter=";", outputs={"mgeo_html": "params.html"})
    run = write_outputs("html", tmp_path, False, settings=settings)
    assert run.created == 1
    assert (tmp_path / "params.html").read_text(encoding="utf-8").startswith("<table>")

    settings = Settings(delimiter=";")
    write_outputs("lookup", tmp_path, False, settings=settings)
    first = (tmp_path / "GIMBA D2D.csv").read_text(encoding="utf-8").splitlines()[1]
    assert first == "D=3;3;3"


def test_write_outputs_records_bad_catalog_field_as_failed(tmp_path):
    settings = Settings(materials=["Steel, galvanized", "Brass"])
    run = write_outputs("catalogs", tmp_path, False, settings=settings)
    assert (run.created, run.failed) == (0, 2)
    assert [outcome for _, outcome in run.outcomes] == [WriteOutcome.FAILED, WriteOutcome.FAILED]
    assert not (tmp_path / "Generic ISO Metric Bolt.txt").exists()

    settings = Settings(materials=["Steel, galvanized"], delimiter=";")
    run = write_outputs("catalogs", tmp_path, False, settings=settings)
    assert (run.created, run.failed) == (2, 0)
