"""Lookup tables derived from the geometry registry.

* G2L  grip length to bolt length
* D2D  any integer diameter to the nearest supported nominal diameter
* MGeo geometry parameter dump, as delimited text and as an HTML table

Output groups bundle these with the type catalogs so a caller can pre-check
and write a whole group, one file at a time.
"""

from __future__ import annotations

import bisect
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from .catalog import (
    TYPE_LENGTH_MM,
    format_number,
    header_line,
    join_fields,
    write_assembly_type_catalog,
    write_bolt_type_catalog,
    write_text,
)
from .config import Settings
from .errors import CatalogError
from .files import LocalTextFileSink, TextFileSink, WriteOutcome
from .geometry import BoltGeometry, GeometryTable, geometry_table
from .messages import Summary, count_msg

__all__ = [
    "G2L_MAX_GRIP",
    "MGEO_COLUMNS",
    "OUTPUT_GROUPS",
    "grip_step",
    "grip_lengths",
    "min_bolt_length",
    "select_bolt_length",
    "g2l_rows",
    "nearest_diameter",
    "d2d_rows",
    "render_g2l_table",
    "render_d2d_table",
    "render_mgeo_table",
    "render_mgeo_html",
    "write_g2l_table",
    "write_d2d_table",
    "write_mgeo_table",
    "write_mgeo_html",
    "OutputStatus",
    "TableRun",
    "precheck_outputs",
    "write_outputs",
    "table_run_summary",
]

logger = logging.getLogger(__name__)

G2L_MAX_GRIP = 600

# (attribute, csv header, html header)
MGEO_COLUMNS: Tuple[Tuple[str, str, str], ...] = (
    ("D", "D", "D"),
    ("P", "P", "P"),
    ("H", "H", "H"),
    ("d2", "d2", "d<sub>2</sub>"),
    ("s", "s", "s"),
    ("k", "k", "k"),
    ("a", "a", "a"),
    ("b2", "b2", "b<sub>2</sub>"),
    ("b3", "b3", "b<sub>3</sub>"),
    ("b4", "b4", "b<sub>4</sub>"),
    ("du1", "du1", "d<sub>u1</sub>"),
    ("du2", "du2", "d<sub>u2</sub>"),
    ("u", "u", "u"),
    ("dh1", "dh1", "d<sub>h1</sub>"),
    ("dh2", "dh2", "d<sub>h2</sub>"),
    ("dh3", "dh3", "d<sub>h3</sub>"),
)

_TWO_DECIMALS = {"H", "d2"}


# ---------------------------------------------------------------------------
# grip to length

def grip_step(LG: int) -> int:
    """Sampling resolution of the grip length axis at ``LG``."""
    if LG < 23:
        return 2
    if LG < 100:
        return 5
    return 10


def grip_lengths(max_grip: int = G2L_MAX_GRIP) -> List[int]:
    """Sampled grip lengths in ``[0, max_grip]``.

    >>> grip_lengths()[:14]
    [0, 2, 4, 6, 8, 10, 12, 14, 16, 18, 20, 22, 25, 30]
    """
    return [LG for LG in range(max_grip + 1) if LG % grip_step(LG) == 0]


def min_bolt_length(bg: BoltGeometry, LG: float) -> float:
    """Bolt length needed to span grip ``LG``: grip plus two nut heights and two washers."""
    return LG + 2 * bg.k + 2 * bg.u


def select_bolt_length(bg: BoltGeometry, LG: float) -> Optional[float]:
    """Smallest customary length strictly greater than :func:`min_bolt_length`."""
    lmin = min_bolt_length(bg, LG)
    index = bisect.bisect_right(bg.cls, lmin)
    if index < len(bg.cls):
        return bg.cls[index]
    return None


def g2l_rows(table: Optional[GeometryTable] = None) -> List[Tuple[int, int, float]]:
    """``(D, LG, l)`` triples; grips no customary length can span are left out."""
    table = table if table is not None else geometry_table()
    rows = []
    for bg in table:
        for LG in grip_lengths():
            l = select_bolt_length(bg, LG)
            if l is not None:
                rows.append((bg.D, LG, l))
    return rows


def render_g2l_table(table: Optional[GeometryTable] = None, delimiter: str = ",") -> str:
    columns = [("D", TYPE_LENGTH_MM), ("LG", TYPE_LENGTH_MM), ("l", TYPE_LENGTH_MM)]
    parts = [header_line(columns, delimiter)]
    for D, LG, l in g2l_rows(table):
        parts.append(join_fields(
            [f"M{D} x ]{LG}[", str(D), str(LG), format_number(l)], delimiter
        ))
    return "".join(parts)


# ---------------------------------------------------------------------------
# diameter banding

def nearest_diameter(D: int, diameters: Sequence[int]) -> int:
    """Nominal diameter in ``diameters`` closest to ``D``.

    Equal distances resolve to the lower neighbour; values outside the
    range clamp to the smallest or largest entry.

    >>> nearest_diameter(7, [6, 8]), nearest_diameter(15, [14, 16, 18])
    (6, 14)
    """
    ordered = sorted(diameters)
    if not ordered:
        raise ValueError("no nominal diameters to choose from")
    index = bisect.bisect_left(ordered, D)
    if index < len(ordered) and ordered[index] == D:
        return D
    if index == 0:
        return ordered[0]
    if index == len(ordered):
        return ordered[-1]
    lower, upper = ordered[index - 1], ordered[index]
    return upper if upper - D < D - lower else lower


def d2d_rows(table: Optional[GeometryTable] = None) -> List[Tuple[int, int]]:
    """``(D, ND)`` for every integer diameter between the smallest and largest entry."""
    table = table if table is not None else geometry_table()
    diameters = table.diameters
    if not diameters:
        return []
    return [
        (D, nearest_diameter(D, diameters))
        for D in range(min(diameters), max(diameters) + 1)
    ]


def render_d2d_table(table: Optional[GeometryTable] = None, delimiter: str = ",") -> str:
    columns = [("ND", TYPE_LENGTH_MM), ("D", TYPE_LENGTH_MM)]
    parts = [header_line(columns, delimiter)]
    for D, ND in d2d_rows(table):
        parts.append(join_fields([f"D={D}", str(D), str(ND)], delimiter))
    return "".join(parts)


# ---------------------------------------------------------------------------
# geometry parameter dump

def _mgeo_value(bg: BoltGeometry, attribute: str) -> str:
    value = getattr(bg, attribute)
    if value is None:
        return ""
    if attribute in _TWO_DECIMALS:
        return f"{value:.2f}"
    return format_number(value)


def render_mgeo_table(table: Optional[GeometryTable] = None, delimiter: str = ",") -> str:
    table = table if table is not None else geometry_table()
    columns = [(csv_name, TYPE_LENGTH_MM) for _, csv_name, _ in MGEO_COLUMNS]
    parts = [header_line(columns, delimiter)]
    for bg in table:
        fields = [bg.name] + [_mgeo_value(bg, attr) for attr, _, _ in MGEO_COLUMNS]
        parts.append(join_fields(fields, delimiter))
    return "".join(parts)


def render_mgeo_html(table: Optional[GeometryTable] = None) -> str:
    table = table if table is not None else geometry_table()
    lines = ["<table>", "  <tr>", "    <th>Name</th>"]
    lines.extend(f"    <th>{html_name}</th>" for _, _, html_name in MGEO_COLUMNS)
    lines.append("  </tr>")
    for bg in table:
        lines.append("  <tr>")
        lines.append(f"    <td>{bg.name}</td>")
        lines.extend(f"    <td>{_mgeo_value(bg, attr)}</td>" for attr, _, _ in MGEO_COLUMNS)
        lines.append("  </tr>")
    lines.append("</table>")
    return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# writers

def write_g2l_table(
    path: Union[str, Path],
    overwrite: bool,
    *,
    sink: Optional[TextFileSink] = None,
    table: Optional[GeometryTable] = None,
    delimiter: str = ",",
) -> Tuple[str, WriteOutcome]:
    return write_text(path, render_g2l_table(table, delimiter), overwrite, sink)


def write_d2d_table(
    path: Union[str, Path],
    overwrite: bool,
    *,
    sink: Optional[TextFileSink] = None,
    table: Optional[GeometryTable] = None,
    delimiter: str = ",",
) -> Tuple[str, WriteOutcome]:
    return write_text(path, render_d2d_table(table, delimiter), overwrite, sink)


def write_mgeo_table(
    path: Union[str, Path],
    overwrite: bool,
    *,
    sink: Optional[TextFileSink] = None,
    table: Optional[GeometryTable] = None,
    delimiter: str = ",",
) -> Tuple[str, WriteOutcome]:
    return write_text(path, render_mgeo_table(table, delimiter), overwrite, sink)


def write_mgeo_html(
    path: Union[str, Path],
    overwrite: bool,
    *,
    sink: Optional[TextFileSink] = None,
    table: Optional[GeometryTable] = None,
    delimiter: str = ",",
) -> Tuple[str, WriteOutcome]:
    # the HTML dump has no delimiter; accepted so all writers share one signature
    return write_text(path, render_mgeo_html(table), overwrite, sink)


# ---------------------------------------------------------------------------
# output groups

Writer = Callable[..., Tuple[str, WriteOutcome]]

OUTPUT_GROUPS: Dict[str, Tuple[Tuple[str, Writer], ...]] = {
    "catalogs": (
        ("bolt_catalog", write_bolt_type_catalog),
        ("assembly_catalog", write_assembly_type_catalog),
    ),
    "lookup": (
        ("g2l_table", write_g2l_table),
        ("mgeo_table", write_mgeo_table),
        ("d2d_table", write_d2d_table),
    ),
    "html": (
        ("mgeo_html", write_mgeo_html),
    ),
}


@dataclass(frozen=True)
class OutputStatus:
    key: str
    path: Path
    exists: bool


@dataclass
class TableRun:
    """Per-file outcomes of writing one output group."""

    group: str
    outcomes: List[Tuple[Path, WriteOutcome]] = field(default_factory=list)

    def count(self, outcome: WriteOutcome) -> int:
        return sum(1 for _, o in self.outcomes if o is outcome)

    @property
    def created(self) -> int:
        return self.count(WriteOutcome.CREATED)

    @property
    def overwritten(self) -> int:
        return self.count(WriteOutcome.OVERWRITTEN)

    @property
    def skipped(self) -> int:
        return self.count(WriteOutcome.SKIPPED)

    @property
    def failed(self) -> int:
        return self.count(WriteOutcome.FAILED)


def _group(group: str) -> Tuple[Tuple[str, Writer], ...]:
    try:
        return OUTPUT_GROUPS[group]
    except KeyError:
        raise KeyError(f"Unknown output group '{group}'. Available: {sorted(OUTPUT_GROUPS)}") from None


def precheck_outputs(
    group: str,
    directory: Union[str, Path],
    settings: Optional[Settings] = None,
) -> List[OutputStatus]:
    """Which files of ``group`` already exist in ``directory``."""
    settings = settings if settings is not None else Settings()
    statuses = []
    for key, _ in _group(group):
        path = settings.output_path(Path(directory), key)
        statuses.append(OutputStatus(key, path, path.exists()))
    return statuses


def write_outputs(
    group: str,
    directory: Union[str, Path],
    overwrite: bool,
    *,
    settings: Optional[Settings] = None,
    sink: Optional[TextFileSink] = None,
    table: Optional[GeometryTable] = None,
) -> TableRun:
    """Write every file of ``group``.

    A file that cannot be written is recorded as ``FAILED``; the remaining
    files of the group are still attempted.
    """
    settings = settings if settings is not None else Settings()
    sink = sink if sink is not None else LocalTextFileSink()
    table = table if table is not None else geometry_table()
    run = TableRun(group)
    for key, writer in _group(group):
        path = settings.output_path(Path(directory), key)
        kwargs = dict(sink=sink, table=table, delimiter=settings.delimiter)
        if key in ("bolt_catalog", "assembly_catalog"):
            kwargs["materials"] = settings.materials
        try:
            _, outcome = writer(path, overwrite, **kwargs)
        except (OSError, CatalogError):
            logger.exception("Failed to write %s", path)
            outcome = WriteOutcome.FAILED
        run.outcomes.append((path, outcome))
    return run


def table_run_summary(run: TableRun) -> Summary:
    """Wrap-up text for a table run."""
    details = ["Summary of file operations performed:"]
    details.extend(f"* {os.path.basename(path)} ({outcome.value})" for path, outcome in run.outcomes)
    if run.created + run.overwritten + run.failed == 0 and run.skipped > 0:
        return Summary(
            title="Operation Completed",
            instruction="All output files were present. Nothing to be done.",
            details=["If you want to recreate the files, re-run with --overwrite."] + details,
        )
    parts = []
    if run.created:
        parts.append(count_msg(run.created, "{0} file{1} created."))
    if run.overwritten:
        parts.append(count_msg(run.overwritten, "{0} file{1} overwritten."))
    if run.skipped:
        parts.append(count_msg(run.skipped, "{0} file{1} skipped."))
    if run.failed:
        parts.append(count_msg(run.failed, "{0} error{1} occurred."))
    title = "Operation Completed with Errors" if run.failed else "Operation Completed"
    return Summary(title=title, instruction=" ".join(parts), details=details, warning=run.failed > 0)
