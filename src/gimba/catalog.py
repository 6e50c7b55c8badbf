"""Type catalogs for the bolt and bolt assembly families.

A type catalog is a delimited text file; its header names each parameter
followed by a type tag understood by the CAD importer. Rows enumerate
geometry x length x shank x material.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from .config import DEFAULT_MATERIALS
from .errors import CatalogError
from .files import LocalTextFileSink, TextFileSink, WriteOutcome
from .geometry import GeometryTable, geometry_table
from .materials.naming import NameCodec, default_codec

__all__ = [
    "TYPE_LENGTH_MM",
    "TYPE_OTHER",
    "SHANK_MIN_LENGTH",
    "TypeRow",
    "format_number",
    "bolt_type_rows",
    "assembly_type_rows",
    "render_bolt_type_catalog",
    "render_assembly_type_catalog",
    "write_text",
    "write_bolt_type_catalog",
    "write_assembly_type_catalog",
]

logger = logging.getLogger(__name__)

TYPE_LENGTH_MM = "##LENGTH##MILLIMETERS"
TYPE_OTHER = "##OTHER##"

# bolts shorter than this are threaded all the way
SHANK_MIN_LENGTH = 50


@dataclass(frozen=True)
class TypeRow:
    name: str
    D: int
    length: float
    shank: bool
    material: str
    thread_material: str


def format_number(value: float) -> str:
    """Shortest text for ``value``; integral values lose their fraction.

    >>> format_number(100.0), format_number(1.75)
    ('100', '1.75')
    """
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def join_fields(fields: Sequence[str], delimiter: str) -> str:
    for text in fields:
        if delimiter in text:
            raise CatalogError(f"field {text!r} contains the delimiter {delimiter!r}")
    return delimiter.join(fields) + "\n"


def header_line(columns: Iterable[Tuple[str, str]], delimiter: str) -> str:
    """Header row; the first (type name) column is unnamed."""
    return join_fields([""] + [name + tag for name, tag in columns], delimiter)


def _shank_options(length: float) -> List[bool]:
    return [False, True] if length > SHANK_MIN_LENGTH else [False]


def bolt_type_rows(
    table: Optional[GeometryTable] = None,
    materials: Optional[Sequence[str]] = None,
    codec: NameCodec = default_codec,
) -> List[TypeRow]:
    """Rows of the bolt type catalog, one per geometry, length, shank and material."""
    table = table if table is not None else geometry_table()
    materials = list(materials) if materials is not None else list(DEFAULT_MATERIALS)
    rows: List[TypeRow] = []
    for bg in table:
        for length in bg.cls:
            for shank in _shank_options(length):
                for material in materials:
                    rows.append(TypeRow(
                        name="M{0} x {1}{2} {3}".format(
                            bg.D, format_number(length), " w/shank" if shank else "", material
                        ),
                        D=bg.D,
                        length=length,
                        shank=shank,
                        material=codec.encode_plain(material),
                        thread_material=codec.encode(material, bg.D),
                    ))
    return rows


def assembly_type_rows(
    table: Optional[GeometryTable] = None,
    materials: Optional[Sequence[str]] = None,
    codec: NameCodec = default_codec,
) -> List[TypeRow]:
    """Rows of the assembly type catalog, keyed by the default grip length."""
    table = table if table is not None else geometry_table()
    materials = list(materials) if materials is not None else list(DEFAULT_MATERIALS)
    rows: List[TypeRow] = []
    for bg in table:
        for shank in _shank_options(bg.dgl):
            for material in materials:
                rows.append(TypeRow(
                    name="M{0}{1} {2}".format(bg.D, " w/shank" if shank else "", material),
                    D=bg.D,
                    length=bg.dgl,
                    shank=shank,
                    material=codec.encode_plain(material),
                    thread_material=codec.encode(material, bg.D),
                ))
    return rows


def _render(rows: Iterable[TypeRow], length_column: str, delimiter: str) -> str:
    columns = [
        ("Nominal Diameter", TYPE_LENGTH_MM),
        (length_column, TYPE_LENGTH_MM),
        ("Shank", TYPE_OTHER),
        ("Material", TYPE_OTHER),
        ("Thread Material", TYPE_OTHER),
    ]
    parts = [header_line(columns, delimiter)]
    for row in rows:
        parts.append(join_fields([
            row.name,
            str(row.D),
            format_number(row.length),
            "1" if row.shank else "0",
            row.material,
            row.thread_material,
        ], delimiter))
    return "".join(parts)


def render_bolt_type_catalog(
    table: Optional[GeometryTable] = None,
    materials: Optional[Sequence[str]] = None,
    delimiter: str = ",",
) -> str:
    return _render(bolt_type_rows(table, materials), "Length", delimiter)


def render_assembly_type_catalog(
    table: Optional[GeometryTable] = None,
    materials: Optional[Sequence[str]] = None,
    delimiter: str = ",",
) -> str:
    return _render(assembly_type_rows(table, materials), "Grip Length", delimiter)


def write_text(
    path: Union[str, Path],
    text: str,
    overwrite: bool,
    sink: Optional[TextFileSink] = None,
) -> Tuple[str, WriteOutcome]:
    """Hand fully rendered ``text`` to ``sink`` in a single write."""
    sink = sink if sink is not None else LocalTextFileSink()
    logger.info("")
    logger.info("%s", path)
    outcome = sink.write(path, text, overwrite)
    logger.info("- %s", outcome.value)
    return text, outcome


def write_bolt_type_catalog(
    path: Union[str, Path],
    overwrite: bool,
    *,
    sink: Optional[TextFileSink] = None,
    table: Optional[GeometryTable] = None,
    materials: Optional[Sequence[str]] = None,
    delimiter: str = ",",
) -> Tuple[str, WriteOutcome]:
    """Write the bolt type catalog file; returns ``(text, outcome)``."""
    text = render_bolt_type_catalog(table, materials, delimiter)
    return write_text(path, text, overwrite, sink)


def write_assembly_type_catalog(
    path: Union[str, Path],
    overwrite: bool,
    *,
    sink: Optional[TextFileSink] = None,
    table: Optional[GeometryTable] = None,
    materials: Optional[Sequence[str]] = None,
    delimiter: str = ",",
) -> Tuple[str, WriteOutcome]:
    """Write the assembly type catalog file; returns ``(text, outcome)``."""
    text = render_assembly_type_catalog(table, materials, delimiter)
    return write_text(path, text, overwrite, sink)
