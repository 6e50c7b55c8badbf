"""ISO metric bolt and thread geometries.

The per-diameter base parameters are read from a YAML data file; derived
dimensions are computed once when an entry is constructed. The registry
(:class:`GeometryTable`) is built on first access and cached for the
lifetime of the process.

Data search order (unless an explicit path is given):
    1. Directories from the GIMBA_BOLT_DATA environment variable
    2. User config directory (~/.config/gimba/)
    3. Bundled data

Example:
    >>> from gimba.geometry import get_bolt_geometry
    >>> round(get_bolt_geometry(12).d2, 3)
    10.863
"""

from __future__ import annotations

import math
import os
import sys
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

import yaml

from .errors import CatalogError, DuplicateDiameterError

__all__ = [
    "GIMBA_BOLT_DATA",
    "BoltGeometry",
    "ThreadGeometry",
    "GeometryTable",
    "build_geometry_table",
    "geometry_table",
    "bolt_geometries",
    "thread_geometries",
    "get_bolt_geometry",
    "clear_cache",
]

# Environment variable name for custom data paths
GIMBA_BOLT_DATA = "GIMBA_BOLT_DATA"

_BUNDLED_DATA_DIR = Path(__file__).parent / "data"
_DATA_FILENAME = "iso_metric_coarse.yaml"

_REQUIRED_FIELDS = ("D", "P", "s", "k", "a", "du1", "du2", "u", "dgl", "cls")
_OPTIONAL_FIELDS = ("dh1", "dh2", "dh3")


@dataclass(frozen=True)
class BoltGeometry:
    """ISO metric bolt assembly dimensions (all millimeters).

    Base fields are the catalog constants; ``d2``, ``H``, ``C``, ``beta``,
    ``b2``, ``b3`` and ``b4`` are derived from them on construction.
    """

    D: int
    P: float
    s: float
    k: float
    a: float
    du1: float
    du2: float
    u: float
    dgl: float
    cls: Tuple[float, ...]
    dh1: Optional[float] = None
    dh2: Optional[float] = None
    dh3: Optional[float] = None

    # effective pitch diameter
    d2: float = field(init=False)
    # thread height
    H: float = field(init=False)
    # nominal circumference
    C: float = field(init=False)
    # thread helix angle in degrees
    beta: float = field(init=False)
    # minimum thread lengths for l < 125, l < 200 and l >= 200
    b2: float = field(init=False)
    b3: float = field(init=False)
    b4: float = field(init=False)

    def __post_init__(self) -> None:
        cls = tuple(self.cls)
        if not cls:
            raise ValueError(f"M{self.D}: customary lengths must not be empty")
        if any(b <= a for a, b in zip(cls, cls[1:])):
            raise ValueError(f"M{self.D}: customary lengths must be strictly ascending")
        object.__setattr__(self, "cls", cls)

        D, P = self.D, self.P
        circumference = math.pi * D
        object.__setattr__(self, "d2", D - 3.0 * math.sqrt(3.0) / 8.0 * P)
        object.__setattr__(self, "H", math.sqrt(3.0) / 2.0 * P)
        object.__setattr__(self, "C", circumference)
        object.__setattr__(self, "beta", math.degrees(math.atan2(P, circumference)))
        object.__setattr__(self, "b2", 2 * D + 6)
        object.__setattr__(self, "b3", 2 * D + 12)
        object.__setattr__(self, "b4", 2 * D + 25)

    @property
    def name(self) -> str:
        return f"M{self.D}"

    def thread(self) -> "ThreadGeometry":
        return ThreadGeometry(self.D, self.P)

    def __str__(self) -> str:
        return f"[{self.name} P={self.P:g}, C={self.C:.3f}, beta={self.beta:.3f}]"


@dataclass(frozen=True)
class ThreadGeometry:
    """Thread-facing subset of a bolt geometry."""

    D: int
    P: float
    u: float = field(init=False)
    beta: float = field(init=False)

    def __post_init__(self) -> None:
        circumference = math.pi * self.D
        object.__setattr__(self, "u", circumference)
        object.__setattr__(self, "beta", math.degrees(math.atan2(self.P, circumference)))

    @property
    def name(self) -> str:
        return f"M{self.D}"


class GeometryTable:
    """Read-only registry of bolt geometries keyed by nominal diameter.

    Entries keep insertion order. Registering a diameter twice raises
    :class:`DuplicateDiameterError`.
    """

    def __init__(self, geometries: Iterable[BoltGeometry] = ()):
        self._entries: Dict[int, BoltGeometry] = {}
        for geometry in geometries:
            if geometry.D in self._entries:
                raise DuplicateDiameterError(f"nominal diameter M{geometry.D} registered twice")
            self._entries[geometry.D] = geometry
        self._threads = tuple(g.thread() for g in self._entries.values())

    def __iter__(self) -> Iterator[BoltGeometry]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, D: object) -> bool:
        return D in self._entries

    @property
    def diameters(self) -> List[int]:
        return list(self._entries)

    def get(self, D: int) -> BoltGeometry:
        """Return the geometry for nominal diameter ``D``.

        Raises:
            KeyError: If no geometry is registered for ``D``
        """
        try:
            return self._entries[D]
        except KeyError:
            raise KeyError(
                f"No bolt geometry for M{D}. Available diameters: {self.diameters}"
            ) from None

    def bolt_geometries(self) -> List[BoltGeometry]:
        return list(self._entries.values())

    def thread_geometries(self) -> List[ThreadGeometry]:
        return list(self._threads)


def _data_dirs() -> Tuple[Path, ...]:
    """Return data directories to search, in priority order."""
    dirs: List[Path] = []

    env_path = os.environ.get(GIMBA_BOLT_DATA)
    if env_path:
        sep = ";" if sys.platform == "win32" else ":"
        for p in env_path.split(sep):
            p = p.strip()
            if p:
                path = Path(p).expanduser().resolve()
                if path.is_dir():
                    dirs.append(path)

    if sys.platform == "win32":
        config_base = Path(os.environ.get("APPDATA", "~")).expanduser()
    else:
        config_base = Path.home() / ".config"
    user_config = config_base / "gimba"
    if user_config.is_dir():
        dirs.append(user_config)

    if _BUNDLED_DATA_DIR.is_dir():
        dirs.append(_BUNDLED_DATA_DIR)

    return tuple(dirs)


def _locate_data(custom_path: Optional[Path]) -> Path:
    if custom_path is not None:
        if not custom_path.exists():
            raise FileNotFoundError(f"Custom geometry data not found: {custom_path}")
        return custom_path

    for data_dir in _data_dirs():
        path = data_dir / _DATA_FILENAME
        if path.exists():
            return path

    searched = [str(d) for d in _data_dirs()]
    raise FileNotFoundError(
        f"No geometry data file '{_DATA_FILENAME}' found.\n"
        f"Searched directories: {searched}"
    )


def _load_yaml(path: Path) -> Dict[str, Any]:
    """Load and validate a geometry data file."""
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict):
        raise CatalogError(f"Invalid geometry data in {path}: expected dict at root")

    schema_version = data.get("schema_version", "1.0")
    if not isinstance(schema_version, str) or not schema_version.startswith("1."):
        raise CatalogError(
            f"Unsupported schema version '{schema_version}' in {path}. "
            f"Expected version 1.x"
        )

    sizes = data.get("sizes")
    if not isinstance(sizes, list) or not sizes:
        raise CatalogError(f"Geometry data {path} missing required 'sizes' list")

    data["_source_path"] = str(path)
    return data


def _geometry_from_entry(entry: Any, source: str) -> BoltGeometry:
    if not isinstance(entry, dict):
        raise CatalogError(f"Invalid size entry in {source}: {entry!r}")
    missing = [name for name in _REQUIRED_FIELDS if name not in entry]
    if missing:
        raise CatalogError(f"Size entry {entry.get('D', '?')} in {source} missing fields {missing}")
    kwargs = {name: entry[name] for name in _REQUIRED_FIELDS}
    kwargs["D"] = int(entry["D"])
    kwargs["cls"] = tuple(entry["cls"])
    for name in _OPTIONAL_FIELDS:
        if entry.get(name) is not None:
            kwargs[name] = entry[name]
    try:
        return BoltGeometry(**kwargs)
    except ValueError as exc:
        raise CatalogError(f"{source}: {exc}") from exc


def build_geometry_table(custom_path: Optional[Path] = None) -> GeometryTable:
    """Build a fresh :class:`GeometryTable` from the geometry data file.

    Args:
        custom_path: Optional explicit path to a YAML data file

    Raises:
        FileNotFoundError: If no data file is found
        CatalogError: If the data file is malformed
        DuplicateDiameterError: If a diameter appears twice
    """
    path = _locate_data(custom_path)
    data = _load_yaml(path)
    source = data["_source_path"]
    return GeometryTable(_geometry_from_entry(entry, source) for entry in data["sizes"])


@lru_cache(maxsize=8)
def _cached_table(custom_path_str: Optional[str]) -> GeometryTable:
    custom_path = Path(custom_path_str) if custom_path_str else None
    return build_geometry_table(custom_path)


def geometry_table(custom_path: Optional[Path] = None) -> GeometryTable:
    """Return the process-wide geometry table, building it on first call."""
    return _cached_table(str(custom_path) if custom_path else None)


def bolt_geometries(custom_path: Optional[Path] = None) -> List[BoltGeometry]:
    return geometry_table(custom_path).bolt_geometries()


def thread_geometries(custom_path: Optional[Path] = None) -> List[ThreadGeometry]:
    return geometry_table(custom_path).thread_geometries()


def get_bolt_geometry(D: int, custom_path: Optional[Path] = None) -> BoltGeometry:
    return geometry_table(custom_path).get(D)


def clear_cache() -> None:
    """Drop the cached geometry table.

    Call this if you modify external data files and want to reload.
    """
    _cached_table.cache_clear()
