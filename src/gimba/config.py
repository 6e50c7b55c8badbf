"""User settings for catalog generation and material passes.

Settings are read from a YAML file. Search order:
    1. Explicit path passed to :func:`load_settings`
    2. File named by the GIMBA_CONFIG environment variable
    3. User config file (~/.config/gimba/gimba.yaml)
    4. Built-in defaults

Example file::

    materials:
      - Steel galvanized
      - Stainless steel
    delimiter: ";"
    outputs:
      g2l_table: Grip to Length.csv
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

__all__ = [
    "GIMBA_CONFIG",
    "DEFAULT_MATERIALS",
    "DEFAULT_OUTPUTS",
    "Settings",
    "load_settings",
]

GIMBA_CONFIG = "GIMBA_CONFIG"

DEFAULT_MATERIALS = ("Steel galvanized",)

DEFAULT_OUTPUTS: Dict[str, str] = {
    "bolt_catalog": "Generic ISO Metric Bolt.txt",
    "assembly_catalog": "Generic ISO Metric Bolt Assembly.txt",
    "g2l_table": "GIMBA G2L.csv",
    "mgeo_table": "GIMBA MGeo.csv",
    "d2d_table": "GIMBA D2D.csv",
    "mgeo_html": "GIMBA MGeo.html",
}

_VALID_DELIMITERS = {",", ";"}


@dataclass
class Settings:
    """Resolved settings."""

    materials: List[str] = field(default_factory=lambda: list(DEFAULT_MATERIALS))
    delimiter: str = ","
    outputs: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_OUTPUTS))
    log_dir: Optional[Path] = None
    source_path: Optional[Path] = None

    def output_path(self, directory: Path, key: str) -> Path:
        return Path(directory) / self.outputs[key]


def _user_config_file() -> Path:
    if sys.platform == "win32":
        config_base = Path(os.environ.get("APPDATA", "~")).expanduser()
    else:
        config_base = Path.home() / ".config"
    return config_base / "gimba" / "gimba.yaml"


def _settings_from_dict(raw: Dict[str, Any], source: Path) -> Settings:
    known = {"materials", "delimiter", "outputs", "log_dir"}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ValueError(f"Unknown settings {unknown} in {source}")

    settings = Settings(source_path=source)

    materials = raw.get("materials")
    if materials is not None:
        if not isinstance(materials, list) or not all(isinstance(m, str) and m for m in materials):
            raise ValueError(f"'materials' in {source} must be a list of non-empty strings")
        settings.materials = list(materials)

    delimiter = raw.get("delimiter")
    if delimiter is not None:
        if delimiter not in _VALID_DELIMITERS:
            raise ValueError(f"'delimiter' in {source} must be one of {sorted(_VALID_DELIMITERS)}")
        settings.delimiter = delimiter

    clashing = [m for m in settings.materials if settings.delimiter in m]
    if clashing:
        raise ValueError(
            f"Material names {clashing} in {source} contain the delimiter '{settings.delimiter}'"
        )

    outputs = raw.get("outputs")
    if outputs is not None:
        if not isinstance(outputs, dict):
            raise ValueError(f"'outputs' in {source} must be a mapping")
        bad = sorted(set(outputs) - set(DEFAULT_OUTPUTS))
        if bad:
            raise ValueError(f"Unknown output keys {bad} in {source}")
        settings.outputs.update({key: str(value) for key, value in outputs.items()})

    log_dir = raw.get("log_dir")
    if log_dir:
        settings.log_dir = Path(log_dir).expanduser()

    return settings


def load_settings(path: Optional[Path] = None) -> Settings:
    """Load settings, falling back to defaults when no file is found.

    Raises:
        FileNotFoundError: If ``path`` (or $GIMBA_CONFIG) names a missing file
        ValueError: If the file holds unknown keys or invalid values
    """
    if path is None:
        env_path = os.environ.get(GIMBA_CONFIG)
        if env_path:
            path = Path(env_path).expanduser()
    if path is not None:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Settings file not found: {path}")
    else:
        candidate = _user_config_file()
        if not candidate.exists():
            return Settings()
        path = candidate

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Invalid settings file {path}: expected mapping at root")
    return _settings_from_dict(raw, path)
