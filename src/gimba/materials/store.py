"""Material records and the stores that hold them.

:class:`ArtifactStore` is the narrow interface the reconciliation engine
talks to. :class:`DocumentStore` implements it over a YAML document so
thread materials can be managed without a CAD host.

Document file layout::

    title: GIMBA
    materials:
      - name: GIMBA - Steel galvanized - Thread template
        id: 1
        parameters: {manufacturer: ..., description: ...}
        appearance: {name: ..., type: appearance, properties: [...]}
"""

from __future__ import annotations

import copy
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Pattern, Protocol, Union

import yaml

from ..errors import StoreError, TemplateValidationError
from ..geometry import BoltGeometry
from .assets import Asset, PropertyKind, asset_from_dict, asset_to_dict, find_bump_gradient_map

__all__ = [
    "MANUFACTURER",
    "REPO_URL",
    "HELP_URL",
    "MM_PER_INCH",
    "Material",
    "ThreadMaterialEdits",
    "thread_material_edits",
    "NamePattern",
    "ArtifactStore",
    "DocumentStore",
]

logger = logging.getLogger(__name__)

MANUFACTURER = "Matthias Wolff"
REPO_URL = "https://github.com/matthias-wolff/Revit-Generic-ISO-Metric-Bolt-Assembly"
HELP_URL = "https://matthias-wolff.github.io/Revit-Generic-ISO-Metric-Bolt-Assembly/GIMBA.html"

# texture scales are stored in inches
MM_PER_INCH = 25.4

NamePattern = Union[str, Pattern[str], None]


@dataclass
class Material:
    """A material record: identity, text parameters and an appearance asset."""

    name: str
    appearance: Optional[Asset] = None
    parameters: Dict[str, str] = field(default_factory=dict)
    element_id: int = -1
    document: Optional["DocumentStore"] = field(default=None, repr=False, compare=False)


@dataclass(frozen=True)
class ThreadMaterialEdits:
    """Changes applied to a copy of a thread template for one diameter."""

    D: int
    description: str
    comments: str
    keyword_suffix: str
    scale_x: float
    scale_y: float
    angle: float
    manufacturer: str = MANUFACTURER
    url: str = REPO_URL


def thread_material_edits(category: str, geometry: BoltGeometry) -> ThreadMaterialEdits:
    """Edits turning a ``category`` template into the thread material of ``geometry``.

    The bump gradient is scaled to one pitch across and one circumference
    along, and rotated by the complement of the helix angle.
    """
    D = geometry.D
    return ThreadMaterialEdits(
        D=D,
        description=f"Generic ISO metric bolt assembly: {category} with M{D} thread",
        comments=(
            f"Rendering material for M{D} thread. Use 'gimba materials' to manage "
            f"thread materials. See {HELP_URL} for further instructions."
        ),
        keyword_suffix=f":M{D}",
        scale_x=geometry.P / MM_PER_INCH,
        scale_y=geometry.C / MM_PER_INCH,
        angle=90.0 - geometry.beta,
    )


class ArtifactStore(Protocol):
    def find(self, pattern: NamePattern = None) -> List[Material]:
        ...

    def create(self, template: Material, name: str, edits: ThreadMaterialEdits) -> Material:
        ...

    def delete(self, material: Material) -> None:
        ...

    def transaction(self, name: str) -> Any:
        ...


class DocumentStore:
    """In-memory material document, optionally backed by a YAML file.

    Mutations are only accepted inside :meth:`transaction`. A transaction
    that exits with an exception restores the set of materials held before
    it started; a committed transaction is saved when the store has a path.
    """

    def __init__(self, title: str = "Untitled", path: Optional[Path] = None):
        self.title = title
        self.path = Path(path) if path is not None else None
        self._materials: Dict[int, Material] = {}
        self._next_id = 1
        self._transaction: Optional[str] = None

    def __len__(self) -> int:
        return len(self._materials)

    def __iter__(self) -> Iterator[Material]:
        return iter(list(self._materials.values()))

    def __repr__(self) -> str:
        return f"DocumentStore(title={self.title!r}, materials={len(self)})"

    # -- construction ------------------------------------------------------

    def add(self, material: Material) -> Material:
        """Register ``material`` with this document and assign its element id."""
        if self.find(material.name):
            raise StoreError(f"Material '{material.name}' already exists in '{self.title}'")
        if material.element_id < 0 or material.element_id in self._materials:
            material.element_id = self._next_id
        self._next_id = max(self._next_id, material.element_id + 1)
        material.document = self
        self._materials[material.element_id] = material
        return material

    @classmethod
    def from_dict(cls, data: Dict[str, Any], path: Optional[Path] = None) -> "DocumentStore":
        if not isinstance(data, dict):
            raise StoreError("Invalid material document: expected mapping at root")
        store = cls(title=str(data.get("title", "Untitled")), path=path)
        for entry in data.get("materials") or []:
            if not isinstance(entry, dict) or "name" not in entry:
                raise StoreError(f"Invalid material entry: {entry!r}")
            appearance = entry.get("appearance")
            try:
                asset = asset_from_dict(appearance) if appearance is not None else None
            except (ValueError, TypeError) as exc:
                raise StoreError(f"Invalid appearance of material '{entry['name']}': {exc}") from exc
            store.add(Material(
                name=str(entry["name"]),
                appearance=asset,
                parameters={str(k): str(v) for k, v in (entry.get("parameters") or {}).items()},
                element_id=int(entry.get("id", -1)),
            ))
        return store

    def to_dict(self) -> Dict[str, Any]:
        materials = []
        for material in self._materials.values():
            entry: Dict[str, Any] = {"name": material.name, "id": material.element_id}
            if material.parameters:
                entry["parameters"] = dict(material.parameters)
            if material.appearance is not None:
                entry["appearance"] = asset_to_dict(material.appearance)
            materials.append(entry)
        return {"title": self.title, "materials": materials}

    @classmethod
    def load(cls, path: Union[str, Path]) -> "DocumentStore":
        """Read a material document from a YAML file.

        Raises:
            FileNotFoundError: If ``path`` does not exist
            StoreError: If the file is not a valid material document
        """
        path = Path(path)
        with open(path, "r", encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as exc:
                raise StoreError(f"Cannot parse material document {path}: {exc}") from exc
        return cls.from_dict(data or {}, path=path)

    def save(self, path: Optional[Union[str, Path]] = None) -> Path:
        target = Path(path) if path is not None else self.path
        if target is None:
            raise StoreError(f"Document '{self.title}' has no file to save to")
        with open(target, "w", encoding="utf-8") as f:
            yaml.safe_dump(self.to_dict(), f, sort_keys=False, allow_unicode=True)
        return target

    # -- queries -----------------------------------------------------------

    def get(self, element_id: int) -> Material:
        try:
            return self._materials[element_id]
        except KeyError:
            raise StoreError(f"No material with id {element_id} in '{self.title}'") from None

    def find(self, pattern: NamePattern = None) -> List[Material]:
        """Materials whose name equals ``pattern`` (a string) or matches it (a regex).

        ``None`` returns every material.
        """
        materials = list(self._materials.values())
        if pattern is None:
            return materials
        if isinstance(pattern, str):
            return [m for m in materials if m.name == pattern]
        if hasattr(pattern, "search"):
            return [m for m in materials if pattern.search(m.name)]
        raise TypeError("pattern must be None, a string or a compiled regular expression")

    # -- mutation ----------------------------------------------------------

    @property
    def in_transaction(self) -> bool:
        return self._transaction is not None

    @contextmanager
    def transaction(self, name: str) -> Iterator["DocumentStore"]:
        if self._transaction is not None:
            raise StoreError(
                f"Cannot start transaction '{name}' while '{self._transaction}' is active"
            )
        snapshot = (dict(self._materials), self._next_id)
        self._transaction = name
        logger.info("")
        logger.info('Starting transaction "%s"', name)
        try:
            yield self
            logger.info("")
            logger.info('Committing transaction "%s"', name)
            if self.path is not None:
                self.save()
        except BaseException:
            for material in self._materials.values():
                material.document = None
            self._materials, self._next_id = snapshot
            for material in self._materials.values():
                material.document = self
            logger.info('Rolled back transaction "%s"', name)
            raise
        finally:
            self._transaction = None

    def _require_transaction(self, operation: str) -> None:
        if self._transaction is None:
            raise StoreError(f"{operation} requires an open transaction")

    def create(self, template: Material, name: str, edits: ThreadMaterialEdits) -> Material:
        """Duplicate ``template`` as ``name`` and apply ``edits`` to the copy."""
        self._require_transaction("create")
        if template.document is not self:
            raise StoreError(f"Template '{template.name}' does not reside in '{self.title}'")
        if self.find(name):
            raise StoreError(f"Material '{name}' already exists in '{self.title}'")
        if template.appearance is None:
            raise StoreError(f"Template '{template.name}' has no appearance asset")

        logger.info('- Creating M%d thread material from template "%s"', edits.D, template.name)
        appearance = copy.deepcopy(template.appearance)
        appearance.name = name
        try:
            keyword = appearance.get("keyword", PropertyKind.STRING).value or ""
            appearance.set("description", edits.description, PropertyKind.STRING)
            appearance.set("keyword", keyword + edits.keyword_suffix)

            bump_map = find_bump_gradient_map(appearance)
            bump_map.set("texture_RealWorldScaleX", edits.scale_x, PropertyKind.DISTANCE)
            bump_map.set("texture_RealWorldScaleY", edits.scale_y, PropertyKind.DISTANCE)
            bump_map.set("texture_WAngle", edits.angle, PropertyKind.DOUBLE)
            bump_map.set("texture_ScaleLock", False, PropertyKind.BOOLEAN)
            bump_map.set("texture_URepeat", True, PropertyKind.BOOLEAN)
            bump_map.set("texture_VRepeat", True, PropertyKind.BOOLEAN)
        except (KeyError, TypeError, ValueError, TemplateValidationError) as exc:
            raise StoreError(f"Cannot edit appearance of '{name}': {exc}") from exc

        parameters = dict(template.parameters)
        parameters.update(
            manufacturer=edits.manufacturer,
            comments=edits.comments,
            url=edits.url,
            description=edits.description,
        )
        return self.add(Material(name=name, appearance=appearance, parameters=parameters))

    def delete(self, material: Material) -> None:
        self._require_transaction("delete")
        if self._materials.get(material.element_id) is not material:
            raise StoreError(f"Material '{material.name}' does not reside in '{self.title}'")
        logger.info('- Deleting thread material "%s"', material.name)
        del self._materials[material.element_id]
        material.document = None
