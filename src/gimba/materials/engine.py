"""Reconciliation of thread materials against a material store.

One pass runs discover, gate, choose, execute and report:

1. :meth:`ReconciliationEngine.discover` collects geometries, existing
   thread materials and templates, validating each template.
2. The pass may only proceed when at least one valid template and one
   geometry were found (:attr:`Discovery.ready`).
3. An :class:`InteractionPrompt` picks create or delete (or cancel) and
   whether existing thread materials are overwritten.
4. :meth:`ReconciliationEngine.execute` performs the operations inside a
   single store transaction. A failure on one material is logged and
   counted; the remaining materials are still processed.
5. The returned :class:`OutcomeCounters` feed the wrap-up summary.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Dict, List, Optional, Protocol

from ..errors import PreconditionFailure
from ..geometry import BoltGeometry, GeometryTable, geometry_table
from ..messages import Summary, count_msg, count_ok_msg
from .naming import NameCodec, default_codec
from .store import ArtifactStore, Material, thread_material_edits
from .validator import TemplateReport, TemplateValidator, validate_templates

__all__ = [
    "Action",
    "Choice",
    "InteractionPrompt",
    "FixedPrompt",
    "OutcomeCounters",
    "Discovery",
    "ReconciliationEngine",
    "precheck_summary",
    "wrapup_summary",
]

logger = logging.getLogger(__name__)


class Action(Enum):
    CREATE = "create"
    DELETE = "delete"
    CANCEL = "cancel"


@dataclass(frozen=True)
class Choice:
    action: Action
    overwrite: bool = False


class InteractionPrompt(Protocol):
    def choose(self, discovery: "Discovery") -> Choice:
        ...


class FixedPrompt:
    """Prompt answering with a preset choice, for batch use."""

    def __init__(self, action: Action, overwrite: bool = False):
        self.choice = Choice(Action(action), overwrite)

    def choose(self, discovery: "Discovery") -> Choice:
        return self.choice


@dataclass
class OutcomeCounters:
    geometries: int = 0
    valid_templates: int = 0
    invalid_templates: int = 0
    existing: int = 0
    skipped: int = 0
    deleted: int = 0
    overwritten: int = 0
    created: int = 0
    delete_failed: int = 0
    overwrite_failed: int = 0
    create_failed: int = 0

    @property
    def has_failures(self) -> bool:
        return (self.delete_failed + self.overwrite_failed + self.create_failed) > 0

    def as_dict(self) -> Dict[str, int]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class Discovery:
    """What a pass found before touching the store."""

    geometries: List[BoltGeometry] = field(default_factory=list)
    existing: List[Material] = field(default_factory=list)
    templates: List[Material] = field(default_factory=list)
    rejected: List[TemplateReport] = field(default_factory=list)

    @property
    def ready(self) -> bool:
        return bool(self.templates) and bool(self.geometries)

    @property
    def planned(self) -> int:
        """Number of thread materials a create pass would produce."""
        return len(self.templates) * len(self.geometries)

    def counters(self) -> OutcomeCounters:
        return OutcomeCounters(
            geometries=len(self.geometries),
            valid_templates=len(self.templates),
            invalid_templates=len(self.rejected),
            existing=len(self.existing),
        )


class ReconciliationEngine:
    """Creates or deletes thread materials in ``store``.

    Templates are processed in discovery order, and for each template the
    geometries in table order, so the materials of one template are
    produced together.
    """

    def __init__(
        self,
        store: ArtifactStore,
        table: Optional[GeometryTable] = None,
        validator: Optional[TemplateValidator] = None,
        codec: Optional[NameCodec] = None,
    ):
        self.store = store
        self.table = table if table is not None else geometry_table()
        self.codec = codec if codec is not None else default_codec
        self.validator = validator if validator is not None else TemplateValidator(self.codec)

    def discover(self) -> Discovery:
        logger.info("")
        logger.info("Pre-Checks")

        logger.info("- Searching thread geometries")
        geometries = self.table.bolt_geometries()
        for geometry in geometries:
            logger.info("   - %s", geometry)

        logger.info("- Searching existing thread materials")
        existing = self.store.find(self.codec.artifact_pattern)
        for material in existing:
            logger.info('   - Material "%s"', material.name)

        logger.info("- Searching and checking thread template materials")
        candidates = self.store.find(self.codec.template_pattern)
        templates, rejected = validate_templates(candidates, self.validator)

        discovery = Discovery(geometries, existing, templates, rejected)
        logger.info("- PRE-CHECK OK" if discovery.ready else "- PRE-CHECK FAILED")
        for line in _precheck_lines(discovery.counters(), "  - "):
            logger.info("%s", line)
        return discovery

    def execute(self, discovery: Discovery, choice: Choice) -> OutcomeCounters:
        """Perform ``choice`` on the store.

        Raises:
            PreconditionFailure: If ``discovery`` is not ready; the store is
                left untouched
            ValueError: If ``choice`` is not create or delete
        """
        if not discovery.ready:
            raise PreconditionFailure(
                "Pre-checks failed: "
                + count_msg(len(discovery.templates), "{0} valid template material{1}")
                + ", "
                + count_msg(len(discovery.geometries), "{0} thread geometr{1}", "ies", "y")
            )
        if choice.action is Action.CREATE:
            name = "Create Thread Materials"
        elif choice.action is Action.DELETE:
            name = "Delete Thread Materials"
        else:
            raise ValueError(f"Cannot execute action '{choice.action.value}'")

        counters = discovery.counters()
        with self.store.transaction(name):
            if choice.action is Action.CREATE:
                logger.info("")
                logger.info("Creating thread materials")
                self._create_all(discovery, choice.overwrite, counters)
            else:
                logger.info("")
                logger.info("Deleting thread materials")
                self._delete_all(discovery, counters)
        return counters

    def run(self, prompt: InteractionPrompt) -> Optional[OutcomeCounters]:
        """One full pass. Returns ``None`` when the prompt cancels."""
        discovery = self.discover()
        if not discovery.ready:
            raise PreconditionFailure("Pre-checks failed; no operation is possible on the document")
        choice = prompt.choose(discovery)
        if choice.action is Action.CANCEL:
            logger.info("- Cancelled by user")
            return None
        logger.info("- %s thread materials operation selected", choice.action.value.capitalize())
        return self.execute(discovery, choice)

    # -- execution ---------------------------------------------------------

    def _lookup(self, name: str) -> Optional[Material]:
        found = self.store.find(name)
        return found[0] if found else None

    def _create_all(self, discovery: Discovery, overwrite: bool, counters: OutcomeCounters) -> None:
        for template in discovery.templates:
            category = self.codec.decode_category(template.name)
            for geometry in discovery.geometries:
                name = self.codec.encode(category, geometry.D)
                try:
                    previous = self._lookup(name)
                except Exception:
                    logger.exception('  Failed to look up "%s"', name)
                    if overwrite:
                        counters.overwrite_failed += 1
                    else:
                        counters.create_failed += 1
                    continue

                if previous is not None and not overwrite:
                    logger.info('- Skip existing material "%s"', name)
                    counters.skipped += 1
                    continue

                if previous is not None:
                    try:
                        self.store.delete(previous)
                    except Exception:
                        logger.exception('  Failed to remove "%s"', name)
                        counters.overwrite_failed += 1
                        continue

                edits = thread_material_edits(category, geometry)
                try:
                    self.store.create(template, name, edits)
                except Exception:
                    logger.exception('  Failed to create "%s"', name)
                    if previous is not None:
                        counters.overwrite_failed += 1
                    else:
                        counters.create_failed += 1
                    continue

                if previous is not None:
                    counters.overwritten += 1
                else:
                    counters.created += 1

    def _delete_all(self, discovery: Discovery, counters: OutcomeCounters) -> None:
        for material in discovery.existing:
            name = material.name
            if not self.codec.is_artifact(name):
                logger.error('  Refusing to delete "%s": not a thread material', name)
                counters.delete_failed += 1
                continue
            try:
                self.store.delete(material)
            except Exception:
                logger.exception('  Failed to delete thread material "%s"', name)
                counters.delete_failed += 1
                continue
            counters.deleted += 1


# ---------------------------------------------------------------------------
# summaries

def _precheck_lines(counters: OutcomeCounters, bullet: str = "* ") -> List[str]:
    return [
        count_ok_msg(counters.geometries, counters.geometries > 0,
                     bullet + "Found {0} thread geometr{1}", "ies", "y"),
        count_ok_msg(counters.existing, True, bullet + "Found {0} existing thread material{1}"),
        count_ok_msg(counters.valid_templates, counters.valid_templates > 0,
                     bullet + "Found {0} valid template material{1}"),
        count_msg(counters.invalid_templates, bullet + "Found {0} invalid template material{1}")
        + (" --> ignore" if counters.invalid_templates else " --> ok"),
    ]


def precheck_summary(discovery: Discovery, document: str = "") -> Summary:
    """Presentable pre-check results, offering the possible operations."""
    counters = discovery.counters()
    details = ["Summary of pre-check results:"] + _precheck_lines(counters)
    if not discovery.ready:
        details += ["", 'Issues marked with "NOT OK" obstruct operation.']
        return Summary(
            title="Pre-Checks Failed",
            instruction="Pre-checks failed. No operation is possible on document "
                        + (document or "<unnamed>") + ".",
            details=details,
            warning=True,
        )
    options = [
        "create: "
        + count_msg(discovery.planned, "Will create {0} thread material{1}.")
        + (count_msg(counters.existing, " Use --overwrite to replace {0} existing thread material{1}.")
           if counters.existing else ""),
    ]
    if counters.existing:
        options.append(
            "delete: "
            + count_msg(counters.existing, "Will delete {0} existing thread material{1}. ")
            + "Template or other materials will not be deleted!"
        )
    return Summary(
        title="Good to Go...",
        instruction="Batch operations on ISO metric screw thread materials"
                    + (f" in {document}" if document else "") + ".",
        details=details + [""] + options,
    )


def wrapup_summary(action: Action, counters: OutcomeCounters) -> Summary:
    """Wrap-up text for a finished create or delete pass."""
    errors = counters.has_failures
    title = "Operation Completed" + (" with Errors" if errors else "")
    details = ["Summary of operations performed:"]

    if action is Action.CREATE:
        if not errors and counters.created == 0 and counters.overwritten == 0:
            instruction = "All thread materials were already present. Did not create new materials."
        else:
            instruction = count_msg(counters.created + counters.overwritten,
                                    "Created {0} thread material{1}.")
        details.append(count_msg(counters.created, "* Created {0} new material{1}"))
        details.append(count_msg(counters.overwritten, "* Overwrote {0} material{1}"))
        if counters.skipped:
            details.append(count_msg(counters.skipped, "* Skipped {0} existing material{1}"))
        if counters.create_failed:
            details.append(count_msg(counters.create_failed, "* Failed to create {0} material{1}"))
        if counters.overwrite_failed:
            details.append(count_msg(counters.overwrite_failed, "* Failed to overwrite {0} material{1}"))
    elif action is Action.DELETE:
        if not errors and counters.deleted == 0:
            instruction = "No thread materials were found. Did not delete any materials."
        else:
            instruction = count_msg(counters.deleted, "Deleted {0} thread material{1}.")
        details.append(count_msg(counters.deleted, "* Deleted {0} material{1}"))
        if counters.delete_failed:
            details.append(count_msg(counters.delete_failed, "* Failed to delete {0} material{1}"))
    else:
        raise ValueError(f"No wrap-up for action '{action.value}'")

    return Summary(title=title, instruction=instruction, details=details, warning=errors)
