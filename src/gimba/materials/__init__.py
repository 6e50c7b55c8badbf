"""Thread material management: naming, templates, stores and reconciliation."""

from .assets import (
    Asset,
    AssetDumper,
    AssetProperty,
    AssetVisitor,
    PropertyKind,
    find_bump_gradient_map,
)
from .engine import (
    Action,
    Choice,
    Discovery,
    FixedPrompt,
    InteractionPrompt,
    OutcomeCounters,
    ReconciliationEngine,
    precheck_summary,
    wrapup_summary,
)
from .naming import NameCodec, default_codec
from .store import (
    ArtifactStore,
    DocumentStore,
    Material,
    ThreadMaterialEdits,
    thread_material_edits,
)
from .validator import TemplateReport, TemplateValidator, validate_templates

__all__ = [
    "Action",
    "ArtifactStore",
    "Asset",
    "AssetDumper",
    "AssetProperty",
    "AssetVisitor",
    "Choice",
    "Discovery",
    "DocumentStore",
    "FixedPrompt",
    "InteractionPrompt",
    "Material",
    "NameCodec",
    "OutcomeCounters",
    "PropertyKind",
    "ReconciliationEngine",
    "TemplateReport",
    "TemplateValidator",
    "ThreadMaterialEdits",
    "default_codec",
    "find_bump_gradient_map",
    "precheck_summary",
    "thread_material_edits",
    "validate_templates",
    "wrapup_summary",
]
