"""Exception types shared across gimba."""

from __future__ import annotations


class GimbaError(Exception):
    """Base exception for gimba errors."""
    pass


class CatalogError(GimbaError, ValueError):
    """Geometry data file is missing required content or malformed."""
    pass


class DuplicateDiameterError(CatalogError):
    """A nominal diameter was registered twice."""
    pass


class NameDecodeError(GimbaError, ValueError):
    """A name does not follow the expected naming convention."""
    pass


class TemplateValidationError(GimbaError):
    """A template material is unusable as a basis for thread materials."""
    pass


class StoreError(GimbaError):
    """A create, delete or lookup on the material store failed."""
    pass


class PreconditionFailure(GimbaError):
    """Pre-checks failed; no operation may be performed on the document."""
    pass


__all__ = [
    "GimbaError",
    "CatalogError",
    "DuplicateDiameterError",
    "NameDecodeError",
    "TemplateValidationError",
    "StoreError",
    "PreconditionFailure",
]
