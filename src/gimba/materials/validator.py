"""Checks that a material can serve as a thread template."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from ..errors import TemplateValidationError
from .assets import find_bump_gradient_map
from .naming import NameCodec, default_codec
from .store import Material

__all__ = ["TemplateReport", "TemplateValidator", "validate_templates"]

logger = logging.getLogger(__name__)


@dataclass
class TemplateReport:
    """Outcome of validating one template.

    ``trace`` holds one line per check performed, ending in ``-> OK`` or
    ``-> FAILED``; checks after the first failure are not run.
    """

    template: Optional[Material]
    ok: bool = True
    reason: str = ""
    trace: List[str] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.template.name if self.template is not None else "<None>"

    def passed(self, text: str) -> None:
        self.trace.append(f"{text} -> OK")

    def failed(self, text: str, reason: str) -> "TemplateReport":
        self.trace.append(f"{text} -> FAILED")
        self.ok = False
        self.reason = reason
        return self

    def raise_for_failure(self) -> None:
        if not self.ok:
            raise TemplateValidationError(self.reason)


class TemplateValidator:
    """Runs the template checks in order and stops at the first failure.

    Validation never modifies the template.
    """

    def __init__(self, codec: NameCodec = default_codec):
        self.codec = codec

    def validate(self, template: Optional[Material]) -> TemplateReport:
        report = TemplateReport(template)
        if template is None:
            return report.failed("Material is present", "Material is <None>")

        label = f'Material "{template.name}"'

        if template.document is None:
            problem = " does not reside in a document"
            return report.failed("Material" + problem, label + problem)
        report.passed(f'Material resides in document "{template.document.title}"')

        hint = self.codec.template_hint()
        if not self.codec.is_template(template.name):
            problem = f' has an invalid name, should be "{hint}"'
            return report.failed("Material" + problem, label + problem)
        report.passed(f'Material name matches "{hint}"')

        if template.appearance is None:
            problem = " has no appearance asset"
            return report.failed("Material" + problem, label + problem)
        report.passed("Material has an appearance asset")

        try:
            find_bump_gradient_map(template.appearance)
        except (TemplateValidationError, ValueError) as exc:
            problem = "Appearance asset has no bump gradient map"
            return report.failed(problem, f"{label}: {problem} ({exc})")
        report.passed("Appearance asset has a bump gradient map")
        return report


def validate_templates(
    templates: Iterable[Material],
    validator: Optional[TemplateValidator] = None,
) -> Tuple[List[Material], List[TemplateReport]]:
    """Validate each template independently.

    Returns the valid templates, in input order, and the reports of the
    invalid ones. Every trace is written to the log.
    """
    validator = validator if validator is not None else TemplateValidator()
    valid: List[Material] = []
    invalid: List[TemplateReport] = []
    for template in templates:
        report = validator.validate(template)
        logger.info('  - Material "%s"', report.name)
        for line in report.trace:
            logger.info("    - %s", line)
        if report.ok:
            valid.append(template)
        else:
            logger.info('Check failed on template material "%s": %s', report.name, report.reason)
            invalid.append(report)
    return valid, invalid
