"""Naming convention for GIMBA materials.

Names encode role, category and diameter:

* plain materials      ``GIMBA - <category>``
* thread templates     ``GIMBA - <category> - Thread template``
* thread materials     ``GIMBA - <category> - M<D> thread``

Everything that depends on the convention goes through :class:`NameCodec`.
"""

from __future__ import annotations

import re
from typing import Pattern, Tuple

from ..errors import NameDecodeError

__all__ = ["NameCodec", "default_codec"]


class NameCodec:
    """Bidirectional mapping between (category, diameter) and material names."""

    PREFIX = "GIMBA"
    DELIMITER = " - "

    plain_format = "GIMBA - {category}"
    template_format = "GIMBA - {category} - Thread template"
    artifact_format = "GIMBA - {category} - M{D} thread"

    def __init__(self) -> None:
        self.template_pattern: Pattern[str] = re.compile(r"^GIMBA - (.+) - Thread template$")
        self.artifact_pattern: Pattern[str] = re.compile(r"^GIMBA - (.+) - M(\d+) thread$")
        self.plain_pattern: Pattern[str] = re.compile(r"^GIMBA - ([^-]+)$")

    @staticmethod
    def _check_category(category: str) -> None:
        if not category or not category.strip():
            raise ValueError("category must be a non-empty string")
        if "\n" in category:
            raise ValueError("category must not contain line breaks")

    def encode(self, category: str, D: int) -> str:
        """Name of the thread material for ``category`` and diameter ``D``."""
        self._check_category(category)
        return self.artifact_format.format(category=category, D=int(D))

    def encode_template(self, category: str) -> str:
        self._check_category(category)
        return self.template_format.format(category=category)

    def encode_plain(self, category: str) -> str:
        self._check_category(category)
        return self.plain_format.format(category=category)

    def decode_category(self, template_name: str) -> str:
        """Extract the category from a thread template name.

        Raises:
            NameDecodeError: If the name is not a thread template name
        """
        match = self.template_pattern.match(template_name or "")
        if match is None:
            raise NameDecodeError(
                f"'{template_name}' does not match '{self.template_format}'"
            )
        return match.group(1)

    def decode_artifact(self, name: str) -> Tuple[str, int]:
        """Return ``(category, D)`` of a thread material name."""
        match = self.artifact_pattern.match(name or "")
        if match is None:
            raise NameDecodeError(f"'{name}' does not match '{self.artifact_format}'")
        return match.group(1), int(match.group(2))

    def is_template(self, name: str) -> bool:
        return self.template_pattern.match(name or "") is not None

    def is_artifact(self, name: str) -> bool:
        return self.artifact_pattern.match(name or "") is not None

    def template_hint(self) -> str:
        return self.template_format.format(category="<plain material name>")


default_codec = NameCodec()
