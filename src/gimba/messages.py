"""Human-readable count messages and run summaries."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List


def count_msg(count: int, fmt: str, plural: str = "s", singular: str = "") -> str:
    """Format a message including a count.

    ``{0}`` in ``fmt`` receives the count, or ``"no"`` when it is zero;
    ``{1}`` receives the plural or singular suffix.

    >>> count_msg(0, "{0} file{1} created")
    'no files created'
    >>> count_msg(1, "Found {0} thread geometr{1}", "ies", "y")
    'Found 1 thread geometry'
    """
    shown = str(count) if count != 0 else "no"
    suffix = plural if count != 1 else singular
    return fmt.format(shown, suffix)


def count_ok_msg(count: int, condition: bool, fmt: str, plural: str = "s", singular: str = "") -> str:
    """Like :func:`count_msg`, followed by ``--> ok`` or ``--> NOT OK``."""
    return count_msg(count, fmt, plural, singular) + (" --> ok" if condition else " --> NOT OK")


@dataclass
class Summary:
    """Outcome of a pass in presentable form."""

    title: str
    instruction: str
    details: List[str] = field(default_factory=list)
    warning: bool = False

    def lines(self) -> List[str]:
        out = [self.title, self.instruction] if self.instruction else [self.title]
        out.extend(self.details)
        return out

    def __str__(self) -> str:
        return "\n".join(self.lines())


__all__ = ["count_msg", "count_ok_msg", "Summary"]
