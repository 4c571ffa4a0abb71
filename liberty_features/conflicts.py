"""
Classification of kernel and container error text into feature conflicts.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum


class ConflictKind(Enum):
    """Known conflict categories, valued by their message code pattern."""

    CONFLICT = "CWWKF0033E.*"
    INCOMPATIBLE_SINGLETON = "CWWKF1405E.*"
    MISSING_MULTIPLE_DEPENDENT = "CWWKF1385E.*"
    SAME_MODEL_CONFLICT = "CWWKF0043E.*"
    DIFF_MODEL_CONFLICT = "CWWKF0044E.*"
    SAME_INDIRECT_MODEL_CONFLICT = "CWWKF0047E.*"

    @property
    def code(self) -> str:
        return self.value[:10]


ALREADY_INSTALLED_CODE = "CWWKF1250I"

EE_CONFLICT = "|".join(
    kind.value
    for kind in (ConflictKind.SAME_MODEL_CONFLICT, ConflictKind.DIFF_MODEL_CONFLICT, ConflictKind.SAME_INDIRECT_MODEL_CONFLICT)
)
ANY_CONFLICT = "|".join(
    [
        ConflictKind.CONFLICT.value,
        ConflictKind.MISSING_MULTIPLE_DEPENDENT.value,
        ConflictKind.INCOMPATIBLE_SINGLETON.value,
        EE_CONFLICT,
    ]
)
CONFLICT_PATTERN = re.compile(ANY_CONFLICT)


@dataclass(frozen=True)
class ConflictReport:
    """Result of classifying an error message."""

    kind: ConflictKind | None
    text: str

    @property
    def is_conflict(self) -> bool:
        return self.kind is not None

    @property
    def code(self) -> str | None:
        return self.kind.code if self.kind else None


def is_conflict(text: str) -> bool:
    """Return True if a conflict code appears anywhere in the text."""
    return CONFLICT_PATTERN.search(text) is not None


def classify(text: str) -> ConflictReport:
    """Name the conflict category of the earliest conflict code in the text."""
    match = CONFLICT_PATTERN.search(text)
    if match is None:
        return ConflictReport(kind=None, text=text)
    found = match.group(0)
    kind = next(k for k in ConflictKind if found.startswith(k.code))
    return ConflictReport(kind=kind, text=text)


def is_already_installed(text: str) -> bool:
    return ALREADY_INSTALLED_CODE in text
