from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


NO_LICENSE_SENTINELS = {"none", "unlicensed"}

PERMISSIVE = "permissive"
COPYLEFT = "copyleft"
STRONG_COPYLEFT = "strong_copyleft"
PROPRIETARY = "proprietary"
UNKNOWN = "unknown"

SEVERITIES = ("low", "medium", "high")


@dataclass(frozen=True)
class Compatibility:
    """Outcome of comparing a package license against a project license."""

    is_compatible: bool
    reason: str
    severity: str = "low"

    def as_dict(self) -> dict:
        return {
            "is_compatible": self.is_compatible,
            "reason": self.reason,
            "severity": self.severity,
        }


# Order matters: the first matching token wins, so narrower families
# (agpl, lgpl) must precede the broader ones they contain (gpl).
LICENSE_FAMILIES = [
    ("agpl", STRONG_COPYLEFT),
    ("lgpl", UNKNOWN),
    ("gpl", COPYLEFT),
    ("apache", PERMISSIVE),
    ("mit", PERMISSIVE),
    ("bsd", PERMISSIVE),
    ("isc", PERMISSIVE),
    ("unlicense", PERMISSIVE),
    ("cc0", PERMISSIVE),
    ("proprietary", PROPRIETARY),
    ("commercial", PROPRIETARY),
]


def normalize_license(license_name: Optional[str]) -> Optional[str]:
    """Lower-case a license identifier, mapping blanks and sentinels to ``None``."""

    if license_name is None:
        return None
    normalized = str(license_name).strip().lower()
    if not normalized or normalized in NO_LICENSE_SENTINELS:
        return None
    return normalized


def classify_license(license_name: Optional[str]) -> str:
    normalized = normalize_license(license_name)
    if normalized is None:
        return UNKNOWN
    for token, family in LICENSE_FAMILIES:
        if token in normalized:
            return family
    return UNKNOWN
