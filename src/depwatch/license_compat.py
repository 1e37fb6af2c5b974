"""License compatibility resolution.

``resolve`` compares a dependency's license with the license declared by the
project consuming it. The decision is a lookup in ``COMPATIBILITY_MATRIX``
keyed by license family; any pairing missing from the matrix falls through to
a single conservative default that flags the dependency for review.
"""

from __future__ import annotations

import logging
from typing import Optional

from .types_license import (
    COPYLEFT,
    PERMISSIVE,
    PROPRIETARY,
    STRONG_COPYLEFT,
    UNKNOWN,
    Compatibility,
    classify_license,
    normalize_license,
)

logger = logging.getLogger(__name__)


NO_RESTRICTION = Compatibility(True, "Project has no license restrictions", "low")
PACKAGE_UNLICENSED = Compatibility(False, "Package has no license - use with caution", "high")
SAME_LICENSE = Compatibility(True, "Same license as project", "low")
UNKNOWN_COMBINATION = Compatibility(
    False, "Unknown license combination - review required", "medium"
)

_PERMISSIVE_OK = Compatibility(True, "Permissive project can use permissive licenses", "low")
_COPYLEFT_IN_PERMISSIVE = Compatibility(
    False, "Copyleft license incompatible with permissive project", "high"
)
_COPYLEFT_OK = Compatibility(True, "Copyleft project can use copyleft and permissive licenses", "low")
_STRONGER_OBLIGATIONS = Compatibility(
    False, "Package license carries stronger obligations than project license", "medium"
)
_STRONG_COPYLEFT_OK = Compatibility(True, "Strong copyleft project can use most licenses", "low")
_PROPRIETARY_REVIEW = Compatibility(
    False, "Proprietary projects should avoid open source dependencies", "high"
)

# project family -> package family -> Compatibility
COMPATIBILITY_MATRIX: dict[str, dict[str, Compatibility]] = {
    PERMISSIVE: {
        PERMISSIVE: _PERMISSIVE_OK,
        COPYLEFT: _COPYLEFT_IN_PERMISSIVE,
        STRONG_COPYLEFT: _COPYLEFT_IN_PERMISSIVE,
    },
    COPYLEFT: {
        PERMISSIVE: _COPYLEFT_OK,
        COPYLEFT: _COPYLEFT_OK,
        STRONG_COPYLEFT: _STRONGER_OBLIGATIONS,
    },
    STRONG_COPYLEFT: {
        PERMISSIVE: _STRONG_COPYLEFT_OK,
        COPYLEFT: _STRONG_COPYLEFT_OK,
        STRONG_COPYLEFT: _STRONG_COPYLEFT_OK,
    },
    PROPRIETARY: {
        family: _PROPRIETARY_REVIEW
        for family in (PERMISSIVE, COPYLEFT, STRONG_COPYLEFT, PROPRIETARY, UNKNOWN)
    },
}


def resolve(project_license: Optional[str], package_license: Optional[str]) -> Compatibility:
    """Return whether ``package_license`` may be used by a ``project_license`` project.

    Never raises: absent, sentinel and unrecognized licenses all map onto a
    defined outcome, and unrecognized pairings are never reported compatible.
    """

    project = normalize_license(project_license)
    if project is None:
        return NO_RESTRICTION

    package = normalize_license(package_license)
    if package is None:
        return PACKAGE_UNLICENSED

    if project == package:
        return SAME_LICENSE

    project_family = classify_license(project)
    package_family = classify_license(package)
    result = COMPATIBILITY_MATRIX.get(project_family, {}).get(package_family, UNKNOWN_COMBINATION)
    logger.debug(
        "license %s (%s) vs project %s (%s): compatible=%s",
        package,
        package_family,
        project,
        project_family,
        result.is_compatible,
    )
    return result


def license_display_name(license_name: Optional[str]) -> str:
    normalized = normalize_license(license_name)
    if normalized is None:
        return "No License"

    for token, display in [
        ("mit", "MIT"),
        ("apache", "Apache 2.0"),
        ("agpl", "AGPL-3.0"),
        ("gpl-3", "GPL-3.0"),
        ("gpl-2", "GPL-2.0"),
        ("bsd-3", "BSD-3-Clause"),
        ("bsd-2", "BSD-2-Clause"),
        ("bsd", "BSD"),
        ("isc", "ISC"),
        ("unlicense", "Unlicense"),
        ("cc0", "CC0"),
    ]:
        if token in normalized:
            return display
    return str(license_name)


LICENSE_REQUIREMENTS: dict[str, list[str]] = {
    "Apache-2.0": [
        "Include license and NOTICE file",
        "Grant of patent rights",
        "State changes made to code",
    ],
    "BSD-3-Clause": [
        "Include license text",
        "Provide attribution",
        "Do not use names of contributors for endorsement",
    ],
    "GPL-3.0": [
        "Disclose source code",
        "Use same license (copyleft)",
        "Provide installation instructions",
    ],
    "ISC": [
        "Include original license text",
        "Provide attribution",
    ],
    "MIT": [
        "Include original license",
        "Provide attribution",
    ],
}


def license_requirements(license_name: Optional[str]) -> list[str]:
    """Return the obligations a license imposes on redistributors, if catalogued."""

    normalized = normalize_license(license_name)
    if normalized is None:
        return []
    for name, requirements in LICENSE_REQUIREMENTS.items():
        if name.lower() == normalized:
            return list(requirements)
    return []
