import pytest

from depwatch.license_compat import (
    COMPATIBILITY_MATRIX,
    UNKNOWN_COMBINATION,
    license_display_name,
    license_requirements,
    resolve,
)
from depwatch.types import classify_license

KNOWN_LICENSES = [
    "MIT",
    "Apache-2.0",
    "BSD-2-Clause",
    "BSD-3-Clause",
    "ISC",
    "Unlicense",
    "CC0-1.0",
    "GPL-2.0",
    "GPL-3.0",
    "AGPL-3.0",
    "Proprietary",
    "WTFPL",
]


@pytest.mark.parametrize("license_name", KNOWN_LICENSES)
def test_same_license_is_always_compatible(license_name):
    for project, package in [(license_name, license_name), (license_name.lower(), license_name.upper())]:
        result = resolve(project, package)
        assert result.is_compatible
        assert result.severity == "low"


@pytest.mark.parametrize("project", [None, "", "none", "unlicensed", "NONE", "Unlicensed"])
def test_project_without_license_accepts_anything(project):
    for package in KNOWN_LICENSES + [None, "none"]:
        assert resolve(project, package).is_compatible


@pytest.mark.parametrize("package", [None, "", "none", "unlicensed"])
def test_unlicensed_package_is_high_severity_conflict(package):
    for project in KNOWN_LICENSES:
        result = resolve(project, package)
        assert not result.is_compatible
        assert result.severity == "high"


def test_gpl_package_in_mit_project_is_blocked():
    result = resolve("MIT", "GPL-3.0")
    assert result.is_compatible is False
    assert result.severity == "high"


def test_permissive_licenses_mix_freely():
    assert resolve("MIT", "Apache-2.0").is_compatible
    assert resolve("Apache-2.0", "BSD-3-Clause").is_compatible
    assert resolve("BSD-2-Clause", "ISC").is_compatible


def test_permissive_project_rejects_strong_copyleft():
    result = resolve("Apache-2.0", "AGPL-3.0")
    assert not result.is_compatible
    assert result.severity == "high"


def test_copyleft_project_rules():
    assert resolve("GPL-3.0", "MIT").is_compatible
    assert resolve("GPL-3.0", "GPL-2.0").is_compatible
    stronger = resolve("GPL-3.0", "AGPL-3.0")
    assert not stronger.is_compatible
    assert stronger.severity == "medium"


def test_strong_copyleft_project_accepts_everything_classified():
    for package in ["MIT", "GPL-3.0", "GPL-2.0", "Apache-2.0"]:
        assert resolve("AGPL-3.0", package).is_compatible


def test_proprietary_project_always_flags_review():
    for package in ["MIT", "GPL-3.0", "SomethingElse"]:
        result = resolve("Proprietary", package)
        assert not result.is_compatible
        assert result.severity == "high"
    assert not resolve("Commercial License", "MIT").is_compatible


def test_unknown_combinations_fail_closed():
    assert resolve("MIT", "WTFPL") == UNKNOWN_COMBINATION
    assert resolve("MPL-2.0", "MIT") == UNKNOWN_COMBINATION
    assert resolve("MIT", "LGPL-2.1") == UNKNOWN_COMBINATION
    assert resolve("MIT", "Proprietary").severity == "medium"


def test_classification_prefers_narrow_families():
    assert classify_license("AGPL-3.0-only") == "strong_copyleft"
    assert classify_license("LGPL-3.0") == "unknown"
    assert classify_license("GPL-2.0-or-later") == "copyleft"
    assert classify_license("unlicensed") == "unknown"


def test_matrix_never_marks_unknown_compatible():
    for row in COMPATIBILITY_MATRIX.values():
        if "unknown" in row:
            assert not row["unknown"].is_compatible


def test_display_names():
    assert license_display_name(None) == "No License"
    assert license_display_name("unlicensed") == "No License"
    assert license_display_name("apache-2.0") == "Apache 2.0"
    assert license_display_name("AGPL-3.0") == "AGPL-3.0"
    assert license_display_name("GPL-2.0-only") == "GPL-2.0"
    assert license_display_name("BSD-3-Clause") == "BSD-3-Clause"
    assert license_display_name("WTFPL") == "WTFPL"


def test_license_requirements_lookup():
    assert "Disclose source code" in license_requirements("gpl-3.0")
    assert license_requirements("MIT") == ["Include original license", "Provide attribution"]
    assert license_requirements("WTFPL") == []
    assert license_requirements(None) == []
