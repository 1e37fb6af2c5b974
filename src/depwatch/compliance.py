"""Roll per-package license and vulnerability data into a project report."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Iterable, Optional, Sequence

from .license_compat import license_display_name, resolve
from .types import ComplianceReport, DependencyRecord, NonCompliantDependency, VulnerabilityBreakdown
from .types_license import normalize_license

logger = logging.getLogger(__name__)


VULNERABILITY_THRESHOLDS = [
    (80, "critical"),
    (60, "high"),
    (40, "medium"),
]


def classify_vulnerability(score: float) -> str:
    for threshold, bucket in VULNERABILITY_THRESHOLDS:
        if score >= threshold:
            return bucket
    return "low"


def _compliance_percent(total: int, conflicts: int) -> int:
    if total == 0:
        return 100
    # Integer round-half-up of 100 * (total - conflicts) / total.
    percent = (200 * (total - conflicts) + total) // (2 * total)
    return max(0, min(100, percent))


def aggregate(project_license: Optional[str], records: Sequence[DependencyRecord]) -> ComplianceReport:
    """Build a fresh ``ComplianceReport`` for ``records``.

    Only records with a known package license are checked for conflicts, so
    an unlicensed dependency does not lower the compliance percentage. The
    percentage counts license conflicts only; vulnerabilities are reported
    separately in the breakdown.
    """

    non_compliant: list[NonCompliantDependency] = []
    buckets = {"critical": 0, "high": 0, "medium": 0, "low": 0}

    for record in records:
        if normalize_license(record.license) is not None:
            compatibility = resolve(project_license, record.license)
            if not compatibility.is_compatible:
                logger.debug("license conflict: %s (%s) - %s", record.name, record.license, compatibility.reason)
                non_compliant.append(
                    NonCompliantDependency(
                        name=record.name,
                        version=record.version,
                        license=str(record.license),
                        reason=compatibility.reason,
                        severity=compatibility.severity,
                    )
                )

        vuln_score = record.vulnerability_score
        if vuln_score is not None and vuln_score > 0:
            buckets[classify_vulnerability(vuln_score)] += 1

    breakdown = VulnerabilityBreakdown(**buckets)
    total = len(records)
    report = ComplianceReport(
        overall_compliance_percent=_compliance_percent(total, len(non_compliant)),
        license_conflict_count=len(non_compliant),
        vulnerable_dependency_count=breakdown.total,
        total_dependencies=total,
        non_compliant=tuple(non_compliant),
        vulnerability_breakdown=breakdown,
        project_license=project_license,
    )
    logger.info(
        "compliance for %d dependencies: %d%% (%d conflicts, %d vulnerable)",
        total,
        report.overall_compliance_percent,
        report.license_conflict_count,
        report.vulnerable_dependency_count,
    )
    return report


def summarize_licenses(records: Iterable[DependencyRecord]) -> dict[str, int]:
    """Count records per license display name, most common first."""

    counts = Counter(license_display_name(record.license) for record in records)
    return dict(sorted(counts.items(), key=lambda item: (-item[1], item[0])))
