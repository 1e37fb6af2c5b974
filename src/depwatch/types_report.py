from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple


@dataclass(frozen=True)
class NonCompliantDependency:
    name: str
    version: str
    license: str
    reason: str
    severity: str = "medium"


@dataclass(frozen=True)
class VulnerabilityBreakdown:
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0

    @property
    def total(self) -> int:
        return self.critical + self.high + self.medium + self.low

    def as_dict(self) -> dict[str, int]:
        return {"critical": self.critical, "high": self.high, "medium": self.medium, "low": self.low}


@dataclass(frozen=True)
class ComplianceReport:
    """Immutable snapshot produced by one aggregation run."""

    overall_compliance_percent: int = 100
    license_conflict_count: int = 0
    vulnerable_dependency_count: int = 0
    total_dependencies: int = 0
    non_compliant: Tuple[NonCompliantDependency, ...] = ()
    vulnerability_breakdown: VulnerabilityBreakdown = field(default_factory=VulnerabilityBreakdown)
    project_license: str | None = None

    @property
    def is_fully_compliant(self) -> bool:
        return self.license_conflict_count == 0

    def as_dict(self) -> dict:
        return {
            "project_license": self.project_license,
            "overall_compliance_percent": self.overall_compliance_percent,
            "license_conflict_count": self.license_conflict_count,
            "vulnerable_dependency_count": self.vulnerable_dependency_count,
            "total_dependencies": self.total_dependencies,
            "non_compliant": [
                {
                    "name": dep.name,
                    "version": dep.version,
                    "license": dep.license,
                    "reason": dep.reason,
                    "severity": dep.severity,
                }
                for dep in self.non_compliant
            ],
            "vulnerability_breakdown": self.vulnerability_breakdown.as_dict(),
        }
