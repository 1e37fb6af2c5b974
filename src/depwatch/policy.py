from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import yaml

from .types import ComplianceReport


@dataclass
class PolicyException:
    name: str
    reason: str = ""
    approved_by: Optional[str] = None
    expires: Optional[datetime] = None

    def as_dict(self) -> dict:
        return {
            "name": self.name,
            "reason": self.reason,
            "approved_by": self.approved_by,
            "expires": self.expires.isoformat() if self.expires else None,
        }


@dataclass
class Policy:
    project_license: Optional[str] = None
    min_compliance: Optional[int] = None
    max_license_conflicts: Optional[int] = None
    max_critical: Optional[int] = None
    max_vulnerable: Optional[int] = None
    exceptions: List[PolicyException] = field(default_factory=list)


@dataclass
class PolicyEvaluation:
    passed: bool
    failures: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    used_exceptions: List[PolicyException] = field(default_factory=list)
    expired_exceptions: List[PolicyException] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "passed": self.passed,
            "failures": self.failures,
            "warnings": self.warnings,
            "used_exceptions": [exc.as_dict() for exc in self.used_exceptions],
            "expired_exceptions": [exc.as_dict() for exc in self.expired_exceptions],
        }


def _optional_int(raw: dict, key: str) -> Optional[int]:
    value = raw.get(key)
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Policy field {key!r} must be an integer, got {value!r}") from exc


def load_policy(path: Path) -> Policy:
    try:
        raw = yaml.safe_load(path.read_text()) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ValueError(f"Unable to read policy {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ValueError(f"Policy {path} must be a mapping")

    exceptions: list[PolicyException] = []
    for entry in raw.get("exceptions", []) or []:
        if not isinstance(entry, dict) or not entry.get("name"):
            continue
        parsed_expires = None
        if entry.get("expires"):
            try:
                parsed_expires = datetime.fromisoformat(str(entry["expires"]))
            except ValueError:
                parsed_expires = None
        exceptions.append(
            PolicyException(
                name=str(entry["name"]),
                reason=str(entry.get("reason", "")),
                approved_by=entry.get("approved_by"),
                expires=parsed_expires,
            )
        )

    return Policy(
        project_license=raw.get("project_license"),
        min_compliance=_optional_int(raw, "min_compliance"),
        max_license_conflicts=_optional_int(raw, "max_license_conflicts"),
        max_critical=_optional_int(raw, "max_critical"),
        max_vulnerable=_optional_int(raw, "max_vulnerable"),
        exceptions=exceptions,
    )


def _is_expired(exc: PolicyException, now: datetime) -> bool:
    if exc.expires is None:
        return False
    expires = exc.expires
    if expires.tzinfo is not None:
        expires = expires.astimezone(timezone.utc).replace(tzinfo=None)
    return expires < now


def evaluate_policy(report: ComplianceReport, policy: Policy, now: Optional[datetime] = None) -> PolicyEvaluation:
    """Gate a compliance report against a policy.

    Active exceptions waive named dependencies from the license-conflict
    count; the overall compliance percentage is checked as reported.
    """

    failures: list[str] = []
    warnings: list[str] = []
    used_exceptions: list[PolicyException] = []
    expired: list[PolicyException] = []
    now = now or datetime.now(timezone.utc).replace(tzinfo=None)

    active = {exc.name: exc for exc in policy.exceptions if not _is_expired(exc, now)}

    if policy.min_compliance is not None and report.overall_compliance_percent < policy.min_compliance:
        failures.append(
            f"Compliance {report.overall_compliance_percent}% below policy minimum {policy.min_compliance}%"
        )

    unwaived = []
    for dep in report.non_compliant:
        matched = active.get(dep.name)
        if matched:
            if matched not in used_exceptions:
                used_exceptions.append(matched)
            continue
        unwaived.append(dep)

    if policy.max_license_conflicts is not None and len(unwaived) > policy.max_license_conflicts:
        names = ", ".join(f"{dep.name} ({dep.license})" for dep in unwaived)
        failures.append(
            f"Detected {len(unwaived)} license conflicts (max allowed {policy.max_license_conflicts}): {names}"
        )

    if policy.max_critical is not None and report.vulnerability_breakdown.critical > policy.max_critical:
        failures.append(
            f"Detected {report.vulnerability_breakdown.critical} critical vulnerabilities "
            f"(max allowed {policy.max_critical})"
        )

    if policy.max_vulnerable is not None and report.vulnerable_dependency_count > policy.max_vulnerable:
        failures.append(
            f"Detected {report.vulnerable_dependency_count} vulnerable dependencies "
            f"(max allowed {policy.max_vulnerable})"
        )

    for exc in policy.exceptions:
        if _is_expired(exc, now):
            expired.append(exc)
            warnings.append(f"Exception for {exc.name} expired on {exc.expires.isoformat()}")

    return PolicyEvaluation(
        passed=not failures,
        failures=failures,
        warnings=warnings,
        used_exceptions=used_exceptions,
        expired_exceptions=expired,
    )


def write_github_check(path: Path, evaluation: PolicyEvaluation, report: ComplianceReport) -> None:
    payload = {
        "conclusion": "success" if evaluation.passed else "failure",
        "summary": "; ".join(evaluation.failures) if evaluation.failures else "All policy checks passed.",
        "details": evaluation.as_dict(),
        "overall_compliance_percent": report.overall_compliance_percent,
        "vulnerability_breakdown": report.vulnerability_breakdown.as_dict(),
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2))
