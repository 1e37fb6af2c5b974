from __future__ import annotations

"""Shared data structures for compliance and watchlist evaluation.

The definitions live in domain-focused modules; this module re-exports them
so callers have a single stable import path.
"""

from .types_dependencies import PROCESSING_STATUSES, REVIEW_STATUSES, DependencyRecord, DependencyScores
from .types_license import Compatibility, classify_license, normalize_license
from .types_report import ComplianceReport, NonCompliantDependency, VulnerabilityBreakdown

__all__ = [
    "Compatibility",
    "ComplianceReport",
    "DependencyRecord",
    "DependencyScores",
    "NonCompliantDependency",
    "PROCESSING_STATUSES",
    "REVIEW_STATUSES",
    "VulnerabilityBreakdown",
    "classify_license",
    "normalize_license",
]
