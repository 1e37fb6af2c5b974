from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


PROCESSING_STATUSES = ("queued", "running", "done")
REVIEW_STATUSES = ("approved", "pending", "rejected")


@dataclass(frozen=True)
class DependencyScores:
    """Per-package scores produced upstream; every score is optional."""

    total: Optional[float] = None
    vulnerability: Optional[float] = None
    activity: Optional[float] = None
    bus_factor: Optional[float] = None
    license_score: Optional[float] = None
    scorecard: Optional[float] = None


@dataclass(frozen=True)
class DependencyRecord:
    id: str
    name: str
    version: str = ""
    license: Optional[str] = None
    scores: Optional[DependencyScores] = None
    processing_status: Optional[str] = None
    repo_url: Optional[str] = None
    stars: Optional[int] = None
    contributors: Optional[int] = None
    status: str = "pending"
    added_at: Optional[datetime] = None

    @property
    def display_name(self) -> str:
        return self.name or "Unknown Package"

    @property
    def risk(self) -> float:
        """Total score used for risk filtering; unscored records count as 0."""

        if self.scores is None or self.scores.total is None:
            return 0
        return self.scores.total

    @property
    def vulnerability_score(self) -> Optional[float]:
        return self.scores.vulnerability if self.scores else None

    @property
    def scorecard_score(self) -> float:
        if self.scores is None or self.scores.scorecard is None:
            return 0
        return self.scores.scorecard

    @property
    def is_queued_or_running(self) -> bool:
        # Records with no processing status are treated as finished.
        return bool(self.processing_status) and self.processing_status != "done"
