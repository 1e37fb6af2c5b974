"""Filter and sort pipeline for watchlist entries.

Each filter is an independent predicate over a single record, so the filtered
set does not depend on the order the predicates run in. Sorting happens only
when both a sort key and a direction are chosen; otherwise the filtered
records keep their input order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Iterable, List, Optional

from .license_compat import resolve
from .types import DependencyRecord
from .types_license import normalize_license

logger = logging.getLogger(__name__)


LICENSE_FILTER_MODES = ("all", "compatible", "incompatible", "unknown")
PROCESSING_FILTER_MODES = ("all", "queued_or_running", "done")
SORT_DIRECTIONS = ("asc", "desc")


@dataclass
class QueryControls:
    search_text: str = ""
    status_filter: set[str] = field(default_factory=set)
    license_filter_mode: str = "all"
    processing_filter_mode: str = "all"
    risk_min: float = 0
    risk_max: float = 100
    sort_key: Optional[str] = None
    sort_dir: Optional[str] = None


def _added_at_key(record: DependencyRecord) -> float:
    # Entries without a timestamp sort as the most recently added.
    if record.added_at is None:
        return float("inf")
    return record.added_at.timestamp()


SORT_KEYS: dict[str, Callable[[DependencyRecord], Any]] = {
    "name": lambda record: record.display_name.casefold(),
    "added_at": _added_at_key,
    "risk": lambda record: record.risk,
    "vulnerability": lambda record: record.vulnerability_score or 0,
    "scorecard": lambda record: record.scorecard_score,
    "stars": lambda record: record.stars or 0,
    "contributors": lambda record: record.contributors or 0,
    "status": lambda record: record.status or "pending",
}
SORT_KEYS["vuln"] = SORT_KEYS["vulnerability"]
SORT_KEYS["score"] = SORT_KEYS["scorecard"]


def passes_search(record: DependencyRecord, query: str) -> bool:
    if not query:
        return True
    return query.lower() in record.display_name.lower()


def passes_status(record: DependencyRecord, selected: Iterable[str]) -> bool:
    selected = set(selected)
    if not selected:
        return True
    return (record.status or "pending") in selected


def passes_license(record: DependencyRecord, project_license: Optional[str], mode: str) -> bool:
    if mode == "all":
        return True
    project = normalize_license(project_license)
    package = record.license if record.license and str(record.license).strip() else None
    if project is None or package is None:
        return mode == "unknown"
    compatibility = resolve(project, package)
    if mode == "compatible":
        return compatibility.is_compatible
    if mode == "incompatible":
        return not compatibility.is_compatible
    return False


def passes_processing(record: DependencyRecord, mode: str) -> bool:
    if mode == "all":
        return True
    if mode == "queued_or_running":
        return record.is_queued_or_running
    if mode == "done":
        return not record.is_queued_or_running
    return False


def passes_risk_range(record: DependencyRecord, risk_min: float, risk_max: float) -> bool:
    return risk_min <= record.risk <= risk_max


def watchlist_comparator(sort_key: str, sort_dir: str) -> tuple[Callable[[DependencyRecord], Any], bool]:
    """Return the ``(key, reverse)`` pair to hand to ``sorted``."""

    return SORT_KEYS[sort_key], sort_dir == "desc"


def run(
    items: Iterable[DependencyRecord],
    controls: QueryControls,
    project_license: Optional[str] = None,
) -> List[DependencyRecord]:
    """Apply ``controls`` to ``items`` and return the visible records.

    Malformed controls never raise: inverted risk bounds or unknown filter
    modes simply match nothing, and an unknown sort key leaves the filtered
    order untouched.
    """

    filtered = [
        record
        for record in items
        if passes_search(record, controls.search_text)
        and passes_status(record, controls.status_filter)
        and passes_license(record, project_license, controls.license_filter_mode)
        and passes_processing(record, controls.processing_filter_mode)
        and passes_risk_range(record, controls.risk_min, controls.risk_max)
    ]

    if not controls.sort_key or not controls.sort_dir:
        return filtered
    if controls.sort_key not in SORT_KEYS or controls.sort_dir not in SORT_DIRECTIONS:
        logger.debug("ignoring unsupported sort %s/%s", controls.sort_key, controls.sort_dir)
        return filtered

    key, reverse = watchlist_comparator(controls.sort_key, controls.sort_dir)
    return sorted(filtered, key=key, reverse=reverse)


def cycle_sort(controls: QueryControls, sort_key: str) -> QueryControls:
    """Advance a column header through unsorted -> asc -> desc -> unsorted."""

    if controls.sort_key != sort_key or controls.sort_dir is None:
        return replace(controls, sort_key=sort_key, sort_dir="asc")
    if controls.sort_dir == "asc":
        return replace(controls, sort_dir="desc")
    return replace(controls, sort_key=None, sort_dir=None)
