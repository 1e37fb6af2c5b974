from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional

from .types import DependencyRecord, DependencyScores

logger = logging.getLogger(__name__)


SCORE_FIELDS = {
    "total": "total_score",
    "vulnerability": "vulnerability_score",
    "activity": "activity_score",
    "bus_factor": "bus_factor_score",
    "license_score": "license_score",
    "scorecard": "scorecard_score",
}


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as exc:
        raise ValueError(f"Unable to read {path}: {exc}") from exc


def _as_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_int(value: Any) -> Optional[int]:
    number = _as_float(value)
    return int(number) if number is not None else None


def parse_added_at(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def parse_scores(package: dict) -> Optional[DependencyScores]:
    values = {attr: _as_float(package.get(key)) for attr, key in SCORE_FIELDS.items()}
    if all(value is None for value in values.values()):
        return None
    return DependencyScores(**values)


def parse_record(entry: Any) -> Optional[DependencyRecord]:
    """Convert one watchlist export entry into a ``DependencyRecord``.

    Accepts the nested shape, where package metadata and scores live under a
    ``package`` key, as well as a flat entry carrying the same keys directly.
    Returns ``None`` for entries that cannot identify a package.
    """

    if not isinstance(entry, dict):
        return None
    nested = isinstance(entry.get("package"), dict)
    package = entry["package"] if nested else entry

    name = package.get("name") or entry.get("name")
    record_id = entry.get("id") or package.get("id") or name
    if not name and not record_id:
        return None

    if nested:
        processing_status = package.get("status")
        review_status = entry.get("status")
    else:
        processing_status = entry.get("processing_status")
        review_status = entry.get("review_status") or entry.get("status")

    return DependencyRecord(
        id=str(record_id),
        name=str(name or ""),
        version=str(entry.get("version") or package.get("version") or ""),
        license=package.get("license") or entry.get("license"),
        scores=parse_scores(package),
        processing_status=processing_status,
        repo_url=package.get("repo_url"),
        stars=_as_int(package.get("stars")),
        contributors=_as_int(package.get("contributors")),
        status=str(review_status or "pending"),
        added_at=parse_added_at(entry.get("added_at")),
    )


def load_watchlist(path: Path) -> List[DependencyRecord]:
    data = _read_json(path)
    if isinstance(data, dict):
        data = data.get("watchlist") or data.get("dependencies") or []
    if not isinstance(data, list):
        raise ValueError(f"{path} does not contain a list of watchlist entries")

    records: List[DependencyRecord] = []
    for index, entry in enumerate(data):
        record = parse_record(entry)
        if record is None:
            logger.warning("skipping malformed watchlist entry %d in %s", index, path)
            continue
        records.append(record)
    return records


def parse_sbom(path: Path) -> List[DependencyRecord]:
    """Read CycloneDX or SPDX JSON components as unscored records."""

    data = _read_json(path)
    if not isinstance(data, dict):
        return []

    if str(data.get("bomFormat", "")).lower() == "cyclonedx":
        records: List[DependencyRecord] = []
        components = data.get("components") or []
        if not isinstance(components, list):
            logger.warning("%s has no list of CycloneDX components", path)
            return []
        for index, comp in enumerate(components):
            if not isinstance(comp, dict):
                logger.warning("skipping malformed CycloneDX component %d in %s", index, path)
                continue
            license_value = None
            licenses = comp.get("licenses") or []
            if isinstance(licenses, list) and licenses and isinstance(licenses[0], dict):
                license_data = licenses[0].get("license") or {}
                if isinstance(license_data, dict):
                    license_value = license_data.get("id") or license_data.get("name")
            elif licenses:
                logger.warning("ignoring malformed licenses on component %d in %s", index, path)
            name = comp.get("name", "unknown")
            records.append(
                DependencyRecord(
                    id=str(comp.get("purl") or comp.get("bom-ref") or name),
                    name=name,
                    version=str(comp.get("version") or ""),
                    license=license_value,
                    processing_status="done",
                )
            )
        return records

    if data.get("spdxVersion"):
        records = []
        packages = data.get("packages") or []
        if not isinstance(packages, list):
            logger.warning("%s has no list of SPDX packages", path)
            return []
        for index, pkg in enumerate(packages):
            if not isinstance(pkg, dict):
                logger.warning("skipping malformed SPDX package %d in %s", index, path)
                continue
            license_value = pkg.get("licenseDeclared") or pkg.get("licenseConcluded")
            if license_value in {"NOASSERTION", "NONE"}:
                license_value = None
            name = pkg.get("name", "unknown")
            records.append(
                DependencyRecord(
                    id=str(pkg.get("SPDXID") or name),
                    name=name,
                    version=str(pkg.get("versionInfo") or ""),
                    license=license_value,
                    processing_status="done",
                )
            )
        return records

    logger.warning("%s is neither a CycloneDX nor an SPDX document", path)
    return []
