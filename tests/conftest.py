import json
import sys
from pathlib import Path

import pytest

# Ensure src package is importable without installation
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if SRC.exists():
    sys.path.insert(0, str(SRC))


@pytest.fixture
def watchlist_file(tmp_path: Path) -> Path:
    """A nested-shape watchlist export with one conflict and one vulnerable package."""

    entries = [
        {
            "id": "w-1",
            "status": "approved",
            "added_at": "2024-03-01T10:00:00Z",
            "package": {
                "id": "p-1",
                "name": "left-pad",
                "license": "MIT",
                "total_score": 20,
                "vulnerability_score": 0,
                "scorecard_score": 7,
                "status": "done",
                "stars": 120,
                "contributors": 4,
            },
        },
        {
            "id": "w-2",
            "status": "pending",
            "added_at": "2024-03-02T10:00:00Z",
            "package": {
                "id": "p-2",
                "name": "readline-gpl",
                "license": "GPL-3.0",
                "total_score": 65,
                "vulnerability_score": 85,
                "status": "queued",
            },
        },
        {
            "id": "w-3",
            "status": "rejected",
            "package": {"id": "p-3", "name": "Zlib-Wrapper", "status": "done"},
        },
    ]
    path = tmp_path / "watchlist.json"
    path.write_text(json.dumps(entries))
    return path
