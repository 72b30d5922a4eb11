"""JSON report exporter."""

from __future__ import annotations

import json

from bun_ready.models import ScanResult


def render_json(result: ScanResult) -> str:
    """Render scan results as a camelCase JSON document."""
    data = result.to_json_dict()
    # Worst first, then by id
    rank = {"red": 0, "yellow": 1, "green": 2}
    data["findings"] = sorted(data["findings"], key=lambda f: (rank[f["severity"]], f["id"]))
    for pkg in data["packages"]:
        pkg["findings"] = sorted(pkg["findings"], key=lambda f: (rank[f["severity"]], f["id"]))
    return json.dumps(data, indent=2, ensure_ascii=False)
