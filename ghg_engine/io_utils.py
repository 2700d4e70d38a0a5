"""
io_utils.py – File I/O helpers and output artefact writers.

Activity inputs are read from a JSON object (``{"electricity": 12000, ...}``),
a full scenario snapshot, or a two-column CSV (``input_id,quantity``).
Results are written under *outdir*:
    outdir/<name>/
        result.json
        snapshot.json

None of these functions raise on missing parent directories – they are created
automatically via ``Path.mkdir(parents=True)``.
"""
from __future__ import annotations

import csv
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ghg_engine.session import CalculationResult, CalculationSession, deserialize, serialize

OUT_RESULT = "result.json"
OUT_SNAPSHOT = "snapshot.json"
ALLOWED_EXTENSIONS = {".json", ".csv"}


# ─────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────

def _write_json(path: Path, data: Any, indent: int = 2) -> None:
    """Serialise *data* to JSON at *path*, creating parents as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        json.dump(data, fh, indent=indent, ensure_ascii=False, default=str)


def _read_csv_inputs(path: Path) -> dict[str, str]:
    """Read ``input_id,quantity`` rows; a header row is optional."""
    inputs: dict[str, str] = {}
    with path.open("r", encoding="utf-8", newline="") as fh:
        for row in csv.reader(fh):
            if len(row) < 2 or not row[0].strip() or row[0].strip().lower() in ("input_id", "id"):
                continue
            inputs[row[0].strip()] = row[1].strip()
    return inputs


# ─────────────────────────────────────────────────────────────
# Readers
# ─────────────────────────────────────────────────────────────

def load_session(path: Path) -> CalculationSession:
    """
    Load a session from *path*.

    A JSON object with ``rawInputs`` or ``emissionsData`` is treated as a
    snapshot; any other JSON object is taken as the raw inputs themselves.

    Raises
    ------
    ValueError
        If the file extension is not supported.
    SnapshotError
        If the JSON content is not an object.
    """
    suffix = path.suffix.lower()
    if suffix not in ALLOWED_EXTENSIONS:
        raise ValueError(f"Unsupported input file type: {path.suffix}")
    if suffix == ".csv":
        return deserialize({"rawInputs": _read_csv_inputs(path)})

    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict) and not ("rawInputs" in data or "emissionsData" in data):
        data = {"rawInputs": data}
    return deserialize(data)


# ─────────────────────────────────────────────────────────────
# Result payload
# ─────────────────────────────────────────────────────────────

def result_payload(result: CalculationResult) -> dict[str, Any]:
    """JSON-ready view of a CalculationResult for the CLI and the API."""
    return {
        "jurisdiction": result.session.jurisdiction,
        "emissions": result.emissions.model_dump(),
        "scope_shares": result.shares,
        "emission_values_kg": result.resolved.by_input,
        "missing_factors": result.resolved.missing_factors,
        "breakdown": [row.model_dump() for row in result.breakdown],
        "timeline": [point.model_dump() for point in result.timeline],
        "target": result.target.model_dump(),
        "offsets": result.offsets.model_dump(),
        "legislation": [instrument.model_dump() for instrument in result.legislation],
        "compliance": {name: s.model_dump() for name, s in result.compliance.items()},
        "reporting_group": result.reporting_group,
        "reduction_strategies": [
            s.model_dump(mode="json") for s in result.session.reduction_strategies
        ],
    }


# ─────────────────────────────────────────────────────────────
# Composite writer
# ─────────────────────────────────────────────────────────────

def write_all_artifacts(*, name: str, outdir: Path, result: CalculationResult) -> dict[str, Path]:
    """
    Write the result and a reloadable snapshot for one scenario.

    Returns
    -------
    Mapping of artefact key → written file path.
    """
    base = outdir / name
    paths = {
        "result": base / OUT_RESULT,
        "snapshot": base / OUT_SNAPSHOT,
    }
    _write_json(paths["result"], result_payload(result))
    saved_at = datetime.now(tz=timezone.utc)
    _write_json(paths["snapshot"], serialize(result.session, result, saved_at=saved_at))
    return paths
