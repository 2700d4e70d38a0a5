"""
db.py – PostgreSQL persistence for scenario snapshots and emission factors.

Scenarios live in ``carbon_footprint_scenarios`` with the snapshot stored as
JSONB in ``data``. Factor catalogs are read from ``emission_factors``,
country-specific rows first and ``GLOBAL`` rows as fallback.

Every scenario call returns a PersistenceResult instead of raising; a
database failure never touches the caller's in-memory session.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

import psycopg2
from psycopg2.extras import Json, RealDictCursor

from ghg_engine.legislation import normalize_jurisdiction
from ghg_engine.schemas import EmissionFactor

logger = logging.getLogger(__name__)

GLOBAL_REGION = "GLOBAL"

COUNTRY_CODES: dict[str, str] = {
    "Australia": "AU",
    "United States": "US",
    "European Union": "EU",
    "United Kingdom": "GB",
    "Canada": "CA",
    "New Zealand": "NZ",
    "Japan": "JP",
    "South Korea": "KR",
    "Singapore": "SG",
    "Switzerland": "CH",
}


def get_connection(database_url: str):
    """Return a psycopg2 connection. Caller must close it."""
    return psycopg2.connect(database_url)


def test_connection(database_url: str) -> tuple[bool, str | None]:
    """
    Connect to PostgreSQL and run SELECT 1. Return (True, None) on success,
    (False, error_message) on failure.
    """
    try:
        conn = get_connection(database_url)
        try:
            with conn.cursor() as cur:
                cur.execute("SELECT 1")
                cur.fetchone()
        finally:
            conn.close()
        return True, None
    except Exception as e:  # noqa: BLE001
        return False, str(e)


class ScenarioNotFoundError(LookupError):
    """No scenario matches the footprint and scenario id."""


@dataclass
class PersistenceResult:
    success: bool
    data: Any = None
    error: str | None = None
    not_found: bool = False   # the addressed scenario does not exist


def _row_to_scenario(row: dict[str, Any]) -> dict[str, Any]:
    """camelCase scenario dict; ``data`` is decoded when stored as text."""
    data = row.get("data")
    if isinstance(data, str):
        try:
            data = json.loads(data)
        except json.JSONDecodeError:
            logger.warning("Scenario %s has undecodable data", row.get("id"))
    return {
        "id": row.get("id"),
        "carbonFootprintId": row.get("carbon_footprint_id"),
        "name": row.get("name"),
        "data": data,
        "createdAt": row.get("created_at"),
        "updatedAt": row.get("updated_at"),
    }


# ─────────────────────────────────────────────────────────────
# Scenario store
# ─────────────────────────────────────────────────────────────

class ScenarioStore:
    """
    CRUD for named scenario snapshots of one carbon footprint.

    *connect* returns a fresh connection per call (defaults to
    ``get_connection(database_url)``); tests pass a factory returning a mock.
    """

    def __init__(self, database_url: str | None = None, connect: Optional[Callable[[], Any]] = None):
        if connect is None and not database_url:
            raise ValueError("ScenarioStore needs a database_url or a connect factory")
        self._connect = connect or (lambda: get_connection(database_url))

    def _run(self, action: str, fn: Callable[[Any], Any]) -> PersistenceResult:
        try:
            conn = self._connect()
        except Exception as e:  # noqa: BLE001
            logger.error("Scenario %s failed to connect: %s", action, e)
            return PersistenceResult(False, error=str(e))
        try:
            data = fn(conn)
            conn.commit()
            return PersistenceResult(True, data=data)
        except ScenarioNotFoundError as e:
            conn.rollback()
            return PersistenceResult(False, error=str(e), not_found=True)
        except Exception as e:  # noqa: BLE001
            conn.rollback()
            logger.error("Scenario %s failed: %s", action, e)
            return PersistenceResult(False, error=str(e))
        finally:
            conn.close()

    def save(self, footprint_id: int, name: Optional[str], snapshot: dict[str, Any]) -> PersistenceResult:
        """Insert a new scenario; ``data`` is the created scenario dict."""
        def _save(conn):
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(
                    """
                    INSERT INTO carbon_footprint_scenarios
                        (carbon_footprint_id, name, data, created_at, updated_at)
                    VALUES (%s, %s, %s, NOW(), NOW())
                    RETURNING *
                    """,
                    (footprint_id, name or "New Scenario", Json(snapshot or {})),
                )
                return _row_to_scenario(dict(cur.fetchone()))
        return self._run("save", _save)

    def update(self, footprint_id: int, scenario_id: int, name: Optional[str] = None,
               snapshot: Optional[dict[str, Any]] = None) -> PersistenceResult:
        """Rename and/or replace the snapshot; missing values keep their stored value."""
        def _update(conn):
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(
                    """
                    UPDATE carbon_footprint_scenarios
                    SET name = COALESCE(%s, name),
                        data = COALESCE(%s, data),
                        updated_at = NOW()
                    WHERE id = %s AND carbon_footprint_id = %s
                    RETURNING *
                    """,
                    (name, Json(snapshot) if snapshot is not None else None, scenario_id, footprint_id),
                )
                row = cur.fetchone()
                if not row:
                    raise ScenarioNotFoundError(f"Scenario {scenario_id} not found")
                return _row_to_scenario(dict(row))
        return self._run("update", _update)

    def load(self, footprint_id: int, scenario_id: int) -> PersistenceResult:
        def _load(conn):
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(
                    """
                    SELECT * FROM carbon_footprint_scenarios
                    WHERE id = %s AND carbon_footprint_id = %s
                    """,
                    (scenario_id, footprint_id),
                )
                row = cur.fetchone()
                if not row:
                    raise ScenarioNotFoundError(f"Scenario {scenario_id} not found")
                return _row_to_scenario(dict(row))
        return self._run("load", _load)

    def list_scenarios(self, footprint_id: int) -> PersistenceResult:
        """All scenarios of a footprint, newest first."""
        def _list(conn):
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(
                    """
                    SELECT * FROM carbon_footprint_scenarios
                    WHERE carbon_footprint_id = %s
                    ORDER BY created_at DESC
                    """,
                    (footprint_id,),
                )
                return [_row_to_scenario(dict(row)) for row in cur.fetchall()]
        return self._run("list", _list)

    def delete(self, footprint_id: int, scenario_id: int) -> PersistenceResult:
        def _delete(conn):
            with conn.cursor() as cur:
                cur.execute(
                    """
                    DELETE FROM carbon_footprint_scenarios
                    WHERE id = %s AND carbon_footprint_id = %s
                    RETURNING id, name
                    """,
                    (scenario_id, footprint_id),
                )
                row = cur.fetchone()
                if not row:
                    raise ScenarioNotFoundError(f"Scenario {scenario_id} not found")
                return {"id": row[0], "name": row[1]}
        return self._run("delete", _delete)


# ─────────────────────────────────────────────────────────────
# Factor provider
# ─────────────────────────────────────────────────────────────

class DatabaseFactorProvider:
    """
    Reads ``emission_factors`` rows for a region and year.

    Errors propagate; resolver.load_catalog() turns them into a fallback to
    the built-in catalog.
    """

    def __init__(self, database_url: str | None = None, connect: Optional[Callable[[], Any]] = None):
        if connect is None and not database_url:
            raise ValueError("DatabaseFactorProvider needs a database_url or a connect factory")
        self._connect = connect or (lambda: get_connection(database_url))

    def get(self, region: str, year: int) -> list[EmissionFactor]:
        code = COUNTRY_CODES.get(normalize_jurisdiction(region), GLOBAL_REGION)
        conn = self._connect()
        try:
            with conn.cursor() as cur:
                if code != GLOBAL_REGION:
                    cur.execute(
                        """
                        SELECT factor_name, category, country_code, factor_value
                        FROM emission_factors
                        WHERE (country_code = %s OR country_code = %s) AND year = %s
                        ORDER BY CASE WHEN country_code = %s THEN 0 ELSE 1 END, factor_name
                        """,
                        (code, GLOBAL_REGION, year, code),
                    )
                else:
                    cur.execute(
                        """
                        SELECT factor_name, category, country_code, factor_value
                        FROM emission_factors
                        WHERE country_code = %s AND year = %s
                        ORDER BY factor_name
                        """,
                        (GLOBAL_REGION, year),
                    )
                rows = cur.fetchall()
        finally:
            conn.close()
        logger.info("Loaded %d emission factors for %s/%s", len(rows), code, year)
        return [
            EmissionFactor(name=name, category=category or "", region_code=country, value=value)
            for name, category, country, value in rows
        ]
