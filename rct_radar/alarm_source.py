"""
Radar Module: Alarm State Source
Reads current signal states from analytics.alarm_state in DuckDB.

The table is fed by whatever evaluates the alarms (metric pipeline, webhook
receiver, `cli alarm`); this module only reads it, fresh on every call.
"""

import logging
from datetime import datetime
from typing import List, Optional

import duckdb

from rct_core.errors import TransportError
from rct_core.models import AlarmSnapshot, AlarmState
from rct_core.schema import ensure_schema

logger = logging.getLogger(__name__)


class DuckDBAlarmStateSource:
    """Alarm states stored in DuckDB."""

    def __init__(self, db_path: str = "rollback.duckdb"):
        self.db_path = db_path

    def fetch(self, names: List[str]) -> List[AlarmSnapshot]:
        """
        Current state of each named alarm.

        Alarms with no row are reported as UNKNOWN (insufficient data).

        Raises:
            TransportError: database could not be read
        """
        if not names:
            return []

        placeholders = ", ".join("?" for _ in names)
        query = f"""
        SELECT alarm_name, state, reason
        FROM analytics.alarm_state
        WHERE alarm_name IN ({placeholders})
        """

        try:
            conn = duckdb.connect(self.db_path, read_only=True)
        except duckdb.Error as e:
            raise TransportError(f"Failed to check alarms: {e}") from e

        try:
            rows = conn.execute(query, list(names)).fetchall()
        except duckdb.Error as e:
            raise TransportError(f"Failed to check alarms: {e}") from e
        finally:
            conn.close()

        found = {row[0]: row for row in rows}
        snapshots = []
        for name in names:
            row = found.get(name)
            if row is None:
                snapshots.append(AlarmSnapshot(name=name, state=AlarmState.UNKNOWN, reason="No data"))
            else:
                snapshots.append(
                    AlarmSnapshot(name=name, state=AlarmState.parse(row[1]), reason=row[2])
                )
        return snapshots

    def set_state(self, name: str, state: str, reason: Optional[str] = None) -> None:
        """Upsert one alarm's state."""
        alarm_state = AlarmState.parse(state)
        conn = duckdb.connect(self.db_path)
        try:
            ensure_schema(conn)
            conn.execute("DELETE FROM analytics.alarm_state WHERE alarm_name = ?", [name])
            conn.execute(
                """
                INSERT INTO analytics.alarm_state (alarm_name, state, reason, updated_at)
                VALUES (?, ?, ?, ?)
                """,
                [name, alarm_state.value, reason, datetime.utcnow()],
            )
            logger.info(f"Alarm {name} -> {alarm_state.value}")
        except duckdb.Error as e:
            raise TransportError(f"Failed to update alarm {name}: {e}") from e
        finally:
            conn.close()
