"""
Radar Module: Pipeline Metrics
Rollback metrics (duration by level, escalations) stored in DuckDB.
"""

import json
import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

import duckdb

from rct_core.errors import MetricsDeliveryError
from rct_core.schema import ensure_schema

logger = logging.getLogger(__name__)


class DuckDBMetricsSink:
    """Append metrics to analytics.pipeline_metrics."""

    def __init__(self, db_path: str = "rollback.duckdb"):
        self.db_path = db_path

    def publish(self, name: str, value: float, dimensions: Dict[str, str]) -> None:
        try:
            conn = duckdb.connect(self.db_path)
        except duckdb.Error as e:
            raise MetricsDeliveryError(f"Failed to publish metric {name}: {e}") from e

        try:
            ensure_schema(conn)
            conn.execute(
                """
                INSERT INTO analytics.pipeline_metrics (metric_name, value, dimensions, recorded_at)
                VALUES (?, ?, ?, ?)
                """,
                [name, float(value), json.dumps(dimensions, sort_keys=True), datetime.utcnow()],
            )
        except duckdb.Error as e:
            raise MetricsDeliveryError(f"Failed to publish metric {name}: {e}") from e
        finally:
            conn.close()
        logger.debug(f"Metric published: {name}={value} {dimensions}")

    def query(self, name: Optional[str] = None) -> List[Tuple[str, float, Dict[str, str]]]:
        """Recorded metrics, oldest first."""
        query = "SELECT metric_name, value, dimensions FROM analytics.pipeline_metrics"
        params = []
        if name:
            query += " WHERE metric_name = ?"
            params.append(name)
        query += " ORDER BY metric_id"

        conn = duckdb.connect(self.db_path)
        try:
            ensure_schema(conn)
            rows = conn.execute(query, params).fetchall()
        finally:
            conn.close()
        return [(row[0], row[1], json.loads(row[2] or "{}")) for row in rows]


class LoggingMetricsSink:
    """Log metrics only."""

    def publish(self, name: str, value: float, dimensions: Dict[str, str]) -> None:
        logger.info(f"[METRIC] {name}={value:.3f} {json.dumps(dimensions, sort_keys=True)}")
