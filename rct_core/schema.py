"""
DuckDB schema for deployment records, alarm states and pipeline metrics.

Applied by tools/run_migration.py and `python -m rct_radar.cli init-db`.
"""

SCHEMA_SQL = """
CREATE SCHEMA IF NOT EXISTS analytics;

CREATE TABLE IF NOT EXISTS analytics.deployment_log (
    deployment_id TEXT PRIMARY KEY,
    environment TEXT NOT NULL,
    version TEXT NOT NULL,
    previous_version TEXT,
    status TEXT NOT NULL,
    start_time TIMESTAMP NOT NULL,
    end_time TIMESTAMP,
    infrastructure_changed BOOLEAN DEFAULT FALSE,
    commit_message TEXT,
    commit_author TEXT,
    pipeline_execution_id TEXT,
    artifact_location TEXT,
    rollback_reason TEXT,
    rollback_level TEXT,
    rollback_time TIMESTAMP,
    expires_at BIGINT
);

CREATE TABLE IF NOT EXISTS analytics.alarm_state (
    alarm_name TEXT PRIMARY KEY,
    state TEXT NOT NULL,
    reason TEXT,
    updated_at TIMESTAMP
);

CREATE SEQUENCE IF NOT EXISTS analytics.pipeline_metrics_seq START 1;

CREATE TABLE IF NOT EXISTS analytics.pipeline_metrics (
    metric_id INTEGER DEFAULT nextval('analytics.pipeline_metrics_seq'),
    metric_name TEXT NOT NULL,
    value DOUBLE NOT NULL,
    dimensions TEXT,
    recorded_at TIMESTAMP NOT NULL
);
"""


def ensure_schema(conn) -> None:
    """Create the schema and tables if they do not exist (idempotent)."""
    conn.execute(SCHEMA_SQL)
