"""
Deployment log persistence - tracks deployments and rollback outcomes.

Backs the "last known good" lookup used by full rollbacks: a key-value table
keyed by deployment_id, queried per environment in start_time order.
"""

import calendar
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, List, Optional, Sequence

import duckdb

from .errors import StateStoreError
from .models import (
    Deployment,
    DeploymentRecord,
    DeploymentStatus,
    Environment,
    RollbackLevel,
    _safe_int,
)
from .schema import ensure_schema

logger = logging.getLogger(__name__)

RECORD_TTL_DAYS = 90

_COLUMNS = [
    "deployment_id",
    "environment",
    "version",
    "previous_version",
    "status",
    "start_time",
    "end_time",
    "infrastructure_changed",
    "commit_message",
    "commit_author",
    "pipeline_execution_id",
    "artifact_location",
    "rollback_reason",
    "rollback_level",
    "rollback_time",
    "expires_at",
]
_SELECT = f"SELECT {', '.join(_COLUMNS)} FROM analytics.deployment_log"


def _as_naive_utc(value: datetime) -> datetime:
    """start_time is stored as naive UTC; aware values are converted."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _utc_epoch_seconds(value: datetime) -> int:
    # Naive values are UTC, independent of the host timezone
    return calendar.timegm(value.utctimetuple())


def _row_to_record(row: Sequence[Any]) -> DeploymentRecord:
    data = dict(zip(_COLUMNS, row))
    return DeploymentRecord(
        deployment_id=data["deployment_id"],
        environment=Environment.parse(data["environment"]),
        version=data["version"],
        status=DeploymentStatus(data["status"]),
        start_time=data["start_time"],
        end_time=data["end_time"],
        previous_version=data["previous_version"],
        infrastructure_changed=bool(data["infrastructure_changed"]),
        commit_message=data["commit_message"] or "",
        commit_author=data["commit_author"] or "",
        pipeline_execution_id=data["pipeline_execution_id"] or "",
        artifact_location=data["artifact_location"] or "",
        rollback_reason=data["rollback_reason"],
        rollback_level=RollbackLevel(data["rollback_level"]) if data["rollback_level"] else None,
        rollback_time=data["rollback_time"],
        expires_at=_safe_int(data["expires_at"], default=0) or None,
    )


class DeploymentLog:
    """Manages deployment records in DuckDB"""

    def __init__(self, db_path: str = "rollback.duckdb", create_schema: bool = True):
        self.db_path = Path(db_path)
        if create_schema:
            conn = self._get_connection()
            try:
                ensure_schema(conn)
            except duckdb.Error as e:
                raise StateStoreError(f"Failed to create deployment schema: {e}") from e
            finally:
                conn.close()

    def _get_connection(self):
        """Get DuckDB connection"""
        return duckdb.connect(str(self.db_path))

    def _execute(self, action: str, query: str, params: List[Any]):
        conn = self._get_connection()
        try:
            cursor = conn.execute(query, params)
            rows = cursor.fetchall() if cursor.description else []
            return rows
        except duckdb.Error as e:
            raise StateStoreError(f"Failed to {action}: {e}") from e
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Deployment lifecycle
    # ------------------------------------------------------------------

    def record_deployment_start(
        self,
        environment: Environment,
        version: str,
        previous_version: Optional[str] = None,
        commit_message: str = "",
        commit_author: str = "",
        pipeline_execution_id: str = "",
        artifact_location: str = "",
        infrastructure_changed: bool = False,
        started_at: Optional[datetime] = None,
    ) -> str:
        """
        Record the start of a new deployment with status in_progress.

        Returns: deployment_id ("{environment}#{epoch_ms}")
        """
        environment = Environment.parse(environment)
        started_at = _as_naive_utc(started_at or datetime.utcnow())
        epoch_ms = _utc_epoch_seconds(started_at) * 1000 + started_at.microsecond // 1000
        deployment_id = f"{environment.value}#{epoch_ms}"
        expires_at = _utc_epoch_seconds(started_at + timedelta(days=RECORD_TTL_DAYS))

        self._execute(
            f"record deployment start for {deployment_id}",
            """
            INSERT INTO analytics.deployment_log (
                deployment_id, environment, version, previous_version, status,
                start_time, infrastructure_changed, commit_message, commit_author,
                pipeline_execution_id, artifact_location, expires_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                deployment_id,
                environment.value,
                version,
                previous_version,
                DeploymentStatus.IN_PROGRESS.value,
                started_at,
                infrastructure_changed,
                commit_message,
                commit_author,
                pipeline_execution_id,
                artifact_location,
                expires_at,
            ],
        )
        logger.info(f"Deployment recorded: {deployment_id} version={version}")
        return deployment_id

    def update_deployment_status(self, deployment_id: str, status: DeploymentStatus) -> None:
        status = DeploymentStatus(status)
        self._execute(
            f"update deployment status for {deployment_id}",
            """
            UPDATE analytics.deployment_log
            SET status = ?, end_time = ?
            WHERE deployment_id = ?
            """,
            [status.value, datetime.utcnow(), deployment_id],
        )

    def get_deployment(self, deployment_id: str) -> Optional[DeploymentRecord]:
        rows = self._execute(
            f"get deployment {deployment_id}",
            f"{_SELECT} WHERE deployment_id = ?",
            [deployment_id],
        )
        return _row_to_record(rows[0]) if rows else None

    def get_last_known_good(self, environment: Environment) -> Optional[DeploymentRecord]:
        """Most recent deployment with status 'succeeded' in the environment."""
        environment = Environment.parse(environment)
        rows = self._execute(
            f"get last known good deployment for {environment.value}",
            f"""
            {_SELECT}
            WHERE environment = ? AND status = ?
            ORDER BY start_time DESC
            LIMIT 1
            """,
            [environment.value, DeploymentStatus.SUCCEEDED.value],
        )
        return _row_to_record(rows[0]) if rows else None

    def get_deployment_history(
        self,
        environment: Environment,
        limit: int = 50,
        before: Optional[datetime] = None,
    ) -> List[DeploymentRecord]:
        """
        Deployments for an environment, most recent first.

        Pass the start_time of the last record of a page as `before` to get
        the next page.
        """
        environment = Environment.parse(environment)
        query = f"{_SELECT} WHERE environment = ?"
        params: List[Any] = [environment.value]
        if before is not None:
            query += " AND start_time < ?"
            params.append(before)
        query += f" ORDER BY start_time DESC LIMIT {int(limit)}"

        rows = self._execute(
            f"get deployment history for {environment.value}", query, params
        )
        return [_row_to_record(row) for row in rows]

    def get_active_deployment(self, environment: Environment) -> Optional[DeploymentRecord]:
        """Newest in_progress deployment among the last 10 for the environment."""
        for record in self.get_deployment_history(environment, limit=10):
            if record.status == DeploymentStatus.IN_PROGRESS:
                return record
        return None

    # ------------------------------------------------------------------
    # Rollback outcomes
    # ------------------------------------------------------------------

    def record_rollback_start(self, deployment: Deployment, reason: str) -> None:
        self._update_rollback(
            "record rollback start",
            deployment,
            "rollback_reason = ?, rollback_time = ?",
            [reason, datetime.utcnow()],
        )

    def record_rollback_success(self, deployment: Deployment, level: RollbackLevel) -> None:
        self._update_rollback(
            "record rollback success",
            deployment,
            "status = ?, rollback_level = ?, end_time = ?",
            [DeploymentStatus.ROLLED_BACK.value, RollbackLevel(level).value, datetime.utcnow()],
        )

    def record_rollback_failure(self, deployment: Deployment, reason: str) -> None:
        self._update_rollback(
            "record rollback failure",
            deployment,
            "status = ?, rollback_level = ?, rollback_reason = ?, end_time = ?",
            [DeploymentStatus.FAILED.value, RollbackLevel.NONE.value, reason, datetime.utcnow()],
        )

    def _update_rollback(
        self, action: str, deployment: Deployment, assignments: str, params: List[Any]
    ) -> None:
        if self.get_deployment(deployment.deployment_id) is None:
            logger.warning(
                f"{action}: deployment {deployment.deployment_id} not in deployment log"
            )
            return
        self._execute(
            f"{action} for {deployment.deployment_id}",
            f"UPDATE analytics.deployment_log SET {assignments} WHERE deployment_id = ?",
            params + [deployment.deployment_id],
        )
