"""
Radar Module: Command-Line Interface
Check deployment health and execute rollbacks.

Usage:
    python -m rct_radar.cli init-db
    python -m rct_radar.cli check <config> --environment staging
    python -m rct_radar.cli history <config> --environment production
    python -m rct_radar.cli rollback <config> --deployment-id <id> --reason "..." [--dry-run|--live]
    python -m rct_radar.cli alarm <config> <event.json>
"""

import argparse
import json
import sys
from dataclasses import replace
from datetime import datetime
from pathlib import Path

import duckdb

from rct_core.config_loader import load_rollback_config
from rct_core.deployment_log import DeploymentLog
from rct_core.errors import RollbackOrchestrationError
from rct_core.logging_config import init_logging
from rct_core.models import Environment
from rct_core.schema import ensure_schema
from rct_core.settings import get_settings

from .alarm_source import DuckDBAlarmStateSource
from .alerts import generate_rollback_report
from .factory import build_alarm_processor, build_orchestrator
from .monitor import HealthCheckMonitor, format_health_result
from .orchestrator import format_rollback_attempt
from .triggers import handle_event


def _settings_for(args):
    settings = get_settings()
    if args.db_path:
        settings = replace(settings, db_path=args.db_path)
    return settings


def cmd_init_db(args):
    """Create the analytics schema (deployment log, alarm state, metrics)."""
    settings = _settings_for(args)

    conn = duckdb.connect(settings.db_path)
    try:
        ensure_schema(conn)
        tables = conn.execute(
            "SELECT table_name FROM information_schema.tables WHERE table_schema = 'analytics'"
        ).fetchall()
    finally:
        conn.close()

    print(f"✅ Schema ready: {settings.db_path}")
    print(f"   Tables: {', '.join(sorted(t[0] for t in tables))}")
    return 0


def cmd_check(args):
    """Run one health check session against an environment's signals."""
    config = load_rollback_config(args.config)
    settings = _settings_for(args)
    environment = Environment.parse(args.environment)
    signals = config.signal_names(environment)
    duration = (
        args.duration if args.duration is not None
        else config.monitor.health_check_duration_seconds
    )

    print("\n" + "=" * 80)
    print("RADAR HEALTH CHECK")
    print("=" * 80)
    print(f"\nProject: {config.project}")
    print(f"Environment: {environment.value}")
    print(f"Time: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"Window: {duration:.0f}s (every {config.monitor.poll_interval_seconds:.0f}s)")
    print(f"\n📊 SIGNALS: {len(signals)}")
    for name in signals:
        print(f"  • {name}")

    monitor = HealthCheckMonitor(
        DuckDBAlarmStateSource(settings.db_path),
        poll_interval_seconds=config.monitor.poll_interval_seconds,
    )
    result = monitor.monitor(signals, duration)

    print("\n" + "-" * 80)
    print(format_health_result(result))
    print("\n" + "=" * 80)
    return 0 if result.success else 1


def cmd_history(args):
    """Show recent deployments for an environment."""
    config = load_rollback_config(args.config)
    settings = _settings_for(args)
    environment = Environment.parse(args.environment)

    deployment_log = DeploymentLog(settings.db_path)
    records = deployment_log.get_deployment_history(environment, limit=args.limit)
    last_good = deployment_log.get_last_known_good(environment)

    print("\n" + "=" * 80)
    print(f"DEPLOYMENT HISTORY - {config.project} / {environment.value}")
    print("=" * 80)

    if not records:
        print("\n✅ No deployments recorded")
        print("\n" + "=" * 80)
        return 0

    for record in records:
        marker = " ⭐ last known good" if last_good and record.deployment_id == last_good.deployment_id else ""
        print(f"\n  {record.deployment_id}  {record.version}  [{record.status.value}]{marker}")
        print(f"    Started: {record.start_time}")
        if record.previous_version:
            print(f"    Previous: {record.previous_version}")
        if record.rollback_level:
            print(f"    Rollback: {record.rollback_level.value} - {record.rollback_reason}")

    print("\n" + "=" * 80)
    return 0


def cmd_rollback(args):
    """
    Roll back one deployment.

    Dry-run mode (default): revert commands are logged, not executed
    Live mode (--live): revert commands run for real
    """
    config = load_rollback_config(args.config)
    settings = _settings_for(args)
    dry_run = not args.live

    print("\n" + "=" * 80)
    print(f"RADAR ROLLBACK {'[DRY-RUN]' if dry_run else '[LIVE MODE]'}")
    print("=" * 80)
    print(f"\nProject: {config.project}")
    print(f"Deployment: {args.deployment_id}")
    print(f"Reason: {args.reason}")
    print(f"Time: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")

    if dry_run:
        print("\n⚠️  DRY-RUN MODE: Revert commands will only be logged")
    else:
        print("\n🚨 LIVE MODE: Revert commands will be executed")
        response = input("\n   Type 'CONFIRM' to proceed: ")
        if response != 'CONFIRM':
            print("\n   Aborted.")
            return 1

    deployment_log = DeploymentLog(settings.db_path)
    record = deployment_log.get_deployment(args.deployment_id)
    if record is None:
        print(f"\n❌ Deployment not found: {args.deployment_id}")
        return 1

    orchestrator = build_orchestrator(
        config, settings, dry_run=dry_run, state_store=deployment_log
    )

    try:
        attempt = orchestrator.execute_rollback(record.to_deployment(), args.reason)
    except RollbackOrchestrationError as e:
        print(f"\n❌ Rollback crashed: {e}")
        return 2

    print("\n" + "-" * 80)
    print(format_rollback_attempt(attempt))

    report_dir = Path(f"reports/rollbacks/{config.project}")
    report_dir.mkdir(parents=True, exist_ok=True)
    report_path = report_dir / f"{datetime.now().strftime('%Y-%m-%d_%H%M%S')}_rollback.json"
    generate_rollback_report(
        [
            {
                'deployment_id': record.deployment_id,
                'environment': record.environment.value,
                'version': record.version,
                'target_version': record.previous_version,
                'reason': args.reason,
                'level': attempt.level.value,
                'success': attempt.success,
                'failure_reason': attempt.reason,
                'duration_ms': attempt.duration_ms,
                'dry_run': dry_run,
            }
        ],
        config.project,
        str(report_path),
    )
    print(f"\n  📄 Report saved: {report_path}")
    print("\n" + "=" * 80)
    return 0 if attempt.success else 1


def cmd_alarm(args):
    """Process an alarm state-change event from a JSON file."""
    config = load_rollback_config(args.config)
    settings = _settings_for(args)

    with open(args.event, 'r') as f:
        event = json.load(f)

    processor = build_alarm_processor(config, settings, dry_run=not args.live)
    response = handle_event(event, processor)

    print(json.dumps(response, indent=2))
    return 0 if response["status_code"] == 200 else 1


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Radar: Check deployment health and execute rollbacks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Create the database schema
  python -m rct_radar.cli init-db

  # One health check session for staging
  python -m rct_radar.cli check configs/rollback_example.yaml --environment staging

  # Dry-run rollback (revert commands only logged)
  python -m rct_radar.cli rollback configs/rollback_example.yaml --deployment-id "production#1760000000000" --reason "error rate"

  # Process an alarm event
  python -m rct_radar.cli alarm configs/rollback_example.yaml event.json
        """
    )

    parser.add_argument(
        '--db-path',
        default=None,
        help='Path to DuckDB database (default: RCT_DB_PATH or ./rollback.duckdb)'
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    parser_init = subparsers.add_parser('init-db', help='Create the analytics schema')
    parser_init.set_defaults(func=cmd_init_db)

    parser_check = subparsers.add_parser('check', help='Run one health check session')
    parser_check.add_argument('config', help='Path to rollback config YAML file')
    parser_check.add_argument('--environment', required=True, help='test, staging or production')
    parser_check.add_argument(
        '--duration', type=float, default=None,
        help='Monitoring window in seconds (default: from config)'
    )
    parser_check.set_defaults(func=cmd_check)

    parser_history = subparsers.add_parser('history', help='Show deployment history')
    parser_history.add_argument('config', help='Path to rollback config YAML file')
    parser_history.add_argument('--environment', required=True, help='test, staging or production')
    parser_history.add_argument('--limit', type=int, default=20, help='Max records (default: 20)')
    parser_history.set_defaults(func=cmd_history)

    parser_rollback = subparsers.add_parser('rollback', help='Roll back a deployment')
    parser_rollback.add_argument('config', help='Path to rollback config YAML file')
    parser_rollback.add_argument('--deployment-id', required=True, help='Deployment to roll back')
    parser_rollback.add_argument('--reason', required=True, help='Why the rollback is needed')
    parser_rollback.add_argument(
        '--dry-run',
        action='store_true',
        default=True,
        help='Log revert commands without running them (default)'
    )
    parser_rollback.add_argument(
        '--live',
        action='store_true',
        help='Run revert commands for real'
    )
    parser_rollback.set_defaults(func=cmd_rollback)

    parser_alarm = subparsers.add_parser('alarm', help='Process an alarm event JSON file')
    parser_alarm.add_argument('config', help='Path to rollback config YAML file')
    parser_alarm.add_argument('event', help='Path to alarm event JSON file')
    parser_alarm.add_argument('--live', action='store_true', help='Run revert commands for real')
    parser_alarm.set_defaults(func=cmd_alarm)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    settings = get_settings()
    init_logging(settings.log_level, settings.log_dir)

    sys.exit(args.func(args))


if __name__ == '__main__':
    main()
