#!/usr/bin/env python3
"""
Roster2Groups command line entry point.

Run one reconciliation of the roster against the group directory, or show
the recorded run history. Intended to be started by cron or a similar
scheduler; each invocation is one run.

Usage:
    python sync_groups.py run [--config config.json] [--if-due] [--dry-run]
    python sync_groups.py status [--config config.json] [--data-dir ./data]

Every config value can also come from an R2G_-prefixed environment variable
(R2G_ACCESS_TOKEN, R2G_ROSTER_PATH, ...), which overrides the config file.
"""

import argparse
import json
import logging
import os
import sys
import traceback
from dataclasses import asdict

logger = logging.getLogger('Roster2Groups.cli')


def load_config_file(path):
    """Load a JSON config file. Returns {} when no path is given."""
    if not path:
        return {}
    if not os.path.exists(path):
        raise FileNotFoundError(f"Config file not found: {path}")
    with open(path, 'r') as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must hold a JSON object")
    return data


def build_orchestrator(config, directory, dry_run=False):
    """Wire stores, coordinator and engine for one run.

    Args:
        config: Validated Roster2GroupsConfig
        directory: Open DirectoryClient
        dry_run: Plan only, without add/remove calls or write-back

    Returns:
        RunOrchestrator ready to run()
    """
    from coordination.coordinator import ExclusionCoordinator
    from coordination.lock import FileLock
    from coordination.maintenance import SettingsMaintenanceFlag
    from reconciliation.engine import MembershipReconciler
    from reconciliation.orchestrator import RunOrchestrator
    from roster.excluded import ExcludedMembers
    from roster.settings_store import SettingsStore
    from roster.sink import RosterResultSink
    from roster.store import RosterStore

    settings_store = SettingsStore(config.settings_path)
    roster_store = RosterStore(config.roster_path)

    coordinator = ExclusionCoordinator(
        pause_signal=SettingsMaintenanceFlag(settings_store),
        mutex=FileLock.for_roster(config.roster_path),
        initial_backoff=config.initial_backoff,
        max_backoff=config.max_backoff,
    )

    return RunOrchestrator(
        coordinator=coordinator,
        roster_source=roster_store,
        reconciler=MembershipReconciler(directory),
        excluded_source=ExcludedMembers.from_config(config),
        sink=RosterResultSink(roster_store, settings_store),
        max_wait_seconds=config.max_wait_seconds,
        max_workers=config.max_workers,
        dry_run=dry_run,
    )


def _load_validated_config(args):
    from validation.config import validate_config

    try:
        raw = load_config_file(args.config)
    except (OSError, ValueError) as e:
        logger.error(f"Could not read config: {e}")
        return None

    if getattr(args, 'data_dir', None):
        raw['data_dir'] = args.data_dir

    config, error = validate_config(raw)
    if error:
        logger.error(f"Invalid configuration: {error}")
        logger.error("Provide a config file with --config or set R2G_* environment variables")
        return None
    return config


def run_command(args):
    """Execute one reconciliation run. Returns the process exit code."""
    from directory.client import DirectoryClient
    from reconciliation.scheduler import RunScheduler
    from shared.logging_config import configure_logging

    config = _load_validated_config(args)
    if config is None:
        return 1

    configure_logging("debug" if config.debug_logging else "info", json_format=config.log_json)
    config.log_config()

    if not config.enabled:
        logger.info("Roster2Groups is disabled (enabled=false), skipping run")
        return 0

    scheduler = RunScheduler(config.data_dir)
    if args.if_due and not scheduler.is_due(config.min_interval_minutes):
        logger.info(f"Last run was less than {config.min_interval_minutes} minute(s) ago, skipping")
        return 0

    try:
        config.ensure_stores()
        with DirectoryClient(
            config.directory_url,
            config.access_token,
            timeout=config.request_timeout,
            page_size=config.page_size,
        ) as directory:
            report = build_orchestrator(config, directory, dry_run=args.dry_run).run()
    except Exception as e:
        logger.error(f"[Fatal] {type(e).__name__}: {e}")
        logger.error(traceback.format_exc())
        if not args.dry_run:
            scheduler.record_failure(e)
        return 1

    if args.dry_run:
        for group_id, planned in report.planned.items():
            print(f"{group_id}: +{len(planned.to_add)} -{len(planned.to_remove)}")
        return 0

    scheduler.record_run(report)
    logger.info(
        f"Run finished in {report.elapsed:.1f}s: {report.groups_checked} group(s), "
        f"{report.total_added} added, {report.total_removed} removed"
    )
    return 0


def status_command(args):
    """Print the recorded run history as JSON."""
    from reconciliation.scheduler import RunScheduler

    data_dir = args.data_dir
    if not data_dir:
        config = _load_validated_config(args)
        if config is None:
            return 1
        data_dir = config.data_dir

    state = RunScheduler(data_dir).load_state()
    print(json.dumps(asdict(state), indent=2))
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(description='Reconcile roster memberships into directory groups')
    subparsers = parser.add_subparsers(dest='command', required=True)

    run_parser = subparsers.add_parser('run', help='Run one reconciliation')
    run_parser.add_argument('--config', '-c', help='Path to JSON config file')
    run_parser.add_argument('--data-dir', '-d', help='Directory for run history (overrides config)')
    run_parser.add_argument('--if-due', action='store_true',
                            help='Skip if the previous run was within min_interval_minutes')
    run_parser.add_argument('--dry-run', action='store_true',
                            help='Compute and log changes without applying them')
    run_parser.set_defaults(handler=run_command)

    status_parser = subparsers.add_parser('status', help='Show the last recorded run')
    status_parser.add_argument('--config', '-c', help='Path to JSON config file')
    status_parser.add_argument('--data-dir', '-d', help='Directory holding sync_state.json')
    status_parser.set_defaults(handler=status_command)

    args = parser.parse_args(argv)

    # Basic output until the config says otherwise
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%H:%M:%S'
    )

    return args.handler(args)


if __name__ == '__main__':
    sys.exit(main())
