import argparse
import json
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from newsdesk.adapters.clock import SystemClock
from newsdesk.adapters.sqlite import SQLiteMigrator
from newsdesk.adapters.sqlite_db import SQLiteCampaignRepo, SQLiteSubscriberRepo
from newsdesk.adapters.sweep_loop import SweepLoop
from newsdesk.api.deps import Settings, build_email_transport, campaign_config_from_rules
from newsdesk.components.campaigns import CampaignService
from newsdesk.components.sweeper import CampaignSweeper
from newsdesk.rules.loader import load_rules
from newsdesk.rules.models import Rules

logger = logging.getLogger("cli")


def get_rules(settings: Settings) -> Rules:
    try:
        return load_rules(Path(settings.rules_path))
    except (FileNotFoundError, ValueError) as e:
        logger.error("Rules load failed: %s", e)
        sys.exit(1)


def build_sweeper(settings: Settings, rules: Rules) -> CampaignSweeper:
    clock = SystemClock()
    campaign_repo = SQLiteCampaignRepo(settings.db_path)
    service = CampaignService(
        repo=campaign_repo,
        subscribers=SQLiteSubscriberRepo(settings.db_path),
        email=build_email_transport(rules, settings),
        time_port=clock,
        config=campaign_config_from_rules(rules),
    )
    return CampaignSweeper(sender=service, source=campaign_repo, time_port=clock)


def handle_migrate(settings: Settings, args: argparse.Namespace) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    applied = SQLiteMigrator(settings.db_path, args.migrations_dir).run_migrations()
    print(f"Applied {len(applied)} migration(s).")


def handle_sweep(settings: Settings, args: argparse.Namespace) -> None:
    sweeper = build_sweeper(settings, get_rules(settings))
    results = sweeper.run()
    print(json.dumps([r.to_dict() for r in results], indent=2))


def handle_sweep_loop(settings: Settings, args: argparse.Namespace) -> None:
    rules = get_rules(settings)
    interval = args.interval or rules.newsletter.sweeper.poll_interval_seconds
    loop = SweepLoop(build_sweeper(settings, rules), poll_interval_seconds=interval)
    loop.start()
    try:
        loop.wait()
    except KeyboardInterrupt:
        logger.info("Interrupted, stopping sweep loop")
    finally:
        loop.stop()


def main(argv: Sequence[str] | None = None) -> None:
    logging.basicConfig(level=logging.INFO)
    settings = Settings()

    parser = argparse.ArgumentParser(description="Newsdesk newsletter CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # migrate
    migrate_parser = subparsers.add_parser("migrate", help="Apply pending SQL migrations")
    migrate_parser.add_argument(
        "--migrations-dir",
        default=settings.migrations_dir,
        help="Directory holding *.sql migrations",
    )

    # sweep
    subparsers.add_parser("sweep", help="Send all due scheduled campaigns once")

    # sweep-loop
    loop_parser = subparsers.add_parser("sweep-loop", help="Send due campaigns on an interval")
    loop_parser.add_argument(
        "--interval", type=float, default=None, help="Seconds between sweeps (default: rules)"
    )

    args = parser.parse_args(argv)

    if args.command == "migrate":
        handle_migrate(settings, args)
    elif args.command == "sweep":
        handle_sweep(settings, args)
    elif args.command == "sweep-loop":
        handle_sweep_loop(settings, args)


if __name__ == "__main__":
    main()
