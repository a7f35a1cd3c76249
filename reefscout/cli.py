"""
reefscout command line.

Usage:
    reefscout serve --port 5000
    reefscout seed --api-url http://localhost:5000
    reefscout rankings 2025txcha
    reefscout rankings https://www.thebluealliance.com/event/2025txcha
    reefscout capabilities 254
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

import polars as pl

from .config import get_config
from .gateway import PersistenceGateway
from .logging_config import setup_logging
from .planner import AllianceSelection
from .rankings import rows_to_frame
from .server import serve
from .store import DocumentStore
from .tba import TBAClient
from .utils import load_json

SEED_FILE = Path(__file__).parent / 'data' / 'seed_teams.json'


def _gateway(api_url: Optional[str] = None) -> PersistenceGateway:
    config = get_config()
    return PersistenceGateway(
        api_url or config.api_url,
        attempts=config.retry_attempts,
        delay=config.retry_delay,
        timeout=config.timeout,
    )


def cmd_serve(args) -> int:
    config = get_config()
    store = DocumentStore(args.data_dir or config.data_dir)
    serve(store, host=args.host, port=args.port if args.port is not None else config.port, env=config.env)
    return 0


def cmd_seed(args) -> int:
    gateway = _gateway(args.api_url)
    teams = load_json(args.file)
    failed = 0
    print(f'Seeding {len(teams)} teams to {gateway.base_url}')
    for team in teams:
        result = gateway.submit_team(team)
        if result.ok:
            print(f'  Team {team["teamNumber"]} added')
        else:
            failed += 1
            print(f'  Team {team["teamNumber"]} failed: {result.error}')
    print('Seeding completed!' if not failed else f'Seeding finished with {failed} failures')
    return 1 if failed else 0


def cmd_rankings(args) -> int:
    config = get_config()
    if not config.tba_api_key:
        print('TBA_API_KEY is not set', file=sys.stderr)
        return 2

    tba = TBAClient(
        config.tba_api_key,
        base_url=config.tba_api_url,
        attempts=config.retry_attempts,
        delay=config.retry_delay,
        timeout=config.timeout,
    )
    try:
        result = AllianceSelection.load(args.event, tba, _gateway(args.api_url))
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return 2

    if not isinstance(result.data, AllianceSelection):
        print(f'Error: {result.error}', file=sys.stderr)
        return 1

    session = result.data
    print('=' * 60)
    print(f'RANKINGS: {session.event_key}')
    print('=' * 60)
    if not session.rows:
        print('No rankings available yet')
    else:
        with pl.Config(tbl_rows=-1, tbl_cols=-1):
            print(rows_to_frame(session.rows))
    if session.status:
        print(session.status)
    return 0


def cmd_capabilities(args) -> int:
    result = _gateway(args.api_url).get_team(args.team)
    if result.error:
        print(f'Error: {result.error}', file=sys.stderr)
        return 1
    if result.data is None:
        print(f'Team {args.team} has not been scouted')
        return 1

    team = result.data
    print(f'Team {team.teamNumber}' + (f' ({team.name})' if team.name else ''))
    for name, value in team.capabilities.model_dump().items():
        print(f'  {name:<14} {"yes" if value else "no"}')
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='reefscout',
        description='FRC scouting data service and alliance selection tools',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    parser.add_argument('--log-file', action='store_true', help='Also write a log file under ./logs')
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('serve', help='Run the HTTP API')
    p.add_argument('--host', default='127.0.0.1', help='Interface to bind')
    p.add_argument('--port', type=int, default=None, help='Port (default: PORT or 5000)')
    p.add_argument('--data-dir', type=Path, default=None, help='Document store directory')
    p.add_argument('--access-log', action='store_true', help='Log every request')
    p.set_defaults(func=cmd_serve)

    p = sub.add_parser('seed', help='Submit the bundled sample teams')
    p.add_argument('--api-url', default=None, help='API origin')
    p.add_argument('--file', type=Path, default=SEED_FILE, help='JSON list of team submissions')
    p.set_defaults(func=cmd_seed)

    p = sub.add_parser('rankings', help='Show an event\'s ranking table with saved selections')
    p.add_argument('event', help='TBA event URL or event key (e.g. 2025txcha)')
    p.add_argument('--api-url', default=None, help='API origin')
    p.set_defaults(func=cmd_rankings)

    p = sub.add_parser('capabilities', help='Show a scouted team\'s capability flags')
    p.add_argument('team', help='Team number')
    p.add_argument('--api-url', default=None, help='API origin')
    p.set_defaults(func=cmd_capabilities)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        log_to_file=args.log_file,
        access_log=getattr(args, 'access_log', False),
    )
    return args.func(args)


if __name__ == '__main__':
    sys.exit(main())
