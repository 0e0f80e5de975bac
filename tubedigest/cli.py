"""
Summary job maintenance CLI commands.

Provides command-line interface for database initialization, health
checks, job statistics, and failing stale jobs.
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from .config import settings
from .database import configure_database, init_database, check_database_health
from .services.job_service import JobService


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def print_json_result(result: dict, title: str = None):
    """Print result as formatted JSON."""
    if title:
        print(f"\n=== {title} ===")
    print(json.dumps(result, indent=2, default=str))


def cmd_init_db(args) -> int:
    """Create missing tables."""
    success = init_database()
    print_json_result({'initialized': success}, "Database Initialization")
    return 0 if success else 1


def cmd_health(args) -> int:
    """Check database health."""
    result = check_database_health()
    print_json_result(result, "Database Health Check")
    return 0 if result['status'] == 'healthy' else 1


def cmd_stats(args) -> int:
    """Show job counts per status."""
    print_json_result(JobService().get_statistics(), "Summary Job Statistics")
    return 0


def cmd_fail_stale(args) -> int:
    """Fail jobs stuck in processing."""
    timeout = args.timeout if args.timeout is not None else settings.job_processing_timeout
    failed = JobService().fail_stale_jobs(timeout)
    print_json_result({'failed_jobs': failed, 'timeout_seconds': timeout}, "Stale Job Cleanup")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='TubeDigest summary job maintenance',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s init-db
  %(prog)s health
  %(prog)s stats
  %(prog)s fail-stale --timeout 600
        """
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Verbose logging')
    parser.add_argument('--database-url', help='Database URL (default: DATABASE_URL setting)')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')
    subparsers.add_parser('init-db', help='Create missing database tables')
    subparsers.add_parser('health', help='Check database health')
    subparsers.add_parser('stats', help='Show summary job counts per status')

    stale_parser = subparsers.add_parser('fail-stale', help='Fail jobs stuck in processing')
    stale_parser.add_argument('--timeout', type=int, default=None,
                              help='Seconds in processing before a job is failed '
                                   '(default: JOB_PROCESSING_TIMEOUT)')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(args.verbose)
    if args.database_url:
        configure_database(args.database_url)

    commands = {
        'init-db': cmd_init_db,
        'health': cmd_health,
        'stats': cmd_stats,
        'fail-stale': cmd_fail_stale,
    }

    try:
        return commands[args.command](args)
    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 130
    except Exception as e:
        print(f"\nError: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
