"""CLI for launching the admin API server."""

import argparse
import logging
import sys
from pathlib import Path

from autograde.libs.config_loader import apply_env_overrides, load_all_configs, load_configs
from autograde.libs.submission_store import SubmissionStore
from .app import create_app, run_server

LOG = logging.getLogger(__name__)


def main():
    """Main CLI entry point for the admin API."""
    parser = argparse.ArgumentParser(
        description='Serve the auto-grading and review-queue admin endpoints',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Example:
  # Create tables in a fresh database and serve on port 8080
  autograde-serve --init-db --port 8080

  # Endpoints:
  #   POST/GET  /api/admin/auto-grade
  #   GET/PATCH /api/admin/review-queue
        """
    )

    parser.add_argument(
        '--host',
        default='127.0.0.1',
        help='Host to bind to (default: 127.0.0.1)'
    )
    parser.add_argument(
        '--port',
        type=int,
        default=5000,
        help='Port to bind to (default: 5000)'
    )
    parser.add_argument(
        '--config', '-c',
        type=Path,
        action='append',
        default=None,
        help='YAML config file (repeatable; later files win). Defaults to config/*.yaml'
    )
    parser.add_argument(
        '--init-db',
        action='store_true',
        help='Create the submission tables if they do not exist'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Run in debug mode'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )

    args = parser.parse_args()

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        if args.config:
            config = apply_env_overrides(load_configs(*[str(p) for p in args.config]))
        else:
            config = load_all_configs()
    except Exception as e:
        LOG.error(f"Failed to load configuration: {e}")
        sys.exit(1)

    store = SubmissionStore.from_config(config)
    if args.init_db:
        store.create_schema()
        LOG.info(f"Schema ready at {store.database_url}")

    create_app(config, submission_store=store)
    LOG.info(f"Starting admin API on http://{args.host}:{args.port}")
    run_server(host=args.host, port=args.port, debug=args.debug)


if __name__ == '__main__':
    main()
