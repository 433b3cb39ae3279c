#!/usr/bin/env python3
"""Command-line interface for running one auto-grading batch."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import yaml

from autograde.errors import AutogradeError, ConfigurationError
from autograde.libs.config_loader import apply_env_overrides, load_all_configs, load_configs
from autograde.libs.submission_store import SubmissionStore
from .auto_grader import AutoGrader

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
LOG = logging.getLogger(__name__)


def load_cli_configs(config_paths):
    """Explicit --config files win over the project's config/ directory."""
    if config_paths:
        return apply_env_overrides(load_configs(*[str(p) for p in config_paths]))
    return load_all_configs()


def print_summary(summary) -> None:
    print(f"\n{'='*60}")
    print("Auto-Grading Run Complete")
    print(f"{'='*60}")
    print(summary.message)
    print(f"Graded: {summary.graded}")
    print(f"Flagged for review: {summary.flagged_for_review}")
    print(f"Errors: {summary.errors}")

    if summary.results:
        print("\nResults:")
        for result in summary.results:
            line = f"  {result.student_name} ({result.submission_id}): {result.status}"
            if result.ai_score is not None:
                line += f" AI={result.ai_score} Final={result.final_score}"
            if result.bonus_applied:
                line += " (+bonus)"
            if result.error:
                line += f" - {result.error}"
            print(line)


def main():
    """Main entry point for autograde-batch command."""
    parser = argparse.ArgumentParser(
        description='Auto-grade the oldest pending submissions with the grading model',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Grade the default batch (grading.batch_size from config)
  autograde-batch

  # Grade ten submissions with a specific model
  autograde-batch --batch-size 10 --model openai/gpt-4o-mini

  # Check credentials and model access without grading anything
  autograde-batch --check-connection

  # Save the run summary
  autograde-batch --summary run.yaml
        """
    )

    parser.add_argument(
        '--batch-size', '-b',
        type=int,
        default=None,
        help='Number of pending submissions to grade (overrides config value)'
    )
    parser.add_argument(
        '--model', '-m',
        type=str,
        default=None,
        help='Model identifier to use (overrides config value)'
    )
    parser.add_argument(
        '--config', '-c',
        type=Path,
        action='append',
        default=None,
        help='YAML config file (repeatable; later files win). Defaults to config/*.yaml'
    )
    parser.add_argument(
        '--summary', '-o',
        type=Path,
        default=None,
        help='Path to save the run summary as YAML'
    )
    parser.add_argument(
        '--check-connection',
        action='store_true',
        help='Only verify that the model endpoint is reachable'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.batch_size is not None and args.batch_size < 1:
        LOG.error("--batch-size must be a positive integer")
        sys.exit(1)

    try:
        config = load_cli_configs(args.config)
    except Exception as e:
        LOG.error(f"Failed to load configuration: {e}")
        sys.exit(1)

    try:
        store = SubmissionStore.from_config(config)
        auto_grader = AutoGrader(configs=config, store=store, model=args.model, show_progress=True)
    except ConfigurationError as e:
        LOG.error(f"Configuration error: {e}")
        sys.exit(1)

    if args.check_connection:
        status = asyncio.run(auto_grader.gateway.check_connection())
        if status['success']:
            print(f"Connection OK (model: {status['model']})")
            return
        print(f"Connection failed (model: {status['model']}): {status['error']}")
        sys.exit(1)

    try:
        summary = auto_grader.grade_batch(args.batch_size)
    except AutogradeError as e:
        LOG.error(f"Auto-grading run failed: {e}")
        sys.exit(1)

    if args.summary:
        with open(args.summary, 'w') as f:
            yaml.dump(summary.to_dict(), f, default_flow_style=False, sort_keys=False, allow_unicode=True)
        LOG.info(f"Summary saved to {args.summary}")

    print_summary(summary)


if __name__ == "__main__":
    main()
