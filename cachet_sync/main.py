"""
Main entry point — run one reconciliation pass from the command line.

Loads config.yaml and a batch of check results, pushes them to Cachet,
and prints a summary. Exits non-zero when any check result failed.

Usage:
    cachet-sync results.yaml
    cachet-sync results.json --config /etc/cachet-sync/config.yaml
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

import yaml

from cachet_sync import notifier
from cachet_sync.config import load_config, load_iteration
from cachet_sync.errors import BatchFailedError, CachetError
from cachet_sync.integration import CachetIntegration


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="cachet-sync",
        description="Reconcile a batch of check results against a Cachet status page.",
    )
    parser.add_argument("results", help="YAML or JSON file with the check results")
    parser.add_argument("--config", default=None, help="Path to config.yaml")
    return parser.parse_args(argv)


async def async_main(argv: Optional[List[str]] = None) -> int:
    """Async entry point. Returns the process exit code."""
    args = _parse_args(argv)
    try:
        config, settings = load_config(args.config)
        iteration = load_iteration(args.results)
    except (CachetError, OSError, ValueError, yaml.YAMLError) as exc:
        notifier.print_error(str(exc))
        return 2

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    notifier.print_banner()
    notifier.print_batch_start(config.api_url, len(iteration))

    async with CachetIntegration(config) as cachet:
        try:
            report = await cachet.save_iteration(
                iteration, settings.options, deadline=settings.deadline
            )
        except BatchFailedError as exc:
            notifier.print_summary(exc.report)
            notifier.print_error(str(exc))
            return 1

    notifier.print_summary(report)
    return 0 if report.ok else 1


def main() -> None:
    """Sync entry point."""
    try:
        sys.exit(asyncio.run(async_main()))
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
