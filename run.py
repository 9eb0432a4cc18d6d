#!/usr/bin/env python3
"""Run one Sentinel thermostat control cycle (schedule this, e.g. every 5 minutes)."""

import argparse
import asyncio
import sys
sys.path.insert(0, ".")

from sentinel.orchestrator import main


def cli():
    parser = argparse.ArgumentParser(description="Sentinel thermostat control")
    parser.add_argument("--config", default="config.yaml", help="Path to config file (default: config.yaml)")
    parser.add_argument("--dry-run", action="store_true", help="Decide and log, but don't touch the thermostat or saved state")
    args = parser.parse_args()

    asyncio.run(main(config_path=args.config, dry_run=args.dry_run))


if __name__ == "__main__":
    cli()
