"""
Co-Purchase Scan Runner

SINGLE RUN:
  python scripts/run_copurchase_scan.py

Scans the top traders once, writes copurchase_signals.json and
copurchase_signals.csv and prints the top candidates.

API keys come from config/config.yml or the environment:
  SOLANATRACKER_API_KEYS="key1,key2"

OVERRIDES:
  python scripts/run_copurchase_scan.py --limit 50 --lookback-min 60 --min-wallets 2
"""

import asyncio
import argparse
import sys
import os
from dataclasses import replace

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from copurchase_scanner.discovery.copurchase_scanner import main
from copurchase_scanner.utils.config_loader import ConfigurationError, load_config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Find tokens bought by several top traders')
    parser.add_argument('--config', help='Path to YAML config (default: config/config.yml)')
    parser.add_argument('--limit', type=int, help='Number of top traders to scan')
    parser.add_argument('--lookback-min', type=float, help='Lookback window in minutes')
    parser.add_argument('--min-wallets', type=int, help='Distinct wallets needed for a signal')
    parser.add_argument('--delay-ms', type=int, help='Pause between wallet fetches')
    parser.add_argument('--json', dest='json_file', help='JSON report path')
    parser.add_argument('--csv', dest='csv_file', help='CSV report path')
    parser.add_argument('--log-level', help='DEBUG, INFO, WARNING or ERROR')
    return parser


def apply_overrides(config: dict, args: argparse.Namespace) -> dict:
    scan_overrides = {}
    if args.limit is not None:
        scan_overrides['top_traders_limit'] = args.limit
    if args.lookback_min is not None:
        scan_overrides['lookback_ms'] = int(args.lookback_min * 60 * 1000)
    if args.min_wallets is not None:
        scan_overrides['min_wallets_for_signal'] = args.min_wallets
    if args.delay_ms is not None:
        scan_overrides['request_delay_ms'] = args.delay_ms
    if scan_overrides:
        config['scan'] = replace(config['scan'], **scan_overrides)

    if args.json_file:
        config['output']['json_file'] = args.json_file
    if args.csv_file:
        config['output']['csv_file'] = args.csv_file
    if args.log_level:
        config['logging']['level'] = args.log_level
    return config


if __name__ == "__main__":
    args = build_parser().parse_args()

    try:
        config = apply_overrides(load_config(args.config), args)
    except (ConfigurationError, FileNotFoundError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    sys.exit(asyncio.run(main(config)))
