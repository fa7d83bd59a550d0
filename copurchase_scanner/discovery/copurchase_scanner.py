"""
Co-Purchase Scanner - finds tokens that several top traders bought recently

HOW IT WORKS:
1. Fetches the current top traders from the SolanaTracker data API
2. Walks their wallets one at a time, pausing between wallets to stay under
   the API rate limits
3. Keeps the buys that fall inside the lookback window
4. Groups them by token and counts distinct buying wallets
5. Reports tokens bought by at least min_wallets_for_signal wallets

USAGE:
  python scripts/run_copurchase_scan.py
  python scripts/run_copurchase_scan.py --lookback-min 60 --min-wallets 2
"""

import asyncio
import logging
import time
from typing import Callable, List, Optional

from copurchase_scanner.clients.key_rotator import KeyRotator
from copurchase_scanner.clients.solanatracker_client import SolanaTrackerClient
from copurchase_scanner.core.models import ScanConfig, SignalReport
from copurchase_scanner.core.trade_filter import resolve_wallet
from copurchase_scanner.discovery.copurchase_aggregator import CoPurchaseAggregator
from copurchase_scanner.discovery.signal_ranker import rank_candidates
from copurchase_scanner.utils.config_loader import (
    ConfigurationError,
    get_log_level,
    get_log_path,
    load_config,
    validate_required_keys,
)
from copurchase_scanner.utils.logger_setup import setup_logging
from copurchase_scanner.utils.report_writer import (
    print_preview,
    write_reports,
)


def _now_ms() -> int:
    return int(time.time() * 1000)


class CoPurchaseScanner:
    def __init__(self, client: SolanaTrackerClient, config: ScanConfig,
                 now_ms: Callable[[], int] = _now_ms):
        self.client = client
        self.config = config
        self.now_ms = now_ms
        self.logger = logging.getLogger(__name__)

    async def fetch_wallets(self) -> List[str]:
        """Top trader wallet addresses, in the order the API ranks them"""
        self.logger.info("Fetching top traders...")
        top = await self.client.get_top_traders(self.config.top_traders_limit)
        self.logger.info(f"Top raw count: {len(top)}")

        wallets = [w for w in (resolve_wallet(t) for t in top) if w]
        wallets = wallets[:self.config.top_traders_limit]
        self.logger.info(f"Wallets extracted: {len(wallets)}")
        return wallets

    async def run(self) -> SignalReport:
        """Run one full scan and build the report"""
        wallets = await self.fetch_wallets()

        cutoff = self.now_ms() - self.config.lookback_ms
        aggregator = CoPurchaseAggregator(cutoff)
        delay = self.config.request_delay_ms / 1000

        for i, wallet in enumerate(wallets):
            await asyncio.sleep(delay)

            try:
                trades = await self.client.get_wallet_trades(wallet, self.config.wallet_trades_limit)
            except Exception as e:
                self.logger.warning(f"Wallet trades fetch failed for {wallet}: {e}")
                trades = []

            stat = aggregator.add_wallet(wallet, trades)
            self.logger.info(
                f"[{i + 1}/{len(wallets)}] {wallet[:8]}... "
                f"{stat.total_trades} trades, {stat.recent_buys} recent buys"
            )

        candidates = rank_candidates(aggregator.token_wallets, self.config.min_wallets_for_signal)
        self.logger.info(
            f"Scan complete: {aggregator.token_count} tokens seen, {len(candidates)} candidates "
            f"with >= {self.config.min_wallets_for_signal} wallets"
        )

        return SignalReport(
            config=self.config,
            wallet_stats=aggregator.wallet_stats,
            candidates=candidates,
        )


async def main(config: Optional[dict] = None) -> int:
    """Load config, run the scan and write the reports. Returns the exit code."""
    logger = logging.getLogger(__name__)

    try:
        if config is None:
            config = load_config()
        validate_required_keys(config)
        rotator = KeyRotator(config['solanatracker_keys'])
    except (ConfigurationError, FileNotFoundError) as e:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
        logger.error(f"Configuration error: {e}")
        return 1

    setup_logging(get_log_level(config), get_log_path(config))
    output = config['output']

    client = SolanaTrackerClient(rotator, config['solanatracker_base'])
    try:
        scanner = CoPurchaseScanner(client, config['scan'])
        report = await scanner.run()

        write_reports(report, output['json_file'], output['csv_file'])
        print_preview(report.candidates, int(output['preview_rows']))

        logger.info(f"API usage: {client.get_stats()}")
        logger.info("Done.")
        return 0

    except Exception as e:
        logger.exception(f"Scan failed: {e}")
        return 1

    finally:
        await client.close()


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
