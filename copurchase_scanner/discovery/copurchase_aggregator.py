"""
Token -> distinct-wallet aggregation over recent buys
"""

import logging
from typing import Any, Dict, List

from copurchase_scanner.core.models import NormalizedBuyEvent, WalletStat
from copurchase_scanner.core.trade_filter import (
    TimeWindowFilter,
    extract_timestamp_ms,
    resolve_token,
)


class CoPurchaseAggregator:
    def __init__(self, cutoff_ms: int):
        self.window = TimeWindowFilter(cutoff_ms)
        self.logger = logging.getLogger(__name__)

        # token -> wallets, both insertion ordered; dict keys act as an ordered set
        self.token_wallets: Dict[str, Dict[str, None]] = {}
        self.wallet_stats: List[WalletStat] = []
        self.buy_events: List[NormalizedBuyEvent] = []

    def add_wallet(self, wallet: str, trades: Any) -> WalletStat:
        """Fold one wallet's trade history into the aggregate"""
        if not isinstance(trades, list):
            trades = []

        recent_buys = self.window.filter(trades)
        stat = WalletStat(wallet=wallet, total_trades=len(trades), recent_buys=len(recent_buys))
        self.wallet_stats.append(stat)

        for buy in recent_buys:
            token = resolve_token(buy)
            if not token:
                continue
            self.token_wallets.setdefault(token, {})[wallet] = None
            self.buy_events.append(NormalizedBuyEvent(wallet, token, extract_timestamp_ms(buy)))

        self.logger.debug(
            f"Wallet {wallet}: {stat.total_trades} trades, {stat.recent_buys} recent buys"
        )
        return stat

    def wallets_for(self, token: str) -> List[str]:
        return list(self.token_wallets.get(token, {}))

    @property
    def token_count(self) -> int:
        return len(self.token_wallets)
