"""
Data types shared by the co-purchase scan
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List


@dataclass
class ScanConfig:
    """Tunables for a single scan run"""
    top_traders_limit: int = 20
    lookback_ms: int = 1000 * 60 * 30  # 30 minutes
    min_wallets_for_signal: int = 3
    request_delay_ms: int = 500
    wallet_trades_limit: int = 200

    def snapshot(self) -> Dict[str, int]:
        """Config block embedded in the JSON report"""
        return {
            'TOP_TRADERS_LIMIT': self.top_traders_limit,
            'LOOKBACK_MS': self.lookback_ms,
            'MIN_WALLETS_FOR_SIGNAL': self.min_wallets_for_signal,
            'REQUEST_DELAY_MS': self.request_delay_ms,
        }


@dataclass(frozen=True)
class NormalizedBuyEvent:
    wallet: str
    token: str
    timestamp_ms: int


@dataclass
class WalletStat:
    """Per-wallet audit record; not used for ranking"""
    wallet: str
    total_trades: int
    recent_buys: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'wallet': self.wallet,
            'totalTrades': self.total_trades,
            'recentBuys': self.recent_buys,
        }


@dataclass
class TokenCandidate:
    """A token and the distinct wallets that recently bought it"""
    token: str
    wallets: List[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.wallets)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'token': self.token,
            'wallets': list(self.wallets),
            'count': self.count,
        }


@dataclass
class SignalReport:
    """Terminal output of one scan run"""
    config: ScanConfig
    wallet_stats: List[WalletStat]
    candidates: List[TokenCandidate]
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'generated_at': self.generated_at.isoformat(),
            'config': self.config.snapshot(),
            'walletStats': [s.to_dict() for s in self.wallet_stats],
            'candidates': [c.to_dict() for c in self.candidates],
        }
