"""
End-to-end tests for the co-purchase scan over a fake data API
"""

import json
from unittest.mock import AsyncMock, patch

import pytest

from copurchase_scanner.core.models import ScanConfig
from copurchase_scanner.discovery import copurchase_scanner as scanner_module
from copurchase_scanner.discovery.copurchase_scanner import CoPurchaseScanner, main
from fakes import routes

NOW_MS = 1_700_000_600_000
LOOKBACK_MS = 30 * 60 * 1000


def scan_config(**overrides):
    values = dict(
        top_traders_limit=2,
        lookback_ms=LOOKBACK_MS,
        min_wallets_for_signal=2,
        request_delay_ms=500,
    )
    values.update(overrides)
    return ScanConfig(**values)


TWO_WALLET_API = {
    "/top-traders/all": {"traders": [{"wallet": "A"}, {"owner": "B"}]},
    "/wallet/A/trades": {"trades": [{"time": NOW_MS - 1000, "type": "buy", "mint": "X"}]},
    "/wallet/B/trades": [
        {"timestamp": (NOW_MS - 2000) // 1000, "side": "BUY", "tokenAddress": "X"},
        {"time": NOW_MS - 2 * LOOKBACK_MS, "type": "buy", "mint": "Y"},
    ],
}


class TestCoPurchaseScanner:

    @pytest.mark.asyncio
    async def test_two_wallet_scenario(self, make_client, no_sleep):
        client, session = make_client(routes(TWO_WALLET_API), keys=("k1",))
        scanner = CoPurchaseScanner(client, scan_config(), now_ms=lambda: NOW_MS)

        report = await scanner.run()

        assert len(report.candidates) == 1
        candidate = report.candidates[0]
        assert candidate.token == "X"
        assert set(candidate.wallets) == {"A", "B"}
        assert candidate.count == 2

        stats = {s.wallet: (s.total_trades, s.recent_buys) for s in report.wallet_stats}
        assert stats == {"A": (1, 1), "B": (2, 1)}
        assert set(session.api_keys) == {"k1"}

    @pytest.mark.asyncio
    async def test_fixed_delay_before_each_wallet(self, make_client, no_sleep):
        client, _ = make_client(routes(TWO_WALLET_API))
        scanner = CoPurchaseScanner(client, scan_config(), now_ms=lambda: NOW_MS)

        await scanner.run()

        delays = [call.args[0] for call in no_sleep.await_args_list]
        assert delays == [0.5, 0.5]

    @pytest.mark.asyncio
    async def test_wallet_list_truncated_and_unresolvable_skipped(self, make_client, no_sleep):
        api = {
            "/top-traders/all": [
                {"pnl": 5},
                "not a record",
                {"address": "A"},
                {"account": "B"},
                {"pubkey": "C"},
            ],
        }
        client, _ = make_client(routes(api))
        scanner = CoPurchaseScanner(client, scan_config(), now_ms=lambda: NOW_MS)

        assert await scanner.fetch_wallets() == ["A", "B"]

    @pytest.mark.asyncio
    async def test_wallet_fetch_failure_does_not_stop_scan(self, make_client, no_sleep):
        client, _ = make_client(routes(TWO_WALLET_API))
        scanner = CoPurchaseScanner(client, scan_config(min_wallets_for_signal=1),
                                    now_ms=lambda: NOW_MS)
        original = client.get_wallet_trades

        async def flaky(owner, limit=200):
            if owner == "A":
                raise RuntimeError("boom")
            return await original(owner, limit)

        with patch.object(client, "get_wallet_trades", side_effect=flaky):
            report = await scanner.run()

        stats = {s.wallet: s.total_trades for s in report.wallet_stats}
        assert stats == {"A": 0, "B": 2}
        assert [(c.token, c.wallets) for c in report.candidates] == [("X", ["B"])]

    @pytest.mark.asyncio
    async def test_no_top_traders_yields_empty_report(self, make_client, no_sleep):
        client, _ = make_client(routes({}))
        scanner = CoPurchaseScanner(client, scan_config(), now_ms=lambda: NOW_MS)

        report = await scanner.run()

        assert report.candidates == []
        assert report.wallet_stats == []

    @pytest.mark.asyncio
    async def test_report_document(self, make_client, no_sleep):
        client, _ = make_client(routes(TWO_WALLET_API))
        report = await CoPurchaseScanner(client, scan_config(), now_ms=lambda: NOW_MS).run()

        document = report.to_dict()

        assert document["config"] == {
            "TOP_TRADERS_LIMIT": 2,
            "LOOKBACK_MS": LOOKBACK_MS,
            "MIN_WALLETS_FOR_SIGNAL": 2,
            "REQUEST_DELAY_MS": 500,
        }
        assert document["walletStats"][0] == {"wallet": "A", "totalTrades": 1, "recentBuys": 1}
        assert document["candidates"] == [{"token": "X", "wallets": ["A", "B"], "count": 2}]
        assert "generated_at" in document


class TestMain:

    def _config(self, tmp_path, keys=("k1",)):
        return {
            "solanatracker_keys": list(keys),
            "solanatracker_base": "https://api.test",
            "scan": scan_config(),
            "output": {
                "json_file": str(tmp_path / "signals.json"),
                "csv_file": str(tmp_path / "signals.csv"),
                "preview_rows": 30,
            },
            "logging": {"level": "INFO", "file": str(tmp_path / "logs" / "scan.log")},
        }

    @pytest.fixture(autouse=True)
    def quiet_logging(self):
        with patch.object(scanner_module, "setup_logging") as setup:
            yield setup

    @pytest.mark.asyncio
    async def test_empty_key_pool_is_fatal(self, tmp_path):
        config = self._config(tmp_path, keys=())

        assert await main(config) == 1
        assert not (tmp_path / "signals.json").exists()

    @pytest.mark.asyncio
    async def test_successful_run_writes_reports(self, tmp_path, no_sleep, capsys):
        config = self._config(tmp_path)

        with patch.object(scanner_module.SolanaTrackerClient, "get_top_traders",
                          AsyncMock(return_value=[{"wallet": "A"}, {"wallet": "B"}])), \
             patch.object(scanner_module.SolanaTrackerClient, "get_wallet_trades",
                          AsyncMock(return_value=[{"time": 9_999_999_999_999, "type": "buy", "mint": "X"}])):
            exit_code = await main(config)

        assert exit_code == 0
        document = json.loads((tmp_path / "signals.json").read_text())
        assert document["candidates"] == [{"token": "X", "wallets": ["A", "B"], "count": 2}]
        assert (tmp_path / "signals.csv").read_text() == 'token,count,wallets\nX,2,"A B"'
        assert "X" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_unrecoverable_error_writes_nothing(self, tmp_path, no_sleep):
        config = self._config(tmp_path)

        with patch.object(scanner_module.CoPurchaseScanner, "run",
                          AsyncMock(side_effect=RuntimeError("scan exploded"))):
            exit_code = await main(config)

        assert exit_code == 1
        assert not (tmp_path / "signals.json").exists()
        assert not (tmp_path / "signals.csv").exists()

    @pytest.mark.asyncio
    async def test_failed_csv_write_leaves_no_json(self, tmp_path, no_sleep):
        config = self._config(tmp_path)
        # a directory in the way makes the CSV replace fail
        (tmp_path / "signals.csv").mkdir()

        with patch.object(scanner_module.SolanaTrackerClient, "get_top_traders",
                          AsyncMock(return_value=[{"wallet": "A"}])), \
             patch.object(scanner_module.SolanaTrackerClient, "get_wallet_trades",
                          AsyncMock(return_value=[])):
            exit_code = await main(config)

        assert exit_code == 1
        assert not (tmp_path / "signals.json").exists()
