"""
SolanaTracker data API client with key rotation, retry and endpoint fallback

The exact routes and response envelopes of the data API are not stable, so
each logical fetch probes an ordered list of candidate endpoints and accepts
the first one that yields a list of records.
"""

import aiohttp
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from copurchase_scanner.clients.key_rotator import KeyRotator
from copurchase_scanner.utils.config_loader import DEFAULT_BASE_URL


REQUEST_TIMEOUT_SEC = 25
RATE_LIMIT_BACKOFF_SEC = 0.8
RATE_LIMIT_BACKOFF_STEP_SEC = 0.2
ERROR_BACKOFF_SEC = 0.3
MIN_ATTEMPTS = 3

TOP_TRADERS_ENVELOPE_KEYS = ('traders', 'data', 'items', 'results')
WALLET_TRADES_ENVELOPE_KEYS = ('trades', 'data', 'items')

CandidateRequest = Tuple[str, Dict[str, Any]]


class TransientFetchFailure(Exception):
    """One failed HTTP attempt (network error, timeout, non-2xx or 429)"""

    def __init__(self, status: Optional[int], cause: Any):
        self.status = status
        self.cause = cause
        super().__init__(f"status={status} cause={cause}")

    @property
    def rate_limited(self) -> bool:
        return self.status == 429


class TransientFetchExhausted(Exception):
    """Every attempt for one endpoint failed"""

    def __init__(self, path: str, attempts: int, last_error: Optional[Exception]):
        self.path = path
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"{path}: {attempts} attempts failed, last error: {last_error}")


class FetchStatus(Enum):
    SUCCESS = "success"
    EMPTY = "empty"
    FAILURE = "failure"


@dataclass
class FetchOutcome:
    """Result of probing one candidate endpoint"""
    path: str
    status: FetchStatus
    records: Optional[List[Any]] = None
    cause: Optional[Exception] = None


def extract_records(body: Any, envelope_keys: Sequence[str]) -> Optional[List[Any]]:
    """
    Pull a list of records out of a response body

    A list body is used directly; otherwise the first list found under
    envelope_keys (in order) wins. Returns None when there is no list.
    """
    if isinstance(body, list):
        return body
    if isinstance(body, dict):
        for key in envelope_keys:
            value = body.get(key)
            if isinstance(value, list):
                return value
    return None


class SolanaTrackerClient:
    def __init__(self, rotator: KeyRotator, base_url: str = DEFAULT_BASE_URL,
                 session: Optional[aiohttp.ClientSession] = None):
        self.rotator = rotator
        self.base_url = base_url.rstrip('/')
        self.logger = logging.getLogger(__name__)
        self.timeout = aiohttp.ClientTimeout(total=REQUEST_TIMEOUT_SEC)

        self.session = session
        self._owns_session = session is None

        self.stats = {
            'requests': 0,
            'failures': 0,
            'rate_limited': 0,
            'exhausted': 0,
        }

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    @property
    def max_attempts(self) -> int:
        return max(MIN_ATTEMPTS, self.rotator.pool_size * 2)

    async def _get_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession()
            self._owns_session = True
        return self.session

    async def close(self):
        """Close the HTTP session if this client created it"""
        if self.session is not None and self._owns_session and not self.session.closed:
            await self.session.close()

    async def _get_once(self, path: str, params: Dict[str, Any], api_key: str) -> Any:
        """Issue a single GET; any failure is raised as TransientFetchFailure"""
        session = await self._get_session()
        url = f"{self.base_url}{path}"
        headers = {
            "Accept": "application/json",
            "x-api-key": api_key,
        }

        self.stats['requests'] += 1
        try:
            async with session.get(url, params=params, headers=headers, timeout=self.timeout) as response:
                if response.status == 429:
                    raise TransientFetchFailure(429, "rate limited")

                if response.status < 200 or response.status >= 300:
                    try:
                        error_body = await response.text(errors="replace")
                    except (LookupError, ValueError) as e:
                        error_body = f"undecodable body: {e}"
                    raise TransientFetchFailure(response.status, error_body[:200])

                try:
                    return await response.json(content_type=None)
                except ValueError as e:
                    raise TransientFetchFailure(response.status, e)

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransientFetchFailure(None, e)

    async def request_with_retry(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        GET path with up to max(3, 2 * pool size) attempts, one key per attempt

        Returns:
            Parsed JSON body of the first successful attempt

        Raises:
            TransientFetchExhausted: If every attempt failed
        """
        params = params or {}
        attempts = self.max_attempts
        last_error: Optional[Exception] = None

        for attempt in range(attempts):
            api_key = self.rotator.next()
            try:
                return await self._get_once(path, params, api_key)
            except TransientFetchFailure as e:
                last_error = e
                self.stats['failures'] += 1

                if e.rate_limited:
                    self.stats['rate_limited'] += 1
                    delay = RATE_LIMIT_BACKOFF_SEC + attempt * RATE_LIMIT_BACKOFF_STEP_SEC
                    self.logger.warning(
                        f"Rate limited on {path} (attempt {attempt + 1}/{attempts}), backing off {delay:.1f}s"
                    )
                else:
                    delay = ERROR_BACKOFF_SEC
                    self.logger.debug(
                        f"Request to {path} failed (attempt {attempt + 1}/{attempts}): {e}"
                    )

                await asyncio.sleep(delay)

        self.stats['exhausted'] += 1
        raise TransientFetchExhausted(path, attempts, last_error)

    async def _probe(self, path: str, params: Dict[str, Any],
                     envelope_keys: Sequence[str]) -> FetchOutcome:
        try:
            body = await self.request_with_retry(path, params)
        except TransientFetchExhausted as e:
            return FetchOutcome(path, FetchStatus.FAILURE, cause=e)

        records = extract_records(body, envelope_keys)
        if records is None:
            return FetchOutcome(path, FetchStatus.EMPTY)
        return FetchOutcome(path, FetchStatus.SUCCESS, records=records)

    async def fetch_with_fallback(self, candidates: Sequence[CandidateRequest],
                                  envelope_keys: Sequence[str] = TOP_TRADERS_ENVELOPE_KEYS) -> List[Any]:
        """
        Try each (path, params) candidate in order, returning the first record list

        Failed or shapeless candidates are skipped. Returns an empty list when
        nothing yields data; never raises for per-candidate failures.
        """
        for path, params in candidates:
            outcome = await self._probe(path, params, envelope_keys)

            if outcome.status is FetchStatus.SUCCESS:
                self.logger.debug(f"{path} returned {len(outcome.records)} records")
                return outcome.records

            if outcome.status is FetchStatus.FAILURE:
                self.logger.debug(f"Candidate {path} failed: {outcome.cause}")
            else:
                self.logger.debug(f"Candidate {path} returned no record list")

        return []

    async def get_top_traders(self, limit: int = 20) -> List[Any]:
        """Get the top trader records"""
        params = {'limit': limit}
        candidates = [
            ('/top-traders/all', params),
            ('/top-traders', params),
            ('/top_traders', params),
            ('/top-traders/top', params),
            ('/traders/top', params),
        ]
        return await self.fetch_with_fallback(candidates, TOP_TRADERS_ENVELOPE_KEYS)

    async def get_wallet_trades(self, owner: str, limit: int = 200) -> List[Any]:
        """Get the trade history of a wallet"""
        params = {'limit': limit}
        candidates = [
            (f'/wallet/{owner}/trades', params),
            (f'/wallet/{owner}', params),
            (f'/wallets/{owner}/trades', params),
            (f'/wallets/{owner}', params),
        ]
        return await self.fetch_with_fallback(candidates, WALLET_TRADES_ENVELOPE_KEYS)

    def get_stats(self) -> Dict[str, int]:
        return {
            **self.stats,
            'key_pool_size': self.rotator.pool_size,
            'keys_used': self.rotator.call_count,
        }
