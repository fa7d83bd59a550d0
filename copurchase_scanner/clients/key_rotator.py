"""
Round-robin API key rotation for the SolanaTracker data API
"""

import logging
from typing import List, Sequence

from copurchase_scanner.utils.config_loader import ConfigurationError


class KeyRotator:
    """Hands out API keys strictly round-robin.

    No per-key health is tracked: a key that just hit a rate limit is handed
    out again on its next turn. Not thread-safe; the scan is sequential.
    """

    def __init__(self, api_keys: Sequence[str]):
        # Support both single key (string) and multiple keys (list)
        if isinstance(api_keys, str):
            api_keys = [api_keys]

        self.api_keys: List[str] = [k.strip() for k in (api_keys or []) if k and k.strip()]
        if not self.api_keys:
            raise ConfigurationError(
                "No API keys found. Set SOLANATRACKER_API_KEYS or SOLANATRACKER_API_KEY"
            )

        self._call_count = 0
        self.logger = logging.getLogger(__name__)
        self.logger.debug(f"Key rotator initialized with {len(self.api_keys)} key(s)")

    def next(self) -> str:
        """Return the key at call_count % pool_size and advance"""
        key = self.api_keys[self._call_count % len(self.api_keys)]
        self._call_count += 1
        return key

    @property
    def pool_size(self) -> int:
        return len(self.api_keys)

    @property
    def call_count(self) -> int:
        return self._call_count

    def __len__(self) -> int:
        return len(self.api_keys)
