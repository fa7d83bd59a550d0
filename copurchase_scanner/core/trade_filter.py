"""
Schema-tolerant field resolution and recent-buy classification for trade records

Upstream records have no fixed schema, so every attribute is looked up under
an ordered list of candidate field names and the first truthy value wins.
"""

import math
from typing import Any, Iterable, List, Optional, Sequence

WALLET_FIELDS = ('wallet', 'owner', 'address', 'account', 'pubkey', 'key')
TIMESTAMP_FIELDS = ('time', 'timestamp', 'ts')
TYPE_FIELDS = ('type', 'side', 'direction')
AMOUNT_FIELDS = ('amount', 'amount_token', 'token_amount')
TOKEN_FIELDS = (
    'token',
    'mint',
    'tokenAddress',
    'token_address',
    'asset',
    'tokenAddressTo',
    'tokenAddressFrom',
)

BUY_KEYWORDS = ('buy', 'receive', 'mint', 'purchase')

MS_EPOCH_THRESHOLD = 1e12
SEC_EPOCH_THRESHOLD = 1e9


def first_present(record: Any, field_names: Sequence[str]) -> Optional[Any]:
    """Return the first truthy value among field_names, or None"""
    if not isinstance(record, dict):
        return None
    for name in field_names:
        value = record.get(name)
        if value:
            return value
    return None


def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(number):
        return None
    return number


def to_ms(value: Any) -> Optional[int]:
    """
    Normalize an epoch timestamp to milliseconds

    Values above 1e12 are already milliseconds, values above 1e9 are seconds.
    Anything smaller (or non-numeric) is treated as missing.
    """
    number = _to_number(value)
    if number is None:
        return None
    if number > MS_EPOCH_THRESHOLD:
        return int(number)
    if number > SEC_EPOCH_THRESHOLD:
        return int(number * 1000)
    return None


def extract_timestamp_ms(record: Any) -> Optional[int]:
    return to_ms(first_present(record, TIMESTAMP_FIELDS))


def resolve_token(record: Any) -> Optional[str]:
    token = first_present(record, TOKEN_FIELDS)
    return str(token) if token is not None else None


def resolve_wallet(record: Any) -> Optional[str]:
    wallet = first_present(record, WALLET_FIELDS)
    return str(wallet) if wallet is not None else None


def is_buy(record: Any) -> bool:
    """Classify by type/side text, falling back to a positive amount"""
    trade_type = first_present(record, TYPE_FIELDS)
    if trade_type is not None:
        text = str(trade_type).lower()
        if text:
            return any(keyword in text for keyword in BUY_KEYWORDS)

    amount = _to_number(first_present(record, AMOUNT_FIELDS))
    return amount is not None and amount > 0


def is_recent_buy(record: Any, cutoff_ms: int) -> bool:
    """True if the record is a buy with a valid timestamp at or after cutoff_ms"""
    timestamp_ms = extract_timestamp_ms(record)
    if timestamp_ms is None or timestamp_ms < cutoff_ms:
        return False
    return is_buy(record)


class TimeWindowFilter:
    """Recent-buy predicate bound to one cutoff"""

    def __init__(self, cutoff_ms: int):
        self.cutoff_ms = cutoff_ms

    def matches(self, record: Any) -> bool:
        return is_recent_buy(record, self.cutoff_ms)

    def filter(self, records: Iterable[Any]) -> List[Any]:
        return [r for r in records if self.matches(r)]
