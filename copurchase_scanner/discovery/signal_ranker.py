"""
Threshold filtering and ranking of co-purchase candidates
"""

from typing import Iterable, List, Mapping

from copurchase_scanner.core.models import TokenCandidate


def rank_candidates(token_wallets: Mapping[str, Iterable[str]], min_wallets: int) -> List[TokenCandidate]:
    """
    Keep tokens bought by at least min_wallets distinct wallets, most wallets first

    The sort is stable, so equal counts keep the mapping's insertion order.
    """
    candidates = []
    for token, wallets in token_wallets.items():
        # dict.fromkeys dedupes while keeping first-seen order
        candidate = TokenCandidate(token=token, wallets=list(dict.fromkeys(wallets)))
        if candidate.count >= min_wallets:
            candidates.append(candidate)

    candidates.sort(key=lambda c: c.count, reverse=True)
    return candidates
