"""
Unit tests for round-robin API key rotation
"""

import pytest

from copurchase_scanner.clients.key_rotator import KeyRotator
from copurchase_scanner.utils.config_loader import ConfigurationError


class TestKeyRotator:

    def test_each_key_once_per_cycle(self):
        keys = ["k1", "k2", "k3"]
        rotator = KeyRotator(keys)

        assert [rotator.next() for _ in keys] == keys

    def test_round_robin_periodicity(self):
        keys = ["a", "b", "c", "d"]
        rotator = KeyRotator(keys)

        calls = [rotator.next() for _ in range(3 * len(keys))]

        for k in range(len(keys)):
            assert calls[len(keys) + k] == calls[k]
            assert calls[2 * len(keys) + k] == calls[k]
        assert rotator.call_count == 12

    def test_single_key_always_returned(self):
        rotator = KeyRotator(["only"])
        assert {rotator.next() for _ in range(5)} == {"only"}

    def test_single_string_accepted(self):
        rotator = KeyRotator("solo")
        assert rotator.pool_size == 1
        assert rotator.next() == "solo"

    def test_blank_keys_dropped(self):
        rotator = KeyRotator([" k1 ", "", "   ", "k2"])
        assert rotator.api_keys == ["k1", "k2"]
        assert len(rotator) == 2

    @pytest.mark.parametrize("keys", [[], ["", "  "], None])
    def test_empty_pool_is_fatal(self, keys):
        with pytest.raises(ConfigurationError):
            KeyRotator(keys)
