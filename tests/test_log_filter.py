"""
Unit tests for LogFilterBuilder block range resolution and matchers.
"""
import pytest

from pool_api.services.decoders.hex_codec import pad_address_to_topic, text_to_word, uint_to_word
from pool_api.services.decoders.log_filter import (
    GENESIS_BLOCK,
    LATEST_BLOCK,
    BlockRange,
    LogFilter,
    LogFilterBuilder,
)

from conftest import FakeLedgerClient

SIGNATURE = "0x" + "5e" * 32
ADDRESS = "0x" + "a3" * 20


@pytest.fixture
def client():
    return FakeLedgerClient(block_height=100000)


@pytest.fixture
def builder(client):
    return LogFilterBuilder(client, default_lookback_blocks=50000)


class TestBlockRange:
    """Test the default window asymmetry."""

    def test_no_matcher_no_bounds_uses_lookback_window(self, builder, client):
        log_filter = builder.build(ADDRESS, SIGNATURE)
        assert log_filter.block_range == BlockRange(50000, LATEST_BLOCK)
        assert client.height_requests == 1

    def test_lookback_window_clamped_at_genesis(self, client):
        client.block_height = 100
        log_filter = LogFilterBuilder(client, 50000).build(ADDRESS, SIGNATURE)
        assert log_filter.block_range.from_block == 0

    def test_matcher_widens_to_full_chain(self, builder, client):
        log_filter = builder.build(ADDRESS, SIGNATURE, topic1="0x" + "ab" * 32)
        assert log_filter.block_range == BlockRange(GENESIS_BLOCK, LATEST_BLOCK)
        assert client.height_requests == 0

    def test_matcher_in_any_position_counts(self, builder):
        log_filter = builder.build(ADDRESS, SIGNATURE, topic3=uint_to_word(1))
        assert log_filter.block_range.from_block == GENESIS_BLOCK

    def test_explicit_from_only(self, builder, client):
        log_filter = builder.build(ADDRESS, SIGNATURE, from_block=1234)
        assert log_filter.block_range == BlockRange(1234, LATEST_BLOCK)
        assert client.height_requests == 0

    def test_explicit_to_only(self, builder):
        log_filter = builder.build(ADDRESS, SIGNATURE, to_block=777)
        assert log_filter.block_range == BlockRange(GENESIS_BLOCK, 777)

    def test_zero_bounds_mean_unset(self, builder):
        log_filter = builder.build(ADDRESS, SIGNATURE, from_block=0, to_block=0)
        assert log_filter.block_range == BlockRange(50000, LATEST_BLOCK)

    def test_non_narrowing_matcher_keeps_lookback_window(self, builder):
        """A matcher that is always present (e.g. an account type) can opt out of narrowing."""
        log_filter = builder.build(ADDRESS, SIGNATURE, topic2=uint_to_word(0), narrowed=False)
        assert log_filter.block_range == BlockRange(50000, LATEST_BLOCK)
        assert log_filter.topics[2] == uint_to_word(0)


class TestLogFilter:
    """Test filter parameter rendering."""

    def test_to_params(self):
        second = "0x" + "cd" * 32
        log_filter = LogFilter(ADDRESS, (SIGNATURE, None, second, None), BlockRange(10, LATEST_BLOCK))
        assert log_filter.to_params() == {
            'address': ADDRESS,
            'topics': [SIGNATURE, None, second],
            'fromBlock': 10,
            'toBlock': 'latest',
        }
        assert log_filter.event_signature == SIGNATURE

    def test_signature_always_first(self, builder):
        log_filter = builder.build(ADDRESS, SIGNATURE)
        assert log_filter.topics == (SIGNATURE, None, None, None)
        assert log_filter.to_params()['topics'] == [SIGNATURE]


class TestMatchers:
    """Test matcher encoding; unset values become wildcards."""

    def test_hash_matcher(self):
        assert LogFilterBuilder.hash_matcher(None) is None
        assert LogFilterBuilder.hash_matcher("0x0") is None
        assert LogFilterBuilder.hash_matcher("0xab") == "0xab" + "0" * 62

    def test_address_matcher(self):
        owner = "0x" + "12" * 20
        assert LogFilterBuilder.address_matcher(owner) == pad_address_to_topic(owner)
        assert LogFilterBuilder.address_matcher("") is None

    def test_uint_matcher(self):
        assert LogFilterBuilder.uint_matcher(0) is None
        assert LogFilterBuilder.uint_matcher(None) is None
        assert LogFilterBuilder.uint_matcher(42) == uint_to_word(42)

    def test_bool_matcher(self):
        assert LogFilterBuilder.bool_matcher(None) is None
        assert LogFilterBuilder.bool_matcher(True) == uint_to_word(1)
        assert LogFilterBuilder.bool_matcher(False) == uint_to_word(0)

    def test_text_matcher(self):
        assert LogFilterBuilder.text_matcher("") is None
        assert LogFilterBuilder.text_matcher("Trust") == text_to_word("Trust")

    def test_numeric_or_hash_matcher(self):
        assert LogFilterBuilder.numeric_or_hash_matcher("  ") is None
        assert LogFilterBuilder.numeric_or_hash_matcher("7") == uint_to_word(7)
