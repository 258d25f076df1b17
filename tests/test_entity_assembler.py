"""
Unit tests for detail-with-history assembly and owner-indexed listing.
"""
import pytest

from pool_api.services.decoders import BondEventLog, Entity, LogDecoder, LogFilterBuilder
from pool_api.services.entity_assembler import EntityAssembler, latest_per_hash
from pool_api.services.list_reader import EntityStore

from conftest import BOND_ADR, FakeLedgerClient
from log_builders import bond_log, h

OWNER = "0x" + "12" * 20
OTHER_OWNER = "0x" + "34" * 20


def _log(entity_hash, timestamp, block=1):
    return BondEventLog(block_number=block, timestamp=timestamp, hash=entity_hash)


class TestLatestPerHash:
    """Test dedup-by-first-occurrence followed by the timestamp sort."""

    def test_descending_input(self):
        logs = [_log("H1", 100), _log("H1", 50), _log("H2", 80)]
        result = latest_per_hash(logs)
        assert [(l.hash, l.timestamp) for l in result] == [("H1", 100), ("H2", 80)]

    def test_out_of_order_input_is_sorted(self):
        logs = [_log("H2", 80), _log("H1", 100), _log("H3", 120), _log("H1", 50)]
        result = latest_per_hash(logs)
        assert [(l.hash, l.timestamp) for l in result] == [("H3", 120), ("H1", 100), ("H2", 80)]

    def test_first_occurrence_wins_even_if_older(self):
        logs = [_log("H1", 10), _log("H1", 90)]
        assert [l.timestamp for l in latest_per_hash(logs)] == [10]

    def test_equal_timestamps_keep_input_order(self):
        logs = [_log("H2", 5), _log("H1", 5), _log("H3", 5)]
        assert [l.hash for l in latest_per_hash(logs)] == ["H2", "H1", "H3"]

    def test_empty(self):
        assert latest_per_hash([]) == []


@pytest.fixture
def client():
    client = FakeLedgerClient()
    client.respond(BOND_ADR, "get", lambda idx: bytes.fromhex(h(idx)[2:]) if idx != 9 else b"\x00" * 32)
    client.respond(BOND_ADR, "dataStorage", lambda key: (
        int(key[0]), OWNER, b"\x00" * 32, 0, 0, 0, 0, 0, 0, 4, b"\x00" * 32))
    client.logs = [
        bond_log(10, h(1), OWNER, timestamp=100, state=0),
        bond_log(11, h(2), OWNER, timestamp=110, state=0),
        bond_log(12, h(1), OWNER, timestamp=120, state=3),
        bond_log(13, h(3), OTHER_OWNER, timestamp=130, state=0),
        bond_log(14, h(1), OWNER, timestamp=140, state=4),
    ]
    return client


@pytest.fixture
def assembler(client):
    return EntityAssembler(client, LogDecoder(), LogFilterBuilder(client, default_lookback_blocks=1000))


@pytest.fixture
def store(client):
    return EntityStore(client, Entity.BOND, BOND_ADR)


class TestDetailWithHistory:
    """Detail snapshot plus its ascending history."""

    def test_history_is_ascending(self, assembler, store):
        detail = assembler.detail_with_history(store, entity_hash=h(1))
        assert detail.hash == h(1)
        assert [l.timestamp for l in detail.event_logs] == [100, 120, 140]
        assert all(l.hash == h(1) for l in detail.event_logs)

    def test_history_query_is_full_range(self, assembler, store, client):
        assembler.detail_with_history(store, entity_hash=h(1))
        log_filter = client.filters[-1]
        assert log_filter.block_range.from_block == 0
        assert log_filter.topics[1] == h(1)
        assert client.height_requests == 0

    def test_idx_resolved_to_hash(self, assembler, store, client):
        detail = assembler.detail_with_history(store, idx=2)
        assert detail.hash == h(2)
        assert client.function_calls("get")[0][3] == (2,)
        assert [l.timestamp for l in detail.event_logs] == [110]

    def test_archived_idx_has_empty_history(self, assembler, store, client):
        detail = assembler.detail_with_history(store, idx=9)
        assert detail.hash == "0x0"
        assert detail.event_logs == []
        assert client.filters == []


class TestOwnerListing:
    """Distinct current entities reconstructed from an owner's logs."""

    def test_distinct_hashes_newest_first(self, assembler, store, client):
        details = assembler.owner_listing(store, OWNER)
        assert [d.hash for d in details] == [h(1), h(2)]
        assert client.filters[-1].topics[2] == "0x" + "0" * 24 + "12" * 20

    def test_unknown_owner(self, assembler, store):
        assert assembler.owner_listing(store, "0x" + "99" * 20) == []

    def test_search_logs_newest_first(self, assembler):
        logs = assembler.search_logs(Entity.BOND, BOND_ADR, topic1=h(1))
        assert [l.block_number for l in logs] == [14, 12, 10]
