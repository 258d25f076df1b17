"""
List Reader Module

Reads the append-only hash lists kept by the bond, policy, settlement and
adjustor contracts:

    hashMap()          -> (firstIdx, nextIdx, count)   list metadata
    get(idx)           -> bytes32 hash                 zero hash = archived slot
    dataStorage(hash)  -> detail tuple                 current state snapshot

Pages are read newest first, from an upper index down to an exclusive lower
bound. Archived slots are skipped and do not count against the page size.
"""

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple, Type

from ..errors import DecodeError
from .decoders.base import (
    BondState,
    Entity,
    EventLog,
    JsonRecord,
    PolicyState,
    SettlementState,
)
from .decoders.hex_codec import bytes_to_hex, hex_to_bytes, is_empty_hash, pad_to_32_byte_word
from .decoders.registry import get_layout

logger = logging.getLogger(__name__)


# ============================================================================
# LIST METADATA
# ============================================================================

@dataclass
class ListInfo(JsonRecord):
    """Metadata of an append-only list"""
    active_start_idx: int
    count_all_items: int
    count_active_items: int

    @classmethod
    def from_hash_map(cls, result: Sequence[int]) -> "ListInfo":
        """Build from the hashMap() tuple; nextIdx is one past the last index used."""
        first_idx, next_idx, count = result
        info = cls(
            active_start_idx=int(first_idx),
            count_all_items=max(0, int(next_idx) - 1),
            count_active_items=int(count),
        )
        if info.active_start_idx > info.count_all_items + 1:
            logger.warning(f"List metadata out of order: start {info.active_start_idx} > count {info.count_all_items}")
        return info


# ============================================================================
# DETAIL RECORDS
# ============================================================================

def _convert(value: Any, target: Any) -> Any:
    if isinstance(target, type) and issubclass(target, IntEnum):
        return target(int(value))
    if target is int:
        return int(value)
    if isinstance(value, (bytes, bytearray)):
        return bytes_to_hex(value)
    if isinstance(value, str):
        return value.lower()
    return value


class EntityDetail(JsonRecord):
    """
    Mixin for current-state snapshots returned by dataStorage(hash).

    CALL_FIELDS lists (attribute, type) in the order of the call result.
    """

    CALL_FIELDS: Tuple[Tuple[str, Any], ...] = ()

    @classmethod
    def from_call_result(cls, entity_hash: str, result: Sequence[Any]):
        if len(result) < len(cls.CALL_FIELDS):
            raise DecodeError(f"{cls.__name__} expects {len(cls.CALL_FIELDS)} values, got {len(result)}")
        values = {name: _convert(value, target) for (name, target), value in zip(cls.CALL_FIELDS, result)}
        return cls(hash=entity_hash, **values)


@dataclass
class BondDetail(EntityDetail):
    hash: str
    idx: int = 0
    owner: str = ""
    payment_account_hash: str = ""
    principal_cu: int = 0
    yield_ppb: int = 0
    maturity_payout_amount_cu: int = 0
    creation_date: int = 0
    next_state_expiry_date: int = 0
    maturity_date: int = 0
    state: BondState = BondState.CREATED
    security_reference_hash: str = ""
    event_logs: List[EventLog] = field(default_factory=list)

    CALL_FIELDS = (
        ('idx', int), ('owner', str), ('payment_account_hash', bytes),
        ('principal_cu', int), ('yield_ppb', int), ('maturity_payout_amount_cu', int),
        ('creation_date', int), ('next_state_expiry_date', int), ('maturity_date', int),
        ('state', BondState), ('security_reference_hash', bytes),
    )


@dataclass
class PolicyDetail(EntityDetail):
    hash: str
    idx: int = 0
    owner: str = ""
    payment_account_hash: str = ""
    document_hash: str = ""
    risk_points: int = 0
    premium_credited_cu: int = 0
    premium_charged_cu_ppt: int = 0
    state: PolicyState = PolicyState.PAUSED
    last_reconciliation_day: int = 0
    next_reconciliation_day: int = 0
    event_logs: List[EventLog] = field(default_factory=list)

    CALL_FIELDS = (
        ('idx', int), ('owner', str), ('payment_account_hash', bytes), ('document_hash', bytes),
        ('risk_points', int), ('premium_credited_cu', int), ('premium_charged_cu_ppt', int),
        ('state', PolicyState), ('last_reconciliation_day', int), ('next_reconciliation_day', int),
    )


@dataclass
class SettlementDetail(EntityDetail):
    hash: str
    idx: int = 0
    settlement_amount: int = 0
    state: SettlementState = SettlementState.CREATED
    event_logs: List[EventLog] = field(default_factory=list)

    CALL_FIELDS = (('idx', int), ('settlement_amount', int), ('state', SettlementState))


@dataclass
class AdjustorDetail(EntityDetail):
    hash: str
    idx: int = 0
    owner: str = ""
    settlement_approval_amount_cu: int = 0
    policy_risk_point_limit: int = 0
    service_agreement_hash: str = ""
    event_logs: List[EventLog] = field(default_factory=list)

    CALL_FIELDS = (
        ('idx', int), ('owner', str), ('settlement_approval_amount_cu', int),
        ('policy_risk_point_limit', int), ('service_agreement_hash', bytes),
    )


DETAIL_TYPES: Dict[Entity, Type[EntityDetail]] = {
    Entity.BOND: BondDetail,
    Entity.POLICY: PolicyDetail,
    Entity.SETTLEMENT: SettlementDetail,
    Entity.ADJUSTOR: AdjustorDetail,
}


# ============================================================================
# ENTITY STORE
# ============================================================================

class EntityStore:
    """hashMap / get / dataStorage accessors of one deployed list contract."""

    def __init__(self, ledger_client, entity: Entity, address: str):
        if entity not in DETAIL_TYPES:
            raise ValueError(f"{entity.value} is not a hash-list entity")
        self.ledger_client = ledger_client
        self.entity = entity
        self.address = address
        self.contract_name = get_layout(entity).contract_name
        self.detail_type = DETAIL_TYPES[entity]

    def list_info(self) -> ListInfo:
        return ListInfo.from_hash_map(self.ledger_client.call(self.contract_name, self.address, "hashMap"))

    def hash_at(self, idx: int) -> str:
        return bytes_to_hex(self.ledger_client.call(self.contract_name, self.address, "get", idx))

    def detail(self, entity_hash: str) -> EntityDetail:
        key = hex_to_bytes(pad_to_32_byte_word(entity_hash))
        result = self.ledger_client.call(self.contract_name, self.address, "dataStorage", key)
        return self.detail_type.from_call_result(entity_hash, result)


# ============================================================================
# PAGINATION
# ============================================================================

@dataclass
class ListPage(JsonRecord):
    """
    One page of a list, newest first.

    next_from_idx is the exclusive lower bound of this page; passing it back
    as from_idx continues below it. None once index 0 has been reached.
    """
    info: Optional[ListInfo]
    items: List[Any] = field(default_factory=list)
    next_from_idx: Optional[int] = None


class PaginatedListReader:
    """Walks an append-only list backwards in bounded pages."""

    def __init__(self, default_page_size: int):
        self.default_page_size = default_page_size

    def page_bounds(self, count_all_items: int, from_idx: Optional[int] = None,
                    max_entries: Optional[int] = None) -> Tuple[int, int]:
        """(last_idx, lower_bound) of the page; 0 / None means unset."""
        last_idx = from_idx if from_idx else count_all_items
        page_size = max_entries if max_entries else self.default_page_size
        return last_idx, max(0, last_idx - page_size)

    def iter_page(self, last_idx: int, lower_bound: int,
                  hash_at: Callable[[int], str],
                  fetch_item: Callable[[str], Any]) -> Iterator[Any]:
        """Lazily yield items for indices last_idx .. lower_bound (exclusive)."""
        for idx in range(last_idx, lower_bound, -1):
            entity_hash = hash_at(idx)
            if is_empty_hash(entity_hash):
                logger.debug(f"Slot {idx} is archived, skipping")
                continue
            yield fetch_item(entity_hash)

    def read_page(self, store: EntityStore, from_idx: Optional[int] = None,
                  max_entries: Optional[int] = None) -> ListPage:
        info = store.list_info()
        last_idx, lower_bound = self.page_bounds(info.count_all_items, from_idx, max_entries)
        items = list(self.iter_page(last_idx, lower_bound, store.hash_at, store.detail))
        logger.debug(f"{store.entity.value} page {last_idx}..{lower_bound}: {len(items)} items")
        return ListPage(info=info, items=items, next_from_idx=lower_bound or None)
