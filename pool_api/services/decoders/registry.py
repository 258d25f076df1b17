"""
Event Layout Registry - word layouts of every ecosystem event.

Each layout maps record fields to a topic position (1-3; topic 0 is the event
signature) or a data word index, plus the decode policy for that word. The
layouts follow the emitting contracts' fixed event schemas:

    LogBond        topics: hash, owner, info          data: timestamp, state
    LogPolicy      topics: hash, owner, info          data: timestamp, state
    LogAdjustor    topics: hash, owner, info          data: timestamp
    LogSettlement  topics: settlement, adjustor, info data: timestamp, state
    LogBank        topics: reference, account, ok    data: payment account,
                   payment subject, info, timestamp, transaction type, amount
    LogPool        topics: subject, day, value        data: timestamp
    LogTrust       topics: subject, address, info     data: timestamp
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple, Type

from ...config.contract_abis import event_topic
from .base import (
    AccountType,
    AdjustorEventLog,
    BankEventLog,
    BondEventLog,
    BondState,
    Entity,
    EventLog,
    PolicyEventLog,
    PolicyState,
    PoolEventLog,
    REFERENCE_BOND_STATES,
    SettlementEventLog,
    SettlementState,
    TransactionType,
    TrustEventLog,
)


class Source(Enum):
    TOPIC = "topic"
    DATA = "data"


class DecodePolicy(Enum):
    """How a single 32-byte word becomes a field value"""
    HASH = "hash"                            # Word as-is
    HASH_OR_EMPTY = "hash_or_empty"          # Zero word -> ""
    ADDRESS = "address"                      # Low-order 20 bytes
    UINT = "uint"
    BOOL = "bool"
    ENUM = "enum"
    ASCII = "ascii"                          # Zero-padded ASCII tag
    ASCII_OR_SENTINEL = "ascii_or_sentinel"  # Zero word -> "0x0", else ASCII
    NUMERIC_OR_HASH = "numeric_or_hash"      # Zero-prefixed -> decimal, else hex
    INFO = "info"                            # "", decimal or opaque hex tag


@dataclass(frozen=True)
class FieldSpec:
    name: str
    source: Source
    index: int
    policy: DecodePolicy
    enum: Optional[Type[Enum]] = None
    # (field, states) - return the raw hex when the decoded field is in states
    opaque_when: Optional[Tuple[str, FrozenSet]] = None
    # Decode as ASCII when this (already decoded) hash field is empty
    ascii_when_empty: Optional[str] = None

    @property
    def is_contextual(self) -> bool:
        return self.opaque_when is not None or self.ascii_when_empty is not None


def topic(name: str, index: int, policy: DecodePolicy, **kwargs) -> FieldSpec:
    return FieldSpec(name, Source.TOPIC, index, policy, **kwargs)


def word(name: str, index: int, policy: DecodePolicy, **kwargs) -> FieldSpec:
    return FieldSpec(name, Source.DATA, index, policy, **kwargs)


@dataclass(frozen=True)
class EventLayout:
    entity: Entity
    contract_name: str
    event_name: str
    record_type: Type[EventLog]
    fields: Tuple[FieldSpec, ...]

    @property
    def topic_count(self) -> int:
        """Topics expected in a log, including the signature topic"""
        indexes = [f.index for f in self.fields if f.source is Source.TOPIC]
        return max(indexes, default=0) + 1

    @property
    def data_word_count(self) -> int:
        indexes = [f.index for f in self.fields if f.source is Source.DATA]
        return max(indexes, default=-1) + 1

    @property
    def signature_topic(self) -> str:
        return event_topic(self.contract_name, self.event_name)

    def field(self, name: str) -> FieldSpec:
        for spec in self.fields:
            if spec.name == name:
                return spec
        raise KeyError(f"{self.event_name} has no field {name}")


EVENT_LAYOUTS: Dict[Entity, EventLayout] = {
    Entity.BOND: EventLayout(
        Entity.BOND, "Bond", "LogBond", BondEventLog, (
            topic("hash", 1, DecodePolicy.HASH),
            topic("owner", 2, DecodePolicy.ADDRESS),
            topic("info", 3, DecodePolicy.INFO,
                  opaque_when=("state", REFERENCE_BOND_STATES), ascii_when_empty="hash"),
            word("timestamp", 0, DecodePolicy.UINT),
            word("state", 1, DecodePolicy.ENUM, enum=BondState),
        )),
    Entity.POLICY: EventLayout(
        Entity.POLICY, "Policy", "LogPolicy", PolicyEventLog, (
            topic("hash", 1, DecodePolicy.HASH),
            topic("owner", 2, DecodePolicy.ADDRESS),
            topic("info", 3, DecodePolicy.INFO),
            word("timestamp", 0, DecodePolicy.UINT),
            word("state", 1, DecodePolicy.ENUM, enum=PolicyState),
        )),
    Entity.ADJUSTOR: EventLayout(
        Entity.ADJUSTOR, "Adjustor", "LogAdjustor", AdjustorEventLog, (
            topic("hash", 1, DecodePolicy.HASH),
            topic("owner", 2, DecodePolicy.ADDRESS),
            topic("info", 3, DecodePolicy.INFO),
            word("timestamp", 0, DecodePolicy.UINT),
        )),
    Entity.SETTLEMENT: EventLayout(
        Entity.SETTLEMENT, "Settlement", "LogSettlement", SettlementEventLog, (
            topic("settlement_hash", 1, DecodePolicy.HASH),
            topic("adjustor_hash", 2, DecodePolicy.HASH),
            topic("info", 3, DecodePolicy.HASH),
            word("timestamp", 0, DecodePolicy.UINT),
            word("state", 1, DecodePolicy.ENUM, enum=SettlementState),
        )),
    Entity.BANK: EventLayout(
        Entity.BANK, "Bank", "LogBank", BankEventLog, (
            topic("internal_reference_hash", 1, DecodePolicy.HASH),
            topic("account_type", 2, DecodePolicy.ENUM, enum=AccountType),
            topic("success", 3, DecodePolicy.BOOL),
            word("payment_account_hash", 0, DecodePolicy.HASH),
            word("payment_subject", 1, DecodePolicy.NUMERIC_OR_HASH),
            word("info", 2, DecodePolicy.ASCII_OR_SENTINEL),
            word("timestamp", 3, DecodePolicy.UINT),
            word("transaction_type", 4, DecodePolicy.ENUM, enum=TransactionType),
            word("amount", 5, DecodePolicy.UINT),
        )),
    Entity.POOL: EventLayout(
        Entity.POOL, "Pool", "LogPool", PoolEventLog, (
            topic("subject", 1, DecodePolicy.ASCII),
            topic("day", 2, DecodePolicy.UINT),
            topic("value", 3, DecodePolicy.UINT),
            word("timestamp", 0, DecodePolicy.UINT),
        )),
    Entity.TRUST: EventLayout(
        Entity.TRUST, "Trust", "LogTrust", TrustEventLog, (
            topic("subject", 1, DecodePolicy.ASCII),
            topic("address", 2, DecodePolicy.ADDRESS),
            topic("info", 3, DecodePolicy.HASH_OR_EMPTY),
            word("timestamp", 0, DecodePolicy.UINT),
        )),
}


def get_layout(entity: Entity) -> EventLayout:
    return EVENT_LAYOUTS[entity]
