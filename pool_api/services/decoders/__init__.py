"""
Event log decoding for the pool ecosystem contracts.

Every entity family (bond, policy, settlement, adjustor, bank, pool, trust)
is decoded by the same LogDecoder from a word layout in registry.py.

Modules:
- hex_codec: word/topic/sentinel helpers
- base: enums, RawLog and decoded record types
- registry: per-event word layouts
- log_decoder: RawLog -> typed record
- log_filter: topic filters and block ranges for queries
"""

from .base import (
    # Enums
    Entity,
    BondState,
    PolicyState,
    SettlementState,
    AccountType,
    TransactionType,
    PaymentAdviceType,
    SuccessFilter,
    REFERENCE_BOND_STATES,
    # Dataclasses
    RawLog,
    EventLog,
    BondEventLog,
    PolicyEventLog,
    AdjustorEventLog,
    SettlementEventLog,
    BankEventLog,
    PoolEventLog,
    TrustEventLog,
    EventLogList,
    JsonRecord,
)

from .hex_codec import (
    is_empty_sentinel,
    is_empty_hash,
    is_empty_address,
    is_empty_key,
    bytes_to_hex,
    hex_to_bytes,
    pad_to_32_byte_word,
    pad_address_to_topic,
    uint_to_word,
    text_to_word,
    extract_address_from_padded_topic,
    decode_ascii_if_possible,
    decode_info_word,
)

from .registry import EVENT_LAYOUTS, DecodePolicy, EventLayout, FieldSpec, get_layout
from .log_decoder import LogDecoder, data_word
from .log_filter import BlockRange, LogFilter, LogFilterBuilder, GENESIS_BLOCK, LATEST_BLOCK

__all__ = [
    'Entity', 'BondState', 'PolicyState', 'SettlementState', 'AccountType',
    'TransactionType', 'PaymentAdviceType', 'SuccessFilter', 'REFERENCE_BOND_STATES',
    'RawLog', 'EventLog', 'BondEventLog', 'PolicyEventLog', 'AdjustorEventLog',
    'SettlementEventLog', 'BankEventLog', 'PoolEventLog', 'TrustEventLog',
    'EventLogList', 'JsonRecord',
    'is_empty_sentinel', 'is_empty_hash', 'is_empty_address', 'is_empty_key',
    'bytes_to_hex', 'hex_to_bytes', 'pad_to_32_byte_word', 'pad_address_to_topic',
    'uint_to_word', 'text_to_word', 'extract_address_from_padded_topic',
    'decode_ascii_if_possible', 'decode_info_word',
    'EVENT_LAYOUTS', 'DecodePolicy', 'EventLayout', 'FieldSpec', 'get_layout',
    'LogDecoder', 'data_word',
    'BlockRange', 'LogFilter', 'LogFilterBuilder', 'GENESIS_BLOCK', 'LATEST_BLOCK',
]
