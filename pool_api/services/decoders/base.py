"""
Base enums and data structures for ecosystem event log decoding.

Enum ordinals mirror the contracts' on-chain values. They are closed and
order-significant: never reorder or insert members.
"""

from dataclasses import dataclass, field, fields
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional, Tuple


# ============================================================================
# ENUMS
# ============================================================================

class Entity(Enum):
    """Ecosystem entity families that emit event logs"""
    BOND = "bond"
    POLICY = "policy"
    SETTLEMENT = "settlement"
    ADJUSTOR = "adjustor"
    BANK = "bank"
    POOL = "pool"
    TRUST = "trust"


class BondState(IntEnum):
    CREATED = 0
    SECURED_BOND_PRINCIPAL = 1
    SECURED_REFERENCE_BOND = 2
    SIGNED = 3
    ISSUED = 4
    LOCKED_REFERENCE_BOND = 5
    DEFAULTED = 6
    MATURED = 7


# States in which a bond log's info topic holds the hash of another bond
REFERENCE_BOND_STATES = frozenset({BondState.SECURED_REFERENCE_BOND, BondState.LOCKED_REFERENCE_BOND})


class PolicyState(IntEnum):
    PAUSED = 0          # Temporarily deactivated by the owner
    ISSUED = 1          # Active
    LAPSED = 2          # Ran out of funds
    POST_LAPSED = 3     # Refunded and due for re-issuing
    RETIRED = 4         # Cancelled and archived permanently


class SettlementState(IntEnum):
    CREATED = 0
    PROCESSING = 1
    SETTLED = 2         # No further amendments possible


class AccountType(IntEnum):
    """Bank accounts held by the pool"""
    PREMIUM_ACCOUNT = 0
    BOND_ACCOUNT = 1
    FUNDING_ACCOUNT = 2


class TransactionType(IntEnum):
    CREDIT = 0
    DEBIT = 1


class PaymentAdviceType(IntEnum):
    PREMIUM_REFUND = 0
    PREMIUM = 1
    BOND_MATURITY = 2
    OVERFLOW = 3
    POOL_OPERATOR = 4
    SERVICE_PROVIDER = 5
    TRUST = 6


class SuccessFilter(Enum):
    """Bank log filter on the success topic"""
    ALL = "all"
    POSITIVE = "positive"
    NEGATIVE = "negative"


def _json_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, list):
        return [_json_value(v) for v in value]
    if hasattr(value, 'to_dict'):
        return value.to_dict()
    return value


class JsonRecord:
    """Mixin giving dataclasses a JSON-safe to_dict()."""

    def to_dict(self) -> dict:
        return {f.name: _json_value(getattr(self, f.name)) for f in fields(self)}


# ============================================================================
# RAW LOG
# ============================================================================

@dataclass(frozen=True)
class RawLog:
    """Event log as returned by the Ledger Client (hex strings, 0x-prefixed)"""
    block_number_hex: str
    topics: Tuple[str, ...]
    data: str
    address: str = ""
    transaction_hash: str = ""
    log_index: int = 0

    @property
    def block_number(self) -> int:
        return int(self.block_number_hex, 16)


# ============================================================================
# DECODED EVENT LOGS
# ============================================================================

@dataclass
class EventLog(JsonRecord):
    """Common fields of every decoded event log"""
    block_number: int
    timestamp: int

    # Field holding the entity hash, if the log belongs to a hash-keyed entity
    PRIMARY_FIELD = None

    @property
    def primary_hash(self) -> Optional[str]:
        return getattr(self, self.PRIMARY_FIELD) if self.PRIMARY_FIELD else None


@dataclass
class BondEventLog(EventLog):
    hash: str = ""
    owner: str = ""
    info: str = ""
    state: BondState = BondState.CREATED

    PRIMARY_FIELD = 'hash'


@dataclass
class PolicyEventLog(EventLog):
    hash: str = ""
    owner: str = ""
    info: str = ""
    state: PolicyState = PolicyState.PAUSED

    PRIMARY_FIELD = 'hash'


@dataclass
class AdjustorEventLog(EventLog):
    hash: str = ""
    owner: str = ""
    info: str = ""

    PRIMARY_FIELD = 'hash'


@dataclass
class SettlementEventLog(EventLog):
    settlement_hash: str = ""
    adjustor_hash: str = ""
    info: str = ""
    state: SettlementState = SettlementState.CREATED

    PRIMARY_FIELD = 'settlement_hash'


@dataclass
class BankEventLog(EventLog):
    internal_reference_hash: str = ""
    account_type: AccountType = AccountType.PREMIUM_ACCOUNT
    success: bool = False
    payment_account_hash: str = ""
    payment_subject: str = ""
    info: str = ""
    transaction_type: TransactionType = TransactionType.CREDIT
    amount: int = 0


@dataclass
class PoolEventLog(EventLog):
    subject: str = ""
    day: int = 0
    value: int = 0


@dataclass
class TrustEventLog(EventLog):
    subject: str = ""
    address: str = ""
    info: str = ""


# ============================================================================
# LIST RESPONSES
# ============================================================================

@dataclass
class EventLogList(JsonRecord):
    """Decoded logs, newest first"""
    entity: Entity
    event_logs: List[EventLog] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.event_logs)

    def records(self) -> List[Dict[str, Any]]:
        return [log.to_dict() for log in self.event_logs]
