"""
Pool Ledger Service

The logical operations exposed over one or more pool ecosystems. Every
operation takes the address of any contract of an ecosystem, resolves the
ecosystem's contract address set first, and only then touches the entity
contracts.

Usage:
    from pool_api.services.ledger_client import Web3LedgerClient
    from pool_api.services.pool_service import PoolLedgerService

    service = PoolLedgerService(Web3LedgerClient())
    page = service.get_list(Entity.BOND, "0x...")
    bond = service.get_detail(Entity.BOND, "0x...", idx=3)
"""

import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ..config.contract_abis import POOL_STATUS_FUNCTIONS
from ..config.ledger_config import (
    ADDRESS_PATTERN,
    HASH_PATTERN,
    PRIVATE_KEY_PATTERN,
    TIMER_BUCKET_SLOTS,
    TIMER_MAX_NOTIFICATION_WINDOW_SEC,
    TIMER_SLOT_SEC,
    LedgerSettings,
    get_settings,
)
from ..errors import DecodeError, InvalidContractAddressError, ReceiptNotFoundError, ValidationError
from .decoders.base import (
    AccountType,
    Entity,
    EventLogList,
    JsonRecord,
    PaymentAdviceType,
    SuccessFilter,
)
from .decoders.hex_codec import (
    bytes_to_hex,
    decode_ascii_if_possible,
    decode_numeric_or_hash,
    is_empty_address,
    is_empty_hash,
    pad_to_32_byte_word,
    uint_to_word,
)
from .decoders.log_decoder import LogDecoder
from .decoders.log_filter import LogFilterBuilder
from .entity_assembler import EntityAssembler
from .list_reader import DETAIL_TYPES, EntityDetail, EntityStore, ListInfo, ListPage, PaginatedListReader
from .ping_scheduler import PingConfig, PingScheduler

logger = logging.getLogger(__name__)

# Entities whose logs carry an owner topic
OWNED_ENTITIES = (Entity.BOND, Entity.POLICY, Entity.ADJUSTOR)


# ============================================================================
# RESPONSE TYPES
# ============================================================================

@dataclass
class EcosystemAddresses(JsonRecord):
    """Contract Address Set of one ecosystem"""
    trust_contract_adr: str
    pool_contract_adr: str
    bond_contract_adr: str
    bank_contract_adr: str
    policy_contract_adr: str
    settlement_contract_adr: str
    adjustor_contract_adr: str
    timer_contract_adr: str

    @classmethod
    def from_call_result(cls, result) -> "EcosystemAddresses":
        return cls(*[str(adr).lower() for adr in result])

    def for_entity(self, entity: Entity) -> str:
        return getattr(self, f"{entity.value}_contract_adr")


@dataclass
class PaymentAdvice(JsonRecord):
    idx: int
    advice_type: PaymentAdviceType
    payment_account_hash_recipient: str
    payment_subject: str
    amount: int
    internal_reference_hash: str


@dataclass
class TimerNotification(JsonRecord):
    address: str
    subject: int
    message: str
    timestamp: int


@dataclass
class EcosystemStatus(JsonRecord):
    pool: Dict[str, Any]
    bond_list_info: ListInfo
    policy_list_info: ListInfo
    adjustor_list_info: ListInfo
    settlement_list_info: ListInfo
    total_issued_policy_risk_points: int
    funding_account_payments_tracking_cu: int
    last_ping_execution: int


@dataclass
class TransactionReceipt(JsonRecord):
    transaction_hash: str
    transaction_index: Optional[int]
    block_hash: str
    block_number: int
    gas_used: Optional[int]
    cumulative_gas_used: Optional[int]
    success: bool
    contract_address: Optional[str]
    log_count: int
    contract_reference_adr: List[str] = field(default_factory=list)
    object_reference_hash: List[str] = field(default_factory=list)


# ============================================================================
# INPUT VALIDATION
# ============================================================================

def _word_hex(value: Any) -> str:
    """Full-width hex of a bytes32 call result (no "0x0" compaction)"""
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return str(value).lower()


def normalize_address(value: Optional[str], what: str = "address") -> Optional[str]:
    """Lower-case and check an address; empty sentinels become None."""
    if is_empty_address(value):
        return None
    value = value.strip().lower()
    if not re.match(ADDRESS_PATTERN, value):
        raise DecodeError(f"Invalid {what}: {value}")
    return value


def normalize_hash(value: Optional[str], what: str = "hash") -> Optional[str]:
    """Lower-case and check a 32-byte hash; empty sentinels become None."""
    if is_empty_hash(value):
        return None
    value = value.strip().lower()
    if not re.match(HASH_PATTERN, value):
        raise DecodeError(f"Invalid {what}: {value}")
    return value


# ============================================================================
# SERVICE
# ============================================================================

class PoolLedgerService:
    """Read operations (plus receipt polling and timer ping) over pool ecosystems."""

    def __init__(
        self,
        ledger_client,
        settings: Optional[LedgerSettings] = None,
        decoder: Optional[LogDecoder] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.ledger_client = ledger_client
        self.settings = settings or get_settings()
        self.decoder = decoder or LogDecoder()
        self.filter_builder = LogFilterBuilder(ledger_client, self.settings.default_lookback_blocks)
        self.assembler = EntityAssembler(ledger_client, self.decoder, self.filter_builder)
        self.list_reader = PaginatedListReader(self.settings.default_page_size)
        self.ping_scheduler = PingScheduler(self._submit_ping)
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Ecosystem
    # ------------------------------------------------------------------

    def resolve_ecosystem(self, contract_adr: str) -> EcosystemAddresses:
        """
        Contract Address Set for any contract address of an ecosystem.

        Any failure of the lookup means the address is not part of an
        ecosystem and raises InvalidContractAddressError.
        """
        try:
            address = normalize_address(contract_adr, "contract address")
        except DecodeError:
            raise InvalidContractAddressError(contract_adr)
        if address is None:
            raise InvalidContractAddressError(contract_adr)

        try:
            result = self.ledger_client.call("IntAccessI", address, "getContractAdr")
        except Exception as e:
            logger.warning(f"Ecosystem lookup for {address} failed: {e}")
            raise InvalidContractAddressError(address) from e
        return EcosystemAddresses.from_call_result(result)

    def get_ecosystem_contract_addresses(self, contract_adr: str) -> EcosystemAddresses:
        return self.resolve_ecosystem(contract_adr)

    def get_ecosystem_status(self, contract_adr: str) -> EcosystemStatus:
        adr = self.resolve_ecosystem(contract_adr)
        call = self.ledger_client.call

        pool = {name: call("Pool", adr.pool_contract_adr, name) for name, _ in POOL_STATUS_FUNCTIONS}

        return EcosystemStatus(
            pool=pool,
            bond_list_info=self._store(Entity.BOND, adr).list_info(),
            policy_list_info=self._store(Entity.POLICY, adr).list_info(),
            adjustor_list_info=self._store(Entity.ADJUSTOR, adr).list_info(),
            settlement_list_info=self._store(Entity.SETTLEMENT, adr).list_info(),
            total_issued_policy_risk_points=call("Policy", adr.policy_contract_adr, "totalIssuedPolicyRiskPoints"),
            funding_account_payments_tracking_cu=call("Bank", adr.bank_contract_adr, "fundingAccountPaymentsTracking_Cu"),
            last_ping_execution=call("Timer", adr.timer_contract_adr, "lastPingExec_10_S") * TIMER_SLOT_SEC,
        )

    # ------------------------------------------------------------------
    # Hash-list entities: bond, policy, settlement, adjustor
    # ------------------------------------------------------------------

    def _store(self, entity: Entity, adr: EcosystemAddresses) -> EntityStore:
        return EntityStore(self.ledger_client, entity, adr.for_entity(entity))

    @staticmethod
    def _require_list_entity(entity: Entity) -> None:
        if entity not in DETAIL_TYPES:
            raise ValidationError(f"{entity.value} has no list")

    def get_list(
        self,
        entity: Entity,
        contract_adr: str,
        owner: Optional[str] = None,
        from_idx: Optional[int] = None,
        max_entries: Optional[int] = None,
    ) -> ListPage:
        """
        Page of entity details, newest first.

        Without an owner the on-chain list is paged by index. With an owner
        the distinct entities are reconstructed from the owner's logs; no
        list metadata or continuation index is returned in that case.
        """
        self._require_list_entity(entity)
        owner = normalize_address(owner, "owner")
        if owner and entity not in OWNED_ENTITIES:
            raise ValidationError(f"{entity.value} entries have no owner")

        store = self._store(entity, self.resolve_ecosystem(contract_adr))
        if owner is None:
            return self.list_reader.read_page(store, from_idx, max_entries)
        return ListPage(info=None, items=self.assembler.owner_listing(store, owner))

    def get_detail(
        self,
        entity: Entity,
        contract_adr: str,
        entity_hash: Optional[str] = None,
        idx: Optional[int] = None,
    ) -> EntityDetail:
        """Detail snapshot with its oldest-first history, by hash or list index."""
        self._require_list_entity(entity)
        entity_hash = normalize_hash(entity_hash)
        store = self._store(entity, self.resolve_ecosystem(contract_adr))
        return self.assembler.detail_with_history(store, entity_hash, idx)

    def get_logs(
        self,
        entity: Entity,
        contract_adr: str,
        entity_hash: Optional[str] = None,
        owner: Optional[str] = None,
        info: Optional[str] = None,
        from_block: Optional[int] = None,
        to_block: Optional[int] = None,
    ) -> EventLogList:
        """Bond, policy or adjustor logs, newest first."""
        if entity not in OWNED_ENTITIES:
            raise ValidationError(f"Use the dedicated {entity.value} log operation")
        topic1 = LogFilterBuilder.hash_matcher(normalize_hash(entity_hash))
        topic2 = LogFilterBuilder.address_matcher(normalize_address(owner, "owner"))
        topic3 = LogFilterBuilder.numeric_or_hash_matcher(info)

        adr = self.resolve_ecosystem(contract_adr)
        event_logs = self.assembler.search_logs(
            entity, adr.for_entity(entity), topic1, topic2, topic3, from_block, to_block,
        )
        return EventLogList(entity, event_logs)

    def get_settlement_logs(
        self,
        contract_adr: str,
        settlement_hash: Optional[str] = None,
        adjustor_hash: Optional[str] = None,
        info: Optional[str] = None,
        from_block: Optional[int] = None,
        to_block: Optional[int] = None,
    ) -> EventLogList:
        topic1 = LogFilterBuilder.hash_matcher(normalize_hash(settlement_hash, "settlement hash"))
        topic2 = LogFilterBuilder.hash_matcher(normalize_hash(adjustor_hash, "adjustor hash"))
        topic3 = LogFilterBuilder.hash_matcher(normalize_hash(info, "info hash"))

        adr = self.resolve_ecosystem(contract_adr)
        event_logs = self.assembler.search_logs(
            Entity.SETTLEMENT, adr.settlement_contract_adr, topic1, topic2, topic3, from_block, to_block,
        )
        return EventLogList(Entity.SETTLEMENT, event_logs)

    # ------------------------------------------------------------------
    # Bank
    # ------------------------------------------------------------------

    def get_bank_logs(
        self,
        contract_adr: str,
        account_type: AccountType = AccountType.PREMIUM_ACCOUNT,
        internal_reference_hash: Optional[str] = None,
        success: SuccessFilter = SuccessFilter.ALL,
        from_block: Optional[int] = None,
        to_block: Optional[int] = None,
    ) -> EventLogList:
        """
        Bank logs of one account, newest first.

        The account type is always matched but does not narrow the search on
        its own: the lookback window applies unless a reference hash or a
        success filter is given.
        """
        reference = normalize_hash(internal_reference_hash, "internal reference hash")
        topic1 = LogFilterBuilder.hash_matcher(reference)
        topic2 = uint_to_word(int(account_type))
        topic3 = LogFilterBuilder.bool_matcher(
            None if success is SuccessFilter.ALL else success is SuccessFilter.POSITIVE
        )
        narrowed = not (success is SuccessFilter.ALL and reference is None)

        adr = self.resolve_ecosystem(contract_adr)
        event_logs = self.assembler.search_logs(
            Entity.BANK, adr.bank_contract_adr, topic1, topic2, topic3, from_block, to_block, narrowed=narrowed,
        )
        return EventLogList(Entity.BANK, event_logs)

    def get_payment_advice_list(self, contract_adr: str) -> List[PaymentAdvice]:
        """Outstanding payment advice entries (amount > 0), in index order."""
        adr = self.resolve_ecosystem(contract_adr)
        bank = adr.bank_contract_adr
        count = self.ledger_client.call("Bank", bank, "countPaymentAdviceEntries")

        entries = []
        for idx in range(count):
            advice_type, recipient, subject, amount, reference = self.ledger_client.call(
                "Bank", bank, "bankPaymentAdvice", idx)
            if amount <= 0:
                continue
            entries.append(PaymentAdvice(
                idx=idx,
                advice_type=PaymentAdviceType(int(advice_type)),
                payment_account_hash_recipient=bytes_to_hex(recipient) if isinstance(recipient, bytes) else recipient,
                payment_subject=decode_numeric_or_hash(pad_to_32_byte_word(_word_hex(subject))),
                amount=amount,
                internal_reference_hash=bytes_to_hex(reference) if isinstance(reference, bytes) else reference,
            ))
        logger.debug(f"{len(entries)} of {count} payment advice entries outstanding")
        return entries

    # ------------------------------------------------------------------
    # Pool and trust
    # ------------------------------------------------------------------

    def get_pool_logs(
        self,
        contract_adr: str,
        subject: Optional[str] = None,
        day: Optional[int] = None,
        value: Optional[int] = None,
        from_block: Optional[int] = None,
        to_block: Optional[int] = None,
    ) -> EventLogList:
        topic1 = LogFilterBuilder.text_matcher(subject)
        topic2 = LogFilterBuilder.uint_matcher(day)
        topic3 = LogFilterBuilder.uint_matcher(value)

        adr = self.resolve_ecosystem(contract_adr)
        event_logs = self.assembler.search_logs(
            Entity.POOL, adr.pool_contract_adr, topic1, topic2, topic3, from_block, to_block,
        )
        return EventLogList(Entity.POOL, event_logs)

    def get_trust_logs(
        self,
        contract_adr: str,
        subject: Optional[str] = None,
        address: Optional[str] = None,
        info: Optional[str] = None,
        from_block: Optional[int] = None,
        to_block: Optional[int] = None,
    ) -> EventLogList:
        topic1 = LogFilterBuilder.text_matcher(subject)
        topic2 = LogFilterBuilder.address_matcher(normalize_address(address))
        topic3 = LogFilterBuilder.text_matcher(info)

        adr = self.resolve_ecosystem(contract_adr)
        event_logs = self.assembler.search_logs(
            Entity.TRUST, adr.trust_contract_adr, topic1, topic2, topic3, from_block, to_block,
        )
        return EventLogList(Entity.TRUST, event_logs)

    # ------------------------------------------------------------------
    # Timer
    # ------------------------------------------------------------------

    def resolve_notification_window(self, from_time: Optional[int], to_time: Optional[int],
                                    now: int, inception: int) -> tuple:
        """
        (from_time, to_time) of a notification query.

        Defaults to the next 24 hours; a single bound is completed to a
        24 hour window. Bounds before inception, reversed bounds and windows
        over 24 hours are rejected.
        """
        max_window = TIMER_MAX_NOTIFICATION_WINDOW_SEC
        if (from_time and from_time < inception) or (to_time and to_time < inception):
            raise ValidationError(f"Notification window starts before timer inception ({inception})")

        if not from_time and not to_time:
            return now, now + max_window
        if not from_time:
            return max(0, to_time - max_window), to_time
        if not to_time:
            return from_time, from_time + max_window
        if from_time > to_time or from_time + max_window < to_time:
            raise ValidationError(f"Invalid notification window {from_time}..{to_time}")
        return from_time, to_time

    def get_timer_notifications(self, contract_adr: str, from_time: Optional[int] = None,
                                to_time: Optional[int] = None) -> List[TimerNotification]:
        """
        Scheduled timer notifications inside a window of at most 24 hours.

        The timer stores notifications in 10 second slots and flags 100 second
        buckets that hold any; only flagged buckets are read slot by slot.
        """
        adr = self.resolve_ecosystem(contract_adr)
        timer = adr.timer_contract_adr
        call = self.ledger_client.call

        now = call("Timer", timer, "getBlockchainEPOCHTime")
        inception = call("Timer", timer, "TIMER_INCEPTION_DATE")
        from_time, to_time = self.resolve_notification_window(from_time, to_time, now, inception)

        from_slot = from_time // TIMER_SLOT_SEC
        to_slot = to_time // TIMER_SLOT_SEC
        notifications = []
        for bucket in range(from_slot // TIMER_BUCKET_SLOTS, to_slot // TIMER_BUCKET_SLOTS + 1):
            if not call("Timer", timer, "timeIntervalHasEntries", bucket):
                continue
            first = max(bucket * TIMER_BUCKET_SLOTS, from_slot)
            last = min((bucket + 1) * TIMER_BUCKET_SLOTS - 1, to_slot)
            for slot in range(first, last + 1):
                count = call("Timer", timer, "getTimerNotificationCount", slot)
                for k in range(count):
                    address, subject, message = call("Timer", timer, "notification", slot, k)
                    notifications.append(TimerNotification(
                        address=str(address).lower(),
                        subject=int(subject),
                        message=decode_ascii_if_possible(_word_hex(message)) if message else "",
                        timestamp=slot * TIMER_SLOT_SEC,
                    ))
        logger.debug(f"{len(notifications)} timer notifications in {from_time}..{to_time}")
        return notifications

    def _submit_ping(self, config: PingConfig) -> str:
        return self.ledger_client.submit_transaction(
            "Timer", config.timer_contract_adr, "ping", (), config.signing_private_key)

    def ping(self, contract_adr: str, signing_private_key: str,
             auto_schedule_ping_sec: Optional[int] = None) -> str:
        """
        Submit one timer ping and (re)configure the background ping schedule.

        auto_schedule_ping_sec of 0 disables the schedule; None uses the
        configured default.
        """
        if not signing_private_key or not re.match(PRIVATE_KEY_PATTERN, signing_private_key.strip().lower()):
            raise DecodeError("Invalid signing private key")
        if auto_schedule_ping_sec is None:
            auto_schedule_ping_sec = self.settings.auto_schedule_ping_sec
        if auto_schedule_ping_sec < 0:
            raise ValidationError("Ping interval must not be negative")

        adr = self.resolve_ecosystem(contract_adr)
        config = PingConfig(adr.timer_contract_adr, signing_private_key.strip(), auto_schedule_ping_sec)
        self.ping_scheduler.configure(config)
        return self._submit_ping(config)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def get_receipt(self, tx_hash: str, max_wait: Optional[int] = None) -> TransactionReceipt:
        """
        Poll for a transaction receipt once per second.

        Raises ReceiptNotFoundError (retry later) if the transaction is
        unknown or still unmined after max_wait seconds.
        """
        tx_hash = normalize_hash(tx_hash, "transaction hash")
        if tx_hash is None:
            raise DecodeError("Transaction hash is required")
        max_wait = max_wait if max_wait else self.settings.max_wait_for_receipt_sec

        receipt = self.ledger_client.get_transaction_receipt(tx_hash)
        waited = 0
        while receipt is None and waited < max_wait:
            self._sleep(1)
            waited += 1
            receipt = self.ledger_client.get_transaction_receipt(tx_hash)

        if receipt is None:
            logger.info(f"No receipt for {tx_hash} after {waited}s")
            raise ReceiptNotFoundError(tx_hash)

        logs = receipt.get('logs', [])
        return TransactionReceipt(
            transaction_hash=receipt['transaction_hash'],
            transaction_index=receipt.get('transaction_index'),
            block_hash=receipt.get('block_hash', ""),
            block_number=receipt['block_number'],
            gas_used=receipt.get('gas_used'),
            cumulative_gas_used=receipt.get('cumulative_gas_used'),
            success=receipt.get('status') == 1,
            contract_address=receipt.get('contract_address'),
            log_count=len(logs),
            contract_reference_adr=[log.address for log in logs],
            object_reference_hash=[log.topics[1] if len(log.topics) > 1 else "" for log in logs],
        )
