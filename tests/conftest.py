"""
Shared fixtures: an in-memory Ledger Client and a wired PoolLedgerService.
"""
import os
import sys

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pool_api.config.ledger_config import LedgerSettings
from pool_api.services.ledger_client import LedgerClient
from pool_api.services.pool_service import PoolLedgerService


ROOT_ADR = "0x" + "10" * 20
TRUST_ADR = "0x" + "a1" * 20
POOL_ADR = "0x" + "a2" * 20
BOND_ADR = "0x" + "a3" * 20
BANK_ADR = "0x" + "a4" * 20
POLICY_ADR = "0x" + "a5" * 20
SETTLEMENT_ADR = "0x" + "a6" * 20
ADJUSTOR_ADR = "0x" + "a7" * 20
TIMER_ADR = "0x" + "a8" * 20

ECOSYSTEM = (TRUST_ADR, POOL_ADR, BOND_ADR, BANK_ADR, POLICY_ADR, SETTLEMENT_ADR, ADJUSTOR_ADR, TIMER_ADR)


class FakeLedgerClient(LedgerClient):
    """
    In-memory ledger.

    Call responses are registered per (address, function); a callable
    response receives the call arguments. Unregistered calls raise, like a
    call against a contract that does not implement the function.
    """

    def __init__(self, block_height: int = 100000):
        self.block_height = block_height
        self.responses = {}
        self.logs = []
        self.receipts = {}
        self.calls = []
        self.filters = []
        self.submitted = []
        self.height_requests = 0

    def respond(self, address, function_name, value):
        self.responses[(address.lower(), function_name)] = value
        return self

    def call(self, contract_name, address, function_name, *args):
        self.calls.append((contract_name, address.lower(), function_name, args))
        key = (address.lower(), function_name)
        if key not in self.responses:
            raise KeyError(f"{contract_name}.{function_name} not available at {address}")
        value = self.responses[key]
        return value(*args) if callable(value) else value

    def get_logs(self, log_filter):
        self.filters.append(log_filter)
        block_range = log_filter.block_range
        matched = []
        for log in sorted(self.logs, key=lambda l: l.block_number):
            if log.address != log_filter.address.lower():
                continue
            if log.block_number < block_range.from_block:
                continue
            if block_range.to_block != "latest" and log.block_number > block_range.to_block:
                continue
            if all(m is None or (i < len(log.topics) and log.topics[i] == m)
                   for i, m in enumerate(log_filter.topics)):
                matched.append(log)
        return matched

    def get_current_block_height(self):
        self.height_requests += 1
        return self.block_height

    def submit_transaction(self, contract_name, address, function_name, args, private_key):
        self.submitted.append((contract_name, address, function_name, tuple(args), private_key))
        return "0x" + format(len(self.submitted), "064x")

    def get_transaction_receipt(self, tx_hash):
        pending = self.receipts.get(tx_hash)
        if not pending:
            return None
        return pending.pop(0) if len(pending) > 1 else pending[0]

    def function_calls(self, function_name):
        return [c for c in self.calls if c[2] == function_name]


@pytest.fixture
def settings():
    return LedgerSettings(default_page_size=5, default_lookback_blocks=1000, max_wait_for_receipt_sec=3)


@pytest.fixture
def ledger():
    client = FakeLedgerClient()
    client.respond(ROOT_ADR, "getContractAdr", ECOSYSTEM)
    return client


@pytest.fixture
def service(ledger, settings):
    svc = PoolLedgerService(ledger, settings=settings, sleep=lambda seconds: None)
    yield svc
    svc.ping_scheduler.stop()
