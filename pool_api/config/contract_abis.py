"""
Contract ABI Module

Minimal ABIs for the insurance pool ecosystem contracts: only the view
functions, events and transactions this service touches are declared.

A directory of compiled contract JSON files ({"contractName", "abi",
"bytecode"}) can be configured through CONTRACT_ABI_DIR to replace the
inline definitions with the full artifacts.
"""

import json
import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Optional

from web3 import Web3

from .ledger_config import get_settings

logger = logging.getLogger(__name__)


# ============================================================================
# ABI BUILDERS
# ============================================================================

def _param(name: str, type_: str, indexed: Optional[bool] = None) -> Dict:
    entry = {"internalType": type_, "name": name, "type": type_}
    if indexed is not None:
        entry["indexed"] = indexed
    return entry


def _view(name: str, inputs: List[tuple] = (), outputs: List[tuple] = ()) -> Dict:
    return {
        "inputs": [_param(n, t) for n, t in inputs],
        "name": name,
        "outputs": [_param(n, t) for n, t in outputs],
        "stateMutability": "view",
        "type": "function",
    }


def _transaction(name: str, inputs: List[tuple] = ()) -> Dict:
    return {
        "inputs": [_param(n, t) for n, t in inputs],
        "name": name,
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    }


def _event(name: str, indexed: List[tuple], data: List[tuple]) -> Dict:
    return {
        "anonymous": False,
        "inputs": [_param(n, t, True) for n, t in indexed] + [_param(n, t, False) for n, t in data],
        "name": name,
        "type": "event",
    }


# Append-only list accessors shared by bond, policy, settlement and adjustor
_HASH_LIST_FUNCTIONS = [
    _view("hashMap", outputs=[("firstIdx", "uint256"), ("nextIdx", "uint256"), ("count", "uint256")]),
    _view("get", inputs=[("idx", "uint256")], outputs=[("", "bytes32")]),
]


# ============================================================================
# INLINE ABIS
# ============================================================================

INTACCESSI_ABI = [
    _view("getContractAdr", outputs=[
        ("trustContractAdr", "address"),
        ("poolContractAdr", "address"),
        ("bondContractAdr", "address"),
        ("bankContractAdr", "address"),
        ("policyContractAdr", "address"),
        ("settlementContractAdr", "address"),
        ("adjustorContractAdr", "address"),
        ("timerContractAdr", "address"),
    ]),
]

BOND_ABI = _HASH_LIST_FUNCTIONS + [
    _view("dataStorage", inputs=[("", "bytes32")], outputs=[
        ("idx", "uint256"),
        ("owner", "address"),
        ("paymentAccountHash", "bytes32"),
        ("principal_Cu", "uint256"),
        ("yield_Ppb", "uint256"),
        ("maturityPayoutAmount_Cu", "uint256"),
        ("creationDate", "uint256"),
        ("nextStateExpiryDate", "uint256"),
        ("maturityDate", "uint256"),
        ("state", "uint256"),
        ("securityReferenceHash", "bytes32"),
    ]),
    _event("LogBond",
           [("bondHash", "bytes32"), ("owner", "address"), ("info", "bytes32")],
           [("timestamp", "uint256"), ("state", "uint256")]),
]

POLICY_ABI = _HASH_LIST_FUNCTIONS + [
    _view("dataStorage", inputs=[("", "bytes32")], outputs=[
        ("idx", "uint256"),
        ("owner", "address"),
        ("paymentAccountHash", "bytes32"),
        ("documentHash", "bytes32"),
        ("riskPoints", "uint256"),
        ("premiumCredited_Cu", "uint256"),
        ("premiumCharged_Cu_Ppt", "uint256"),
        ("state", "uint256"),
        ("lastReconciliationDay", "uint256"),
        ("nextReconciliationDay", "uint256"),
    ]),
    _view("totalIssuedPolicyRiskPoints", outputs=[("", "uint256")]),
    _event("LogPolicy",
           [("policyHash", "bytes32"), ("owner", "address"), ("info", "bytes32")],
           [("timestamp", "uint256"), ("state", "uint256")]),
]

SETTLEMENT_ABI = _HASH_LIST_FUNCTIONS + [
    _view("dataStorage", inputs=[("", "bytes32")], outputs=[
        ("idx", "uint256"),
        ("settlementAmount", "uint256"),
        ("state", "uint256"),
    ]),
    _event("LogSettlement",
           [("settlementHash", "bytes32"), ("adjustorHash", "bytes32"), ("info", "bytes32")],
           [("timestamp", "uint256"), ("state", "uint256")]),
]

ADJUSTOR_ABI = _HASH_LIST_FUNCTIONS + [
    _view("dataStorage", inputs=[("", "bytes32")], outputs=[
        ("idx", "uint256"),
        ("owner", "address"),
        ("settlementApprovalAmount_Cu", "uint256"),
        ("policyRiskPointLimit", "uint256"),
        ("serviceAgreementHash", "bytes32"),
    ]),
    _event("LogAdjustor",
           [("adjustorHash", "bytes32"), ("owner", "address"), ("info", "bytes32")],
           [("timestamp", "uint256")]),
]

BANK_ABI = [
    _view("countPaymentAdviceEntries", outputs=[("", "uint256")]),
    _view("bankPaymentAdvice", inputs=[("", "uint256")], outputs=[
        ("adviceType", "uint256"),
        ("paymentAccountHashRecipient", "bytes32"),
        ("paymentSubject", "bytes32"),
        ("amount", "uint256"),
        ("internalReferenceHash", "bytes32"),
    ]),
    _view("fundingAccountPaymentsTracking_Cu", outputs=[("", "uint256")]),
    _event("LogBank",
           [("internalReferenceHash", "bytes32"), ("accountType", "uint256"), ("success", "bool")],
           [("paymentAccountHash", "bytes32"), ("paymentSubject", "bytes32"), ("info", "bytes32"),
            ("timestamp", "uint256"), ("transactionType", "uint256"), ("amount", "uint256")]),
]

# Pool status getters: (function name, solidity return type)
POOL_STATUS_FUNCTIONS = [
    ("currentPoolDay", "uint256"),
    ("isWinterTime", "bool"),
    ("daylightSavingScheduled", "bool"),
    ("WC_Bal_FA_Cu", "uint256"),
    ("WC_Bal_BA_Cu", "uint256"),
    ("WC_Bal_PA_Cu", "uint256"),
    ("overwriteWcExpenses", "bool"),
    ("WC_Exp_Cu", "uint256"),
    ("WC_Locked_Cu", "uint256"),
    ("WC_Bond_Cu", "uint256"),
    ("WC_Transit_Cu", "uint256"),
    ("B_Yield_Ppb", "uint256"),
    ("B_Gradient_Ppq", "uint256"),
    ("bondYieldAccellerationScheduled", "bool"),
    ("bondYieldAccelerationThreshold", "uint256"),
]

POOL_ABI = [_view(name, outputs=[("", type_)]) for name, type_ in POOL_STATUS_FUNCTIONS] + [
    _event("LogPool",
           [("subject", "bytes32"), ("day", "uint256"), ("value", "uint256")],
           [("timestamp", "uint256")]),
]

TIMER_ABI = [
    _view("lastPingExec_10_S", outputs=[("", "uint256")]),
    _view("getBlockchainEPOCHTime", outputs=[("", "uint256")]),
    _view("TIMER_INCEPTION_DATE", outputs=[("", "uint256")]),
    _view("timeIntervalHasEntries", inputs=[("", "uint256")], outputs=[("", "bool")]),
    _view("getTimerNotificationCount", inputs=[("", "uint256")], outputs=[("", "uint256")]),
    _view("notification", inputs=[("", "uint256"), ("", "uint256")], outputs=[
        ("notificationAddress", "address"),
        ("subject", "uint256"),
        ("message", "bytes32"),
    ]),
    _transaction("ping"),
]

TRUST_ABI = [
    _event("LogTrust",
           [("subject", "bytes32"), ("adr", "address"), ("info", "bytes32")],
           [("timestamp", "uint256")]),
]

INLINE_ABIS = {
    "IntAccessI": INTACCESSI_ABI,
    "Bond": BOND_ABI,
    "Policy": POLICY_ABI,
    "Settlement": SETTLEMENT_ABI,
    "Adjustor": ADJUSTOR_ABI,
    "Bank": BANK_ABI,
    "Pool": POOL_ABI,
    "Timer": TIMER_ABI,
    "Trust": TRUST_ABI,
}


# ============================================================================
# LOADING
# ============================================================================

@dataclass(frozen=True)
class ContractAbi:
    """Name, ABI and (unlinked) bytecode of one ecosystem contract."""
    contract_name: str
    abi: tuple
    bytecode: str = ""


def parse_contract_json_file(json_file_path: str) -> ContractAbi:
    """Parse a compiled contract JSON artifact."""
    with open(json_file_path, "r", encoding="utf-8") as fh:
        data = json.load(fh)
    return ContractAbi(
        contract_name=data.get("contractName", os.path.splitext(os.path.basename(json_file_path))[0]),
        abi=tuple(data["abi"]),
        bytecode=data.get("bytecode", ""),
    )


@lru_cache(maxsize=32)
def get_contract_abi(contract_name: str) -> ContractAbi:
    """
    Resolve a contract ABI by name.

    A matching `<contract_name>.json` in CONTRACT_ABI_DIR takes precedence over
    the inline definition.
    """
    abi_dir = get_settings().contract_abi_dir
    if abi_dir:
        path = os.path.join(abi_dir, f"{contract_name}.json")
        if os.path.exists(path):
            logger.info(f"Loaded ABI for {contract_name} from {path}")
            return parse_contract_json_file(path)

    if contract_name not in INLINE_ABIS:
        raise KeyError(f"No ABI known for contract {contract_name}")
    return ContractAbi(contract_name=contract_name, abi=tuple(INLINE_ABIS[contract_name]))


def event_signature(abi: List[Dict], event_name: str) -> str:
    """Canonical `Name(type,...)` signature of an event declared in the ABI."""
    for entry in abi:
        if entry.get("type") == "event" and entry.get("name") == event_name:
            types = ",".join(i["type"] for i in entry.get("inputs", []))
            return f"{event_name}({types})"
    raise KeyError(f"Event {event_name} not declared in ABI")


@lru_cache(maxsize=64)
def event_topic(contract_name: str, event_name: str) -> str:
    """keccak256 topic0 of a contract event, 0x-prefixed lower case."""
    signature = event_signature(list(get_contract_abi(contract_name).abi), event_name)
    return Web3.to_hex(Web3.keccak(text=signature))
