"""
Ledger Client Module

The only place that talks to a Web3 node. Everything above it (list reader,
entity assembler, pool service) depends on the LedgerClient interface, so
tests substitute an in-memory fake.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from eth_utils import to_checksum_address
from web3 import Web3
from web3.exceptions import ContractLogicError, TransactionNotFound, Web3RPCError

from ..config.contract_abis import get_contract_abi
from ..config.ledger_config import get_settings
from ..errors import TransactionRejectedError
from .decoders.base import RawLog
from .decoders.log_filter import LogFilter

logger = logging.getLogger(__name__)


def _hex(value: Any) -> str:
    """0x-prefixed lower case hex of a HexBytes/bytes/int/str value"""
    return Web3.to_hex(value).lower()


def normalize_log(log: Dict[str, Any]) -> RawLog:
    """Convert a web3 log AttributeDict into a RawLog."""
    return RawLog(
        block_number_hex=_hex(log['blockNumber']),
        topics=tuple(_hex(t) for t in log['topics']),
        data=_hex(log['data']),
        address=(log.get('address') or "").lower(),
        transaction_hash=_hex(log['transactionHash']) if log.get('transactionHash') is not None else "",
        log_index=log.get('logIndex') or 0,
    )


class LedgerClient:
    """
    Interface of the external ledger.

    call()                     - read-only contract call
    get_logs()                 - raw logs for a filter, ascending by block
    get_current_block_height()
    submit_transaction()       - sign, send, return the transaction hash
    get_transaction_receipt()  - receipt dict, or None while unknown/unmined
    """

    def call(self, contract_name: str, address: str, function_name: str, *args) -> Any:
        raise NotImplementedError

    def get_logs(self, log_filter: LogFilter) -> List[RawLog]:
        raise NotImplementedError

    def get_current_block_height(self) -> int:
        raise NotImplementedError

    def submit_transaction(self, contract_name: str, address: str, function_name: str,
                           args: Sequence[Any], private_key: str) -> str:
        raise NotImplementedError

    def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError


class Web3LedgerClient(LedgerClient):
    """LedgerClient backed by web3.py over HTTP."""

    def __init__(self, url: Optional[str] = None, w3: Optional[Web3] = None,
                 gas_price: Optional[int] = None, gas_limit: Optional[int] = None):
        settings = get_settings()
        self.url = url or settings.web3_url_endpoint
        self.w3 = w3 or Web3(Web3.HTTPProvider(self.url))
        self.gas_price = gas_price or settings.default_gas_price
        self.gas_limit = gas_limit or settings.default_gas_limit
        logger.info(f"Ledger client using Web3 provider {self.url}")

    def is_connected(self) -> bool:
        return self.w3.is_connected()

    def _contract(self, contract_name: str, address: str):
        abi = get_contract_abi(contract_name).abi
        return self.w3.eth.contract(address=to_checksum_address(address), abi=list(abi))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def call(self, contract_name: str, address: str, function_name: str, *args) -> Any:
        contract = self._contract(contract_name, address)
        result = contract.functions[function_name](*args).call()
        logger.debug(f"{contract_name}.{function_name}{args} @ {address} -> {result!r}")
        return result

    def get_logs(self, log_filter: LogFilter) -> List[RawLog]:
        params = log_filter.to_params()
        params['address'] = to_checksum_address(params['address'])
        logs = self.w3.eth.get_logs(params)
        logger.debug(f"get_logs {params} returned {len(logs)} logs")
        return [normalize_log(log) for log in logs]

    def get_current_block_height(self) -> int:
        return self.w3.eth.block_number

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def submit_transaction(self, contract_name: str, address: str, function_name: str,
                           args: Sequence[Any], private_key: str) -> str:
        """
        Sign a contract transaction offline and send it.

        The nonce is the sender's current transaction count; gas price and
        limit come from settings. Node rejections raise TransactionRejectedError.
        """
        account = self.w3.eth.account.from_key(private_key)
        contract = self._contract(contract_name, address)
        try:
            tx = contract.functions[function_name](*args).build_transaction({
                'from': account.address,
                'nonce': self.w3.eth.get_transaction_count(account.address),
                'gas': self.gas_limit,
                'gasPrice': self.gas_price,
            })
            signed = account.sign_transaction(tx)
            tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        except (ContractLogicError, Web3RPCError, ValueError) as e:
            logger.warning(f"{contract_name}.{function_name} rejected: {e}")
            raise TransactionRejectedError(str(e))

        tx_hash_hex = _hex(tx_hash)
        logger.info(f"Submitted {contract_name}.{function_name} from {account.address}: {tx_hash_hex}")
        return tx_hash_hex

    def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        try:
            receipt = self.w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None
        if receipt is None:
            return None
        return {
            'transaction_hash': _hex(receipt['transactionHash']),
            'transaction_index': receipt.get('transactionIndex'),
            'block_hash': _hex(receipt['blockHash']) if receipt.get('blockHash') is not None else "",
            'block_number': receipt['blockNumber'],
            'gas_used': receipt.get('gasUsed'),
            'cumulative_gas_used': receipt.get('cumulativeGasUsed'),
            'status': receipt.get('status'),
            'contract_address': receipt.get('contractAddress'),
            'logs': [normalize_log(log) for log in receipt.get('logs', [])],
        }
