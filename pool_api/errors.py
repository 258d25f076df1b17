"""
Error taxonomy for the pool ledger API.

Every error carries an ErrorKind so callers can tell bad client input apart
from "not there yet, retry later" and from decoder/ledger drift.
"""

from enum import Enum
from typing import Optional

from .config.ledger_config import (
    INVALID_CONTRACT_ADDRESS_ERROR,
    INVALID_CONTRACT_ADDRESS_ERROR_MESSAGE,
    TRANSACTION_PROCESSING_ERROR,
    TRANSACTION_PROCESSING_ERROR_MESSAGE,
    RECEIPT_NOT_FOUND_ERROR,
    RECEIPT_NOT_FOUND_ERROR_MESSAGE,
)


class ErrorKind(Enum):
    """How a caller should react to an error"""
    CLIENT_INPUT = "client_input"   # Fix the request
    NOT_FOUND = "not_found"         # Retry / poll later
    INTEGRITY = "integrity"         # Ledger and decoder have drifted
    REJECTED = "rejected"           # Ledger refused a transaction


class LedgerApiError(Exception):
    """Base class for all errors raised by this package."""

    kind: ErrorKind = ErrorKind.INTEGRITY
    status_code: int = 500
    title: str = "Ledger API Error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.title
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            'error': self.title,
            'message': self.message,
            'kind': self.kind.value,
            'status_code': self.status_code,
        }


class InvalidContractAddressError(LedgerApiError):
    """Supplied address does not resolve to an ecosystem."""
    kind = ErrorKind.CLIENT_INPUT
    status_code = 406
    title = INVALID_CONTRACT_ADDRESS_ERROR

    def __init__(self, contract_adr: str = ""):
        self.contract_adr = contract_adr
        super().__init__(INVALID_CONTRACT_ADDRESS_ERROR_MESSAGE)


class DecodeError(LedgerApiError):
    """Malformed hex, address or hash input."""
    kind = ErrorKind.CLIENT_INPUT
    status_code = 400
    title = "Invalid Hex Value"


class ValidationError(LedgerApiError):
    """Request parameters that are well-formed but not acceptable."""
    kind = ErrorKind.CLIENT_INPUT
    status_code = 406
    title = TRANSACTION_PROCESSING_ERROR

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or TRANSACTION_PROCESSING_ERROR_MESSAGE)


class MalformedLogError(LedgerApiError):
    """A fetched log does not match the event layout of its entity."""
    kind = ErrorKind.INTEGRITY
    status_code = 500
    title = "Malformed Event Log"


class TransactionRejectedError(LedgerApiError):
    """The node refused a signed transaction."""
    kind = ErrorKind.REJECTED
    status_code = 406
    title = TRANSACTION_PROCESSING_ERROR

    def __init__(self, detail: str = ""):
        message = TRANSACTION_PROCESSING_ERROR_MESSAGE
        if detail:
            message = f"{message}   ---   {detail}"
        super().__init__(message)


class ReceiptNotFoundError(LedgerApiError):
    """Transaction unknown or not mined yet."""
    kind = ErrorKind.NOT_FOUND
    status_code = 404
    title = RECEIPT_NOT_FOUND_ERROR

    def __init__(self, tx_hash: str = ""):
        self.tx_hash = tx_hash
        super().__init__(RECEIPT_NOT_FOUND_ERROR_MESSAGE)
