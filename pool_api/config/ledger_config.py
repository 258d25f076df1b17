"""
Ledger Configuration Module

Contains the constants and process-wide settings used when talking to the
insurance pool ecosystem contracts through a Web3 node.

Settings are read once from the environment (a local .env file is honoured)
and frozen; nothing in this module is mutated after start-up.
"""

import os
from dataclasses import dataclass, asdict
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

# Web3 endpoint used when nothing is configured
DEFAULT_WEB3_URL_ENDPOINT = "http://localhost:8545/"

# Sentinel values the contracts use for "not set"
EMPTY_HASH = "0x0000000000000000000000000000000000000000000000000000000000000000"
EMPTY_KEY = "0x0000000000000000000000000000000000000000000000000000000000000000"
EMPTY_ADDRESS = "0x0000000000000000000000000000000000000000"

# Compact form of a zero word as rendered back to callers
ZERO_SENTINEL = "0x0"

# Width of one ABI word
WORD_SIZE_BYTES = 32
WORD_SIZE_HEX = 64

# Request parameter formats (lower case hex only)
ADDRESS_PATTERN = r"^0x[0-9a-f]{40}$"
HASH_PATTERN = r"^0x[0-9a-f]{64}$"
PRIVATE_KEY_PATTERN = r"^(0x)?[0-9a-f]{64}$"

# Timer contract constants
TIMER_MAX_NOTIFICATION_WINDOW_SEC = 3600 * 24
TIMER_SLOT_SEC = 10
TIMER_BUCKET_SLOTS = 10

# Error titles and messages
INVALID_CONTRACT_ADDRESS_ERROR = "Invalid Contract Address"
INVALID_CONTRACT_ADDRESS_ERROR_MESSAGE = (
    "The address provided does not appear to be a valid address of any "
    "contract belonging to this ecosystem."
)
TRANSACTION_PROCESSING_ERROR = "Parameters Not Acceptable"
TRANSACTION_PROCESSING_ERROR_MESSAGE = (
    "The transaction parameters provided were rejected by the Blockchain contract."
)
RECEIPT_NOT_FOUND_ERROR = "Receipt Not Found"
RECEIPT_NOT_FOUND_ERROR_MESSAGE = (
    "Specified transaction hash could not be found or the specified "
    "transaction has not been mined yet"
)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got {raw!r}")


@dataclass(frozen=True)
class LedgerSettings:
    """Immutable snapshot of the process configuration."""
    web3_url_endpoint: str = DEFAULT_WEB3_URL_ENDPOINT
    default_page_size: int = 20
    default_lookback_blocks: int = 50000
    max_wait_for_receipt_sec: int = 30
    default_gas_price: int = 20_000_000_000
    default_gas_limit: int = 4_712_388
    auto_schedule_ping_sec: int = 0
    contract_abi_dir: Optional[str] = None

    @classmethod
    def from_env(cls) -> "LedgerSettings":
        """Build settings from environment variables, falling back to defaults."""
        return cls(
            web3_url_endpoint=os.getenv("WEB3_URL_ENDPOINT") or DEFAULT_WEB3_URL_ENDPOINT,
            default_page_size=_env_int("DEFAULT_NUMBER_ENTRIES_FOR_LAZY_LOADING", 20),
            default_lookback_blocks=_env_int("DEFAULT_BLOCK_RANGE_FOR_EVENT_LOG_LOADING", 50000),
            max_wait_for_receipt_sec=_env_int("MAX_WAIT_DURATION_FOR_TRANSACTION_RECEIPT", 30),
            default_gas_price=_env_int("DEFAULT_GAS_PRICE", 20_000_000_000),
            default_gas_limit=_env_int("DEFAULT_GAS_LIMIT", 4_712_388),
            auto_schedule_ping_sec=_env_int("AUTO_SCHEDULE_PING_DURATION", 0),
            contract_abi_dir=os.getenv("CONTRACT_ABI_DIR") or None,
        )

    def to_dict(self) -> dict:
        return asdict(self)


@lru_cache(maxsize=1)
def get_settings() -> LedgerSettings:
    """Process-wide settings, loaded on first use."""
    return LedgerSettings.from_env()
