"""
Hex codec helpers for ledger words, topics and sentinel values.

All helpers take and return 0x-prefixed lower case hex strings. A 32-byte word
that is entirely zero is the ledger's "not set" marker and is rendered back to
callers in the compact "0x0" form.
"""

import logging
from typing import Optional, Union

from eth_utils import add_0x_prefix, decode_hex, is_hex, remove_0x_prefix

from ...config.ledger_config import (
    EMPTY_ADDRESS,
    EMPTY_HASH,
    EMPTY_KEY,
    WORD_SIZE_BYTES,
    WORD_SIZE_HEX,
    ZERO_SENTINEL,
)
from ...errors import DecodeError

logger = logging.getLogger(__name__)

# A topic starting with this many zero bytes is read as a packed number
NUMERIC_PREFIX = "0x000000"

_CANONICAL_EMPTY = {
    'hash': EMPTY_HASH,
    'key': EMPTY_KEY,
    'address': EMPTY_ADDRESS,
}


# ============================================================================
# SENTINELS
# ============================================================================

def is_empty_sentinel(value: Union[str, bytes, None], kind: str = 'hash') -> bool:
    """
    True if `value` means "not supplied" for the given kind (hash, key, address).

    Accepts None, "", "0", "0x0" and the canonical zero pattern of the kind
    with or without its 0x prefix.
    """
    if kind not in _CANONICAL_EMPTY:
        raise ValueError(f"Unknown sentinel kind: {kind}")
    if value is None:
        return True
    if isinstance(value, (bytes, bytearray)):
        return not any(value)

    value = value.strip().lower()
    canonical = _CANONICAL_EMPTY[kind]
    return value in ("", "0", ZERO_SENTINEL, canonical, remove_0x_prefix(canonical))


def is_empty_hash(value: Union[str, bytes, None]) -> bool:
    return is_empty_sentinel(value, 'hash')


def is_empty_address(value: Union[str, bytes, None]) -> bool:
    return is_empty_sentinel(value, 'address')


def is_empty_key(value: Union[str, bytes, None]) -> bool:
    return is_empty_sentinel(value, 'key')


# ============================================================================
# BYTES <-> HEX
# ============================================================================

def bytes_to_hex(raw: Optional[bytes]) -> str:
    """
    Render bytes as 0x-prefixed lower case hex.

    An all-zero sequence becomes the "0x0" sentinel, so this is lossy for
    zero values: hex_to_bytes("0x0") yields a zero word, not the original
    length.
    """
    if raw is None:
        return ""
    raw = bytes(raw)
    if raw and not any(raw):
        return ZERO_SENTINEL
    return "0x" + raw.hex()


def hex_to_bytes(value: str) -> bytes:
    """Parse a hex string, raising DecodeError on odd length or bad characters."""
    if value is None:
        raise DecodeError("Hex value is missing")
    value = value.strip()
    if value.lower() in ("0", ZERO_SENTINEL):
        return b"\x00" * WORD_SIZE_BYTES

    body = remove_0x_prefix(value)
    if len(body) % 2 != 0:
        raise DecodeError(f"Hex value has odd length: {value}")
    if not is_hex(add_0x_prefix(body)) and body != "":
        raise DecodeError(f"Hex value contains invalid characters: {value}")
    return decode_hex(body) if body else b""


def normalize_word(word: str) -> str:
    """Lower case, 0x-prefixed, validated 32-byte word."""
    if word is None:
        raise DecodeError("Word is missing")
    word = add_0x_prefix(word.strip().lower())
    if len(word) != WORD_SIZE_HEX + 2:
        raise DecodeError(f"Expected a 32-byte word, got {len(word) - 2} hex digits: {word}")
    hex_to_bytes(word)
    return word


def word_to_int(word: str) -> int:
    return int(normalize_word(word), 16)


# ============================================================================
# ENCODING (FILTER VALUES)
# ============================================================================

def pad_to_32_byte_word(hex_string: str) -> str:
    """Right-pad a hex value with zero bytes to exactly 32 bytes."""
    raw = hex_to_bytes(hex_string)
    if len(raw) > WORD_SIZE_BYTES:
        raise DecodeError(f"Value exceeds 32 bytes: {hex_string}")
    return "0x" + raw.ljust(WORD_SIZE_BYTES, b"\x00").hex()


def uint_to_word(value: int) -> str:
    """Big-endian 32-byte word holding an unsigned integer."""
    if value < 0 or value >= 2 ** 256:
        raise DecodeError(f"Value does not fit an unsigned 256-bit word: {value}")
    return "0x" + format(value, f"0{WORD_SIZE_HEX}x")


def text_to_word(text: str) -> str:
    """ASCII text right-padded into a 32-byte word (subject/info tags)."""
    try:
        raw = text.encode("ascii")
    except UnicodeEncodeError:
        raise DecodeError(f"Tag must be ASCII: {text!r}")
    if len(raw) > WORD_SIZE_BYTES:
        raise DecodeError(f"Tag exceeds 32 bytes: {text!r}")
    return "0x" + raw.ljust(WORD_SIZE_BYTES, b"\x00").hex()


def pad_address_to_topic(address: str) -> str:
    """Left-pad a 20-byte address into a 32-byte topic."""
    raw = hex_to_bytes(address)
    if len(raw) != 20:
        raise DecodeError(f"Address must be 20 bytes: {address}")
    return "0x" + raw.rjust(WORD_SIZE_BYTES, b"\x00").hex()


def encode_numeric_or_hash(value: str) -> str:
    """
    Encode a caller filter value that may be a number, a hex tag or text.

    Hex-prefixed values are padded as-is, decimal values are packed as an
    unsigned integer word, anything else is taken as an ASCII tag.
    """
    value = value.strip()
    if value.lower().startswith("0x"):
        return pad_to_32_byte_word(value)
    if value.isdigit():
        return uint_to_word(int(value))
    return text_to_word(value)


# ============================================================================
# DECODING (LOG WORDS)
# ============================================================================

def extract_address_from_padded_topic(word: str) -> str:
    """Low-order 20 bytes (last 40 hex characters) of a padded topic."""
    word = normalize_word(word)
    return "0x" + word[-40:]


def decode_ascii_if_possible(word: str) -> str:
    """
    Strip trailing zero bytes and decode the rest as ASCII.

    Returns the word unchanged if the remainder is not ASCII.
    """
    raw = hex_to_bytes(word).rstrip(b"\x00")
    try:
        return raw.decode("ascii")
    except UnicodeDecodeError:
        logger.debug(f"Word {word} is not ASCII, returning hex")
        return add_0x_prefix(word.lower())


def decode_numeric_or_hash(word: str) -> str:
    """Zero-prefixed words render as a decimal string, others as hex."""
    word = normalize_word(word)
    if word.startswith(NUMERIC_PREFIX):
        return str(int(word, 16))
    return word


def decode_info_word(word: str) -> str:
    """
    Decode a free-text "info" topic.

    1. zero word -> ""
    2. zero-prefixed word -> decimal string of the packed number
    3. anything else -> opaque hex tag

    A hash that happens to start with three zero bytes is read as a number;
    consumers rely on this behaviour.
    """
    word = normalize_word(word)
    if is_empty_hash(word):
        return ""
    return decode_numeric_or_hash(word)
