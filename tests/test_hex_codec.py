"""
Unit tests for the hex codec.

Tests:
- Empty sentinel detection per kind
- bytes <-> hex, including the lossy all-zero normalization
- Address padding and extraction
- Info / numeric-or-hash decoding heuristics
- Filter value encoding
"""
import pytest

from pool_api.errors import DecodeError
from pool_api.services.decoders.hex_codec import (
    bytes_to_hex,
    decode_ascii_if_possible,
    decode_info_word,
    decode_numeric_or_hash,
    encode_numeric_or_hash,
    extract_address_from_padded_topic,
    hex_to_bytes,
    is_empty_address,
    is_empty_hash,
    is_empty_key,
    is_empty_sentinel,
    normalize_word,
    pad_address_to_topic,
    pad_to_32_byte_word,
    text_to_word,
    uint_to_word,
)

ZERO_WORD = "0x" + "0" * 64


class TestEmptySentinel:
    """Test "not supplied" detection."""

    @pytest.mark.parametrize("value", [None, "", "  ", "0", "0x0", ZERO_WORD, "0" * 64, ZERO_WORD.upper()])
    def test_empty_hash_variants(self, value):
        assert is_empty_hash(value)
        assert is_empty_key(value)

    def test_empty_address_variants(self):
        assert is_empty_address("0x" + "0" * 40)
        assert is_empty_address(None)
        assert is_empty_address("0x0")
        # A zero hash is not the canonical zero address
        assert not is_empty_address(ZERO_WORD)

    def test_zero_bytes_are_empty(self):
        assert is_empty_sentinel(b"\x00" * 32)
        assert not is_empty_sentinel(b"\x00\x01")

    def test_non_empty_values(self):
        assert not is_empty_hash("0x" + "ab" * 32)
        assert not is_empty_hash("0x1")
        assert not is_empty_address("0x" + "12" * 20)

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValueError):
            is_empty_sentinel("0x0", "account")


class TestBytesHex:
    """Test bytes <-> hex conversion."""

    @pytest.mark.parametrize("raw", [b"\x01", b"\x00\x01", b"\xde\xad\xbe\xef", bytes(range(1, 33)), b"\x00" * 31 + b"\x05"])
    def test_round_trip(self, raw):
        assert hex_to_bytes(bytes_to_hex(raw)) == raw

    def test_all_zero_is_compacted(self):
        """All-zero input renders as "0x0" and comes back as a full zero word, not its original length."""
        assert bytes_to_hex(b"\x00" * 4) == "0x0"
        assert bytes_to_hex(b"\x00" * 32) == "0x0"
        assert hex_to_bytes("0x0") == b"\x00" * 32
        assert hex_to_bytes(bytes_to_hex(b"\x00" * 4)) != b"\x00" * 4

    def test_none_and_empty(self):
        assert bytes_to_hex(None) == ""
        assert bytes_to_hex(b"") == "0x"
        assert hex_to_bytes("0x") == b""

    def test_output_is_lower_case(self):
        assert bytes_to_hex(b"\xAB\xCD") == "0xabcd"
        assert hex_to_bytes("0xABCD") == b"\xab\xcd"

    def test_odd_length_rejected(self):
        with pytest.raises(DecodeError):
            hex_to_bytes("0xabc")

    def test_invalid_characters_rejected(self):
        with pytest.raises(DecodeError):
            hex_to_bytes("0xzz")

    def test_missing_value_rejected(self):
        with pytest.raises(DecodeError):
            hex_to_bytes(None)

    def test_normalize_word_requires_32_bytes(self):
        assert normalize_word(("AB" * 32)) == "0x" + "ab" * 32
        with pytest.raises(DecodeError):
            normalize_word("0xabcd")


class TestAddressTopics:
    """Test address padding into topics and extraction back."""

    @pytest.mark.parametrize("address", [
        "0x" + "12" * 20,
        "0x00000000000000000000000000000000000000ff",
        "0xde0b295669a9fd93d5f28d9ec85e40f4cb697bae",
    ])
    def test_round_trip(self, address):
        topic = pad_address_to_topic(address)
        assert len(topic) == 66
        assert topic.startswith("0x" + "0" * 24)
        assert extract_address_from_padded_topic(topic) == address

    def test_checksum_input_is_lowered(self):
        address = "0xDe0B295669a9FD93d5F28D9Ec85E40f4cb697BAe"
        assert extract_address_from_padded_topic(pad_address_to_topic(address)) == address.lower()

    def test_wrong_length_rejected(self):
        with pytest.raises(DecodeError):
            pad_address_to_topic("0x1234")


class TestWordEncoding:
    """Test encoding of filter values into 32-byte words."""

    def test_pad_right(self):
        assert pad_to_32_byte_word("0xabcd") == "0xabcd" + "0" * 60

    def test_pad_full_word_unchanged(self):
        word = "0x" + "ab" * 32
        assert pad_to_32_byte_word(word) == word

    def test_pad_too_long_rejected(self):
        with pytest.raises(DecodeError):
            pad_to_32_byte_word("0x" + "ab" * 33)

    def test_uint_word(self):
        assert uint_to_word(5) == "0x" + "0" * 63 + "5"
        with pytest.raises(DecodeError):
            uint_to_word(-1)

    def test_text_word(self):
        assert text_to_word("Ab") == "0x4162" + "0" * 60
        with pytest.raises(DecodeError):
            text_to_word("x" * 33)
        with pytest.raises(DecodeError):
            text_to_word("café")

    def test_numeric_or_hash_encoding(self):
        assert encode_numeric_or_hash("5") == uint_to_word(5)
        assert encode_numeric_or_hash("0xab") == "0xab" + "0" * 62
        assert encode_numeric_or_hash("Premium") == text_to_word("Premium")


class TestWordDecoding:
    """Test the info and numeric-or-hash heuristics."""

    def test_info_zero_word_is_empty(self):
        assert decode_info_word(ZERO_WORD) == ""

    def test_info_small_number(self):
        assert decode_info_word("0x" + "0" * 63 + "5") == "5"

    def test_info_opaque_hash(self):
        word = "0xdeadbeef" + "ab" * 28
        assert decode_info_word(word) == word

    def test_info_hash_with_leading_zero_bytes_reads_as_number(self):
        """Known ambiguity: a hash that starts with three zero bytes is rendered as a decimal."""
        word = "0x000000" + "ff" * 29
        assert decode_info_word(word) == str(int(word, 16))

    def test_numeric_or_hash(self):
        assert decode_numeric_or_hash(uint_to_word(1234)) == "1234"
        assert decode_numeric_or_hash("0x" + "ab" * 32) == "0x" + "ab" * 32

    def test_ascii_decoding(self):
        assert decode_ascii_if_possible(text_to_word("Premium")) == "Premium"
        assert decode_ascii_if_possible(ZERO_WORD) == ""

    def test_non_ascii_returns_hex(self):
        word = "0xff" + "00" * 31
        assert decode_ascii_if_possible(word) == word
