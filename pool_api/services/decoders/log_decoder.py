"""
Log Decoder - turns raw ecosystem event logs into typed records.

A single data-driven decoder serves every entity: the layout table in
registry.py says where each field lives and how its word is read, so the word
offset arithmetic and the info heuristics exist exactly once.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from ...config.ledger_config import WORD_SIZE_HEX, ZERO_SENTINEL
from ...errors import DecodeError, MalformedLogError
from .base import Entity, EventLog, RawLog
from .hex_codec import (
    decode_ascii_if_possible,
    decode_info_word,
    decode_numeric_or_hash,
    extract_address_from_padded_topic,
    is_empty_hash,
    normalize_word,
)
from .registry import DecodePolicy, EVENT_LAYOUTS, EventLayout, FieldSpec, Source

logger = logging.getLogger(__name__)


def data_word(data_hex: str, word_index: int) -> str:
    """
    Word `word_index` of a data blob: substring(2 + index*64, 64), 0x-prefixed.
    """
    data_hex = (data_hex or "0x").lower()
    if not data_hex.startswith("0x"):
        data_hex = "0x" + data_hex
    start = 2 + word_index * WORD_SIZE_HEX
    end = start + WORD_SIZE_HEX
    if len(data_hex) < end:
        raise MalformedLogError(
            f"Log data holds {(len(data_hex) - 2) // WORD_SIZE_HEX} words, word {word_index} requested"
        )
    return "0x" + data_hex[start:end]


class LogDecoder:
    """
    Decodes RawLog entries with the per-entity layouts.

    Malformed logs raise MalformedLogError; they are never skipped.
    """

    def __init__(self, layouts: Optional[Dict[Entity, EventLayout]] = None):
        self.layouts = layouts or EVENT_LAYOUTS

    def layout(self, entity: Entity) -> EventLayout:
        return self.layouts[entity]

    def decode(self, entity: Entity, raw_log: RawLog) -> EventLog:
        """Decode one raw log of the given entity family."""
        layout = self.layout(entity)
        self._check_shape(layout, raw_log)

        try:
            block_number = int(raw_log.block_number_hex, 16)
        except (TypeError, ValueError):
            raise MalformedLogError(f"Invalid block number in {layout.event_name}: {raw_log.block_number_hex!r}")

        values: Dict[str, Any] = {}
        # Plain fields first; contextual ones may depend on them
        for spec in sorted(layout.fields, key=lambda f: f.is_contextual):
            values[spec.name] = self._decode_field(layout, spec, raw_log, values)

        return layout.record_type(block_number=block_number, **values)

    def decode_all(self, entity: Entity, raw_logs: Iterable[RawLog], newest_first: bool = True) -> List[EventLog]:
        """
        Decode logs returned in ascending block order.

        With newest_first (the default for list/search results) the order is
        reversed.
        """
        decoded = [self.decode(entity, raw_log) for raw_log in raw_logs]
        if newest_first:
            decoded.reverse()
        logger.debug(f"Decoded {len(decoded)} {entity.value} logs")
        return decoded

    # ------------------------------------------------------------------

    def _check_shape(self, layout: EventLayout, raw_log: RawLog) -> None:
        topics = raw_log.topics or ()
        if len(topics) < layout.topic_count:
            raise MalformedLogError(
                f"{layout.event_name} expects {layout.topic_count} topics, got {len(topics)}"
            )
        if topics[0].lower() != layout.signature_topic.lower():
            raise MalformedLogError(
                f"Log signature {topics[0]} does not match {layout.event_name}"
            )
        data_len = len(raw_log.data or "0x") - 2
        if data_len < layout.data_word_count * WORD_SIZE_HEX:
            raise MalformedLogError(
                f"{layout.event_name} expects {layout.data_word_count} data words, "
                f"got {max(data_len, 0) // WORD_SIZE_HEX}"
            )

    def _raw_word(self, spec: FieldSpec, raw_log: RawLog) -> str:
        if spec.source is Source.TOPIC:
            return raw_log.topics[spec.index]
        return data_word(raw_log.data, spec.index)

    def _decode_field(self, layout: EventLayout, spec: FieldSpec, raw_log: RawLog, decoded: Dict[str, Any]) -> Any:
        try:
            word = normalize_word(self._raw_word(spec, raw_log))
            return self._apply_policy(spec, word, decoded)
        except DecodeError as e:
            raise MalformedLogError(f"{layout.event_name}.{spec.name}: {e.message}")
        except ValueError as e:
            raise MalformedLogError(f"{layout.event_name}.{spec.name}: {e}")

    def _apply_policy(self, spec: FieldSpec, word: str, decoded: Dict[str, Any]) -> Any:
        policy = spec.policy

        if spec.ascii_when_empty and is_empty_hash(decoded.get(spec.ascii_when_empty)):
            return decode_ascii_if_possible(word)
        if spec.opaque_when:
            field_name, states = spec.opaque_when
            if decoded.get(field_name) in states:
                return word

        if policy is DecodePolicy.HASH:
            return word
        if policy is DecodePolicy.HASH_OR_EMPTY:
            return "" if is_empty_hash(word) else word
        if policy is DecodePolicy.ADDRESS:
            return extract_address_from_padded_topic(word)
        if policy is DecodePolicy.UINT:
            return int(word, 16)
        if policy is DecodePolicy.BOOL:
            return word.endswith("1")
        if policy is DecodePolicy.ENUM:
            return spec.enum(int(word, 16))
        if policy is DecodePolicy.ASCII:
            return decode_ascii_if_possible(word)
        if policy is DecodePolicy.ASCII_OR_SENTINEL:
            return ZERO_SENTINEL if is_empty_hash(word) else decode_ascii_if_possible(word)
        if policy is DecodePolicy.NUMERIC_OR_HASH:
            return decode_numeric_or_hash(word)
        if policy is DecodePolicy.INFO:
            return decode_info_word(word)
        raise ValueError(f"Unsupported decode policy {policy}")
