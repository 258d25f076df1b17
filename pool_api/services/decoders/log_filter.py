"""
Log Filter Builder - topic filters and block ranges for event log queries.

Topic 0 is always the event signature; topics 1-3 are exact-match words or
wildcards (None).

Block range defaults:
- no matcher and no explicit bound -> the latest DefaultLookbackBlocks blocks
- otherwise missing bounds widen to [genesis, latest], since a matcher
  already narrows the result set
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from .hex_codec import (
    encode_numeric_or_hash,
    is_empty_address,
    is_empty_hash,
    pad_address_to_topic,
    pad_to_32_byte_word,
    text_to_word,
    uint_to_word,
)

logger = logging.getLogger(__name__)

GENESIS_BLOCK = 0
LATEST_BLOCK = "latest"

BlockRef = Union[int, str]


@dataclass(frozen=True)
class BlockRange:
    from_block: BlockRef
    to_block: BlockRef

    def to_dict(self) -> dict:
        return {'from_block': self.from_block, 'to_block': self.to_block}


@dataclass(frozen=True)
class LogFilter:
    """Filter specification handed to the Ledger Client's get_logs"""
    address: str
    topics: Tuple[Optional[str], ...]
    block_range: BlockRange

    @property
    def event_signature(self) -> str:
        return self.topics[0]

    def to_params(self) -> dict:
        """eth_getLogs parameters (trailing wildcards dropped)"""
        topics = list(self.topics)
        while topics and topics[-1] is None:
            topics.pop()
        return {
            'address': self.address,
            'topics': topics,
            'fromBlock': self.block_range.from_block,
            'toBlock': self.block_range.to_block,
        }


class LogFilterBuilder:
    """Builds LogFilter instances against one Ledger Client."""

    def __init__(self, ledger_client, default_lookback_blocks: int):
        self.ledger_client = ledger_client
        self.default_lookback_blocks = default_lookback_blocks

    def resolve_block_range(
        self,
        from_block: Optional[int] = None,
        to_block: Optional[int] = None,
        use_default_window: bool = False,
    ) -> BlockRange:
        """
        Resolve explicit bounds (0 / None = unset) into a block range.

        Only when use_default_window is set and neither bound is supplied is
        the current height fetched to compute the lookback window.
        """
        resolved_from: BlockRef = from_block if from_block else GENESIS_BLOCK
        resolved_to: BlockRef = to_block if to_block else LATEST_BLOCK

        if use_default_window and not from_block and not to_block:
            current = self.ledger_client.get_current_block_height()
            resolved_from = max(0, current - self.default_lookback_blocks)
            logger.debug(f"No narrowing filter, scanning blocks {resolved_from}..latest")

        return BlockRange(resolved_from, resolved_to)

    def build(
        self,
        address: str,
        event_signature: str,
        topic1: Optional[str] = None,
        topic2: Optional[str] = None,
        topic3: Optional[str] = None,
        from_block: Optional[int] = None,
        to_block: Optional[int] = None,
        narrowed: Optional[bool] = None,
    ) -> LogFilter:
        """
        Build a filter for one event.

        `narrowed` defaults to "any topic matcher supplied"; callers pass it
        explicitly when a matcher is always present but does not narrow the
        search (e.g. the bank account type).
        """
        if narrowed is None:
            narrowed = any(t is not None for t in (topic1, topic2, topic3))
        block_range = self.resolve_block_range(from_block, to_block, use_default_window=not narrowed)
        return LogFilter(
            address=address,
            topics=(event_signature, topic1, topic2, topic3),
            block_range=block_range,
        )

    # ------------------------------------------------------------------
    # Matcher encoders: None for "not supplied" (wildcard)
    # ------------------------------------------------------------------

    @staticmethod
    def hash_matcher(value: Optional[str]) -> Optional[str]:
        return None if is_empty_hash(value) else pad_to_32_byte_word(value)

    @staticmethod
    def address_matcher(value: Optional[str]) -> Optional[str]:
        return None if is_empty_address(value) else pad_address_to_topic(value)

    @staticmethod
    def uint_matcher(value: Optional[int]) -> Optional[str]:
        return None if not value else uint_to_word(value)

    @staticmethod
    def bool_matcher(value: Optional[bool]) -> Optional[str]:
        return None if value is None else uint_to_word(1 if value else 0)

    @staticmethod
    def text_matcher(value: Optional[str]) -> Optional[str]:
        return None if not value else text_to_word(value)

    @staticmethod
    def numeric_or_hash_matcher(value: Optional[str]) -> Optional[str]:
        return None if not value or not value.strip() else encode_numeric_or_hash(value)
