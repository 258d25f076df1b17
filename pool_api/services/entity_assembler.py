"""
Entity Assembler Module

Combines the two read paths of a hash-keyed entity:
- its current detail snapshot (dataStorage)
- its event log history (LogBond / LogPolicy / ...)

Also reconstructs "entities owned by X" from the log stream, since the
contracts keep no owner index.
"""

import logging
from typing import List, Optional

import pandas as pd

from .decoders.base import Entity, EventLog
from .decoders.hex_codec import is_empty_hash
from .decoders.log_decoder import LogDecoder
from .decoders.log_filter import LogFilterBuilder
from .list_reader import EntityDetail, EntityStore

logger = logging.getLogger(__name__)


def latest_per_hash(event_logs: List[EventLog]) -> List[EventLog]:
    """
    First occurrence per primary hash, ordered by timestamp descending.

    Input is expected newest first, so the first occurrence is the most
    recent log. The sort is stable and does not rely on that order.
    """
    if not event_logs:
        return []
    frame = pd.DataFrame({
        'position': range(len(event_logs)),
        'hash': [log.primary_hash for log in event_logs],
        'timestamp': [log.timestamp for log in event_logs],
    })
    frame = frame.drop_duplicates(subset='hash', keep='first')
    frame = frame.sort_values('timestamp', ascending=False, kind='mergesort')
    return [event_logs[position] for position in frame['position']]


class EntityAssembler:
    """Builds detail-with-history and owner-indexed views."""

    def __init__(self, ledger_client, decoder: LogDecoder, filter_builder: LogFilterBuilder):
        self.ledger_client = ledger_client
        self.decoder = decoder
        self.filter_builder = filter_builder

    def search_logs(
        self,
        entity: Entity,
        address: str,
        topic1: Optional[str] = None,
        topic2: Optional[str] = None,
        topic3: Optional[str] = None,
        from_block: Optional[int] = None,
        to_block: Optional[int] = None,
        narrowed: Optional[bool] = None,
    ) -> List[EventLog]:
        """Query and decode one entity's logs, newest first. Matchers are pre-encoded words."""
        layout = self.decoder.layout(entity)
        log_filter = self.filter_builder.build(
            address, layout.signature_topic, topic1, topic2, topic3,
            from_block=from_block, to_block=to_block, narrowed=narrowed,
        )
        raw_logs = self.ledger_client.get_logs(log_filter)
        return self.decoder.decode_all(entity, raw_logs, newest_first=True)

    def history(self, entity: Entity, address: str, entity_hash: str) -> List[EventLog]:
        """All logs of one entity hash, oldest first."""
        event_logs = self.search_logs(entity, address, topic1=LogFilterBuilder.hash_matcher(entity_hash))
        event_logs.reverse()
        return event_logs

    def detail_with_history(self, store: EntityStore, entity_hash: Optional[str] = None,
                            idx: Optional[int] = None) -> EntityDetail:
        """
        Detail snapshot plus its ascending event history.

        Without a hash the index is resolved through the list first. An empty
        hash yields the zero snapshot with an empty history.
        """
        if is_empty_hash(entity_hash):
            entity_hash = store.hash_at(idx or 0)
            logger.debug(f"{store.entity.value} idx {idx} resolved to {entity_hash}")

        detail = store.detail(entity_hash)
        if is_empty_hash(detail.hash):
            detail.event_logs = []
        else:
            detail.event_logs = self.history(store.entity, store.address, detail.hash)
        return detail

    def owner_listing(self, store: EntityStore, owner: str) -> List[EntityDetail]:
        """Current details of the distinct entities that appear in logs for `owner`."""
        event_logs = self.search_logs(store.entity, store.address, topic2=LogFilterBuilder.address_matcher(owner))
        latest = latest_per_hash(event_logs)
        logger.debug(f"Owner {owner}: {len(event_logs)} logs, {len(latest)} distinct {store.entity.value} hashes")
        return [store.detail(log.primary_hash) for log in latest]
