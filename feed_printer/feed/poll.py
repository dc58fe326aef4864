"""
Polling loop: external feed -> at-most-once printed receipts.

Each iteration fetches the most recently updated items, skips ids already in
the SeenCache, resolves the author for new ones, prints them, and persists the
cache after every single insertion. An item whose author cannot be resolved is
not marked seen and is reconsidered on the next iteration (unless a give-up
threshold is configured). A failed print is logged and the item is still
cached, so nothing is ever printed twice.
"""

from __future__ import annotations

import enum
import logging
import time
from collections import Counter
from typing import Callable, List, Optional

from feed_printer.core.config import PollSettings, PrinterSettings
from feed_printer.core.errors import MetadataLookupError, SourceQueryError, TransportError
from feed_printer.core.logging import item_context
from feed_printer.feed.cache import SeenCache
from feed_printer.feed.models import CachedItem, FeedRecord
from feed_printer.feed.source import ContentSource
from feed_printer.printing.compose import DEFAULT_MIN_DOTS, DOTS_PER_LINE, compose_feed_item
from feed_printer.printing.connection import PrinterConnection

logger = logging.getLogger(__name__)


class PollState(enum.Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    RECONCILING = "reconciling"
    PERSISTING = "persisting"


class FeedPoller:
    def __init__(
        self,
        source: ContentSource,
        cache: SeenCache,
        connection: PrinterConnection,
        *,
        limit: int = 20,
        interval_seconds: float = 10,
        min_dots: int = DEFAULT_MIN_DOTS,
        dots_per_line: int = DOTS_PER_LINE,
        lookup_give_up_after: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.source = source
        self.cache = cache
        self.connection = connection
        self.limit = limit
        self.interval_seconds = interval_seconds
        self.min_dots = min_dots
        self.dots_per_line = dots_per_line
        self.lookup_give_up_after = lookup_give_up_after
        self._sleep = sleep
        self._lookup_failures: Counter[str] = Counter()
        self.state = PollState.IDLE

    @classmethod
    def from_settings(
        cls,
        poll: PollSettings,
        printer: PrinterSettings,
        source: ContentSource,
        connection: PrinterConnection,
    ) -> "FeedPoller":
        return cls(
            source,
            SeenCache.open(poll.cache_path),
            connection,
            limit=poll.poll_limit,
            interval_seconds=poll.poll_interval_seconds,
            min_dots=printer.min_feed_dots,
            dots_per_line=printer.dots_per_line,
            lookup_give_up_after=poll.lookup_give_up_after,
        )

    def poll_once(self) -> List[str]:
        """
        Run one iteration. Returns the ids newly cached (printed or given up on).
        """
        logger.info("Checking for new items...")
        self.state = PollState.FETCHING
        try:
            records = self.source.recent_items(self.limit)
        except SourceQueryError as e:
            logger.error(f"Content source query failed: {e}")
            self.state = PollState.IDLE
            return []

        if not records:
            logger.info("No items found.")

        handled: List[str] = []
        self.state = PollState.RECONCILING
        for record in records:
            if record.id in self.cache:
                continue
            with item_context(record.id):
                if self._handle_new(record):
                    handled.append(record.id)
            self.state = PollState.RECONCILING

        self.state = PollState.IDLE
        return handled

    def _handle_new(self, record: FeedRecord) -> bool:
        logger.info(f"New item {record.id} - not in cache yet.")
        try:
            author = self.source.lookup_author(record.author_ref)
        except MetadataLookupError as e:
            return self._lookup_failed(record, e)
        self._lookup_failures.pop(record.id, None)

        job = compose_feed_item(
            author.display_name,
            author.handle,
            record.created_at,
            record.body,
            min_dots=self.min_dots,
            dots_per_line=self.dots_per_line,
        )
        try:
            self.connection.print_job(job)
        except TransportError as e:
            logger.error(f"Error printing item: {e}")

        self._persist(CachedItem.from_record(record, author))
        return True

    def _lookup_failed(self, record: FeedRecord, error: MetadataLookupError) -> bool:
        self._lookup_failures[record.id] += 1
        failures = self._lookup_failures[record.id]
        logger.warning(f"Could not find author info for {record.author_ref} (attempt {failures}): {error}")
        if self.lookup_give_up_after is None or failures < self.lookup_give_up_after:
            return False
        logger.warning(f"Giving up on item {record.id} after {failures} failed author lookups")
        self._lookup_failures.pop(record.id, None)
        self._persist(CachedItem.unresolved(record))
        return True

    def _persist(self, item: CachedItem) -> None:
        self.state = PollState.PERSISTING
        self.cache.add(item)

    def run(self, iterations: Optional[int] = None) -> None:
        """
        Poll, then sleep for the interval, forever (or `iterations` times).
        """
        done = 0
        while True:
            self.poll_once()
            done += 1
            if iterations is not None and done >= iterations:
                return
            self._sleep(self.interval_seconds)


__all__ = ["FeedPoller", "PollState"]
