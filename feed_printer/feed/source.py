"""
Content source client.

ContentSource is the interface the poller depends on. PostgrestSource is the
concrete implementation that talks to a PostgREST endpoint (as exposed by
Supabase at <project>/rest/v1) using requests.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol

import requests
from pydantic import ValidationError

from feed_printer.core.config import PollSettings
from feed_printer.core.errors import MetadataLookupError, SourceQueryError
from feed_printer.feed.models import AuthorInfo, FeedRecord

logger = logging.getLogger(__name__)


class ContentSource(Protocol):
    def recent_items(self, limit: int) -> List[FeedRecord]:
        """Top `limit` items ordered by last update, newest first."""
        ...

    def lookup_author(self, author_ref: str) -> AuthorInfo:
        """Resolve author metadata or raise MetadataLookupError."""
        ...


class PostgrestSource:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        items_table: str = "tweets",
        authors_table: str = "account",
        timeout: float = 30,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.items_table = items_table
        self.authors_table = authors_table
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
            }
        )

    @classmethod
    def from_settings(cls, settings: PollSettings, session: Optional[requests.Session] = None) -> "PostgrestSource":
        return cls(
            settings.source_url,
            settings.source_key,
            items_table=settings.items_table,
            authors_table=settings.authors_table,
            timeout=settings.http_timeout_seconds,
            session=session,
        )

    def _url(self, table: str) -> str:
        return f"{self.base_url}/rest/v1/{table}"

    def _get(self, table: str, params: Dict[str, str]) -> Any:
        r = self.session.get(self._url(table), params=params, timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def recent_items(self, limit: int) -> List[FeedRecord]:
        params = {"select": "*", "order": "updated_at.desc", "limit": str(limit)}
        try:
            rows = self._get(self.items_table, params)
        except (requests.RequestException, ValueError) as e:
            raise SourceQueryError(f"Query of '{self.items_table}' failed: {e}") from e
        if not isinstance(rows, list):
            raise SourceQueryError(f"Unexpected response from '{self.items_table}': {type(rows).__name__}")

        records: List[FeedRecord] = []
        for row in rows:
            try:
                records.append(FeedRecord.model_validate(row))
            except ValidationError as e:
                logger.warning(f"Skipping malformed row from '{self.items_table}': {e}")
        return records

    def lookup_author(self, author_ref: str) -> AuthorInfo:
        params = {
            "select": "account_display_name,username",
            "account_id": f"eq.{author_ref}",
        }
        try:
            rows = self._get(self.authors_table, params)
        except (requests.RequestException, ValueError) as e:
            raise MetadataLookupError(f"Author lookup for {author_ref} failed: {e}") from e
        if not isinstance(rows, list) or len(rows) != 1:
            count = len(rows) if isinstance(rows, list) else "invalid"
            raise MetadataLookupError(f"Expected exactly one author row for {author_ref}, got {count}")
        try:
            return AuthorInfo.model_validate(rows[0])
        except ValidationError as e:
            raise MetadataLookupError(f"Malformed author row for {author_ref}: {e}") from e


__all__ = ["ContentSource", "PostgrestSource"]
