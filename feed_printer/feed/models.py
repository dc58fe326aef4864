"""
Pydantic models for feed records, author metadata and cached items.

Source rows use the content database's column names (tweet_id, account_id,
full_text, account_display_name, username); the aliases below map them onto
the neutral names used throughout the package.
"""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class FeedRecord(BaseModel):
    """One row returned by the content source query."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(validation_alias=AliasChoices("id", "tweet_id"), min_length=1)
    author_ref: str = Field(validation_alias=AliasChoices("author_ref", "account_id"))
    created_at: str = ""
    updated_at: str = ""
    body: str = Field(default="", validation_alias=AliasChoices("body", "full_text"))

    @field_validator("id", "author_ref", mode="before")
    @classmethod
    def _stringify(cls, v):
        # numeric ids come back as JSON numbers from some tables
        return str(v) if isinstance(v, int) else v

    @field_validator("created_at", "updated_at", "body", mode="before")
    @classmethod
    def _null_is_empty(cls, v):
        return "" if v is None else v


class AuthorInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    display_name: str = Field(validation_alias=AliasChoices("display_name", "account_display_name"))
    handle: str = Field(validation_alias=AliasChoices("handle", "username"))


class CachedItem(BaseModel):
    """
    A feed item that has been handled. Immutable; identity is `id`.

    `resolved` is False only for items given up on after repeated author lookup
    failures; those were never printed.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(validation_alias=AliasChoices("id", "tweet_id"), min_length=1)
    author_ref: str = Field(default="", validation_alias=AliasChoices("author_ref", "account_id"))
    author_display_name: str = Field(
        default="", validation_alias=AliasChoices("author_display_name", "account_display_name")
    )
    author_handle: str = Field(default="", validation_alias=AliasChoices("author_handle", "username"))
    created_at: str = ""
    body: str = Field(default="", validation_alias=AliasChoices("body", "full_text"))
    resolved: bool = True

    @field_validator("id", "author_ref", mode="before")
    @classmethod
    def _stringify(cls, v):
        return str(v) if isinstance(v, int) else v

    @classmethod
    def from_record(cls, record: FeedRecord, author: AuthorInfo) -> "CachedItem":
        return cls(
            id=record.id,
            author_ref=record.author_ref,
            author_display_name=author.display_name,
            author_handle=author.handle,
            created_at=record.created_at,
            body=record.body,
        )

    @classmethod
    def unresolved(cls, record: FeedRecord) -> "CachedItem":
        return cls(
            id=record.id,
            author_ref=record.author_ref,
            created_at=record.created_at,
            body=record.body,
            resolved=False,
        )


__all__ = ["AuthorInfo", "CachedItem", "FeedRecord"]
