"""Request payload models for the HTTP entry points."""

from __future__ import annotations

from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator


class LinkInput(BaseModel):
    """A single link submitted to the streaming endpoint."""

    id: Union[str, int] = Field(..., description="Caller-chosen identifier echoed on every event")
    link: str = Field(..., min_length=1, description="URL to resolve")
    name: Optional[str] = Field(None, description="Optional display label")

    @field_validator("id")
    @classmethod
    def _stringify_id(cls, value: Union[str, int]) -> str:
        text = str(value).strip()
        if not text:
            raise ValueError("id must not be blank")
        return text

    @field_validator("link")
    @classmethod
    def _strip_link(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("link must not be blank")
        return value


class StreamSolveRequest(BaseModel):
    """Body of a streaming resolution request."""

    links: List[LinkInput] = Field(..., min_length=1)


class TaskCreateRequest(BaseModel):
    """Body of a persisted task trigger."""

    url: str = Field(..., description="Source page to extract links from")

    @field_validator("url")
    @classmethod
    def _require_url(cls, value: str) -> str:
        value = (value or "").strip()
        if not value:
            raise ValueError("URL is required")
        return value
