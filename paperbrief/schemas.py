"""Pydantic output model for the summarizer."""

from typing import List, Optional

from pydantic import BaseModel, Field, StrictStr, field_validator

DEFAULT_KEYWORDS = ("summary", "document", "analysis")


class SummaryResult(BaseModel):
    """Structured summary returned by the model.

    ``summary`` must be a string or validation fails. ``title`` and
    ``keywords`` are repaired instead: a non-string title is dropped, and
    keywords keep only their string entries, falling back to
    ``DEFAULT_KEYWORDS`` when nothing usable remains.
    """

    title: Optional[str] = None
    summary: StrictStr
    keywords: List[str] = Field(default_factory=lambda: list(DEFAULT_KEYWORDS))

    @field_validator("title", mode="before")
    @classmethod
    def _drop_non_string_title(cls, value):
        return value if isinstance(value, str) else None

    @field_validator("keywords", mode="before")
    @classmethod
    def _string_keywords(cls, value):
        keywords = [k for k in value if isinstance(k, str)] if isinstance(value, list) else []
        return keywords or list(DEFAULT_KEYWORDS)
