"""
Request and response schemas for the content endpoints.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import root_validator, validator

from axon.common.schemas import CamelModel, number_in_range
from axon.content.models import Word, WordSelectionResult

# Difficulties offered to clients; "normal" stays internal
REQUEST_DIFFICULTIES = ["easy", "medium", "hard"]

MAX_WORD_COUNT = 50
MAX_WORD_LENGTH = 20


class FetchWordsRequest(CamelModel):
    """Body of ``POST /content/words``."""
    count: int
    difficulty: str
    categories: Optional[List[str]] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None

    @validator("count", pre=True)
    def validate_count(cls, v):
        return number_in_range(v, "count", 1, MAX_WORD_COUNT)

    @validator("difficulty", pre=True)
    def validate_difficulty(cls, v):
        if v not in REQUEST_DIFFICULTIES:
            raise ValueError(f"difficulty must be one of: {', '.join(REQUEST_DIFFICULTIES)}")
        return v

    @validator("min_length", "max_length", pre=True)
    def validate_length(cls, v, field):
        if v is None:
            return v
        return number_in_range(v, field.alias, 1, MAX_WORD_LENGTH)

    @validator("categories", pre=True)
    def validate_categories(cls, v):
        if v is None:
            return v
        if not isinstance(v, list):
            raise ValueError("categories must be an array")
        if any(not isinstance(category, str) for category in v):
            raise ValueError("categories must be an array of strings")
        return v

    @root_validator(skip_on_failure=True)
    def validate_length_bounds(cls, values):
        low, high = values.get("min_length"), values.get("max_length")
        if low is not None and high is not None and low > high:
            raise ValueError("minLength cannot be greater than maxLength")
        return values


class FetchWordsMetadata(CamelModel):
    count: int
    requested: int
    difficulty: str
    excluded_count: int
    total_available: int
    filters_relaxed: bool
    timestamp: datetime


class FetchWordsResponse(CamelModel):
    """Body returned by ``POST /content/words``."""
    words: List[Word]
    metadata: FetchWordsMetadata

    @classmethod
    def from_result(cls, result: WordSelectionResult, difficulty: str) -> "FetchWordsResponse":
        return cls(
            words=result.words,
            metadata=FetchWordsMetadata(
                count=len(result.words),
                requested=result.metadata.requested,
                difficulty=difficulty,
                excluded_count=result.metadata.excluded,
                total_available=result.metadata.total_available,
                filters_relaxed=result.metadata.filters_relaxed,
                timestamp=result.selected_at
            )
        )


class ExclusionStatsResponse(CamelModel):
    total_sessions: int
    recent_sessions: int
    excluded_count: int


class ClearHistoryResponse(CamelModel):
    message: str
    deleted: int
