"""
Content data models.

Words served to exercises, the options accepted by the selector and the
result it returns.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class ContentType(str, Enum):
    """Kinds of content tracked for recency exclusion."""
    WORD = "word"
    IMAGE = "image"
    AUDIO = "audio"


class Difficulty(str, Enum):
    """Difficulty tiers of the word corpus."""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    # Legacy alias kept loadable; not offered by the API
    NORMAL = "normal"

    @classmethod
    def values(cls) -> List[str]:
        return [member.value for member in cls]


class Word(BaseModel):
    """A single corpus word. ``length`` equals ``len(word)``."""
    word: str
    category: str
    length: int

    class Config:
        allow_mutation = False

    @property
    def key(self) -> str:
        """Normalized form used for exclusion and recall comparison."""
        return self.word.strip().lower()


@dataclass
class WordSelectionOptions:
    """Parameters for one word selection."""
    count: int
    difficulty: str
    user_id: str
    categories: Optional[List[str]] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None


class SelectionMetadata(BaseModel):
    """Diagnostics describing how a selection was produced."""
    requested: int
    returned: int
    excluded: int
    total_available: int
    filters_relaxed: bool = False
    relaxation_step: Optional[str] = None


class WordSelectionResult(BaseModel):
    """Selected words plus their selection metadata."""
    words: List[Word]
    metadata: SelectionMetadata
    selected_at: datetime = Field(default_factory=datetime.utcnow)


class ExclusionStats(BaseModel):
    """Recency exclusion diagnostics for one user and content type."""
    total_sessions: int = 0
    recent_sessions: int = 0
    excluded_count: int = 0
