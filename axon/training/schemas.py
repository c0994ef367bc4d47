"""
Request and response schemas for the training endpoints.

Session ``configuration`` and ``results`` payloads have a small required
core plus exercise-specific extras. The core is declared as fields; any
other keys are kept in ``additional_fields`` and stored unchanged.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field, root_validator, validator

from axon.common.schemas import CamelModel, number_in_range, optional_number


class ExtensibleModel(CamelModel):
    """Declared fields plus an open map of extra keys."""
    additional_fields: Dict[str, Any] = Field(default_factory=dict)

    @root_validator(pre=True)
    def collect_additional_fields(cls, values):
        if not isinstance(values, dict):
            return values
        known = set()
        for name, field in cls.__fields__.items():
            known.update((name, field.alias))
        extras = {key: value for key, value in values.items() if key not in known}
        declared = {key: value for key, value in values.items() if key in known}
        declared["additional_fields"] = {**values.get("additional_fields", {}), **extras}
        return declared

    def to_payload(self) -> Dict[str, Any]:
        """Flat camelCase dict as originally submitted."""
        payload = self.dict(by_alias=True, exclude_none=True, exclude={"additional_fields"})
        payload.update(self.additional_fields)
        return payload


class SessionConfiguration(ExtensibleModel):
    difficulty: str
    word_count: Optional[int] = None
    time_limit: Optional[int] = None

    @validator("difficulty", pre=True)
    def validate_difficulty(cls, v):
        if not isinstance(v, str) or not v.strip():
            raise ValueError("configuration.difficulty is required")
        return v.strip()


class SessionResults(ExtensibleModel):
    score: float
    time_spent: float
    correct_count: Optional[int] = None
    incorrect_count: Optional[int] = None
    missed_count: Optional[int] = None

    @validator("score", pre=True)
    def validate_score(cls, v):
        if v is None:
            raise ValueError("results.score is required")
        return number_in_range(v, "score", 0, 100)

    @validator("time_spent", pre=True)
    def validate_time_spent(cls, v):
        if v is None:
            raise ValueError("results.timeSpent is required")
        return optional_number(v, "timeSpent")

    @validator("correct_count", "incorrect_count", "missed_count", pre=True)
    def validate_counts(cls, v, field):
        return optional_number(v, field.alias)


class ContentItem(ExtensibleModel):
    word: str
    category: str
    length: Optional[int] = None


class SaveSessionRequest(CamelModel):
    """Body of ``POST /training/save-session``."""
    training_type: str
    configuration: SessionConfiguration
    results: SessionResults
    content_used: Optional[List[ContentItem]] = None

    @validator("training_type", pre=True)
    def validate_training_type(cls, v):
        if not isinstance(v, str) or not v.strip():
            raise ValueError("trainingType must be a non-empty string")
        return v

    @validator("configuration", "results", pre=True)
    def validate_object(cls, v, field):
        if not isinstance(v, dict):
            raise ValueError(f"{field.alias} must be an object")
        return v

    @validator("content_used", pre=True)
    def validate_content_used(cls, v):
        if v is not None and not isinstance(v, list):
            raise ValueError("contentUsed must be an array")
        return v


class SessionSummary(CamelModel):
    id: str
    score: float
    accuracy: Optional[float]
    performance_level: str
    created_at: datetime


class ProgressSummary(CamelModel):
    total_sessions: int
    best_score: float
    average_score: float
    current_streak: int
    longest_streak: int


class SaveSessionResponse(CamelModel):
    message: str
    session: SessionSummary
    progress: ProgressSummary


class ModuleProgress(CamelModel):
    slug: str
    name: str
    total_sessions: int
    best_score: float
    average_score: float
    current_streak: int
    longest_streak: int
    current_difficulty: Optional[str]
    last_session_at: Optional[datetime]


class ProgressOverview(CamelModel):
    total_sessions: int
    current_streak: int
    modules: List[ModuleProgress]


class ModuleInfo(CamelModel):
    slug: str
    name: str
    description: str
    category: str
    configuration: Dict[str, Any]
    is_active: bool

    class Config:
        orm_mode = True
