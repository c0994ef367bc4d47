"""
Session Scoring

Pure functions turning exercise outcomes into a score, an accuracy and a
performance level, plus the word-memory classification of recalled words.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Union

from axon.common.utils import round_int

Number = Union[int, float]


class PerformanceLevel(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


# Lower bounds, inclusive, checked from the top
PERFORMANCE_THRESHOLDS = (
    (90, PerformanceLevel.EXCELLENT),
    (75, PerformanceLevel.GOOD),
    (60, PerformanceLevel.FAIR),
)


def normalize_word(word: str) -> str:
    return word.strip().lower()


def calculate_score(total_presented: int, total_correct: int) -> int:
    """``round(correct / presented * 100)``, or 0 when nothing was presented."""
    if total_presented <= 0:
        return 0
    return max(0, min(100, round_int(total_correct / total_presented * 100)))


def calculate_accuracy(
    correct_count: Optional[Number],
    incorrect_count: Optional[Number]
) -> Optional[int]:
    """
    Share of recall attempts that were correct.

    Returns ``None`` when the counts were not tracked and 0 when they were
    tracked but nothing was attempted.
    """
    if correct_count is None or incorrect_count is None:
        return None
    attempted = correct_count + incorrect_count
    if attempted <= 0:
        return 0
    return max(0, min(100, round_int(correct_count / attempted * 100)))


def performance_level(score: Number) -> PerformanceLevel:
    for threshold, level in PERFORMANCE_THRESHOLDS:
        if score >= threshold:
            return level
    return PerformanceLevel.POOR


@dataclass
class RecallClassification:
    """Recalled words split against the presented set, in entry order."""
    correct: List[str] = field(default_factory=list)
    incorrect: List[str] = field(default_factory=list)
    missed: List[str] = field(default_factory=list)


@dataclass
class ScoreCard:
    """Everything the results view shows for one word-memory attempt."""
    presented: int
    classification: RecallClassification
    score: int
    accuracy: Optional[int]
    level: PerformanceLevel

    @property
    def correct_count(self) -> int:
        return len(self.classification.correct)

    @property
    def incorrect_count(self) -> int:
        return len(self.classification.incorrect)

    @property
    def missed_count(self) -> int:
        return len(self.classification.missed)


def classify_recall(presented: Iterable[str], recalled: Iterable[str]) -> RecallClassification:
    """
    Compare recalled words with presented ones, ignoring case and
    surrounding whitespace.
    """
    presented = list(presented)
    presented_keys = {normalize_word(word) for word in presented}
    recalled_keys = set()
    result = RecallClassification()

    for word in recalled:
        key = normalize_word(word)
        recalled_keys.add(key)
        if key in presented_keys:
            result.correct.append(key)
        else:
            result.incorrect.append(key)

    result.missed = [normalize_word(word) for word in presented if normalize_word(word) not in recalled_keys]
    return result


def score_recall(presented: Iterable[str], recalled: Iterable[str]) -> ScoreCard:
    """Classify a word-memory attempt and derive its score, accuracy and level."""
    presented = list(presented)
    classification = classify_recall(presented, recalled)
    score = calculate_score(len(presented), len(classification.correct))
    return ScoreCard(
        presented=len(presented),
        classification=classification,
        score=score,
        accuracy=calculate_accuracy(len(classification.correct), len(classification.incorrect)),
        level=performance_level(score)
    )
