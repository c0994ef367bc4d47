"""
Word Memory Exercise Flow

State machine for one word-memory attempt:

    intro -> study -> recall -> results

Only forward moves are allowed, plus ``reset`` back to intro from any
phase. Every transition cancels the timers of the phase being left, so a
timer can never fire into a later phase.

Study either shows all words at once or reveals them one at a time. A
sequential reveal advances by a per-item timer or by key press, never both:
the configured advance mode decides which single listener is active.

Results are computed locally as soon as recall finishes; saving them runs
in the background and a failed save is only logged.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol

from axon.common.error_handling import (
    AxonError, DuplicateRecallError, InvalidTransitionError, ValidationError
)
from axon.common.logger import app_logger
from axon.common.tasks import FollowUpTaskQueue
from axon.common.utils import round_int
from axon.content.models import Word, WordSelectionOptions
from axon.training.schemas import SaveSessionRequest
from axon.training.scoring import ScoreCard, normalize_word, score_recall

logger = app_logger.getChild("training.orchestrator")

TRAINING_TYPE = "word-memory"
CUSTOM = "custom"

CUSTOM_WORD_COUNT_RANGE = (5, 50)
CUSTOM_TIME_LIMIT_RANGE = (10, 300)
ITEM_SECONDS_RANGE = (1, 10)

# Seconds the duplicate-entry warning stays visible
WARNING_SECONDS = 2.0


class Phase(str, Enum):
    INTRO = "intro"
    STUDY = "study"
    RECALL = "recall"
    RESULTS = "results"


class AdvanceMode(str, Enum):
    """How a sequential reveal moves to the next word."""
    TIMER = "timer"
    MANUAL = "manual"


@dataclass(frozen=True)
class DifficultyPreset:
    level: str
    word_count: int
    time_limit: int
    description: str


DIFFICULTY_PRESETS: Dict[str, DifficultyPreset] = {
    "easy": DifficultyPreset("easy", 15, 75, "Beginner friendly"),
    "medium": DifficultyPreset("medium", 20, 60, "Standard challenge"),
    "hard": DifficultyPreset("hard", 25, 45, "Expert mode"),
}


@dataclass
class ExerciseSettings:
    """Choices made on the intro screen."""
    difficulty: str = "medium"
    custom_word_count: int = 20
    custom_time_limit: int = 60
    sequential: bool = False
    advance_mode: AdvanceMode = AdvanceMode.TIMER
    item_seconds: float = 3

    def resolve(self) -> "ResolvedSettings":
        """
        Word count, time limit and content tier for these settings.

        Custom runs draw from the medium tier.

        Raises:
            ValidationError: If a custom or sequential value is out of range
        """
        if self.difficulty == CUSTOM:
            low, high = CUSTOM_WORD_COUNT_RANGE
            if not low <= self.custom_word_count <= high:
                raise ValidationError(f"Word count must be between {low} and {high}", field="wordCount")
            low, high = CUSTOM_TIME_LIMIT_RANGE
            if not low <= self.custom_time_limit <= high:
                raise ValidationError(f"Time limit must be between {low} and {high} seconds", field="timeLimit")
            word_count, time_limit, content_difficulty = self.custom_word_count, self.custom_time_limit, "medium"
        elif self.difficulty in DIFFICULTY_PRESETS:
            preset = DIFFICULTY_PRESETS[self.difficulty]
            word_count, time_limit, content_difficulty = preset.word_count, preset.time_limit, preset.level
        else:
            raise ValidationError(
                f"difficulty must be one of: {', '.join(list(DIFFICULTY_PRESETS) + [CUSTOM])}",
                field="difficulty"
            )

        if self.sequential and self.advance_mode == AdvanceMode.TIMER:
            low, high = ITEM_SECONDS_RANGE
            if not low <= self.item_seconds <= high:
                raise ValidationError(f"Seconds per word must be between {low} and {high}", field="itemSeconds")

        return ResolvedSettings(
            difficulty=self.difficulty,
            content_difficulty=content_difficulty,
            word_count=word_count,
            time_limit=time_limit,
            sequential=self.sequential,
            advance_mode=AdvanceMode(self.advance_mode),
            item_seconds=self.item_seconds
        )


@dataclass(frozen=True)
class ResolvedSettings:
    difficulty: str
    content_difficulty: str
    word_count: int
    time_limit: int
    sequential: bool
    advance_mode: AdvanceMode
    item_seconds: float


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Source of delayed callbacks and the current time."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...

    def time(self) -> float: ...


class LoopScheduler:
    """Scheduler backed by the running asyncio event loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)

    def time(self) -> float:
        return asyncio.get_running_loop().time()


WordSource = Callable[[int, str], Awaitable[List[Word]]]
SessionSink = Callable[[Dict[str, Any]], Awaitable[Any]]


class TrainingOrchestrator:
    """
    Drives one word-memory exercise at a time.

    Args:
        fetch_words: Coroutine function ``(count, difficulty) -> words``
        save_session: Coroutine function receiving the save-session payload
        scheduler: Timer source, the event loop by default
        task_queue: Runs the background save
    """

    def __init__(
        self,
        fetch_words: WordSource,
        save_session: Optional[SessionSink] = None,
        scheduler: Optional[Scheduler] = None,
        task_queue: Optional[FollowUpTaskQueue] = None
    ):
        self.fetch_words = fetch_words
        self.save_session = save_session
        self.scheduler = scheduler or LoopScheduler()
        self.task_queue = task_queue or FollowUpTaskQueue(max_retries=0)
        self._timers: List[TimerHandle] = []
        self._warning_timer: Optional[TimerHandle] = None
        self._clear_state()

    def _clear_state(self) -> None:
        self.phase = Phase.INTRO
        self.settings: Optional[ResolvedSettings] = None
        self.words: List[Word] = []
        self.recalled: List[str] = []
        self.results: Optional[ScoreCard] = None
        self.warning: Optional[str] = None
        self.revealed_index = 0
        self._study_started_at: Optional[float] = None
        self._study_deadline: Optional[float] = None
        self._advance_listener: Optional[str] = None

    # Timers

    def _schedule(self, delay: float, callback: Callable[[], None]) -> None:
        self._timers.append(self.scheduler.call_later(delay, callback))

    def _cancel_timers(self) -> None:
        for handle in self._timers:
            handle.cancel()
        self._timers = []
        self._advance_listener = None

    def _require(self, phase: Phase, target: Phase) -> None:
        if self.phase != phase:
            raise InvalidTransitionError(self.phase.value, target.value)

    # Intro -> study

    async def start(self, settings: ExerciseSettings) -> List[Word]:
        """
        Fetch the words and begin studying.

        Raises:
            ValidationError: If the settings are out of range
            AxonError: If no words could be fetched; the phase stays intro
        """
        self._require(Phase.INTRO, Phase.STUDY)
        resolved = settings.resolve()

        words = await self.fetch_words(resolved.word_count, resolved.content_difficulty)
        if not words:
            raise AxonError("No words available. Please try again.")
        if self.phase != Phase.INTRO:
            # reset or another start happened while fetching
            raise InvalidTransitionError(self.phase.value, Phase.STUDY.value, "exercise changed while loading")

        self.settings = resolved
        self.words = list(words)
        self.phase = Phase.STUDY
        self._study_started_at = self.scheduler.time()
        self._study_deadline = self._study_started_at + resolved.time_limit
        self._schedule(resolved.time_limit, self._on_study_timeout)

        if resolved.sequential:
            self.revealed_index = 0
            if resolved.advance_mode == AdvanceMode.TIMER:
                self._advance_listener = "timer"
                self._schedule(resolved.item_seconds, self._on_item_timeout)
            else:
                self._advance_listener = "key"

        logger.debug(f"Study started with {len(self.words)} words for {resolved.time_limit}s")
        return self.words

    @property
    def visible_words(self) -> List[Word]:
        if self.phase != Phase.STUDY:
            return []
        if self.settings and self.settings.sequential:
            return self.words[self.revealed_index:self.revealed_index + 1]
        return list(self.words)

    @property
    def time_remaining(self) -> float:
        if self.phase != Phase.STUDY or self._study_deadline is None:
            return 0.0
        return max(0.0, self._study_deadline - self.scheduler.time())

    def _on_study_timeout(self) -> None:
        if self.phase == Phase.STUDY:
            self._enter_recall()

    def _on_item_timeout(self) -> None:
        if self.phase == Phase.STUDY:
            self._advance()
            if self.phase == Phase.STUDY:
                self._schedule(self.settings.item_seconds, self._on_item_timeout)

    def advance(self) -> None:
        """Key press during a manually advanced sequential reveal."""
        if self.phase != Phase.STUDY or self._advance_listener != "key":
            raise InvalidTransitionError(self.phase.value, self.phase.value, "manual advance is not active")
        self._advance()

    def _advance(self) -> None:
        self.revealed_index += 1
        if self.revealed_index >= len(self.words):
            self._enter_recall()

    # Study -> recall

    def skip_to_recall(self) -> None:
        self._require(Phase.STUDY, Phase.RECALL)
        self._enter_recall()

    def _enter_recall(self) -> None:
        self._cancel_timers()
        self.phase = Phase.RECALL
        logger.debug("Recall started")

    def add_recall(self, text: str) -> bool:
        """
        Record one recalled word.

        Returns:
            False for blank input, True when the word was added

        Raises:
            DuplicateRecallError: If the word was already entered
        """
        self._require(Phase.RECALL, Phase.RECALL)
        word = normalize_word(text)
        if not word:
            return False

        if word in self.recalled:
            self._show_warning("You already entered that word!")
            raise DuplicateRecallError(word)

        self.recalled.append(word)
        self._clear_warning()
        return True

    def remove_recall(self, index: int) -> str:
        self._require(Phase.RECALL, Phase.RECALL)
        if not 0 <= index < len(self.recalled):
            raise ValidationError(f"No recalled word at position {index}", field="index")
        return self.recalled.pop(index)

    def _show_warning(self, message: str) -> None:
        self._clear_warning()
        self.warning = message
        self._warning_timer = self.scheduler.call_later(WARNING_SECONDS, self._clear_warning)

    def _clear_warning(self) -> None:
        if self._warning_timer is not None:
            self._warning_timer.cancel()
            self._warning_timer = None
        self.warning = None

    # Recall -> results

    def finish(self) -> ScoreCard:
        """
        Score the attempt and start saving it in the background.

        Raises:
            InvalidTransitionError: Outside recall or with no recalled words
        """
        self._require(Phase.RECALL, Phase.RESULTS)
        if not self.recalled:
            raise InvalidTransitionError(Phase.RECALL.value, Phase.RESULTS.value, "enter at least one word")

        self._cancel_timers()
        self._clear_warning()
        self.results = score_recall([word.word for word in self.words], self.recalled)
        self.phase = Phase.RESULTS

        if self.save_session is not None:
            payload = self.session_payload()
            self.task_queue.submit("save_training_session", lambda: self.save_session(payload))
        return self.results

    def session_payload(self) -> Dict[str, Any]:
        """Save-session request body for the finished attempt."""
        card = self.results
        settings = self.settings
        elapsed = 0
        if self._study_started_at is not None:
            elapsed = round_int(self.scheduler.time() - self._study_started_at)

        configuration = {
            "difficulty": settings.difficulty,
            "wordCount": len(self.words),
            "timeLimit": settings.time_limit,
        }
        if settings.sequential:
            configuration["sequential"] = True
            configuration["advanceMode"] = settings.advance_mode.value
            if settings.advance_mode == AdvanceMode.TIMER:
                configuration["itemSeconds"] = settings.item_seconds

        return {
            "trainingType": TRAINING_TYPE,
            "configuration": configuration,
            "results": {
                "score": card.score,
                "accuracy": card.accuracy,
                "correctCount": card.correct_count,
                "incorrectCount": card.incorrect_count,
                "missedCount": card.missed_count,
                "timeSpent": elapsed,
            },
            "contentUsed": [{"word": word.word, "category": word.category} for word in self.words],
        }

    # Any -> intro

    def reset(self) -> None:
        self._cancel_timers()
        self._clear_warning()
        self._clear_state()

    async def close(self) -> None:
        """Cancel timers and wait for a pending background save."""
        self._cancel_timers()
        self._clear_warning()
        await self.task_queue.drain()


def selector_word_source(selector, user_id: str) -> WordSource:
    """Word source calling a ``ContentSelector`` in-process for ``user_id``."""
    async def fetch(count: int, difficulty: str) -> List[Word]:
        result = await selector.select(WordSelectionOptions(count=count, difficulty=difficulty, user_id=user_id))
        return result.words

    return fetch


def service_session_sink(service, user_id: str) -> SessionSink:
    """Session sink saving through a ``TrainingSessionService`` in-process."""
    async def save(payload: Dict[str, Any]):
        return await service.save_session(user_id, SaveSessionRequest.parse_obj(payload))

    return save
