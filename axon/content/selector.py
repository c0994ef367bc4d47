"""
Content Selector

Chooses words for an exercise. The pool for the requested tier is filtered
by category, length bounds and the user's recently served words. When too
few words survive, the filters are relaxed step by step:

1. drop the length bounds
2. drop the categories as well
3. keep the categories but allow recently served words
4. use the whole tier

The final pool is sampled with a partial Fisher-Yates shuffle and the
served words are recorded as a follow-up task.
"""

import random
from typing import List, Optional, Sequence, Set, Tuple

from axon.common.error_handling import ValidationError
from axon.common.logger import app_logger, log_execution_time
from axon.common.tasks import FollowUpTaskQueue
from axon.content.catalog import WordCatalog
from axon.content.exclusion import ExclusionTracker
from axon.content.models import (
    Difficulty, SelectionMetadata, Word, WordSelectionOptions, WordSelectionResult
)

logger = app_logger.getChild("content.selector")


def validate_options(options: WordSelectionOptions) -> None:
    """
    Reject invalid selection options before any I/O.

    Raises:
        ValidationError: Naming the first violated constraint
    """
    if isinstance(options.count, bool) or not isinstance(options.count, int) or options.count <= 0:
        raise ValidationError("Word count must be greater than 0", field="count")

    if options.difficulty not in Difficulty.values():
        raise ValidationError(
            f"Invalid difficulty: {options.difficulty}. Must be 'easy', 'normal', 'medium', or 'hard'",
            field="difficulty"
        )

    if not options.user_id or not str(options.user_id).strip():
        raise ValidationError("User ID is required for word selection", field="user_id")

    if options.min_length is not None and options.min_length < 0:
        raise ValidationError("Minimum length cannot be negative", field="min_length")

    if options.max_length is not None and options.max_length < 0:
        raise ValidationError("Maximum length cannot be negative", field="max_length")

    if (
        options.min_length is not None
        and options.max_length is not None
        and options.min_length > options.max_length
    ):
        raise ValidationError("Minimum length cannot be greater than maximum length", field="min_length")


def filter_words(
    words: Sequence[Word],
    categories: Optional[Sequence[str]] = None,
    min_length: Optional[int] = None,
    max_length: Optional[int] = None,
    excluded: Optional[Set[str]] = None
) -> List[Word]:
    """Words passing every given predicate. Omitted predicates are skipped."""
    wanted = set(categories) if categories else None

    def keep(word: Word) -> bool:
        if wanted is not None and word.category not in wanted:
            return False
        if min_length is not None and word.length < min_length:
            return False
        if max_length is not None and word.length > max_length:
            return False
        if excluded and word.key in excluded:
            return False
        return True

    return [word for word in words if keep(word)]


def relax_filters(
    words: Sequence[Word],
    count: int,
    categories: Optional[Sequence[str]],
    excluded: Set[str]
) -> Tuple[List[Word], str]:
    """
    Widen the candidate pool until it holds ``count`` words.

    Returns:
        The relaxed pool and the name of the step that produced it
    """
    pool = filter_words(words, categories=categories, excluded=excluded)
    if len(pool) >= count:
        return pool, "length"

    pool = filter_words(words, excluded=excluded)
    if len(pool) >= count:
        return pool, "category"

    pool = filter_words(words, categories=categories)
    if len(pool) >= count:
        return pool, "exclusion"

    return list(words), "all"


def sample_words(pool: Sequence[Word], count: int, rng: Optional[random.Random] = None) -> List[Word]:
    """
    Pick ``count`` words uniformly at random without replacement.

    Partial Fisher-Yates: position ``i`` is swapped with a random position in
    ``[i, len(pool))`` for the first ``count`` positions. A pool no larger
    than ``count`` is returned whole, in pool order.
    """
    if len(pool) <= count:
        return list(pool)

    rng = rng or random
    shuffled = list(pool)
    for i in range(count):
        j = i + rng.randrange(len(shuffled) - i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled[:count]


class ContentSelector:
    """
    Word selection with recency exclusion and filter relaxation.

    Args:
        catalog: Word corpus cache
        tracker: Exclusion tracker for the word content type
        task_queue: Queue that runs usage recording after the response
        rng: Random source, injectable for deterministic tests
    """

    def __init__(
        self,
        catalog: WordCatalog,
        tracker: ExclusionTracker,
        task_queue: Optional[FollowUpTaskQueue] = None,
        rng: Optional[random.Random] = None
    ):
        self.catalog = catalog
        self.tracker = tracker
        self.task_queue = task_queue or FollowUpTaskQueue()
        self.rng = rng or random.Random()

    @log_execution_time(logger)
    async def select(self, options: WordSelectionOptions) -> WordSelectionResult:
        validate_options(options)

        words = self.catalog.load(options.difficulty)
        total_available = len(words)

        excluded = await self.tracker.recently_used(options.user_id)

        pool = filter_words(
            words,
            categories=options.categories,
            min_length=options.min_length,
            max_length=options.max_length,
            excluded=excluded
        )

        relaxation_step = None
        if len(pool) < options.count:
            logger.warning(
                f"Insufficient words after filtering. Requested: {options.count}, "
                f"Available: {len(pool)}. Relaxing filters..."
            )
            pool, relaxation_step = relax_filters(words, options.count, options.categories, excluded)
            logger.warning(f"filters relaxed: {relaxation_step}")

        selected = sample_words(pool, options.count, self.rng)

        self._record_usage(options.user_id, selected)

        return WordSelectionResult(
            words=selected,
            metadata=SelectionMetadata(
                requested=options.count,
                returned=len(selected),
                excluded=len(excluded),
                total_available=total_available,
                filters_relaxed=relaxation_step is not None,
                relaxation_step=relaxation_step
            )
        )

    def _record_usage(self, user_id: str, selected: List[Word]) -> None:
        if not selected:
            return

        self.task_queue.submit(
            "record_content_usage",
            lambda: self.tracker.record_usage(user_id, selected),
            context={"user_id": user_id, "content_type": self.tracker.content_type}
        )
