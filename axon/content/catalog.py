"""
Word Catalog

Loads the static word corpus for each difficulty tier from JSON files and
keeps the parsed lists for the lifetime of the catalog object.
"""

import json
import threading
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from axon.common.error_handling import CatalogLoadError, ValidationError
from axon.common.logger import app_logger
from axon.content.models import Difficulty, Word

logger = app_logger.getChild("content.catalog")

# Difficulty tier -> corpus file
TIER_FILES: Dict[str, str] = {
    Difficulty.EASY.value: "common.json",
    Difficulty.NORMAL.value: "normal.json",
    Difficulty.MEDIUM.value: "uncommon.json",
    Difficulty.HARD.value: "rare.json",
}

# Number of leading entries checked structurally on load
SAMPLE_SIZE = 5


class WordCatalog:
    """
    Cache of word lists keyed by difficulty tier.

    The first ``load`` of a tier reads and validates its file; later calls
    return the cached list. Concurrent first loads are serialized by a lock.
    ``clear_cache`` drops everything so the next load rereads the files.
    """

    def __init__(self, data_dir: Union[str, Path], tier_files: Optional[Dict[str, str]] = None):
        self.data_dir = Path(data_dir)
        self.tier_files = dict(tier_files or TIER_FILES)
        self._cache: Dict[str, List[Word]] = {}
        self._lock = threading.Lock()

    @property
    def tiers(self) -> List[str]:
        return list(self.tier_files)

    def is_cached(self, tier: str) -> bool:
        return tier in self._cache

    def load(self, tier: str) -> List[Word]:
        """
        Return the word list for ``tier``.

        Raises:
            ValidationError: If the tier is unknown
            CatalogLoadError: If the corpus file is missing or malformed
        """
        cached = self._cache.get(tier)
        if cached is not None:
            return cached

        if tier not in self.tier_files:
            raise ValidationError(
                f"Invalid difficulty: {tier}. Must be one of {', '.join(self.tier_files)}",
                field="difficulty"
            )

        with self._lock:
            cached = self._cache.get(tier)
            if cached is None:
                cached = self._read_tier(tier)
                self._cache[tier] = cached
        return cached

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()
        logger.debug("Word cache cleared")

    def _read_tier(self, tier: str) -> List[Word]:
        path = self.data_dir / self.tier_files[tier]
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            validate_entries(raw, tier)
            words = [Word(**entry) for entry in raw]
        except CatalogLoadError as e:
            logger.error(f"Failed to load words from {path}: {e.message}", extra={"data": {"tier": tier}})
            raise
        except (OSError, ValueError, TypeError, PydanticValidationError) as e:
            logger.error(f"Failed to load words from {path}: {e}", extra={"data": {"tier": tier}})
            raise CatalogLoadError(tier, str(e), details={"path": str(path)}, cause=e)

        logger.info(f"Loaded {len(words)} {tier} words from {path.name}")
        return words


def validate_entries(raw, tier: str) -> None:
    """
    Structural check of a parsed corpus file.

    The file must be a non-empty list; the first few entries must carry a
    non-empty ``word``, a non-empty ``category`` and a positive ``length``
    equal to the word's length.
    """
    if not isinstance(raw, list) or not raw:
        raise CatalogLoadError(tier, f"Invalid word file for {tier}: must be non-empty array")

    for i, entry in enumerate(raw[:SAMPLE_SIZE]):
        if not isinstance(entry, dict):
            raise CatalogLoadError(tier, f"Invalid word structure at index {i}: expected an object")

        word = entry.get("word")
        if not isinstance(word, str) or not word:
            raise CatalogLoadError(tier, f"Invalid word structure at index {i}: missing or invalid 'word' field")

        category = entry.get("category")
        if not isinstance(category, str) or not category:
            raise CatalogLoadError(tier, f"Invalid word structure at index {i}: missing or invalid 'category' field")

        length = entry.get("length")
        if isinstance(length, bool) or not isinstance(length, int) or length <= 0 or length != len(word):
            raise CatalogLoadError(tier, f"Invalid word structure at index {i}: missing or invalid 'length' field")
