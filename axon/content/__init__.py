"""
Content Service

Word corpus loading, recency exclusion and word selection.
"""

from axon.content.models import (
    ContentType, Difficulty, Word, WordSelectionOptions, WordSelectionResult,
    SelectionMetadata, ExclusionStats
)
from axon.content.catalog import WordCatalog, TIER_FILES
from axon.content.exclusion import ExclusionTracker
from axon.content.selector import ContentSelector

__all__ = [
    "ContentType", "Difficulty", "Word", "WordSelectionOptions", "WordSelectionResult",
    "SelectionMetadata", "ExclusionStats", "WordCatalog", "TIER_FILES",
    "ExclusionTracker", "ContentSelector"
]
