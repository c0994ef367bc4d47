"""
Training

Session scoring, progress aggregation, session persistence and the
word-memory exercise flow.
"""

from axon.training.scoring import (
    PerformanceLevel, ScoreCard, RecallClassification,
    calculate_score, calculate_accuracy, performance_level, classify_recall, score_recall
)
from axon.training.progress import ProgressAggregator, calculate_streak
from axon.training.modules import slugify, format_module_name, infer_category
from axon.training.service import TrainingSessionService
from axon.training.orchestrator import (
    TrainingOrchestrator, ExerciseSettings, Phase, AdvanceMode, DIFFICULTY_PRESETS
)
