"""Dunbar circle classification and capacity domain."""

from .batch import BatchCoordinator, BatchOutcome
from .cache import SuggestionCache
from .capacity import CapacityAnalyzer, RebalanceAdvisor
from .classification import CircleClassifier, Classification
from .config import CircleEngineConfig, default_config
from .errors import (
    CircleEngineError,
    ContactNotFoundError,
    InvalidCircleError,
    TransientSignalError,
)
from .ledger import AssignmentLedger
from .models import (
    AssignedBy,
    AssignmentRecord,
    BatchAnalysisResult,
    CircleAssignment,
    CircleCapacity,
    CircleDistribution,
    CircleSuggestion,
    Contact,
    DunbarCircle,
    RebalancingSuggestion,
    ScoringMode,
)
from .scoring import ScoringEngine
from .signals import SignalExtractor
from .suggestions import CircleSuggestionService

__all__ = [
    "AssignedBy",
    "AssignmentLedger",
    "AssignmentRecord",
    "BatchAnalysisResult",
    "BatchCoordinator",
    "BatchOutcome",
    "CapacityAnalyzer",
    "CircleAssignment",
    "CircleCapacity",
    "CircleClassifier",
    "CircleDistribution",
    "CircleEngineConfig",
    "CircleEngineError",
    "CircleSuggestion",
    "CircleSuggestionService",
    "Classification",
    "Contact",
    "ContactNotFoundError",
    "DunbarCircle",
    "InvalidCircleError",
    "RebalanceAdvisor",
    "RebalancingSuggestion",
    "ScoringEngine",
    "ScoringMode",
    "SignalExtractor",
    "SuggestionCache",
    "TransientSignalError",
    "default_config",
]
