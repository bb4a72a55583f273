"""Instruction interpretation: classify, extract, gate, dispatch and respond."""

from .catalog import DEFAULT_PATTERNS, PatternCatalog, TaskPattern, TaskType
from .classifier import CONFIDENCE_THRESHOLD, ClassificationResult, IntentClassifier
from .confirmation import ConfirmationDecision, ConfirmationPolicy
from .conversation import ContextStack, ConversationMemory, ConversationState
from .extractor import ExtractedParameters, ParameterExtractor
from .results import HandlerResult
from .dispatcher import TaskDispatcher
from .responses import Response, ResponseSynthesizer

__all__ = [
    "CONFIDENCE_THRESHOLD",
    "ClassificationResult",
    "ConfirmationDecision",
    "ConfirmationPolicy",
    "ContextStack",
    "ConversationMemory",
    "ConversationState",
    "DEFAULT_PATTERNS",
    "ExtractedParameters",
    "HandlerResult",
    "IntentClassifier",
    "ParameterExtractor",
    "PatternCatalog",
    "Response",
    "ResponseSynthesizer",
    "TaskDispatcher",
    "TaskPattern",
    "TaskType",
]
