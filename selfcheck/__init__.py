"""
Well-being self-check

Builds a prompt from symptoms and work context, asks a hosted model whether to
go to the office, work remotely, rest or see a doctor, and keeps a local
history of the results.
"""

from .client import AssessmentClient, is_fallback
from .history import HISTORY_KEY, InMemoryHistoryStore, JsonFileHistoryStore
from .prompt import OUTPUT_SCHEMA, build_prompt
from .schemas import FALLBACK_ASSESSMENT, Assessment, HistoryEntry, SymptomRecord, WorkContext
from .session import SelfCheckSession

__all__ = [
    "AssessmentClient",
    "is_fallback",
    "HISTORY_KEY",
    "InMemoryHistoryStore",
    "JsonFileHistoryStore",
    "OUTPUT_SCHEMA",
    "build_prompt",
    "FALLBACK_ASSESSMENT",
    "Assessment",
    "HistoryEntry",
    "SymptomRecord",
    "WorkContext",
    "SelfCheckSession",
]
