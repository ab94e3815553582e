from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Tuple

from selfcheck.schemas import Assessment, HistoryEntry, SymptomRecord, WorkContext

STEP_SYMPTOMS = 1
STEP_WORK_CONTEXT = 2
STEP_RESULT = 3


class AssessmentInProgress(Exception):
    """An assessment is already awaiting the model."""


@dataclass(frozen=True)
class AppState:
    step: int = STEP_SYMPTOMS
    symptoms: SymptomRecord = field(default_factory=SymptomRecord)
    work_context: WorkContext = field(default_factory=WorkContext)
    loading: bool = False
    assessment: Optional[Assessment] = None
    history: Tuple[HistoryEntry, ...] = ()
    error: Optional[str] = None


@dataclass(frozen=True)
class UpdateSymptoms:
    # Keyed by field name, e.g. {"sore_throat": "mild"}
    fields: Dict[str, Any]


@dataclass(frozen=True)
class UpdateWorkContext:
    fields: Dict[str, Any]


@dataclass(frozen=True)
class GoToStep:
    step: int


@dataclass(frozen=True)
class AssessmentStarted:
    pass


@dataclass(frozen=True)
class AssessmentFinished:
    entry: HistoryEntry


@dataclass(frozen=True)
class AssessmentFailed:
    message: str


@dataclass(frozen=True)
class HistoryLoaded:
    entries: Tuple[HistoryEntry, ...]


@dataclass(frozen=True)
class HistoryCleared:
    pass


@dataclass(frozen=True)
class Restart:
    pass


def reduce(state: AppState, action: object) -> AppState:
    """Return the state that results from applying `action`. Never mutates `state`."""
    if isinstance(action, UpdateSymptoms):
        # Validated like any other record.
        symptoms = SymptomRecord.model_validate({**state.symptoms.model_dump(), **action.fields})
        return replace(state, symptoms=symptoms)

    if isinstance(action, UpdateWorkContext):
        context = WorkContext.model_validate({**state.work_context.model_dump(), **action.fields})
        return replace(state, work_context=context)

    if isinstance(action, GoToStep):
        if action.step not in (STEP_SYMPTOMS, STEP_WORK_CONTEXT, STEP_RESULT):
            raise ValueError(f"Unknown step: {action.step}")
        if action.step == STEP_RESULT and state.assessment is None:
            raise ValueError("No assessment to show yet")
        return replace(state, step=action.step)

    if isinstance(action, AssessmentStarted):
        if state.loading:
            raise AssessmentInProgress("An assessment is already in progress")
        return replace(state, loading=True, error=None)

    if isinstance(action, AssessmentFinished):
        return replace(
            state,
            loading=False,
            assessment=action.entry.assessment,
            history=(action.entry, *state.history),
            step=STEP_RESULT,
            error=None,
        )

    if isinstance(action, AssessmentFailed):
        return replace(state, loading=False, error=action.message)

    if isinstance(action, HistoryLoaded):
        return replace(state, history=tuple(action.entries))

    if isinstance(action, HistoryCleared):
        return replace(state, history=())

    if isinstance(action, Restart):
        return replace(state, step=STEP_SYMPTOMS, error=None)

    raise TypeError(f"Unknown action: {action!r}")
