import sys
from datetime import datetime
from typing import Callable, Optional

from selfcheck.client import AssessmentClient
from selfcheck.history import HistoryStore, new_entry
from selfcheck.schemas import Assessment, SymptomRecord, WorkContext
from selfcheck.state import (
    AppState,
    AssessmentFailed,
    AssessmentFinished,
    AssessmentStarted,
    HistoryCleared,
    HistoryLoaded,
    UpdateSymptoms,
    UpdateWorkContext,
    reduce,
)


class SelfCheckSession:
    """
    Owns the application state for one user and routes every change
    through `reduce`. At most one assessment is in flight at a time.
    Without a client the session can still read and clear history.
    """

    def __init__(
        self,
        client: Optional[AssessmentClient],
        store: HistoryStore,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.client = client
        self.store = store
        self.clock = clock
        self.state = AppState()

    def dispatch(self, action: object) -> AppState:
        self.state = reduce(self.state, action)
        return self.state

    def start(self) -> AppState:
        return self.dispatch(HistoryLoaded(tuple(self.store.load())))

    def fill_form(self, symptoms: SymptomRecord, context: WorkContext) -> AppState:
        self.dispatch(UpdateSymptoms(symptoms.model_dump()))
        return self.dispatch(UpdateWorkContext(context.model_dump()))

    async def run_assessment(self) -> Assessment:
        """Assess the current form, persist the new history entry and show the result."""
        if self.client is None:
            raise RuntimeError("No assessment client configured")
        self.dispatch(AssessmentStarted())

        symptoms = self.state.symptoms
        try:
            assessment = await self.client.assess(symptoms, self.state.work_context)
            entry = new_entry(assessment, symptoms, now=self.clock())
            self.store.save([entry, *self.state.history])
        except Exception as e:
            print(f"ERROR: Assessment failed: {e!r}", file=sys.stderr)
            self.dispatch(AssessmentFailed("判定中にエラーが発生しました。"))
            raise
        except BaseException:
            # Cancelled: release the busy flag and let the caller see it.
            self.dispatch(AssessmentFailed("判定がキャンセルされました。"))
            raise

        self.dispatch(AssessmentFinished(entry))
        return assessment

    def clear_history(self) -> AppState:
        self.store.clear()
        return self.dispatch(HistoryCleared())
