import io
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict, Field

from selfcheck.backends import make_backend
from selfcheck.client import AssessmentClient, is_fallback
from selfcheck.config import load_settings
from selfcheck.guide import DECISION_TITLES, DISCLAIMER, SYMPTOM_FORM_LABELS, SYMPTOM_GUIDE, WORK_CONTEXT_LABELS, severity_options
from selfcheck.history import JsonFileHistoryStore
from selfcheck.schemas import SymptomRecord, WorkContext
from selfcheck.session import SelfCheckSession
from selfcheck.state import AssessmentInProgress
from selfcheck.trend import decision_counts, plot_trend, trend_points

app = FastAPI(title="Self-check")

_session: Optional[SelfCheckSession] = None


def get_session() -> SelfCheckSession:
    """Single-user app: one session per process, history loaded on first use."""
    global _session
    if _session is None:
        try:
            settings = load_settings()
        except ValueError as e:
            raise HTTPException(status_code=503, detail=str(e))
        _session = SelfCheckSession(None, JsonFileHistoryStore(settings.history_dir))
        _session.start()
    return _session


def get_client(session: SelfCheckSession = Depends(get_session)) -> AssessmentClient:
    """Built on the first assessment; the history endpoints never need an API key."""
    if session.client is None:
        try:
            settings = load_settings()
            session.client = AssessmentClient(make_backend(settings), timeout=settings.timeout)
        except ValueError as e:
            raise HTTPException(status_code=503, detail=str(e))
    return session.client


class AssessmentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    symptoms: SymptomRecord
    work_context: WorkContext = Field(default_factory=WorkContext, alias="workContext")


def _dump_entry(entry) -> Dict[str, Any]:
    return entry.model_dump(mode="json", by_alias=True)


@app.get("/healthz")
async def healthz():
    return {"ok": True}


@app.get("/api/guide")
async def guide():
    return {
        "severityOptions": severity_options(),
        "symptomLabels": SYMPTOM_FORM_LABELS,
        "symptomGuide": SYMPTOM_GUIDE,
        "workContextLabels": WORK_CONTEXT_LABELS,
        "decisionTitles": DECISION_TITLES,
        "disclaimer": DISCLAIMER,
    }


@app.post("/api/assessment", dependencies=[Depends(get_client)])
async def create_assessment(req: AssessmentRequest, session: SelfCheckSession = Depends(get_session)):
    if session.state.loading:
        raise HTTPException(status_code=409, detail="An assessment is already in progress")

    session.fill_form(req.symptoms, req.work_context)
    try:
        assessment = await session.run_assessment()
    except AssessmentInProgress as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception:
        raise HTTPException(status_code=500, detail=session.state.error or "Assessment failed")

    entry = session.state.history[0]
    return {
        "assessment": assessment.model_dump(),
        "title": DECISION_TITLES[assessment.decision],
        "entry": _dump_entry(entry),
        "fallback": is_fallback(assessment),
    }


@app.get("/api/history")
async def history(session: SelfCheckSession = Depends(get_session)):
    entries = session.state.history
    return {
        "entries": [_dump_entry(e) for e in entries],
        "counts": decision_counts(entries),
    }


@app.delete("/api/history")
async def clear_history(session: SelfCheckSession = Depends(get_session)):
    session.clear_history()
    return {"ok": True}


@app.get("/api/history/trend")
async def trend(session: SelfCheckSession = Depends(get_session)):
    return {"points": trend_points(session.state.history)}


@app.get("/api/history/trend.png")
async def trend_png(session: SelfCheckSession = Depends(get_session)):
    buf = io.BytesIO()
    if plot_trend(session.state.history, buf) is None:
        raise HTTPException(status_code=404, detail="No history yet")
    return Response(content=buf.getvalue(), media_type="image/png")
