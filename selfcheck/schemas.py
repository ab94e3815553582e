from __future__ import annotations

import math
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Severity = Literal["none", "mild", "moderate", "severe"]
Gender = Literal["male", "female", "other", "unspecified"]
DecisionResult = Literal["OFFICE", "REMOTE", "REST", "HOSPITAL"]

SEVERITY_LEVELS: tuple[str, ...] = ("none", "mild", "moderate", "severe")
DECISIONS: tuple[str, ...] = ("OFFICE", "REMOTE", "REST", "HOSPITAL")

FEVER_MIN = 35.0
FEVER_MAX = 40.0

PHYSICAL_FIELDS = ("cough", "fatigue", "headache", "sore_throat")
MENTAL_FIELDS = ("mental_stress", "mood_depression", "sleep_quality")


def severity_rank(level: str) -> int:
    """Position of a severity level in none < mild < moderate < severe."""
    return SEVERITY_LEVELS.index(level)


class SymptomRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    gender: Gender = "unspecified"
    fever: float = Field(36.5, ge=FEVER_MIN, le=FEVER_MAX)
    cough: Severity = "none"
    fatigue: Severity = "none"
    headache: Severity = "none"
    sore_throat: Severity = Field("none", alias="soreThroat")
    mental_stress: Severity = Field("none", alias="mentalStress")
    mood_depression: Severity = Field("none", alias="moodDepression")
    sleep_quality: Severity = Field("none", alias="sleepQuality")
    other_symptoms: str = Field("", alias="otherSymptoms")

    @field_validator("fever")
    @classmethod
    def round_to_slider_step(cls, v: float) -> float:
        # The input slider moves in 0.1 degree steps.
        return round(v, 1)

    def severities(self) -> dict[str, str]:
        return {name: getattr(self, name) for name in PHYSICAL_FIELDS + MENTAL_FIELDS}


class WorkContext(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    can_remote: bool = Field(True, alias="canRemote")
    has_urgent_meeting: bool = Field(False, alias="hasUrgentMeeting")
    is_peak_period: bool = Field(False, alias="isPeakPeriod")


class Assessment(BaseModel):
    model_config = ConfigDict(frozen=True)

    decision: DecisionResult
    reason: str = Field(..., min_length=1)
    aiAdvice: str = Field(..., min_length=1)
    reportDraft: str = Field(..., min_length=1)
    score: int = Field(..., ge=0, le=100)

    @field_validator("score", mode="before")
    @classmethod
    def integer_like_score(cls, v):
        """
        Models sometimes answer 72.0 or 72.5 for a "number" field.
        Round floats to the nearest integer; reject booleans and strings.
        """
        if isinstance(v, (bool, str)):
            raise ValueError("score must be a number")
        if isinstance(v, float):
            if not math.isfinite(v):
                raise ValueError("score must be finite")
            return int(round(v))
        return v


class HistoryEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: str
    assessment: Assessment
    symptoms: SymptomRecord


FALLBACK_ASSESSMENT = Assessment(
    decision="REST",
    reason="解析に失敗しましたが、症状を考慮し大事をとって休養を推奨します。",
    aiAdvice="水分を十分に摂り、暖かくして安静にしてください。症状が悪化する場合は早めの受診を検討してください。",
    reportDraft=(
        "お疲れ様です。体調不良のため、本日はお休みをいただけますでしょうか。"
        "予定していた業務については、別途Slack等で共有させていただきます。"
        "ご迷惑をおかけし申し訳ございません。"
    ),
    score=50,
)
