import copy
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List

from selfcheck.guide import GENDER_LABELS, SEVERITY_LABELS, SYMPTOM_NAMES
from selfcheck.schemas import (
    DECISIONS,
    MENTAL_FIELDS,
    PHYSICAL_FIELDS,
    SymptomRecord,
    WorkContext,
    severity_rank,
)

FEVER_THRESHOLD = 37.5
BURNOUT_MIN_DIMENSIONS = 2

OUTPUT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "decision": {
            "type": "string",
            "enum": list(DECISIONS),
            "description": "DecisionResult enum value: OFFICE, REMOTE, REST, HOSPITAL",
        },
        "reason": {
            "type": "string",
            "description": "Logical reason for the decision in Japanese.",
        },
        "aiAdvice": {
            "type": "string",
            "description": "Symptom-specific personalized self-care advice in Japanese.",
        },
        "reportDraft": {
            "type": "string",
            "description": "Professional business reporting message with impact details in Japanese.",
        },
        "score": {
            "type": "number",
            "minimum": 0,
            "maximum": 100,
            "description": "Severity score from 0 to 100.",
        },
    },
    "required": ["decision", "reason", "aiAdvice", "reportDraft", "score"],
}

PROMPT_TEMPLATE = """
以下の体調と仕事の状況に基づいて、出社すべきか、リモートにすべきか、休むべきかを客観的に判断してください。

【体調データ】
- 性別: {gender}
- 体温: {fever}
{physical}
- その他: {other}

【メンタルの状態】
{mental}

【仕事の背景】
- リモートワーク可能環境: {can_remote}
- 代替のきかない重要な会議: {urgent_meeting}
- 部署の繁忙状況: {peak_period}

---

【出力項目1: 判断 (decision & reason)】
{heuristics}

【出力項目2: パーソナライズされたアドバイス (aiAdvice)】
- ユーザーが入力した具体的な症状に直結するセルフケア方法を提案してください。
  - 例: 喉の痛みがあるなら「加湿器の利用やハチミツ」、熱があるなら「太い血管が通る部位（首筋や脇下）の冷却」、頭痛なら「暗い部屋での安静」など。
- 繁忙期や会議がある場合でも、健康を最優先にするよう優しく、かつ論理的に背中を押すメッセージにしてください。

【出力項目3: 上長への報告文案 (reportDraft)】
- 上長へSlackやメールでそのまま送れる、非常に丁寧でプロフェッショナルな日本ビジネス敬語の文章を作成してください。
- 構成案:
  1. 挨拶（お疲れ様です。）
  2. 自身の現状（体温、具体的な症状を簡潔に報告）
  3. 本日の勤務形態の提案（「お休みをいただきたい」「在宅勤務に切り替えたい」など）
  4. 業務への影響と対応（予定されていた会議の欠席、緊急タスクの引き継ぎ依頼、または進捗への影響）
  5. 緊急時の連絡手段（Slackは確認できる、または緊急時はお電話ください、など）
  6. 締めの言葉

【出力項目4: 症状スコア (score)】
- 体調の悪さを0（まったく問題なし）から100（非常に重い）の整数で評価してください。

出力は必ず以下のJSON形式で行ってください。

{schema}
"""

FEVER_OR_COUGH_CLAUSE = (
    "- 37.5度以上の発熱や、激しい咳がある場合は周囲への影響を鑑み「REST」または「REMOTE」を強く推奨してください。"
)
SEVERE_SYMPTOM_CLAUSE = "- 症状が重篤（SEVERE）な場合は「HOSPITAL」を提案してください。"
FATIGUE_CLAUSE = "- リモート可能であっても、倦怠感が強い場合は無理をせず「REST」とするよう判断してください。"
BURNOUT_CLAUSE = (
    "- メンタル面の項目のうち2つ以上が中程度以上の場合は、身体症状の有無にかかわらず、"
    "燃え尽き（バーンアウト）を防ぐため「REST」を推奨してください。"
)
GENDER_CLAUSE = (
    "- 性別は背景情報として考慮して構いません。ホルモンや周期に関連する可能性は、"
    "気分の落ち込みや倦怠感の解釈に限って検討してください。"
)
NEUTRAL_CLAUSE = (
    "- 目立った症状がない場合は、リモートワークの可否や会議・繁忙状況を踏まえて"
    "「OFFICE」または「REMOTE」を検討してください。"
)


@dataclass(frozen=True)
class AssessmentPrompt:
    text: str
    schema: Dict[str, Any] = field(default_factory=lambda: copy.deepcopy(OUTPUT_SCHEMA))


def _presence(flag: bool) -> str:
    return "あり" if flag else "なし"


def _severity_line(name: str, level: str) -> str:
    return f"- {SYMPTOM_NAMES[name]}: {SEVERITY_LABELS[level]} ({level})"


def decision_heuristics(symptoms: SymptomRecord) -> List[str]:
    """Guidance clauses whose triggers hold for these symptoms."""
    severities = symptoms.severities()
    clauses = []

    if symptoms.fever >= FEVER_THRESHOLD or symptoms.cough == "severe":
        clauses.append(FEVER_OR_COUGH_CLAUSE)
    if any(level == "severe" for level in severities.values()):
        clauses.append(SEVERE_SYMPTOM_CLAUSE)
    if severity_rank(symptoms.fatigue) >= severity_rank("moderate"):
        clauses.append(FATIGUE_CLAUSE)

    strained = [
        name for name in MENTAL_FIELDS
        if severity_rank(severities[name]) >= severity_rank("moderate")
    ]
    if len(strained) >= BURNOUT_MIN_DIMENSIONS:
        clauses.append(BURNOUT_CLAUSE)

    if symptoms.gender != "unspecified":
        clauses.append(GENDER_CLAUSE)

    if not clauses:
        clauses.append(NEUTRAL_CLAUSE)
    return clauses


def build_prompt(symptoms: SymptomRecord, context: WorkContext) -> AssessmentPrompt:
    """Render the symptom record and work context into the model instruction."""
    text = PROMPT_TEMPLATE.format(
        gender=GENDER_LABELS[symptoms.gender],
        fever=f"{symptoms.fever:.1f}度",
        physical="\n".join(_severity_line(name, getattr(symptoms, name)) for name in PHYSICAL_FIELDS),
        other=symptoms.other_symptoms.strip() or "特になし",
        mental="\n".join(_severity_line(name, getattr(symptoms, name)) for name in MENTAL_FIELDS),
        can_remote=_presence(context.can_remote),
        urgent_meeting=_presence(context.has_urgent_meeting),
        peak_period="繁忙期" if context.is_peak_period else "通常期",
        heuristics="\n".join(decision_heuristics(symptoms)),
        schema=json.dumps(OUTPUT_SCHEMA, indent=2),
    )
    return AssessmentPrompt(text=text.strip())
