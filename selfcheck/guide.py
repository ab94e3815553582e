"""
Display text for the self-check: severity labels, per-symptom guides,
decision titles and the rendered result block.
"""

from typing import Dict, List

from selfcheck.schemas import Assessment

SEVERITY_LABELS: Dict[str, str] = {
    "none": "なし",
    "mild": "軽い",
    "moderate": "中程度",
    "severe": "重い",
}

GENDER_LABELS: Dict[str, str] = {
    "male": "男性",
    "female": "女性",
    "other": "その他",
    "unspecified": "未回答",
}

# Short names used inside the model prompt.
SYMPTOM_NAMES: Dict[str, str] = {
    "cough": "咳",
    "fatigue": "倦怠感",
    "headache": "頭痛",
    "sore_throat": "喉の痛み",
    "mental_stress": "ストレス",
    "mood_depression": "気分の落ち込み",
    "sleep_quality": "睡眠の質の低下",
}

# Labels shown next to the severity selectors.
SYMPTOM_FORM_LABELS: Dict[str, str] = {
    "cough": "咳・呼吸器症状",
    "fatigue": "全身の倦怠感",
    "headache": "頭痛",
    "sore_throat": "喉の痛み",
    "mental_stress": "仕事や生活のストレス",
    "mood_depression": "気分の落ち込み",
    "sleep_quality": "睡眠の質の低下",
}

WORK_CONTEXT_LABELS: Dict[str, str] = {
    "can_remote": "自宅からリモートワークが可能",
    "has_urgent_meeting": "今日、代わりがきかない重要な会議がある",
    "is_peak_period": "現在、部署全体が繁忙期である",
}

SYMPTOM_GUIDE: Dict[str, Dict[str, str]] = {
    "cough": {
        "none": "症状はありません。",
        "mild": "時々出る程度で、会話やデスクワークに支障はありません。",
        "moderate": "頻繁に出て、少し息苦しさや会話のしづらさを感じます。",
        "severe": "激しい咳が続き、呼吸が苦しい、または胸の痛みがあります。",
    },
    "fatigue": {
        "none": "症状はありません。",
        "mild": "体が少し重く感じますが、日常生活は問題なく送れます。",
        "moderate": "動くのが億劫で、集中力が低下し、座っているのがやっとです。",
        "severe": "非常に体が重く、起き上がって活動を続けるのが困難な状態です。",
    },
    "headache": {
        "none": "症状はありません。",
        "mild": "頭に違和感がある程度で、薬を飲まずに過ごせます。",
        "moderate": "痛みで仕事に集中できず、鎮痛剤が必要な状態です。",
        "severe": "激しい痛みがあり、吐き気やめまいを伴う、または動けません。",
    },
    "sore_throat": {
        "none": "症状はありません。",
        "mild": "喉に少し違和感やイガイガ感がありますが、食事は普通に取れます。",
        "moderate": "飲み込む時に痛みがあり、固形物の食事が少し辛い状態です。",
        "severe": "唾を飲み込むのも激痛が走り、声が出しにくい状態です。",
    },
    "mental_stress": {
        "none": "特にストレスは感じていません。",
        "mild": "多少の緊張感はありますが、気分転換で切り替えられます。",
        "moderate": "常に追われている感覚があり、休日も仕事のことが頭から離れません。",
        "severe": "強い不安や焦りで動悸がしたり、仕事のことを考えるだけで辛い状態です。",
    },
    "mood_depression": {
        "none": "気分の落ち込みはありません。",
        "mild": "少し気分が沈みますが、好きなことは楽しめます。",
        "moderate": "何をしても楽しいと感じにくく、やる気が出ない日が続いています。",
        "severe": "一日中気分が沈み、日常的なことにも手が付けられない状態です。",
    },
    "sleep_quality": {
        "none": "よく眠れています。",
        "mild": "寝つきが悪い日が時々ありますが、日中は問題なく過ごせます。",
        "moderate": "夜中に何度も目が覚め、日中に強い眠気や疲れが残ります。",
        "severe": "ほとんど眠れない日が続き、日中の活動に大きな支障があります。",
    },
}

DECISION_TITLES: Dict[str, str] = {
    "OFFICE": "通常通り出社",
    "REMOTE": "リモートワーク推奨",
    "REST": "休暇・休養を推奨",
    "HOSPITAL": "医療機関への相談を推奨",
}

DISCLAIMER = (
    "免責事項: この判定は医学的根拠に基づくものではなく、あくまで一般的なガイドラインと"
    "AIの推論による補助ツールです。最終的な判断は自身の責任または医師の指示に従ってください。"
)


def severity_options() -> List[Dict[str, str]]:
    return [{"label": label, "value": value} for value, label in SEVERITY_LABELS.items()]


def render_result(assessment: Assessment) -> str:
    """Text block shown after an assessment: title, score, reason, advice and report draft."""
    lines = [
        f"【{DECISION_TITLES[assessment.decision]}】",
        f"症状スコア: {assessment.score} / 100",
        "",
        assessment.reason,
        "",
        "AIアドバイス:",
        assessment.aiAdvice,
        "",
        "報告用メッセージ案:",
        assessment.reportDraft,
        "",
        DISCLAIMER,
    ]
    return "\n".join(lines)
