"""
Score trend over recent self-checks.

Outputs:
- a DataFrame view of the history
- the 7 most recent scores, oldest first
- a PNG line chart of those scores
"""

import sys
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional, Sequence, Union

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import pandas as pd

from selfcheck.guide import DECISION_TITLES
from selfcheck.schemas import HistoryEntry

TREND_POINTS = 7

DECISION_COLORS = {
    "OFFICE": "#10b981",
    "REMOTE": "#0ea5e9",
    "REST": "#f59e0b",
    "HOSPITAL": "#f43f5e",
}


def history_frame(entries: Sequence[HistoryEntry]) -> pd.DataFrame:
    """One row per entry, newest first (same order as the stored history)."""
    rows = [
        {
            "id": entry.id,
            "timestamp": entry.timestamp,
            "decision": entry.assessment.decision,
            "score": entry.assessment.score,
        }
        for entry in entries
    ]
    return pd.DataFrame(rows, columns=["id", "timestamp", "decision", "score"])


def trend_points(entries: Sequence[HistoryEntry], limit: int = TREND_POINTS) -> List[Dict]:
    df = history_frame(entries).head(limit).iloc[::-1]
    return [
        {
            "timestamp": row.timestamp,
            "decision": row.decision,
            "score": int(row.score),
        }
        for row in df.itertuples(index=False)
    ]


def plot_trend(
    entries: Sequence[HistoryEntry],
    output_path: Union[str, Path, BinaryIO],
    limit: int = TREND_POINTS,
) -> Optional[Union[Path, BinaryIO]]:
    """
    Draw the recent scores as a line chart, points colored by decision.
    `output_path` may also be a binary file object; the PNG is written into it.
    Returns None (and draws nothing) when there is no history.
    """
    points = trend_points(entries, limit)
    if not points:
        print("Warning: No history yet, skipping trend chart", file=sys.stderr)
        return None

    if isinstance(output_path, (str, Path)):
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

    labels = [p["timestamp"][5:16] for p in points]  # MM/DD HH:MM
    scores = [p["score"] for p in points]
    x = range(len(points))

    fig, ax = plt.subplots(figsize=(8, 4))
    ax.plot(x, scores, color="#4f46e5", linewidth=2, marker="o", zorder=1)
    ax.scatter(
        x,
        scores,
        c=[DECISION_COLORS[p["decision"]] for p in points],
        s=60,
        zorder=2,
    )
    ax.set_xticks(list(x))
    ax.set_xticklabels(labels, rotation=30, ha="right", fontsize=8)
    ax.set_ylim(0, 100)
    ax.set_ylabel("Score")
    ax.set_title(f"Last {len(points)} self-checks")
    ax.grid(axis="y", alpha=0.3)

    # Legend keyed by decision tag (ASCII, no CJK font needed).
    for decision, color in DECISION_COLORS.items():
        ax.scatter([], [], c=color, label=decision)
    ax.legend(loc="upper left", fontsize=8, frameon=False)

    plt.tight_layout()
    plt.savefig(output_path, format="png", dpi=150, bbox_inches='tight')
    plt.close(fig)
    return output_path


def decision_counts(entries: Sequence[HistoryEntry]) -> Dict[str, int]:
    df = history_frame(entries)
    counts = df["decision"].value_counts()
    return {decision: int(counts.get(decision, 0)) for decision in DECISION_TITLES}
