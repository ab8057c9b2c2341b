from __future__ import annotations

import statistics
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

from .stress_engine import RiskTier

TREND_WINDOW = 3
TREND_DELTA = 20

PERIOD_DAYS = {
    "week": 7,
    "month": 30,
    "quarter": 90,
    "year": 365,
}
DEFAULT_PERIOD_DAYS = 30


def tier_label(value: object) -> str:
    if isinstance(value, RiskTier):
        return value.label
    try:
        return RiskTier(str(value)).label
    except ValueError:
        return str(value)


def compute_trend(scores: List[int]) -> str:
    """Compare the latest scores with the ones just before them.

    ``scores`` is newest first. A drop of more than 20 points between the
    two windows counts as improving, a rise of more than 20 as worsening.
    """
    if len(scores) < TREND_WINDOW * 2:
        return "insufficient_data"
    recent = statistics.mean(scores[:TREND_WINDOW])
    previous = statistics.mean(scores[TREND_WINDOW:TREND_WINDOW * 2])
    difference = recent - previous
    if difference < -TREND_DELTA:
        return "improving"
    if difference > TREND_DELTA:
        return "worsening"
    return "stable"


def most_frequent(labels: List[str]) -> Optional[str]:
    if not labels:
        return None
    counts = Counter(labels)
    best = max(counts.values())
    for label in labels:
        if counts[label] == best:
            return label
    return None


def compute_diagnostic_stats(history: List[dict]) -> dict:
    if not history:
        return {
            "total_diagnostics": 0,
            "average_score": None,
            "average_events_count": 0,
            "level_distribution": {},
            "most_frequent_level": None,
            "recent_trend": "insufficient_data",
            "last_diagnostic_date": None,
        }

    scores = [int(item["total_score"]) for item in history]
    labels = [tier_label(item["risk_tier"]) for item in history]
    events_counts = [int(item.get("events_count") or 0) for item in history]
    distribution: Dict[str, int] = {}
    for label in labels:
        distribution[label] = distribution.get(label, 0) + 1

    last_created = history[0].get("created_at")
    if isinstance(last_created, datetime):
        last_created = last_created.isoformat()

    return {
        "total_diagnostics": len(history),
        "average_score": round(statistics.mean(scores), 1),
        "average_events_count": round(sum(events_counts) / len(history)),
        "level_distribution": distribution,
        "most_frequent_level": most_frequent(labels),
        "recent_trend": compute_trend(scores),
        "last_diagnostic_date": last_created,
    }


def period_start(period: str, today: Optional[date] = None) -> date:
    today = today or date.today()
    days = PERIOD_DAYS.get((period or "").strip().lower(), DEFAULT_PERIOD_DAYS)
    return today - timedelta(days=days)


def summarize_emotions(entries: List[dict]) -> List[dict]:
    buckets: Dict[tuple, List[int]] = {}
    meta: Dict[tuple, dict] = {}
    for entry in entries:
        entry_date = entry["entry_date"]
        day = entry_date.isoformat() if isinstance(entry_date, (date, datetime)) else str(entry_date)[:10]
        key = (day, entry["emotion_name"])
        buckets.setdefault(key, []).append(int(entry["intensity"]))
        meta.setdefault(key, {"emotion_color": entry.get("emotion_color")})

    summary = []
    for (day, name), intensities in sorted(buckets.items()):
        summary.append({
            "date": day,
            "emotion_name": name,
            "emotion_color": meta[(day, name)]["emotion_color"],
            "count": len(intensities),
            "average_intensity": round(statistics.mean(intensities), 2),
        })
    return summary
