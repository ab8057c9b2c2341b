import unittest
from datetime import date, datetime

from cesizen.backend.app import history_insights


def record(score, tier, events=3, created_at=None):
    return {
        "total_score": score,
        "risk_tier": tier,
        "events_count": events,
        "created_at": created_at or datetime(2024, 5, 1, 12, 0),
    }


class DiagnosticStatsTests(unittest.TestCase):
    def test_empty_history(self):
        stats = history_insights.compute_diagnostic_stats([])
        self.assertEqual(stats["total_diagnostics"], 0)
        self.assertEqual(stats["recent_trend"], "insufficient_data")
        self.assertIsNone(stats["most_frequent_level"])

    def test_distribution_and_most_frequent(self):
        history = [
            record(320, "High", events=6, created_at=datetime(2024, 5, 3)),
            record(180, "Moderate", events=4),
            record(200, "Moderate", events=2),
            record(90, "Low", events=1),
        ]
        stats = history_insights.compute_diagnostic_stats(history)
        self.assertEqual(stats["level_distribution"], {"Risque élevé": 1, "Risque modéré": 2, "Faible risque": 1})
        self.assertEqual(stats["most_frequent_level"], "Risque modéré")
        self.assertEqual(stats["average_events_count"], 3)
        self.assertEqual(stats["average_score"], 197.5)
        self.assertEqual(stats["last_diagnostic_date"], "2024-05-03T00:00:00")

    def test_trend_needs_six_records(self):
        self.assertEqual(history_insights.compute_trend([100, 100, 100, 100, 100]), "insufficient_data")

    def test_trend_directions(self):
        self.assertEqual(history_insights.compute_trend([100, 100, 100, 200, 200, 200]), "improving")
        self.assertEqual(history_insights.compute_trend([250, 250, 250, 100, 100, 100]), "worsening")
        self.assertEqual(history_insights.compute_trend([110, 100, 100, 100, 100, 100]), "stable")

    def test_tie_goes_to_most_recent_label(self):
        self.assertEqual(history_insights.most_frequent(["Faible risque", "Risque élevé"]), "Faible risque")


class EmotionSummaryTests(unittest.TestCase):
    def test_period_start(self):
        today = date(2024, 3, 31)
        self.assertEqual(history_insights.period_start("week", today), date(2024, 3, 24))
        self.assertEqual(history_insights.period_start("bogus", today), date(2024, 3, 1))

    def test_groups_by_day_and_emotion(self):
        entries = [
            {"emotion_name": "Joie", "emotion_color": "#FFD700", "intensity": 6, "entry_date": date(2024, 3, 2)},
            {"emotion_name": "Joie", "emotion_color": "#FFD700", "intensity": 8, "entry_date": date(2024, 3, 2)},
            {"emotion_name": "Calme", "emotion_color": "#20B2AA", "intensity": 4, "entry_date": date(2024, 3, 1)},
        ]
        summary = history_insights.summarize_emotions(entries)
        self.assertEqual([row["date"] for row in summary], ["2024-03-01", "2024-03-02"])
        joy = summary[1]
        self.assertEqual(joy["count"], 2)
        self.assertEqual(joy["average_intensity"], 7)


if __name__ == "__main__":
    unittest.main()
