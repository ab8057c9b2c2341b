import os
import sys
import unittest
from datetime import datetime

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..', '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from cesizen.backend.app import stress_engine
from cesizen.backend.app.stress_catalog import default_catalog
from cesizen.backend.app.stress_engine import (
    DiagnosticSubmission,
    EventCategory,
    InvalidSubmission,
    RiskTier,
    StressEvent,
)


def find_by_label(catalog, label):
    return next(event for event in catalog.values() if event.label == label)


def catalog_of(*weights):
    return {
        index: StressEvent(id=index, label=f"event {index}", weight=weight, category=EventCategory.PERSONNEL)
        for index, weight in enumerate(weights, start=1)
    }


class ThresholdTests(unittest.TestCase):
    def test_boundaries(self):
        self.assertEqual(stress_engine.classify_score(149), RiskTier.LOW)
        self.assertEqual(stress_engine.classify_score(150), RiskTier.MODERATE)
        self.assertEqual(stress_engine.classify_score(299), RiskTier.MODERATE)
        self.assertEqual(stress_engine.classify_score(300), RiskTier.HIGH)

    def test_selection_sums_hit_boundaries(self):
        catalog = catalog_of(100, 49, 1, 149)
        self.assertEqual(stress_engine.score([1, 2], catalog).risk_tier, RiskTier.LOW)
        self.assertEqual(stress_engine.score([1, 2, 3], catalog).risk_tier, RiskTier.MODERATE)
        self.assertEqual(stress_engine.score([1, 2, 3, 4], catalog).total_score, 299)
        self.assertEqual(stress_engine.score([1, 2, 3, 4], catalog).risk_tier, RiskTier.MODERATE)

    def test_labels_and_interpretations(self):
        self.assertEqual(RiskTier.LOW.label, "Faible risque")
        self.assertEqual(RiskTier.MODERATE.label, "Risque modéré")
        self.assertEqual(RiskTier.HIGH.label, "Risque élevé")
        self.assertIn("plus de 80%", RiskTier.HIGH.interpretation)


class ScoreTests(unittest.TestCase):
    def setUp(self):
        self.catalog = default_catalog()

    def ids(self, *labels):
        return [find_by_label(self.catalog, label).id for label in labels]

    def test_widowed_divorced_dismissed_is_moderate(self):
        result = stress_engine.score(self.ids("Décès du conjoint", "Divorce", "Licenciement"), self.catalog)
        self.assertEqual(result.total_score, 220)
        self.assertEqual(result.risk_tier, RiskTier.MODERATE)
        self.assertEqual([e.label for e in result.selected_events], ["Décès du conjoint", "Divorce", "Licenciement"])

    def test_holidays_only_is_low(self):
        result = stress_engine.score(self.ids("Vacances"), self.catalog)
        self.assertEqual(result.total_score, 13)
        self.assertEqual(result.risk_tier, RiskTier.LOW)

    def test_299_then_any_event_tips_to_high(self):
        base = self.ids("Décès du conjoint", "Divorce", "Emprisonnement", "Décès d'un proche parent")
        result = stress_engine.score(base, self.catalog)
        self.assertEqual(result.total_score, 299)
        self.assertEqual(result.risk_tier, RiskTier.MODERATE)
        tipped = stress_engine.score(base + self.ids("Petite infraction légale"), self.catalog)
        self.assertEqual(tipped.risk_tier, RiskTier.HIGH)

    def test_total_is_sum_of_weights(self):
        ids = list(self.catalog)[::3]
        result = stress_engine.score(ids, self.catalog)
        self.assertEqual(result.total_score, sum(self.catalog[i].weight for i in ids))

    def test_deterministic(self):
        ids = self.ids("Divorce", "Mariage")
        first = stress_engine.score(ids, self.catalog)
        second = stress_engine.score(ids, self.catalog)
        self.assertEqual(
            (first.total_score, first.risk_tier, first.interpretation),
            (second.total_score, second.risk_tier, second.interpretation),
        )

    def test_unknown_ids_are_dropped(self):
        valid = self.ids("Retraite")[0]
        with_unknown = stress_engine.score([valid, 9999], self.catalog)
        alone = stress_engine.score([valid], self.catalog)
        self.assertEqual(with_unknown.total_score, alone.total_score)
        self.assertEqual(with_unknown.selected_events, alone.selected_events)

    def test_duplicates_count_once(self):
        valid = self.ids("Retraite")[0]
        result = stress_engine.score([valid, valid, valid], self.catalog)
        self.assertEqual(result.total_score, 45)
        self.assertEqual(len(result.selected_events), 1)

    def test_empty_selection_rejected(self):
        with self.assertRaises(InvalidSubmission):
            stress_engine.score([], self.catalog)

    def test_only_unknown_ids_rejected(self):
        with self.assertRaises(InvalidSubmission) as ctx:
            stress_engine.score([9999], self.catalog)
        self.assertEqual(ctx.exception.unknown_ids, [9999])

    def test_strict_mode_rejects_unknown(self):
        valid = self.ids("Retraite")[0]
        with self.assertRaises(InvalidSubmission):
            stress_engine.score([valid, 9999], self.catalog, strict_ids=True)

    def test_injected_timestamp(self):
        now = datetime(2024, 1, 15, 9, 30)
        result = stress_engine.score(self.ids("Vacances"), self.catalog, now=now)
        self.assertEqual(result.created_at, now)
        self.assertEqual(result.to_dict()["created_at"], "2024-01-15T09:30:00")

    def test_submission_wrapper(self):
        submission = DiagnosticSubmission.from_ids(self.ids("Divorce", "Divorce", "Vacances"), user_id=7)
        result = stress_engine.score_submission(submission, self.catalog)
        self.assertEqual(result.total_score, 86)
        self.assertEqual(submission.user_id, 7)

    def test_submission_keeps_caller_order(self):
        ids = self.ids("Vacances", "Décès du conjoint", "Vacances", "Divorce")
        submission = DiagnosticSubmission.from_ids(ids)
        self.assertEqual(submission.selected_event_ids, (ids[0], ids[1], ids[3]))
        result = stress_engine.score_submission(submission, self.catalog)
        self.assertEqual(
            [e.label for e in result.selected_events],
            ["Vacances", "Décès du conjoint", "Divorce"],
        )


class StressEventTests(unittest.TestCase):
    def test_non_positive_weight_rejected(self):
        with self.assertRaises(ValueError):
            StressEvent(id=1, label="x", weight=0)


if __name__ == "__main__":
    unittest.main()
