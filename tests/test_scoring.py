import math
import threading
import unittest
from datetime import date, datetime, timedelta, timezone

from application.services.scoring import DEFAULT_WEIGHTS, FACTORS, WeightedScoringEngine, normalize_weights
from domain.errors import ConfigurationError

from fakes import make_result

SEMANTIC_ONLY = {
    "semanticSimilarity": 1.0,
    "keywordMatch": 0.0,
    "recency": 0.0,
    "sourceQuality": 0.0,
    "contextRelevance": 0.0,
}


class TestWeights(unittest.TestCase):
    def test_defaults_sum_to_one(self):
        engine = WeightedScoringEngine()

        self.assertEqual(engine.get_weights(), DEFAULT_WEIGHTS)
        self.assertAlmostEqual(sum(engine.weights.values()), 1.0)

    def test_partial_update_is_renormalized(self):
        engine = WeightedScoringEngine()

        weights = engine.set_weights({"recency": 0.65})

        self.assertAlmostEqual(sum(weights.values()), 1.0, places=6)
        self.assertAlmostEqual(weights["recency"], 0.65 / 1.5)
        self.assertAlmostEqual(weights["semanticSimilarity"], 0.5 / 1.5)

    def test_out_of_range_values_are_clamped_with_warning(self):
        with self.assertLogs("application.services.scoring", level="WARNING"):
            weights = normalize_weights({**SEMANTIC_ONLY, "semanticSimilarity": 3.0, "recency": -1.0})

        self.assertEqual(weights["semanticSimilarity"], 1.0)
        self.assertEqual(weights["recency"], 0.0)

    def test_invalid_weights(self):
        with self.assertRaises(ConfigurationError):
            normalize_weights({"popularity": 0.3})
        with self.assertRaises(ConfigurationError):
            normalize_weights({name: 0.0 for name in FACTORS})
        with self.assertRaises(ConfigurationError):
            WeightedScoringEngine().adjust_weight("popularity", 0.1)

    def test_adjust_weight(self):
        engine = WeightedScoringEngine(SEMANTIC_ONLY)

        weights = engine.adjust_weight("keywordMatch", 1.0)

        self.assertAlmostEqual(weights["semanticSimilarity"], 0.5)
        self.assertAlmostEqual(weights["keywordMatch"], 0.5)

    def test_returned_weights_are_copies(self):
        engine = WeightedScoringEngine()

        engine.get_weights()["recency"] = 0.99

        self.assertEqual(engine.get_weights()["recency"], DEFAULT_WEIGHTS["recency"])

    def test_concurrent_updates_keep_weights_normalized(self):
        engine = WeightedScoringEngine()

        def worker(factor):
            for step in range(50):
                engine.set_weights({factor: (step % 10) / 10 + 0.05})

        threads = [threading.Thread(target=worker, args=(factor,)) for factor in FACTORS]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertAlmostEqual(sum(engine.get_weights().values()), 1.0, places=6)


class TestFactors(unittest.TestCase):
    def setUp(self):
        self.now = datetime(2024, 6, 1, 12, tzinfo=timezone.utc)

    def test_recency_decay(self):
        self.assertAlmostEqual(WeightedScoringEngine.recency(self.now, self.now), 1.0)
        year_ago = self.now - timedelta(days=365)
        self.assertAlmostEqual(WeightedScoringEngine.recency(year_ago, self.now), math.exp(-365 / 180))
        self.assertAlmostEqual(WeightedScoringEngine.recency(year_ago, self.now), 0.128, places=3)
        self.assertEqual(WeightedScoringEngine.recency(None, self.now), 0.5)

    def test_recency_input_forms(self):
        self.assertEqual(WeightedScoringEngine.recency("not a date", self.now), 0.5)
        self.assertAlmostEqual(WeightedScoringEngine.recency("2024-06-01T12:00:00Z", self.now), 1.0)
        self.assertAlmostEqual(WeightedScoringEngine.recency(date(2024, 6, 1), self.now), math.exp(-0.5 / 180))
        self.assertAlmostEqual(WeightedScoringEngine.recency(self.now.timestamp(), self.now), 1.0)

    def test_recency_floor_and_future_cap(self):
        self.assertEqual(WeightedScoringEngine.recency("2000-01-01", self.now), 0.1)
        self.assertEqual(WeightedScoringEngine.recency(self.now + timedelta(days=30), self.now), 1.0)

    def test_source_quality_first_substring_match(self):
        quality = WeightedScoringEngine.source_quality
        self.assertEqual(quality("Official Docs"), 1.0)
        self.assertEqual(quality("python-documentation"), 0.95)
        self.assertEqual(quality("research paper"), 0.9)
        self.assertEqual(quality("Tech Blog"), 0.7)
        self.assertEqual(quality("reddit forum"), 0.6)
        self.assertEqual(quality("social"), 0.5)
        self.assertEqual(quality("newsletter"), 0.5)
        self.assertEqual(quality(None), 0.5)


class TestScoreDocument(unittest.TestCase):
    def test_semantic_only_weights_reproduce_raw_scores(self):
        engine = WeightedScoringEngine(SEMANTIC_ONLY)

        high = engine.score_document(make_result("a", "alpha", 0.8), keyword_match=1.0, context_relevance=1.0)
        low = engine.score_document(make_result("b", "beta", 0.3))

        self.assertEqual(high.weighted_score, 0.8)
        self.assertEqual(low.weighted_score, 0.3)

    def test_breakdown_and_original_score(self):
        engine = WeightedScoringEngine()
        now = datetime(2024, 6, 1, tzinfo=timezone.utc)
        result = make_result("a", "alpha", 0.6, {"source": "official", "date": "2024-06-01"})

        scored = engine.score_document(result, keyword_match=0.5, context_relevance=0.5, now=now)

        expected = 0.6 * 0.5 + 0.5 * 0.2 + 1.0 * 0.15 + 1.0 * 0.1 + 0.5 * 0.05
        self.assertAlmostEqual(scored.weighted_score, expected)
        self.assertEqual(scored.original_score, 0.6)
        self.assertEqual(scored.keyword_match, 0.5)
        self.assertEqual(set(scored.score_breakdown), set(FACTORS))
        self.assertAlmostEqual(scored.score_breakdown["recency"].contribution, 0.15)
        self.assertIsNone(result.weighted_score)

    def test_call_weights_do_not_change_engine(self):
        engine = WeightedScoringEngine()

        scored = engine.score_document(make_result("a", "alpha", 0.4), weights=SEMANTIC_ONLY)

        self.assertAlmostEqual(scored.weighted_score, 0.4)
        self.assertEqual(engine.get_weights(), DEFAULT_WEIGHTS)


if __name__ == "__main__":
    unittest.main()
