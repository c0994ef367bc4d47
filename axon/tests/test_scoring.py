import unittest

from axon.training.scoring import (
    PerformanceLevel, calculate_accuracy, calculate_score, classify_recall,
    performance_level, score_recall
)


class TestScore(unittest.TestCase):
    """Score and accuracy arithmetic."""

    def test_score_rounds_percentage(self):
        self.assertEqual(calculate_score(5, 2), 40)
        self.assertEqual(calculate_score(3, 2), 67)
        self.assertEqual(calculate_score(8, 1), 13)  # 12.5 rounds up

    def test_score_with_nothing_presented(self):
        self.assertEqual(calculate_score(0, 0), 0)

    def test_score_stays_in_bounds(self):
        self.assertEqual(calculate_score(4, 4), 100)
        self.assertEqual(calculate_score(4, 0), 0)

    def test_accuracy_untracked_is_none(self):
        self.assertIsNone(calculate_accuracy(None, None))
        self.assertIsNone(calculate_accuracy(3, None))

    def test_accuracy_tracked_without_attempts(self):
        self.assertEqual(calculate_accuracy(0, 0), 0)

    def test_accuracy_rounds(self):
        self.assertEqual(calculate_accuracy(2, 1), 67)
        self.assertEqual(calculate_accuracy(5, 0), 100)


class TestPerformanceLevel(unittest.TestCase):

    def test_boundaries(self):
        cases = {
            100: PerformanceLevel.EXCELLENT,
            90: PerformanceLevel.EXCELLENT,
            89: PerformanceLevel.GOOD,
            75: PerformanceLevel.GOOD,
            74: PerformanceLevel.FAIR,
            60: PerformanceLevel.FAIR,
            59: PerformanceLevel.POOR,
            0: PerformanceLevel.POOR,
        }
        for score, expected in cases.items():
            with self.subTest(score=score):
                self.assertEqual(performance_level(score), expected)

    def test_fractional_scores(self):
        self.assertEqual(performance_level(89.9), PerformanceLevel.GOOD)
        self.assertEqual(performance_level(59.99), PerformanceLevel.POOR)


class TestRecallClassification(unittest.TestCase):

    def test_word_memory_example(self):
        presented = ["apple", "banana", "cherry", "dragon", "elephant"]
        card = score_recall(presented, ["apple", "banana", "orange"])

        self.assertEqual(card.classification.correct, ["apple", "banana"])
        self.assertEqual(card.classification.incorrect, ["orange"])
        self.assertEqual(card.classification.missed, ["cherry", "dragon", "elephant"])
        self.assertEqual(card.score, 40)
        self.assertEqual(card.accuracy, 67)
        self.assertEqual(card.level, PerformanceLevel.POOR)

    def test_comparison_ignores_case_and_whitespace(self):
        result = classify_recall(["Apple", "Tiger"], ["  apple ", "TIGER"])
        self.assertEqual(result.correct, ["apple", "tiger"])
        self.assertEqual(result.incorrect, [])
        self.assertEqual(result.missed, [])

    def test_nothing_recalled(self):
        card = score_recall(["apple", "pear"], [])
        self.assertEqual(card.score, 0)
        self.assertEqual(card.accuracy, 0)
        self.assertEqual(card.missed_count, 2)


if __name__ == "__main__":
    unittest.main()
