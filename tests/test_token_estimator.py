"""
Tests for heuristic token counting.
"""

from narrative_optimizer.compression import TokenEstimator


class TestTokenEstimator:
    def setup_method(self):
        self.estimator = TokenEstimator()

    def test_empty_text(self):
        assert self.estimator.estimate("") == 0
        assert self.estimator.estimate_precise("") == 0

    def test_latin_words(self):
        assert self.estimator.estimate("hello world") == 2

    def test_hangul(self):
        assert self.estimator.estimate("안녕하세요") == 4

    def test_digits_and_punctuation(self):
        # 0.75 word + 0.5 digit run + 0.3 punctuation, rounded up
        assert self.estimator.estimate("abc 123!") == 2

    def test_estimate_is_monotonic_in_content(self):
        short = "The stranger opened the door."
        longer = short + " Behind it, the corridor stretched into darkness."

        assert self.estimator.estimate(longer) > self.estimator.estimate(short)

    def test_precise_latin(self):
        assert self.estimator.estimate_precise("tokenization") == 3
        assert self.estimator.estimate_precise("hi") == 1

    def test_precise_splits_punctuation(self):
        assert self.estimator.estimate_precise("Hi, 42") == 3

    def test_precise_hangul(self):
        assert self.estimator.estimate_precise("안녕하세요") == 2

    def test_reduction_percent(self):
        original = "one two three four five six seven eight"

        assert self.estimator.reduction_percent(original, "one two three four") == 50.0

    def test_reduction_of_empty_original(self):
        assert self.estimator.reduction_percent("", "anything") == 0.0
