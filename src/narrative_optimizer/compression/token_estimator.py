"""Heuristic token counting.

No tokenizer library is involved; counts are approximations tuned for
mixed Korean/English narrative prompts.
"""

import math
import re

# Kana, CJK ideographs (incl. extension A) and Hangul syllables
_CJK = "\u3040-\u30ff\u3400-\u4dbf\u4e00-\u9fff\uac00-\ud7a3"

_CJK_CHAR_RE = re.compile(f"[{_CJK}]")
_LATIN_WORD_RE = re.compile(r"[a-zA-Z]+")
_DIGIT_RUN_RE = re.compile(r"\d+")
_PUNCT_RE = re.compile(r"[^\w\s]")
_LATIN_RE = re.compile(r"[a-zA-Z]")


class TokenEstimator:
    """Language-aware token estimator."""

    CJK_CHAR_RATIO = 0.7
    LATIN_WORD_RATIO = 0.75
    DIGIT_RUN_RATIO = 0.5
    PUNCTUATION_RATIO = 0.3

    def estimate(self, text: str) -> int:
        """Fast estimate, rounded up.

        Args:
            text: Any text

        Returns:
            Approximate token count (0 for empty text)
        """
        if not text:
            return 0

        tokens = (
            len(_CJK_CHAR_RE.findall(text)) * self.CJK_CHAR_RATIO
            + len(_LATIN_WORD_RE.findall(text)) * self.LATIN_WORD_RATIO
            + len(_DIGIT_RUN_RE.findall(text)) * self.DIGIT_RUN_RATIO
            + len(_PUNCT_RE.findall(text)) * self.PUNCTUATION_RATIO
        )
        return math.ceil(tokens)

    def estimate_precise(self, text: str) -> int:
        """Slower estimate that approximates sub-word tokenization.

        Used where cost prediction matters more than speed.
        """
        if not text:
            return 0

        total = 0
        for token in _PUNCT_RE.sub(r" \g<0> ", text).split():
            if _CJK_CHAR_RE.search(token):
                total += math.ceil(len(token) / 2.5)
            elif _LATIN_RE.search(token):
                total += max(1, math.ceil(len(token) / 4))
            else:
                total += 1
        return total

    def reduction_percent(self, original: str, compressed: str) -> float:
        """Achieved size reduction of ``compressed`` relative to ``original``."""
        original_tokens = self.estimate(original)
        if original_tokens == 0:
            return 0.0
        return (original_tokens - self.estimate(compressed)) / original_tokens * 100
