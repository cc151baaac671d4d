"""Compression fidelity scoring."""

import re
from collections import Counter

from narrative_optimizer.entities import QualityMetrics, QualityScore

SEMANTIC_WEIGHT = 0.4
KEYWORD_WEIGHT = 0.4
STRUCTURE_WEIGHT = 0.2

MAX_KEYWORDS = 10

STOPWORDS = frozenset(
    {
        # Korean particles and light verbs
        "이", "가", "을", "를", "에", "의", "로", "와", "과", "도", "는", "은",
        "이다", "있다", "없다", "한다", "된다", "하다", "되다", "것", "수", "때",
        # English
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
        "of", "with", "by", "is", "are", "was", "were", "be", "been", "have",
        "has", "had", "do", "does", "did", "will", "would", "could", "should",
        "it", "its", "this", "that", "as", "from", "into", "their", "they",
    }
)

_NON_WORD_RE = re.compile(r"[^\w\s]")
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]")


def extract_words(text: str) -> list[str]:
    """Lower-cased words longer than one character, punctuation stripped."""
    return [w for w in _NON_WORD_RE.sub(" ", text.lower()).split() if len(w) > 1]


def extract_keywords(text: str) -> list[str]:
    """Non-stopword words seen at least twice, most frequent first."""
    frequency = Counter(w for w in extract_words(text) if w not in STOPWORDS)
    return [word for word, count in frequency.most_common() if count >= 2][:MAX_KEYWORDS]


def split_sentences(text: str) -> list[str]:
    return [s for s in _SENTENCE_SPLIT_RE.split(text) if s.strip()]


class QualityValidator:
    """Scores how much of the original survives a transformation.

    ``score = 0.4 * semantic_similarity + 0.4 * keyword_preservation
    + 0.2 * structure_integrity``, each metric in [0, 1].
    """

    def validate(self, original: str, compressed: str) -> QualityScore:
        metrics = QualityMetrics(
            semantic_similarity=self.semantic_similarity(original, compressed),
            keyword_preservation=self.keyword_preservation(original, compressed),
            structure_integrity=self.structure_integrity(original, compressed),
        )
        score = (
            metrics.semantic_similarity * SEMANTIC_WEIGHT
            + metrics.keyword_preservation * KEYWORD_WEIGHT
            + metrics.structure_integrity * STRUCTURE_WEIGHT
        )
        return QualityScore(score=min(1.0, max(0.0, score)), metrics=metrics)

    def semantic_similarity(self, original: str, compressed: str) -> float:
        """Jaccard similarity of the two word sets."""
        original_words = set(extract_words(original))
        compressed_words = set(extract_words(compressed))
        union = original_words | compressed_words
        if not union:
            return 1.0
        return len(original_words & compressed_words) / len(union)

    def keyword_preservation(self, original: str, compressed: str) -> float:
        keywords = extract_keywords(original)
        if not keywords:
            return 1.0
        remaining = set(extract_words(compressed))
        return sum(1 for k in keywords if k in remaining) / len(keywords)

    def structure_integrity(self, original: str, compressed: str) -> float:
        """Blend of sentence-count ratio and average sentence length similarity."""
        original_sentences = split_sentences(original)
        compressed_sentences = split_sentences(compressed)
        if not original_sentences:
            return 1.0 if not compressed_sentences else 0.0
        if not compressed_sentences:
            return 0.0

        sentence_ratio = min(1.0, len(compressed_sentences) / len(original_sentences))

        original_avg = sum(len(s) for s in original_sentences) / len(original_sentences)
        compressed_avg = sum(len(s) for s in compressed_sentences) / len(compressed_sentences)
        longest = max(original_avg, compressed_avg)
        length_similarity = 1 - abs(original_avg - compressed_avg) / longest if longest else 1.0

        return (sentence_ratio + length_similarity) / 2
