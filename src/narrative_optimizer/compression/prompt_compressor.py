"""Staged, quality-gated prompt compression.

Three reduction stages run in order, each only when the previous ones fell
short of the target:

1. Redundancy removal: whitespace and punctuation runs, connectives,
   stacked intensifiers.
2. Structural optimization: run-on splitting, hedge removal, double
   negatives, wordy phrasings.
3. Keyword-priority pruning: keep the best-scoring sentences.

The staged result is then scored by the QualityValidator. Below the
configured minimum it is discarded for a conservative fallback.
"""

import logging
import math
import re
from collections import Counter

from narrative_optimizer.config import CompressionConfig
from narrative_optimizer.entities import CompressedPrompt

from .quality_validator import STOPWORDS, QualityValidator, extract_words, split_sentences
from .token_estimator import TokenEstimator

logger = logging.getLogger(__name__)

FALLBACK_TARGET_FACTOR = 0.7
AGGRESSIVE_FALLBACK_THRESHOLD = 20

_WHITESPACE_RE = re.compile(r"\s+")
_PUNCT_RUN_RE = re.compile(r"[,.!?]{2,}")

_CONNECTIVES_RE = re.compile(
    r"(?:\b(?:additionally|furthermore|moreover|in addition),?\s+"
    r"|(?<!\S)(?:그리고|또한|더불어|아울러)\s+)",
    re.IGNORECASE,
)
_FALLBACK_CONNECTIVES_RE = re.compile(
    r"(?:\b(?:also|additionally|furthermore|moreover),?\s+"
    r"|(?<!\S)(?:그런데|그러나|하지만|또한|그리고)\s+)",
    re.IGNORECASE,
)

_INTENSIFIER = r"(?:very|really|extremely|truly|매우|정말|굉장히|너무)"
_STACKED_INTENSIFIERS_RE = re.compile(
    rf"(?<!\S)({_INTENSIFIER})\s+{_INTENSIFIER}\s+", re.IGNORECASE
)
_INTENSIFIERS_RE = re.compile(rf"(?<!\S){_INTENSIFIER}\s+", re.IGNORECASE)

_HEDGES_RE = re.compile(
    r"(?:\b(?:perhaps|maybe|possibly|probably|somewhat|kind of|sort of)\s+"
    r"|(?<!\S)(?:아마도|혹시|만약에|아마)\s+)",
    re.IGNORECASE,
)

_RUN_ON_RE = re.compile(r"([^.!?]{100,}?)([,:;])\s+")
_DOUBLE_NEGATIVE_EN_RE = re.compile(r"\bnot un(\w+)", re.IGNORECASE)
_DOUBLE_NEGATIVE_KO_RE = re.compile(r"(?:않지 않다|아니지 않다)")
_WORDY_PHRASES = (
    (re.compile(r"\bin order to\b", re.IGNORECASE), "to"),
    (re.compile(r"\bis able to\b", re.IGNORECASE), "can"),
    (re.compile(r"\bare able to\b", re.IGNORECASE), "can"),
    (re.compile(r"\bdue to the fact that\b", re.IGNORECASE), "because"),
)


def normalize_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


class PromptCompressor:
    """Reduces prompt size while keeping a minimum fidelity.

    Example:
        ```python
        compressor = create_compressor(CompressionConfig(target_reduction_percent=30))
        result = compressor.compress(prompt)
        result.compressed, result.quality, result.fallback_used
        ```
    """

    def __init__(
        self,
        estimator: TokenEstimator,
        validator: QualityValidator,
        config: CompressionConfig,
    ) -> None:
        self._estimator = estimator
        self._validator = validator
        self._config = config

    @property
    def config(self) -> CompressionConfig:
        return self._config

    def estimate_tokens(self, text: str) -> int:
        return self._estimator.estimate(text)

    def compress(self, prompt: str, target_reduction_percent: float | None = None) -> CompressedPrompt:
        """Compress a prompt towards a target reduction.

        Args:
            prompt: Prompt to compress
            target_reduction_percent: Desired reduction in percent. If None,
                uses the configured target.

        Returns:
            CompressedPrompt. ``compression_ratio`` is the measured reduction,
            which is smaller than requested whenever the fallback was used.
        """
        target = (
            self._config.target_reduction_percent
            if target_reduction_percent is None
            else target_reduction_percent
        )

        compressed = self.remove_redundancy(prompt)
        reduction = self._reduction(prompt, compressed)

        if reduction < target:
            compressed = self.optimize_structure(compressed)
            reduction = self._reduction(prompt, compressed)

        if reduction < target:
            compressed = self.prune_by_keywords(compressed, target - reduction)

        quality = self._validator.validate(prompt, compressed).score
        fallback_used = False

        if self._config.preserve_quality and quality < self._config.min_quality_score:
            staged_quality = quality
            fallback_used = True
            compressed = self.fallback_compression(prompt, target * FALLBACK_TARGET_FACTOR)
            quality = self._validator.validate(prompt, compressed).score

            if quality < self._config.min_quality_score:
                compressed = normalize_whitespace(prompt)
                quality = self._validator.validate(prompt, compressed).score

            logger.info(
                "Compression quality %.2f below %.2f, fallback scored %.2f",
                staged_quality,
                self._config.min_quality_score,
                quality,
            )

        original_tokens = self._estimator.estimate(prompt)
        final_tokens = self._estimator.estimate(compressed)

        return CompressedPrompt(
            original=prompt,
            compressed=compressed,
            tokens_saved=original_tokens - final_tokens,
            compression_ratio=self._reduction(prompt, compressed),
            quality=quality,
            fallback_used=fallback_used,
        )

    def remove_redundancy(self, text: str) -> str:
        text = _WHITESPACE_RE.sub(" ", text)
        text = _PUNCT_RUN_RE.sub(lambda m: m.group(0)[0], text)
        text = _CONNECTIVES_RE.sub("", text)
        text = _STACKED_INTENSIFIERS_RE.sub(r"\1 ", text)
        return text.strip()

    def optimize_structure(self, text: str) -> str:
        text = _RUN_ON_RE.sub(r"\1. ", text)
        text = _HEDGES_RE.sub("", text)
        text = _DOUBLE_NEGATIVE_EN_RE.sub(r"\1", text)
        text = _DOUBLE_NEGATIVE_KO_RE.sub("맞다", text)
        for pattern, replacement in _WORDY_PHRASES:
            text = pattern.sub(replacement, text)
        return text.strip()

    def prune_by_keywords(self, text: str, reduction_percent: float) -> str:
        """Keep the sentences richest in frequent keywords.

        Sentences are scored by the summed frequency of the keywords they
        contain. Kept sentences stay in their original order.
        """
        sentences = [s.strip() for s in split_sentences(text)]
        if not sentences:
            return text

        frequency = Counter(w for w in extract_words(text) if w not in STOPWORDS)
        scores = [
            sum(frequency[w] for w in set(extract_words(sentence)))
            for sentence in sentences
        ]

        keep_ratio = max(0.0, 1 - reduction_percent / 100)
        keep_count = max(1, math.floor(len(sentences) * keep_ratio))

        ranked = sorted(range(len(sentences)), key=lambda i: scores[i], reverse=True)
        kept = sorted(ranked[:keep_count])

        return ". ".join(sentences[i] for i in kept) + "."

    def fallback_compression(self, text: str, reduction_percent: float) -> str:
        """Conservative reduction: whitespace and low-information words only."""
        result = normalize_whitespace(text)
        result = _FALLBACK_CONNECTIVES_RE.sub("", result)

        if reduction_percent > AGGRESSIVE_FALLBACK_THRESHOLD:
            result = _HEDGES_RE.sub("", result)
            result = _INTENSIFIERS_RE.sub("", result)

        return result.strip()

    def _reduction(self, original: str, compressed: str) -> float:
        return self._estimator.reduction_percent(original, compressed)


def create_compressor(config: CompressionConfig | None = None) -> PromptCompressor:
    """Factory for a compressor with the default estimator and validator."""
    return PromptCompressor(TokenEstimator(), QualityValidator(), config or CompressionConfig())
