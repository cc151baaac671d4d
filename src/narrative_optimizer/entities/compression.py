"""Compression domain entities."""

from dataclasses import dataclass


@dataclass(frozen=True)
class QualityMetrics:
    semantic_similarity: float
    keyword_preservation: float
    structure_integrity: float


@dataclass(frozen=True)
class QualityScore:
    """Fidelity of a transformed text relative to its original, in [0, 1]."""

    score: float
    metrics: QualityMetrics


@dataclass(frozen=True)
class CompressedPrompt:
    """Result of compressing a prompt.

    Attributes:
        original: The prompt as given
        compressed: The prompt to send
        tokens_saved: estimate(original) - estimate(compressed)
        compression_ratio: Achieved reduction in percent
        quality: Fidelity score of ``compressed``
        fallback_used: True when the staged result failed the quality gate
    """

    original: str
    compressed: str
    tokens_saved: int
    compression_ratio: float
    quality: float
    fallback_used: bool = False
