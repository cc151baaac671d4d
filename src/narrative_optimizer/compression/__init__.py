"""Prompt compression: token estimation, fidelity scoring, staged reduction."""

from .prompt_compressor import PromptCompressor, create_compressor, normalize_whitespace
from .quality_validator import QualityValidator
from .token_estimator import TokenEstimator

__all__ = [
    "PromptCompressor",
    "QualityValidator",
    "TokenEstimator",
    "create_compressor",
    "normalize_whitespace",
]
