"""Response quality gate.

Decides whether a provider response is good enough to cache. A failing
response is still returned to the caller.

``score = 0.4 * length + 0.3 * markers + 0.3 * choice completeness``

Choices the processor discarded count as incomplete. A choice with
near-duplicate options fails the gate without changing the score.
"""

from dataclasses import dataclass

from narrative_optimizer.choices import ChoiceValidator
from narrative_optimizer.config import ResponseGateConfig
from narrative_optimizer.entities import Choice

LENGTH_WEIGHT = 0.4
MARKER_WEIGHT = 0.3
COMPLETENESS_WEIGHT = 0.3

MIN_OPTION_TEXT = 2


@dataclass(frozen=True)
class GateResult:
    passed: bool
    score: float
    reasons: tuple[str, ...] = ()


def is_complete(choice: Choice) -> bool:
    """At least two options, each with non-trivial text."""
    return len(choice.options) >= 2 and all(
        len(option.content.strip()) >= MIN_OPTION_TEXT for option in choice.options
    )


class ResponseQualityGate:
    def __init__(
        self,
        config: ResponseGateConfig | None = None,
        validator: ChoiceValidator | None = None,
    ) -> None:
        self._config = config or ResponseGateConfig()
        self._validator = validator or ChoiceValidator()

    def evaluate(self, content: str, choices: list[Choice], discarded: int = 0) -> GateResult:
        """Score a response.

        Args:
            content: Provider text.
            choices: Choices that will be returned to the caller.
            discarded: Parsed choices dropped before ``choices`` was built.
        """
        reasons = []

        length = len(content.strip())
        minimum = self._config.min_content_length
        length_score = min(1.0, length / minimum) if minimum > 0 else 1.0
        if length < minimum:
            reasons.append(f"content length {length} below {minimum}")

        markers = self._config.required_markers
        present = [m for m in markers if m in content]
        marker_score = len(present) / len(markers) if markers else 1.0
        missing = [m for m in markers if m not in present]
        if missing:
            reasons.append(f"missing markers {missing}")

        complete = [c for c in choices if is_complete(c)]
        total = len(choices) + discarded
        completeness_score = len(complete) / total if total else 1.0
        if len(complete) < total:
            reasons.append(f"{total - len(complete)} incomplete choice(s)")

        repetitive = [c for c in choices if not self._validator.validate_diversity(list(c.options))]
        if repetitive:
            reasons.append(f"{len(repetitive)} choice(s) with near-duplicate options")

        score = (
            LENGTH_WEIGHT * length_score
            + MARKER_WEIGHT * marker_score
            + COMPLETENESS_WEIGHT * completeness_score
        )
        if score < self._config.min_quality:
            reasons.append(f"score {score:.2f} below {self._config.min_quality}")

        return GateResult(passed=not reasons, score=score, reasons=tuple(reasons))
