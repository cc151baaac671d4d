"""
Tests for canonical request fingerprints.
"""

from narrative_optimizer.models import PriorChoice, StoryPreferences
from narrative_optimizer.services import build_fingerprint, context_digest, normalize_prompt

PROMPT = "Continue the story at the harbor."


class TestNormalizePrompt:
    def test_iso_timestamp(self):
        assert normalize_prompt("at 2024-05-01T10:30:00Z now") == "at <ts> now"

    def test_uuid(self):
        assert normalize_prompt("id 123e4567-e89b-12d3-a456-426614174000") == "id <id>"

    def test_epoch_millis(self):
        assert normalize_prompt("sent 1714559400000") == "sent <ts>"

    def test_generated_choice_id(self):
        assert normalize_prompt("picked choice_3_1") == "picked <id>"

    def test_korean_date(self):
        assert normalize_prompt("2024년 5월 1일 아침") == "<date> 아침"

    def test_whitespace(self):
        assert normalize_prompt("  a \n b  ") == "a b"


class TestBuildFingerprint:
    def test_shape(self):
        fingerprint = build_fingerprint(PROMPT)

        assert fingerprint.startswith("fp:")
        assert len(fingerprint) == 3 + 64

    def test_ignores_volatile_text(self):
        first = build_fingerprint(f"{PROMPT} Requested at 2024-05-01 10:30:00.")
        second = build_fingerprint(f"{PROMPT} Requested at 2025-11-30 23:59:59.")

        assert first == second

    def test_ignores_whitespace_differences(self):
        assert build_fingerprint(PROMPT) == build_fingerprint(f"  {PROMPT}\n")

    def test_prompt_wording_matters(self):
        assert build_fingerprint(PROMPT) != build_fingerprint("Continue the story at the market.")

    def test_prior_choices_are_truncated(self):
        base = "x" * 48
        first = build_fingerprint(PROMPT, [PriorChoice(choice=base + " went left")])
        second = build_fingerprint(PROMPT, [PriorChoice(choice=base + " went right")])

        assert first == second

    def test_prior_choice_order_matters(self):
        a, b = PriorChoice(choice="Open the door"), PriorChoice(choice="Run away")

        assert build_fingerprint(PROMPT, [a, b]) != build_fingerprint(PROMPT, [b, a])

    def test_prior_choices_accept_plain_strings(self):
        assert build_fingerprint(PROMPT, ["Open the door"]) == build_fingerprint(
            PROMPT, [PriorChoice(question="Which?", choice="Open the door")]
        )

    def test_preferences_matter(self):
        fantasy = build_fingerprint(PROMPT, preferences=StoryPreferences(genre="fantasy"))
        romance = build_fingerprint(PROMPT, preferences=StoryPreferences(genre="romance"))

        assert fantasy != romance

    def test_provider_and_choice_limit_matter(self):
        base = build_fingerprint(PROMPT, provider="providerA", max_choices=3)

        assert base != build_fingerprint(PROMPT, provider="providerB", max_choices=3)
        assert base != build_fingerprint(PROMPT, provider="providerA", max_choices=2)

    def test_compression_flag_matters(self):
        assert build_fingerprint(PROMPT, compress=True) != build_fingerprint(PROMPT, compress=False)

    def test_theme_matters(self):
        revenge = build_fingerprint(PROMPT, preferences=StoryPreferences(theme="revenge"))
        love = build_fingerprint(PROMPT, preferences=StoryPreferences(theme="love"))

        assert revenge != love

    def test_location_matters(self):
        assert build_fingerprint(PROMPT, location="harbor") != build_fingerprint(
            PROMPT, location="market"
        )

    def test_options_per_choice_matters(self):
        assert build_fingerprint(PROMPT, options_per_choice=3) != build_fingerprint(
            PROMPT, options_per_choice=2
        )

    def test_context_matters(self):
        assert build_fingerprint(PROMPT, context={"chapter": 1}) != build_fingerprint(
            PROMPT, context={"chapter": 2}
        )

    def test_context_key_order_and_volatile_values_are_ignored(self):
        first = build_fingerprint(
            PROMPT, context={"chapter": 1, "sent": "2024-05-01T10:30:00Z"}
        )
        second = build_fingerprint(
            PROMPT, context={"sent": "2024-06-02T08:00:00Z", "chapter": 1}
        )

        assert first == second


def test_context_digest_of_empty_context_is_stable():
    assert context_digest(None) == context_digest({})
