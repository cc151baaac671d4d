"""
Tests for choice extraction, defaulting and limiting.
"""

import pytest
from conftest import STORY_CONTENT

from narrative_optimizer.choices import (
    DEFAULT_OPTIONS,
    FILLER_TEXT,
    ChoiceProcessor,
    StructuredPromptBuilder,
    default_choice_set,
)
from narrative_optimizer.config import ChoiceConfig
from narrative_optimizer.entities import Choice, ChoiceOption
from narrative_optimizer.models import PriorChoice, ProviderResult, StoryPreferences, StorySegment


class StubScorer:
    """Scores choices by id and options by text."""

    def __init__(self, choice_scores=None, option_scores=None):
        self.choice_scores = choice_scores or {}
        self.option_scores = option_scores or {}

    def score_choice(self, choice):
        return self.choice_scores.get(choice.id, 0.0)

    def score_option(self, option):
        return self.option_scores.get(option.text, 0.0)


def make_choice(choice_id: str, n_options: int = 3) -> Choice:
    options = tuple(
        ChoiceOption(id=f"{choice_id}-{i}", text=f"Option {i} for {choice_id}") for i in range(n_options)
    )
    return Choice(id=choice_id, question=f"Question {choice_id}?", options=options)


def structured(n_choices: int) -> list[dict]:
    return [
        {
            "id": f"c{i}",
            "question": f"Question {i}?",
            "options": [f"Go through door {i}-{j}" for j in range(3)],
        }
        for i in range(n_choices)
    ]


class TestLimitChoices:
    def test_keeps_top_ranked_and_reports_quality(self):
        scores = {"a": 0.7, "b": 0.9, "c": 0.5, "d": 0.8, "e": 0.6}
        processor = ChoiceProcessor(scorer=StubScorer(choice_scores=scores))
        choices = [make_choice(cid) for cid in "abcde"]

        limited = processor.limit_choices(choices, 3)

        assert [c.id for c in limited.choices] == ["b", "d", "a"]
        assert [c.id for c in limited.removed] == ["e", "c"]
        assert limited.original_count == 5
        assert limited.limited_count == 3
        assert limited.was_limited
        assert limited.quality == pytest.approx(0.8 / 0.7)

    def test_nothing_to_remove(self):
        processor = ChoiceProcessor()
        choices = [make_choice("a"), make_choice("b")]

        limited = processor.limit_choices(choices, 3)

        assert limited.choices == choices
        assert limited.removed == []
        assert limited.quality == 1.0
        assert not limited.was_limited

    def test_ties_keep_input_order(self):
        processor = ChoiceProcessor(scorer=StubScorer())
        choices = [make_choice(cid) for cid in "abcd"]

        limited = processor.limit_choices(choices, 2)

        assert [c.id for c in limited.choices] == ["a", "b"]
        assert limited.quality == 1.0


class TestLimitOptions:
    def test_keeps_best_options_in_original_order(self):
        scores = {"Option 0 for x": 0.2, "Option 1 for x": 0.9, "Option 2 for x": 0.1, "Option 3 for x": 0.8}
        processor = ChoiceProcessor(scorer=StubScorer(option_scores=scores))

        trimmed, changed = processor.limit_options(make_choice("x", 4), 2)

        assert changed
        assert [o.text for o in trimmed.options] == ["Option 1 for x", "Option 3 for x"]

    def test_short_choice_is_untouched(self):
        processor = ChoiceProcessor()
        original = make_choice("x", 3)

        trimmed, changed = processor.limit_options(original, 3)

        assert not changed
        assert trimmed is original


class TestExtractChoices:
    def test_two_options_are_padded_to_three(self):
        processor = ChoiceProcessor()

        choices = processor.extract_choices("What will you do?\n1. Open the door\n2. Run away")

        assert len(choices) == 1
        texts = [o.text for o in choices[0].options]
        assert texts == ["Open the door", "Run away", FILLER_TEXT]

    def test_padding_can_be_disabled(self):
        processor = ChoiceProcessor(ChoiceConfig(pad_two_option_choices=False))

        choices = processor.extract_choices("1. Open the door\n2. Run away")

        assert len(choices[0].options) == 2

    def test_no_padding_with_two_options_per_choice(self):
        processor = ChoiceProcessor(ChoiceConfig(options_per_choice=2))

        choices = processor.extract_choices("1. Open the door\n2. Run away")

        assert len(choices[0].options) == 2

    def test_single_option_is_unusable(self):
        assert ChoiceProcessor().extract_choices("1. Open the door") == []

    def test_plain_text_is_unusable(self):
        assert ChoiceProcessor().extract_choices("Just a sentence.") == []

    def test_markdown_content(self):
        choices = ChoiceProcessor().extract_choices(STORY_CONTENT)

        assert len(choices) == 1
        assert choices[0].location == "Old Station"
        assert len(choices[0].options) == 3

    def test_structured_list_of_choices(self):
        choices = ChoiceProcessor().extract_choices(structured(2))

        assert [c.id for c in choices] == ["c0", "c1"]
        assert all(len(c.options) == 3 for c in choices)

    def test_flat_list_of_options(self):
        choices = ChoiceProcessor().extract_choices(
            ["Go north", {"text": "Go south", "description": "Toward the sea"}, "Stay"]
        )

        assert len(choices) == 1
        assert choices[0].options[1].description == "Toward the sea"

    def test_provider_result_prefers_structured_choices(self):
        result = ProviderResult(content=STORY_CONTENT, raw_choices=structured(1))

        choices = ChoiceProcessor().extract_choices(result)

        assert choices[0].id == "c0"

    def test_provider_result_falls_back_to_content(self):
        result = ProviderResult(content=STORY_CONTENT, raw_choices=None)

        choices = ChoiceProcessor().extract_choices(result)

        assert choices[0].location == "Old Station"

    def test_mapping_payload(self):
        choices = ChoiceProcessor().extract_choices({"content": STORY_CONTENT})

        assert len(choices) == 1

    def test_tiny_options_are_dropped(self):
        choices = ChoiceProcessor().extract_choices(["Go north", "x", "Go south"])

        assert [o.text for o in choices[0].options] == ["Go north", "Go south", FILLER_TEXT]

    def test_string_options_value_is_one_option(self):
        choice = Choice.from_dict({"id": "c", "options": "Open the heavy door"})

        assert [o.text for o in choice.options] == ["Open the heavy door"]
        assert choice.options[0].id == "c-0"

    def test_mapping_options_value_is_one_option(self):
        choice = Choice.from_dict({"options": {"text": "Wait", "description": "Let time pass"}})

        assert [o.description for o in choice.options] == ["Let time pass"]


class TestProcess:
    def test_unusable_response_gets_default_set(self):
        processed = ChoiceProcessor().process("1. Open the door", location="the harbor")

        assert processed.defaulted
        assert len(processed.choices) == 1
        choice = processed.choices[0]
        assert choice.question == "What will you do at the harbor?"
        assert [o.text for o in choice.options] == [text for text, _ in DEFAULT_OPTIONS]

    def test_limits_to_max_choices(self):
        processed = ChoiceProcessor(ChoiceConfig(max_choices=3)).process(structured(4))

        assert len(processed.choices) == 3
        assert processed.limited
        assert processed.removed_count == 1
        assert not processed.defaulted

    def test_limits_options_per_choice(self):
        raw = [{"id": "c0", "options": [f"Take path number {j} north" for j in range(5)]}]

        processed = ChoiceProcessor().process(raw)

        assert len(processed.choices[0].options) == 3
        assert processed.limited

    def test_no_limit_when_not_enforced(self):
        processed = ChoiceProcessor(ChoiceConfig(enforce_limit=False)).process(structured(4))

        assert len(processed.choices) == 4
        assert not processed.limited

    def test_disabled_processing_only_extracts(self):
        processed = ChoiceProcessor(ChoiceConfig(enabled=False)).process("Just a sentence.")

        assert processed.choices == []
        assert not processed.defaulted

    def test_discarded_choices_are_counted(self):
        raw = [*structured(2), {"id": "lonely", "options": ["Only one way forward"]}]

        processed = ChoiceProcessor().process(raw)

        assert [c.id for c in processed.choices] == ["c0", "c1"]
        assert processed.discarded_count == 1

    def test_structured_discards_count_when_falling_back_to_content(self):
        result = ProviderResult(content=STORY_CONTENT, raw_choices=[{"id": "x", "options": ["One"]}])

        processed = ChoiceProcessor().process(result)

        assert processed.choices[0].location == "Old Station"
        assert processed.discarded_count == 1

    def test_valid_flag_reflects_validation(self):
        assert ChoiceProcessor().process(STORY_CONTENT).valid

        duplicates = [{"id": "c", "options": ["Open the iron door now"] * 3}]
        assert not ChoiceProcessor().process(duplicates).valid

    def test_default_set_without_location(self):
        assert default_choice_set()[0].question == "What will you do at this place?"


class TestValidateChoices:
    def test_delegates_to_validator(self):
        processor = ChoiceProcessor()

        assert not processor.validate_choices([])
        assert processor.validate_choices(default_choice_set())


class TestPromptBuilder:
    def test_full_prompt_requests_choice_format(self):
        builder = StructuredPromptBuilder(ChoiceConfig(max_choices=2))
        segments = [StorySegment(location="Station", story="Mina arrived.", choice="Waited")]

        prompt = builder.build(
            segments,
            StoryPreferences(genre="mystery"),
            prior_choices=[PriorChoice(question="Who?", choice="The stranger")],
        )

        assert "Genre: mystery" in prompt
        assert "Mina arrived." in prompt
        assert "Who? -> The stranger" in prompt
        assert "exactly 2 choice(s)" in prompt
        assert "**Choices:**" in prompt
        assert prompt.count("[Location] - [Question]") == 2

    def test_empty_story(self):
        prompt = StructuredPromptBuilder().build([], StoryPreferences())

        assert "A new story begins." in prompt
        assert "Genre: general" in prompt

    def test_compact_prompt_uses_recent_segments(self):
        segments = [StorySegment(story=f"Part {i}", choice=f"Pick {i}") for i in range(5)]

        prompt = StructuredPromptBuilder().build_compact(segments, StoryPreferences(genre="sf"))

        assert "Part 0" not in prompt
        assert "Part 4->Pick 4" in prompt
        assert "Setting: sf/-/-" in prompt
