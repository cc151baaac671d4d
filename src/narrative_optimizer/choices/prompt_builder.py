"""Narrative prompts that ask the provider for a fixed number of choices.

The response format requested here is the one ``match_markdown_blocks``
parses first.
"""

from narrative_optimizer.config import ChoiceConfig
from narrative_optimizer.models import PriorChoice, StoryPreferences, StorySegment

COMPACT_SEGMENTS = 3
COMPACT_STORY_CHARS = 100
COMPACT_CHOICE_CHARS = 50


class StructuredPromptBuilder:
    def __init__(self, config: ChoiceConfig | None = None) -> None:
        self._config = config or ChoiceConfig()

    def build(
        self,
        segments: list[StorySegment],
        preferences: StoryPreferences,
        choice_limit: int | None = None,
        prior_choices: list[PriorChoice] | None = None,
    ) -> str:
        """Full prompt with story settings, context, rules and response format."""
        limit = choice_limit or self._config.max_choices
        options = self._config.options_per_choice

        sections = [
            "You are a novelist. Write the next part of the story under these conditions.",
            "## Story settings\n"
            f"- Genre: {preferences.genre or 'general'}\n"
            f"- Style: {preferences.style or 'realistic'}\n"
            f"- Mood: {preferences.mood or 'neutral'}\n"
            f"- Theme: {preferences.theme or 'growth'}",
            f"## Story so far\n{self._context(segments)}",
        ]
        if prior_choices:
            history = "\n".join(
                f"{i}. {c.question} -> {c.choice}" for i, c in enumerate(prior_choices, start=1)
            )
            sections.append(f"## Previous choices\n{history}")

        sections.append(
            "## Rules\n"
            f"1. Provide exactly {limit} choice(s), each with exactly {options} options.\n"
            "2. Each option is 50-200 characters and names a concrete action.\n"
            "3. Options lead in clearly different directions and carry some tension."
        )
        sections.append(
            "## Response format\n"
            "**Story**\n"
            "[150-300 characters describing what happens next]\n\n"
            "**Choices:**\n" + self._format_example(limit, options)
        )
        return "\n\n".join(sections)

    def build_compact(
        self,
        segments: list[StorySegment],
        preferences: StoryPreferences,
        choice_limit: int | None = None,
    ) -> str:
        """Short variant using only the most recent segments."""
        limit = choice_limit or self._config.max_choices
        options = self._config.options_per_choice
        setting = "/".join(
            value or "-" for value in (preferences.genre, preferences.style, preferences.mood)
        )
        return (
            "As a novelist, continue the story.\n"
            f"Setting: {setting}\n"
            f"Context: {self._compact_context(segments)}\n"
            f"Rules: exactly {limit} choice(s) with {options} options each, 50-200 characters per option.\n"
            "Format:\n**Story**\n[150-300 characters]\n**Choices:**\n"
            + self._format_example(limit, options)
        )

    def _context(self, segments: list[StorySegment]) -> str:
        if not segments:
            return "A new story begins."
        return "\n\n".join(
            f"{i}. {s.story or 'No description'}\n   Choice: {s.choice or 'None'}"
            for i, s in enumerate(segments, start=1)
        )

    def _compact_context(self, segments: list[StorySegment]) -> str:
        if not segments:
            return "new story"
        return " / ".join(
            f"{(s.story or '')[:COMPACT_STORY_CHARS]}->{(s.choice or '')[:COMPACT_CHOICE_CHARS]}"
            for s in segments[-COMPACT_SEGMENTS:]
        )

    @staticmethod
    def _format_example(limit: int, options: int) -> str:
        blocks = []
        for _ in range(limit):
            lines = ["[Location] - [Question]"]
            lines += [f"{n}) [Option] - [Short description]" for n in range(1, options + 1)]
            blocks.append("\n".join(lines))
        return "\n\n".join(blocks)
