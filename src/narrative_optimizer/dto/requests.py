"""Request DTOs for API endpoints."""

from typing import Any

from pydantic import BaseModel, Field

from narrative_optimizer.models import PriorChoice, StoryPreferences, StorySegment


class GenerateRequest(BaseModel):
    """Request DTO for generating narrative content.

    The handler will convert this to a GenerationRequest for the service layer.
    """

    prompt: str = Field(..., description="The narrative prompt", min_length=1)
    preferences: StoryPreferences = Field(
        default_factory=StoryPreferences,
        description="Genre, style, mood and theme of the story",
    )
    prior_choices: list[PriorChoice] = Field(
        default_factory=list,
        description="Choices the reader already made, oldest first",
    )
    compress: bool = Field(True, description="Allow prompt compression for this request")
    location: str | None = Field(None, description="Current story location")
    context: dict[str, Any] = Field(
        default_factory=dict,
        description="Opaque data passed through to the provider",
    )
    timeout_seconds: float | None = Field(
        None,
        description="Timeout for the provider call in seconds",
        gt=0,
    )


class GenerateStoryRequest(BaseModel):
    """Request DTO for generating the next story part from prior segments."""

    segments: list[StorySegment] = Field(
        default_factory=list,
        description="Story so far, one entry per location",
    )
    preferences: StoryPreferences = Field(default_factory=StoryPreferences)
    prior_choices: list[PriorChoice] = Field(default_factory=list)
    location: str | None = Field(None, description="Current story location")
    compact: bool = Field(False, description="Use the short prompt variant")
    compress: bool = Field(True, description="Allow prompt compression for this request")
    timeout_seconds: float | None = Field(None, gt=0)
